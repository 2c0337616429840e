"""ReflectionAgent - AI-Guided Reflection Sessions

Capabilities:
- Personalized opening built from the user's goals, habits and journal
- Follow-up questions that can also propose actions (tool calls)
- Pattern analysis and intervention recommendations
- Closing message tailored to the chosen intervention

Tool calling is done through JSON mode: the model answers with
{"message": ..., "proposed_actions": [{"tool": name, "input": {...}}]} and
each known tool name becomes a ProposedAction the user can approve.

Every AI call has a rule-based fallback so a session never dead-ends:
keyword-aware fallback questions, PatternAnalyzer for analysis, and stock
greeting/closing text.
"""
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from agents.action_agent import ActionAgent
from agents.pattern_analyzer import PatternAnalyzer, get_pattern_analyzer
from core.observability import trace_agent
from models.goal import Goal
from models.habit import Habit
from models.journal import JournalEntry
from models.reflection import (
    ActionType,
    DetectedPattern,
    ExecutedAction,
    Intervention,
    InterventionCategory,
    PatternType,
    ProposedAction,
    ReflectionExchange,
    ReflectionSessionType,
    parse_action_type,
)
from services.ai_service import AIService, get_ai_service
from services.context_engine import ContextEngine

logger = logging.getLogger(__name__)

REFLECTION_SYSTEM_PROMPT = """You are a compassionate, skilled mentor conducting a deep reflection session with the ability to take actions to help the user.

YOUR ROLE:
1. Ask thoughtful, open-ended questions that help the person explore their thoughts and feelings
2. Listen deeply and reflect back what you hear
3. Gently dig into root causes and patterns
4. Identify psychological patterns (like perfectionism, avoidance, rumination, etc.) when present
5. Suggest evidence-based practices when appropriate
6. Take concrete actions when it would help (create goals, habits, record wins, etc.)

CAPTURING WINS:
- Listen for accomplishments, progress, or things the user is proud of
- When someone shares a win (big or small), acknowledge it warmly and offer to record it
- Wins can be linked to goals or habits when relevant

USE TOOLS THOUGHTFULLY:
- Only suggest actions when they genuinely serve the user
- Always explain WHY you're suggesting an action
- Get implicit consent ("Should I create a goal for that?")
- Don't overwhelm with too many actions at once

CONVERSATION GUIDELINES:
- Be warm but not overly effusive
- Ask one question at a time
- Don't rush to solutions - spend time understanding first
- Validate emotions before exploring them
- Use phrases like "I notice...", "It sounds like...", "Tell me more about..."
- If someone shares something concerning (self-harm, suicidal thoughts), express care and suggest professional resources

PATTERNS YOU MAY IDENTIFY:
Impulse control struggles, negative thought spirals/rumination, perfectionism,
avoidance, overwhelm, low motivation, self-criticism, procrastination,
anxious thinking, black-and-white thinking.

EVIDENCE-BASED INTERVENTIONS YOU CAN SUGGEST:
- Mindfulness: Urge surfing, box breathing, grounding (5-4-3-2-1), body scan
- Cognitive: Thought records, cognitive defusion, worry decision tree, gray zone thinking
- Behavioral: HALT check, 10-minute delay, 2-minute rule, temptation bundling, tiny habits
- Self-compassion: Self-compassion break, friend perspective, inner critic naming
- Acceptance: Scheduled worry time, values clarification

Always maintain a supportive, non-judgmental tone."""

# Tool name -> input signature shown to the model
TOOL_SIGNATURES = {
    ActionType.CREATE_GOAL: "title, category (health|fitness|career|learning|relationships|finance|personal|other), description?, target_date?, milestones? [{title, description?}]",
    ActionType.UPDATE_GOAL: "goal_id, title?, description?, category?, target_date?",
    ActionType.DELETE_GOAL: "goal_id",
    ActionType.MOVE_GOAL_TO_ACTIVE: "goal_id",
    ActionType.MOVE_GOAL_TO_BACKLOG: "goal_id, reason?",
    ActionType.COMPLETE_GOAL: "goal_id",
    ActionType.ABANDON_GOAL: "goal_id, reason?",
    ActionType.CREATE_MILESTONE: "goal_id, title, description?, target_date?",
    ActionType.COMPLETE_MILESTONE: "goal_id, milestone_id",
    ActionType.CREATE_HABIT: "title, description?",
    ActionType.PAUSE_HABIT: "habit_id",
    ActionType.ACTIVATE_HABIT: "habit_id",
    ActionType.ARCHIVE_HABIT: "habit_id",
    ActionType.MARK_HABIT_COMPLETE: "habit_id, date (YYYY-MM-DD)",
    ActionType.SAVE_SESSION_AS_JOURNAL: "content, linked_goal_ids?",
    ActionType.SCHEDULE_FOLLOWUP: "days_from_now, reminder_message",
    ActionType.RECORD_WIN: "description, category?, linked_goal_id?, linked_habit_id?",
}

SESSION_TYPE_DESCRIPTIONS = {
    ReflectionSessionType.GENERAL: "Open exploration - help them explore what's on their mind",
    ReflectionSessionType.GOAL_FOCUSED: "Goal-focused - explore challenges and progress with their goal",
    ReflectionSessionType.EMOTIONAL_CHECKIN: "Emotional check-in - explore feelings and emotional patterns",
    ReflectionSessionType.CHALLENGE_ANALYSIS: "Challenge analysis - work through a specific blocker",
}

DEFAULT_OPENING_QUESTIONS = {
    ReflectionSessionType.GENERAL: "What's been on your mind lately?",
    ReflectionSessionType.GOAL_FOCUSED: "How are you feeling about your progress on this goal?",
    ReflectionSessionType.EMOTIONAL_CHECKIN: "How would you describe how you're feeling right now?",
    ReflectionSessionType.CHALLENGE_ANALYSIS: "Tell me about the challenge you're facing.",
}

DEFAULT_GREETING = "Welcome. I'm here to listen and help you reflect."
DEFAULT_CLOSING = ("Thank you for taking this time to reflect. Remember, growth happens "
                   "one small step at a time. You've got this.")

# Keyword groups checked in order; the first hit picks the question set
FALLBACK_QUESTIONS = [
    (("work", "job"), [
        "Work can bring up a lot. What aspect of work has been most on your mind?",
        "How has work been affecting you lately?",
        "What would make your work situation feel better?",
    ]),
    (("stress", "anxious", "worried"), [
        "That sounds stressful. What triggers this feeling most often?",
        "How does this stress show up in your body?",
        "What helps you feel calmer when this happens?",
    ]),
    (("tired", "exhausted", "overwhelmed"), [
        "Feeling drained is tough. What's been taking the most energy?",
        "When did you last feel truly rested?",
        "What would help you recharge right now?",
    ]),
    (("relationship", "friend", "family", "partner"), [
        "Relationships are important. What's been happening there?",
        "How has this been affecting you emotionally?",
        "What would you like to be different in this relationship?",
    ]),
]

GENERIC_QUESTIONS = [
    "I hear you. Can you tell me a bit more about what that's been like?",
    "What feelings come up when you think about this?",
    "How long has this been weighing on you?",
    "What would feel like progress on this?",
    "If you could change one thing about this situation, what would it be?",
    "What have you tried so far to address this?",
    "Who else knows about what you're going through?",
]

CRISIS_KEYWORDS = [
    "suicide", "suicidal", "kill myself", "end my life", "want to die",
    "self-harm", "hurt myself", "cutting", "not worth living",
    "better off dead", "end it all",
]


@dataclass
class ReflectionSessionStart:
    session_id: str
    type: ReflectionSessionType
    greeting: str
    opening_question: str
    linked_goal_id: Optional[str] = None


@dataclass
class FollowUp:
    message: str
    proposed_actions: List[ProposedAction] = field(default_factory=list)


@dataclass
class ReflectionAnalysis:
    patterns: List[DetectedPattern]
    recommendations: List[Intervention]
    summary: str
    affirmation: str


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def normalize_parameters(parameters: Dict[str, Any]) -> Dict[str, Any]:
    """Tool inputs with camelCase keys (goalId, daysFromNow) mapped to snake_case."""
    return {_snake_case(k): v for k, v in parameters.items()}


def fallback_question(exchange_count: int, latest_response: str) -> str:
    lower = latest_response.lower()
    for keywords, questions in FALLBACK_QUESTIONS:
        if any(k in lower for k in keywords):
            return questions[exchange_count % len(questions)]
    return GENERIC_QUESTIONS[exchange_count % len(GENERIC_QUESTIONS)]


def parse_pattern_type(name: str) -> PatternType:
    """Fuzzy-map a model-supplied pattern name; overwhelm when nothing matches."""
    lower = name.lower()
    if "impulse" in lower:
        return PatternType.IMPULSE_CONTROL
    if "rumina" in lower or "spiral" in lower:
        return PatternType.NEGATIVE_THOUGHT_SPIRALS
    if "perfect" in lower:
        return PatternType.PERFECTIONISM
    if "avoid" in lower:
        return PatternType.AVOIDANCE
    if "overwhelm" in lower:
        return PatternType.OVERWHELM
    if "motiv" in lower:
        return PatternType.LOW_MOTIVATION
    if "self-crit" in lower or "self crit" in lower:
        return PatternType.SELF_CRITICISM
    if "procrastin" in lower:
        return PatternType.PROCRASTINATION
    if "anxi" in lower:
        return PatternType.ANXIOUS_THINKING
    if "black" in lower or "white" in lower:
        return PatternType.BLACK_AND_WHITE_THINKING
    return PatternType.OVERWHELM


def parse_category(category: str) -> InterventionCategory:
    normalized = category.lower().replace("-", "").replace("_", "").replace(" ", "")
    return {
        "mindfulness": InterventionCategory.MINDFULNESS,
        "cognitive": InterventionCategory.COGNITIVE,
        "behavioral": InterventionCategory.BEHAVIORAL,
        "selfcompassion": InterventionCategory.SELF_COMPASSION,
        "acceptance": InterventionCategory.ACCEPTANCE,
    }.get(normalized, InterventionCategory.BEHAVIORAL)


def describe_action(action_type: ActionType, parameters: Dict[str, Any]) -> str:
    """User-facing one-liner for a proposed action."""
    if action_type == ActionType.CREATE_GOAL:
        return f'Create goal: "{parameters.get("title") or "new goal"}"'
    if action_type == ActionType.CREATE_HABIT:
        return f'Create habit: "{parameters.get("title") or "new habit"}"'
    if action_type == ActionType.CREATE_MILESTONE:
        return f'Add milestone: "{parameters.get("title") or "new milestone"}"'
    if action_type == ActionType.CREATE_CHECKIN_TEMPLATE:
        return f'Create check-in template: "{parameters.get("name") or "check-in template"}"'
    if action_type == ActionType.MARK_HABIT_COMPLETE:
        day = parameters.get("date")
        return f"Mark habit complete for {day}" if day else "Mark habit complete"
    if action_type == ActionType.SCHEDULE_FOLLOWUP:
        return f"Schedule follow-up in {parameters.get('days_from_now', 7)} days"
    if action_type == ActionType.RECORD_WIN:
        description = parameters.get("description") or "accomplishment"
        if len(description) > 50:
            description = f"{description[:47]}..."
        return f'Record win: "{description}"'
    return {
        ActionType.MOVE_GOAL_TO_BACKLOG: "Move goal to backlog",
        ActionType.MOVE_GOAL_TO_ACTIVE: "Activate goal",
        ActionType.COMPLETE_GOAL: "Mark goal as completed",
        ActionType.ABANDON_GOAL: "Abandon goal",
        ActionType.UPDATE_GOAL: "Update goal",
        ActionType.DELETE_GOAL: "Delete goal",
        ActionType.UPDATE_MILESTONE: "Update milestone",
        ActionType.DELETE_MILESTONE: "Delete milestone",
        ActionType.COMPLETE_MILESTONE: "Complete milestone",
        ActionType.UNCOMPLETE_MILESTONE: "Reopen milestone",
        ActionType.UPDATE_HABIT: "Update habit",
        ActionType.DELETE_HABIT: "Delete habit",
        ActionType.PAUSE_HABIT: "Pause habit",
        ActionType.ACTIVATE_HABIT: "Activate habit",
        ActionType.ARCHIVE_HABIT: "Archive habit",
        ActionType.UNMARK_HABIT_COMPLETE: "Unmark habit completion",
        ActionType.SCHEDULE_CHECKIN_REMINDER: "Schedule check-in reminder",
        ActionType.SAVE_SESSION_AS_JOURNAL: "Save this session as a journal entry",
    }[action_type]


def _conversation_text(exchanges: List[ReflectionExchange]) -> str:
    return "".join(f"Mentor: {e.mentor_question}\nUser: {e.user_response}\n\n" for e in exchanges)


class ReflectionAgent:
    """Drives the AI side of a reflection session."""

    def __init__(self, ai_service: Optional[AIService] = None,
                 action_agent: Optional[ActionAgent] = None,
                 analyzer: Optional[PatternAnalyzer] = None,
                 context_engine: Optional[ContextEngine] = None):
        self.ai = ai_service or get_ai_service()
        self.action_agent = action_agent
        self.analyzer = analyzer or get_pattern_analyzer()
        self.context_engine = context_engine or ContextEngine(ai_service=self.ai)

    def set_action_agent(self, action_agent: ActionAgent):
        self.action_agent = action_agent

    def has_api_key(self) -> bool:
        return self.ai.has_api_key()

    def start_session(self, session_type: ReflectionSessionType = ReflectionSessionType.GENERAL,
                      linked_goal_id: Optional[str] = None,
                      goals: Optional[List[Goal]] = None,
                      habits: Optional[List[Habit]] = None,
                      recent_journals: Optional[List[JournalEntry]] = None) -> ReflectionSessionStart:
        """Opening greeting and question, personalised from the user's data when possible."""
        session_id = str(uuid.uuid4())
        goals = goals or []

        context = self.context_engine.build_context(
            "cloud", goals, habits or [], recent_journals or [])
        logger.info(f"Starting reflection session {session_id} ({session_type.value}), "
                    f"context ~{context.estimated_tokens} tokens")

        session_context = [f"SESSION TYPE: {SESSION_TYPE_DESCRIPTIONS[session_type]}"]
        linked_goal = next((g for g in goals if g.id == linked_goal_id), None)
        if linked_goal:
            session_context.append(f"\nFOCUSED GOAL: {linked_goal.title}")
            if linked_goal.description:
                session_context.append(f"Description: {linked_goal.description}")
            session_context.append(f"Progress: {linked_goal.current_progress}%")

        prompt = f"""{REFLECTION_SYSTEM_PROMPT}

CONTEXT:
{chr(10).join(session_context)}
{context.context}

Generate a warm, personalized opening for this reflection session.

DECIDE YOUR APPROACH:
- If the user has recent journal entries with visible patterns or themes, acknowledge them and offer to explore deeper
- If the user has goals/habits showing progress or challenges, you can reference those
- If there's minimal context, simply ask what's on their mind
- Give the user AGENCY: offer choices when appropriate

IMPORTANT:
- Be concise (2-3 sentences)
- Make them feel safe and welcome

OUTPUT JSON:
{{
  "greeting": "Your warm opening sentence (reference their context if relevant)",
  "question": "Your opening question (adapt to their situation)"
}}"""

        try:
            parsed = self.ai.get_json_response(prompt)
            return ReflectionSessionStart(
                session_id=session_id,
                type=session_type,
                greeting=parsed.get("greeting") or "Welcome to your reflection session.",
                opening_question=parsed.get("question") or "What's been on your mind lately?",
                linked_goal_id=linked_goal_id,
            )
        except Exception as e:
            logger.error(f"Failed to generate reflection opening: {e}", exc_info=True)

        return ReflectionSessionStart(
            session_id=session_id,
            type=session_type,
            greeting=DEFAULT_GREETING,
            opening_question=DEFAULT_OPENING_QUESTIONS[session_type],
            linked_goal_id=linked_goal_id,
        )

    def generate_follow_up(self, previous_exchanges: List[ReflectionExchange],
                           latest_response: str,
                           goals: Optional[List[Goal]] = None,
                           habits: Optional[List[Habit]] = None) -> FollowUp:
        """Next mentor message, possibly with proposed actions."""
        if not self.ai.has_api_key():
            logger.info("No API key, using fallback follow-up question")
            return FollowUp(fallback_question(len(previous_exchanges), latest_response))

        state_lines = []
        if goals:
            state_lines.append("\nCURRENT GOALS:")
            state_lines += [f"- ID: {g.id} | {g.title} ({g.current_progress}% complete)" for g in goals]
        if habits:
            state_lines.append("\nCURRENT HABITS:")
            state_lines += [f"- ID: {h.id} | {h.title} ({h.current_streak} day streak)" for h in habits]
        tools = "\n".join(f"- {t.value}({sig})" for t, sig in TOOL_SIGNATURES.items())

        prompt = f"""{REFLECTION_SYSTEM_PROMPT}

CONVERSATION SO FAR:
{_conversation_text(previous_exchanges)}Mentor: [Previous question]
User: {latest_response}

USER'S CURRENT STATE:
{chr(10).join(state_lines)}

AVAILABLE TOOLS:
{tools}

Based on what the user just shared, generate a thoughtful follow-up.

YOUR OPTIONS:
1. Ask a follow-up question to explore deeper
2. Propose an action to help them
3. Both - respond AND propose an action

WHEN TO USE TOOLS:
- User mentions wanting to track something → offer to create a habit
- User mentions a new goal or aspiration → offer to create a goal
- Goal seems overwhelming → offer to break it into milestones
- User shares an accomplishment → offer to record a win

IMPORTANT:
- Get implicit consent before taking action ("Should I create a goal for that?")
- Explain WHY the action would help
- Don't overwhelm - max 1 action per turn

OUTPUT JSON:
{{
  "message": "Your follow-up (1-3 sentences)",
  "proposed_actions": [{{"tool": "tool_name", "input": {{}}}}]
}}"""

        try:
            parsed = self.ai.get_json_response(prompt)
            message = (parsed.get("message") or "").strip()
            if not message:
                raise ValueError("Follow-up response has no message")
            actions = self._parse_proposed_actions(parsed.get("proposed_actions") or [])
            logger.info(f"Follow-up generated with {len(actions)} proposed actions")
            return FollowUp(message, actions)
        except Exception as e:
            logger.error(f"Failed to generate follow-up: {e}", exc_info=True)
            return FollowUp(fallback_question(len(previous_exchanges), latest_response))

    def _parse_proposed_actions(self, tool_uses: List[Dict[str, Any]]) -> List[ProposedAction]:
        actions = []
        for tool_use in tool_uses:
            action_type = parse_action_type(tool_use.get("tool") or tool_use.get("name") or "")
            if action_type is None:
                continue
            parameters = normalize_parameters(tool_use.get("input") or {})
            actions.append(ProposedAction(
                type=action_type,
                description=describe_action(action_type, parameters),
                parameters=parameters,
            ))
        return actions

    @trace_agent
    def analyze_session(self, exchanges: List[ReflectionExchange]) -> ReflectionAnalysis:
        """AI analysis of the whole conversation; rule-based analysis on failure."""
        logger.info(f"Analyzing reflection session ({len(exchanges)} exchanges)")

        prompt = f"""{REFLECTION_SYSTEM_PROMPT}

Analyze this reflection session conversation and identify:
1. Key patterns or themes in what the user shared
2. Evidence-based interventions that might help them

CONVERSATION:
{_conversation_text(exchanges)}
OUTPUT JSON:
{{
  "patterns": [
    {{
      "name": "Pattern name (e.g., Perfectionism, Rumination)",
      "confidence": 0.8,
      "evidence": "Quote or paraphrase from user showing this pattern",
      "description": "Brief explanation of how this pattern shows up for them"
    }}
  ],
  "recommendations": [
    {{
      "name": "Intervention name (e.g., Urge Surfing, Thought Record)",
      "category": "mindfulness|cognitive|behavioral|self_compassion|acceptance",
      "description": "Brief description of the technique",
      "how_to_apply": "Step-by-step instructions (use \\n for line breaks)",
      "habit_suggestion": "Optional: A habit they could create to practice this"
    }}
  ],
  "summary": "2-3 sentence summary of the key themes from this session",
  "affirmation": "A warm, personalized closing affirmation for the user"
}}

Include 1-3 patterns (only those clearly evident) and 2-3 recommendations.
If no clear patterns emerge, suggest general wellbeing practices."""

        try:
            parsed = self.ai.get_json_response(prompt)
            patterns = [
                DetectedPattern(
                    type=parse_pattern_type(p.get("name") or ""),
                    confidence=float(p.get("confidence", 0.5)),
                    evidence=p.get("evidence") or "",
                    description=p.get("description") or "",
                )
                for p in parsed.get("patterns") or []
            ]
            target = patterns[0].type if patterns else PatternType.OVERWHELM
            recommendations = [
                Intervention(
                    name=r.get("name") or "Practice",
                    description=r.get("description") or "",
                    how_to_apply=r.get("how_to_apply") or r.get("howToApply") or "",
                    target_pattern=target,
                    category=parse_category(r.get("category") or ""),
                    habit_suggestion=r.get("habit_suggestion") or r.get("habitSuggestion"),
                )
                for r in parsed.get("recommendations") or []
            ]
            return ReflectionAnalysis(
                patterns=patterns,
                recommendations=recommendations,
                summary=parsed.get("summary") or "Thank you for sharing.",
                affirmation=parsed.get("affirmation")
                or "Remember, reflection is a practice. Every session helps you grow.",
            )
        except Exception as e:
            logger.error(f"AI session analysis failed, using rule-based analysis: {e}", exc_info=True)

        patterns = self.analyzer.analyze_responses(exchanges)
        return ReflectionAnalysis(
            patterns=patterns,
            recommendations=self.analyzer.get_recommendations(patterns),
            summary="Thank you for sharing your thoughts in this reflection session.",
            affirmation="Taking time to reflect is itself an act of self-care. Well done.",
        )

    @trace_agent
    def generate_closing(self, exchanges: List[ReflectionExchange],
                         patterns: List[DetectedPattern],
                         selected_intervention: Optional[Intervention] = None) -> str:
        chosen = (f"They chose to try: {selected_intervention.name}"
                  if selected_intervention else "They reviewed some suggestions.")
        prompt = f"""You just completed a reflection session with someone.

Key patterns noticed: {', '.join(p.type.display_name for p in patterns)}
{chosen}

Generate a warm, brief closing message (2-3 sentences) that:
1. Acknowledges their courage in reflecting
2. References what they chose to work on (if applicable)
3. Encourages them without being preachy

Keep it genuine and warm."""

        try:
            return self.ai.get_coaching_response(prompt)
        except Exception as e:
            logger.warning(f"Closing generation failed: {e}")
            return DEFAULT_CLOSING

    def execute_action(self, proposed_action: ProposedAction) -> ExecutedAction:
        """Run an approved action; failures are reported, never raised."""
        if self.action_agent is None:
            return ExecutedAction(
                proposed_action_id=proposed_action.id,
                type=proposed_action.type,
                description=proposed_action.description,
                parameters=proposed_action.parameters,
                confirmed=False,
                success=False,
                error_message="Action service not initialized",
            )

        logger.info(f"Executing action: {proposed_action.type.value} ({proposed_action.description})")
        try:
            result = self.action_agent.execute(proposed_action.type, proposed_action.parameters)
        except Exception as e:
            logger.error(f"Failed to execute action {proposed_action.id}: {e}", exc_info=True)
            return ExecutedAction(
                proposed_action_id=proposed_action.id,
                type=proposed_action.type,
                description=proposed_action.description,
                parameters=proposed_action.parameters,
                confirmed=True,
                success=False,
                error_message=str(e),
            )

        return ExecutedAction(
            proposed_action_id=proposed_action.id,
            type=proposed_action.type,
            description=proposed_action.description,
            parameters=proposed_action.parameters,
            confirmed=True,
            success=result.success,
            error_message=None if result.success else result.message,
            result_id=result.result_id,
        )

    def check_for_crisis_indicators(self, response: str) -> bool:
        lower = response.lower()
        return any(keyword in lower for keyword in CRISIS_KEYWORDS)
