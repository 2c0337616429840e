"""PatternAnalyzer - Rule-Based Reflection Analysis

Detects thinking patterns in a reflection session's answers by phrase
matching, and recommends interventions from a library of evidence-based
practices. This is the offline path: the reflection agent falls back to it
whenever the AI analysis fails.

Confidence for a pattern is matches / indicators, plus a bonus of 0.1 for
two matches or 0.2 for three or more, clamped to [0, 1]. Patterns below
MIN_CONFIDENCE are dropped and the top three are kept.
"""
import logging
from typing import Dict, List, Optional, Tuple

from models.reflection import (
    DetectedPattern,
    Intervention,
    InterventionCategory as Cat,
    PatternType as P,
    ReflectionExchange,
    ReflectionSessionType,
)

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.3
MAX_PATTERNS = 3
MAX_RECOMMENDATIONS = 3

PATTERN_INDICATORS: Dict[P, List[str]] = {
    P.IMPULSE_CONTROL: [
        "can't stop", "couldn't stop", "give in", "gave in", "urge", "craving",
        "impulse", "couldn't resist", "can't resist", "before i knew it",
        "automatic", "just do it without thinking", "act without thinking",
        "hard to control", "lose control",
    ],
    P.NEGATIVE_THOUGHT_SPIRALS: [
        "keep thinking", "can't stop thinking", "ruminating", "spiral",
        "worst case", "what if", "always", "never", "stuck in my head",
        "overthinking", "goes round and round", "same thoughts",
        "catastrophizing", "doom",
    ],
    P.PERFECTIONISM: [
        "not good enough", "perfect", "failure", "all or nothing", "should have",
        "must be", "can't make mistakes", "disappointed in myself",
        "high standards", "never satisfied", "should be better",
        "if it's not perfect", "flawless",
    ],
    P.AVOIDANCE: [
        "avoid", "put off", "later", "don't want to think about",
        "don't want to deal", "ignore", "escape", "distract", "numb",
        "push away", "don't face", "run from", "hide from",
    ],
    P.OVERWHELM: [
        "overwhelmed", "too much", "can't handle", "drowning", "buried",
        "paralyzed", "frozen", "don't know where to start", "everything at once",
        "spinning plates", "too many things", "can't cope",
    ],
    P.LOW_MOTIVATION: [
        "don't feel like", "no energy", "can't be bothered", "what's the point",
        "unmotivated", "apathetic", "don't care", "lost interest", "no drive",
        "empty", "flat", "can't get started", "no desire",
    ],
    P.SELF_CRITICISM: [
        "i'm so stupid", "i'm an idiot", "hate myself", "i'm worthless",
        "i'm useless", "beat myself up", "hard on myself", "i'm a failure",
        "i'm not enough", "self-loathing", "i'm pathetic", "what's wrong with me",
    ],
    P.PROCRASTINATION: [
        "procrastinate", "put off", "delay", "tomorrow", "keep pushing back",
        "last minute", "don't start", "avoid starting", "waste time",
        "distracted instead", "scroll instead",
    ],
    P.ANXIOUS_THINKING: [
        "worried", "anxious", "nervous", "scared", "fear", "panic", "dread",
        "can't relax", "on edge", "tense", "racing thoughts", "restless",
        "what if something bad",
    ],
    P.BLACK_AND_WHITE_THINKING: [
        "always", "never", "completely", "totally", "everyone", "no one",
        "nothing", "everything", "all or nothing", "either or",
        "black and white", "ruined", "destroyed",
    ],
}

# (name, description, how_to_apply, target pattern, category, habit suggestion)
_LIBRARY: List[Tuple[str, str, str, P, Cat, Optional[str]]] = [
    ("Urge Surfing",
     "A mindfulness technique where you observe urges like waves - they rise, peak, "
     "and naturally fall without you acting on them.",
     "1. Notice the urge arising\n2. Describe it: Where do you feel it in your body? "
     "What intensity (1-10)?\n3. Breathe slowly and observe without judgment\n4. Watch "
     "as the urge peaks and then naturally fades\n5. Remind yourself: urges typically "
     "pass within 15-30 minutes",
     P.IMPULSE_CONTROL, Cat.MINDFULNESS, "Practice urge surfing (5 min)"),
    ("HALT Check",
     "Before acting on impulse, check if you're Hungry, Angry, Lonely, or Tired - "
     "basic needs that amplify urges.",
     "When you feel an urge:\n1. H - Am I Hungry? Eat something nutritious\n2. A - Am I "
     "Angry? Address the frustration first\n3. L - Am I Lonely? Reach out to someone\n"
     "4. T - Am I Tired? Rest or take a break\n\nAddress the underlying need before deciding.",
     P.IMPULSE_CONTROL, Cat.BEHAVIORAL, "HALT check before decisions"),
    ("10-Minute Delay",
     "Create space between urge and action by waiting 10 minutes before acting.",
     "1. When you feel the urge, set a 10-minute timer\n2. Do something else during this "
     "time\n3. After 10 minutes, check in: Do I still want this?\n4. If yes, make a "
     "conscious choice. If no, you've won.\n5. Gradually increase to 15, 20, 30 minutes",
     P.IMPULSE_CONTROL, Cat.BEHAVIORAL, None),

    ("Thought Record",
     "A CBT technique to examine, challenge, and reframe negative thoughts with evidence.",
     "1. Situation: What triggered the thought?\n2. Automatic thought: What went through "
     "your mind?\n3. Emotion: What did you feel? (0-100% intensity)\n4. Evidence FOR the "
     "thought\n5. Evidence AGAINST the thought\n6. Balanced thought: A more realistic "
     "perspective\n7. New emotion rating (0-100%)",
     P.NEGATIVE_THOUGHT_SPIRALS, Cat.COGNITIVE, "Complete one thought record"),
    ("Cognitive Defusion",
     "Create psychological distance from thoughts by changing your relationship to them.",
     "Try these techniques:\n1. \"I notice I'm having the thought that...\" (add prefix)\n"
     "2. Say the thought in a silly voice or sing it\n3. Imagine the thought on a leaf "
     "floating down a stream\n4. Thank your mind: \"Thanks for that thought, mind!\"\n"
     "5. Name the story: \"Ah, there's the 'I'm not good enough' story again\"",
     P.NEGATIVE_THOUGHT_SPIRALS, Cat.ACCEPTANCE, "Practice cognitive defusion"),
    ("Scheduled Worry Time",
     "Contain rumination by scheduling a specific time to worry, freeing the rest of your day.",
     "1. Choose a 15-20 minute \"worry time\" each day\n2. When worries arise outside this "
     "time, write them down\n3. Tell yourself: \"I'll think about this at worry time\"\n"
     "4. During worry time, review your list and worry deliberately\n5. When time is up, "
     "stop and return to your day",
     P.NEGATIVE_THOUGHT_SPIRALS, Cat.BEHAVIORAL, None),

    ("Good Enough Criteria",
     "Define what \"good enough\" looks like BEFORE starting, to prevent endless refinement.",
     "1. Before starting a task, write down: \"This is good enough when...\"\n2. List 3-5 "
     "specific, measurable criteria\n3. When you meet these criteria, STOP\n4. Resist the "
     "urge to \"just improve one more thing\"\n5. Remind yourself: Perfect is the enemy of done",
     P.PERFECTIONISM, Cat.BEHAVIORAL, "Set good-enough criteria before tasks"),
    ("Intentional Imperfection",
     "Deliberately do something imperfectly to build tolerance for mistakes.",
     "1. Choose a low-stakes task\n2. Intentionally do it \"good enough\" not perfect\n"
     "3. Notice your discomfort - sit with it\n4. Observe: Did anything terrible happen?\n"
     "5. Gradually apply to higher-stakes situations",
     P.PERFECTIONISM, Cat.BEHAVIORAL, None),
    ("Self-Compassion Break",
     "Replace self-criticism with kindness using this three-part practice.",
     "1. MINDFULNESS: \"This is a moment of struggle\"\n2. COMMON HUMANITY: \"Struggle is "
     "part of being human. Others feel this too.\"\n3. SELF-KINDNESS: \"May I be kind to "
     "myself. May I give myself the compassion I need.\"\n\nPlace your hand on your heart "
     "while practicing.",
     P.PERFECTIONISM, Cat.SELF_COMPASSION, "Self-compassion break"),

    ("Exposure Ladder",
     "Gradually face avoided situations in small, manageable steps.",
     "1. List what you're avoiding (specific situations)\n2. Rate each from 0-10 on anxiety "
     "level\n3. Start with the lowest-rated item\n4. Face it, stay with the discomfort until "
     "it decreases\n5. Repeat until comfortable, then move up the ladder",
     P.AVOIDANCE, Cat.BEHAVIORAL, None),
    ("5-Minute Start",
     "Commit to just 5 minutes on an avoided task to break the avoidance cycle.",
     "1. Choose the task you're avoiding\n2. Commit to ONLY 5 minutes - no more\n3. Set a "
     "timer and start\n4. When timer goes off, you can stop (or continue)\n5. Celebrate "
     "starting - that's the hardest part!",
     P.AVOIDANCE, Cat.BEHAVIORAL, "5-minute start on one avoided task"),

    ("Brain Dump",
     "Get everything out of your head onto paper to reduce mental load.",
     "1. Set a timer for 10 minutes\n2. Write EVERYTHING on your mind - no filter\n3. Don't "
     "organize or prioritize yet\n4. When done, review and circle the top 3 priorities\n"
     "5. Focus ONLY on those 3 today",
     P.OVERWHELM, Cat.BEHAVIORAL, "Morning brain dump (10 min)"),
    ("One Thing",
     "Ask: \"What's the ONE thing I can do right now?\" and do only that.",
     "1. Stop and breathe\n2. Ask: \"What is the single most important thing I can do right "
     "now?\"\n3. Do ONLY that thing\n4. When done, ask again\n5. Repeat. One thing at a time.",
     P.OVERWHELM, Cat.BEHAVIORAL, None),
    ("Grounding 5-4-3-2-1",
     "A sensory grounding technique to calm overwhelm and return to the present.",
     "Notice:\n5 things you can SEE\n4 things you can TOUCH\n3 things you can HEAR\n2 things "
     "you can SMELL\n1 thing you can TASTE\n\nTake your time with each. Breathe slowly.",
     P.OVERWHELM, Cat.MINDFULNESS, None),

    ("Values Clarification",
     "Reconnect with your deeper values to find intrinsic motivation.",
     "1. Ask: \"Why does this matter to me?\"\n2. Keep asking \"Why?\" 5 times (get to the "
     "root value)\n3. Connect the task to this value\n4. Remind yourself: \"I'm doing this "
     "because I value [X]\"\n5. Write your values where you'll see them daily",
     P.LOW_MOTIVATION, Cat.COGNITIVE, "Values check-in"),
    ("Tiny Habits",
     "Make the desired behavior so small it's almost impossible to fail.",
     "1. Choose the habit you want to build\n2. Make it TINY (e.g., \"exercise\" → \"put on "
     "workout shoes\")\n3. Anchor to existing habit: \"After I [existing habit], I will [tiny "
     "habit]\"\n4. Celebrate immediately (smile, say \"yes!\")\n5. Grow the habit gradually "
     "once it's automatic",
     P.LOW_MOTIVATION, Cat.BEHAVIORAL, "One tiny habit"),
    ("Motivation Follows Action",
     "Start before you feel motivated - motivation often comes after starting.",
     "1. Accept: You don't need to feel motivated to start\n2. Commit to just the first tiny "
     "step\n3. Begin, even if reluctantly\n4. Notice how energy often builds once you're "
     "moving\n5. Remind yourself: \"Action creates motivation, not the other way around\"",
     P.LOW_MOTIVATION, Cat.BEHAVIORAL, None),

    ("Friend Perspective",
     "Treat yourself with the same kindness you'd show a good friend.",
     "1. Notice the self-critical thought\n2. Ask: \"What would I say to a friend in this "
     "situation?\"\n3. Write down that compassionate response\n4. Say it to yourself (out "
     "loud if possible)\n5. Practice daily until it becomes more natural",
     P.SELF_CRITICISM, Cat.SELF_COMPASSION, "Friend perspective practice"),
    ("Inner Critic Naming",
     "Give your inner critic a name to create distance from its voice.",
     "1. Notice when your inner critic speaks\n2. Give it a name (e.g., \"The Judge\", "
     "\"Negative Nancy\")\n3. When it speaks, acknowledge: \"Oh, there's [Name] again\"\n"
     "4. Respond: \"Thanks [Name], but I've got this\"\n5. This creates space between you "
     "and the criticism",
     P.SELF_CRITICISM, Cat.ACCEPTANCE, None),

    ("2-Minute Rule",
     "If a task takes less than 2 minutes, do it immediately.",
     "1. When a task comes up, estimate: Will this take < 2 minutes?\n2. If YES: Do it right "
     "now, no delay\n3. If NO: Schedule it or add to task list\n4. This prevents small tasks "
     "from piling up\n5. Builds momentum through quick wins",
     P.PROCRASTINATION, Cat.BEHAVIORAL, "Apply 2-minute rule"),
    ("Temptation Bundling",
     "Pair an unpleasant task with something enjoyable to make it easier to start.",
     "1. Identify a task you procrastinate on\n2. Identify something you enjoy (podcast, "
     "music, snack)\n3. ONLY allow yourself the enjoyable thing while doing the task\n"
     "4. Example: \"I only listen to my favorite podcast while exercising\"\n5. Creates "
     "positive association with the task",
     P.PROCRASTINATION, Cat.BEHAVIORAL, None),

    ("Worry Decision Tree",
     "A structured approach to decide if a worry deserves attention.",
     "1. Is this worry about something I can control?\n   - NO → Practice acceptance (let it "
     "go)\n   - YES → Continue\n2. Can I do something about it RIGHT NOW?\n   - NO → "
     "Schedule time to address it, then let go\n   - YES → Take action immediately",
     P.ANXIOUS_THINKING, Cat.COGNITIVE, None),
    ("Box Breathing",
     "A calming breathing technique used by Navy SEALs for stress.",
     "1. Breathe IN for 4 counts\n2. HOLD for 4 counts\n3. Breathe OUT for 4 counts\n4. HOLD "
     "for 4 counts\n5. Repeat 4-6 times\n\nVisualize tracing a square as you breathe.",
     P.ANXIOUS_THINKING, Cat.MINDFULNESS, "Box breathing (2 min)"),

    ("Gray Zone Thinking",
     "Practice finding the middle ground between extreme positions.",
     "1. Notice the extreme thought (always, never, completely, etc.)\n2. Ask: \"What's the "
     "evidence this is 100% true?\"\n3. Consider: \"What would 50% or 75% look like?\"\n"
     "4. Reframe: Replace \"always\" with \"sometimes\" or \"often\"\n5. Example: \"I always "
     "fail\" → \"Sometimes I struggle, sometimes I succeed\"",
     P.BLACK_AND_WHITE_THINKING, Cat.COGNITIVE, None),
    ("Percentage Rating",
     "Rate situations on a 0-100% scale to break binary thinking.",
     "1. When you think in absolutes, pause\n2. Ask: \"On a scale of 0-100%, how true is this "
     "really?\"\n3. Consider evidence that lowers or raises the percentage\n4. Accept that "
     "most things fall between 20-80%\n5. \"I'm a complete failure\" → \"I'm about 40% "
     "successful at this\"",
     P.BLACK_AND_WHITE_THINKING, Cat.COGNITIVE, None),
]

_FOLLOW_UPS: Dict[P, Tuple[str, str]] = {
    P.IMPULSE_CONTROL: (
        "What usually happens right before you feel that urge? Is there a trigger you've noticed?",
        "How do you typically feel after you give in to the impulse?"),
    P.NEGATIVE_THOUGHT_SPIRALS: (
        "When these thoughts start, what usually triggers them?",
        "What would you say to a friend who was having these same thoughts?"),
    P.PERFECTIONISM: (
        'What do you think would happen if you did something "good enough" instead of perfect?',
        "Where did you first learn that things needed to be perfect?"),
    P.AVOIDANCE: (
        "What's the worst thing you imagine happening if you faced this?",
        "What is this avoidance costing you in your life?"),
    P.OVERWHELM: (
        "If you could only focus on ONE thing right now, what would it be?",
        "What would it feel like to let go of some of these responsibilities, even temporarily?"),
    P.LOW_MOTIVATION: (
        "Was there a time when you felt more motivated? What was different then?",
        "What would become possible if you could find your motivation again?"),
    P.SELF_CRITICISM: (
        "Would you ever speak to someone you love the way you speak to yourself?",
        "What would self-compassion look like in this situation?"),
    P.PROCRASTINATION: (
        "What feeling are you trying to avoid by putting this off?",
        "What's the smallest first step you could take?"),
    P.ANXIOUS_THINKING: (
        "How likely do you really think this worst-case scenario is?",
        "What's helped you cope with anxiety in the past?"),
    P.BLACK_AND_WHITE_THINKING: (
        "Is there any middle ground between these two extremes?",
        "What would 50% success look like in this situation?"),
}

OPENING_QUESTIONS: Dict[ReflectionSessionType, List[str]] = {
    ReflectionSessionType.GENERAL: [
        "What's been on your mind lately?",
        "How are you feeling right now, in this moment?",
    ],
    ReflectionSessionType.GOAL_FOCUSED: [
        "Let's talk about your goal. What's been your experience working toward it?",
        "What's the biggest challenge you're facing with this goal right now?",
    ],
    ReflectionSessionType.EMOTIONAL_CHECKIN: [
        "How would you describe your emotional state today?",
        "What emotions have been showing up most frequently for you lately?",
    ],
    ReflectionSessionType.CHALLENGE_ANALYSIS: [
        "Tell me about the challenge you're facing. What makes it difficult?",
        "How long has this been a struggle for you?",
    ],
}


def intervention_library() -> List[Intervention]:
    """A fresh copy of the intervention library (new ids each call)."""
    return [
        Intervention(name=name, description=description, how_to_apply=how_to_apply,
                     target_pattern=target, category=category, habit_suggestion=habit)
        for name, description, how_to_apply, target, category, habit in _LIBRARY
    ]


def calculate_confidence(match_count: int, total_indicators: int) -> float:
    base = match_count / total_indicators
    if match_count > 2:
        bonus = 0.2
    elif match_count > 1:
        bonus = 0.1
    else:
        bonus = 0.0
    return min(max(base + bonus, 0.0), 1.0)


def extract_evidence(response: str, indicator: str, radius: int = 25) -> str:
    """Snippet of the response around the indicator, ellipsised where cut."""
    index = response.lower().find(indicator.lower())
    if index == -1:
        return response
    start = max(0, index - radius)
    end = min(len(response), index + len(indicator) + radius)
    evidence = response[start:end]
    if start > 0:
        evidence = f"...{evidence}"
    if end < len(response):
        evidence = f"{evidence}..."
    return evidence.strip()


class PatternAnalyzer:
    """Keyword-driven pattern detection and intervention matching."""

    def analyze_responses(self, exchanges: List[ReflectionExchange]) -> List[DetectedPattern]:
        """Top patterns (confidence >= MIN_CONFIDENCE) across all user responses."""
        combined = " ".join(e.user_response.lower() for e in exchanges)
        detected = []

        for pattern_type, indicators in PATTERN_INDICATORS.items():
            match_count = 0
            evidence = None
            for indicator in indicators:
                if indicator not in combined:
                    continue
                match_count += 1
                if evidence is None:
                    for exchange in exchanges:
                        if indicator in exchange.user_response.lower():
                            evidence = extract_evidence(exchange.user_response, indicator)
                            break

            if match_count == 0:
                continue
            confidence = calculate_confidence(match_count, len(indicators))
            if confidence < MIN_CONFIDENCE:
                continue
            detected.append(DetectedPattern(
                type=pattern_type,
                confidence=confidence,
                evidence=evidence or "",
                description=f"You mentioned {pattern_type.description.lower()}",
            ))

        detected.sort(key=lambda p: p.confidence, reverse=True)
        logger.debug(f"Rule-based analysis found {len(detected)} patterns")
        return detected[:MAX_PATTERNS]

    def get_recommendations(self, patterns: List[DetectedPattern]) -> List[Intervention]:
        """
        Two or three interventions for the detected patterns.

        Walks the patterns in order and takes at most one intervention per
        category, so the suggestions differ in kind. Tops up from the primary
        pattern when fewer than two were found.
        """
        library = intervention_library()
        if not patterns:
            general = [i for i in library
                       if i.target_pattern in (P.OVERWHELM, P.LOW_MOTIVATION)]
            return general[:2]

        recommendations: List[Intervention] = []
        used_categories = set()
        for pattern in patterns:
            for intervention in library:
                if intervention.target_pattern != pattern.type:
                    continue
                if intervention.category in used_categories:
                    continue
                recommendations.append(intervention)
                used_categories.add(intervention.category)
                if len(recommendations) >= MAX_RECOMMENDATIONS:
                    return recommendations

        if len(recommendations) < 2:
            primary = patterns[0].type
            chosen = {i.name for i in recommendations}
            for intervention in library:
                if len(recommendations) >= 2:
                    break
                if intervention.target_pattern == primary and intervention.name not in chosen:
                    recommendations.append(intervention)

        return recommendations

    def generate_follow_up_questions(self, user_response: str,
                                     current_patterns: List[DetectedPattern]) -> List[str]:
        questions: List[str] = []
        lower = user_response.lower()

        for pattern in current_patterns[:2]:
            questions.extend(_FOLLOW_UPS[pattern.type])

        if "feel" in lower:
            questions.append("Tell me more about that feeling. Where do you notice it in your body?")
        if "should" in lower or "must" in lower:
            questions.append('Where does that "should" come from? Is it truly your own value?')
        if "but" in lower:
            questions.append('I noticed you said "but" - what\'s holding you back?')

        return questions[:3]

    def get_opening_questions(self, session_type: ReflectionSessionType) -> List[str]:
        return list(OPENING_QUESTIONS[session_type])

    def generate_session_summary(self, exchanges: List[ReflectionExchange],
                                 patterns: List[DetectedPattern],
                                 recommendations: List[Intervention]) -> str:
        """Markdown summary for the session's journal entry."""
        lines = ["## Reflection Session Summary", ""]

        if exchanges:
            lines += ["### What We Explored",
                      "During this session, you reflected on several important themes:", ""]
            for exchange in exchanges[:3]:
                response = exchange.user_response
                short = f"{response[:100]}..." if len(response) > 100 else response
                lines.append(f"- {short}")
            lines.append("")

        if patterns:
            lines.append("### Patterns Noticed")
            for pattern in patterns:
                lines.append(f"- **{pattern.type.display_name}**: {pattern.type.description}")
            lines.append("")

        if recommendations:
            lines.append("### Suggested Practices")
            for rec in recommendations:
                lines.append(f"- **{rec.name}** ({rec.category.display_name}): {rec.description}")

        return "\n".join(lines) + "\n"


_pattern_analyzer = None


def get_pattern_analyzer() -> PatternAnalyzer:
    global _pattern_analyzer
    if _pattern_analyzer is None:
        _pattern_analyzer = PatternAnalyzer()
    return _pattern_analyzer
