"""Reflection Session Flow

The state machine behind a guided reflection session:

    LOADING -> CONVERSATION -> ANALYZING -> PATTERNS -> RECOMMENDATIONS -> COMPLETED

with NO_AI when no model is configured and ERROR when starting or
analysing raises. The conversation runs for up to REFLECTION_MAX_EXCHANGES
answers (the user may finish early after REFLECTION_MIN_EXCHANGES), then
the session is analysed, the user picks an intervention, and completing
the session writes a guided journal entry and, if the intervention
suggests one, a practice habit.

Actions proposed by the mentor wait in `pending_actions` until the user
approves or declines them with `resolve_action`. Pass the same ActionAgent
to every flow so scheduled follow-ups outlive the session that made them.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from agents.action_agent import ActionAgent
from agents.pattern_analyzer import PatternAnalyzer, get_pattern_analyzer
from agents.reflection_agent import FollowUp, ReflectionAgent, ReflectionAnalysis
from config.settings import REFLECTION_MAX_EXCHANGES, REFLECTION_MIN_EXCHANGES
from core.observability import Tracer, log_context
from models.habit import Habit
from models.journal import JournalEntry, JournalEntryType, QAPair
from models.reflection import (
    ActionType,
    ExecutedAction,
    Intervention,
    ProposedAction,
    ReflectionExchange,
    ReflectionSession,
    ReflectionSessionType,
    SessionOutcome,
)
from providers.goal_provider import GoalProvider
from providers.habit_provider import HabitProvider
from providers.journal_provider import JournalProvider
from providers.win_provider import WinProvider
from services.crisis_detection import (
    CrisisDetectionResult,
    CrisisDetectionService,
    get_crisis_detection_service,
)
from services.session_service import ReflectionSessionService

logger = logging.getLogger(__name__)

REFLECTION_JOURNAL_TYPE = "reflection_session"
INTERVENTION_HABIT_TYPE = "reflection_intervention"


class ReflectionPhase(Enum):
    LOADING = "loading"
    NO_AI = "no_ai"
    CONVERSATION = "conversation"
    ANALYZING = "analyzing"
    PATTERNS = "patterns"
    RECOMMENDATIONS = "recommendations"
    COMPLETED = "completed"
    ERROR = "error"


class ReflectionFlowError(RuntimeError):
    """An operation was called in a phase that does not allow it."""


class ReflectionFlow:
    """One reflection session, from greeting to saved journal entry."""

    def __init__(self, agent: ReflectionAgent,
                 goal_provider: GoalProvider,
                 habit_provider: HabitProvider,
                 journal_provider: JournalProvider,
                 win_provider: Optional[WinProvider] = None,
                 session_type: ReflectionSessionType = ReflectionSessionType.GENERAL,
                 linked_goal_id: Optional[str] = None,
                 session_service: Optional[ReflectionSessionService] = None,
                 crisis_service: Optional[CrisisDetectionService] = None,
                 analyzer: Optional[PatternAnalyzer] = None,
                 action_agent: Optional[ActionAgent] = None):
        self.agent = agent
        self.goals = goal_provider
        self.habits = habit_provider
        self.journal = journal_provider
        self.wins = win_provider or WinProvider()
        self.session_type = session_type
        self.linked_goal_id = linked_goal_id
        self.session_service = session_service or ReflectionSessionService()
        self.crisis_service = crisis_service or get_crisis_detection_service()
        self.analyzer = analyzer or get_pattern_analyzer()
        self.action_agent = action_agent or agent.action_agent or ActionAgent(
            self.goals, self.habits, self.journal, self.wins)

        self.phase = ReflectionPhase.LOADING
        self.session: Optional[ReflectionSession] = None
        self.current_question: Optional[str] = None
        self.analysis: Optional[ReflectionAnalysis] = None
        self.selected_intervention: Optional[Intervention] = None
        self.proposed_actions: List[ProposedAction] = []
        self.pending_actions: List[ProposedAction] = []
        self.executed_actions: List[ExecutedAction] = []
        self.show_crisis_resources = False
        self.crisis_result: Optional[CrisisDetectionResult] = None
        self.closing_message: Optional[str] = None

    @property
    def exchanges(self) -> List[ReflectionExchange]:
        return self.session.exchanges if self.session else []

    @property
    def can_finish_early(self) -> bool:
        return (self.phase == ReflectionPhase.CONVERSATION
                and len(self.exchanges) >= REFLECTION_MIN_EXCHANGES)

    # === Conversation ===

    def start(self) -> ReflectionPhase:
        self.phase = ReflectionPhase.LOADING
        if not self.agent.has_api_key():
            logger.info("Reflection session unavailable: no AI configured")
            self.phase = ReflectionPhase.NO_AI
            return self.phase

        self.agent.set_action_agent(self.action_agent)

        try:
            with Tracer("ReflectionFlow.start", self.session_type.value):
                result = self.agent.start_session(
                    session_type=self.session_type,
                    linked_goal_id=self.linked_goal_id,
                    goals=self.goals.goals,
                    habits=self.habits.habits,
                    recent_journals=self.journal.recent_entries(5),
                )
        except Exception as e:
            logger.error(f"Failed to start reflection session: {e}", exc_info=True)
            self.phase = ReflectionPhase.ERROR
            return self.phase

        self.session = self.session_service.create_session(ReflectionSession(
            id=result.session_id,
            type=result.type,
            linked_goal_id=result.linked_goal_id,
        ))
        self.current_question = f"{result.greeting}\n\n{result.opening_question}"
        self.phase = ReflectionPhase.CONVERSATION
        return self.phase

    def submit_response(self, text: str) -> Optional[FollowUp]:
        """
        Record the user's answer to the current question.

        Returns the mentor's follow-up while the conversation continues, or
        None when the answer was ignored, the follow-up failed, or the
        session moved on to analysis.
        """
        response = text.strip()
        if not response:
            return None
        self._require(ReflectionPhase.CONVERSATION, "submit a response")

        self._check_crisis(response)
        question_shown = self.current_question or ""

        if len(self.exchanges) >= REFLECTION_MAX_EXCHANGES - 1:
            self._append_exchange(question_shown, response)
            self._perform_analysis()
            return None

        try:
            with Tracer("ReflectionFlow.follow_up", response):
                follow_up = self.agent.generate_follow_up(
                    previous_exchanges=list(self.exchanges),
                    latest_response=response,
                    goals=self.goals.goals,
                    habits=self.habits.habits,
                )
        except Exception as e:
            logger.error(f"Follow-up generation failed: {e}", exc_info=True)
            self._append_exchange(question_shown, response)
            return None

        self._append_exchange(question_shown, response)
        self.current_question = follow_up.message
        self.proposed_actions.extend(follow_up.proposed_actions)
        self.pending_actions.extend(follow_up.proposed_actions)
        self.session_service.create_checkpoint(self.session.id, self.phase.value, self.current_question)
        return follow_up

    def finish_early(self) -> ReflectionPhase:
        self._require(ReflectionPhase.CONVERSATION, "finish early")
        if len(self.exchanges) < REFLECTION_MIN_EXCHANGES:
            raise ReflectionFlowError(
                f"At least {REFLECTION_MIN_EXCHANGES} exchanges are needed before finishing")
        self._perform_analysis()
        return self.phase

    def resume(self, session_id: str) -> ReflectionPhase:
        """Continue a stored, unfinished session from its latest checkpoint."""
        session = self.session_service.get_session(session_id)
        if session is None or session.is_completed:
            raise ReflectionFlowError(f"No resumable session: {session_id}")

        checkpoint = self.session_service.get_latest_checkpoint(session_id)
        if checkpoint is not None:
            session = self.session_service.resume_from_checkpoint(checkpoint.checkpoint_id)
            self.current_question = checkpoint.current_question

        self.agent.set_action_agent(self.action_agent)
        self.session = session
        self.session_type = session.type
        self.linked_goal_id = session.linked_goal_id
        self.current_question = self.current_question or "What's been on your mind lately?"
        self.phase = ReflectionPhase.CONVERSATION
        logger.info(f"Resumed reflection session {session_id} at {len(session.exchanges)} exchanges")
        return self.phase

    # === Actions ===

    def resolve_action(self, action_id: str, approved: bool) -> ExecutedAction:
        """Execute or decline a pending proposed action."""
        if self.phase == ReflectionPhase.COMPLETED:
            raise ReflectionFlowError("Session already completed")
        action = next((a for a in self.pending_actions if a.id == action_id), None)
        if action is None:
            raise ReflectionFlowError(f"No pending action: {action_id}")
        self.pending_actions.remove(action)

        if approved:
            self._attach_session_id(action)
            executed = self.agent.execute_action(action)
        else:
            executed = ExecutedAction(
                proposed_action_id=action.id,
                type=action.type,
                description=action.description,
                parameters=action.parameters,
                confirmed=False,
                success=False,
            )
            logger.info(f"Action declined: {action.description}")

        self.executed_actions.append(executed)
        return executed

    def _attach_session_id(self, action: ProposedAction):
        if action.type == ActionType.SAVE_SESSION_AS_JOURNAL:
            action.parameters.setdefault("session_id", self.session.id)
        elif action.type == ActionType.RECORD_WIN:
            action.parameters.setdefault("source_session_id", self.session.id)

    # === Analysis and recommendations ===

    def show_recommendations(self) -> ReflectionPhase:
        self._require(ReflectionPhase.PATTERNS, "show recommendations")
        self.phase = ReflectionPhase.RECOMMENDATIONS
        return self.phase

    def select_intervention(self, intervention_id: Optional[str]) -> Optional[Intervention]:
        """Pick one of the recommendations; None clears the choice."""
        self._require(ReflectionPhase.RECOMMENDATIONS, "select an intervention")
        if intervention_id is None:
            self.selected_intervention = None
            return None
        chosen = next((r for r in self.session.recommendations if r.id == intervention_id), None)
        if chosen is None:
            raise ReflectionFlowError(f"Unknown intervention: {intervention_id}")
        self.selected_intervention = chosen
        return chosen

    def complete(self) -> str:
        """Save the session to the journal and return the closing message."""
        if self.phase not in (ReflectionPhase.PATTERNS, ReflectionPhase.RECOMMENDATIONS):
            raise ReflectionFlowError(f"Cannot complete session in phase {self.phase.value}")

        session = self.session
        session.outcome = SessionOutcome(
            actions_proposed=list(self.proposed_actions),
            actions_executed=list(self.executed_actions),
            checkin_templates_created=[
                a.result_id for a in self.executed_actions
                if a.type == ActionType.CREATE_CHECKIN_TEMPLATE and a.success and a.result_id
            ],
            session_summary=self.analysis.summary if self.analysis else None,
        )
        session.completed_at = datetime.now()

        entry = self.journal.add_entry(JournalEntry(
            type=JournalEntryType.GUIDED_JOURNAL,
            reflection_type=REFLECTION_JOURNAL_TYPE,
            qa_pairs=self._journal_qa_pairs(),
            goal_ids=[self.linked_goal_id] if self.linked_goal_id else [],
        ))
        session.linked_journal_id = entry.id

        intervention = self.selected_intervention
        if intervention and intervention.habit_suggestion:
            habit = self.habits.add_habit(Habit(
                title=intervention.habit_suggestion,
                description=f"Practice from reflection session: {intervention.name}",
                is_system_created=True,
                system_type=INTERVENTION_HABIT_TYPE,
                linked_goal_id=self.linked_goal_id,
            ))
            logger.info(f"Created practice habit {habit.id} from {intervention.name}")

        self.session_service.update_session(session)
        log_context(session, "ReflectionFlow:complete")

        self.closing_message = self.agent.generate_closing(
            session.exchanges, session.patterns, intervention)
        self.phase = ReflectionPhase.COMPLETED
        return self.closing_message

    def _journal_qa_pairs(self) -> List[QAPair]:
        qa_pairs = [QAPair(e.mentor_question, e.user_response) for e in self.exchanges]
        qa_pairs.append(QAPair("Session Summary", self.analyzer.generate_session_summary(
            self.exchanges, self.session.patterns, self.session.recommendations)))

        if self.proposed_actions:
            qa_pairs.append(QAPair("Actions Suggested",
                                   "\n".join(f"• {a.description}" for a in self.proposed_actions)))

        accepted = [a for a in self.executed_actions if a.confirmed and a.success]
        if accepted:
            qa_pairs.append(QAPair("Actions Taken",
                                   "\n".join(f"✓ {a.description}" for a in accepted)))

        declined = [a for a in self.executed_actions if not a.confirmed or not a.success]
        if declined:
            lines = []
            for a in declined:
                error = f" ({a.error_message})" if not a.success and a.error_message else ""
                lines.append(f"✗ {a.description}{error}")
            qa_pairs.append(QAPair("Actions Declined/Failed", "\n".join(lines)))

        return qa_pairs

    def session_text(self) -> str:
        """Plain-text transcript of the session for copying or export."""
        lines = [
            "REFLECTION SESSION",
            "=" * 50,
            f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"Type: {self.session_type.value}",
            "",
            "CONVERSATION",
            "-" * 50,
        ]
        for i, exchange in enumerate(self.exchanges, start=1):
            lines += ["", f"Q{i}: {exchange.mentor_question}", "", f"A{i}: {exchange.user_response}", ""]

        analysis = self.analysis
        if analysis:
            lines += ["", "ANALYSIS", "-" * 50]
            if analysis.summary:
                lines += ["", "Summary:", analysis.summary]
            if analysis.patterns:
                lines += ["", "Patterns Detected:"]
                lines += [f"• {p.type.display_name}: {p.description}" for p in analysis.patterns]
            if analysis.recommendations:
                lines += ["", "Recommended Practices:"]
                for rec in analysis.recommendations:
                    lines += [f"• {rec.name}", f"  {rec.description}"]
            if analysis.affirmation:
                lines += ["", "Affirmation:", analysis.affirmation]

        if self.proposed_actions:
            lines += ["", "ACTIONS SUGGESTED", "-" * 50]
            lines += [f"• {a.description}" for a in self.proposed_actions]

        accepted = [a for a in self.executed_actions if a.confirmed and a.success]
        if accepted:
            lines += ["", "ACTIONS ACCEPTED", "-" * 50]
            lines += [f"✓ {a.description}" for a in accepted]

        return "\n".join(lines) + "\n"

    # === Internals ===

    def _require(self, phase: ReflectionPhase, operation: str):
        if self.phase != phase:
            raise ReflectionFlowError(f"Cannot {operation} in phase {self.phase.value}")

    def _check_crisis(self, response: str):
        result = self.crisis_service.analyze(response)
        if self.agent.check_for_crisis_indicators(response) or result.requires_immediate_intervention:
            logger.warning(f"Crisis indicators in session {self.session.id}: {result.detected_keywords}")
            self.show_crisis_resources = True
            self.crisis_result = result

    def _append_exchange(self, question: str, response: str):
        self.session.exchanges.append(ReflectionExchange(
            mentor_question=question,
            user_response=response,
            sequence_order=len(self.session.exchanges),
        ))
        self.session_service.update_session(self.session)

    def _perform_analysis(self):
        self.phase = ReflectionPhase.ANALYZING
        try:
            analysis = self.agent.analyze_session(list(self.exchanges))
        except Exception as e:
            logger.error(f"Reflection analysis failed: {e}", exc_info=True)
            self.phase = ReflectionPhase.ERROR
            return

        self.analysis = analysis
        self.session.patterns = analysis.patterns
        self.session.recommendations = analysis.recommendations
        self.session.summary = analysis.summary
        self.session_service.update_session(self.session)
        log_context(self.session, "ReflectionFlow:analyzed")
        self.phase = ReflectionPhase.PATTERNS
