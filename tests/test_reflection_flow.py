"""Tests for the reflection session state machine.

The AI is a scripted FakeModel, so every reply the flow sees is known.
"""
import pytest

from agents.action_agent import ActionAgent
from agents.reflection_agent import ReflectionAgent
from core.reflection_flow import ReflectionFlow, ReflectionFlowError, ReflectionPhase
from models.habit import HabitStatus
from models.journal import JournalEntryType
from models.reflection import ActionType
from services.crisis_detection import PatternSeverity
from services.session_service import ReflectionSessionService

OPENING = {"greeting": "Hi there.", "question": "What's up?"}
ANALYSIS = {
    "patterns": [{"name": "Overwhelm", "confidence": 0.8,
                  "evidence": "too much on my plate", "description": "Many demands at once"}],
    "recommendations": [{"name": "Brain Dump", "category": "behavioral",
                         "description": "Write everything down",
                         "how_to_apply": "1. Set a timer\n2. Write",
                         "habit_suggestion": "Morning brain dump (10 min)"}],
    "summary": "You are carrying a lot right now.",
    "affirmation": "You showed up for yourself today.",
}


def follow_up(message, *actions):
    return {"message": message, "proposed_actions": list(actions)}


@pytest.fixture
def make_flow(scripted_ai, goals, habits, journal, wins):
    def make(*replies, **kwargs):
        agent = ReflectionAgent(scripted_ai(*replies))
        return ReflectionFlow(agent, goals, habits, journal, win_provider=wins,
                              session_service=ReflectionSessionService(), **kwargs)
    return make


class TestStart:
    """Starting a session."""

    def test_no_api_key_goes_to_no_ai(self, offline_ai, goals, habits, journal):
        flow = ReflectionFlow(ReflectionAgent(offline_ai), goals, habits, journal)
        assert flow.start() == ReflectionPhase.NO_AI
        assert flow.session is None

    def test_opening_combines_greeting_and_question(self, make_flow):
        flow = make_flow(OPENING)
        assert flow.start() == ReflectionPhase.CONVERSATION
        assert flow.current_question == "Hi there.\n\nWhat's up?"
        assert flow.session is not None
        assert flow.session_service.get_session(flow.session.id) is flow.session

    def test_bad_opening_json_uses_default_greeting(self, make_flow):
        flow = make_flow("not json at all")
        flow.start()
        assert flow.phase == ReflectionPhase.CONVERSATION
        assert flow.current_question == (
            "Welcome. I'm here to listen and help you reflect.\n\nWhat's been on your mind lately?")


class TestConversation:
    """Collecting exchanges."""

    def test_submit_before_start_raises(self, make_flow):
        flow = make_flow()
        with pytest.raises(ReflectionFlowError):
            flow.submit_response("hello")

    def test_blank_response_is_ignored(self, make_flow):
        flow = make_flow(OPENING)
        flow.start()
        assert flow.submit_response("   ") is None
        assert flow.exchanges == []

    def test_exchange_keeps_question_that_was_shown(self, make_flow):
        flow = make_flow(OPENING, follow_up("Tell me more."), follow_up("And then?"))
        flow.start()
        flow.submit_response("Work has been busy")
        flow.submit_response("I stay late most days")

        first, second = flow.exchanges
        assert first.mentor_question == "Hi there.\n\nWhat's up?"
        assert first.user_response == "Work has been busy"
        assert second.mentor_question == "Tell me more."
        assert flow.current_question == "And then?"

    def test_fifth_answer_triggers_analysis(self, make_flow):
        replies = [OPENING] + [follow_up(f"Question {i}") for i in range(2, 6)] + [ANALYSIS]
        flow = make_flow(*replies)
        flow.start()
        for i in range(5):
            flow.submit_response(f"Answer {i}")

        assert flow.phase == ReflectionPhase.PATTERNS
        assert [e.sequence_order for e in flow.exchanges] == [0, 1, 2, 3, 4]
        assert flow.exchanges[4].mentor_question == "Question 5"
        assert flow.analysis.summary == "You are carrying a lot right now."
        assert flow.session.recommendations[0].name == "Brain Dump"

    def test_failed_follow_up_uses_keyword_fallback(self, make_flow):
        flow = make_flow(OPENING, RuntimeError("model down"))
        flow.start()
        flow.submit_response("My job is draining me")

        assert len(flow.exchanges) == 1
        assert flow.current_question == (
            "Work can bring up a lot. What aspect of work has been most on your mind?")

    def test_follow_up_creates_checkpoint(self, make_flow):
        flow = make_flow(OPENING, follow_up("Tell me more."))
        flow.start()
        flow.submit_response("Busy week")

        checkpoint = flow.session_service.get_latest_checkpoint(flow.session.id)
        assert checkpoint is not None
        assert checkpoint.current_question == "Tell me more."
        assert len(checkpoint.exchanges) == 1


class TestFinishEarly:

    def test_needs_two_exchanges(self, make_flow):
        flow = make_flow(OPENING, follow_up("Go on."))
        flow.start()
        flow.submit_response("Just one answer")
        with pytest.raises(ReflectionFlowError):
            flow.finish_early()
        assert not flow.can_finish_early

    def test_finish_after_two_exchanges_runs_analysis(self, make_flow):
        flow = make_flow(OPENING, follow_up("Go on."), follow_up("Anything else?"), ANALYSIS)
        flow.start()
        flow.submit_response("First answer")
        flow.submit_response("Second answer")

        assert flow.can_finish_early
        assert flow.finish_early() == ReflectionPhase.PATTERNS
        assert len(flow.exchanges) == 2

    def test_failed_ai_analysis_falls_back_to_rules(self, make_flow):
        flow = make_flow(OPENING, follow_up("Go on."), follow_up("More?"), RuntimeError("boom"))
        flow.start()
        flow.submit_response("I'm overwhelmed, there is too much going on")
        flow.submit_response("I don't know where to start")
        flow.finish_early()

        assert flow.phase == ReflectionPhase.PATTERNS
        assert flow.analysis.summary == "Thank you for sharing your thoughts in this reflection session."
        assert flow.analysis.patterns[0].type.value == "overwhelm"


class TestCrisis:

    def test_crisis_language_shows_resources(self, make_flow):
        flow = make_flow(OPENING, follow_up("I'm really glad you told me."))
        flow.start()
        flow.submit_response("Some days I want to die")

        assert flow.show_crisis_resources
        assert flow.crisis_result.severity == PatternSeverity.CRISIS
        assert "Samaritans" in flow.crisis_result.recommendation

    def test_ordinary_answer_does_not_flag(self, make_flow):
        flow = make_flow(OPENING, follow_up("Nice."))
        flow.start()
        flow.submit_response("I had a good walk today")
        assert not flow.show_crisis_resources
        assert flow.crisis_result is None


class TestActions:
    """Proposed actions wait for approval."""

    def test_approved_action_runs(self, make_flow, habits):
        proposal = {"tool": "create_habit", "input": {"title": "Evening walk"}}
        flow = make_flow(OPENING, follow_up("Shall I add a walking habit?", proposal))
        flow.start()
        result = flow.submit_response("I want to walk more")

        assert len(result.proposed_actions) == 1
        action = flow.pending_actions[0]
        assert action.type == ActionType.CREATE_HABIT
        assert action.description == 'Create habit: "Evening walk"'

        executed = flow.resolve_action(action.id, approved=True)
        assert executed.confirmed and executed.success
        assert flow.pending_actions == []
        assert [h.title for h in habits.habits] == ["Evening walk"]

    def test_declined_action_is_recorded(self, make_flow, habits):
        proposal = {"tool": "create_habit", "input": {"title": "Evening walk"}}
        flow = make_flow(OPENING, follow_up("Shall I add it?", proposal))
        flow.start()
        flow.submit_response("Maybe walking")

        executed = flow.resolve_action(flow.pending_actions[0].id, approved=False)
        assert not executed.confirmed
        assert not executed.success
        assert habits.habits == []

    def test_unknown_tools_are_dropped(self, make_flow):
        proposal = {"tool": "launch_rocket", "input": {}}
        flow = make_flow(OPENING, follow_up("Hmm.", proposal))
        flow.start()
        flow.submit_response("Something")
        assert flow.pending_actions == []

    def test_resolving_unknown_action_raises(self, make_flow):
        flow = make_flow(OPENING)
        flow.start()
        with pytest.raises(ReflectionFlowError):
            flow.resolve_action("missing", approved=True)


class TestFollowUps:
    """Scheduled follow-ups belong to the action agent, not to one session."""

    FOLLOW_UP = {"tool": "schedule_followup",
                 "input": {"daysFromNow": 0, "reminderMessage": "How did the walk go?"}}

    def test_follow_up_survives_next_session(self, scripted_ai, goals, habits, journal, wins):
        agent = ReflectionAgent(scripted_ai(OPENING, follow_up("Sure.", self.FOLLOW_UP), OPENING))
        first = ReflectionFlow(agent, goals, habits, journal, win_provider=wins)
        first.start()
        first.submit_response("Remind me about the walk")
        assert first.resolve_action(first.pending_actions[0].id, approved=True).success
        assert len(agent.action_agent.due_follow_ups()) == 1

        ReflectionFlow(agent, goals, habits, journal, win_provider=wins).start()

        assert [r.message for r in agent.action_agent.due_follow_ups()] == ["How did the walk go?"]

    def test_shared_action_agent_is_used(self, make_flow, goals, habits, journal, wins):
        shared = ActionAgent(goals, habits, journal, wins)
        flow = make_flow(OPENING, follow_up("Sure.", self.FOLLOW_UP), action_agent=shared)
        flow.start()
        flow.submit_response("Remind me")
        flow.resolve_action(flow.pending_actions[0].id, approved=True)
        assert len(shared.due_follow_ups()) == 1


class TestCompletion:

    def _analysed_flow(self, make_flow, proposal=None):
        first = follow_up("Go on.", proposal) if proposal else follow_up("Go on.")
        flow = make_flow(OPENING, first, follow_up("More?"), ANALYSIS, "Well done today.")
        flow.start()
        flow.submit_response("There is too much on my plate")
        flow.submit_response("Everything at once")
        flow.finish_early()
        return flow

    def test_complete_saves_guided_journal(self, make_flow, journal):
        flow = self._analysed_flow(make_flow)
        closing = flow.complete()

        assert closing == "Well done today."
        assert flow.phase == ReflectionPhase.COMPLETED
        entry = journal.entries[0]
        assert entry.type == JournalEntryType.GUIDED_JOURNAL
        assert entry.reflection_type == "reflection_session"
        questions = [qa.question for qa in entry.qa_pairs]
        assert questions == ["Hi there.\n\nWhat's up?", "Go on.", "Session Summary"]
        assert flow.session.is_completed
        assert flow.session.linked_journal_id == entry.id

    def test_selected_intervention_becomes_habit(self, make_flow, habits):
        flow = self._analysed_flow(make_flow)
        flow.show_recommendations()
        flow.select_intervention(flow.session.recommendations[0].id)
        flow.complete()

        habit = habits.habits[0]
        assert habit.title == "Morning brain dump (10 min)"
        assert habit.is_system_created
        assert habit.system_type == "reflection_intervention"
        assert habit.status == HabitStatus.ACTIVE

    def test_action_summaries_in_journal(self, make_flow, journal):
        proposal = {"tool": "record_win", "input": {"description": "Asked for help at work"}}
        flow = self._analysed_flow(make_flow, proposal)
        flow.resolve_action(flow.pending_actions[0].id, approved=True)
        flow.complete()

        pairs = {qa.question: qa.answer for qa in journal.entries[0].qa_pairs}
        assert pairs["Actions Suggested"] == '• Record win: "Asked for help at work"'
        assert pairs["Actions Taken"] == '✓ Record win: "Asked for help at work"'
        assert "Actions Declined/Failed" not in pairs
        assert flow.session.outcome.total_actions_succeeded == 1

    def test_recorded_win_links_session(self, make_flow, wins):
        proposal = {"tool": "record_win", "input": {"description": "Went to the gym"}}
        flow = self._analysed_flow(make_flow, proposal)
        flow.resolve_action(flow.pending_actions[0].id, approved=True)
        assert wins.wins[0].source_session_id == flow.session.id

    def test_complete_during_conversation_raises(self, make_flow):
        flow = make_flow(OPENING)
        flow.start()
        with pytest.raises(ReflectionFlowError):
            flow.complete()

    def test_unknown_intervention_raises(self, make_flow):
        flow = self._analysed_flow(make_flow)
        flow.show_recommendations()
        with pytest.raises(ReflectionFlowError):
            flow.select_intervention("nope")

    def test_session_text_export(self, make_flow):
        flow = self._analysed_flow(make_flow)
        text = flow.session_text()
        assert text.startswith("REFLECTION SESSION")
        assert "Q1: Hi there.\n\nWhat's up?" in text
        assert "A2: Everything at once" in text
        assert "Patterns Detected:" in text
        assert "• Brain Dump" in text


class TestResume:

    def test_resume_restores_checkpoint(self, make_flow, scripted_ai, goals, habits, journal):
        service = ReflectionSessionService()
        flow = make_flow(OPENING, follow_up("Tell me more."))
        flow.session_service = service
        flow.start()
        flow.submit_response("Busy week")
        session_id = flow.session.id

        resumed = ReflectionFlow(ReflectionAgent(scripted_ai()), goals, habits, journal,
                                 session_service=service)
        assert resumed.resume(session_id) == ReflectionPhase.CONVERSATION
        assert resumed.current_question == "Tell me more."
        assert len(resumed.exchanges) == 1

    def test_resume_unknown_session_raises(self, make_flow):
        flow = make_flow()
        with pytest.raises(ReflectionFlowError):
            flow.resume("missing")
