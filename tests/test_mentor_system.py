"""Tests for the mentor chat agent and the MentorSystem orchestrator."""
from agents.mentor_agent import FALLBACK_RESPONSE, MentorAgent
from core.observability import metrics
from core.reflection_flow import ReflectionPhase
from mentor_main import MentorSystem, run_reflection
from models.exercise import ExerciseCategory, ExerciseSet
from models.goal import Goal
from models.reflection import ReflectionSessionType
from models.wellness import MealType


class TestMentorAgent:

    def test_cloud_prompt_includes_context(self, scripted_ai):
        ai = scripted_ai("Let's break that goal into steps.")
        agent = MentorAgent(ai, ai_provider="cloud")

        reply = agent.generate_contextual_response("How do I start?", goals=[Goal(title="Learn guitar")])

        assert reply == "Let's break that goal into steps."
        prompt = ai.model.prompts[0]
        assert "User message: How do I start?" in prompt
        assert "- Learn guitar (Personal Development, 0% complete)" in prompt

    def test_local_prompt_is_short(self, scripted_ai):
        ai = scripted_ai("Try five minutes today.")
        MentorAgent(ai, ai_provider="local").generate_contextual_response("Any tips?")
        assert "Keep responses under 150 words" in ai.model.prompts[0]

    def test_failure_returns_fallback(self, scripted_ai, offline_ai):
        assert MentorAgent(offline_ai).generate_contextual_response("Hi") == FALLBACK_RESPONSE
        assert MentorAgent(scripted_ai(RuntimeError("boom"))).generate_contextual_response("Hi") == \
            FALLBACK_RESPONSE


class TestMentorSystem:

    def test_process_records_both_sides(self, scripted_ai):
        system = MentorSystem(ai_service=scripted_ai("Have you thought about a new goal?"),
                              ai_provider="cloud")

        reply = system.process("I want to get fitter")

        assert reply == "Have you thought about a new goal?"
        assert [m.content for m in system.chat.messages][-2:] == [
            "I want to get fitter", "Have you thought about a new goal?"]
        assert system.chat.messages[-1].suggested_actions[0].action == "create_goal"

    def test_long_history_is_compacted(self, scripted_ai):
        system = MentorSystem(ai_service=scripted_ai("Summary of earlier chat.", "Sure."),
                              ai_provider="cloud")
        system.chat.start_new_conversation()
        for i in range(7):
            system.chat.add_user_message(f"note {i}")
            system.chat.add_mentor_message(f"reply {i}")

        system.process("Where were we?")

        prompt = system.ai.model.prompts[-1]
        assert "[Previous conversation summary: Summary of earlier chat.]" in prompt
        assert "note 0" not in prompt

    def test_summary_is_reused_between_turns(self, scripted_ai):
        """A long chat is summarised once, then again only after new messages overflow."""
        system = MentorSystem(ai_service=scripted_ai(
            "Summary of earlier chat.", "One.", "Two.", "Three.", "Newer summary.", "Four."),
            ai_provider="cloud")
        system.chat.start_new_conversation()
        for i in range(7):
            system.chat.add_user_message(f"note {i}")
            system.chat.add_mentor_message(f"reply {i}")

        for text in ("First", "Second", "Third", "Fourth"):
            system.process(text)

        prompts = system.ai.model.prompts
        assert len(prompts) == 6
        assert prompts[0].startswith("Summarize this mentoring conversation")
        assert "[Previous conversation summary: Summary of earlier chat.]" in prompts[2]
        assert "Earlier summary: Summary of earlier chat." in prompts[4]
        assert "[Previous conversation summary: Newer summary.]" in prompts[5]

    def test_extracted_facts_reach_the_prompt(self, scripted_ai):
        system = MentorSystem(ai_service=scripted_ai("Summary.", "Noted."), ai_provider="cloud")
        system.chat.start_new_conversation()
        system.chat.add_user_message("My stress is 7/10 lately")
        system.chat.add_mentor_message("I hear you")
        for i in range(6):
            system.chat.add_user_message(f"note {i}")
            system.chat.add_mentor_message(f"reply {i}")

        system.process("Hi")

        assert "[Known facts: stress_rating: 7]" in system.ai.model.prompts[-1]

    def test_log_food_attaches_estimate(self, scripted_ai):
        system = MentorSystem(ai_service=scripted_ai('{"calories": 300, "proteinGrams": 12}'))
        entry = system.log_food("Porridge with banana", MealType.BREAKFAST)
        assert entry.nutrition.calories == 300
        assert system.food_log.entries == [entry]

    def test_log_food_without_ai(self, offline_ai):
        entry = MentorSystem(ai_service=offline_ai).log_food("Toast")
        assert entry.nutrition is None
        assert entry.meal_type == MealType.SNACK

    def test_workouts_reach_the_prompt(self, scripted_ai):
        system = MentorSystem(ai_service=scripted_ai("Nice work on the legs."), ai_provider="cloud")
        plan = system.exercise.add_plan(system.exercise.create_quick_plan(ExerciseCategory.LOWER_BODY))
        system.exercise.start_workout(plan)
        system.exercise.log_set("Squats", ExerciseSet(reps=12))
        system.exercise.finish_workout()

        system.process("How am I doing?")

        prompt = system.ai.model.prompts[-1]
        assert "- Lower Body Workout (Lower Body, 3 exercises)" in prompt
        assert "Lower Body Workout - 1 sets, 12 reps" in prompt

    def test_record_gratitude_splits_items(self, offline_ai):
        system = MentorSystem(ai_service=offline_ai)
        entry = system.record_gratitude("Morning light; a call from Sam ;good coffee", mood_rating=4)
        assert entry.gratitudes == ["Morning light", "a call from Sam", "good coffee"]
        assert system.gratitude.streak().current_streak == 1

    def test_new_reflection_shares_providers(self, offline_ai):
        system = MentorSystem(ai_service=offline_ai)
        flow = system.new_reflection(ReflectionSessionType.CHALLENGE_ANALYSIS)
        assert flow.session_type == ReflectionSessionType.CHALLENGE_ANALYSIS
        assert flow.session_service is system.session_service
        assert flow.action_agent is system.actions
        assert flow.start() == ReflectionPhase.NO_AI

    def test_storage_dir_persists_data(self, tmp_path, offline_ai):
        MentorSystem(storage_dir=tmp_path, ai_service=offline_ai).record_worry("Rent is due")
        reloaded = MentorSystem(storage_dir=tmp_path, ai_service=offline_ai)
        assert [w.content for w in reloaded.worries.pending_worries] == ["Rent is due"]
        assert (tmp_path / "sessions").is_dir()

    def test_metrics_count_traced_calls(self, scripted_ai):
        metrics.reset()
        MentorSystem(ai_service=scripted_ai("Hello.")).process("Hi")
        summary = MentorSystem(ai_service=scripted_ai()).get_metrics()
        assert summary["total_requests"] == 1
        assert summary["success_rate"] == "100.0%"
        assert "MentorAgent" in summary["stage_avg_latency"]

    def test_follow_ups_survive_restart_and_are_delivered_once(self, tmp_path, offline_ai):
        system = MentorSystem(storage_dir=tmp_path, ai_service=offline_ai)
        system.actions.schedule_follow_up(0, "How did the talk with your manager go?")
        system.actions.schedule_follow_up(3, "Still journaling?")

        reloaded = MentorSystem(storage_dir=tmp_path, ai_service=offline_ai)
        delivered = reloaded.deliver_follow_ups()
        assert [r.message for r in delivered] == ["How did the talk with your manager go?"]
        assert reloaded.deliver_follow_ups() == []

        later = MentorSystem(storage_dir=tmp_path, ai_service=offline_ai)
        assert [r.message for r in later.actions.follow_ups] == ["Still journaling?"]


class TestReflectionCli:

    ANALYSIS = {
        "patterns": [{"name": "Overwhelm", "confidence": 0.8, "evidence": "a lot",
                      "description": "Many demands at once"}],
        "recommendations": [{"name": "Brain Dump", "category": "behavioral",
                             "description": "Write everything down"}],
        "summary": "You are carrying a lot.",
        "affirmation": "You showed up today.",
    }

    def test_done_too_early_is_not_an_answer(self, scripted_ai, monkeypatch, capsys):
        system = MentorSystem(ai_service=scripted_ai(
            {"greeting": "Hi.", "question": "What's up?"},
            {"message": "Go on.", "proposed_actions": []},
            {"message": "More?", "proposed_actions": []},
            self.ANALYSIS,
            "Well done.",
        ))
        answers = iter(["/done", "Work is a lot", "Home too", "/done", ""])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
        flow = system.new_reflection()

        run_reflection(flow)

        assert "Answer at least two questions before wrapping up." in capsys.readouterr().out
        assert [e.user_response for e in flow.exchanges] == ["Work is a lot", "Home too"]
        assert flow.phase == ReflectionPhase.COMPLETED
