"""MentorMe - AI Mentor Coaching Core

Wires the providers, agents and services together:
- Mentor chat with provider-aware context and history compaction
- Guided reflection sessions (ReflectionFlow) with approvable actions
- Food logging with AI nutrition estimates
- Worry time capture
- Workout logging, a gratitude journal and behavioural activation
- Observability (tracing, metrics) around every AI-facing call

Run `python mentor_main.py` for the interactive CLI.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional

from agents.action_agent import ActionAgent, FollowUpReminder
from agents.mentor_agent import MentorAgent
from agents.nutrition_agent import NutritionAgent
from agents.reflection_agent import ReflectionAgent
from config.settings import AI_PROVIDER, DATA_STORAGE_PATH
from core.observability import Tracer, get_metrics_summary
from core.reflection_flow import ReflectionFlow, ReflectionPhase
from models.gratitude import GratitudeEntry
from models.reflection import ReflectionSessionType
from models.wellness import FoodEntry, MealType, Worry
from providers.activity_provider import ActivityProvider
from providers.chat_provider import ChatProvider
from providers.exercise_provider import ExerciseProvider
from providers.food_log_provider import FoodLogProvider
from providers.goal_provider import GoalProvider
from providers.gratitude_provider import GratitudeProvider
from providers.habit_provider import HabitProvider
from providers.journal_provider import JournalProvider
from providers.win_provider import WinProvider
from providers.worry_provider import WorryProvider
from services.ai_service import AIService, get_ai_service
from services.context_engine import CompactedContext, ContextEngine
from services.session_service import ReflectionSessionService

logger = logging.getLogger(__name__)


class MentorSystem:
    """
    ORCHESTRATOR: owns the user's data and routes requests to the agents.

    With a storage directory every provider snapshots to JSON there and
    reflection sessions are kept under ``<dir>/sessions`` so they can be
    resumed; without one everything stays in memory.
    """

    def __init__(self, storage_dir: Optional[Path] = None,
                 ai_service: Optional[AIService] = None,
                 ai_provider: str = AI_PROVIDER):
        self.ai = ai_service or get_ai_service()
        self.ai_provider = ai_provider

        self.goals = GoalProvider(storage_dir)
        self.wins = WinProvider(storage_dir)
        self.habits = HabitProvider(storage_dir, win_provider=self.wins)
        self.journal = JournalProvider(storage_dir)
        self.worries = WorryProvider(storage_dir)
        self.food_log = FoodLogProvider(storage_dir)
        self.exercise = ExerciseProvider(storage_dir)
        self.gratitude = GratitudeProvider(storage_dir)
        self.activities = ActivityProvider(storage_dir)
        self.chat = ChatProvider(storage_dir, ai_provider=ai_provider)

        self.context_engine = ContextEngine(ai_service=self.ai)
        self.mentor = MentorAgent(self.ai, self.context_engine, ai_provider)
        self.nutrition = NutritionAgent(self.ai)
        self.actions = ActionAgent(self.goals, self.habits, self.journal, self.wins, storage_dir)
        self.reflection_agent = ReflectionAgent(self.ai, action_agent=self.actions,
                                                context_engine=self.context_engine)
        self.session_service = ReflectionSessionService(
            persist=storage_dir is not None,
            storage_dir=Path(storage_dir) / "sessions" if storage_dir else None,
        )
        self._compactions: Dict[str, CompactedContext] = {}

    def process(self, user_text: str) -> str:
        """Send a chat message to the mentor and return the reply."""
        self.chat.add_user_message(user_text)
        conversation_id = self.chat.current_conversation.id
        history = self.chat.messages[:-1]
        message = user_text

        previous = self._compactions.get(conversation_id)
        if previous is not None or self.context_engine.should_compact(history):
            compacted = self.context_engine.refresh(history, previous)
            self._compactions[conversation_id] = compacted
            history = history[len(history) - compacted.compacted_length:]
            memory = self.context_engine.build_prompt_context(compacted, include_messages=False)
            if memory:
                message = f"{memory}\n\n{user_text}"

        with Tracer("MentorAgent", user_text):
            reply = self.mentor.generate_contextual_response(
                message,
                goals=self.goals.goals,
                habits=self.habits.habits,
                journal_entries=self.journal.entries,
                conversation_history=history,
                food_entries=self.food_log.entries,
                exercise_plans=self.exercise.plans,
                workout_logs=self.exercise.workout_logs,
            )

        self.chat.add_mentor_message(reply)
        return reply

    def log_food(self, description: str, meal_type: MealType = MealType.SNACK) -> FoodEntry:
        """Log a meal; the nutrition estimate is attached when the AI provides one."""
        estimate = self.nutrition.estimate(description)
        return self.food_log.add_entry(FoodEntry(description=description, meal_type=meal_type,
                                                 nutrition=estimate))

    def record_worry(self, content: str) -> Worry:
        return self.worries.record_worry(content)

    def record_gratitude(self, text: str, mood_rating: Optional[int] = None) -> GratitudeEntry:
        """Semicolon-separated gratitudes become one journal entry."""
        return self.gratitude.add_entry(text.split(";"), mood_rating=mood_rating)

    def new_reflection(self, session_type: ReflectionSessionType = ReflectionSessionType.GENERAL,
                       linked_goal_id: Optional[str] = None) -> ReflectionFlow:
        return ReflectionFlow(
            self.reflection_agent,
            self.goals,
            self.habits,
            self.journal,
            win_provider=self.wins,
            session_type=session_type,
            linked_goal_id=linked_goal_id,
            session_service=self.session_service,
            action_agent=self.actions,
        )

    def deliver_follow_ups(self) -> List[FollowUpReminder]:
        """Return the follow-ups that have fallen due and drop them from the schedule."""
        due = self.actions.due_follow_ups()
        for reminder in due:
            self.actions.dismiss_follow_up(reminder.id)
        return due

    def get_metrics(self) -> dict:
        return get_metrics_summary()


def _ask(prompt: str) -> str:
    return input(prompt).strip()


def _print_follow_ups(system: MentorSystem):
    for reminder in system.deliver_follow_ups():
        print(f"Mentor (follow-up): {reminder.message}")


def run_reflection(flow: ReflectionFlow):
    """Drive a reflection session from the terminal."""
    if flow.start() == ReflectionPhase.NO_AI:
        print("Mentor: Reflection sessions need an AI model. Set GOOGLE_API_KEY and try again.")
        return
    if flow.phase == ReflectionPhase.ERROR:
        print("Mentor: I couldn't start the session. Please try again in a moment.")
        return

    crisis_shown = False
    while flow.phase == ReflectionPhase.CONVERSATION:
        print(f"\nMentor: {flow.current_question}")
        if flow.can_finish_early:
            print("(type /done to wrap up)")
        answer = _ask("\nYou: ")
        if answer == "/done":
            if not flow.can_finish_early:
                print("(Answer at least two questions before wrapping up.)")
                continue
            flow.finish_early()
            break

        flow.submit_response(answer)

        if flow.show_crisis_resources and not crisis_shown:
            print(f"\n{flow.crisis_result.recommendation}")
            crisis_shown = True

        for action in list(flow.pending_actions):
            approved = _ask(f"Mentor suggests: {action.description}. Do it? [y/N] ").lower() == "y"
            result = flow.resolve_action(action.id, approved)
            if approved:
                print("Done." if result.success else f"Failed: {result.error_message}")

    if flow.phase == ReflectionPhase.ERROR:
        print("Mentor: I couldn't analyse the session, but thank you for sharing.")
        return

    analysis = flow.analysis
    print(f"\nMentor: {analysis.summary}")
    for pattern in analysis.patterns:
        print(f"  • {pattern.type.display_name}: {pattern.description}")

    flow.show_recommendations()
    for index, rec in enumerate(analysis.recommendations, start=1):
        print(f"  {index}. {rec.name} ({rec.category.display_name}): {rec.description}")
    choice = _ask("\nPick a practice to try (number, or Enter to skip): ")
    if choice.isdigit() and 1 <= int(choice) <= len(analysis.recommendations):
        flow.select_intervention(analysis.recommendations[int(choice) - 1].id)

    print(f"\nMentor: {flow.complete()}")
    print(f"Mentor: {analysis.affirmation}")
    print("(Your reflection has been saved to your journal.)")


def main():
    print("=== MentorMe ===")
    system = MentorSystem(storage_dir=DATA_STORAGE_PATH)
    if not system.ai.has_api_key():
        print("Note: GOOGLE_API_KEY not found. Replies will use fallback mode.")

    print("\nCommands: /reflect, /food <meal>, /worry <thought>, /gratitude <a; b; c>, exit\n")
    if system.chat.current_conversation is None:
        system.chat.start_new_conversation()
    if system.chat.messages:
        print(f"Mentor: {system.chat.messages[-1].content}")
    _print_follow_ups(system)

    while True:
        user_input = _ask("\nYou: ")
        if user_input.lower() in ["exit", "quit"]:
            print("Mentor: Take care! Goodbye.")
            break
        if not user_input:
            continue

        if user_input == "/reflect":
            run_reflection(system.new_reflection())
            _print_follow_ups(system)
        elif user_input.startswith("/food "):
            entry = system.log_food(user_input[len("/food "):])
            if entry.nutrition:
                print(f"Logged: {entry.description} (~{entry.nutrition.calories} cal, "
                      f"{entry.nutrition.protein_grams}g protein)")
            else:
                print(f"Logged: {entry.description}")
        elif user_input.startswith("/worry "):
            system.record_worry(user_input[len("/worry "):])
            print("Mentor: Noted. Let's set that aside until your worry time.")
        elif user_input.startswith("/gratitude"):
            text = user_input[len("/gratitude"):].strip()
            if not text:
                print(f"Mentor: {system.gratitude.suggested_prompt()}")
                continue
            try:
                entry = system.record_gratitude(text)
            except ValueError as e:
                print(f"Mentor: {e}")
                continue
            streak = system.gratitude.streak()
            print(f"Mentor: Saved {entry.count} things to be grateful for. "
                  f"Gratitude streak: {streak.current_streak} days.")
        else:
            print(f"Mentor: {system.process(user_input)}")

    logger.info(f"Session metrics: {system.get_metrics()}")


if __name__ == "__main__":
    main()
