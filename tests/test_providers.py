"""Tests for the in-memory providers and their JSON snapshots."""
import json
from datetime import date, datetime, timedelta

import pytest

from models.goal import Goal, GoalStatus
from models.habit import Habit, HabitMaturity, HabitStatus
from models.journal import JournalEntry, JournalEntryType, QAPair
from models.activity import Activity, ActivityCategory
from models.exercise import (
    ExerciseCategory,
    ExercisePlan,
    ExerciseSet,
    ExerciseType,
    PlanExercise,
    WorkoutLog,
)
from models.gratitude import GratitudeEntry, GratitudeStreak, prompts_for
from models.wellness import FoodEntry, NutritionEstimate, WinSource, WorryStatus
from providers.activity_provider import ActivityProvider
from providers.base import NotFoundError
from providers.chat_provider import WELCOME_MESSAGE, ChatProvider, detect_suggested_actions
from providers.exercise_provider import ExerciseProvider, WorkoutNotActiveError
from providers.food_log_provider import FoodLogProvider
from providers.goal_provider import GoalProvider
from providers.gratitude_provider import GratitudeProvider
from providers.worry_provider import WorryProvider


def days_ago(n):
    return date.today() - timedelta(days=n)


class TestGoalProvider:

    def test_sort_order_per_status(self, goals):
        first = goals.add_goal(Goal(title="A"))
        second = goals.add_goal(Goal(title="B"))
        parked = goals.add_goal(Goal(title="C", status=GoalStatus.BACKLOG))
        assert (first.sort_order, second.sort_order, parked.sort_order) == (0, 1, 0)
        assert [g.title for g in goals.active_goals] == ["A", "B"]

    def test_unknown_id(self, goals):
        assert goals.get_goal_by_id("missing") is None
        with pytest.raises(NotFoundError):
            goals.get_goal("missing")

    def test_progress_is_clamped(self, goals):
        goal = goals.add_goal(Goal(title="A"))
        assert goals.update_goal_progress(goal.id, 140).current_progress == 100
        assert goals.update_goal_progress(goal.id, -5).current_progress == 0

    def test_snapshot_survives_restart(self, tmp_path):
        GoalProvider(tmp_path).add_goal(Goal(title="Persisted"))
        assert [g.title for g in GoalProvider(tmp_path).goals] == ["Persisted"]

    def test_unreadable_record_is_skipped(self, tmp_path):
        (tmp_path / "goals.json").write_text(json.dumps([
            {"title": "Good"},
            {"description": "no title"},
        ]))
        assert [g.title for g in GoalProvider(tmp_path).goals] == ["Good"]


class TestHabitProvider:
    """Streaks, the active-habit limit and graduation."""

    def test_add_does_not_enforce_active_limit(self, habits):
        for title in ("A", "B", "C"):
            habits.add_habit(Habit(title=title))
        assert len(habits.active_habits) == 3

    def test_move_to_active_enforces_limit(self, habits):
        habits.add_habit(Habit(title="A"))
        habits.add_habit(Habit(title="B"))
        parked = habits.add_habit(Habit(title="C", status=HabitStatus.BACKLOG))
        with pytest.raises(ValueError, match="Cannot have more than 2 active habits"):
            habits.move_habit_to_status(parked.id, HabitStatus.ACTIVE)

    def test_move_reorders_column(self, habits):
        a = habits.add_habit(Habit(title="A", status=HabitStatus.BACKLOG))
        b = habits.add_habit(Habit(title="B", status=HabitStatus.BACKLOG))
        c = habits.add_habit(Habit(title="C"))
        habits.move_habit_to_status(c.id, HabitStatus.BACKLOG, new_index=0)
        assert [h.title for h in habits.get_habits_by_status(HabitStatus.BACKLOG)] == ["C", "A", "B"]
        assert (a.sort_order, b.sort_order) == (1, 2)

    def test_complete_recalculates_streak(self, habits):
        habit = habits.add_habit(Habit(title="Walk", completion_dates=[days_ago(2), days_ago(1)]))
        habits.complete_habit(habit.id)
        assert habit.current_streak == 3
        assert habit.longest_streak == 3
        habits.complete_habit(habit.id)
        assert habit.completion_dates.count(date.today()) == 1

    def test_uncomplete_breaks_streak(self, habits):
        habit = habits.add_habit(Habit(title="Walk", completion_dates=[days_ago(1)]))
        habits.complete_habit(habit.id)
        habits.uncomplete_habit(habit.id)
        assert habit.current_streak == 1
        assert habit.longest_streak == 2

    def test_streak_milestone_records_win(self, habits, wins):
        habit = habits.add_habit(Habit(title="Walk"))
        for n in range(6, -1, -1):
            habits.complete_habit(habit.id, days_ago(n))
        assert habit.current_streak == 7
        assert len(wins.wins) == 1
        assert wins.wins[0].description == "7-day streak on Walk!"
        assert wins.wins[0].source == WinSource.STREAK_MILESTONE
        assert wins.wins[0].linked_habit_id == habit.id

    def test_halfway_to_formation_is_established(self, habits):
        history = [days_ago(n) for n in range(1, 33)]
        habit = habits.add_habit(Habit(title="Read", completion_dates=history))
        habits.complete_habit(habit.id)
        assert habit.current_streak == 33
        assert habit.maturity == HabitMaturity.ESTABLISHED

    def test_graduation(self, habits):
        habit = habits.add_habit(Habit(title="Read", current_streak=66))
        assert habits.habits_ready_for_graduation == [habit]
        habits.graduate_habit(habit.id)
        assert habit.maturity == HabitMaturity.INGRAINED
        assert habit.graduated_at is not None
        assert habits.graduated_habits == [habit]

        habits.revert_graduation(habit.id)
        assert habit.maturity == HabitMaturity.ESTABLISHED

    def test_cannot_graduate_early(self, habits):
        habit = habits.add_habit(Habit(title="Read", current_streak=10))
        with pytest.raises(ValueError, match="not ready to graduate"):
            habits.graduate_habit(habit.id)


class TestJournal:

    def test_entry_type_requirements(self):
        with pytest.raises(ValueError):
            JournalEntry(type=JournalEntryType.QUICK_NOTE)
        with pytest.raises(ValueError):
            JournalEntry(type=JournalEntryType.GUIDED_JOURNAL)

    def test_guided_text(self, journal):
        entry = journal.add_entry(JournalEntry(
            type=JournalEntryType.GUIDED_JOURNAL,
            qa_pairs=[QAPair("How was today?", "Busy"), QAPair("Best moment?", "Lunch")],
        ))
        assert entry.text == "How was today?: Busy\nBest moment?: Lunch"

    def test_newest_first(self, journal):
        older = JournalEntry(content="old", created_at=datetime.now() - timedelta(days=1))
        journal.add_entry(older)
        journal.add_entry(JournalEntry(content="new"))
        assert [e.content for e in journal.recent_entries(1)] == ["new"]


class TestChatProvider:
    """Conversations, local-model trimming and suggested actions."""

    def test_new_conversation_has_welcome(self):
        chat = ChatProvider(ai_provider="cloud")
        chat.start_new_conversation()
        assert chat.messages[0].content == WELCOME_MESSAGE
        assert not chat.messages[0].is_from_user

    def test_local_provider_trims_history(self):
        chat = ChatProvider(ai_provider="local")
        for i in range(25):
            chat.add_user_message(f"message {i}")
        assert len(chat.messages) == 20
        assert chat.messages[-1].content == "message 24"

    def test_cloud_provider_keeps_history(self):
        chat = ChatProvider(ai_provider="cloud")
        for i in range(25):
            chat.add_user_message(f"message {i}")
        assert len(chat.messages) == 26

    def test_mentor_message_needs_conversation(self):
        with pytest.raises(RuntimeError):
            ChatProvider().add_mentor_message("Hello")

    def test_suggested_actions_capped_at_two(self):
        actions = detect_suggested_actions(
            "Want to set a goal? You could track it as a habit, and check in on wellness.")
        assert [a.action for a in actions] == ["create_goal", "view_habits"]

    def test_save_as_journal_links_goals(self):
        chat = ChatProvider(ai_provider="cloud")
        chat.add_user_message("I keep skipping my Morning run")
        goal = Goal(title="Morning Run")
        saved = chat.save_conversation_as_journal([goal, Goal(title="Learn piano")])
        assert saved["goal_ids"] == [goal.id]
        assert "### **You**" in saved["content"]


class TestWorryProvider:

    def test_record_and_process(self):
        worries = WorryProvider()
        worry = worries.record_worry("  The deadline on Friday  ")
        assert worry.content == "The deadline on Friday"
        assert worries.pending_worries == [worry]

        worries.process_worry(worry.id, WorryStatus.ACTIONABLE, action_taken="Asked for help")
        assert worries.pending_worries == []
        assert worry.processed_at is not None

    def test_empty_worry_rejected(self):
        with pytest.raises(ValueError):
            WorryProvider().record_worry("   ")

    def test_session_anxiety_reduction(self):
        worries = WorryProvider()
        session = worries.schedule_session(datetime.now() + timedelta(hours=2))
        worries.start_session(session.id, anxiety_before=7)
        worries.complete_session(session.id, anxiety_after=4)
        assert session.anxiety_reduction == 3
        assert session.was_effective
        assert session.status == "Completed"


class TestFoodLogProvider:

    def test_totals_skip_missing_estimates(self):
        food = FoodLogProvider()
        food.add_entry(FoodEntry(description="Porridge",
                                 nutrition=NutritionEstimate(calories=300, protein_grams=10)))
        food.add_entry(FoodEntry(description="Mystery snack"))
        assert food.today_totals == {"calories": 300, "protein_grams": 10,
                                     "carbs_grams": 0, "fat_grams": 0}


class TestExerciseProvider:

    def test_settings_summary(self):
        assert PlanExercise(name="Bench", weight=20).settings_summary == "3 × 10 @ 20.0"
        assert PlanExercise(name="Bench", sets=None).settings_summary == "Not set"
        bike = PlanExercise(name="Bike", type=ExerciseType.CARDIO, duration_minutes=30,
                            level=5, target_distance=2)
        assert bike.settings_summary == "30m · L5 · 2.0km"
        assert PlanExercise(name="Stretch", type=ExerciseType.TIMED).settings_summary == "Not set"

    def test_quick_plan_uses_category(self):
        plan = ExerciseProvider().create_quick_plan(ExerciseCategory.CORE)
        assert plan.name == "Core Workout"
        assert [e.order for e in plan.exercises] == [0, 1, 2]
        assert plan.exercises[0].type == ExerciseType.TIMED

    def test_workout_lifecycle_stamps_plan(self, tmp_path):
        exercise = ExerciseProvider(tmp_path)
        plan = exercise.add_plan(exercise.create_quick_plan(ExerciseCategory.UPPER_BODY))
        workout = exercise.start_workout(plan)
        exercise.log_set("push-ups", ExerciseSet(reps=10))
        exercise.log_set("Push-ups", ExerciseSet(reps=8))
        exercise.log_set("Plank", ExerciseSet(duration_minutes=1), ExerciseType.TIMED)
        exercise.remove_last_set("Plank")

        finished = exercise.finish_workout(rating=4, calories_burned=120)

        assert finished is workout
        assert exercise.active_workout is None
        assert (finished.total_sets_completed, finished.total_reps_completed) == (2, 18)
        assert [e.name for e in finished.exercises][-1] == "Plank"
        assert plan.last_used == finished.end_time
        assert exercise.today_calories() == 120

        reloaded = ExerciseProvider(tmp_path)
        assert reloaded.plans[0].last_used == plan.last_used
        assert reloaded.workout_logs[0].total_reps_completed == 18

    def test_logging_without_workout_raises(self):
        with pytest.raises(WorkoutNotActiveError):
            ExerciseProvider().log_set("Squats", ExerciseSet(reps=5))

    def test_cancel_discards_workout(self):
        exercise = ExerciseProvider()
        exercise.start_workout()
        exercise.cancel_workout()
        assert exercise.active_workout is None
        assert exercise.workout_logs == []

    def test_empty_plan_name_rejected(self):
        with pytest.raises(ValueError):
            ExerciseProvider().add_plan(ExercisePlan(name="  "))

    def test_streak_and_week(self):
        exercise = ExerciseProvider()
        today = date(2024, 6, 13)  # Thursday
        for d in (1, 2, 3, 5):
            exercise.log_workout(WorkoutLog(start_time=datetime(2024, 6, 13 - d, 18)))

        assert exercise.current_streak(today) == 3
        assert exercise.current_streak(today + timedelta(days=2)) == 0
        assert exercise.workouts_this_week(today) == 3
        assert len(exercise.recent_workouts(now=datetime(2024, 6, 13, 20))) == 4


class TestGratitudeProvider:

    def test_add_entry_cleans_items(self):
        gratitude = GratitudeProvider()
        entry = gratitude.add_entry([" Sunshine ", "", "Coffee", "My sister"], mood_rating=4)
        assert entry.gratitudes == ["Sunshine", "Coffee", "My sister"]
        assert entry.is_complete
        assert gratitude.has_entry_today()
        assert gratitude.all_gratitudes == ["Sunshine", "Coffee", "My sister"]

    @pytest.mark.parametrize("items,mood", [
        ([], None),
        (["  "], None),
        (["a", "b", "c", "d", "e", "f"], None),
        (["a"], 6),
    ])
    def test_invalid_entries_rejected(self, items, mood):
        with pytest.raises(ValueError):
            GratitudeProvider().add_entry(items, mood_rating=mood)

    def test_average_mood_ignores_unrated(self):
        gratitude = GratitudeProvider()
        assert gratitude.average_mood_rating is None
        gratitude.add_entry(["a"], mood_rating=3)
        gratitude.add_entry(["b"], mood_rating=5)
        gratitude.add_entry(["c"])
        assert gratitude.average_mood_rating == 4

    def test_streak(self):
        today = date(2024, 6, 13)
        entries = [GratitudeEntry(gratitudes=["x"], created_at=datetime(2024, 6, day, 21))
                   for day in (12, 11, 11, 8, 7, 6, 5)]
        streak = GratitudeStreak.from_entries(entries, today)
        assert (streak.current_streak, streak.longest_streak) == (2, 4)
        assert streak.total_entries == 7
        assert streak.is_active(today)

        lapsed = GratitudeStreak.from_entries(entries, date(2024, 6, 20))
        assert lapsed.current_streak == 0
        assert GratitudeStreak.from_entries([]).current_streak == 0

    def test_practice_frequency(self):
        gratitude = GratitudeProvider()
        first = gratitude.add_entry(["a"])
        first.created_at = datetime(2024, 6, 1, 9)
        gratitude.add_entry(["b"]).created_at = datetime(2024, 6, 8, 9)
        assert gratitude.practice_frequency(now=datetime(2024, 6, 15, 9)) == 1.0

    def test_prompts(self):
        assert prompts_for("Relationships")[0] == "Who supported you this week?"
        assert prompts_for("unknown") == prompts_for("general")
        assert GratitudeProvider().suggested_prompt() in [
            p for c in ("general", "relationships", "personal", "moments", "difficult")
            for p in prompts_for(c)]

    def test_entries_persist(self, tmp_path):
        GratitudeProvider(tmp_path).add_entry(["Rain on the window"])
        reloaded = GratitudeProvider(tmp_path)
        assert reloaded.entries[0].gratitudes == ["Rain on the window"]


class TestActivityProvider:

    def test_schedule_and_complete(self):
        activities = ActivityProvider()
        walk = activities.add_activity(Activity(name="Walk to the shop",
                                                category=ActivityCategory.PHYSICAL,
                                                estimated_minutes=15))
        scheduled = activities.schedule_activity(walk.id, datetime.now() + timedelta(hours=1))
        assert scheduled.scheduled_duration_minutes == 15
        assert activities.upcoming_activities() == [scheduled]

        activities.complete_activity(scheduled.id, mood_before=2, mood_after=4)

        assert scheduled.status() == "Completed"
        assert scheduled.mood_change == 2
        assert activities.upcoming_activities() == []
        assert activities.completion_rate == 100.0

    def test_status_of_open_activities(self):
        now = datetime(2024, 6, 13, 12)
        activities = ActivityProvider()
        tea = activities.add_activity(Activity(name="Tea in the garden"))
        missed = activities.schedule_activity(tea.id, datetime(2024, 6, 13, 9))
        later = activities.schedule_activity(tea.id, datetime(2024, 6, 13, 18))
        tomorrow = activities.schedule_activity(tea.id, datetime(2024, 6, 14, 9))
        skipped = activities.schedule_activity(tea.id, datetime(2024, 6, 15, 9))
        activities.skip_activity(skipped.id, "Raining")

        assert [s.status(now) for s in (missed, later, tomorrow, skipped)] == [
            "Missed", "Today", "Scheduled", "Skipped"]
        assert activities.activities_on(date(2024, 6, 13)) == [missed, later]
        assert activities.completion_rate == 0.0

    def test_most_effective_categories(self):
        activities = ActivityProvider()
        call = activities.add_activity(Activity(name="Call mum", category=ActivityCategory.SOCIAL))
        chores = activities.add_activity(Activity(name="Dishes", category=ActivityCategory.ROUTINE))
        for activity, before, after in ((call, 2, 5), (call, 3, 4), (chores, 3, 3)):
            scheduled = activities.schedule_activity(activity.id, datetime.now())
            activities.complete_activity(scheduled.id, mood_before=before, mood_after=after)

        assert activities.most_effective_categories() == [
            (ActivityCategory.SOCIAL, 2.0), (ActivityCategory.ROUTINE, 0.0)]
        assert activities.average_mood_improvement == pytest.approx(4 / 3)

    def test_rating_out_of_range(self):
        activities = ActivityProvider()
        tea = activities.add_activity(Activity(name="Tea"))
        scheduled = activities.schedule_activity(tea.id, datetime.now())
        with pytest.raises(ValueError):
            activities.complete_activity(scheduled.id, mood_after=9)
        assert not scheduled.completed

    def test_unknown_activity_cannot_be_scheduled(self):
        with pytest.raises(NotFoundError):
            ActivityProvider().schedule_activity("missing", datetime.now())

    def test_examples_load_once_and_persist(self, tmp_path):
        activities = ActivityProvider(tmp_path)
        added = activities.load_examples()
        assert {a.category for a in added} == set(ActivityCategory) - {ActivityCategory.OTHER}
        assert activities.load_examples() == []
        assert activities.user_activities == []

        reloaded = ActivityProvider(tmp_path)
        assert len(reloaded.activities_in(ActivityCategory.SOCIAL)) == 2
        assert ActivityCategory.SELF_CARE.display_name == "Self-Care"
