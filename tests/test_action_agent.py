"""Tests for ActionAgent: approved mentor actions against the providers."""
from datetime import date, datetime, timedelta

import pytest

from agents.action_agent import ActionAgent
from models.goal import Goal, GoalStatus
from models.habit import Habit, HabitStatus
from models.reflection import ActionType
from models.wellness import WinCategory, WinSource


@pytest.fixture
def agent(goals, habits, journal, wins):
    return ActionAgent(goals, habits, journal, wins)


class TestDispatch:

    def test_unimplemented_action(self, agent):
        result = agent.execute(ActionType.CREATE_CHECKIN_TEMPLATE, {"name": "Evening"})
        assert not result.success
        assert result.message == "Action type not yet implemented: create_checkin_template"

    def test_missing_parameters_are_a_failure(self, agent):
        result = agent.execute(ActionType.CREATE_GOAL, {"category": "health"})
        assert not result.success
        assert result.message.startswith("Invalid parameters for create_goal")

    def test_unexpected_parameter_is_a_failure(self, agent):
        result = agent.execute(ActionType.DELETE_GOAL, {"goal_id": "g", "force": True})
        assert not result.success

    def test_unparseable_date_is_a_failure(self, agent, goals):
        goal = goals.add_goal(Goal(title="Run"))
        result = agent.execute(ActionType.CREATE_MILESTONE,
                               {"goal_id": goal.id, "title": "5k", "target_date": "next friday"})
        assert not result.success
        assert result.message.startswith("Failed to create milestone")
        assert goal.milestones == []

    @pytest.mark.parametrize("action_type, parameters", [
        (ActionType.CREATE_GOAL, {"title": "Run", "category": "health", "target_date": "soon"}),
        (ActionType.UPDATE_GOAL, {"goal_id": "GOAL", "target_date": "2024-13-45"}),
        (ActionType.MARK_HABIT_COMPLETE, {"habit_id": "HABIT", "date": "yesterday"}),
        (ActionType.CREATE_GOAL, {"title": "Run", "category": None}),
        (ActionType.UPDATE_GOAL, {"goal_id": "GOAL", "category": 7}),
        (ActionType.CREATE_GOAL, {"title": "Run", "category": "health", "milestones": [{}]}),
    ])
    def test_malformed_model_input_never_raises(self, agent, goals, habits, action_type, parameters):
        goal = goals.add_goal(Goal(title="Read"))
        habit = habits.add_habit(Habit(title="Walk"))
        ids = {"GOAL": goal.id, "HABIT": habit.id}
        parameters = {k: ids.get(v, v) if isinstance(v, str) else v for k, v in parameters.items()}

        result = agent.execute(action_type, parameters)

        assert not result.success
        assert result.message


class TestGoalTools:

    def test_create_goal_with_milestones(self, agent, goals):
        result = agent.execute(ActionType.CREATE_GOAL, {
            "title": "Run 5k",
            "category": "Fitness",
            "milestones": [{"title": "Run 1k"}, {"title": "Run 3k", "description": "Week 4"}],
        })
        assert result.success
        goal = goals.get_goal(result.result_id)
        assert [m.title for m in goal.milestones] == ["Run 1k", "Run 3k"]
        assert [m.order for m in goal.milestones] == [0, 1]

    def test_invalid_category(self, agent, goals):
        result = agent.create_goal("Run 5k", "sports")
        assert not result.success
        assert result.message == "Invalid category: sports"
        assert goals.goals == []

    def test_update_unknown_goal(self, agent):
        assert agent.update_goal("missing", title="x").message == "Goal not found"

    def test_update_goal_fields(self, agent, goals):
        goal = goals.add_goal(Goal(title="Read"))
        result = agent.update_goal(goal.id, title="Read more", category="learning")
        assert result.success
        assert goals.get_goal(goal.id).title == "Read more"
        assert goals.get_goal(goal.id).category.value == "learning"

    def test_move_to_backlog(self, agent, goals):
        goal = goals.add_goal(Goal(title="Read"))
        result = agent.move_goal_to_backlog(goal.id, reason="busy month")
        assert result.message == "Moved goal to backlog: Read"
        assert goals.get_goal(goal.id).status == GoalStatus.BACKLOG

    def test_complete_goal_records_win(self, agent, goals, wins):
        goal = goals.add_goal(Goal(title="Read 12 books"))
        assert agent.complete_goal(goal.id).success
        win = wins.wins[0]
        assert win.description == "Achieved goal: Read 12 books"
        assert win.source == WinSource.GOAL_COMPLETE
        assert win.linked_goal_id == goal.id

    def test_milestone_not_found(self, agent, goals):
        goal = goals.add_goal(Goal(title="Read"))
        assert agent.complete_milestone(goal.id, "missing").message == "Milestone not found"

    def test_complete_milestone(self, agent, goals):
        goal = goals.add_goal(Goal(title="Read"))
        milestone_id = agent.create_milestone(goal.id, "First book").result_id
        assert agent.complete_milestone(goal.id, milestone_id).success
        assert goals.get_milestone(goal.id, milestone_id).is_completed


class TestHabitTools:
    """Habit actions go through the provider rules, failures come back as results."""

    def test_activate_respects_limit(self, agent, habits):
        """A third active habit is refused and the habit stays in the backlog."""
        habits.add_habit(Habit(title="Walk"))
        habits.add_habit(Habit(title="Read"))
        waiting = habits.add_habit(Habit(title="Stretch", status=HabitStatus.BACKLOG))

        result = agent.activate_habit(waiting.id)

        assert not result.success
        assert result.message == "Failed to activate habit: Cannot have more than 2 active habits"
        assert habits.get_habit(waiting.id).status == HabitStatus.BACKLOG

    def test_pause_moves_to_backlog(self, agent, habits):
        habit = habits.add_habit(Habit(title="Walk"))
        assert agent.pause_habit(habit.id).success
        assert habits.get_habit(habit.id).status == HabitStatus.BACKLOG

    def test_mark_complete_for_date(self, agent, habits):
        habit = habits.add_habit(Habit(title="Walk"))
        yesterday = date.today() - timedelta(days=1)
        assert agent.mark_habit_complete(habit.id, yesterday.isoformat()).success
        assert habits.get_habit(habit.id).completion_dates == [yesterday]
        assert habits.get_habit(habit.id).current_streak == 1

    def test_unknown_habit(self, agent):
        assert agent.archive_habit("missing").message == "Habit not found"


class TestSessionTools:

    def test_save_session_as_journal(self, agent, journal):
        result = agent.save_session_as_journal("We talked about work.", session_id="s1",
                                               linked_goal_ids=["g1"])
        assert result.success
        entry = journal.get_entry_by_id(result.result_id)
        assert entry.content == "We talked about work."
        assert entry.goal_ids == ["g1"]

    def test_schedule_follow_up(self, agent):
        result = agent.execute(ActionType.SCHEDULE_FOLLOWUP,
                               {"days_from_now": "3", "reminder_message": "How did it go?"})
        assert result.message == "Scheduled follow-up in 3 days"
        assert agent.due_follow_ups() == []
        assert agent.due_follow_ups(datetime.now() + timedelta(days=4))[0].message == "How did it go?"

    def test_schedule_follow_up_bad_days(self, agent):
        result = agent.schedule_follow_up("soon", "Check in")
        assert not result.success
        assert agent.follow_ups == []

    def test_dismissed_follow_up_is_gone(self, agent):
        reminder_id = agent.schedule_follow_up(0, "How did it go?").result_id
        assert [r.id for r in agent.due_follow_ups()] == [reminder_id]
        agent.dismiss_follow_up(reminder_id)
        assert agent.due_follow_ups() == []

    def test_follow_ups_persist(self, tmp_path, goals, habits, journal, wins):
        ActionAgent(goals, habits, journal, wins, tmp_path).schedule_follow_up(2, "Check the plan")
        reloaded = ActionAgent(goals, habits, journal, wins, tmp_path)
        assert [r.message for r in reloaded.follow_ups] == ["Check the plan"]
        assert (tmp_path / "follow_ups.json").exists()


class TestWinTools:

    def test_record_win(self, agent, wins):
        result = agent.record_win("Spoke up in the meeting", category="career",
                                  source_session_id="s1")
        assert result.success
        win = wins.wins[0]
        assert win.source == WinSource.REFLECTION
        assert win.category == WinCategory.CAREER
        assert win.source_session_id == "s1"

    def test_unknown_category_becomes_other(self, agent, wins):
        agent.record_win("Cooked dinner", category="cooking")
        assert wins.wins[0].category == WinCategory.OTHER

    def test_empty_description_fails(self, agent):
        result = agent.record_win("   ")
        assert not result.success
        assert result.message == "Failed to record win: Win description cannot be empty"
