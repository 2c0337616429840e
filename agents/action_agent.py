"""ActionAgent - Provider Operations as Mentor Tools

During a reflection session the mentor can propose concrete actions
(create a goal, pause a habit, record a win...). Once the user approves one,
this agent carries it out against the providers.

Every tool returns an ActionResult instead of raising: unknown ids, invalid
categories, malformed dates and provider rule violations all come back as
failures with a user-facing message.

Follow-ups have no device notification behind them. They are kept as
FollowUpReminder records (snapshotted to follow_ups.json when a storage
directory is given) and shown by the CLI once they fall due.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from models.goal import (
    Goal,
    GoalCategory,
    GoalStatus,
    Milestone,
    format_datetime,
    new_id,
    parse_datetime,
)
from models.habit import Habit, HabitStatus
from models.journal import JournalEntry, JournalEntryType
from models.reflection import ActionType
from models.wellness import WinCategory, WinSource
from providers.base import JsonRecordStore, NotFoundError
from providers.goal_provider import GoalProvider
from providers.habit_provider import HabitProvider
from providers.journal_provider import JournalProvider
from providers.win_provider import WinProvider

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    success: bool
    message: str
    result_id: Optional[str] = None
    data: Any = None

    @classmethod
    def ok(cls, message: str, result_id: Optional[str] = None, data: Any = None) -> "ActionResult":
        return cls(True, message, result_id, data)

    @classmethod
    def failure(cls, message: str) -> "ActionResult":
        return cls(False, message)


@dataclass
class FollowUpReminder:
    """A follow-up the mentor promised the user."""
    scheduled_for: datetime
    message: str
    created_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "scheduled_for": format_datetime(self.scheduled_for),
            "message": self.message,
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FollowUpReminder":
        return cls(
            id=data.get("id") or new_id(),
            scheduled_for=parse_datetime(data["scheduled_for"]),
            message=data["message"],
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
        )


def _parse_category(enum_cls, value: Optional[str]):
    if not isinstance(value, str):
        return None
    for member in enum_cls:
        if member.value == value.lower() or member.name.lower() == value.lower():
            return member
    return None


def _parse_day(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return parse_datetime(value).date() if "T" in value else date.fromisoformat(value)


class ActionAgent:
    """Executes approved mentor actions against the user's providers."""

    def __init__(self, goal_provider: GoalProvider,
                 habit_provider: HabitProvider,
                 journal_provider: JournalProvider,
                 win_provider: WinProvider,
                 storage_dir: Optional[Path] = None):
        self.goals = goal_provider
        self.habits = habit_provider
        self.journal = journal_provider
        self.wins = win_provider
        self._follow_ups = JsonRecordStore("follow_ups.json", FollowUpReminder.from_dict, storage_dir)

        self._tools: Dict[ActionType, Callable[..., ActionResult]] = {
            ActionType.CREATE_GOAL: self.create_goal,
            ActionType.UPDATE_GOAL: self.update_goal,
            ActionType.DELETE_GOAL: self.delete_goal,
            ActionType.MOVE_GOAL_TO_ACTIVE: self.move_goal_to_active,
            ActionType.MOVE_GOAL_TO_BACKLOG: self.move_goal_to_backlog,
            ActionType.COMPLETE_GOAL: self.complete_goal,
            ActionType.ABANDON_GOAL: self.abandon_goal,
            ActionType.CREATE_MILESTONE: self.create_milestone,
            ActionType.UPDATE_MILESTONE: self.update_milestone,
            ActionType.DELETE_MILESTONE: self.delete_milestone,
            ActionType.COMPLETE_MILESTONE: self.complete_milestone,
            ActionType.UNCOMPLETE_MILESTONE: self.uncomplete_milestone,
            ActionType.CREATE_HABIT: self.create_habit,
            ActionType.UPDATE_HABIT: self.update_habit,
            ActionType.DELETE_HABIT: self.delete_habit,
            ActionType.PAUSE_HABIT: self.pause_habit,
            ActionType.ACTIVATE_HABIT: self.activate_habit,
            ActionType.ARCHIVE_HABIT: self.archive_habit,
            ActionType.MARK_HABIT_COMPLETE: self.mark_habit_complete,
            ActionType.UNMARK_HABIT_COMPLETE: self.unmark_habit_complete,
            ActionType.SAVE_SESSION_AS_JOURNAL: self.save_session_as_journal,
            ActionType.SCHEDULE_FOLLOWUP: self.schedule_follow_up,
            ActionType.RECORD_WIN: self.record_win,
        }

    def execute(self, action_type: ActionType, parameters: Dict[str, Any]) -> ActionResult:
        """Dispatch a tool call; missing or malformed parameters become failures."""
        tool = self._tools.get(action_type)
        if tool is None:
            return ActionResult.failure(f"Action type not yet implemented: {action_type.value}")
        try:
            return tool(**parameters)
        except (TypeError, ValueError, AttributeError, LookupError) as e:
            logger.warning(f"Bad parameters for {action_type.value}: {e}")
            return ActionResult.failure(f"Invalid parameters for {action_type.value}: {e}")

    # === Goal tools ===

    def create_goal(self, title: str, category: str, description: Optional[str] = None,
                    target_date: Optional[str] = None,
                    milestones: Optional[List[Dict[str, Any]]] = None) -> ActionResult:
        goal_category = _parse_category(GoalCategory, category)
        if goal_category is None:
            return ActionResult.failure(f"Invalid category: {category}")
        try:
            goal = Goal(title=title, description=description or "", category=goal_category,
                        target_date=parse_datetime(target_date))
            for order, m in enumerate(milestones or []):
                goal.milestones.append(Milestone(
                    goal_id=goal.id,
                    title=m["title"],
                    description=m.get("description") or "",
                    order=order,
                    target_date=parse_datetime(m.get("target_date")),
                ))
            self.goals.add_goal(goal)
        except (KeyError, ValueError, OSError) as e:
            logger.error(f"Failed to create goal: {e}", exc_info=True)
            return ActionResult.failure(f"Failed to create goal: {e}")

        logger.info(f"Created goal: {title}")
        return ActionResult.ok(f"Created goal: {title}", result_id=goal.id, data=goal)

    def update_goal(self, goal_id: str, title: Optional[str] = None,
                    description: Optional[str] = None, category: Optional[str] = None,
                    target_date: Optional[str] = None) -> ActionResult:
        goal = self.goals.get_goal_by_id(goal_id)
        if goal is None:
            return ActionResult.failure("Goal not found")

        goal_category = None
        if category is not None:
            goal_category = _parse_category(GoalCategory, category)
            if goal_category is None:
                return ActionResult.failure(f"Invalid category: {category}")

        try:
            if title is not None:
                goal.title = title
            if description is not None:
                goal.description = description
            if goal_category is not None:
                goal.category = goal_category
            if target_date is not None:
                goal.target_date = parse_datetime(target_date)
            self.goals.update_goal(goal)
        except (ValueError, OSError) as e:
            return ActionResult.failure(f"Failed to update goal: {e}")

        return ActionResult.ok(f"Updated goal: {goal.title}", result_id=goal_id, data=goal)

    def delete_goal(self, goal_id: str) -> ActionResult:
        goal = self.goals.get_goal_by_id(goal_id)
        if goal is None:
            return ActionResult.failure("Goal not found")
        self.goals.delete_goal(goal_id)
        return ActionResult.ok(f"Deleted goal: {goal.title}")

    def move_goal_to_active(self, goal_id: str) -> ActionResult:
        return self._set_goal_status(goal_id, GoalStatus.ACTIVE, "Activated goal")

    def move_goal_to_backlog(self, goal_id: str, reason: Optional[str] = None) -> ActionResult:
        return self._set_goal_status(goal_id, GoalStatus.BACKLOG, "Moved goal to backlog")

    def abandon_goal(self, goal_id: str, reason: Optional[str] = None) -> ActionResult:
        return self._set_goal_status(goal_id, GoalStatus.ABANDONED, "Abandoned goal")

    def complete_goal(self, goal_id: str) -> ActionResult:
        result = self._set_goal_status(goal_id, GoalStatus.COMPLETED, "Completed goal")
        if result.success:
            goal = self.goals.get_goal(goal_id)
            self._record_win_quietly(
                description=f"Achieved goal: {goal.title}",
                source=WinSource.GOAL_COMPLETE,
                category=_parse_category(WinCategory, goal.category.value),
                linked_goal_id=goal_id,
            )
        return result

    def _set_goal_status(self, goal_id: str, status: GoalStatus, verb: str) -> ActionResult:
        goal = self.goals.get_goal_by_id(goal_id)
        if goal is None:
            return ActionResult.failure("Goal not found")
        self.goals.set_status(goal_id, status)
        logger.info(f"{verb}: {goal.title}")
        return ActionResult.ok(f"{verb}: {goal.title}", result_id=goal_id)

    # === Milestone tools ===

    def create_milestone(self, goal_id: str, title: str, description: Optional[str] = None,
                         target_date: Optional[str] = None) -> ActionResult:
        if self.goals.get_goal_by_id(goal_id) is None:
            return ActionResult.failure("Goal not found")
        try:
            milestone = Milestone(goal_id=goal_id, title=title, description=description or "",
                                  order=0, target_date=parse_datetime(target_date))
            self.goals.add_milestone(goal_id, milestone)
        except (ValueError, OSError) as e:
            return ActionResult.failure(f"Failed to create milestone: {e}")
        return ActionResult.ok(f"Created milestone: {title}", result_id=milestone.id, data=milestone)

    def update_milestone(self, goal_id: str, milestone_id: str, title: Optional[str] = None,
                         description: Optional[str] = None,
                         target_date: Optional[str] = None) -> ActionResult:
        def apply(milestone: Milestone):
            if title is not None:
                milestone.title = title
            if description is not None:
                milestone.description = description
            if target_date is not None:
                milestone.target_date = parse_datetime(target_date)
            self.goals.update_milestone(goal_id, milestone)

        return self._milestone_op(goal_id, milestone_id, "Updated milestone", apply)

    def delete_milestone(self, goal_id: str, milestone_id: str) -> ActionResult:
        return self._milestone_op(goal_id, milestone_id, "Deleted milestone",
                                  lambda m: self.goals.delete_milestone(goal_id, milestone_id))

    def complete_milestone(self, goal_id: str, milestone_id: str) -> ActionResult:
        return self._milestone_op(goal_id, milestone_id, "Completed milestone",
                                  lambda m: self.goals.complete_milestone(goal_id, milestone_id))

    def uncomplete_milestone(self, goal_id: str, milestone_id: str) -> ActionResult:
        return self._milestone_op(goal_id, milestone_id, "Uncompleted milestone",
                                  lambda m: self.goals.uncomplete_milestone(goal_id, milestone_id))

    def _milestone_op(self, goal_id: str, milestone_id: str, verb: str,
                      operation: Callable[[Milestone], Any]) -> ActionResult:
        if self.goals.get_goal_by_id(goal_id) is None:
            return ActionResult.failure("Goal not found")
        try:
            milestone = self.goals.get_milestone(goal_id, milestone_id)
        except NotFoundError:
            return ActionResult.failure("Milestone not found")
        operation(milestone)
        return ActionResult.ok(f"{verb}: {milestone.title}", result_id=milestone_id)

    # === Habit tools ===

    def create_habit(self, title: str, description: Optional[str] = None,
                     linked_goal_id: Optional[str] = None) -> ActionResult:
        habit = Habit(title=title, description=description or "", linked_goal_id=linked_goal_id)
        self.habits.add_habit(habit)
        logger.info(f"Created habit: {title}")
        return ActionResult.ok(f"Created habit: {title}", result_id=habit.id, data=habit)

    def update_habit(self, habit_id: str, title: Optional[str] = None,
                     description: Optional[str] = None) -> ActionResult:
        habit = self.habits.get_habit_by_id(habit_id)
        if habit is None:
            return ActionResult.failure("Habit not found")
        if title is not None:
            habit.title = title
        if description is not None:
            habit.description = description
        self.habits.update_habit(habit)
        return ActionResult.ok(f"Updated habit: {habit.title}", result_id=habit_id, data=habit)

    def delete_habit(self, habit_id: str) -> ActionResult:
        habit = self.habits.get_habit_by_id(habit_id)
        if habit is None:
            return ActionResult.failure("Habit not found")
        self.habits.delete_habit(habit_id)
        return ActionResult.ok(f"Deleted habit: {habit.title}")

    def pause_habit(self, habit_id: str) -> ActionResult:
        return self._move_habit(habit_id, HabitStatus.BACKLOG, "Moved habit to backlog", "pause habit")

    def activate_habit(self, habit_id: str) -> ActionResult:
        return self._move_habit(habit_id, HabitStatus.ACTIVE, "Activated habit", "activate habit")

    def archive_habit(self, habit_id: str) -> ActionResult:
        return self._move_habit(habit_id, HabitStatus.ABANDONED, "Archived habit", "archive habit")

    def _move_habit(self, habit_id: str, status: HabitStatus, verb: str, failed: str) -> ActionResult:
        habit = self.habits.get_habit_by_id(habit_id)
        if habit is None:
            return ActionResult.failure("Habit not found")
        try:
            self.habits.move_habit_to_status(habit_id, status)
        except ValueError as e:
            return ActionResult.failure(f"Failed to {failed}: {e}")
        logger.info(f"{verb}: {habit.title}")
        return ActionResult.ok(f"{verb}: {habit.title}", result_id=habit_id)

    def mark_habit_complete(self, habit_id: str, date: Optional[str] = None) -> ActionResult:
        habit = self.habits.get_habit_by_id(habit_id)
        if habit is None:
            return ActionResult.failure("Habit not found")
        try:
            self.habits.complete_habit(habit_id, _parse_day(date))
        except ValueError as e:
            return ActionResult.failure(f"Failed to mark habit complete: {e}")
        return ActionResult.ok(f"Marked habit complete: {habit.title}", result_id=habit_id)

    def unmark_habit_complete(self, habit_id: str, date: Optional[str] = None) -> ActionResult:
        habit = self.habits.get_habit_by_id(habit_id)
        if habit is None:
            return ActionResult.failure("Habit not found")
        try:
            self.habits.uncomplete_habit(habit_id, _parse_day(date))
        except ValueError as e:
            return ActionResult.failure(f"Failed to unmark habit completion: {e}")
        return ActionResult.ok(f"Unmarked habit completion: {habit.title}", result_id=habit_id)

    # === Session tools ===

    def save_session_as_journal(self, content: str, session_id: Optional[str] = None,
                                linked_goal_ids: Optional[List[str]] = None) -> ActionResult:
        try:
            entry = JournalEntry(type=JournalEntryType.QUICK_NOTE, content=content,
                                 goal_ids=list(linked_goal_ids or []))
            self.journal.add_entry(entry)
        except (ValueError, OSError) as e:
            return ActionResult.failure(f"Failed to save session as journal: {e}")
        logger.info(f"Saved session {session_id} as journal {entry.id}")
        return ActionResult.ok("Saved reflection session to journal", result_id=entry.id, data=entry)

    def schedule_follow_up(self, days_from_now: int, reminder_message: str) -> ActionResult:
        try:
            days = int(days_from_now)
        except (TypeError, ValueError):
            return ActionResult.failure(f"Failed to schedule follow-up: invalid days {days_from_now!r}")
        reminder = FollowUpReminder(scheduled_for=datetime.now() + timedelta(days=days),
                                    message=reminder_message)
        self._follow_ups.add(reminder)
        logger.info(f"Scheduled follow-up for {reminder.scheduled_for.isoformat()}")
        return ActionResult.ok(f"Scheduled follow-up in {days} days", result_id=reminder.id,
                               data=reminder)

    @property
    def follow_ups(self) -> List[FollowUpReminder]:
        return sorted(self._follow_ups.items, key=lambda r: r.scheduled_for)

    def due_follow_ups(self, now: Optional[datetime] = None) -> List[FollowUpReminder]:
        now = now or datetime.now()
        return [r for r in self.follow_ups if r.scheduled_for <= now]

    def dismiss_follow_up(self, reminder_id: str) -> FollowUpReminder:
        """Drop a reminder once it has been shown to the user."""
        return self._follow_ups.remove(reminder_id, "Follow-up")

    # === Win tools ===

    def record_win(self, description: str, category: Optional[str] = None,
                   linked_goal_id: Optional[str] = None, linked_habit_id: Optional[str] = None,
                   source_session_id: Optional[str] = None) -> ActionResult:
        win_category = None
        if category is not None:
            win_category = _parse_category(WinCategory, category) or WinCategory.OTHER
        try:
            win = self.wins.record_win(
                description=description,
                source=WinSource.REFLECTION,
                category=win_category,
                linked_goal_id=linked_goal_id,
                linked_habit_id=linked_habit_id,
                source_session_id=source_session_id,
            )
        except (ValueError, OSError) as e:
            return ActionResult.failure(f"Failed to record win: {e}")
        logger.info(f"Recorded win: {description}")
        return ActionResult.ok(f"Recorded win: {description}", result_id=win.id, data=win)

    def _record_win_quietly(self, **kwargs):
        try:
            self.wins.record_win(**kwargs)
        except (ValueError, OSError) as e:
            logger.warning(f"Failed to record win: {e}")
