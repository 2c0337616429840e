import logging
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

from config.settings import MAX_ACTIVE_HABITS, STREAK_MILESTONES
from models.habit import Habit, HabitMaturity, HabitStatus
from models.wellness import WinCategory, WinSource
from providers.base import JsonRecordStore
from providers.win_provider import WinProvider
from tools.habit_metrics import calculate_longest_streak, calculate_streak

logger = logging.getLogger(__name__)


class HabitProvider:
    """
    Holds habits and keeps their streaks and maturity current.

    Completing a habit recalculates the streak from the full completion
    history. Hitting one of STREAK_MILESTONES records a win when a
    WinProvider is attached.
    """

    def __init__(self, storage_dir: Optional[Path] = None,
                 win_provider: Optional[WinProvider] = None):
        self._store = JsonRecordStore("habits.json", Habit.from_dict, storage_dir)
        self.win_provider = win_provider

    @property
    def habits(self) -> List[Habit]:
        return sorted(self._store.items, key=lambda h: h.sort_order)

    @property
    def active_habits(self) -> List[Habit]:
        return self.get_habits_by_status(HabitStatus.ACTIVE)

    @property
    def habits_ready_for_graduation(self) -> List[Habit]:
        return [h for h in self.habits if h.can_graduate]

    @property
    def graduated_habits(self) -> List[Habit]:
        return [h for h in self.habits if h.maturity == HabitMaturity.INGRAINED]

    def get_habits_by_status(self, status: HabitStatus) -> List[Habit]:
        return [h for h in self.habits if h.status == status]

    def get_habits_by_goal(self, goal_id: str) -> List[Habit]:
        return [h for h in self.habits if h.linked_goal_id == goal_id]

    def get_habit_by_id(self, habit_id: str) -> Optional[Habit]:
        return self._store.find(habit_id)

    def get_habit(self, habit_id: str) -> Habit:
        return self._store.get(habit_id, "Habit")

    def add_habit(self, habit: Habit) -> Habit:
        same_status = [h.sort_order for h in self._store.items if h.status == habit.status]
        habit.sort_order = max(same_status, default=-1) + 1
        self._store.add(habit)
        logger.info(f"Added habit: {habit.title}")
        return habit

    def update_habit(self, habit: Habit) -> Habit:
        habit.updated_at = datetime.now()
        return self._store.replace(habit, "Habit")

    def delete_habit(self, habit_id: str) -> Habit:
        return self._store.remove(habit_id, "Habit")

    def move_habit_to_status(self, habit_id: str, status: HabitStatus,
                             new_index: Optional[int] = None) -> Habit:
        """
        Move a habit to another status column, optionally at a position.

        Raises:
            ValueError: if the move would exceed MAX_ACTIVE_HABITS.
        """
        habit = self.get_habit(habit_id)

        if status == HabitStatus.ACTIVE:
            active_count = sum(1 for h in self._store.items
                               if h.status == HabitStatus.ACTIVE and h.id != habit_id)
            if active_count >= MAX_ACTIVE_HABITS:
                raise ValueError(f"Cannot have more than {MAX_ACTIVE_HABITS} active habits")

        column = [h for h in self.get_habits_by_status(status) if h.id != habit_id]
        position = len(column) if new_index is None else min(max(new_index, 0), len(column))
        habit.status = status
        column.insert(position, habit)
        for order, item in enumerate(column):
            item.sort_order = order

        return self.update_habit(habit)

    # === Completion tracking ===

    def complete_habit(self, habit_id: str, day: Optional[date] = None) -> Habit:
        habit = self.get_habit(habit_id)
        day = day or date.today()

        if day not in habit.completion_dates:
            habit.completion_dates.append(day)
        habit.current_streak = calculate_streak(habit.completion_dates)
        habit.longest_streak = max(habit.longest_streak,
                                   calculate_longest_streak(habit.completion_dates))
        self._update_maturity(habit)
        self.update_habit(habit)

        if habit.current_streak in STREAK_MILESTONES:
            self._record_streak_win(habit)
        return habit

    def uncomplete_habit(self, habit_id: str, day: Optional[date] = None) -> Habit:
        habit = self.get_habit(habit_id)
        day = day or date.today()
        habit.completion_dates = [d for d in habit.completion_dates if d != day]
        habit.current_streak = calculate_streak(habit.completion_dates)
        self._update_maturity(habit)
        return self.update_habit(habit)

    def graduate_habit(self, habit_id: str) -> Habit:
        habit = self.get_habit(habit_id)
        if not habit.can_graduate:
            raise ValueError(f"Habit is not ready to graduate: {habit.title}")
        habit.maturity = HabitMaturity.INGRAINED
        habit.graduated_at = datetime.now()
        logger.info(f"Habit graduated: {habit.title}")
        return self.update_habit(habit)

    def revert_graduation(self, habit_id: str) -> Habit:
        habit = self.get_habit(habit_id)
        if habit.maturity == HabitMaturity.INGRAINED:
            habit.maturity = HabitMaturity.ESTABLISHED
            self.update_habit(habit)
        return habit

    def _update_maturity(self, habit: Habit):
        # Graduation to INGRAINED is always a user decision
        if habit.maturity == HabitMaturity.INGRAINED:
            return
        if habit.formation_progress >= 0.5:
            habit.maturity = HabitMaturity.ESTABLISHED

    def _record_streak_win(self, habit: Habit):
        if self.win_provider is None:
            return
        try:
            self.win_provider.record_win(
                description=f"{habit.current_streak}-day streak on {habit.title}!",
                source=WinSource.STREAK_MILESTONE,
                category=WinCategory.HABIT,
                linked_habit_id=habit.id,
            )
        except (OSError, ValueError) as e:
            # Completion already saved; a lost win is only logged
            logger.warning(f"Failed to record streak milestone win: {e}")
