from datetime import date, datetime, timedelta
from typing import Dict, Iterable, Optional, Union

from models.habit import Habit, HabitFrequency

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def calculate_streak(dates: Iterable[DateLike], today: Optional[date] = None) -> int:
    """
    Current streak of consecutive completion days.

    The streak is still alive if the last completion was today or yesterday;
    anything older counts as broken and returns 0. Several completions on the
    same day count once.
    """
    days = sorted({_as_date(d) for d in dates}, reverse=True)
    if not days:
        return 0

    today = today or date.today()
    if (today - days[0]).days > 1:
        return 0

    streak = 1
    current = days[0]
    for previous in days[1:]:
        if (current - previous).days == 1:
            streak += 1
            current = previous
        else:
            break
    return streak


def calculate_longest_streak(dates: Iterable[DateLike]) -> int:
    """Longest run of consecutive completion days ever recorded."""
    days = sorted({_as_date(d) for d in dates})
    if not days:
        return 0

    longest = current = 1
    for prev, nxt in zip(days, days[1:]):
        if (nxt - prev).days == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def get_week_progress(habit: Habit, today: Optional[date] = None) -> Dict[str, int]:
    """
    Completions this week (Monday start) against the weekly target.

    Returns:
        {"completed": int, "target": int, "percentage": int}
    """
    today = today or date.today()
    week_start = today - timedelta(days=today.weekday())
    completed = len({d for d in map(_as_date, habit.completion_dates) if week_start <= d <= today})
    target = habit.weekly_target
    percentage = round(completed / target * 100) if target > 0 else 0
    return {"completed": completed, "target": target, "percentage": percentage}


def expected_completions_per_month(habit: Habit) -> int:
    if habit.frequency == HabitFrequency.DAILY:
        return 30
    if habit.frequency == HabitFrequency.THREE_TIMES:
        return 12  # ~3 per week * 4 weeks
    if habit.frequency == HabitFrequency.FIVE_TIMES:
        return 20
    return habit.target_count * 4


def get_completion_rate(habit: Habit, today: Optional[date] = None) -> int:
    """
    Percentage (0-100) of expected completions achieved over the last 30 days.
    """
    today = today or date.today()
    window_start = today - timedelta(days=30)
    recent = [d for d in map(_as_date, habit.completion_dates) if window_start < d < today]

    expected = expected_completions_per_month(habit)
    if expected == 0:
        return 0
    return round(min(max(len(recent) / expected * 100, 0), 100))


def should_show_reminder(habit: Habit) -> bool:
    """Active habits not yet done today get a reminder."""
    return habit.is_active and not habit.is_completed_today
