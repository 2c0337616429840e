"""MentorMe Tools Module.

This module contains deterministic habit calculation tools.

Tools:
    calculate_streak: Current run of consecutive completion days.
    calculate_longest_streak: Longest run ever recorded.
    get_week_progress: Completions this week against the weekly target.
    get_completion_rate: 30-day completion percentage.
    should_show_reminder: Whether an active habit still needs doing today.
"""
from tools.habit_metrics import (
    calculate_streak,
    calculate_longest_streak,
    get_week_progress,
    get_completion_rate,
    should_show_reminder,
)

__all__ = [
    "calculate_streak",
    "calculate_longest_streak",
    "get_week_progress",
    "get_completion_rate",
    "should_show_reminder",
]
