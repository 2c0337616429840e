"""MentorMe Providers.

In-memory holders for each kind of user record, optionally snapshotted to
JSON under a storage directory.

Providers:
    GoalProvider, HabitProvider, JournalProvider, WinProvider,
    WorryProvider, FoodLogProvider, ChatProvider, ExerciseProvider,
    GratitudeProvider, ActivityProvider
"""
from providers.base import JsonRecordStore, NotFoundError
from providers.goal_provider import GoalProvider
from providers.win_provider import WinProvider
from providers.habit_provider import HabitProvider
from providers.journal_provider import JournalProvider
from providers.worry_provider import WorryProvider
from providers.food_log_provider import FoodLogProvider
from providers.chat_provider import ChatProvider
from providers.exercise_provider import ExerciseProvider
from providers.gratitude_provider import GratitudeProvider
from providers.activity_provider import ActivityProvider

__all__ = [
    "JsonRecordStore",
    "NotFoundError",
    "GoalProvider",
    "WinProvider",
    "HabitProvider",
    "JournalProvider",
    "WorryProvider",
    "FoodLogProvider",
    "ChatProvider",
    "ExerciseProvider",
    "GratitudeProvider",
    "ActivityProvider",
]
