"""MentorMe Data Models.

This module contains the dataclasses the providers and agents pass around.

Models:
    Goal, Milestone: What the user is working toward.
    Habit: Repeated behaviours with streak and maturity tracking.
    JournalEntry, QAPair: Quick notes and guided journals.
    ChatMessage, Conversation: Mentor chat history.
    Win, Worry, WorrySession, FoodEntry: Smaller wellness logs.
    ExercisePlan, WorkoutLog: Exercise plans and logged workouts.
    GratitudeEntry, GratitudeStreak: The gratitude journal.
    Activity, ScheduledActivity: Behavioural activation.
    ReflectionSession and friends: Guided reflection conversations.
"""
from models.goal import Goal, GoalCategory, GoalStatus, Milestone
from models.habit import Habit, HabitFrequency, HabitMaturity, HabitStatus
from models.journal import JournalEntry, JournalEntryType, QAPair
from models.chat import ChatMessage, Conversation, MentorAction, MessageSender
from models.exercise import (
    ExerciseCategory,
    ExercisePlan,
    ExerciseSet,
    ExerciseType,
    LoggedExercise,
    PlanExercise,
    WorkoutLog,
)
from models.gratitude import GratitudeEntry, GratitudeStreak
from models.activity import Activity, ActivityCategory, ScheduledActivity
from models.wellness import (
    FoodEntry,
    MealType,
    NutritionEstimate,
    Win,
    WinCategory,
    WinSource,
    Worry,
    WorrySession,
    WorryStatus,
)
from models.reflection import (
    ActionType,
    DetectedPattern,
    ExecutedAction,
    Intervention,
    InterventionCategory,
    PatternType,
    ProposedAction,
    ReflectionExchange,
    ReflectionSession,
    ReflectionSessionType,
    SessionOutcome,
)

__all__ = [
    "Goal", "GoalCategory", "GoalStatus", "Milestone",
    "Habit", "HabitFrequency", "HabitMaturity", "HabitStatus",
    "JournalEntry", "JournalEntryType", "QAPair",
    "ChatMessage", "Conversation", "MentorAction", "MessageSender",
    "ExerciseCategory", "ExercisePlan", "ExerciseSet", "ExerciseType",
    "LoggedExercise", "PlanExercise", "WorkoutLog",
    "GratitudeEntry", "GratitudeStreak",
    "Activity", "ActivityCategory", "ScheduledActivity",
    "FoodEntry", "MealType", "NutritionEstimate",
    "Win", "WinCategory", "WinSource", "Worry", "WorrySession", "WorryStatus",
    "ActionType", "DetectedPattern", "ExecutedAction", "Intervention",
    "InterventionCategory", "PatternType", "ProposedAction", "ReflectionExchange",
    "ReflectionSession", "ReflectionSessionType", "SessionOutcome",
]
