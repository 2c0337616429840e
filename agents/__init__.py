"""MentorMe Agent Module.

AI-facing workers for the mentor, each with a rule-based fallback.

Agents:
    MentorAgent: Context-aware replies in the free-form chat.
    ReflectionAgent: Guided reflection sessions with proposed actions.
    PatternAnalyzer: Rule-based pattern detection and intervention library.
    ActionAgent: Executes approved actions against the providers.
    NutritionAgent: Nutrition estimates for logged meals.
"""
from agents.action_agent import ActionAgent
from agents.mentor_agent import MentorAgent
from agents.nutrition_agent import NutritionAgent
from agents.pattern_analyzer import PatternAnalyzer
from agents.reflection_agent import ReflectionAgent

__all__ = [
    "MentorAgent",
    "ReflectionAgent",
    "PatternAnalyzer",
    "ActionAgent",
    "NutritionAgent",
]
