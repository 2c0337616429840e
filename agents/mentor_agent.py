"""MentorAgent - Context-Aware Mentor Chat

Produces the mentor's reply in the free-form chat. The user's goals,
habits, journal, food log, workouts and recent conversation are folded into the
prompt through the ContextEngine, sized for the selected AI provider.

Design Decisions:
    1. Provider-aware context: comprehensive for cloud models, a few
       hundred tokens for small local models
    2. Local replies are kept under 150 words
    3. Never raises: any AI failure becomes a stock apology the chat can show
"""
import logging
from typing import List, Optional

from config.settings import AI_PROVIDER
from models.chat import ChatMessage
from models.exercise import ExercisePlan, WorkoutLog
from models.goal import Goal
from models.habit import Habit
from models.journal import JournalEntry
from models.wellness import FoodEntry
from services.ai_service import AIService, get_ai_service
from services.context_engine import ContextEngine

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = "I'm having trouble processing that right now. Could you try again?"


class MentorAgent:
    """The mentor's voice in open chat."""

    def __init__(self, ai_service: Optional[AIService] = None,
                 context_engine: Optional[ContextEngine] = None,
                 ai_provider: str = AI_PROVIDER):
        self.ai = ai_service or get_ai_service()
        self.context_engine = context_engine or ContextEngine(ai_service=self.ai)
        self.ai_provider = ai_provider

    def generate_contextual_response(self, user_message: str,
                                     goals: Optional[List[Goal]] = None,
                                     habits: Optional[List[Habit]] = None,
                                     journal_entries: Optional[List[JournalEntry]] = None,
                                     conversation_history: Optional[List[ChatMessage]] = None,
                                     food_entries: Optional[List[FoodEntry]] = None,
                                     exercise_plans: Optional[List[ExercisePlan]] = None,
                                     workout_logs: Optional[List[WorkoutLog]] = None) -> str:
        context = self.context_engine.build_context(
            self.ai_provider,
            goals or [],
            habits or [],
            journal_entries or [],
            conversation_history,
            food_entries,
            exercise_plans,
            workout_logs,
        )
        prompt = self._build_prompt(user_message, context.context)
        logger.info(f"Mentor prompt ({self.ai_provider}): ~{context.estimated_tokens} context tokens, "
                    f"items {context.item_counts}")

        try:
            return self.ai.get_coaching_response(prompt)
        except Exception as e:
            logger.error(f"Mentor response failed: {e}", exc_info=True)
            return FALLBACK_RESPONSE

    def _build_prompt(self, user_message: str, context: str) -> str:
        if self.ai_provider == "local":
            return f"""You are a supportive AI mentor helping with goals and habits.
{context}
User: {user_message}

CRITICAL: Keep responses under 150 words. Be warm but concise. 2-3 sentences for simple questions, 4-5 for complex ones. Use markdown: **bold**, *italic*, bullets. Get to the point fast."""

        return f"""You are an empathetic AI mentor and coach helping someone achieve their goals and build better habits.

Context:
{context}

User message: {user_message}

Provide supportive, actionable guidance. Be warm but concise. Focus on specific next steps."""
