"""Context Engineering Module

Builds the user-data context that goes in front of every mentor prompt,
and compacts long chat histories.

This module provides:
1. Provider-aware context building - comprehensive context for the cloud
   model, a tiny one for on-device models
2. Token estimation (1 token ~ 4 chars) with a hard budget per provider
3. Context compaction - summarizes long conversations to stay within limits
4. Memory extraction - identifies key facts for long-term retention
"""
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from config.settings import (
    CLOUD_MAX_CONTEXT_TOKENS,
    LOCAL_MAX_CONTEXT_TOKENS,
    MAX_CONTEXT_TOKENS,
    MAX_RECENT_MESSAGES,
)
from models.chat import ChatMessage
from models.exercise import ExercisePlan, WorkoutLog
from models.goal import Goal
from models.habit import Habit
from models.journal import JournalEntry, JournalEntryType
from models.wellness import FoodEntry
from services.ai_service import AIService, get_ai_service

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
MAX_CONTEXT_CHARS = MAX_CONTEXT_TOKENS * CHARS_PER_TOKEN

Message = Union[ChatMessage, Dict[str, str]]

RATED_TOPICS = ("stress", "anxiety", "energy", "mood", "sleep")
POSITIVE_WORDS = ("happy", "great", "amazing", "good", "proud")
NEGATIVE_WORDS = ("sad", "down", "depressed", "anxious", "stuck")


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def entry_text(entry: JournalEntry) -> str:
    """Journal entry as prompt text; guided entries become question/answer blocks."""
    if entry.type == JournalEntryType.GUIDED_JOURNAL and entry.qa_pairs is not None:
        return "\n\n".join(f"{qa.question}\n{qa.answer}" for qa in entry.qa_pairs)
    return entry.content or ""


def format_relative_date(value: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    diff = (now - value).days
    if diff == 0:
        return "Today"
    if diff == 1:
        return "Yesterday"
    if diff < 7:
        return f"{diff} days ago"
    return f"{value.month}/{value.day}"


def _truncate(text: str, limit: int) -> str:
    return f"{text[:limit]}..." if len(text) > limit else text


def _messages_after(history: List[ChatMessage], message_id: Optional[str]) -> List[ChatMessage]:
    """Messages newer than `message_id`; all of them if it was trimmed away."""
    for index, message in enumerate(history):
        if message.id == message_id:
            return history[index + 1:]
    return list(history)


def _role_and_content(message: Message):
    if isinstance(message, ChatMessage):
        return ("user" if message.is_from_user else "mentor"), message.content
    return message.get("role", "user"), message.get("content", "")


@dataclass
class ContextBuildResult:
    """Formatted context plus what went into it."""
    context: str
    estimated_tokens: int
    item_counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class CompactedContext:
    """Represents a compacted conversation context."""
    summary: str  # Summarized older messages
    recent_messages: List[Dict[str, str]]  # Last N messages kept verbatim
    extracted_facts: Dict[str, Any]
    original_length: int
    compacted_length: int
    summarized_through: Optional[str] = None  # id of the last summarized chat message


class _Budget:
    """Accumulates sections while they fit under a token limit."""

    def __init__(self, max_tokens: int):
        self.max_tokens = max_tokens
        self.parts: List[str] = []
        self.tokens = 0
        self.item_counts: Dict[str, int] = {}

    def add(self, section: str, item_type: str, count: int) -> bool:
        tokens = estimate_tokens(section)
        if self.tokens + tokens >= self.max_tokens:
            logger.debug(f"Context budget reached, skipping {item_type}")
            return False
        self.parts.append(section)
        self.tokens += tokens
        self.item_counts[item_type] = count
        return True

    def result(self) -> ContextBuildResult:
        return ContextBuildResult("".join(self.parts), self.tokens, self.item_counts)


class ContextEngine:
    """Builds prompt context from user data and manages the chat window."""

    def __init__(self, max_recent_messages: int = MAX_RECENT_MESSAGES,
                 ai_service: Optional[AIService] = None):
        self.ai = ai_service or get_ai_service()
        self.max_recent = max_recent_messages
        self.compaction_count = 0

    # === Context building ===

    def build_context(self, provider: str,
                      goals: List[Goal],
                      habits: List[Habit],
                      journal_entries: List[JournalEntry],
                      conversation_history: Optional[List[ChatMessage]] = None,
                      food_entries: Optional[List[FoodEntry]] = None,
                      exercise_plans: Optional[List[ExercisePlan]] = None,
                      workout_logs: Optional[List[WorkoutLog]] = None) -> ContextBuildResult:
        """Dispatch on the AI provider ("cloud" or "local")."""
        builder = self.build_local_context if provider == "local" else self.build_cloud_context
        result = builder(goals, habits, journal_entries, conversation_history, food_entries,
                         exercise_plans, workout_logs)
        logger.debug(f"Built {provider} context: ~{result.estimated_tokens} tokens, {result.item_counts}")
        return result

    def build_cloud_context(self, goals: List[Goal],
                            habits: List[Habit],
                            journal_entries: List[JournalEntry],
                            conversation_history: Optional[List[ChatMessage]] = None,
                            food_entries: Optional[List[FoodEntry]] = None,
                            exercise_plans: Optional[List[ExercisePlan]] = None,
                            workout_logs: Optional[List[WorkoutLog]] = None) -> ContextBuildResult:
        """
        Comprehensive context for large-window models.

        Journal entries are expected newest first. The seven most recent are
        included in full; older ones are cut to 500 characters.
        """
        budget = _Budget(CLOUD_MAX_CONTEXT_TOKENS)

        active_goals = [g for g in goals if g.is_active][:15]
        if active_goals:
            lines = [f"- {g.title} ({g.category.display_name}, {g.current_progress}% complete)"
                     for g in active_goals]
            budget.add("\n**Active Goals:**\n" + "\n".join(lines) + "\n\n", "goals", len(lines))

        active_habits = sorted((h for h in habits if h.is_active),
                               key=lambda h: h.current_streak, reverse=True)[:15]
        if active_habits:
            lines = [f"- {h.title} ({h.current_streak} day streak)" for h in active_habits]
            budget.add("\n**Habits:**\n" + "\n".join(lines) + "\n\n", "habits", len(lines))

        recent_journals = journal_entries[:20]
        if recent_journals:
            lines = []
            for i, entry in enumerate(recent_journals):
                text = entry_text(entry)
                preview = text if i < 7 else _truncate(text, 500)
                lines.append(f"- {format_relative_date(entry.created_at)}: {preview}")
            budget.add("\n**Recent Journal Entries:**\n" + "\n".join(lines) + "\n\n",
                       "journal_entries", len(lines))

        if food_entries:
            lines = []
            today_entries = [e for e in food_entries if e.timestamp.date() == date.today()]
            if today_entries:
                total_cal = sum(e.nutrition.calories for e in today_entries if e.nutrition)
                total_protein = sum(e.nutrition.protein_grams for e in today_entries if e.nutrition)
                lines.append(f"Today so far: {total_cal} cal, {total_protein}g protein "
                             f"({len(today_entries)} meals)")
            recent_food = food_entries[:10]
            for entry in recent_food:
                nutrition = (f" ({entry.nutrition.calories} cal, {entry.nutrition.protein_grams}g protein)"
                             if entry.nutrition else "")
                lines.append(f"- {format_relative_date(entry.timestamp)} "
                             f"{entry.meal_type.value.capitalize()}: {entry.description}{nutrition}")
            budget.add("\n**Food Log:**\n" + "\n".join(lines) + "\n\n", "food_entries", len(recent_food))

        plans = (exercise_plans or [])[:10]
        if plans:
            lines = [f"- {p.name} ({p.primary_category.display_name}, {len(p.exercises)} exercises)"
                     for p in plans]
            budget.add("\n**Exercise Plans:**\n" + "\n".join(lines) + "\n\n",
                       "exercise_plans", len(lines))

        workouts = (workout_logs or [])[:14]
        if workouts:
            lines = []
            for w in workouts:
                minutes = f" ({w.duration_minutes} min)" if w.duration_minutes else ""
                lines.append(f"- {format_relative_date(w.start_time)}: {w.plan_name or 'Freestyle'}"
                             f"{minutes} - {w.total_sets_completed} sets, "
                             f"{w.total_reps_completed} reps")
            budget.add("\n**Recent Workouts:**\n" + "\n".join(lines) + "\n\n",
                       "workout_logs", len(lines))

        if conversation_history:
            recent = conversation_history[-20:]
            lines = [f"{'User' if m.is_from_user else 'Mentor'}: {_truncate(m.content, 500)}"
                     for m in recent]
            budget.add("\n**Recent Conversation:**\n" + "\n".join(lines) + "\n\n",
                       "conversation_messages", len(lines))

        return budget.result()

    def build_local_context(self, goals: List[Goal],
                            habits: List[Habit],
                            journal_entries: List[JournalEntry],
                            conversation_history: Optional[List[ChatMessage]] = None,
                            food_entries: Optional[List[FoodEntry]] = None,
                            exercise_plans: Optional[List[ExercisePlan]] = None,
                            workout_logs: Optional[List[WorkoutLog]] = None) -> ContextBuildResult:
        """Minimal context for small on-device models."""
        budget = _Budget(LOCAL_MAX_CONTEXT_TOKENS)

        active_goals = [g for g in goals if g.is_active][:2]
        if active_goals:
            lines = [f"- {g.title} ({g.current_progress}%)" for g in active_goals]
            budget.add("\nGoals:\n" + "\n".join(lines) + "\n", "goals", len(lines))

        top_habits = sorted((h for h in habits if h.is_active),
                            key=lambda h: h.current_streak, reverse=True)[:2]
        if top_habits:
            lines = [f"- {h.title} ({h.current_streak} days)" for h in top_habits]
            budget.add("\nHabits:\n" + "\n".join(lines) + "\n", "habits", len(lines))

        if journal_entries:
            preview = _truncate(entry_text(journal_entries[0]), 100)
            budget.add(f"\nRecent reflection: {preview}\n", "journal_entries", 1)

        if food_entries:
            today_entries = [e for e in food_entries if e.timestamp.date() == date.today()]
            if today_entries:
                total_cal = sum(e.nutrition.calories for e in today_entries if e.nutrition)
                budget.add(f"\nFood today: {total_cal} cal ({len(today_entries)} meals)\n",
                           "food", len(today_entries))

        if workout_logs:
            week_ago = datetime.now() - timedelta(days=7)
            this_week = sum(1 for w in workout_logs if w.start_time > week_ago)
            if this_week:
                budget.add(f"\nWorkouts: {this_week} in last week\n", "workouts", this_week)

        if conversation_history:
            recent = conversation_history[-2:]
            lines = [f"{'You' if m.is_from_user else 'Me'}: {_truncate(m.content, 60)}"
                     for m in recent]
            budget.add("\nRecent:\n" + "\n".join(lines) + "\n", "conversation_messages", len(lines))

        return budget.result()

    # === Chat compaction ===

    def should_compact(self, history: List[Message]) -> bool:
        """Check if context needs compaction."""
        total_chars = sum(len(_role_and_content(m)[1]) for m in history)
        return total_chars > MAX_CONTEXT_CHARS or len(history) > 12

    def compact(self, history: List[Message],
                current_facts: Dict[str, Any] = None,
                previous_summary: str = "") -> CompactedContext:
        """
        Compact conversation history while preserving key information.

        Strategy:
        1. Keep last N messages verbatim (most relevant)
        2. Summarize older messages (and any earlier summary) into a brief context
        3. Extract key facts for the mentor's memory
        """
        normalized = [dict(zip(("role", "content"), _role_and_content(m))) for m in history]

        if len(normalized) <= self.max_recent:
            return CompactedContext(
                summary=previous_summary,
                recent_messages=normalized,
                extracted_facts=current_facts or {},
                original_length=len(normalized),
                compacted_length=len(normalized),
            )

        older_messages = normalized[:-self.max_recent]
        recent_messages = normalized[-self.max_recent:]

        summary = self._summarize_messages(older_messages, previous_summary)
        extracted = self._extract_facts(older_messages, current_facts)

        self.compaction_count += 1
        logger.info(f"Context compacted: {len(normalized)} → {len(recent_messages)} messages "
                    f"(compaction #{self.compaction_count})")

        return CompactedContext(
            summary=summary,
            recent_messages=recent_messages,
            extracted_facts=extracted,
            original_length=len(normalized),
            compacted_length=len(recent_messages),
            summarized_through=getattr(history[-self.max_recent - 1], "id", None),
        )

    def refresh(self, history: List[ChatMessage],
                previous: Optional[CompactedContext] = None) -> CompactedContext:
        """
        Compact a chat history incrementally.

        The previous summary is reused until twice `max_recent` messages have
        piled up after it; only then are the overflowing messages folded into
        a new summary, so a long conversation costs one summarization call
        every few turns instead of one per turn.
        """
        if previous is None:
            return self.compact(history)

        unsummarized = _messages_after(history, previous.summarized_through)
        if len(unsummarized) < 2 * self.max_recent:
            return CompactedContext(
                summary=previous.summary,
                recent_messages=[dict(zip(("role", "content"), _role_and_content(m)))
                                 for m in unsummarized],
                extracted_facts=previous.extracted_facts,
                original_length=len(history),
                compacted_length=len(unsummarized),
                summarized_through=previous.summarized_through,
            )

        compacted = self.compact(unsummarized, previous.extracted_facts, previous.summary)
        compacted.original_length = len(history)
        return compacted

    def _summarize_messages(self, messages: List[Dict[str, str]],
                            previous_summary: str = "") -> str:
        if not messages:
            return previous_summary

        if self.ai.has_api_key():
            try:
                conversation_text = "\n".join(f"{m['role']}: {m['content']}" for m in messages)
                earlier = f"Earlier summary: {previous_summary}\n\n" if previous_summary else ""
                prompt = f"""Summarize this mentoring conversation in 2-3 sentences.
Focus on: what the user is working on, how they are feeling, what was suggested.

{earlier}Conversation:
{conversation_text}

Summary:"""
                return self.ai.get_coaching_response(prompt)
            except Exception as e:
                logger.warning(f"LLM summarization failed: {e}")

        if previous_summary:
            return f"{previous_summary} Then {len(messages)} more messages were exchanged."
        return self._fallback_summary(messages)

    def _fallback_summary(self, messages: List[Dict[str, str]]) -> str:
        """Rule-based summary when LLM is unavailable."""
        user_msgs = [m["content"] for m in messages if m["role"] == "user"]
        if not user_msgs:
            return "Previous conversation context."
        return f"User initially discussed: '{user_msgs[0][:100]}...' ({len(messages)} messages exchanged)"

    def _extract_facts(self, messages: List[Dict[str, str]],
                       existing_facts: Dict[str, Any] = None) -> Dict[str, Any]:
        """Self-ratings ("stress is 8/10") and the overall mood of what the user wrote."""
        facts = existing_facts.copy() if existing_facts else {}
        user_text = " ".join(m["content"] for m in messages if m["role"] == "user").lower()

        for topic in RATED_TOPICS:
            match = re.search(rf"\b{topic}\w*\D{{0,30}}?(\d+)\s*(?:out of|/)\s*10", user_text)
            if match:
                facts[f"{topic}_rating"] = int(match.group(1))

        if any(word in user_text for word in POSITIVE_WORDS):
            facts["mood_indicator"] = "positive"
        elif any(word in user_text for word in NEGATIVE_WORDS):
            facts["mood_indicator"] = "negative"

        return facts

    def build_prompt_context(self, compacted: CompactedContext,
                             include_messages: bool = True) -> str:
        """Build a prompt-ready context string from compacted context."""
        parts = []
        if compacted.summary:
            parts.append(f"[Previous conversation summary: {compacted.summary}]")
        if compacted.extracted_facts:
            facts_str = ", ".join(f"{k}: {v}" for k, v in compacted.extracted_facts.items())
            parts.append(f"[Known facts: {facts_str}]")
        if include_messages:
            for msg in compacted.recent_messages:
                parts.append(f"{msg['role']}: {msg['content']}")
        return "\n".join(parts)
