"""Reflection session records.

A reflection session is a short guided conversation with the mentor
(up to five exchanges) followed by pattern analysis and a set of
recommended interventions. Actions the mentor proposes during the
conversation are tracked alongside so the session outcome can be
written back to the journal.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from models.goal import new_id, parse_datetime, format_datetime

logger = logging.getLogger(__name__)


class ReflectionSessionType(Enum):
    GENERAL = "general"
    GOAL_FOCUSED = "goal_focused"
    EMOTIONAL_CHECKIN = "emotional_checkin"
    CHALLENGE_ANALYSIS = "challenge_analysis"


class PatternType(Enum):
    IMPULSE_CONTROL = "impulse_control"
    NEGATIVE_THOUGHT_SPIRALS = "negative_thought_spirals"
    PERFECTIONISM = "perfectionism"
    AVOIDANCE = "avoidance"
    OVERWHELM = "overwhelm"
    LOW_MOTIVATION = "low_motivation"
    SELF_CRITICISM = "self_criticism"
    PROCRASTINATION = "procrastination"
    ANXIOUS_THINKING = "anxious_thinking"
    BLACK_AND_WHITE_THINKING = "black_and_white_thinking"

    @property
    def display_name(self) -> str:
        return _PATTERN_INFO[self][0]

    @property
    def description(self) -> str:
        return _PATTERN_INFO[self][1]


_PATTERN_INFO = {
    PatternType.IMPULSE_CONTROL: (
        "Impulse Control", "Difficulty resisting urges or acting on impulse"),
    PatternType.NEGATIVE_THOUGHT_SPIRALS: (
        "Negative Thought Spirals", "Getting caught in loops of negative or ruminating thoughts"),
    PatternType.PERFECTIONISM: (
        "Perfectionism", "Setting unrealistically high standards and being overly self-critical"),
    PatternType.AVOIDANCE: (
        "Avoidance", "Putting off or avoiding uncomfortable tasks or feelings"),
    PatternType.OVERWHELM: (
        "Overwhelm", "Feeling paralyzed by too many demands or responsibilities"),
    PatternType.LOW_MOTIVATION: (
        "Low Motivation", "Struggling to find energy or desire to take action"),
    PatternType.SELF_CRITICISM: (
        "Self-Criticism", "Being harsh or judgmental toward yourself"),
    PatternType.PROCRASTINATION: (
        "Procrastination", "Delaying important tasks despite knowing the consequences"),
    PatternType.ANXIOUS_THINKING: (
        "Anxious Thinking", "Worrying excessively about future outcomes"),
    PatternType.BLACK_AND_WHITE_THINKING: (
        "Black-and-White Thinking", "Seeing things in extremes without middle ground"),
}


class InterventionCategory(Enum):
    MINDFULNESS = "mindfulness"
    COGNITIVE = "cognitive"
    BEHAVIORAL = "behavioral"
    SELF_COMPASSION = "self_compassion"
    ACCEPTANCE = "acceptance"

    @property
    def display_name(self) -> str:
        return {
            InterventionCategory.MINDFULNESS: "Mindfulness",
            InterventionCategory.COGNITIVE: "Cognitive",
            InterventionCategory.BEHAVIORAL: "Behavioral",
            InterventionCategory.SELF_COMPASSION: "Self-Compassion",
            InterventionCategory.ACCEPTANCE: "Acceptance",
        }[self]


class ActionType(Enum):
    """Actions the mentor can propose. Values are the tool names the model uses."""
    CREATE_GOAL = "create_goal"
    UPDATE_GOAL = "update_goal"
    DELETE_GOAL = "delete_goal"
    MOVE_GOAL_TO_ACTIVE = "move_goal_to_active"
    MOVE_GOAL_TO_BACKLOG = "move_goal_to_backlog"
    COMPLETE_GOAL = "complete_goal"
    ABANDON_GOAL = "abandon_goal"
    CREATE_MILESTONE = "create_milestone"
    UPDATE_MILESTONE = "update_milestone"
    DELETE_MILESTONE = "delete_milestone"
    COMPLETE_MILESTONE = "complete_milestone"
    UNCOMPLETE_MILESTONE = "uncomplete_milestone"
    CREATE_HABIT = "create_habit"
    UPDATE_HABIT = "update_habit"
    DELETE_HABIT = "delete_habit"
    PAUSE_HABIT = "pause_habit"
    ACTIVATE_HABIT = "activate_habit"
    ARCHIVE_HABIT = "archive_habit"
    MARK_HABIT_COMPLETE = "mark_habit_complete"
    UNMARK_HABIT_COMPLETE = "unmark_habit_complete"
    CREATE_CHECKIN_TEMPLATE = "create_checkin_template"
    SCHEDULE_CHECKIN_REMINDER = "schedule_checkin_reminder"
    SAVE_SESSION_AS_JOURNAL = "save_session_as_journal"
    SCHEDULE_FOLLOWUP = "schedule_followup"
    RECORD_WIN = "record_win"


def parse_action_type(tool_name: str) -> Optional[ActionType]:
    """Map a tool name from the model to an ActionType, or None if unknown."""
    try:
        return ActionType(tool_name)
    except ValueError:
        logger.warning(f"Unknown tool name: {tool_name}")
        return None


def _enum_or_default(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


@dataclass
class ReflectionExchange:
    mentor_question: str
    user_response: str
    sequence_order: int
    follow_up_context: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "mentor_question": self.mentor_question,
            "user_response": self.user_response,
            "sequence_order": self.sequence_order,
            "follow_up_context": self.follow_up_context,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReflectionExchange":
        return cls(
            mentor_question=data["mentor_question"],
            user_response=data["user_response"],
            sequence_order=data["sequence_order"],
            follow_up_context=data.get("follow_up_context"),
        )


@dataclass
class DetectedPattern:
    type: PatternType
    confidence: float  # 0.0 - 1.0
    evidence: str
    description: str

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "confidence": self.confidence,
            "evidence": self.evidence,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DetectedPattern":
        return cls(
            type=_enum_or_default(PatternType, data.get("type"), PatternType.OVERWHELM),
            confidence=float(data.get("confidence", 0.5)),
            evidence=data.get("evidence", ""),
            description=data.get("description", ""),
        )


@dataclass
class Intervention:
    name: str
    description: str
    how_to_apply: str
    target_pattern: PatternType
    category: InterventionCategory
    habit_suggestion: Optional[str] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "how_to_apply": self.how_to_apply,
            "target_pattern": self.target_pattern.value,
            "category": self.category.value,
            "habit_suggestion": self.habit_suggestion,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Intervention":
        return cls(
            id=data.get("id") or new_id(),
            name=data["name"],
            description=data.get("description", ""),
            how_to_apply=data.get("how_to_apply", ""),
            target_pattern=_enum_or_default(
                PatternType, data.get("target_pattern"), PatternType.OVERWHELM),
            category=_enum_or_default(
                InterventionCategory, data.get("category"), InterventionCategory.BEHAVIORAL),
            habit_suggestion=data.get("habit_suggestion"),
        )


@dataclass
class ProposedAction:
    type: ActionType
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    proposed_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "parameters": self.parameters,
            "proposed_at": format_datetime(self.proposed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProposedAction":
        return cls(
            id=data.get("id") or new_id(),
            type=_enum_or_default(ActionType, data.get("type"), ActionType.CREATE_GOAL),
            description=data.get("description", ""),
            parameters=data.get("parameters", {}),
            proposed_at=parse_datetime(data.get("proposed_at")) or datetime.now(),
        )


@dataclass
class ExecutedAction:
    proposed_action_id: str
    type: ActionType
    description: str
    parameters: Dict[str, Any]
    confirmed: bool
    success: bool
    executed_at: datetime = field(default_factory=datetime.now)
    error_message: Optional[str] = None
    result_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "proposed_action_id": self.proposed_action_id,
            "type": self.type.value,
            "description": self.description,
            "parameters": self.parameters,
            "confirmed": self.confirmed,
            "success": self.success,
            "executed_at": format_datetime(self.executed_at),
            "error_message": self.error_message,
            "result_id": self.result_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExecutedAction":
        return cls(
            proposed_action_id=data["proposed_action_id"],
            type=_enum_or_default(ActionType, data.get("type"), ActionType.CREATE_GOAL),
            description=data.get("description", ""),
            parameters=data.get("parameters", {}),
            confirmed=data.get("confirmed", False),
            success=data.get("success", False),
            executed_at=parse_datetime(data.get("executed_at")) or datetime.now(),
            error_message=data.get("error_message"),
            result_id=data.get("result_id"),
        )


@dataclass
class SessionOutcome:
    actions_proposed: List[ProposedAction] = field(default_factory=list)
    actions_executed: List[ExecutedAction] = field(default_factory=list)
    checkin_templates_created: List[str] = field(default_factory=list)
    session_summary: Optional[str] = None

    @property
    def total_actions_proposed(self) -> int:
        return len(self.actions_proposed)

    @property
    def total_actions_executed(self) -> int:
        return sum(1 for a in self.actions_executed if a.confirmed)

    @property
    def total_actions_succeeded(self) -> int:
        return sum(1 for a in self.actions_executed if a.success)

    @property
    def total_actions_failed(self) -> int:
        return sum(1 for a in self.actions_executed if not a.success)

    def to_dict(self) -> dict:
        return {
            "actions_proposed": [a.to_dict() for a in self.actions_proposed],
            "actions_executed": [a.to_dict() for a in self.actions_executed],
            "checkin_templates_created": list(self.checkin_templates_created),
            "session_summary": self.session_summary,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionOutcome":
        return cls(
            actions_proposed=[ProposedAction.from_dict(a) for a in data.get("actions_proposed", [])],
            actions_executed=[ExecutedAction.from_dict(a) for a in data.get("actions_executed", [])],
            checkin_templates_created=data.get("checkin_templates_created", []),
            session_summary=data.get("session_summary"),
        )


@dataclass
class ReflectionSession:
    type: ReflectionSessionType = ReflectionSessionType.GENERAL
    exchanges: List[ReflectionExchange] = field(default_factory=list)
    patterns: List[DetectedPattern] = field(default_factory=list)
    recommendations: List[Intervention] = field(default_factory=list)
    summary: Optional[str] = None
    linked_journal_id: Optional[str] = None
    linked_goal_id: Optional[str] = None
    initial_mood_rating: Optional[int] = None
    outcome: Optional[SessionOutcome] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    id: str = field(default_factory=new_id)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.completed_at is None:
            return None
        return self.completed_at - self.started_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "exchanges": [e.to_dict() for e in self.exchanges],
            "patterns": [p.to_dict() for p in self.patterns],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "summary": self.summary,
            "linked_journal_id": self.linked_journal_id,
            "linked_goal_id": self.linked_goal_id,
            "initial_mood_rating": self.initial_mood_rating,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "started_at": format_datetime(self.started_at),
            "completed_at": format_datetime(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReflectionSession":
        outcome = data.get("outcome")
        return cls(
            id=data.get("id") or new_id(),
            type=_enum_or_default(
                ReflectionSessionType, data.get("type"), ReflectionSessionType.GENERAL),
            exchanges=[ReflectionExchange.from_dict(e) for e in data.get("exchanges", [])],
            patterns=[DetectedPattern.from_dict(p) for p in data.get("patterns", [])],
            recommendations=[Intervention.from_dict(r) for r in data.get("recommendations", [])],
            summary=data.get("summary"),
            linked_journal_id=data.get("linked_journal_id"),
            linked_goal_id=data.get("linked_goal_id"),
            initial_mood_rating=data.get("initial_mood_rating"),
            outcome=SessionOutcome.from_dict(outcome) if outcome else None,
            started_at=parse_datetime(data.get("started_at")) or datetime.now(),
            completed_at=parse_datetime(data.get("completed_at")),
        )
