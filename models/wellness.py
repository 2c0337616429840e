"""Wins, worry time and food log records."""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import List, Optional

from models.goal import new_id, parse_datetime, format_datetime


# ---------------------------------------------------------------------------
# Wins
# ---------------------------------------------------------------------------

class WinSource(Enum):
    REFLECTION = "reflection"
    JOURNAL = "journal"
    MANUAL = "manual"
    GOAL_COMPLETE = "goal_complete"
    MILESTONE_COMPLETE = "milestone_complete"
    STREAK_MILESTONE = "streak_milestone"


class WinCategory(Enum):
    HEALTH = "health"
    FITNESS = "fitness"
    CAREER = "career"
    LEARNING = "learning"
    RELATIONSHIPS = "relationships"
    FINANCE = "finance"
    PERSONAL = "personal"
    HABIT = "habit"
    OTHER = "other"


@dataclass
class Win:
    description: str
    source: WinSource = WinSource.MANUAL
    category: Optional[WinCategory] = None
    linked_goal_id: Optional[str] = None
    linked_habit_id: Optional[str] = None
    source_session_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "source": self.source.value,
            "category": self.category.value if self.category else None,
            "linked_goal_id": self.linked_goal_id,
            "linked_habit_id": self.linked_habit_id,
            "source_session_id": self.source_session_id,
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Win":
        category = data.get("category")
        return cls(
            id=data.get("id") or new_id(),
            description=data["description"],
            source=WinSource(data.get("source", "manual")),
            category=WinCategory(category) if category else None,
            linked_goal_id=data.get("linked_goal_id"),
            linked_habit_id=data.get("linked_habit_id"),
            source_session_id=data.get("source_session_id"),
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
        )


# ---------------------------------------------------------------------------
# Worry time
# ---------------------------------------------------------------------------

class WorryStatus(Enum):
    POSTPONED = "postponed"    # Waiting for worry time
    PROCESSED = "processed"
    RESOLVED = "resolved"
    ACTIONABLE = "actionable"  # Turned into a goal or task


@dataclass
class Worry:
    content: str
    status: WorryStatus = WorryStatus.POSTPONED
    recorded_at: datetime = field(default_factory=datetime.now)
    processed_at: Optional[datetime] = None
    outcome: Optional[str] = None
    action_taken: Optional[str] = None
    linked_goal_id: Optional[str] = None
    id: str = field(default_factory=new_id)

    @property
    def is_pending(self) -> bool:
        return self.status == WorryStatus.POSTPONED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "status": self.status.value,
            "recorded_at": format_datetime(self.recorded_at),
            "processed_at": format_datetime(self.processed_at),
            "outcome": self.outcome,
            "action_taken": self.action_taken,
            "linked_goal_id": self.linked_goal_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Worry":
        return cls(
            id=data.get("id") or new_id(),
            content=data["content"],
            status=WorryStatus(data.get("status", "postponed")),
            recorded_at=parse_datetime(data.get("recorded_at")) or datetime.now(),
            processed_at=parse_datetime(data.get("processed_at")),
            outcome=data.get("outcome"),
            action_taken=data.get("action_taken"),
            linked_goal_id=data.get("linked_goal_id"),
        )


@dataclass
class WorrySession:
    scheduled_for: datetime
    planned_duration_minutes: int = 20
    completed: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    actual_duration_minutes: Optional[int] = None
    processed_worry_ids: List[str] = field(default_factory=list)
    anxiety_before: Optional[int] = None  # 1-10
    anxiety_after: Optional[int] = None   # 1-10
    notes: Optional[str] = None
    insights: Optional[str] = None
    id: str = field(default_factory=new_id)

    @property
    def anxiety_reduction(self) -> Optional[int]:
        if self.anxiety_before is None or self.anxiety_after is None:
            return None
        return self.anxiety_before - self.anxiety_after

    @property
    def was_effective(self) -> bool:
        reduction = self.anxiety_reduction
        return reduction is not None and reduction > 0

    @property
    def status(self) -> str:
        if self.completed:
            return "Completed"
        now = datetime.now()
        if self.scheduled_for.date() == now.date():
            return "Today"
        if self.scheduled_for < now:
            return "Missed"
        return "Upcoming"

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("scheduled_for", "started_at", "completed_at"):
            data[key] = format_datetime(getattr(self, key))
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "WorrySession":
        data = dict(data)
        for key in ("scheduled_for", "started_at", "completed_at"):
            data[key] = parse_datetime(data.get(key))
        return cls(**data)


# ---------------------------------------------------------------------------
# Food log
# ---------------------------------------------------------------------------

class MealType(Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


@dataclass
class NutritionEstimate:
    calories: int = 0
    protein_grams: int = 0
    carbs_grams: int = 0
    fat_grams: int = 0
    saturated_fat_grams: int = 0
    unsaturated_fat_grams: int = 0
    trans_fat_grams: int = 0
    fiber_grams: int = 0
    sugar_grams: int = 0
    confidence: Optional[str] = None  # high / medium / low
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "NutritionEstimate":
        return cls(**data)


@dataclass
class FoodEntry:
    description: str
    meal_type: MealType = MealType.SNACK
    nutrition: Optional[NutritionEstimate] = None
    notes: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "meal_type": self.meal_type.value,
            "nutrition": self.nutrition.to_dict() if self.nutrition else None,
            "notes": self.notes,
            "timestamp": format_datetime(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FoodEntry":
        nutrition = data.get("nutrition")
        return cls(
            id=data.get("id") or new_id(),
            description=data["description"],
            meal_type=MealType(data.get("meal_type", "snack")),
            nutrition=NutritionEstimate.from_dict(nutrition) if nutrition else None,
            notes=data.get("notes"),
            timestamp=parse_datetime(data.get("timestamp")) or datetime.now(),
        )
