"""Behavioural activation: a library of activities and a schedule of them."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from models.goal import new_id, parse_datetime, format_datetime


class ActivityCategory(Enum):
    PLEASURE = "pleasure"
    ACHIEVEMENT = "achievement"
    SOCIAL = "social"
    PHYSICAL = "physical"
    CREATIVE = "creative"
    SELF_CARE = "self_care"
    ROUTINE = "routine"
    VALUES_BASED = "values_based"
    LEARNING = "learning"
    RELAXATION = "relaxation"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", "-").title()


ACTIVITY_EXAMPLES = {
    ActivityCategory.PLEASURE: ["Listen to music", "Have a cup of tea in the garden"],
    ActivityCategory.ACHIEVEMENT: ["Clear one drawer", "Reply to a put-off email"],
    ActivityCategory.SOCIAL: ["Text a friend", "Walk with a neighbour"],
    ActivityCategory.PHYSICAL: ["Ten-minute walk", "Stretch before bed"],
    ActivityCategory.CREATIVE: ["Sketch for fifteen minutes", "Bake something new"],
    ActivityCategory.SELF_CARE: ["Take a long shower", "Cook a proper meal"],
    ActivityCategory.ROUTINE: ["Do the washing up", "Make the bed"],
    ActivityCategory.VALUES_BASED: ["Volunteer for an hour", "Call a family member"],
    ActivityCategory.LEARNING: ["Read a chapter", "Practise a language for ten minutes"],
    ActivityCategory.RELAXATION: ["Five minutes of breathing", "Sit in the park"],
}


@dataclass
class Activity:
    name: str
    category: ActivityCategory = ActivityCategory.OTHER
    description: Optional[str] = None
    estimated_minutes: Optional[int] = None
    is_system_defined: bool = False
    tags: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "description": self.description,
            "estimated_minutes": self.estimated_minutes,
            "is_system_defined": self.is_system_defined,
            "tags": list(self.tags),
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Activity":
        try:
            category = ActivityCategory(data.get("category"))
        except ValueError:
            category = ActivityCategory.OTHER
        return cls(
            id=data.get("id") or new_id(),
            name=data["name"],
            category=category,
            description=data.get("description"),
            estimated_minutes=data.get("estimated_minutes"),
            is_system_defined=data.get("is_system_defined", False),
            tags=list(data.get("tags") or []),
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
        )


@dataclass
class ScheduledActivity:
    """A planned activity, later marked completed (with ratings) or skipped."""
    activity_id: str
    activity_name: str
    scheduled_for: datetime
    scheduled_duration_minutes: Optional[int] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    actual_duration_minutes: Optional[int] = None
    mood_before: Optional[int] = None  # 1-5 for all ratings
    mood_after: Optional[int] = None
    enjoyment_rating: Optional[int] = None
    accomplishment_rating: Optional[int] = None
    notes: Optional[str] = None
    skipped: bool = False
    skip_notes: Optional[str] = None
    id: str = field(default_factory=new_id)

    @property
    def mood_change(self) -> Optional[int]:
        if self.mood_before is None or self.mood_after is None:
            return None
        return self.mood_after - self.mood_before

    def status(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        if self.completed:
            return "Completed"
        if self.skipped:
            return "Skipped"
        if self.scheduled_for < now:
            return "Missed"
        if self.scheduled_for.date() == now.date():
            return "Today"
        return "Scheduled"

    def is_on(self, day: date) -> bool:
        return self.scheduled_for.date() == day

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "activity_id": self.activity_id,
            "activity_name": self.activity_name,
            "scheduled_for": format_datetime(self.scheduled_for),
            "scheduled_duration_minutes": self.scheduled_duration_minutes,
            "completed": self.completed,
            "completed_at": format_datetime(self.completed_at),
            "actual_duration_minutes": self.actual_duration_minutes,
            "mood_before": self.mood_before,
            "mood_after": self.mood_after,
            "enjoyment_rating": self.enjoyment_rating,
            "accomplishment_rating": self.accomplishment_rating,
            "notes": self.notes,
            "skipped": self.skipped,
            "skip_notes": self.skip_notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScheduledActivity":
        return cls(
            id=data.get("id") or new_id(),
            activity_id=data["activity_id"],
            activity_name=data.get("activity_name", ""),
            scheduled_for=parse_datetime(data["scheduled_for"]),
            scheduled_duration_minutes=data.get("scheduled_duration_minutes"),
            completed=data.get("completed", False),
            completed_at=parse_datetime(data.get("completed_at")),
            actual_duration_minutes=data.get("actual_duration_minutes"),
            mood_before=data.get("mood_before"),
            mood_after=data.get("mood_after"),
            enjoyment_rating=data.get("enjoyment_rating"),
            accomplishment_rating=data.get("accomplishment_rating"),
            notes=data.get("notes"),
            skipped=data.get("skipped", False),
            skip_notes=data.get("skip_notes"),
        )
