"""Goal and milestone records."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


def new_id() -> str:
    return str(uuid.uuid4())


def parse_datetime(value) -> Optional[datetime]:
    """Accept an ISO string, a datetime or None."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class GoalCategory(Enum):
    HEALTH = "health"
    FITNESS = "fitness"
    CAREER = "career"
    LEARNING = "learning"
    RELATIONSHIPS = "relationships"
    FINANCE = "finance"
    PERSONAL = "personal"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return _CATEGORY_DISPLAY[self]


_CATEGORY_DISPLAY = {
    GoalCategory.HEALTH: "Health & Wellness",
    GoalCategory.FITNESS: "Fitness",
    GoalCategory.CAREER: "Career",
    GoalCategory.LEARNING: "Learning",
    GoalCategory.RELATIONSHIPS: "Relationships",
    GoalCategory.FINANCE: "Finance",
    GoalCategory.PERSONAL: "Personal Development",
    GoalCategory.OTHER: "Other",
}


class GoalStatus(Enum):
    ACTIVE = "active"
    BACKLOG = "backlog"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass
class Milestone:
    goal_id: str
    title: str
    description: str = ""
    order: int = 0
    target_date: Optional[datetime] = None
    is_completed: bool = False
    completed_date: Optional[datetime] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "goal_id": self.goal_id,
            "title": self.title,
            "description": self.description,
            "order": self.order,
            "target_date": format_datetime(self.target_date),
            "is_completed": self.is_completed,
            "completed_date": format_datetime(self.completed_date),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Milestone":
        return cls(
            id=data.get("id") or new_id(),
            goal_id=data["goal_id"],
            title=data["title"],
            description=data.get("description", ""),
            order=data.get("order", 0),
            target_date=parse_datetime(data.get("target_date")),
            is_completed=data.get("is_completed", False),
            completed_date=parse_datetime(data.get("completed_date")),
        )


@dataclass
class Goal:
    """A user goal with optional milestones.

    ``current_progress`` is a 0-100 percentage the user (or a milestone
    completion) sets; it is never derived automatically.
    """
    title: str
    description: str = ""
    category: GoalCategory = GoalCategory.PERSONAL
    status: GoalStatus = GoalStatus.ACTIVE
    target_date: Optional[datetime] = None
    current_progress: int = 0
    milestones: List[Milestone] = field(default_factory=list)
    sort_order: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    @property
    def is_active(self) -> bool:
        return self.status == GoalStatus.ACTIVE

    @property
    def completed_milestones(self) -> int:
        return sum(1 for m in self.milestones if m.is_completed)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "status": self.status.value,
            "target_date": format_datetime(self.target_date),
            "current_progress": self.current_progress,
            "milestones": [m.to_dict() for m in self.milestones],
            "sort_order": self.sort_order,
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Goal":
        return cls(
            id=data.get("id") or new_id(),
            title=data["title"],
            description=data.get("description", ""),
            category=GoalCategory(data.get("category", "personal")),
            status=GoalStatus(data.get("status", "active")),
            target_date=parse_datetime(data.get("target_date")),
            current_progress=data.get("current_progress", 0),
            milestones=[Milestone.from_dict(m) for m in data.get("milestones", [])],
            sort_order=data.get("sort_order", 0),
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
        )
