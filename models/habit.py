"""Habit records and their formation lifecycle."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from config.settings import HABIT_DAYS_TO_FORMATION
from models.goal import new_id, parse_datetime, format_datetime


class HabitStatus(Enum):
    ACTIVE = "active"        # Currently working on (limited)
    BACKLOG = "backlog"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class HabitFrequency(Enum):
    DAILY = "daily"
    THREE_TIMES = "three_times"
    FIVE_TIMES = "five_times"
    CUSTOM = "custom"


class HabitMaturity(Enum):
    FORMING = "forming"          # 0-21 days
    ESTABLISHED = "established"  # 22-65 days
    INGRAINED = "ingrained"      # 66+ days, graduated


@dataclass
class Habit:
    title: str
    description: str = ""
    linked_goal_id: Optional[str] = None
    frequency: HabitFrequency = HabitFrequency.DAILY
    target_count: int = 1
    completion_dates: List[date] = field(default_factory=list)
    current_streak: int = 0
    longest_streak: int = 0
    status: HabitStatus = HabitStatus.ACTIVE
    maturity: HabitMaturity = HabitMaturity.FORMING
    days_to_formation: int = HABIT_DAYS_TO_FORMATION
    graduated_at: Optional[datetime] = None
    is_system_created: bool = False
    system_type: Optional[str] = None
    sort_order: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    @property
    def is_active(self) -> bool:
        return self.status == HabitStatus.ACTIVE

    @property
    def weekly_target(self) -> int:
        if self.frequency == HabitFrequency.DAILY:
            return 7
        if self.frequency == HabitFrequency.THREE_TIMES:
            return 3
        if self.frequency == HabitFrequency.FIVE_TIMES:
            return 5
        return self.target_count

    @property
    def can_graduate(self) -> bool:
        return (self.current_streak >= self.days_to_formation
                and self.maturity != HabitMaturity.INGRAINED)

    @property
    def formation_progress(self) -> float:
        return min(max(self.current_streak / self.days_to_formation, 0.0), 1.0)

    @property
    def days_until_graduation(self) -> int:
        return min(max(self.days_to_formation - self.current_streak, 0), self.days_to_formation)

    @property
    def is_completed_today(self) -> bool:
        return date.today() in self.completion_dates

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "linked_goal_id": self.linked_goal_id,
            "frequency": self.frequency.value,
            "target_count": self.target_count,
            "completion_dates": [d.isoformat() for d in self.completion_dates],
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "status": self.status.value,
            "maturity": self.maturity.value,
            "days_to_formation": self.days_to_formation,
            "graduated_at": format_datetime(self.graduated_at),
            "is_system_created": self.is_system_created,
            "system_type": self.system_type,
            "sort_order": self.sort_order,
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Habit":
        return cls(
            id=data.get("id") or new_id(),
            title=data["title"],
            description=data.get("description", ""),
            linked_goal_id=data.get("linked_goal_id"),
            frequency=HabitFrequency(data.get("frequency", "daily")),
            target_count=data.get("target_count", 1),
            completion_dates=[date.fromisoformat(d[:10]) for d in data.get("completion_dates", [])],
            current_streak=data.get("current_streak", 0),
            longest_streak=data.get("longest_streak", 0),
            status=HabitStatus(data.get("status", "active")),
            maturity=HabitMaturity(data.get("maturity", "forming")),
            days_to_formation=data.get("days_to_formation", HABIT_DAYS_TO_FORMATION),
            graduated_at=parse_datetime(data.get("graduated_at")),
            is_system_created=data.get("is_system_created", False),
            system_type=data.get("system_type"),
            sort_order=data.get("sort_order", 0),
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
            updated_at=parse_datetime(data.get("updated_at")) or datetime.now(),
        )
