"""Exercise plans and logged workouts."""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from models.goal import new_id, parse_datetime, format_datetime


class ExerciseType(Enum):
    STRENGTH = "strength"  # Sets x reps x weight
    TIMED = "timed"        # Duration, optional level and distance
    CARDIO = "cardio"


class ExerciseCategory(Enum):
    UPPER_BODY = "upper_body"
    LOWER_BODY = "lower_body"
    CORE = "core"
    CARDIO = "cardio"
    FLEXIBILITY = "flexibility"
    FULL_BODY = "full_body"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


def _number(value: Optional[float]) -> str:
    return f"{float(value):.1f}"


@dataclass
class PlanExercise:
    """One exercise inside a plan, with its target settings."""
    name: str
    type: ExerciseType = ExerciseType.STRENGTH
    order: int = 0
    sets: Optional[int] = 3
    reps: Optional[int] = 10
    weight: Optional[float] = None
    duration_minutes: Optional[int] = None
    level: Optional[int] = None
    target_distance: Optional[float] = None
    notes: Optional[str] = None
    exercise_id: str = field(default_factory=new_id)

    @property
    def settings_summary(self) -> str:
        """Short target line, e.g. "3 × 10 @ 20.0" or "30m · L5 · 2.0km"."""
        if self.type == ExerciseType.STRENGTH:
            if self.sets is None or self.reps is None:
                return "Not set"
            summary = f"{self.sets} × {self.reps}"
            if self.weight:
                summary += f" @ {_number(self.weight)}"
            return summary

        parts = []
        if self.duration_minutes:
            parts.append(f"{self.duration_minutes}m")
        if self.level:
            parts.append(f"L{self.level}")
        if self.target_distance:
            parts.append(f"{_number(self.target_distance)}km")
        return " · ".join(parts) if parts else "Not set"

    def to_dict(self) -> dict:
        return {
            "exercise_id": self.exercise_id,
            "name": self.name,
            "type": self.type.value,
            "order": self.order,
            "sets": self.sets,
            "reps": self.reps,
            "weight": self.weight,
            "duration_minutes": self.duration_minutes,
            "level": self.level,
            "target_distance": self.target_distance,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlanExercise":
        return cls(
            exercise_id=data.get("exercise_id") or new_id(),
            name=data["name"],
            type=ExerciseType(data.get("type", "strength")),
            order=data.get("order", 0),
            sets=data.get("sets"),
            reps=data.get("reps"),
            weight=data.get("weight"),
            duration_minutes=data.get("duration_minutes"),
            level=data.get("level"),
            target_distance=data.get("target_distance"),
            notes=data.get("notes"),
        )


@dataclass
class ExercisePlan:
    name: str
    primary_category: ExerciseCategory = ExerciseCategory.FULL_BODY
    description: str = ""
    exercises: List[PlanExercise] = field(default_factory=list)
    is_preset: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    last_used: Optional[datetime] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "primary_category": self.primary_category.value,
            "exercises": [e.to_dict() for e in self.exercises],
            "is_preset": self.is_preset,
            "created_at": format_datetime(self.created_at),
            "last_used": format_datetime(self.last_used),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExercisePlan":
        return cls(
            id=data.get("id") or new_id(),
            name=data["name"],
            description=data.get("description", ""),
            primary_category=ExerciseCategory(data.get("primary_category", "full_body")),
            exercises=[PlanExercise.from_dict(e) for e in data.get("exercises", [])],
            is_preset=data.get("is_preset", False),
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
            last_used=parse_datetime(data.get("last_used")),
        )


@dataclass
class ExerciseSet:
    reps: int = 0
    weight: Optional[float] = None
    duration_minutes: Optional[int] = None
    level: Optional[int] = None
    distance: Optional[float] = None
    completed: bool = True

    def to_dict(self) -> dict:
        return {
            "reps": self.reps,
            "weight": self.weight,
            "duration_minutes": self.duration_minutes,
            "level": self.level,
            "distance": self.distance,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExerciseSet":
        return cls(
            reps=data.get("reps", 0),
            weight=data.get("weight"),
            duration_minutes=data.get("duration_minutes"),
            level=data.get("level"),
            distance=data.get("distance"),
            completed=data.get("completed", True),
        )


@dataclass
class LoggedExercise:
    name: str
    type: ExerciseType = ExerciseType.STRENGTH
    exercise_id: Optional[str] = None
    completed_sets: List[ExerciseSet] = field(default_factory=list)
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "exercise_id": self.exercise_id,
            "name": self.name,
            "type": self.type.value,
            "completed_sets": [s.to_dict() for s in self.completed_sets],
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LoggedExercise":
        return cls(
            exercise_id=data.get("exercise_id"),
            name=data["name"],
            type=ExerciseType(data.get("type", "strength")),
            completed_sets=[ExerciseSet.from_dict(s) for s in data.get("completed_sets", [])],
            notes=data.get("notes"),
        )


@dataclass
class WorkoutLog:
    """A workout in progress (no end_time yet) or finished."""
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    exercises: List[LoggedExercise] = field(default_factory=list)
    notes: Optional[str] = None
    rating: Optional[int] = None  # 1-5
    calories_burned: Optional[int] = None
    id: str = field(default_factory=new_id)

    @property
    def duration(self) -> Optional[timedelta]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def duration_minutes(self) -> Optional[int]:
        duration = self.duration
        return int(duration.total_seconds() // 60) if duration is not None else None

    @property
    def total_sets_completed(self) -> int:
        return sum(
            1 for exercise in self.exercises
            for s in exercise.completed_sets if s.completed
        )

    @property
    def total_reps_completed(self) -> int:
        return sum(
            s.reps for exercise in self.exercises
            for s in exercise.completed_sets if s.completed
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "plan_name": self.plan_name,
            "start_time": format_datetime(self.start_time),
            "end_time": format_datetime(self.end_time),
            "exercises": [e.to_dict() for e in self.exercises],
            "notes": self.notes,
            "rating": self.rating,
            "calories_burned": self.calories_burned,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkoutLog":
        return cls(
            id=data.get("id") or new_id(),
            plan_id=data.get("plan_id"),
            plan_name=data.get("plan_name"),
            start_time=parse_datetime(data.get("start_time")) or datetime.now(),
            end_time=parse_datetime(data.get("end_time")),
            exercises=[LoggedExercise.from_dict(e) for e in data.get("exercises", [])],
            notes=data.get("notes"),
            rating=data.get("rating"),
            calories_burned=data.get("calories_burned"),
        )
