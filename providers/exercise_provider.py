"""Exercise plans and workout logging.

A workout is started from a plan (or freestyle), sets are logged against it
while it is active, and finishing it stores the log and stamps the plan's
``last_used``. Only finished workouts are persisted.
"""
import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from models.exercise import (
    ExerciseCategory,
    ExercisePlan,
    ExerciseSet,
    ExerciseType,
    LoggedExercise,
    PlanExercise,
    WorkoutLog,
)
from providers.base import JsonRecordStore

logger = logging.getLogger(__name__)

# (name, type, sets, reps, duration_minutes) used by quick plans
EXERCISE_LIBRARY: Dict[ExerciseCategory, List[Tuple[str, ExerciseType, Optional[int], Optional[int], Optional[int]]]] = {
    ExerciseCategory.UPPER_BODY: [
        ("Push-ups", ExerciseType.STRENGTH, 3, 10, None),
        ("Dumbbell Rows", ExerciseType.STRENGTH, 3, 10, None),
        ("Shoulder Press", ExerciseType.STRENGTH, 3, 10, None),
    ],
    ExerciseCategory.LOWER_BODY: [
        ("Squats", ExerciseType.STRENGTH, 3, 12, None),
        ("Lunges", ExerciseType.STRENGTH, 3, 10, None),
        ("Glute Bridges", ExerciseType.STRENGTH, 3, 12, None),
    ],
    ExerciseCategory.CORE: [
        ("Plank", ExerciseType.TIMED, None, None, 1),
        ("Crunches", ExerciseType.STRENGTH, 3, 15, None),
        ("Dead Bugs", ExerciseType.STRENGTH, 3, 10, None),
    ],
    ExerciseCategory.CARDIO: [
        ("Brisk Walk", ExerciseType.CARDIO, None, None, 20),
        ("Cycling", ExerciseType.CARDIO, None, None, 20),
    ],
    ExerciseCategory.FLEXIBILITY: [
        ("Hamstring Stretch", ExerciseType.TIMED, None, None, 2),
        ("Hip Flexor Stretch", ExerciseType.TIMED, None, None, 2),
    ],
    ExerciseCategory.FULL_BODY: [
        ("Burpees", ExerciseType.STRENGTH, 3, 8, None),
        ("Squats", ExerciseType.STRENGTH, 3, 12, None),
        ("Push-ups", ExerciseType.STRENGTH, 3, 10, None),
    ],
}


class WorkoutNotActiveError(RuntimeError):
    """Raised when logging against a workout that was never started."""


class ExerciseProvider:

    def __init__(self, storage_dir: Optional[Path] = None):
        self._plans = JsonRecordStore("exercise_plans.json", ExercisePlan.from_dict, storage_dir)
        self._logs = JsonRecordStore("workout_logs.json", WorkoutLog.from_dict, storage_dir)
        self.active_workout: Optional[WorkoutLog] = None

    @property
    def plans(self) -> List[ExercisePlan]:
        """Most recently used first, never-used plans last."""
        return sorted(self._plans.items,
                      key=lambda p: p.last_used or datetime.min, reverse=True)

    @property
    def workout_logs(self) -> List[WorkoutLog]:
        return sorted(self._logs.items, key=lambda w: w.start_time, reverse=True)

    # === Plans ===

    def add_plan(self, plan: ExercisePlan) -> ExercisePlan:
        if not plan.name.strip():
            raise ValueError("Plan name cannot be empty")
        self._plans.add(plan)
        logger.info(f"Exercise plan added: {plan.name} ({len(plan.exercises)} exercises)")
        return plan

    def update_plan(self, plan: ExercisePlan) -> ExercisePlan:
        return self._plans.replace(plan, "Exercise plan")

    def delete_plan(self, plan_id: str) -> ExercisePlan:
        return self._plans.remove(plan_id, "Exercise plan")

    def find_plan(self, plan_id: str) -> Optional[ExercisePlan]:
        return self._plans.find(plan_id)

    def create_quick_plan(self, category: ExerciseCategory) -> ExercisePlan:
        """Build (but do not store) a plan from the built-in exercises for a category."""
        exercises = [
            PlanExercise(name=name, type=kind, order=index,
                         sets=sets, reps=reps, duration_minutes=minutes)
            for index, (name, kind, sets, reps, minutes)
            in enumerate(EXERCISE_LIBRARY.get(category, []))
        ]
        return ExercisePlan(
            name=f"{category.display_name} Workout",
            primary_category=category,
            exercises=exercises,
        )

    # === Workouts ===

    def start_workout(self, plan: Optional[ExercisePlan] = None) -> WorkoutLog:
        exercises = [
            LoggedExercise(name=pe.name, type=pe.type, exercise_id=pe.exercise_id)
            for pe in (plan.exercises if plan else [])
        ]
        self.active_workout = WorkoutLog(
            plan_id=plan.id if plan else None,
            plan_name=plan.name if plan else None,
            exercises=exercises,
        )
        return self.active_workout

    def _require_active(self) -> WorkoutLog:
        if self.active_workout is None:
            raise WorkoutNotActiveError("No workout in progress")
        return self.active_workout

    def log_set(self, exercise_name: str, exercise_set: ExerciseSet,
                exercise_type: ExerciseType = ExerciseType.STRENGTH) -> LoggedExercise:
        """Record a set; exercises not in the plan are appended as freestyle."""
        workout = self._require_active()
        for exercise in workout.exercises:
            if exercise.name.lower() == exercise_name.lower():
                exercise.completed_sets.append(exercise_set)
                return exercise

        exercise = LoggedExercise(name=exercise_name, type=exercise_type,
                                  completed_sets=[exercise_set])
        workout.exercises.append(exercise)
        return exercise

    def remove_last_set(self, exercise_name: str) -> Optional[ExerciseSet]:
        workout = self._require_active()
        for exercise in workout.exercises:
            if exercise.name.lower() == exercise_name.lower() and exercise.completed_sets:
                return exercise.completed_sets.pop()
        return None

    def finish_workout(self, notes: Optional[str] = None, rating: Optional[int] = None,
                       calories_burned: Optional[int] = None,
                       end_time: Optional[datetime] = None) -> WorkoutLog:
        workout = self._require_active()
        workout.end_time = end_time or datetime.now()
        workout.notes = notes
        workout.rating = rating
        workout.calories_burned = calories_burned
        self._logs.add(workout)
        self.active_workout = None

        if workout.plan_id:
            plan = self._plans.find(workout.plan_id)
            if plan:
                plan.last_used = workout.end_time
                self._plans.replace(plan, "Exercise plan")

        logger.info(f"Workout finished: {workout.plan_name or 'Freestyle'}, "
                    f"{workout.total_sets_completed} sets")
        return workout

    def cancel_workout(self):
        self.active_workout = None

    def log_workout(self, workout: WorkoutLog) -> WorkoutLog:
        """Store an already finished workout (imports and back-filling)."""
        return self._logs.add(workout)

    # === Stats ===

    def recent_workouts(self, days: int = 7, now: Optional[datetime] = None) -> List[WorkoutLog]:
        cutoff = (now or datetime.now()) - timedelta(days=days)
        return [w for w in self.workout_logs if w.start_time > cutoff]

    def workouts_this_week(self, today: Optional[date] = None) -> int:
        today = today or date.today()
        week_start = today - timedelta(days=today.weekday())
        return sum(1 for w in self._logs.items if w.start_time.date() >= week_start)

    def today_calories(self, today: Optional[date] = None) -> int:
        today = today or date.today()
        return sum(w.calories_burned or 0 for w in self._logs.items
                   if w.start_time.date() == today)

    def current_streak(self, today: Optional[date] = None) -> int:
        """Consecutive days with a workout, ending today or yesterday."""
        today = today or date.today()
        days = {w.start_time.date() for w in self._logs.items}
        if not days:
            return 0

        day = today if today in days else today - timedelta(days=1)
        streak = 0
        while day in days:
            streak += 1
            day -= timedelta(days=1)
        return streak
