"""Behavioural activation: schedule small activities and rate how they felt."""
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from models.activity import ACTIVITY_EXAMPLES, Activity, ActivityCategory, ScheduledActivity
from providers.base import JsonRecordStore

logger = logging.getLogger(__name__)


def _check_rating(name: str, value: Optional[int]):
    if value is not None and not 1 <= value <= 5:
        raise ValueError(f"{name} must be between 1 and 5")


class ActivityProvider:

    def __init__(self, storage_dir: Optional[Path] = None):
        self._activities = JsonRecordStore("activities.json", Activity.from_dict, storage_dir)
        self._scheduled = JsonRecordStore("scheduled_activities.json",
                                          ScheduledActivity.from_dict, storage_dir)

    @property
    def activities(self) -> List[Activity]:
        return list(self._activities.items)

    @property
    def user_activities(self) -> List[Activity]:
        return [a for a in self._activities.items if not a.is_system_defined]

    def activities_in(self, category: ActivityCategory) -> List[Activity]:
        return [a for a in self._activities.items if a.category == category]

    @property
    def scheduled_activities(self) -> List[ScheduledActivity]:
        return sorted(self._scheduled.items, key=lambda s: s.scheduled_for)

    def activities_on(self, day: Optional[date] = None) -> List[ScheduledActivity]:
        day = day or date.today()
        return [s for s in self.scheduled_activities if s.is_on(day)]

    def upcoming_activities(self, now: Optional[datetime] = None) -> List[ScheduledActivity]:
        now = now or datetime.now()
        return [s for s in self.scheduled_activities
                if not s.completed and not s.skipped and s.scheduled_for > now]

    @property
    def completed_activities(self) -> List[ScheduledActivity]:
        done = [s for s in self._scheduled.items if s.completed]
        return sorted(done, key=lambda s: s.completed_at, reverse=True)

    # === Library ===

    def add_activity(self, activity: Activity) -> Activity:
        if not activity.name.strip():
            raise ValueError("Activity name cannot be empty")
        return self._activities.add(activity)

    def load_examples(self) -> List[Activity]:
        """Add the built-in example activities once; returns what was added."""
        if any(a.is_system_defined for a in self._activities.items):
            return []
        added = [Activity(name=name, category=category, is_system_defined=True)
                 for category, names in ACTIVITY_EXAMPLES.items() for name in names]
        self._activities.items.extend(added)
        self._activities.save()
        return added

    def delete_activity(self, activity_id: str) -> Activity:
        return self._activities.remove(activity_id, "Activity")

    # === Schedule ===

    def schedule_activity(self, activity_id: str, scheduled_for: datetime,
                          duration_minutes: Optional[int] = None) -> ScheduledActivity:
        activity = self._activities.get(activity_id, "Activity")
        scheduled = ScheduledActivity(
            activity_id=activity.id,
            activity_name=activity.name,
            scheduled_for=scheduled_for,
            scheduled_duration_minutes=duration_minutes or activity.estimated_minutes,
        )
        self._scheduled.add(scheduled)
        logger.info(f"Activity scheduled: {activity.name} at {scheduled_for:%Y-%m-%d %H:%M}")
        return scheduled

    def complete_activity(self, scheduled_id: str,
                          actual_duration_minutes: Optional[int] = None,
                          mood_before: Optional[int] = None,
                          mood_after: Optional[int] = None,
                          enjoyment_rating: Optional[int] = None,
                          accomplishment_rating: Optional[int] = None,
                          notes: Optional[str] = None) -> ScheduledActivity:
        for name, value in (("Mood before", mood_before), ("Mood after", mood_after),
                            ("Enjoyment", enjoyment_rating),
                            ("Accomplishment", accomplishment_rating)):
            _check_rating(name, value)

        scheduled = self._scheduled.get(scheduled_id, "Scheduled activity")
        scheduled.completed = True
        scheduled.completed_at = datetime.now()
        scheduled.actual_duration_minutes = actual_duration_minutes
        scheduled.mood_before = mood_before
        scheduled.mood_after = mood_after
        scheduled.enjoyment_rating = enjoyment_rating
        scheduled.accomplishment_rating = accomplishment_rating
        scheduled.notes = notes
        self._scheduled.replace(scheduled, "Scheduled activity")
        logger.info(f"Activity completed: {scheduled.activity_name}, mood change {scheduled.mood_change}")
        return scheduled

    def skip_activity(self, scheduled_id: str, skip_notes: Optional[str] = None) -> ScheduledActivity:
        scheduled = self._scheduled.get(scheduled_id, "Scheduled activity")
        scheduled.skipped = True
        scheduled.skip_notes = skip_notes
        return self._scheduled.replace(scheduled, "Scheduled activity")

    def delete_scheduled_activity(self, scheduled_id: str) -> ScheduledActivity:
        return self._scheduled.remove(scheduled_id, "Scheduled activity")

    # === Stats ===

    @property
    def average_mood_improvement(self) -> Optional[float]:
        changes = [s.mood_change for s in self.completed_activities if s.mood_change is not None]
        if not changes:
            return None
        return sum(changes) / len(changes)

    @property
    def completion_rate(self) -> float:
        """Percentage of scheduled activities that were completed."""
        if not self._scheduled.items:
            return 0.0
        return len(self.completed_activities) / len(self._scheduled.items) * 100

    def most_effective_categories(self) -> List[Tuple[ActivityCategory, float]]:
        """Categories by average mood change, best first."""
        changes: Dict[ActivityCategory, List[int]] = {}
        for scheduled in self.completed_activities:
            if scheduled.mood_change is None:
                continue
            activity = self._activities.find(scheduled.activity_id)
            category = activity.category if activity else ActivityCategory.OTHER
            changes.setdefault(category, []).append(scheduled.mood_change)

        averages = [(category, sum(values) / len(values)) for category, values in changes.items()]
        return sorted(averages, key=lambda pair: pair[1], reverse=True)
