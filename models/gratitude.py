"""Gratitude journal entries, prompts and streaks."""
import random
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from models.goal import new_id, parse_datetime, format_datetime

MIN_GRATITUDES = 3
MAX_GRATITUDES = 5

GRATITUDE_PROMPTS: Dict[str, List[str]] = {
    "general": [
        "What made you smile today?",
        "Who showed you kindness recently?",
        "What challenge helped you grow?",
        "What comfort or luxury are you grateful for?",
        "What in nature are you thankful for?",
    ],
    "relationships": [
        "Who supported you this week?",
        "What quality in a loved one do you appreciate?",
        "What conversation brought you joy?",
        "Who made your life easier recently?",
    ],
    "personal": [
        "What personal strength helped you today?",
        "What ability or skill are you thankful for?",
        "What part of your body worked well for you today?",
        "What did you learn recently?",
    ],
    "moments": [
        "What small moment brought you peace today?",
        "What made you feel safe or secure?",
        "What sensory experience did you enjoy? (taste, smell, sound, etc.)",
        "What went better than expected?",
    ],
    "difficult": [
        "What difficult situation taught you something valuable?",
        "What challenge are you proud of facing?",
        "What ended up being a blessing in disguise?",
        "What did you handle well despite difficulty?",
    ],
}


def prompts_for(category: str) -> List[str]:
    """Prompts for a category; unknown categories fall back to general."""
    return GRATITUDE_PROMPTS.get(category.lower(), GRATITUDE_PROMPTS["general"])


def random_prompt(rng: Optional[random.Random] = None) -> str:
    choices = [p for prompts in GRATITUDE_PROMPTS.values() for p in prompts]
    return (rng or random).choice(choices)


@dataclass
class GratitudeEntry:
    gratitudes: List[str]
    elaboration: Optional[str] = None
    mood_rating: Optional[int] = None  # 1-5
    linked_journal_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    @property
    def count(self) -> int:
        return len(self.gratitudes)

    @property
    def is_complete(self) -> bool:
        return self.count >= MIN_GRATITUDES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "gratitudes": list(self.gratitudes),
            "elaboration": self.elaboration,
            "mood_rating": self.mood_rating,
            "linked_journal_id": self.linked_journal_id,
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GratitudeEntry":
        return cls(
            id=data.get("id") or new_id(),
            gratitudes=list(data.get("gratitudes", [])),
            elaboration=data.get("elaboration"),
            mood_rating=data.get("mood_rating"),
            linked_journal_id=data.get("linked_journal_id"),
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
        )


@dataclass
class GratitudeStreak:
    current_streak: int = 0
    longest_streak: int = 0
    total_entries: int = 0
    last_entry_date: Optional[date] = None

    def is_active(self, today: Optional[date] = None) -> bool:
        if self.last_entry_date is None:
            return False
        return ((today or date.today()) - self.last_entry_date).days <= 1

    @classmethod
    def from_entries(cls, entries: Iterable[GratitudeEntry],
                     today: Optional[date] = None) -> "GratitudeStreak":
        entries = list(entries)
        days = sorted({e.created_at.date() for e in entries}, reverse=True)
        if not days:
            return cls()

        runs = [1]
        for newer, older in zip(days, days[1:]):
            if newer - older == timedelta(days=1):
                runs[-1] += 1
            else:
                runs.append(1)

        streak = cls(longest_streak=max(runs), total_entries=len(entries),
                     last_entry_date=days[0])
        # The newest run only counts while it reaches today or yesterday
        streak.current_streak = runs[0] if streak.is_active(today) else 0
        return streak
