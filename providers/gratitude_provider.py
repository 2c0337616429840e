"""Gratitude journal: three to five things a day, with an optional mood rating."""
import logging
import random
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, Optional

from models.gratitude import (
    MAX_GRATITUDES,
    GratitudeEntry,
    GratitudeStreak,
    random_prompt,
)
from providers.base import JsonRecordStore

logger = logging.getLogger(__name__)


class GratitudeProvider:

    def __init__(self, storage_dir: Optional[Path] = None,
                 rng: Optional[random.Random] = None):
        self._entries = JsonRecordStore("gratitude_entries.json", GratitudeEntry.from_dict, storage_dir)
        self._rng = rng

    @property
    def entries(self) -> List[GratitudeEntry]:
        return sorted(self._entries.items, key=lambda e: e.created_at, reverse=True)

    def add_entry(self, gratitudes: List[str], elaboration: Optional[str] = None,
                  mood_rating: Optional[int] = None,
                  linked_journal_id: Optional[str] = None) -> GratitudeEntry:
        items = [g.strip() for g in gratitudes if g and g.strip()]
        if not items:
            raise ValueError("Write down at least one thing you're grateful for")
        if len(items) > MAX_GRATITUDES:
            raise ValueError(f"At most {MAX_GRATITUDES} gratitudes per entry")
        if mood_rating is not None and not 1 <= mood_rating <= 5:
            raise ValueError("Mood rating must be between 1 and 5")

        entry = GratitudeEntry(gratitudes=items, elaboration=elaboration,
                               mood_rating=mood_rating,
                               linked_journal_id=linked_journal_id)
        self._entries.add(entry)
        logger.info(f"Gratitude entry added ({entry.count} items)")
        return entry

    def update_entry(self, entry: GratitudeEntry) -> GratitudeEntry:
        return self._entries.replace(entry, "Gratitude entry")

    def delete_entry(self, entry_id: str) -> GratitudeEntry:
        return self._entries.remove(entry_id, "Gratitude entry")

    def recent_entries(self, days: int = 30, now: Optional[datetime] = None) -> List[GratitudeEntry]:
        cutoff = (now or datetime.now()) - timedelta(days=days)
        return [e for e in self.entries if e.created_at > cutoff]

    def has_entry_today(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return any(e.created_at.date() == today for e in self._entries.items)

    def streak(self, today: Optional[date] = None) -> GratitudeStreak:
        return GratitudeStreak.from_entries(self._entries.items, today)

    @property
    def average_mood_rating(self) -> Optional[float]:
        ratings = [e.mood_rating for e in self._entries.items if e.mood_rating is not None]
        if not ratings:
            return None
        return sum(ratings) / len(ratings)

    @property
    def all_gratitudes(self) -> List[str]:
        return [g for entry in self.entries for g in entry.gratitudes]

    def practice_frequency(self, now: Optional[datetime] = None) -> float:
        """Average entries per week since the first entry."""
        if not self._entries.items:
            return 0.0
        oldest = min(e.created_at for e in self._entries.items)
        days = ((now or datetime.now()) - oldest).days
        if days == 0:
            return float(len(self._entries.items))
        return len(self._entries.items) / (days / 7)

    def suggested_prompt(self) -> str:
        return random_prompt(self._rng)
