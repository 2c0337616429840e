import logging
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from models.wellness import FoodEntry
from providers.base import JsonRecordStore

logger = logging.getLogger(__name__)


class FoodLogProvider:
    """Food entries with optional AI nutrition estimates."""

    def __init__(self, storage_dir: Optional[Path] = None):
        self._store = JsonRecordStore("food_log.json", FoodEntry.from_dict, storage_dir)

    @property
    def entries(self) -> List[FoodEntry]:
        return sorted(self._store.items, key=lambda e: e.timestamp, reverse=True)

    def add_entry(self, entry: FoodEntry) -> FoodEntry:
        self._store.add(entry)
        return entry

    def update_entry(self, entry: FoodEntry) -> FoodEntry:
        return self._store.replace(entry, "Food entry")

    def delete_entry(self, entry_id: str) -> FoodEntry:
        return self._store.remove(entry_id, "Food entry")

    def entries_for_date(self, day: date) -> List[FoodEntry]:
        return [e for e in self.entries if e.timestamp.date() == day]

    @property
    def today_entries(self) -> List[FoodEntry]:
        return self.entries_for_date(date.today())

    def totals_for_date(self, day: date) -> Dict[str, int]:
        """Summed calories and macros; entries without an estimate count as zero."""
        totals = {"calories": 0, "protein_grams": 0, "carbs_grams": 0, "fat_grams": 0}
        for entry in self.entries_for_date(day):
            if entry.nutrition is None:
                continue
            totals["calories"] += entry.nutrition.calories
            totals["protein_grams"] += entry.nutrition.protein_grams
            totals["carbs_grams"] += entry.nutrition.carbs_grams
            totals["fat_grams"] += entry.nutrition.fat_grams
        return totals

    @property
    def today_totals(self) -> Dict[str, int]:
        return self.totals_for_date(date.today())
