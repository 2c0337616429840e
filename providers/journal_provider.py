import logging
from pathlib import Path
from typing import List, Optional

from models.journal import JournalEntry, JournalEntryType
from providers.base import JsonRecordStore

logger = logging.getLogger(__name__)


class JournalProvider:
    """Journal entries, newest first."""

    def __init__(self, storage_dir: Optional[Path] = None):
        self._store = JsonRecordStore("journal.json", JournalEntry.from_dict, storage_dir)

    @property
    def entries(self) -> List[JournalEntry]:
        return sorted(self._store.items, key=lambda e: e.created_at, reverse=True)

    def recent_entries(self, limit: int = 5) -> List[JournalEntry]:
        return self.entries[:limit]

    def add_entry(self, entry: JournalEntry) -> JournalEntry:
        self._store.add(entry)
        logger.info(f"Added {entry.type.value} journal entry {entry.id}")
        return entry

    def update_entry(self, entry: JournalEntry) -> JournalEntry:
        return self._store.replace(entry, "Journal entry")

    def delete_entry(self, entry_id: str) -> JournalEntry:
        return self._store.remove(entry_id, "Journal entry")

    def get_entry_by_id(self, entry_id: str) -> Optional[JournalEntry]:
        return self._store.find(entry_id)

    def get_entries_by_goal(self, goal_id: str) -> List[JournalEntry]:
        return [e for e in self.entries if goal_id in e.goal_ids]

    def get_entries_by_type(self, entry_type: JournalEntryType) -> List[JournalEntry]:
        return [e for e in self.entries if e.type == entry_type]
