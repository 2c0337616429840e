"""Shared storage for the in-memory providers.

Every provider keeps its records in a plain list. When a storage directory
is given the list is also written to ``<dir>/<file_name>`` as JSON after
each change and read back on start-up, so state survives a restart.
"""
import json
import logging
from pathlib import Path
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NotFoundError(LookupError):
    """Raised when a record id is not held by a provider."""


class JsonRecordStore(Generic[T]):
    """List-backed record store with an optional JSON snapshot."""

    def __init__(self, file_name: str, from_dict: Callable[[dict], T],
                 storage_dir: Optional[Path] = None):
        self.items: List[T] = []
        self._from_dict = from_dict
        self._path = Path(storage_dir) / file_name if storage_dir else None

        if self._path:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    @property
    def persistent(self) -> bool:
        return self._path is not None

    def find(self, record_id: str) -> Optional[T]:
        for item in self.items:
            if item.id == record_id:
                return item
        return None

    def get(self, record_id: str, kind: str = "Record") -> T:
        item = self.find(record_id)
        if item is None:
            raise NotFoundError(f"{kind} not found: {record_id}")
        return item

    def add(self, item: T) -> T:
        self.items.append(item)
        self.save()
        return item

    def replace(self, item: T, kind: str = "Record") -> T:
        for index, existing in enumerate(self.items):
            if existing.id == item.id:
                self.items[index] = item
                self.save()
                return item
        raise NotFoundError(f"{kind} not found: {item.id}")

    def remove(self, record_id: str, kind: str = "Record") -> T:
        item = self.get(record_id, kind)
        self.items.remove(item)
        self.save()
        return item

    def clear(self):
        self.items = []
        self.save()

    # === Persistence ===

    def save(self):
        """Write the snapshot to disk (no-op for in-memory stores)."""
        if not self._path:
            return
        with open(self._path, "w") as f:
            json.dump([item.to_dict() for item in self.items], f, indent=2)

    def _load_from_disk(self):
        if not self._path.exists():
            return
        try:
            with open(self._path) as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read {self._path}: {e}")
            return

        for data in raw:
            try:
                self.items.append(self._from_dict(data))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping unreadable record in {self._path.name}: {e}")

        logger.info(f"Loaded {len(self.items)} records from {self._path.name}")
