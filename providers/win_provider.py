import logging
from pathlib import Path
from typing import List, Optional

from models.wellness import Win, WinCategory, WinSource
from providers.base import JsonRecordStore

logger = logging.getLogger(__name__)


class WinProvider:
    """Accomplishments captured from reflection, journaling and streaks."""

    def __init__(self, storage_dir: Optional[Path] = None):
        self._store = JsonRecordStore("wins.json", Win.from_dict, storage_dir)

    @property
    def wins(self) -> List[Win]:
        return sorted(self._store.items, key=lambda w: w.created_at, reverse=True)

    def record_win(self, description: str, source: WinSource = WinSource.MANUAL,
                   category: Optional[WinCategory] = None,
                   linked_goal_id: Optional[str] = None,
                   linked_habit_id: Optional[str] = None,
                   source_session_id: Optional[str] = None) -> Win:
        if not description.strip():
            raise ValueError("Win description cannot be empty")
        win = Win(
            description=description,
            source=source,
            category=category,
            linked_goal_id=linked_goal_id,
            linked_habit_id=linked_habit_id,
            source_session_id=source_session_id,
        )
        self._store.add(win)
        logger.info(f"Recorded win ({source.value}): {description}")
        return win

    def delete_win(self, win_id: str) -> Win:
        return self._store.remove(win_id, "Win")

    def wins_for_goal(self, goal_id: str) -> List[Win]:
        return [w for w in self.wins if w.linked_goal_id == goal_id]

    def wins_for_habit(self, habit_id: str) -> List[Win]:
        return [w for w in self.wins if w.linked_habit_id == habit_id]
