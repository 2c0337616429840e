"""Worry time: postpone worries during the day, process them in a scheduled session."""
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from models.wellness import Worry, WorrySession, WorryStatus
from providers.base import JsonRecordStore

logger = logging.getLogger(__name__)


class WorryProvider:

    def __init__(self, storage_dir: Optional[Path] = None):
        self._worries = JsonRecordStore("worries.json", Worry.from_dict, storage_dir)
        self._sessions = JsonRecordStore("worry_sessions.json", WorrySession.from_dict, storage_dir)

    @property
    def worries(self) -> List[Worry]:
        return sorted(self._worries.items, key=lambda w: w.recorded_at, reverse=True)

    @property
    def pending_worries(self) -> List[Worry]:
        return [w for w in self.worries if w.is_pending]

    @property
    def sessions(self) -> List[WorrySession]:
        return sorted(self._sessions.items, key=lambda s: s.scheduled_for, reverse=True)

    @property
    def upcoming_sessions(self) -> List[WorrySession]:
        return [s for s in self.sessions if not s.completed and s.status != "Missed"]

    def record_worry(self, content: str) -> Worry:
        if not content.strip():
            raise ValueError("Worry content cannot be empty")
        worry = Worry(content=content.strip())
        self._worries.add(worry)
        logger.info("Worry postponed until next worry time")
        return worry

    def process_worry(self, worry_id: str, status: WorryStatus,
                      outcome: Optional[str] = None,
                      action_taken: Optional[str] = None,
                      linked_goal_id: Optional[str] = None) -> Worry:
        worry = self._worries.get(worry_id, "Worry")
        worry.status = status
        worry.processed_at = datetime.now()
        worry.outcome = outcome
        worry.action_taken = action_taken
        worry.linked_goal_id = linked_goal_id
        return self._worries.replace(worry, "Worry")

    def delete_worry(self, worry_id: str) -> Worry:
        return self._worries.remove(worry_id, "Worry")

    # === Sessions ===

    def schedule_session(self, scheduled_for: datetime,
                         planned_duration_minutes: int = 20) -> WorrySession:
        session = WorrySession(scheduled_for=scheduled_for,
                               planned_duration_minutes=planned_duration_minutes)
        self._sessions.add(session)
        return session

    def start_session(self, session_id: str, anxiety_before: Optional[int] = None) -> WorrySession:
        session = self._sessions.get(session_id, "Worry session")
        session.started_at = datetime.now()
        session.anxiety_before = anxiety_before
        return self._sessions.replace(session, "Worry session")

    def complete_session(self, session_id: str,
                         processed_worry_ids: Optional[List[str]] = None,
                         anxiety_after: Optional[int] = None,
                         notes: Optional[str] = None,
                         insights: Optional[str] = None) -> WorrySession:
        session = self._sessions.get(session_id, "Worry session")
        now = datetime.now()
        session.completed = True
        session.completed_at = now
        if session.started_at:
            session.actual_duration_minutes = int((now - session.started_at).total_seconds() // 60)
        session.processed_worry_ids = list(processed_worry_ids or [])
        session.anxiety_after = anxiety_after
        session.notes = notes
        session.insights = insights
        self._sessions.replace(session, "Worry session")

        logger.info(f"Worry session complete: {len(session.processed_worry_ids)} worries, "
                    f"anxiety reduction {session.anxiety_reduction}")
        return session
