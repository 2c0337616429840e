"""Reflection Session Service

Stores reflection sessions so an interrupted session can be picked up
again later.

This module provides:
1. In-memory session storage
2. Session persistence to JSON, one file per session
3. Checkpoints of an in-progress session's conversation (pause/resume)
"""
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.settings import SESSION_STORAGE_PATH
from models.reflection import ReflectionExchange, ReflectionSession

logger = logging.getLogger(__name__)


@dataclass
class SessionCheckpoint:
    """Snapshot of a session's conversation that it can be rolled back to."""
    checkpoint_id: str
    session_id: str
    phase: str
    current_question: Optional[str]
    exchanges: List[Dict[str, Any]] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SessionCheckpoint":
        return cls(**data)


class ReflectionSessionService:
    """
    Create/Get/Update/Delete reflection sessions.

    With ``persist=True`` every session is written to
    ``<storage_dir>/<session_id>.json`` and checkpoints to
    ``<checkpoint_id>.checkpoint.json``; both are reloaded on start-up.
    """

    def __init__(self, persist: bool = False, storage_dir: Optional[Path] = None):
        self._sessions: Dict[str, ReflectionSession] = {}
        self._checkpoints: Dict[str, SessionCheckpoint] = {}
        self._persist = persist
        self._dir = Path(storage_dir) if storage_dir else SESSION_STORAGE_PATH

        if persist:
            self._dir.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    # === Core Session Operations ===

    def create_session(self, session: Optional[ReflectionSession] = None) -> ReflectionSession:
        session = session or ReflectionSession()
        self._sessions[session.id] = session
        logger.info(f"Created reflection session: {session.id}")
        if self._persist:
            self._save_session(session)
        return session

    def get_session(self, session_id: str) -> Optional[ReflectionSession]:
        return self._sessions.get(session_id)

    def update_session(self, session: ReflectionSession) -> ReflectionSession:
        self._sessions[session.id] = session
        if self._persist:
            self._save_session(session)
        return session

    def delete_session(self, session_id: str) -> bool:
        """Delete a session and its checkpoints."""
        if session_id not in self._sessions:
            return False

        self._sessions.pop(session_id)
        for cp_id in [cp.checkpoint_id for cp in self._checkpoints.values()
                      if cp.session_id == session_id]:
            self._checkpoints.pop(cp_id)
            if self._persist:
                (self._dir / f"{cp_id}.checkpoint.json").unlink(missing_ok=True)

        if self._persist:
            (self._dir / f"{session_id}.json").unlink(missing_ok=True)

        logger.info(f"Deleted reflection session: {session_id}")
        return True

    def list_sessions(self, completed: Optional[bool] = None) -> List[ReflectionSession]:
        """Sessions newest first, optionally filtered by completion."""
        sessions = sorted(self._sessions.values(), key=lambda s: s.started_at, reverse=True)
        if completed is not None:
            sessions = [s for s in sessions if s.is_completed == completed]
        return sessions

    # === Checkpoint Operations (Pause/Resume) ===

    def create_checkpoint(self, session_id: str, phase: str,
                          current_question: Optional[str] = None) -> Optional[SessionCheckpoint]:
        session = self.get_session(session_id)
        if not session:
            logger.error(f"Cannot checkpoint: session {session_id} not found")
            return None

        checkpoint = SessionCheckpoint(
            checkpoint_id=f"cp_{session_id}_{len(session.exchanges)}",
            session_id=session_id,
            phase=phase,
            current_question=current_question,
            exchanges=[e.to_dict() for e in session.exchanges],
        )
        self._checkpoints[checkpoint.checkpoint_id] = checkpoint
        self.update_session(session)
        if self._persist:
            self._save_checkpoint(checkpoint)

        logger.info(f"Created checkpoint: {checkpoint.checkpoint_id}")
        return checkpoint

    def resume_from_checkpoint(self, checkpoint_id: str) -> Optional[ReflectionSession]:
        """Restore a session's exchanges to the checkpoint state."""
        checkpoint = self._checkpoints.get(checkpoint_id)
        if not checkpoint:
            logger.error(f"Checkpoint {checkpoint_id} not found")
            return None

        session = self.get_session(checkpoint.session_id)
        if not session:
            logger.error(f"Could not find session for checkpoint {checkpoint_id}")
            return None

        session.exchanges = [ReflectionExchange.from_dict(e) for e in checkpoint.exchanges]
        self.update_session(session)
        logger.info(f"Resumed session {session.id} from checkpoint {checkpoint_id}")
        return session

    def get_latest_checkpoint(self, session_id: str) -> Optional[SessionCheckpoint]:
        checkpoints = [cp for cp in self._checkpoints.values() if cp.session_id == session_id]
        if not checkpoints:
            return None
        return max(checkpoints, key=lambda cp: len(cp.exchanges))

    # === Persistence ===

    def _save_session(self, session: ReflectionSession):
        with open(self._dir / f"{session.id}.json", "w") as f:
            json.dump(session.to_dict(), f, indent=2)

    def _save_checkpoint(self, checkpoint: SessionCheckpoint):
        with open(self._dir / f"{checkpoint.checkpoint_id}.checkpoint.json", "w") as f:
            json.dump(checkpoint.to_dict(), f, indent=2)

    def _load_from_disk(self):
        for path in self._dir.glob("*.json"):
            if ".checkpoint." in path.name:
                continue
            try:
                with open(path) as f:
                    session = ReflectionSession.from_dict(json.load(f))
                self._sessions[session.id] = session
            except Exception as e:
                logger.warning(f"Failed to load session {path}: {e}")

        for path in self._dir.glob("*.checkpoint.json"):
            try:
                with open(path) as f:
                    cp = SessionCheckpoint.from_dict(json.load(f))
                self._checkpoints[cp.checkpoint_id] = cp
            except Exception as e:
                logger.warning(f"Failed to load checkpoint {path}: {e}")

        logger.info(f"Loaded {len(self._sessions)} sessions, {len(self._checkpoints)} checkpoints")
