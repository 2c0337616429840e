"""Journal entries: quick notes and guided Q&A journals."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from models.goal import new_id, parse_datetime, format_datetime


class JournalEntryType(Enum):
    QUICK_NOTE = "quick_note"
    GUIDED_JOURNAL = "guided_journal"


@dataclass
class QAPair:
    question: str
    answer: str

    def to_dict(self) -> dict:
        return {"question": self.question, "answer": self.answer}

    @classmethod
    def from_dict(cls, data: dict) -> "QAPair":
        return cls(question=data["question"], answer=data["answer"])


@dataclass
class JournalEntry:
    type: JournalEntryType = JournalEntryType.QUICK_NOTE
    content: Optional[str] = None
    qa_pairs: Optional[List[QAPair]] = None
    reflection_type: Optional[str] = None
    goal_ids: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        if self.type == JournalEntryType.QUICK_NOTE and self.content is None:
            raise ValueError("Quick note journal entries require content")
        if self.type == JournalEntryType.GUIDED_JOURNAL and self.qa_pairs is None:
            raise ValueError("Guided journal entries require qa_pairs")

    @property
    def text(self) -> str:
        """Flatten the entry into plain text for prompts and previews."""
        if self.type == JournalEntryType.QUICK_NOTE:
            return self.content or ""
        return "\n".join(f"{qa.question}: {qa.answer}" for qa in self.qa_pairs or [])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "qa_pairs": [qa.to_dict() for qa in self.qa_pairs] if self.qa_pairs is not None else None,
            "reflection_type": self.reflection_type,
            "goal_ids": list(self.goal_ids),
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "JournalEntry":
        qa_pairs = data.get("qa_pairs")
        return cls(
            id=data.get("id") or new_id(),
            type=JournalEntryType(data.get("type", "quick_note")),
            content=data.get("content"),
            qa_pairs=[QAPair.from_dict(qa) for qa in qa_pairs] if qa_pairs is not None else None,
            reflection_type=data.get("reflection_type"),
            goal_ids=data.get("goal_ids", []),
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
        )
