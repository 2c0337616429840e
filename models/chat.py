"""Mentor chat messages and conversations."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from models.goal import new_id, parse_datetime, format_datetime


class MessageSender(Enum):
    USER = "user"
    MENTOR = "mentor"


@dataclass
class MentorAction:
    """A follow-up the chat UI can offer under a mentor message."""
    label: str
    action: str  # create_goal, journal, view_habits, checkin, view_goals

    def to_dict(self) -> dict:
        return {"label": self.label, "action": self.action}


@dataclass
class ChatMessage:
    sender: MessageSender
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Optional[Dict[str, Any]] = None
    suggested_actions: List[MentorAction] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    @property
    def is_from_user(self) -> bool:
        return self.sender == MessageSender.USER

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender": self.sender.value,
            "content": self.content,
            "timestamp": format_datetime(self.timestamp),
            "metadata": self.metadata,
            "suggested_actions": [a.to_dict() for a in self.suggested_actions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChatMessage":
        return cls(
            id=data.get("id") or new_id(),
            sender=MessageSender(data["sender"]),
            content=data["content"],
            timestamp=parse_datetime(data.get("timestamp")) or datetime.now(),
            metadata=data.get("metadata"),
            suggested_actions=[MentorAction(**a) for a in data.get("suggested_actions", [])],
        )


@dataclass
class Conversation:
    title: str
    messages: List[ChatMessage] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    last_message_at: Optional[datetime] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "created_at": format_datetime(self.created_at),
            "last_message_at": format_datetime(self.last_message_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Conversation":
        return cls(
            id=data.get("id") or new_id(),
            title=data["title"],
            messages=[ChatMessage.from_dict(m) for m in data.get("messages", [])],
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
            last_message_at=parse_datetime(data.get("last_message_at")),
        )
