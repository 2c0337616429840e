import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.settings import AI_PROVIDER, LOCAL_CHAT_MAX_MESSAGES
from models.chat import ChatMessage, Conversation, MentorAction, MessageSender
from models.goal import Goal
from providers.base import JsonRecordStore

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Hi! I'm here to help you on your journey. What's on your mind?"


def detect_suggested_actions(response: str) -> List[MentorAction]:
    """Offer at most two follow-up actions based on what the mentor said."""
    text = response.lower()
    actions = []

    if any(p in text for p in ("create a goal", "new goal", "set a goal")):
        actions.append(MentorAction(label="Create New Goal", action="create_goal"))

    if "journal" in text and any(p in text for p in ("write", "reflect", "note")):
        actions.append(MentorAction(label="Open Journal", action="journal"))

    if "track" in text and "habit" in text:
        actions.append(MentorAction(label="View Habits", action="view_habits"))

    if any(p in text for p in ("check in", "how are you feeling", "wellness")):
        actions.append(MentorAction(label="Wellness Check-in", action="checkin"))

    if "view your goals" in text or "review your goals" in text:
        actions.append(MentorAction(label="View Goals", action="view_goals"))

    return actions[:2]


class ChatProvider:
    """
    Mentor chat conversations with a current-conversation pointer.

    With the local AI provider each conversation is trimmed to the last
    LOCAL_CHAT_MAX_MESSAGES messages as they are added.
    """

    def __init__(self, storage_dir: Optional[Path] = None, ai_provider: str = AI_PROVIDER):
        self._store = JsonRecordStore("conversations.json", Conversation.from_dict, storage_dir)
        self.ai_provider = ai_provider
        self.current_conversation: Optional[Conversation] = (
            self._store.items[0] if self._store.items else None)

    @property
    def conversations(self) -> List[Conversation]:
        return list(self._store.items)

    @property
    def messages(self) -> List[ChatMessage]:
        return self.current_conversation.messages if self.current_conversation else []

    def start_new_conversation(self, title: Optional[str] = None) -> Conversation:
        conversation = Conversation(title=title or f"Chat {len(self._store.items) + 1}")
        self._store.items.insert(0, conversation)
        self.current_conversation = conversation
        self.add_mentor_message(WELCOME_MESSAGE)
        return conversation

    def switch_conversation(self, conversation_id: str) -> Optional[Conversation]:
        found = self._store.find(conversation_id)
        if found is not None:
            self.current_conversation = found
        elif self.current_conversation is None and self._store.items:
            self.current_conversation = self._store.items[0]
        return self.current_conversation

    def add_user_message(self, content: str) -> ChatMessage:
        if self.current_conversation is None:
            self.start_new_conversation()
        message = ChatMessage(sender=MessageSender.USER, content=content)
        self._append(message)
        return message

    def add_mentor_message(self, content: str, metadata: Optional[Dict[str, Any]] = None,
                           suggested_actions: Optional[List[MentorAction]] = None) -> ChatMessage:
        if self.current_conversation is None:
            raise RuntimeError("No active conversation")
        if suggested_actions is None:
            suggested_actions = detect_suggested_actions(content)
        message = ChatMessage(sender=MessageSender.MENTOR, content=content,
                              metadata=metadata, suggested_actions=suggested_actions)
        self._append(message)
        return message

    def delete_conversation(self, conversation_id: str):
        self._store.remove(conversation_id, "Conversation")
        if self.current_conversation and self.current_conversation.id == conversation_id:
            self.current_conversation = self._store.items[0] if self._store.items else None

    def clear_current_conversation(self):
        if self.current_conversation is None:
            return
        self.current_conversation.messages = []
        self._store.save()

    def save_conversation_as_journal(self, goals: Optional[List[Goal]] = None) -> Optional[Dict[str, Any]]:
        """
        Format the current conversation as markdown for a journal entry.

        Goals whose title appears in the conversation are returned as links.
        """
        conversation = self.current_conversation
        if conversation is None or not conversation.messages:
            return None

        lines = [
            f"# {conversation.title}",
            "",
            f"_Conversation saved from chat on {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}_",
            "",
            "---",
            "",
        ]
        for message in conversation.messages:
            sender = "**You**" if message.is_from_user else "**Mentor**"
            lines += [f"### {sender} [{message.timestamp.strftime('%H:%M')}]", "", message.content, ""]

        conversation_text = " ".join(m.content.lower() for m in conversation.messages)
        linked_goal_ids = [g.id for g in goals or [] if g.title.lower() in conversation_text]

        return {
            "content": "\n".join(lines),
            "goal_ids": linked_goal_ids,
            "conversation_title": conversation.title,
        }

    def _append(self, message: ChatMessage):
        conversation = self.current_conversation
        conversation.messages.append(message)
        if self.ai_provider == "local" and len(conversation.messages) > LOCAL_CHAT_MAX_MESSAGES:
            trimmed = len(conversation.messages) - LOCAL_CHAT_MAX_MESSAGES
            conversation.messages = conversation.messages[-LOCAL_CHAT_MAX_MESSAGES:]
            logger.debug(f"Trimmed {trimmed} messages for local AI context")
        conversation.last_message_at = message.timestamp
        self._store.save()
