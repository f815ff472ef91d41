from __future__ import annotations

import itertools
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from docchat.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    MESSAGE_MAX_LENGTH,
    PREVIEW_LENGTH,
    VALID_ROLES,
)
from docchat.errors import not_found, validation_error

logger = logging.getLogger(__name__)

# Fields a caller may not overwrite through update_conversation
_PROTECTED_FIELDS = {"id", "messages", "created_at"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _preview(content: str) -> str:
    return content[:PREVIEW_LENGTH] + "..."


class ConversationStore:
    """
    In-memory conversation storage for the lifetime of the process.

    Conversations are plain dicts: {id, messages, created_at, updated_at}.
    Every method runs to completion without awaiting, so an append and its
    trim are never interleaved with another coroutine.
    """

    def __init__(self, max_history: int = 50) -> None:
        self.max_history = max_history
        self._conversations: Dict[str, Dict[str, Any]] = {}
        # Monotonic mutation counter; breaks updated_at ties when listing
        self._clock = itertools.count()
        self._touched: Dict[str, int] = {}

    def _new(self, conversation_id: str) -> Dict[str, Any]:
        ts = _now()
        conversation = {
            "id": conversation_id,
            "messages": [],
            "created_at": ts,
            "updated_at": ts,
        }
        self._conversations[conversation_id] = conversation
        self._touched[conversation_id] = next(self._clock)
        return conversation

    def _touch(self, conversation: Dict[str, Any]) -> None:
        conversation["updated_at"] = _now()
        self._touched[conversation["id"]] = next(self._clock)

    def create_conversation(self) -> Dict[str, Any]:
        conversation = self._new(str(uuid.uuid4()))
        logger.debug("Created conversation %s", conversation["id"])
        return conversation

    def get_conversation(self, conversation_id: str) -> Dict[str, Any]:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise not_found("Conversation")
        return conversation

    def get_or_create_conversation(self, conversation_id: Optional[str] = None) -> Dict[str, Any]:
        """Return the conversation; an unknown supplied id is created as-is."""
        if not conversation_id:
            return self.create_conversation()
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            conversation = self._new(conversation_id)
            logger.debug("Created conversation %s from client id", conversation_id)
        return conversation

    def add_message(
        self, conversation_id: str, draft: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        conversation = self.get_conversation(conversation_id)

        message = dict(draft)
        message.setdefault("attachments", [])
        message["id"] = str(uuid.uuid4())
        message["timestamp"] = _now()

        messages: List[Dict[str, Any]] = conversation["messages"]
        messages.append(message)
        self._touch(conversation)

        excess = len(messages) - self.max_history
        if excess > 0:
            del messages[:excess]
            logger.debug("Trimmed %d message(s) from %s", excess, conversation_id)

        return conversation, message

    def update_conversation(self, conversation_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        conversation = self.get_conversation(conversation_id)
        for key, value in updates.items():
            if key not in _PROTECTED_FIELDS:
                conversation[key] = value
        self._touch(conversation)
        return conversation

    def delete_conversation(self, conversation_id: str) -> bool:
        if conversation_id not in self._conversations:
            return False
        del self._conversations[conversation_id]
        self._touched.pop(conversation_id, None)
        return True

    def list_conversations(
        self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> Dict[str, Any]:
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise validation_error(f"limit must be between 1 and {MAX_PAGE_SIZE}", "limit")
        if offset < 0:
            raise validation_error("offset must not be negative", "offset")

        ordered = sorted(
            self._conversations.values(),
            key=lambda c: (c["updated_at"], self._touched[c["id"]]),
            reverse=True,
        )
        items = []
        for conv in ordered[offset : offset + limit]:
            msgs = conv["messages"]
            items.append(
                {
                    "id": conv["id"],
                    "created_at": conv["created_at"],
                    "updated_at": conv["updated_at"],
                    "message_count": len(msgs),
                    "last_message": _preview(msgs[-1]["content"]) if msgs else None,
                }
            )

        return {
            "conversations": items,
            "total": len(self._conversations),
            "limit": limit,
            "offset": offset,
        }

    def clear_all(self) -> int:
        count = len(self._conversations)
        self._conversations.clear()
        self._touched.clear()
        logger.info("Cleared %d conversation(s)", count)
        return count

    def get_stats(self) -> Dict[str, Any]:
        total_conversations = len(self._conversations)
        total_messages = sum(len(c["messages"]) for c in self._conversations.values())
        average = round(total_messages / total_conversations, 2) if total_conversations else 0
        return {
            "total_conversations": total_conversations,
            "total_messages": total_messages,
            "average_messages_per_conversation": average,
        }

    @staticmethod
    def validate_message(draft: Any) -> None:
        if not isinstance(draft, dict):
            raise validation_error("Message must be an object")

        if draft.get("role") not in VALID_ROLES:
            raise validation_error('Message role must be either "user" or "assistant"', "role")

        content = draft.get("content")
        if not content or not isinstance(content, str):
            raise validation_error("Message content is required and must be a string", "content")

        if len(content) > MESSAGE_MAX_LENGTH:
            raise validation_error(
                "Message content exceeds maximum length of 50,000 characters", "content"
            )
