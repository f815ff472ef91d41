from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Sequence

from docchat.config import Settings
from docchat.constants import CHAT_MESSAGE_MAX_LENGTH, DEFAULT_PAGE_SIZE
from docchat.conversation_store import ConversationStore
from docchat.gemini_client import GeminiClient
from docchat.validation import max_items, max_length, require_text, uuid_format

logger = logging.getLogger(__name__)


class ChatService:
    """Runs one chat exchange: validate, persist the user turn, ask Gemini, persist the reply."""

    def __init__(self, store: ConversationStore, client: GeminiClient, settings: Settings) -> None:
        self.store = store
        self.client = client
        self.settings = settings

    async def handle_incoming_message(
        self,
        conversation_id: Optional[str],
        text: Any,
        attachments: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        t0 = time.time()
        conversation_id = conversation_id or None
        attachments = list(attachments or [])

        require_text(text, "message")
        max_length(text, CHAT_MESSAGE_MAX_LENGTH, "message")
        max_items(attachments, self.settings.max_files_per_upload, "attachments")
        uuid_format(conversation_id, "conversationId")

        conversation = self.store.get_or_create_conversation(conversation_id)

        user_draft = {"role": "user", "content": text.strip(), "attachments": attachments}
        self.store.validate_message(user_draft)
        _, user_message = self.store.add_message(conversation["id"], user_draft)

        # On failure the user turn stays in history
        reply = await self.client.generate_content(conversation["messages"], attachments)

        assistant_draft = {
            "role": "assistant",
            "content": reply["content"],
            "finish_reason": reply["finish_reason"],
            "usage": reply["usage"],
        }
        self.store.validate_message(assistant_draft)
        _, assistant_message = self.store.add_message(conversation["id"], assistant_draft)

        latency_ms = int((time.time() - t0) * 1000)
        logger.info(
            "chat exchange conversation=%s messages=%d finish=%s latency_ms=%d",
            conversation["id"],
            len(conversation["messages"]),
            reply["finish_reason"],
            latency_ms,
        )

        return {
            "conversation_id": conversation["id"],
            "conversation": conversation,
            "user_message": user_message,
            "assistant_message": assistant_message,
            "usage": reply["usage"],
        }

    def get_conversation(self, conversation_id: str) -> Dict[str, Any]:
        uuid_format(conversation_id, "conversationId")
        return self.store.get_conversation(conversation_id)

    def list_conversations(self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> Dict[str, Any]:
        return self.store.list_conversations(limit=limit, offset=offset)

    def delete_conversation(self, conversation_id: str) -> bool:
        uuid_format(conversation_id, "conversationId")
        return self.store.delete_conversation(conversation_id)

    def clear_all(self) -> int:
        return self.store.clear_all()

    def get_stats(self) -> Dict[str, Any]:
        return self.store.get_stats()

    async def validate_provider(self) -> bool:
        return await self.client.validate_api_key()

