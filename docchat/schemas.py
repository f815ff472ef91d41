from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    # Internal records are snake_case; the browser client speaks camelCase
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Attachment(CamelModel):
    id: Optional[str] = None
    filename: str
    file_type: str = "unknown"
    content: Optional[str] = None
    word_count: Optional[int] = None
    formatted_size: Optional[str] = None


class Message(CamelModel):
    id: str
    role: str
    content: str
    attachments: List[Attachment] = Field(default_factory=list)
    timestamp: str
    finish_reason: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None


class Conversation(CamelModel):
    id: str
    messages: List[Message]
    created_at: str
    updated_at: str


class ChatRequest(CamelModel):
    message: Optional[str] = None
    conversation_id: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)


class SendMessageData(CamelModel):
    conversation_id: str
    user_message: Message
    assistant_message: Message
    usage: Optional[Dict[str, Any]] = None


class ConversationData(CamelModel):
    conversation: Conversation


class ConversationSummary(CamelModel):
    id: str
    created_at: str
    updated_at: str
    message_count: int
    last_message: Optional[str] = None


class ConversationPage(CamelModel):
    conversations: List[ConversationSummary]
    total: int
    limit: int
    offset: int


class Stats(CamelModel):
    total_conversations: int
    total_messages: int
    average_messages_per_conversation: float


class StatsData(CamelModel):
    stats: Stats


class ClearedData(CamelModel):
    cleared: int


class ValidateApiData(CamelModel):
    valid: bool
    message: str


class FileRecord(CamelModel):
    id: str
    filename: str
    original_name: str
    mimetype: str
    size: int
    formatted_size: str
    file_type: str
    content: str
    word_count: int
    extracted_at: str
    uploaded_at: str
    path: str


class FileError(CamelModel):
    filename: str
    errors: List[str]


class UploadResponse(CamelModel):
    success: bool = True
    message: str
    files: List[FileRecord]
    errors: Optional[List[FileError]] = None


class StatusResponse(CamelModel):
    success: bool = True
    message: str


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
