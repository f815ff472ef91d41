from __future__ import annotations

import re

# Message limits
MESSAGE_MAX_LENGTH = 50_000
CHAT_MESSAGE_MAX_LENGTH = 10_000
PREVIEW_LENGTH = 100

# Conversation listing
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

VALID_ROLES = ("user", "assistant")

# Gemini generation parameters not exposed through env
TOP_K = 40
TOP_P = 0.95
SAFETY_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"
HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
PROBE_TEXT = "Hello"

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

MIME_TYPES = {
    "application/pdf": "pdf",
    "text/plain": "txt",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/msword": "doc",
}

SUPPORTED_TYPE_INFO = {
    "application/pdf": {"extension": ".pdf", "description": "PDF Document"},
    "text/plain": {"extension": ".txt", "description": "Text File"},
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": {
        "extension": ".docx",
        "description": "Microsoft Word Document (2007+)",
    },
    "application/msword": {
        "extension": ".doc",
        "description": "Microsoft Word Document (Legacy)",
    },
}

# Success messages
MSG_SENT = "Message sent successfully"
MSG_CONVERSATION_RETRIEVED = "Conversation retrieved successfully"
MSG_CONVERSATIONS_RETRIEVED = "Conversations retrieved successfully"
MSG_CONVERSATION_DELETED = "Conversation deleted successfully"
MSG_STATS_RETRIEVED = "Statistics retrieved successfully"
MSG_API_VALIDATION_COMPLETED = "API validation completed"
MSG_API_VALID = "API key is valid"
MSG_API_INVALID = "API key is invalid or service unavailable"
MSG_FILE_DELETED = "File deleted successfully"
