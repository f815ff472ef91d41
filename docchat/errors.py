"""
Error taxonomy for the chat service.

Every failure the service raises is a ChatError tagged with an ErrorKind.
Callers branch on ``err.kind``; the HTTP layer maps the kind to a status code
and renders ``err.to_payload()``.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    CONFIGURATION = "configuration_error"
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    NETWORK = "network_error"
    RESPONSE_PROCESSING = "response_processing_failed"
    DOCUMENT = "document_error"
    INTERNAL = "internal_error"


HTTP_STATUS = {
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.PROVIDER_ERROR: 502,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.NETWORK: 503,
    ErrorKind.RESPONSE_PROCESSING: 502,
    ErrorKind.DOCUMENT: 422,
    ErrorKind.INTERNAL: 500,
}

# Kinds a failed provider call can produce; retried while attempts remain
RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.BAD_REQUEST,
        ErrorKind.UNAUTHORIZED,
        ErrorKind.FORBIDDEN,
        ErrorKind.RATE_LIMITED,
        ErrorKind.PROVIDER_ERROR,
        ErrorKind.TIMEOUT,
        ErrorKind.NETWORK,
        ErrorKind.INTERNAL,
    }
)

API_KEY_NOT_CONFIGURED = "Gemini API key not configured"
UNAUTHORIZED_ACCESS = "Invalid API key or unauthorized access"
QUOTA_EXCEEDED = "API access forbidden or quota exceeded"
RATE_LIMIT_EXCEEDED = "Rate limit exceeded. Please try again later."
SERVER_ERROR = "Gemini API server error. Please try again later."
TIMEOUT = "Request timeout. Please try again."
NETWORK_ERROR = "Network error. Please check your internet connection."
RESPONSE_PROCESSING_FAILED = "Failed to process Gemini API response"
INTERNAL_ERROR = "An internal server error occurred. Please try again later."
TOO_MANY_REQUESTS = "Too many requests from this IP, please try again later."


class ChatError(Exception):
    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        field: Optional[str] = None,
        status: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field = field
        self.status = status
        self.detail = detail

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self.kind]

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def to_payload(self, include_detail: bool = False) -> Dict[str, Any]:
        """Render the user-facing error body; internals only when include_detail."""
        out: Dict[str, Any] = {
            "error": True,
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.field:
            out["field"] = self.field
        if include_detail:
            out["status"] = self.status
            out["detail"] = self.detail
        return out

    def __repr__(self) -> str:
        return f"ChatError({self.kind.name}, {self.message!r})"


def validation_error(message: str, field: Optional[str] = None) -> ChatError:
    return ChatError(ErrorKind.VALIDATION, message, field=field)


def not_found(resource: str = "Conversation") -> ChatError:
    return ChatError(ErrorKind.NOT_FOUND, f"{resource} not found")
