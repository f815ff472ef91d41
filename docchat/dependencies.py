from __future__ import annotations

from fastapi import Request

from docchat import errors, rate_limit
from docchat.chat_service import ChatService
from docchat.config import Settings
from docchat.errors import ChatError, ErrorKind


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


async def enforce_rate_limit(request: Request) -> None:
    """Reject the request once the client's bucket for this window is empty."""
    s: Settings = request.app.state.settings
    capacity, refill = rate_limit.bucket_params(s.rate_limit_max_requests, s.rate_limit_window_ms)
    client_key = request.client.host if request.client else "unknown"
    if not rate_limit.allow(client_key, capacity=capacity, refill_per_sec=refill):
        raise ChatError(ErrorKind.RATE_LIMITED, errors.TOO_MANY_REQUESTS)
