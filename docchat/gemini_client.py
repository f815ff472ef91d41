from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

from docchat import errors
from docchat.config import Settings
from docchat.errors import ChatError, ErrorKind
from docchat.gemini_payload import (
    GenerationSettings,
    build_payload,
    build_probe_payload,
    parse_response,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


def _provider_message(response: httpx.Response) -> Optional[str]:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return None


def _describe(exc: Exception) -> str:
    # Never includes the request URL or headers
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}: {exc.response.text[:500]}"
    return f"{type(exc).__name__}: {exc}"


def classify_error(exc: Exception) -> ChatError:
    """Map a transport or HTTP failure to a user-safe ChatError."""
    detail = _describe(exc)

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        provider_msg = _provider_message(exc.response)
        if status == 400:
            return ChatError(
                ErrorKind.BAD_REQUEST,
                f"Invalid request: {provider_msg or 'Bad request'}",
                status=status,
                detail=detail,
            )
        if status == 401:
            return ChatError(ErrorKind.UNAUTHORIZED, errors.UNAUTHORIZED_ACCESS, status=status, detail=detail)
        if status == 403:
            return ChatError(ErrorKind.FORBIDDEN, errors.QUOTA_EXCEEDED, status=status, detail=detail)
        if status == 429:
            return ChatError(ErrorKind.RATE_LIMITED, errors.RATE_LIMIT_EXCEEDED, status=status, detail=detail)
        if status == 500:
            return ChatError(ErrorKind.PROVIDER_ERROR, errors.SERVER_ERROR, status=status, detail=detail)
        return ChatError(
            ErrorKind.PROVIDER_ERROR,
            f"Gemini API error ({status}): {provider_msg or 'Unknown error'}",
            status=status,
            detail=detail,
        )

    # Timeouts first: ConnectTimeout is also a transport error
    if isinstance(exc, httpx.TimeoutException):
        return ChatError(ErrorKind.TIMEOUT, errors.TIMEOUT, detail=detail)
    # Any other transport failure is reported as a network error
    if isinstance(exc, httpx.TransportError):
        return ChatError(ErrorKind.NETWORK, errors.NETWORK_ERROR, detail=detail)

    return ChatError(ErrorKind.INTERNAL, errors.INTERNAL_ERROR, detail=detail)


class GeminiClient:
    """
    Calls the Gemini generateContent endpoint with a per-attempt timeout and
    exponential-backoff retries.

    ``transport`` and ``sleep`` exist so tests can swap in an
    ``httpx.MockTransport`` and a recording sleep.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._sleep = sleep
        self.generation = GenerationSettings.from_settings(settings)

    @property
    def max_retries(self) -> int:
        return self._settings.gemini_max_retries

    def retry_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self._settings.gemini_retry_delay_ms / 1000.0 * 2 ** (attempt - 1)

    def backoff_delays(self) -> List[float]:
        return [self.retry_delay(a) for a in range(1, self.max_retries)]

    async def _post(self, payload: Dict[str, Any], timeout_ms: int) -> httpx.Response:
        timeout = httpx.Timeout(timeout_ms / 1000.0)
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self._settings.gemini_api_key,
        }
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            resp = await client.post(self._settings.gemini_api_url, json=payload, headers=headers)
        resp.raise_for_status()
        return resp

    async def generate_content(
        self,
        messages: Sequence[Dict[str, Any]],
        attachments: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        if not self._settings.gemini_api_key:
            raise ChatError(ErrorKind.CONFIGURATION, errors.API_KEY_NOT_CONFIGURED)

        payload = build_payload(messages, attachments, self.generation)

        attempt = 1
        while True:
            try:
                resp = await self._post(payload, self._settings.gemini_timeout_ms)
                break
            except httpx.HTTPError as exc:
                logger.warning("Gemini API attempt %d failed: %s", attempt, _describe(exc))
                err = classify_error(exc)
                if attempt >= self.max_retries or not err.retryable:
                    logger.error("Gemini API failed after %d attempt(s): %s", attempt, err.kind.value)
                    raise err from exc
                await self._sleep(self.retry_delay(attempt))
                attempt += 1

        # A reply that arrived but cannot be read is not retried
        try:
            data = resp.json()
        except ValueError as exc:
            logger.error("Gemini API returned non-JSON body: %s", exc)
            raise ChatError(
                ErrorKind.RESPONSE_PROCESSING, errors.RESPONSE_PROCESSING_FAILED, detail=str(exc)
            ) from exc
        return parse_response(data)

    async def validate_api_key(self) -> bool:
        """Send one probe request; True only when the provider answers 200."""
        if not self._settings.gemini_api_key:
            logger.warning("API key validation skipped: %s", errors.API_KEY_NOT_CONFIGURED)
            return False
        try:
            resp = await self._post(build_probe_payload(), self._settings.validate_timeout_ms)
        except httpx.HTTPError as exc:
            logger.error("API key validation failed: %s", _describe(exc))
            return False
        return resp.status_code == 200
