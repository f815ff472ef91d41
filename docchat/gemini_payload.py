from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from docchat.config import Settings
from docchat.constants import HARM_CATEGORIES, PROBE_TEXT, SAFETY_THRESHOLD, TOP_K, TOP_P
from docchat.errors import RESPONSE_PROCESSING_FAILED, ChatError, ErrorKind

logger = logging.getLogger(__name__)

_ROLE_MAP = {"user": "user", "assistant": "model"}


@dataclass(frozen=True)
class GenerationSettings:
    temperature: float = 0.7
    top_k: int = TOP_K
    top_p: float = TOP_P
    max_output_tokens: int = 8192
    safety_threshold: str = SAFETY_THRESHOLD

    @classmethod
    def from_settings(cls, s: Settings) -> "GenerationSettings":
        return cls(temperature=s.default_temperature, max_output_tokens=s.max_output_tokens)

    def generation_config(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }

    def safety_settings(self) -> List[Dict[str, str]]:
        return [{"category": c, "threshold": self.safety_threshold} for c in HARM_CATEGORIES]


def _document_parts(attachments: Optional[Sequence[Dict[str, Any]]]) -> List[Dict[str, str]]:
    # Attachments whose extraction failed upstream carry no content and are skipped
    parts = []
    for att in attachments or []:
        content = att.get("content")
        if content:
            parts.append({"text": f"[Document: {att.get('filename')}]\n{content}"})
    return parts


def build_payload(
    messages: Sequence[Dict[str, Any]],
    current_attachments: Optional[Sequence[Dict[str, Any]]] = None,
    generation: Optional[GenerationSettings] = None,
) -> Dict[str, Any]:
    """
    Convert stored conversation history into a Gemini generateContent body.

    Each message becomes one turn: its text followed by one block per
    attachment with extracted content. Current attachments are appended to
    the last turn only when that turn is from the user.
    """
    generation = generation or GenerationSettings()
    contents: List[Dict[str, Any]] = []

    for msg in messages:
        parts = [{"text": msg["content"]}]
        parts.extend(_document_parts(msg.get("attachments")))
        contents.append({"role": _ROLE_MAP.get(msg["role"], "model"), "parts": parts})

    if current_attachments and contents and contents[-1]["role"] == "user":
        contents[-1]["parts"].extend(_document_parts(current_attachments))

    return {
        "contents": contents,
        "generationConfig": generation.generation_config(),
        "safetySettings": generation.safety_settings(),
    }


def build_probe_payload() -> Dict[str, Any]:
    return {"contents": [{"role": "user", "parts": [{"text": PROBE_TEXT}]}]}


def _extract(raw: Dict[str, Any]) -> Dict[str, Any]:
    candidates = raw.get("candidates")
    if not candidates:
        raise ValueError("No response candidates returned from Gemini API")

    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts")
    if not parts:
        raise ValueError("Invalid response format from Gemini API")

    content = "".join(p.get("text") or "" for p in parts).strip()
    if not content:
        raise ValueError("Empty response text from Gemini API")
    return {
        "content": content,
        "finish_reason": candidate.get("finishReason"),
        "usage": raw.get("usageMetadata"),
    }


def parse_response(raw: Any) -> Dict[str, Any]:
    """Normalize a Gemini reply to {content, finish_reason, usage}."""
    try:
        return _extract(raw)
    except (ValueError, TypeError, AttributeError, KeyError, IndexError) as exc:
        logger.error("Error formatting Gemini response: %s", exc)
        raise ChatError(
            ErrorKind.RESPONSE_PROCESSING, RESPONSE_PROCESSING_FAILED, detail=str(exc)
        ) from exc
