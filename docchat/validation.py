from __future__ import annotations

from typing import Any, Optional, Sequence

from docchat.constants import UUID_PATTERN
from docchat.errors import validation_error


def require_text(value: Any, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise validation_error(f"{field} is required and must be a non-empty string", field)


def max_length(value: Optional[str], limit: int, field: str) -> None:
    if value and len(value) > limit:
        raise validation_error(f"{field} must not exceed {limit} characters", field)


def max_items(values: Optional[Sequence[Any]], limit: int, field: str) -> None:
    if values and len(values) > limit:
        raise validation_error(f"{field} must not contain more than {limit} items", field)


def uuid_format(value: Optional[str], field: str) -> None:
    """Reject identifiers that are not UUID-shaped (versions 1-5)."""
    if not value:
        return
    if not isinstance(value, str) or not UUID_PATTERN.match(value):
        raise validation_error(f"{field} must be a valid UUID", field)
