from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Tuple

from dotenv import load_dotenv

from docchat.errors import ChatError, ErrorKind

load_dotenv()

_DEFAULT_GEMINI_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "gemini-2.0-flash-exp:generateContent"
)


def _env_int(name: str, default: int) -> int:
    # Unparseable or zero values fall back to the default
    try:
        return int(os.getenv(name, "")) or default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, "")) or default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    environment: str = os.getenv("APP_ENV", "development")
    port: int = _env_int("PORT", 3001)
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    gemini_api_url: str = os.getenv("GEMINI_API_URL", _DEFAULT_GEMINI_URL)
    gemini_max_retries: int = _env_int("GEMINI_MAX_RETRIES", 3)
    gemini_timeout_ms: int = _env_int("GEMINI_TIMEOUT", 30_000)
    gemini_retry_delay_ms: int = _env_int("GEMINI_RETRY_DELAY", 1_000)
    validate_timeout_ms: int = _env_int("GEMINI_VALIDATE_TIMEOUT", 10_000)

    max_file_size: int = _env_int("MAX_FILE_SIZE", 10_485_760)
    upload_dir: str = os.getenv("UPLOAD_DIR", "uploads")
    allowed_extensions: Tuple[str, ...] = field(default=(".pdf", ".txt", ".doc", ".docx"))
    max_files_per_upload: int = _env_int("MAX_FILES_PER_UPLOAD", 5)

    rate_limit_window_ms: int = _env_int("RATE_LIMIT_WINDOW_MS", 15 * 60 * 1000)
    rate_limit_max_requests: int = _env_int("RATE_LIMIT_MAX_REQUESTS", 100)

    max_conversation_history: int = _env_int("MAX_CONVERSATION_HISTORY", 50)
    default_temperature: float = _env_float("DEFAULT_TEMPERATURE", 0.7)
    max_output_tokens: int = _env_int("MAX_OUTPUT_TOKENS", 8192)

    @property
    def cors_origin(self) -> str:
        if is_production(self):
            return self.frontend_url
        return "http://localhost:3000"


def is_development(s: Settings) -> bool:
    return s.environment == "development"


def is_production(s: Settings) -> bool:
    return s.environment == "production"


def validate_settings(s: Settings) -> None:
    """Raise a CONFIGURATION error listing every missing or non-positive setting."""
    errors: List[str] = []

    if not s.gemini_api_key:
        errors.append("GEMINI_API_KEY is required")
    if not s.gemini_api_url:
        errors.append("GEMINI_API_URL is required")

    positive = (
        ("MAX_FILE_SIZE", s.max_file_size),
        ("MAX_FILES_PER_UPLOAD", s.max_files_per_upload),
        ("RATE_LIMIT_WINDOW_MS", s.rate_limit_window_ms),
        ("RATE_LIMIT_MAX_REQUESTS", s.rate_limit_max_requests),
        ("MAX_CONVERSATION_HISTORY", s.max_conversation_history),
        ("GEMINI_MAX_RETRIES", s.gemini_max_retries),
        ("GEMINI_TIMEOUT", s.gemini_timeout_ms),
        ("MAX_OUTPUT_TOKENS", s.max_output_tokens),
    )
    for name, value in positive:
        if value <= 0:
            errors.append(f"{name} must be greater than 0")

    if errors:
        raise ChatError(
            ErrorKind.CONFIGURATION,
            "Configuration validation failed:\n" + "\n".join(errors),
        )


settings = Settings()
