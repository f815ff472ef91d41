from __future__ import annotations

import io
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import docx
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from docchat.constants import MIME_TYPES
from docchat.errors import ChatError, ErrorKind

logger = logging.getLogger(__name__)

_DEFAULT_MAX_SIZE = 10 * 1024 * 1024
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def _fail(reason: str) -> ChatError:
    return ChatError(ErrorKind.DOCUMENT, reason)


def file_type_for(mimetype: Optional[str]) -> str:
    return MIME_TYPES.get(mimetype or "", "unknown")


def is_supported(mimetype: Optional[str]) -> bool:
    return (mimetype or "") in MIME_TYPES


def count_words(content: str) -> int:
    if not content:
        return 0
    return len(content.split())


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    i = 0
    while i < len(_SIZE_UNITS) - 1 and size >= 1024 ** (i + 1):
        i += 1
    value = round(size / 1024 ** i, 2)
    return f"{value:g} {_SIZE_UNITS[i]}"


def validate_upload(
    filename: Optional[str],
    mimetype: Optional[str],
    size: int,
    max_size: int = _DEFAULT_MAX_SIZE,
) -> List[str]:
    """Return every reason the upload cannot be processed (empty when fine)."""
    problems: List[str] = []
    if not mimetype:
        problems.append("File type not detected")
    elif not is_supported(mimetype):
        problems.append(f"Unsupported file type: {mimetype}")

    if not size:
        problems.append("File is empty")
    elif size > max_size:
        problems.append(f"File too large: {format_file_size(size)} (max: {format_file_size(max_size)})")

    if not filename:
        problems.append("Filename not provided")
    return problems


def _extract_pdf(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        text = "\n".join((page.extract_text() or "") for page in reader.pages)
    except (PdfReadError, ValueError, KeyError, TypeError, RecursionError) as exc:
        # RecursionError: page trees that reference themselves
        logger.warning("PDF extraction error: %s", exc)
        raise _fail(f"Failed to extract PDF content: {exc}") from exc
    if not text.strip():
        raise _fail("Failed to extract PDF content: PDF appears to be empty or contains only images")
    return text


def _extract_txt(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace")
    if not text.strip():
        raise _fail("Failed to extract text file content: Text file is empty")
    return text


def _extract_word(data: bytes, label: str) -> str:
    try:
        document = docx.Document(io.BytesIO(data))
    except Exception as exc:
        # python-docx surfaces corrupt archives as several unrelated exception types
        logger.warning("%s extraction error: %s", label, exc)
        hint = " Consider converting to DOCX format." if label == "DOC" else ""
        raise _fail(f"Failed to extract {label} content: {exc}.{hint}") from exc
    text = "\n".join(p.text for p in document.paragraphs)
    if not text.strip():
        raise _fail(f"Failed to extract {label} content: {label} file appears to be empty")
    return text


def extract_content(data: bytes, file_type: str, max_size: int = _DEFAULT_MAX_SIZE) -> Dict[str, Any]:
    """
    Extract plain text from an uploaded document.

    file_type is one of pdf / txt / docx / doc. Returns
    {content, file_type, file_size, word_count, extracted_at}; raises a
    DOCUMENT ChatError with a readable reason on any failure.
    """
    size = len(data)
    if file_type not in MIME_TYPES.values():
        raise _fail(f"Unsupported file type: {file_type}")
    if size == 0:
        raise _fail("File is empty")
    if size > max_size:
        raise _fail(f"File too large: {format_file_size(size)} (max: {format_file_size(max_size)})")

    if file_type == "pdf":
        content = _extract_pdf(data)
    elif file_type == "txt":
        content = _extract_txt(data)
    elif file_type == "docx":
        content = _extract_word(data, "DOCX")
    else:
        content = _extract_word(data, "DOC")

    content = content.strip()
    return {
        "content": content,
        "file_type": file_type,
        "file_size": size,
        "word_count": count_words(content),
        "extracted_at": datetime.now(timezone.utc).isoformat(),
    }
