from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from docchat import constants
from docchat import document_extractor as extractor
from docchat.config import Settings
from docchat.dependencies import enforce_rate_limit, get_settings
from docchat.errors import ChatError, ErrorKind, not_found, validation_error
from docchat.schemas import StatusResponse, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"], dependencies=[Depends(enforce_rate_limit)])


def _cleanup(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.error("Error cleaning up file %s: %s", path, exc)


def _problems(upload: UploadFile, data: bytes, s: Settings) -> List[str]:
    name = upload.filename or ""
    problems = extractor.validate_upload(name, upload.content_type, len(data), s.max_file_size)
    ext = Path(name).suffix.lower()
    if ext not in s.allowed_extensions:
        problems.append(f"Unsupported file extension: {ext or '(none)'}")
    return problems


async def _store_and_extract(upload: UploadFile, data: bytes, s: Settings) -> Dict[str, Any]:
    mimetype = upload.content_type or ""
    original_name = upload.filename or ""
    ext = Path(original_name).suffix.lower()

    stored_name = f"{uuid.uuid4()}{ext}"
    path = Path(s.upload_dir) / stored_name
    await asyncio.to_thread(path.write_bytes, data)

    try:
        extracted = await asyncio.to_thread(
            extractor.extract_content, data, extractor.file_type_for(mimetype), s.max_file_size
        )
    except ChatError:
        _cleanup(path)
        raise
    except Exception as exc:
        _cleanup(path)
        logger.exception("Unexpected error extracting %s", original_name)
        label = ext.lstrip(".").upper() or "file"
        raise ChatError(ErrorKind.DOCUMENT, f"Failed to extract {label} content: {exc}") from exc

    return {
        "id": str(uuid.uuid4()),
        "filename": stored_name,
        "original_name": original_name,
        "mimetype": mimetype,
        "size": len(data),
        "formatted_size": extractor.format_file_size(len(data)),
        "file_type": extracted["file_type"],
        "content": extracted["content"],
        "word_count": extracted["word_count"],
        "extracted_at": extracted["extracted_at"],
        "uploaded_at": datetime.now(timezone.utc).isoformat(),
        "path": str(path),
    }


@router.post("/upload", response_model=UploadResponse, response_model_exclude_none=True)
async def upload_files(
    files: List[UploadFile] = File(default=[]),
    s: Settings = Depends(get_settings),
) -> Any:
    if not files:
        raise validation_error("Please select at least one file to upload", "files")
    if len(files) > s.max_files_per_upload:
        raise validation_error(
            f"files must not contain more than {s.max_files_per_upload} items", "files"
        )

    Path(s.upload_dir).mkdir(parents=True, exist_ok=True)

    uploaded: List[Dict[str, Any]] = []
    failures: List[Dict[str, Any]] = []
    for upload in files:
        name = upload.filename or ""
        data = await upload.read()
        problems = _problems(upload, data, s)
        if problems:
            failures.append({"filename": name, "errors": problems})
            continue
        try:
            uploaded.append(await _store_and_extract(upload, data, s))
        except ChatError as exc:
            logger.warning("Error processing file %s: %s", name, exc.message)
            failures.append({"filename": name, "errors": [exc.message]})

    if not uploaded and failures:
        return JSONResponse(
            status_code=400,
            content={
                "error": True,
                "kind": ErrorKind.DOCUMENT.value,
                "message": "No files could be processed",
                "details": failures,
            },
        )

    return {
        "message": f"Successfully processed {len(uploaded)} file(s)",
        "files": uploaded,
        "errors": failures or None,
    }


@router.get("/supported-types")
def supported_types(s: Settings = Depends(get_settings)) -> dict:
    max_size = extractor.format_file_size(s.max_file_size)
    types = {
        mime: {**info, "maxSize": max_size}
        for mime, info in constants.SUPPORTED_TYPE_INFO.items()
    }
    return {
        "success": True,
        "supportedTypes": types,
        "maxFileSize": s.max_file_size,
        "maxFiles": s.max_files_per_upload,
    }


def _safe_name(filename: str) -> str:
    # Only bare names inside upload_dir
    if not filename or "/" in filename or "\\" in filename or ".." in filename:
        raise validation_error("Invalid filename", "filename")
    return filename


@router.delete("/{filename}", response_model=StatusResponse)
async def delete_file(filename: str, s: Settings = Depends(get_settings)) -> Any:
    path = Path(s.upload_dir) / _safe_name(filename)
    if not path.is_file():
        raise not_found("File")
    await asyncio.to_thread(path.unlink)
    logger.info("Deleted uploaded file %s", filename)
    return {"message": constants.MSG_FILE_DELETED}


def _dir_stats(upload_dir: Path) -> Dict[str, Any]:
    total = 0
    count = 0
    for entry in upload_dir.iterdir():
        count += 1
        try:
            total += entry.stat().st_size
        except OSError:
            continue
    return {
        "uploadDirectory": str(upload_dir),
        "directoryExists": True,
        "fileCount": count,
        "totalSize": total,
    }


@router.get("/health")
async def files_health(s: Settings = Depends(get_settings)) -> dict:
    upload_dir = Path(s.upload_dir)
    stats = await asyncio.to_thread(_dir_stats, upload_dir) if upload_dir.is_dir() else None
    return {
        "success": True,
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "maxFileSize": s.max_file_size,
        "uploadDirectory": s.upload_dir,
        "stats": stats,
    }
