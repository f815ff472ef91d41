from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docchat import errors
from docchat.chat_router import router as chat_router
from docchat.chat_service import ChatService
from docchat.config import Settings, is_development, settings as default_settings, validate_settings
from docchat.conversation_store import ConversationStore
from docchat.errors import ChatError, ErrorKind
from docchat.files_router import router as files_router
from docchat.gemini_client import GeminiClient
from docchat.schemas import HealthResponse

logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def _register_error_handlers(app: FastAPI, s: Settings) -> None:
    dev = is_development(s)

    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
        logger.warning("Error in %s %s: %s %s", request.method, request.url.path, exc.kind.value, exc.message)
        return JSONResponse(status_code=exc.http_status, content=exc.to_payload(include_detail=dev))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
        field = loc[0] if loc else None
        err = ChatError(
            ErrorKind.VALIDATION,
            f"{field or 'request'}: {first.get('msg', 'Invalid request format')}",
            field=field,
        )
        return JSONResponse(status_code=err.http_status, content=err.to_payload(include_detail=dev))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error in %s %s", request.method, request.url.path, exc_info=dev)
        err = ChatError(ErrorKind.INTERNAL, str(exc) if dev else errors.INTERNAL_ERROR)
        return JSONResponse(status_code=err.http_status, content=err.to_payload(include_detail=dev))


def create_app(s: Optional[Settings] = None, client: Optional[GeminiClient] = None) -> FastAPI:
    """Build the API. Raises a CONFIGURATION ChatError when settings are invalid."""
    s = s or default_settings
    validate_settings(s)

    app = FastAPI(title="DocChat API", version=VERSION)
    store = ConversationStore(max_history=s.max_conversation_history)
    client = client or GeminiClient(s)

    app.state.settings = s
    app.state.store = store
    app.state.chat_service = ChatService(store, client, s)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[s.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app, s)

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> dict:
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": VERSION,
        }

    app.include_router(chat_router)
    app.include_router(files_router)
    return app


def run() -> None:
    import uvicorn

    uvicorn.run("docchat.main:create_app", factory=True, host="0.0.0.0", port=default_settings.port)
