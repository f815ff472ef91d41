from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from docchat import constants
from docchat.chat_service import ChatService
from docchat.dependencies import enforce_rate_limit, get_chat_service
from docchat.errors import not_found
from docchat.schemas import (
    ApiResponse,
    ChatRequest,
    ClearedData,
    ConversationData,
    ConversationPage,
    SendMessageData,
    StatsData,
    StatusResponse,
    ValidateApiData,
)

router = APIRouter(prefix="/api/chat", tags=["chat"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/message", response_model=ApiResponse[SendMessageData])
async def send_message(
    req: ChatRequest,
    service: ChatService = Depends(get_chat_service),
) -> dict:
    attachments = [a.model_dump() for a in req.attachments]
    out = await service.handle_incoming_message(req.conversation_id, req.message, attachments)
    return {
        "message": constants.MSG_SENT,
        "data": {
            "conversation_id": out["conversation_id"],
            "user_message": out["user_message"],
            "assistant_message": out["assistant_message"],
            "usage": out["usage"],
        },
    }


@router.get("/conversation/{conversation_id}", response_model=ApiResponse[ConversationData])
async def get_conversation(
    conversation_id: str,
    service: ChatService = Depends(get_chat_service),
) -> dict:
    conversation = service.get_conversation(conversation_id)
    return {"message": constants.MSG_CONVERSATION_RETRIEVED, "data": {"conversation": conversation}}


@router.get("/conversations", response_model=ApiResponse[ConversationPage])
async def list_conversations(
    limit: int = Query(default=constants.DEFAULT_PAGE_SIZE),
    offset: int = Query(default=0),
    service: ChatService = Depends(get_chat_service),
) -> dict:
    page = service.list_conversations(limit=limit, offset=offset)
    return {"message": constants.MSG_CONVERSATIONS_RETRIEVED, "data": page}


@router.delete("/conversation/{conversation_id}", response_model=StatusResponse)
async def delete_conversation(
    conversation_id: str,
    service: ChatService = Depends(get_chat_service),
) -> dict:
    if not service.delete_conversation(conversation_id):
        raise not_found("Conversation")
    return {"message": constants.MSG_CONVERSATION_DELETED}


@router.post("/clear", response_model=ApiResponse[ClearedData])
async def clear_conversations(service: ChatService = Depends(get_chat_service)) -> dict:
    count = service.clear_all()
    return {"message": f"Cleared {count} conversations", "data": {"cleared": count}}


@router.get("/stats", response_model=ApiResponse[StatsData])
async def stats(service: ChatService = Depends(get_chat_service)) -> dict:
    return {"message": constants.MSG_STATS_RETRIEVED, "data": {"stats": service.get_stats()}}


@router.post("/validate-api", response_model=ApiResponse[ValidateApiData])
async def validate_api(service: ChatService = Depends(get_chat_service)) -> dict:
    valid = await service.validate_provider()
    return {
        "message": constants.MSG_API_VALIDATION_COMPLETED,
        "data": {
            "valid": valid,
            "message": constants.MSG_API_VALID if valid else constants.MSG_API_INVALID,
        },
    }
