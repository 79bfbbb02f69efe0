"""
AI chat endpoints: one-shot completion, streaming relay and model list.
"""

import asyncio
import time
from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import Field
from sqlalchemy.orm import Session

from aichat.api.schemas import CamelModel
from aichat.auth import RequireAuth
from aichat.config import get_settings
from aichat.core import ValidationError
from aichat.db import SqlMessageStore, get_db, get_session_factory
from aichat.providers import OpenAICompatProvider
from aichat.providers.base import THINKING_MODES
from aichat.relay import MessageStore, RelaySession
from aichat.relay.consumer import DisconnectWatcher
from aichat.services.chat_service import ChatService, ChatTurn

router = APIRouter(prefix="/ai", tags=["ai"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ThinkingOption(CamelModel):
    type: Literal["enabled", "disabled"]


class ChatBody(CamelModel):
    conversation_id: str | None = None
    model: str | None = Field(None, max_length=128)
    temperature: float | None = Field(None, ge=0.0, le=2.0)
    message: str = Field(..., min_length=1)
    fixed_prompt_id: str | None = None
    thinking: ThinkingOption | None = None


class StreamChatBody(ChatBody):
    use_fixed_prompt: bool = False


def get_chat_service(request: Request) -> ChatService:
    service = getattr(request.app.state, "chat_service", None)
    if service:
        return service
    provider = getattr(request.app.state, "provider", None)
    if provider is None:
        settings = get_settings()
        provider = OpenAICompatProvider(
            settings.ai_base_url,
            settings.ai_api_key,
            timeout_seconds=settings.ai_timeout_seconds,
        )
        request.app.state.provider = provider
    service = ChatService(provider)
    request.app.state.chat_service = service
    return service


def get_message_store() -> MessageStore:
    return SqlMessageStore(get_session_factory())


ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
MessageStoreDep = Annotated[MessageStore, Depends(get_message_store)]


def watch_disconnect(request: Request, poll_seconds: float) -> DisconnectWatcher:
    """Coroutine function returning once the client has gone away."""

    async def wait() -> None:
        while not await request.is_disconnected():
            await asyncio.sleep(poll_seconds)

    return wait


def _event_stream(session: RelaySession) -> StreamingResponse:
    return StreamingResponse(
        session.stream(), media_type="text/event-stream", headers=SSE_HEADERS
    )


@router.post("/chat")
async def chat(
    auth: RequireAuth,
    body: ChatBody,
    chat_service: ChatServiceDep,
    store: MessageStoreDep,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    """Non-streaming chat completion."""
    user, _ = auth
    turn = ChatTurn(
        message=body.message,
        conversation_id=body.conversation_id,
        model=body.model,
        temperature=body.temperature,
        thinking=body.thinking.type if body.thinking else None,
        fixed_prompt_id=body.fixed_prompt_id,
    )
    conversation, response = await chat_service.complete(db, store, user.id, turn)

    return {
        "data": {
            "id": "resp_" + datetime.now(UTC).strftime("%Y%m%d%H%M%S"),
            "object": "chat.completion",
            "created": int(time.time()),
            "model": response.model,
            "conversationId": conversation.id,
            "choices": [
                {
                    "index": choice.index,
                    "message": {"role": choice.role, "content": choice.content},
                    "finish_reason": choice.finish_reason,
                }
                for choice in response.choices
            ],
            "usage": {
                "prompt_tokens": response.prompt_tokens,
                "completion_tokens": response.completion_tokens,
                "total_tokens": response.total_tokens,
            },
        }
    }


@router.post("/stream")
async def stream_chat(
    request: Request,
    auth: RequireAuth,
    body: StreamChatBody,
    chat_service: ChatServiceDep,
    store: MessageStoreDep,
    db: Annotated[Session, Depends(get_db)],
) -> StreamingResponse:
    """Relay a streamed reply; the user message is stored before streaming starts."""
    user, _ = auth
    settings = chat_service.settings
    thinking = body.thinking.type if body.thinking else settings.ai_thinking_default
    turn = ChatTurn(
        message=body.message,
        conversation_id=body.conversation_id,
        model=body.model,
        temperature=body.temperature,
        thinking=thinking or None,
        fixed_prompt_id=body.fixed_prompt_id if body.use_fixed_prompt else None,
    )
    session = chat_service.open_relay(
        db,
        store,
        user.id,
        turn,
        message_type="message",
        wait_disconnect=watch_disconnect(request, settings.sse_disconnect_poll_seconds),
    )
    return _event_stream(session)


@router.get("/stream/{conversation_id}")
async def stream_conversation(
    request: Request,
    conversation_id: str,
    auth: RequireAuth,
    chat_service: ChatServiceDep,
    store: MessageStoreDep,
    db: Annotated[Session, Depends(get_db)],
    prompt: Annotated[str, Query(max_length=100_000)] = "",
    thinking: Annotated[str, Query()] = "",
) -> StreamingResponse:
    """Relay a reply to an existing conversation's history plus an optional prompt."""
    user, _ = auth
    if thinking and thinking not in THINKING_MODES:
        raise ValidationError(
            "Invalid thinking mode", details={"allowed": list(THINKING_MODES)}
        )
    turn = ChatTurn(
        message=prompt,
        conversation_id=conversation_id,
        thinking=(thinking or chat_service.settings.ai_thinking_default) or None,
    )
    session = chat_service.open_relay(
        db,
        store,
        user.id,
        turn,
        message_type="token",
        save_user_message=False,
        create_conversation_if_missing=False,
        wait_disconnect=watch_disconnect(
            request, chat_service.settings.sse_disconnect_poll_seconds
        ),
    )
    return _event_stream(session)


@router.get("/models")
async def list_models(_auth: RequireAuth) -> dict[str, Any]:
    """Model ids clients may request."""
    return {"data": get_settings().ai_models_list}
