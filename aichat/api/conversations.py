"""Conversation endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field
from sqlalchemy.orm import Session

from aichat.api.schemas import CamelModel, ConversationResponse
from aichat.auth import RequireAuth
from aichat.core import ConversationNotFoundError
from aichat.db import get_db
from aichat.db.repositories import (
    create_conversation,
    delete_conversation,
    get_conversation_messages,
    get_user_conversation,
    list_user_conversations,
    update_conversation,
)

router = APIRouter(prefix="/conversations", tags=["conversations"])


class CreateConversationRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    system_prompt: str | None = None
    model: str | None = Field(None, max_length=128)
    temperature: float | None = Field(None, ge=0.0, le=2.0)


class UpdateConversationRequest(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    system_prompt: str | None = None
    model: str | None = Field(None, max_length=128)
    temperature: float | None = Field(None, ge=0.0, le=2.0)
    is_active: bool | None = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_conversation_route(
    body: CreateConversationRequest,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    conversation = create_conversation(
        db,
        user.id,
        name=body.name,
        system_prompt=body.system_prompt,
        model=body.model,
        temperature=body.temperature,
    )
    return {"data": ConversationResponse.from_conversation(conversation).to_json()}


@router.get("")
async def list_conversations_route(
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
    q: Annotated[str | None, Query(max_length=200)] = None,
) -> dict[str, Any]:
    """List the caller's conversations, newest first."""
    user, _ = auth
    rows = list_user_conversations(db, user.id, query=q)
    return {
        "data": [
            ConversationResponse.from_conversation(conversation, count).to_json()
            for conversation, count in rows
        ]
    }


@router.get("/{conversation_id}")
async def get_conversation_route(
    conversation_id: str,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    conversation = get_user_conversation(db, user.id, conversation_id)
    if not conversation:
        raise ConversationNotFoundError()
    count = len(get_conversation_messages(db, conversation.id))
    return {"data": ConversationResponse.from_conversation(conversation, count).to_json()}


@router.put("/{conversation_id}")
async def update_conversation_route(
    conversation_id: str,
    body: UpdateConversationRequest,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    conversation = get_user_conversation(db, user.id, conversation_id)
    if not conversation:
        raise ConversationNotFoundError()
    conversation = update_conversation(
        db,
        conversation,
        name=body.name,
        system_prompt=body.system_prompt,
        model=body.model,
        temperature=body.temperature,
        is_active=body.is_active,
    )
    return {"data": ConversationResponse.from_conversation(conversation).to_json()}


@router.delete("/{conversation_id}")
async def delete_conversation_route(
    conversation_id: str,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    if not delete_conversation(db, user.id, conversation_id):
        raise ConversationNotFoundError()
    return {"status": "deleted", "id": conversation_id}
