"""Message endpoints. Ownership is always checked through the conversation."""

from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlalchemy.orm import Session

from aichat.api.schemas import CamelModel, MessageResponse
from aichat.auth import RequireAuth
from aichat.core import ConversationNotFoundError, MessageNotFoundError
from aichat.db import get_db
from aichat.db.repositories import (
    create_message,
    delete_message,
    get_conversation_messages,
    get_user_conversation,
    get_user_message,
    list_user_messages,
    update_message,
)

router = APIRouter(prefix="/messages", tags=["messages"])

Role = Literal["system", "user", "assistant"]


class CreateMessageRequest(CamelModel):
    conversation_id: str
    content: str = Field(..., min_length=1)
    role: Role


class UpdateMessageRequest(CamelModel):
    content: str | None = Field(None, min_length=1)
    role: Role | None = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_message_route(
    body: CreateMessageRequest,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    if not get_user_conversation(db, user.id, body.conversation_id):
        raise ConversationNotFoundError()
    message = create_message(db, body.conversation_id, body.role, body.content)
    return {"data": MessageResponse.from_message(message).to_json()}


@router.get("")
async def list_messages_route(
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    """All messages across the caller's conversations."""
    user, _ = auth
    messages = list_user_messages(db, user.id)
    return {"data": {"items": [MessageResponse.from_message(m).to_json() for m in messages]}}


@router.get("/conversation/{conversation_id}")
async def list_conversation_messages_route(
    conversation_id: str,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    """Messages of one conversation in conversation order."""
    user, _ = auth
    if not get_user_conversation(db, user.id, conversation_id):
        raise ConversationNotFoundError()
    messages = get_conversation_messages(db, conversation_id)
    return {"data": [MessageResponse.from_message(message).to_json() for message in messages]}


@router.get("/{message_id}")
async def get_message_route(
    message_id: str,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    message = get_user_message(db, user.id, message_id)
    if not message:
        raise MessageNotFoundError()
    return {"data": MessageResponse.from_message(message).to_json()}


@router.put("/{message_id}")
async def update_message_route(
    message_id: str,
    body: UpdateMessageRequest,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    message = get_user_message(db, user.id, message_id)
    if not message:
        raise MessageNotFoundError()
    message = update_message(db, message, content=body.content, role=body.role)
    return {"data": MessageResponse.from_message(message).to_json()}


@router.delete("/{message_id}")
async def delete_message_route(
    message_id: str,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    message = get_user_message(db, user.id, message_id)
    if not message:
        raise MessageNotFoundError()
    delete_message(db, message)
    return {"status": "deleted", "id": message_id}
