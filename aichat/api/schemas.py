"""
Shared API schemas.

Request and response bodies use camelCase on the wire.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from aichat.db.models import Conversation, FixedPrompt, Message, User


class CamelModel(BaseModel):
    """Accepts and emits camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    is_active: bool
    created_at: str | None
    updated_at: str | None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            is_active=user.is_active,
            created_at=_iso(user.created_at),
            updated_at=_iso(user.updated_at),
        )


class ConversationResponse(CamelModel):
    id: str
    name: str
    user_id: str
    is_active: bool
    system_prompt: str | None
    model: str | None
    temperature: float | None
    created_at: str | None
    updated_at: str | None
    message_count: int = 0

    @classmethod
    def from_conversation(
        cls, conversation: Conversation, message_count: int = 0
    ) -> "ConversationResponse":
        return cls(
            id=conversation.id,
            name=conversation.name,
            user_id=conversation.user_id,
            is_active=conversation.is_active,
            system_prompt=conversation.system_prompt,
            model=conversation.model,
            temperature=conversation.temperature,
            created_at=_iso(conversation.created_at),
            updated_at=_iso(conversation.updated_at),
            message_count=message_count,
        )


class MessageResponse(CamelModel):
    id: str
    conversation_id: str
    role: str
    content: str
    reasoning_content: str
    sort: int
    tokens: int | None
    model: str | None
    created_at: str | None

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            role=message.role,
            content=message.content,
            reasoning_content=message.reasoning_content or "",
            sort=message.sort,
            tokens=message.tokens,
            model=message.model,
            created_at=_iso(message.created_at),
        )


class FixedPromptResponse(CamelModel):
    id: str
    name: str
    content: str
    is_active: bool
    created_at: str | None
    updated_at: str | None

    @classmethod
    def from_prompt(cls, prompt: FixedPrompt) -> "FixedPromptResponse":
        return cls(
            id=prompt.id,
            name=prompt.name,
            content=prompt.content,
            is_active=prompt.is_active,
            created_at=_iso(prompt.created_at),
            updated_at=_iso(prompt.updated_at),
        )
