"""Chat orchestration: message assembly, streaming relay and one-shot completions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.orm import Session

from aichat.config import Settings, get_settings
from aichat.core import ConversationNotFoundError, conversation_id_ctx, get_logger
from aichat.db.models import Conversation
from aichat.db.repositories import (
    create_conversation,
    get_user_conversation,
    get_user_fixed_prompt,
)
from aichat.providers.base import BaseProvider, ChatMessage, ChatRequest, ChatResponse
from aichat.relay import CompletionCommitter, MessageStore, RelaySession
from aichat.relay.consumer import DisconnectWatcher

logger = get_logger(__name__)

CONVERSATION_NAME_LENGTH = 50


@dataclass
class ChatTurn:
    """Options of one user turn, shared by the streaming and one-shot routes."""

    message: str = ""
    conversation_id: str | None = None
    model: str | None = None
    temperature: float | None = None
    thinking: str | None = None
    fixed_prompt_id: str | None = None


def build_chat_messages(
    history: Sequence[ChatMessage],
    system_prompt: str | None,
    current_message: str | None,
) -> tuple[ChatMessage, ...]:
    """System prompt first, then stored history, then the new user message."""
    messages: list[ChatMessage] = []
    if system_prompt:
        messages.append(ChatMessage(role="system", content=system_prompt))
    messages.extend(history)
    if current_message:
        messages.append(ChatMessage(role="user", content=current_message))
    return tuple(messages)


class ChatService:
    """Builds upstream requests from stored conversations and runs them."""

    def __init__(self, provider: BaseProvider, settings: Settings | None = None):
        self.provider = provider
        self.settings = settings or get_settings()

    def get_or_create_conversation(
        self, db: Session, user_id: str, conversation_id: str | None, message: str
    ) -> Conversation:
        """Load the caller's conversation, or start one named after the message."""
        if conversation_id:
            conversation = get_user_conversation(db, user_id, conversation_id)
            if not conversation:
                raise ConversationNotFoundError()
            return conversation

        conversation = create_conversation(
            db, user_id, name=message[:CONVERSATION_NAME_LENGTH]
        )
        logger.info(
            "Conversation created for chat",
            data={"conversation_id": conversation.id, "user_id": user_id},
        )
        return conversation

    def resolve_system_prompt(
        self,
        db: Session,
        user_id: str,
        conversation: Conversation,
        fixed_prompt_id: str | None,
    ) -> str | None:
        """An active fixed prompt owned by the user wins over the conversation's own."""
        if fixed_prompt_id:
            prompt = get_user_fixed_prompt(db, user_id, fixed_prompt_id)
            if prompt and prompt.is_active:
                return prompt.content
            logger.info(
                "Fixed prompt ignored",
                data={"fixed_prompt_id": fixed_prompt_id, "found": prompt is not None},
            )
        return conversation.system_prompt or None

    def build_request(
        self,
        conversation: Conversation,
        messages: tuple[ChatMessage, ...],
        turn: ChatTurn,
        *,
        stream: bool,
    ) -> ChatRequest:
        """Fill model and temperature from the turn, the conversation, then settings."""
        if turn.temperature is not None:
            temperature = turn.temperature
        elif conversation.temperature is not None:
            temperature = conversation.temperature
        else:
            temperature = self.settings.ai_temperature

        return ChatRequest(
            messages=messages,
            model=turn.model or conversation.model or self.settings.ai_model,
            temperature=temperature,
            stream=stream,
            thinking=turn.thinking or None,
        )

    async def complete(
        self,
        db: Session,
        store: MessageStore,
        user_id: str,
        turn: ChatTurn,
    ) -> tuple[Conversation, ChatResponse]:
        """
        One-shot completion.

        The user message and the reply are saved after the upstream call;
        failing to save them does not fail the request.
        """
        conversation = self.get_or_create_conversation(
            db, user_id, turn.conversation_id, turn.message
        )
        conversation_id_ctx.set(conversation.id)

        system_prompt = self.resolve_system_prompt(
            db, user_id, conversation, turn.fixed_prompt_id
        )
        messages = build_chat_messages(
            store.history(conversation.id), system_prompt, turn.message
        )
        request = self.build_request(conversation, messages, turn, stream=False)

        response = await self.provider.chat_once(request)

        try:
            store.append(conversation.id, "user", turn.message)
            if response.choices:
                store.append(
                    conversation.id, "assistant", response.content, "", request.model
                )
        except Exception:
            logger.exception(
                "Failed to save chat messages",
                data={"conversation_id": conversation.id},
            )

        return conversation, response

    def open_relay(
        self,
        db: Session,
        store: MessageStore,
        user_id: str,
        turn: ChatTurn,
        *,
        message_type: str = "message",
        save_user_message: bool = True,
        create_conversation_if_missing: bool = True,
        wait_disconnect: DisconnectWatcher | None = None,
    ) -> RelaySession:
        """
        Prepare a relay session for one streamed turn.

        History is read before the new user message is stored so the message
        is sent upstream once.
        """
        if create_conversation_if_missing:
            conversation = self.get_or_create_conversation(
                db, user_id, turn.conversation_id, turn.message
            )
        else:
            conversation = get_user_conversation(db, user_id, turn.conversation_id or "")
            if not conversation:
                raise ConversationNotFoundError()
        conversation_id_ctx.set(conversation.id)

        system_prompt = self.resolve_system_prompt(
            db, user_id, conversation, turn.fixed_prompt_id
        )
        messages = build_chat_messages(
            store.history(conversation.id), system_prompt, turn.message
        )
        request = self.build_request(conversation, messages, turn, stream=True)

        if save_user_message and turn.message:
            store.append(conversation.id, "user", turn.message)

        logger.info(
            "Starting relay",
            data={
                "conversation_id": conversation.id,
                "model": request.model,
                "messages": len(messages),
                "thinking": request.thinking,
            },
        )

        committer = CompletionCommitter(
            store, user_id, conversation.id, model=request.model
        )
        return RelaySession(
            self.provider,
            request,
            committer,
            message_type=message_type,
            wait_disconnect=wait_disconnect,
            token_buffer=self.settings.relay_token_buffer,
        )
