"""
Message store backed by the SQL repositories.

Each call runs in its own short-lived session so the store can be used
after the request-scoped session has been closed (streaming replies are
saved once the response body is finished).
"""

from sqlalchemy.orm import Session, sessionmaker

from aichat.db.repositories import (
    create_message,
    get_conversation_messages,
    touch_conversation,
)
from aichat.providers.base import ChatMessage


class SqlMessageStore:
    """Implements the relay's MessageStore interface."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def append(
        self,
        conversation_id: str,
        role: str,
        content: str,
        reasoning_content: str = "",
        model: str | None = None,
    ) -> str:
        with self._session_factory() as db:
            message = create_message(
                db,
                conversation_id,
                role,
                content,
                reasoning_content=reasoning_content,
                model=model,
            )
            touch_conversation(db, conversation_id)
            return message.id

    def history(self, conversation_id: str) -> list[ChatMessage]:
        """Stored messages of a conversation, oldest first."""
        with self._session_factory() as db:
            return [
                ChatMessage(role=message.role, content=message.content)
                for message in get_conversation_messages(db, conversation_id)
            ]
