"""Persistence of the assistant reply when a relay session ends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from aichat.core import get_logger
from aichat.core.metrics import metrics
from aichat.providers.base import ChatMessage
from aichat.relay.tokens import StreamToken

logger = get_logger(__name__)


class MessageStore(Protocol):
    """Message persistence used by the relay and chat service."""

    def append(
        self,
        conversation_id: str,
        role: str,
        content: str,
        reasoning_content: str = "",
        model: str | None = None,
    ) -> str:
        ...

    def history(self, conversation_id: str) -> list[ChatMessage]:
        ...


@dataclass
class AccumulatedTranscript:
    """Everything a session relayed so far. Append-only."""

    content: str = ""
    reasoning_content: str = ""
    token_count: int = 0

    def append(self, token: StreamToken) -> None:
        if token.is_reasoning:
            self.reasoning_content += token.content
        else:
            self.content += token.content
        self.token_count += 1


class CompletionCommitter:
    """
    Saves the assistant reply of one relay session.

    Commits at most once; an empty reply is never saved. Storage failures
    are logged and do not propagate, since the client has already been
    answered when they happen.
    """

    def __init__(
        self,
        store: MessageStore,
        user_id: str,
        conversation_id: str,
        model: str | None = None,
    ):
        self._store = store
        self.user_id = user_id
        self.conversation_id = conversation_id
        self.model = model
        self._committed = False

    @property
    def committed(self) -> bool:
        return self._committed

    def commit(self, transcript: AccumulatedTranscript) -> str | None:
        """Persist the transcript; returns the new message id when one was written."""
        if self._committed:
            logger.debug("Commit already done for this session")
            return None
        self._committed = True

        if not transcript.content:
            logger.info(
                "No assistant content to persist",
                data={"tokens": transcript.token_count},
            )
            return None

        try:
            message_id = self._store.append(
                self.conversation_id,
                "assistant",
                transcript.content,
                transcript.reasoning_content,
                self.model,
            )
        except Exception:
            metrics.increment("commit_failures_total")
            logger.exception(
                "Failed to save assistant message",
                data={"user_id": self.user_id, "chars": len(transcript.content)},
            )
            return None

        logger.info(
            "Assistant message saved",
            data={"message_id": message_id, "chars": len(transcript.content)},
        )
        return message_id
