"""
Stream consumer: turns channel traffic into client SSE frames.

Every frame is `data: {json}\n\n`. A session emits the opening
`{conversationId}` frame, zero or more token frames, then exactly one
`finish` or `error` frame, unless the client left first.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import Any

from aichat.core import AppError, get_logger
from aichat.relay.channels import ChannelClosed, RelayChannels
from aichat.relay.committer import AccumulatedTranscript, CompletionCommitter
from aichat.relay.tokens import StreamToken

logger = get_logger(__name__)

ERROR_MESSAGE = "AI service request failed"

DisconnectWatcher = Callable[[], Awaitable[Any]]


class RelayOutcome(str, Enum):
    FINISHED = "finished"
    ERRORED = "errored"
    DISCONNECTED = "disconnected"


def format_event(payload: dict[str, Any]) -> str:
    """Serialize one client event."""
    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return f"data: {data}\n\n"


class StreamConsumer:
    """
    Drains one channel pair and encodes client events.

    Args:
        channels: Channel pair fed by the upstream reader.
        committer: Persists the transcript when the session ends.
        conversation_id: Echoed in every frame that carries it.
        message_type: Event type for content tokens ("message" or "token").
        wait_disconnect: Coroutine function that returns once the client is gone.
    """

    def __init__(
        self,
        channels: RelayChannels,
        committer: CompletionCommitter,
        conversation_id: str,
        message_type: str = "message",
        wait_disconnect: DisconnectWatcher | None = None,
    ):
        self._channels = channels
        self._committer = committer
        self.conversation_id = conversation_id
        self.message_type = message_type
        self._wait_disconnect = wait_disconnect
        self.transcript = AccumulatedTranscript()
        self.outcome: RelayOutcome | None = None
        self.error: AppError | None = None

    def _token_event(self, token: StreamToken) -> str:
        self.transcript.append(token)
        return format_event(
            {
                "type": "reasoning" if token.is_reasoning else self.message_type,
                "content": token.content,
                "done": False,
                "conversationId": self.conversation_id,
            }
        )

    def _finish(self) -> str:
        self.outcome = RelayOutcome.FINISHED
        return format_event(
            {
                "type": "finish",
                "conversationId": self.conversation_id,
                "content": self.transcript.content,
                "chunkCount": self.transcript.token_count,
            }
        )

    def _fail(self, error: AppError) -> str:
        self.outcome = RelayOutcome.ERRORED
        self.error = error
        details = error.message
        reason = (error.details or {}).get("reason")
        if reason:
            details = f"{details}: {reason}"
        return format_event({"type": "error", "message": ERROR_MESSAGE, "details": details})

    def _disconnected(self) -> None:
        self.outcome = RelayOutcome.DISCONNECTED
        logger.info(
            "Client disconnected from relay",
            data={"tokens": self.transcript.token_count},
        )
        self._committer.commit(self.transcript)

    async def _take_buffered_tokens(
        self, token_task: asyncio.Future | None
    ) -> list[StreamToken]:
        """Tokens decoded before the error: an in-flight receive plus the backlog."""
        tokens: list[StreamToken] = []
        if token_task is not None:
            if not token_task.done():
                token_task.cancel()
            await asyncio.wait([token_task])
            if not token_task.cancelled() and token_task.exception() is None:
                tokens.append(token_task.result())
        tokens.extend(self._channels.tokens.drain())
        return tokens

    async def events(self) -> AsyncIterator[str]:
        """Async generator of encoded events for one session."""
        token_task: asyncio.Future | None = None
        error_task: asyncio.Future | None = None
        disconnect_task: asyncio.Future | None = None
        tokens_open = errors_open = True

        try:
            yield format_event({"conversationId": self.conversation_id})

            if self._wait_disconnect is not None:
                disconnect_task = asyncio.ensure_future(self._wait_disconnect())

            while tokens_open or errors_open:
                if tokens_open and token_task is None:
                    token_task = asyncio.ensure_future(self._channels.tokens.receive())
                if errors_open and error_task is None:
                    error_task = asyncio.ensure_future(self._channels.errors.receive())

                waiting = {
                    task
                    for task in (token_task, error_task, disconnect_task)
                    if task is not None
                }
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                if disconnect_task is not None and disconnect_task in done:
                    self._disconnected()
                    return

                if token_task is not None and token_task in done:
                    finished, token_task = token_task, None
                    try:
                        token = finished.result()
                    except ChannelClosed:
                        tokens_open = False
                    else:
                        yield self._token_event(token)

                if error_task is not None and error_task in done:
                    finished, error_task = error_task, None
                    try:
                        error = finished.result()
                    except ChannelClosed:
                        errors_open = False
                    else:
                        for token in await self._take_buffered_tokens(token_task):
                            yield self._token_event(token)
                        token_task = None
                        yield self._fail(error)
                        self._committer.commit(self.transcript)
                        return

            yield self._finish()
            self._committer.commit(self.transcript)
        finally:
            for task in (token_task, error_task, disconnect_task):
                if task is not None and not task.done():
                    task.cancel()
            if self.outcome is None:
                # Cancelled by the server or closed by the caller mid-stream
                self._disconnected()
            elif not self._committer.committed:
                self._committer.commit(self.transcript)
