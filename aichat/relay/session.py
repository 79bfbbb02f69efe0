"""
Relay session: one client connection bound to one upstream request.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from contextlib import aclosing

from aichat.core import get_logger
from aichat.core.metrics import metrics
from aichat.providers.base import BaseProvider, ChatRequest
from aichat.relay.channels import RelayChannels
from aichat.relay.committer import CompletionCommitter
from aichat.relay.consumer import DisconnectWatcher, RelayOutcome, StreamConsumer
from aichat.relay.reader import start_reader

logger = get_logger(__name__)


class RelaySession:
    """
    Runs the upstream reader task and the consumer for a single exchange.

    A session can be streamed once. The reader task is cancelled when the
    consumer stops, whatever the reason.
    """

    def __init__(
        self,
        provider: BaseProvider,
        request: ChatRequest,
        committer: CompletionCommitter,
        *,
        message_type: str = "message",
        wait_disconnect: DisconnectWatcher | None = None,
        token_buffer: int = 100,
    ):
        if not request.stream:
            raise ValueError("relay requires a streaming request")
        self._provider = provider
        self._request = request
        self.conversation_id = committer.conversation_id
        self.channels = RelayChannels(token_buffer)
        self.consumer = StreamConsumer(
            self.channels,
            committer,
            committer.conversation_id,
            message_type=message_type,
            wait_disconnect=wait_disconnect,
        )
        self._started = False

    async def stream(self) -> AsyncIterator[str]:
        """Yield encoded client events until the session terminates."""
        if self._started:
            raise RuntimeError("relay session already streamed")
        self._started = True

        metrics.increment("relay_sessions_total")
        metrics.adjust_gauge("active_relays", 1)
        started_at = time.perf_counter()
        reader = start_reader(self._provider, self._request, self.channels)

        try:
            async with aclosing(self.consumer.events()) as events:
                async for event in events:
                    yield event
        finally:
            if not reader.done():
                reader.cancel()

            outcome = self.consumer.outcome
            if outcome is RelayOutcome.DISCONNECTED:
                metrics.increment("relay_disconnects_total")
            elif outcome is RelayOutcome.ERRORED:
                metrics.increment("relay_errors_total")

            elapsed = time.perf_counter() - started_at
            metrics.observe("relay_duration_seconds", elapsed)
            metrics.adjust_gauge("active_relays", -1)

            logger.info(
                "Relay session ended",
                data={
                    "conversation_id": self.conversation_id,
                    "outcome": outcome.value if outcome else None,
                    "tokens": self.consumer.transcript.token_count,
                    "duration_ms": round(elapsed * 1000, 2),
                },
            )
