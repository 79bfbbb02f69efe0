"""
Bounded channels connecting the upstream reader task to the stream consumer.

A channel is an asyncio.Queue with close semantics: once closed and drained,
receivers get ChannelClosed instead of blocking forever.
"""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

from aichat.core.errors import AppError
from aichat.relay.tokens import StreamToken

T = TypeVar("T")

_CLOSED = object()


class ChannelClosed(Exception):
    """Raised when receiving from a closed channel with nothing left in it."""


class RelayChannel(Generic[T]):
    """Single-producer, single-consumer bounded channel."""

    def __init__(self, maxsize: int):
        if maxsize <= 0:
            raise ValueError("channel capacity must be positive")
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, item: T) -> None:
        """Put an item, waiting while the channel is full."""
        if self._closed:
            raise ChannelClosed("send on closed channel")
        await self._queue.put(item)

    async def receive(self) -> T:
        """Take the next item in send order."""
        if self._closed and self._queue.empty():
            raise ChannelClosed
        item = await self._queue.get()
        if item is _CLOSED:
            raise ChannelClosed
        return item

    def drain(self) -> list[T]:
        """Take every buffered item without waiting."""
        items: list[T] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return items
            if item is not _CLOSED:
                items.append(item)

    def close(self) -> None:
        """Close the channel. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            # Wakes a receiver blocked on an empty queue
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass


class RelayChannels:
    """The token channel and the single-slot error channel of one relay session."""

    def __init__(self, token_capacity: int = 100):
        self.tokens: RelayChannel[StreamToken] = RelayChannel(token_capacity)
        self.errors: RelayChannel[AppError] = RelayChannel(1)

    @property
    def closed(self) -> bool:
        return self.tokens.closed and self.errors.closed

    def close(self) -> None:
        self.tokens.close()
        self.errors.close()
