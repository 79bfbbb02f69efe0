"""
Base provider interface.

Defines the upstream chat-completion contract the relay and the
non-streaming chat route are written against.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

VALID_ROLES = ("system", "user", "assistant")
THINKING_MODES = ("enabled", "disabled")


@dataclass(frozen=True)
class ChatMessage:
    """A single chat message."""

    role: str  # "system", "user", "assistant"
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ChatRequest:
    """Request for chat completion. Built once per call, never mutated."""

    messages: tuple[ChatMessage, ...]
    model: str
    temperature: float = 0.7
    stream: bool = False
    thinking: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature out of range: {self.temperature}")
        if self.thinking is not None and self.thinking not in THINKING_MODES:
            raise ValueError(f"unknown thinking mode: {self.thinking}")
        for message in self.messages:
            if message.role not in VALID_ROLES:
                raise ValueError(f"unknown message role: {message.role}")

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the upstream JSON body."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
            "temperature": self.temperature,
        }
        if self.stream:
            payload["stream"] = True
        if self.thinking:
            payload["thinking"] = {"type": self.thinking}
        return payload


@dataclass(frozen=True)
class StreamDelta:
    """The incremental part of one decoded streaming frame."""

    content: str = ""
    reasoning_content: str = ""
    finish_reason: str | None = None


@dataclass
class ChatChoice:
    index: int
    role: str
    content: str
    finish_reason: str | None = None


@dataclass
class ChatResponse:
    """Complete chat response (non-streaming)."""

    choices: list[ChatChoice]
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def content(self) -> str:
        """Text of the first choice, or empty when the upstream sent none."""
        return self.choices[0].content if self.choices else ""


class BaseProvider(ABC):
    """
    Abstract base class for upstream chat-completion APIs.
    """

    async def aclose(self) -> None:
        """Close any underlying resources (optional)."""
        return None

    @abstractmethod
    async def chat_once(self, request: ChatRequest) -> ChatResponse:
        """
        Send a chat request and wait for complete response.

        Raises:
            UpstreamStatusError: If the upstream answers with a non-success status
            ProviderUnavailableError: If the upstream cannot be reached
        """
        ...

    @abstractmethod
    def chat_stream(self, request: ChatRequest) -> AsyncIterator[StreamDelta]:
        """
        Send a streaming chat request and yield decoded deltas in arrival order.

        Malformed frames are skipped. The iterator ends on the `[DONE]` frame
        or at end of body.

        Raises:
            UpstreamStatusError: If the upstream answers with a non-success status
            ProviderUnavailableError: If the upstream cannot be reached
            StreamingError: If reading the body fails after it started
        """
        ...
