"""Upstream chat-completion providers."""

from aichat.providers.base import (
    BaseProvider,
    ChatChoice,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    StreamDelta,
)
from aichat.providers.openai_compat import OpenAICompatProvider

__all__ = [
    "BaseProvider",
    "ChatChoice",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "OpenAICompatProvider",
    "StreamDelta",
]
