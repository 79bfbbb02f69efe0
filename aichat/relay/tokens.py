"""Token classification for decoded upstream deltas."""

from dataclasses import dataclass
from enum import Enum

from aichat.providers.base import StreamDelta


class TokenKind(str, Enum):
    """What part of the reply a token belongs to."""

    CONTENT = "content"
    REASONING = "reasoning"


@dataclass(frozen=True)
class StreamToken:
    """One fragment of upstream output, relayed to the client exactly once."""

    content: str
    kind: TokenKind

    @property
    def is_reasoning(self) -> bool:
        return self.kind is TokenKind.REASONING


def classify_delta(delta: StreamDelta) -> list[StreamToken]:
    """
    Split a delta into at most one reasoning token and one content token.

    Reasoning always precedes content. Empty fields produce no token.
    """
    tokens: list[StreamToken] = []
    if delta.reasoning_content:
        tokens.append(StreamToken(delta.reasoning_content, TokenKind.REASONING))
    if delta.content:
        tokens.append(StreamToken(delta.content, TokenKind.CONTENT))
    return tokens
