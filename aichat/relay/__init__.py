"""Streaming relay between the upstream chat API and SSE clients."""

from aichat.relay.channels import ChannelClosed, RelayChannel, RelayChannels
from aichat.relay.committer import (
    AccumulatedTranscript,
    CompletionCommitter,
    MessageStore,
)
from aichat.relay.consumer import (
    ERROR_MESSAGE,
    RelayOutcome,
    StreamConsumer,
    format_event,
)
from aichat.relay.reader import read_upstream, start_reader
from aichat.relay.session import RelaySession
from aichat.relay.tokens import StreamToken, TokenKind, classify_delta

__all__ = [
    "AccumulatedTranscript",
    "ChannelClosed",
    "CompletionCommitter",
    "ERROR_MESSAGE",
    "MessageStore",
    "RelayChannel",
    "RelayChannels",
    "RelayOutcome",
    "RelaySession",
    "StreamConsumer",
    "StreamToken",
    "TokenKind",
    "classify_delta",
    "format_event",
    "read_upstream",
    "start_reader",
]
