"""Tests for splitting upstream deltas into relay tokens."""

from aichat.providers import StreamDelta
from aichat.relay import AccumulatedTranscript, StreamToken, TokenKind, classify_delta


def test_content_only_delta() -> None:
    assert classify_delta(StreamDelta(content="Hel")) == [
        StreamToken("Hel", TokenKind.CONTENT)
    ]


def test_reasoning_comes_before_content() -> None:
    tokens = classify_delta(StreamDelta(content="answer", reasoning_content="thinking"))

    assert [t.kind for t in tokens] == [TokenKind.REASONING, TokenKind.CONTENT]
    assert tokens[0].is_reasoning
    assert not tokens[1].is_reasoning


def test_empty_delta_produces_no_tokens() -> None:
    assert classify_delta(StreamDelta()) == []
    assert classify_delta(StreamDelta(finish_reason="stop")) == []


def test_transcript_keeps_reasoning_apart() -> None:
    transcript = AccumulatedTranscript()
    for delta in (
        StreamDelta(reasoning_content="hmm "),
        StreamDelta(content="Hel", reasoning_content="ok"),
        StreamDelta(content="lo"),
    ):
        for token in classify_delta(delta):
            transcript.append(token)

    assert transcript.content == "Hello"
    assert transcript.reasoning_content == "hmm ok"
    assert transcript.token_count == 4
