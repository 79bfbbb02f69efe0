"""Tests for the streaming relay: ordering, termination, disconnects and persistence."""

import asyncio
import json
from contextlib import aclosing
from typing import Any

import httpx
import pytest

from aichat.core.metrics import metrics
from aichat.providers import ChatMessage, ChatRequest
from aichat.relay import (
    AccumulatedTranscript,
    CompletionCommitter,
    RelayOutcome,
    RelaySession,
    StreamToken,
    TokenKind,
)

CONVERSATION_ID = "conv-1"


def make_session(
    provider,
    store,
    *,
    conversation_id: str = CONVERSATION_ID,
    prompt: str = "Hi",
    message_type: str = "message",
    wait_disconnect=None,
    token_buffer: int = 100,
) -> RelaySession:
    request = ChatRequest(
        messages=(ChatMessage("user", prompt),), model="test-model", stream=True
    )
    committer = CompletionCommitter(store, "user-1", conversation_id, model="test-model")
    return RelaySession(
        provider,
        request,
        committer,
        message_type=message_type,
        wait_disconnect=wait_disconnect,
        token_buffer=token_buffer,
    )


def decode(raw: str) -> dict[str, Any]:
    assert raw.startswith("data: ") and raw.endswith("\n\n"), raw
    return json.loads(raw[len("data: "):])


async def collect(session: RelaySession) -> list[dict[str, Any]]:
    events = []
    async with aclosing(session.stream()) as stream:
        async for raw in stream:
            events.append(decode(raw))
    return events


async def wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


def counter(name: str) -> float:
    return metrics.snapshot()["counters"][name]


@pytest.mark.asyncio
async def test_relays_tokens_in_order_and_commits_reply(upstream, memory_store) -> None:
    """Each token becomes one frame; the finish frame carries the full reply."""
    provider = upstream.provider()

    events = await collect(make_session(provider, memory_store))

    assert events == [
        {"conversationId": CONVERSATION_ID},
        {"type": "message", "content": "Hel", "done": False, "conversationId": CONVERSATION_ID},
        {"type": "message", "content": "lo", "done": False, "conversationId": CONVERSATION_ID},
        {"type": "finish", "conversationId": CONVERSATION_ID, "content": "Hello", "chunkCount": 2},
    ]
    assert memory_store.saved == [
        {
            "conversation_id": CONVERSATION_ID,
            "role": "assistant",
            "content": "Hello",
            "reasoning_content": "",
            "model": "test-model",
        }
    ]
    await provider.aclose()


@pytest.mark.asyncio
async def test_token_label_is_configurable(upstream, memory_store) -> None:
    provider = upstream.provider()

    events = await collect(make_session(provider, memory_store, message_type="token"))

    assert [event.get("type") for event in events[1:]] == ["token", "token", "finish"]
    await provider.aclose()


@pytest.mark.asyncio
async def test_reasoning_is_relayed_before_content(upstream, memory_store) -> None:
    """Reasoning gets its own frame type and is stored apart from the reply."""
    upstream.stream_frames = upstream.frames(
        upstream.chunk(content="A", reasoning="think"),
        upstream.chunk(content="B"),
    )
    provider = upstream.provider()

    events = await collect(make_session(provider, memory_store))

    assert [(e["type"], e["content"]) for e in events[1:-1]] == [
        ("reasoning", "think"),
        ("message", "A"),
        ("message", "B"),
    ]
    assert events[-1] == {
        "type": "finish",
        "conversationId": CONVERSATION_ID,
        "content": "AB",
        "chunkCount": 3,
    }
    assert memory_store.saved[0]["content"] == "AB"
    assert memory_store.saved[0]["reasoning_content"] == "think"
    await provider.aclose()


@pytest.mark.asyncio
async def test_malformed_frames_are_skipped(upstream, memory_store) -> None:
    upstream.stream_frames = upstream.frames(
        upstream.chunk("a"),
        "{not json",
        '{"choices": "nope"}',
        upstream.chunk("b"),
    )
    provider = upstream.provider()
    before = counter("malformed_frames_total")

    events = await collect(make_session(provider, memory_store))

    assert [e["content"] for e in events[1:-1]] == ["a", "b"]
    assert events[-1]["type"] == "finish"
    assert counter("malformed_frames_total") == before + 2
    await provider.aclose()


@pytest.mark.asyncio
async def test_upstream_status_error_before_any_token(upstream, memory_store) -> None:
    """A rejected request yields one error frame and nothing is stored."""
    upstream.respond = lambda payload: httpx.Response(500, text="boom")
    provider = upstream.provider()
    before = counter("relay_errors_total")

    session = make_session(provider, memory_store)
    events = await collect(session)

    assert events == [
        {"conversationId": CONVERSATION_ID},
        {
            "type": "error",
            "message": "AI service request failed",
            "details": "AI stream API error: boom",
        },
    ]
    assert session.consumer.outcome is RelayOutcome.ERRORED
    assert memory_store.saved == []
    assert counter("relay_errors_total") == before + 1
    await provider.aclose()


@pytest.mark.asyncio
async def test_unreachable_upstream_reports_error(upstream, memory_store) -> None:
    def refuse(payload: dict[str, Any]) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    upstream.respond = refuse
    provider = upstream.provider()

    events = await collect(make_session(provider, memory_store))

    assert events[-1] == {
        "type": "error",
        "message": "AI service request failed",
        "details": "Provider unavailable: connection refused",
    }
    assert memory_store.saved == []
    await provider.aclose()


@pytest.mark.asyncio
async def test_mid_stream_failure_flushes_tokens_then_errors(upstream, memory_store) -> None:
    """Tokens read before the failure reach the client ahead of the error frame."""
    stream = upstream.stream(
        upstream.frames(upstream.chunk("Hel"), upstream.chunk("lo"), done=False),
        fail_with=httpx.ReadError("connection reset"),
    )
    upstream.respond = lambda payload: httpx.Response(200, stream=stream)
    provider = upstream.provider()

    events = await collect(make_session(provider, memory_store))

    assert [e.get("type") for e in events[1:]] == ["message", "message", "error"]
    assert [e["content"] for e in events[1:3]] == ["Hel", "lo"]
    assert events[-1]["details"] == "Error reading upstream stream: connection reset"
    assert not any(e.get("type") == "finish" for e in events)
    assert [m["content"] for m in memory_store.saved] == ["Hello"]
    await provider.aclose()


@pytest.mark.asyncio
async def test_client_disconnect_commits_tokens_already_sent(upstream, memory_store) -> None:
    stream = upstream.stream(
        upstream.frames(upstream.chunk("Hel"), upstream.chunk("lo"), done=False),
        stall=True,
    )
    upstream.respond = lambda payload: httpx.Response(200, stream=stream)
    provider = upstream.provider()
    gone = asyncio.Event()
    before = counter("relay_disconnects_total")

    session = make_session(provider, memory_store, wait_disconnect=gone.wait)
    received = []
    async with aclosing(session.stream()) as events:
        async for raw in events:
            event = decode(raw)
            assert event.get("type") not in ("finish", "error")
            if event.get("type") == "message":
                received.append(event["content"])
                if len(received) == 2:
                    gone.set()

    assert received == ["Hel", "lo"]
    assert session.consumer.outcome is RelayOutcome.DISCONNECTED
    assert [m["content"] for m in memory_store.saved] == ["Hello"]
    assert counter("relay_disconnects_total") == before + 1
    # The upstream response is released once the reader is cancelled
    await wait_until(lambda: stream.closed)
    await provider.aclose()


@pytest.mark.asyncio
async def test_disconnect_before_first_token_stores_nothing(upstream, memory_store) -> None:
    stream = upstream.stream([], stall=True)
    upstream.respond = lambda payload: httpx.Response(200, stream=stream)
    provider = upstream.provider()

    async def already_gone() -> None:
        return None

    session = make_session(provider, memory_store, wait_disconnect=already_gone)
    events = await collect(session)

    assert events == [{"conversationId": CONVERSATION_ID}]
    assert session.consumer.outcome is RelayOutcome.DISCONNECTED
    assert memory_store.saved == []
    await wait_until(lambda: stream.closed)
    await provider.aclose()


@pytest.mark.asyncio
async def test_closing_stream_early_counts_as_disconnect(upstream, memory_store) -> None:
    """A caller that stops iterating gets the partial reply saved."""
    stream = upstream.stream(upstream.frames(upstream.chunk("Hel"), done=False), stall=True)
    upstream.respond = lambda payload: httpx.Response(200, stream=stream)
    provider = upstream.provider()

    session = make_session(provider, memory_store)
    async with aclosing(session.stream()) as events:
        async for raw in events:
            if decode(raw).get("type") == "message":
                break

    assert session.consumer.outcome is RelayOutcome.DISCONNECTED
    assert [m["content"] for m in memory_store.saved] == ["Hel"]
    await wait_until(lambda: stream.closed)
    await provider.aclose()


@pytest.mark.asyncio
async def test_storage_failure_does_not_break_stream(upstream, memory_store) -> None:
    memory_store.fail = True
    provider = upstream.provider()
    before = counter("commit_failures_total")

    events = await collect(make_session(provider, memory_store))

    assert events[-1]["type"] == "finish"
    assert events[-1]["content"] == "Hello"
    assert counter("commit_failures_total") == before + 1
    await provider.aclose()


@pytest.mark.asyncio
async def test_small_token_buffer_relays_every_token(upstream, memory_store) -> None:
    words = ["one ", "two ", "three ", "four ", "five"]
    upstream.stream_frames = upstream.frames(*(upstream.chunk(w) for w in words))
    provider = upstream.provider()

    events = await collect(make_session(provider, memory_store, token_buffer=1))

    assert [e["content"] for e in events[1:-1]] == words
    assert events[-1]["chunkCount"] == len(words)
    await provider.aclose()


@pytest.mark.asyncio
async def test_concurrent_sessions_are_isolated(upstream, make_store) -> None:
    """Each session only sees the tokens of its own upstream response."""

    def respond(payload: dict[str, Any]) -> httpx.Response:
        name = payload["messages"][-1]["content"]
        body = b"".join(
            upstream.frames(upstream.chunk(f"{name}-1 "), upstream.chunk(f"{name}-2"))
        )
        return httpx.Response(200, content=body)

    upstream.respond = respond
    provider = upstream.provider()
    store_a, store_b = make_store(), make_store()
    events_a, events_b = await asyncio.gather(
        collect(make_session(provider, store_a, conversation_id="conv-a", prompt="alpha")),
        collect(make_session(provider, store_b, conversation_id="conv-b", prompt="beta")),
    )

    assert events_a[-1]["content"] == "alpha-1 alpha-2"
    assert events_b[-1]["content"] == "beta-1 beta-2"
    assert all(e["conversationId"] == "conv-a" for e in events_a)
    assert all(e["conversationId"] == "conv-b" for e in events_b)
    assert [m["content"] for m in store_a.saved] == ["alpha-1 alpha-2"]
    assert [m["content"] for m in store_b.saved] == ["beta-1 beta-2"]
    await provider.aclose()


@pytest.mark.asyncio
async def test_session_streams_once(upstream, memory_store) -> None:
    provider = upstream.provider()
    session = make_session(provider, memory_store)
    await collect(session)

    with pytest.raises(RuntimeError):
        await collect(session)
    await provider.aclose()


def test_session_requires_streaming_request(upstream, memory_store) -> None:
    request = ChatRequest(messages=(ChatMessage("user", "Hi"),), model="test-model")
    committer = CompletionCommitter(memory_store, "user-1", CONVERSATION_ID)

    with pytest.raises(ValueError):
        RelaySession(upstream.provider(), request, committer)


def test_committer_saves_at_most_once(memory_store) -> None:
    committer = CompletionCommitter(memory_store, "user-1", CONVERSATION_ID)
    transcript = AccumulatedTranscript()
    transcript.append(StreamToken("Hello", TokenKind.CONTENT))

    assert committer.commit(transcript) == "msg-1"
    assert committer.commit(transcript) is None
    assert len(memory_store.saved) == 1


def test_committer_skips_empty_reply(memory_store) -> None:
    committer = CompletionCommitter(memory_store, "user-1", CONVERSATION_ID)
    transcript = AccumulatedTranscript()
    transcript.append(StreamToken("only thoughts", TokenKind.REASONING))

    assert committer.commit(transcript) is None
    assert committer.committed
    assert memory_store.saved == []
