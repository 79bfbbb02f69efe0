"""Shared fixtures: temporary databases, a scripted upstream API and test clients."""

import asyncio
import json
import os
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

# Settings are read when the application module is imported
_DATA_DIR = Path(tempfile.mkdtemp(prefix="aichat-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DATA_DIR / 'app.db'}"
os.environ["RATE_LIMIT_RPM"] = "0"
os.environ["REGISTRATION_ENABLED"] = "true"
os.environ["AI_API_KEY"] = "test-key"
os.environ["AI_BASE_URL"] = "http://upstream.test/v1"
os.environ["AI_MODEL"] = "test-model"
os.environ["SSE_DISCONNECT_POLL_SECONDS"] = "0.05"

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from aichat.api.ai import get_message_store  # noqa: E402
from aichat.auth.password import hash_password  # noqa: E402
from aichat.db import Base, SqlMessageStore, build_engine, get_db  # noqa: E402
from aichat.db.models import User  # noqa: E402
from aichat.db.repositories import create_user  # noqa: E402
from aichat.main import app  # noqa: E402
from aichat.providers import ChatMessage, OpenAICompatProvider  # noqa: E402
from aichat.services import ChatService  # noqa: E402

UPSTREAM_BASE_URL = "http://upstream.test/v1"
DEFAULT_PASSWORD = "secret-pass"


class ScriptedStream(httpx.AsyncByteStream):
    """Response body delivered frame by frame, then optionally failing or stalling."""

    def __init__(
        self,
        frames: list[bytes],
        fail_with: Exception | None = None,
        stall: bool = False,
    ):
        self.frames = frames
        self.fail_with = fail_with
        self.stall = stall
        self.release = asyncio.Event()
        self.closed = False

    async def __aiter__(self):
        for frame in self.frames:
            yield frame
        if self.stall:
            await self.release.wait()
        if self.fail_with is not None:
            raise self.fail_with

    async def aclose(self) -> None:
        self.closed = True


class FakeUpstream:
    """OpenAI-compatible upstream served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.respond: Callable[[dict[str, Any]], httpx.Response] | None = None
        self.stream_frames = self.frames(self.chunk("Hel"), self.chunk("lo"))
        self.completion: dict[str, Any] = {
            "id": "cmpl-1",
            "object": "chat.completion",
            "model": "test-model",
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": "Hi there"},
                    "finish_reason": "stop",
                }
            ],
            "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
        }

    @staticmethod
    def chunk(
        content: str | None = None,
        reasoning: str | None = None,
        finish_reason: str | None = None,
    ) -> dict[str, Any]:
        delta: dict[str, Any] = {}
        if content is not None:
            delta["content"] = content
        if reasoning is not None:
            delta["reasoning_content"] = reasoning
        return {
            "id": "chunk-1",
            "object": "chat.completion.chunk",
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        }

    @staticmethod
    def frames(*chunks: dict[str, Any] | str, done: bool = True) -> list[bytes]:
        """Encode chunks as `data:` lines; strings are sent verbatim."""
        lines = [
            f"data: {chunk if isinstance(chunk, str) else json.dumps(chunk)}\n\n".encode()
            for chunk in chunks
        ]
        if done:
            lines.append(b"data: [DONE]\n\n")
        return lines

    @staticmethod
    def stream(
        frames: list[bytes],
        fail_with: Exception | None = None,
        stall: bool = False,
    ) -> ScriptedStream:
        return ScriptedStream(frames, fail_with=fail_with, stall=stall)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        payload = json.loads(request.content)
        if self.respond is not None:
            return self.respond(payload)
        if payload.get("stream"):
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=b"".join(self.stream_frames),
            )
        return httpx.Response(200, json=self.completion)

    @property
    def last_payload(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)

    def provider(self) -> OpenAICompatProvider:
        return OpenAICompatProvider(
            UPSTREAM_BASE_URL,
            "test-key",
            timeout_seconds=5,
            transport=httpx.MockTransport(self.handle),
        )


class MemoryStore:
    """In-memory message store; set `fail` to simulate a broken database."""

    def __init__(self, history: list[ChatMessage] | None = None):
        self.saved: list[dict[str, Any]] = []
        self._history = list(history or [])
        self.fail = False

    def append(
        self,
        conversation_id: str,
        role: str,
        content: str,
        reasoning_content: str = "",
        model: str | None = None,
    ) -> str:
        if self.fail:
            raise RuntimeError("database is locked")
        self.saved.append(
            {
                "conversation_id": conversation_id,
                "role": role,
                "content": content,
                "reasoning_content": reasoning_content,
                "model": model,
            }
        )
        return f"msg-{len(self.saved)}"

    def history(self, conversation_id: str) -> list[ChatMessage]:
        return list(self._history)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_store() -> Callable[..., MemoryStore]:
    return MemoryStore


@pytest.fixture
def session_factory(tmp_path) -> Iterator[sessionmaker[Session]]:
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def db_session(session_factory) -> Iterator[Session]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory, upstream) -> Iterator[TestClient]:
    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    provider = upstream.provider()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_message_store] = lambda: SqlMessageStore(session_factory)
    app.state.provider = provider
    app.state.chat_service = ChatService(provider)

    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        app.state.provider = None
        app.state.chat_service = None


@pytest.fixture
def make_user(db_session) -> Callable[..., User]:
    def _make(
        email: str = "user@example.com",
        password: str = DEFAULT_PASSWORD,
        name: str = "Test User",
        is_active: bool = True,
    ) -> User:
        return create_user(
            db_session,
            name=name,
            email=email,
            password_hash=hash_password(password),
            is_active=is_active,
        )

    return _make


@pytest.fixture
def login(client) -> Callable[..., dict[str, str]]:
    """Log in through the API and return the bearer header."""

    def _login(email: str, password: str = DEFAULT_PASSWORD) -> dict[str, str]:
        response = client.post(
            "/api/v1/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']['accessToken']}"}

    return _login


@pytest.fixture
def auth_headers(make_user, login) -> dict[str, str]:
    user = make_user()
    return login(user.email)
