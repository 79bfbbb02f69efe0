"""
OpenAI-compatible chat-completion adapter.

Talks to `{base_url}/chat/completions` with bearer authentication, either
as a single JSON request or as a server-sent-event stream.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx

from aichat.core import (
    ProviderBadResponseError,
    StreamingError,
    UpstreamStatusError,
    get_logger,
)
from aichat.core.metrics import metrics
from aichat.providers.base import (
    BaseProvider,
    ChatChoice,
    ChatRequest,
    ChatResponse,
    StreamDelta,
)
from aichat.providers.http_client import (
    create_http_client,
    map_transport_error,
    parse_json,
    request_headers,
)
from aichat.providers.sse import DONE_SENTINEL, FrameDecodeError, decode_delta, parse_data_line

logger = get_logger(__name__)

COMPLETIONS_PATH = "/chat/completions"


class OpenAICompatProvider(BaseProvider):
    """Provider for any server speaking the OpenAI chat-completions protocol."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._client = create_http_client(
            self.base_url,
            timeout_seconds,
            headers=self._headers(),
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def aclose(self) -> None:
        await self._client.aclose()

    async def chat_once(self, request: ChatRequest) -> ChatResponse:
        payload = request.to_payload()
        payload.pop("stream", None)

        try:
            response = await self._client.post(
                COMPLETIONS_PATH, json=payload, headers=request_headers()
            )
        except httpx.HTTPError as exc:
            raise map_transport_error(exc) from exc

        if not response.is_success:
            logger.warning(
                "Upstream completion failed",
                data={"status": response.status_code, "model": request.model},
            )
            raise UpstreamStatusError(response.status_code, response.text)

        return _parse_completion(parse_json(response), request.model)

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[StreamDelta]:
        payload = request.to_payload()
        payload["stream"] = True

        try:
            async with self._client.stream(
                "POST", COMPLETIONS_PATH, json=payload, headers=request_headers()
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.warning(
                        "Upstream stream rejected",
                        data={"status": response.status_code, "model": request.model},
                    )
                    raise UpstreamStatusError(response.status_code, body, streaming=True)

                frames = 0
                try:
                    async for line in response.aiter_lines():
                        data = parse_data_line(line)
                        if not data:
                            continue
                        if data == DONE_SENTINEL:
                            logger.debug("Upstream stream done", data={"frames": frames})
                            return
                        try:
                            delta = decode_delta(data)
                        except FrameDecodeError as exc:
                            metrics.increment("malformed_frames_total")
                            logger.debug(
                                "Skipping malformed stream frame",
                                data={"reason": str(exc), "frame": data[:200]},
                            )
                            continue
                        frames += 1
                        yield delta
                except httpx.HTTPError as exc:
                    raise StreamingError(
                        "Error reading upstream stream",
                        details={"reason": str(exc) or type(exc).__name__},
                    ) from exc

                # TODO: surface truncation to the client once a frame type for it exists
                logger.warning(
                    "Upstream stream ended without [DONE]; output may be truncated",
                    data={"frames": frames, "model": request.model},
                )
        except httpx.HTTPError as exc:
            raise map_transport_error(exc) from exc


def _parse_completion(data: Any, requested_model: str) -> ChatResponse:
    if not isinstance(data, dict) or not isinstance(data.get("choices"), list):
        raise ProviderBadResponseError(
            "Provider returned invalid response", details={"reason": "missing choices"}
        )

    choices: list[ChatChoice] = []
    for index, choice in enumerate(data["choices"]):
        if not isinstance(choice, dict):
            continue
        message = choice.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        role = message.get("role") if isinstance(message, dict) else None
        choices.append(
            ChatChoice(
                index=choice.get("index", index),
                role=role if isinstance(role, str) else "assistant",
                content=content if isinstance(content, str) else "",
                finish_reason=choice.get("finish_reason"),
            )
        )

    usage = data.get("usage") if isinstance(data.get("usage"), dict) else {}
    return ChatResponse(
        choices=choices,
        model=data.get("model") or requested_model,
        prompt_tokens=int(usage.get("prompt_tokens") or 0),
        completion_tokens=int(usage.get("completion_tokens") or 0),
        total_tokens=int(usage.get("total_tokens") or 0),
        raw=data,
    )
