"""
Shared HTTP client helpers for the upstream adapter.

Provides consistent timeouts and error mapping so the adapter returns
stable AppError instances without leaking stack traces.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from aichat.core import (
    ProviderBadResponseError,
    ProviderError,
    ProviderUnavailableError,
    request_id_ctx,
)


def create_http_client(
    base_url: str,
    timeout_seconds: float,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Build an AsyncClient with consistent timeout settings.

    Args:
        base_url: Base URL of the upstream API.
        timeout_seconds: Timeout applied to connect, read and write.
        headers: Default headers to include.
        transport: Optional transport (used by tests with MockTransport).
    """
    timeout = httpx.Timeout(timeout_seconds)
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        timeout=timeout,
        headers=headers or {},
        transport=transport,
    )


def request_headers() -> dict[str, str]:
    """Per-request headers propagating the current request ID upstream."""
    request_id = request_id_ctx.get()
    return {"X-Request-ID": request_id} if request_id else {}


def map_transport_error(exc: httpx.HTTPError) -> Exception:
    """Translate an httpx failure raised before a response arrived."""
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return ProviderUnavailableError(
            "Provider unavailable", details={"reason": str(exc) or type(exc).__name__}
        )
    return ProviderError(
        "Provider request failed", details={"reason": str(exc) or type(exc).__name__}
    )


def parse_json(response: httpx.Response) -> Any:
    """
    Parse JSON with consistent error handling.
    """
    try:
        return response.json()
    except json.JSONDecodeError as exc:
        snippet = response.text[:500] if response.text else ""
        raise ProviderBadResponseError(
            "Provider returned invalid response",
            details={"body": snippet},
        ) from exc
