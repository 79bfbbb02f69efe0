"""
HTTP middleware: request ids with access logging, body size cap, per-client throttling.
"""

import time
import uuid
from collections import defaultdict, deque
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from aichat.core.errors import ErrorCode
from aichat.core.exceptions import error_response
from aichat.core.logging import conversation_id_ctx, get_logger, request_id_ctx

logger = get_logger(__name__)


def client_address(request: Request) -> str:
    """First X-Forwarded-For hop when present, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return request.client.host if request.client else "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id (taken from X-Request-ID or generated) for the
    duration of the request and logs one access line per response.

    For SSE responses the line is written once headers are sent, not when
    the stream ends; relay sessions log their own summary.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        tokens = (request_id_ctx.set(request_id), conversation_id_ctx.set(None))
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                data={"duration_ms": round((time.perf_counter() - started) * 1000, 2)},
            )
            return response
        finally:
            request_id_ctx.reset(tokens[0])
            conversation_id_ctx.reset(tokens[1])


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects bodies whose declared Content-Length exceeds `max_bytes`."""

    def __init__(self, app: FastAPI, max_bytes: int = 1_048_576):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_bytes:
            logger.warning(
                "Request body too large",
                data={"content_length": int(declared), "max_bytes": self.max_bytes},
            )
            return error_response(
                413,
                ErrorCode.REQUEST_TOO_LARGE,
                f"Request body exceeds {self.max_bytes} bytes",
            )
        return await call_next(request)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding one-minute window per client address, kept in process memory.

    A limit of 0 disables throttling. Probe endpoints are never throttled.
    """

    EXEMPT_PATHS = frozenset({"/health", "/readyz", "/metrics"})
    WINDOW_SECONDS = 60.0

    def __init__(self, app: FastAPI, requests_per_minute: int = 60):
        super().__init__(app)
        self.limit = max(0, int(requests_per_minute))
        self._hits: defaultdict[str, deque[float]] = defaultdict(deque)

    def _retry_after(self, client: str, now: float) -> float | None:
        """Record a hit and return None, or return seconds until a slot frees up."""
        hits = self._hits[client]
        while hits and now - hits[0] >= self.WINDOW_SECONDS:
            hits.popleft()
        if len(hits) >= self.limit:
            return self.WINDOW_SECONDS - (now - hits[0])
        hits.append(now)
        return None

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.limit or request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        client = client_address(request)
        retry_after = self._retry_after(client, time.monotonic())
        if retry_after is None:
            return await call_next(request)

        logger.warning("Rate limit exceeded", data={"client": client, "path": request.url.path})
        response = error_response(
            429,
            ErrorCode.RATE_LIMITED,
            "Too many requests, please try again later",
            {"retry_after_seconds": max(1, round(retry_after))},
        )
        response.headers["Retry-After"] = str(max(1, round(retry_after)))
        return response
