"""
Logging setup for the relay service.

Records carry the current request id and conversation id (from contextvars)
plus an optional `data` mapping passed as `logger.info("...", data={...})`.
Production output is one JSON object per line; debug output is coloured text.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, Optional

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
conversation_id_ctx: ContextVar[Optional[str]] = ContextVar("conversation_id", default=None)

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


class ContextFilter(logging.Filter):
    """Stamps the request and conversation ids onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        record.conversation_id = conversation_id_ctx.get()
        if not hasattr(record, "data"):
            record.data = None
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in ("request_id", "conversation_id", "data"):
            value = getattr(record, field, None)
            if value:
                entry[field] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Single-line coloured output for local development."""

    LEVEL_COLORS = {
        "DEBUG": "36",
        "INFO": "32",
        "WARNING": "33",
        "ERROR": "31",
        "CRITICAL": "35",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "0")
        when = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        request_id = (getattr(record, "request_id", None) or "-")[:8]
        parts = [
            when,
            f"\033[{color}m{record.levelname:<8}\033[0m",
            request_id,
            record.name,
            record.getMessage(),
        ]
        data = getattr(record, "data", None)
        if data:
            parts.append(json.dumps(data, default=str, ensure_ascii=False))
        line = " | ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class ContextLogger(logging.LoggerAdapter):
    """Adapter that moves a `data=` keyword into the record's extras."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        data = kwargs.pop("data", None)
        if data is not None:
            kwargs["extra"] = {**kwargs.get("extra", {}), "data": data}
        return msg, kwargs


@lru_cache(maxsize=None)
def get_logger(name: str) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), {})


def _handler(stream_or_path: Any, formatter: logging.Formatter) -> logging.Handler:
    if isinstance(stream_or_path, str):
        handler: logging.Handler = logging.FileHandler(stream_or_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(stream_or_path)
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())
    return handler


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Replace the root handlers.

    Args:
        level: Root log level name.
        json_output: JSON lines on stdout instead of coloured text.
        log_file: Optional extra destination, always written as JSON.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    for existing in list(root.handlers):
        root.removeHandler(existing)

    stdout_format = StructuredFormatter() if json_output else ConsoleFormatter()
    root.addHandler(_handler(sys.stdout, stdout_format))
    if log_file:
        root.addHandler(_handler(log_file, StructuredFormatter()))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
