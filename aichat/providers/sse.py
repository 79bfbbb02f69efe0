"""
Decoding of upstream server-sent-event frames.

The upstream sends newline-delimited `data: {json}` lines terminated by an
optional `data: [DONE]` line.
"""

import json
from typing import Any

from aichat.providers.base import StreamDelta

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class FrameDecodeError(ValueError):
    """A data frame that is not valid JSON or not a chat-completion chunk."""


def parse_data_line(line: str) -> str | None:
    """
    Extract the payload of a `data:` line.

    Returns None for blank lines and lines of any other kind
    (comments, `event:` fields and so on).
    """
    line = line.strip()
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):].strip()


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def decode_delta(payload: str) -> StreamDelta:
    """
    Decode a chunk payload `{choices:[{delta:{...}, finish_reason}]}`.

    Only the first choice is relayed. A chunk without choices (usage-only
    chunks, keep-alives) decodes to an empty delta.
    """
    try:
        chunk = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise FrameDecodeError(f"invalid JSON: {exc.msg}") from exc

    if not isinstance(chunk, dict):
        raise FrameDecodeError("chunk is not an object")

    choices = chunk.get("choices")
    if choices is None:
        return StreamDelta()
    if not isinstance(choices, list):
        raise FrameDecodeError("choices is not a list")
    if not choices:
        return StreamDelta()

    choice = choices[0]
    if not isinstance(choice, dict):
        raise FrameDecodeError("choice is not an object")

    delta = choice.get("delta") or {}
    if not isinstance(delta, dict):
        raise FrameDecodeError("delta is not an object")

    finish_reason = choice.get("finish_reason")
    return StreamDelta(
        content=_text(delta.get("content")),
        reasoning_content=_text(delta.get("reasoning_content")),
        finish_reason=finish_reason if isinstance(finish_reason, str) else None,
    )
