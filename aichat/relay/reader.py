"""The upstream reader task: provider deltas in, classified tokens out."""

from __future__ import annotations

import asyncio
from contextlib import aclosing

from aichat.core import AppError, StreamingError, get_logger
from aichat.providers.base import BaseProvider, ChatRequest
from aichat.relay.channels import RelayChannels
from aichat.relay.tokens import classify_delta

logger = get_logger(__name__)


async def read_upstream(
    provider: BaseProvider, request: ChatRequest, channels: RelayChannels
) -> None:
    """
    Relay one upstream stream into the channel pair.

    At most one error is reported. Both channels are closed on every exit
    path, including cancellation.
    """
    sent = 0
    try:
        async with aclosing(provider.chat_stream(request)) as deltas:
            async for delta in deltas:
                for token in classify_delta(delta):
                    await channels.tokens.send(token)
                    sent += 1
    except AppError as exc:
        logger.warning(
            "Upstream stream failed",
            data={"code": exc.code.value, "message": exc.message, "tokens": sent},
        )
        await channels.errors.send(exc)
    except asyncio.CancelledError:
        logger.debug("Upstream reader cancelled", data={"tokens": sent})
        raise
    except Exception as exc:
        logger.exception("Unexpected upstream reader failure")
        await channels.errors.send(
            StreamingError("Unexpected upstream failure", details={"reason": str(exc)})
        )
    finally:
        channels.close()


def start_reader(
    provider: BaseProvider, request: ChatRequest, channels: RelayChannels
) -> asyncio.Task:
    """Spawn the reader as an independent task."""
    return asyncio.create_task(
        read_upstream(provider, request, channels), name="relay-upstream-reader"
    )
