"""Server-Sent Events adapter — turns an event bus subscription into a response."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable

from fastapi.responses import StreamingResponse

from livechat.application.services import Subscription

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _frames(
    subscription: Subscription,
    on_close: Callable[[], Awaitable[None]] | None,
) -> AsyncGenerator[str, None]:
    try:
        yield ": connected\n\n"
        async for event in subscription:
            if event.is_heartbeat:
                yield ": heartbeat\n\n"
                continue
            yield f"data: {json.dumps(event.to_payload(), default=str)}\n\n"
    finally:
        subscription.close()
        logger.debug("SSE client detached from %s", subscription.topics)
        if on_close is not None:
            # A disconnect cancels the stream; the hook still has to run to completion
            await asyncio.shield(on_close())


def event_stream_response(
    subscription: Subscription,
    on_close: Callable[[], Awaitable[None]] | None = None,
) -> StreamingResponse:
    """Stream ``subscription`` as SSE; ``on_close`` runs once the client goes away."""
    return StreamingResponse(
        _frames(subscription, on_close),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
