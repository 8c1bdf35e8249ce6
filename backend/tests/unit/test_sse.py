"""Unit tests for the SSE adapter."""

import asyncio
import json

import pytest

from livechat.application.services import EventBus
from livechat.presentation.api.v1.sse import SSE_HEADERS, event_stream_response


@pytest.mark.asyncio
async def test_frames_and_cleanup():
    bus = EventBus(heartbeat_interval=0.05)
    closed = []

    async def on_close() -> None:
        closed.append(True)

    response = event_stream_response(bus.subscribe("usage"), on_close=on_close)
    frames = response.body_iterator

    assert await frames.__anext__() == ": connected\n\n"
    bus.publish("usage", "usage", {"quota_cost": 5})
    frame = await frames.__anext__()
    assert frame.startswith("data: ")
    payload = json.loads(frame[len("data: "):])
    assert payload["type"] == "usage"
    assert payload["quota_cost"] == 5

    assert await frames.__anext__() == ": heartbeat\n\n"

    await bus.shutdown()
    with pytest.raises(StopAsyncIteration):
        await frames.__anext__()
    assert closed == [True]


def test_stream_headers():
    response = event_stream_response(EventBus().subscribe("quota"))

    assert response.media_type == "text/event-stream"
    for name, value in SSE_HEADERS.items():
        assert response.headers[name] == value


@pytest.mark.asyncio
async def test_close_hook_completes_when_stream_is_cancelled():
    bus = EventBus()
    released = asyncio.Event()

    async def on_close() -> None:
        await asyncio.sleep(0.01)
        released.set()

    frames = event_stream_response(bus.subscribe("usage"), on_close=on_close).body_iterator
    assert await frames.__anext__() == ": connected\n\n"

    # A client disconnect cancels the task consuming the stream
    reader = asyncio.create_task(frames.__anext__())
    await asyncio.sleep(0.01)
    reader.cancel()
    with pytest.raises(asyncio.CancelledError):
        await reader

    await asyncio.wait_for(released.wait(), timeout=1)
    assert bus.client_count == 0
