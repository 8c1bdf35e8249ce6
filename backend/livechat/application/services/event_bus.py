"""Event bus — in-process topic broadcaster for live dashboard feeds."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

HEARTBEAT = "heartbeat"

USAGE_TOPIC = "usage"
QUOTA_TOPIC = "quota"


def chat_topic(channel_id: str) -> str:
    return f"chat:{channel_id}"


@dataclass(frozen=True)
class BusEvent:
    """A single published event. Heartbeats carry no data."""

    topic: str
    type: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_heartbeat(self) -> bool:
        return self.type == HEARTBEAT

    def to_payload(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            **self.data,
        }


class Subscription:
    """Live view of one or more topics, consumed with ``async for``.

    Emits a heartbeat event every ``heartbeat_interval`` seconds regardless of
    traffic. Iteration ends when the bus shuts down or the subscriber is
    evicted; ``close()`` detaches it at any time.
    """

    def __init__(
        self,
        bus: "EventBus",
        queue: asyncio.Queue[BusEvent | None],
        topics: tuple[str, ...],
        heartbeat_interval: float,
    ) -> None:
        self._bus = bus
        self._queue = queue
        self._topics = topics
        self._heartbeat_interval = heartbeat_interval
        self._next_heartbeat: float | None = None
        self._closed = False

    @property
    def topics(self) -> tuple[str, ...]:
        return self._topics

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> BusEvent:
        if self._closed:
            raise StopAsyncIteration

        loop = asyncio.get_running_loop()
        if self._next_heartbeat is None:
            self._next_heartbeat = loop.time() + self._heartbeat_interval

        timeout = max(0.0, self._next_heartbeat - loop.time())
        try:
            event = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            self._next_heartbeat = loop.time() + self._heartbeat_interval
            return BusEvent(topic=self._topics[0], type=HEARTBEAT)

        if event is None:
            self.close()
            raise StopAsyncIteration
        return event

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._bus._detach(self._queue)


class EventBus:
    """Fans out events to every subscriber currently attached to a topic.

    Each subscriber gets its own bounded asyncio.Queue. Publishing never
    blocks: a subscriber whose queue is full is disconnected. Nothing is
    buffered for subscribers that are not attached at publish time.
    """

    def __init__(self, heartbeat_interval: float = 30.0, max_queue_size: int = 1000) -> None:
        self._heartbeat_interval = heartbeat_interval
        self._max_queue_size = max_queue_size
        self._queues: dict[str, list[asyncio.Queue[BusEvent | None]]] = {}
        self._topics_by_queue: dict[asyncio.Queue[BusEvent | None], tuple[str, ...]] = {}

    def subscribe(self, *topics: str) -> Subscription:
        """Attach a new subscriber to the given topics."""
        if not topics:
            raise ValueError("At least one topic is required")
        queue: asyncio.Queue[BusEvent | None] = asyncio.Queue(maxsize=self._max_queue_size)
        for topic in topics:
            self._queues.setdefault(topic, []).append(queue)
        self._topics_by_queue[queue] = topics
        logger.debug("Subscriber attached to %s (%d total)", topics, self.client_count)
        return Subscription(self, queue, topics, self._heartbeat_interval)

    def publish(self, topic: str, event_type: str, data: dict[str, Any] | None = None) -> int:
        """Deliver an event to all current subscribers of ``topic``.

        Returns:
            The number of subscribers the event was queued for.
        """
        event = BusEvent(topic=topic, type=event_type, data=data or {})
        delivered = 0
        for queue in list(self._queues.get(topic, ())):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Subscriber queue full on '%s', disconnecting", topic)
                self._evict(queue)
        return delivered

    async def shutdown(self) -> None:
        """Disconnect all subscribers."""
        for queue in list(self._topics_by_queue):
            self._evict(queue)
        self._queues.clear()

    def subscriber_count(self, topic: str) -> int:
        return len(self._queues.get(topic, ()))

    @property
    def client_count(self) -> int:
        return len(self._topics_by_queue)

    def _evict(self, queue: asyncio.Queue[BusEvent | None]) -> None:
        self._detach(queue)
        while not queue.empty():
            queue.get_nowait()
        queue.put_nowait(None)

    def _detach(self, queue: asyncio.Queue[BusEvent | None]) -> None:
        topics = self._topics_by_queue.pop(queue, ())
        for topic in topics:
            queues = self._queues.get(topic)
            if queues and queue in queues:
                queues.remove(queue)
                if not queues:
                    del self._queues[topic]
