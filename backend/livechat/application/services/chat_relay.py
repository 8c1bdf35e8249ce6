"""Chat relay — per-channel polling loop that discovers, pages and republishes chat."""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from livechat.application.interfaces import ChatMessageRepositoryScope
from livechat.application.services.event_bus import EventBus, chat_topic
from livechat.application.services.metered_client import MeteredYouTubeClient
from livechat.domain.entities import ChatMessage, ChatSession
from livechat.domain.exceptions import (
    QuotaExceededError,
    SessionNotFoundError,
    StorageError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


class RelayState(str, Enum):
    """Lifecycle states of a chat relay."""

    IDLE = "idle"
    DISCOVERING = "discovering"
    STREAMING = "streaming"
    ERROR = "error"
    STOPPED = "stopped"


class ExponentialBackoff:
    """Doubling delay with a ceiling; ``reset()`` returns to the initial delay."""

    def __init__(self, initial_ms: int = 5_000, max_ms: int = 30_000) -> None:
        self._initial = initial_ms
        self._max = max_ms
        self._current = initial_ms

    @property
    def current_ms(self) -> int:
        return self._current

    def next_delay_ms(self) -> int:
        delay = self._current
        self._current = min(self._current * 2, self._max)
        return delay

    def reset(self) -> None:
        self._current = self._initial


def poll_delay_ms(suggested_ms: int | None, floor_ms: int) -> int:
    """Delay before the next fetch; the upstream hint never goes below the floor."""
    return max(suggested_ms or 0, floor_ms)


@dataclass(frozen=True)
class RelayStatus:
    channel_id: str
    state: RelayState
    live_chat_id: str | None
    video_id: str | None
    title: str | None
    next_delay_ms: int | None
    last_error: str | None
    subscribers: int = 0


class ChatRelay:
    """Polls one channel's live chat and fans new messages out on the event bus.

    Each iteration schedules its own wake-up after it finishes, so a slow
    fetch never overlaps with the next one. Failures drop the session and
    back off before rediscovering it.
    """

    def __init__(
        self,
        channel_id: str,
        client: MeteredYouTubeClient,
        event_bus: EventBus,
        message_scope: ChatMessageRepositoryScope | None = None,
        *,
        min_poll_interval_ms: int = 5_000,
        backoff_initial_ms: int = 5_000,
        backoff_max_ms: int = 30_000,
        seen_capacity: int = 5_000,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.channel_id = channel_id
        self._client = client
        self._bus = event_bus
        self._message_scope = message_scope
        self._floor_ms = min_poll_interval_ms
        self._backoff = ExponentialBackoff(backoff_initial_ms, backoff_max_ms)
        self._seen: OrderedDict[str, None] = OrderedDict()
        self._seen_capacity = seen_capacity
        self._history_loaded = False
        self._sleep = sleep or self._wait
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

        self.state = RelayState.IDLE
        self.session: ChatSession | None = None
        self.next_delay_ms: int | None = None
        self.last_error: str | None = None

    @property
    def topic(self) -> str:
        return chat_topic(self.channel_id)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the polling task; no-op while already running."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name=f"chat-relay:{self.channel_id}")
        logger.info("Chat relay started for channel %s", self.channel_id)

    async def stop(self) -> None:
        """Cancel pending waits and any in-flight fetch; no further calls are made."""
        self._stop_event.set()
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.session = None
        self._set_state(RelayState.STOPPED)
        logger.info("Chat relay stopped for channel %s", self.channel_id)

    async def run(self) -> None:
        """Main loop — one step at a time until stopped."""
        while not self._stop_event.is_set():
            try:
                delay_ms = await self.step()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("Chat relay %s iteration failed", self.channel_id)
                delay_ms = self._fail(exc, "error")

            self.next_delay_ms = delay_ms
            await self._sleep(delay_ms / 1000)

    async def step(self) -> int:
        """Run one discovery or fetch iteration.

        Returns:
            Milliseconds to wait before the next iteration.
        """
        if self.session is None:
            return await self._discover()
        return await self._fetch_page(self.session)

    # ── Iterations ───────────────────────────────────────────────────

    async def _discover(self) -> int:
        self._set_state(RelayState.DISCOVERING)
        try:
            session = await self._client.find_active_session(self.channel_id)
        except SessionNotFoundError as exc:
            delay = self._backoff.next_delay_ms()
            self.last_error = str(exc)
            self._publish("status", {"state": self.state.value, "reason": "no_session", "retry_in_ms": delay})
            logger.info("No active chat for %s, retrying in %dms", self.channel_id, delay)
            return delay
        except QuotaExceededError as exc:
            return self._fail(exc, "quota_exceeded", keep_state=True)
        except UpstreamError as exc:
            return self._fail(exc, "error", keep_state=True)

        self._backoff.reset()
        await self._load_history(session)
        self.session = session
        self.last_error = None
        self._set_state(RelayState.STREAMING)
        logger.info(
            "Streaming chat %s for video %s (%s)", session.live_chat_id, session.video_id, session.title
        )
        return 0

    async def _fetch_page(self, session: ChatSession) -> int:
        try:
            page = await self._client.fetch_messages(session)
        except QuotaExceededError as exc:
            return self._fail(exc, "quota_exceeded")
        except UpstreamError as exc:
            return self._fail(exc, "error")

        await self._persist(page.messages)

        fresh = self._unseen(page.messages)
        if fresh:
            self._publish(
                "messages",
                {
                    "live_chat_id": session.live_chat_id,
                    "video_id": session.video_id,
                    "messages": [_message_payload(m) for m in fresh],
                },
            )

        if page.next_cursor:
            session.cursor = page.next_cursor
        return poll_delay_ms(page.suggested_delay_ms, self._floor_ms)

    def _fail(self, exc: Exception, reason: str, *, keep_state: bool = False) -> int:
        """Drop the session, publish the failure and return the backoff delay."""
        self.session = None
        if not keep_state:
            self._set_state(RelayState.ERROR)
        delay = self._backoff.next_delay_ms()
        self.last_error = str(exc)

        data: dict[str, Any] = {"reason": reason, "error": str(exc), "retry_in_ms": delay}
        if isinstance(exc, QuotaExceededError):
            data.update(used=exc.used, limit=exc.limit)
        self._publish("error", data)
        logger.warning("Chat relay %s %s: %s, retrying in %dms", self.channel_id, reason, exc, delay)
        return delay

    async def _load_history(self, session: ChatSession) -> None:
        """Mark already-stored messages of this video as seen.

        A relay restarted after its last subscriber left starts from a ``None``
        cursor, so upstream replays its backlog; stored ids keep that backlog
        from being published a second time.
        """
        if self._history_loaded or self._message_scope is None:
            return
        self._history_loaded = True
        try:
            async with self._message_scope() as repo:
                stored = await repo.list_recent(limit=self._seen_capacity, video_id=session.video_id)
        except StorageError as exc:
            logger.error("Could not load stored chat history for %s: %s", session.video_id, exc)
            return
        # list_recent is newest first; oldest go in first so they are evicted first
        for message in reversed(stored):
            self._seen[message.message_id] = None
        logger.debug("Marked %d stored messages as seen for %s", len(stored), session.video_id)

    async def _persist(self, messages: list[ChatMessage]) -> None:
        if not messages or self._message_scope is None:
            return
        try:
            async with self._message_scope() as repo:
                inserted = await repo.save_many(messages)
        except StorageError as exc:
            logger.error("Could not persist %d chat messages: %s", len(messages), exc)
            return
        logger.debug("Persisted %d/%d chat messages", inserted, len(messages))

    def _unseen(self, messages: list[ChatMessage]) -> list[ChatMessage]:
        fresh = []
        for message in messages:
            if message.message_id in self._seen:
                continue
            self._seen[message.message_id] = None
            fresh.append(message)
        while len(self._seen) > self._seen_capacity:
            self._seen.popitem(last=False)
        return fresh

    # ── Helpers ──────────────────────────────────────────────────────

    def describe(self, subscribers: int = 0) -> RelayStatus:
        session = self.session
        return RelayStatus(
            channel_id=self.channel_id,
            state=self.state,
            live_chat_id=session.live_chat_id if session else None,
            video_id=session.video_id if session else None,
            title=session.title if session else None,
            next_delay_ms=self.next_delay_ms,
            last_error=self.last_error,
            subscribers=subscribers,
        )

    def _set_state(self, state: RelayState) -> None:
        if state is self.state:
            return
        self.state = state
        session = self.session
        self._publish(
            "status",
            {
                "state": state.value,
                "live_chat_id": session.live_chat_id if session else None,
                "video_id": session.video_id if session else None,
                "title": session.title if session else None,
            },
        )

    def _publish(self, event_type: str, data: dict[str, Any]) -> None:
        self._bus.publish(self.topic, event_type, {"channel_id": self.channel_id, **data})

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass


def _message_payload(message: ChatMessage) -> dict[str, Any]:
    return {
        "message_id": message.message_id,
        "author": message.author_name,
        "text": message.text,
        "published_at": message.published_at.isoformat(),
    }


class ChatRelayManager:
    """Runs at most one relay per channel, for as long as someone is listening."""

    def __init__(self, relay_factory: Callable[[str], ChatRelay]) -> None:
        self._factory = relay_factory
        self._relays: dict[str, ChatRelay] = {}
        self._subscribers: dict[str, int] = {}

    def acquire(self, channel_id: str) -> ChatRelay:
        """Attach a subscriber, starting the channel's relay if needed."""
        relay = self._relays.get(channel_id)
        if relay is None:
            relay = self._factory(channel_id)
            self._relays[channel_id] = relay
        self._subscribers[channel_id] = self._subscribers.get(channel_id, 0) + 1
        relay.start()
        return relay

    async def release(self, channel_id: str) -> None:
        """Detach a subscriber; the last one out stops the relay."""
        remaining = self._subscribers.get(channel_id, 0) - 1
        if remaining > 0:
            self._subscribers[channel_id] = remaining
            return
        self._subscribers.pop(channel_id, None)
        relay = self._relays.pop(channel_id, None)
        if relay is not None:
            await relay.stop()

    def get(self, channel_id: str) -> ChatRelay | None:
        return self._relays.get(channel_id)

    def status(self) -> list[RelayStatus]:
        return [
            relay.describe(self._subscribers.get(channel_id, 0))
            for channel_id, relay in self._relays.items()
        ]

    async def shutdown(self) -> None:
        relays = list(self._relays.values())
        self._relays.clear()
        self._subscribers.clear()
        for relay in relays:
            await relay.stop()
