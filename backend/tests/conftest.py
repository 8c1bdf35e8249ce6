"""Shared in-memory fakes of the application ports and fixtures wiring them up."""

import dataclasses
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest

from livechat.application.interfaces import ChatMessageRepository, UsageLogRepository, YouTubeApi
from livechat.application.services import EventBus, MeteredYouTubeClient, QuotaGovernor, UsageLedger
from livechat.domain.entities import (
    ChannelStats,
    ChatMessage,
    ChatMessagePage,
    EndpointUsage,
    UsageLogEntry,
    UsageTotals,
    VideoSummary,
)
from livechat.domain.exceptions import StorageError


class FakeUsageLogRepository(UsageLogRepository):
    """In-memory fake ledger store for unit testing."""

    def __init__(self):
        self.entries: list[UsageLogEntry] = []
        self.fail_reads = False
        self.fail_writes = False
        self.reads = 0

    def seed(self, cost: int, endpoint: str = "search.list", *, timestamp: datetime | None = None,
             status: str = "success") -> UsageLogEntry:
        entry = UsageLogEntry(
            endpoint=endpoint,
            method_name="seed",
            status=status,
            quota_cost=cost,
            response_time_ms=1,
            id=len(self.entries) + 1,
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        self.entries.append(entry)
        return entry

    def _read(self, since: datetime, inclusive: bool = True) -> list[UsageLogEntry]:
        self.reads += 1
        if self.fail_reads:
            raise StorageError("usage_log", ConnectionError("database is down"))
        if inclusive:
            return [e for e in self.entries if e.timestamp >= since]
        return [e for e in self.entries if e.timestamp > since]

    async def create(self, entry: UsageLogEntry) -> UsageLogEntry:
        if self.fail_writes:
            raise StorageError("usage_log", ConnectionError("database is down"))
        stored = dataclasses.replace(entry, id=len(self.entries) + 1)
        self.entries.append(stored)
        return stored

    async def totals_since(self, since: datetime) -> UsageTotals:
        rows = self._read(since)
        return UsageTotals(
            cost=sum(e.quota_cost for e in rows),
            requests=len(rows),
            errors=sum(1 for e in rows if e.is_error),
        )

    async def breakdown_by_endpoint(self, since: datetime) -> list[EndpointUsage]:
        groups: dict[str, list[UsageLogEntry]] = {}
        for entry in self._read(since):
            groups.setdefault(entry.endpoint, []).append(entry)
        rows = [
            EndpointUsage(
                endpoint=endpoint,
                count=len(items),
                cost=sum(e.quota_cost for e in items),
                errors=sum(1 for e in items if e.is_error),
            )
            for endpoint, items in groups.items()
        ]
        return sorted(rows, key=lambda r: r.cost, reverse=True)

    async def cost_points_since(self, since: datetime) -> list[tuple[datetime, int]]:
        return [(e.timestamp, e.quota_cost) for e in self._read(since)]

    async def list_since(
        self, since: datetime, *, inclusive: bool = True, limit: int = 100
    ) -> list[UsageLogEntry]:
        rows = sorted(self._read(since, inclusive), key=lambda e: (e.timestamp, e.id), reverse=True)
        return rows[:limit]

    async def cost_since(self, since: datetime, *, inclusive: bool = True) -> int:
        return sum(e.quota_cost for e in self._read(since, inclusive))


class FakeChatMessageRepository(ChatMessageRepository):
    """In-memory fake message store keyed by ``message_id``."""

    def __init__(self):
        self.messages: dict[str, ChatMessage] = {}
        self.fail = False

    async def save_many(self, messages: list[ChatMessage]) -> int:
        if self.fail:
            raise StorageError("chat_messages", ConnectionError("database is down"))
        inserted = 0
        for message in messages:
            if message.message_id not in self.messages:
                self.messages[message.message_id] = message
                inserted += 1
        return inserted

    async def list_recent(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        video_id: str | None = None,
        since: datetime | None = None,
    ) -> list[ChatMessage]:
        if self.fail:
            raise StorageError("chat_messages", ConnectionError("database is down"))
        rows = list(self.messages.values())
        if video_id is not None:
            rows = [m for m in rows if m.video_id == video_id]
        if since is not None:
            rows = [m for m in rows if m.published_at > since]
        rows.sort(key=lambda m: m.published_at, reverse=True)
        return rows[offset : offset + limit]

    async def count(self) -> int:
        return len(self.messages)


class FakeYouTubeApi(YouTubeApi):
    """Scriptable fake of the YouTube port; records every call it receives."""

    def __init__(self):
        self.calls: list[str] = []
        self.uploads: dict[str, str] = {}
        self.playlist_items: dict[str, list[str]] = {}
        self.videos: dict[str, VideoSummary] = {}
        self.live_search: dict[str, list[str]] = {}
        self.stats: dict[str, ChannelStats] = {}
        self.chat_pages: list[ChatMessagePage | Exception] = []

    @property
    def provider_name(self) -> str:
        return "fake-youtube"

    def add_live_video(self, channel_id: str, video_id: str = "vid-live", live_chat_id: str = "chat-1",
                       title: str = "Live now") -> None:
        playlist_id = f"UU{channel_id}"
        self.uploads[channel_id] = playlist_id
        self.playlist_items.setdefault(playlist_id, []).insert(0, video_id)
        self.videos[video_id] = VideoSummary(
            video_id=video_id,
            title=title,
            live_status="live",
            active_live_chat_id=live_chat_id,
        )
        self.live_search.setdefault(channel_id, []).insert(0, video_id)

    async def get_uploads_playlist_id(self, channel_id: str) -> str | None:
        self.calls.append("get_uploads_playlist_id")
        return self.uploads.get(channel_id)

    async def get_channel_stats(self, channel_id: str) -> ChannelStats | None:
        self.calls.append("get_channel_stats")
        return self.stats.get(channel_id)

    async def list_playlist_video_ids(self, playlist_id: str, max_results: int = 5) -> list[str]:
        self.calls.append("list_playlist_video_ids")
        return self.playlist_items.get(playlist_id, [])[:max_results]

    async def list_videos(self, video_ids: list[str]) -> list[VideoSummary]:
        self.calls.append("list_videos")
        return [self.videos[v] for v in video_ids if v in self.videos]

    async def search_live_video_ids(self, channel_id: str) -> list[str]:
        self.calls.append("search_live_video_ids")
        return self.live_search.get(channel_id, [])

    async def list_chat_messages(
        self, live_chat_id: str, page_token: str | None = None
    ) -> ChatMessagePage:
        self.calls.append("list_chat_messages")
        if not self.chat_pages:
            return ChatMessagePage(next_cursor=page_token)
        page = self.chat_pages.pop(0)
        if isinstance(page, Exception):
            raise page
        return page


def make_scope(repository):
    """Scope factory handing out the same fake repository every time."""

    @asynccontextmanager
    async def scope() -> AsyncIterator:
        yield repository

    return scope


def chat_message(message_id: str, text: str = "hello", minutes_ago: int = 0) -> ChatMessage:
    return ChatMessage(
        message_id=message_id,
        author_name="viewer",
        text=text,
        published_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
    )


# ── Fixtures ──


@pytest.fixture
def usage_repo() -> FakeUsageLogRepository:
    return FakeUsageLogRepository()


@pytest.fixture
def message_repo() -> FakeChatMessageRepository:
    return FakeChatMessageRepository()


@pytest.fixture
def bus() -> EventBus:
    return EventBus(heartbeat_interval=30.0)


@pytest.fixture
def ledger(usage_repo: FakeUsageLogRepository, bus: EventBus) -> UsageLedger:
    return UsageLedger(make_scope(usage_repo), event_bus=bus)


@pytest.fixture
def governor(ledger: UsageLedger, bus: EventBus) -> QuotaGovernor:
    return QuotaGovernor(ledger, event_bus=bus)


@pytest.fixture
def youtube_api() -> FakeYouTubeApi:
    return FakeYouTubeApi()


@pytest.fixture
def client(youtube_api: FakeYouTubeApi, governor: QuotaGovernor, ledger: UsageLedger) -> MeteredYouTubeClient:
    return MeteredYouTubeClient(youtube_api, governor, ledger)


@pytest.fixture
def scope_for():
    """``scope_for(repo)`` wraps a fake repository in a unit-of-work scope."""
    return make_scope


@pytest.fixture
def make_message():
    return chat_message
