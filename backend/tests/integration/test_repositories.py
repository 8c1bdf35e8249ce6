"""Integration tests for the SQLAlchemy repositories against SQLite (aiosqlite)."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from livechat.domain.entities import ChatMessage, UsageLogEntry
from livechat.domain.exceptions import StorageError
from livechat.infrastructure.database import Base
from livechat.infrastructure.database.repositories import (
    SQLAlchemyChatMessageRepository,
    SQLAlchemyUsageLogRepository,
)
from livechat.infrastructure.database.scopes import make_repository_scope
from livechat.infrastructure.database.session import build_engine, build_session_factory

NOW = datetime(2024, 6, 1, 20, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'livechat.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def usage_scope(session_factory):
    return make_repository_scope(session_factory, SQLAlchemyUsageLogRepository, "usage_log")


@pytest.fixture
def message_scope(session_factory):
    return make_repository_scope(session_factory, SQLAlchemyChatMessageRepository, "chat_messages")


def _entry(endpoint: str, cost: int, minutes_ago: int, status: str = "success") -> UsageLogEntry:
    return UsageLogEntry(
        endpoint=endpoint,
        method_name="test",
        status=status,
        quota_cost=cost,
        response_time_ms=10,
        request_params={"channelId": "UC123"},
        timestamp=NOW - timedelta(minutes=minutes_ago),
    )


def _message(message_id: str, minutes_ago: int, video_id: str = "v1") -> ChatMessage:
    return ChatMessage(
        message_id=message_id,
        author_name="viewer",
        text=f"text {message_id}",
        published_at=NOW - timedelta(minutes=minutes_ago),
        live_chat_id="chat-1",
        video_id=video_id,
    )


# ── Usage log ──


@pytest.mark.asyncio
async def test_create_assigns_increasing_ids(usage_scope):
    async with usage_scope() as repo:
        first = await repo.create(_entry("videos.list", 1, 5))
        second = await repo.create(_entry("videos.list", 1, 4))

    assert first.id is not None
    assert second.id > first.id
    assert first.request_params == {"channelId": "UC123"}
    assert first.timestamp == NOW - timedelta(minutes=5)


@pytest.mark.asyncio
async def test_aggregates(usage_scope):
    async with usage_scope() as repo:
        await repo.create(_entry("search.list", 100, 120))
        await repo.create(_entry("liveChatMessages.list", 5, 30))
        await repo.create(_entry("liveChatMessages.list", 5, 20, status="error"))
        await repo.create(_entry("videos.list", 1, 10))

    since = NOW - timedelta(minutes=60)
    async with usage_scope() as repo:
        totals = await repo.totals_since(since)
        breakdown = await repo.breakdown_by_endpoint(NOW - timedelta(hours=3))
        points = await repo.cost_points_since(since)

    assert (totals.cost, totals.requests, totals.errors) == (11, 3, 1)
    assert [(b.endpoint, b.count, b.cost, b.errors) for b in breakdown] == [
        ("search.list", 1, 100, 0),
        ("liveChatMessages.list", 2, 10, 1),
        ("videos.list", 1, 1, 0),
    ]
    assert sorted(cost for _, cost in points) == [1, 5, 5]
    assert all(ts.tzinfo is not None for ts, _ in points)


@pytest.mark.asyncio
async def test_empty_window_totals_are_zero(usage_scope):
    async with usage_scope() as repo:
        totals = await repo.totals_since(NOW)

    assert (totals.cost, totals.requests, totals.errors) == (0, 0, 0)


@pytest.mark.asyncio
async def test_list_since_inclusive_and_exclusive(usage_scope):
    async with usage_scope() as repo:
        oldest = await repo.create(_entry("videos.list", 1, 3))
        await repo.create(_entry("channels.list", 1, 2))
        await repo.create(_entry("search.list", 100, 1))

    async with usage_scope() as repo:
        inclusive = await repo.list_since(oldest.timestamp)
        exclusive = await repo.list_since(oldest.timestamp, inclusive=False)
        limited = await repo.list_since(oldest.timestamp, limit=1)
        exclusive_cost = await repo.cost_since(oldest.timestamp, inclusive=False)

    assert [e.endpoint for e in inclusive] == ["search.list", "channels.list", "videos.list"]
    assert [e.endpoint for e in exclusive] == ["search.list", "channels.list"]
    assert [e.endpoint for e in limited] == ["search.list"]
    assert exclusive_cost == 101


# ── Chat messages ──


@pytest.mark.asyncio
async def test_save_many_is_idempotent(message_scope):
    async with message_scope() as repo:
        assert await repo.save_many([_message("m1", 3), _message("m2", 2)]) == 2

    async with message_scope() as repo:
        inserted = await repo.save_many([_message("m1", 3), _message("m2", 2), _message("m3", 1)])
        total = await repo.count()

    assert inserted == 1
    assert total == 3


@pytest.mark.asyncio
async def test_duplicates_within_one_batch(message_scope):
    async with message_scope() as repo:
        inserted = await repo.save_many([_message("m1", 1), _message("m1", 1)])
        assert await repo.save_many([]) == 0
        total = await repo.count()

    assert inserted == 1
    assert total == 1


@pytest.mark.asyncio
async def test_list_recent_filters(message_scope):
    async with message_scope() as repo:
        await repo.save_many(
            [
                _message("m1", 10, video_id="v1"),
                _message("m2", 5, video_id="v2"),
                _message("m3", 1, video_id="v1"),
            ]
        )

    async with message_scope() as repo:
        newest_first = await repo.list_recent()
        by_video = await repo.list_recent(video_id="v1")
        after = await repo.list_recent(since=NOW - timedelta(minutes=5))
        paged = await repo.list_recent(limit=1, offset=1)

    assert [m.message_id for m in newest_first] == ["m3", "m2", "m1"]
    assert [m.message_id for m in by_video] == ["m3", "m1"]
    assert [m.message_id for m in after] == ["m3"]
    assert [m.message_id for m in paged] == ["m2"]
    assert newest_first[0].published_at == NOW - timedelta(minutes=1)


# ── Scopes ──


@pytest.mark.asyncio
async def test_scope_rolls_back_on_error(message_scope):
    with pytest.raises(RuntimeError):
        async with message_scope() as repo:
            await repo.save_many([_message("m1", 1)])
            raise RuntimeError("boom")

    async with message_scope() as repo:
        assert await repo.count() == 0


@pytest.mark.asyncio
async def test_unreachable_database_raises_storage_error(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'missing' / 'livechat.db'}")
    scope = make_repository_scope(
        build_session_factory(engine), SQLAlchemyUsageLogRepository, "usage_log"
    )

    with pytest.raises(StorageError) as exc_info:
        async with scope() as repo:
            await repo.totals_since(NOW)

    assert exc_info.value.operation == "usage_log"
    await engine.dispose()
