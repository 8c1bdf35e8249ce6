"""Unit tests for the UsageLedger."""

from datetime import datetime, timedelta, timezone

import pytest

from livechat.application.services import UsageLedger
from livechat.application.services.event_bus import USAGE_TOPIC
from livechat.domain.entities import UsageLogEntry
from livechat.domain.exceptions import StorageError

# 13:00 PDT; the quota day started at 07:00 UTC
NOW = datetime(2024, 6, 1, 20, 0, tzinfo=timezone.utc)
DAY_START = datetime(2024, 6, 1, 7, 0, tzinfo=timezone.utc)


def _entry(endpoint: str = "videos.list", cost: int = 1, status: str = "success") -> UsageLogEntry:
    return UsageLogEntry(
        endpoint=endpoint,
        method_name="listVideos",
        status=status,
        quota_cost=cost,
        response_time_ms=12,
    )


@pytest.fixture
def fixed_ledger(usage_repo, bus, scope_for) -> UsageLedger:
    return UsageLedger(scope_for(usage_repo), event_bus=bus, now=lambda: NOW, activity_max_rows=3)


def test_day_start_is_pacific_midnight(fixed_ledger: UsageLedger):
    assert fixed_ledger.day_start() == DAY_START


@pytest.mark.asyncio
async def test_record_publishes_then_persists(ledger, usage_repo, bus, caplog):
    caplog.set_level("INFO")
    subscription = bus.subscribe(USAGE_TOPIC)

    ledger.record(_entry("liveChatMessages.list", 5))

    event = await subscription.__anext__()
    assert event.type == "usage"
    assert event.data["endpoint"] == "liveChatMessages.list"
    assert event.data["quota_cost"] == 5
    assert "API [liveChatMessages.list] listVideos cost=5 12ms" in caplog.text

    await ledger.drain()
    assert len(usage_repo.entries) == 1
    assert usage_repo.entries[0].id == 1
    assert ledger.pending_writes == 0


@pytest.mark.asyncio
async def test_record_swallows_storage_failure(ledger, usage_repo, caplog):
    usage_repo.fail_writes = True

    ledger.record(_entry())
    await ledger.drain()

    assert usage_repo.entries == []
    assert "Failed to save API usage entry" in caplog.text


@pytest.mark.asyncio
async def test_aggregate_today_ignores_previous_day(fixed_ledger, usage_repo):
    usage_repo.seed(100, timestamp=DAY_START - timedelta(minutes=1))
    usage_repo.seed(5, "liveChatMessages.list", timestamp=DAY_START)
    usage_repo.seed(1, "videos.list", timestamp=NOW, status="error")

    totals = await fixed_ledger.aggregate_today()

    assert totals.cost == 6
    assert totals.requests == 2
    assert totals.errors == 1


@pytest.mark.asyncio
async def test_read_failure_propagates(ledger, usage_repo):
    usage_repo.fail_reads = True

    with pytest.raises(StorageError):
        await ledger.aggregate_today()


@pytest.mark.asyncio
async def test_breakdown_by_hour_uses_quota_timezone(fixed_ledger, usage_repo):
    usage_repo.seed(5, "liveChatMessages.list", timestamp=datetime(2024, 6, 1, 8, 30, tzinfo=timezone.utc))
    usage_repo.seed(1, "videos.list", timestamp=datetime(2024, 6, 1, 8, 45, tzinfo=timezone.utc))
    usage_repo.seed(100, "search.list", timestamp=datetime(2024, 6, 1, 19, 10, tzinfo=timezone.utc))

    hourly = await fixed_ledger.breakdown_by_hour()

    assert [(h.hour, h.cost) for h in hourly] == [(1, 6), (12, 100)]


@pytest.mark.asyncio
async def test_activity_since_is_exclusive_and_newest_first(fixed_ledger, usage_repo):
    first = usage_repo.seed(1, timestamp=NOW - timedelta(minutes=3))
    usage_repo.seed(5, timestamp=NOW - timedelta(minutes=2))
    usage_repo.seed(100, timestamp=NOW - timedelta(minutes=1))

    page = await fixed_ledger.activity_since(first.timestamp)

    assert [e.quota_cost for e in page.entries] == [100, 5]
    assert page.session_total == 105
    assert page.since == first.timestamp


@pytest.mark.asyncio
async def test_activity_without_since_covers_today_and_clamps_limit(fixed_ledger, usage_repo):
    usage_repo.seed(7, timestamp=DAY_START - timedelta(hours=1))
    for minutes in range(5):
        usage_repo.seed(1, timestamp=NOW - timedelta(minutes=minutes))

    page = await fixed_ledger.activity_since(None, limit=1000)

    assert len(page.entries) == 3
    assert page.session_total == 5


@pytest.mark.asyncio
async def test_snapshot(fixed_ledger, usage_repo):
    usage_repo.seed(100, "search.list", timestamp=NOW)
    usage_repo.seed(5, "liveChatMessages.list", timestamp=NOW)
    usage_repo.seed(5, "liveChatMessages.list", timestamp=NOW, status="error")
    usage_repo.seed(1, "videos.list", timestamp=NOW)

    snapshot = await fixed_ledger.snapshot()

    assert snapshot.used == 111
    assert snapshot.limit == 10_000
    assert snapshot.requests == 4
    assert snapshot.error_rate == 25
    assert [e.endpoint for e in snapshot.by_endpoint] == [
        "search.list",
        "liveChatMessages.list",
        "videos.list",
    ]
    assert snapshot.by_endpoint[1].errors == 1
    assert [(h.hour, h.cost) for h in snapshot.hourly] == [(13, 111)]
