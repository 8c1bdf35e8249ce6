"""Usage ledger — single entry point for recording and aggregating metered calls.

Every call made through the metered client lands here. Writes are
fire-and-forget: the caller never waits on, or fails because of, the store.
Reads feed both the reporting endpoints and the quota governor's cache.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from livechat.application.interfaces import UsageLogRepositoryScope
from livechat.application.services.event_bus import USAGE_TOPIC, EventBus
from livechat.domain.entities import (
    ActivityPage,
    EndpointUsage,
    HourlyUsage,
    QuotaSnapshot,
    UsageLogEntry,
    UsageTotals,
)
from livechat.domain.quota_day import hour_in_zone, quota_day_start

logger = logging.getLogger(__name__)


def entry_payload(entry: UsageLogEntry) -> dict[str, Any]:
    """Compact JSON-ready view of an entry for the live activity feed."""
    return {
        "id": entry.id,
        "timestamp": entry.timestamp.isoformat(),
        "endpoint": entry.endpoint,
        "method_name": entry.method_name,
        "status": entry.status,
        "quota_cost": entry.quota_cost,
        "response_time_ms": entry.response_time_ms,
    }


class UsageLedger:
    """Append-only record of every metered upstream call.

    Usage:
        ledger = UsageLedger(usage_log_repository_scope, event_bus=bus)
        ledger.record(UsageLogEntry(endpoint="videos.list", ...))
        totals = await ledger.aggregate_today()
    """

    def __init__(
        self,
        repository_scope: UsageLogRepositoryScope,
        *,
        event_bus: EventBus | None = None,
        timezone_name: str = "America/Los_Angeles",
        daily_limit: int = 10_000,
        activity_max_rows: int = 500,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._scope = repository_scope
        self._bus = event_bus
        self._timezone_name = timezone_name
        self._daily_limit = daily_limit
        self._activity_max_rows = activity_max_rows
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._pending: set[asyncio.Task] = set()

    @property
    def daily_limit(self) -> int:
        return self._daily_limit

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def day_start(self) -> datetime:
        """Start of the current quota day (UTC)."""
        return quota_day_start(self._timezone_name, self._now())

    # ── Writes ───────────────────────────────────────────────────────

    def record(self, entry: UsageLogEntry) -> None:
        """Log, publish and schedule persistence of one entry. Never raises."""
        ctx_str = f" error={entry.error_message}" if entry.error_message else ""
        logger.info(
            "API [%s] %s cost=%d %dms status=%s%s",
            entry.endpoint,
            entry.method_name,
            entry.quota_cost,
            entry.response_time_ms,
            entry.status,
            ctx_str,
        )

        if self._bus is not None:
            self._bus.publish(USAGE_TOPIC, "usage", entry_payload(entry))

        try:
            task = asyncio.get_running_loop().create_task(self._persist(entry))
        except RuntimeError:
            logger.error("No running event loop, usage entry for %s dropped", entry.method_name)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for all scheduled writes to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _persist(self, entry: UsageLogEntry) -> UsageLogEntry | None:
        try:
            async with self._scope() as repo:
                return await repo.create(entry)
        except Exception:
            logger.exception(
                "Failed to save API usage entry (%s %s)", entry.endpoint, entry.method_name
            )
            return None

    # ── Reads ────────────────────────────────────────────────────────

    async def aggregate_since(self, since: datetime) -> UsageTotals:
        async with self._scope() as repo:
            return await repo.totals_since(since)

    async def aggregate_today(self) -> UsageTotals:
        return await self.aggregate_since(self.day_start())

    async def breakdown_by_endpoint(self, since: datetime | None = None) -> list[EndpointUsage]:
        async with self._scope() as repo:
            return await repo.breakdown_by_endpoint(since or self.day_start())

    async def breakdown_by_hour(self, since: datetime | None = None) -> list[HourlyUsage]:
        """Cost per hour of day in the quota timezone, hours without calls omitted."""
        async with self._scope() as repo:
            points = await repo.cost_points_since(since or self.day_start())

        buckets: dict[int, int] = defaultdict(int)
        for timestamp, cost in points:
            buckets[hour_in_zone(timestamp, self._timezone_name)] += cost
        return [HourlyUsage(hour=hour, cost=buckets[hour]) for hour in sorted(buckets)]

    async def activity_since(self, since: datetime | None = None, limit: int = 100) -> ActivityPage:
        """Recent entries for the activity feed.

        With ``since`` the window is strictly after it (used by reconnecting
        clients to backfill); without it the window is the current quota day.
        """
        limit = max(1, min(limit, self._activity_max_rows))
        inclusive = since is None
        window_start = since or self.day_start()

        async with self._scope() as repo:
            entries = await repo.list_since(window_start, inclusive=inclusive, limit=limit)
            total = await repo.cost_since(window_start, inclusive=inclusive)

        return ActivityPage(entries=entries, session_total=total, since=since)

    async def snapshot(self) -> QuotaSnapshot:
        """Full aggregate of the current quota day."""
        day_start = self.day_start()
        totals = await self.aggregate_since(day_start)
        by_endpoint = await self.breakdown_by_endpoint(day_start)
        hourly = await self.breakdown_by_hour(day_start)
        return QuotaSnapshot(
            used=totals.cost,
            limit=self._daily_limit,
            requests=totals.requests,
            errors=totals.errors,
            by_endpoint=by_endpoint,
            hourly=hourly,
        )
