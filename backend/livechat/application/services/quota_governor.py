"""Quota governor — admission control in front of every metered call."""

import asyncio
import logging
import time
from collections.abc import Callable

from livechat.application.services.event_bus import QUOTA_TOPIC, EventBus
from livechat.application.services.usage_ledger import UsageLedger
from livechat.domain.entities import QuotaCheck, QuotaZone, quota_cost, resolve_category
from livechat.domain.entities.usage_log_entry import EndpointCategory
from livechat.domain.exceptions import QuotaExceededError, StorageError

logger = logging.getLogger(__name__)


class QuotaGovernor:
    """Decides admit / warn / deny for a proposed call before it is made.

    Holds a read-through cache of today's consumed cost, refreshed from the
    ledger at most once per ``cache_ttl_seconds``. Admitted calls reserve
    their cost in the cache immediately so concurrent checks see it; the
    reservation is not refunded if the call later fails.
    """

    def __init__(
        self,
        ledger: UsageLedger,
        *,
        daily_limit: int = 10_000,
        warning_threshold: float = 0.5,
        block_threshold: float = 0.8,
        cache_ttl_seconds: float = 60.0,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not 0 < warning_threshold <= block_threshold:
            raise ValueError("warning_threshold must be positive and not above block_threshold")
        self._ledger = ledger
        self._limit = daily_limit
        self._warning_threshold = warning_threshold
        self._block_threshold = block_threshold
        self._ttl = cache_ttl_seconds
        self._bus = event_bus
        self._clock = clock
        self._lock = asyncio.Lock()
        self._cached_used = 0
        self._cached_at: float | None = None

    @property
    def limit(self) -> int:
        return self._limit

    def zone_for(self, used: int) -> QuotaZone:
        ratio = used / self._limit if self._limit else 1.0
        if ratio >= self._block_threshold:
            return QuotaZone.BLOCKED
        if ratio >= self._warning_threshold:
            return QuotaZone.WARNING
        return QuotaZone.NORMAL

    async def admit(self, category: EndpointCategory | str) -> QuotaCheck:
        """Admit a call of ``category`` or raise QuotaExceededError.

        Raises:
            QuotaExceededError: the cached usage ratio is at or above the
                block threshold; the call must not be made.
        """
        if resolve_category(category) is None:
            logger.warning("Unknown endpoint category %r, admitting at zero cost", category)
            return QuotaCheck(used=self._cached_used, limit=self._limit, zone=self.zone_for(self._cached_used))

        cost = quota_cost(category)

        async with self._lock:
            await self._refresh_if_stale()
            used = self._cached_used
            zone = self.zone_for(used)

            if zone is QuotaZone.BLOCKED:
                logger.warning("Quota blocked: %d/%d units, denying %s", used, self._limit, category)
                self._publish("quota_exceeded", used)
                raise QuotaExceededError(used, self._limit)

            if zone is QuotaZone.WARNING:
                logger.warning(
                    "Quota warning: %d/%d units (%.0f%%) before %s",
                    used,
                    self._limit,
                    used / self._limit * 100,
                    category,
                )
                self._publish("quota_warning", used)

            self._cached_used = used + cost

        return QuotaCheck(used=used, limit=self._limit, zone=zone, cost=cost)

    async def status(self) -> QuotaCheck:
        """Current cached view without reserving anything."""
        async with self._lock:
            await self._refresh_if_stale()
            used = self._cached_used
        return QuotaCheck(used=used, limit=self._limit, zone=self.zone_for(used))

    def invalidate(self) -> None:
        """Force the next check to re-read the ledger."""
        self._cached_at = None

    async def _refresh_if_stale(self) -> None:
        now = self._clock()
        if self._cached_at is not None and now - self._cached_at < self._ttl:
            return
        try:
            totals = await self._ledger.aggregate_today()
        except StorageError as exc:
            logger.warning("Quota refresh failed, keeping cached usage %d: %s", self._cached_used, exc)
            self._cached_at = now
            return
        self._cached_used = totals.cost
        self._cached_at = now

    def _publish(self, event_type: str, used: int) -> None:
        if self._bus is None:
            return
        self._bus.publish(
            QUOTA_TOPIC,
            event_type,
            {"used": used, "limit": self._limit, "ratio": round(used / self._limit, 4)},
        )
