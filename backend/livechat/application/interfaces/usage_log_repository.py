"""Abstract repository interface for the usage ledger's store."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from collections.abc import Callable
from datetime import datetime

from livechat.domain.entities import EndpointUsage, UsageLogEntry, UsageTotals


class UsageLogRepository(ABC):
    """Port — append-only persistence and aggregation of metered calls."""

    @abstractmethod
    async def create(self, entry: UsageLogEntry) -> UsageLogEntry:
        """Persist a new entry.

        Returns:
            The stored entry with its assigned ID.
        """
        ...

    @abstractmethod
    async def totals_since(self, since: datetime) -> UsageTotals:
        """Total cost, request count and error count for ``timestamp >= since``."""
        ...

    @abstractmethod
    async def breakdown_by_endpoint(self, since: datetime) -> list[EndpointUsage]:
        """Per-category totals for ``timestamp >= since``, highest cost first."""
        ...

    @abstractmethod
    async def cost_points_since(self, since: datetime) -> list[tuple[datetime, int]]:
        """``(timestamp, quota_cost)`` pairs for ``timestamp >= since``."""
        ...

    @abstractmethod
    async def list_since(
        self, since: datetime, *, inclusive: bool = True, limit: int = 100
    ) -> list[UsageLogEntry]:
        """Entries after ``since``, most recent first."""
        ...

    @abstractmethod
    async def cost_since(self, since: datetime, *, inclusive: bool = True) -> int:
        """Sum of ``quota_cost`` after ``since``."""
        ...


UsageLogRepositoryScope = Callable[[], AbstractAsyncContextManager[UsageLogRepository]]
