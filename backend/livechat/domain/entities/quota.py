"""Domain value objects for quota reporting and admission."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from livechat.domain.entities.usage_log_entry import UsageLogEntry


class QuotaZone(str, Enum):
    """Admission zones derived from the usage ratio."""

    NORMAL = "normal"
    WARNING = "warning"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class UsageTotals:
    cost: int = 0
    requests: int = 0
    errors: int = 0


@dataclass(frozen=True)
class EndpointUsage:
    endpoint: str
    count: int
    cost: int
    errors: int


@dataclass(frozen=True)
class HourlyUsage:
    hour: int  # 0-23 in the quota timezone
    cost: int


@dataclass
class QuotaSnapshot:
    """Aggregate view of the current quota day."""

    used: int
    limit: int
    requests: int
    errors: int
    by_endpoint: list[EndpointUsage] = field(default_factory=list)
    hourly: list[HourlyUsage] = field(default_factory=list)

    @property
    def error_rate(self) -> int:
        """Error share in whole percent."""
        if self.requests == 0:
            return 0
        return round(self.errors / self.requests * 100)


@dataclass(frozen=True)
class QuotaCheck:
    """Outcome of an admission check (or a read-only status probe)."""

    used: int
    limit: int
    zone: QuotaZone
    cost: int = 0

    @property
    def remaining(self) -> int:
        return self.limit - self.used

    @property
    def ratio(self) -> float:
        return self.used / self.limit if self.limit else 1.0


@dataclass
class ActivityPage:
    """Recent ledger entries plus the cost total over the same window."""

    entries: list[UsageLogEntry]
    session_total: int
    since: datetime | None = None
