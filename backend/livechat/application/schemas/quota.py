"""Pydantic v2 schemas (DTOs) for quota reporting and the activity feed."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class QuotaUsageResponse(BaseModel):
    """Today's headline numbers."""

    used: int
    limit: int
    remaining: int
    requests: int
    errors: int
    error_rate: int  # whole percent


class EndpointUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    endpoint: str
    count: int
    cost: int
    errors: int


class HourlyUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    hour: int
    cost: int


class QuotaSummaryResponse(QuotaUsageResponse):
    by_endpoint: list[EndpointUsageResponse]
    hourly: list[HourlyUsageResponse]


class GovernorStatusResponse(BaseModel):
    """Governor's cached view; may trail the ledger by up to the cache TTL."""

    used: int
    limit: int
    remaining: int
    ratio: float
    zone: str


# ── Activity feed ──


class UsageLogEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None
    timestamp: datetime
    endpoint: str
    method_name: str
    status: str
    quota_cost: int
    response_time_ms: int
    error_message: str | None = None
    request_params: dict[str, Any] | None = None


class ActivityResponse(BaseModel):
    entries: list[UsageLogEntryResponse]
    session_total: int
    since: datetime | None = None
