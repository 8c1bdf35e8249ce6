"""Quota reporting endpoints — today's usage, breakdowns and the live activity feed."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from livechat.application.schemas import (
    ActivityResponse,
    EndpointUsageResponse,
    GovernorStatusResponse,
    HourlyUsageResponse,
    QuotaSummaryResponse,
    QuotaUsageResponse,
    UsageLogEntryResponse,
)
from livechat.application.services import EventBus, QuotaGovernor, UsageLedger
from livechat.application.services.event_bus import QUOTA_TOPIC, USAGE_TOPIC
from livechat.domain.exceptions import StorageError
from livechat.infrastructure.dependencies import (
    get_event_bus,
    get_quota_governor,
    get_usage_ledger,
)
from livechat.presentation.api.v1.errors import to_http_exception
from livechat.presentation.api.v1.sse import event_stream_response

router = APIRouter(prefix="/quota", tags=["Quota"])


@router.get("", response_model=QuotaUsageResponse)
async def get_quota_usage(
    ledger: UsageLedger = Depends(get_usage_ledger),
) -> QuotaUsageResponse:
    """Units consumed since the start of the current quota day."""
    try:
        totals = await ledger.aggregate_today()
    except StorageError as e:
        raise to_http_exception(e)

    error_rate = round(totals.errors / totals.requests * 100) if totals.requests else 0
    return QuotaUsageResponse(
        used=totals.cost,
        limit=ledger.daily_limit,
        remaining=ledger.daily_limit - totals.cost,
        requests=totals.requests,
        errors=totals.errors,
        error_rate=error_rate,
    )


@router.get("/summary", response_model=QuotaSummaryResponse)
async def get_quota_summary(
    ledger: UsageLedger = Depends(get_usage_ledger),
) -> QuotaSummaryResponse:
    """Full snapshot — totals plus per-endpoint and per-hour breakdowns."""
    try:
        snapshot = await ledger.snapshot()
    except StorageError as e:
        raise to_http_exception(e)

    return QuotaSummaryResponse(
        used=snapshot.used,
        limit=snapshot.limit,
        remaining=snapshot.limit - snapshot.used,
        requests=snapshot.requests,
        errors=snapshot.errors,
        error_rate=snapshot.error_rate,
        by_endpoint=[EndpointUsageResponse.model_validate(e) for e in snapshot.by_endpoint],
        hourly=[HourlyUsageResponse.model_validate(h) for h in snapshot.hourly],
    )


@router.get("/endpoints", response_model=list[EndpointUsageResponse])
async def get_endpoint_breakdown(
    ledger: UsageLedger = Depends(get_usage_ledger),
) -> list[EndpointUsageResponse]:
    try:
        rows = await ledger.breakdown_by_endpoint()
    except StorageError as e:
        raise to_http_exception(e)
    return [EndpointUsageResponse.model_validate(r) for r in rows]


@router.get("/hourly", response_model=list[HourlyUsageResponse])
async def get_hourly_breakdown(
    ledger: UsageLedger = Depends(get_usage_ledger),
) -> list[HourlyUsageResponse]:
    try:
        rows = await ledger.breakdown_by_hour()
    except StorageError as e:
        raise to_http_exception(e)
    return [HourlyUsageResponse.model_validate(r) for r in rows]


@router.get("/governor", response_model=GovernorStatusResponse)
async def get_governor_status(
    governor: QuotaGovernor = Depends(get_quota_governor),
) -> GovernorStatusResponse:
    """The admission counter as the governor currently sees it."""
    check = await governor.status()
    return GovernorStatusResponse(
        used=check.used,
        limit=check.limit,
        remaining=check.remaining,
        ratio=round(check.ratio, 4),
        zone=check.zone.value,
    )


@router.get("/activity", response_model=ActivityResponse)
async def get_activity(
    since: datetime | None = Query(
        default=None, description="Only entries strictly after this instant"
    ),
    limit: int = Query(default=100, ge=1),
    ledger: UsageLedger = Depends(get_usage_ledger),
) -> ActivityResponse:
    """Recent metered calls, newest first.

    Reconnecting dashboards pass the timestamp of the last entry they saw
    as ``since`` to backfill what they missed.
    """
    try:
        page = await ledger.activity_since(since, limit)
    except StorageError as e:
        raise to_http_exception(e)

    return ActivityResponse(
        entries=[UsageLogEntryResponse.model_validate(e) for e in page.entries],
        session_total=page.session_total,
        since=page.since,
    )


@router.get("/activity/stream")
async def activity_stream(
    bus: EventBus = Depends(get_event_bus),
) -> StreamingResponse:
    """SSE feed of ``usage`` and ``quota`` events as they happen."""
    return event_stream_response(bus.subscribe(USAGE_TOPIC, QUOTA_TOPIC))
