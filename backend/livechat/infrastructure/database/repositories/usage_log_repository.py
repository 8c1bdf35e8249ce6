"""Concrete repository for the usage ledger backed by SQLAlchemy."""

import json
from datetime import datetime, timezone

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from livechat.application.interfaces import UsageLogRepository
from livechat.domain.entities import EndpointUsage, UsageLogEntry, UsageTotals
from livechat.infrastructure.database.models.api_request_log import ApiRequestLogModel


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


_error_count = func.coalesce(
    func.sum(case((ApiRequestLogModel.status == "error", 1), else_=0)), 0
)


class SQLAlchemyUsageLogRepository(UsageLogRepository):
    """Implements the UsageLogRepository port using SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    def _to_entity(self, model: ApiRequestLogModel) -> UsageLogEntry:
        """Map ORM model → domain entity."""
        params = None
        if model.request_params:
            try:
                params = json.loads(model.request_params)
            except json.JSONDecodeError:
                params = None

        return UsageLogEntry(
            id=model.id,
            timestamp=_as_utc(model.timestamp),
            endpoint=model.endpoint_type,
            method_name=model.method_name,
            status=model.status,
            quota_cost=model.quota_cost,
            response_time_ms=model.response_time_ms,
            error_message=model.error_message,
            request_params=params,
        )

    def _to_model(self, entity: UsageLogEntry) -> ApiRequestLogModel:
        """Map domain entity → ORM model."""
        return ApiRequestLogModel(
            timestamp=_as_utc(entity.timestamp),
            endpoint_type=entity.endpoint,
            method_name=entity.method_name,
            request_params=json.dumps(entity.request_params) if entity.request_params else None,
            status=entity.status,
            error_message=entity.error_message,
            quota_cost=entity.quota_cost,
            response_time_ms=entity.response_time_ms,
        )

    @staticmethod
    def _window(since: datetime, inclusive: bool = True):
        since = _as_utc(since)
        if inclusive:
            return ApiRequestLogModel.timestamp >= since
        return ApiRequestLogModel.timestamp > since

    async def create(self, entry: UsageLogEntry) -> UsageLogEntry:
        model = self._to_model(entry)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def totals_since(self, since: datetime) -> UsageTotals:
        stmt = select(
            func.coalesce(func.sum(ApiRequestLogModel.quota_cost), 0),
            func.count(ApiRequestLogModel.id),
            _error_count,
        ).where(self._window(since))
        cost, requests, errors = (await self._session.execute(stmt)).one()
        return UsageTotals(cost=int(cost), requests=int(requests), errors=int(errors))

    async def breakdown_by_endpoint(self, since: datetime) -> list[EndpointUsage]:
        total_cost = func.coalesce(func.sum(ApiRequestLogModel.quota_cost), 0).label("total_cost")
        stmt = (
            select(
                ApiRequestLogModel.endpoint_type,
                func.count(ApiRequestLogModel.id),
                total_cost,
                _error_count,
            )
            .where(self._window(since))
            .group_by(ApiRequestLogModel.endpoint_type)
            .order_by(total_cost.desc(), ApiRequestLogModel.endpoint_type)
        )
        result = await self._session.execute(stmt)
        return [
            EndpointUsage(endpoint=endpoint, count=int(count), cost=int(cost), errors=int(errors))
            for endpoint, count, cost, errors in result.all()
        ]

    async def cost_points_since(self, since: datetime) -> list[tuple[datetime, int]]:
        stmt = select(ApiRequestLogModel.timestamp, ApiRequestLogModel.quota_cost).where(
            self._window(since)
        )
        result = await self._session.execute(stmt)
        return [(_as_utc(ts), int(cost)) for ts, cost in result.all()]

    async def list_since(
        self, since: datetime, *, inclusive: bool = True, limit: int = 100
    ) -> list[UsageLogEntry]:
        stmt = (
            select(ApiRequestLogModel)
            .where(self._window(since, inclusive))
            .order_by(ApiRequestLogModel.timestamp.desc(), ApiRequestLogModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(row) for row in result.scalars().all()]

    async def cost_since(self, since: datetime, *, inclusive: bool = True) -> int:
        stmt = select(func.coalesce(func.sum(ApiRequestLogModel.quota_cost), 0)).where(
            self._window(since, inclusive)
        )
        return int((await self._session.execute(stmt)).scalar_one())
