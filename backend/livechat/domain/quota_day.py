"""Quota-day boundaries.

The upstream resets its daily quota at midnight Pacific time, independent of
where this service runs, so every "today" query is anchored to that zone.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def quota_day_start(tz_name: str, now: datetime | None = None) -> datetime:
    """Return the start of the current quota day as an aware UTC datetime."""
    zone = ZoneInfo(tz_name)
    current = (now or datetime.now(timezone.utc)).astimezone(zone)
    local_midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return local_midnight.astimezone(timezone.utc)


def hour_in_zone(moment: datetime, tz_name: str) -> int:
    """Hour of day (0-23) of ``moment`` in the quota timezone."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name)).hour
