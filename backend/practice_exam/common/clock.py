"""Time helpers: UTC instants and local calendar-day boundaries."""

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from practice_exam.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the store."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.APP_TIMEZONE)


def start_of_day(now: datetime | None = None, days_back: int = 0) -> datetime:
    """Local midnight of (today - days_back), returned as a UTC instant."""
    zone = local_zone()
    local_now = ensure_utc(now or utcnow()).astimezone(zone)
    day = local_now.date() - timedelta(days=days_back)
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    value = ensure_utc(value)
    return value.isoformat().replace("+00:00", "Z") if value else None
