from datetime import UTC, date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo


def to_utc(dt: datetime) -> datetime:
    """
    Normalize to an aware UTC datetime. Naive values are taken to be UTC
    already (that is how SQLite hands them back).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def local_day_start(value: str, tz: ZoneInfo) -> datetime:
    """
    "YYYY-MM-DD" -> midnight of that day in `tz`, as UTC.
    Raises ValueError for malformed input.
    """
    d = date.fromisoformat(value.strip())
    return datetime.combine(d, time(0, 0), tzinfo=tz).astimezone(UTC)


def local_day_end(value: str, tz: ZoneInfo) -> datetime:
    """Last second of the given day in `tz`, as UTC."""
    return local_day_start(value, tz) + timedelta(days=1) - timedelta(seconds=1)


def local_hour(dt: datetime, tz: ZoneInfo) -> int:
    return to_utc(dt).astimezone(tz).hour


def hour_label(hour: int) -> str:
    return f"{hour:02d}:00-{hour + 1:02d}:00"


def fmt_day(dt: Optional[datetime], tz: ZoneInfo) -> str:
    if dt is None:
        return ""
    return to_utc(dt).astimezone(tz).date().isoformat()
