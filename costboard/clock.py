import calendar
import datetime as dt
from typing import Union

HOUR = dt.timedelta(hours=1)
DAY = dt.timedelta(days=1)

# storage is prorated against a flat month regardless of calendar length
STORAGE_PRORATION_DAYS = 30

Timestamp = Union[str, dt.datetime]


def local_now() -> dt.datetime:
    """Wall-clock time. Callers read it once and pass it down as `now`."""
    return dt.datetime.now().astimezone()


def parse_timestamp(value: Timestamp) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return value
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return dt.datetime.fromisoformat(text)


def _align(created: dt.datetime, now: dt.datetime) -> dt.datetime:
    if now.tzinfo is None and created.tzinfo is not None:
        return created.astimezone().replace(tzinfo=None)
    if now.tzinfo is not None and created.tzinfo is None:
        return created.replace(tzinfo=now.tzinfo)
    return created


def month_start(now: dt.datetime) -> dt.datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def days_in_month(now: dt.datetime) -> int:
    return calendar.monthrange(now.year, now.month)[1]


def monthly_hours(now: dt.datetime) -> int:
    return days_in_month(now) * 24


def _elapsed(created_at: Timestamp, now: dt.datetime) -> dt.timedelta:
    created = _align(parse_timestamp(created_at), now)
    start = max(created, month_start(now))
    if now < start:
        return dt.timedelta(0)
    return now - start


def elapsed_hours(created_at: Timestamp, now: dt.datetime) -> int:
    """Whole hours between max(created_at, start of now's month) and now."""
    return _elapsed(created_at, now) // HOUR


def elapsed_days(created_at: Timestamp, now: dt.datetime) -> int:
    """Whole days over the same window, truncated on its own (not hours // 24)."""
    return _elapsed(created_at, now) // DAY
