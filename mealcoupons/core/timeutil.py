from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime read back from the store to aware UTC.
    SQLite hands back naive values for DateTime(timezone=True) columns; treat those as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def day_window(date_from: date | None, date_to: date | None) -> tuple[datetime | None, datetime | None]:
    """
    Inclusive calendar-day window -> half-open [start, end) UTC datetimes.
    date_to covers the whole day, so end is midnight of the following day.
    """
    start = datetime.combine(date_from, time.min, tzinfo=timezone.utc) if date_from else None
    end = (
        datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
        if date_to
        else None
    )
    return start, end
