"""Calendar-day helpers shared by the resolver, ledger and analytics."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, timedelta
from typing import Any


def as_day(value: date | datetime) -> date:
    """Drop any time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_iso_day(raw: Any) -> date | None:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    # Full timestamps are accepted and truncated to their calendar day.
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def days_between(start: date, end: date) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative if end is earlier)."""
    return (as_day(end) - as_day(start)).days


def add_days(day: date, amount: int) -> date:
    return day + timedelta(days=amount)


def iter_days(start: date, end: date, *, limit: int | None = None) -> Iterator[date]:
    """Yield each day in ``[start, end]``; stops after ``limit`` days when given."""
    span = days_between(start, end) + 1
    if limit is not None:
        span = min(span, limit)
    for offset in range(max(span, 0)):
        yield start + timedelta(days=offset)
