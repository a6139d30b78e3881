"""Adherence analytics.

Read-side computations over a regimen and an externally supplied ``today``.
Nothing here reads a clock or mutates state. Every walk over calendar days
is bounded: forward walks by ``horizon_days``, backward walks by the
treatment start date and at most ``max_days`` days.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

from .dates import add_days, as_day, days_between, iter_days
from .errors import UnresolvedToday, require_today
from .ledger import Regimen, is_taken
from .schedule import is_dose_day

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 730
DEFAULT_LOOKBACK_DAYS = 90
DEFAULT_LOOKAHEAD_DAYS = 180
DEFAULT_MAX_WALK_DAYS = 3650

SummaryStatus = Literal["ready", "loading", "not_configured"]


@dataclass(frozen=True)
class ComplianceRate:
    """``rate`` is ``None`` when nothing was scheduled yet."""

    rate: int | None
    scheduled_count: int
    taken_count: int

    @property
    def is_defined(self) -> bool:
        return self.rate is not None


@dataclass(frozen=True)
class CalendarDaySets:
    taken: frozenset[date] = field(default_factory=frozenset)
    missed: frozenset[date] = field(default_factory=frozenset)
    scheduled_pending: frozenset[date] = field(default_factory=frozenset)


@dataclass(frozen=True)
class AdherenceSummary:
    status: SummaryStatus
    next_pending_dose: date | None = None
    current_streak: int | None = None
    compliance: ComplianceRate | None = None

    def to_dict(self) -> dict[str, Any]:
        compliance = self.compliance
        return {
            "status": self.status,
            "next_pending_dose": self.next_pending_dose.isoformat()
            if self.next_pending_dose is not None
            else None,
            "caught_up": self.status == "ready" and self.next_pending_dose is None,
            "current_streak": self.current_streak,
            "compliance_rate": compliance.rate if compliance is not None else None,
            "scheduled_count": compliance.scheduled_count if compliance is not None else None,
            "taken_count": compliance.taken_count if compliance is not None else None,
        }


def _is_scheduled(regimen: Regimen, day: date) -> bool:
    return is_dose_day(day, regimen.start_date, regimen.policy)


def _round_percent(numerator: int, denominator: int) -> int:
    # Half-up rounding on integers; 1/8 reports 13, not 12.
    return (numerator * 200 + denominator) // (2 * denominator)


def next_pending_dose(
    regimen: Regimen | None,
    today: date | None,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> date | None:
    """First scheduled, untaken day from ``today`` onwards within the horizon.

    ``None`` means fully caught up (or nothing to compute yet).
    """
    if regimen is None or today is None:
        return None
    today = as_day(today)
    for day in iter_days(today, add_days(today, horizon_days - 1)):
        if _is_scheduled(regimen, day) and not is_taken(regimen, day):
            return day
    return None


def _walk_floor(regimen: Regimen, today: date, max_days: int) -> date:
    """Earliest day a backward walk from ``today`` may visit."""
    floor = add_days(today, -(max_days - 1))
    if floor <= regimen.start_date:
        return regimen.start_date
    logger.warning(
        "Adherence walk truncated",
        extra={
            "regimen_start_date": regimen.start_date,
            "regimen_walk_floor": floor,
            "regimen_max_days": max_days,
        },
    )
    return floor


def _streak_anchor(regimen: Regimen, today: date, floor: date) -> date | None:
    day = today
    while day >= floor:
        if _is_scheduled(regimen, day) and is_taken(regimen, day):
            return day
        day = add_days(day, -1)
    return None


def current_streak(
    regimen: Regimen | None,
    today: date | None,
    max_days: int = DEFAULT_MAX_WALK_DAYS,
) -> int:
    """Consecutive taken dose days ending at the latest taken dose day <= today.

    Non-dose days are skipped; the first untaken dose day ends the streak.
    The walk never goes past the start date, nor more than ``max_days``
    back from ``today``.
    """
    if regimen is None or today is None:
        return 0
    today = as_day(today)
    if today < regimen.start_date:
        return 0
    floor = _walk_floor(regimen, today, max_days)
    anchor = _streak_anchor(regimen, today, floor)
    if anchor is None:
        return 0

    streak = 0
    day = anchor
    while day >= floor:
        if _is_scheduled(regimen, day):
            if not is_taken(regimen, day):
                break
            streak += 1
        day = add_days(day, -1)
    return streak


def compliance_rate(
    regimen: Regimen | None,
    today: date | None,
    max_days: int = DEFAULT_MAX_WALK_DAYS,
) -> ComplianceRate:
    """Share of dose days in ``[start_date, today]`` that were taken.

    Only the last ``max_days`` days are counted when the treatment is longer.
    """
    if regimen is None or today is None:
        return ComplianceRate(rate=None, scheduled_count=0, taken_count=0)
    today = as_day(today)

    scheduled = 0
    taken = 0
    floor = _walk_floor(regimen, today, max_days)
    for day in iter_days(floor, today):
        if not _is_scheduled(regimen, day):
            continue
        scheduled += 1
        if is_taken(regimen, day):
            taken += 1

    if scheduled == 0:
        if today == regimen.start_date and is_taken(regimen, today):
            return ComplianceRate(rate=100, scheduled_count=1, taken_count=1)
        return ComplianceRate(rate=None, scheduled_count=0, taken_count=0)
    return ComplianceRate(
        rate=_round_percent(taken, scheduled),
        scheduled_count=scheduled,
        taken_count=taken,
    )


def calendar_day_sets(
    regimen: Regimen | None,
    today: date | None,
    window_start: date | None = None,
    window_end: date | None = None,
    *,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
    max_days: int = 2 * 365,
) -> CalendarDaySets:
    """Taken, missed and still-pending days for calendar highlighting.

    Missed days are scheduled, untaken and strictly before ``today``;
    pending days are scheduled, untaken, ``today`` or later.
    """
    if regimen is None or today is None:
        return CalendarDaySets()
    today = as_day(today)
    start = as_day(window_start) if window_start is not None else add_days(regimen.start_date, -lookback_days)
    end = as_day(window_end) if window_end is not None else add_days(today, lookahead_days)
    if days_between(start, end) + 1 > max_days:
        logger.warning(
            "Calendar window truncated",
            extra={"regimen_window_start": start, "regimen_max_days": max_days},
        )

    taken: set[date] = set()
    missed: set[date] = set()
    pending: set[date] = set()
    for day in iter_days(start, end, limit=max_days):
        if is_taken(regimen, day):
            taken.add(day)
        elif _is_scheduled(regimen, day):
            if day < today:
                missed.add(day)
            else:
                pending.add(day)
    return CalendarDaySets(
        taken=frozenset(taken),
        missed=frozenset(missed),
        scheduled_pending=frozenset(pending),
    )


def dose_due_today(regimen: Regimen | None, today: date | None) -> bool:
    """Whether a reminder would be warranted: today is scheduled and untaken."""
    if regimen is None or today is None:
        return False
    return _is_scheduled(regimen, today) and not is_taken(regimen, today)


def summarize(
    regimen: Regimen | None,
    today: date | None,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> AdherenceSummary:
    try:
        resolved = require_today(today)
    except UnresolvedToday:
        return AdherenceSummary(status="loading")
    if regimen is None:
        return AdherenceSummary(status="not_configured")

    return AdherenceSummary(
        status="ready",
        next_pending_dose=next_pending_dose(regimen, resolved, horizon_days),
        current_streak=current_streak(regimen, resolved),
        compliance=compliance_rate(regimen, resolved),
    )
