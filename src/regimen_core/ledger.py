"""Dose ledger: which scheduled days were taken.

The regimen is an immutable value. ``mark_taken``, ``unmark`` and
``toggle_dose`` return a new ``Regimen`` and never touch the one passed in,
so a rejected mark leaves the caller's state exactly as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from types import MappingProxyType

from .dates import as_day
from .errors import DateBeforeStart, InvalidDoseDay
from .schedule import SchedulePolicy, is_dose_day

logger = logging.getLogger(__name__)

DOSE_TAKEN = "taken"


@dataclass(frozen=True)
class Regimen:
    """Start date, dosing policy and dose ledger of one tracked treatment."""

    start_date: date
    policy: SchedulePolicy
    doses: Mapping[date, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        start_date = as_day(self.start_date)
        doses = {as_day(day): status for day, status in self.doses.items()}
        # No ledger entry may precede the start date.
        early = [day for day in doses if day < start_date]
        if early:
            logger.warning(
                "Dropped %d dose entr%s before treatment start",
                len(early),
                "y" if len(early) == 1 else "ies",
                extra={"regimen_start_date": start_date, "regimen_days": sorted(early)},
            )
            for day in early:
                del doses[day]
        object.__setattr__(self, "start_date", start_date)
        object.__setattr__(self, "doses", MappingProxyType(doses))

    @property
    def taken_days(self) -> frozenset[date]:
        return frozenset(day for day, status in self.doses.items() if status == DOSE_TAKEN)

    def with_doses(self, doses: Mapping[date, str]) -> Regimen:
        return replace(self, doses=dict(doses))


def start_regimen(day: date, policy: SchedulePolicy) -> Regimen:
    """Create a regimen from its first recorded dose."""
    day = as_day(day)
    logger.debug("Regimen started", extra={"regimen_start_date": day})
    return Regimen(start_date=day, policy=policy, doses={day: DOSE_TAKEN})


def is_taken(regimen: Regimen, day: date) -> bool:
    return regimen.doses.get(as_day(day)) == DOSE_TAKEN


def can_mark(regimen: Regimen, day: date) -> bool:
    day = as_day(day)
    return day == regimen.start_date or is_dose_day(day, regimen.start_date, regimen.policy)


def mark_taken(regimen: Regimen, day: date) -> Regimen:
    """Record ``day`` as taken.

    The start date is always markable. Any other day must be a scheduled
    dose day; otherwise ``InvalidDoseDay`` (``DateBeforeStart`` for days
    before the start date) is raised.
    """
    day = as_day(day)
    if day < regimen.start_date:
        logger.warning(
            "Rejected dose mark before treatment start",
            extra={"regimen_day": day, "regimen_start_date": regimen.start_date},
        )
        raise DateBeforeStart(day, regimen.start_date)
    if not can_mark(regimen, day):
        logger.warning(
            "Rejected dose mark on unscheduled day",
            extra={"regimen_day": day},
        )
        raise InvalidDoseDay(day)

    doses = dict(regimen.doses)
    doses[day] = DOSE_TAKEN
    logger.debug("Dose marked taken", extra={"regimen_day": day})
    return regimen.with_doses(doses)


def unmark(regimen: Regimen, day: date) -> Regimen:
    day = as_day(day)
    if day not in regimen.doses:
        return regimen
    doses = dict(regimen.doses)
    del doses[day]
    logger.debug("Dose unmarked", extra={"regimen_day": day})
    return regimen.with_doses(doses)


def toggle_dose(regimen: Regimen, day: date) -> Regimen:
    """Calendar click: unmark a taken day, otherwise try to mark it."""
    if is_taken(regimen, day):
        return unmark(regimen, day)
    return mark_taken(regimen, day)
