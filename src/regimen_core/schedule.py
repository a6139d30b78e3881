"""Schedule policy resolver.

A policy is an ordered timeline of eras. Each era starts on its
``effective_from`` day and runs until the next era starts; the last era is
open-ended. Every era carries one rule:

- ``daily``: every calendar day is a dose day
- ``weekdays_only``: Monday to Friday
- ``every_n_days``: days whose distance from ``anchor`` is a non-negative
  multiple of ``n``

Resolution is a pure function of its inputs, so callers may memoise it.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Union

from .dates import as_day, days_between

_WEEKEND = frozenset({5, 6})


@dataclass(frozen=True)
class DailyRule:
    kind: Literal["daily"] = field(default="daily", init=False)

    def applies(self, day: date) -> bool:
        return True


@dataclass(frozen=True)
class WeekdaysOnlyRule:
    kind: Literal["weekdays_only"] = field(default="weekdays_only", init=False)

    def applies(self, day: date) -> bool:
        return day.weekday() not in _WEEKEND


@dataclass(frozen=True)
class EveryNDaysRule:
    n: int
    anchor: date
    kind: Literal["every_n_days"] = field(default="every_n_days", init=False)

    def __post_init__(self) -> None:
        if isinstance(self.n, bool) or not isinstance(self.n, int) or self.n < 1:
            raise ValueError(f"n must be a positive integer, got {self.n!r}")
        if isinstance(self.anchor, datetime):
            object.__setattr__(self, "anchor", self.anchor.date())

    def applies(self, day: date) -> bool:
        offset = days_between(self.anchor, day)
        return offset >= 0 and offset % self.n == 0


ScheduleRule = Union[DailyRule, WeekdaysOnlyRule, EveryNDaysRule]


@dataclass(frozen=True)
class PolicyEra:
    effective_from: date
    rule: ScheduleRule

    def __post_init__(self) -> None:
        if isinstance(self.effective_from, datetime):
            object.__setattr__(self, "effective_from", self.effective_from.date())


@dataclass(frozen=True)
class SchedulePolicy:
    """Non-empty, strictly ascending timeline of eras."""

    eras: tuple[PolicyEra, ...]

    def __post_init__(self) -> None:
        eras = tuple(self.eras)
        if not eras:
            raise ValueError("a schedule policy needs at least one era")
        for previous, current in zip(eras, eras[1:]):
            if current.effective_from <= previous.effective_from:
                raise ValueError(
                    "eras must be sorted by effective_from with no duplicate boundaries "
                    f"({previous.effective_from.isoformat()} >= {current.effective_from.isoformat()})"
                )
        object.__setattr__(self, "eras", eras)

    @classmethod
    def single(cls, effective_from: date, rule: ScheduleRule) -> SchedulePolicy:
        return cls((PolicyEra(effective_from, rule),))

    @property
    def boundaries(self) -> list[date]:
        return [era.effective_from for era in self.eras]

    def with_era(self, effective_from: date, rule: ScheduleRule) -> SchedulePolicy:
        """Switch to ``rule`` from ``effective_from`` onwards.

        Eras starting on or after the new boundary are replaced; days before
        it keep their classification.
        """
        effective_from = as_day(effective_from)
        kept = [era for era in self.eras if era.effective_from < effective_from]
        kept.append(PolicyEra(effective_from, rule))
        return SchedulePolicy(tuple(kept))

    def rebased(self, old_start: date, new_start: date) -> SchedulePolicy:
        """Follow a moved treatment start date.

        ``every_n_days`` cycles anchored on ``old_start`` restart from
        ``new_start``; cycles with their own anchor are kept. The first era is
        pulled back to ``new_start`` when the new start precedes it.
        """
        old_start = as_day(old_start)
        new_start = as_day(new_start)
        eras = []
        for era in self.eras:
            rule = era.rule
            if isinstance(rule, EveryNDaysRule) and rule.anchor == old_start:
                rule = EveryNDaysRule(n=rule.n, anchor=new_start)
            eras.append(PolicyEra(era.effective_from, rule))
        first = eras[0]
        if new_start < first.effective_from:
            eras[0] = PolicyEra(new_start, first.rule)
        return SchedulePolicy(tuple(eras))


def governing_era(day: date, policy: SchedulePolicy) -> PolicyEra | None:
    """Era with the greatest ``effective_from`` on or before ``day``."""
    idx = bisect.bisect_right(policy.boundaries, as_day(day)) - 1
    if idx < 0:
        return None
    return policy.eras[idx]


def is_dose_day(day: date, start_date: date | None, policy: SchedulePolicy) -> bool:
    if start_date is None:
        return False
    day = as_day(day)
    if day < as_day(start_date):
        return False
    era = governing_era(day, policy)
    if era is None:
        return False
    return era.rule.applies(day)
