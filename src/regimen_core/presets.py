"""Pre-built dosing policies and seed ledgers.

Each dosing rule the tracker has used is expressed here as era-timeline
configuration instead of a code branch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date

from .dates import iter_days
from .ledger import DOSE_TAKEN, Regimen
from .schedule import (
    DailyRule,
    EveryNDaysRule,
    SchedulePolicy,
    WeekdaysOnlyRule,
    is_dose_day,
)

logger = logging.getLogger(__name__)

# Day the historical daily intake was replaced by the reduced schedule.
SCHEDULE_CHANGE_DATE = date(2025, 5, 13)

DEMO_START_DATE = date(2025, 3, 28)
DEMO_SEEDED_UNTIL = date(2025, 5, 12)
DEMO_MISSED_DATE = date(2025, 5, 9)  # a Friday, so actually scheduled

_SEED_LIMIT_DAYS = 365 * 5


def daily_policy(start_date: date, today: date | None = None) -> SchedulePolicy:
    return SchedulePolicy.single(start_date, DailyRule())


def weekdays_policy(start_date: date, today: date | None = None) -> SchedulePolicy:
    return SchedulePolicy.single(start_date, WeekdaysOnlyRule())


def every_other_day_policy(start_date: date, today: date | None = None) -> SchedulePolicy:
    return SchedulePolicy.single(start_date, EveryNDaysRule(n=2, anchor=start_date))


def historical_then_weekdays(
    start_date: date,
    today: date | None = None,
    *,
    switch_date: date = SCHEDULE_CHANGE_DATE,
) -> SchedulePolicy:
    """Daily intake up to ``switch_date``, Monday to Friday from then on."""
    return daily_policy(start_date).with_era(switch_date, WeekdaysOnlyRule())


def past_daily_future_every_other_day(start_date: date, today: date | None = None) -> SchedulePolicy:
    """Daily until ``today``; every other day counted from ``today`` onwards."""
    if today is None:
        return daily_policy(start_date)
    return daily_policy(start_date).with_era(today, EveryNDaysRule(n=2, anchor=today))


PolicyFactory = Callable[..., SchedulePolicy]

PRESETS: dict[str, PolicyFactory] = {
    "daily": daily_policy,
    "weekdays": weekdays_policy,
    "every-other-day": every_other_day_policy,
    "historical-then-weekdays": historical_then_weekdays,
    "past-daily-future-every-other-day": past_daily_future_every_other_day,
}


def build_policy(name: str, start_date: date, today: date | None = None) -> SchedulePolicy:
    try:
        factory = PRESETS[name]
    except KeyError:
        raise ValueError(
            f"Unknown policy preset {name!r}. Expected one of: {', '.join(sorted(PRESETS))}"
        ) from None
    return factory(start_date, today)


def seed_regimen(
    start_date: date,
    until: date,
    policy: SchedulePolicy,
    *,
    force_absent: Iterable[date] = (),
) -> Regimen:
    """Regimen with every dose day in ``[start_date, until]`` taken.

    The start date is always recorded as taken, scheduled or not, as with
    ``start_regimen``. ``force_absent`` days are left unmarked. A force-absent
    day that is not scheduled would not show up as missed, so it is reported
    and ignored; so is the start date itself.
    """
    absent = set(force_absent)
    doses: dict[date, str] = {start_date: DOSE_TAKEN}
    for day in iter_days(start_date, until, limit=_SEED_LIMIT_DAYS):
        if not is_dose_day(day, start_date, policy):
            continue
        if day in absent:
            continue
        doses[day] = DOSE_TAKEN

    for day in sorted(absent):
        if day == start_date or not is_dose_day(day, start_date, policy) or not start_date <= day <= until:
            logger.warning(
                "Force-absent day ignored: start date or not a scheduled dose day in the seeded range",
                extra={"regimen_day": day},
            )
    return Regimen(start_date=start_date, policy=policy, doses=doses)


def demo_regimen() -> Regimen:
    """Weekday regimen seeded from the demo start date with one missed dose."""
    return seed_regimen(
        DEMO_START_DATE,
        DEMO_SEEDED_UNTIL,
        weekdays_policy(DEMO_START_DATE),
        force_absent=[DEMO_MISSED_DATE],
    )
