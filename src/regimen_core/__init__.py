"""Medication regimen adherence core.

Decides which calendar days are scheduled dose days, keeps the ledger of
taken days and derives streak, next due dose and compliance from it.
"""

from .analytics import (
    AdherenceSummary,
    CalendarDaySets,
    ComplianceRate,
    calendar_day_sets,
    compliance_rate,
    current_streak,
    dose_due_today,
    next_pending_dose,
    summarize,
)
from .errors import (
    DateBeforeStart,
    InvalidDoseDay,
    MalformedPersistedState,
    RegimenError,
    UnresolvedToday,
)
from .ledger import Regimen, is_taken, mark_taken, start_regimen, toggle_dose, unmark
from .schedule import (
    DailyRule,
    EveryNDaysRule,
    PolicyEra,
    SchedulePolicy,
    WeekdaysOnlyRule,
    governing_era,
    is_dose_day,
)
from .start_date import set_start_date

__all__ = [
    "AdherenceSummary",
    "CalendarDaySets",
    "ComplianceRate",
    "DailyRule",
    "DateBeforeStart",
    "EveryNDaysRule",
    "InvalidDoseDay",
    "MalformedPersistedState",
    "PolicyEra",
    "Regimen",
    "RegimenError",
    "SchedulePolicy",
    "UnresolvedToday",
    "WeekdaysOnlyRule",
    "calendar_day_sets",
    "compliance_rate",
    "current_streak",
    "dose_due_today",
    "governing_era",
    "is_dose_day",
    "is_taken",
    "mark_taken",
    "next_pending_dose",
    "set_start_date",
    "start_regimen",
    "summarize",
    "toggle_dose",
    "unmark",
]
