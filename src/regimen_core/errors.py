"""Error taxonomy for regimen transitions and persisted-state decoding.

None of these are fatal: callers recover locally (reject a mark, fall back
to "no regimen configured", render a loading placeholder).
"""

from __future__ import annotations

from datetime import date
from typing import Literal

RegimenErrorCode = Literal[
    "invalid_dose_day",
    "date_before_start",
    "malformed_persisted_state",
    "unresolved_today",
    "other",
]


class RegimenError(Exception):
    """Base class for recoverable regimen errors."""

    code: RegimenErrorCode = "other"


class InvalidDoseDay(RegimenError):
    """A mark was requested for a day that is not a scheduled dose day."""

    code: RegimenErrorCode = "invalid_dose_day"

    def __init__(self, day: date, message: str | None = None):
        self.day = day
        super().__init__(
            message
            or f"{day.isoformat()} is not a scheduled dose day under the current policy"
        )


class DateBeforeStart(InvalidDoseDay):
    """A mark was requested for a day earlier than the treatment start date."""

    code: RegimenErrorCode = "date_before_start"

    def __init__(self, day: date, start_date: date):
        self.start_date = start_date
        super().__init__(
            day,
            f"{day.isoformat()} is before the treatment start date {start_date.isoformat()}",
        )


class MalformedPersistedState(RegimenError):
    """Persisted regimen data is missing or cannot be decoded."""

    code: RegimenErrorCode = "malformed_persisted_state"


class UnresolvedToday(RegimenError):
    """Analytics were requested before a "today" value was available."""

    code: RegimenErrorCode = "unresolved_today"

    def __init__(self, message: str = "today is not resolved yet"):
        super().__init__(message)


def classify_error(exc: BaseException | None) -> RegimenErrorCode:
    if isinstance(exc, RegimenError):
        return exc.code
    return "other"


def require_today(today: date | None) -> date:
    if today is None:
        raise UnresolvedToday()
    return today
