"""Persisted-state codec.

The storage shim keeps one JSON record::

    {
      "startDate": "2025-03-28" | null,
      "doses": {"2025-03-28": "taken", ...},
      "userName": "..." | null,
      "userAge": 27 | null
    }

Dumps always write ``startDate``. Loading also accepts the older
``treatmentStartDate`` key, so existing records keep working.

Decoding never raises to the caller: a missing or corrupt record means
"no regimen configured". Single bad dose keys are skipped, not fatal.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .dates import parse_iso_day
from .errors import MalformedPersistedState
from .ledger import DOSE_TAKEN, Regimen
from .schedule import SchedulePolicy

logger = logging.getLogger(__name__)

# Either a fixed policy or a factory keyed on the decoded start date.
PolicySource = Union[SchedulePolicy, Callable[[date], SchedulePolicy]]


class PersistedRegimen(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    treatment_start_date: date | None = Field(
        default=None,
        validation_alias=AliasChoices("treatmentStartDate", "startDate", "treatment_start_date"),
        serialization_alias="startDate",
    )
    doses: dict[str, Any] = Field(default_factory=dict)

    @field_validator("treatment_start_date", mode="before")
    @classmethod
    def parse_start_date(cls, v: Any) -> date | None:
        if v is None:
            return None
        parsed = parse_iso_day(v)
        if parsed is None:
            raise ValueError(f"startDate must be an ISO 8601 date, got {v!r}")
        return parsed

    @field_validator("doses", mode="before")
    @classmethod
    def doses_mapping(cls, v: Any) -> dict[str, Any]:
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError(f"doses must be an object, got {type(v).__name__}")
        return v


class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("userName", "user_name"),
        serialization_alias="userName",
    )
    user_age: int | None = Field(
        default=None,
        ge=0,
        le=150,
        validation_alias=AliasChoices("userAge", "user_age"),
        serialization_alias="userAge",
    )

    @field_validator("user_name", mode="before")
    @classmethod
    def normalize_name(cls, v: Any) -> str | None:
        if v is None:
            return None
        cleaned = str(v).strip()
        return cleaned or None


def parse_persisted_state(raw: Any) -> PersistedRegimen:
    """Strict decode; raises ``MalformedPersistedState``."""
    if not isinstance(raw, dict):
        raise MalformedPersistedState(
            f"persisted state must be an object, got {type(raw).__name__}"
        )
    try:
        return PersistedRegimen.model_validate(raw)
    except ValidationError as exc:
        raise MalformedPersistedState(str(exc)) from exc


def _decode_doses(raw_doses: dict[str, Any], start_date: date) -> dict[date, str]:
    doses: dict[date, str] = {}
    skipped: list[str] = []
    for key, status in raw_doses.items():
        day = parse_iso_day(key)
        if day is None or status != DOSE_TAKEN:
            skipped.append(str(key))
            continue
        if day < start_date:
            skipped.append(str(key))
            continue
        doses[day] = DOSE_TAKEN
    if skipped:
        logger.warning(
            "Skipped %d persisted dose entr%s",
            len(skipped),
            "y" if len(skipped) == 1 else "ies",
            extra={"regimen_skipped_dose_keys": skipped},
        )
    return doses


def load_regimen(raw: Any, policy: PolicySource) -> Regimen | None:
    if raw is None:
        return None
    try:
        state = parse_persisted_state(raw)
    except MalformedPersistedState as exc:
        logger.warning(
            "Persisted regimen is malformed; treating as not configured",
            extra={"regimen_error": exc.code},
        )
        return None
    if state.treatment_start_date is None:
        return None
    return Regimen(
        start_date=state.treatment_start_date,
        policy=policy(state.treatment_start_date) if callable(policy) else policy,
        doses=_decode_doses(state.doses, state.treatment_start_date),
    )


def loads_regimen(text: str | None, policy: PolicySource) -> Regimen | None:
    if text is None or not text.strip():
        return None
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning(
            "Persisted regimen is not valid JSON; treating as not configured: %s",
            exc,
            extra={"regimen_error": MalformedPersistedState.code},
        )
        return None
    return load_regimen(raw, policy)


def load_profile(raw: Any) -> UserProfile:
    if not isinstance(raw, dict):
        return UserProfile()
    try:
        return UserProfile.model_validate(raw)
    except ValidationError:
        logger.warning(
            "Persisted profile is malformed; using defaults",
            extra={"regimen_error": MalformedPersistedState.code},
        )
        return UserProfile()


def dump_regimen(regimen: Regimen | None) -> dict[str, Any]:
    if regimen is None:
        return {"startDate": None, "doses": {}}
    return {
        "startDate": regimen.start_date.isoformat(),
        "doses": {day.isoformat(): status for day, status in sorted(regimen.doses.items())},
    }


def dump_state(regimen: Regimen | None, profile: UserProfile | None = None) -> dict[str, Any]:
    payload = dump_regimen(regimen)
    payload.update((profile or UserProfile()).model_dump(by_alias=True))
    return payload


def read_state_file(path: Path, policy: PolicySource) -> tuple[Regimen | None, UserProfile]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None, UserProfile()
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning(
            "State file %s is not valid JSON; treating as not configured: %s",
            path,
            exc,
            extra={"regimen_error": MalformedPersistedState.code},
        )
        return None, UserProfile()
    return load_regimen(raw, policy), load_profile(raw)


def write_state_file(path: Path, regimen: Regimen | None, profile: UserProfile | None = None) -> None:
    path.write_text(json.dumps(dump_state(regimen, profile), indent=2) + "\n", encoding="utf-8")
