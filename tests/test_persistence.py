from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path

import pytest

from regimen_core.errors import MalformedPersistedState
from regimen_core.ledger import DOSE_TAKEN, Regimen, is_taken
from regimen_core.persistence import (
    UserProfile,
    dump_regimen,
    dump_state,
    load_profile,
    load_regimen,
    loads_regimen,
    parse_persisted_state,
    read_state_file,
    write_state_file,
)
from regimen_core.schedule import DailyRule, SchedulePolicy, WeekdaysOnlyRule, is_dose_day

START = date(2025, 3, 28)
POLICY = SchedulePolicy.single(START, WeekdaysOnlyRule())


def test_iso_round_trip() -> None:
    raw = {"startDate": "2025-03-28", "doses": {"2025-03-28": "taken"}}
    regimen = loads_regimen(json.dumps(raw), POLICY)

    assert regimen is not None
    assert is_taken(regimen, date(2025, 3, 28))
    assert is_dose_day(date(2025, 3, 27), regimen.start_date, regimen.policy) is False

    again = load_regimen(dump_regimen(regimen), POLICY)
    assert again == regimen


def test_dump_uses_canonical_keys_sorted() -> None:
    regimen = Regimen(
        start_date=START,
        policy=POLICY,
        doses={date(2025, 4, 2): DOSE_TAKEN, START: DOSE_TAKEN},
    )
    assert dump_regimen(regimen) == {
        "startDate": "2025-03-28",
        "doses": {"2025-03-28": "taken", "2025-04-02": "taken"},
    }
    assert dump_regimen(None) == {"startDate": None, "doses": {}}


def test_policy_factory_receives_start_date() -> None:
    seen: list[date] = []

    def factory(start: date) -> SchedulePolicy:
        seen.append(start)
        return SchedulePolicy.single(start, DailyRule())

    regimen = load_regimen({"treatmentStartDate": "2025-03-28", "doses": {}}, factory)
    assert seen == [START]
    assert regimen.policy == SchedulePolicy.single(START, DailyRule())


@pytest.mark.parametrize(
    "raw",
    [
        None,
        [],
        "2025-03-28",
        {"treatmentStartDate": None, "doses": {}},
        {"treatmentStartDate": "not-a-date", "doses": {}},
        {"treatmentStartDate": 20250328, "doses": {}},
        {"treatmentStartDate": "2025-03-28", "doses": ["2025-03-28"]},
        {},
    ],
)
def test_malformed_state_means_no_regimen(raw) -> None:
    assert load_regimen(raw, POLICY) is None


@pytest.mark.parametrize("text", [None, "", "   ", "{not json", "null"])
def test_malformed_text_means_no_regimen(text) -> None:
    assert loads_regimen(text, POLICY) is None


def test_parse_persisted_state_raises_for_strict_callers() -> None:
    with pytest.raises(MalformedPersistedState):
        parse_persisted_state({"treatmentStartDate": "28/03/2025"})
    with pytest.raises(MalformedPersistedState, match="must be an object"):
        parse_persisted_state("oops")


def test_bad_dose_entries_are_skipped(caplog: pytest.LogCaptureFixture) -> None:
    raw = {
        "startDate": "2025-03-28",
        "doses": {
            "2025-03-28": "taken",
            "2025-03-31": "taken",
            "garbage": "taken",
            "2025-04-01": "skipped",
            "2025-03-20": "taken",
        },
    }
    with caplog.at_level(logging.WARNING, logger="regimen_core.persistence"):
        regimen = load_regimen(raw, POLICY)

    assert sorted(regimen.doses) == [date(2025, 3, 28), date(2025, 3, 31)]
    assert any("Skipped 3 persisted dose entries" in r.getMessage() for r in caplog.records)


def test_profile_metadata_decoded_separately() -> None:
    raw = {"treatmentStartDate": "2025-03-28", "doses": {}, "userName": "  Alex ", "userAge": 24}
    profile = load_profile(raw)
    assert profile == UserProfile(user_name="Alex", user_age=24)


@pytest.mark.parametrize("raw", [None, "x", {"userAge": -4}, {"userAge": "old"}])
def test_malformed_profile_falls_back_to_defaults(raw) -> None:
    assert load_profile(raw) == UserProfile()


def test_dump_state_merges_profile() -> None:
    payload = dump_state(None, UserProfile(user_name="Sam", user_age=31))
    assert payload == {"startDate": None, "doses": {}, "userName": "Sam", "userAge": 31}


def test_state_file_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    regimen = Regimen(start_date=START, policy=POLICY, doses={START: DOSE_TAKEN})
    write_state_file(path, regimen, UserProfile(user_name="Sam"))

    loaded, profile = read_state_file(path, POLICY)
    assert loaded == regimen
    assert profile.user_name == "Sam"
    assert json.loads(path.read_text())["startDate"] == "2025-03-28"


def test_missing_or_corrupt_state_file(tmp_path: Path) -> None:
    assert read_state_file(tmp_path / "missing.json", POLICY) == (None, UserProfile())
    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{{{")
    assert read_state_file(corrupt, POLICY) == (None, UserProfile())
