from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from regimen_core.schedule import (
    DailyRule,
    EveryNDaysRule,
    PolicyEra,
    SchedulePolicy,
    WeekdaysOnlyRule,
    governing_era,
    is_dose_day,
)

D0 = date(2025, 3, 28)  # Friday

days = st.dates(min_value=date(2024, 1, 1), max_value=date(2027, 12, 31))
rules = st.one_of(
    st.just(DailyRule()),
    st.just(WeekdaysOnlyRule()),
    st.builds(
        EveryNDaysRule,
        n=st.integers(min_value=1, max_value=10),
        anchor=st.dates(min_value=date(2024, 1, 1), max_value=date(2025, 12, 31)),
    ),
)


def _offsets(start: date, policy: SchedulePolicy, count: int) -> list[int]:
    return [i for i in range(count) if is_dose_day(start + timedelta(days=i), start, policy)]


class TestRules:
    def test_daily_every_day(self):
        policy = SchedulePolicy.single(D0, DailyRule())
        assert _offsets(D0, policy, 7) == [0, 1, 2, 3, 4, 5, 6]

    def test_weekdays_skip_weekend(self):
        policy = SchedulePolicy.single(D0, WeekdaysOnlyRule())
        # Fri, Sat, Sun, Mon, Tue
        assert _offsets(D0, policy, 5) == [0, 3, 4]

    def test_every_other_day_from_anchor(self):
        policy = SchedulePolicy.single(D0, EveryNDaysRule(n=2, anchor=D0))
        assert _offsets(D0, policy, 9) == [0, 2, 4, 6, 8]
        assert is_dose_day(D0 + timedelta(days=1), D0, policy) is False
        assert is_dose_day(D0 + timedelta(days=4), D0, policy) is True

    def test_every_n_days_before_anchor_not_scheduled(self):
        rule = EveryNDaysRule(n=3, anchor=D0 + timedelta(days=5))
        assert rule.applies(D0 + timedelta(days=2)) is False
        assert rule.applies(D0 + timedelta(days=5)) is True
        assert rule.applies(D0 + timedelta(days=8)) is True

    def test_every_n_days_rejects_non_positive_n(self):
        with pytest.raises(ValueError, match="n must be a positive integer"):
            EveryNDaysRule(n=0, anchor=D0)
        with pytest.raises(ValueError):
            EveryNDaysRule(n=True, anchor=D0)

    def test_rule_kinds(self):
        assert DailyRule().kind == "daily"
        assert WeekdaysOnlyRule().kind == "weekdays_only"
        assert EveryNDaysRule(n=2, anchor=D0).kind == "every_n_days"


class TestPolicyTimeline:
    def test_empty_policy_rejected(self):
        with pytest.raises(ValueError, match="at least one era"):
            SchedulePolicy(())

    def test_unsorted_eras_rejected(self):
        with pytest.raises(ValueError, match="sorted"):
            SchedulePolicy((
                PolicyEra(D0 + timedelta(days=5), DailyRule()),
                PolicyEra(D0, WeekdaysOnlyRule()),
            ))

    def test_duplicate_boundary_rejected(self):
        with pytest.raises(ValueError):
            SchedulePolicy((PolicyEra(D0, DailyRule()), PolicyEra(D0, WeekdaysOnlyRule())))

    def test_boundary_day_belongs_to_new_era(self):
        switch = D0 + timedelta(days=3)
        policy = SchedulePolicy.single(D0, DailyRule()).with_era(switch, WeekdaysOnlyRule())
        assert governing_era(switch, policy).rule == WeekdaysOnlyRule()
        assert governing_era(switch - timedelta(days=1), policy).rule == DailyRule()

    def test_day_before_first_era_has_no_governing_era(self):
        policy = SchedulePolicy.single(D0, DailyRule())
        assert governing_era(D0 - timedelta(days=1), policy) is None

    def test_days_before_first_era_not_scheduled(self):
        policy = SchedulePolicy.single(D0 + timedelta(days=2), DailyRule())
        assert is_dose_day(D0 + timedelta(days=1), D0, policy) is False
        assert is_dose_day(D0 + timedelta(days=2), D0, policy) is True

    def test_with_era_replaces_later_eras(self):
        policy = (
            SchedulePolicy.single(D0, DailyRule())
            .with_era(D0 + timedelta(days=10), WeekdaysOnlyRule())
            .with_era(D0 + timedelta(days=5), EveryNDaysRule(n=2, anchor=D0 + timedelta(days=5)))
        )
        assert policy.boundaries == [D0, D0 + timedelta(days=5)]

    def test_past_daily_future_every_other_day(self):
        today = D0 + timedelta(days=10)
        policy = SchedulePolicy.single(D0, DailyRule()).with_era(today, EveryNDaysRule(n=2, anchor=today))
        assert is_dose_day(today - timedelta(days=1), D0, policy) is True
        assert is_dose_day(today, D0, policy) is True
        assert is_dose_day(today + timedelta(days=1), D0, policy) is False
        assert is_dose_day(today + timedelta(days=2), D0, policy) is True

    def test_time_of_day_ignored(self):
        policy = SchedulePolicy.single(D0, EveryNDaysRule(n=2, anchor=D0))
        late = datetime(2025, 3, 30, 23, 59)
        assert is_dose_day(late, datetime(2025, 3, 28, 8, 0), policy) is True

    def test_no_start_date_means_nothing_scheduled(self):
        policy = SchedulePolicy.single(D0, DailyRule())
        assert is_dose_day(D0, None, policy) is False


@settings(max_examples=200)
@given(start=days, offset=st.integers(min_value=1, max_value=400), rule=rules)
def test_days_before_start_never_scheduled(start: date, offset: int, rule) -> None:
    policy = SchedulePolicy.single(start - timedelta(days=30), rule)
    assert is_dose_day(start - timedelta(days=offset), start, policy) is False


@settings(max_examples=100)
@given(
    boundary_offset=st.integers(min_value=1, max_value=60),
    shift=st.integers(min_value=1, max_value=60),
    old_rule=rules,
    new_rule=rules,
)
def test_moving_boundary_later_keeps_earlier_days(boundary_offset, shift, old_rule, new_rule) -> None:
    base = SchedulePolicy.single(D0, old_rule)
    early = base.with_era(D0 + timedelta(days=boundary_offset), new_rule)
    new_boundary = D0 + timedelta(days=boundary_offset + shift)
    late = base.with_era(new_boundary, new_rule)

    day = D0
    while day < new_boundary:
        # Days before the earlier boundary are untouched by either policy.
        if day < D0 + timedelta(days=boundary_offset):
            assert is_dose_day(day, D0, early) == is_dose_day(day, D0, late)
        assert is_dose_day(day, D0, late) == is_dose_day(day, D0, base)
        day += timedelta(days=1)

