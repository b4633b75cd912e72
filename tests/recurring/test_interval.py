"""
Tests for orders_recurring.domain.interval.

Covers next-date arithmetic for every interval variant (month-end
clamping, weekday anchoring), time-of-day stripping, and decoding of the
stored representation including legacy bare numbers.
"""

from datetime import date, datetime, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from orders_recurring.domain.interval import (
    DEFAULT_INTERVAL,
    MAX_COUNT,
    MonthlyDay,
    NMonthly,
    NWeekly,
    Weekly,
    add_months_clamped,
    decode_interval,
    encode_interval,
    next_date,
)


# 2024-03-06 is a Wednesday.
WEDNESDAY = date(2024, 3, 6)


class TestNMonthly:

    def test_leap_year_month_end_clamps_to_29th(self):
        assert next_date(date(2024, 1, 31), NMonthly(1)) == date(2024, 2, 29)

    def test_common_year_month_end_clamps_to_28th(self):
        assert next_date(date(2023, 1, 31), NMonthly(1)) == date(2023, 2, 28)

    def test_day_of_month_kept(self):
        assert next_date(date(2024, 3, 15), NMonthly(1)) == date(2024, 4, 15)

    def test_multi_month_crosses_year(self):
        assert next_date(date(2024, 11, 30), NMonthly(3)) == date(2025, 2, 28)

    def test_add_months_clamped_december(self):
        assert add_months_clamped(date(2024, 12, 31), 1) == date(2025, 1, 31)

    def test_rejects_zero(self):
        with pytest.raises(ValueError):
            NMonthly(0)


class TestMonthlyDay:

    def test_last_day_of_following_month(self):
        assert next_date(date(2024, 3, 15), MonthlyDay("last")) == date(2024, 4, 30)

    def test_first_day_of_following_month(self):
        assert next_date(date(2024, 12, 20), MonthlyDay("first")) == date(2025, 1, 1)

    def test_day_clamped_to_short_month(self):
        assert next_date(date(2024, 1, 10), MonthlyDay(31)) == date(2024, 2, 29)

    def test_fixed_day(self):
        assert next_date(date(2024, 3, 31), MonthlyDay(15)) == date(2024, 4, 15)

    @pytest.mark.parametrize("day", [0, 32, "mid", True])
    def test_rejects_invalid_day(self, day):
        with pytest.raises(ValueError):
            MonthlyDay(day)


class TestWeekly:

    def test_same_weekday_moves_a_full_week(self):
        assert next_date(WEDNESDAY, Weekly(3)) == date(2024, 3, 13)

    def test_next_monday(self):
        assert next_date(WEDNESDAY, Weekly(1)) == date(2024, 3, 11)

    def test_rejects_weekday_out_of_range(self):
        with pytest.raises(ValueError):
            Weekly(8)


class TestNWeekly:

    def test_anchors_on_next_weekday_then_adds_weeks(self):
        assert next_date(WEDNESDAY, NWeekly(2, weekday=1)) == date(2024, 3, 25)

    def test_anchor_on_same_weekday(self):
        assert next_date(WEDNESDAY, NWeekly(2, weekday=3)) == date(2024, 3, 20)

    def test_rejects_zero_weeks(self):
        with pytest.raises(ValueError):
            NWeekly(0, 1)


class TestTimeOfDay:

    def test_datetime_input_uses_calendar_day(self):
        late = datetime(2024, 1, 31, 23, 30)
        assert next_date(late, NMonthly(1)) == date(2024, 2, 29)

    def test_unknown_spec_treated_as_monthly(self):
        assert next_date(date(2024, 3, 10), "not-a-spec") == date(2024, 4, 10)

    def test_month_count_past_year_9999_falls_back_to_one_month(self):
        assert next_date(date(2024, 3, 1), NMonthly(200000)) == date(2024, 4, 1)

    def test_week_count_past_date_max_falls_back_to_one_month(self):
        assert next_date(WEDNESDAY, NWeekly(10**9, 3)) == date(2024, 4, 6)


# =============================================================================
# Storage codec
# =============================================================================


class TestDecodeInterval:

    def test_spec_passed_through(self):
        spec = NWeekly(3, 5)
        assert decode_interval(spec) is spec

    def test_legacy_bare_integer(self):
        assert decode_interval(2) == NMonthly(2)

    def test_legacy_numeric_string(self):
        assert decode_interval("3") == NMonthly(3)

    def test_json_string(self):
        assert decode_interval('{"type": "weekly", "value": 3}') == Weekly(3)

    def test_alias_types(self):
        assert decode_interval({"type": "biweekly", "value": 2, "weekday": 5}) == NWeekly(2, 5)
        assert decode_interval({"type": "3month", "value": 3}) == NMonthly(3)

    def test_monthly_keywords_and_clamp(self):
        assert decode_interval({"type": "monthly", "value": "last"}) == MonthlyDay("last")
        assert decode_interval({"type": "monthly", "value": 40}) == MonthlyDay(31)

    def test_non_positive_values_fall_back(self):
        assert decode_interval({"type": "nmonth", "value": 0}) == NMonthly(1)
        assert decode_interval({"type": "weekly", "value": 9}) == Weekly(1)
        assert decode_interval(-4) == NMonthly(1)

    @pytest.mark.parametrize("value", ["1e999", 1e999, "-inf", "nan", 10**12])
    def test_overflowing_counts_fall_back(self, value):
        assert decode_interval({"type": "nmonth", "value": value}) == NMonthly(1)
        assert decode_interval({"type": "nweek", "value": value, "weekday": 2}) == NWeekly(2, 2)

    def test_counts_above_ceiling_fall_back(self):
        assert decode_interval({"type": "nmonth", "value": MAX_COUNT}) == NMonthly(MAX_COUNT)
        assert decode_interval({"type": "nmonth", "value": MAX_COUNT + 1}) == NMonthly(1)
        assert decode_interval("1e999") == NMonthly(1)

    @pytest.mark.parametrize("raw", [None, "garbage", True, [1, 2]])
    def test_unreadable_becomes_default(self, raw):
        assert decode_interval(raw) == DEFAULT_INTERVAL

    def test_encode_is_decodable(self):
        for spec in (Weekly(2), NWeekly(3, 7), MonthlyDay("first"), NMonthly(6)):
            assert decode_interval(encode_interval(spec)) == spec

    def test_encode_rejects_non_spec(self):
        with pytest.raises(TypeError):
            encode_interval({"type": "weekly"})


# =============================================================================
# Properties
# =============================================================================

interval_specs = st.one_of(
    st.builds(Weekly, st.integers(1, 7)),
    st.builds(NWeekly, st.integers(1, 6), st.integers(1, 7)),
    st.builds(MonthlyDay, st.one_of(st.integers(1, 31), st.sampled_from(["first", "last"]))),
    st.builds(NMonthly, st.integers(1, 24)),
)
base_dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2090, 12, 31))


class TestIntervalProperties:

    @given(base=base_dates, spec=interval_specs)
    @settings(max_examples=300)
    def test_next_date_strictly_after_base(self, base, spec):
        assert next_date(base, spec) > base

    @given(base=base_dates, weekday=st.integers(1, 7))
    def test_weekly_lands_on_weekday_within_a_week(self, base, weekday):
        result = next_date(base, Weekly(weekday))
        assert result.isoweekday() == weekday
        assert timedelta(days=1) <= result - base <= timedelta(days=7)

    @given(base=base_dates, n=st.integers(1, 24))
    def test_nmonthly_never_overshoots_day_of_month(self, base, n):
        result = next_date(base, NMonthly(n))
        assert result.day <= base.day
        assert (result.year * 12 + result.month) - (base.year * 12 + base.month) == n
