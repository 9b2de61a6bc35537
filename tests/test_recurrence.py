from datetime import date, datetime

import pytest

from models import FrequencyKind
from recurrence import (
    day_difference,
    days_in_month,
    is_last_day_of_month,
    is_leap_year,
    last_day_of_month,
    matches,
)


def test_days_in_month_handles_leap_february():
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2023, 2) == 28
    assert days_in_month(2024, 4) == 30
    assert days_in_month(2024, 12) == 31


def test_leap_year_century_rules():
    assert is_leap_year(2024)
    assert is_leap_year(2000)
    assert not is_leap_year(1900)
    assert not is_leap_year(2023)


def test_last_day_of_month():
    assert last_day_of_month(date(2024, 12, 5)) == date(2024, 12, 31)
    assert last_day_of_month(date(2023, 2, 1)) == date(2023, 2, 28)
    assert is_last_day_of_month(date(2023, 2, 28))
    assert not is_last_day_of_month(date(2024, 2, 28))


def test_day_difference_rounds_partial_days():
    assert day_difference(date(2024, 1, 15), date(2024, 1, 1)) == 14
    # An hour short of two weeks still counts as fourteen days.
    assert day_difference(datetime(2024, 3, 20, 0), datetime(2024, 3, 6, 1)) == 14


@pytest.mark.parametrize("kind", list(FrequencyKind))
def test_nothing_matches_before_start(kind):
    assert not matches(kind, date(2024, 1, 1), date(2024, 1, 2))


def test_once_matches_only_the_start_date():
    start = date(2024, 5, 1)
    assert matches("Once", start, start)
    assert not matches("Once", date(2024, 5, 2), start)
    assert not matches("Once", date(2025, 5, 1), start)


def test_weekly_matches_same_weekday():
    start = date(2024, 1, 1)  # Monday
    assert matches("Weekly", date(2024, 1, 22), start)
    assert not matches("Weekly", date(2024, 1, 23), start)


@pytest.mark.parametrize("offset_days", [14, 28, 140])
def test_biweekly_matches_every_fourteen_days(offset_days):
    start = date(2024, 1, 5)
    target = date.fromordinal(start.toordinal() + offset_days)
    assert matches(FrequencyKind.biweekly, target, start)


def test_biweekly_skips_alternate_weeks():
    start = date(2024, 1, 5)
    assert not matches("Biweekly", date(2024, 1, 12), start)
    assert not matches("Biweekly", date(2024, 1, 26), start)


def test_monthly_matches_same_day_of_month():
    start = date(2024, 1, 10)
    assert matches("Monthly", date(2024, 2, 10), start)
    assert matches("Monthly", date(2025, 7, 10), start)
    assert not matches("Monthly", date(2024, 2, 11), start)


def test_monthly_rolls_over_to_end_of_short_months():
    assert matches("Monthly", date(2023, 2, 28), date(2023, 1, 31))
    assert matches("Monthly", date(2024, 2, 29), date(2024, 1, 31))
    assert matches("Monthly", date(2024, 4, 30), date(2024, 1, 31))
    assert matches("Monthly", date(2023, 2, 28), date(2023, 1, 29))


def test_monthly_rollover_respects_month_length():
    # Feb 28 is not the last day of a leap February.
    assert not matches("Monthly", date(2024, 2, 28), date(2024, 1, 30))
    assert not matches("Monthly", date(2024, 2, 28), date(2024, 1, 29))
    assert not matches("Monthly", date(2024, 3, 30), date(2024, 1, 31))
    assert matches("Monthly", date(2024, 3, 31), date(2024, 1, 31))


@pytest.mark.parametrize(
    "day, expected",
    [(13, False), (14, True), (20, True), (27, True), (28, False)],
)
def test_biweekly_after_15_window(day, expected):
    anchor = date(2024, 1, day)
    assert matches("Biweekly after 15", anchor, anchor) is expected


def test_biweekly_after_15_needs_fortnight_cycle():
    start = date(2024, 1, 1)
    assert matches("Biweekly after 15", date(2024, 1, 15), start)
    assert not matches("Biweekly after 15", date(2024, 1, 29), start)
    assert not matches("Biweekly after 15", date(2024, 1, 22), start)


def test_quarterly_every_three_months():
    start = date(2024, 3, 15)
    assert matches("Quarterly", date(2024, 6, 15), start)
    assert matches("Quarterly", date(2024, 9, 15), start)
    assert matches("Quarterly", date(2024, 12, 15), start)
    assert not matches("Quarterly", date(2024, 4, 15), start)
    assert not matches("Quarterly", date(2024, 5, 15), start)
    assert not matches("Quarterly", date(2025, 1, 15), start)
    assert not matches("Quarterly", date(2024, 6, 16), start)


def test_bimonthly_triannual_and_semiannual_cycles():
    start = date(2024, 1, 10)
    assert matches("Bimonthly", date(2024, 3, 10), start)
    assert not matches("Bimonthly", date(2024, 2, 10), start)
    assert matches("Triannual", date(2024, 5, 10), start)
    assert matches("Triannual", date(2024, 9, 10), start)
    assert not matches("Triannual", date(2024, 6, 10), start)
    assert matches("Semiannual", date(2024, 7, 10), start)
    assert matches("Semiannual", date(2025, 1, 10), start)
    assert not matches("Semiannual", date(2024, 4, 10), start)


def test_annual_matches_same_month_and_day():
    start = date(2024, 7, 4)
    assert matches("Annual", date(2025, 7, 4), start)
    assert not matches("Annual", date(2025, 7, 5), start)
    assert not matches("Annual", date(2025, 8, 4), start)


def test_unknown_frequency_never_matches():
    start = date(2024, 1, 1)
    assert FrequencyKind.parse("Fortnightly") is FrequencyKind.unrecognized
    assert FrequencyKind.parse("monthly") is FrequencyKind.unrecognized
    assert FrequencyKind.parse(" Monthly ") is FrequencyKind.monthly
    assert not matches("Fortnightly", start, start)
    assert not matches(FrequencyKind.unrecognized, start, start)
