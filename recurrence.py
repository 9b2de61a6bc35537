import calendar
from datetime import date, datetime, timedelta
from typing import Callable, Union
from zoneinfo import ZoneInfo

from config import get_settings
from models import FrequencyKind

DateLike = Union[date, datetime]

ONE_DAY = timedelta(days=1)


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def is_leap_year(year: int) -> bool:
    return calendar.isleap(year)


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def last_day_of_month(value: DateLike) -> date:
    # Day zero of the following month.
    if value.month == 12:
        return date(value.year + 1, 1, 1) - ONE_DAY
    return date(value.year, value.month + 1, 1) - ONE_DAY


def is_last_day_of_month(value: DateLike) -> bool:
    return value.day == days_in_month(value.year, value.month)


def day_difference(later: DateLike, earlier: DateLike) -> int:
    """Whole days between two dates, rounded so an hour of DST drift between
    two midnights never changes the count."""
    return round((later - earlier) / ONE_DAY)


def month_difference(target: DateLike, start: DateLike) -> int:
    # Month numbers only; the year never enters the cycle rules.
    return target.month - start.month


def _same_instant(target: DateLike, start: DateLike) -> bool:
    return target == start


def _weekly(target: DateLike, start: DateLike) -> bool:
    return target.weekday() == start.weekday()


def _biweekly(target: DateLike, start: DateLike) -> bool:
    return day_difference(target, start) % 14 == 0


def _monthly(target: DateLike, start: DateLike) -> bool:
    if target.day == start.day:
        return True
    # Roll a 29th/30th/31st anchor onto the last day of shorter months.
    return is_last_day_of_month(target) and start.day > days_in_month(
        target.year, target.month
    )


def _biweekly_after_15(target: DateLike, start: DateLike) -> bool:
    # Eligible from the 14th through the 27th.
    return 13 < target.day < 28 and _biweekly(target, start)


def _every_n_months(n: int) -> Callable[[DateLike, DateLike], bool]:
    def rule(target: DateLike, start: DateLike) -> bool:
        return target.day == start.day and month_difference(target, start) % n == 0

    rule.__name__ = f"_every_{n}_months"
    return rule


def _annual(target: DateLike, start: DateLike) -> bool:
    return target.day == start.day and target.month == start.month


def _never(target: DateLike, start: DateLike) -> bool:
    return False


RULES: dict[FrequencyKind, Callable[[DateLike, DateLike], bool]] = {
    FrequencyKind.once: _same_instant,
    FrequencyKind.weekly: _weekly,
    FrequencyKind.biweekly: _biweekly,
    FrequencyKind.monthly: _monthly,
    FrequencyKind.biweekly_after_15: _biweekly_after_15,
    FrequencyKind.bimonthly: _every_n_months(2),
    FrequencyKind.quarterly: _every_n_months(3),
    FrequencyKind.triannual: _every_n_months(4),
    FrequencyKind.semiannual: _every_n_months(6),
    FrequencyKind.annual: _annual,
    FrequencyKind.unrecognized: _never,
}


def matches(
    frequency: Union[FrequencyKind, str], target_date: DateLike, start_date: DateLike
) -> bool:
    """Return True when a transaction starting on ``start_date`` with the given
    frequency occurs on ``target_date``.

    Nothing matches before the recurrence has started. Unknown frequency
    labels never match.
    """
    if target_date < start_date:
        return False
    kind = FrequencyKind.parse(frequency)
    return RULES[kind](target_date, start_date)
