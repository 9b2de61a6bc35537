from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from recurrence import last_day_of_month, local_today


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def days(self) -> list[date]:
        """Every calendar date from start to end, inclusive."""
        span = (self.end - self.start).days
        return [self.start + timedelta(days=offset) for offset in range(span + 1)]


def _month_period(slug: str, first: date) -> Period:
    return Period(slug, first, last_day_of_month(first))


def resolve_period(
    period: Optional[str],
    start: Optional[date],
    end: Optional[date],
    *,
    today: Optional[date] = None,
) -> Period:
    if period == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        if start > end:
            raise ValueError("Start date must be before end date")
        return Period("custom", start, end)

    today = today or local_today()
    first_this = today.replace(day=1)
    if period == "last_month":
        last_month_end = first_this - date.resolution
        return _month_period("last_month", last_month_end.replace(day=1))
    if period == "next_month":
        return _month_period("next_month", last_day_of_month(today) + date.resolution)
    if period and period != "this_month":
        raise ValueError(f"Unknown period: {period}")
    return _month_period("this_month", first_this)
