"""
Periods -- report windows and local work dates.

Responsibility:
    Translate restaurant-local calendar periods (a day, a Monday-based week,
    a calendar month) into half-open UTC instant windows, and map a clock-in
    instant to the local date it is reported under.

Architecture position:
    Kernel > Domain -- pure functions over ``zoneinfo`` data.

Invariants enforced:
    - A day runs from local midnight to the next local midnight, so a
      spring-forward day is 23 hours long and a fall-back day 25 hours.
    - Weekly periods start on a Monday; monthly periods start on the 1st.

Failure modes:
    - InvalidPeriodStartError for a non-Monday week start or a month start
      that is not the first of the month.
    - ValueError for an unknown IANA time zone name.
"""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timekeeping_kernel.domain.intervals import Interval
from timekeeping_kernel.exceptions import InvalidPeriodStartError


def resolve_timezone(name: str) -> ZoneInfo:
    """Look up an IANA zone, raising ValueError for unknown names."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {name!r}") from exc


def _local_midnight(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    """The restaurant-local calendar date on which ``instant`` falls."""
    return instant.astimezone(tz).date()


def window_between(first_day: date, end_day_exclusive: date, tz: ZoneInfo) -> Interval:
    """UTC instants from local midnight of ``first_day`` to that of ``end_day_exclusive``."""
    return Interval(
        start=_local_midnight(first_day, tz).astimezone(ZoneInfo("UTC")),
        end=_local_midnight(end_day_exclusive, tz).astimezone(ZoneInfo("UTC")),
    )


def day_window(day: date, tz: ZoneInfo) -> Interval:
    return window_between(day, day + timedelta(days=1), tz)


def week_start_for(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def validate_week_start(week_start: date) -> None:
    if week_start.weekday() != 0:
        raise InvalidPeriodStartError(
            "weekly", week_start.isoformat(), week_start_for(week_start).isoformat()
        )


def week_window(week_start: date, tz: ZoneInfo) -> Interval:
    validate_week_start(week_start)
    return window_between(week_start, week_start + timedelta(days=7), tz)


def next_month(period_month: date) -> date:
    if period_month.month == 12:
        return date(period_month.year + 1, 1, 1)
    return date(period_month.year, period_month.month + 1, 1)


def validate_month_start(period_month: date) -> None:
    if period_month.day != 1:
        raise InvalidPeriodStartError(
            "monthly", period_month.isoformat(), period_month.replace(day=1).isoformat()
        )


def month_window(period_month: date, tz: ZoneInfo) -> Interval:
    validate_month_start(period_month)
    return window_between(period_month, next_month(period_month), tz)


def weeks_in_month(period_month: date) -> list[tuple[date, date]]:
    """
    Monday-based weeks overlapping the month, clipped to it.

    Returns ``(first_day, last_day)`` pairs, both inclusive.
    """
    validate_month_start(period_month)
    month_end = next_month(period_month) - timedelta(days=1)
    weeks = []
    cursor = period_month
    while cursor <= month_end:
        week_end = min(week_start_for(cursor) + timedelta(days=6), month_end)
        weeks.append((cursor, week_end))
        cursor = week_end + timedelta(days=1)
    return weeks
