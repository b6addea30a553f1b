"""
Period and Calendar Helpers

Week/month/year boundaries and date labels, all in local time.

DESIGN DECISION: Every function takes an optional `now`.
When it is supplied the result depends only on that value, so
analytics can be tested against a fixed date instead of the system clock.

Ranges are inclusive on both ends: `end` is the last representable
instant of the period (23:59:59.999999 on its last day).
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from financeflow.models.ledger import DateRange


Moment = Union[datetime, date]

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def _as_datetime(moment: Optional[Moment]) -> datetime:
    if moment is None:
        return datetime.now()
    if isinstance(moment, datetime):
        return moment
    return datetime.combine(moment, time.min)


def start_of_day(moment: Moment) -> datetime:
    return datetime.combine(_as_datetime(moment).date(), time.min)


def end_of_day(moment: Moment) -> datetime:
    return datetime.combine(_as_datetime(moment).date(), time.max)


def month_range(now: Optional[Moment] = None) -> DateRange:
    """First through last instant of the calendar month containing `now`."""
    current = _as_datetime(now)
    first = current.date().replace(day=1)
    last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
    return DateRange(start=start_of_day(first), end=end_of_day(last))


def week_range(now: Optional[Moment] = None) -> DateRange:
    """Monday 00:00 through Sunday 23:59:59.999999 of the week containing `now`."""
    current = _as_datetime(now).date()
    monday = current - timedelta(days=current.weekday())
    sunday = monday + timedelta(days=6)
    return DateRange(start=start_of_day(monday), end=end_of_day(sunday))


def year_range(now: Optional[Moment] = None) -> DateRange:
    current = _as_datetime(now).date()
    return DateRange(
        start=start_of_day(date(current.year, 1, 1)),
        end=end_of_day(date(current.year, 12, 31)),
    )


def day_of_month(now: Optional[Moment] = None) -> int:
    """1-based day of the current calendar month."""
    return _as_datetime(now).day


def days_in_month(now: Optional[Moment] = None) -> int:
    current = _as_datetime(now)
    return calendar.monthrange(current.year, current.month)[1]


# =============================================================================
# LABELS
# =============================================================================

def format_date(timestamp: Moment, now: Optional[Moment] = None) -> str:
    """'Today', 'Yesterday', or a short '05 Mar' label."""
    moment = _as_datetime(timestamp).date()
    today = _as_datetime(now).date()

    if moment == today:
        return "Today"
    if moment == today - timedelta(days=1):
        return "Yesterday"
    return moment.strftime("%d %b")


def format_full_date(timestamp: Moment) -> str:
    return _as_datetime(timestamp).strftime("%d %b %Y")


def format_date_for_input(timestamp: Moment) -> str:
    return _as_datetime(timestamp).strftime("%Y-%m-%d")


def parse_date_from_input(value: str) -> datetime:
    """Parse a 'YYYY-MM-DD' form value as local midnight."""
    return datetime.combine(date.fromisoformat(value.strip()), time.min)


def time_ago(timestamp: Moment, now: Optional[Moment] = None) -> str:
    seconds = int((_as_datetime(now) - _as_datetime(timestamp)).total_seconds())

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 604800:
        return f"{seconds // 86400}d ago"

    return format_date(timestamp, now)


def month_name(month_index: int) -> str:
    """Month name for a 0-based index (0 = January)."""
    return MONTH_NAMES[month_index]
