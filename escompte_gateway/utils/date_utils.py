"""Date manipulation utilities"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from dateutil.relativedelta import relativedelta


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_record_date(value: Any) -> Optional[date]:
    """
    Parse a remittance/refinancing date.

    Accepts date/datetime objects, ISO dates ("2025-03-09") and ISO
    datetimes ("2025-03-09T10:00:00.000Z"). Returns None when the value
    is not a real calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def one_month_before(day: date) -> date:
    """Same day of the previous month, clamped to month end (31 Mar -> 28/29 Feb)"""
    return day - relativedelta(months=1)


def years_from(day: date, years: int) -> date:
    return day + relativedelta(years=years)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, datetime.max.time(), tzinfo=timezone.utc)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, datetime.min.time(), tzinfo=timezone.utc)


def tomorrow(today: date) -> date:
    return today + timedelta(days=1)
