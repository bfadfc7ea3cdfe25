"""
Calendar helpers for monthly tax periods.

Months are plain "YYYY-MM" strings; lexicographic order equals
chronological order, which the replay relies on.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import re
from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from modules.tax import settings

_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def _date_key_zone() -> tzinfo:
    name = settings.DATE_KEY_TIMEZONE
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def calendar_date(value: Union[date, datetime]) -> date:
    """
    Truncate a timestamp to its calendar date.

    Aware datetimes are first converted to the configured date-key timezone;
    naive datetimes are taken at face value.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(_date_key_zone())
        return value.date()
    return value


def instant(value: datetime) -> datetime:
    """
    Comparable point in time for ordering operations.

    Naive datetimes are read in the date-key timezone; aware ones are kept.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=_date_key_zone())
    return value


def month_key(value: Union[date, datetime]) -> str:
    """Return the "YYYY-MM" period of a timestamp."""
    return calendar_date(value).strftime("%Y-%m")


def is_valid_month(month: Optional[str]) -> bool:
    """Check "YYYY-MM" format with a real month number."""
    return bool(month) and _MONTH_PATTERN.match(month) is not None


def current_month(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{today.year}-{today.month:02d}"


def previous_month(month: str) -> str:
    year, m = (int(part) for part in month.split("-"))
    if m == 1:
        return f"{year - 1}-12"
    return f"{year}-{m - 1:02d}"


def next_month(month: str) -> str:
    year, m = (int(part) for part in month.split("-"))
    if m == 12:
        return f"{year + 1}-01"
    return f"{year}-{m + 1:02d}"
