"""Date keyword parsing and window arithmetic.

Every window produced here is inclusive at the start and exclusive at the end,
so a single day is ``[midnight, next midnight)`` rather than ending at
23:59:59.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from .errors import InvalidDateFormat, InvalidTimeframe
from .settings import settings

TODAY = "today"
YESTERDAY = "yesterday"
DATE_FORMAT = "%Y-%m-%d"
DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class Timeframe(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


@dataclass(frozen=True)
class DateRange:
    start_instant: Optional[datetime]
    end_instant: Optional[datetime]


def local_timezone() -> tzinfo:
    return ZoneInfo(settings.timezone)


def _local_now(now: Optional[datetime], tz: tzinfo) -> datetime:
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def _midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _resolve_day(value: Optional[str], today: date) -> Optional[date]:
    if value is None:
        return None
    keyword = value.strip().lower()
    if not keyword:
        return None
    if keyword == TODAY:
        return today
    if keyword == YESTERDAY:
        return today - timedelta(days=1)
    if not DATE_PATTERN.fullmatch(keyword):
        raise InvalidDateFormat(value)
    try:
        return datetime.strptime(keyword, DATE_FORMAT).date()
    except ValueError:
        raise InvalidDateFormat(value) from None


def normalize_date_range(
    start_date: Optional[str],
    end_date: Optional[str],
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> DateRange:
    """Turn ``start_date``/``end_date`` keywords into a concrete window.

    Each side accepts ``today``, ``yesterday``, ``YYYY-MM-DD`` or nothing.
    With neither side given the window is the current day. With only a start,
    the end tracks the start's day, not the current instant.
    """
    tz = tz or local_timezone()
    today = _local_now(now, tz).date()

    start_day = _resolve_day(start_date, today)
    end_day = _resolve_day(end_date, today)

    if start_day is None and end_day is None:
        start_day = end_day = today
    elif end_day is None:
        end_day = start_day

    return DateRange(
        start_instant=_midnight(start_day, tz) if start_day is not None else None,
        end_instant=_midnight(end_day + timedelta(days=1), tz),
    )


def parse_timeframe(value: str) -> Timeframe:
    try:
        return Timeframe(value.strip().lower())
    except ValueError:
        raise InvalidTimeframe(value) from None


def _add_months(day: date, months: int) -> date:
    index = day.month - 1 + months
    return date(day.year + index // 12, index % 12 + 1, 1)


def timeframe_window(
    timeframe: Timeframe,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> DateRange:
    """Window covering the bucket ``now`` falls into.

    A row is inside it exactly when its timestamp truncated to ``timeframe``
    equals ``now`` truncated to ``timeframe``. Weeks start on Monday.
    """
    tz = tz or local_timezone()
    local_now = _local_now(now, tz)
    today = local_now.date()

    if timeframe is Timeframe.HOUR:
        start = local_now.replace(minute=0, second=0, microsecond=0)
        return DateRange(start, start + timedelta(hours=1))

    if timeframe is Timeframe.DAY:
        first, following = today, today + timedelta(days=1)
    elif timeframe is Timeframe.WEEK:
        first = today - timedelta(days=today.weekday())
        following = first + timedelta(days=7)
    elif timeframe is Timeframe.MONTH:
        first = today.replace(day=1)
        following = _add_months(first, 1)
    elif timeframe is Timeframe.QUARTER:
        first = date(today.year, 3 * ((today.month - 1) // 3) + 1, 1)
        following = _add_months(first, 3)
    else:
        first = date(today.year, 1, 1)
        following = date(today.year + 1, 1, 1)

    return DateRange(_midnight(first, tz), _midnight(following, tz))
