"""
Calendar helpers shared by the planner, the merge engine and the adherence calculator.

Date keys are canonical "YYYY-MM-DD" strings. Weekday names are the seven English
day names ("Monday" .. "Sunday"); anything coming from outside (schedule picker,
AI output) goes through normalize_weekday() first.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Union

from clinicflow.config import MAX_CALENDAR_DAYS
from clinicflow.errors import ValidationError

logger = logging.getLogger("clinicflow.calendar")

WEEKDAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

_WEEKDAY_LOOKUP = {name.lower(): name for name in WEEKDAY_NAMES}
_WEEKDAY_LOOKUP.update({name[:3].lower(): name for name in WEEKDAY_NAMES})
_WEEKDAY_LOOKUP.update({"tues": "Tuesday", "weds": "Wednesday", "thur": "Thursday", "thurs": "Thursday"})

DateLike = Union[str, date]


def parse_date_key(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = (value or "").strip()
    # tolerate full ISO timestamps ("2024-01-01T00:00:00.000Z")
    if len(raw) > 10 and raw[10] in ("T", " "):
        raw = raw[:10]
    try:
        return date.fromisoformat(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date key: {value!r} (expected YYYY-MM-DD)")


def to_date_key(value: DateLike) -> str:
    return parse_date_key(value).isoformat()


def weekday_of(value: DateLike) -> str:
    """English weekday name for a date key. The single source for weekday derivation."""
    return WEEKDAY_NAMES[parse_date_key(value).weekday()]


def normalize_weekday(name: str) -> Optional[str]:
    """
    "monday", "MON", " Monday " -> "Monday". Returns None when unrecognized.
    """
    key = (name or "").strip().lower().rstrip(".")
    return _WEEKDAY_LOOKUP.get(key)


def expand_dates(start: DateLike, end: DateLike, max_days: Optional[int] = None) -> List[str]:
    """
    Inclusive list of date keys from start to end, ascending.

    Returns [] when end < start. Output is capped at max_days entries
    (MAX_CALENDAR_DAYS by default); a capped expansion is logged.
    """
    limit = MAX_CALENDAR_DAYS if max_days is None else max_days
    first = parse_date_key(start)
    last = parse_date_key(end)
    if last < first or limit <= 0:
        return []

    span = (last - first).days + 1
    if span > limit:
        logger.info(
            "calendar.capped start=%s end=%s span_days=%s max_days=%s",
            first.isoformat(),
            last.isoformat(),
            span,
            limit,
        )
    count = min(span, limit)
    return [(first + timedelta(days=i)).isoformat() for i in range(count)]


def previous_date_in(dates: Sequence[str], date_key: str) -> Optional[str]:
    """The key before date_key in an expanded calendar, or None for the first/unknown day."""
    try:
        idx = list(dates).index(date_key)
    except ValueError:
        return None
    if idx <= 0:
        return None
    return dates[idx - 1]


def end_date_for(start: DateLike, duration_days: int) -> str:
    """Last day of a course that starts on `start` and lasts `duration_days` days."""
    days = max(1, int(duration_days or 1))
    return (parse_date_key(start) + timedelta(days=days - 1)).isoformat()
