"""Tolerant parsing of the date/time strings found in spreadsheet and CSV rows.

Every parser here walks an ordered list of formats and returns the first
interpretation that fits. The order is the policy: more specific formats come
first, and for slash-separated dates month-first is tried before day-first.
"""
from __future__ import annotations

from datetime import date, datetime, time
from typing import Callable, Optional, Sequence, Tuple


Temporal = Tuple[date, Optional[time]]
Attempt = Callable[[str], Optional[Temporal]]

ZONED_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S%z",
)
NAIVE_T_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M",
)
SPACED_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
)
MERIDIEM_FORMATS = (
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %I:%M:%S %p",
)
DATE_ONLY_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
)

# Separate date and time columns (CSV sources) accept a slightly wider set.
COLUMN_DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%m-%d-%Y",
)
COLUMN_TIME_FORMATS = (
    "%H:%M:%S",
    "%H:%M",
    "%I:%M:%S %p",
    "%I:%M %p",
    "%I:%M%p",
)


class UnparseableTemporal(ValueError):
    def __init__(self, raw: str) -> None:
        super().__init__(f"Could not parse date/time: '{raw}'")
        self.raw = raw


def _strptime(text: str, fmt: str) -> datetime | None:
    try:
        return datetime.strptime(text, fmt)
    except ValueError:
        return None


def _first_match(text: str, formats: Sequence[str]) -> datetime | None:
    for fmt in formats:
        parsed = _strptime(text, fmt)
        if parsed is not None:
            return parsed
    return None


def _zoned(text: str) -> Temporal | None:
    # %z accepts both "Z" and "+HH:MM"; the wall clock is kept as written.
    parsed = _first_match(text, ZONED_FORMATS)
    if parsed is None:
        return None
    return parsed.date(), parsed.time()


def _combined(formats: Sequence[str], upper: bool = False) -> Attempt:
    def attempt(text: str) -> Temporal | None:
        parsed = _first_match(text.upper() if upper else text, formats)
        if parsed is None:
            return None
        return parsed.date(), parsed.time()

    return attempt


def _date_only(text: str) -> Temporal | None:
    parsed = _first_match(text, DATE_ONLY_FORMATS)
    if parsed is None:
        return None
    return parsed.date(), None


ATTEMPTS: tuple[Attempt, ...] = (
    _zoned,
    _combined(NAIVE_T_FORMATS),
    _combined(SPACED_FORMATS),
    _combined(MERIDIEM_FORMATS, upper=True),
    _date_only,
)


def parse_temporal(raw: str) -> Temporal:
    """Parse ``raw`` into a date and, unless it is date-only, a wall-clock time.

    Raises:
        UnparseableTemporal: when none of the known formats fits.
    """
    text = str(raw or "").strip()
    if text:
        for attempt in ATTEMPTS:
            result = attempt(text)
            if result is not None:
                return result
    raise UnparseableTemporal(str(raw))


def parse_date(raw: str) -> date:
    parsed = _first_match(str(raw or "").strip(), COLUMN_DATE_FORMATS)
    if parsed is None:
        raise UnparseableTemporal(str(raw))
    return parsed.date()


def parse_time(raw: str) -> time:
    parsed = _first_match(str(raw or "").strip().upper(), COLUMN_TIME_FORMATS)
    if parsed is None:
        raise UnparseableTemporal(str(raw))
    return parsed.time()
