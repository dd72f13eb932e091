from __future__ import annotations

import json
import logging
from datetime import datetime, time, timedelta
from typing import Any, Callable, Iterable, Mapping, Union

from calsync.models import DEFAULT_DURATION_MINUTES, CanonicalEvent
from calsync.temporal import UnparseableTemporal, parse_date, parse_temporal, parse_time


logger = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(minutes=DEFAULT_DURATION_MINUTES)
DESCRIPTION_FIELDS = ("kenticoUrl", "artists", "works")
TRUTHY_FLAGS = {"yes", "true"}

Value = Union[str, int, float, bool, None]
Mapper = Callable[["SourceRow"], CanonicalEvent]


class RowError(ValueError):
    pass


class MissingField(RowError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Missing or empty value for '{name}'")
        self.name = name


class InvalidTemporal(RowError):
    def __init__(self, field: str, raw: str) -> None:
        super().__init__(f"Invalid {field}: '{raw}'")
        self.field = field
        self.raw = raw


def _render(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, ensure_ascii=False).strip('"')


class SourceRow:
    """Read-only view over one source row.

    Blank values read as absent, so callers only ever see non-empty text.
    """

    def __init__(self, values: Mapping[str, Value]) -> None:
        self._values = dict(values)

    def get(self, name: str) -> str | None:
        text = _render(self._values.get(name))
        if text is None:
            return None
        text = text.strip()
        return text or None

    def require(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise MissingField(name)
        return value

    def __repr__(self) -> str:
        return f"SourceRow({self._values!r})"


def shift_time(start: time, duration: timedelta) -> time:
    # Only the time of day is kept; a result past midnight wraps around.
    return (datetime.combine(datetime.min.date(), start) + duration).time()


def build_description(row: SourceRow, fields: Iterable[str] = DESCRIPTION_FIELDS) -> str | None:
    parts = [value for value in (row.get(name) for name in fields) if value is not None]
    if not parts:
        return None
    return "\n".join(parts)


def _parse_column(row: SourceRow, name: str, parser: Callable[[str], Any]) -> Any:
    raw = row.get(name)
    if raw is None:
        return None
    try:
        return parser(raw)
    except UnparseableTemporal as exc:
        raise InvalidTemporal(name, raw) from exc


def map_csv_row(row: SourceRow, default_duration: timedelta = DEFAULT_DURATION) -> CanonicalEvent:
    title = row.require("title")
    row.require("start_date")
    start_date = _parse_column(row, "start_date", parse_date)
    end_date = _parse_column(row, "end_date", parse_date) or start_date
    start_time = _parse_column(row, "start_time", parse_time)
    end_time = _parse_column(row, "end_time", parse_time)

    if start_time is None:
        end_time = None
    elif end_time is None:
        end_time = shift_time(start_time, default_duration)
    if end_date < start_date:
        raise InvalidTemporal("end_date", row.require("end_date"))

    return CanonicalEvent(
        title=title,
        description=row.get("description"),
        location=row.get("location"),
        start_date=start_date,
        start_time=start_time,
        end_date=end_date,
        end_time=end_time,
    )


def map_coda_row(row: SourceRow, default_duration: timedelta = DEFAULT_DURATION) -> CanonicalEvent:
    title = row.require("Display")
    performance_date = row.require("performanceDate")
    try:
        start_date, start_time = parse_temporal(performance_date)
    except UnparseableTemporal as exc:
        raise InvalidTemporal("performanceDate", performance_date) from exc

    end_time = shift_time(start_time, default_duration) if start_time is not None else None
    purchased = (row.get("Purchased") or "").lower() in TRUTHY_FLAGS

    return CanonicalEvent(
        title=title,
        description=build_description(row),
        location=row.get("venue"),
        organization=row.get("Organization"),
        purchased=purchased,
        start_date=start_date,
        start_time=start_time,
        end_date=start_date,
        end_time=end_time,
    )


def map_rows(
    rows: Iterable[SourceRow], mapper: Mapper
) -> tuple[list[CanonicalEvent], list[str]]:
    events: list[CanonicalEvent] = []
    errors: list[str] = []
    for index, row in enumerate(rows, start=1):
        try:
            events.append(mapper(row))
        except RowError as exc:
            message = f"row {index}: {exc}"
            logger.warning("Skipping %s", message)
            errors.append(message)
    return events, errors
