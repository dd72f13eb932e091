from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import tz

from calsync.models import CanonicalEvent


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {name!r}") from exc


def resolve_local_datetime(naive: datetime, zone: tzinfo) -> datetime:
    """Attach ``zone`` to a wall-clock datetime.

    A wall clock that occurs twice (fall-back) resolves to the later instant.
    One that never occurs (spring-forward gap) is shifted forward by the gap.
    """
    local = naive.replace(tzinfo=zone, fold=0)
    if not tz.datetime_exists(local):
        return tz.resolve_imaginary(local)
    if tz.datetime_ambiguous(local):
        return local.replace(fold=1)
    return local


def _rfc3339_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


def _timed_boundary(naive: datetime, zone: tzinfo, zone_name: str) -> dict[str, str]:
    resolved = resolve_local_datetime(naive, zone)
    return {"dateTime": _rfc3339_utc(resolved), "timeZone": zone_name}


def project_event(event: CanonicalEvent, zone_name: str) -> dict[str, Any]:
    """Build the calendar wire payload for ``event``.

    All-day events get date-only boundaries with an exclusive end date; timed
    events have their wall clock read in ``zone_name``.
    """
    wire: dict[str, Any] = {"summary": event.title}
    if event.description is not None:
        wire["description"] = event.description
    if event.location is not None:
        wire["location"] = event.location

    if event.is_all_day:
        wire["start"] = {"date": event.start_date.isoformat()}
        wire["end"] = {"date": (event.end_date + timedelta(days=1)).isoformat()}
        return wire

    zone = load_zone(zone_name)
    wire["start"] = _timed_boundary(event.start_datetime, zone, zone_name)
    wire["end"] = _timed_boundary(event.end_datetime, zone, zone_name)
    return wire
