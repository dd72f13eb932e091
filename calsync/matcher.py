from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from calsync.models import CanonicalEvent, MatchPair, RemoteEventRecord
from calsync.projector import load_zone


logger = logging.getLogger(__name__)

Window = tuple[datetime, datetime]
FetchPage = Callable[[Window, Optional[str]], tuple[list[dict[str, Any]], Optional[str]]]


class PaginationStalled(RuntimeError):
    pass


def event_window(events: Sequence[CanonicalEvent], zone_name: str) -> Window | None:
    """Half-open UTC window covering every local start date in the reference zone.

    Bounds are local midnights, so an evening event on the last date is still
    inside the window even when its instant falls on the next UTC day.
    """
    if not events:
        return None
    zone = load_zone(zone_name)
    min_date = min(event.start_date for event in events)
    max_date = max(event.start_date for event in events)
    start = datetime.combine(min_date, time.min, tzinfo=zone)
    end = datetime.combine(max_date + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def fetch_remote_events(fetch_page: FetchPage, window: Window) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    seen_tokens: set[str] = set()
    page_token: str | None = None
    while True:
        page_items, next_token = fetch_page(window, page_token)
        items.extend(page_items or [])
        if not next_token:
            return items
        if next_token in seen_tokens:
            raise PaginationStalled(f"Remote listing repeated page token {next_token!r}")
        seen_tokens.add(next_token)
        page_token = next_token


def _parse_wire_date(boundary: dict[str, Any]) -> date | None:
    raw_date = boundary.get("date")
    if raw_date:
        return date.fromisoformat(str(raw_date))
    raw_datetime = boundary.get("dateTime")
    if raw_datetime:
        text = str(raw_datetime).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # The date as written in the returned offset, not converted.
        return datetime.fromisoformat(text).date()
    return None


def remote_record_from_wire(item: dict[str, Any]) -> RemoteEventRecord | None:
    event_id = str(item.get("id") or "").strip()
    if not event_id:
        return None
    try:
        event_date = _parse_wire_date(item.get("start") or {})
    except ValueError:
        logger.warning("Ignoring remote event %s with unreadable start: %r", event_id, item.get("start"))
        return None
    if event_date is None:
        return None
    return RemoteEventRecord(
        id=event_id,
        title=str(item.get("summary") or ""),
        date=event_date,
        location=item.get("location") or None,
    )


def match_events(
    local_events: Iterable[CanonicalEvent], remote_records: Sequence[RemoteEventRecord]
) -> list[MatchPair]:
    """Pair every local event with every remote record of the same title and date.

    Titles compare case-insensitively. A local event may pair with several
    remote records; all of them are returned.
    """
    matches: list[MatchPair] = []
    for local in local_events:
        title_key = local.title.lower()
        for remote in remote_records:
            if remote.title.lower() == title_key and remote.date == local.start_date:
                matches.append(MatchPair(local=local, remote=remote))
    return matches


def find_matching_events(
    local_events: Sequence[CanonicalEvent], fetch_page: FetchPage, zone_name: str
) -> list[MatchPair]:
    window = event_window(local_events, zone_name)
    if window is None:
        return []
    items = fetch_remote_events(fetch_page, window)
    logger.info("Found %d events in Google Calendar within date range", len(items))
    records = [record for record in (remote_record_from_wire(item) for item in items) if record]
    return match_events(local_events, records)
