from __future__ import annotations

from datetime import date, time
from typing import Iterable

from calsync.models import CanonicalEvent


def _sort_key(event: CanonicalEvent) -> tuple[date, bool, time]:
    # All-day events (no start time) come before timed ones on the same date.
    has_time = event.start_time is not None
    return event.start_date, has_time, event.start_time or time.min


def keep_event(
    event: CanonicalEvent,
    start_bound: date | None = None,
    end_bound: date | None = None,
    purchased_only: bool = False,
) -> bool:
    if start_bound is not None and event.start_date < start_bound:
        return False
    if end_bound is not None and event.start_date > end_bound:
        return False
    if purchased_only and not event.purchased:
        return False
    return True


def filter_events(
    events: Iterable[CanonicalEvent],
    start_bound: date | None = None,
    end_bound: date | None = None,
    purchased_only: bool = False,
) -> list[CanonicalEvent]:
    """Keep events whose start date falls within the inclusive bounds, sorted by start."""
    kept = [event for event in events if keep_event(event, start_bound, end_bound, purchased_only)]
    return sorted(kept, key=_sort_key)
