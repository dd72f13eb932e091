from __future__ import annotations

from collections import Counter
from typing import Iterable, Sequence

from calsync.models import CanonicalEvent, MatchPair


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max(0, max_len - 3)] + "..."


def _time_cell(event: CanonicalEvent, start: bool) -> str:
    value = event.start_time if start else event.end_time
    return value.strftime("%H:%M") if value is not None else "all-day"


def format_events(events: Sequence[CanonicalEvent]) -> str:
    lines = [
        "",
        f"{'summary':<40} {'start.date':<12} {'start':<8} {'end.date':<12} {'end':<8} {'location':<25}",
        "-" * 105,
    ]
    for event in events:
        lines.append(
            f"{truncate(event.title, 38):<40} "
            f"{event.start_date.isoformat():<12} "
            f"{_time_cell(event, True):<8} "
            f"{event.end_date.isoformat():<12} "
            f"{_time_cell(event, False):<8} "
            f"{truncate(event.location or '', 23):<25}"
        )
        if event.description:
            preview = truncate(event.description.replace("\n", " | "), 100)
            lines.append(f"  description: {preview}")
    return "\n".join(lines)


def format_delete_preview(matches: Sequence[MatchPair]) -> str:
    lines = [
        "",
        f"{len(matches)} events would be DELETED:",
        "=" * 80,
        f"{'TITLE':<40} {'DATE':<12} {'GCAL LOCATION':<30}",
        "-" * 80,
    ]
    for pair in matches:
        remote = pair.remote
        lines.append(
            f"{truncate(remote.title, 38):<40} "
            f"{remote.date.isoformat():<12} "
            f"{truncate(remote.location or '', 28):<30}"
        )
    return "\n".join(lines)


def _grouped_counts(events: Iterable[CanonicalEvent], key_name: str, fallback: str) -> list[tuple[str, int, int]]:
    totals: Counter[str] = Counter()
    purchased: Counter[str] = Counter()
    for event in events:
        key = getattr(event, key_name) or fallback
        totals[key] += 1
        if event.purchased:
            purchased[key] += 1
    # Counter.most_common keeps first-seen order among equal totals.
    return [(key, total, purchased[key]) for key, total in totals.most_common()]


def _stats_section(title: str, label: str, rows: list[tuple[str, int, int]]) -> list[str]:
    lines = ["", f"{title}:", f"{'Total':<6} {'Purch':<6} {label}", "-" * 50]
    for key, total, bought in rows:
        lines.append(f"  {total:>4} {bought:>6}  {key}")
    return lines


def format_stats(events: Sequence[CanonicalEvent]) -> str:
    total_purchased = sum(1 for event in events if event.purchased)
    lines = [
        "",
        "=" * 60,
        "STATISTICS",
        "=" * 60,
        "",
        f"Total Events: {len(events)} ({total_purchased} purchased)",
    ]
    lines += _stats_section("Events by Venue", "Venue", _grouped_counts(events, "location", "(No venue)"))
    lines += _stats_section(
        "Events by Organization",
        "Organization",
        _grouped_counts(events, "organization", "(No organization)"),
    )
    return "\n".join(lines)
