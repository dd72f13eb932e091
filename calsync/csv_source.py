from __future__ import annotations

import csv
import logging
import os
from datetime import timedelta
from pathlib import Path

from calsync.models import CanonicalEvent
from calsync.record_mapper import DEFAULT_DURATION, SourceRow, map_csv_row, map_rows


logger = logging.getLogger(__name__)


def read_rows(path: str | os.PathLike[str]) -> list[SourceRow]:
    csv_path = Path(path)
    with csv_path.open("r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        return [SourceRow({str(key).strip(): value for key, value in record.items() if key}) for record in reader]


def read_events(
    path: str | os.PathLike[str], default_duration: timedelta = DEFAULT_DURATION
) -> tuple[list[CanonicalEvent], list[str]]:
    rows = read_rows(path)
    events, errors = map_rows(rows, lambda row: map_csv_row(row, default_duration))
    logger.info("Parsed %d events from %s (%d rows skipped)", len(events), path, len(errors))
    return events, errors
