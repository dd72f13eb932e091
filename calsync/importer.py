from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Sequence

from calsync.event_filter import filter_events
from calsync.google_calendar import GoogleCalendarService
from calsync.matcher import find_matching_events
from calsync.models import AppConfig, CanonicalEvent, ImportResult, MatchPair
from calsync.projector import load_zone, project_event


logger = logging.getLogger(__name__)

ServiceFactory = Callable[[AppConfig], GoogleCalendarService]


def _default_service_factory(config: AppConfig) -> GoogleCalendarService:
    return GoogleCalendarService(config.google)


def _elapsed_ms(started_at: datetime) -> int:
    return int((datetime.now(timezone.utc) - started_at).total_seconds() * 1000)


@dataclass
class ImportOutcome:
    result: ImportResult
    events: list[CanonicalEvent] = field(default_factory=list)
    matches: list[MatchPair] = field(default_factory=list)


class ImportRunner:
    """Runs one import or delete pass over already-mapped events.

    The calendar service is only built when a remote call is needed, so a
    dry run of the create path never authenticates.
    """

    def __init__(self, config: AppConfig, service_factory: ServiceFactory | None = None) -> None:
        self.config = config
        self._service_factory = service_factory or _default_service_factory
        self._service: GoogleCalendarService | None = None

    @property
    def service(self) -> GoogleCalendarService:
        if self._service is None:
            self._service = self._service_factory(self.config)
        return self._service

    def run(
        self,
        events: Sequence[CanonicalEvent],
        *,
        row_errors: Sequence[str] = (),
        calendar_id: str | None = None,
        start_bound: date | None = None,
        end_bound: date | None = None,
        purchased_only: bool = False,
        delete: bool = False,
        dry_run: bool = False,
    ) -> ImportOutcome:
        started_at = datetime.now(timezone.utc)
        calendar_id = calendar_id or self.config.google.calendar_id
        zone_name = self.config.sync.timezone
        load_zone(zone_name)

        selected = filter_events(events, start_bound, end_bound, purchased_only)
        if start_bound is not None or end_bound is not None or purchased_only:
            logger.info("After filtering: %d events", len(selected))

        result = ImportResult(
            status="success",
            message="",
            events_read=len(events),
            events_selected=len(selected),
            dry_run=dry_run,
            row_errors=list(row_errors),
        )
        outcome = ImportOutcome(result=result, events=selected)

        if delete:
            fetch_page = self.service.page_fetcher(calendar_id)
            outcome.matches = find_matching_events(selected, fetch_page, zone_name)
            result.matched = len(outcome.matches)
            if dry_run:
                result.message = f"{result.matched} events would be deleted"
            else:
                for pair in outcome.matches:
                    try:
                        self.service.delete_event(calendar_id, pair.remote.id)
                    except Exception:
                        logger.error("Failed to delete event: %s", pair.remote.id)
                        raise
                    result.deleted += 1
                result.message = f"Successfully deleted {result.deleted} events"
        elif dry_run:
            logger.info("Dry run mode - not creating events")
            result.message = f"{len(selected)} events would be created"
        else:
            for event in selected:
                try:
                    self.service.create_event(calendar_id, project_event(event, zone_name))
                except Exception:
                    logger.error("Failed to create event: %s", event.title)
                    raise
                result.created += 1
            result.message = f"Successfully created {result.created} events"

        result.duration_ms = _elapsed_ms(started_at)
        logger.info(result.message)
        return outcome
