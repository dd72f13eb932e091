from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from calsync.matcher import FetchPage, Window
from calsync.models import CalendarInfo, GoogleConfig


logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]


def _rfc3339(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


class FileTokenStore:
    """Persists the OAuth token as authorized-user JSON."""

    def __init__(self, token_path: str | os.PathLike[str]) -> None:
        self.token_path = Path(token_path)

    def load(self) -> Credentials | None:
        if not self.token_path.exists():
            return None
        return Credentials.from_authorized_user_file(str(self.token_path), SCOPES)

    def save(self, credentials: Credentials) -> None:
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.token_path.with_suffix(self.token_path.suffix + ".tmp")
        tmp_path.write_text(credentials.to_json(), encoding="utf-8")
        tmp_path.replace(self.token_path)


class GoogleCalendarService:
    def __init__(
        self,
        config: GoogleConfig,
        token_store: FileTokenStore | None = None,
        service: Any = None,
    ) -> None:
        self.config = config
        self.token_store = token_store or FileTokenStore(config.token_path)
        self._service: Any = service

    def authenticate(self) -> Credentials:
        credentials = self.token_store.load()
        if credentials is not None and credentials.valid:
            return credentials
        if credentials is not None and credentials.expired and credentials.refresh_token:
            logger.info("Refreshing expired Google token")
            credentials.refresh(Request())
        else:
            credentials_path = Path(self.config.credentials_path)
            if not credentials_path.exists():
                raise FileNotFoundError(
                    f"Failed to read credentials from {credentials_path}. "
                    "Download OAuth 2.0 credentials from Google Cloud Console and save as "
                    f"'{credentials_path.name}'"
                )
            flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
            credentials = flow.run_local_server(port=0)
        self.token_store.save(credentials)
        return credentials

    def _connect(self) -> Any:
        if self._service is None:
            credentials = self.authenticate()
            self._service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        return self._service

    def list_calendars(self) -> list[CalendarInfo]:
        service = self._connect()
        calendars: list[CalendarInfo] = []
        page_token: Optional[str] = None
        while True:
            response = service.calendarList().list(pageToken=page_token).execute()
            for item in response.get("items", []):
                calendars.append(
                    CalendarInfo(
                        calendar_id=str(item.get("id", "")),
                        name=str(item.get("summary") or "(No name)"),
                        primary=bool(item.get("primary", False)),
                    )
                )
            page_token = response.get("nextPageToken")
            if not page_token:
                return calendars

    def create_event(self, calendar_id: str, wire_event: dict[str, Any]) -> dict[str, Any]:
        service = self._connect()
        created = service.events().insert(calendarId=calendar_id, body=wire_event).execute()
        logger.info("Created event: %s", wire_event.get("summary", ""))
        return created

    def fetch_page(
        self, calendar_id: str, window: Window, page_token: str | None = None
    ) -> tuple[list[dict[str, Any]], str | None]:
        service = self._connect()
        time_min, time_max = window
        response = (
            service.events()
            .list(
                calendarId=calendar_id,
                timeMin=_rfc3339(time_min),
                timeMax=_rfc3339(time_max),
                singleEvents=True,
                maxResults=self.config.list_page_size,
                pageToken=page_token,
            )
            .execute()
        )
        return list(response.get("items", [])), response.get("nextPageToken") or None

    def page_fetcher(self, calendar_id: str) -> FetchPage:
        def fetch(window: Window, page_token: Optional[str]) -> tuple[list[dict[str, Any]], Optional[str]]:
            return self.fetch_page(calendar_id, window, page_token)

        return fetch

    def delete_event(self, calendar_id: str, event_id: str) -> None:
        service = self._connect()
        service.events().delete(calendarId=calendar_id, eventId=event_id).execute()
        logger.info("Deleted event: %s", event_id)
