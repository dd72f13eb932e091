from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import requests

from calsync.models import CanonicalEvent, CodaConfig
from calsync.record_mapper import DEFAULT_DURATION, SourceRow, map_coda_row, map_rows


logger = logging.getLogger(__name__)


class CodaApiError(RuntimeError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Coda API error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


@dataclass
class CodaTable:
    id: str
    name: str
    table_type: str


class CodaClient:
    def __init__(self, config: CodaConfig) -> None:
        self.config = config

    def is_configured(self) -> bool:
        return bool(self.config.api_token)

    def _require_token(self) -> None:
        if not self.is_configured():
            raise RuntimeError(
                "CODA_API_TOKEN environment variable not set. "
                "Get your token from https://coda.io/account"
            )

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        self._require_token()
        response = requests.get(
            f"{self.config.api_base}{path}",
            headers={"Authorization": f"Bearer {self.config.api_token}"},
            params=params,
            timeout=self.config.timeout_seconds,
        )
        if not response.ok:
            raise CodaApiError(response.status_code, response.text[:500])
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("Coda response root must be an object.")
        return payload

    def list_tables(self, doc_id: str) -> list[CodaTable]:
        payload = self._get(f"/docs/{doc_id}/tables")
        tables: list[CodaTable] = []
        for item in payload.get("items", []):
            tables.append(
                CodaTable(
                    id=str(item.get("id", "")),
                    name=str(item.get("name", "")),
                    table_type=str(item.get("tableType", "")),
                )
            )
        return tables

    def fetch_rows(self, doc_id: str, table_id: str) -> list[SourceRow]:
        rows: list[SourceRow] = []
        seen_tokens: set[str] = set()
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {"useColumnNames": "true", "limit": self.config.page_size}
            if page_token:
                params["pageToken"] = page_token
            payload = self._get(f"/docs/{doc_id}/tables/{table_id}/rows", params=params)
            for item in payload.get("items", []):
                values = item.get("values")
                if isinstance(values, dict):
                    rows.append(SourceRow(values))
            page_token = payload.get("nextPageToken") or None
            if page_token is None:
                return rows
            if page_token in seen_tokens:
                raise RuntimeError(f"Coda listing repeated page token {page_token!r}")
            seen_tokens.add(page_token)

    def fetch_events(
        self, doc_id: str, table_id: str, default_duration: timedelta = DEFAULT_DURATION
    ) -> tuple[list[CanonicalEvent], list[str]]:
        rows = self.fetch_rows(doc_id, table_id)
        events, errors = map_rows(rows, lambda row: map_coda_row(row, default_duration))
        logger.info("Fetched %d events from Coda (%d rows skipped)", len(events), len(errors))
        return events, errors
