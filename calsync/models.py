from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, time, timedelta
from typing import Any


DEFAULT_TIMEZONE = "America/Los_Angeles"
DEFAULT_DURATION_MINUTES = 150
MAX_GOOGLE_PAGE_SIZE = 2500
MAX_CODA_PAGE_SIZE = 500

END_OF_DAY = time(23, 59, 59)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


@dataclass
class GoogleConfig:
    credentials_path: str = "credentials.json"
    token_path: str = "token_cache.json"
    calendar_id: str = "primary"
    list_page_size: int = MAX_GOOGLE_PAGE_SIZE

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GoogleConfig":
        data = data or {}
        return cls(
            credentials_path=str(data.get("credentials_path", "credentials.json")).strip()
            or "credentials.json",
            token_path=str(data.get("token_path", "token_cache.json")).strip() or "token_cache.json",
            calendar_id=str(data.get("calendar_id", "primary")).strip() or "primary",
            list_page_size=_clamp(
                int(data.get("list_page_size", MAX_GOOGLE_PAGE_SIZE)), 1, MAX_GOOGLE_PAGE_SIZE
            ),
        )


@dataclass
class CodaConfig:
    api_base: str = "https://coda.io/apis/v1"
    api_token: str = ""
    timeout_seconds: int = 30
    page_size: int = 200

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CodaConfig":
        data = data or {}
        return cls(
            api_base=str(data.get("api_base", "https://coda.io/apis/v1")).strip().rstrip("/")
            or "https://coda.io/apis/v1",
            api_token=str(data.get("api_token", "") or "").strip(),
            timeout_seconds=max(1, int(data.get("timeout_seconds", 30))),
            page_size=_clamp(int(data.get("page_size", 200)), 1, MAX_CODA_PAGE_SIZE),
        )


@dataclass
class SyncConfig:
    timezone: str = DEFAULT_TIMEZONE
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SyncConfig":
        data = data or {}
        return cls(
            timezone=str(data.get("timezone", DEFAULT_TIMEZONE)).strip() or DEFAULT_TIMEZONE,
            default_duration_minutes=max(
                1, int(data.get("default_duration_minutes", DEFAULT_DURATION_MINUTES))
            ),
        )

    @property
    def default_duration(self) -> timedelta:
        return timedelta(minutes=self.default_duration_minutes)


@dataclass
class AppConfig:
    google: GoogleConfig = field(default_factory=GoogleConfig)
    coda: CodaConfig = field(default_factory=CodaConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AppConfig":
        data = data or {}
        return cls(
            google=GoogleConfig.from_dict(data.get("google")),
            coda=CodaConfig.from_dict(data.get("coda")),
            sync=SyncConfig.from_dict(data.get("sync")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def default_app_config() -> AppConfig:
    return AppConfig()


@dataclass
class CalendarInfo:
    calendar_id: str
    name: str
    primary: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CanonicalEvent:
    """A normalized source row.

    An event is all-day when it carries no times at all and timed when it
    carries both; the mappers never build one with a single time set.
    """

    title: str
    start_date: date
    end_date: date
    start_time: time | None = None
    end_time: time | None = None
    description: str | None = None
    location: str | None = None
    organization: str | None = None
    purchased: bool = False

    @property
    def is_all_day(self) -> bool:
        return self.start_time is None and self.end_time is None

    @property
    def start_datetime(self) -> datetime:
        return datetime.combine(self.start_date, self.start_time or time.min)

    @property
    def end_datetime(self) -> datetime:
        return datetime.combine(self.end_date, self.end_time or END_OF_DAY)

    def with_updates(self, **kwargs: Any) -> "CanonicalEvent":
        return replace(self, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["start_date"] = self.start_date.isoformat()
        payload["end_date"] = self.end_date.isoformat()
        payload["start_time"] = self.start_time.isoformat() if self.start_time else None
        payload["end_time"] = self.end_time.isoformat() if self.end_time else None
        return payload

    def __str__(self) -> str:
        if self.is_all_day:
            return f"[ALL DAY] {self.start_date} - {self.end_date}: {self.title}"
        start = self.start_time.isoformat() if self.start_time else ""
        end = self.end_time.isoformat() if self.end_time else ""
        return f"{self.start_date} {start} - {self.end_date} {end}: {self.title}"


@dataclass(frozen=True)
class RemoteEventRecord:
    id: str
    title: str
    date: date
    location: str | None = None


@dataclass(frozen=True)
class MatchPair:
    local: CanonicalEvent
    remote: RemoteEventRecord


@dataclass
class ImportResult:
    status: str
    message: str
    events_read: int = 0
    events_selected: int = 0
    created: int = 0
    matched: int = 0
    deleted: int = 0
    dry_run: bool = False
    duration_ms: int = 0
    row_errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
