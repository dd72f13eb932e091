from __future__ import annotations

import errno
import os
import threading
from pathlib import Path
from typing import Any, Mapping

import yaml

from calsync.models import AppConfig


DEFAULT_CONFIG_PATH = "calsync.yaml"

ENV_OVERRIDES = {
    "CODA_API_TOKEN": ("coda", "api_token"),
    "GOOGLE_CREDENTIALS_PATH": ("google", "credentials_path"),
    "GOOGLE_TOKEN_CACHE_PATH": ("google", "token_path"),
    "CALSYNC_TIMEZONE": ("sync", "timezone"),
}


def resolve_config_path(explicit: str | None = None, environ: Mapping[str, str] | None = None) -> Path:
    environ = os.environ if environ is None else environ
    return Path(explicit or environ.get("CALSYNC_CONFIG") or DEFAULT_CONFIG_PATH)


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    environ = os.environ if environ is None else environ
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in data.items()}
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = str(environ.get(env_name, "")).strip()
        if not value:
            continue
        target = merged.get(section)
        if not isinstance(target, dict):
            target = {}
            merged[section] = target
        target[key] = value
    return merged


class ConfigManager:
    def __init__(self, config_path: str | os.PathLike[str]) -> None:
        self.config_path = Path(config_path)
        self._lock = threading.RLock()

    def _read(self) -> dict[str, Any]:
        if not self.config_path.exists():
            return {}
        with self.config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a mapping: {self.config_path}")
        return data

    def load(self, environ: Mapping[str, str] | None = None) -> AppConfig:
        with self._lock:
            return AppConfig.from_dict(apply_env_overrides(self._read(), environ))

    def save(self, config: AppConfig) -> None:
        with self._lock:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            config_dict = config.to_dict()
            tmp_path = self.config_path.with_suffix(self.config_path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as handle:
                yaml.safe_dump(config_dict, handle, sort_keys=False, allow_unicode=True, default_flow_style=False)
            try:
                tmp_path.replace(self.config_path)
            except OSError as exc:
                # Bind-mounted single files cannot always be replaced atomically.
                if exc.errno != errno.EBUSY:
                    raise
                with self.config_path.open("w", encoding="utf-8") as handle:
                    yaml.safe_dump(
                        config_dict, handle, sort_keys=False, allow_unicode=True, default_flow_style=False
                    )
                if tmp_path.exists():
                    tmp_path.unlink()

    def masked(self) -> dict[str, Any]:
        config = self.load().to_dict()
        if config.get("coda", {}).get("api_token"):
            config["coda"]["api_token"] = "***"
        return config
