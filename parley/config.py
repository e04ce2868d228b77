"""Configuration management for the Parley service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_datastore_path

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the HTTP service."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    data_path: Optional[Path] = None
    persist: bool = True
    log_level: str = "INFO"

    @staticmethod
    def from_dict(data: Dict[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""
        unknown = set(data.keys()) - {"host", "port", "data_path", "persist", "log_level"}
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        data_path: Optional[Path] = None
        raw_path = data.get("data_path")
        if raw_path:
            candidate = Path(str(raw_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            data_path = candidate.resolve(strict=False)

        return Settings(
            host=str(data.get("host", DEFAULT_HOST)),
            port=int(data.get("port", DEFAULT_PORT)),
            data_path=data_path,
            persist=bool(data.get("persist", True)),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )

    def resolved_data_path(self) -> Optional[Path]:
        """Path of the JSON store, or ``None`` when persistence is disabled."""
        if not self.persist:
            return None
        if self.data_path is not None:
            return self.data_path
        return resolve_datastore_path(None)


def _env_flag(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_settings_file(config_path: Path) -> Settings:
    """Load settings from a YAML file."""
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")
    return Settings.from_dict(raw, base_path=config_path.parent)


def apply_environment(settings: Settings, environ: Mapping[str, str]) -> Settings:
    """Overlay ``PARLEY_*`` environment variables on top of ``settings``."""
    overrides: Dict[str, object] = {}
    if environ.get("PARLEY_HOST"):
        overrides["host"] = environ["PARLEY_HOST"].strip()
    if environ.get("PARLEY_PORT"):
        overrides["port"] = int(environ["PARLEY_PORT"])
    if environ.get("PARLEY_DATA_PATH"):
        overrides["data_path"] = resolve_datastore_path(environ["PARLEY_DATA_PATH"])
    if "PARLEY_PERSIST" in environ:
        overrides["persist"] = _env_flag(environ.get("PARLEY_PERSIST"))
    if environ.get("PARLEY_LOG_LEVEL"):
        overrides["log_level"] = environ["PARLEY_LOG_LEVEL"].strip().upper()
    return replace(settings, **overrides)


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    env = os.environ if environ is None else environ
    if config_path is None and env.get("PARLEY_CONFIG"):
        config_path = Path(env["PARLEY_CONFIG"]).expanduser()

    settings = load_settings_file(config_path) if config_path is not None else Settings()
    return apply_environment(settings, env)


__all__ = ["Settings", "apply_environment", "load_settings", "load_settings_file"]
