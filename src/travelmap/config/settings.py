"""
Application settings (Pydantic).

Settings are loaded from `src/travelmap/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `TRAVELMAP_STORE_PATH`, `TRAVELMAP_LOG_LEVEL`)
- an external YAML file via `TRAVELMAP_CONFIG_PATH`

Design rule:
- Tuning knobs live in YAML, not hard-coded in business logic.
- The continent table and the 195-country total are reference data, not settings.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from travelmap.core.env import load_dotenv_if_present
from travelmap.domain.models import PersonaRule
from travelmap.stats.wrapped import DEFAULT_PERSONAS
from travelmap.trips.segment import DEFAULT_TRIP_GAP_DAYS


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `travelmap.config`."""
    text = resources.files("travelmap.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "TravelMap"
    timezone: str = "UTC"
    log_level: str = "INFO"


class StoreSettings(BaseModel):
    path: str = "data/travel_map.json"


class StatsSettings(BaseModel):
    trip_gap_days: int = Field(DEFAULT_TRIP_GAP_DAYS, ge=0)
    curve_steps: int = Field(30, ge=1, le=500)


class WrappedSettings(BaseModel):
    personas: list[PersonaRule] = Field(default_factory=lambda: list(DEFAULT_PERSONAS))


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    stats: StatsSettings = Field(default_factory=StatsSettings)
    wrapped: WrappedSettings = Field(default_factory=WrappedSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    store_path = os.getenv("TRAVELMAP_STORE_PATH")
    if store_path:
        data.setdefault("store", {})["path"] = store_path

    log_level = os.getenv("TRAVELMAP_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    timezone = os.getenv("TRAVELMAP_TIMEZONE")
    if timezone:
        data.setdefault("app", {})["timezone"] = timezone

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("TRAVELMAP_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
