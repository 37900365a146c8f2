"""Configuration loader for the e-paper home screen."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any

from dotenv import load_dotenv
import yaml


@dataclass(frozen=True)
class LocationConfig:
    """Where the display lives: weather coordinates and local timezone."""

    latitude: float
    longitude: float
    timezone: str


@dataclass(frozen=True)
class TransitConfig:
    """Transit API configuration."""

    stop_codes: str
    api_base: str
    timeout_seconds: int


@dataclass(frozen=True)
class WeatherConfig:
    """Weather API configuration."""

    timeout_seconds: int = 10


@dataclass(frozen=True)
class DisplayConfig:
    """Panel resolution in pixels."""

    width: int
    height: int


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    location: LocationConfig
    transit: TransitConfig
    display: DisplayConfig
    log: LoggingConfig
    weather: WeatherConfig = field(default_factory=WeatherConfig)


def _require_key(mapping: dict[str, Any], key: str, context: str) -> Any:
    if key not in mapping:
        raise ValueError(f"Missing required key '{key}' in {context} config")
    return mapping[key]


def _require_section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = _require_key(data, name, name)
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' config must be a mapping")
    return section


def load_config(path: str = "config/config.yaml") -> AppConfig:
    """Load application configuration from a YAML file.

    ``EPD_HOME_STOP_CODES`` and ``EPD_HOME_TIMEZONE`` (environment or ``.env``)
    take precedence over the file.
    """
    load_dotenv()
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ValueError(f"Config file not found: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping at the top level")

    location_section = _require_section(data, "location")
    transit_section = _require_section(data, "transit")
    display_section = _require_section(data, "display")
    logging_section = _require_section(data, "logging")

    location = LocationConfig(
        latitude=float(_require_key(location_section, "latitude", "location")),
        longitude=float(_require_key(location_section, "longitude", "location")),
        timezone=os.environ.get("EPD_HOME_TIMEZONE")
        or _require_key(location_section, "timezone", "location"),
    )

    stop_codes = os.environ.get("EPD_HOME_STOP_CODES") or _require_key(
        transit_section, "stop_codes", "transit"
    )
    if isinstance(stop_codes, (list, tuple)):
        stop_codes = ",".join(str(code) for code in stop_codes)

    transit = TransitConfig(
        stop_codes=str(stop_codes),
        api_base=transit_section.get("api_base", "https://next-at-api.heaps.dev"),
        timeout_seconds=transit_section.get("timeout_seconds", 10),
    )

    weather_section = data.get("weather") or {}
    if not isinstance(weather_section, dict):
        raise ValueError("'weather' config must be a mapping")
    weather = WeatherConfig(timeout_seconds=weather_section.get("timeout_seconds", 10))

    display = DisplayConfig(
        width=_require_key(display_section, "width", "display"),
        height=_require_key(display_section, "height", "display"),
    )

    logging = LoggingConfig(
        level=_require_key(logging_section, "level", "logging"),
    )

    return AppConfig(
        location=location, transit=transit, display=display, log=logging, weather=weather
    )
