"""Open-Meteo forecast client."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any

from epd_home.data.http import get_json
from epd_home.errors import DataFormatError

# https://open-meteo.com/en/docs
OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
SAMPLE_FIELDS = "temperature_2m,is_day,weather_code,wind_gusts_10m"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawSample:
    """One current or hourly reading as reported by Open-Meteo (times are UTC)."""

    time: str
    weather_code: int
    temperature: float
    is_day: bool
    wind_gusts: float


@dataclass(frozen=True)
class WeatherReport:
    """Current conditions, hourly forecast and sun events for two days."""

    current: RawSample
    hourly: list[RawSample]
    sunrises: list[str]
    sunsets: list[str]


class WeatherClient:
    """Thin wrapper around the Open-Meteo forecast endpoint using requests."""

    def __init__(self, timeout_seconds: float = 10) -> None:
        self._timeout_seconds = timeout_seconds

    def fetch(self, latitude: float, longitude: float) -> WeatherReport:
        """Fetch current and forecast weather for a coordinate."""
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": SAMPLE_FIELDS,
            "hourly": SAMPLE_FIELDS,
            "daily": "sunrise,sunset",
            "forecast_days": 2,
            "timezone": "UTC",
        }
        payload = get_json(
            OPEN_METEO_URL,
            service="Weather",
            params=params,
            timeout_seconds=self._timeout_seconds,
        )
        report = parse_report(payload)
        logger.debug("Fetched %d hourly weather samples", len(report.hourly))
        return report

    async def async_fetch(self, latitude: float, longitude: float) -> WeatherReport:
        """Run :meth:`fetch` on a worker thread so it can overlap other fetches."""
        return await asyncio.to_thread(self.fetch, latitude, longitude)


def parse_report(payload: dict[str, Any]) -> WeatherReport:
    """Convert an Open-Meteo JSON payload into a :class:`WeatherReport`."""
    try:
        current = payload["current"]
        hourly = payload["hourly"]
        daily = payload["daily"]

        current_sample = RawSample(
            time=current["time"],
            weather_code=int(current["weather_code"]),
            temperature=float(current["temperature_2m"]),
            is_day=current["is_day"] == 1,
            wind_gusts=float(current["wind_gusts_10m"]),
        )

        columns = zip(
            hourly["time"],
            hourly["weather_code"],
            hourly["temperature_2m"],
            hourly["is_day"],
            hourly["wind_gusts_10m"],
        )
        hourly_samples = [
            RawSample(
                time=time,
                weather_code=int(code),
                temperature=float(temperature),
                is_day=is_day == 1,
                wind_gusts=float(gusts),
            )
            for time, code, temperature, is_day, gusts in columns
        ]

        return WeatherReport(
            current=current_sample,
            hourly=hourly_samples,
            sunrises=list(daily["sunrise"]),
            sunsets=list(daily["sunset"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise DataFormatError(f"Unexpected weather payload: {exc!r}") from exc


__all__ = ["RawSample", "WeatherReport", "WeatherClient", "parse_report"]
