"""Weather icon classification and forecast slot selection."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
import logging
import math
from typing import Iterable, Protocol

from epd_home.data.weather_client import RawSample, WeatherReport
from epd_home.errors import DataFormatError
from epd_home.rendering.frame_data import Icon, WeatherSample

FORECAST_ROWS = 4
FORECAST_HOURS = 2

# "Strong breeze" and above on the Beaufort scale, km/h
STRONG_GUST_KMH = 39.0

WEATHER_TIME_FORMAT = "%Y-%m-%dT%H:%M"

logger = logging.getLogger(__name__)


class WeatherSource(Protocol):
    async def async_fetch(self, latitude: float, longitude: float) -> WeatherReport: ...


def icon_for_weather(code: int, is_night: bool, gust_speed: float) -> Icon:
    """Map a WMO weather code to an icon, swapping calm-sky icons for wind in strong gusts."""
    if 0 <= code <= 1:
        icon = Icon.MOON if is_night else Icon.SUN
    elif 2 <= code <= 3 or 45 <= code <= 48:
        icon = Icon.CLOUD
    elif 51 <= code <= 57:
        icon = Icon.DRIZZLE
    elif 61 <= code <= 67 or 80 <= code <= 86:
        icon = Icon.RAIN
    elif 71 <= code <= 77:
        icon = Icon.SNOW
    elif 95 <= code <= 99:
        icon = Icon.LIGHTNING
    else:
        icon = Icon.CLOUD

    if gust_speed >= STRONG_GUST_KMH and icon in (Icon.SUN, Icon.MOON, Icon.CLOUD):
        return Icon.WIND
    return icon


def format_temperature(value: float) -> str:
    """Whole degrees, halves rounded away from zero."""
    rounded = math.floor(abs(value) + 0.5)
    return str(int(math.copysign(rounded, value)))


def parse_weather_time(value: str, tz: tzinfo) -> datetime:
    """Parse an Open-Meteo UTC timestamp (``2024-01-01T13:00``) into ``tz``."""
    try:
        parsed = datetime.strptime(value, WEATHER_TIME_FORMAT)
    except (TypeError, ValueError) as exc:
        raise DataFormatError(f"Invalid weather timestamp: {value!r}") from exc
    return parsed.replace(tzinfo=timezone.utc).astimezone(tz)


def sample_from_raw(raw: RawSample, tz: tzinfo) -> WeatherSample:
    return WeatherSample(
        time=parse_weather_time(raw.time, tz),
        icon=icon_for_weather(raw.weather_code, not raw.is_day, raw.wind_gusts),
        temperature=format_temperature(raw.temperature),
    )


def sun_events(sunrises: Iterable[str], sunsets: Iterable[str], tz: tzinfo) -> list[WeatherSample]:
    """Merge sunrise and sunset times into one timeline of marker samples."""
    events = [WeatherSample(parse_weather_time(value, tz), Icon.SUNRISE) for value in sunrises]
    events.extend(WeatherSample(parse_weather_time(value, tz), Icon.SUNSET) for value in sunsets)
    events.sort(key=lambda event: event.time)
    return events


def select_forecast(
    now: datetime,
    hourly: list[WeatherSample],
    events: list[WeatherSample],
    rows: int = FORECAST_ROWS,
    hours: int = FORECAST_HOURS,
) -> list[WeatherSample]:
    """Fill ``rows`` forecast slots, each covering ``hours`` from the top of the current hour.

    A sunrise or sunset inside a slot's window replaces the regular sample,
    but never in two slots in a row. Otherwise the slot shows the latest
    hourly sample at or before the end of its window. ``hourly`` and
    ``events`` must be sorted by time.
    """
    step = timedelta(hours=hours)
    window_start = now.replace(minute=0, second=0, microsecond=0).astimezone(timezone.utc)
    forecast: list[WeatherSample] = []
    used_events: set[int] = set()
    sun_changed = False

    for _ in range(rows):
        window_end = window_start + step

        event_index = None
        if not sun_changed:
            for index, event in enumerate(events):
                if index in used_events:
                    continue
                if event.time >= now and window_start <= event.time <= window_end:
                    event_index = index
                    break

        if event_index is not None:
            used_events.add(event_index)
            forecast.append(events[event_index])
            sun_changed = True
        else:
            sample = next((s for s in reversed(hourly) if s.time <= window_end), None)
            if sample is None:
                raise DataFormatError(f"No hourly forecast at or before {window_end.isoformat()}")
            forecast.append(sample)
            sun_changed = False

        window_start += step

    return forecast


async def gather_weather(
    source: WeatherSource,
    latitude: float,
    longitude: float,
    tz: tzinfo,
    now: datetime | None = None,
) -> tuple[WeatherSample, list[WeatherSample]]:
    """Fetch weather and return the current conditions plus the forecast slots."""
    report = await source.async_fetch(latitude, longitude)
    if now is None:
        now = datetime.now(tz)

    current = WeatherSample(
        time=now,
        icon=icon_for_weather(
            report.current.weather_code,
            not report.current.is_day,
            report.current.wind_gusts,
        ),
        temperature=format_temperature(report.current.temperature),
    )
    hourly = sorted((sample_from_raw(raw, tz) for raw in report.hourly), key=lambda s: s.time)
    events = sun_events(report.sunrises, report.sunsets, tz)

    forecast = select_forecast(now, hourly, events)
    logger.debug("Forecast slots: %s", [(s.time.isoformat(), str(s.icon)) for s in forecast])
    return current, forecast


__all__ = [
    "FORECAST_HOURS",
    "FORECAST_ROWS",
    "STRONG_GUST_KMH",
    "WeatherSource",
    "format_temperature",
    "gather_weather",
    "icon_for_weather",
    "parse_weather_time",
    "sample_from_raw",
    "select_forecast",
    "sun_events",
]
