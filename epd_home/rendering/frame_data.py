"""Data structures handed to the scene renderer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Icon(str, Enum):
    """Weather icons; values match the bundled icon file names."""

    SUN = "sun"
    CLOUD = "cloud"
    DRIZZLE = "cloud-drizzle"
    RAIN = "cloud-rain"
    SNOW = "cloud-snow"
    LIGHTNING = "cloud-lightning"
    MOON = "moon"
    SUNRISE = "sunrise"
    SUNSET = "sunset"
    WIND = "wind"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class WeatherSample:
    """A weather reading, or a sunrise/sunset marker when temperature is None."""

    time: datetime
    icon: Icon
    temperature: str | None = None


NOW = "now"
MINUTES = "minutes"
ABSOLUTE = "absolute"


@dataclass(frozen=True)
class ArrivalTime:
    """When a service arrives: due now, in N minutes, or at a clock time."""

    kind: str
    minutes: int = 0
    at: datetime | None = None

    @classmethod
    def now(cls) -> ArrivalTime:
        return cls(NOW)

    @classmethod
    def in_minutes(cls, minutes: int) -> ArrivalTime:
        return cls(MINUTES, minutes=minutes)

    @classmethod
    def at_time(cls, at: datetime) -> ArrivalTime:
        return cls(ABSOLUTE, at=at)

    @property
    def is_near_term(self) -> bool:
        return self.kind in (NOW, MINUTES)


@dataclass(frozen=True)
class ArrivalEntry:
    """One route + headsign row with one or two arrival times."""

    route: str
    headsign: str
    times: tuple[ArrivalTime, ...]


@dataclass(frozen=True)
class DisplayModel:
    """Everything the home screen template needs."""

    weather_now: Icon
    temp_now: str
    time: datetime
    forecast: list[WeatherSample]  # 4 slots
    arrivals: list[ArrivalEntry]  # up to 4 rows


__all__ = [
    "ABSOLUTE",
    "MINUTES",
    "NOW",
    "ArrivalEntry",
    "ArrivalTime",
    "DisplayModel",
    "Icon",
    "WeatherSample",
]
