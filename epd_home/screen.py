"""Home screen orchestration: fetch, compose, rasterize and dither."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Callable, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from PIL import Image

from epd_home.concurrency import gather_all
from epd_home.config import AppConfig
from epd_home.data.transit_client import TransitClient
from epd_home.data.weather_client import WeatherClient
from epd_home.errors import DataFormatError, InvalidConfiguration
from epd_home.logic.arrivals import TransitSource, gather_arrivals, parse_stop_codes
from epd_home.logic.weather import WeatherSource, gather_weather
from epd_home.rendering.dither import PixelGrid, image_to_pixel_grid
from epd_home.rendering.frame_data import (
    ArrivalEntry,
    ArrivalTime,
    DisplayModel,
    Icon,
    WeatherSample,
)
from epd_home.rendering.raster import rasterize
from epd_home.rendering.scene import DISPLAY_HEIGHT, DISPLAY_WIDTH, error_scene, render_scene

logger = logging.getLogger(__name__)

Rasterizer = Callable[[bytes], Image.Image]


def build_model(
    current: WeatherSample, forecast: list[WeatherSample], arrivals: list[ArrivalEntry]
) -> DisplayModel:
    if current.temperature is None:
        raise DataFormatError("Missing data: current temperature")
    return DisplayModel(
        weather_now=current.icon,
        temp_now=current.temperature,
        time=current.time,
        forecast=forecast,
        arrivals=arrivals,
    )


def placeholder_model(now: datetime) -> DisplayModel:
    """A fixed model at local noon for exercising the panel without live data."""
    noon = now.replace(hour=12, minute=0, second=0, microsecond=0)
    return DisplayModel(
        weather_now=Icon.CLOUD,
        temp_now="-",
        time=noon,
        forecast=[
            WeatherSample(time=noon.replace(hour=n * 2 + 12), icon=Icon.CLOUD, temperature="-")
            for n in range(1, 5)
        ],
        arrivals=[
            ArrivalEntry(route="---", headsign="----------", times=(ArrivalTime.in_minutes(n * 10),))
            for n in range(1, 5)
        ],
    )


class Screen:
    """Renders the home screen for one location and set of stops."""

    def __init__(
        self,
        latitude: float,
        longitude: float,
        timezone: str,
        stop_codes: str | Sequence[str],
        *,
        weather_source: WeatherSource | None = None,
        transit_source: TransitSource | None = None,
        rasterizer: Rasterizer = rasterize,
        size: tuple[int, int] = (DISPLAY_WIDTH, DISPLAY_HEIGHT),
    ) -> None:
        try:
            self._timezone = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise InvalidConfiguration(f"Invalid timezone: {timezone!r}") from exc

        self._latitude = latitude
        self._longitude = longitude
        self._stop_codes = parse_stop_codes(stop_codes)
        self._weather_source = weather_source or WeatherClient()
        self._transit_source = transit_source or TransitClient()
        self._rasterizer = rasterizer
        self._size = size

    @classmethod
    def from_config(
        cls, config: AppConfig, *, request_timeout: float | None = None, **kwargs
    ) -> Screen:
        """Build a screen from loaded configuration.

        ``request_timeout`` caps each upstream HTTP request below its configured
        timeout; a render shell passes it so that requests still running on a
        worker thread after the render deadline finish soon after it.
        """
        weather_timeout = config.weather.timeout_seconds
        transit_timeout = config.transit.timeout_seconds
        if request_timeout is not None:
            weather_timeout = min(weather_timeout, request_timeout)
            transit_timeout = min(transit_timeout, request_timeout)

        kwargs.setdefault("weather_source", WeatherClient(weather_timeout))
        kwargs.setdefault("transit_source", TransitClient(config.transit.api_base, transit_timeout))
        kwargs.setdefault("size", (config.display.width, config.display.height))
        return cls(
            config.location.latitude,
            config.location.longitude,
            config.location.timezone,
            config.transit.stop_codes,
            **kwargs,
        )

    @property
    def timezone(self) -> ZoneInfo:
        return self._timezone

    @property
    def stop_codes(self) -> list[str]:
        return list(self._stop_codes)

    async def gather_model(self) -> DisplayModel:
        """Fetch weather and arrivals side by side; either failure aborts both."""
        (current, forecast), arrivals = await gather_all(
            gather_weather(self._weather_source, self._latitude, self._longitude, self._timezone),
            gather_arrivals(self._transit_source, self._stop_codes, self._timezone),
        )
        return build_model(current, forecast, arrivals)

    async def render(self) -> PixelGrid:
        logger.info("Rendering home screen for %d stop(s)", len(self._stop_codes))
        model = await self.gather_model()
        grid = self._rasterize_scene(render_scene(model, *self._size))
        logger.info("Rendered home screen")
        return grid

    async def render_placeholder(self) -> PixelGrid:
        model = placeholder_model(datetime.now(self._timezone))
        return self._rasterize_scene(render_scene(model, *self._size))

    async def render_error(self) -> PixelGrid:
        return self._rasterize_scene(error_scene(*self._size))

    def _rasterize_scene(self, scene: bytes) -> PixelGrid:
        logger.debug("Rasterizing %d bytes of SVG", len(scene))
        image = self._rasterizer(scene)
        return image_to_pixel_grid(image, self._size)


__all__ = ["Screen", "build_model", "placeholder_model"]
