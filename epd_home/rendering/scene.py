"""SVG scene templating for the home screen."""

from __future__ import annotations

import base64
from datetime import datetime
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError
from titlecase import titlecase

from epd_home.errors import RenderInvariantError
from epd_home.rendering.frame_data import ABSOLUTE, MINUTES, NOW, ArrivalTime, DisplayModel

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
ICON_DIR = Path(__file__).resolve().parent / "icons"

DISPLAY_WIDTH = 800
DISPLAY_HEIGHT = 480

ICON_NAMES = frozenset(
    {
        "cloud",
        "cloud-drizzle",
        "cloud-lightning",
        "cloud-rain",
        "cloud-snow",
        "moon",
        "sun",
        "sunrise",
        "sunset",
        "wifi-off",
        "wind",
    }
)


def load_icon(name: str) -> bytes | None:
    """Return the SVG source for a bundled icon, or None for unknown names."""
    name = str(name).removesuffix(".svg")
    if name not in ICON_NAMES:
        return None
    return (ICON_DIR / f"{name}.svg").read_bytes()


@lru_cache(maxsize=None)
def icon_href(name: str) -> str:
    """Inline a bundled icon as a data URI usable in an ``<image>`` element."""
    data = load_icon(name)
    if data is None:
        raise RenderInvariantError(f"Unknown icon: {name}")
    return "data:image/svg+xml;base64," + base64.b64encode(data).decode("ascii")


def _formatdate(value: datetime, fmt: str) -> str:
    return value.strftime(fmt)


def _clock(value: datetime) -> str:
    clock = value.strftime("%I:%M%p").lower()
    return clock.lstrip("0") if clock.startswith("0") else clock


def _arrival_label(time: ArrivalTime) -> str:
    if time.kind == NOW:
        return "Now"
    if time.kind == MINUTES:
        return f"{time.minutes} min"
    if time.kind == ABSOLUTE and time.at is not None:
        return _clock(time.at)
    raise RenderInvariantError(f"Unrenderable arrival time: {time!r}")


@lru_cache(maxsize=1)
def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    env.filters["formatdate"] = _formatdate
    env.filters["clock"] = _clock
    env.filters["titlecase"] = titlecase
    env.filters["arrival_label"] = _arrival_label
    env.globals["icon_href"] = lambda icon: icon_href(str(icon))
    return env


def _render(template_name: str, **context) -> bytes:
    try:
        template = _environment().get_template(template_name)
        return template.render(**context).encode("utf-8")
    except TemplateError as exc:
        raise RenderInvariantError(f"Failed to render {template_name}: {exc}") from exc


def render_scene(
    model: DisplayModel, width: int = DISPLAY_WIDTH, height: int = DISPLAY_HEIGHT
) -> bytes:
    """Render the home screen model to SVG bytes; identical models give identical bytes."""
    return _render(
        "home.svg.j2",
        width=width,
        height=height,
        weather_now=model.weather_now,
        temp_now=model.temp_now,
        time=model.time,
        forecast=model.forecast,
        arrivals=model.arrivals,
    )


def error_scene(width: int = DISPLAY_WIDTH, height: int = DISPLAY_HEIGHT) -> bytes:
    """The fixed "something went wrong" screen."""
    return _render("error.svg.j2", width=width, height=height)


__all__ = [
    "DISPLAY_HEIGHT",
    "DISPLAY_WIDTH",
    "error_scene",
    "icon_href",
    "load_icon",
    "render_scene",
]
