"""HTTP handler that renders the home screen as a BMP on request."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import logging
from typing import Any
from urllib.parse import parse_qs, urlsplit

from epd_home.config import AppConfig
from epd_home.errors import HomeScreenError, InvalidConfiguration, status_for_error
from epd_home.rendering import encode_bmp
from epd_home.screen import Screen

logger = logging.getLogger(__name__)

RENDER_TIMEOUT_SECONDS = 30.0
# A stop fetch makes two requests back to back.
REQUEST_TIMEOUT_SECONDS = RENDER_TIMEOUT_SECONDS / 2

ROUTES = ("/home.bmp", "/placeholder.bmp", "/error.bmp")


def screen_for_query(config: AppConfig, query: dict[str, list[str]]) -> Screen:
    """Build a screen, letting ``lat``, ``lon``, ``timezone`` and ``stop_code`` override config."""

    def value(name: str, default: Any) -> Any:
        return query[name][0] if query.get(name) else default

    try:
        location = replace(
            config.location,
            latitude=float(value("lat", config.location.latitude)),
            longitude=float(value("lon", config.location.longitude)),
            timezone=value("timezone", config.location.timezone),
        )
    except ValueError as exc:
        raise InvalidConfiguration(f"Invalid coordinates: {exc}") from exc
    transit = replace(config.transit, stop_codes=value("stop_code", config.transit.stop_codes))
    return Screen.from_config(
        replace(config, location=location, transit=transit),
        request_timeout=REQUEST_TIMEOUT_SECONDS,
    )


class HomeScreenHandler(BaseHTTPRequestHandler):
    config: AppConfig

    def do_GET(self) -> None:  # noqa: N802
        url = urlsplit(self.path)

        if url.path == "/ok":
            self._send(200, "text/plain; charset=utf-8", b"ok")
            return

        if url.path not in ROUTES:
            self._send(404, "text/plain; charset=utf-8", b"not found")
            return

        try:
            screen = screen_for_query(self.config, parse_qs(url.query))
            if url.path == "/placeholder.bmp":
                grid = asyncio.run(screen.render_placeholder())
            elif url.path == "/error.bmp":
                grid = asyncio.run(screen.render_error())
            else:
                grid = asyncio.run(asyncio.wait_for(screen.render(), RENDER_TIMEOUT_SECONDS))
        except asyncio.TimeoutError:
            logger.warning("Render timed out after %ss", RENDER_TIMEOUT_SECONDS)
            self._send(504, "text/plain; charset=utf-8", b"render timed out")
            return
        except HomeScreenError as exc:
            logger.warning("Render failed: %s", exc)
            self._send(status_for_error(exc), "text/plain; charset=utf-8", str(exc).encode("utf-8"))
            return
        except Exception as exc:
            logger.exception("Render crashed")
            self._send(status_for_error(exc), "text/plain; charset=utf-8", b"internal error")
            return

        self._send(200, "image/bmp", encode_bmp(grid))

    def _send(self, status: int, content_type: str, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


def make_server(config: AppConfig, host: str = "127.0.0.1", port: int = 8080) -> ThreadingHTTPServer:
    """Bind a threading HTTP server whose handler renders with ``config``."""
    handler = type("ConfiguredHomeScreenHandler", (HomeScreenHandler,), {"config": config})
    return ThreadingHTTPServer((host, port), handler)


__all__ = [
    "RENDER_TIMEOUT_SECONDS",
    "REQUEST_TIMEOUT_SECONDS",
    "HomeScreenHandler",
    "make_server",
    "screen_for_query",
]
