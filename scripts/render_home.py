"""Render the home screen once and write it as a 1-bit BMP."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from epd_home.config import load_config
from epd_home.errors import HomeScreenError
from epd_home.logging_setup import configure_logging
from epd_home.rendering import save_bitmap
from epd_home.screen import Screen

logger = logging.getLogger("render_home")


async def _render(screen: Screen, args: argparse.Namespace):
    if args.error:
        return await screen.render_error()
    if args.placeholder:
        return await screen.render_placeholder()
    try:
        return await asyncio.wait_for(screen.render(), timeout=args.timeout)
    except (HomeScreenError, asyncio.TimeoutError) as exc:
        if not args.fallback_error:
            raise
        logger.warning("Render failed (%s); drawing the error screen instead", exc)
        return await screen.render_error()


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", default="config/config.yaml")
    parser.add_argument("--output", default="home.bmp")
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Seconds allowed for a live render; each upstream request is capped at half of this",
    )
    parser.add_argument("--placeholder", action="store_true", help="Render fake data instead of fetching")
    parser.add_argument("--error", action="store_true", help="Render the error screen")
    parser.add_argument(
        "--fallback-error",
        action="store_true",
        help="Write the error screen when live data cannot be fetched",
    )
    args = parser.parse_args()

    config = load_config(args.config)
    configure_logging(config.log)

    try:
        # a stop fetch makes two requests back to back
        screen = Screen.from_config(config, request_timeout=args.timeout / 2)
        grid = asyncio.run(_render(screen, args))
    except (HomeScreenError, asyncio.TimeoutError) as exc:
        logger.error("Render failed: %s", exc)
        return 1

    save_bitmap(grid, args.output)
    logger.info("Wrote %s", args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
