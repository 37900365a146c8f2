"""Client for the next-at stop arrivals API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any
from urllib.parse import quote

from epd_home.data.http import get_json
from epd_home.errors import DataFormatError

TRANSIT_API_BASE = "https://next-at-api.heaps.dev"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StopArrival:
    """A single trip arrival; timestamps are epoch milliseconds."""

    arrival_timestamp: int
    updated_arrival_timestamp: int | None = None


@dataclass(frozen=True)
class RouteArrivals:
    """Upcoming arrivals at a stop for one route and headsign."""

    route_short_name: str
    stop_headsign: str
    arrivals: list[StopArrival]


class TransitClient:
    """Resolve stop codes and fetch arrivals using requests."""

    def __init__(self, base_url: str = TRANSIT_API_BASE, timeout_seconds: float = 10) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    def resolve_stop(self, stop_code: str) -> str | None:
        """Return the internal stop id for a public stop code, or None if unknown."""
        response_json = self._get("/stops", params={"code": stop_code})
        stops = response_json.get("stops") or []
        if not stops:
            return None
        try:
            return str(stops[0]["id"])
        except (KeyError, TypeError) as exc:
            raise DataFormatError(f"Stop lookup for {stop_code!r} had no id") from exc

    def get_arrivals(self, stop_id: str) -> list[RouteArrivals]:
        """Fetch arrivals grouped by route and headsign for an internal stop id."""
        response_json = self._get(f"/stops/{quote(stop_id, safe='')}/arrivals")
        return [_parse_route_arrivals(item) for item in response_json.get("stop_arrivals") or []]

    def fetch(self, stop_code: str) -> list[RouteArrivals] | None:
        """Fetch arrivals for a public stop code; None means the code is unknown."""
        stop_id = self.resolve_stop(stop_code)
        if stop_id is None:
            logger.info("Stop code %s did not match any stop", stop_code)
            return None
        arrivals = self.get_arrivals(stop_id)
        logger.debug("Stop %s (%s): %d routes", stop_code, stop_id, len(arrivals))
        return arrivals

    async def async_fetch(self, stop_code: str) -> list[RouteArrivals] | None:
        """Run :meth:`fetch` on a worker thread so stops can be queried together."""
        return await asyncio.to_thread(self.fetch, stop_code)

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return get_json(
            f"{self._base_url}{path}",
            service="Transit API",
            params=params,
            timeout_seconds=self._timeout_seconds,
        )


def _parse_route_arrivals(item: dict[str, Any]) -> RouteArrivals:
    try:
        route_trip = item["route_trip"]
        return RouteArrivals(
            route_short_name=route_trip["route_short_name"],
            stop_headsign=route_trip["stop_headsign"],
            arrivals=[
                StopArrival(
                    arrival_timestamp=int(arrival["arrival_timestamp"]),
                    updated_arrival_timestamp=(
                        int(arrival["updated_arrival_timestamp"])
                        if arrival.get("updated_arrival_timestamp") is not None
                        else None
                    ),
                )
                for arrival in item["arrivals"]
            ],
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise DataFormatError(f"Unexpected arrivals payload: {exc!r}") from exc


__all__ = ["StopArrival", "RouteArrivals", "TransitClient", "TRANSIT_API_BASE"]
