"""Arrival classification, selection and display ordering."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
import logging
from typing import Iterable, Protocol, Sequence

from epd_home.concurrency import gather_all
from epd_home.data.transit_client import RouteArrivals
from epd_home.rendering.frame_data import ABSOLUTE, MINUTES, ArrivalEntry, ArrivalTime

MAX_ROWS = 4
TIMES_PER_ROW = 2
NOW_THRESHOLD_MIN = 1
MINUTES_THRESHOLD_MIN = 100
NEAR_TERM_MIN = 60

logger = logging.getLogger(__name__)


class TransitSource(Protocol):
    async def async_fetch(self, stop_code: str) -> list[RouteArrivals] | None: ...


def parse_stop_codes(value: str | Iterable[str]) -> list[str]:
    """Split ``"3889, 1234"`` into distinct stop codes, keeping their order."""
    parts = value.split(",") if isinstance(value, str) else value
    codes: list[str] = []
    for part in parts:
        code = str(part).strip()
        if code and code not in codes:
            codes.append(code)
    return codes


def _whole_minutes(later: datetime, earlier: datetime) -> int:
    # truncates toward zero
    return int((later - earlier).total_seconds() / 60)


def classify_arrival(arrival_at: datetime, now: datetime) -> ArrivalTime:
    minutes = _whole_minutes(arrival_at, now)
    if minutes < NOW_THRESHOLD_MIN:
        return ArrivalTime.now()
    if minutes < MINUTES_THRESHOLD_MIN:
        return ArrivalTime.in_minutes(minutes)
    return ArrivalTime.at_time(arrival_at)


def arrival_minutes(time: ArrivalTime, now: datetime) -> int:
    """Minutes until an arrival, never negative."""
    if time.kind == MINUTES:
        return time.minutes
    if time.kind == ABSOLUTE and time.at is not None:
        return max(_whole_minutes(time.at, now), 0)
    return 0


def _timestamp(millis: int, tz: tzinfo) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).astimezone(tz)


def build_entry(route: RouteArrivals, now: datetime, tz: tzinfo) -> ArrivalEntry | None:
    """Collapse a route's arrivals into up to two display times.

    Times are kept while they are due now or within minutes; the first
    clock-time arrival is kept too and ends the row.
    """
    if not route.arrivals:
        return None

    times: list[ArrivalTime] = []
    for arrival in route.arrivals[:TIMES_PER_ROW]:
        millis = arrival.updated_arrival_timestamp
        if millis is None:
            millis = arrival.arrival_timestamp
        time = classify_arrival(_timestamp(millis, tz), now)
        times.append(time)
        if not time.is_near_term:
            break

    return ArrivalEntry(route=route.route_short_name, headsign=route.stop_headsign, times=tuple(times))


def select_arrivals(
    entries: Sequence[ArrivalEntry], now: datetime, limit: int = MAX_ROWS
) -> list[ArrivalEntry]:
    """Keep the ``limit`` soonest rows, then order them to keep the panel steady.

    Rows due within the hour come first; within each group rows are ordered
    by route and headsign, so minute-to-minute changes do not reshuffle them.
    """
    timed = [(min(arrival_minutes(t, now) for t in entry.times), entry) for entry in entries]

    # soonest first, because only `limit` rows fit
    closest = sorted(timed, key=lambda item: item[0])[:limit]

    ordered = sorted(
        closest,
        key=lambda item: (item[0] > NEAR_TERM_MIN, item[1].route, item[1].headsign),
    )
    return [entry for _, entry in ordered]


async def fetch_all_stops(source: TransitSource, stop_codes: Sequence[str]) -> list[RouteArrivals]:
    """Query every stop at once; routes come back in stop-code order.

    The first failure propagates and the remaining fetches are cancelled.
    """
    results = await gather_all(*(source.async_fetch(code) for code in stop_codes))

    routes: list[RouteArrivals] = []
    for code, result in zip(stop_codes, results):
        if result is None:
            logger.debug("No stop found for code %s", code)
            continue
        routes.extend(result)
    return routes


async def gather_arrivals(
    source: TransitSource,
    stop_codes: Sequence[str],
    tz: tzinfo,
    now: datetime | None = None,
) -> list[ArrivalEntry]:
    """Fetch all stops and return the rows to display."""
    routes = await fetch_all_stops(source, stop_codes)
    if now is None:
        now = datetime.now(tz)

    entries = [e for e in (build_entry(route, now, tz) for route in routes) if e is not None]
    selected = select_arrivals(entries, now)
    logger.debug("Arrivals: %s", [(e.route, e.headsign, e.times) for e in selected])
    return selected


__all__ = [
    "MAX_ROWS",
    "NEAR_TERM_MIN",
    "TransitSource",
    "arrival_minutes",
    "build_entry",
    "classify_arrival",
    "fetch_all_stops",
    "gather_arrivals",
    "parse_stop_codes",
    "select_arrivals",
]
