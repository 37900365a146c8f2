from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from epd_home.data.transit_client import RouteArrivals, StopArrival
from epd_home.errors import UpstreamFetchError
from epd_home.logic.arrivals import (
    arrival_minutes,
    build_entry,
    classify_arrival,
    gather_arrivals,
    parse_stop_codes,
    select_arrivals,
)
from epd_home.rendering.frame_data import ABSOLUTE, ArrivalEntry, ArrivalTime

UTC = timezone.utc
NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def _millis(minutes: float) -> int:
    return int((NOW + timedelta(minutes=minutes)).timestamp() * 1000)


def _route(name: str, headsign: str, *minutes: float) -> RouteArrivals:
    return RouteArrivals(
        route_short_name=name,
        stop_headsign=headsign,
        arrivals=[StopArrival(_millis(m)) for m in minutes],
    )


def _entry(route: str, headsign: str, minutes: int) -> ArrivalEntry:
    return ArrivalEntry(route=route, headsign=headsign, times=(ArrivalTime.in_minutes(minutes),))


class FakeTransitSource:
    def __init__(
        self,
        routes: dict[str, list[RouteArrivals] | None],
        delays: dict[str, float] | None = None,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self._routes = routes
        self._delays = delays or {}
        self._errors = errors or {}
        self.cancelled: list[str] = []

    async def async_fetch(self, stop_code: str) -> list[RouteArrivals] | None:
        try:
            await asyncio.sleep(self._delays.get(stop_code, 0))
        except asyncio.CancelledError:
            self.cancelled.append(stop_code)
            raise
        if stop_code in self._errors:
            raise self._errors[stop_code]
        return self._routes.get(stop_code)


@pytest.mark.parametrize(
    ("offset", "expected"),
    [
        (timedelta(minutes=-5), ArrivalTime.now()),
        (timedelta(seconds=30), ArrivalTime.now()),
        (timedelta(seconds=59), ArrivalTime.now()),
        (timedelta(minutes=1), ArrivalTime.in_minutes(1)),
        (timedelta(minutes=5, seconds=50), ArrivalTime.in_minutes(5)),
        (timedelta(minutes=99, seconds=59), ArrivalTime.in_minutes(99)),
    ],
)
def test_classify_arrival_near_term(offset: timedelta, expected: ArrivalTime) -> None:
    assert classify_arrival(NOW + offset, NOW) == expected


@pytest.mark.parametrize("minutes", [100, 150, 600])
def test_classify_arrival_far_future_keeps_clock_time(minutes: int) -> None:
    arrival_at = NOW + timedelta(minutes=minutes)

    result = classify_arrival(arrival_at, NOW)

    assert result.kind == ABSOLUTE
    assert result.at == arrival_at


def test_arrival_minutes() -> None:
    assert arrival_minutes(ArrivalTime.now(), NOW) == 0
    assert arrival_minutes(ArrivalTime.in_minutes(42), NOW) == 42
    assert arrival_minutes(ArrivalTime.at_time(NOW + timedelta(minutes=150)), NOW) == 150
    assert arrival_minutes(ArrivalTime.at_time(NOW - timedelta(minutes=3)), NOW) == 0


def test_build_entry_keeps_first_two_near_term_times() -> None:
    entry = build_entry(_route("NX1", "City", 0.2, 5, 200), NOW, UTC)

    assert entry is not None
    assert entry.times == (ArrivalTime.now(), ArrivalTime.in_minutes(5))


def test_build_entry_stops_after_first_far_future_time() -> None:
    entry = build_entry(_route("NX1", "City", 150, 5), NOW, UTC)

    assert entry is not None
    assert len(entry.times) == 1
    assert entry.times[0].kind == ABSOLUTE


def test_build_entry_includes_trailing_far_future_time() -> None:
    entry = build_entry(_route("NX1", "City", 5, 150), NOW, UTC)

    assert entry is not None
    assert entry.times[0] == ArrivalTime.in_minutes(5)
    assert entry.times[1].kind == ABSOLUTE


def test_build_entry_prefers_live_timestamp() -> None:
    route = RouteArrivals(
        route_short_name="70",
        stop_headsign="Botany",
        arrivals=[StopArrival(arrival_timestamp=_millis(10), updated_arrival_timestamp=_millis(14))],
    )

    entry = build_entry(route, NOW, UTC)

    assert entry is not None
    assert entry.times == (ArrivalTime.in_minutes(14),)
    assert (entry.route, entry.headsign) == ("70", "Botany")


def test_build_entry_without_arrivals() -> None:
    assert build_entry(_route("70", "Botany"), NOW, UTC) is None


def test_select_arrivals_keeps_four_closest() -> None:
    entries = [_entry(f"R{n:02d}", "Town", 95 - n * 5) for n in range(12)]

    selected = select_arrivals(entries, NOW)

    assert len(selected) == 4
    assert {entry.route for entry in selected} == {"R08", "R09", "R10", "R11"}


def test_select_arrivals_orders_near_term_alphabetically() -> None:
    entries = [
        _entry("70", "Botany", 3),
        _entry("22N", "New Lynn", 30),
        _entry("22N", "Avondale", 12),
        _entry("105", "Freemans Bay", 55),
    ]

    first = select_arrivals(entries, NOW)
    jittered = select_arrivals(
        [
            _entry("70", "Botany", 40),
            _entry("22N", "New Lynn", 2),
            _entry("22N", "Avondale", 59),
            _entry("105", "Freemans Bay", 8),
        ],
        NOW,
    )

    expected = [("105", "Freemans Bay"), ("22N", "Avondale"), ("22N", "New Lynn"), ("70", "Botany")]
    assert [(e.route, e.headsign) for e in first] == expected
    assert [(e.route, e.headsign) for e in jittered] == expected


def test_select_arrivals_near_term_before_far_term() -> None:
    far = ArrivalEntry("A", "Airport", (ArrivalTime.at_time(NOW + timedelta(minutes=150)),))
    soon = ArrivalEntry("Z", "Zoo", (ArrivalTime.now(),))

    selected = select_arrivals([far, soon], NOW)

    assert [entry.route for entry in selected] == ["Z", "A"]


def test_select_arrivals_sixty_minutes_is_still_near() -> None:
    selected = select_arrivals([_entry("B", "x", 61), _entry("C", "x", 60), _entry("A", "x", 61)], NOW)

    assert [entry.route for entry in selected] == ["C", "A", "B"]


def test_select_arrivals_ties_keep_input_order() -> None:
    entries = [_entry(name, "x", 10) for name in ("E", "D", "C", "B", "A")]

    selected = select_arrivals(entries, NOW)

    assert [entry.route for entry in selected] == ["B", "C", "D", "E"]


def test_select_arrivals_uses_soonest_time_of_entry() -> None:
    two_times = ArrivalEntry("Z", "x", (ArrivalTime.in_minutes(90), ArrivalTime.in_minutes(2)))
    entries = [_entry(name, "x", 50) for name in "ABCD"] + [two_times]

    selected = select_arrivals(entries, NOW)

    assert "Z" in [entry.route for entry in selected]


def test_parse_stop_codes() -> None:
    assert parse_stop_codes("3889, 1234,,3889 ") == ["3889", "1234"]
    assert parse_stop_codes(["7000", " 7001"]) == ["7000", "7001"]
    assert parse_stop_codes("") == []


def test_gather_arrivals_merges_stops_regardless_of_completion_order() -> None:
    source = FakeTransitSource(
        routes={
            "1": [_route("B", "Beach", 5), _route("X", "Empty")],
            "2": None,
            "3": [_route("A", "Airport", 150), _route("C", "City", 0.5, 7)],
        },
        delays={"1": 0.05, "3": 0.0},
    )

    arrivals = asyncio.run(gather_arrivals(source, ["1", "2", "3"], UTC, now=NOW))

    assert [(a.route, a.headsign) for a in arrivals] == [("B", "Beach"), ("C", "City"), ("A", "Airport")]
    assert arrivals[1].times == (ArrivalTime.now(), ArrivalTime.in_minutes(7))


def test_gather_arrivals_unknown_stops_give_empty_list() -> None:
    source = FakeTransitSource(routes={"1": None})

    assert asyncio.run(gather_arrivals(source, ["1"], UTC, now=NOW)) == []


def test_gather_arrivals_failure_aborts_and_cancels_other_stops() -> None:
    source = FakeTransitSource(
        routes={"1": [_route("B", "Beach", 5)]},
        delays={"1": 5.0},
        errors={"2": UpstreamFetchError("stop 2 down")},
    )

    with pytest.raises(UpstreamFetchError):
        asyncio.run(gather_arrivals(source, ["1", "2"], UTC, now=NOW))

    assert source.cancelled == ["1"]
