from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import Mock, patch

import pytest
import requests

from epd_home.data.transit_client import StopArrival, TransitClient
from epd_home.errors import DataFormatError, UpstreamFetchError

STOPS = {"stops": [{"id": "3889-abc", "code": "3889", "name": "Queen St"}]}
ARRIVALS = {
    "stop_arrivals": [
        {
            "route_trip": {
                "route_id": "NX1",
                "route_short_name": "NX1",
                "route_long_name": "Northern Express",
                "route_type": 3,
                "route_color": "",
                "route_text_color": "",
                "stop_headsign": "HIBISCUS COAST",
            },
            "arrivals": [
                {"trip_id": "t1", "stop_sequence": 3, "start_timestamp": 0, "arrival_timestamp": 1000},
                {
                    "trip_id": "t2",
                    "stop_sequence": 3,
                    "start_timestamp": 0,
                    "arrival_timestamp": 2000,
                    "updated_arrival_timestamp": 2500,
                },
            ],
        }
    ]
}


@pytest.fixture()
def transit_client() -> TransitClient:
    return TransitClient("https://example.test/")


def _mock_response(status_code: int, json_data: dict[str, Any] | None = None, text: str = "") -> Mock:
    response = Mock()
    response.status_code = status_code
    response.text = text
    if json_data is not None:
        response.json.return_value = json_data
    else:
        response.json.side_effect = ValueError("Invalid JSON")
    return response


def test_fetch_resolves_stop_then_arrivals(transit_client: TransitClient) -> None:
    responses = [_mock_response(200, STOPS), _mock_response(200, ARRIVALS)]
    with patch("requests.get", side_effect=responses) as mock_get:
        routes = transit_client.fetch("3889")

    assert routes is not None
    assert len(routes) == 1
    assert routes[0].route_short_name == "NX1"
    assert routes[0].stop_headsign == "HIBISCUS COAST"
    assert routes[0].arrivals == [StopArrival(1000, None), StopArrival(2000, 2500)]

    first_call, second_call = mock_get.call_args_list
    assert first_call.args[0] == "https://example.test/stops"
    assert first_call.kwargs["params"] == {"code": "3889"}
    assert second_call.args[0] == "https://example.test/stops/3889-abc/arrivals"


def test_fetch_unknown_stop_returns_none(transit_client: TransitClient) -> None:
    with patch("requests.get", return_value=_mock_response(200, {"stops": []})) as mock_get:
        routes = transit_client.fetch("0000")

    assert routes is None
    mock_get.assert_called_once()


def test_async_fetch(transit_client: TransitClient) -> None:
    responses = [_mock_response(200, STOPS), _mock_response(200, {"stop_arrivals": []})]
    with patch("requests.get", side_effect=responses):
        routes = asyncio.run(transit_client.async_fetch("3889"))

    assert routes == []


def test_non_200_raises_upstream_error(transit_client: TransitClient) -> None:
    with patch("requests.get", return_value=_mock_response(404, {}, text="Not found")):
        with pytest.raises(UpstreamFetchError) as exc_info:
            transit_client.fetch("3889")

    assert "404" in str(exc_info.value)


def test_network_error_raises_upstream_error(transit_client: TransitClient) -> None:
    with patch("requests.get", side_effect=requests.exceptions.Timeout("slow")):
        with pytest.raises(UpstreamFetchError):
            transit_client.fetch("3889")


def test_invalid_json_raises_upstream_error(transit_client: TransitClient) -> None:
    with patch("requests.get", return_value=_mock_response(200, None)):
        with pytest.raises(UpstreamFetchError):
            transit_client.resolve_stop("3889")


def test_malformed_arrivals_raise_data_format_error(transit_client: TransitClient) -> None:
    bad = {"stop_arrivals": [{"route_trip": {"route_short_name": "NX1"}, "arrivals": []}]}
    with patch("requests.get", return_value=_mock_response(200, bad)):
        with pytest.raises(DataFormatError):
            transit_client.get_arrivals("3889-abc")
