from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import Mock, patch

import pytest
import requests

from epd_home.data.weather_client import WeatherClient, parse_report
from epd_home.errors import DataFormatError, UpstreamFetchError

PAYLOAD = {
    "current": {
        "time": "2024-01-01T05:30",
        "temperature_2m": 18.4,
        "is_day": 1,
        "weather_code": 0,
        "wind_gusts_10m": 10.0,
    },
    "hourly": {
        "time": ["2024-01-01T00:00", "2024-01-01T01:00"],
        "temperature_2m": [15.0, 14.6],
        "weather_code": [3, 61],
        "is_day": [0, 0],
        "wind_gusts_10m": [20.0, 45.5],
    },
    "daily": {
        "sunrise": ["2024-01-01T06:00", "2024-01-02T06:01"],
        "sunset": ["2024-01-01T20:40", "2024-01-02T20:41"],
    },
}


@pytest.fixture()
def weather_client() -> WeatherClient:
    return WeatherClient()


def _mock_response(status_code: int, json_data: dict[str, Any] | None = None, text: str = "") -> Mock:
    response = Mock()
    response.status_code = status_code
    response.text = text
    if json_data is not None:
        response.json.return_value = json_data
    else:
        response.json.side_effect = ValueError("Invalid JSON")
    return response


def test_fetch_parses_report(weather_client: WeatherClient) -> None:
    with patch("requests.get", return_value=_mock_response(200, PAYLOAD)) as mock_get:
        report = weather_client.fetch(-36.75, 174.625)

    assert report.current.weather_code == 0
    assert report.current.is_day is True
    assert report.current.temperature == 18.4
    assert [s.time for s in report.hourly] == ["2024-01-01T00:00", "2024-01-01T01:00"]
    assert report.hourly[1].weather_code == 61
    assert report.hourly[1].wind_gusts == 45.5
    assert report.hourly[1].is_day is False
    assert report.sunrises == ["2024-01-01T06:00", "2024-01-02T06:01"]
    assert report.sunsets == ["2024-01-01T20:40", "2024-01-02T20:41"]

    params = mock_get.call_args.kwargs["params"]
    assert params["latitude"] == -36.75
    assert params["longitude"] == 174.625
    assert params["timezone"] == "UTC"


def test_async_fetch_returns_report(weather_client: WeatherClient) -> None:
    with patch("requests.get", return_value=_mock_response(200, PAYLOAD)):
        report = asyncio.run(weather_client.async_fetch(0.0, 0.0))

    assert len(report.hourly) == 2


def test_non_200_raises_upstream_error(weather_client: WeatherClient) -> None:
    with patch("requests.get", return_value=_mock_response(500, {}, text="down")):
        with pytest.raises(UpstreamFetchError) as exc_info:
            weather_client.fetch(0.0, 0.0)

    assert "500" in str(exc_info.value)


def test_network_error_raises_upstream_error(weather_client: WeatherClient) -> None:
    with patch("requests.get", side_effect=requests.exceptions.ConnectionError("boom")):
        with pytest.raises(UpstreamFetchError):
            weather_client.fetch(0.0, 0.0)


def test_invalid_json_raises_upstream_error(weather_client: WeatherClient) -> None:
    with patch("requests.get", return_value=_mock_response(200, None)):
        with pytest.raises(UpstreamFetchError):
            weather_client.fetch(0.0, 0.0)


def test_missing_field_raises_data_format_error() -> None:
    payload = {key: value for key, value in PAYLOAD.items() if key != "daily"}

    with pytest.raises(DataFormatError):
        parse_report(payload)
