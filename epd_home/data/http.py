"""Shared JSON-over-HTTP request helper for the upstream clients."""

from __future__ import annotations

from typing import Any

import requests

from epd_home.errors import UpstreamFetchError


def get_json(
    url: str,
    *,
    service: str,
    params: dict[str, Any] | None = None,
    timeout_seconds: float = 10,
) -> Any:
    """GET ``url`` and decode the JSON body.

    Network errors, non-200 responses and undecodable bodies all raise
    UpstreamFetchError, prefixed with ``service`` so the two upstreams can be
    told apart in logs.
    """
    try:
        response = requests.get(url, params=params, timeout=timeout_seconds)
    except requests.RequestException as exc:
        raise UpstreamFetchError(f"{service} request failed: {exc}") from exc

    if response.status_code != 200:
        body_text = response.text.strip()
        detail = f"Status {response.status_code}"
        if body_text:
            detail = f"{detail}, Body: {body_text}"
        raise UpstreamFetchError(f"{service} request failed: {detail}")

    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamFetchError(f"{service} response was not valid JSON") from exc


__all__ = ["get_json"]
