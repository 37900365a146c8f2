"""Error types raised while building the home screen."""

from __future__ import annotations


class HomeScreenError(Exception):
    """Base class for failures a caller can act on."""


class InvalidConfiguration(HomeScreenError):
    """Raised when caller-supplied settings cannot be used (e.g. unknown timezone)."""


class UpstreamFetchError(HomeScreenError):
    """Raised when the weather or transit service cannot be reached or answers non-200."""


class DataFormatError(HomeScreenError):
    """Raised when an upstream payload cannot be interpreted."""


class RenderInvariantError(RuntimeError):
    """Raised when the rendering pipeline produces something it never should."""


def status_for_error(exc: BaseException) -> int:
    """Map an exception to the HTTP status a delivery shell should answer with."""
    if isinstance(exc, InvalidConfiguration):
        return 400
    if isinstance(exc, (UpstreamFetchError, DataFormatError)):
        return 502
    return 500


__all__ = [
    "HomeScreenError",
    "InvalidConfiguration",
    "UpstreamFetchError",
    "DataFormatError",
    "RenderInvariantError",
    "status_for_error",
]
