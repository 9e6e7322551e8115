"""Exception types raised while loading and evaluating styles."""

from __future__ import annotations

from pathlib import Path

DATASOURCE_UNAVAILABLE_MARKERS = (
    "Could not create datasource",
    "Postgis Plugin: could not connect to server",
)


class MaptestError(Exception):
    """Base class for maptest failures."""


class ParseError(MaptestError, ValueError):
    """Raised when a compact size list or bbox string cannot be parsed."""

    def __init__(self, message: str, text: str) -> None:
        super().__init__(message)
        self.text = text


class StyleLoadError(MaptestError):
    """Raised when a style document cannot be loaded."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class DataSourceUnavailable(StyleLoadError):
    """Raised when a layer datasource is missing or unreachable."""


class RenderConfigError(MaptestError, ValueError):
    """Raised when a size/tile combination cannot be rendered."""


def is_datasource_unavailable(exc: BaseException) -> bool:
    """Return True when a load failure is about a missing external datasource."""
    if isinstance(exc, DataSourceUnavailable):
        return True
    message = str(exc)
    return any(marker in message for marker in DATASOURCE_UNAVAILABLE_MARKERS)
