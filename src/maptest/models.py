"""Data models shared by the runner, renderers, and reports."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Tuple

Bounds = Tuple[float, float, float, float]


@dataclass(frozen=True)
class Size:
    """Output image size in pixels."""

    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class TileGrid:
    """Number of tiles along each image axis."""

    width: int
    height: int

    @property
    def is_single(self) -> bool:
        return self.width == 1 and self.height == 1

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


SINGLE_TILE = TileGrid(1, 1)


class ResultState(str, Enum):
    """Outcome of a single render test."""

    OK = "ok"
    FAIL = "fail"
    ERROR = "error"
    SKIPPED = "skipped"
    OVERWRITE = "overwrite"


@dataclass(frozen=True)
class Result:
    """Outcome of one (style, size, scale, tiles, renderer) evaluation."""

    name: str
    state: ResultState
    renderer_name: str | None = None
    size: Size | None = None
    tiles: TileGrid | None = None
    scale_factor: float | None = None
    error_message: str | None = None
    diff: int = 0
    image_path: Path | None = None
    reference_path: Path | None = None
    duration: float = 0.0

    def label(self) -> str:
        """Return a compact label such as ``lines-500-100-2x1-1.0``."""
        parts = [self.name]
        if self.size is not None:
            parts.extend([str(self.size.width), str(self.size.height)])
        if self.tiles is not None and not self.tiles.is_single:
            parts.append(str(self.tiles))
        if self.scale_factor is not None:
            parts.append(f"{self.scale_factor:.1f}")
        return "-".join(parts)

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "renderer": self.renderer_name,
            "size": [self.size.width, self.size.height] if self.size else None,
            "tiles": [self.tiles.width, self.tiles.height] if self.tiles else None,
            "scale_factor": self.scale_factor,
            "error_message": self.error_message,
            "diff": self.diff,
            "image_path": str(self.image_path) if self.image_path else None,
            "reference_path": str(self.reference_path) if self.reference_path else None,
            "duration": round(self.duration, 6),
        }


def error_result(name: str, message: str) -> Result:
    """Build the synthetic result recorded for a style that failed outright."""
    return Result(name=name, state=ResultState.ERROR, error_message=message)
