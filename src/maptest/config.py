"""Render matrix configuration and per-style overrides."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Mapping

from maptest.errors import ParseError
from maptest.models import Bounds, Size, TileGrid
from maptest.sizes import parse_bbox, parse_sizes, parse_tile_grids

LOGGER = logging.getLogger(__name__)

DEFAULT_SIZES = (Size(500, 100),)
DEFAULT_SCALES = (1.0, 2.0)
DEFAULT_TILES = (TileGrid(1, 1),)

_FALSY = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Config:
    """Matrix of sizes, scale factors, and tile grids evaluated per style."""

    sizes: tuple[Size, ...] = DEFAULT_SIZES
    scales: tuple[float, ...] = DEFAULT_SCALES
    tiles: tuple[TileGrid, ...] = DEFAULT_TILES
    status: bool = True
    bbox: Bounds | None = field(default=None)

    def __post_init__(self) -> None:
        if not self.sizes:
            raise ValueError("Config requires at least one size.")
        if not self.scales:
            raise ValueError("Config requires at least one scale factor.")

    def with_scales(self, scales: Iterable[float]) -> Config:
        """Return a copy using the given scale factors."""
        return replace(self, scales=tuple(float(scale) for scale in scales))


def parse_status(value: object, default: bool) -> bool:
    """Interpret a style ``status`` parameter as a boolean."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _FALSY:
        return False
    try:
        return bool(int(text))
    except ValueError:
        return True


def apply_style_overrides(config: Config, params: Mapping[str, str]) -> Config:
    """Return a copy of ``config`` with the style's sizes/tiles/bbox applied."""
    overrides: dict[str, object] = {}
    sizes = params.get("sizes")
    if sizes is not None:
        overrides["sizes"] = tuple(parse_sizes(sizes))
    tiles = params.get("tiles")
    if tiles is not None:
        overrides["tiles"] = tuple(parse_tile_grids(tiles))
    bbox = params.get("bbox")
    if bbox is not None:
        try:
            overrides["bbox"] = parse_bbox(bbox)
        except ParseError as exc:
            # an unusable box falls back to the full extent
            LOGGER.warning("Ignoring bbox parameter: %s", exc)
            overrides["bbox"] = None
    if not overrides:
        return config
    return replace(config, **overrides)
