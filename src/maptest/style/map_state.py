"""In-memory map state a style document is loaded into."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from maptest.models import Bounds
from maptest.style.crs import DEFAULT_MAP_CRS
from maptest.style.datasources import Datasource, RasterDatasource
from maptest.style.geometry import Geometry, union_bounds

Color = Tuple[int, int, int, int]


@dataclass(frozen=True)
class Symbolizer:
    """A single drawing instruction inside a style."""

    kind: str
    fill: Color | None = None
    stroke: Color | None = None
    width: float = 1.0
    opacity: float = 1.0


@dataclass(frozen=True)
class Style:
    """Named group of symbolizers referenced by layers."""

    name: str
    symbolizers: tuple[Symbolizer, ...]


@dataclass(frozen=True)
class Layer:
    """A datasource drawn with one or more named styles.

    Vector geometries are stored already reprojected into the map CRS.
    """

    name: str
    crs: str
    datasource: Datasource
    style_names: tuple[str, ...]
    geometries: tuple[Geometry, ...] = field(default_factory=tuple)
    extent: Bounds | None = None

    @property
    def raster(self) -> RasterDatasource | None:
        if isinstance(self.datasource, RasterDatasource):
            return self.datasource
        return None


def fit_aspect(bounds: Bounds, width: int, height: int) -> Bounds:
    """Grow ``bounds`` around its center so it matches the output aspect ratio."""
    minx, miny, maxx, maxy = bounds
    center_x = (minx + maxx) / 2.0
    center_y = (miny + maxy) / 2.0
    span_x = maxx - minx
    span_y = maxy - miny
    if span_x <= 0 and span_y <= 0:
        span_x = span_y = 1.0
    target = width / height
    if span_y <= 0 or (span_x > 0 and span_x / span_y > target):
        span_y = span_x / target
    else:
        span_x = span_y * target
    return (
        center_x - span_x / 2.0,
        center_y - span_y / 2.0,
        center_x + span_x / 2.0,
        center_y + span_y / 2.0,
    )


class MapState:
    """Map dimensions, layers, styles, extra parameters, and the current view."""

    def __init__(self, width: int, height: int, *, crs: str = DEFAULT_MAP_CRS) -> None:
        self.extent: Bounds | None = None
        self.width = 0
        self.height = 0
        self.resize(width, height)
        self.crs = crs
        self.background: Color | None = None
        self.layers: list[Layer] = []
        self.styles: dict[str, Style] = {}
        self.parameters: dict[str, str] = {}
        self.base_dir: Path | None = None

    def resize(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Map size must be positive, got {width}x{height}.")
        self.width = width
        self.height = height
        if self.extent is not None:
            self.extent = fit_aspect(self.extent, width, height)

    def full_extent(self) -> Bounds | None:
        """Return the union of all layer extents in the map CRS."""
        return union_bounds(layer.extent for layer in self.layers)

    def zoom_to_box(self, bounds: Bounds) -> None:
        self.extent = fit_aspect(bounds, self.width, self.height)

    def zoom_all(self) -> None:
        """Zoom to the full content extent; a map without content keeps its view."""
        extent = self.full_extent()
        if extent is not None:
            self.zoom_to_box(extent)

    def styles_for(self, layer: Layer) -> list[Style]:
        return [self.styles[name] for name in layer.style_names if name in self.styles]

