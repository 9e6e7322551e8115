"""Rasterization of map layers onto pixel grids."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np
import rasterio
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.features import rasterize
from rasterio.transform import Affine, from_bounds
from rasterio.warp import reproject

from maptest.models import Bounds
from maptest.style.geometry import Geometry
from maptest.style.map_state import Color, Layer, MapState, Symbolizer

LINE_TYPES = {"LineString", "MultiLineString"}
POLYGON_TYPES = {"Polygon", "MultiPolygon"}
POINT_TYPES = {"Point", "MultiPoint"}


@dataclass(frozen=True)
class PixelGrid:
    """A georeferenced pixel window: extent (or None when empty) and size."""

    extent: Bounds | None
    width: int
    height: int

    @classmethod
    def for_map(cls, map_state: MapState) -> PixelGrid:
        return cls(map_state.extent, map_state.width, map_state.height)

    @property
    def shape(self) -> tuple[int, int]:
        return (self.height, self.width)

    @property
    def pixel_size(self) -> tuple[float, float]:
        if self.extent is None:
            return (1.0, 1.0)
        minx, miny, maxx, maxy = self.extent
        return ((maxx - minx) / self.width, (maxy - miny) / self.height)

    @property
    def transform(self) -> Affine:
        if self.extent is None:
            raise ValueError("Pixel grid has no extent.")
        return from_bounds(*self.extent, self.width, self.height)

    def window(self, col_off: int, row_off: int, width: int, height: int) -> PixelGrid:
        """Return the grid covering pixels starting at (col_off, row_off)."""
        if self.extent is None:
            return PixelGrid(None, width, height)
        pixel_x, pixel_y = self.pixel_size
        minx = self.extent[0] + col_off * pixel_x
        maxy = self.extent[3] - row_off * pixel_y
        return PixelGrid(
            (minx, maxy - height * pixel_y, minx + width * pixel_x, maxy),
            width,
            height,
        )


def _points(geometry: Geometry) -> list[list[float]]:
    if geometry["type"] == "Point":
        return [geometry["coordinates"]]
    return list(geometry["coordinates"])


def marker_squares(geometries: Iterable[Geometry], half_x: float, half_y: float) -> list[Geometry]:
    """Replace point geometries with squares of the given half extents."""
    squares: list[Geometry] = []
    for geometry in geometries:
        if geometry["type"] not in POINT_TYPES:
            continue
        for x, y, *_ in _points(geometry):
            ring = [
                [x - half_x, y - half_y],
                [x + half_x, y - half_y],
                [x + half_x, y + half_y],
                [x - half_x, y + half_y],
                [x - half_x, y - half_y],
            ]
            squares.append({"type": "Polygon", "coordinates": [ring]})
    return squares


def outlines(geometries: Iterable[Geometry]) -> list[Geometry]:
    """Return line geometries plus the rings of polygons as lines."""
    lines: list[Geometry] = []
    for geometry in geometries:
        kind = geometry["type"]
        if kind in LINE_TYPES:
            lines.append(geometry)
        elif kind == "Polygon":
            lines.append({"type": "MultiLineString", "coordinates": geometry["coordinates"]})
        elif kind == "MultiPolygon":
            rings = [ring for polygon in geometry["coordinates"] for ring in polygon]
            lines.append({"type": "MultiLineString", "coordinates": rings})
    return lines


def burn_mask(shapes: list[Geometry], grid: PixelGrid, *, all_touched: bool) -> np.ndarray:
    """Rasterize geometries into a boolean mask over the grid."""
    if not shapes or grid.extent is None:
        return np.zeros(grid.shape, dtype=bool)
    burned = rasterize(
        ((shape, 1) for shape in shapes),
        out_shape=grid.shape,
        transform=grid.transform,
        fill=0,
        all_touched=all_touched,
        dtype="uint8",
    )
    return burned.astype(bool)


def dilate(mask: np.ndarray, radius: int) -> np.ndarray:
    """Grow a mask by a square structuring element of the given radius."""
    if radius <= 0 or not mask.any():
        return mask
    height, width = mask.shape
    padded = np.pad(mask, radius)
    grown = np.zeros_like(mask)
    for dy in range(2 * radius + 1):
        for dx in range(2 * radius + 1):
            grown |= padded[dy : dy + height, dx : dx + width]
    return grown


def composite(canvas: np.ndarray, mask: np.ndarray, rgb: np.ndarray, alpha: float) -> None:
    """Alpha-blend ``rgb`` (one color or one color per masked pixel) into the canvas."""
    if alpha <= 0 or not mask.any():
        return
    region = canvas[mask].astype(np.float64)
    region[:, :3] = region[:, :3] * (1.0 - alpha) + rgb * alpha
    region[:, 3] = region[:, 3] * (1.0 - alpha) + 255.0 * alpha
    canvas[mask] = np.clip(np.rint(region), 0, 255).astype(np.uint8)


def _color_alpha(color: Color, opacity: float) -> tuple[np.ndarray, float]:
    alpha = (color[3] / 255.0) * min(max(opacity, 0.0), 1.0)
    return np.array(color[:3], dtype=np.float64), alpha


def resample_raster(layer: Layer, grid: PixelGrid, dst_crs: str) -> np.ndarray:
    """Resample a raster layer onto the grid; nodata pixels become NaN."""
    source = layer.raster
    destination = np.full(grid.shape, np.nan, dtype=np.float32)
    if source is None or grid.extent is None:
        return destination
    with rasterio.open(source.path) as dataset:
        reproject(
            source=rasterio.band(dataset, source.band),
            destination=destination,
            src_transform=dataset.transform,
            src_crs=CRS.from_user_input(source.crs or layer.crs),
            src_nodata=source.nodata,
            dst_transform=grid.transform,
            dst_crs=CRS.from_user_input(dst_crs),
            dst_nodata=np.nan,
            resampling=Resampling.nearest,
        )
    return destination


def _paint_raster(
    canvas: np.ndarray,
    layer: Layer,
    symbolizer: Symbolizer,
    grid: PixelGrid,
    crs: str,
) -> None:
    source = layer.raster
    if source is None or source.value_range is None:
        return
    values = resample_raster(layer, grid, crs)
    valid = ~np.isnan(values)
    low, high = source.value_range
    span = high - low
    if span > 0:
        gray = (values[valid] - low) / span * 255.0
    else:
        gray = np.full(int(valid.sum()), 255.0)
    composite(canvas, valid, gray[:, np.newaxis], min(max(symbolizer.opacity, 0.0), 1.0))


def _paint_vector(
    canvas: np.ndarray,
    layer: Layer,
    symbolizer: Symbolizer,
    grid: PixelGrid,
    scale_factor: float,
) -> None:
    pixel_x, pixel_y = grid.pixel_size
    if symbolizer.kind == "polygon" and symbolizer.fill is not None:
        shapes = [geometry for geometry in layer.geometries if geometry["type"] in POLYGON_TYPES]
        mask = burn_mask(shapes, grid, all_touched=False)
        color, alpha = _color_alpha(symbolizer.fill, symbolizer.opacity)
    elif symbolizer.kind == "line" and symbolizer.stroke is not None:
        mask = burn_mask(outlines(layer.geometries), grid, all_touched=True)
        mask = dilate(mask, int(round((symbolizer.width * scale_factor - 1.0) / 2.0)))
        color, alpha = _color_alpha(symbolizer.stroke, symbolizer.opacity)
    elif symbolizer.kind == "marker" and symbolizer.fill is not None:
        half = symbolizer.width * scale_factor / 2.0
        shapes = marker_squares(layer.geometries, half * pixel_x, half * pixel_y)
        mask = burn_mask(shapes, grid, all_touched=True)
        color, alpha = _color_alpha(symbolizer.fill, symbolizer.opacity)
    else:
        return
    composite(canvas, mask, color, alpha)


def paint_map(map_state: MapState, grid: PixelGrid, scale_factor: float) -> np.ndarray:
    """Paint every styled layer of the map onto an RGBA canvas."""
    canvas = np.zeros((grid.height, grid.width, 4), dtype=np.uint8)
    if map_state.background is not None:
        canvas[...] = map_state.background
    if grid.extent is None:
        return canvas
    for layer in map_state.layers:
        for style in map_state.styles_for(layer):
            for symbolizer in style.symbolizers:
                if symbolizer.kind == "raster":
                    _paint_raster(canvas, layer, symbolizer, grid, map_state.crs)
                else:
                    _paint_vector(canvas, layer, symbolizer, grid, scale_factor)
    return canvas


def burn_layer_ids(map_state: MapState, grid: PixelGrid, scale_factor: float) -> np.ndarray:
    """Burn the 1-based index of each styled layer into a uint16 grid."""
    ids = np.zeros(grid.shape, dtype=np.uint16)
    if grid.extent is None:
        return ids
    pixel_x, pixel_y = grid.pixel_size
    half = max(scale_factor, 1.0) / 2.0
    for index, layer in enumerate(map_state.layers, start=1):
        if not map_state.styles_for(layer):
            continue
        if layer.raster is not None:
            ids[~np.isnan(resample_raster(layer, grid, map_state.crs))] = index
            continue
        shapes = marker_squares(layer.geometries, half * pixel_x, half * pixel_y)
        shapes.extend(
            geometry for geometry in layer.geometries if geometry["type"] not in POINT_TYPES
        )
        ids[burn_mask(shapes, grid, all_touched=True)] = index
    return ids
