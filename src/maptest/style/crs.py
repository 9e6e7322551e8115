"""CRS normalization and reprojection helpers for map layers."""

from __future__ import annotations

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError

from maptest.errors import StyleLoadError
from maptest.models import Bounds

DEFAULT_MAP_CRS = "EPSG:4326"


def normalize_crs(value: str | CRS) -> CRS:
    """Normalize a CRS string (EPSG code, proj string, WKT) into a pyproj CRS."""
    try:
        return CRS.from_user_input(value)
    except CRSError as exc:
        raise StyleLoadError(f"Invalid srs '{value}': {exc}") from exc


def crs_equal(left: str | CRS, right: str | CRS) -> bool:
    return normalize_crs(left) == normalize_crs(right)


def transformer(src: str | CRS, dst: str | CRS) -> Transformer:
    """Return a transformer that respects x/y axis order.

    Transformers are not shared between threads; callers create their own.
    """
    return Transformer.from_crs(normalize_crs(src), normalize_crs(dst), always_xy=True)


def transform_bounds(
    bounds: Bounds,
    src: str | CRS,
    dst: str | CRS,
    *,
    densify_pts: int = 21,
) -> Bounds:
    """Transform bounding coordinates between CRSs, densifying the edges."""
    if crs_equal(src, dst):
        return bounds
    minx, miny, maxx, maxy = bounds
    steps = densify_pts + 2
    xs: list[float] = []
    ys: list[float] = []
    for index in range(steps):
        x = minx + (maxx - minx) * index / (steps - 1)
        y = miny + (maxy - miny) * index / (steps - 1)
        xs.extend([x, x, minx, maxx])
        ys.extend([miny, maxy, y, y])
    out_xs, out_ys = transformer(src, dst).transform(xs, ys)
    return (min(out_xs), min(out_ys), max(out_xs), max(out_ys))
