"""GeoJSON-like geometry helpers: extraction, bounds, and reprojection."""

from __future__ import annotations

from typing import Any, Dict, Iterable

from maptest.models import Bounds
from maptest.style.crs import crs_equal, transformer

Geometry = Dict[str, Any]

GEOMETRY_TYPES = {
    "Point",
    "MultiPoint",
    "LineString",
    "MultiLineString",
    "Polygon",
    "MultiPolygon",
}


def extract_geometries(data: Any) -> list[Geometry]:
    """Return geometries from a FeatureCollection, Feature, or bare geometry."""
    if not isinstance(data, dict):
        raise ValueError("GeoJSON payload must be an object.")
    kind = data.get("type")
    if kind == "FeatureCollection":
        geometries: list[Geometry] = []
        for feature in data.get("features", []):
            geometries.extend(extract_geometries(feature))
        return geometries
    if kind == "Feature":
        geometry = data.get("geometry")
        return extract_geometries(geometry) if geometry else []
    if kind == "GeometryCollection":
        geometries = []
        for geometry in data.get("geometries", []):
            geometries.extend(extract_geometries(geometry))
        return geometries
    if kind in GEOMETRY_TYPES:
        if "coordinates" not in data:
            raise ValueError(f"{kind} geometry is missing coordinates.")
        return [data]
    raise ValueError(f"Unsupported GeoJSON type: {kind}")


def geojson_crs(data: Any) -> str | None:
    """Return the legacy ``crs`` member of a GeoJSON object, if present."""
    if not isinstance(data, dict):
        return None
    crs = data.get("crs")
    if isinstance(crs, dict):
        properties = crs.get("properties")
        if isinstance(properties, dict) and isinstance(properties.get("name"), str):
            return properties["name"]
    if isinstance(crs, str):
        return crs
    return None


def _walk_coords(coords: Any, xs: list[float], ys: list[float]) -> None:
    if not coords:
        return
    if isinstance(coords[0], (int, float)):
        xs.append(float(coords[0]))
        ys.append(float(coords[1]))
        return
    for part in coords:
        _walk_coords(part, xs, ys)


def bounds_from_geometries(geometries: Iterable[Geometry]) -> Bounds | None:
    """Compute the bounds of GeoJSON-like geometries, or None when empty."""
    xs: list[float] = []
    ys: list[float] = []
    for geometry in geometries:
        _walk_coords(geometry.get("coordinates"), xs, ys)
    if not xs:
        return None
    return (min(xs), min(ys), max(xs), max(ys))


def union_bounds(items: Iterable[Bounds | None]) -> Bounds | None:
    """Return the union of bounds, skipping None entries."""
    result: Bounds | None = None
    for bounds in items:
        if bounds is None:
            continue
        if result is None:
            result = bounds
            continue
        result = (
            min(result[0], bounds[0]),
            min(result[1], bounds[1]),
            max(result[2], bounds[2]),
            max(result[3], bounds[3]),
        )
    return result


def reproject_geometries(
    geometries: Iterable[Geometry],
    src_crs: str,
    dst_crs: str,
) -> list[Geometry]:
    """Reproject GeoJSON-like geometries between CRSs."""
    if crs_equal(src_crs, dst_crs):
        return [dict(geometry) for geometry in geometries]
    tx = transformer(src_crs, dst_crs)

    def transform_coords(coords: Any) -> Any:
        if not coords:
            return coords
        if isinstance(coords[0], (int, float)):
            out_x, out_y = tx.transform(coords[0], coords[1])
            return [out_x, out_y, *coords[2:]]
        return [transform_coords(part) for part in coords]

    projected: list[Geometry] = []
    for geometry in geometries:
        updated = dict(geometry)
        updated["coordinates"] = transform_coords(geometry["coordinates"])
        projected.append(updated)
    return projected
