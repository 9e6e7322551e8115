"""Datasource plugins referenced by style layers."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Union

import rasterio
from rasterio.errors import RasterioIOError

from maptest.errors import DataSourceUnavailable, StyleLoadError
from maptest.models import Bounds
from maptest.style.geometry import Geometry, extract_geometries, geojson_crs

_X_COLUMNS = ("x", "lon", "lng", "longitude")
_Y_COLUMNS = ("y", "lat", "latitude")


@dataclass(frozen=True)
class VectorDatasource:
    """Geometries read from a GeoJSON or CSV source."""

    kind: str
    geometries: tuple[Geometry, ...]
    crs: str | None = None


@dataclass(frozen=True)
class RasterDatasource:
    """A single raster band opened lazily at render time."""

    path: Path
    band: int
    bounds: Bounds
    crs: str | None
    nodata: float | None
    value_range: tuple[float, float] | None = None


Datasource = Union[VectorDatasource, RasterDatasource]
DatasourceFactory = Callable[[Mapping[str, str], Path], Datasource]


def _resolve_file(params: Mapping[str, str], base_dir: Path, kind: str) -> Path:
    """Return the datasource file path; a missing file is an unavailable datasource."""
    value = params.get("file")
    if not value:
        raise StyleLoadError(f"{kind} datasource requires a 'file' parameter.")
    path = Path(value)
    if not path.is_absolute():
        path = base_dir / path
    if not path.exists():
        raise DataSourceUnavailable(
            f"Could not create datasource for type: '{kind}': file '{path}' does not exist"
        )
    return path


def _read_text(params: Mapping[str, str], base_dir: Path, kind: str) -> str:
    inline = params.get("inline")
    if inline is not None:
        return inline
    path = _resolve_file(params, base_dir, kind)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DataSourceUnavailable(
            f"Could not create datasource for type: '{kind}': {exc}"
        ) from exc


def geojson_datasource(params: Mapping[str, str], base_dir: Path) -> VectorDatasource:
    """Load geometries from a GeoJSON file or ``inline`` parameter."""
    text = _read_text(params, base_dir, "geojson")
    try:
        data = json.loads(text)
        geometries = extract_geometries(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise StyleLoadError(f"Invalid GeoJSON datasource: {exc}") from exc
    return VectorDatasource("geojson", tuple(geometries), geojson_crs(data))


def _pick_column(fieldnames: list[str], candidates: tuple[str, ...]) -> str | None:
    lowered = {name.strip().lower(): name for name in fieldnames}
    for candidate in candidates:
        if candidate in lowered:
            return lowered[candidate]
    return None


def csv_datasource(params: Mapping[str, str], base_dir: Path) -> VectorDatasource:
    """Load point geometries from CSV rows with x/y (or lon/lat) columns."""
    text = _read_text(params, base_dir, "csv")
    reader = csv.DictReader(io.StringIO(text.strip()))
    fieldnames = list(reader.fieldnames or [])
    x_column = _pick_column(fieldnames, _X_COLUMNS)
    y_column = _pick_column(fieldnames, _Y_COLUMNS)
    if x_column is None or y_column is None:
        raise StyleLoadError(f"CSV datasource needs x/y columns, found: {fieldnames}")
    geometries: list[Geometry] = []
    for line_number, row in enumerate(reader, start=2):
        try:
            x = float(row[x_column])
            y = float(row[y_column])
        except (TypeError, ValueError) as exc:
            raise StyleLoadError(f"CSV datasource row {line_number} is not numeric") from exc
        geometries.append({"type": "Point", "coordinates": [x, y]})
    return VectorDatasource("csv", tuple(geometries))


def gdal_datasource(params: Mapping[str, str], base_dir: Path) -> RasterDatasource:
    """Describe a raster band; pixels are read when the layer is painted."""
    path = _resolve_file(params, base_dir, "gdal")
    try:
        band = int(params.get("band", "1"))
    except ValueError as exc:
        raise StyleLoadError(f"Invalid raster band: {params.get('band')}") from exc
    try:
        with rasterio.open(path) as dataset:
            if band < 1 or band > dataset.count:
                raise StyleLoadError(f"Raster {path} has no band {band}")
            bounds = dataset.bounds
            values = dataset.read(band, masked=True)
            value_range = (float(values.min()), float(values.max())) if values.count() else None
            return RasterDatasource(
                path=path,
                band=band,
                bounds=(bounds.left, bounds.bottom, bounds.right, bounds.top),
                crs=dataset.crs.to_string() if dataset.crs else None,
                nodata=dataset.nodata,
                value_range=value_range,
            )
    except RasterioIOError as exc:
        raise StyleLoadError(f"Unreadable raster datasource {path}: {exc}") from exc


DATASOURCE_FACTORIES: dict[str, DatasourceFactory] = {
    "geojson": geojson_datasource,
    "csv": csv_datasource,
    "gdal": gdal_datasource,
}


def create_datasource(params: Mapping[str, str], base_dir: Path) -> Datasource:
    """Instantiate the datasource plugin named by the ``type`` parameter."""
    kind = params.get("type")
    if not kind:
        raise StyleLoadError("Datasource is missing a 'type' parameter.")
    factory = DATASOURCE_FACTORIES.get(kind)
    if factory is None:
        raise DataSourceUnavailable(
            f"Could not create datasource for type: '{kind}' (no datasource plugin available)"
        )
    return factory(params, base_dir)
