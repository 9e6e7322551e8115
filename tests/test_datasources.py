from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest

from maptest.errors import DataSourceUnavailable, StyleLoadError
from maptest.style.datasources import (
    RasterDatasource,
    VectorDatasource,
    create_datasource,
)
from tests.utils import box_polygon, feature_collection, write_geojson, write_raster


def test_geojson_datasource_from_file(tmp_path: Path) -> None:
    write_geojson(tmp_path / "data" / "boxes.geojson", feature_collection(box_polygon(0, 0, 1, 1)))

    datasource = create_datasource({"type": "geojson", "file": "data/boxes.geojson"}, tmp_path)

    assert isinstance(datasource, VectorDatasource)
    assert datasource.kind == "geojson"
    assert datasource.geometries[0]["type"] == "Polygon"
    assert datasource.crs is None


def test_geojson_datasource_reads_legacy_crs() -> None:
    payload = dict(feature_collection(box_polygon(0, 0, 1, 1)))
    payload["crs"] = {"type": "name", "properties": {"name": "EPSG:3857"}}

    datasource = create_datasource({"type": "geojson", "inline": json.dumps(payload)}, Path("."))

    assert datasource.crs == "EPSG:3857"


def test_geojson_datasource_invalid_payload() -> None:
    with pytest.raises(StyleLoadError):
        create_datasource({"type": "geojson", "inline": "{broken"}, Path("."))
    with pytest.raises(StyleLoadError):
        create_datasource({"type": "geojson", "inline": '{"type": "Topology"}'}, Path("."))


def test_csv_datasource_points() -> None:
    text = "name,lon,lat\na,1.5,2.5\nb,-3,4\n"

    datasource = create_datasource({"type": "csv", "inline": text}, Path("."))

    assert [geometry["coordinates"] for geometry in datasource.geometries] == [
        [1.5, 2.5],
        [-3.0, 4.0],
    ]


def test_csv_datasource_requires_coordinates() -> None:
    with pytest.raises(StyleLoadError):
        create_datasource({"type": "csv", "inline": "name,value\na,1\n"}, Path("."))
    with pytest.raises(StyleLoadError):
        create_datasource({"type": "csv", "inline": "x,y\n1,north\n"}, Path("."))


def test_gdal_datasource_describes_band(tmp_path: Path) -> None:
    data = np.array([[1, 2], [3, -9999]], dtype=np.float32)
    write_raster(tmp_path / "dem.tif", data, bounds=(0.0, 0.0, 2.0, 2.0), nodata=-9999)

    datasource = create_datasource({"type": "gdal", "file": "dem.tif"}, tmp_path)

    assert isinstance(datasource, RasterDatasource)
    assert datasource.bounds == pytest.approx((0.0, 0.0, 2.0, 2.0))
    assert datasource.crs == "EPSG:4326"
    assert datasource.nodata == -9999
    assert datasource.value_range == (1.0, 3.0)


def test_gdal_datasource_rejects_missing_band(tmp_path: Path) -> None:
    write_raster(tmp_path / "dem.tif", np.ones((2, 2), dtype=np.uint8), bounds=(0, 0, 1, 1))

    with pytest.raises(StyleLoadError):
        create_datasource({"type": "gdal", "file": "dem.tif", "band": "2"}, tmp_path)


def test_missing_file_is_unavailable(tmp_path: Path) -> None:
    with pytest.raises(DataSourceUnavailable):
        create_datasource({"type": "gdal", "file": "absent.tif"}, tmp_path)


def test_missing_type_and_file_parameters() -> None:
    with pytest.raises(StyleLoadError) as excinfo:
        create_datasource({}, Path("."))
    assert not isinstance(excinfo.value, DataSourceUnavailable)
    with pytest.raises(StyleLoadError) as excinfo:
        create_datasource({"type": "geojson"}, Path("."))
    assert not isinstance(excinfo.value, DataSourceUnavailable)
