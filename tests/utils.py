from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Sequence, Tuple
from xml.sax.saxutils import escape

import numpy as np
import rasterio
from rasterio.transform import from_bounds

DEFAULT_STYLES = (
    '<Style name="fill"><Rule><PolygonSymbolizer fill="#ff0000"/></Rule></Style>'
    '<Style name="line"><Rule><LineSymbolizer stroke="black" stroke-width="1"/></Rule></Style>'
    '<Style name="points"><Rule><MarkersSymbolizer fill="blue" width="4"/></Rule></Style>'
    '<Style name="raster"><Rule><RasterSymbolizer/></Rule></Style>'
)


def write_raster(
    path: Path,
    data: np.ndarray,
    *,
    bounds: Tuple[float, float, float, float],
    crs: str = "EPSG:4326",
    nodata: float | None = None,
) -> None:
    height, width = data.shape
    transform = from_bounds(*bounds, width=width, height=height)
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=1,
        dtype=data.dtype,
        crs=crs,
        transform=transform,
        nodata=nodata,
    ) as dataset:
        dataset.write(data, 1)


def box_polygon(minx: float, miny: float, maxx: float, maxy: float) -> dict[str, Any]:
    ring = [[minx, miny], [maxx, miny], [maxx, maxy], [minx, maxy], [minx, miny]]
    return {"type": "Polygon", "coordinates": [ring]}


def feature_collection(*geometries: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {}, "geometry": dict(geometry)}
            for geometry in geometries
        ],
    }


def write_geojson(path: Path, data: Mapping[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def datasource_layer(
    name: str,
    params: Mapping[str, str],
    *,
    style: str = "fill",
    srs: str | None = None,
    status: str | None = None,
) -> str:
    attrs = f' name="{name}"'
    if srs:
        attrs += f' srs="{srs}"'
    if status:
        attrs += f' status="{status}"'
    parameters = "".join(
        f'<Parameter name="{key}">{escape(value)}</Parameter>' for key, value in params.items()
    )
    return (
        f"<Layer{attrs}><StyleName>{style}</StyleName>"
        f"<Datasource>{parameters}</Datasource></Layer>"
    )


def geojson_layer(name: str, data: Mapping[str, Any], *, style: str = "fill", **kwargs) -> str:
    return datasource_layer(
        name, {"type": "geojson", "inline": json.dumps(data)}, style=style, **kwargs
    )


def style_xml(
    layers: Sequence[str] = (),
    *,
    parameters: Mapping[str, str] | None = None,
    srs: str = "EPSG:4326",
    background: str | None = "white",
    styles: str = DEFAULT_STYLES,
) -> str:
    attrs = f' srs="{srs}"'
    if background:
        attrs += f' background-color="{background}"'
    params = ""
    if parameters:
        params = "<Parameters>" + "".join(
            f'<Parameter name="{key}">{escape(value)}</Parameter>'
            for key, value in parameters.items()
        ) + "</Parameters>"
    return f"<Map{attrs}>{params}{styles}{''.join(layers)}</Map>"


def write_style(directory: Path, name: str, xml: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.xml"
    path.write_text(xml, encoding="utf-8")
    return path


def with_src_env(base_env: dict[str, str] | None = None) -> dict[str, str]:
    """Return an environment with repo src/ on PYTHONPATH."""
    env = dict(base_env or os.environ)
    repo_root = Path(__file__).resolve().parents[1]
    src_path = repo_root / "src"
    if src_path.exists():
        existing = env.get("PYTHONPATH", "")
        entries = [entry for entry in existing.split(os.pathsep) if entry]
        src_str = str(src_path)
        if src_str not in entries:
            entries.insert(0, src_str)
        env["PYTHONPATH"] = os.pathsep.join(entries)
    return env
