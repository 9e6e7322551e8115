"""XML style document loader."""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path

from maptest.errors import StyleLoadError
from maptest.style.crs import DEFAULT_MAP_CRS, normalize_crs, transform_bounds
from maptest.style.datasources import RasterDatasource, create_datasource
from maptest.style.geometry import bounds_from_geometries, reproject_geometries
from maptest.style.map_state import Color, Layer, MapState, Style, Symbolizer

STYLE_SUFFIX = ".xml"

LOGGER = logging.getLogger(__name__)

NAMED_COLORS: dict[str, Color] = {
    "black": (0, 0, 0, 255),
    "white": (255, 255, 255, 255),
    "red": (255, 0, 0, 255),
    "green": (0, 128, 0, 255),
    "blue": (0, 0, 255, 255),
    "yellow": (255, 255, 0, 255),
    "orange": (255, 165, 0, 255),
    "gray": (128, 128, 128, 255),
    "grey": (128, 128, 128, 255),
    "steelblue": (70, 130, 180, 255),
    "transparent": (0, 0, 0, 0),
}

# tag -> (kind, color attribute, default color, default width)
SYMBOLIZERS: dict[str, tuple[str, str, str, float]] = {
    "PolygonSymbolizer": ("polygon", "fill", "gray", 1.0),
    "LineSymbolizer": ("line", "stroke", "black", 1.0),
    "MarkersSymbolizer": ("marker", "fill", "blue", 10.0),
    "PointSymbolizer": ("marker", "fill", "black", 4.0),
    "RasterSymbolizer": ("raster", "fill", "black", 1.0),
}

_RGB = re.compile(r"^rgba?\(([^)]*)\)$")
_OFF = {"off", "false", "0", "no"}


def parse_color(value: str) -> Color:
    """Parse ``#rgb``, ``#rrggbb``, ``#rrggbbaa``, ``rgb()``/``rgba()`` or a color name."""
    text = value.strip().lower()
    if text in NAMED_COLORS:
        return NAMED_COLORS[text]
    try:
        if text.startswith("#"):
            digits = text[1:]
            if len(digits) == 3:
                digits = "".join(char * 2 for char in digits)
            if len(digits) == 6:
                digits += "ff"
            if len(digits) != 8:
                raise ValueError(text)
            red, green, blue, alpha = (int(digits[index : index + 2], 16) for index in (0, 2, 4, 6))
            return (red, green, blue, alpha)
        match = _RGB.match(text)
        if match:
            parts = [part.strip() for part in match.group(1).split(",")]
            if len(parts) not in (3, 4):
                raise ValueError(text)
            red, green, blue = (int(part) for part in parts[:3])
            alpha = round(float(parts[3]) * 255) if len(parts) == 4 else 255
            channels = (red, green, blue, alpha)
            if any(channel < 0 or channel > 255 for channel in channels):
                raise ValueError(text)
            return channels
    except ValueError as exc:
        raise StyleLoadError(f"Invalid color: '{value}'") from exc
    raise StyleLoadError(f"Invalid color: '{value}'")


def _float_attr(element: ET.Element, name: str, default: float) -> float:
    value = element.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise StyleLoadError(f"{element.tag} has invalid {name}: '{value}'") from exc


def _parse_symbolizer(element: ET.Element) -> Symbolizer:
    kind, color_attr, default_color, default_width = SYMBOLIZERS[element.tag]
    color = parse_color(element.get(color_attr, default_color))
    if kind == "line":
        return Symbolizer(
            kind=kind,
            stroke=color,
            width=_float_attr(element, "stroke-width", default_width),
            opacity=_float_attr(element, "stroke-opacity", 1.0),
        )
    if kind == "polygon":
        return Symbolizer(kind=kind, fill=color, opacity=_float_attr(element, "fill-opacity", 1.0))
    return Symbolizer(
        kind=kind,
        fill=color,
        width=_float_attr(element, "width", default_width),
        opacity=_float_attr(element, "opacity", 1.0),
    )


def _parse_style(element: ET.Element) -> Style:
    name = element.get("name")
    if not name:
        raise StyleLoadError("Style element requires a name attribute.")
    symbolizers = tuple(
        _parse_symbolizer(child) for child in element.iter() if child.tag in SYMBOLIZERS
    )
    return Style(name=name, symbolizers=symbolizers)


def _parameters(element: ET.Element | None) -> dict[str, str]:
    params: dict[str, str] = {}
    if element is None:
        return params
    for parameter in element.findall("Parameter"):
        name = parameter.get("name")
        if not name:
            raise StyleLoadError("Parameter element requires a name attribute.")
        params[name] = (parameter.text or "").strip()
    return params


def _parse_layer(element: ET.Element, map_state: MapState, base_dir: Path) -> Layer:
    name = element.get("name") or "layer"
    layer_crs = element.get("srs") or map_state.crs
    normalize_crs(layer_crs)
    style_names = tuple((node.text or "").strip() for node in element.findall("StyleName"))
    for style_name in style_names:
        if style_name not in map_state.styles:
            raise StyleLoadError(f"Layer '{name}' references unknown style '{style_name}'")
    datasource_element = element.find("Datasource")
    if datasource_element is None:
        raise StyleLoadError(f"Layer '{name}' has no Datasource.")
    datasource = create_datasource(_parameters(datasource_element), base_dir)

    if isinstance(datasource, RasterDatasource):
        source_crs = datasource.crs or layer_crs
        extent = transform_bounds(datasource.bounds, source_crs, map_state.crs)
        return Layer(name, source_crs, datasource, style_names, extent=extent)

    source_crs = datasource.crs or layer_crs
    geometries = tuple(reproject_geometries(datasource.geometries, source_crs, map_state.crs))
    return Layer(
        name,
        source_crs,
        datasource,
        style_names,
        geometries=geometries,
        extent=bounds_from_geometries(geometries),
    )


def load_map(map_state: MapState, path: Path) -> MapState:
    """Load a style document into ``map_state`` (strict: unknown styles are errors).

    Missing or unreachable datasources raise DataSourceUnavailable; every
    other problem raises StyleLoadError.
    """
    path = Path(path)
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as exc:
        raise StyleLoadError(f"Invalid style XML in {path}: {exc}", path) from exc
    except OSError as exc:
        raise StyleLoadError(f"Unable to read style {path}: {exc}", path) from exc
    if root.tag != "Map":
        raise StyleLoadError(f"Style root element must be <Map>, got <{root.tag}>", path)

    map_state.crs = root.get("srs") or DEFAULT_MAP_CRS
    normalize_crs(map_state.crs)
    background = root.get("background-color")
    map_state.background = parse_color(background) if background else None
    map_state.base_dir = path.parent
    map_state.parameters.update(_parameters(root.find("Parameters")))

    for element in root.findall("Style"):
        style = _parse_style(element)
        map_state.styles[style.name] = style

    for element in root.findall("Layer"):
        if element.get("status", "on").strip().lower() in _OFF:
            LOGGER.debug("Skipping disabled layer %s", element.get("name"))
            continue
        map_state.layers.append(_parse_layer(element, map_state, path.parent))
    return map_state
