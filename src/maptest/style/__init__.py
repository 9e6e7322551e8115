"""Style document loading and map state."""

from maptest.style.datasources import RasterDatasource, VectorDatasource, create_datasource
from maptest.style.loader import STYLE_SUFFIX, load_map, parse_color
from maptest.style.map_state import Layer, MapState, Style, Symbolizer, fit_aspect

__all__ = [
    "Layer",
    "MapState",
    "RasterDatasource",
    "STYLE_SUFFIX",
    "Style",
    "Symbolizer",
    "VectorDatasource",
    "create_datasource",
    "fit_aspect",
    "load_map",
    "parse_color",
]
