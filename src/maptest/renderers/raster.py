"""RGBA raster renderer backend."""

from __future__ import annotations

import numpy as np

from maptest.renderers.base import ImageRenderer
from maptest.renderers.painting import PixelGrid, paint_map
from maptest.style.map_state import MapState


class RasterRenderer(ImageRenderer):
    """Paint styled layers into an RGBA image; supports tiled output."""

    name = "raster"
    supports_tiles = True

    def paint(self, map_state: MapState, grid: PixelGrid, scale_factor: float) -> np.ndarray:
        return paint_map(map_state, grid, scale_factor)
