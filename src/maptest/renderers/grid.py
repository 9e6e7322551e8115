"""Feature-id grid renderer backend."""

from __future__ import annotations

import numpy as np

from maptest.renderers.base import ImageRenderer
from maptest.renderers.painting import PixelGrid, burn_layer_ids
from maptest.style.map_state import MapState


class GridRenderer(ImageRenderer):
    """Burn layer ids into a uint16 grid. Tiled output is not supported."""

    name = "grid"
    supports_tiles = False

    def paint(self, map_state: MapState, grid: PixelGrid, scale_factor: float) -> np.ndarray:
        return burn_layer_ids(map_state, grid, scale_factor)
