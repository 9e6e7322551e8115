"""Renderer capability spec, protocol, and the shared image test policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import ClassVar, Protocol

import numpy as np
from rasterio.errors import RasterioIOError

from maptest.models import SINGLE_TILE, Result, ResultState, Size, TileGrid
from maptest.renderers.imaging import count_different_pixels, read_image, write_image
from maptest.renderers.painting import PixelGrid
from maptest.style.map_state import MapState

LOGGER = logging.getLogger(__name__)

TILE_BUFFER = 32


@dataclass(frozen=True)
class RendererSpec:
    """Describe a renderer backend and its capabilities."""

    name: str
    supports_tiles: bool
    extension: str = "png"


class Renderer(Protocol):
    """Protocol implemented by renderer backends."""

    def spec(self) -> RendererSpec:
        ...

    def test(self, name: str, map_state: MapState, scale_factor: float) -> Result:
        ...

    def test_tiles(
        self,
        name: str,
        map_state: MapState,
        tiles: TileGrid,
        scale_factor: float,
    ) -> Result:
        ...


def image_file_name(
    name: str,
    size: Size,
    tiles: TileGrid,
    scale_factor: float,
    renderer_name: str,
    *,
    reference: bool,
    extension: str = "png",
) -> str:
    """Return ``name-W-H-[TWxTH-]S.S-renderer[-reference].ext``."""
    parts = [name, str(size.width), str(size.height)]
    if not tiles.is_single:
        parts.append(str(tiles))
    parts.append(f"{scale_factor:.1f}")
    parts.append(renderer_name)
    if reference:
        parts.append("reference")
    return "-".join(parts) + f".{extension}"


def dispatch_render(
    renderer: Renderer,
    name: str,
    map_state: MapState,
    tiles: TileGrid,
    scale_factor: float,
) -> Result | None:
    """Run one render test; backends without tile support skip tiled requests."""
    if tiles.is_single:
        return renderer.test(name, map_state, scale_factor)
    if renderer.spec().supports_tiles:
        return renderer.test_tiles(name, map_state, tiles, scale_factor)
    return None


class ImageRenderer:
    """Render, then compare against (or overwrite) a reference image.

    Subclasses provide ``paint`` for a pixel grid; tiled output is painted
    tile by tile with a buffer and stitched together.
    """

    name: ClassVar[str] = "image"
    supports_tiles: ClassVar[bool] = False

    def __init__(
        self,
        output_dir: Path,
        reference_dir: Path,
        overwrite: bool = False,
        *,
        limit: int = 0,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.reference_dir = Path(reference_dir)
        self.overwrite = overwrite
        self.limit = limit

    def spec(self) -> RendererSpec:
        return RendererSpec(name=self.name, supports_tiles=self.supports_tiles)

    def paint(self, map_state: MapState, grid: PixelGrid, scale_factor: float) -> np.ndarray:
        raise NotImplementedError

    def render(self, map_state: MapState, scale_factor: float) -> np.ndarray:
        return self.paint(map_state, PixelGrid.for_map(map_state), scale_factor)

    def render_tiles(self, map_state: MapState, tiles: TileGrid, scale_factor: float) -> np.ndarray:
        full = PixelGrid.for_map(map_state)
        tile_width = map_state.width // tiles.width
        tile_height = map_state.height // tiles.height
        buffer = int(round(TILE_BUFFER * scale_factor))
        rows: list[np.ndarray] = []
        for row in range(tiles.height):
            row_tiles: list[np.ndarray] = []
            for col in range(tiles.width):
                grid = full.window(
                    col * tile_width - buffer,
                    row * tile_height - buffer,
                    tile_width + 2 * buffer,
                    tile_height + 2 * buffer,
                )
                tile = self.paint(map_state, grid, scale_factor)
                row_tiles.append(tile[buffer : buffer + tile_height, buffer : buffer + tile_width])
            rows.append(np.concatenate(row_tiles, axis=1))
        return np.concatenate(rows, axis=0)

    def test(self, name: str, map_state: MapState, scale_factor: float) -> Result:
        start = perf_counter()
        image = self.render(map_state, scale_factor)
        size = Size(map_state.width, map_state.height)
        return self._report(image, name, size, SINGLE_TILE, scale_factor, perf_counter() - start)

    def test_tiles(
        self,
        name: str,
        map_state: MapState,
        tiles: TileGrid,
        scale_factor: float,
    ) -> Result:
        if not self.supports_tiles:
            raise NotImplementedError(f"Renderer '{self.name}' does not support tiles.")
        start = perf_counter()
        image = self.render_tiles(map_state, tiles, scale_factor)
        size = Size(map_state.width, map_state.height)
        return self._report(image, name, size, tiles, scale_factor, perf_counter() - start)

    def _file_name(
        self, name: str, size: Size, tiles: TileGrid, scale_factor: float, *, reference: bool
    ) -> str:
        return image_file_name(
            name,
            size,
            tiles,
            scale_factor,
            self.name,
            reference=reference,
            extension=self.spec().extension,
        )

    def _report(
        self,
        image: np.ndarray,
        name: str,
        size: Size,
        tiles: TileGrid,
        scale_factor: float,
        duration: float,
    ) -> Result:
        reference = self.reference_dir / self._file_name(
            name, size, tiles, scale_factor, reference=True
        )
        actual = self.output_dir / self._file_name(name, size, tiles, scale_factor, reference=False)
        fields = {
            "name": name,
            "renderer_name": self.name,
            "size": size,
            "tiles": tiles,
            "scale_factor": scale_factor,
            "reference_path": reference,
            "duration": duration,
        }

        if not reference.exists():
            if self.overwrite:
                write_image(reference, image)
                return Result(state=ResultState.OVERWRITE, **fields)
            write_image(actual, image)
            return Result(
                state=ResultState.SKIPPED,
                error_message=f"Reference image not found: {reference}",
                image_path=actual,
                **fields,
            )

        try:
            diff = count_different_pixels(image, read_image(reference))
        except (RasterioIOError, ValueError) as exc:
            LOGGER.debug("Comparison failed for %s: %s", reference, exc)
            write_image(actual, image)
            return Result(
                state=ResultState.ERROR,
                error_message=str(exc),
                image_path=actual,
                **fields,
            )

        if diff <= self.limit:
            return Result(state=ResultState.OK, diff=diff, **fields)
        write_image(actual, image)
        if self.overwrite:
            write_image(reference, image)
            return Result(state=ResultState.OVERWRITE, diff=diff, image_path=actual, **fields)
        return Result(state=ResultState.FAIL, diff=diff, image_path=actual, **fields)
