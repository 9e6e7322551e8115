"""Visual test orchestration: job splitting, workers, and per-style render matrices."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from itertools import product
from pathlib import Path
from typing import Iterable, Sequence

from maptest.config import Config, apply_style_overrides, parse_status
from maptest.errors import RenderConfigError, is_datasource_unavailable
from maptest.models import Result, Size, TileGrid, error_result
from maptest.renderers.base import Renderer, dispatch_render
from maptest.renderers.registry import create_renderers
from maptest.report import Report
from maptest.style.loader import STYLE_SUFFIX, load_map
from maptest.style.map_state import MapState

LOGGER = logging.getLogger(__name__)


def is_style_file(path: Path) -> bool:
    return path.suffix == STYLE_SUFFIX


def split_files(files: Sequence[Path], jobs: int) -> list[list[Path]]:
    """Partition files into contiguous slices, one per job.

    The last slice absorbs the remainder of ``len(files) // jobs``; when there
    are more jobs than files everything goes into a single slice.
    """
    if not files:
        return []
    jobs = max(1, jobs)
    chunk_size = len(files) // jobs
    if chunk_size == 0:
        return [list(files)]
    slices = []
    for index in range(jobs):
        start = index * chunk_size
        end = len(files) if index == jobs - 1 else start + chunk_size
        slices.append(list(files[start:end]))
    return slices


def validate_tiles(size: Size, tiles: TileGrid) -> None:
    """Raise RenderConfigError unless ``size`` splits evenly into ``tiles``."""
    if not tiles.width or not tiles.height:
        raise RenderConfigError("Cannot render zero tiles.")
    if size.width % tiles.width or size.height % tiles.height:
        raise RenderConfigError("Tile size is not an integer.")


class Runner:
    """Evaluate style documents against a fixed set of renderers."""

    def __init__(
        self,
        styles_dir: Path,
        output_dir: Path,
        reference_dir: Path,
        overwrite: bool = False,
        jobs: int = 1,
        *,
        renderers: Iterable[str] | Sequence[Renderer] | None = None,
        config: Config | None = None,
        limit: int = 0,
    ) -> None:
        self.styles_dir = Path(styles_dir)
        self.output_dir = Path(output_dir)
        self.reference_dir = Path(reference_dir)
        self.overwrite = overwrite
        self.jobs = jobs
        self.config = config or Config()
        self.renderers = self._resolve_renderers(renderers, limit)

    def _resolve_renderers(
        self,
        renderers: Iterable[str] | Sequence[Renderer] | None,
        limit: int,
    ) -> tuple[Renderer, ...]:
        if renderers is not None:
            renderers = list(renderers)
            if renderers and not all(isinstance(item, str) for item in renderers):
                return tuple(renderers)  # already instantiated backends
        return create_renderers(
            renderers,
            output_dir=self.output_dir,
            reference_dir=self.reference_dir,
            overwrite=self.overwrite,
            limit=limit,
        )

    def run_all(self, report: Report) -> list[Result]:
        """Evaluate every style document in ``styles_dir``."""
        files = sorted(self.styles_dir.iterdir())
        return self.run(files, report)

    def run_named(self, names: Iterable[str], report: Report) -> list[Result]:
        """Evaluate styles by name, appending the style suffix when absent."""
        files = []
        for name in names:
            if not name.endswith(STYLE_SUFFIX):
                name = f"{name}{STYLE_SUFFIX}"
            files.append(self.styles_dir / name)
        return self.run(files, report)

    def run(
        self,
        files: Sequence[Path],
        report: Report,
        jobs: int | None = None,
    ) -> list[Result]:
        """Split files across workers and merge their results in slice order."""
        slices = split_files(files, self.jobs if jobs is None else jobs)
        if not slices:
            return []
        if len(slices) == 1:
            return self.evaluate_range(slices[0], report)

        LOGGER.debug("Dispatching %d styles across %d workers", len(files), len(slices))
        results: list[Result] = []
        with ThreadPoolExecutor(
            max_workers=len(slices), thread_name_prefix="maptest-worker"
        ) as executor:
            futures = [executor.submit(self.evaluate_range, chunk, report) for chunk in slices]
            for future in futures:
                results.extend(future.result())
        return results

    def evaluate_range(
        self,
        files: Iterable[Path],
        report: Report,
        config: Config | None = None,
    ) -> list[Result]:
        """Evaluate a slice of files; a failing style becomes a single ERROR result."""
        base = config or self.config
        results: list[Result] = []
        for path in files:
            path = Path(path)
            if not is_style_file(path):
                continue
            try:
                results.extend(self.evaluate_style(path, base, report))
            except Exception as exc:
                LOGGER.error("Style evaluation failed: %s", exc, extra={"style": path.stem})
                result = error_result(str(path), str(exc))
                report.report(result)
                results.append(result)
        return results

    def evaluate_style(self, path: Path, config: Config, report: Report) -> list[Result]:
        """Render one style across its size x scale x tiles matrix."""
        name = path.stem
        first = config.sizes[0]
        map_state = MapState(first.width, first.height)
        try:
            load_map(map_state, path)
        except Exception as exc:
            if is_datasource_unavailable(exc):
                LOGGER.warning("Skipping style: %s", exc, extra={"style": name})
                return []
            raise

        params = map_state.parameters
        if not parse_status(params.get("status"), config.status):
            LOGGER.debug("Style disabled by status parameter", extra={"style": name})
            return []
        config = apply_style_overrides(config, params)

        results: list[Result] = []
        for size, scale_factor, tiles in product(config.sizes, config.scales, config.tiles):
            validate_tiles(size, tiles)
            for renderer in self.renderers:
                map_state.resize(size.width, size.height)
                if config.bbox is not None:
                    map_state.zoom_to_box(config.bbox)
                else:
                    map_state.zoom_all()
                result = dispatch_render(renderer, name, map_state, tiles, scale_factor)
                if result is None:
                    continue
                report.report(result)
                results.append(result)
        return results
