"""Registry of renderer backends: built-ins plus package entry points."""

from __future__ import annotations

import logging
from functools import lru_cache
from importlib import metadata
from pathlib import Path
from typing import Callable, Iterable, Iterator

from maptest.renderers.base import Renderer
from maptest.renderers.grid import GridRenderer
from maptest.renderers.raster import RasterRenderer

RendererFactory = Callable[..., Renderer]
RENDERER_ENTRYPOINT_GROUP = "maptest.renderers"

LOGGER = logging.getLogger(__name__)

_BUILTIN_RENDERERS: dict[str, RendererFactory] = {
    "raster": RasterRenderer,
    "grid": GridRenderer,
}


def _plugin_renderers() -> Iterator[tuple[str, RendererFactory]]:
    """Yield ``(name, factory)`` for each usable plugin renderer.

    A plugin that fails to import or does not expose a factory is logged
    and left out; it never stops the built-in backends from loading.
    """
    for entry_point in metadata.entry_points(group=RENDERER_ENTRYPOINT_GROUP):
        try:
            factory = entry_point.load()
        except Exception as exc:
            LOGGER.warning("Renderer plugin '%s' could not be imported: %s", entry_point.name, exc)
            continue
        if callable(factory):
            yield entry_point.name, factory
        else:
            LOGGER.warning(
                "Renderer plugin '%s' exposes %s, not a renderer factory.",
                entry_point.name,
                type(factory).__name__,
            )


@lru_cache(maxsize=1)
def _renderer_factories() -> dict[str, RendererFactory]:
    """Return the name to factory table; built-in names cannot be replaced."""
    factories = dict(_BUILTIN_RENDERERS)
    for name, factory in _plugin_renderers():
        if factories.setdefault(name, factory) is not factory:
            LOGGER.warning("Renderer plugin '%s' ignored: name already in use.", name)
    return factories


def refresh_renderers() -> None:
    """Forget discovered plugins so the next lookup scans entry points again."""
    _renderer_factories.cache_clear()


def available_renderers() -> list[str]:
    """Return registered renderer names, built-ins first."""
    return list(_renderer_factories())


def create_renderer(
    name: str,
    *,
    output_dir: Path,
    reference_dir: Path,
    overwrite: bool = False,
    limit: int = 0,
) -> Renderer:
    """Instantiate a renderer by name."""
    try:
        factory = _renderer_factories()[name]
    except KeyError as exc:
        raise KeyError(f"Unknown renderer: {name}") from exc
    return factory(output_dir, reference_dir, overwrite, limit=limit)


def create_renderers(
    names: Iterable[str] | None,
    *,
    output_dir: Path,
    reference_dir: Path,
    overwrite: bool = False,
    limit: int = 0,
) -> tuple[Renderer, ...]:
    """Instantiate the fixed renderer set for a run (all registered when names is None)."""
    selected = available_renderers() if names is None else list(dict.fromkeys(names))
    return tuple(
        create_renderer(
            name,
            output_dir=output_dir,
            reference_dir=reference_dir,
            overwrite=overwrite,
            limit=limit,
        )
        for name in selected
    )
