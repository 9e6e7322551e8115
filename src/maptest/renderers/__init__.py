"""Renderer backend exports."""

from maptest.renderers.base import (
    ImageRenderer,
    Renderer,
    RendererSpec,
    dispatch_render,
    image_file_name,
)
from maptest.renderers.grid import GridRenderer
from maptest.renderers.raster import RasterRenderer
from maptest.renderers.registry import available_renderers, create_renderer, create_renderers

__all__ = [
    "GridRenderer",
    "ImageRenderer",
    "RasterRenderer",
    "Renderer",
    "RendererSpec",
    "available_renderers",
    "create_renderer",
    "create_renderers",
    "dispatch_render",
    "image_file_name",
]
