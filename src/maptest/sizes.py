"""Parsers for the compact size-list and bbox strings used by style parameters."""

from __future__ import annotations

import re

from maptest.errors import ParseError
from maptest.models import Bounds, Size, TileGrid

_PAIR = r"\s*\d+\s*{sep}\s*\d+\s*"
_SIZE_LIST = re.compile(rf"^{_PAIR.format(sep='x')}(?:,{_PAIR.format(sep='x')})*$", re.IGNORECASE)
_LEGACY_SIZE_LIST = re.compile(rf"^{_PAIR.format(sep=',')}(?:;{_PAIR.format(sep=',')})*$")
_NUMBER = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?$")


def _parse_pairs(text: str) -> list[tuple[int, int]]:
    """Parse ``WxH, WxH`` (or legacy ``W,H;W,H``) into integer pairs."""
    if _SIZE_LIST.match(text):
        tokens = [token.lower().split("x") for token in text.split(",")]
    elif _LEGACY_SIZE_LIST.match(text):
        tokens = [token.split(",") for token in text.split(";")]
    else:
        raise ParseError(f"Failed to parse list of sizes: '{text}'", text)
    return [(int(width), int(height)) for width, height in tokens]


def parse_sizes(text: str) -> list[Size]:
    """Parse a size-list string into output sizes."""
    return [Size(width, height) for width, height in _parse_pairs(text)]


def parse_tile_grids(text: str) -> list[TileGrid]:
    """Parse a size-list string into tile grids.

    Zero dimensions are accepted here and rejected when the render matrix
    is expanded.
    """
    return [TileGrid(width, height) for width, height in _parse_pairs(text)]


def parse_bbox(text: str) -> Bounds:
    """Parse ``minx,miny,maxx,maxy`` (commas and/or whitespace) into bounds.

    Corners may be given in either order; each axis is normalized to
    ``(min, max)``. A box with no area on either axis is rejected.
    """
    tokens = [token for token in re.split(r"[,\s]+", text.strip()) if token]
    if len(tokens) != 4 or not all(_NUMBER.match(token) for token in tokens):
        raise ParseError(f"Failed to parse bounding box: '{text}'", text)
    x0, y0, x1, y1 = (float(token) for token in tokens)
    if x0 == x1 or y0 == y1:
        raise ParseError(f"Bounding box is empty: '{text}'", text)
    return (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1))
