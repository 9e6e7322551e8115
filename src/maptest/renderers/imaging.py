"""PNG input/output and pixel comparison for rendered images."""

from __future__ import annotations

import warnings
from pathlib import Path

import numpy as np
import rasterio
from rasterio.errors import NotGeoreferencedWarning


def write_image(path: Path, image: np.ndarray) -> None:
    """Write a HxW or HxWxC array as PNG, creating parent directories."""
    bands = image[np.newaxis, ...] if image.ndim == 2 else np.moveaxis(image, -1, 0)
    count, height, width = bands.shape
    path.parent.mkdir(parents=True, exist_ok=True)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NotGeoreferencedWarning)
        with rasterio.Env(GDAL_PAM_ENABLED="NO"):
            with rasterio.open(
                path,
                "w",
                driver="PNG",
                width=width,
                height=height,
                count=count,
                dtype=bands.dtype,
            ) as dataset:
                dataset.write(bands)


def read_image(path: Path) -> np.ndarray:
    """Read a PNG written by ``write_image`` back into HxW or HxWxC layout."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NotGeoreferencedWarning)
        with rasterio.Env(GDAL_PAM_ENABLED="NO"):
            with rasterio.open(path) as dataset:
                data = dataset.read()
    if data.shape[0] == 1:
        return data[0]
    return np.moveaxis(data, 0, -1)


def count_different_pixels(actual: np.ndarray, expected: np.ndarray) -> int:
    """Return the number of pixels whose value differs in any channel."""
    if actual.shape != expected.shape:
        raise ValueError(
            f"Image shape {actual.shape} does not match reference shape {expected.shape}"
        )
    different = actual != expected
    if different.ndim == 3:
        different = different.any(axis=-1)
    return int(different.sum())
