"""Grayscale conversion and 1-bit error-diffusion dithering for the e-paper panel."""

from __future__ import annotations

import numpy as np
from PIL import Image

from epd_home.errors import RenderInvariantError

# ITU-R BT.601 luma weights
RED_WEIGHT = 0.299
GREEN_WEIGHT = 0.587
BLUE_WEIGHT = 0.114

BLACK = 0.0
WHITE = 255.0
THRESHOLD = (BLACK + WHITE) / 2

# (dx, dy, weight); the current pixel sits at (0, 0)
STUCKI_KERNEL = (
    (1, 0, 8), (2, 0, 4),
    (-2, 1, 2), (-1, 1, 4), (0, 1, 8), (1, 1, 4), (2, 1, 2),
    (-2, 2, 1), (-1, 2, 2), (0, 2, 4), (1, 2, 2), (2, 2, 1),
)
STUCKI_DIVISOR = 42

PixelGrid = np.ndarray  # bool, shape (height, width), True = black


def to_grayscale(rgb: np.ndarray) -> np.ndarray:
    """Chroma-corrected luminance of an (H, W, 3) RGB array, as float64."""
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise RenderInvariantError(f"Expected an (H, W, 3) RGB array, got shape {rgb.shape}")
    channels = rgb.astype(np.float64)
    return (
        channels[:, :, 0] * RED_WEIGHT
        + channels[:, :, 1] * GREEN_WEIGHT
        + channels[:, :, 2] * BLUE_WEIGHT
    )


def stucki_dither(gray: np.ndarray) -> PixelGrid:
    """Quantize a grayscale array to black/white with Stucki error diffusion.

    A single pass in raster order; error only flows to pixels not yet visited.
    """
    height, width = gray.shape
    rows = gray.astype(np.float64).tolist()
    output = np.zeros((height, width), dtype=bool)

    for y in range(height):
        row = rows[y]
        for x in range(width):
            old = row[x]
            new = WHITE if old > THRESHOLD else BLACK
            if new == BLACK:
                output[y, x] = True
            error = old - new
            if error == 0.0:
                continue
            for dx, dy, weight in STUCKI_KERNEL:
                nx = x + dx
                ny = y + dy
                if 0 <= nx < width and ny < height:
                    rows[ny][nx] += error * weight / STUCKI_DIVISOR

    return output


def image_to_pixel_grid(image: Image.Image, expected_size: tuple[int, int]) -> PixelGrid:
    """Turn a rasterized RGB scene into the panel's 1-bit pixel grid."""
    if image.size != expected_size:
        raise RenderInvariantError(
            "Rendered scene size mismatch. "
            f"Expected {expected_size}, got {image.size}."
        )
    rgb = np.asarray(image.convert("RGB"), dtype=np.uint8)
    return stucki_dither(to_grayscale(rgb))


__all__ = [
    "PixelGrid",
    "STUCKI_DIVISOR",
    "STUCKI_KERNEL",
    "image_to_pixel_grid",
    "stucki_dither",
    "to_grayscale",
]
