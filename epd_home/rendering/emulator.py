"""Bitmap output helpers for the e-paper pixel grid."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image

from epd_home.rendering.dither import PixelGrid


def grid_to_image(grid: PixelGrid) -> Image.Image:
    """Convert a pixel grid (True = black) to a 1-bit Pillow image."""
    levels = np.where(np.asarray(grid, dtype=bool), 0, 255).astype(np.uint8)
    return Image.fromarray(levels).convert("1", dither=Image.Dither.NONE)


def encode_bmp(grid: PixelGrid) -> bytes:
    """Encode a pixel grid as a monochrome BMP."""
    buffer = BytesIO()
    grid_to_image(grid).save(buffer, format="BMP")
    return buffer.getvalue()


def save_bitmap(grid: PixelGrid, path: str = "home.bmp") -> None:
    """Save a pixel grid to disk as a monochrome BMP."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(encode_bmp(grid))


__all__ = ["encode_bmp", "grid_to_image", "save_bitmap"]
