"""SVG rasterization via CairoSVG."""

from __future__ import annotations

from io import BytesIO

from PIL import Image

from epd_home.errors import RenderInvariantError


def rasterize(scene: bytes) -> Image.Image:
    """Render SVG bytes onto a white RGB canvas at the scene's own size."""
    try:
        import cairosvg
    except (ImportError, OSError) as exc:
        raise RuntimeError(
            "Scene rasterization requires 'cairosvg' and the system cairo library."
        ) from exc

    try:
        png = cairosvg.svg2png(bytestring=scene, background_color="white")
    except Exception as exc:
        raise RenderInvariantError(f"Failed to rasterize scene: {exc}") from exc

    with Image.open(BytesIO(png)) as image:
        # Flatten any transparency onto white before dropping alpha.
        canvas = Image.new("RGBA", image.size, (255, 255, 255, 255))
        canvas.alpha_composite(image.convert("RGBA"))
        return canvas.convert("RGB")


__all__ = ["rasterize"]
