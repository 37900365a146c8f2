"""Scene rendering and 1-bit conversion for the e-paper panel."""

from epd_home.rendering.dither import PixelGrid, image_to_pixel_grid
from epd_home.rendering.emulator import encode_bmp, save_bitmap
from epd_home.rendering.frame_data import ArrivalEntry, ArrivalTime, DisplayModel, Icon, WeatherSample
from epd_home.rendering.scene import error_scene, render_scene

__all__ = [
    "ArrivalEntry",
    "ArrivalTime",
    "DisplayModel",
    "Icon",
    "PixelGrid",
    "WeatherSample",
    "encode_bmp",
    "error_scene",
    "image_to_pixel_grid",
    "render_scene",
    "save_bitmap",
]
