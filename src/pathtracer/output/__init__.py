"""Output module: image serialization for rendered pixel grids."""

from pathtracer.output.export import encode_ppm, save_image, save_png, save_ppm

__all__ = [
    "encode_ppm",
    "save_ppm",
    "save_png",
    "save_image",
]
