"""Image export for rendered pixel grids.

A pixel grid is a uint8 array of shape (height, width, 3), row 0 at the top.

Supported formats:
    - PPM (plain-text P3, the reference output format)
    - PNG (8-bit RGB via Pillow)

Example:
    >>> from pathtracer.output.export import save_image
    >>> pixels = renderer.render(scene)
    >>> save_image(pixels, "image.ppm")
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

PathLike = str | Path


def _check_grid(grid: npt.NDArray[np.uint8]) -> npt.NDArray[np.uint8]:
    grid = np.asarray(grid)
    if grid.ndim != 3 or grid.shape[2] != 3:
        raise ValueError(f"Pixel grid must have shape (height, width, 3), got {grid.shape}")
    if grid.dtype != np.uint8:
        raise ValueError(f"Pixel grid must have dtype uint8, got {grid.dtype}")
    return grid


def encode_ppm(grid: npt.NDArray[np.uint8]) -> str:
    """Encode a pixel grid as plain-text PPM (P3).

    The header is "P3", then "<width> <height>", then "255", each on its own
    line, followed by one "r g b" line per pixel in row-major order from the
    top row.

    Args:
        grid: Pixel grid of shape (height, width, 3) and dtype uint8.

    Returns:
        The PPM document text.

    Raises:
        ValueError: If the grid has the wrong shape or dtype.
    """
    grid = _check_grid(grid)
    height, width, _ = grid.shape
    header = f"P3\n{width} {height}\n255\n"
    lines = [f"{r} {g} {b}\n" for r, g, b in grid.reshape(-1, 3).tolist()]
    return header + "".join(lines)


def save_ppm(grid: npt.NDArray[np.uint8], filepath: PathLike) -> None:
    """Write a pixel grid as a P3 PPM file.

    Raises:
        OSError: If the file cannot be written.
    """
    text = encode_ppm(grid)
    Path(filepath).write_text(text, encoding="ascii")
    logger.debug("Wrote PPM %s", filepath)


def save_png(grid: npt.NDArray[np.uint8], filepath: PathLike) -> None:
    """Write a pixel grid as an 8-bit RGB PNG file.

    Raises:
        OSError: If the file cannot be written.
    """
    grid = _check_grid(grid)
    pil_image = PILImage.fromarray(grid, mode="RGB")
    pil_image.save(filepath, format="PNG")
    logger.debug("Wrote PNG %s", filepath)


def save_image(grid: npt.NDArray[np.uint8], filepath: PathLike) -> None:
    """Write a pixel grid, choosing the format from the file suffix.

    Args:
        grid: Pixel grid of shape (height, width, 3) and dtype uint8.
        filepath: Output path ending in .ppm or .png.

    Raises:
        ValueError: If the suffix is not a supported format.
        OSError: If the file cannot be written.
    """
    suffix = Path(filepath).suffix.lower()
    if suffix == ".ppm":
        save_ppm(grid, filepath)
    elif suffix == ".png":
        save_png(grid, filepath)
    else:
        raise ValueError(f"Unsupported image format {suffix!r}; use .ppm or .png")
