"""Camera module: thin-lens camera configuration and ray sampling.

Camera responsibilities:
    - Derive the view basis and pixel grid from look-at parameters
    - Jitter samples within each pixel for anti-aliasing
    - Offset ray origins across a defocus disk for depth of field

Pixel coordinates are (row, col) with row 0 at the top of the image.
"""

from .camera import (
    Camera,
    CameraGeometry,
    compute_render_height,
    get_camera_center,
    get_camera_info,
    pixel_center,
    sample_ray,
    setup_camera,
)

__all__ = [
    "Camera",
    "CameraGeometry",
    "compute_render_height",
    "setup_camera",
    "sample_ray",
    "pixel_center",
    "get_camera_center",
    "get_camera_info",
]
