"""Thin-lens camera model for primary ray generation.

The camera supports:
- Look-at positioning (lookfrom, lookat, vup)
- Vertical field of view in degrees
- Arbitrary aspect ratios
- Jittered sampling for anti-aliasing
- Depth of field through a defocus disk

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport sits at focus_dist in front of the camera. Pixel rows advance
downward, so row 0 is the top of the image.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.camera import Camera, setup_camera, sample_ray
    >>>
    >>> camera = Camera(
    ...     render_width=400,
    ...     aspect_ratio=16.0 / 9.0,
    ...     lookfrom=(0.0, 0.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ... )
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     ray = sample_ray(0, 0)  # Jittered ray through the top-left pixel
"""

import logging
import math
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt
import taichi as ti

from pathtracer.core.ray import Ray, degrees_to_radians, make_ray, random_in_unit_disk, vec3
from pathtracer.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Fields whose assignment invalidates the derived geometry
_CONFIG_FIELDS = frozenset(
    {
        "render_width",
        "aspect_ratio",
        "samples_per_pixel",
        "max_bounces",
        "vfov",
        "lookfrom",
        "lookat",
        "vup",
        "defocus_angle",
        "focus_dist",
    }
)


# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass(frozen=True)
class CameraGeometry:
    """Viewing geometry derived from a Camera configuration.

    Attributes:
        render_height: Image height in pixels.
        center: Camera position (ray origin without defocus).
        u: Right basis vector.
        v: Up basis vector.
        w: Backward basis vector (opposite the view direction).
        pixel00: World-space center of the top-left pixel.
        pixel_delta_u: Offset from one pixel to the next one to the right.
        pixel_delta_v: Offset from one pixel to the next one below.
        defocus_disk_u: Horizontal radius vector of the defocus disk.
        defocus_disk_v: Vertical radius vector of the defocus disk.
        viewport_width: Viewport width in world units.
        viewport_height: Viewport height in world units.
    """

    render_height: int
    center: npt.NDArray[np.float64]
    u: npt.NDArray[np.float64]
    v: npt.NDArray[np.float64]
    w: npt.NDArray[np.float64]
    pixel00: npt.NDArray[np.float64]
    pixel_delta_u: npt.NDArray[np.float64]
    pixel_delta_v: npt.NDArray[np.float64]
    defocus_disk_u: npt.NDArray[np.float64]
    defocus_disk_v: npt.NDArray[np.float64]
    viewport_width: float
    viewport_height: float


def compute_render_height(render_width: int, aspect_ratio: float) -> int:
    """Image height for a width and aspect ratio, rounded half up and at least 1."""
    return max(1, math.floor(render_width / aspect_ratio + 0.5))


@dataclass
class Camera:
    """Render configuration and viewing parameters.

    Derived geometry is computed by initialize(). Assigning any
    configuration attribute afterwards discards it, so geometry is never
    read from a stale configuration.

    Attributes:
        render_width: Image width in pixels.
        aspect_ratio: Image width divided by height.
        samples_per_pixel: Number of jittered samples averaged per pixel.
        max_bounces: Maximum number of scattering events per path.
        vfov: Vertical field of view in degrees.
        lookfrom: Camera position in world space.
        lookat: Point the camera is looking at in world space.
        vup: Up direction used to orient the camera.
        defocus_angle: Cone angle in degrees of rays through each pixel.
            Values <= 0 give a pinhole camera with everything in focus.
        focus_dist: Distance from lookfrom to the plane of perfect focus.
    """

    render_width: int = 400
    aspect_ratio: float = 16.0 / 9.0
    samples_per_pixel: int = 10
    max_bounces: int = 10
    vfov: float = 90.0
    lookfrom: tuple[float, float, float] = (0.0, 0.0, 0.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    defocus_angle: float = 0.0
    focus_dist: float = 1.0
    _geometry: CameraGeometry | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.validate()

    def __setattr__(self, name: str, value: object) -> None:
        super().__setattr__(name, value)
        if name in _CONFIG_FIELDS:
            super().__setattr__("_geometry", None)

    def validate(self) -> None:
        """Check the configuration.

        Raises:
            ConfigurationError: If any parameter is out of range.
        """
        if self.render_width <= 0:
            raise ConfigurationError(f"render_width must be positive, got {self.render_width}")
        if not math.isfinite(self.aspect_ratio) or self.aspect_ratio <= 0.0:
            raise ConfigurationError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.samples_per_pixel < 1:
            raise ConfigurationError(
                f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}"
            )
        if self.max_bounces < 0:
            raise ConfigurationError(f"max_bounces must be >= 0, got {self.max_bounces}")
        if not 0.0 < self.vfov < 180.0:
            raise ConfigurationError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if not math.isfinite(self.focus_dist) or self.focus_dist <= 0.0:
            raise ConfigurationError(f"focus_dist must be positive, got {self.focus_dist}")
        if not math.isfinite(self.defocus_angle) or self.defocus_angle >= 180.0:
            raise ConfigurationError(
                f"defocus_angle must be below 180 degrees, got {self.defocus_angle}"
            )
        for name in ("lookfrom", "lookat", "vup"):
            value = getattr(self, name)
            if len(value) != 3 or not all(math.isfinite(c) for c in value):
                raise ConfigurationError(f"{name} must be 3 finite components, got {value}")

    @property
    def is_initialized(self) -> bool:
        return self._geometry is not None

    @property
    def geometry(self) -> CameraGeometry:
        """The derived viewing geometry.

        Raises:
            RuntimeError: If initialize() has not been called since the last
                configuration change.
        """
        if self._geometry is None:
            raise RuntimeError("Camera not initialized. Call initialize() first.")
        return self._geometry

    @property
    def render_height(self) -> int:
        return self.geometry.render_height

    def initialize(self) -> CameraGeometry:
        """Derive the viewing basis, pixel grid and defocus disk.

        Returns:
            The derived geometry, also available as camera.geometry.

        Raises:
            ConfigurationError: If the configuration is invalid or the view
                basis is degenerate (lookfrom == lookat, or vup parallel to
                the view direction).
        """
        self.validate()

        render_height = compute_render_height(self.render_width, self.aspect_ratio)

        center = np.array(self.lookfrom, dtype=np.float64)
        lookat = np.array(self.lookat, dtype=np.float64)
        vup = np.array(self.vup, dtype=np.float64)

        # Viewport dimensions at the focus plane
        theta = degrees_to_radians(self.vfov)
        h = math.tan(theta / 2.0)
        viewport_height = 2.0 * h * self.focus_dist
        viewport_width = viewport_height * self.render_width / render_height

        # w points from lookat toward lookfrom (backward)
        w = center - lookat
        w_norm = np.linalg.norm(w)
        if w_norm == 0.0:
            raise ConfigurationError("lookfrom and lookat must be different points")
        w = w / w_norm

        # u points right (perpendicular to w and vup)
        u = np.cross(vup, w)
        u_norm = np.linalg.norm(u)
        if u_norm < 1e-12:
            raise ConfigurationError("vup must not be parallel to the view direction")
        u = u / u_norm

        # v points up in the camera's frame
        v = np.cross(w, u)

        # Viewport edges; rows advance downward, hence -v
        viewport_u = viewport_width * u
        viewport_v = viewport_height * -v

        pixel_delta_u = viewport_u / self.render_width
        pixel_delta_v = viewport_v / render_height

        viewport_upper_left = center - self.focus_dist * w - viewport_u / 2.0 - viewport_v / 2.0
        pixel00 = viewport_upper_left + 0.5 * (pixel_delta_u + pixel_delta_v)

        defocus_radius = self.focus_dist * math.tan(degrees_to_radians(self.defocus_angle / 2.0))

        geometry = CameraGeometry(
            render_height=render_height,
            center=center,
            u=u,
            v=v,
            w=w,
            pixel00=pixel00,
            pixel_delta_u=pixel_delta_u,
            pixel_delta_v=pixel_delta_v,
            defocus_disk_u=u * defocus_radius,
            defocus_disk_v=v * defocus_radius,
            viewport_width=viewport_width,
            viewport_height=viewport_height,
        )
        super().__setattr__("_geometry", geometry)

        logger.debug("Image size: %dx%d", self.render_width, render_height)
        logger.debug("Viewport: %.4f x %.4f", viewport_width, viewport_height)
        return geometry


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

_camera_center = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward (opposite view)
_pixel00 = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_disk_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_disk_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_angle = ti.field(dtype=ti.f32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per render)
# =============================================================================


def setup_camera(camera: Camera) -> CameraGeometry:
    """Initialize the camera and upload its geometry to Taichi fields.

    The camera is always re-initialized so the uploaded geometry matches the
    current configuration.

    Args:
        camera: Camera configuration.

    Returns:
        The derived geometry.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    geometry = camera.initialize()

    _camera_center[None] = geometry.center.tolist()
    _camera_u[None] = geometry.u.tolist()
    _camera_v[None] = geometry.v.tolist()
    _camera_w[None] = geometry.w.tolist()
    _pixel00[None] = geometry.pixel00.tolist()
    _pixel_delta_u[None] = geometry.pixel_delta_u.tolist()
    _pixel_delta_v[None] = geometry.pixel_delta_v.tolist()
    _defocus_disk_u[None] = geometry.defocus_disk_u.tolist()
    _defocus_disk_v[None] = geometry.defocus_disk_v.tolist()
    _defocus_angle[None] = camera.defocus_angle

    return geometry


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def _pixel_sample_square() -> vec3:
    """Random offset within the square surrounding a pixel center."""
    px = ti.random(ti.f32) - 0.5
    py = ti.random(ti.f32) - 0.5
    return px * _pixel_delta_u[None] + py * _pixel_delta_v[None]


@ti.func
def _defocus_disk_sample() -> vec3:
    """Random point on the camera's defocus disk."""
    p = random_in_unit_disk()
    return _camera_center[None] + p.x * _defocus_disk_u[None] + p.y * _defocus_disk_v[None]


@ti.func
def pixel_center(row: ti.i32, col: ti.i32) -> vec3:
    """World-space center of pixel (row, col); row 0 is the top of the image."""
    return (
        _pixel00[None]
        + ti.cast(col, ti.f32) * _pixel_delta_u[None]
        + ti.cast(row, ti.f32) * _pixel_delta_v[None]
    )


@ti.func
def sample_ray(row: ti.i32, col: ti.i32) -> Ray:
    """Generate a randomly jittered camera ray for pixel (row, col).

    The ray passes through a random point of the pixel's footprint on the
    focus plane. Its origin is the camera center for a pinhole camera and a
    random point on the defocus disk otherwise.

    Args:
        row: Pixel row (0 = top).
        col: Pixel column (0 = left).

    Returns:
        A Ray with an unnormalized direction.
    """
    pixel_sample = pixel_center(row, col) + _pixel_sample_square()

    origin = _camera_center[None]
    if _defocus_angle[None] > 0.0:
        origin = _defocus_disk_sample()

    return make_ray(origin, pixel_sample - origin)


@ti.func
def get_camera_center() -> vec3:
    return _camera_center[None]


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Read back the uploaded camera state for debugging.

    Returns:
        Dictionary with center, u, v, w, pixel00, pixel_delta_u,
        pixel_delta_v, defocus_disk_u and defocus_disk_v.
    """
    fields = {
        "center": _camera_center,
        "u": _camera_u,
        "v": _camera_v,
        "w": _camera_w,
        "pixel00": _pixel00,
        "pixel_delta_u": _pixel_delta_u,
        "pixel_delta_v": _pixel_delta_v,
        "defocus_disk_u": _defocus_disk_u,
        "defocus_disk_v": _defocus_disk_v,
    }
    info = {}
    for name, f in fields.items():
        vec = f[None]
        info[name] = (float(vec[0]), float(vec[1]), float(vec[2]))
    return info

