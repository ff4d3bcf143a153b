"""Monte Carlo radiance estimation and per-pixel sample accumulation.

This module holds the rendering kernels. Each camera ray is followed through
the scene, scattering off surfaces according to their material until it
escapes to the sky, is absorbed, or runs out of bounces:

    escaped:   throughput * sky_color(direction)
    absorbed:  black
    exhausted: black

The bounce loop is iterative with a running throughput, so path length is
bounded by max_bounces rather than recursion depth.

Pixels are independent work units. The accumulation kernel runs one thread
per pixel over ti.ndrange; each thread draws from its own random state and
writes only its own accumulator cell, and the kernel returning is the join.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.integrator import (
    ...     accumulate_samples, finalize_image, setup_render_target
    ... )
    >>> from pathtracer.camera.camera import Camera, setup_camera
    >>> from pathtracer.scene.presets import three_spheres_scene
    >>>
    >>> three_spheres_scene().upload()
    >>> geometry = setup_camera(Camera(render_width=64))
    >>> setup_render_target(64, geometry.render_height)
    >>> accumulate_samples(10, max_bounces=10)
    >>> pixels = finalize_image(10)
"""

import math

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtracer.camera.camera import sample_ray
from pathtracer.core.color import finalize_color, sky_color
from pathtracer.materials.dielectric import get_dielectric_ior, scatter_dielectric
from pathtracer.materials.lambertian import get_lambertian_albedo, scatter_lambertian
from pathtracer.materials.metal import get_metal_albedo, get_metal_fuzz, scatter_metal
from pathtracer.scene.intersection import intersect_scene
from pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

vec3 = tm.vec3

# Hits closer than T_MIN are ignored to avoid shadow acne on re-intersection
T_MIN = 0.001
T_MAX = math.inf

# =============================================================================
# Render Target
# =============================================================================

# Preallocated so changing resolution does not recompile kernels
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Unnormalized radiance sum per pixel, indexed [row, col]
_radiance_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))

# Finalized 8-bit colour per pixel, indexed [row, col]
_pixel_grid = ti.Vector.field(3, dtype=ti.i32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))

_samples_accumulated = ti.field(dtype=ti.i32, shape=())

# Output of trace_ray() and render_pixel()
_single_result = ti.Vector.field(3, dtype=ti.f32, shape=())

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the accumulation buffers.

    Args:
        width: Image width in pixels (1..MAX_IMAGE_WIDTH).
        height: Image height in pixels (1..MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If a dimension is out of range.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Zero the accumulation buffers, keeping the active size."""
    _radiance_sum.fill(0.0)
    _pixel_grid.fill(0)
    _samples_accumulated[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the active render target size as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def get_samples_accumulated() -> int:
    """Get the number of samples per pixel accumulated since the last clear."""
    return int(_samples_accumulated[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Scatter a ray off a surface according to its material.

    Args:
        material_id: Unified material ID of the hit surface.
        incident_direction: Direction of the incoming ray.
        normal: Unit normal opposing the incoming ray.
        front_face: 1 if the ray hit the outside of the surface.

    Returns:
        Tuple of (scattered_direction, attenuation, did_scatter). Unknown
        material IDs absorb.
    """
    mat_type = get_material_type(material_id)
    type_idx = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(type_idx)
        scattered_direction, attenuation, did_scatter = scatter_lambertian(albedo, normal)

    elif mat_type == int(MaterialType.METAL):
        albedo = get_metal_albedo(type_idx)
        fuzz = get_metal_fuzz(type_idx)
        scattered_direction, attenuation, did_scatter = scatter_metal(
            albedo, fuzz, incident_direction, normal
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        ior = get_dielectric_ior(type_idx)
        scattered_direction, attenuation, did_scatter = scatter_dielectric(
            ior, incident_direction, normal, front_face
        )

    return scattered_direction, attenuation, did_scatter


# =============================================================================
# Radiance Estimation
# =============================================================================


@ti.func
def radiance(origin: vec3, direction: vec3, max_bounces: ti.i32) -> vec3:
    """Estimate the radiance arriving along a ray.

    Args:
        origin: Ray origin.
        direction: Ray direction (need not be unit length).
        max_bounces: Number of surface interactions allowed. Zero yields
            black without tracing.

    Returns:
        Non-negative RGB radiance.
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    ray_origin = origin
    ray_direction = direction

    # Taichi has no break inside ti.func loops
    active = 1

    for _ in range(max_bounces):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)

            if rec.hit == 0:
                color = throughput * sky_color(ray_direction)
                active = 0
            else:
                scattered_direction, attenuation, did_scatter = _scatter_material(
                    rec.material_id, ray_direction, rec.normal, rec.front_face
                )

                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    ray_origin = rec.point
                    ray_direction = scattered_direction

    return color


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _accumulate_samples(
    height: ti.i32, width: ti.i32, num_samples: ti.i32, max_bounces: ti.i32
):
    for row, col in ti.ndrange(height, width):
        total = vec3(0.0, 0.0, 0.0)
        for _ in range(num_samples):
            ray = sample_ray(row, col)
            total += radiance(ray.origin, ray.direction, max_bounces)
        _radiance_sum[row, col] += total


@ti.kernel
def _finalize_pixels(height: ti.i32, width: ti.i32, samples_per_pixel: ti.i32):
    for row, col in ti.ndrange(height, width):
        _pixel_grid[row, col] = finalize_color(_radiance_sum[row, col], samples_per_pixel)


@ti.kernel
def _trace_single_ray(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    max_bounces: ti.i32,
):
    # Single-iteration outer loop keeps the bounce loop serial
    for _ in range(1):
        _single_result[None] = radiance(vec3(ox, oy, oz), vec3(dx, dy, dz), max_bounces)


@ti.kernel
def _render_single_pixel(row: ti.i32, col: ti.i32, num_samples: ti.i32, max_bounces: ti.i32):
    for _ in range(1):
        total = vec3(0.0, 0.0, 0.0)
        for _s in range(num_samples):
            ray = sample_ray(row, col)
            total += radiance(ray.origin, ray.direction, max_bounces)
        _single_result[None] = total


def accumulate_samples(num_samples: int, max_bounces: int) -> None:
    """Add num_samples radiance samples to every pixel of the render target.

    Uses the camera last uploaded with setup_camera() and the scene last
    uploaded with Scene.upload().

    Args:
        num_samples: Samples to add per pixel (>= 1).
        max_bounces: Bounce budget per path (>= 0).

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If num_samples < 1 or max_bounces < 0.
    """
    _check_render_target_initialized()
    if num_samples < 1:
        raise ValueError(f"num_samples must be at least 1, got {num_samples}")
    if max_bounces < 0:
        raise ValueError(f"max_bounces must be non-negative, got {max_bounces}")

    width, height = get_image_dimensions()
    _accumulate_samples(height, width, num_samples, max_bounces)
    _samples_accumulated[None] += num_samples


def finalize_image(samples_per_pixel: int | None = None) -> npt.NDArray[np.uint8]:
    """Convert the accumulated sums into an 8-bit pixel grid.

    Args:
        samples_per_pixel: Divisor for the sums. Defaults to the number of
            samples accumulated since the last clear.

    Returns:
        Array of shape (height, width, 3), row 0 at the top of the image.

    Raises:
        RuntimeError: If the render target has not been set up or holds no
            samples.
    """
    _check_render_target_initialized()
    if samples_per_pixel is None:
        samples_per_pixel = get_samples_accumulated()
    if samples_per_pixel < 1:
        raise RuntimeError("No samples accumulated; call accumulate_samples() first.")

    width, height = get_image_dimensions()
    _finalize_pixels(height, width, samples_per_pixel)
    grid = _pixel_grid.to_numpy()[:height, :width]
    return grid.astype(np.uint8)


def get_radiance_sum_numpy() -> npt.NDArray[np.float32]:
    """Get the unnormalized radiance sums of the active region, shape (H, W, 3)."""
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    return _radiance_sum.to_numpy()[:height, :width]


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_bounces: int,
) -> tuple[float, float, float]:
    """Estimate radiance along one ray against the uploaded scene.

    Args:
        origin: Ray origin.
        direction: Ray direction.
        max_bounces: Bounce budget (>= 0).

    Returns:
        The (R, G, B) radiance estimate.
    """
    _trace_single_ray(
        origin[0], origin[1], origin[2], direction[0], direction[1], direction[2], max_bounces
    )
    color = _single_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def render_pixel(
    row: int, col: int, num_samples: int, max_bounces: int
) -> tuple[float, float, float]:
    """Sum num_samples radiance samples for one pixel without touching the buffers.

    Args:
        row: Pixel row, 0 at the top.
        col: Pixel column, 0 at the left.
        num_samples: Number of samples to sum.
        max_bounces: Bounce budget per path.

    Returns:
        The unnormalized (R, G, B) sum.
    """
    _render_single_pixel(row, col, num_samples, max_bounces)
    total = _single_result[None]
    return (float(total[0]), float(total[1]), float(total[2]))
