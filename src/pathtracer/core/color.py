"""Colour helpers: sky background and pixel finalisation.

A pixel's radiance samples are summed unnormalized while rendering. Turning
the sum into a displayable 8-bit colour takes four steps per channel:

    average   = sum / samples_per_pixel
    gamma     = sqrt(average)            (gamma 2.0 approximation)
    clamped   = clamp(gamma, 0, 0.999)
    quantized = floor(256 * clamped)     (0..255)
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3
ivec3 = tm.ivec3

# Background gradient endpoints: white at the horizon, sky blue overhead
SKY_WHITE = (1.0, 1.0, 1.0)
SKY_BLUE = (0.5, 0.7, 1.0)

# Upper clamp before quantization so 1.0 maps to 255, not 256
MAX_INTENSITY = 0.999


@ti.func
def sky_color(direction: vec3) -> vec3:
    """Vertical background gradient seen by rays that escape the scene.

    Args:
        direction: Ray direction (any non-zero length).

    Returns:
        White for straight-down rays blending to sky blue for straight-up rays.
    """
    unit_direction = tm.normalize(direction)
    a = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - a) * vec3(SKY_WHITE) + a * vec3(SKY_BLUE)


@ti.func
def finalize_color(total: vec3, samples_per_pixel: ti.i32) -> ivec3:
    """Average, gamma-correct, clamp and quantize a pixel's radiance sum.

    Args:
        total: Unnormalized sum of the pixel's radiance samples.
        samples_per_pixel: Number of samples in the sum.

    Returns:
        The 8-bit RGB value as integers in [0, 255].
    """
    scale = 1.0 / ti.cast(samples_per_pixel, ti.f32)
    result = ivec3(0, 0, 0)
    for c in ti.static(range(3)):
        gamma = ti.sqrt(tm.max(total[c] * scale, 0.0))
        if tm.isnan(gamma):
            gamma = 0.0
        clamped = tm.clamp(gamma, 0.0, MAX_INTENSITY)
        result[c] = ti.cast(ti.floor(256.0 * clamped), ti.i32)
    return result


@ti.kernel
def _finalize_single(r: ti.f32, g: ti.f32, b: ti.f32, samples_per_pixel: ti.i32) -> ivec3:
    return finalize_color(vec3(r, g, b), samples_per_pixel)


def finalize_radiance(
    total: tuple[float, float, float], samples_per_pixel: int
) -> tuple[int, int, int]:
    """Finalize a single radiance sum from Python.

    Args:
        total: Unnormalized (R, G, B) radiance sum.
        samples_per_pixel: Number of samples in the sum (>= 1).

    Returns:
        The 8-bit (R, G, B) colour.

    Raises:
        ValueError: If samples_per_pixel is less than 1.
    """
    if samples_per_pixel < 1:
        raise ValueError(f"samples_per_pixel must be at least 1, got {samples_per_pixel}")
    color = _finalize_single(total[0], total[1], total[2], samples_per_pixel)
    return (int(color[0]), int(color[1]), int(color[2]))
