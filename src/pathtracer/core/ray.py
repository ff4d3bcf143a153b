"""Ray data structure and vector utilities for the path tracer.

This module provides the Ray dataclass together with the vector helpers and
random sampling routines used by geometry, materials and the camera. All
operations are Taichi functions so they can run inside render kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import math

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Components below this magnitude count as zero when testing scatter directions
NEAR_ZERO_EPSILON = 1e-8


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to be
            normalized; camera and scattered rays generally are not.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a Taichi kernel."""
    return Ray(origin=origin, direction=direction)


def degrees_to_radians(degrees: float) -> float:
    """Convert an angle in degrees to radians."""
    return degrees * math.pi / 180.0


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector (no square root)."""
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length."""
    return tm.normalize(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    return tm.cross(a, b)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        incident - 2 * (incident . normal) * normal
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract a unit incident vector through a surface using Snell's law.

    The result is assembled from the components perpendicular and parallel
    to the normal. Callers are expected to rule out total internal reflection
    beforehand; the absolute value under the square root keeps the result
    finite if they do not.

    Args:
        incident: The incoming direction (unit length).
        normal: The surface normal, opposing the incident direction.
        eta: The ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted direction.
    """
    cos_theta = tm.min(tm.dot(-incident, normal), 1.0)
    r_out_perp = eta * (incident + cos_theta * normal)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - tm.dot(r_out_perp, r_out_perp))) * normal
    return r_out_perp + r_out_parallel


@ti.func
def schlick_reflectance(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Approximate Fresnel reflectance with Schlick's formula.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ref_idx: Ratio of refractive indices.

    Returns:
        r0 + (1 - r0) * (1 - cosine)^5 where r0 = ((1 - ref_idx) / (1 + ref_idx))^2.
    """
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Return 1 if every component of v is below NEAR_ZERO_EPSILON in magnitude."""
    s = NEAR_ZERO_EPSILON
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_in_unit_sphere() -> vec3:
    """Generate a random point strictly inside the unit sphere.

    Uses rejection sampling. Random state is per Taichi thread, so every
    pixel task draws from its own stream.

    Returns:
        A random point with length < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    # Rejection sampling loop
    for _ in range(100):  # Max iterations to avoid infinite loops
        if not found:
            p = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
            )
            if length_squared(p) < 1.0 and length_squared(p) > 1e-12:
                found = True
    return p


@ti.func
def random_unit_vector() -> vec3:
    """Generate a random unit vector uniformly distributed on the sphere."""
    return normalize(random_in_unit_sphere())


@ti.func
def random_in_unit_disk() -> vec3:
    """Generate a random point (x, y, 0) inside the unit disk.

    Used for sampling the camera's defocus disk.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(100):  # Max iterations to avoid infinite loops
        if not found:
            p = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                0.0,
            )
            if p.x * p.x + p.y * p.y < 1.0:
                found = True
    return p
