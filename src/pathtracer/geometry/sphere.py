"""Sphere primitive with ray-sphere intersection.

The intersection solves the half-b form of the quadratic

    a*t^2 + 2*half_b*t + c = 0

with a = |d|^2, half_b = oc . d, c = |oc|^2 - r^2 and oc = origin - center,
accepting the nearest root inside the open interval (t_min, t_max).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: 1 if the ray intersected the sphere, 0 on a miss.
        t: The ray parameter of the intersection. Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        normal: Unit surface normal, always opposing the incoming ray
            (outward for front-face hits, inward otherwise).
        front_face: 1 if the ray approached from outside the sphere, else 0.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    The smaller root is tried first; if it falls outside the open interval
    (t_min, t_max) the larger root is tried. A zero-length direction is
    treated as a miss.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        sphere: The sphere to test intersection against.
        t_min: Exclusive lower bound on accepted t values.
        t_max: Exclusive upper bound on accepted t values.

    Returns:
        A HitRecord; check its hit field to determine if intersection occurred.
    """
    oc = ray_origin - sphere.center

    a = tm.dot(ray_direction, ray_direction)
    half_b = tm.dot(oc, ray_direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = half_b * half_b - a * c

    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if discriminant >= 0.0 and a > 0.0:
        sqrt_d = ti.sqrt(discriminant)

        root = (-half_b - sqrt_d) / a
        valid = root > t_min and root < t_max

        if not valid:
            root = (-half_b + sqrt_d) / a
            valid = root > t_min and root < t_max

        if valid:
            did_hit = 1
            hit_t = root
            hit_point = ray_origin + root * ray_direction

            outward_normal = (hit_point - sphere.center) / sphere.radius

            if tm.dot(ray_direction, outward_normal) < 0.0:
                is_front_face = 1
                hit_normal = outward_normal
            else:
                # Ray is inside the sphere, hitting back face
                is_front_face = 0
                hit_normal = -outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius inside a Taichi kernel."""
    return Sphere(center=center, radius=radius)
