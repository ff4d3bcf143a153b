"""Core rendering module.

Components:
    ray: Ray data structure, vector helpers and random sampling
    color: Sky background and pixel finalisation
    integrator: Radiance estimator and per-pixel render kernels
    renderer: Render driver with batching and progress reporting

All compute-intensive operations run in Taichi kernels, parallel over pixels.
"""

from .ray import (
    NEAR_ZERO_EPSILON,
    Ray,
    cross,
    degrees_to_radians,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)

# Note: color, integrator and renderer are NOT imported here to avoid circular
# imports (the integrator depends on camera, scene and materials, which depend
# on core.ray). Import them directly, e.g.:
#   from pathtracer.core.renderer import Renderer

__all__ = [
    "NEAR_ZERO_EPSILON",
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "degrees_to_radians",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
]
