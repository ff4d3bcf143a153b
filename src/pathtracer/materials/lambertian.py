"""Lambertian (ideal diffuse) material implementation.

Diffuse scattering picks the direction normal + random_unit_vector(), which
distributes scattered rays with a cosine falloff around the normal. The ray
is never absorbed; each bounce is tinted by the albedo.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.lambertian import scatter_lambertian
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter = scatter_lambertian(albedo, normal)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import near_zero, random_unit_vector

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class LambertianMaterial:
    """Lambertian (ideal diffuse) material properties.

    Attributes:
        albedo: The diffuse reflectance color (RGB, each component in [0, 1]).
    """

    albedo: vec3


@ti.func
def scatter_lambertian(
    albedo: vec3,
    normal: vec3,
):
    """Sample a scattered ray direction for Lambertian material.

    If the random unit vector almost exactly cancels the normal, the
    direction falls back to the normal itself.

    Args:
        albedo: The diffuse reflectance color (RGB, each component in [0, 1]).
        normal: The surface normal at the hit point (unit length).

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where
        attenuation is the albedo and did_scatter is always 1.
    """
    scattered_direction = normal + random_unit_vector()

    # Catch degenerate scatter direction
    if near_zero(scattered_direction):
        scattered_direction = normal

    attenuation = albedo
    did_scatter = 1

    return scattered_direction, attenuation, did_scatter


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 256

# Storage for Lambertian material properties
lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Add a Lambertian material to the material registry.

    Parameters are validated by the scene builder before they get here.

    Args:
        albedo: The diffuse reflectance color as (R, G, B) tuple.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a Lambertian material by index."""
    return lambertian_albedos[material_idx]
