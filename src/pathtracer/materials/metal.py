"""Metal (specular reflective) material implementation.

Metals mirror the incoming direction about the normal:

    R = I - 2(I . N)N

and then perturb the result by fuzz * random_unit_vector() to emulate a
rough surface. A perturbed direction that ends up at or below the surface
is absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.metal import scatter_metal
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter = scatter_metal(
    >>> #     albedo, fuzz, incident_dir, normal
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import random_unit_vector, reflect

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class MetalMaterial:
    """Metal (specular reflective) material properties.

    Attributes:
        albedo: The reflective color (RGB, each component in [0, 1]).
        fuzz: Reflection perturbation in [0, 1]. 0 = perfect mirror.
    """

    albedo: vec3
    fuzz: ti.f32


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    incident_direction: vec3,
    normal: vec3,
):
    """Compute scattered ray direction for metal material.

    Args:
        albedo: The reflective color (RGB, each component in [0, 1]).
        fuzz: The reflection perturbation in [0, 1]. 0 = perfect mirror.
        incident_direction: The incoming ray direction (any length).
        normal: The surface normal (unit length).

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where
        did_scatter is 0 if the scattered direction points into the surface.
    """
    reflected = reflect(tm.normalize(incident_direction), normal)
    scattered_direction = reflected + fuzz * random_unit_vector()

    did_scatter = 1
    if tm.dot(scattered_direction, normal) <= 0.0:
        did_scatter = 0

    attenuation = albedo

    return scattered_direction, attenuation, did_scatter


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of metal materials in the scene
MAX_METAL_MATERIALS = 256

# Storage for metal material properties
metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Clear all metal materials."""
    num_metal_materials[None] = 0


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: The reflective color as (R, G, B) tuple.
        fuzz: The reflection perturbation in [0, 1]. Default is 0 (mirror).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(
            f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded"
        )

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzzes[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    return metal_fuzzes[material_idx]
