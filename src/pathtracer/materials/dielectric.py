"""Dielectric (glass/water) material implementation.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when ratio * sin(theta) > 1

The material chooses between reflection and refraction at random with the
Schlick reflectance as the reflection probability. Dielectrics never absorb,
so the attenuation is always white.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter = scatter_dielectric(
    >>> #     ior, incident_dir, normal, front_face
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import reflect, refract, schlick_reflectance

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class DielectricMaterial:
    """Dielectric (glass/water) material properties.

    Attributes:
        ior: Index of refraction. Common values:
            - Air: 1.0
            - Water: 1.33
            - Glass: 1.5
            - Diamond: 2.4
    """

    ior: ti.f32


@ti.func
def _refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    # Entering the material: n_air / n_material; leaving: the inverse
    ratio = 1.0 / ior
    if front_face == 0:
        ratio = ior
    return ratio


@ti.func
def scatter_dielectric_with_sample(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    u: ti.f32,
):
    """Scatter through a dielectric using a caller-supplied uniform sample.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The surface normal (unit length, opposing the incident ray).
        front_face: 1 if the ray hits the outside of the surface, else 0.
        u: Uniform sample in [0, 1) deciding reflection vs refraction.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter).
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    refraction_ratio = _refraction_ratio(ior, front_face)

    unit_direction = tm.normalize(incident_direction)
    cos_theta = tm.min(tm.dot(-unit_direction, normal), 1.0)
    sin_theta = ti.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))

    cannot_refract = refraction_ratio * sin_theta > 1.0

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract or schlick_reflectance(cos_theta, refraction_ratio) > u:
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, refraction_ratio)

    did_scatter = 1

    return scattered_direction, attenuation, did_scatter


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Compute scattered ray direction for dielectric material.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The surface normal (unit length, opposing the incident ray).
        front_face: 1 if the ray hits the outside of the surface, else 0.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where the
        attenuation is white and did_scatter is always 1.
    """
    return scatter_dielectric_with_sample(
        ior, incident_direction, normal, front_face, ti.random(ti.f32)
    )


@ti.func
def will_reflect(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.i32:
    """Return 1 if total internal reflection rules out refraction."""
    refraction_ratio = _refraction_ratio(ior, front_face)

    unit_direction = tm.normalize(incident_direction)
    cos_theta = tm.min(tm.dot(-unit_direction, normal), 1.0)
    sin_theta = ti.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))

    result = 0
    if refraction_ratio * sin_theta > 1.0:
        result = 1
    return result


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 256

# Storage for dielectric material properties
dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    """Get the IOR for a dielectric material by index."""
    return dielectric_iors[material_idx]
