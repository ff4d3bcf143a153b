"""Materials module: scattering models for the path tracer.

Components:
    lambertian: Ideal diffuse reflection
    metal: Mirror reflection with optional fuzz
    dielectric: Glass-like refraction with Schlick reflectance

Each scatter function returns (scattered_direction, attenuation,
did_scatter); the scattered ray starts at the hit point. Parameters are
stored per material type in Taichi fields and looked up by type-local index.
"""

from .dielectric import (
    DielectricMaterial,
    add_dielectric_material,
    clear_dielectric_materials,
    get_dielectric_ior,
    get_dielectric_material_count,
    scatter_dielectric,
    scatter_dielectric_with_sample,
    will_reflect,
)
from .lambertian import (
    LambertianMaterial,
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_albedo,
    get_lambertian_material_count,
    scatter_lambertian,
)
from .metal import (
    MetalMaterial,
    add_metal_material,
    clear_metal_materials,
    get_metal_albedo,
    get_metal_fuzz,
    get_metal_material_count,
    scatter_metal,
)

__all__ = [
    # Lambertian
    "LambertianMaterial",
    "scatter_lambertian",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    "get_lambertian_albedo",
    # Metal
    "MetalMaterial",
    "scatter_metal",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    "get_metal_albedo",
    "get_metal_fuzz",
    # Dielectric
    "DielectricMaterial",
    "scatter_dielectric",
    "scatter_dielectric_with_sample",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "get_dielectric_ior",
    "will_reflect",
]
