"""Scene module: sphere storage, scene builder and demo scenes.

Components:
    intersection: Sphere storage in Taichi fields and nearest-hit scan
    manager: Scene builder owning spheres and materials, uploaded as a snapshot
    presets: Ready-made demo scenes and cameras

Scene data is laid out for parallel access:
    - Structure-of-Arrays layout for sphere data
    - A unified material ID table mapping to (type, type-local index)
"""

from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    Scene,
    SceneConfig,
    SphereInfo,
    clear_uploaded_scene,
    get_material_type,
    get_material_type_index,
)
from .presets import (
    random_spheres_camera,
    random_spheres_scene,
    three_spheres_camera,
    three_spheres_scene,
)

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    # Manager module
    "Scene",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "clear_uploaded_scene",
    "get_material_type",
    "get_material_type_index",
    # Presets
    "three_spheres_scene",
    "three_spheres_camera",
    "random_spheres_scene",
    "random_spheres_camera",
]
