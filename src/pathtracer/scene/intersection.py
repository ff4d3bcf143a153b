"""Scene-level ray intersection over sphere storage.

Spheres live in Taichi fields (structure-of-arrays layout) so render kernels
can scan them. Each sphere carries a material ID into the shared material
table. The scan is linear: every sphere is tested against a shrinking
upper bound so the nearest hit wins.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.intersection import (
    ...     add_sphere, clear_scene, intersect_scene, vec3
    ... )
    >>> clear_scene()
    >>> add_sphere(vec3(0, 0, -1), 0.5, material_id=0)
    >>> # Use intersect_scene within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from pathtracer.geometry.sphere import HitRecord, Sphere, hit_sphere

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: 1 if any sphere was hit, 0 on a miss.
        t: The ray parameter of the nearest intersection.
        point: The intersection point.
        normal: Unit surface normal opposing the incoming ray.
        front_face: 1 if the ray struck the surface from outside, else 0.
        material_id: Material of the hit sphere, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


# Maximum number of spheres supported in the scene
MAX_SPHERES = 1024

# Sphere storage: Structure of Arrays layout for GPU efficiency
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all spheres from the scene storage.

    Only the count is reset; stale field data is overwritten by later adds.
    """
    num_spheres[None] = 0


def add_sphere(center: vec3, radius: float, material_id: int = 0) -> int:
    """Append a sphere to the scene storage.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (validated by the scene builder).
        material_id: The material ID to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = center
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene storage."""
    return int(num_spheres[None])


@ti.func
def _hit_record_to_scene_hit_record(rec: HitRecord, material_id: ti.i32) -> SceneHitRecord:
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        material_id=material_id,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Find the nearest intersection of a ray with the scene.

    Each sphere is tested against (t_min, closest) where closest starts at
    t_max and shrinks to the t of every accepted hit.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Exclusive lower bound on accepted t values.
        t_max: Exclusive upper bound on accepted t values.

    Returns:
        The nearest hit with its material ID, or a miss record.
    """
    closest_t = t_max
    result = _make_miss_record()

    n_spheres = num_spheres[None]
    for i in range(n_spheres):
        sphere = Sphere(center=sphere_centers[i], radius=sphere_radii[i])
        rec = hit_sphere(ray_origin, ray_direction, sphere, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _hit_record_to_scene_hit_record(rec, sphere_material_ids[i])

    return result
