"""Demo scenes and camera setups.

Provides the ready-made scenes used by the example script:

    three_spheres_scene: Diffuse, glass and metal spheres on a ground sphere.
    random_spheres_scene: A field of small random spheres around three large
        ones (glass, diffuse, metal), seen through a depth-of-field camera.

Random choices use a numpy Generator so a seed reproduces the same scene.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.presets import random_spheres_scene, random_spheres_camera
    >>> scene = random_spheres_scene(seed=7)
    >>> camera = random_spheres_camera(render_width=400)
"""

from __future__ import annotations

import numpy as np

from pathtracer.camera.camera import Camera
from pathtracer.scene.manager import Scene

# Grid extent of the small random spheres (cells from -GRID to GRID - 1)
RANDOM_GRID_HALF_EXTENT = 5
SMALL_SPHERE_RADIUS = 0.2


def three_spheres_scene() -> Scene:
    """Build a ground sphere with a glass, a diffuse and a metal sphere."""
    scene = Scene()

    ground = scene.add_lambertian_material((0.8, 0.8, 0.0))
    center = scene.add_lambertian_material((0.1, 0.2, 0.5))
    left = scene.add_dielectric_material(1.5)
    right = scene.add_metal_material((0.8, 0.6, 0.2), fuzz=0.0)

    scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, center)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, left)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, right)

    return scene


def three_spheres_camera(
    render_width: int = 400,
    samples_per_pixel: int = 50,
    max_bounces: int = 10,
) -> Camera:
    """Camera framing three_spheres_scene()."""
    return Camera(
        render_width=render_width,
        aspect_ratio=16.0 / 9.0,
        samples_per_pixel=samples_per_pixel,
        max_bounces=max_bounces,
        vfov=90.0,
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        defocus_angle=0.0,
        focus_dist=1.0,
    )


def random_spheres_scene(seed: int | None = None) -> Scene:
    """Build a field of small random spheres around three large ones.

    Small spheres are 80% diffuse, 15% metal and 5% glass. Cells whose sphere
    would overlap the large metal sphere are skipped.

    Args:
        seed: Seed for the numpy random generator. None picks a fresh seed.

    Returns:
        The populated scene.
    """
    rng = np.random.default_rng(seed)
    scene = Scene()

    ground = scene.add_lambertian_material((0.5, 0.5, 0.5))
    scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, ground)

    clearance_point = np.array([4.0, SMALL_SPHERE_RADIUS, 0.0])

    for a in range(-RANDOM_GRID_HALF_EXTENT, RANDOM_GRID_HALF_EXTENT):
        for b in range(-RANDOM_GRID_HALF_EXTENT, RANDOM_GRID_HALF_EXTENT):
            choose_mat = rng.random()
            center = np.array(
                [a + 0.9 * rng.random(), SMALL_SPHERE_RADIUS, b + 0.9 * rng.random()]
            )

            if np.linalg.norm(center - clearance_point) <= 0.9:
                continue

            if choose_mat < 0.8:
                albedo = rng.random(3) * rng.random(3)
                scene.add_lambertian_sphere(
                    tuple(center), SMALL_SPHERE_RADIUS, tuple(albedo.tolist())
                )
            elif choose_mat < 0.95:
                albedo = rng.uniform(0.5, 1.0, 3)
                fuzz = float(rng.uniform(0.0, 0.5))
                scene.add_metal_sphere(
                    tuple(center), SMALL_SPHERE_RADIUS, tuple(albedo.tolist()), fuzz
                )
            else:
                scene.add_dielectric_sphere(tuple(center), SMALL_SPHERE_RADIUS, 1.5)

    scene.add_dielectric_sphere((0.0, 1.0, 0.0), 1.0, 1.5)
    scene.add_lambertian_sphere((-4.0, 1.0, 0.0), 1.0, (0.4, 0.2, 0.1))
    scene.add_metal_sphere((4.0, 1.0, 0.0), 1.0, (0.7, 0.6, 0.5), 0.0)

    return scene


def random_spheres_camera(
    render_width: int = 1200,
    samples_per_pixel: int = 50,
    max_bounces: int = 10,
) -> Camera:
    """Depth-of-field camera framing random_spheres_scene()."""
    return Camera(
        render_width=render_width,
        aspect_ratio=16.0 / 9.0,
        samples_per_pixel=samples_per_pixel,
        max_bounces=max_bounces,
        vfov=20.0,
        lookfrom=(12.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        defocus_angle=0.6,
        focus_dist=10.0,
    )
