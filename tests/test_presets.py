"""Tests for the demo scenes and cameras."""

import pytest


class TestThreeSpheres:
    """Tests for the three-sphere scene."""

    def test_contents(self):
        from pathtracer.scene.manager import MaterialType
        from pathtracer.scene.presets import three_spheres_scene

        scene = three_spheres_scene()
        assert scene.get_sphere_count() == 4
        assert [m.material_type for m in scene.materials] == [
            MaterialType.LAMBERTIAN,
            MaterialType.LAMBERTIAN,
            MaterialType.DIELECTRIC,
            MaterialType.METAL,
        ]
        ground = scene.spheres[0]
        assert ground.center == (0.0, -100.5, -1.0)
        assert ground.radius == 100.0

    def test_camera(self):
        from pathtracer.scene.presets import three_spheres_camera

        camera = three_spheres_camera(render_width=400)
        camera.initialize()
        assert camera.render_height == 225
        assert camera.defocus_angle == 0.0


class TestRandomSpheres:
    """Tests for the random-sphere scene."""

    def test_seed_is_reproducible(self):
        from pathtracer.scene.presets import random_spheres_scene

        first = random_spheres_scene(seed=11)
        second = random_spheres_scene(seed=11)
        assert first.spheres == second.spheres
        assert first.materials == second.materials

    def test_different_seeds_differ(self):
        from pathtracer.scene.presets import random_spheres_scene

        assert random_spheres_scene(seed=1).spheres != random_spheres_scene(seed=2).spheres

    def test_layout(self):
        from pathtracer.scene.presets import SMALL_SPHERE_RADIUS, random_spheres_scene

        scene = random_spheres_scene(seed=5)
        spheres = scene.spheres

        # Ground, at most one small sphere per grid cell, three large spheres
        assert 4 <= len(spheres) <= 1 + 100 + 3
        assert spheres[0].radius == 1000.0
        assert all(s.radius == SMALL_SPHERE_RADIUS for s in spheres[1:-3])
        assert [s.center for s in spheres[-3:]] == [
            (0.0, 1.0, 0.0),
            (-4.0, 1.0, 0.0),
            (4.0, 1.0, 0.0),
        ]

    def test_small_spheres_clear_large_metal_sphere(self):
        import math

        from pathtracer.scene.presets import random_spheres_scene

        scene = random_spheres_scene(seed=9)
        for s in scene.spheres[1:-3]:
            assert math.dist(s.center, (4.0, 0.2, 0.0)) > 0.9

    def test_materials_are_valid(self):
        from pathtracer.scene.presets import random_spheres_scene

        scene = random_spheres_scene(seed=13)
        for m in scene.materials:
            for value in m.params.get("albedo", ()):
                assert 0.0 <= value <= 1.0
            assert 0.0 <= m.params.get("fuzz", 0.0) <= 0.5

    def test_camera(self):
        from pathtracer.scene.presets import random_spheres_camera

        camera = random_spheres_camera()
        geometry = camera.initialize()
        assert camera.render_width == 1200
        assert geometry.render_height == 675
        assert camera.defocus_angle == pytest.approx(0.6)
        assert camera.focus_dist == pytest.approx(10.0)


class TestRuntime:
    """Tests for backend selection arguments."""

    def test_unknown_arch(self):
        from pathtracer.runtime import init_taichi

        with pytest.raises(ValueError):
            init_taichi("tpu")
