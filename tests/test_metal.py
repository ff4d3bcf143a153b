"""Unit tests for the metal material.

Tests cover:
- Mirror reflection with zero fuzz
- Absorption when the reflection points into the surface
- Fuzz keeps accepted directions above the surface
- Registry storage
"""

import math

import pytest
import taichi as ti


class TestScatterMetal:
    """Tests for metal scattering."""

    def test_mirror_reflection(self):
        from pathtracer.materials.metal import scatter_metal, vec3

        direction = ti.field(dtype=ti.math.vec3, shape=())
        attenuation = ti.field(dtype=ti.math.vec3, shape=())
        did_scatter = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            d, att, did = scatter_metal(
                vec3(0.8, 0.6, 0.2), 0.0, vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0)
            )
            direction[None] = d
            attenuation[None] = att
            did_scatter[None] = did

        test_kernel()
        s = 1.0 / math.sqrt(2.0)
        d = direction[None]
        assert (d[0], d[1], d[2]) == pytest.approx((s, s, 0.0), abs=1e-5)
        a = attenuation[None]
        assert (a[0], a[1], a[2]) == pytest.approx((0.8, 0.6, 0.2))
        assert did_scatter[None] == 1

    def test_absorbs_when_reflection_enters_surface(self):
        """With the normal along the incoming direction, the mirror image points inward."""
        from pathtracer.materials.metal import scatter_metal, vec3

        did_scatter = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            _, _, did = scatter_metal(
                vec3(0.8, 0.8, 0.8), 0.0, vec3(0.0, 0.0, -1.0), vec3(0.0, 0.0, -1.0)
            )
            did_scatter[None] = did

        test_kernel()
        assert did_scatter[None] == 0

    def test_grazing_incidence_absorbs(self):
        """A tangent ray reflects along the surface, which counts as absorbed."""
        from pathtracer.materials.metal import scatter_metal, vec3

        did_scatter = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            _, _, did = scatter_metal(
                vec3(0.8, 0.8, 0.8), 0.0, vec3(1.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0)
            )
            did_scatter[None] = did

        test_kernel()
        assert did_scatter[None] == 0

    def test_fuzzed_scatter_stays_above_surface(self):
        from pathtracer.materials.metal import scatter_metal, vec3

        n = 2000
        dots = ti.field(dtype=ti.f32, shape=n)
        did_scatter = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            for i in range(n):
                d, _, did = scatter_metal(vec3(0.5, 0.5, 0.5), 1.0, vec3(1.0, -0.2, 0.0), normal)
                dots[i] = ti.math.dot(d, normal)
                did_scatter[i] = did

        test_kernel()
        scattered = did_scatter.to_numpy() == 1
        assert scattered.any()
        assert (~scattered).any()
        assert (dots.to_numpy()[scattered] > 0.0).all()


class TestMetalRegistry:
    """Tests for metal material storage."""

    def test_add_and_lookup(self):
        from pathtracer.materials.metal import (
            add_metal_material,
            get_metal_albedo,
            get_metal_fuzz,
            get_metal_material_count,
        )

        add_metal_material((0.9, 0.9, 0.9))
        assert add_metal_material((0.7, 0.6, 0.5), fuzz=0.4) == 1
        assert get_metal_material_count() == 2

        albedo = ti.field(dtype=ti.math.vec3, shape=())
        fuzz = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            albedo[None] = get_metal_albedo(1)
            fuzz[0] = get_metal_fuzz(0)
            fuzz[1] = get_metal_fuzz(1)

        test_kernel()
        a = albedo[None]
        assert (a[0], a[1], a[2]) == pytest.approx((0.7, 0.6, 0.5))
        assert fuzz[0] == pytest.approx(0.0)
        assert fuzz[1] == pytest.approx(0.4)
