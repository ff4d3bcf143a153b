"""Unit tests for the Scene builder.

Tests cover:
- Material registration and validation
- Sphere addition and validation
- Shared materials
- Upload into the Taichi-side registries
- Serialization (dict, config, JSON files)
- GPU-side material type dispatch
"""

import json

import pytest
import taichi as ti


@pytest.fixture
def fresh_scene():
    """Create a fresh Scene for each test."""
    from pathtracer.scene.manager import Scene

    scene = Scene()
    yield scene
    scene.clear()


class TestManagerModule:
    """Tests for importing the scene manager module."""

    def test_import_with_evaluated_annotations(self):
        """Taichi functions need real annotation objects, not strings."""
        import pathtracer.scene.manager as manager_module

        # Set by `from __future__ import annotations`
        assert not hasattr(manager_module, "annotations")
        assert callable(manager_module.get_material_type)
        assert callable(manager_module.get_material_type_index)


class TestMaterialRegistration:
    """Tests for material registration."""

    def test_material_ids_are_sequential(self, fresh_scene):
        id0 = fresh_scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
        id1 = fresh_scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.0)
        id2 = fresh_scene.add_dielectric_material(ior=1.5)
        id3 = fresh_scene.add_lambertian_material(albedo=(0.1, 0.8, 0.1))

        assert (id0, id1, id2, id3) == (0, 1, 2, 3)
        assert fresh_scene.get_material_count() == 4

    def test_get_material_info(self, fresh_scene):
        from pathtracer.scene.manager import MaterialType

        mat_id = fresh_scene.add_metal_material(albedo=(0.7, 0.6, 0.5), fuzz=0.25)
        info = fresh_scene.get_material_info(mat_id)

        assert info is not None
        assert info.material_type == MaterialType.METAL
        assert info.params == {"albedo": (0.7, 0.6, 0.5), "fuzz": 0.25}
        assert fresh_scene.get_material_info(99) is None

    def test_material_params_are_read_only(self, fresh_scene):
        mat_id = fresh_scene.add_metal_material(albedo=(0.7, 0.6, 0.5), fuzz=0.25)
        info = fresh_scene.get_material_info(mat_id)

        with pytest.raises(TypeError):
            info.params["fuzz"] = 0.9
        assert fresh_scene.get_material_info(mat_id).params["fuzz"] == 0.25

    @pytest.mark.parametrize(
        "albedo",
        [5, "red", (0.5, "x", 0.5), (0.5, None, 0.5), (True, 0.5, 0.5)],
    )
    def test_albedo_wrong_type(self, fresh_scene, albedo):
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            fresh_scene.add_lambertian_material(albedo)

    def test_non_numeric_fuzz_and_ior(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            fresh_scene.add_metal_material((0.5, 0.5, 0.5), fuzz="0.1")
        with pytest.raises(ConfigurationError):
            fresh_scene.add_dielectric_material(None)

    def test_albedo_out_of_range(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            fresh_scene.add_lambertian_material(albedo=(1.5, 0.0, 0.0))
        with pytest.raises(ConfigurationError):
            fresh_scene.add_metal_material(albedo=(-0.1, 0.5, 0.5))

    def test_albedo_wrong_length(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            fresh_scene.add_lambertian_material(albedo=(0.5, 0.5))

    def test_fuzz_out_of_range(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            fresh_scene.add_metal_material(albedo=(0.8, 0.8, 0.8), fuzz=1.5)
        with pytest.raises(ConfigurationError):
            fresh_scene.add_metal_material(albedo=(0.8, 0.8, 0.8), fuzz=-0.1)

    def test_ior_must_be_positive(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            fresh_scene.add_dielectric_material(ior=0.0)
        with pytest.raises(ConfigurationError):
            fresh_scene.add_dielectric_material(ior=-1.5)

    def test_ior_below_one_is_accepted(self, fresh_scene):
        """Air bubbles in water are modelled with an ior below 1."""
        mat_id = fresh_scene.add_dielectric_material(ior=1.0 / 1.33)
        assert mat_id == 0

    def test_configuration_error_is_value_error(self, fresh_scene):
        with pytest.raises(ValueError):
            fresh_scene.add_dielectric_material(ior=0.0)


class TestSpheres:
    """Tests for adding spheres."""

    def test_add_sphere(self, fresh_scene):
        mat = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        assert fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, mat) == 0
        assert fresh_scene.add_sphere((1.0, 0.0, -1.0), 0.5, mat) == 1
        assert fresh_scene.get_sphere_count() == 2
        assert len(fresh_scene) == 2

    def test_shared_material(self, fresh_scene):
        glass = fresh_scene.add_dielectric_material(1.5)
        fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, glass)
        fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.4, glass)

        assert fresh_scene.get_material_count() == 1
        assert [s.material_id for s in fresh_scene.spheres] == [glass, glass]

    def test_non_positive_radius(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        mat = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        with pytest.raises(ConfigurationError):
            fresh_scene.add_sphere((0.0, 0.0, 0.0), 0.0, mat)
        with pytest.raises(ConfigurationError):
            fresh_scene.add_sphere((0.0, 0.0, 0.0), -1.0, mat)

    def test_unknown_material_id(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            fresh_scene.add_sphere((0.0, 0.0, 0.0), 1.0, 0)

    def test_non_finite_center(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        mat = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        with pytest.raises(ConfigurationError):
            fresh_scene.add_sphere((float("nan"), 0.0, 0.0), 1.0, mat)

    @pytest.mark.parametrize(
        ("center", "radius", "material_id"),
        [
            (5, 1.0, 0),
            ((0.0, 0.0), 1.0, 0),
            ((0.0, 0.0, 0.0), "big", 0),
            ((0.0, 0.0, 0.0), 1.0, "0"),
            ((0.0, 0.0, 0.0), 1.0, 0.0),
        ],
    )
    def test_sphere_wrong_types(self, fresh_scene, center, radius, material_id):
        from pathtracer.errors import ConfigurationError

        fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        with pytest.raises(ConfigurationError):
            fresh_scene.add_sphere(center, radius, material_id)

    def test_convenience_methods(self, fresh_scene):
        idx0, mat0 = fresh_scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.1, 0.2, 0.5))
        idx1, mat1 = fresh_scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), 0.1)
        idx2, mat2 = fresh_scene.add_dielectric_sphere((-1.0, 0.0, -1.0), 0.5, 1.5)

        assert (idx0, idx1, idx2) == (0, 1, 2)
        assert (mat0, mat1, mat2) == (0, 1, 2)

    def test_clear(self, fresh_scene):
        fresh_scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))
        fresh_scene.clear()
        assert fresh_scene.get_sphere_count() == 0
        assert fresh_scene.get_material_count() == 0

    def test_repr(self, fresh_scene):
        fresh_scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))
        assert repr(fresh_scene) == "Scene(spheres=1, materials=1)"


class TestUpload:
    """Tests for writing the scene into Taichi fields."""

    def test_upload_counts(self, fresh_scene):
        from pathtracer.materials.dielectric import get_dielectric_material_count
        from pathtracer.materials.lambertian import get_lambertian_material_count
        from pathtracer.materials.metal import get_metal_material_count
        from pathtracer.scene.intersection import get_sphere_count
        from pathtracer.scene.manager import num_materials

        fresh_scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.8, 0.8, 0.0))
        fresh_scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.1, 0.2, 0.5))
        fresh_scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2))
        fresh_scene.add_dielectric_sphere((-1.0, 0.0, -1.0), 0.5, 1.5)
        fresh_scene.upload()

        assert get_sphere_count() == 4
        assert num_materials[None] == 4
        assert get_lambertian_material_count() == 2
        assert get_metal_material_count() == 1
        assert get_dielectric_material_count() == 1

    def test_upload_replaces_previous(self, fresh_scene):
        from pathtracer.scene.intersection import get_sphere_count
        from pathtracer.scene.manager import Scene

        fresh_scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))
        fresh_scene.add_lambertian_sphere((1.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))
        fresh_scene.upload()

        other = Scene()
        other.add_dielectric_sphere((0.0, 0.0, -1.0), 0.5, 1.5)
        other.upload()

        assert get_sphere_count() == 1

    def test_material_type_dispatch(self, fresh_scene):
        from pathtracer.scene.manager import (
            MaterialType,
            get_material_type,
            get_material_type_index,
        )

        fresh_scene.add_lambertian_material((0.5, 0.5, 0.5))
        fresh_scene.add_metal_material((0.5, 0.5, 0.5))
        fresh_scene.add_lambertian_material((0.2, 0.2, 0.2))
        fresh_scene.add_dielectric_material(1.5)
        fresh_scene.upload()

        types = ti.field(dtype=ti.i32, shape=5)
        indices = ti.field(dtype=ti.i32, shape=5)

        @ti.kernel
        def test_kernel():
            for i in range(5):
                types[i] = get_material_type(i)
                indices[i] = get_material_type_index(i)

        test_kernel()
        assert types.to_numpy().tolist() == [
            int(MaterialType.LAMBERTIAN),
            int(MaterialType.METAL),
            int(MaterialType.LAMBERTIAN),
            int(MaterialType.DIELECTRIC),
            -1,
        ]
        assert indices.to_numpy().tolist() == [0, 0, 1, 0, -1]

    def test_uploaded_parameters(self, fresh_scene):
        from pathtracer.materials.metal import metal_albedos, metal_fuzzes

        fresh_scene.add_metal_material((0.7, 0.6, 0.5), fuzz=0.3)
        fresh_scene.upload()

        albedo = metal_albedos[0]
        assert (albedo[0], albedo[1], albedo[2]) == pytest.approx((0.7, 0.6, 0.5))
        assert metal_fuzzes[0] == pytest.approx(0.3)


class TestSerialization:
    """Tests for scene configuration round trips."""

    def _populate(self, scene):
        scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.8, 0.8, 0.0))
        scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), 0.3)
        glass = scene.add_dielectric_material(1.5)
        scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
        scene.add_sphere((-1.0, 0.0, -1.0), 0.4, glass)

    def test_to_dict(self, fresh_scene):
        self._populate(fresh_scene)
        data = fresh_scene.to_dict()

        assert [m["type"] for m in data["materials"]] == ["lambertian", "metal", "dielectric"]
        assert data["materials"][1] == {"type": "metal", "albedo": [0.8, 0.6, 0.2], "fuzz": 0.3}
        assert data["spheres"][3] == {"center": [-1.0, 0.0, -1.0], "radius": 0.4, "material_id": 2}

    def test_dict_round_trip(self, fresh_scene):
        from pathtracer.scene.manager import Scene

        self._populate(fresh_scene)
        restored = Scene()
        restored.from_dict(fresh_scene.to_dict())

        assert restored.materials == fresh_scene.materials
        assert restored.spheres == fresh_scene.spheres

    def test_from_config_replaces_contents(self, fresh_scene):
        from pathtracer.scene.manager import SceneConfig

        self._populate(fresh_scene)
        fresh_scene.from_config(
            SceneConfig(
                materials=[{"type": "lambertian", "albedo": [0.5, 0.5, 0.5]}],
                spheres=[{"center": [0.0, 0.0, -1.0], "radius": 0.5, "material_id": 0}],
            )
        )
        assert fresh_scene.get_material_count() == 1
        assert fresh_scene.get_sphere_count() == 1

    def test_unknown_material_type(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            fresh_scene.from_dict({"materials": [{"type": "plasma"}], "spheres": []})

    def test_missing_radius(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            fresh_scene.from_dict(
                {
                    "materials": [{"type": "dielectric", "ior": 1.5}],
                    "spheres": [{"center": [0.0, 0.0, 0.0], "material_id": 0}],
                }
            )

    def test_save_and_load(self, fresh_scene, tmp_path):
        from pathtracer.scene.manager import Scene

        self._populate(fresh_scene)
        path = tmp_path / "scene.json"
        fresh_scene.save(path)

        assert json.loads(path.read_text()) == fresh_scene.to_dict()
        loaded = Scene.load(path)
        assert loaded.spheres == fresh_scene.spheres
        assert loaded.materials == fresh_scene.materials

    def test_load_invalid_json(self, tmp_path):
        from pathtracer.errors import ConfigurationError
        from pathtracer.scene.manager import Scene

        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            Scene.load(path)

    def test_load_non_object(self, tmp_path):
        from pathtracer.errors import ConfigurationError
        from pathtracer.scene.manager import Scene

        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ConfigurationError):
            Scene.load(path)

    def test_load_missing_file(self, tmp_path):
        from pathtracer.scene.manager import Scene

        with pytest.raises(OSError):
            Scene.load(tmp_path / "missing.json")

    @pytest.mark.parametrize(
        "data",
        [
            {"materials": "x"},
            {"materials": [1, 2]},
            {"materials": [{"type": "lambertian", "albedo": 5}]},
            {"materials": [{"type": "metal", "albedo": [0.5, 0.5, 0.5], "fuzz": "low"}]},
            {"materials": [{"type": "dielectric", "ior": [1.5]}]},
            {"spheres": {"radius": 1.0}},
            {"materials": [{"type": "lambertian"}], "spheres": [{"radius": "big"}]},
            {"materials": [{"type": "lambertian"}], "spheres": [{"radius": 1.0, "center": 0}]},
            {
                "materials": [{"type": "lambertian"}],
                "spheres": [{"radius": 1.0, "material_id": "zero"}],
            },
        ],
    )
    def test_load_malformed_contents(self, tmp_path, data):
        from pathtracer.errors import ConfigurationError
        from pathtracer.scene.manager import Scene

        path = tmp_path / "malformed.json"
        path.write_text(json.dumps(data))
        with pytest.raises(ConfigurationError):
            Scene.load(path)

    def test_failed_load_keeps_scene(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        fresh_scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))
        with pytest.raises(ConfigurationError):
            fresh_scene.from_dict({"materials": "x", "spheres": []})
        assert fresh_scene.get_sphere_count() == 1

    def test_from_dict_rejects_non_mapping(self, fresh_scene):
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            fresh_scene.from_dict([{"type": "lambertian"}])
