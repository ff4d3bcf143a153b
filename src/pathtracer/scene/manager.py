"""Scene builder coordinating spheres and materials.

The Scene class is the Python-side owner of a scene: it holds the ordered
list of spheres and the registered materials, validates every parameter as
it is added, and uploads an immutable snapshot into the Taichi fields read
by the render kernels. Materials get a unified material_id that maps to
(material_type, type_local_index) so the integrator can dispatch to the
right scattering function. Many spheres may share one material_id.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.manager import Scene
    >>> scene = Scene()
    >>> ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    >>> scene.add_sphere(center=(0, -1000, 0), radius=1000, material_id=ground)
    >>> scene.upload()
"""

import json
import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from types import MappingProxyType
from typing import Any

import taichi as ti
import taichi.math as tm

from pathtracer.errors import ConfigurationError
from pathtracer.materials.dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
)
from pathtracer.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from pathtracer.materials.metal import (
    add_metal_material,
    clear_metal_materials,
)
from pathtracer.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
)

# Type alias for 3D vectors
vec3 = tm.vec3


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the integrator.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Maximum number of materials across all types
MAX_MATERIALS = 768  # 256 per type * 3 types

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
# (e.g., if material_id 5 is the 2nd metal material, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


def clear_uploaded_scene() -> None:
    """Clear every Taichi-side scene and material registry."""
    clear_scene()
    clear_lambertian_materials()
    clear_metal_materials()
    clear_dielectric_materials()
    _clear_material_tracking()


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a material ID, or -1 if the ID is invalid."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the index into the type-specific material arrays, or -1."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


# =============================================================================
# Validation
# =============================================================================


def _validate_number(name: str, value: Any) -> float:
    # Reject bools, which are Integral
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    return float(value)


def _validate_triple(name: str, value: Any) -> tuple[float, float, float]:
    if isinstance(value, (str, bytes)):
        raise ConfigurationError(f"{name} must be 3 numbers, got {value!r}")
    try:
        components = tuple(value)
    except TypeError:
        raise ConfigurationError(f"{name} must be 3 numbers, got {value!r}") from None
    if len(components) != 3:
        raise ConfigurationError(f"{name} must have 3 components, got {len(components)}")
    x, y, z = (_validate_number(f"{name} component {i}", c) for i, c in enumerate(components))
    return (x, y, z)


def _validate_color(name: str, color: tuple[float, float, float]) -> tuple[float, float, float]:
    color = _validate_triple(name, color)
    for i, component in enumerate(color):
        if not math.isfinite(component) or component < 0.0 or component > 1.0:
            raise ConfigurationError(
                f"{name} component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )
    return color


def _validate_point(name: str, point: tuple[float, float, float]) -> tuple[float, float, float]:
    point = _validate_triple(name, point)
    if not all(math.isfinite(c) for c in point):
        raise ConfigurationError(f"{name} must be finite, got {point}")
    return point


def _config_entries(name: str, entries: Any) -> list[Mapping[str, Any]]:
    if not isinstance(entries, list):
        raise ConfigurationError(f"'{name}' must be a list, got {type(entries).__name__}")
    for i, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise ConfigurationError(
                f"'{name}' entry {i} must be an object, got {type(entry).__name__}"
            )
    return entries


# =============================================================================
# Scene Records
# =============================================================================


@dataclass(frozen=True)
class MaterialInfo:
    """A registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: Lambertian, Metal or Dielectric.
        params: Read-only view of the validated material parameters.
    """

    material_id: int
    material_type: MaterialType
    params: Mapping[str, Any]


@dataclass(frozen=True)
class SphereInfo:
    """A sphere in the scene.

    Attributes:
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material ID assigned to the sphere.
    """

    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Serializable scene description.

    Attributes:
        materials: List of material configurations ("type" plus parameters).
        spheres: List of sphere configurations (center, radius, material_id).
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


class Scene:
    """Ordered collection of spheres sharing a table of materials.

    The scene is mutated only while it is being built. Rendering works from
    the snapshot written by upload(), which the render kernels read but never
    modify.

    Attributes:
        materials: MaterialInfo for every registered material, indexed by ID.
        spheres: SphereInfo for every sphere, in insertion order.

    Example:
        >>> scene = Scene()
        >>> red = scene.add_lambertian_material(albedo=(0.8, 0.1, 0.1))
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> glass = scene.add_dielectric_material(ior=1.5)
        >>> scene.add_sphere((0, 0, -1), 0.5, red)
        >>> scene.add_sphere((1, 0, -1), 0.5, gold)
        >>> scene.add_sphere((-1, 0, -1), 0.5, glass)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []

    def clear(self) -> None:
        """Remove every sphere and material from the scene."""
        self.materials.clear()
        self.spheres.clear()

    def __len__(self) -> int:
        return len(self.spheres)

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register(self, material_type: MaterialType, params: dict[str, Any]) -> int:
        if len(self.materials) >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")
        material_id = len(self.materials)
        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                params=MappingProxyType(dict(params)),
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a Lambertian (diffuse) material.

        Args:
            albedo: The diffuse reflectance color as (R, G, B) in [0, 1].

        Returns:
            The unified material ID for this material.

        Raises:
            ConfigurationError: If any albedo component is outside [0, 1].
        """
        albedo = _validate_color("Albedo", albedo)
        return self._register(MaterialType.LAMBERTIAN, {"albedo": albedo})

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal (specular reflective) material.

        Args:
            albedo: The reflective color as (R, G, B) in [0, 1].
            fuzz: Reflection perturbation in [0, 1]. Default 0 (perfect mirror).

        Returns:
            The unified material ID for this material.

        Raises:
            ConfigurationError: If albedo or fuzz is outside [0, 1].
        """
        albedo = _validate_color("Albedo", albedo)
        fuzz = _validate_number("Fuzz", fuzz)
        if not math.isfinite(fuzz) or fuzz < 0.0 or fuzz > 1.0:
            raise ConfigurationError(
                f"Fuzz = {fuzz} is outside [0, 1]. "
                "Fuzz must be between 0 (perfect mirror) and 1 (maximum fuzz)."
            )
        return self._register(MaterialType.METAL, {"albedo": albedo, "fuzz": float(fuzz)})

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Add a dielectric (glass/water) material.

        Args:
            ior: Index of refraction. Default is 1.5 (typical glass).
                Common values: Air=1.0, Water=1.33, Glass=1.5, Diamond=2.4

        Returns:
            The unified material ID for this material.

        Raises:
            ConfigurationError: If ior is not a positive finite number.
        """
        ior = _validate_number("Index of refraction", ior)
        if not math.isfinite(ior) or ior <= 0.0:
            raise ConfigurationError(f"Index of refraction = {ior} must be positive.")
        return self._register(MaterialType.DIELECTRIC, {"ior": float(ior)})

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return len(self.materials)

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    # =========================================================================
    # Sphere Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (must be positive).
            material_id: A material ID returned by one of the add_*_material
                methods.

        Returns:
            The index of the added sphere.

        Raises:
            ConfigurationError: If radius is not positive or material_id is unknown.
            RuntimeError: If the maximum number of spheres is exceeded.
        """
        center = _validate_point("Center", center)
        radius = _validate_number("Sphere radius", radius)
        if not math.isfinite(radius) or radius <= 0.0:
            raise ConfigurationError(f"Sphere radius = {radius} must be positive.")
        if (
            isinstance(material_id, bool)
            or not isinstance(material_id, numbers.Integral)
            or material_id < 0
            or material_id >= len(self.materials)
        ):
            raise ConfigurationError(f"Invalid material_id: {material_id}")
        if len(self.spheres) >= MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

        self.spheres.append(
            SphereInfo(center=center, radius=float(radius), material_id=int(material_id))
        )
        return len(self.spheres) - 1

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new Lambertian material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        ior: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(ior)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return len(self.spheres)

    # =========================================================================
    # Upload
    # =========================================================================

    def upload(self) -> None:
        """Write the scene into the Taichi fields read by the render kernels.

        Any previously uploaded scene is replaced.
        """
        clear_uploaded_scene()

        for material_id, mat in enumerate(self.materials):
            if mat.material_type == MaterialType.LAMBERTIAN:
                type_index = add_lambertian_material(mat.params["albedo"])
            elif mat.material_type == MaterialType.METAL:
                type_index = add_metal_material(mat.params["albedo"], mat.params["fuzz"])
            else:
                type_index = add_dielectric_material(mat.params["ior"])
            material_types[material_id] = int(mat.material_type)
            material_type_indices[material_id] = type_index
        num_materials[None] = len(self.materials)

        for sphere in self.spheres:
            add_sphere(vec3(*sphere.center), sphere.radius, sphere.material_id)

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()

        for mat in self.materials:
            mat_config: dict[str, Any] = {"type": mat.material_type.name.lower()}
            for key, value in mat.params.items():
                mat_config[key] = list(value) if isinstance(value, tuple) else value
            config.materials.append(mat_config)

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Replace the scene contents with a configuration.

        Raises:
            ConfigurationError: If the configuration contains invalid data.
        """
        materials = _config_entries("materials", config.materials)
        spheres = _config_entries("spheres", config.spheres)

        self.clear()

        # Materials first, spheres refer to them by ID
        for mat_config in materials:
            mat_type = str(mat_config.get("type", "")).lower()
            if mat_type == "lambertian":
                self.add_lambertian_material(mat_config.get("albedo", (0.5, 0.5, 0.5)))
            elif mat_type == "metal":
                self.add_metal_material(
                    mat_config.get("albedo", (0.8, 0.8, 0.8)),
                    mat_config.get("fuzz", 0.0),
                )
            elif mat_type == "dielectric":
                self.add_dielectric_material(mat_config.get("ior", 1.5))
            else:
                raise ConfigurationError(f"Unknown material type: {mat_type}")

        for sphere_config in spheres:
            if "radius" not in sphere_config:
                raise ConfigurationError(f"Sphere is missing a radius: {sphere_config}")
            self.add_sphere(
                sphere_config.get("center", (0.0, 0.0, 0.0)),
                sphere_config["radius"],
                sphere_config.get("material_id", 0),
            )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary with 'materials' and 'spheres' keys.

        Raises:
            ConfigurationError: If the dictionary is not a valid scene description.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Scene data must be a mapping, got {type(data).__name__}")
        self.from_config(
            SceneConfig(
                materials=data.get("materials", []),
                spheres=data.get("spheres", []),
            )
        )

    def save(self, path: str | Path) -> None:
        """Write the scene to a JSON file."""
        Path(path).write_text(json.dumps(self.to_dict(), indent=2))

    @classmethod
    def load(cls, path: str | Path) -> "Scene":
        """Read a scene from a JSON file written by save().

        Raises:
            OSError: If the file cannot be read.
            ConfigurationError: If the file is not a valid scene description.
        """
        try:
            data = json.loads(Path(path).read_text())
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid scene file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid scene file {path}: expected a JSON object")

        scene = cls()
        scene.from_dict(data)
        return scene

    def __repr__(self) -> str:
        return f"Scene(spheres={len(self.spheres)}, materials={len(self.materials)})"
