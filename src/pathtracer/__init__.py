"""Taichi-based Monte Carlo path tracer for sphere scenes.

This package renders static scenes of spheres with physically inspired
materials by stochastically sampling light paths per pixel, with support for:
- Lambertian, metal and dielectric materials
- Thin-lens camera with depth of field
- Parallel per-pixel sampling on CPU or GPU
- PPM and PNG image output

Subpackages:
    core: Ray utilities, radiance estimator, colour finalisation, renderer
    geometry: Sphere primitive and ray-sphere intersection
    materials: Scattering models
    scene: Scene storage, scene builder and demo scenes
    camera: Camera configuration and ray sampling
    output: Image serialization

Note:
    Modules that declare Taichi fields must be imported after ``ti.init()``
    (see ``pathtracer.runtime.init_taichi``).
"""

__version__ = "0.1.0"
