"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate fields declared by modules imported earlier.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear uploaded scene, material and render target state around each test."""
    # Import here so Taichi is initialized before fields are declared
    from pathtracer.core.integrator import clear_render_target
    from pathtracer.scene.manager import clear_uploaded_scene

    def _clear_all():
        clear_uploaded_scene()
        clear_render_target()

    _clear_all()

    yield

    _clear_all()
