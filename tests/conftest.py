"""Pytest configuration for prism tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session. Modules that
allocate Taichi fields are imported inside tests and fixtures, after the
runtime exists.
"""

import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Multiple ti.init() calls reset the runtime and invalidate every field
    allocated so far, so this happens exactly once.
    """
    from prism.runtime import init_runtime

    init_runtime(random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Empty the render registries and the film around each test."""
    from prism.core.film import clear_film
    from prism.scene.manager import clear_active_scene

    def _clear_all():
        clear_active_scene()
        clear_film()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def lambertian_sphere_scene():
    """Camera at the origin looking down -z at a grey sphere on white.

    The sphere (radius 0.5, albedo 0.5) sits 2 units away under a uniform
    white background, so every path that hits it scatters once into the
    background and carries exactly its reflectance.
    """
    from prism.camera.camera import Camera
    from prism.scene.manager import SceneManager

    scene = SceneManager()
    grey = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    scene.add_sphere((0.0, 0.0, -2.0), 0.5, grey)
    scene.set_background("uniform", (1.0, 1.0, 1.0))

    camera = Camera(look_from=(0.0, 0.0, 0.0), look_at=(0.0, 0.0, -1.0), vfov=40.0)
    return scene, camera
