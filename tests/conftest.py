"""Pytest configuration for the Whitted tracer tests.

Taichi must be initialized exactly once per session, before any field is
allocated or kernel compiled. Scenes carry no global state, so tests need
no per-test cleanup.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Repeated ti.init() calls invalidate every field allocated so far,
    including the lazily cached render buffers.
    """
    ti.init(arch=ti.cpu)
    yield


@pytest.fixture
def lit_sphere_scene():
    """One diffuse white sphere at (0, 0, -10) lit from above and to the right."""
    from whitted.materials.material import Material
    from whitted.scene.description import Light, Scene, Sphere

    chalk = Material(albedo=(1.0, 0.0, 0.0, 0.0), diffuse_color=(1.0, 1.0, 1.0))
    return Scene(
        spheres=(Sphere(center=(0.0, 0.0, -10.0), radius=1.0, material=chalk),),
        lights=(Light(position=(5.0, 6.0, -10.0), intensity=1.0),),
    )
