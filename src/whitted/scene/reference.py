"""Reference scene configuration.

This module provides the factory for the scene the renderer is tested and
demonstrated against:

- Four spheres, one per material preset (ivory, glass, red rubber, mirror)
- Three white point lights above and around the spheres
- The checkerboard floor at y = -4, spanning |x| < 10 and -30 < z < -10
- Sky-blue background

The camera sits at the origin looking down -z, so all geometry has negative z.

Example:
    >>> from whitted.scene.reference import create_reference_scene
    >>> scene = create_reference_scene()
    >>> len(scene.spheres), len(scene.lights)
    (4, 3)
"""

from whitted.camera.pinhole import PinholeCamera
from whitted.materials.material import GLASS, IVORY, MIRROR, RED_RUBBER
from whitted.scene.description import BACKGROUND_COLOR, Floor, Light, Scene, Sphere

# =============================================================================
# Reference Scene Constants
# =============================================================================

REFERENCE_SPHERES = (
    Sphere(center=(-3.0, 0.0, -16.0), radius=2.0, material=IVORY),
    Sphere(center=(-1.0, -1.5, -12.0), radius=2.0, material=GLASS),
    Sphere(center=(1.5, -0.5, -18.0), radius=3.0, material=RED_RUBBER),
    Sphere(center=(7.0, 5.0, -18.0), radius=4.0, material=MIRROR),
)

REFERENCE_LIGHTS = (
    Light(position=(-20.0, 20.0, 20.0), intensity=1.5),
    Light(position=(30.0, 50.0, -25.0), intensity=1.8),
    Light(position=(30.0, 20.0, 30.0), intensity=1.7),
)

REFERENCE_WIDTH = 1024
REFERENCE_HEIGHT = 768


# =============================================================================
# Reference Scene Factory
# =============================================================================


def create_reference_scene(include_floor: bool = True) -> Scene:
    """Create the reference scene.

    Args:
        include_floor: Whether to add the checkerboard floor. Without it the
            scene is the sphere-only configuration.

    Returns:
        The immutable reference Scene.
    """
    return Scene(
        spheres=REFERENCE_SPHERES,
        lights=REFERENCE_LIGHTS,
        floor=Floor() if include_floor else None,
        background=BACKGROUND_COLOR,
    )


def create_reference_camera(
    width: int = REFERENCE_WIDTH,
    height: int = REFERENCE_HEIGHT,
) -> PinholeCamera:
    """Create the reference camera: eye at the origin, 60 degree vertical FOV."""
    return PinholeCamera(width=width, height=height)
