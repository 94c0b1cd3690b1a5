"""Scene module for scene description and ray-scene queries.

This module handles scene representation and the nearest-hit query:

Components:
    description: Immutable host-side Scene, Sphere, Light and Floor values,
        with dictionary/JSON serialization
    intersection: DeviceScene (the scene uploaded into Taichi fields),
        SceneHitRecord and the nearest-hit query
    reference: The reference four-sphere, three-light scene

Scene data is organized for efficient device access:
    - Structure-of-Arrays layout for sphere geometry and materials
    - Counts and floor bounds baked into kernels as compile-time constants
    - No module-level state; the uploaded scene is passed into every kernel
"""

from .description import (
    BACKGROUND_COLOR,
    Floor,
    Light,
    Scene,
    Sphere,
    load_scene,
    save_scene,
)
from .intersection import (
    FLOOR_PARALLEL_EPSILON,
    MAX_DISTANCE,
    MAX_LIGHTS,
    MAX_SPHERES,
    SCENE_CACHE_SIZE,
    DeviceScene,
    HitResult,
    SceneHitRecord,
    as_device_scene,
    clear_scene_cache,
    device_lock,
    find_nearest,
)
from .reference import (
    REFERENCE_LIGHTS,
    REFERENCE_SPHERES,
    create_reference_camera,
    create_reference_scene,
)

__all__ = [
    # Description module
    "Scene",
    "Sphere",
    "Light",
    "Floor",
    "BACKGROUND_COLOR",
    "load_scene",
    "save_scene",
    # Intersection module
    "DeviceScene",
    "SceneHitRecord",
    "HitResult",
    "as_device_scene",
    "clear_scene_cache",
    "device_lock",
    "find_nearest",
    "SCENE_CACHE_SIZE",
    "MAX_SPHERES",
    "MAX_LIGHTS",
    "MAX_DISTANCE",
    "FLOOR_PARALLEL_EPSILON",
    # Reference module
    "create_reference_scene",
    "create_reference_camera",
    "REFERENCE_SPHERES",
    "REFERENCE_LIGHTS",
]
