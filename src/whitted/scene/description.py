"""Immutable host-side scene description.

A Scene is an ordered sequence of spheres, an ordered sequence of point
lights, an optional procedural checkerboard floor, and the background color
returned for rays that escape. All classes are frozen dataclasses; nothing
is mutated once a scene is built, so one Scene can back any number of
concurrent renders.

Scenes serialize to and from plain dictionaries (and JSON files) so they can
be kept as configuration files next to the command-line renderer.

Example:
    >>> from whitted.materials import IVORY
    >>> from whitted.scene.description import Light, Scene, Sphere
    >>> scene = Scene(
    ...     spheres=(Sphere((0.0, 0.0, -16.0), 2.0, IVORY),),
    ...     lights=(Light((-20.0, 20.0, 20.0), 1.5),),
    ... )
    >>> scene.to_dict()["spheres"][0]["radius"]
    2.0
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from whitted.materials.material import Material, as_float, as_float_tuple, check_keys

logger = logging.getLogger(__name__)

# Sky color returned for rays that hit nothing or exceed the recursion bound
BACKGROUND_COLOR = (0.2, 0.7, 0.8)


@dataclass(frozen=True)
class Sphere:
    """A sphere in the scene.

    Attributes:
        center: The center of the sphere (x, y, z).
        radius: The radius of the sphere (> 0).
        material: The surface material.
    """

    center: tuple[float, float, float]
    radius: float
    material: Material = field(default_factory=Material)

    def __post_init__(self) -> None:
        radius = as_float(self.radius, "radius")
        if radius <= 0.0:
            raise ValueError(f"Sphere radius = {radius} must be positive")
        object.__setattr__(self, "center", as_float_tuple(self.center, 3, "center"))
        object.__setattr__(self, "radius", radius)

    def to_dict(self) -> dict[str, Any]:
        return {
            "center": list(self.center),
            "radius": self.radius,
            "material": self.material.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Sphere":
        check_keys(data, {"center", "radius", "material"}, "sphere")
        if "center" not in data or "radius" not in data:
            raise ValueError("Sphere requires 'center' and 'radius'")
        material = Material.from_dict(data.get("material", {}))
        return cls(center=data["center"], radius=data["radius"], material=material)


@dataclass(frozen=True)
class Light:
    """A point light.

    Attributes:
        position: The position of the light (x, y, z).
        intensity: The scalar intensity (>= 0). Lights are white.
    """

    position: tuple[float, float, float]
    intensity: float

    def __post_init__(self) -> None:
        intensity = as_float(self.intensity, "intensity")
        if intensity < 0.0:
            raise ValueError(f"Light intensity = {intensity} is negative")
        object.__setattr__(self, "position", as_float_tuple(self.position, 3, "position"))
        object.__setattr__(self, "intensity", intensity)

    def to_dict(self) -> dict[str, Any]:
        return {"position": list(self.position), "intensity": self.intensity}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Light":
        check_keys(data, {"position", "intensity"}, "light")
        if "position" not in data or "intensity" not in data:
            raise ValueError("Light requires 'position' and 'intensity'")
        return cls(position=data["position"], intensity=data["intensity"])


@dataclass(frozen=True)
class Floor:
    """Procedural checkerboard floor.

    The floor is the horizontal plane y = height, bounded to |x| < half_width
    and z_far < z < z_near. Its material is base_material with the diffuse
    color replaced by the checker pattern: a point (x, z) gets color_a when
    trunc(0.5 * x + 1000) + trunc(0.5 * z) is odd and color_b otherwise.

    Attributes:
        height: The y coordinate of the plane.
        half_width: Half extent of the floor along x.
        z_near: Upper z bound (closer to the eye, which looks down -z).
        z_far: Lower z bound.
        color_a: Checker color for odd cells.
        color_b: Checker color for even cells.
        base_material: Material supplying albedo, exponent and index.
    """

    height: float = -4.0
    half_width: float = 10.0
    z_near: float = -10.0
    z_far: float = -30.0
    color_a: tuple[float, float, float] = (0.3, 0.3, 0.3)
    color_b: tuple[float, float, float] = (0.3, 0.2, 0.1)
    base_material: Material = field(default_factory=Material)

    def __post_init__(self) -> None:
        for name in ("height", "half_width", "z_near", "z_far"):
            object.__setattr__(self, name, as_float(getattr(self, name), name))
        if self.half_width <= 0.0:
            raise ValueError(f"Floor half_width = {self.half_width} must be positive")
        if self.z_far >= self.z_near:
            raise ValueError(
                f"Floor z_far = {self.z_far} must be less than z_near = {self.z_near}"
            )
        object.__setattr__(self, "color_a", as_float_tuple(self.color_a, 3, "color_a"))
        object.__setattr__(self, "color_b", as_float_tuple(self.color_b, 3, "color_b"))

    def checker_color(self, x: float, z: float) -> tuple[float, float, float]:
        """Checker color at a floor point (host-side mirror of the device code)."""
        if (int(0.5 * x + 1000) + int(0.5 * z)) & 1:
            return self.color_a
        return self.color_b

    def to_dict(self) -> dict[str, Any]:
        return {
            "height": self.height,
            "half_width": self.half_width,
            "z_near": self.z_near,
            "z_far": self.z_far,
            "color_a": list(self.color_a),
            "color_b": list(self.color_b),
            "base_material": self.base_material.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Floor":
        check_keys(
            data,
            {"height", "half_width", "z_near", "z_far", "color_a", "color_b", "base_material"},
            "floor",
        )
        kwargs = dict(data)
        if "base_material" in kwargs:
            kwargs["base_material"] = Material.from_dict(kwargs["base_material"])
        return cls(**kwargs)


@dataclass(frozen=True)
class Scene:
    """An immutable scene: spheres, lights, optional floor, background.

    Attributes:
        spheres: Ordered spheres. Order only matters for exact distance ties.
        lights: Ordered point lights.
        floor: Optional checkerboard floor (None for a sphere-only scene).
        background: Color of rays that escape the scene.
    """

    spheres: tuple[Sphere, ...] = ()
    lights: tuple[Light, ...] = ()
    floor: Floor | None = None
    background: tuple[float, float, float] = BACKGROUND_COLOR

    def __post_init__(self) -> None:
        object.__setattr__(self, "spheres", tuple(self.spheres))
        object.__setattr__(self, "lights", tuple(self.lights))
        object.__setattr__(
            self, "background", as_float_tuple(self.background, 3, "background")
        )

    def without_floor(self) -> "Scene":
        """Return a copy of the scene with the floor removed."""
        return Scene(spheres=self.spheres, lights=self.lights, background=self.background)

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        return {
            "spheres": [sphere.to_dict() for sphere in self.spheres],
            "lights": [light.to_dict() for light in self.lights],
            "floor": None if self.floor is None else self.floor.to_dict(),
            "background": list(self.background),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Scene":
        """Load a scene from a dictionary.

        Args:
            data: Dictionary with 'spheres', 'lights' and optionally 'floor'
                and 'background' keys.

        Raises:
            ValueError: If the dictionary contains unknown keys or invalid data.
        """
        check_keys(data, {"spheres", "lights", "floor", "background"}, "scene")
        spheres = data.get("spheres", [])
        lights = data.get("lights", [])
        if not isinstance(spheres, list) or not isinstance(lights, list):
            raise ValueError("Scene 'spheres' and 'lights' must be lists")
        floor_data = data.get("floor")
        return cls(
            spheres=tuple(Sphere.from_dict(s) for s in spheres),
            lights=tuple(Light.from_dict(light) for light in lights),
            floor=None if floor_data is None else Floor.from_dict(floor_data),
            background=data.get("background", BACKGROUND_COLOR),
        )


def save_scene(scene: Scene, filepath: str | Path) -> None:
    """Write a scene to a JSON file."""
    path = Path(filepath)
    path.write_text(json.dumps(scene.to_dict(), indent=2))
    logger.info("Saved scene with %d spheres to %s", len(scene.spheres), path)


def load_scene(filepath: str | Path) -> Scene:
    """Read a scene from a JSON file.

    Raises:
        ValueError: If the file is not valid JSON or describes an invalid scene.
    """
    path = Path(filepath)
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Scene file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Scene file {path} must contain a JSON object")
    scene = Scene.from_dict(data)
    logger.debug(
        "Loaded scene from %s: %d spheres, %d lights", path, len(scene.spheres), len(scene.lights)
    )
    return scene
