"""Whitted material model.

A Whitted material does not sample a BSDF. It describes how the four light
contributions computed at a hit are weighted into the final color:

    color = diffuse_color * diffuse_light  * albedo[0]
          + white         * specular_light * albedo[1]
          + reflect_color                  * albedo[2]
          + refract_color                  * albedo[3]

The weights are not required to sum to one; over-bright results are left for
tone mapping. The diffuse and specular light terms are the Lambert and Phong
sums over all unoccluded point lights, the latter raised to
specular_exponent. refractive_index drives Snell's law for the refracted ray.

Example:
    >>> from whitted.materials.material import Material, GLASS
    >>> chalk = Material(albedo=(0.9, 0.1, 0.0, 0.0), diffuse_color=(0.8, 0.8, 0.8))
    >>> GLASS.refractive_index
    1.5
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


def as_float_tuple(value: Sequence[float], size: int, name: str) -> tuple[float, ...]:
    """Convert a sequence of numbers to a tuple of floats of a fixed size.

    Args:
        value: The input sequence (tuple, list, NumPy array).
        size: The required number of components.
        name: Parameter name used in error messages.

    Returns:
        A tuple of `size` floats.

    Raises:
        ValueError: If the value does not have exactly `size` numeric components.
    """
    try:
        components = tuple(float(c) for c in value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a sequence of {size} numbers, got {value!r}") from e
    if len(components) != size:
        raise ValueError(f"{name} must have {size} components, got {len(components)}")
    return components


def as_float(value: Any, name: str) -> float:
    """Convert a scalar to float, raising ValueError for non-numeric input."""
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


def check_keys(data: Any, known: set[str], what: str) -> None:
    """Reject non-dictionary input and keys outside `known`."""
    if not isinstance(data, dict):
        raise ValueError(f"{what.capitalize()} must be an object, got {type(data).__name__}")
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {what} keys: {sorted(unknown)}")


@dataclass(frozen=True)
class Material:
    """Surface properties attached to a sphere (or synthesized for the floor).

    Attributes:
        refractive_index: Index of refraction (>= 1). Vacuum is 1.0.
        albedo: Weights (diffuse, specular, reflective, refractive), each >= 0.
        diffuse_color: Base RGB color modulating diffuse light.
        specular_exponent: Phong exponent (>= 0). Larger is a tighter highlight.
    """

    refractive_index: float = 1.0
    albedo: tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0)
    diffuse_color: tuple[float, float, float] = (0.0, 0.0, 0.0)
    specular_exponent: float = 0.0

    def __post_init__(self) -> None:
        refractive_index = as_float(self.refractive_index, "refractive_index")
        if refractive_index < 1.0:
            raise ValueError(
                f"Index of refraction = {refractive_index} is less than 1.0. "
                "IOR must be >= 1.0 for physically meaningful materials."
            )
        albedo = as_float_tuple(self.albedo, 4, "albedo")
        for i, weight in enumerate(albedo):
            if weight < 0.0:
                raise ValueError(f"Albedo weight {i} = {weight} is negative")
        specular_exponent = as_float(self.specular_exponent, "specular_exponent")
        if specular_exponent < 0.0:
            raise ValueError(f"Specular exponent = {specular_exponent} is negative")
        # Frozen dataclass: normalize sequences to tuples of floats
        object.__setattr__(self, "refractive_index", refractive_index)
        object.__setattr__(self, "albedo", albedo)
        object.__setattr__(
            self, "diffuse_color", as_float_tuple(self.diffuse_color, 3, "diffuse_color")
        )
        object.__setattr__(self, "specular_exponent", specular_exponent)

    def to_dict(self) -> dict[str, Any]:
        """Export the material to a JSON-compatible dictionary."""
        return {
            "refractive_index": self.refractive_index,
            "albedo": list(self.albedo),
            "diffuse_color": list(self.diffuse_color),
            "specular_exponent": self.specular_exponent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Material":
        """Create a material from a dictionary.

        Missing keys take the defaults of the plain diffuse material.

        Raises:
            ValueError: If the dictionary has unknown keys or invalid values.
        """
        check_keys(
            data,
            {"refractive_index", "albedo", "diffuse_color", "specular_exponent"},
            "material",
        )
        return cls(**data)


# =============================================================================
# Presets
# =============================================================================

IVORY = Material(
    refractive_index=1.0,
    albedo=(0.6, 0.3, 0.1, 0.0),
    diffuse_color=(0.4, 0.4, 0.3),
    specular_exponent=50.0,
)

GLASS = Material(
    refractive_index=1.5,
    albedo=(0.0, 0.5, 0.1, 0.8),
    diffuse_color=(0.6, 0.7, 0.8),
    specular_exponent=125.0,
)

RED_RUBBER = Material(
    refractive_index=1.0,
    albedo=(0.9, 0.1, 0.0, 0.0),
    diffuse_color=(0.3, 0.1, 0.1),
    specular_exponent=10.0,
)

# Specular weight above 1 is intentional: it makes the mirror highlight bloom
MIRROR = Material(
    refractive_index=1.0,
    albedo=(0.0, 10.0, 0.8, 0.0),
    diffuse_color=(1.0, 1.0, 1.0),
    specular_exponent=1425.0,
)

PRESETS: dict[str, Material] = {
    "ivory": IVORY,
    "glass": GLASS,
    "red_rubber": RED_RUBBER,
    "mirror": MIRROR,
}
