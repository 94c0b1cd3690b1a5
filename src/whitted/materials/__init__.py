"""Materials module for the Whitted illumination model.

This module implements the single material model used by the tracer:

Components:
    material: Material dataclass (albedo weights, diffuse color, Phong
        exponent, index of refraction) and the presets of the reference scene

Each material provides:
    - albedo: weights for the diffuse, specular, reflective and refractive terms
    - diffuse_color: color modulating the Lambert term
    - specular_exponent: Phong highlight exponent
    - refractive_index: index used by Snell's law for the refracted ray

Materials are immutable host-side values; they are copied into Taichi fields
when a scene is uploaded to the device.
"""

from .material import (
    GLASS,
    IVORY,
    MIRROR,
    PRESETS,
    RED_RUBBER,
    Material,
    as_float,
    as_float_tuple,
    check_keys,
)

__all__ = [
    "Material",
    "as_float",
    "as_float_tuple",
    "check_keys",
    "IVORY",
    "GLASS",
    "RED_RUBBER",
    "MIRROR",
    "PRESETS",
]
