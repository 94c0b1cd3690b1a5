"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Vector helpers, reflection and refraction directions
    integrator: Whitted shading, the bounded reflect/refract ray tree, and
        the image render loop

The integrator evaluates, for every primary ray, local Lambert and Phong
lighting with hard shadows plus recursively traced mirror and refraction
rays, weighted by the material albedo. All per-ray work runs in Taichi
kernels.
"""

from .ray import (
    length,
    length_squared,
    normalize,
    reflect,
    reflect_direction,
    refract,
    refract_direction,
    vec3,
)

# Note: integrator is NOT imported here to avoid circular imports.
# Import directly from whitted.core.integrator when needed.

__all__ = [
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "reflect",
    "refract",
    "reflect_direction",
    "refract_direction",
]
