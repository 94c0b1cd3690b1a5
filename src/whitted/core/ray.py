"""Vector utilities for the Whitted ray tracer.

This module provides the small amount of vector algebra the tracer needs
beyond Taichi's built-in componentwise arithmetic: length, zero-safe
normalization, and the mirror-reflection and Snell-refraction directions.
All operations are Taichi functions so they can be called from inside
kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.core.ray import reflect_direction
    >>> reflect_direction((1.0, -1.0, 0.0), (0.0, 1.0, 0.0))
    (1.0, 1.0, 0.0)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors (points, directions, colors)
vec3 = tm.vec3


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes or testing for zero.
    """
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    Unlike tm.normalize, a zero-length input yields the zero vector instead of
    NaNs. The tracer relies on this: a refracted direction under total
    internal reflection is the zero vector and must stay zero.

    Args:
        v: The input vector.

    Returns:
        A unit vector in the same direction as v, or the zero vector.
    """
    result = vec3(0.0, 0.0, 0.0)
    len_sq = tm.dot(v, v)
    if len_sq > 0.0:
        result = v / ti.sqrt(len_sq)
    return result


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes incident - 2 * (incident . normal) * normal. The normal should be
    unit length; the result is not normalized.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal.

    Returns:
        The reflected direction vector.
    """
    return incident - normal * 2.0 * tm.dot(incident, normal)


@ti.func
def refract(incident: vec3, normal: vec3, refractive_index: ti.f32) -> vec3:
    """Refract an incident vector through a surface using Snell's law.

    The normal is the outward geometric normal; the side of incidence is
    derived from the sign of incident . normal. When the ray arrives from
    inside the material the indices are swapped (material to vacuum) and the
    normal is flipped, so the same formula serves entering and exiting rays.

    Args:
        incident: The incoming direction vector (unit length).
        normal: The outward surface normal (unit length).
        refractive_index: Index of refraction of the material (vacuum is 1).

    Returns:
        The refracted direction vector, or the zero vector under total
        internal reflection.
    """
    cos_i = -tm.clamp(tm.dot(incident, normal), -1.0, 1.0)
    eta_i = 1.0
    eta_t = refractive_index
    n = normal
    if cos_i < 0.0:
        # Ray is inside the object: swap the indices and flip the normal
        cos_i = -cos_i
        swap = eta_i
        eta_i = eta_t
        eta_t = swap
        n = -normal
    eta = eta_i / eta_t
    k = 1.0 - eta * eta * (1.0 - cos_i * cos_i)
    result = vec3(0.0, 0.0, 0.0)
    if k >= 0.0:
        result = incident * eta + n * (eta * cos_i - ti.sqrt(k))
    return result


# =============================================================================
# Python-callable wrappers
# =============================================================================


@ti.kernel
def _reflect_kernel(incident: vec3, normal: vec3) -> vec3:
    return normalize(reflect(incident, normal))


@ti.kernel
def _refract_kernel(incident: vec3, normal: vec3, refractive_index: ti.f32) -> vec3:
    return normalize(refract(incident, normal, refractive_index))


def reflect_direction(
    incident: tuple[float, float, float],
    normal: tuple[float, float, float],
) -> tuple[float, float, float]:
    """Compute the normalized mirror direction from Python.

    Args:
        incident: The incoming direction as (x, y, z).
        normal: The unit surface normal as (x, y, z).

    Returns:
        The normalized reflected direction.
    """
    result = _reflect_kernel(vec3(*incident), vec3(*normal))
    return (float(result[0]), float(result[1]), float(result[2]))


def refract_direction(
    incident: tuple[float, float, float],
    normal: tuple[float, float, float],
    refractive_index: float,
) -> tuple[float, float, float]:
    """Compute the normalized refracted direction from Python.

    Args:
        incident: The incoming unit direction as (x, y, z).
        normal: The outward unit surface normal as (x, y, z).
        refractive_index: Index of refraction of the material.

    Returns:
        The normalized refracted direction, or (0, 0, 0) under total internal
        reflection.
    """
    result = _refract_kernel(vec3(*incident), vec3(*normal), refractive_index)
    return (float(result[0]), float(result[1]), float(result[2]))
