"""Sphere primitive with geometric ray-sphere intersection.

This module provides the SphereShape dataclass and the intersection test used
by the scene query. The test uses the geometric (closest-approach) method
rather than the quadratic formula:

    L   = center - origin
    tca = L . direction          (distance along the ray to closest approach)
    d2  = L . L - tca^2          (squared distance of closest approach)

If d2 > radius^2 the ray misses. Otherwise the two roots are tca -/+ thc with
thc = sqrt(radius^2 - d2).

Near-origin roots are rejected with HIT_EPSILON so that a secondary ray
spawned on a surface does not immediately re-hit that surface.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.geometry.sphere import SphereShape, hit_sphere
    >>> # Use hit_sphere within a Taichi kernel:
    >>> # did_hit, t = hit_sphere(origin, direction, sphere)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Minimum accepted ray parameter; scales with scene units
HIT_EPSILON = 1e-3


@ti.dataclass
class SphereShape:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive; validated when the scene
            is described, not here).
    """

    center: vec3
    radius: ti.f32


@ti.func
def hit_sphere(ray_origin: vec3, ray_direction: vec3, sphere: SphereShape):
    """Test a ray against a sphere.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray (must be unit length).
        sphere: The sphere to test.

    Returns:
        A tuple (did_hit, t) where did_hit is 1 on a hit and t is the smallest
        ray parameter not below HIT_EPSILON. t is only meaningful on a hit.
    """
    did_hit = 0
    t = 0.0

    L = sphere.center - ray_origin
    tca = tm.dot(L, ray_direction)
    d2 = tm.dot(L, L) - tca * tca
    r2 = sphere.radius * sphere.radius

    if d2 <= r2:
        thc = ti.sqrt(r2 - d2)
        t0 = tca - thc
        t1 = tca + thc
        # Origin on or inside the surface: fall back to the far root
        if t0 < HIT_EPSILON:
            t0 = t1
        if t0 >= HIT_EPSILON:
            did_hit = 1
            t = t0

    return did_hit, t


@ti.func
def sphere_normal(sphere: SphereShape, point: vec3) -> vec3:
    """Outward unit normal of the sphere at a surface point."""
    return tm.normalize(point - sphere.center)

