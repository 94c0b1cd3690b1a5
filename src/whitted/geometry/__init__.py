"""Geometry module for shape primitives.

This module provides the geometric primitive used by the scene query:

Components:
    sphere: Sphere primitive with geometric ray-sphere intersection

The intersection routine is a Taichi function (@ti.func) so it can be called
per ray from inside kernels. The infinite checkerboard floor is not a
primitive; it is evaluated procedurally by the scene query.

Ray-object intersection follows the pattern:
    did_hit, t = hit_sphere(ray_origin, ray_direction, sphere)
"""

from .sphere import HIT_EPSILON, SphereShape, hit_sphere, sphere_normal

__all__ = [
    "SphereShape",
    "hit_sphere",
    "sphere_normal",
    "HIT_EPSILON",
]
