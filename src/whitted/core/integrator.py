"""Whitted ray tracing integrator.

This module implements the shading and recursive ray casting of the Whitted
illumination model and the image render loop built on it.

For each hit the caster computes:
    - direct lighting: Lambert (diffuse) and Phong (specular) sums over every
      point light not blocked by scene geometry (hard shadows)
    - a mirror-reflected ray and a Snell-refracted ray, each traced further

and combines the four terms with the material's albedo weights:

    color = diffuse_color * diffuse * albedo[0] + white * specular * albedo[1]
          + reflect_color * albedo[2] + refract_color * albedo[3]

Rays that hit nothing, or that are deeper than MAX_RECURSION_DEPTH, return
the scene background.

Taichi functions cannot recurse, so the recursion is evaluated with a small
explicit stack of pending rays. Because the combination is linear, each
pending ray carries the product of the albedo weights along its path and
adds its own weighted local term to a single accumulator. Branches whose
weight is exactly zero are never spawned.

Key features:
    - Explicit read-only scene context passed into every kernel
    - Self-intersection avoidance with a surface offset of HIT_EPSILON
    - Total internal reflection yields a zero refracted direction, which
      contributes black
    - One parallel kernel over all pixels for full images
    - cast() and render() serialize on device_lock and may be called from
      several threads

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.core.integrator import cast, render
    >>> from whitted.scene.reference import create_reference_scene, create_reference_camera
    >>>
    >>> scene = create_reference_scene()
    >>> cast((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), scene)
    >>> image = render(scene, create_reference_camera(256, 192))
"""

import functools
import logging
import time
from collections import OrderedDict

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from whitted.camera.pinhole import PinholeCamera, primary_direction
from whitted.core.ray import length, length_squared, normalize, reflect, refract
from whitted.geometry.sphere import HIT_EPSILON
from whitted.scene.description import Scene
from whitted.scene.intersection import DeviceScene, as_device_scene, device_lock

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Deepest ray that is still shaded; deeper rays return the background
MAX_RECURSION_DEPTH = 4

# Smallest depth at which cast() returns the background unconditionally
DEPTH_LIMIT = MAX_RECURSION_DEPTH + 1

# Offset of secondary ray origins from the surface
RAY_EPSILON = HIT_EPSILON

# Pending-ray slots; depth-first traversal needs DEPTH_LIMIT + 1
STACK_SIZE = DEPTH_LIMIT + 3

# Framebuffers kept for reuse; the least recently used one is freed beyond this
FRAMEBUFFER_CACHE_SIZE = 4

WHITE = vec3(1.0, 1.0, 1.0)


# =============================================================================
# Shading
# =============================================================================


@ti.func
def _offset_ray_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Offset a ray origin to avoid self-intersection.

    Pushes the point along the normal to the side the new ray travels
    toward: outside for reflection and shadow rays, inside for rays
    entering the surface.

    Args:
        point: The hit point.
        normal: The outward surface normal.
        direction: The direction of the spawned ray.

    Returns:
        The offset origin point.
    """
    result = point + normal * RAY_EPSILON
    if tm.dot(direction, normal) < 0.0:
        result = point - normal * RAY_EPSILON
    return result


@ti.func
def direct_lighting(
    scene: ti.template(),
    point: vec3,
    normal: vec3,
    direction: vec3,
    specular_exponent: ti.f32,
):
    """Sum the diffuse and specular light arriving at a point.

    Each light casts a shadow ray from the offset point toward the light. A
    light is blocked when the shadow ray hits something closer than the
    light itself; blocked lights contribute nothing (no partial shadowing
    through transparent occluders).

    Args:
        scene: The DeviceScene being rendered.
        point: The hit point.
        normal: The outward surface normal at the point.
        direction: Direction of the ray that hit the point.
        specular_exponent: Phong exponent of the hit material.

    Returns:
        A tuple (diffuse, specular) of scalar light sums.
    """
    diffuse = 0.0
    specular = 0.0
    for k in range(scene.num_lights):
        to_light = scene.light_positions[k] - point
        light_distance = length(to_light)
        light_dir = to_light / light_distance

        shadow_origin = _offset_ray_origin(point, normal, light_dir)
        blocker = scene.find_nearest(shadow_origin, light_dir)
        occluded = 0
        if blocker.hit == 1:
            if length(blocker.point - shadow_origin) < light_distance:
                occluded = 1

        if occluded == 0:
            intensity = scene.light_intensities[k]
            diffuse += intensity * tm.max(0.0, tm.dot(light_dir, normal))
            highlight = tm.max(0.0, -tm.dot(reflect(-light_dir, normal), direction))
            specular += highlight**specular_exponent * intensity

    return diffuse, specular


@ti.func
def trace_ray(scene: ti.template(), origin: vec3, direction: vec3, depth: ti.i32) -> vec3:
    """Evaluate the Whitted color seen along a ray.

    Equivalent to the recursive definition

        cast(o, d, depth) = background                      if depth > MAX
                          = background                      on a miss
                          = local + a2 * cast(reflected) + a3 * cast(refracted)

    evaluated depth-first with an explicit stack. The reflection subtree is
    evaluated before the refraction subtree.

    Args:
        scene: The DeviceScene being rendered.
        origin: The ray origin.
        direction: The ray direction (must be unit length, or zero).
        depth: Recursion depth of this ray (0 for primary rays).

    Returns:
        The unclamped linear RGB color.
    """
    color = vec3(0.0, 0.0, 0.0)
    background = scene.get_background()

    # Pending rays: origin and direction rows, depth, accumulated path weight
    stack_origin = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_direction = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_depth = ti.Vector([0 for _ in range(STACK_SIZE)], dt=ti.i32)
    stack_weight = ti.Vector([0.0 for _ in range(STACK_SIZE)], dt=ti.f32)

    for c in ti.static(range(3)):
        stack_origin[0, c] = origin[c]
        stack_direction[0, c] = direction[c]
    stack_depth[0] = depth
    stack_weight[0] = 1.0
    top = 1

    while top > 0:
        top -= 1
        o = vec3(stack_origin[top, 0], stack_origin[top, 1], stack_origin[top, 2])
        d = vec3(stack_direction[top, 0], stack_direction[top, 1], stack_direction[top, 2])
        ray_depth = stack_depth[top]
        weight = stack_weight[top]

        # A zero direction (total internal reflection) carries no light
        if length_squared(d) > 0.0:
            if ray_depth > MAX_RECURSION_DEPTH:
                color += weight * background
            else:
                rec = scene.find_nearest(o, d)
                if rec.hit == 0:
                    color += weight * background
                else:
                    point = rec.point
                    normal = rec.normal
                    albedo = rec.albedo

                    diffuse, specular = direct_lighting(
                        scene, point, normal, d, rec.specular_exponent
                    )
                    color += weight * (
                        rec.diffuse_color * diffuse * albedo[0] + WHITE * specular * albedo[1]
                    )

                    reflect_dir = normalize(reflect(d, normal))
                    refract_dir = normalize(refract(d, normal, rec.refractive_index))

                    # Refraction goes on the stack first so reflection pops first
                    for branch in ti.static(range(2)):
                        child_dir = refract_dir
                        child_weight = weight * albedo[3]
                        if ti.static(branch == 1):
                            child_dir = reflect_dir
                            child_weight = weight * albedo[2]
                        if child_weight != 0.0 and top < STACK_SIZE:
                            child_origin = _offset_ray_origin(point, normal, child_dir)
                            for c in ti.static(range(3)):
                                stack_origin[top, c] = child_origin[c]
                                stack_direction[top, c] = child_dir[c]
                            stack_depth[top] = ray_depth + 1
                            stack_weight[top] = child_weight
                            top += 1

    return color


# =============================================================================
# Rendering Kernels
# =============================================================================


@functools.lru_cache(maxsize=None)
def _radiance_buffer() -> ti.MatrixField:
    """Single-ray output buffer, allocated on first use (after ti.init)."""
    return ti.Vector.field(3, dtype=ti.f32, shape=())


_framebuffers: "OrderedDict[tuple[int, int], tuple[ti.MatrixField, ti.SNodeTree]]" = OrderedDict()


def _framebuffer(height: int, width: int) -> ti.MatrixField:
    """Framebuffer for one resolution, reused so kernels compile once.

    Each framebuffer owns its SNode tree, destroyed when it is evicted.
    Must be called with device_lock held.
    """
    key = (height, width)
    entry = _framebuffers.get(key)
    if entry is not None:
        _framebuffers.move_to_end(key)
        return entry[0]
    framebuffer = ti.Vector.field(3, dtype=ti.f32)
    fb = ti.FieldsBuilder()
    fb.dense(ti.ij, (height, width)).place(framebuffer)
    _framebuffers[key] = (framebuffer, fb.finalize())
    while len(_framebuffers) > FRAMEBUFFER_CACHE_SIZE:
        (old_height, old_width), (_, snode_tree) = _framebuffers.popitem(last=False)
        snode_tree.destroy()
        logger.debug("Freed %dx%d framebuffer", old_width, old_height)
    return framebuffer


@ti.kernel
def _cast_kernel(
    scene: ti.template(),
    origin: vec3,
    direction: vec3,
    depth: ti.i32,
    out: ti.template(),
):
    """Trace a single ray and store its color in out[None]."""
    # Single-iteration loop keeps the tracer's own loops serial
    for _ in range(1):
        out[None] = trace_ray(scene, origin, direction, depth)


@ti.kernel
def _render_kernel(
    scene: ti.template(),
    framebuffer: ti.template(),
    eye: vec3,
    tan_half_fov: ti.f32,
):
    """Trace one primary ray per pixel, in parallel over all pixels.

    framebuffer is indexed [row, column] with row 0 at the top of the image.
    """
    height = framebuffer.shape[0]
    width = framebuffer.shape[1]
    for j, i in framebuffer:
        direction = primary_direction(i, j, width, height, tan_half_fov)
        framebuffer[j, i] = trace_ray(scene, eye, direction, 0)


# =============================================================================
# Public Rendering API
# =============================================================================


def cast(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    scene: Scene | DeviceScene,
    depth: int = 0,
) -> tuple[float, float, float]:
    """Trace one ray through a scene and return its color.

    Precondition: direction must be unit length. It is not checked; a
    non-unit direction gives a physically wrong color, never an error.

    Args:
        origin: Ray origin as (x, y, z).
        direction: Unit ray direction as (x, y, z).
        scene: The scene, host-side or already uploaded.
        depth: Recursion depth of the ray; 0 for primary rays.

    Returns:
        Tuple of (R, G, B) linear color values. Components may exceed 1.

    Raises:
        ValueError: If depth is negative.
        RuntimeError: If a released DeviceScene is passed.
    """
    if depth < 0:
        raise ValueError(f"Ray depth = {depth} must be non-negative")

    with device_lock:
        device_scene = as_device_scene(scene)
        out = _radiance_buffer()
        _cast_kernel(device_scene, vec3(*origin), vec3(*direction), depth, out)
        color = out[None]
        return (float(color[0]), float(color[1]), float(color[2]))


def render(scene: Scene | DeviceScene, camera: PinholeCamera) -> npt.NDArray[np.float32]:
    """Render a full image.

    Args:
        scene: The scene to render.
        camera: Camera position, field of view and resolution.

    Returns:
        Linear, unclamped image of shape (height, width, 3), dtype float32,
        row 0 at the top.

    Raises:
        RuntimeError: If a released DeviceScene is passed.
    """
    start_time = time.perf_counter()
    with device_lock:
        device_scene = as_device_scene(scene)
        framebuffer = _framebuffer(camera.height, camera.width)
        _render_kernel(device_scene, framebuffer, vec3(*camera.eye), camera.tan_half_fov)
        image = framebuffer.to_numpy()
    elapsed = time.perf_counter() - start_time

    logger.info(
        "Rendered %dx%d image in %.2fs (%d spheres, %d lights)",
        camera.width,
        camera.height,
        elapsed,
        device_scene.num_spheres,
        device_scene.num_lights,
    )
    return image.astype(np.float32)
