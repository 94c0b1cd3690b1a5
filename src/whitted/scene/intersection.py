"""Device-side scene buffers and the nearest-hit scene query.

This module uploads an immutable Scene into Taichi fields and provides the
scene query used by the tracer: a linear search over all spheres plus the
optional checkerboard floor, returning the nearest valid hit together with
its surface normal and material.

The uploaded scene is a @ti.data_oriented object that is passed explicitly
(as a ti.template() argument) into every kernel. There is no module-level
scene state, so any number of scenes can coexist and a scene can be shared
read-only by all pixels of a render. Host-side calls that launch a kernel
and read its output hold device_lock, so they may be issued from several
threads.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.scene.intersection import DeviceScene, find_nearest
    >>> from whitted.scene.reference import create_reference_scene
    >>> device_scene = DeviceScene(create_reference_scene())
    >>> hit = find_nearest((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), device_scene)
    >>> # Use device_scene.find_nearest(origin, direction) within a Taichi kernel
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from whitted.geometry.sphere import HIT_EPSILON, SphereShape, hit_sphere, sphere_normal
from whitted.materials.material import Material
from whitted.scene.description import Scene

logger = logging.getLogger(__name__)

# Type aliases for 3D vectors and albedo weights
vec3 = tm.vec3
vec4 = tm.vec4

# Maximum number of primitives supported in one uploaded scene
MAX_SPHERES = 1024
MAX_LIGHTS = 64

# Hits at or beyond this distance are treated as "at infinity" (a miss)
MAX_DISTANCE = 1000.0

# Rays this close to parallel with the floor plane never hit it
FLOOR_PARALLEL_EPSILON = 1e-3

# Uploaded scenes kept by as_device_scene before the oldest is released
SCENE_CACHE_SIZE = 8

# Serializes kernel launches with the host reads of their output fields
device_lock = threading.RLock()


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected the scene (1 if hit, 0 if miss).
        distance: Ray parameter of the hit. Only valid if hit == 1.
        point: The 3D hit point. Only valid if hit == 1.
        normal: The outward unit surface normal (not flipped toward the ray).
        refractive_index: Index of refraction of the hit material.
        albedo: (diffuse, specular, reflective, refractive) weights.
        diffuse_color: Diffuse color (the checker color on the floor).
        specular_exponent: Phong exponent of the hit material.
    """

    hit: ti.i32
    distance: ti.f32
    point: vec3
    normal: vec3
    refractive_index: ti.f32
    albedo: vec4
    diffuse_color: vec3
    specular_exponent: ti.f32


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        distance=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        refractive_index=1.0,
        albedo=vec4(0.0, 0.0, 0.0, 0.0),
        diffuse_color=vec3(0.0, 0.0, 0.0),
        specular_exponent=0.0,
    )


@dataclass(frozen=True)
class HitResult:
    """Host-side copy of a scene hit, returned by find_nearest().

    Attributes:
        point: The hit point.
        normal: The outward unit normal at the hit point.
        material: The material at the hit point (synthesized for the floor).
        distance: The ray parameter of the hit.
    """

    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    material: Material
    distance: float


def _to_tuple(v) -> tuple[float, ...]:
    return tuple(float(c) for c in v.to_numpy())


@ti.data_oriented
class DeviceScene:
    """An immutable Scene uploaded into Taichi fields.

    Spheres are stored Structure-of-Arrays style with their materials
    flattened alongside. Counts and floor bounds are plain Python values, so
    they are compile-time constants of every kernel that receives this
    scene as a template argument. Each DeviceScene therefore compiles its
    own instances of those kernels.

    All fields live in one SNode tree, freed by release(). A released scene
    raises RuntimeError on further use.

    Attributes:
        scene: The host-side Scene this was built from.
        num_spheres: Number of spheres.
        num_lights: Number of lights.
        has_floor: Whether the checkerboard floor is enabled.
        released: Whether the device memory has been freed.
    """

    def __init__(self, scene: Scene) -> None:
        """Upload a scene.

        Args:
            scene: The scene to upload.

        Raises:
            RuntimeError: If the scene exceeds MAX_SPHERES or MAX_LIGHTS.
        """
        if len(scene.spheres) > MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
        if len(scene.lights) > MAX_LIGHTS:
            raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")

        self.scene = scene
        self.num_spheres = len(scene.spheres)
        self.num_lights = len(scene.lights)
        self.has_floor = scene.floor is not None
        self.released = False

        # Fields cannot have zero length; unused slots are never read
        sphere_slots = max(self.num_spheres, 1)
        light_slots = max(self.num_lights, 1)

        # Sphere storage
        self.sphere_centers = ti.Vector.field(3, dtype=ti.f32)
        self.sphere_radii = ti.field(dtype=ti.f32)
        self.sphere_iors = ti.field(dtype=ti.f32)
        self.sphere_albedos = ti.Vector.field(4, dtype=ti.f32)
        self.sphere_colors = ti.Vector.field(3, dtype=ti.f32)
        self.sphere_exponents = ti.field(dtype=ti.f32)

        # Light storage
        self.light_positions = ti.Vector.field(3, dtype=ti.f32)
        self.light_intensities = ti.field(dtype=ti.f32)

        self.background = ti.Vector.field(3, dtype=ti.f32)

        # Floor material; bounds are compile-time constants
        self.floor_color_a = ti.Vector.field(3, dtype=ti.f32)
        self.floor_color_b = ti.Vector.field(3, dtype=ti.f32)
        self.floor_ior = ti.field(dtype=ti.f32)
        self.floor_albedo = ti.Vector.field(4, dtype=ti.f32)
        self.floor_exponent = ti.field(dtype=ti.f32)
        self.floor_height = 0.0
        self.floor_half_width = 0.0
        self.floor_z_near = 0.0
        self.floor_z_far = 0.0

        # Output of single-ray queries issued from Python
        self._query_hit = ti.field(dtype=ti.i32)
        self._query_distance = ti.field(dtype=ti.f32)
        self._query_point = ti.Vector.field(3, dtype=ti.f32)
        self._query_normal = ti.Vector.field(3, dtype=ti.f32)
        self._query_ior = ti.field(dtype=ti.f32)
        self._query_albedo = ti.Vector.field(4, dtype=ti.f32)
        self._query_color = ti.Vector.field(3, dtype=ti.f32)
        self._query_exponent = ti.field(dtype=ti.f32)

        with device_lock:
            fb = ti.FieldsBuilder()
            fb.dense(ti.i, sphere_slots).place(
                self.sphere_centers,
                self.sphere_radii,
                self.sphere_iors,
                self.sphere_albedos,
                self.sphere_colors,
                self.sphere_exponents,
            )
            fb.dense(ti.i, light_slots).place(self.light_positions, self.light_intensities)
            fb.place(
                self.background,
                self.floor_color_a,
                self.floor_color_b,
                self.floor_ior,
                self.floor_albedo,
                self.floor_exponent,
                self._query_hit,
                self._query_distance,
                self._query_point,
                self._query_normal,
                self._query_ior,
                self._query_albedo,
                self._query_color,
                self._query_exponent,
            )
            self._snode_tree = fb.finalize()
            self._upload()

        logger.debug(
            "Uploaded scene: %d spheres, %d lights, floor=%s",
            self.num_spheres,
            self.num_lights,
            self.has_floor,
        )

    def _upload(self) -> None:
        """Copy the host-side scene into the Taichi fields."""
        scene = self.scene
        for i, sphere in enumerate(scene.spheres):
            material = sphere.material
            self.sphere_centers[i] = sphere.center
            self.sphere_radii[i] = sphere.radius
            self.sphere_iors[i] = material.refractive_index
            self.sphere_albedos[i] = material.albedo
            self.sphere_colors[i] = material.diffuse_color
            self.sphere_exponents[i] = material.specular_exponent

        for i, light in enumerate(scene.lights):
            self.light_positions[i] = light.position
            self.light_intensities[i] = light.intensity

        self.background[None] = scene.background

        if scene.floor is not None:
            floor = scene.floor
            self.floor_color_a[None] = floor.color_a
            self.floor_color_b[None] = floor.color_b
            self.floor_ior[None] = floor.base_material.refractive_index
            self.floor_albedo[None] = floor.base_material.albedo
            self.floor_exponent[None] = floor.base_material.specular_exponent
            self.floor_height = floor.height
            self.floor_half_width = floor.half_width
            self.floor_z_near = floor.z_near
            self.floor_z_far = floor.z_far

    def check_alive(self) -> None:
        """Raise RuntimeError if the scene's device memory has been freed."""
        if self.released:
            raise RuntimeError("DeviceScene has been released and can no longer be used")

    def release(self) -> None:
        """Free the scene's device memory. Releasing twice is a no-op."""
        with device_lock:
            if self.released:
                return
            self._snode_tree.destroy()
            self.released = True
        logger.debug("Released scene with %d spheres", self.num_spheres)

    # =========================================================================
    # Scene Query
    # =========================================================================

    @ti.func
    def _floor_record(self, point: vec3, distance: ti.f32) -> SceneHitRecord:
        """Build the hit record for a floor point, with the checker color."""
        cell = ti.cast(0.5 * point.x + 1000.0, ti.i32) + ti.cast(0.5 * point.z, ti.i32)
        color = self.floor_color_b[None]
        if (cell & 1) == 1:
            color = self.floor_color_a[None]
        return SceneHitRecord(
            hit=1,
            distance=distance,
            point=point,
            normal=vec3(0.0, 1.0, 0.0),
            refractive_index=self.floor_ior[None],
            albedo=self.floor_albedo[None],
            diffuse_color=color,
            specular_exponent=self.floor_exponent[None],
        )

    @ti.func
    def find_nearest(self, ray_origin: vec3, ray_direction: vec3) -> SceneHitRecord:
        """Find the nearest hit of a ray against all spheres and the floor.

        Spheres are tested in scene order with a strict nearest comparison,
        then the floor (if enabled). A hit at MAX_DISTANCE or farther is
        reported as a miss.

        Args:
            ray_origin: The starting point of the ray.
            ray_direction: The direction of the ray (must be unit length).

        Returns:
            A SceneHitRecord for the nearest hit, or a miss record.
        """
        result = _make_miss_record()
        nearest = tm.inf
        nearest_index = -1

        for i in range(self.num_spheres):
            sphere = SphereShape(center=self.sphere_centers[i], radius=self.sphere_radii[i])
            did_hit, t = hit_sphere(ray_origin, ray_direction, sphere)
            if did_hit == 1 and t < nearest:
                nearest = t
                nearest_index = i

        if nearest_index >= 0:
            point = ray_origin + ray_direction * nearest
            nearest_shape = SphereShape(
                center=self.sphere_centers[nearest_index],
                radius=self.sphere_radii[nearest_index],
            )
            result = SceneHitRecord(
                hit=1,
                distance=nearest,
                point=point,
                normal=sphere_normal(nearest_shape, point),
                refractive_index=self.sphere_iors[nearest_index],
                albedo=self.sphere_albedos[nearest_index],
                diffuse_color=self.sphere_colors[nearest_index],
                specular_exponent=self.sphere_exponents[nearest_index],
            )

        if ti.static(self.has_floor):
            if ti.abs(ray_direction.y) > FLOOR_PARALLEL_EPSILON:
                d = -(ray_origin.y - self.floor_height) / ray_direction.y
                point = ray_origin + ray_direction * d
                if (
                    d > HIT_EPSILON
                    and ti.abs(point.x) < self.floor_half_width
                    and point.z < self.floor_z_near
                    and point.z > self.floor_z_far
                    and d < nearest
                ):
                    nearest = d
                    result = self._floor_record(point, d)

        if result.hit == 1 and result.distance >= MAX_DISTANCE:
            result = _make_miss_record()

        return result

    @ti.func
    def get_background(self) -> vec3:
        """Color of a ray that escapes the scene."""
        return self.background[None]

    # =========================================================================
    # Python-callable Query
    # =========================================================================

    @ti.kernel
    def _query_kernel(self, ray_origin: vec3, ray_direction: vec3):
        # Single-iteration loop keeps the query's own loops serial
        for _ in range(1):
            rec = self.find_nearest(ray_origin, ray_direction)
            self._query_hit[None] = rec.hit
            self._query_distance[None] = rec.distance
            self._query_point[None] = rec.point
            self._query_normal[None] = rec.normal
            self._query_ior[None] = rec.refractive_index
            self._query_albedo[None] = rec.albedo
            self._query_color[None] = rec.diffuse_color
            self._query_exponent[None] = rec.specular_exponent

    def query(
        self,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
    ) -> HitResult | None:
        """Run the scene query for one ray from Python.

        Safe to call from several threads; queries are serialized.

        Args:
            origin: Ray origin as (x, y, z).
            direction: Unit ray direction as (x, y, z).

        Returns:
            The nearest hit, or None on a miss.

        Raises:
            RuntimeError: If the scene has been released.
        """
        with device_lock:
            self.check_alive()
            self._query_kernel(vec3(*origin), vec3(*direction))
            if self._query_hit[None] == 0:
                return None
            albedo = _to_tuple(self._query_albedo[None])
            color = _to_tuple(self._query_color[None])
            point = _to_tuple(self._query_point[None])
            normal = _to_tuple(self._query_normal[None])
            ior = float(self._query_ior[None])
            exponent = float(self._query_exponent[None])
            distance = float(self._query_distance[None])
        material = Material(
            refractive_index=ior,
            albedo=albedo,
            diffuse_color=color,
            specular_exponent=exponent,
        )
        return HitResult(point=point, normal=normal, material=material, distance=distance)


# =============================================================================
# Upload Cache
# =============================================================================

_scene_cache: "OrderedDict[Scene, DeviceScene]" = OrderedDict()


def as_device_scene(scene: Scene | DeviceScene) -> DeviceScene:
    """Return the uploaded form of a scene, uploading (and caching) if needed.

    Scenes are immutable and hashable, so repeated queries against the same
    Scene reuse one set of fields and one set of compiled kernels. At most
    SCENE_CACHE_SIZE uploads are kept; the least recently used one is
    released when a new scene is uploaded past that limit. Compiled kernel
    instances of a released scene stay in Taichi's cache.

    Raises:
        RuntimeError: If a released DeviceScene is passed in.
    """
    if isinstance(scene, DeviceScene):
        scene.check_alive()
        return scene
    with device_lock:
        device_scene = _scene_cache.get(scene)
        if device_scene is not None:
            _scene_cache.move_to_end(scene)
            return device_scene
        device_scene = DeviceScene(scene)
        _scene_cache[scene] = device_scene
        while len(_scene_cache) > SCENE_CACHE_SIZE:
            _, evicted = _scene_cache.popitem(last=False)
            evicted.release()
        return device_scene


def clear_scene_cache() -> None:
    """Release every cached upload."""
    with device_lock:
        while _scene_cache:
            _, device_scene = _scene_cache.popitem(last=False)
            device_scene.release()


def find_nearest(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    scene: Scene | DeviceScene,
) -> HitResult | None:
    """Find the nearest hit of one ray against a scene.

    Args:
        origin: Ray origin as (x, y, z).
        direction: Unit ray direction as (x, y, z).
        scene: The scene to query.

    Returns:
        The nearest hit, or None if the ray hits nothing closer than
        MAX_DISTANCE.
    """
    with device_lock:
        return as_device_scene(scene).query(origin, direction)
