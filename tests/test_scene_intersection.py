"""Unit tests for the scene query.

Tests cover:
- Nearest sphere selection regardless of scene order
- Hit point, outward normal and material of a sphere hit
- Checkerboard floor hits, bounds and tiling
- Floor versus sphere ordering
- Misses: empty scenes, parallel rays, hits beyond MAX_DISTANCE
- Device upload capacity limits, release and cache eviction
- Queries issued from several threads
"""

import math

import pytest


def _unit(x, y, z):
    n = math.sqrt(x * x + y * y + z * z)
    return (x / n, y / n, z / n)


class TestNearestSphere:
    """Tests for picking the nearest of several spheres."""

    def test_nearest_of_two(self):
        """Test that the closer sphere wins."""
        from whitted.materials.material import GLASS, IVORY
        from whitted.scene.description import Scene, Sphere
        from whitted.scene.intersection import find_nearest

        scene = Scene(
            spheres=(
                Sphere((0.0, 0.0, -10.0), 1.0, GLASS),
                Sphere((0.0, 0.0, -5.0), 1.0, IVORY),
            )
        )
        hit = find_nearest((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), scene)

        assert hit is not None
        assert abs(hit.distance - 4.0) < 1e-5
        assert hit.point == pytest.approx((0.0, 0.0, -4.0), abs=1e-5)
        assert hit.normal == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)
        assert hit.material.albedo == pytest.approx(IVORY.albedo)
        assert hit.material.diffuse_color == pytest.approx(IVORY.diffuse_color)

    def test_order_does_not_matter(self):
        """Test that reversing the sphere order gives the same hit."""
        from whitted.materials.material import GLASS, IVORY
        from whitted.scene.description import Scene, Sphere
        from whitted.scene.intersection import find_nearest

        near = Sphere((0.0, 0.0, -5.0), 1.0, IVORY)
        far = Sphere((0.0, 0.0, -10.0), 1.0, GLASS)
        a = find_nearest((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), Scene(spheres=(near, far)))
        b = find_nearest((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), Scene(spheres=(far, near)))
        assert a == b

    def test_inside_sphere_normal_points_outward(self):
        """Test that the reported normal is not flipped toward the ray."""
        from whitted.materials.material import GLASS
        from whitted.scene.description import Scene, Sphere
        from whitted.scene.intersection import find_nearest

        scene = Scene(spheres=(Sphere((0.0, 0.0, -10.0), 2.0, GLASS),))
        hit = find_nearest((0.0, 0.0, -10.0), (0.0, 0.0, -1.0), scene)

        assert hit is not None
        assert hit.point == pytest.approx((0.0, 0.0, -12.0), abs=1e-5)
        assert hit.normal == pytest.approx((0.0, 0.0, -1.0), abs=1e-5)

    def test_miss_returns_none(self):
        """Test that a ray missing everything returns None."""
        from whitted.scene.reference import create_reference_scene
        from whitted.scene.intersection import find_nearest

        assert find_nearest((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), create_reference_scene()) is None

    def test_hit_beyond_max_distance_is_miss(self):
        """Test that geometry at or beyond MAX_DISTANCE counts as a miss."""
        from whitted.scene.description import Scene, Sphere
        from whitted.scene.intersection import MAX_DISTANCE, find_nearest

        scene = Scene(spheres=(Sphere((0.0, 0.0, -(MAX_DISTANCE + 50.0)), 10.0),))
        assert find_nearest((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), scene) is None

    def test_empty_scene(self):
        """Test that an empty scene never reports a hit."""
        from whitted.scene.description import Scene
        from whitted.scene.intersection import find_nearest

        assert find_nearest((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), Scene()) is None


class TestFloor:
    """Tests for the procedural checkerboard floor."""

    def test_floor_hit(self):
        """Test a ray hitting the floor inside its bounds."""
        from whitted.scene.description import Floor, Scene
        from whitted.scene.intersection import find_nearest

        floor = Floor()
        hit = find_nearest((0.0, 0.0, 0.0), _unit(0.0, -4.0, -15.0), Scene(floor=floor))

        assert hit is not None
        assert hit.point == pytest.approx((0.0, -4.0, -15.0), abs=1e-4)
        assert hit.normal == pytest.approx((0.0, 1.0, 0.0))
        assert hit.material.albedo == (1.0, 0.0, 0.0, 0.0)
        assert hit.material.refractive_index == 1.0
        assert hit.material.specular_exponent == 0.0
        assert hit.material.diffuse_color == pytest.approx(floor.checker_color(0.0, -15.0))

    @pytest.mark.parametrize(
        "target",
        [(-9.0, -11.0), (-3.3, -20.7), (0.5, -15.2), (2.2, -12.9), (7.9, -27.0)],
    )
    def test_checker_tiling(self, target):
        """Test that the device checker matches the host checker_color."""
        from whitted.scene.description import Floor, Scene
        from whitted.scene.intersection import find_nearest

        floor = Floor()
        x, z = target
        hit = find_nearest((0.0, 0.0, 0.0), _unit(x, -4.0, z), Scene(floor=floor))

        assert hit is not None
        hx, _, hz = hit.point
        assert hit.material.diffuse_color == pytest.approx(floor.checker_color(hx, hz))

    def test_checker_colors_alternate(self):
        """Test that neighbouring 2x2 cells have different colors."""
        from whitted.scene.description import Floor

        floor = Floor()
        assert floor.checker_color(1.0, -15.0) != floor.checker_color(3.0, -15.0)
        assert floor.checker_color(1.0, -15.0) != floor.checker_color(1.0, -13.0)
        assert floor.checker_color(1.0, -15.0) == floor.checker_color(3.0, -13.0)

    @pytest.mark.parametrize(
        "direction",
        [(0.0, -4.0, -35.0), (0.0, -4.0, -5.0), (12.0, -4.0, -15.0)],
    )
    def test_outside_bounds_misses(self, direction):
        """Test rays meeting the plane outside the bounded rectangle."""
        from whitted.scene.description import Floor, Scene
        from whitted.scene.intersection import find_nearest

        assert find_nearest((0.0, 0.0, 0.0), _unit(*direction), Scene(floor=Floor())) is None

    def test_parallel_ray_misses(self):
        """Test that a ray parallel to the floor never hits it."""
        from whitted.scene.description import Floor, Scene
        from whitted.scene.intersection import find_nearest

        scene = Scene(floor=Floor())
        assert find_nearest((0.0, -3.0, 0.0), (0.0, 0.0, -1.0), scene) is None

    def test_floor_behind_ray_misses(self):
        """Test that the floor plane behind the origin is ignored."""
        from whitted.scene.description import Floor, Scene
        from whitted.scene.intersection import find_nearest

        scene = Scene(floor=Floor())
        assert find_nearest((0.0, -5.0, -15.0), (0.0, -1.0, 0.0), scene) is None

    def test_sphere_in_front_of_floor(self):
        """Test that a sphere occluding the floor is reported instead."""
        from whitted.materials.material import RED_RUBBER
        from whitted.scene.description import Floor, Scene, Sphere
        from whitted.scene.intersection import find_nearest

        scene = Scene(
            spheres=(Sphere((0.0, -3.0, -15.0), 0.5, RED_RUBBER),),
            floor=Floor(),
        )
        hit = find_nearest((0.0, 0.0, -15.0), (0.0, -1.0, 0.0), scene)

        assert hit is not None
        assert hit.material.albedo == pytest.approx(RED_RUBBER.albedo)
        assert abs(hit.distance - 2.5) < 1e-5

    def test_floor_in_front_of_sphere(self):
        """Test that the floor hides a sphere below it."""
        from whitted.materials.material import RED_RUBBER
        from whitted.scene.description import Floor, Scene, Sphere
        from whitted.scene.intersection import find_nearest

        scene = Scene(
            spheres=(Sphere((0.0, -6.0, -15.0), 1.0, RED_RUBBER),),
            floor=Floor(),
        )
        hit = find_nearest((0.0, 0.0, -15.0), (0.0, -1.0, 0.0), scene)

        assert hit is not None
        assert abs(hit.distance - 4.0) < 1e-5
        assert hit.normal == pytest.approx((0.0, 1.0, 0.0))

    def test_scene_without_floor(self):
        """Test that removing the floor turns a floor hit into a miss."""
        from whitted.scene.description import Floor, Scene
        from whitted.scene.intersection import find_nearest

        scene = Scene(floor=Floor()).without_floor()
        assert find_nearest((0.0, 0.0, 0.0), _unit(0.0, -4.0, -15.0), scene) is None


class TestDeviceScene:
    """Tests for uploading scenes to the device."""

    def test_counts(self):
        """Test that counts and floor flag reflect the scene."""
        from whitted.scene.intersection import DeviceScene
        from whitted.scene.reference import create_reference_scene

        device_scene = DeviceScene(create_reference_scene())
        assert device_scene.num_spheres == 4
        assert device_scene.num_lights == 3
        assert device_scene.has_floor

    def test_upload_is_cached(self):
        """Test that equal scenes share one uploaded copy."""
        from whitted.scene.intersection import as_device_scene
        from whitted.scene.reference import create_reference_scene

        assert as_device_scene(create_reference_scene()) is as_device_scene(
            create_reference_scene()
        )

    def test_device_scene_passes_through(self):
        """Test that an uploaded scene is used as is."""
        from whitted.scene.description import Scene
        from whitted.scene.intersection import DeviceScene, as_device_scene

        device_scene = DeviceScene(Scene())
        assert as_device_scene(device_scene) is device_scene

    def test_too_many_lights(self):
        """Test that exceeding MAX_LIGHTS raises RuntimeError."""
        from whitted.scene.description import Light, Scene
        from whitted.scene.intersection import MAX_LIGHTS, DeviceScene

        lights = tuple(Light((float(i), 10.0, 0.0), 1.0) for i in range(MAX_LIGHTS + 1))
        with pytest.raises(RuntimeError, match="lights"):
            DeviceScene(Scene(lights=lights))

    def test_too_many_spheres(self):
        """Test that exceeding MAX_SPHERES raises RuntimeError."""
        from whitted.scene.description import Scene, Sphere
        from whitted.scene.intersection import MAX_SPHERES, DeviceScene

        spheres = tuple(
            Sphere((float(i), 0.0, -10.0), 0.5) for i in range(MAX_SPHERES + 1)
        )
        with pytest.raises(RuntimeError, match="spheres"):
            DeviceScene(Scene(spheres=spheres))

    def test_release(self):
        """Test that a released scene refuses further use."""
        from whitted.core.integrator import cast
        from whitted.scene.description import Scene
        from whitted.scene.intersection import DeviceScene, as_device_scene

        device_scene = DeviceScene(Scene())
        assert device_scene.query((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)) is None

        device_scene.release()
        device_scene.release()
        assert device_scene.released
        with pytest.raises(RuntimeError, match="released"):
            device_scene.query((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        with pytest.raises(RuntimeError, match="released"):
            as_device_scene(device_scene)
        with pytest.raises(RuntimeError, match="released"):
            cast((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), device_scene)

    def test_cache_releases_evicted_scenes(self):
        """Test that the upload cache is bounded and frees what it evicts."""
        from whitted.scene.description import Scene
        from whitted.scene.intersection import (
            SCENE_CACHE_SIZE,
            as_device_scene,
            clear_scene_cache,
            find_nearest,
        )

        clear_scene_cache()
        scenes = [Scene(background=(0.01 * i, 0.0, 0.0)) for i in range(SCENE_CACHE_SIZE + 1)]
        uploads = [as_device_scene(scene) for scene in scenes]

        assert uploads[0].released
        assert not any(upload.released for upload in uploads[1:])

        # The evicted scene is uploaded again on demand
        reuploaded = as_device_scene(scenes[0])
        assert reuploaded is not uploads[0]
        assert not reuploaded.released
        assert find_nearest((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), scenes[0]) is None

        clear_scene_cache()
        assert reuploaded.released
        assert all(upload.released for upload in uploads)


class TestConcurrentQueries:
    """Tests for scene queries issued from several threads."""

    def test_threads_get_their_own_results(self):
        """Test that interleaved queries never see each other's output."""
        from concurrent.futures import ThreadPoolExecutor

        from whitted.scene.intersection import as_device_scene
        from whitted.scene.reference import create_reference_scene

        device_scene = as_device_scene(create_reference_scene())
        forward = device_scene.query((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert forward is not None

        def run(direction):
            results = [device_scene.query((0.0, 0.0, 0.0), direction) for _ in range(200)]
            return results

        with ThreadPoolExecutor(max_workers=2) as pool:
            up = pool.submit(run, (0.0, 1.0, 0.0))
            ahead = pool.submit(run, (0.0, 0.0, -1.0))
            up_results = up.result()
            ahead_results = ahead.result()

        assert all(result is None for result in up_results)
        assert all(result == forward for result in ahead_results)
