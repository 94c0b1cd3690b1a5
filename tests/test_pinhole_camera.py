"""Unit tests for the pinhole camera module.

Tests cover:
- Camera validation
- Primary ray directions for center and corner pixels
- Agreement between the host and kernel direction formulas
"""

import math

import pytest
import taichi as ti


class TestCameraSetup:
    """Tests for camera construction."""

    def test_defaults(self):
        """Test the default camera."""
        from whitted.camera.pinhole import PinholeCamera

        camera = PinholeCamera()
        assert (camera.width, camera.height) == (1024, 768)
        assert camera.eye == (0.0, 0.0, 0.0)
        assert abs(camera.tan_half_fov - math.tan(math.pi / 6.0)) < 1e-12
        assert abs(camera.aspect_ratio - 4.0 / 3.0) < 1e-12

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"width": 0},
            {"height": -1},
            {"width": 5000},
            {"fov": 0.0},
            {"fov": math.pi},
        ],
    )
    def test_invalid(self, kwargs):
        """Test that bad dimensions and field of view are rejected."""
        from whitted.camera.pinhole import PinholeCamera

        with pytest.raises(ValueError):
            PinholeCamera(**kwargs)


class TestRayDirections:
    """Tests for primary ray generation."""

    def test_center_pixel_looks_down_negative_z(self):
        """Test that the middle pixel of an odd image looks straight ahead."""
        from whitted.camera.pinhole import PinholeCamera

        camera = PinholeCamera(width=5, height=3)
        assert camera.direction_for_pixel(2, 1) == pytest.approx((0.0, 0.0, -1.0))

    def test_top_left_points_up_and_left(self):
        """Test image orientation: row 0 is the top, column 0 is the left."""
        from whitted.camera.pinhole import PinholeCamera

        x, y, z = PinholeCamera(width=8, height=6).direction_for_pixel(0, 0)
        assert x < 0.0
        assert y > 0.0
        assert z < 0.0

    def test_field_of_view(self):
        """Test that edge rows span the vertical field of view."""
        from whitted.camera.pinhole import PinholeCamera

        camera = PinholeCamera(width=1, height=1000, fov=math.pi / 2.0)
        _, y, z = camera.direction_for_pixel(0, 0)
        # Half-pixel inset from the 45 degree edge
        assert abs(math.atan2(y, -z) - math.atan(0.999)) < 1e-9

    def test_kernel_matches_host(self):
        """Test that the Taichi ray generator agrees with the host formula."""
        from whitted.camera.pinhole import PinholeCamera, primary_direction

        camera = PinholeCamera(width=16, height=9, fov=1.0, eye=(1.0, 2.0, 3.0))
        pixels = [(0, 0), (15, 8), (7, 4), (3, 6)]
        n = len(pixels)
        ij = ti.Vector.field(2, dtype=ti.i32, shape=n)
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
        for k, p in enumerate(pixels):
            ij[k] = p

        @ti.kernel
        def test_kernel(tan_half_fov: ti.f32):
            for k in range(n):
                directions[k] = primary_direction(ij[k][0], ij[k][1], 16, 9, tan_half_fov)

        test_kernel(camera.tan_half_fov)

        for k, (i, j) in enumerate(pixels):
            assert tuple(directions[k]) == pytest.approx(
                camera.direction_for_pixel(i, j), abs=1e-6
            )
