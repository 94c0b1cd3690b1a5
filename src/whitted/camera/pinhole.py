"""Pinhole camera model for primary ray generation.

This module implements the fixed pinhole camera used by the Whitted renderer.
The eye sits at a chosen point looking down the -z axis with +y up; the image
plane is at unit distance. For pixel (i, j), with row j counted from the top
of the image:

    x =  (2 * (i + 0.5) / width  - 1) * tan(fov / 2) * width / height
    y = -(2 * (j + 0.5) / height - 1) * tan(fov / 2)
    direction = normalize(x, y, -1)

fov is the vertical field of view in radians. There is no jitter: every pixel
gets exactly one ray through its center.

Example:
    >>> import math
    >>> from whitted.camera.pinhole import PinholeCamera
    >>> camera = PinholeCamera(width=640, height=480, fov=math.pi / 3)
    >>> camera.aspect_ratio
    1.3333333333333333
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from whitted.core.ray import vec3

# Largest accepted image side
MAX_IMAGE_SIZE = 4096


# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass(frozen=True)
class PinholeCamera:
    """Configuration for the pinhole camera and output resolution.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        fov: Vertical field of view in radians, in (0, pi).
        eye: Camera position in world space (x, y, z).
    """

    width: int = 1024
    height: int = 768
    fov: float = math.pi / 3.0
    eye: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        if not (0 < self.width <= MAX_IMAGE_SIZE and 0 < self.height <= MAX_IMAGE_SIZE):
            raise ValueError(
                f"Image dimensions ({self.width}x{self.height}) must be between "
                f"1 and {MAX_IMAGE_SIZE}"
            )
        if not 0.0 < self.fov < math.pi:
            raise ValueError(f"Field of view = {self.fov} must be in (0, pi) radians")

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height."""
        return self.width / self.height

    @property
    def tan_half_fov(self) -> float:
        """tan(fov / 2), the half-height of the image plane."""
        return math.tan(self.fov / 2.0)

    def direction_for_pixel(self, i: int, j: int) -> tuple[float, float, float]:
        """Compute the unit primary ray direction for a pixel on the host.

        Args:
            i: Pixel column (0 = left).
            j: Pixel row (0 = top).

        Returns:
            The normalized direction through the pixel center.
        """
        x = (2.0 * (i + 0.5) / self.width - 1.0) * self.tan_half_fov * self.aspect_ratio
        y = -(2.0 * (j + 0.5) / self.height - 1.0) * self.tan_half_fov
        d = np.array([x, y, -1.0])
        d /= np.linalg.norm(d)
        return (float(d[0]), float(d[1]), float(d[2]))


# =============================================================================
# Ray Generation (Taichi-side)
# =============================================================================


@ti.func
def primary_direction(
    i: ti.i32,
    j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    tan_half_fov: ti.f32,
) -> vec3:
    """Unit direction of the primary ray through the center of pixel (i, j).

    Args:
        i: Pixel column (0 = left).
        j: Pixel row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.
        tan_half_fov: tan(fov / 2).

    Returns:
        The normalized ray direction.
    """
    w = ti.cast(width, ti.f32)
    h = ti.cast(height, ti.f32)
    x = (2.0 * (ti.cast(i, ti.f32) + 0.5) / w - 1.0) * tan_half_fov * w / h
    y = -(2.0 * (ti.cast(j, ti.f32) + 0.5) / h - 1.0) * tan_half_fov
    return tm.normalize(vec3(x, y, -1.0))

