"""Camera module for primary ray generation.

Components:
    pinhole: Fixed pinhole camera looking down -z, one ray per pixel center

Example:
    >>> from whitted.camera import PinholeCamera
    >>> camera = PinholeCamera(width=256, height=192)
"""

from .pinhole import MAX_IMAGE_SIZE, PinholeCamera, primary_direction

__all__ = [
    "PinholeCamera",
    "primary_direction",
    "MAX_IMAGE_SIZE",
]
