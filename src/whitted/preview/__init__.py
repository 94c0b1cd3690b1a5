"""Preview module for tone mapping and image output.

Components:
    export: Max-channel tone mapping, 8-bit conversion, PPM and PNG export

Example:
    >>> from whitted.preview import save_image
    >>> save_image(image, "out.png")
"""

from whitted.preview.export import (
    encode_ppm,
    image_to_uint8,
    save_image,
    save_png,
    save_ppm,
    tone_map,
)

__all__ = [
    "tone_map",
    "image_to_uint8",
    "encode_ppm",
    "save_ppm",
    "save_png",
    "save_image",
]
