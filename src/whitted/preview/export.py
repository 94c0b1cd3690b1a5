"""Tone mapping and image export for rendered images.

The renderer produces linear, unclamped RGB. Before writing, each pixel is
tone mapped: if its brightest channel exceeds 1 the whole pixel is scaled
down by that channel (preserving hue), then every channel is clamped to
[0, 1] and truncated to 8 bits.

Supported formats:
    - PPM (binary P6: text header, then row-major RGB bytes, top row first)
    - PNG (8-bit RGB via Pillow)

Example:
    >>> from whitted.preview.export import save_image
    >>> from whitted.core.integrator import render
    >>> image = render(scene, camera)
    >>> save_image(image, "out.ppm")
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)


def _check_image(image: npt.ArrayLike) -> npt.NDArray[np.float32]:
    array = np.asarray(image, dtype=np.float32)
    if array.ndim != 3 or array.shape[2] != 3:
        raise ValueError(f"Image must have shape (H, W, 3), got {array.shape}")
    return array


def tone_map(image: npt.ArrayLike) -> npt.NDArray[np.float32]:
    """Map a linear HDR image into [0, 1].

    Pixels whose brightest channel exceeds 1 are divided by that channel;
    the result is then clamped to [0, 1].

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        Tone mapped image in [0, 1], dtype float32.

    Raises:
        ValueError: If the image does not have shape (H, W, 3).
    """
    array = _check_image(image)
    peak = array.max(axis=-1, keepdims=True)
    result = array / np.maximum(peak, 1.0)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def image_to_uint8(image: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8-bit RGB.

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    # Truncation, not rounding: 255 * 0.999 maps to 254
    return (tone_map(image) * 255.0).astype(np.uint8)


def encode_ppm(image: npt.ArrayLike) -> bytes:
    """Encode an image as a binary PPM (P6) file.

    Args:
        image: Linear image array of shape (H, W, 3), row 0 at the top.

    Returns:
        The complete file contents.
    """
    pixels = image_to_uint8(image)
    height, width = pixels.shape[:2]
    header = f"P6\n{width} {height}\n255\n".encode("ascii")
    return header + pixels.tobytes(order="C")


def save_ppm(image: npt.ArrayLike, filepath: str | Path) -> None:
    """Save an image as a binary PPM file."""
    path = Path(filepath)
    path.write_bytes(encode_ppm(image))
    logger.info("Saved PPM image to %s", path)


def save_png(image: npt.ArrayLike, filepath: str | Path) -> None:
    """Save an image as an 8-bit PNG file using Pillow."""
    path = Path(filepath)
    pil_image = PILImage.fromarray(image_to_uint8(image), mode="RGB")
    pil_image.save(path)
    logger.info("Saved PNG image to %s", path)


def save_image(image: npt.ArrayLike, filepath: str | Path) -> None:
    """Save an image, choosing the format from the file extension.

    Args:
        image: Linear image array of shape (H, W, 3).
        filepath: Output path ending in .ppm or .png.

    Raises:
        ValueError: If the extension is not supported.
    """
    suffix = Path(filepath).suffix.lower()
    if suffix == ".ppm":
        save_ppm(image, filepath)
    elif suffix == ".png":
        save_png(image, filepath)
    else:
        raise ValueError(f"Unsupported image format: {suffix!r} (use .ppm or .png)")
