#!/usr/bin/env python3
"""Render the reference scene (or a scene file).

This script demonstrates end-to-end rendering with the Whitted ray tracer.
It builds the scene, sets up the camera, renders one ray per pixel, and
writes the tone mapped result as PPM or PNG.

Usage:
    python -m examples.render_reference_scene [options]

Options:
    --width WIDTH       Image width in pixels (default: 1024)
    --height HEIGHT     Image height in pixels (default: 768)
    --fov DEGREES       Vertical field of view in degrees (default: 60)
    --scene FILE        JSON scene file (default: built-in reference scene)
    --no-floor          Drop the checkerboard floor
    --output OUTPUT     Output file path, .ppm or .png (default: out.ppm)
    --arch {cpu,gpu}    Taichi backend (default: gpu, falls back to cpu)
    --quiet             Suppress progress output
    --verbose           Enable library logging

Example:
    python -m examples.render_reference_scene --width 512 --height 384 --output out.png
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the Whitted reference scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=1024,
        help="Image width in pixels (default: 1024)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=768,
        help="Image height in pixels (default: 768)",
    )
    parser.add_argument(
        "--fov",
        type=float,
        default=60.0,
        help="Vertical field of view in degrees (default: 60)",
    )
    parser.add_argument(
        "--scene",
        type=str,
        default=None,
        help="JSON scene file (default: built-in reference scene)",
    )
    parser.add_argument(
        "--no-floor",
        action="store_true",
        help="Render without the checkerboard floor",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="out.ppm",
        help="Output file path, .ppm or .png (default: out.ppm)",
    )
    parser.add_argument(
        "--arch",
        choices=("cpu", "gpu"),
        default="gpu",
        help="Taichi backend (default: gpu, falls back to cpu)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable library logging",
    )
    return parser.parse_args(argv)


def render_reference_scene(
    width: int = 1024,
    height: int = 768,
    fov_degrees: float = 60.0,
    scene_path: str | None = None,
    include_floor: bool = True,
    output_path: str = "out.ppm",
    quiet: bool = False,
) -> Path:
    """Render a scene and save it to a file.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        fov_degrees: Vertical field of view in degrees.
        scene_path: Optional JSON scene file; the reference scene if None.
        include_floor: If False, the floor is removed from the scene.
        output_path: Output file path (.ppm or .png).
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from whitted.camera.pinhole import PinholeCamera
    from whitted.core.integrator import render
    from whitted.preview.export import save_image
    from whitted.scene.description import load_scene
    from whitted.scene.reference import create_reference_scene

    if scene_path is None:
        scene = create_reference_scene(include_floor=include_floor)
    else:
        scene = load_scene(scene_path)
        if not include_floor:
            scene = scene.without_floor()

    camera = PinholeCamera(width=width, height=height, fov=math.radians(fov_degrees))

    if not quiet:
        print(
            f"Rendering {len(scene.spheres)} spheres, {len(scene.lights)} lights "
            f"({width}x{height})..."
        )

    start_time = time.time()
    image = render(scene, camera)

    output_file = Path(output_path)
    save_image(image, output_file)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    # Initialize Taichi
    # Use GPU if requested and available, fall back to CPU
    if args.arch == "gpu":
        try:
            ti.init(arch=ti.gpu)
            if not args.quiet:
                print("Using GPU backend")
        except Exception:
            ti.init(arch=ti.cpu)
            if not args.quiet:
                print("Using CPU backend")
    else:
        ti.init(arch=ti.cpu)

    try:
        render_reference_scene(
            width=args.width,
            height=args.height,
            fov_degrees=args.fov,
            scene_path=args.scene,
            include_floor=not args.no_floor,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
