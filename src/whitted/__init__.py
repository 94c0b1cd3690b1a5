"""Whitted-style recursive ray tracer built on Taichi.

This package renders static scenes of spheres and point lights with the
Whitted illumination model:
- Lambert diffuse and Phong specular lighting with hard shadows
- Recursively traced mirror reflection and Snell refraction rays
- Optional procedural checkerboard floor
- Deterministic, one ray per pixel, parallel over pixels

Subpackages:
    core: Vector helpers, the Whitted caster, and the image render loop
    geometry: Sphere primitive and ray-sphere intersection
    materials: Whitted material model and presets
    scene: Scene description, device upload and nearest-hit query
    camera: Pinhole camera with primary ray generation
    preview: Tone mapping and PPM/PNG export
"""

__version__ = "0.1.0"
