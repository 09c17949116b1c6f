"""Core rendering module.

Components:
    rng: Counter-based hashing random numbers (reproducible in parallel)
    ray: Ray structure, vector helpers and Monte Carlo sampling
    spectrum: RGB-to-spectrum conversion and colour matching
    film: Per-pixel XYZ accumulation and resolve to RGB
    integrator: Spectral path tracing kernels and the render() entry point
    progressive: Pass-by-pass rendering with progress callbacks
    settings: Render configuration dataclass

Only ``rng`` and ``ray`` are re-exported here: the remaining modules
allocate Taichi fields on import and must be imported after
``prism.runtime.init_runtime()``.
"""

from .ray import (
    T_MAX,
    T_MIN,
    Ray,
    build_onb_from_normal,
    local_to_world,
    make_ray,
    near_zero,
    random_cosine_direction,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    sample_cosine_hemisphere,
    schlick_fresnel,
    vec3,
)
from .rng import golden_ratio_sequence, hash_combine, pcg_hash, random_float

__all__ = [
    "Ray",
    "T_MIN",
    "T_MAX",
    "ray_at",
    "make_ray",
    "vec3",
    "reflect",
    "refract",
    "schlick_fresnel",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
    "random_cosine_direction",
    "build_onb_from_normal",
    "local_to_world",
    "sample_cosine_hemisphere",
    "pcg_hash",
    "hash_combine",
    "random_float",
    "golden_ratio_sequence",
]
