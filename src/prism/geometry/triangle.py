"""Triangle primitive (Moller-Trumbore intersection).

Triangles are two-sided. The geometric normal is normalize((v1 - v0) x
(v2 - v0)) and hits from the side it points to are front-face hits. Texture
coordinates interpolate the per-vertex uvs with the barycentric weights.
"""

import math
from collections.abc import Sequence

import numpy as np
import taichi as ti
import taichi.math as tm

from prism.geometry.aabb import AABB
from prism.geometry.sphere import HitRecord

vec3 = tm.vec3
vec2 = tm.vec2

# Determinant threshold below which the ray is treated as parallel
_PARALLEL_EPSILON = 1e-10


@ti.dataclass
class Triangle:
    """Triangle with per-vertex texture coordinates."""

    v0: vec3
    v1: vec3
    v2: vec3
    uv0: vec2
    uv1: vec2
    uv2: vec2


@ti.func
def hit_triangle(
    ray_origin: vec3,
    ray_direction: vec3,
    tri: Triangle,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Moller-Trumbore ray-triangle test.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        tri: The triangle to test.
        t_min: Minimum accepted t.
        t_max: Maximum accepted t.

    Returns:
        A HitRecord with interpolated texture coordinates.
    """
    edge1 = tri.v1 - tri.v0
    edge2 = tri.v2 - tri.v0
    pvec = tm.cross(ray_direction, edge2)
    det = tm.dot(edge1, pvec)

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0
    tex = vec2(0.0, 0.0)

    if ti.abs(det) > _PARALLEL_EPSILON:
        inv_det = 1.0 / det
        tvec = ray_origin - tri.v0
        b1 = tm.dot(tvec, pvec) * inv_det
        qvec = tm.cross(tvec, edge1)
        b2 = tm.dot(ray_direction, qvec) * inv_det
        t = tm.dot(edge2, qvec) * inv_det

        if b1 >= 0.0 and b2 >= 0.0 and b1 + b2 <= 1.0 and t > t_min and t < t_max:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction
            tex = (1.0 - b1 - b2) * tri.uv0 + b1 * tri.uv1 + b2 * tri.uv2

            outward = tm.normalize(tm.cross(edge1, edge2))
            if tm.dot(ray_direction, outward) > 0.0:
                is_front_face = 0
                hit_normal = -outward
            else:
                is_front_face = 1
                hit_normal = outward

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
        u=tex.x,
        v=tex.y,
    )


def triangle_bounding_box(v0: Sequence[float], v1: Sequence[float], v2: Sequence[float]) -> AABB:
    return AABB.from_points([v0, v1, v2])


def validate_triangle(v0: Sequence[float], v1: Sequence[float], v2: Sequence[float]) -> str | None:
    """Describe what is wrong with a triangle, or return None if it is valid."""
    for name, vec in (("v0", v0), ("v1", v1), ("v2", v2)):
        if len(vec) != 3 or not all(math.isfinite(c) for c in vec):
            return f"triangle vertex {name} must be 3 finite numbers, got {vec!r}"
    a, b, c = (np.asarray(x, dtype=np.float64) for x in (v0, v1, v2))
    if float(np.linalg.norm(np.cross(b - a, c - a))) <= 1e-12:
        return f"triangle ({v0!r}, {v1!r}, {v2!r}) is degenerate (zero area)"
    return None
