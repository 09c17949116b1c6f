"""Axis-aligned box primitive.

The box is solid: a ray starting outside reports the entry face, a ray
starting inside reports the exit face as a back-face hit. The face normal
is chosen from the axis along which the hit point lies farthest from the
box centre (relative to the half extent), and the texture coordinates are
the hit point's position across that face.
"""

import math
from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from prism.geometry.aabb import AABB, safe_inverse
from prism.geometry.sphere import HitRecord

vec3 = tm.vec3


@ti.dataclass
class Box:
    """Axis-aligned box between two corners."""

    minimum: vec3
    maximum: vec3


@ti.func
def _face_frame(box: Box, point: vec3):
    """Outward face normal and face-local (u, v) at a point on the surface."""
    center = 0.5 * (box.minimum + box.maximum)
    half = 0.5 * (box.maximum - box.minimum)
    local = (point - center) / half

    best = -1.0
    outward = vec3(0.0, 0.0, 0.0)
    u = 0.0
    v = 0.0
    for c in ti.static(range(3)):
        if ti.abs(local[c]) > best:
            best = ti.abs(local[c])
            outward = vec3(0.0, 0.0, 0.0)
            outward[c] = ti.select(local[c] < 0.0, -1.0, 1.0)
            u = 0.5 * (local[(c + 1) % 3] + 1.0)
            v = 0.5 * (local[(c + 2) % 3] + 1.0)
    return outward, tm.clamp(u, 0.0, 1.0), tm.clamp(v, 0.0, 1.0)


@ti.func
def hit_box(
    ray_origin: vec3,
    ray_direction: vec3,
    box: Box,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-box intersection with the slab method.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        box: The box to test.
        t_min: Minimum accepted t.
        t_max: Maximum accepted t.

    Returns:
        A HitRecord for the nearest face crossing inside (t_min, t_max).
    """
    inv = safe_inverse(ray_direction)
    t0 = (box.minimum - ray_origin) * inv
    t1 = (box.maximum - ray_origin) * inv
    t_near = tm.min(t0, t1)
    t_far = tm.max(t0, t1)
    t_enter = ti.max(ti.max(t_near.x, t_near.y), t_near.z)
    t_exit = ti.min(ti.min(t_far.x, t_far.y), t_far.z)

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0
    tex_u = 0.0
    tex_v = 0.0

    if t_enter <= t_exit:
        t = t_enter
        valid = (t > t_min) and (t < t_max)
        if not valid:
            t = t_exit
            valid = (t > t_min) and (t < t_max)

        if valid:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction
            outward, tex_u, tex_v = _face_frame(box, hit_point)

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
        u=tex_u,
        v=tex_v,
    )


def box_bounding_box(minimum: Sequence[float], maximum: Sequence[float]) -> AABB:
    return AABB.from_points([minimum, maximum])


def validate_box(minimum: Sequence[float], maximum: Sequence[float]) -> str | None:
    """Describe what is wrong with a box, or return None if it is valid."""
    for name, vec in (("minimum", minimum), ("maximum", maximum)):
        if len(vec) != 3 or not all(math.isfinite(c) for c in vec):
            return f"box {name} must be 3 finite numbers, got {vec!r}"
    if any(hi <= lo for lo, hi in zip(minimum, maximum)):
        return f"box maximum {maximum!r} must exceed minimum {minimum!r} on every axis"
    return None
