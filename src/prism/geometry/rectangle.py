"""Rectangle (parallelogram) primitive.

A rectangle is a corner ``Q`` and two edge vectors ``u`` and ``v``; it
covers the points Q + alpha*u + beta*v with alpha, beta in [0, 1]. Its
normal is normalize(u x v) and the texture coordinates are (alpha, beta).

The intersection first finds the ray/plane crossing, then expresses the
hit point in the (u, v) frame using w = n / (n . n) with n = u x v, so
alpha = w . (p x v) and beta = w . (u x p) for p = P - Q.
"""

import math
from collections.abc import Sequence

import numpy as np
import taichi as ti
import taichi.math as tm

from prism.geometry.aabb import AABB
from prism.geometry.sphere import HitRecord

vec3 = tm.vec3


@ti.dataclass
class Rectangle:
    """Parallelogram with vertices Q, Q+u, Q+v, Q+u+v."""

    Q: vec3
    u: vec3
    v: vec3


@ti.func
def _compute_rectangle_frame(rect: Rectangle):
    """Plane normal, plane constant and the alpha/beta helper vectors."""
    n = tm.cross(rect.u, rect.v)
    normal = tm.normalize(n)
    d = tm.dot(normal, rect.Q)

    n_dot_n = tm.dot(n, n)
    w_u = vec3(0.0, 0.0, 0.0)
    w_v = vec3(0.0, 0.0, 0.0)

    if n_dot_n > 1e-20:
        # dot(w_u, u) = 1, dot(w_u, v) = 0; dot(w_v, v) = 1, dot(w_v, u) = 0
        w_u = tm.cross(rect.v, n) / n_dot_n
        w_v = tm.cross(n, rect.u) / n_dot_n

    return normal, d, w_u, w_v


@ti.func
def hit_rectangle(
    ray_origin: vec3,
    ray_direction: vec3,
    rect: Rectangle,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-rectangle intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        rect: The rectangle to test.
        t_min: Minimum accepted t.
        t_max: Maximum accepted t.

    Returns:
        A HitRecord whose (u, v) are the local (alpha, beta).
    """
    normal, d, w_u, w_v = _compute_rectangle_frame(rect)
    denom = tm.dot(normal, ray_direction)

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0
    alpha = 0.0
    beta = 0.0

    # Parallel rays never hit
    if ti.abs(denom) > 1e-8:
        t = (d - tm.dot(normal, ray_origin)) / denom

        if t > t_min and t < t_max:
            p = ray_origin + t * ray_direction - rect.Q
            alpha = tm.dot(w_u, p)
            beta = tm.dot(w_v, p)

            if alpha >= 0.0 and alpha <= 1.0 and beta >= 0.0 and beta <= 1.0:
                did_hit = 1
                hit_t = t
                hit_point = ray_origin + t * ray_direction

                if denom > 0.0:
                    is_front_face = 0
                    hit_normal = -normal
                else:
                    is_front_face = 1
                    hit_normal = normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
        u=alpha,
        v=beta,
    )


def rectangle_bounding_box(q: Sequence[float], u: Sequence[float], v: Sequence[float]) -> AABB:
    q_, u_, v_ = (np.asarray(x, dtype=np.float64) for x in (q, u, v))
    return AABB.from_points([q_, q_ + u_, q_ + v_, q_ + u_ + v_])


def validate_rectangle(q: Sequence[float], u: Sequence[float], v: Sequence[float]) -> str | None:
    """Describe what is wrong with a rectangle, or return None if it is valid."""
    for name, vec in (("corner", q), ("edge_u", u), ("edge_v", v)):
        if len(vec) != 3 or not all(math.isfinite(c) for c in vec):
            return f"rectangle {name} must be 3 finite numbers, got {vec!r}"
    cross = np.cross(np.asarray(u, dtype=np.float64), np.asarray(v, dtype=np.float64))
    area = float(np.linalg.norm(cross))
    if area <= 1e-12:
        return f"rectangle edges {u!r} and {v!r} are degenerate (zero area)"
    return None
