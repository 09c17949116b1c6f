"""Sphere primitive with robust ray-sphere intersection.

Roots are computed with the cancellation-free quadratic formulation from
Ray Tracing Gems (chapter 7). A negative radius is allowed: it flips the
outward normal, which turns a sphere nested inside glass into a hollow
bubble.

Texture coordinates follow the latitude/longitude convention
u = 1 - (phi + pi) / (2 pi), v = (theta + pi/2) / pi where phi = atan2(z, x)
and theta = asin(y) of the outward unit normal.

Example:
    >>> from prism.geometry.sphere import Sphere, hit_sphere, vec3
    >>> sphere = Sphere(center=vec3(0, 0, -1), radius=0.5)
    >>> # rec = hit_sphere(origin, direction, sphere, t_min, t_max) in a kernel
"""

import math
from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from prism.geometry.aabb import AABB

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and (signed) radius."""

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: 1 if the ray intersected the primitive, 0 otherwise.
        t: Ray parameter of the intersection. Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        normal: Unit surface normal facing the incoming ray.
        front_face: 1 if the ray hit the outside of the surface.
        u: First texture coordinate in [0, 1].
        v: Second texture coordinate in [0, 1].
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    u: ti.f32
    v: ti.f32


@ti.func
def make_miss_record() -> HitRecord:
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        u=0.0,
        v=0.0,
    )


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 without catastrophic cancellation.

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def sphere_uv(outward_unit: vec3):
    """Latitude/longitude texture coordinates of a point on the unit sphere."""
    phi = tm.atan2(outward_unit.z, outward_unit.x)
    theta = ti.asin(tm.clamp(outward_unit.y, -1.0, 1.0))
    u = 1.0 - (phi + tm.pi) / (2.0 * tm.pi)
    v = (theta + tm.pi / 2.0) / tm.pi
    return u, v


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    Solves |o + t d - c|^2 = r^2 written as a*t^2 + 2*h*t + c = 0 with
    a = d.d, h = d.(o - c), c = |o - c|^2 - r^2, and returns the nearest
    root strictly inside (t_min, t_max).

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        sphere: The sphere to test.
        t_min: Minimum accepted t (avoids self-intersection).
        t_max: Maximum accepted t.

    Returns:
        A HitRecord; check its hit field.
    """
    oc = ray_origin - sphere.center

    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0
    tex_u = 0.0
    tex_v = 0.0

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)

        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction

            # Dividing by the signed radius flips the normal of bubbles
            outward_normal = (hit_point - sphere.center) / sphere.radius
            tex_u, tex_v = sphere_uv(outward_normal)

            if tm.dot(ray_direction, outward_normal) > 0.0:
                is_front_face = 0
                hit_normal = -outward_normal
            else:
                is_front_face = 1
                hit_normal = outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
        u=tex_u,
        v=tex_v,
    )


def sphere_bounding_box(center: Sequence[float], radius: float) -> AABB:
    r = abs(radius)
    return AABB.from_points([[c - r for c in center], [c + r for c in center]])


def validate_sphere(center: Sequence[float], radius: float) -> str | None:
    """Describe what is wrong with a sphere, or return None if it is valid."""
    if len(center) != 3 or not all(math.isfinite(c) for c in center):
        return f"sphere center must be 3 finite numbers, got {center!r}"
    if not math.isfinite(radius) or radius == 0.0:
        return f"sphere radius must be finite and non-zero, got {radius!r}"
    return None
