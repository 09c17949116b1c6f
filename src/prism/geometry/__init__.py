"""Geometry module for shape primitives and spatial acceleration.

Components:
    sphere: Sphere primitive and the shared HitRecord structure
    box: Axis-aligned box primitive
    rectangle: Parallelogram primitive (corner plus two edges)
    triangle: Triangle primitive with per-vertex texture coordinates
    aabb: Axis-aligned bounding boxes (host) and the slab test (device)
    bvh: Host-side BVH builder producing a flattened node arena

Every primitive provides a Taichi intersection function returning a
HitRecord whose normal faces the incoming ray, plus a host-side
``*_bounding_box`` used only while building the BVH.
"""

from .aabb import AABB, AABB_PADDING, hit_aabb, safe_inverse
from .box import Box, box_bounding_box, hit_box
from .bvh import FlatBVH, build_bvh
from .rectangle import Rectangle, hit_rectangle, rectangle_bounding_box
from .sphere import HitRecord, Sphere, hit_sphere, sphere_bounding_box
from .triangle import Triangle, hit_triangle, triangle_bounding_box

__all__ = [
    "AABB",
    "AABB_PADDING",
    "hit_aabb",
    "safe_inverse",
    "Box",
    "hit_box",
    "box_bounding_box",
    "FlatBVH",
    "build_bvh",
    "Rectangle",
    "hit_rectangle",
    "rectangle_bounding_box",
    "HitRecord",
    "Sphere",
    "hit_sphere",
    "sphere_bounding_box",
    "Triangle",
    "hit_triangle",
    "triangle_bounding_box",
]
