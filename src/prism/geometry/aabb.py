"""Axis-aligned bounding boxes.

Host side, ``AABB`` is an immutable pair of numpy corners used while
building the BVH. Device side, ``hit_aabb`` is the slab test run during
traversal; it takes a precomputed reciprocal direction from
``safe_inverse`` so axis-parallel rays never divide by zero.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Minimum half-extent of a box along any axis
AABB_PADDING = 1e-4

# Magnitude substituted for zero direction components in the slab test
_MIN_DIRECTION = 1e-12


@dataclass(frozen=True)
class AABB:
    """Axis-aligned bounding box.

    Attributes:
        minimum: Lower corner, shape (3,).
        maximum: Upper corner, shape (3,).
    """

    minimum: npt.NDArray[np.float64]
    maximum: npt.NDArray[np.float64]

    @classmethod
    def from_points(cls, points: Iterable[Sequence[float]]) -> "AABB":
        """Smallest box containing every point."""
        pts = np.asarray(list(points), dtype=np.float64).reshape(-1, 3)
        return cls(pts.min(axis=0), pts.max(axis=0))

    @classmethod
    def surrounding(cls, boxes: Iterable["AABB"]) -> "AABB":
        """Union of several boxes."""
        boxes = list(boxes)
        if not boxes:
            raise ValueError("Cannot build the union of zero boxes")
        lo = np.min([b.minimum for b in boxes], axis=0)
        hi = np.max([b.maximum for b in boxes], axis=0)
        return cls(lo, hi)

    def union(self, other: "AABB") -> "AABB":
        return AABB(
            np.minimum(self.minimum, other.minimum), np.maximum(self.maximum, other.maximum)
        )

    def padded(self, padding: float = AABB_PADDING) -> "AABB":
        """Grow every axis thinner than 2 * padding to that thickness."""
        center = 0.5 * (self.minimum + self.maximum)
        half = np.maximum(0.5 * (self.maximum - self.minimum), padding)
        return AABB(center - half, center + half)

    @property
    def centroid(self) -> npt.NDArray[np.float64]:
        return 0.5 * (self.minimum + self.maximum)

    @property
    def extent(self) -> npt.NDArray[np.float64]:
        return self.maximum - self.minimum

    def contains(self, other: "AABB") -> bool:
        return bool(np.all(self.minimum <= other.minimum) and np.all(self.maximum >= other.maximum))


@ti.func
def safe_inverse(direction: vec3) -> vec3:
    """Componentwise 1 / direction with zeros replaced by a tiny signed value."""
    inv = vec3(0.0, 0.0, 0.0)
    for c in ti.static(range(3)):
        d = direction[c]
        if ti.abs(d) < _MIN_DIRECTION:
            d = ti.select(d < 0.0, -_MIN_DIRECTION, _MIN_DIRECTION)
        inv[c] = 1.0 / d
    return inv


@ti.func
def hit_aabb(
    origin: vec3,
    inv_direction: vec3,
    box_min: vec3,
    box_max: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
):
    """Slab test of a ray against a box.

    Args:
        origin: Ray origin.
        inv_direction: Componentwise reciprocal of the ray direction.
        box_min: Lower corner.
        box_max: Upper corner.
        t_min: Start of the ray interval.
        t_max: End of the ray interval.

    Returns:
        A tuple of (hit, t_enter): hit is 1 when the ray overlaps the box
        inside [t_min, t_max], t_enter is where the overlap begins.
    """
    t0 = (box_min - origin) * inv_direction
    t1 = (box_max - origin) * inv_direction
    t_near = tm.min(t0, t1)
    t_far = tm.max(t0, t1)
    enter = ti.max(ti.max(t_near.x, t_near.y), ti.max(t_near.z, t_min))
    leave = ti.min(ti.min(t_far.x, t_far.y), ti.min(t_far.z, t_max))
    hit = 0
    if enter <= leave:
        hit = 1
    return hit, enter
