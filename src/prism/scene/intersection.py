"""Scene-level primitive intersection testing.

All primitives live in one structure-of-arrays table tagged by
``PrimitiveType``; ``hit_primitive`` is the only place that dispatches on the
tag. The table is uploaded once per scene commit together with a flattened
BVH (see ``prism.geometry.bvh``) and read-only afterwards.

Per-primitive slots:
    SPHERE:    a = center, radius (negative radius flips the normal)
    BOX:       a = minimum corner, b = maximum corner
    RECTANGLE: a = Q, b = u edge, c = v edge
    TRIANGLE:  a, b, c = vertices, uv0..uv2 = texture coordinates

Queries:
    intersect_scene: closest hit through the BVH
    intersect_scene_any: occlusion test through the BVH
    intersect_scene_brute_force: closest hit testing every primitive
    trace_rays: host-side batch query used by tools and tests

Example:
    >>> from prism.scene.intersection import intersect_scene
    >>> # Within a Taichi kernel, after SceneManager.build():
    >>> # rec = intersect_scene(origin, direction, 1e-4, 1e10)
    >>> # if rec.hit == 1: shade with rec.material_id
"""

from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from prism.geometry.aabb import hit_aabb, safe_inverse
from prism.geometry.box import Box, hit_box
from prism.geometry.bvh import FlatBVH
from prism.geometry.rectangle import Rectangle, hit_rectangle
from prism.geometry.sphere import HitRecord, Sphere, hit_sphere, make_miss_record
from prism.geometry.triangle import Triangle, hit_triangle

vec3 = tm.vec3
vec2 = tm.vec2


class PrimitiveType(IntEnum):
    """Primitive tags stored in ``prim_types``."""

    SPHERE = 0
    BOX = 1
    RECTANGLE = 2
    TRIANGLE = 3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: 1 if any primitive was hit, 0 otherwise.
        t: Ray parameter of the closest hit.
        point: Hit position.
        normal: Unit normal facing the incoming ray.
        front_face: 1 if the ray hit the outside of the surface.
        u: Surface texture coordinate.
        v: Surface texture coordinate.
        material_id: Material of the hit primitive, -1 on a miss.
        primitive_id: Index of the hit primitive, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    u: ti.f32
    v: ti.f32
    material_id: ti.i32
    primitive_id: ti.i32


MAX_PRIMITIVES = 65536
# A binary tree over n leaves has at most 2n - 1 nodes
MAX_NODES = 2 * MAX_PRIMITIVES

# Primitive storage: Structure of Arrays layout
prim_types = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
prim_material_ids = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
prim_a = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_b = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_c = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_radius = ti.field(dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_uv0 = ti.Vector.field(2, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_uv1 = ti.Vector.field(2, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_uv2 = ti.Vector.field(2, dtype=ti.f32, shape=MAX_PRIMITIVES)
num_primitives = ti.field(dtype=ti.i32, shape=())

# Flattened BVH
node_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_NODES)
node_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_NODES)
node_skip = ti.field(dtype=ti.i32, shape=MAX_NODES)
node_prim_start = ti.field(dtype=ti.i32, shape=MAX_NODES)
node_prim_count = ti.field(dtype=ti.i32, shape=MAX_NODES)
prim_order = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
num_nodes = ti.field(dtype=ti.i32, shape=())


@dataclass
class PrimitiveArrays:
    """Host-side primitive table ready for upload.

    Every array has the primitive count as its first dimension.
    """

    types: npt.NDArray[np.int32]
    material_ids: npt.NDArray[np.int32]
    a: npt.NDArray[np.float32]
    b: npt.NDArray[np.float32]
    c: npt.NDArray[np.float32]
    radius: npt.NDArray[np.float32]
    uv0: npt.NDArray[np.float32]
    uv1: npt.NDArray[np.float32]
    uv2: npt.NDArray[np.float32]

    def __len__(self) -> int:
        return int(self.types.shape[0])


def _fill_field(target, values: npt.ArrayLike) -> None:
    """Copy values into the leading slots of a fixed-capacity field."""
    values = np.asarray(values)
    if values.shape[0] == 0:
        return
    data = target.to_numpy()
    data[: values.shape[0]] = values.astype(data.dtype).reshape((-1,) + data.shape[1:])
    target.from_numpy(data)


def clear_scene() -> None:
    """Remove all primitives and the BVH."""
    num_primitives[None] = 0
    num_nodes[None] = 0


def upload_primitives(arrays: PrimitiveArrays) -> None:
    """Replace the primitive table.

    Raises:
        RuntimeError: If the primitive capacity is exceeded.
    """
    count = len(arrays)
    if count > MAX_PRIMITIVES:
        raise RuntimeError(f"Maximum number of primitives ({MAX_PRIMITIVES}) exceeded")
    _fill_field(prim_types, arrays.types)
    _fill_field(prim_material_ids, arrays.material_ids)
    _fill_field(prim_a, arrays.a)
    _fill_field(prim_b, arrays.b)
    _fill_field(prim_c, arrays.c)
    _fill_field(prim_radius, arrays.radius)
    _fill_field(prim_uv0, arrays.uv0)
    _fill_field(prim_uv1, arrays.uv1)
    _fill_field(prim_uv2, arrays.uv2)
    num_primitives[None] = count


def upload_bvh(bvh: FlatBVH) -> None:
    """Replace the acceleration structure.

    Raises:
        RuntimeError: If the node capacity is exceeded.
    """
    if bvh.node_count > MAX_NODES:
        raise RuntimeError(f"Maximum number of BVH nodes ({MAX_NODES}) exceeded")
    _fill_field(node_min, bvh.node_min)
    _fill_field(node_max, bvh.node_max)
    _fill_field(node_skip, bvh.node_skip)
    _fill_field(node_prim_start, bvh.node_prim_start)
    _fill_field(node_prim_count, bvh.node_prim_count)
    _fill_field(prim_order, bvh.primitive_order)
    num_nodes[None] = bvh.node_count


def get_primitive_count() -> int:
    return int(num_primitives[None])


def get_node_count() -> int:
    return int(num_nodes[None])


@ti.func
def hit_primitive(
    idx: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect one primitive of the scene table."""
    kind = prim_types[idx]
    rec = make_miss_record()
    if kind == int(PrimitiveType.SPHERE):
        sphere = Sphere(center=prim_a[idx], radius=prim_radius[idx])
        rec = hit_sphere(ray_origin, ray_direction, sphere, t_min, t_max)
    elif kind == int(PrimitiveType.BOX):
        box = Box(minimum=prim_a[idx], maximum=prim_b[idx])
        rec = hit_box(ray_origin, ray_direction, box, t_min, t_max)
    elif kind == int(PrimitiveType.RECTANGLE):
        rect = Rectangle(Q=prim_a[idx], u=prim_b[idx], v=prim_c[idx])
        rec = hit_rectangle(ray_origin, ray_direction, rect, t_min, t_max)
    elif kind == int(PrimitiveType.TRIANGLE):
        tri = Triangle(
            v0=prim_a[idx],
            v1=prim_b[idx],
            v2=prim_c[idx],
            uv0=prim_uv0[idx],
            uv1=prim_uv1[idx],
            uv2=prim_uv2[idx],
        )
        rec = hit_triangle(ray_origin, ray_direction, tri, t_min, t_max)
    return rec


@ti.func
def _hit_record_to_scene_hit_record(rec: HitRecord, primitive_id: ti.i32) -> SceneHitRecord:
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        u=rec.u,
        v=rec.v,
        material_id=prim_material_ids[primitive_id],
        primitive_id=primitive_id,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        u=0.0,
        v=0.0,
        material_id=-1,
        primitive_id=-1,
    )


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Closest hit in (t_min, t_max) using stackless BVH traversal.

    Nodes are visited in depth-first order. A node whose box misses the
    ray, or lies beyond the closest hit found so far, is skipped together
    with its subtree.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        The closest intersection, or a miss record.
    """
    closest_t = t_max
    result = _make_miss_record()
    inv_direction = safe_inverse(ray_direction)

    node = 0
    n_nodes = num_nodes[None]
    while node < n_nodes:
        box_hit, _t_enter = hit_aabb(
            ray_origin, inv_direction, node_min[node], node_max[node], t_min, closest_t
        )
        next_node = node_skip[node]
        if box_hit == 1:
            count = node_prim_count[node]
            if count > 0:
                start = node_prim_start[node]
                for k in range(start, start + count):
                    prim = prim_order[k]
                    rec = hit_primitive(prim, ray_origin, ray_direction, t_min, closest_t)
                    if rec.hit == 1:
                        closest_t = rec.t
                        result = _hit_record_to_scene_hit_record(rec, prim)
            else:
                next_node = node + 1
        node = next_node

    return result


@ti.func
def intersect_scene_any(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """Return 1 if anything blocks the ray in (t_min, t_max).

    Stops at the first hit found rather than the closest one.
    """
    hit_any = 0
    inv_direction = safe_inverse(ray_direction)

    node = 0
    n_nodes = num_nodes[None]
    while node < n_nodes and hit_any == 0:
        box_hit, _t_enter = hit_aabb(
            ray_origin, inv_direction, node_min[node], node_max[node], t_min, t_max
        )
        next_node = node_skip[node]
        if box_hit == 1:
            count = node_prim_count[node]
            if count > 0:
                start = node_prim_start[node]
                for k in range(start, start + count):
                    if hit_any == 0:
                        rec = hit_primitive(prim_order[k], ray_origin, ray_direction, t_min, t_max)
                        if rec.hit == 1:
                            hit_any = 1
            else:
                next_node = node + 1
        node = next_node

    return hit_any


@ti.func
def intersect_scene_brute_force(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Closest hit testing every primitive; reference for the BVH path."""
    closest_t = t_max
    result = _make_miss_record()
    for i in range(num_primitives[None]):
        rec = hit_primitive(i, ray_origin, ray_direction, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _hit_record_to_scene_hit_record(rec, i)
    return result


# =============================================================================
# Host-side Batch Queries
# =============================================================================


@dataclass
class RayQueryResult:
    """Per-ray results of ``trace_rays``.

    Attributes:
        hit: 1 where the ray hit something.
        t: Hit distances (0 for misses).
        primitive_id: Hit primitive index, -1 for misses.
        material_id: Hit material id, -1 for misses.
        normal: Unit normals facing the rays, shape (n, 3).
    """

    hit: npt.NDArray[np.int32]
    t: npt.NDArray[np.float32]
    primitive_id: npt.NDArray[np.int32]
    material_id: npt.NDArray[np.int32]
    normal: npt.NDArray[np.float32]


@ti.kernel
def _trace_rays_kernel(
    origins: ti.types.ndarray(),
    directions: ti.types.ndarray(),
    t_min: ti.f32,
    t_max: ti.f32,
    brute_force: ti.template(),
    out_hit: ti.types.ndarray(),
    out_t: ti.types.ndarray(),
    out_prim: ti.types.ndarray(),
    out_material: ti.types.ndarray(),
    out_normal: ti.types.ndarray(),
):
    for i in range(origins.shape[0]):
        origin = vec3(origins[i, 0], origins[i, 1], origins[i, 2])
        direction = vec3(directions[i, 0], directions[i, 1], directions[i, 2])
        rec = _make_miss_record()
        if ti.static(brute_force):
            rec = intersect_scene_brute_force(origin, direction, t_min, t_max)
        else:
            rec = intersect_scene(origin, direction, t_min, t_max)
        out_hit[i] = rec.hit
        out_t[i] = rec.t
        out_prim[i] = rec.primitive_id
        out_material[i] = rec.material_id
        for c in ti.static(range(3)):
            out_normal[i, c] = rec.normal[c]


def trace_rays(
    origins: npt.ArrayLike,
    directions: npt.ArrayLike,
    t_min: float = 1e-4,
    t_max: float = 1e10,
    brute_force: bool = False,
) -> RayQueryResult:
    """Closest-hit query for a batch of rays against the committed scene.

    Args:
        origins: Ray origins, shape (n, 3).
        directions: Ray directions, shape (n, 3).
        t_min: Minimum accepted hit distance.
        t_max: Maximum accepted hit distance.
        brute_force: Test every primitive instead of traversing the BVH.

    Returns:
        The per-ray results.
    """
    origins = np.ascontiguousarray(origins, dtype=np.float32).reshape(-1, 3)
    directions = np.ascontiguousarray(directions, dtype=np.float32).reshape(-1, 3)
    if origins.shape != directions.shape:
        raise ValueError(
            f"origins and directions must match, got {origins.shape} and {directions.shape}"
        )

    n = origins.shape[0]
    result = RayQueryResult(
        hit=np.zeros(n, dtype=np.int32),
        t=np.zeros(n, dtype=np.float32),
        primitive_id=np.zeros(n, dtype=np.int32),
        material_id=np.zeros(n, dtype=np.int32),
        normal=np.zeros((n, 3), dtype=np.float32),
    )
    if n > 0:
        _trace_rays_kernel(
            origins,
            directions,
            t_min,
            t_max,
            bool(brute_force),
            result.hit,
            result.t,
            result.primitive_id,
            result.material_id,
            result.normal,
        )
    return result
