"""Bounding volume hierarchy construction.

The tree is built on the host from primitive bounding boxes and flattened
into a depth-first array of nodes (an arena indexed by integers). Each node
stores its box, the index of the node that follows its whole subtree
(``skip``), and for leaves a range into ``primitive_order``. An internal
node's left child is always the next node in the array.

That layout allows a stackless traversal: visit nodes in order, descend by
moving to ``node + 1`` and prune a subtree by jumping to ``skip``. The
device-side traversal lives in ``prism.scene.intersection``.

Build: split on the axis of greatest centroid extent at the median
(``np.argpartition``), stop at ``max_leaf_size`` primitives. Every split
halves the primitive count, so depth is ceil(log2(n / leaf)) + 1.

Example:
    >>> from prism.geometry.aabb import AABB
    >>> from prism.geometry.bvh import build_bvh
    >>> boxes = [AABB.from_points([[i, 0, 0], [i + 1, 1, 1]]) for i in range(8)]
    >>> bvh = build_bvh(boxes)
    >>> bvh.node_count, bvh.depth()
    (7, 3)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from prism.geometry.aabb import AABB, AABB_PADDING

logger = logging.getLogger(__name__)

DEFAULT_MAX_LEAF_SIZE = 2


@dataclass
class FlatBVH:
    """Depth-first flattened BVH.

    Attributes:
        node_min: Lower box corners, shape (nodes, 3).
        node_max: Upper box corners, shape (nodes, 3).
        node_skip: Index of the first node after each subtree.
        node_prim_start: First entry in primitive_order for leaves.
        node_prim_count: Primitive count for leaves, 0 for internal nodes.
        node_right: Right child of internal nodes, -1 for leaves.
        primitive_order: Primitive indices grouped by leaf.
    """

    node_min: npt.NDArray[np.float32]
    node_max: npt.NDArray[np.float32]
    node_skip: npt.NDArray[np.int32]
    node_prim_start: npt.NDArray[np.int32]
    node_prim_count: npt.NDArray[np.int32]
    node_right: npt.NDArray[np.int32]
    primitive_order: npt.NDArray[np.int32]

    @property
    def node_count(self) -> int:
        return int(self.node_skip.shape[0])

    @property
    def primitive_count(self) -> int:
        return int(self.primitive_order.shape[0])

    def is_leaf(self, node: int) -> bool:
        return bool(self.node_prim_count[node] > 0)

    def depth(self) -> int:
        """Number of nodes on the longest root-to-leaf path (0 when empty)."""
        if self.node_count == 0:
            return 0
        deepest = 0
        pending = [(0, 1)]
        while pending:
            node, level = pending.pop()
            deepest = max(deepest, level)
            if not self.is_leaf(node):
                pending.append((node + 1, level + 1))
                pending.append((int(self.node_right[node]), level + 1))
        return deepest


def build_bvh(boxes: Sequence[AABB], max_leaf_size: int = DEFAULT_MAX_LEAF_SIZE) -> FlatBVH:
    """Build a flattened BVH over primitive bounding boxes.

    Args:
        boxes: One bounding box per primitive, indexed by primitive id.
        max_leaf_size: Maximum number of primitives stored in a leaf.

    Returns:
        The flattened tree. An empty input gives a tree with zero nodes.

    Raises:
        ValueError: If max_leaf_size is less than 1.
    """
    if max_leaf_size < 1:
        raise ValueError(f"max_leaf_size must be >= 1, got {max_leaf_size}")

    count = len(boxes)
    if count == 0:
        empty_i = np.zeros(0, dtype=np.int32)
        return FlatBVH(
            node_min=np.zeros((0, 3), dtype=np.float32),
            node_max=np.zeros((0, 3), dtype=np.float32),
            node_skip=empty_i,
            node_prim_start=empty_i.copy(),
            node_prim_count=empty_i.copy(),
            node_right=empty_i.copy(),
            primitive_order=empty_i.copy(),
        )

    mins = np.array([b.minimum for b in boxes], dtype=np.float64)
    maxs = np.array([b.maximum for b in boxes], dtype=np.float64)
    centroids = 0.5 * (mins + maxs)

    node_min: list[npt.NDArray[np.float64]] = []
    node_max: list[npt.NDArray[np.float64]] = []
    node_skip: list[int] = []
    node_start: list[int] = []
    node_count: list[int] = []
    node_right: list[int] = []
    order: list[int] = []

    def build(indices: npt.NDArray[np.int64]) -> int:
        node = len(node_skip)
        box = AABB(mins[indices].min(axis=0), maxs[indices].max(axis=0)).padded(AABB_PADDING)
        node_min.append(box.minimum)
        node_max.append(box.maximum)
        node_skip.append(-1)
        node_start.append(0)
        node_count.append(0)
        node_right.append(-1)

        if len(indices) <= max_leaf_size:
            node_start[node] = len(order)
            node_count[node] = len(indices)
            order.extend(int(i) for i in indices)
        else:
            c = centroids[indices]
            axis = int(np.argmax(c.max(axis=0) - c.min(axis=0)))
            mid = len(indices) // 2
            split = np.argpartition(c[:, axis], mid)
            build(indices[split[:mid]])
            node_right[node] = build(indices[split[mid:]])

        node_skip[node] = len(node_skip)
        return node

    build(np.arange(count))

    bvh = FlatBVH(
        node_min=np.asarray(node_min, dtype=np.float32),
        node_max=np.asarray(node_max, dtype=np.float32),
        node_skip=np.asarray(node_skip, dtype=np.int32),
        node_prim_start=np.asarray(node_start, dtype=np.int32),
        node_prim_count=np.asarray(node_count, dtype=np.int32),
        node_right=np.asarray(node_right, dtype=np.int32),
        primitive_order=np.asarray(order, dtype=np.int32),
    )
    logger.debug("Built BVH: %d primitives, %d nodes, depth %d", count, bvh.node_count, bvh.depth())
    return bvh
