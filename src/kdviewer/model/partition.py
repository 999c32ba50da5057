"""
k-d Tree Region Partitioner
===========================
Derives the axis-aligned sub-region each tree node inherits from the recursive
partition, and one separating-plane record per node for rendering.

Why is this file needed?
------------------------
The view must draw every split plane clipped to the region its node actually
splits. Each RegionDescriptor carries its own bounds, so the renderer never
has to walk the tree.

Classes:
    BoundingBox: Global {min, max} corners enclosing the point set.
    RegionDescriptor: One separating plane clipped to its inherited region.
    KdTreePartitioner: Iterative traversal producing RegionDescriptors.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import numpy.typing as npt

from kdviewer.config import DEFAULT_DIMENSIONS
from kdviewer.model.kd_tree import KdTree, Node

logger = logging.getLogger(__name__)

# One color per split axis (x, y, z)
PLANE_COLORS: Tuple[str, ...] = ("#e57373", "#81c784", "#64b5f6")


@dataclass(frozen=True)
class BoundingBox:
    min_corner: Tuple[float, ...]
    max_corner: Tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.min_corner) != len(self.max_corner):
            raise ValueError(
                f"Corner dimensions differ: {len(self.min_corner)} vs {len(self.max_corner)}."
            )

    @classmethod
    def from_points(cls, points: npt.ArrayLike, dimensions: int = DEFAULT_DIMENSIONS) -> BoundingBox:
        """Component-wise min/max of the points. An empty set gives a zero box at the origin."""
        arr = np.asarray(points, dtype=np.float64)
        if arr.size == 0:
            return cls.empty(dimensions)
        arr = arr.reshape(-1, dimensions)
        return cls(
            min_corner=tuple(arr.min(axis=0).tolist()),
            max_corner=tuple(arr.max(axis=0).tolist()),
        )

    @classmethod
    def empty(cls, dimensions: int = DEFAULT_DIMENSIONS) -> BoundingBox:
        zero = (0.0,) * dimensions
        return cls(min_corner=zero, max_corner=zero)

    @property
    def dimensions(self) -> int:
        return len(self.min_corner)

    def contains(self, point: Sequence[float]) -> bool:
        return all(lo <= v <= hi for lo, v, hi in zip(self.min_corner, point, self.max_corner))


@dataclass(frozen=True)
class RegionDescriptor:
    """
    One separating plane, clipped to the region inherited from its parent.

    Attributes:
        axis: Split axis (normal direction of the plane).
        split_value: Coordinate of the node's point on that axis.
        min_bounds: Lower corner of the region this node splits.
        max_bounds: Upper corner of the region this node splits.
        color: Palette color for the axis.
        depth: Depth of the node in the tree.
        index: Identity of the node's point.
    """
    axis: int
    split_value: float
    min_bounds: Tuple[float, ...]
    max_bounds: Tuple[float, ...]
    color: str
    depth: int = 0
    index: int = -1

    def child_bounds(self) -> Tuple[Tuple[Tuple[float, ...], Tuple[float, ...]], Tuple[Tuple[float, ...], Tuple[float, ...]]]:
        """Returns ((left_min, left_max), (right_min, right_max)) regions this plane separates."""
        left_max = list(self.max_bounds)
        left_max[self.axis] = self.split_value
        right_min = list(self.min_bounds)
        right_min[self.axis] = self.split_value
        return (self.min_bounds, tuple(left_max)), (tuple(right_min), self.max_bounds)


@dataclass
class _Pending:
    node: Optional[Node]
    min_bounds: Tuple[float, ...]
    max_bounds: Tuple[float, ...]
    depth: int


class KdTreePartitioner:
    """
    Produces RegionDescriptors for every node of a KdTree.

    The partitioner owns no tree nodes; it keeps only the list of records
    emitted by the last partition() call. It is cheap to construct and is
    rebuilt together with the tree.

    Args:
        tree: Index to partition.
        bounds: Global bounding volume, the region of the root.
        dimensions: Number of axes cycled through. Must match the tree's k.
        palette: Colors indexed by axis (wraps for more axes than colors).
    """

    def __init__(
        self,
        tree: KdTree,
        bounds: BoundingBox,
        dimensions: Optional[int] = None,
        palette: Sequence[str] = PLANE_COLORS,
    ) -> None:
        self.tree = tree
        self.bounds = bounds
        self.dimensions: int = tree.dimensions if dimensions is None else dimensions
        self.palette: Tuple[str, ...] = tuple(palette)

        if self.dimensions != tree.dimensions:
            raise ValueError(
                f"Partition cycles {self.dimensions} axes but the tree splits on {tree.dimensions}."
            )
        if bounds.dimensions != self.dimensions:
            raise ValueError(
                f"Bounds have {bounds.dimensions} dimensions, partition expects {self.dimensions}."
            )
        if not self.palette:
            raise ValueError("Palette must contain at least one color.")

        self.regions: List[RegionDescriptor] = []

    def partition(self) -> List[RegionDescriptor]:
        """
        Regenerates the region list from scratch.

        Depth-first over an explicit LIFO stack. The left child inherits the
        parent region with its upper bound on the split axis clamped to the
        split value, the right child with its lower bound clamped. Emission
        order is neither depth nor breadth order.
        """
        self.clear()

        nodes = self.tree.get_nodes()
        if not nodes:
            return []

        stack: List[_Pending] = [
            _Pending(nodes[0], self.bounds.min_corner, self.bounds.max_corner, 0)
        ]
        while stack:
            item = stack.pop()
            node = item.node
            if node is None:
                continue

            axis = item.depth % self.dimensions
            split = float(node.point[axis])
            region = RegionDescriptor(
                axis=axis,
                split_value=split,
                min_bounds=item.min_bounds,
                max_bounds=item.max_bounds,
                color=self.palette[axis % len(self.palette)],
                depth=item.depth,
                index=node.index,
            )
            self.regions.append(region)

            (left_min, left_max), (right_min, right_max) = region.child_bounds()
            if node.left is not None:
                stack.append(_Pending(node.left, left_min, left_max, item.depth + 1))
            if node.right is not None:
                stack.append(_Pending(node.right, right_min, right_max, item.depth + 1))

        logger.debug(f"Partition emitted {len(self.regions)} region descriptors.")
        return list(self.regions)

    def clear(self) -> None:
        """Drops all emitted records."""
        self.regions.clear()
