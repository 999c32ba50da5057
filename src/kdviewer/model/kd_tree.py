"""
k-d Tree Spatial Index
======================
Binary space-partitioning tree over the vertices of the displayed model.

Why is this file needed?
------------------------
1. Construction: Builds a balanced tree by median split on a cycling axis.
2. Mutation: Grows the tree by single-point insertion (no rebalancing).
3. Queries: Answers bounded k-nearest-neighbor queries and exact point lookup.

Every node carries the index of its point in the extracted point list. That
index is the point's identity: candidate deduplication, tie-breaking and
highlighting all use it instead of comparing float coordinates.

Classes:
    Node: One indexed point with two optional children.
    Neighbor: One k-nearest-neighbor result (point, index, distance).
    KdTree: The index itself.
"""
from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np
import numpy.typing as npt

from kdviewer.config import DEFAULT_DIMENSIONS

logger = logging.getLogger(__name__)

# Returned by find_point_index when no extracted point matches
NOT_FOUND: int = -1

# Work-list actions for the iterative search
_DESCEND = 0
_SETTLE = 1


class Node:
    __slots__ = ("point", "index", "left", "right")

    def __init__(self, point: npt.NDArray[np.float64], index: int) -> None:
        self.point = point
        self.index = index
        self.left: Optional[Node] = None
        self.right: Optional[Node] = None

    def __repr__(self) -> str:
        return f"Node(index={self.index}, point={self.point.tolist()})"


@dataclass(frozen=True)
class Neighbor:
    """Single nearest-neighbor result."""
    point: Tuple[float, ...]
    index: int
    distance: float


class PointHighlighter(Protocol):
    """Rendering collaborator that visually distinguishes a point subset."""

    def clear_highlight(self) -> None: ...

    def highlight_points(self, points: npt.NDArray[np.float64], indices: Sequence[int]) -> None: ...


class KdTree:
    """
    k-d tree over a fixed-dimension point set.

    The tree is built once from the extracted points. A changed point set
    means a new KdTree, never an in-place rebuild of this one.

    Args:
        points: (N, k) array of points. None or empty gives an empty tree.
        dimensions: k, the number of coordinates per point.
        highlighter: Optional collaborator notified by k_nearest_neighbors.

    Raises:
        ValueError: If dimensions < 1 or the points are not (N, dimensions).
    """

    def __init__(
        self,
        points: Optional[npt.ArrayLike] = None,
        dimensions: int = DEFAULT_DIMENSIONS,
        highlighter: Optional[PointHighlighter] = None,
    ) -> None:
        if dimensions < 1:
            raise ValueError(f"dimensions must be >= 1, got {dimensions}")

        self.k: int = dimensions
        self.highlighter: Optional[PointHighlighter] = highlighter

        self._points: npt.NDArray[np.float64] = self._as_point_array(points)
        self._points.setflags(write=False)
        self._size: int = len(self._points)
        self._next_index: int = len(self._points)

        self.root: Optional[Node] = self.build(self._points)
        logger.info(f"Built k-d tree: {self._size} points, k={self.k}.")

    # ------------------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------------------

    @property
    def points(self) -> npt.NDArray[np.float64]:
        """The originally extracted points (read-only). Inserted points are not included."""
        return self._points

    @property
    def dimensions(self) -> int:
        return self.k

    def __len__(self) -> int:
        return self._size

    def is_empty(self) -> bool:
        return self.root is None

    # ------------------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------------------

    def build(
        self,
        points: npt.ArrayLike,
        depth: int = 0,
        indices: Optional[npt.ArrayLike] = None,
    ) -> Optional[Node]:
        """
        Builds a balanced subtree by median split.

        At each level the points are stably sorted on axis (depth mod k) and
        the element at floor(n/2) becomes the subtree root; the elements
        before and after it form the left and right subtrees. Ties on the
        split coordinate keep their input order.

        Args:
            points: (N, k) points to place in the subtree.
            depth: Depth of the subtree root (selects the first split axis).
            indices: Point identities, defaults to 0..N-1.

        Returns:
            The subtree root, or None for an empty point set.
        """
        pts = self._as_point_array(points)
        if indices is None:
            ids = np.arange(len(pts))
        else:
            ids = np.asarray(indices, dtype=np.intp).reshape(-1)
            if len(ids) != len(pts):
                raise ValueError(f"Got {len(ids)} indices for {len(pts)} points.")

        if len(pts) == 0:
            return None

        root: Optional[Node] = None
        # (rows, depth, parent, side)
        work: List[Tuple[npt.NDArray[np.intp], int, Optional[Node], str]] = [
            (np.arange(len(pts)), depth, None, "")
        ]
        while work:
            rows, level, parent, side = work.pop()
            axis = level % self.k
            ordered = rows[np.argsort(pts[rows, axis], kind="stable")]
            median = len(ordered) // 2

            row = ordered[median]
            node = Node(pts[row].copy(), int(ids[row]))
            if parent is None:
                root = node
            else:
                setattr(parent, side, node)

            left_rows = ordered[:median]
            right_rows = ordered[median + 1:]
            if len(right_rows):
                work.append((right_rows, level + 1, node, "right"))
            if len(left_rows):
                work.append((left_rows, level + 1, node, "left"))

        return root

    def insert(self, point: npt.ArrayLike) -> Node:
        """
        Inserts a single point without rebalancing.

        Descends left when point[axis] < node.point[axis], right otherwise,
        until an empty child slot is found.

        Returns:
            The newly created node. Its index is the next free identity.

        Raises:
            ValueError: If the point has the wrong length or non-finite coordinates.
        """
        p = self._as_point(point)
        node = Node(p, self._next_index)
        self._next_index += 1
        self._size += 1

        if self.root is None:
            self.root = node
            logger.debug(f"Inserted {p.tolist()} as root.")
            return node

        current = self.root
        depth = 0
        while True:
            axis = depth % self.k
            side = "left" if p[axis] < current.point[axis] else "right"
            child = getattr(current, side)
            if child is None:
                setattr(current, side, node)
                break
            current = child
            depth += 1

        logger.debug(f"Inserted {p.tolist()} at depth {depth + 1}.")
        return node

    # ------------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------------

    def k_nearest_neighbors(
        self,
        query_point: npt.ArrayLike,
        count: int = 1,
        highlight: bool = True,
        prune: bool = True,
    ) -> npt.NDArray[np.float64]:
        """
        Returns the `count` points nearest to `query_point`.

        Args:
            query_point: Point of length k.
            count: Number of neighbors requested. More than len(tree) returns all points.
            highlight: If True, the result replaces the highlighter's current highlight.
            prune: Skip subtrees that cannot hold a closer point. False explores every node.

        Returns:
            (M, k) array sorted by ascending distance, M = min(count, len(tree)).
        """
        neighbors = self.nearest(query_point, count, prune=prune)
        if highlight:
            self.highlight(neighbors)

        if not neighbors:
            return np.empty((0, self.k), dtype=np.float64)
        return np.array([n.point for n in neighbors], dtype=np.float64)

    def nearest(self, query_point: npt.ArrayLike, count: int = 1, prune: bool = True) -> List[Neighbor]:
        """
        Bounded k-nearest-neighbor search.

        The candidate list is kept sorted by (distance, index), so equal
        distances resolve in input order. The root is admitted before any
        branch is explored. Each node then descends into the branch on the
        query's side of the split first, admits its own point, and finally
        visits the opposite branch. With pruning enabled the opposite branch
        is skipped once the candidate list is full and the distance to the
        split plane exceeds the worst candidate distance.

        Raises:
            ValueError: If the query has the wrong length or non-finite coordinates,
                or if count is negative.
        """
        q = self._as_point(query_point)
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")

        if self.root is None or count == 0:
            return []

        # Sorted by (distance, index); index is unique so nodes are never compared
        candidates: List[Tuple[float, int, Node]] = []
        self._admit(candidates, self.root, q, count)

        work: List[Tuple[int, Node, int]] = [(_DESCEND, self.root, 0)]
        while work:
            action, node, depth = work.pop()
            axis = depth % self.k
            if q[axis] < node.point[axis]:
                near, far = node.left, node.right
            else:
                near, far = node.right, node.left

            if action == _DESCEND:
                work.append((_SETTLE, node, depth))
                if near is not None:
                    work.append((_DESCEND, near, depth + 1))
                continue

            self._admit(candidates, node, q, count)

            if far is None:
                continue
            if not prune or len(candidates) < count:
                work.append((_DESCEND, far, depth + 1))
            elif abs(float(node.point[axis] - q[axis])) <= candidates[-1][0]:
                work.append((_DESCEND, far, depth + 1))

        neighbors = [
            Neighbor(point=tuple(node.point.tolist()), index=index, distance=distance)
            for distance, index, node in candidates
        ]
        logger.debug(f"k-NN query at {q.tolist()}: requested {count}, found {len(neighbors)}.")
        return neighbors

    def find_point_index(self, point: npt.ArrayLike) -> int:
        """
        Linear scan of the extracted points for an exact coordinate match.

        Returns:
            Index of the first match, or NOT_FOUND.
        """
        p = self._as_point(point)
        if len(self._points) == 0:
            return NOT_FOUND
        matches = np.flatnonzero(np.all(self._points == p, axis=1))
        return int(matches[0]) if len(matches) else NOT_FOUND

    def get_nodes(self) -> List[Node]:
        """Pre-order (node, left, right) list of all nodes."""
        nodes: List[Node] = []
        stack: List[Node] = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            nodes.append(node)
            if node.right is not None:
                stack.append(node.right)
            if node.left is not None:
                stack.append(node.left)
        return nodes

    # ------------------------------------------------------------------------------
    # Highlighting
    # ------------------------------------------------------------------------------

    def highlight(self, neighbors: Sequence[Neighbor]) -> None:
        """Replaces any previous highlight with the given neighbors."""
        if self.highlighter is None:
            return
        self.clear_highlight()
        points = np.array([n.point for n in neighbors], dtype=np.float64).reshape(-1, self.k)
        self.highlighter.highlight_points(points, [n.index for n in neighbors])

    def clear_highlight(self) -> None:
        if self.highlighter is not None:
            self.highlighter.clear_highlight()

    # ------------------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------------------

    @staticmethod
    def _admit(
        candidates: List[Tuple[float, int, Node]],
        node: Node,
        query: npt.NDArray[np.float64],
        count: int,
    ) -> None:
        if any(index == node.index for _, index, _ in candidates):
            return

        distance = float(np.linalg.norm(node.point - query))
        entry = (distance, node.index, node)
        if len(candidates) < count:
            bisect.insort(candidates, entry)
        elif entry[:2] < candidates[-1][:2]:
            bisect.insort(candidates, entry)
            del candidates[count:]

    def _as_point(self, point: npt.ArrayLike) -> npt.NDArray[np.float64]:
        p = np.asarray(point, dtype=np.float64)
        if p.shape != (self.k,):
            raise ValueError(f"Expected a point of shape ({self.k},), got {p.shape}.")
        if not np.all(np.isfinite(p)):
            raise ValueError(f"Point coordinates must be finite, got {p.tolist()}")
        return p.copy()

    def _as_point_array(self, points: Optional[npt.ArrayLike]) -> npt.NDArray[np.float64]:
        if points is None:
            return np.empty((0, self.k), dtype=np.float64)

        arr = np.array(points, dtype=np.float64)
        if arr.size == 0:
            return np.empty((0, self.k), dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] != self.k:
            raise ValueError(f"Expected points of shape (N, {self.k}), got {arr.shape}.")
        if not np.all(np.isfinite(arr)):
            raise ValueError("Point coordinates must be finite.")
        return arr
