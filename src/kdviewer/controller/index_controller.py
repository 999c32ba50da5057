"""
Index Controller
================
Single owner of the spatial index and its partition.

Why is this file needed?
------------------------
1. Lifecycle: Any change of model or scale rebuilds the index wholesale.
   The new tree is fully constructed before it replaces the old reference,
   so a query never sees a half-built tree or a node of the previous one.
2. Routing: The GUI only calls rebuild/query/regions; it never touches
   KdTree or KdTreePartitioner directly.

Threading: not thread-safe. All calls are expected from the Qt main thread.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np
import numpy.typing as npt

from kdviewer.config import DEFAULT_QUERY_POINT
from kdviewer.model.kd_tree import KdTree, Neighbor, PointHighlighter
from kdviewer.model.partition import BoundingBox, KdTreePartitioner, RegionDescriptor
from kdviewer.model.point_sources import load_points, scale_points
from kdviewer.model.state import ViewerState

logger = logging.getLogger(__name__)


class IndexController:
    def __init__(self, state: ViewerState, highlighter: Optional[PointHighlighter] = None) -> None:
        self.state = state
        self.highlighter = highlighter

        # Unscaled points of the current source
        self._source_points: npt.NDArray[np.float64] = np.empty((0, state.dimensions), dtype=np.float64)

        self._tree: KdTree = KdTree(dimensions=state.dimensions, highlighter=highlighter)
        self._bounds: BoundingBox = BoundingBox.empty(state.dimensions)
        self._partitioner: KdTreePartitioner = KdTreePartitioner(self._tree, self._bounds)

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    @property
    def tree(self) -> KdTree:
        return self._tree

    @property
    def bounds(self) -> BoundingBox:
        return self._bounds

    @property
    def points(self) -> npt.NDArray[np.float64]:
        """Points currently indexed (after scaling)."""
        return self._tree.points

    def rebuild(self, points: npt.ArrayLike, bounds: Optional[BoundingBox] = None) -> KdTree:
        """
        Replaces the index with a new one built from `points`.

        Args:
            points: (N, k) points. Empty is allowed and gives an empty index.
            bounds: Global bounding volume. Computed from the points if omitted.

        Returns:
            The new tree.
        """
        new_tree = KdTree(points, dimensions=self.state.dimensions, highlighter=self.highlighter)
        new_bounds = bounds if bounds is not None else BoundingBox.from_points(
            new_tree.points, self.state.dimensions
        )
        new_partitioner = KdTreePartitioner(new_tree, new_bounds)

        self._tree.clear_highlight()
        self._partitioner.clear()

        # Swap only once everything is built
        self._tree, self._bounds, self._partitioner = new_tree, new_bounds, new_partitioner
        # A picked point belongs to the old geometry; queries restart at the origin
        self.state.query_point = DEFAULT_QUERY_POINT
        logger.info(f"Index rebuilt with {len(new_tree)} points.")
        return new_tree

    def load_source(self, source: Optional[str] = None) -> KdTree:
        """
        Loads a built-in model or mesh file and rebuilds the index from it.
        Defaults to the source selected in the state.
        """
        source = self.state.source if source is None else source
        try:
            points = load_points(source)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load points from '{source}': {e}")
            raise

        self._source_points = points
        return self.rebuild(scale_points(points, self.state.scale))

    def set_scale(self, scale: float) -> KdTree:
        """Rescales the current source and rebuilds. A rejected scale leaves the state as it was."""
        scaled = scale_points(self._source_points, scale)
        tree = self.rebuild(scaled)
        self.state.scale = scale
        return tree

    def insert(self, point: Sequence[float]) -> None:
        """Adds one point to the live index (no rebalancing)."""
        self._tree.insert(point)

    def query(
        self,
        point: Optional[Sequence[float]] = None,
        count: Optional[int] = None,
        highlight: bool = True,
    ) -> List[Neighbor]:
        """
        k-nearest-neighbor query against the current index.

        Args:
            point: Query point. Defaults to the state's query point, which every rebuild resets to the origin.
            count: Number of neighbors. Defaults to the state's neighbor count.
            highlight: Hand the result to the highlighter.
        """
        point = self.state.query_point if point is None else tuple(float(v) for v in point)
        count = self.state.neighbor_count if count is None else count

        try:
            neighbors = self._tree.nearest(point, count, prune=self.state.prune)
        except ValueError as e:
            logger.error(f"Query rejected: {e}")
            raise

        self.state.query_point = tuple(point)
        if highlight:
            self._tree.highlight(neighbors)
        return neighbors

    def set_neighbor_count(self, count: int) -> List[Neighbor]:
        """Re-runs the query from the origin with the new k, then stores k."""
        neighbors = self.query(DEFAULT_QUERY_POINT, count)
        self.state.neighbor_count = count
        return neighbors

    def regions(self) -> List[RegionDescriptor]:
        """Fresh separating-plane records for the current index."""
        return self._partitioner.partition()

    def clear_regions(self) -> None:
        self._partitioner.clear()
