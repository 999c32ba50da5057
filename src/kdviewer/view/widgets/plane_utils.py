"""
Plane Utilities
Helper functions converting RegionDescriptors into PyVista geometry.
"""
import logging
from collections import OrderedDict
from typing import Dict, List, Sequence

import numpy as np
import numpy.typing as npt
import pyvista as pv

from kdviewer.model.partition import RegionDescriptor

logger = logging.getLogger(__name__)


class PlaneUtils:
    @staticmethod
    def region_to_quad(region: RegionDescriptor) -> npt.NDArray[np.float64]:
        """
        Corners of the separating plane clipped to the region bounds.

        Args:
            region: A 3D region descriptor.

        Returns:
            (4, 3) array of corners in winding order.

        Raises:
            ValueError: If the region is not three-dimensional.
        """
        if len(region.min_bounds) != 3 or len(region.max_bounds) != 3:
            raise ValueError(f"Only 3D regions can be drawn, got {len(region.min_bounds)}D.")

        u, v = [a for a in range(3) if a != region.axis]
        lo = region.min_bounds
        hi = region.max_bounds

        corners = np.empty((4, 3), dtype=np.float64)
        corners[:, region.axis] = region.split_value
        corners[:, u] = [lo[u], hi[u], hi[u], lo[u]]
        corners[:, v] = [lo[v], lo[v], hi[v], hi[v]]
        return corners

    @staticmethod
    def regions_to_polydata(regions: Sequence[RegionDescriptor]) -> pv.PolyData:
        """
        Packs all planes into one PolyData with a quad cell per region.
        Cell data 'axis' holds each plane's split axis.
        """
        if not regions:
            return pv.PolyData()

        points = np.vstack([PlaneUtils.region_to_quad(r) for r in regions])

        n = len(regions)
        faces = np.empty((n, 5), dtype=np.int64)
        faces[:, 0] = 4
        faces[:, 1:] = np.arange(4 * n).reshape(n, 4)

        poly = pv.PolyData(points, faces.ravel())
        poly.cell_data["axis"] = np.array([r.axis for r in regions], dtype=np.int64)
        return poly

    @staticmethod
    def group_by_color(regions: Sequence[RegionDescriptor]) -> Dict[str, pv.PolyData]:
        """One PolyData per palette color, in first-seen order."""
        groups: Dict[str, List[RegionDescriptor]] = OrderedDict()
        for region in regions:
            groups.setdefault(region.color, []).append(region)
        logger.debug(f"Grouped {len(regions)} planes into {len(groups)} color layers.")
        return OrderedDict((color, PlaneUtils.regions_to_polydata(group)) for color, group in groups.items())
