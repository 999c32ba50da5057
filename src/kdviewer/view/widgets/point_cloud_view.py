"""
3D Point Cloud Widget (PyVista Wrapper)
"""
from __future__ import annotations

from typing import Optional, List, Sequence

import logging
import numpy as np
import numpy.typing as npt

from PySide6.QtWidgets import QWidget, QVBoxLayout
from PySide6.QtCore import Signal

from pyvistaqt import QtInteractor
import pyvista as pv

from kdviewer.config import (
    BACKGROUND_COLOR, POINT_COLOR, POINT_SIZE, HIGHLIGHT_COLOR, HIGHLIGHT_POINT_SIZE, PLANE_OPACITY
)
from kdviewer.model.partition import RegionDescriptor
from kdviewer.view.widgets.plane_utils import PlaneUtils

logger = logging.getLogger(__name__)


class PointCloudWidget(QWidget):
    """
    Renders three layers: the model points, the highlighted neighbors and the
    k-d tree separating planes. Implements the PointHighlighter protocol.
    """
    # Emits the picked coordinate as a tuple (x, y, z)
    point_picked = Signal(object)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self.layout_box: QVBoxLayout = QVBoxLayout(self)
        self.layout_box.setContentsMargins(0, 0, 0, 0)

        self.plotter: QtInteractor = QtInteractor(self)
        self.layout_box.addWidget(self.plotter)

        # --- Actors state ---
        self._points_actor: Optional[pv.Actor] = None
        self._highlight_actor: Optional[pv.Actor] = None
        self._plane_actors: List[pv.Actor] = []

        self._init_plotter()

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def set_points(self, points: npt.NDArray[np.float64], reset_camera: bool = True) -> None:
        """Replaces the model point layer."""
        if self._points_actor is not None:
            self.plotter.remove_actor(self._points_actor)
            self._points_actor = None

        if len(points):
            self._points_actor = self.plotter.add_points(
                np.asarray(points, dtype=np.float64),
                color=POINT_COLOR,
                point_size=POINT_SIZE,
                render_points_as_spheres=True,
                pickable=True,
                reset_camera=False,
            )

        if reset_camera:
            self.plotter.reset_camera()
        self.plotter.render()

    def highlight_points(self, points: npt.NDArray[np.float64], indices: Sequence[int]) -> None:
        """Draws the given points enlarged on top of the model layer."""
        self.clear_highlight()
        if len(points) == 0:
            return

        self._highlight_actor = self.plotter.add_points(
            np.asarray(points, dtype=np.float64),
            color=HIGHLIGHT_COLOR,
            point_size=HIGHLIGHT_POINT_SIZE,
            render_points_as_spheres=True,
            pickable=False,
            reset_camera=False,
        )
        logger.debug(f"Highlighted points {list(indices)}.")
        self.plotter.render()

    def clear_highlight(self) -> None:
        if self._highlight_actor is not None:
            self.plotter.remove_actor(self._highlight_actor)
            self._highlight_actor = None

    def set_regions(self, regions: Sequence[RegionDescriptor]) -> None:
        """Replaces all separating planes, one actor per axis color."""
        self.clear_regions(render=False)

        for color, poly in PlaneUtils.group_by_color(regions).items():
            actor = self.plotter.add_mesh(
                poly,
                color=color,
                opacity=PLANE_OPACITY,
                show_edges=False,
                lighting=False,
                pickable=False,
                reset_camera=False,
            )
            self._plane_actors.append(actor)

        self.plotter.render()

    def clear_regions(self, render: bool = True) -> None:
        for actor in self._plane_actors:
            self.plotter.remove_actor(actor)
        self._plane_actors.clear()
        if render:
            self.plotter.render()

    def close_plotter(self) -> None:
        self.plotter.close()

    # ------------------------------------------------------------------------------
    # Internal: Setup & Picking
    # ------------------------------------------------------------------------------

    def _init_plotter(self) -> None:
        self.plotter.set_background(BACKGROUND_COLOR)
        self.plotter.add_axes()
        self.plotter.enable_point_picking(
            callback=self._on_point_picked,
            left_clicking=True,
            show_message=False,
            show_point=False,
        )

    def _on_point_picked(self, point) -> None:
        if point is None:
            return
        picked = tuple(float(v) for v in np.asarray(point).reshape(-1)[:3])
        logger.debug(f"Picked point {picked}.")
        self.point_picked.emit(picked)
