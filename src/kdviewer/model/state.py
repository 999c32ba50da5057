"""
Viewer State (Data Model)
=========================
Runtime settings of the viewer in one place.

Why is this file needed?
------------------------
1. State Management: The control panel writes here, the controller reads here.
2. Decoupling: Neither side holds a reference to the other's widgets.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Optional, Tuple

from kdviewer.config import (
    DEFAULT_DIMENSIONS, DEFAULT_NEIGHBOR_COUNT, DEFAULT_QUERY_POINT, DEFAULT_SCALE
)
from kdviewer.model.point_sources import ModelName

logger = logging.getLogger(__name__)


@dataclass
class ViewerState:
    app_name: str = "Basic"
    model: str = ModelName.CUBE.value
    # Set when the points come from a file instead of a built-in model
    mesh_path: Optional[str] = None

    scale: float = DEFAULT_SCALE
    show_partition: bool = True

    dimensions: int = DEFAULT_DIMENSIONS
    neighbor_count: int = DEFAULT_NEIGHBOR_COUNT
    query_point: Tuple[float, ...] = field(default=DEFAULT_QUERY_POINT)
    prune: bool = True

    @property
    def source(self) -> str:
        """The point source the viewer should display."""
        return self.mesh_path if self.mesh_path else self.model

    def reset(self) -> None:
        """Restore defaults."""
        self.app_name = "Basic"
        self.model = ModelName.CUBE.value
        self.mesh_path = None
        self.scale = DEFAULT_SCALE
        self.show_partition = True
        self.dimensions = DEFAULT_DIMENSIONS
        self.neighbor_count = DEFAULT_NEIGHBOR_COUNT
        self.query_point = DEFAULT_QUERY_POINT
        # prune is a launch option and survives a reset
        logger.info("Viewer state has been reset.")
