"""
Configuration & Path Management
===============================
Central registry for file paths and viewer-wide constants.

Exports:
    ASSETS_PATH (str): Absolute path to the assets directory (user mesh files).
    DEFAULT_DIMENSIONS (int): Dimensionality of the indexed points.
    DEFAULT_NEIGHBOR_COUNT (int): Initial k for nearest-neighbor queries.
"""
import sys
import os
from pathlib import Path
from typing import Tuple


def get_resource_path(relative_path: str) -> str:
    """
    Get absolute path to resource, works for dev and for PyInstaller.
    """
    if hasattr(sys, '_MEIPASS'):
        # PyInstaller temp folder
        base_path: str = getattr(sys, '_MEIPASS')
        return os.path.join(base_path, relative_path)

    # config.py is in src/kdviewer/
    current_file_path: Path = Path(__file__)
    project_root: Path = current_file_path.parent.parent.parent
    return os.path.join(str(project_root), relative_path)


# Paths
ASSETS_PATH: str = get_resource_path("assets")

# Index
DEFAULT_DIMENSIONS: int = 3
DEFAULT_NEIGHBOR_COUNT: int = 3
MIN_NEIGHBOR_COUNT: int = 1
MAX_NEIGHBOR_COUNT: int = 10
DEFAULT_QUERY_POINT: Tuple[float, float, float] = (0.0, 0.0, 0.0)

# Scene
DEFAULT_SCALE: float = 1.0
MAX_SCALE: float = 10.0
BACKGROUND_COLOR: str = "black"
POINT_COLOR: str = "#ffffff"
POINT_SIZE: float = 6.0
HIGHLIGHT_COLOR: str = "#ffff80"
HIGHLIGHT_POINT_SIZE: float = 14.0
PLANE_OPACITY: float = 0.3
