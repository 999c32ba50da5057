"""
Point Sources
Supplies the vertex arrays that get indexed: built-in models and mesh files.
"""
from __future__ import annotations

import logging
import os
from enum import StrEnum
from typing import Union

import numpy as np
import numpy.typing as npt
import pyvista as pv

logger = logging.getLogger(__name__)


class ModelName(StrEnum):
    CUBE = "Cube"
    SPHERE = "Sphere"
    TORUS = "Torus"
    TREE = "Tree"


def extract_points(dataset: Union[pv.DataSet, pv.MultiBlock]) -> npt.NDArray[np.float64]:
    """
    Returns the vertices of a dataset as an (N, 3) float64 array.
    Vertex order is preserved and duplicates are kept.
    """
    if isinstance(dataset, pv.MultiBlock):
        dataset = dataset.combine()
    return np.array(dataset.points, dtype=np.float64).reshape(-1, 3)


def create_model(name: Union[ModelName, str]) -> pv.PolyData:
    """Builds one of the built-in surface models."""
    try:
        model = ModelName(name)
    except ValueError:
        raise ValueError(f"Unknown model '{name}'. Choose from: {[m.value for m in ModelName]}")

    if model == ModelName.CUBE:
        return pv.Cube(x_length=2.0, y_length=2.0, z_length=2.0).triangulate().subdivide(2, subfilter="linear")
    if model == ModelName.SPHERE:
        return pv.Sphere(radius=1.0, theta_resolution=16, phi_resolution=16)
    if model == ModelName.TORUS:
        return pv.ParametricTorus(ringradius=1.0, crosssectionradius=0.35)

    # Tree: trunk + conical canopy, standing on the Y axis
    trunk = pv.Cylinder(center=(0.0, -0.6, 0.0), direction=(0.0, 1.0, 0.0), radius=0.12, height=0.8, resolution=12)
    canopy = pv.Cone(center=(0.0, 0.4, 0.0), direction=(0.0, 1.0, 0.0), height=1.2, radius=0.7, resolution=24)
    return trunk.merge(canopy, merge_points=False).extract_surface()


def load_mesh_file(path: str) -> pv.DataSet:
    """Reads any mesh format pyvista understands (.obj, .ply, .stl, .vtk, ...)."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Mesh file not found: {path}")

    logger.info(f"Loading mesh from {path}")
    mesh = pv.read(path)
    if isinstance(mesh, pv.MultiBlock):
        mesh = mesh.combine()
    if mesh.n_points == 0:
        raise ValueError(f"Mesh '{path}' contains no points.")
    return mesh


def load_points(source: Union[ModelName, str]) -> npt.NDArray[np.float64]:
    """
    Resolves a built-in model name or a mesh file path to its vertex array.
    """
    if isinstance(source, ModelName) or source in {m.value for m in ModelName}:
        points = extract_points(create_model(source))
    else:
        points = extract_points(load_mesh_file(str(source)))

    logger.debug(f"Extracted {len(points)} points from '{source}'.")
    return points


def scale_points(points: npt.ArrayLike, scale: float) -> npt.NDArray[np.float64]:
    """Uniform scaling about the origin."""
    if scale < 0:
        raise ValueError(f"Scale must be non-negative, got {scale}")
    return np.asarray(points, dtype=np.float64) * float(scale)
