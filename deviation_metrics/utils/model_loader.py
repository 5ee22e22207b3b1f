"""
Model Loader
============

Reads mesh / point cloud files with Open3D and wraps them as SceneNodes.
Supports the formats Open3D reads (PLY, OBJ, STL, OFF, GLB/GLTF, PCD, XYZ).
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import open3d as o3d

from ..core.scene import SceneNode

logger = logging.getLogger(__name__)

Open3DGeometry = Union[o3d.geometry.TriangleMesh, o3d.geometry.PointCloud]

POINT_CLOUD_ONLY_SUFFIXES = {'.pcd', '.xyz', '.xyzn', '.xyzrgb', '.pts'}


def scene_from_open3d(geometry: Open3DGeometry, name: str = "model") -> SceneNode:
    """
    Wrap an Open3D mesh or point cloud as an identity-transform SceneNode.

    Raises:
        TypeError: For unsupported geometry types
    """
    if isinstance(geometry, o3d.geometry.TriangleMesh):
        vertices = np.asarray(geometry.vertices)
    elif isinstance(geometry, o3d.geometry.PointCloud):
        vertices = np.asarray(geometry.points)
    else:
        raise TypeError(f"Unsupported geometry type: {type(geometry).__name__}")

    return SceneNode(name=name, vertices=vertices.copy())


def read_geometry(path: Path) -> Open3DGeometry:
    """
    Load a file as a triangle mesh, falling back to a point cloud.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file cannot be loaded or has no vertices
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")

    logger.info(f"Loading model from: {path}")

    geometry: Optional[Open3DGeometry] = None
    try:
        if path.suffix.lower() not in POINT_CLOUD_ONLY_SUFFIXES:
            mesh = o3d.io.read_triangle_mesh(str(path))
            if mesh.has_vertices() and mesh.has_triangles():
                geometry = mesh

        if geometry is None:
            pcd = o3d.io.read_point_cloud(str(path))
            if pcd.has_points():
                geometry = pcd
    except Exception as e:
        raise ValueError(f"Failed to load model '{path}': {e}")

    if geometry is None:
        raise ValueError(f"Model has no vertices: {path}")

    if isinstance(geometry, o3d.geometry.TriangleMesh):
        logger.info(f"Mesh loaded: {len(geometry.vertices)} vertices, {len(geometry.triangles)} triangles")
    else:
        logger.info(f"Point cloud loaded: {len(geometry.points)} points")

    return geometry


def load_model(path: Path, name: Optional[str] = None) -> SceneNode:
    """Load a model file into a SceneNode named after the file stem."""
    path = Path(path)
    return scene_from_open3d(read_geometry(path), name or path.stem)
