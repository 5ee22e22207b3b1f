"""
Point Extraction Module
=======================

Collects world-space vertex positions from a hierarchical scene.

Vertices that are non-finite in the source buffer, or become non-finite after
the world transform, are dropped with a warning. An object without meshes
yields an empty point set.
"""

import logging
from typing import Optional

import numpy as np

from ..utils.diagnostics import EventHook, emit
from .scene import GeometryNode, iter_nodes

logger = logging.getLogger(__name__)


def transform_points(points: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Apply a 4x4 homogeneous transform to (N, 3) points."""
    homogeneous = np.hstack([points, np.ones((len(points), 1))])
    transformed = homogeneous @ np.asarray(matrix, dtype=np.float64).T
    return transformed[:, :3]


def extract_points(scene_object: GeometryNode,
                   on_event: Optional[EventHook] = None,
                   log: Optional[logging.Logger] = None) -> np.ndarray:
    """
    Extract every mesh vertex of a scene in world coordinates.

    Output order is traversal order (depth-first, children in declaration
    order), then vertex buffer order within each mesh.

    Args:
        scene_object: Root node of the scene
        on_event: Optional diagnostic hook
        log: Optional logger

    Returns:
        (N, 3) float64 array of finite world-space positions
    """
    log = log or logger

    chunks = []
    n_meshes = 0
    n_rejected = 0

    for node in iter_nodes(scene_object):
        vertices = node.vertex_positions()
        if vertices is None:
            continue

        vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        n_meshes += 1
        if len(vertices) == 0:
            continue

        # Source check and post-transform check are independent
        valid_source = np.all(np.isfinite(vertices), axis=1)
        with np.errstate(invalid='ignore', over='ignore'):
            world = transform_points(np.where(valid_source[:, None], vertices, 0.0),
                                     node.world_transform())
        valid_world = valid_source & np.all(np.isfinite(world), axis=1)

        bad_source = int(np.sum(~valid_source))
        bad_world = int(np.sum(valid_source & ~valid_world))
        if bad_source:
            log.warning(f"Skipped {bad_source} vertices with invalid coordinates in {node!r}")
        if bad_world:
            log.warning(f"Skipped {bad_world} vertices invalid after world transform in {node!r}")
        n_rejected += bad_source + bad_world

        chunks.append(world[valid_world])

    points = np.vstack(chunks) if chunks else np.empty((0, 3), dtype=np.float64)

    log.debug(f"Extracted {len(points)} points from {n_meshes} meshes ({n_rejected} rejected)")
    emit(on_event, 'extraction', "Point extraction complete", log,
         n_points=len(points), n_meshes=n_meshes, n_rejected=n_rejected)

    return points
