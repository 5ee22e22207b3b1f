"""
Spatial Grid Downsampling
=========================

Reduces a point set to at most one point per occupied cubic grid cell.

Strategies:
- 'first':   keep the first point seen in each cell (default, deterministic)
- 'average': replace each cell by the centroid of its points

Output cells appear in the order their first point appears in the input.
"""

import logging
import math
from typing import Optional

import numpy as np

from ..utils.diagnostics import EventHook, emit
from .errors import InvalidArgumentError
from .types import PointSetLike, as_point_array

logger = logging.getLogger(__name__)

STRATEGIES = ('first', 'average')


def validate_grid_size(grid_size: float) -> float:
    """
    Raises:
        InvalidArgumentError: If grid_size is not a finite positive number
    """
    try:
        value = float(grid_size)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Grid size must be a number, got {grid_size!r}") from e

    if not math.isfinite(value) or value <= 0:
        raise InvalidArgumentError(f"Grid size must be a finite positive number, got {grid_size!r}")

    return value


def cell_keys(points: np.ndarray, grid_size: float) -> np.ndarray:
    """Integer-valued (float dtype) cell coordinates floor(p / grid_size)."""
    return np.floor(points / grid_size)


def downsample(points: PointSetLike,
               grid_size: float,
               strategy: str = 'first',
               on_event: Optional[EventHook] = None) -> np.ndarray:
    """
    Downsample points onto a regular grid.

    Args:
        points: (N, 3) points
        grid_size: Cell edge length, same units as the points
        strategy: 'first' or 'average'
        on_event: Optional diagnostic hook

    Returns:
        New (M, 3) array with M <= N and M <= number of occupied cells

    Raises:
        InvalidArgumentError: For a non-positive grid size or unknown strategy
    """
    grid_size = validate_grid_size(grid_size)
    if strategy not in STRATEGIES:
        raise InvalidArgumentError(f"Unknown downsampling strategy '{strategy}', expected one of {STRATEGIES}")

    pts = as_point_array(points)

    if len(pts) == 0:
        result = np.empty((0, 3), dtype=np.float64)
    else:
        keys = cell_keys(pts, grid_size)
        _, first_index, inverse = np.unique(keys, axis=0, return_index=True, return_inverse=True)
        inverse = inverse.reshape(-1)
        order = np.argsort(first_index, kind='stable')

        if strategy == 'first':
            result = pts[first_index[order]].copy()
        else:
            n_cells = len(first_index)
            sums = np.zeros((n_cells, 3))
            np.add.at(sums, inverse, pts)
            counts = np.bincount(inverse, minlength=n_cells).astype(np.float64)
            result = (sums / counts[:, None])[order]

    logger.debug(f"Downsampled {len(pts)} -> {len(result)} points (grid={grid_size}m, strategy={strategy})")
    emit(on_event, 'downsampling', "Downsampling complete", logger,
         n_input=len(pts), n_output=len(result), grid_size=grid_size, strategy=strategy)

    return result
