"""
Proximity lookup into a finished deviation analysis, used to color arbitrary
vertices (e.g. the full-resolution mesh) from the downsampled analysis.
"""

from typing import Optional

import numpy as np
from scipy.spatial import cKDTree

from .severity import severity_colors
from .types import DeviationAnalysis, DeviationPoint, PointLike, PointSetLike, as_point3, as_point_array


class DeviationLookup:
    """Nearest analysed point for arbitrary query positions."""

    def __init__(self, analysis: DeviationAnalysis):
        self.analysis = analysis
        self._deviations = analysis.deviations
        self._tree: Optional[cKDTree] = cKDTree(analysis.positions) if analysis.points else None

    def nearest(self, point: PointLike) -> Optional[DeviationPoint]:
        """Closest DeviationPoint, or None for an empty analysis."""
        if self._tree is None:
            return None
        _, index = self._tree.query(np.asarray(as_point3(point)), k=1)
        return self.analysis.points[int(index)]

    def deviations_at(self, points: PointSetLike) -> np.ndarray:
        """Deviation (mm) of the nearest analysed point per query; zeros if the analysis is empty."""
        queries = as_point_array(points)
        if self._tree is None or len(queries) == 0:
            return np.zeros(len(queries))
        _, indices = self._tree.query(queries, k=1)
        return self._deviations[indices]

    def colors_at(self, points: PointSetLike) -> np.ndarray:
        """(N, 3) severity colors for the query positions."""
        return severity_colors(self.deviations_at(points))
