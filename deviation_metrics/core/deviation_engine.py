"""
Nearest-Neighbor Deviation Engine
=================================

Compares a reference (design) model against an observed (scan) model:

1. Extract world-space points from both scenes
2. Grid-downsample each side independently
3. For each reference point, find the nearest observed point
4. Deviation = distance * 1000 (meters -> millimeters)
5. Classify each deviation and aggregate statistics

Nearest-neighbor search uses a SciPy cKDTree by default; 'brute' scans the
whole observed set per reference point. Both return identical distances.
If either downsampled side is empty the result is an empty analysis with
all-zero statistics, never NaN or infinity.
"""

import logging
from typing import Optional

import numpy as np
from scipy.spatial import cKDTree

from ..utils.diagnostics import EventHook, emit
from .downsampling import downsample, validate_grid_size
from .errors import InvalidArgumentError
from .point_extraction import extract_points
from .scene import GeometryNode
from .severity import BAND_ORDER, classify_array
from .types import (DeviationAnalysis, DeviationPoint, DeviationStatistics,
                    PointSetLike, as_point_array, iter_points)

DEFAULT_GRID_SIZE = 0.2
METERS_TO_MM = 1000.0
SEARCH_METHODS = ('kdtree', 'brute')
# Upper bound for the (block, observed, 3) float64 temporary of the brute-force search
BRUTE_MEMORY_BUDGET = 256 * 1024 ** 2  # bytes


class DeviationCalculator:
    """
    Compute per-point deviations and summary statistics between two models.
    """

    def __init__(self,
                 grid_size: float = DEFAULT_GRID_SIZE,
                 downsample_strategy: str = 'first',
                 method: str = 'kdtree',
                 workers: int = 1,
                 brute_chunk_size: int = 2048,
                 logger: Optional[logging.Logger] = None,
                 on_event: Optional[EventHook] = None):
        """
        Initialize deviation calculator.

        Args:
            grid_size: Downsampling cell size (meters)
            downsample_strategy: 'first' or 'average'
            method: Nearest-neighbor search, 'kdtree' or 'brute'
            workers: Parallel workers for KD-tree queries (-1 = all cores)
            brute_chunk_size: Maximum reference points per block in brute-force mode;
                blocks shrink further so the pairwise temporary stays within BRUTE_MEMORY_BUDGET
            logger: Optional logger instance
            on_event: Optional diagnostic hook

        Raises:
            InvalidArgumentError: For a non-positive grid size or unknown method
        """
        if method not in SEARCH_METHODS:
            raise InvalidArgumentError(f"Unknown search method '{method}', expected one of {SEARCH_METHODS}")

        self.grid_size = validate_grid_size(grid_size)
        self.downsample_strategy = downsample_strategy
        self.method = method
        self.workers = workers
        self.brute_chunk_size = max(1, int(brute_chunk_size))
        self.logger = logger or logging.getLogger(__name__)
        self.on_event = on_event

    def brute_block_size(self, n_observed: int) -> int:
        """Reference points per brute-force block for an observed set of this size."""
        per_row = max(1, n_observed) * 3 * np.dtype(np.float64).itemsize
        return max(1, min(self.brute_chunk_size, BRUTE_MEMORY_BUDGET // per_row))

    def nearest_distances(self, reference: np.ndarray, observed: np.ndarray) -> np.ndarray:
        """
        Distance (meters) from each reference point to its nearest observed point.

        Args:
            reference: (R, 3) query points
            observed: (O, 3) non-empty candidate points

        Returns:
            (R,) distances
        """
        if self.method == 'kdtree':
            tree = cKDTree(observed)
            distances, _ = tree.query(reference, k=1, workers=self.workers)
            return np.asarray(distances, dtype=np.float64)

        block_size = self.brute_block_size(len(observed))
        distances = np.empty(len(reference))
        for start in range(0, len(reference), block_size):
            block = reference[start:start + block_size]
            sq = np.sum((block[:, None, :] - observed[None, :, :]) ** 2, axis=2)
            # argmin resolves ties to the first candidate
            nearest = np.argmin(sq, axis=1)
            distances[start:start + len(block)] = np.sqrt(sq[np.arange(len(block)), nearest])
        return distances

    def compute_statistics(self, deviations_mm: np.ndarray, bands: np.ndarray) -> DeviationStatistics:
        """Summary statistics; all zero for an empty input."""
        n = len(deviations_mm)
        if n == 0:
            return DeviationStatistics()

        min_deviation = float(np.min(deviations_mm))
        max_deviation = float(np.max(deviations_mm))
        # Summation rounding can push the mean of equal values one ulp outside [min, max]
        avg_deviation = min(max(float(np.mean(deviations_mm)), min_deviation), max_deviation)

        return DeviationStatistics(
            total_points=n,
            ok_count=int(np.sum(bands == 0)),
            warning_count=int(np.sum(bands == 1)),
            critical_count=int(np.sum(bands == 2)),
            avg_deviation=avg_deviation,
            max_deviation=max_deviation,
            min_deviation=min_deviation,
        )

    def compute_deviations(self,
                           reference_points: PointSetLike,
                           observed_points: PointSetLike) -> DeviationAnalysis:
        """
        Deviation analysis between two world-space point sets.

        Args:
            reference_points: Reference (design) points, meters
            observed_points: Observed (scan) points, meters

        Returns:
            DeviationAnalysis with one DeviationPoint per downsampled reference point
        """
        reference = downsample(reference_points, self.grid_size, self.downsample_strategy, self.on_event)
        observed = downsample(observed_points, self.grid_size, self.downsample_strategy, self.on_event)

        self.logger.info(f"Downsampled - reference: {len(reference)}, observed: {len(observed)} "
                         f"(grid={self.grid_size}m)")

        if len(reference) == 0 or len(observed) == 0:
            self.logger.warning(f"Cannot compare models: insufficient points "
                                f"(reference={len(reference)}, observed={len(observed)})")
            analysis = DeviationAnalysis.empty()
            emit(self.on_event, 'comparison', "Comparison skipped: insufficient points", self.logger,
                 n_reference=len(reference), n_observed=len(observed), **analysis.statistics.to_dict())
            return analysis

        deviations_mm = self.nearest_distances(reference, observed) * METERS_TO_MM
        bands = classify_array(deviations_mm)

        points = tuple(
            DeviationPoint(position=position, deviation=float(deviation), status=BAND_ORDER[band])
            for position, deviation, band in zip(iter_points(reference), deviations_mm, bands)
        )
        statistics = self.compute_statistics(deviations_mm, bands)

        self.logger.info(f"Analysis complete - avg: {statistics.avg_deviation:.2f}mm, "
                         f"max: {statistics.max_deviation:.2f}mm, min: {statistics.min_deviation:.2f}mm")
        self.logger.debug(f"Bands - ok: {statistics.ok_count}, warning: {statistics.warning_count}, "
                          f"critical: {statistics.critical_count}")
        emit(self.on_event, 'comparison', "Comparison complete", self.logger,
             n_reference=len(reference), n_observed=len(observed), **statistics.to_dict())

        return DeviationAnalysis(points=points, statistics=statistics)

    def compare(self,
                reference_scene: GeometryNode,
                observed_scene: GeometryNode) -> DeviationAnalysis:
        """Extract points from both scenes and compute their deviation analysis."""
        self.logger.info("Starting model comparison...")

        reference_points = extract_points(reference_scene, self.on_event, self.logger)
        observed_points = extract_points(observed_scene, self.on_event, self.logger)

        self.logger.info(f"Reference points: {len(reference_points)}, observed points: {len(observed_points)}")

        return self.compute_deviations(reference_points, observed_points)


def compute_deviations(reference_points: PointSetLike,
                       observed_points: PointSetLike,
                       grid_size: float = DEFAULT_GRID_SIZE,
                       **kwargs) -> DeviationAnalysis:
    """Convenience wrapper around DeviationCalculator.compute_deviations()."""
    return DeviationCalculator(grid_size, **kwargs).compute_deviations(
        as_point_array(reference_points), as_point_array(observed_points)
    )


def compare_models(reference_scene: GeometryNode,
                   observed_scene: GeometryNode,
                   grid_size: float = DEFAULT_GRID_SIZE,
                   **kwargs) -> DeviationAnalysis:
    """
    Compare two scenes.

    Args:
        reference_scene: Design model scene
        observed_scene: Captured model scene
        grid_size: Downsampling cell size in meters (default 0.2)
        **kwargs: Forwarded to DeviationCalculator (downsample_strategy, method,
                  workers, logger, on_event)

    Returns:
        DeviationAnalysis

    Raises:
        InvalidArgumentError: For a non-positive grid size
    """
    return DeviationCalculator(grid_size, **kwargs).compare(reference_scene, observed_scene)
