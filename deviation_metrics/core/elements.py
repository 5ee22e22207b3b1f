"""
Element Attribution
===================

Optional enrichment stage: summarizes a deviation analysis per building
element, using element extents supplied by the caller (e.g. BIM metadata).
The comparison itself never produces elements.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence

import numpy as np

from .errors import InvalidArgumentError
from .severity import classify
from .types import DeviationAnalysis, ElementDeviation, Point3, as_point3

REGION_KEYS = ('element', 'bounds_min', 'bounds_max')


@dataclass(frozen=True)
class ElementRegion:
    """Axis-aligned world-space extent of a named element."""
    element: str
    bounds_min: Point3
    bounds_max: Point3
    zone: str = ""
    id: Optional[int] = None

    def __post_init__(self):
        lo = as_point3(self.bounds_min, f"{self.element} bounds_min")
        hi = as_point3(self.bounds_max, f"{self.element} bounds_max")
        if any(a > b for a, b in zip(lo, hi)):
            raise InvalidArgumentError(f"Element '{self.element}' has bounds_min > bounds_max: {lo} / {hi}")
        object.__setattr__(self, 'bounds_min', lo)
        object.__setattr__(self, 'bounds_max', hi)

    def contains(self, positions: np.ndarray) -> np.ndarray:
        """Boolean mask of positions inside the (closed) box."""
        lo = np.asarray(self.bounds_min)
        hi = np.asarray(self.bounds_max)
        return np.all((positions >= lo) & (positions <= hi), axis=1)


def attribute_elements(analysis: DeviationAnalysis,
                       regions: Iterable[ElementRegion],
                       logger: Optional[logging.Logger] = None) -> DeviationAnalysis:
    """
    Attach per-element deviation summaries to an analysis.

    For each region containing at least one analysed point: the worst
    (maximum absolute) deviation, its severity, the mean deviation and the
    point count. Regions without points are skipped.

    Returns:
        New DeviationAnalysis with ``elements`` populated; points and statistics unchanged
    """
    logger = logger or logging.getLogger(__name__)

    positions = analysis.positions
    deviations = analysis.deviations

    elements = []
    for index, region in enumerate(regions, start=1):
        mask = region.contains(positions) if len(positions) else np.zeros(0, dtype=bool)
        n_inside = int(np.sum(mask))

        if n_inside == 0:
            logger.debug(f"Element '{region.element}' contains no analysed points, skipped")
            continue

        inside = deviations[mask]
        worst = float(inside[np.argmax(np.abs(inside))])

        elements.append(ElementDeviation(
            id=region.id if region.id is not None else index,
            element=region.element,
            deviation=worst,
            status=classify(worst),
            zone=region.zone,
            mean_deviation=float(np.mean(inside)),
            point_count=n_inside,
        ))

    logger.info(f"Attributed deviations to {len(elements)} elements")

    return replace(analysis, elements=tuple(elements))


def regions_from_dicts(records: Sequence[dict]) -> list:
    """
    Build ElementRegions from plain mappings (e.g. parsed YAML/JSON).

    Raises:
        InvalidArgumentError: If a record lacks element / bounds_min / bounds_max
    """
    regions = []
    for i, record in enumerate(records):
        missing = [key for key in REGION_KEYS if key not in record]
        if missing:
            raise InvalidArgumentError(f"Element record #{i} is missing {', '.join(missing)}")
        regions.append(ElementRegion(
            element=record['element'],
            bounds_min=record['bounds_min'],
            bounds_max=record['bounds_max'],
            zone=record.get('zone', ''),
            id=record.get('id'),
        ))
    return regions
