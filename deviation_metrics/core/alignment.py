"""
Rigid Alignment Solver
======================

Closed-form transforms that bring two models into a common frame before
deviation analysis. Nothing here mutates geometry; every function returns an
AlignmentResult for the caller to apply.

Unsupervised (no correspondences):
- center_points:    translate the bounding-box center to the origin
- scale_to_fit:     uniform scale so the largest dimension equals a target size
- align_to_ground:  translate vertically so the minimum Y is zero
- normalize:        any subset of the three, applied in that order

Correspondence-based:
- 1 complete pair:  translation = observed - reference
- 2+ complete pairs (first two used): rotation about +Y from the horizontal
  (X-Z) direction of the pair vectors, then translation; the vertical offset
  is always observed.y - reference.y. Scale stays 1.

Rotation convention: right-handed about +Y, so a positive angle takes +Z
toward +X. theta = atan2(v_obs.x, v_obs.z) - atan2(v_ref.x, v_ref.z),
wrapped to (-pi, pi].
"""

import logging
import math
from typing import Iterable, Optional, Sequence, Tuple, Union

import numpy as np

from ..utils.diagnostics import EventHook, emit
from .errors import InvalidArgumentError
from .point_extraction import extract_points
from .scene import GeometryNode
from .types import (AlignmentResult, PairAlignment, Point3, PointSetLike,
                    ReferenceCorrespondence, as_point3, as_point_array,
                    euler_xyz_matrix, wrap_angle)

logger = logging.getLogger(__name__)

DEFAULT_TARGET_SIZE = 10.0
# Horizontal correspondence vectors shorter than this have no usable heading (meters)
MIN_HEADING_LENGTH = 1e-9

ModelLike = Union[GeometryNode, PointSetLike]
CorrespondenceLike = Union[ReferenceCorrespondence, Tuple[Optional[Sequence[float]], Optional[Sequence[float]]]]


def as_points(model: ModelLike) -> np.ndarray:
    """World-space points of a scene node, or the point set itself."""
    if hasattr(model, 'children') and hasattr(model, 'vertex_positions'):
        return extract_points(model)
    return as_point_array(model)


def _vec(p: np.ndarray) -> Point3:
    return Point3(float(p[0]), float(p[1]), float(p[2]))


# ---------------------------------------------------------------------------
# Bounding-box normalization
# ---------------------------------------------------------------------------

def compute_bounding_box(model: ModelLike) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """
    Axis-aligned world bounding box.

    Returns:
        (min_corner, max_corner), or None for an empty model
    """
    points = as_points(model)
    if len(points) == 0:
        return None
    return points.min(axis=0), points.max(axis=0)


def center_points(model: ModelLike) -> AlignmentResult:
    """Translation moving the bounding-box center to the origin."""
    box = compute_bounding_box(model)
    if box is None:
        return AlignmentResult.identity()

    center = (box[0] + box[1]) / 2.0
    logger.debug(f"Model center: {center}")
    return AlignmentResult(translation=_vec(-center))


def scale_to_fit(model: ModelLike, target_size: float = DEFAULT_TARGET_SIZE) -> AlignmentResult:
    """
    Uniform scale (about the origin) making the largest box dimension target_size.

    A zero-size model is left unscaled.

    Raises:
        InvalidArgumentError: If target_size is not a finite positive number
    """
    if not math.isfinite(target_size) or target_size <= 0:
        raise InvalidArgumentError(f"Target size must be a finite positive number, got {target_size!r}")

    box = compute_bounding_box(model)
    if box is None:
        return AlignmentResult.identity()

    max_dimension = float(np.max(box[1] - box[0]))
    scale = target_size / max_dimension if max_dimension > 0 else 1.0

    logger.debug(f"Model scale: {scale:.6f} (max dimension {max_dimension:.6f})")
    return AlignmentResult(scale=scale)


def align_to_ground(model: ModelLike) -> AlignmentResult:
    """Vertical translation putting the model's lowest point at Y = 0."""
    box = compute_bounding_box(model)
    if box is None:
        return AlignmentResult.identity()

    min_y = float(box[0][1])
    logger.debug(f"Ground shift: {-min_y:.6f}")
    return AlignmentResult(translation=Point3(0.0, -min_y, 0.0))


def normalize(model: ModelLike,
              center: bool = True,
              target_size: Optional[float] = DEFAULT_TARGET_SIZE,
              ground: bool = False) -> AlignmentResult:
    """
    Compose centering, scale-to-fit and ground snap.

    Each enabled step is solved on the output of the previous one.

    Args:
        model: Scene node or point set
        center: Move the bounding-box center to the origin
        target_size: Largest dimension after scaling; None skips scaling
        ground: Snap the minimum Y to zero

    Returns:
        Combined AlignmentResult
    """
    points = as_points(model)
    result = AlignmentResult.identity()

    steps = []
    if center:
        steps.append(center_points)
    if target_size is not None:
        steps.append(lambda pts: scale_to_fit(pts, target_size))
    if ground:
        steps.append(align_to_ground)

    for step in steps:
        current = result.apply(points)
        result = result.then(step(current))

    return result


# ---------------------------------------------------------------------------
# Correspondence alignment
# ---------------------------------------------------------------------------

def _as_correspondence(item: CorrespondenceLike, index: int) -> ReferenceCorrespondence:
    if isinstance(item, ReferenceCorrespondence):
        return item
    try:
        reference, observed = item
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Correspondence #{index} is not a (reference, observed) pair: {item!r}") from e
    return ReferenceCorrespondence(reference=reference, observed=observed, name=f"#{index}")


def _require_complete(correspondence: ReferenceCorrespondence) -> Tuple[np.ndarray, np.ndarray]:
    if not correspondence.is_complete:
        raise InvalidArgumentError(
            f"Correspondence {correspondence.name or ''} is missing its "
            f"{'reference' if correspondence.reference is None else 'observed'} position"
        )
    return correspondence.reference.to_array(), correspondence.observed.to_array()


def translation_from_correspondence(correspondence: CorrespondenceLike) -> AlignmentResult:
    """
    Translation-only alignment from one complete correspondence.

    Raises:
        InvalidArgumentError: If the correspondence is malformed or incomplete
    """
    reference, observed = _require_complete(_as_correspondence(correspondence, 0))
    return AlignmentResult(translation=_vec(observed - reference))


def rotation_from_correspondences(first: CorrespondenceLike,
                                  second: CorrespondenceLike) -> AlignmentResult:
    """
    Rotation about +Y plus translation from two complete correspondences.

    Falls back to the translation of the first pair, with a warning, when either
    pair vector has no horizontal extent.

    Raises:
        InvalidArgumentError: If either correspondence is malformed or incomplete
    """
    ref1, obs1 = _require_complete(_as_correspondence(first, 0))
    ref2, obs2 = _require_complete(_as_correspondence(second, 1))

    ref_vec = ref2 - ref1
    obs_vec = obs2 - obs1

    if (math.hypot(ref_vec[0], ref_vec[2]) < MIN_HEADING_LENGTH or
            math.hypot(obs_vec[0], obs_vec[2]) < MIN_HEADING_LENGTH):
        logger.warning("Correspondence pair has no horizontal extent, rotation undefined; "
                       "using translation only")
        return AlignmentResult(translation=_vec(obs1 - ref1))

    theta = wrap_angle(math.atan2(obs_vec[0], obs_vec[2]) - math.atan2(ref_vec[0], ref_vec[2]))

    rotated = euler_xyz_matrix(0.0, theta, 0.0) @ ref1
    translation = obs1 - rotated
    translation[1] = obs1[1] - ref1[1]

    return AlignmentResult(translation=_vec(translation), rotation=Point3(0.0, theta, 0.0))


def align_from_correspondences(correspondences: Iterable[CorrespondenceLike],
                               on_event: Optional[EventHook] = None) -> Optional[AlignmentResult]:
    """
    Solve the reference-model transform from manually placed correspondences.

    Incomplete correspondences are ignored; the first two complete ones are used.

    Returns:
        AlignmentResult, or None when there is no complete correspondence

    Raises:
        InvalidArgumentError: For malformed correspondence data
    """
    solved = _solve_correspondences(correspondences, on_event)
    return None if solved is None else solved[1]


def _solve_correspondences(correspondences: Iterable[CorrespondenceLike],
                           on_event: Optional[EventHook]) -> Optional[Tuple[str, AlignmentResult]]:
    items = [_as_correspondence(item, i) for i, item in enumerate(correspondences)]
    complete = [c for c in items if c.is_complete]

    if not complete:
        logger.warning(f"Correspondence alignment not applicable: 0 of {len(items)} correspondences complete")
        emit(on_event, 'alignment', "Insufficient correspondences", logger,
             method=None, n_complete=0, n_total=len(items))
        return None

    if len(complete) == 1:
        method = 'translation'
        result = translation_from_correspondence(complete[0])
    else:
        method = 'rotation'
        result = rotation_from_correspondences(complete[0], complete[1])

    logger.info(f"Aligned using {min(len(complete), 2)} correspondence(s): "
                f"translation={tuple(round(v, 6) for v in result.translation)}, "
                f"rotation_y={math.degrees(result.rotation.y):.3f}°")
    emit(on_event, 'alignment', "Correspondence alignment complete", logger,
         method=method, n_complete=len(complete), n_total=len(items),
         translation=tuple(result.translation), rotation_y=result.rotation.y)

    return method, result


def align_models(reference: ModelLike,
                 observed: ModelLike,
                 correspondences: Optional[Iterable[CorrespondenceLike]] = None,
                 target_size: Optional[float] = DEFAULT_TARGET_SIZE,
                 center: bool = True,
                 ground: bool = False,
                 on_event: Optional[EventHook] = None) -> Optional[PairAlignment]:
    """
    Align a reference model to an observed model.

    Without correspondences both models are normalized independently
    (center / scale-to-fit / optional ground snap). With correspondences the
    reference model receives the correspondence solution and the observed
    model stays in place.

    Returns:
        PairAlignment, or None if correspondences were given but none is complete
    """
    if correspondences is None:
        logger.info("Starting unsupervised model alignment...")
        pair = PairAlignment(
            reference=normalize(reference, center=center, target_size=target_size, ground=ground),
            observed=normalize(observed, center=center, target_size=target_size, ground=ground),
            method='normalize',
        )
        logger.info(f"Alignment complete: reference scale={pair.reference.scale:.6f}, "
                    f"observed scale={pair.observed.scale:.6f}")
        emit(on_event, 'alignment', "Normalization complete", logger,
             method='normalize', reference_scale=pair.reference.scale, observed_scale=pair.observed.scale)
        return pair

    solved = _solve_correspondences(correspondences, on_event)
    if solved is None:
        return None

    method, result = solved
    return PairAlignment(reference=result, observed=AlignmentResult.identity(), method=method)
