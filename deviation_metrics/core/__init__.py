# Deviation core: extraction, downsampling, deviation, alignment, severity.
# visualization and report_export are imported explicitly (Open3D / pandas).

from .alignment import (
    align_from_correspondences,
    align_models,
    align_to_ground,
    center_points,
    compute_bounding_box,
    normalize,
    scale_to_fit,
)
from .deviation_engine import DeviationCalculator, compare_models, compute_deviations
from .downsampling import downsample
from .elements import ElementRegion, attribute_elements
from .errors import InvalidArgumentError
from .lookup import DeviationLookup
from .point_extraction import extract_points
from .scene import GeometryNode, SceneNode, iter_nodes
from .severity import classify, severity_color
from .types import (
    AlignmentResult,
    DeviationAnalysis,
    DeviationPoint,
    DeviationStatistics,
    ElementDeviation,
    PairAlignment,
    Point3,
    ReferenceCorrespondence,
    Severity,
)

__all__ = [
    'AlignmentResult',
    'DeviationAnalysis',
    'DeviationCalculator',
    'DeviationLookup',
    'DeviationPoint',
    'DeviationStatistics',
    'ElementDeviation',
    'ElementRegion',
    'GeometryNode',
    'InvalidArgumentError',
    'PairAlignment',
    'Point3',
    'ReferenceCorrespondence',
    'SceneNode',
    'Severity',
    'align_from_correspondences',
    'align_models',
    'align_to_ground',
    'attribute_elements',
    'center_points',
    'classify',
    'compare_models',
    'compute_bounding_box',
    'compute_deviations',
    'downsample',
    'extract_points',
    'iter_nodes',
    'normalize',
    'scale_to_fit',
    'severity_color',
]
