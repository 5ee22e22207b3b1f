"""
Model Deviation Analysis
========================

Compares a design model ("reference") against a field-captured scan
("observed") and computes a per-point deviation field with severity bands.

Module Organization:
-------------------
- core/: Extraction, downsampling, deviation, alignment, severity, reports
- utils/: Configuration, logging, diagnostics hook, model loading

Entry points:
- extract_points(scene) -> (N, 3) points
- compare_models(reference_scene, observed_scene, grid_size) -> DeviationAnalysis
- align_models(reference, observed, correspondences=None) -> PairAlignment
- align_to_ground(model) -> AlignmentResult
"""

from .core import (
    AlignmentResult,
    DeviationAnalysis,
    DeviationCalculator,
    DeviationPoint,
    DeviationStatistics,
    InvalidArgumentError,
    PairAlignment,
    Point3,
    ReferenceCorrespondence,
    SceneNode,
    Severity,
    align_models,
    align_to_ground,
    classify,
    compare_models,
    downsample,
    extract_points,
)

__version__ = "1.0.0"
__all__ = [
    "AlignmentResult",
    "DeviationAnalysis",
    "DeviationCalculator",
    "DeviationPoint",
    "DeviationStatistics",
    "InvalidArgumentError",
    "PairAlignment",
    "Point3",
    "ReferenceCorrespondence",
    "SceneNode",
    "Severity",
    "align_models",
    "align_to_ground",
    "classify",
    "compare_models",
    "downsample",
    "extract_points",
]
