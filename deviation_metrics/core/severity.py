"""
Severity Classification
=======================

Maps deviation magnitudes (millimeters) to ok / warning / critical bands and
to display colors. Bands are closed below and open above:

    |d| < 10          -> ok
    10 <= |d| < 30    -> warning
    |d| >= 30         -> critical
"""

from typing import Tuple

import numpy as np

from .types import Severity

WARNING_THRESHOLD_MM = 10.0
CRITICAL_THRESHOLD_MM = 30.0

# sRGB colors, 0..1
OK_COLOR = (0x22 / 255, 0xc5 / 255, 0x5e / 255)
WARNING_LOW_COLOR = (0xea / 255, 0xb3 / 255, 0x08 / 255)
WARNING_HIGH_COLOR = (0xf9 / 255, 0x73 / 255, 0x16 / 255)
CRITICAL_COLOR = (0xef / 255, 0x44 / 255, 0x44 / 255)


def classify(deviation_mm: float) -> Severity:
    """Severity band of a single deviation. Sign is ignored."""
    magnitude = abs(deviation_mm)
    if magnitude < WARNING_THRESHOLD_MM:
        return Severity.OK
    if magnitude < CRITICAL_THRESHOLD_MM:
        return Severity.WARNING
    return Severity.CRITICAL


def classify_array(deviations_mm: np.ndarray) -> np.ndarray:
    """
    Vectorized band index per deviation: 0 = ok, 1 = warning, 2 = critical.

    Uses the same boundaries as classify().
    """
    magnitude = np.abs(np.asarray(deviations_mm, dtype=np.float64))
    bands = np.zeros(magnitude.shape, dtype=np.int8)
    bands[magnitude >= WARNING_THRESHOLD_MM] = 1
    bands[magnitude >= CRITICAL_THRESHOLD_MM] = 2
    return bands


BAND_ORDER = (Severity.OK, Severity.WARNING, Severity.CRITICAL)


def severity_color(deviation_mm: float) -> Tuple[float, float, float]:
    """
    Display color for a deviation.

    Warning band blends yellow -> orange across 10..30 mm.
    """
    status = classify(deviation_mm)
    if status is Severity.OK:
        return OK_COLOR
    if status is Severity.CRITICAL:
        return CRITICAL_COLOR

    t = (abs(deviation_mm) - WARNING_THRESHOLD_MM) / (CRITICAL_THRESHOLD_MM - WARNING_THRESHOLD_MM)
    return tuple(lo + (hi - lo) * t for lo, hi in zip(WARNING_LOW_COLOR, WARNING_HIGH_COLOR))


def severity_colors(deviations_mm: np.ndarray) -> np.ndarray:
    """Vectorized severity_color(); returns (N, 3) float array."""
    deviations_mm = np.asarray(deviations_mm, dtype=np.float64)
    magnitude = np.abs(deviations_mm)
    bands = classify_array(deviations_mm)

    colors = np.empty((len(magnitude), 3))
    colors[bands == 0] = OK_COLOR
    colors[bands == 2] = CRITICAL_COLOR

    warning = bands == 1
    t = ((magnitude[warning] - WARNING_THRESHOLD_MM) /
         (CRITICAL_THRESHOLD_MM - WARNING_THRESHOLD_MM))[:, None]
    low = np.asarray(WARNING_LOW_COLOR)
    high = np.asarray(WARNING_HIGH_COLOR)
    colors[warning] = low + (high - low) * t

    return colors
