"""
Tests for severity classification and color mapping.
"""

import numpy as np
import pytest

from deviation_metrics.core.severity import (CRITICAL_COLOR, OK_COLOR, WARNING_HIGH_COLOR, WARNING_LOW_COLOR,
                                             classify, classify_array, severity_color, severity_colors)
from deviation_metrics.core.types import Severity


@pytest.mark.parametrize("deviation, expected", [
    (0.0, Severity.OK),
    (9.999, Severity.OK),
    (10.0, Severity.WARNING),
    (29.999, Severity.WARNING),
    (30.0, Severity.CRITICAL),
    (5000.0, Severity.CRITICAL),
    (-15.0, Severity.WARNING),
    (-9.0, Severity.OK),
    (-30.0, Severity.CRITICAL),
])
def test_classify_band_boundaries(deviation, expected):
    assert classify(deviation) is expected


def test_classify_array_matches_scalar_classification():
    deviations = np.array([0.0, 9.999, 10.0, 29.999, 30.0, -15.0, 120.0])
    bands = classify_array(deviations)

    order = [Severity.OK, Severity.WARNING, Severity.CRITICAL]
    assert [order[b] for b in bands] == [classify(d) for d in deviations]


def test_severity_color_bands():
    assert severity_color(3.0) == OK_COLOR
    assert severity_color(45.0) == CRITICAL_COLOR
    assert severity_color(10.0) == pytest.approx(WARNING_LOW_COLOR)
    assert severity_color(-29.9999999) == pytest.approx(WARNING_HIGH_COLOR, abs=1e-6)

    midpoint = severity_color(20.0)
    expected = [(lo + hi) / 2 for lo, hi in zip(WARNING_LOW_COLOR, WARNING_HIGH_COLOR)]
    assert midpoint == pytest.approx(expected)


def test_severity_colors_vectorized_matches_scalar():
    deviations = np.array([1.0, 10.0, 17.5, 29.0, 30.0, -12.0])
    colors = severity_colors(deviations)

    assert colors.shape == (len(deviations), 3)
    for row, deviation in zip(colors, deviations):
        assert row == pytest.approx(severity_color(deviation))


def test_severity_colors_empty():
    assert severity_colors(np.array([])).shape == (0, 3)
