"""
Tests for spatial grid downsampling.
"""

import numpy as np
import pytest

from deviation_metrics.core.downsampling import cell_keys, downsample
from deviation_metrics.core.errors import InvalidArgumentError


def create_random_points(n=500, seed=7, extent=2.0):
    rng = np.random.default_rng(seed)
    return rng.uniform(-extent, extent, size=(n, 3))


def test_keeps_first_point_per_cell():
    points = np.array([
        [0.01, 0.01, 0.01],
        [0.05, 0.05, 0.05],
        [0.35, 0.0, 0.0],
    ])

    result = downsample(points, 0.1)

    np.testing.assert_array_equal(result, points[[0, 2]])


def test_preserves_first_seen_cell_order():
    points = np.array([
        [1.0, 1.0, 1.0],
        [0.0, 0.0, 0.0],
        [1.01, 1.0, 1.0],
        [0.1, 0.1, 0.1],
    ])

    result = downsample(points, 0.5)

    np.testing.assert_array_equal(result, [[1.0, 1.0, 1.0], [0.0, 0.0, 0.0]])


def test_negative_coordinates_use_floor():
    points = np.array([[-0.05, 0.0, 0.0], [0.05, 0.0, 0.0]])
    assert len(downsample(points, 0.1)) == 2


def test_idempotent():
    points = create_random_points()
    once = downsample(points, 0.3)
    twice = downsample(once, 0.3)

    np.testing.assert_array_equal(once, twice)


def test_cardinality_bounded_by_cells_and_input():
    points = create_random_points(n=1000, extent=1.0)
    grid = 0.25

    result = downsample(points, grid)
    n_cells = len(np.unique(cell_keys(points, grid), axis=0))

    assert len(result) == n_cells
    assert len(result) <= len(points)


def test_empty_input_returns_empty():
    result = downsample(np.empty((0, 3)), 0.2)
    assert result.shape == (0, 3)

    assert downsample([], 0.2).shape == (0, 3)


@pytest.mark.parametrize("grid_size", [0, 0.0, -0.1, float('nan'), float('inf'), "abc"])
def test_invalid_grid_size_raises(grid_size):
    with pytest.raises(InvalidArgumentError):
        downsample(create_random_points(n=10), grid_size)


def test_invalid_grid_size_raises_for_empty_input():
    with pytest.raises(InvalidArgumentError):
        downsample(np.empty((0, 3)), -1.0)


def test_unknown_strategy_raises():
    with pytest.raises(InvalidArgumentError):
        downsample(create_random_points(n=10), 0.1, strategy='median')


def test_average_strategy_returns_cell_centroids():
    points = np.array([
        [0.0, 0.0, 0.0],
        [5.0, 5.0, 5.0],
        [0.2, 0.4, 0.6],
    ])

    result = downsample(points, 1.0, strategy='average')

    np.testing.assert_allclose(result, [[0.1, 0.2, 0.3], [5.0, 5.0, 5.0]])


def test_input_not_modified():
    points = create_random_points(n=50)
    original = points.copy()

    result = downsample(points, 0.5)
    result[:] = 0.0

    np.testing.assert_array_equal(points, original)


def test_malformed_point_array_raises():
    with pytest.raises(InvalidArgumentError):
        downsample(np.zeros((4, 2)), 0.1)


def test_emits_diagnostic_event():
    events = []
    downsample(create_random_points(n=20), 0.5, on_event=events.append)

    assert len(events) == 1
    assert events[0].stage == 'downsampling'
    assert events[0].data['n_input'] == 20
