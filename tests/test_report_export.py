"""
Tests for text / CSV / JSON report export.
"""

import json

import numpy as np
import pandas as pd
import pytest

from deviation_metrics.core.deviation_engine import compute_deviations
from deviation_metrics.core.elements import ElementRegion, attribute_elements
from deviation_metrics.core.report_export import (REPORT_VERSION, DeviationReportExporter, analysis_to_dict,
                                                  points_dataframe)
from deviation_metrics.core.types import DeviationAnalysis


@pytest.fixture
def analysis():
    reference = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
    observed = reference + np.array([[0.0, 0.005, 0.0], [0.0, 0.02, 0.0], [0.0, 0.05, 0.0]])
    return compute_deviations(reference, observed, grid_size=0.5)


@pytest.fixture
def exporter(tmp_path):
    return DeviationReportExporter(tmp_path)


def test_analysis_to_dict(analysis):
    data = analysis_to_dict(analysis)

    assert data['statistics']['total_points'] == 3
    assert data['statistics']['units'] == 'millimeters'
    assert [p['severity'] for p in data['points']] == ['ok', 'warning', 'critical']
    assert data['points'][1]['position'] == {'x': 1.0, 'y': 0.0, 'z': 0.0}
    assert data['elements'] == []


def test_points_dataframe(analysis):
    df = points_dataframe(analysis)

    assert list(df.columns) == ['x', 'y', 'z', 'deviation_mm', 'severity']
    assert list(df.index) == [1, 2, 3]
    assert df.loc[3, 'deviation_mm'] == pytest.approx(50.0)

    assert points_dataframe(DeviationAnalysis.empty()).empty


def test_text_report(exporter, analysis):
    text = exporter.generate_text_report(analysis, "design.ply", "scan.ply", max_points=2)

    assert "Reference model: design.ply" in text
    assert "Analysed points: 3" in text
    assert "Critical (>= 30 mm): 1 points (33.3%)" in text
    assert "Point 2:" in text
    assert "Point 3:" not in text
    assert "... and 1 more points" in text
    assert "ELEMENTS" not in text


def test_text_report_lists_elements(exporter, analysis):
    analysis = attribute_elements(analysis, [ElementRegion("Beam B1", (-0.5, -1, -1), (1.5, 1, 1), zone="L1")])

    text = exporter.generate_text_report(analysis, "design.ply", "scan.ply")

    assert "ELEMENTS" in text
    assert "#1 Beam B1 [L1]: 20.0 mm (warning, 2 points)" in text


def test_text_report_for_empty_analysis(exporter):
    text = exporter.generate_text_report(DeviationAnalysis.empty(), "a", "b")

    assert "Analysed points: 0" in text
    assert "OK (< 10 mm): 0 points (0.0%)" in text


def test_save_text(exporter, analysis, tmp_path):
    path = exporter.save_text(analysis, "run1", "design.ply", "scan.ply")

    assert path == tmp_path / "report_run1.txt"
    assert "MODEL DEVIATION REPORT" in path.read_text(encoding='utf-8')


def test_save_csv(exporter, analysis, tmp_path):
    points_path = exporter.save_csv(analysis, "run1")

    assert points_path == tmp_path / "tables" / "points_run1.csv"
    points = pd.read_csv(points_path, index_col='index')
    assert len(points) == 3
    assert list(points['severity']) == ['ok', 'warning', 'critical']

    stats = pd.read_csv(tmp_path / "tables" / "statistics_run1.csv")
    assert dict(zip(stats['metric'], stats['value']))['critical_count'] == 1


def test_save_json(exporter, analysis):
    path = exporter.save_json(analysis, "run1", "design.ply", "scan.ply")

    with open(path) as f:
        report = json.load(f)

    assert report['metadata']['version'] == REPORT_VERSION
    assert report['metadata']['reference_file'] == "design.ply"
    assert report['statistics']['max_deviation'] == pytest.approx(50.0)
    assert len(report['points']) == 3
