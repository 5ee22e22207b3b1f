"""
Report Export Module
====================

Serializes a deviation analysis to text, CSV and JSON reports.
All deviations are reported in millimeters, positions in meters.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from .types import DeviationAnalysis

REPORT_VERSION = "1.0"


def analysis_to_dict(analysis: DeviationAnalysis) -> Dict[str, Any]:
    """Plain-data form of an analysis (JSON-serializable)."""
    return {
        'statistics': analysis.statistics.to_dict(),
        'points': [
            {
                'position': {'x': p.position.x, 'y': p.position.y, 'z': p.position.z},
                'deviation_mm': p.deviation,
                'severity': p.status.value,
            }
            for p in analysis.points
        ],
        'elements': [
            {
                'id': e.id,
                'element': e.element,
                'zone': e.zone,
                'deviation_mm': e.deviation,
                'mean_deviation_mm': e.mean_deviation,
                'point_count': e.point_count,
                'severity': e.status.value,
            }
            for e in analysis.elements
        ],
    }


def points_dataframe(analysis: DeviationAnalysis) -> pd.DataFrame:
    """One row per analysed point: index, x, y, z, deviation_mm, severity."""
    df = pd.DataFrame(
        [(p.position.x, p.position.y, p.position.z, p.deviation, p.status.value) for p in analysis.points],
        columns=['x', 'y', 'z', 'deviation_mm', 'severity'],
    )
    df.index = pd.RangeIndex(1, len(df) + 1, name='index')
    return df


def _percent(count: int, total: int) -> float:
    return 100.0 * count / total if total else 0.0


class DeviationReportExporter:
    """Write deviation reports to an output directory."""

    def __init__(self, output_dir: Path, logger: Optional[logging.Logger] = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logger or logging.getLogger(__name__)

    def generate_text_report(self,
                             analysis: DeviationAnalysis,
                             reference_name: str,
                             observed_name: str,
                             max_points: int = 100) -> str:
        """Human-readable summary with the first ``max_points`` points."""
        stats = analysis.statistics
        total = stats.total_points

        lines = [
            "MODEL DEVIATION REPORT",
            "=" * 40,
            "",
            f"Created: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"Reference model: {reference_name}",
            f"Observed model: {observed_name}",
            "",
            "DEVIATION STATISTICS",
            "-" * 20,
            f"Analysed points: {total}",
            f"Average deviation: {stats.avg_deviation:.1f} mm",
            f"Maximum deviation: {stats.max_deviation:.1f} mm",
            f"Minimum deviation: {stats.min_deviation:.1f} mm",
            "",
            "SEVERITY BANDS",
            "-" * 14,
            f"OK (< 10 mm): {stats.ok_count} points ({_percent(stats.ok_count, total):.1f}%)",
            f"Warning (10-30 mm): {stats.warning_count} points ({_percent(stats.warning_count, total):.1f}%)",
            f"Critical (>= 30 mm): {stats.critical_count} points ({_percent(stats.critical_count, total):.1f}%)",
        ]

        if analysis.elements:
            lines += ["", "ELEMENTS", "-" * 8]
            for e in analysis.elements:
                lines.append(f"#{e.id} {e.element} [{e.zone}]: {e.deviation:.1f} mm "
                             f"({e.status.value}, {e.point_count} points)")

        lines += ["", "POINT DETAILS", "-" * 13]
        for i, p in enumerate(analysis.points[:max_points], start=1):
            lines.append(f"Point {i}: position ({p.position.x:.2f}, {p.position.y:.2f}, {p.position.z:.2f}) "
                         f"- deviation: {p.deviation:.1f} mm ({p.status.value})")
        remaining = len(analysis.points) - max_points
        if remaining > 0:
            lines.append(f"... and {remaining} more points")

        lines += ["", "=" * 40]
        return "\n".join(lines) + "\n"

    def save_text(self,
                  analysis: DeviationAnalysis,
                  report_name: str,
                  reference_name: str,
                  observed_name: str,
                  max_points: int = 100) -> Path:
        txt_path = self.output_dir / f'report_{report_name}.txt'
        txt_path.write_text(self.generate_text_report(analysis, reference_name, observed_name, max_points),
                            encoding='utf-8')

        self.logger.info(f"Text report saved to: {txt_path}")
        return txt_path

    def save_csv(self, analysis: DeviationAnalysis, report_name: str) -> Path:
        """
        Save point table and statistics table.

        Returns:
            Path to the point table CSV
        """
        tables_dir = self.output_dir / 'tables'
        tables_dir.mkdir(exist_ok=True)

        points_path = tables_dir / f'points_{report_name}.csv'
        points_dataframe(analysis).to_csv(points_path, float_format='%.6f')

        stats = analysis.statistics.to_dict()
        stats.pop('units')
        stats_df = pd.DataFrame(list(stats.items()), columns=['metric', 'value'])
        stats_path = tables_dir / f'statistics_{report_name}.csv'
        stats_df.to_csv(stats_path, index=False)

        self.logger.info(f"CSV tables saved to: {points_path}, {stats_path}")
        return points_path

    def save_json(self,
                  analysis: DeviationAnalysis,
                  report_name: str,
                  reference_name: str,
                  observed_name: str) -> Path:
        report = {
            'metadata': {
                'date': datetime.now().isoformat(),
                'reference_file': reference_name,
                'observed_file': observed_name,
                'version': REPORT_VERSION,
            },
            **analysis_to_dict(analysis),
        }

        json_path = self.output_dir / f'report_{report_name}.json'
        with open(json_path, 'w') as f:
            json.dump(report, f, indent=2)

        self.logger.info(f"JSON report saved to: {json_path}")
        return json_path
