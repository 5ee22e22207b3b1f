"""
Visualization Generation Module
===============================

Colored point clouds, colored meshes and deviation histograms.
"""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import open3d as o3d
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt

from .lookup import DeviationLookup
from .severity import CRITICAL_COLOR, CRITICAL_THRESHOLD_MM, OK_COLOR, WARNING_THRESHOLD_MM, severity_colors
from .types import DeviationAnalysis


class DeviationVisualizer:
    """Generate heatmaps and plots for a deviation analysis."""

    def __init__(self, output_dir: Path, logger: Optional[logging.Logger] = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logger or logging.getLogger(__name__)

    def heatmap_point_cloud(self, analysis: DeviationAnalysis) -> o3d.geometry.PointCloud:
        """Point cloud of analysed reference points colored by severity."""
        pcd = o3d.geometry.PointCloud()
        if analysis.is_empty:
            return pcd

        pcd.points = o3d.utility.Vector3dVector(analysis.positions)
        pcd.colors = o3d.utility.Vector3dVector(severity_colors(analysis.deviations))
        return pcd

    def color_mesh(self,
                   mesh: o3d.geometry.TriangleMesh,
                   analysis: DeviationAnalysis) -> o3d.geometry.TriangleMesh:
        """
        Copy of a world-space mesh with per-vertex severity colors.

        Each vertex takes the deviation of the nearest analysed point.
        """
        colored = o3d.geometry.TriangleMesh(mesh)
        vertices = np.asarray(colored.vertices)

        lookup = DeviationLookup(analysis)
        colored.vertex_colors = o3d.utility.Vector3dVector(lookup.colors_at(vertices))

        self.logger.debug(f"Colored {len(vertices)} mesh vertices from {len(analysis.points)} deviation points")
        return colored

    def save_heatmap(self, analysis: DeviationAnalysis, output_name: str) -> Path:
        """Write the severity-colored point cloud as PLY."""
        self.logger.info(f"Generating deviation heatmap: {output_name}...")

        plots_dir = self.output_dir / 'plots'
        plots_dir.mkdir(exist_ok=True)

        ply_path = plots_dir / f'{output_name}_heatmap.ply'
        o3d.io.write_point_cloud(str(ply_path), self.heatmap_point_cloud(analysis))

        self.logger.info(f"Heatmap saved to {ply_path}")
        return ply_path

    def save_histogram(self,
                       analysis: DeviationAnalysis,
                       output_name: str,
                       title: str = "Deviation Distribution",
                       xlabel: str = "Deviation (mm)") -> Path:
        """Deviation histogram with the severity band thresholds marked."""
        plots_dir = self.output_dir / 'plots'
        plots_dir.mkdir(exist_ok=True)

        fig, ax = plt.subplots(figsize=(10, 6))
        if not analysis.is_empty:
            ax.hist(analysis.deviations, bins=50, edgecolor='black', alpha=0.7)
        ax.axvline(WARNING_THRESHOLD_MM, color=OK_COLOR, linestyle='--', label=f'{WARNING_THRESHOLD_MM:g} mm')
        ax.axvline(CRITICAL_THRESHOLD_MM, color=CRITICAL_COLOR, linestyle='--', label=f'{CRITICAL_THRESHOLD_MM:g} mm')
        ax.set_xlabel(xlabel)
        ax.set_ylabel('Frequency')
        ax.set_title(title)
        ax.legend()
        ax.grid(True, alpha=0.3)

        png_path = plots_dir / f'{output_name}_histogram.png'
        plt.savefig(png_path, dpi=150, bbox_inches='tight')
        plt.close(fig)

        self.logger.info(f"Histogram saved to {png_path}")
        return png_path
