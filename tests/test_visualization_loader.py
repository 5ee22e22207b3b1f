"""
Tests for Open3D model loading and heatmap / histogram output.
"""

import numpy as np
import pytest

o3d = pytest.importorskip("open3d")

from deviation_metrics.core.deviation_engine import compute_deviations
from deviation_metrics.core.severity import CRITICAL_COLOR, OK_COLOR
from deviation_metrics.core.types import DeviationAnalysis
from deviation_metrics.core.visualization import DeviationVisualizer
from deviation_metrics.utils.model_loader import load_model, read_geometry, scene_from_open3d


@pytest.fixture
def analysis():
    reference = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
    observed = np.array([[0.0, 0.001, 0.0], [1.0, 0.2, 0.0]])
    return compute_deviations(reference, observed, grid_size=0.5)


def create_box_mesh():
    return o3d.geometry.TriangleMesh.create_box(width=1.0, height=2.0, depth=3.0)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def test_scene_from_mesh_and_point_cloud():
    mesh = create_box_mesh()
    node = scene_from_open3d(mesh, "box")

    assert node.name == "box"
    np.testing.assert_array_equal(node.vertex_positions(), np.asarray(mesh.vertices))

    pcd = o3d.geometry.PointCloud(o3d.utility.Vector3dVector(np.array([[1.0, 2.0, 3.0]])))
    np.testing.assert_array_equal(scene_from_open3d(pcd).vertex_positions(), [[1.0, 2.0, 3.0]])


def test_scene_from_unsupported_geometry():
    with pytest.raises(TypeError):
        scene_from_open3d(o3d.geometry.LineSet())


def test_load_mesh_file(tmp_path):
    path = tmp_path / "design.ply"
    o3d.io.write_triangle_mesh(str(path), create_box_mesh())

    node = load_model(path)

    assert node.name == "design"
    assert len(node.vertex_positions()) == 8


def test_load_point_cloud_file(tmp_path):
    path = tmp_path / "scan.pcd"
    pcd = o3d.geometry.PointCloud(o3d.utility.Vector3dVector(np.random.default_rng(0).random((50, 3))))
    o3d.io.write_point_cloud(str(path), pcd)

    geometry = read_geometry(path)

    assert isinstance(geometry, o3d.geometry.PointCloud)
    assert len(geometry.points) == 50


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_model(tmp_path / "missing.ply")


# ---------------------------------------------------------------------------
# Visualization
# ---------------------------------------------------------------------------

def test_heatmap_point_cloud_colors(tmp_path, analysis):
    pcd = DeviationVisualizer(tmp_path).heatmap_point_cloud(analysis)

    colors = np.asarray(pcd.colors)
    np.testing.assert_allclose(colors[0], OK_COLOR)
    np.testing.assert_allclose(colors[1], CRITICAL_COLOR)


def test_heatmap_of_empty_analysis(tmp_path):
    pcd = DeviationVisualizer(tmp_path).heatmap_point_cloud(DeviationAnalysis.empty())
    assert not pcd.has_points()


def test_color_mesh_copies_mesh(tmp_path, analysis):
    mesh = create_box_mesh()

    colored = DeviationVisualizer(tmp_path).color_mesh(mesh, analysis)

    assert colored.has_vertex_colors()
    assert not mesh.has_vertex_colors()
    assert len(colored.vertex_colors) == len(mesh.vertices)


def test_save_heatmap_and_histogram(tmp_path, analysis):
    visualizer = DeviationVisualizer(tmp_path)

    ply_path = visualizer.save_heatmap(analysis, "run1")
    png_path = visualizer.save_histogram(analysis, "run1")

    assert ply_path == tmp_path / "plots" / "run1_heatmap.ply"
    assert len(o3d.io.read_point_cloud(str(ply_path)).points) == 2
    assert png_path.exists() and png_path.stat().st_size > 0

    assert visualizer.save_histogram(DeviationAnalysis.empty(), "empty").exists()
