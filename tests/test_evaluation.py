"""Tests for mesh quality metrics and trimesh utilities."""

import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

import numpy as np
import pytest
import trimesh

# Add parent directory to path
sys.path.append(str(Path(__file__).resolve().parent.parent))

from qemesh.mesh import MeshModel
from qemesh.evaluation import MeshEvaluator
from qemesh.mesh_decimator import simplify
from qemesh.utils import (
    boundary_edges,
    create_mesh_with_boundary,
    create_sample_mesh,
    from_trimesh,
    get_mesh_info,
    load_mesh,
    save_mesh,
    to_trimesh,
)


class TestMeshEvaluator(unittest.TestCase):
    """Test quality metrics between an original and a simplified mesh."""

    def setUp(self):
        self.evaluator = MeshEvaluator(sample_points=0)
        self.box = MeshModel.box()

    def test_identical_meshes(self):
        metrics = self.evaluator.compute_all_metrics(self.box, self.box.copy())

        self.assertEqual(metrics['hausdorff_distance'], 0.0)
        self.assertEqual(metrics['chamfer_distance'], 0.0)
        self.assertEqual(metrics['bbox_drift'], 0.0)
        self.assertEqual(metrics['face_reduction_ratio'], 1.0)
        self.assertAlmostEqual(metrics['original_area'], 6.0)
        self.assertAlmostEqual(metrics['area_error'], 0.0)

    def test_shifted_mesh(self):
        moved = self.box.copy()
        moved.positions = moved.positions + np.array([0.0, 0.0, 0.25])

        hausdorff, forward, backward = self.evaluator.hausdorff_distance(self.box, moved)
        self.assertAlmostEqual(hausdorff, 0.25)
        self.assertAlmostEqual(forward, 0.25)
        self.assertAlmostEqual(backward, 0.25)
        self.assertAlmostEqual(self.evaluator.bounding_box_drift(self.box, moved), 0.25)

    def test_surface_sampling(self):
        evaluator = MeshEvaluator(sample_points=2000)
        sphere = from_trimesh(trimesh.creation.icosphere(subdivisions=2))
        hausdorff, _, _ = evaluator.hausdorff_distance(sphere, sphere)
        # Two independent samplings of the same surface are close
        self.assertLess(hausdorff, 0.5)

    def test_empty_simplified_mesh(self):
        metrics = self.evaluator.compute_all_metrics(self.box, MeshModel())
        self.assertTrue(np.isnan(metrics['hausdorff_distance']))
        self.assertEqual(metrics['simplified_area'], 0.0)

    def test_boundary_metrics_on_grid(self):
        grid = create_mesh_with_boundary(rows=5, cols=5)
        metrics = self.evaluator.boundary_preservation_metrics(grid, grid)
        self.assertEqual(metrics['original_boundary_edges'], 16)
        self.assertEqual(metrics['boundary_length_change'], 0.0)

    def test_report(self):
        sphere = from_trimesh(trimesh.creation.icosphere(subdivisions=2))
        simplified = simplify(sphere, sphere.triangle_count // 2)

        metrics = self.evaluator.compute_all_metrics(sphere, simplified)
        metrics['runtime'] = 0.1
        report = self.evaluator.generate_report(metrics)

        self.assertIn("Hausdorff Distance", report)
        self.assertIn("Runtime", report)
        self.assertLess(metrics['face_reduction_ratio'], 1.0)
        self.assertGreater(metrics['hausdorff_distance'], 0.0)


class TestUtils(unittest.TestCase):
    """Test trimesh conversion and file round trips."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_trimesh_round_trip_keeps_order(self):
        box = MeshModel.box()
        tm = to_trimesh(box)
        back = from_trimesh(tm)

        np.testing.assert_array_equal(back.positions, box.positions)
        np.testing.assert_array_equal(back.indices, box.indices)
        np.testing.assert_allclose(back.normals, box.normals)

    def test_from_trimesh_box(self):
        mesh = from_trimesh(trimesh.creation.box(extents=[1, 1, 1]))
        self.assertEqual(mesh.vertex_count, 8)
        self.assertEqual(mesh.triangle_count, 12)
        mesh.validate()

    def test_save_and_load_ply(self):
        box = MeshModel.box()
        path = os.path.join(self.temp_dir, "box.ply")
        save_mesh(box, path)

        loaded = load_mesh(path)
        self.assertEqual(loaded.vertex_count, 8)
        self.assertEqual(loaded.triangle_count, 12)
        np.testing.assert_allclose(sorted(map(tuple, loaded.positions)),
                                   sorted(map(tuple, box.positions)))

    def test_sample_meshes(self):
        for kind in ("sphere", "torus", "box", "cylinder", "grid"):
            mesh = create_sample_mesh(kind)
            mesh.validate()
            self.assertGreater(mesh.triangle_count, 0)

        with pytest.raises(ValueError):
            create_sample_mesh("teapot")

    def test_grid_shape(self):
        grid = create_mesh_with_boundary(rows=4, cols=6)
        self.assertEqual(grid.vertex_count, 24)
        self.assertEqual(grid.triangle_count, 2 * 3 * 5)
        self.assertEqual(len(boundary_edges(grid)), 2 * (3 + 5))

    def test_mesh_info(self):
        info = get_mesh_info(MeshModel.box())
        self.assertEqual(info['vertices'], 8)
        self.assertEqual(info['faces'], 12)
        self.assertEqual(info['boundary_edges'], 0)
        self.assertTrue(info['is_watertight'])
        self.assertAlmostEqual(info['area'], 6.0)


if __name__ == "__main__":
    unittest.main()
