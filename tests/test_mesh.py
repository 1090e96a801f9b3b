"""Tests for the indexed mesh model."""

import sys
import unittest
from pathlib import Path

import numpy as np
import pytest

# Add parent directory to path
sys.path.append(str(Path(__file__).resolve().parent.parent))

from qemesh.mesh import MeshModel, InvalidMeshError


class TestMeshModel(unittest.TestCase):
    """Test the mesh value type and its derived quantities."""

    def setUp(self):
        self.box = MeshModel.box()

    def test_box_counts(self):
        self.assertEqual(self.box.vertex_count, 8)
        self.assertEqual(self.box.triangle_count, 12)
        self.assertEqual(self.box.normals.shape, (8, 3))
        self.assertFalse(self.box.is_empty())

    def test_box_winding_is_outward(self):
        """Every face normal points away from the box center."""
        faces = self.box.faces.astype(int)
        for face in faces:
            v0, v1, v2 = self.box.positions[face]
            normal = np.cross(v1 - v0, v2 - v0)
            center = (v0 + v1 + v2) / 3.0
            self.assertGreater(np.dot(normal, center), 0.0)

    def test_box_normals_unit_length(self):
        lengths = np.linalg.norm(self.box.normals, axis=1)
        np.testing.assert_allclose(lengths, 1.0, atol=1e-12)

    def test_box_corner_normal_direction(self):
        # Corner normals point diagonally outward
        for p, n in zip(self.box.positions, self.box.normals):
            self.assertTrue(np.all(np.sign(n) == np.sign(p)))

    def test_centroid_and_bounding_box(self):
        np.testing.assert_allclose(self.box.centroid(), np.zeros(3), atol=1e-12)
        lo, hi = self.box.bounding_box()
        np.testing.assert_allclose(lo, [-0.5, -0.5, -0.5])
        np.testing.assert_allclose(hi, [0.5, 0.5, 0.5])

    def test_box_extents(self):
        box = MeshModel.box(extents=(2.0, 4.0, 6.0))
        lo, hi = box.bounding_box()
        np.testing.assert_allclose(hi - lo, [2.0, 4.0, 6.0])

    def test_unreferenced_vertex_gets_zero_normal(self):
        mesh = MeshModel(
            positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0], [5, 5, 5]],
            indices=[0, 1, 2],
        )
        mesh.recalculate_normals()

        self.assertEqual(mesh.normals.shape, (4, 3))
        np.testing.assert_allclose(mesh.normals[:3], [[0, 0, 1]] * 3)
        np.testing.assert_array_equal(mesh.normals[3], [0, 0, 0])
        self.assertFalse(np.any(np.isnan(mesh.normals)))

    def test_degenerate_triangle_gives_zero_normals(self):
        mesh = MeshModel(positions=[[0, 0, 0], [1, 0, 0], [2, 0, 0]], indices=[0, 1, 2])
        mesh.recalculate_normals()
        np.testing.assert_array_equal(mesh.normals, np.zeros((3, 3)))

    def test_normals_are_area_weighted(self):
        # A large face dominates a small perpendicular one at the shared vertex
        mesh = MeshModel(
            positions=[[0, 0, 0], [10, 0, 0], [0, 10, 0], [0, 0, 0.1]],
            indices=[0, 1, 2, 0, 3, 1],
        )
        mesh.recalculate_normals()
        self.assertGreater(mesh.normals[0][2], 0.99)

    def test_clear(self):
        self.box.clear()
        self.assertTrue(self.box.is_empty())
        self.assertEqual(self.box.vertex_count, 0)
        self.assertEqual(self.box.triangle_count, 0)

    def test_empty_without_normals(self):
        mesh = MeshModel(positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]], indices=[0, 1, 2])
        self.assertTrue(mesh.is_empty())
        mesh.recalculate_normals()
        self.assertFalse(mesh.is_empty())

    def test_does_not_alias_caller_storage(self):
        positions = np.array([[0.0, 0, 0], [1, 0, 0], [0, 1, 0]])
        mesh = MeshModel(positions=positions, indices=[0, 1, 2])
        positions[0, 0] = 42.0
        self.assertEqual(mesh.positions[0, 0], 0.0)

        copy = mesh.copy()
        copy.positions[1, 1] = 7.0
        self.assertEqual(mesh.positions[1, 1], 0.0)

    def test_validate_accepts_box(self):
        self.box.validate()

    def test_validate_out_of_range_index(self):
        mesh = MeshModel(positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]], indices=[0, 1, 3])
        with pytest.raises(InvalidMeshError):
            mesh.validate()

    def test_validate_partial_triangle(self):
        mesh = MeshModel(positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]], indices=[0, 1, 2, 0])
        with pytest.raises(InvalidMeshError):
            mesh.validate()

    def test_negative_index_rejected(self):
        with pytest.raises(InvalidMeshError):
            MeshModel(positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]], indices=[0, -1, 2])

    def test_positions_not_in_triples(self):
        with pytest.raises(InvalidMeshError):
            MeshModel(positions=[0.0, 1.0, 2.0, 3.0], indices=[0, 0, 0])
        with pytest.raises(InvalidMeshError):
            MeshModel(positions=[[0.0, 1.0], [2.0, 3.0], [4.0, 5.0]], indices=[0, 1, 2])

    def test_flat_positions_accepted(self):
        mesh = MeshModel(positions=[0, 0, 0, 1, 0, 0, 0, 1, 0], indices=[0, 1, 2])
        self.assertEqual(mesh.positions.shape, (3, 3))
        mesh.validate()

    def test_normals_not_in_triples(self):
        with pytest.raises(InvalidMeshError):
            MeshModel(positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]],
                      normals=[0.0, 0.0], indices=[0, 1, 2])

    def test_non_integral_indices_rejected(self):
        with pytest.raises(InvalidMeshError):
            MeshModel(positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]], indices=[0, 1.9, 2.2])

    def test_integral_float_indices_accepted(self):
        mesh = MeshModel(positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]], indices=[0.0, 1.0, 2.0])
        np.testing.assert_array_equal(mesh.indices, [0, 1, 2])
        self.assertEqual(mesh.indices.dtype, np.uint32)

    def test_bounding_box_of_empty_mesh(self):
        with pytest.raises(InvalidMeshError):
            MeshModel().bounding_box()

    def test_invalid_mesh_error_is_value_error(self):
        self.assertTrue(issubclass(InvalidMeshError, ValueError))


if __name__ == "__main__":
    unittest.main()
