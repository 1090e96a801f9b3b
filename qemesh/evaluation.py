"""
Mesh Evaluation Module
======================

Quantitative comparison of an original and a simplified mesh:
- Hausdorff and Chamfer distances
- Vertex/Face count statistics
- Surface area and bounding box drift
- Boundary preservation
"""

import numpy as np
from typing import Dict, Tuple
from scipy.spatial import cKDTree

from .mesh import MeshModel
from .utils import boundary_edges, to_trimesh


class MeshEvaluator:
    """
    Evaluation tools for assessing mesh simplification quality.
    """

    def __init__(self, sample_points: int = 10000):
        """
        Initialize evaluator.

        Args:
            sample_points: Number of surface samples for distance metrics.
                           0 compares the vertex sets directly.
        """
        self.sample_points = sample_points

    def _points(self, mesh: MeshModel) -> np.ndarray:
        if self.sample_points <= 0 or mesh.triangle_count == 0:
            return mesh.positions
        return np.asarray(to_trimesh(mesh).sample(self.sample_points))

    def compute_all_metrics(self, original: MeshModel,
                            simplified: MeshModel) -> Dict[str, float]:
        """
        Compute all available metrics.

        Args:
            original: Original high-resolution mesh
            simplified: Simplified mesh

        Returns:
            Dictionary of metric names to values
        """
        metrics = {}

        metrics['original_faces'] = original.triangle_count
        metrics['simplified_faces'] = simplified.triangle_count
        metrics['original_vertices'] = original.vertex_count
        metrics['simplified_vertices'] = simplified.vertex_count
        metrics['face_reduction_ratio'] = simplified.triangle_count / max(original.triangle_count, 1)
        metrics['vertex_reduction_ratio'] = simplified.vertex_count / max(original.vertex_count, 1)

        if simplified.vertex_count > 0:
            hausdorff, forward, backward = self.hausdorff_distance(original, simplified)
            metrics['hausdorff_distance'] = hausdorff
            metrics['hausdorff_forward'] = forward
            metrics['hausdorff_backward'] = backward
            metrics['chamfer_distance'] = self.chamfer_distance(original, simplified)
            metrics['bbox_drift'] = self.bounding_box_drift(original, simplified)
        else:
            for key in ('hausdorff_distance', 'hausdorff_forward', 'hausdorff_backward',
                        'chamfer_distance', 'bbox_drift'):
                metrics[key] = np.nan

        metrics['original_area'] = self.surface_area(original)
        metrics['simplified_area'] = self.surface_area(simplified)
        metrics['area_error'] = abs(metrics['simplified_area'] - metrics['original_area']) / \
            max(metrics['original_area'], 1e-10)

        metrics.update(self.boundary_preservation_metrics(original, simplified))

        return metrics

    def hausdorff_distance(self, mesh1: MeshModel,
                           mesh2: MeshModel) -> Tuple[float, float, float]:
        """
        Symmetric Hausdorff distance between two meshes.

        Returns:
            Tuple of (symmetric_hausdorff, forward, backward) distances
        """
        points1 = self._points(mesh1)
        points2 = self._points(mesh2)

        tree1 = cKDTree(points1)
        tree2 = cKDTree(points2)

        distances_forward, _ = tree2.query(points1)
        hausdorff_forward = float(np.max(distances_forward))

        distances_backward, _ = tree1.query(points2)
        hausdorff_backward = float(np.max(distances_backward))

        return max(hausdorff_forward, hausdorff_backward), hausdorff_forward, hausdorff_backward

    def chamfer_distance(self, mesh1: MeshModel, mesh2: MeshModel) -> float:
        """Symmetric Chamfer distance (sum of mean squared nearest distances)."""
        points1 = self._points(mesh1)
        points2 = self._points(mesh2)

        tree1 = cKDTree(points1)
        tree2 = cKDTree(points2)

        distances_forward, _ = tree2.query(points1)
        distances_backward, _ = tree1.query(points2)

        return float(np.mean(distances_forward ** 2)) + float(np.mean(distances_backward ** 2))

    def bounding_box_drift(self, original: MeshModel, simplified: MeshModel) -> float:
        """Largest distance the simplified vertices reach outside the original bounding box."""
        lo, hi = original.bounding_box()
        below = np.clip(lo - simplified.positions, 0.0, None)
        above = np.clip(simplified.positions - hi, 0.0, None)
        return float(np.max(np.maximum(below, above))) if simplified.vertex_count else 0.0

    def surface_area(self, mesh: MeshModel) -> float:
        if mesh.triangle_count == 0:
            return 0.0
        return float(to_trimesh(mesh).area)

    def boundary_preservation_metrics(self, original: MeshModel,
                                      simplified: MeshModel) -> Dict[str, float]:
        metrics = {}

        orig_boundaries = boundary_edges(original)
        simp_boundaries = boundary_edges(simplified)

        metrics['original_boundary_edges'] = len(orig_boundaries)
        metrics['simplified_boundary_edges'] = len(simp_boundaries)

        orig_length = self._compute_boundary_length(original, orig_boundaries)
        simp_length = self._compute_boundary_length(simplified, simp_boundaries)

        metrics['original_boundary_length'] = orig_length
        metrics['simplified_boundary_length'] = simp_length

        if orig_length > 0:
            metrics['boundary_length_change'] = abs(simp_length - orig_length) / orig_length
        else:
            metrics['boundary_length_change'] = 0.0

        return metrics

    def _compute_boundary_length(self, mesh: MeshModel, edges: set) -> float:
        total_length = 0.0
        for a, b in edges:
            total_length += float(np.linalg.norm(mesh.positions[b] - mesh.positions[a]))
        return total_length

    def generate_report(self, metrics: Dict[str, float],
                        method_name: str = "QEM") -> str:
        """
        Generate a human-readable evaluation report.

        Args:
            metrics: Dictionary of metric values
            method_name: Name of the operation that produced the mesh

        Returns:
            Formatted report string
        """
        lines = [
            "=" * 60,
            f"Mesh Simplification Report - {method_name}",
            "=" * 60,
            "",
            "MESH STATISTICS",
            "-" * 40,
            f"  Original:    {metrics.get('original_faces', 'N/A'):>8} faces, "
            f"{metrics.get('original_vertices', 'N/A'):>8} vertices",
            f"  Simplified:  {metrics.get('simplified_faces', 'N/A'):>8} faces, "
            f"{metrics.get('simplified_vertices', 'N/A'):>8} vertices",
            f"  Reduction:   {metrics.get('face_reduction_ratio', 0)*100:>7.2f}% of original faces",
            "",
            "GEOMETRIC ACCURACY",
            "-" * 40,
            f"  Hausdorff Distance:    {metrics.get('hausdorff_distance', np.nan):>12.6f}",
            f"    Forward:             {metrics.get('hausdorff_forward', np.nan):>12.6f}",
            f"    Backward:            {metrics.get('hausdorff_backward', np.nan):>12.6f}",
            f"  Chamfer Distance:      {metrics.get('chamfer_distance', np.nan):>12.6f}",
            f"  Bounding Box Drift:    {metrics.get('bbox_drift', np.nan):>12.6f}",
            f"  Area Error:            {metrics.get('area_error', 0)*100:>11.4f}%",
            "",
            "BOUNDARY PRESERVATION",
            "-" * 40,
            f"  Original Boundaries:   {metrics.get('original_boundary_edges', 0):>8} edges",
            f"  Simplified Boundaries: {metrics.get('simplified_boundary_edges', 0):>8} edges",
            f"  Length Change:         {metrics.get('boundary_length_change', 0)*100:>11.4f}%",
            "",
            "=" * 60,
        ]

        if 'runtime' in metrics:
            lines.insert(-1, f"  Runtime:               {metrics['runtime']:>11.4f} seconds")

        return "\n".join(lines)

    def print_report(self, metrics: Dict[str, float], method_name: str = "QEM"):
        """Print the evaluation report to console."""
        print(self.generate_report(metrics, method_name))
