"""
Triangle Subdivision
====================

Uniform 1-to-3 triangle splitting at the centroid.
"""

import numpy as np

from .mesh import MeshModel


class Subdivider:
    """Splits every triangle into three around a new centroid vertex."""

    @staticmethod
    def split_faces(mesh: MeshModel, iterations: int) -> MeshModel:
        """
        Split the mesh in place.

        Each pass appends one vertex per triangle (in triangle order) and
        replaces triangle (a, b, c) with (a, b, m), (b, c, m), (c, a, m).

        Args:
            mesh: Mesh to modify
            iterations: Number of passes, >= 0

        Returns:
            The same mesh, for chaining
        """
        if iterations < 0:
            raise ValueError(f"iterations must be non-negative, got {iterations}")

        mesh.validate()

        for _ in range(iterations):
            faces = mesh.faces.astype(np.int64)
            n_faces = len(faces)
            if n_faces == 0:
                break

            centroids = mesh.positions[faces].mean(axis=1)
            new_idx = len(mesh.positions) + np.arange(n_faces, dtype=np.int64)

            # Fresh output buffer for every pass
            new_faces = np.empty((n_faces, 3, 3), dtype=np.int64)
            new_faces[:, 0] = np.column_stack([faces[:, 0], faces[:, 1], new_idx])
            new_faces[:, 1] = np.column_stack([faces[:, 1], faces[:, 2], new_idx])
            new_faces[:, 2] = np.column_stack([faces[:, 2], faces[:, 0], new_idx])

            mesh.positions = np.vstack([mesh.positions, centroids])
            mesh.indices = new_faces.reshape(-1).astype(np.uint32)

        mesh.recalculate_normals()
        return mesh


def split(mesh: MeshModel, iterations: int) -> MeshModel:
    """
    Return a copy of the mesh with `iterations` splitting passes applied.

    The caller's mesh is left untouched.
    """
    mesh.validate()
    return Subdivider.split_faces(mesh.copy(), iterations)
