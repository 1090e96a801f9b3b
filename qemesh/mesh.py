"""
Indexed Mesh Model
==================

The indexed triangle mesh shared by the decimator and the subdivider:
vertex positions, per-vertex normals and a flat triangle index list.
"""

from dataclasses import dataclass, field
from typing import Tuple
import numpy as np


class InvalidMeshError(ValueError):
    """Raised when a mesh violates the indexed-mesh contract."""


def _empty_vectors() -> np.ndarray:
    return np.zeros((0, 3), dtype=np.float64)


def _empty_indices() -> np.ndarray:
    return np.zeros(0, dtype=np.uint32)


def _as_vectors(values, name: str) -> np.ndarray:
    """Copy values into an (N, 3) float array."""
    try:
        array = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidMeshError(f"{name} must be numeric: {e}") from e
    if array.size % 3 != 0 or (array.ndim > 1 and array.shape[-1] != 3):
        raise InvalidMeshError(f"{name} must hold 3D vectors, got shape {array.shape}")
    return array.reshape(-1, 3)


@dataclass
class MeshModel:
    """
    Indexed triangle mesh.

    Attributes:
        positions: (N, 3) array of vertex positions
        normals: (N, 3) array of vertex normals (may be empty on input)
        indices: flat array of vertex indices, three per triangle
    """
    positions: np.ndarray = field(default_factory=_empty_vectors)
    normals: np.ndarray = field(default_factory=_empty_vectors)
    indices: np.ndarray = field(default_factory=_empty_indices)

    def __post_init__(self):
        # Always own the storage, never alias the caller's arrays
        self.positions = _as_vectors(self.positions, "positions")
        self.normals = _as_vectors(self.normals, "normals")

        indices = np.array(self.indices).reshape(-1)
        if not np.issubdtype(indices.dtype, np.integer):
            if not np.issubdtype(indices.dtype, np.number) or \
                    not np.all(np.isfinite(indices)) or np.any(indices != np.round(indices)):
                raise InvalidMeshError("Triangle indices must be integers")
        indices = indices.astype(np.int64)
        if np.any(indices < 0):
            raise InvalidMeshError("Triangle indices must be non-negative")
        self.indices = indices.astype(np.uint32)

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    @property
    def faces(self) -> np.ndarray:
        """(M, 3) view of the index list."""
        return self.indices.reshape(-1, 3)

    def is_empty(self) -> bool:
        return len(self.positions) == 0 or len(self.normals) == 0 or len(self.indices) == 0

    def clear(self):
        """Empty positions, normals and indices."""
        self.positions = _empty_vectors()
        self.normals = _empty_vectors()
        self.indices = _empty_indices()

    def copy(self) -> "MeshModel":
        return MeshModel(self.positions, self.normals, self.indices)

    def validate(self):
        """
        Check the structural contract of the mesh.

        Raises:
            InvalidMeshError: if the index list is not a whole number of
                triangles or references a vertex that does not exist
        """
        if len(self.indices) % 3 != 0:
            raise InvalidMeshError(
                f"Index count {len(self.indices)} is not a multiple of 3"
            )
        if len(self.indices) > 0:
            max_index = int(self.indices.max())
            if max_index >= len(self.positions):
                raise InvalidMeshError(
                    f"Index {max_index} out of range for {len(self.positions)} vertices"
                )

    def recalculate_normals(self):
        """
        Recompute per-vertex normals.

        Each triangle adds its unnormalized cross product (area weighted)
        to its three vertices, then every vertex normal is normalized.
        Vertices with zero accumulated area (unreferenced, or touching only
        degenerate faces) get the zero vector.
        """
        normals = np.zeros((len(self.positions), 3), dtype=np.float64)

        if len(self.indices) > 0:
            faces = self.faces.astype(np.int64)
            v0 = self.positions[faces[:, 0]]
            v1 = self.positions[faces[:, 1]]
            v2 = self.positions[faces[:, 2]]
            face_normals = np.cross(v1 - v0, v2 - v0)

            for j in range(3):
                np.add.at(normals, faces[:, j], face_normals)

        lengths = np.linalg.norm(normals, axis=1)
        nonzero = lengths > 0.0
        normals[nonzero] /= lengths[nonzero, np.newaxis]

        self.normals = normals

    def centroid(self) -> np.ndarray:
        """Mean of the vertex positions."""
        if len(self.positions) == 0:
            return np.zeros(3)
        return self.positions.mean(axis=0)

    def bounding_box(self) -> Tuple[np.ndarray, np.ndarray]:
        """Component-wise (min, max) over the vertex positions."""
        if len(self.positions) == 0:
            raise InvalidMeshError("Bounding box of a mesh without vertices")
        return self.positions.min(axis=0), self.positions.max(axis=0)

    @classmethod
    def box(cls, extents=(1.0, 1.0, 1.0)) -> "MeshModel":
        """
        Axis-aligned box centred at the origin.

        8 vertices, 12 triangles, counter-clockwise winding seen from outside.
        """
        hx, hy, hz = np.asarray(extents, dtype=np.float64) / 2.0

        positions = [
            [-hx, -hy, -hz], [hx, -hy, -hz], [-hx, hy, -hz], [hx, hy, -hz],
            [-hx, -hy, hz], [hx, -hy, hz], [-hx, hy, hz], [hx, hy, hz],
        ]
        indices = [
            1, 0, 2,  2, 3, 1,   # -z
            5, 1, 7,  3, 7, 1,   # +x
            4, 5, 6,  7, 6, 5,   # +z
            0, 4, 2,  6, 2, 4,   # -x
            3, 2, 7,  6, 7, 2,   # +y
            1, 4, 0,  4, 1, 5,   # -y
        ]

        mesh = cls(positions=positions, indices=indices)
        mesh.recalculate_normals()
        return mesh
