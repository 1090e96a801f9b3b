"""
Quadric Error Metrics (QEM) Implementation
==========================================

Symmetric 4x4 error quadrics stored as their 10 independent coefficients,
with the plane, determinant and error helpers used by the decimator.

Based on: "Surface Simplification Using Quadric Error Metrics"
by Michael Garland and Paul S. Heckbert (SIGGRAPH 1997)
"""

import numpy as np
from typing import Tuple


class SymmetricMatrix:
    """
    Symmetric 4x4 error quadric.

    The fundamental quadric for a plane ax + by + cz + d = 0 is Q = p * p^T
    with p = [a, b, c, d]^T. Only the upper triangle is stored:

        m[0] m[1] m[2] m[3]
             m[4] m[5] m[6]
                  m[7] m[8]
                       m[9]

    The error of a point v = [x, y, z, 1]^T is v^T * Q * v, and quadrics of
    incident planes accumulate by addition.
    """

    __slots__ = ("m",)

    def __init__(self, m=None):
        if m is None:
            self.m = np.zeros(10)
        else:
            self.m = np.array(m, dtype=np.float64).reshape(10)

    @classmethod
    def from_plane(cls, a: float, b: float, c: float, d: float) -> "SymmetricMatrix":
        """Fundamental quadric of the plane ax + by + cz + d = 0."""
        return cls([
            a * a, a * b, a * c, a * d,
            b * b, b * c, b * d,
            c * c, c * d,
            d * d,
        ])

    def __add__(self, other: "SymmetricMatrix") -> "SymmetricMatrix":
        return SymmetricMatrix(self.m + other.m)

    def __iadd__(self, other: "SymmetricMatrix") -> "SymmetricMatrix":
        self.m += other.m
        return self

    def __repr__(self):
        return f"SymmetricMatrix({self.m.tolist()})"

    def det(self, a11: int, a12: int, a13: int,
            a21: int, a22: int, a23: int,
            a31: int, a32: int, a33: int) -> float:
        """Determinant of the 3x3 matrix assembled from coefficient slots."""
        m = self.m
        return (m[a11] * m[a22] * m[a33] + m[a13] * m[a21] * m[a32] + m[a12] * m[a23] * m[a31]
                - m[a13] * m[a22] * m[a31] - m[a11] * m[a23] * m[a32] - m[a12] * m[a21] * m[a33])

    def to_matrix(self) -> np.ndarray:
        """Expand to the full 4x4 matrix."""
        m = self.m
        return np.array([
            [m[0], m[1], m[2], m[3]],
            [m[1], m[4], m[5], m[6]],
            [m[2], m[5], m[7], m[8]],
            [m[3], m[6], m[8], m[9]],
        ])

    def vertex_error(self, v: np.ndarray) -> float:
        """
        Evaluate the quadric form at a 3D point.

        error = v^T * Q * v where v is [x, y, z, 1]
        """
        m = self.m
        x, y, z = float(v[0]), float(v[1]), float(v[2])
        return (m[0] * x * x + 2 * m[1] * x * y + 2 * m[2] * x * z + 2 * m[3] * x
                + m[4] * y * y + 2 * m[5] * y * z + 2 * m[6] * y
                + m[7] * z * z + 2 * m[8] * z + m[9])

    def optimal_position(self) -> Tuple[np.ndarray, float]:
        """
        Solve the 3x3 system minimizing the quadric form by Cramer's rule.

        Returns:
            Tuple of (position, determinant). The position is only
            meaningful when the determinant is non-zero.
        """
        det = self.det(0, 1, 2, 1, 4, 5, 2, 5, 7)
        if det == 0.0:
            return np.zeros(3), det

        x = -1.0 / det * self.det(1, 2, 3, 4, 5, 6, 5, 7, 8)
        y = 1.0 / det * self.det(0, 2, 3, 1, 5, 6, 2, 7, 8)
        z = -1.0 / det * self.det(0, 1, 3, 1, 4, 6, 2, 5, 8)
        return np.array([x, y, z]), det


def compute_face_normal(v0: np.ndarray, v1: np.ndarray, v2: np.ndarray) -> np.ndarray:
    """
    Unit normal of a triangle.

    Returns the zero vector for a degenerate triangle.
    """
    normal = np.cross(v1 - v0, v2 - v0)
    norm_length = np.linalg.norm(normal)

    if norm_length < 1e-12:
        return np.zeros(3)

    return normal / norm_length


def compute_face_plane(v0: np.ndarray, v1: np.ndarray, v2: np.ndarray) -> np.ndarray:
    """
    Plane coefficients [a, b, c, d] of a triangle.

    [a, b, c] is the unit normal and d = -dot(normal, v0).
    """
    normal = compute_face_normal(v0, v1, v2)
    d = -np.dot(normal, v0)
    return np.array([normal[0], normal[1], normal[2], d])


def compute_fundamental_quadric(plane: np.ndarray) -> SymmetricMatrix:
    """Fundamental error quadric Q = p * p^T for a plane."""
    return SymmetricMatrix.from_plane(plane[0], plane[1], plane[2], plane[3])
