"""
Mesh Decimation using Quadric Error Metrics (QEM)
=================================================

Indexed-mesh simplification by iterative edge collapse, following
"Surface Simplification Using Quadric Error Metrics"
by Michael Garland and Paul S. Heckbert (SIGGRAPH 1997),
plus uniform centroid subdivision on the same mesh model.
"""

from .mesh import MeshModel, InvalidMeshError
from .qem import SymmetricMatrix
from .mesh_decimator import MeshDecimator, simplify
from .subdivide import Subdivider, split
from .evaluation import MeshEvaluator

__version__ = "1.0.0"
__all__ = [
    "MeshModel", "InvalidMeshError", "SymmetricMatrix",
    "MeshDecimator", "simplify", "Subdivider", "split", "MeshEvaluator",
]
