"""
Mesh Decimator
==============

Iterative edge-collapse simplification driven by Quadric Error Metrics.

Vertices and triangles live in flat arenas and refer to each other only by
index. Each pass sweeps all triangles and collapses edges whose error is
below a threshold that grows with the pass number; deleted triangles are
tombstoned and only compacted when the adjacency is refreshed.
"""

import numpy as np
from typing import List, NamedTuple, Optional, Tuple
from dataclasses import dataclass, field

from .mesh import MeshModel
from .qem import SymmetricMatrix, compute_face_plane, compute_fundamental_quadric


# Determinants at or below this are treated as singular
SINGULAR_DET = 1e-12

# Flip test limits: |cos| above this means the edges are (anti)parallel,
# and a new face normal whose cos to the old one is below this folds over
PARALLEL_COS = 0.999
FOLD_COS = 0.2


@dataclass
class WorkingVertex:
    p: np.ndarray
    q: SymmetricMatrix = field(default_factory=SymmetricMatrix)
    tstart: int = 0
    tcount: int = 0
    border: bool = False


@dataclass
class WorkingTriangle:
    v: List[int]
    err: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])
    deleted: bool = False
    dirty: bool = False
    n: np.ndarray = field(default_factory=lambda: np.zeros(3))


class AdjacencyRef(NamedTuple):
    """A triangle incident to a vertex and the vertex's slot in it."""
    tid: int
    tvertex: int


@dataclass
class CollapseRecord:
    kept: int
    removed: int
    kept_border: bool
    removed_border: bool
    error: float
    position: np.ndarray
    iteration: int


class MeshDecimator:
    """
    Mesh simplification using Quadric Error Metrics (QEM).

    Usage is build -> simplify_mesh -> extract, or decimate() for all three.
    Working state belongs to one run and is rebuilt by the next build().
    """

    def __init__(self, aggressiveness: float = 7.0,
                 max_iterations: int = 100,
                 refresh_interval: int = 5,
                 verbose: bool = True):
        """
        Initialize the mesh decimator.

        Args:
            aggressiveness: Exponent of the error threshold growth per pass.
                            Higher values accept costlier collapses sooner.
            max_iterations: Upper bound on the number of passes
            refresh_interval: Passes between adjacency refreshes
            verbose: Print progress lines
        """
        if aggressiveness <= 0:
            raise ValueError(f"aggressiveness must be positive, got {aggressiveness}")
        if max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {max_iterations}")
        if refresh_interval < 1:
            raise ValueError(f"refresh_interval must be at least 1, got {refresh_interval}")

        self.aggressiveness = aggressiveness
        self.max_iterations = max_iterations
        self.refresh_interval = refresh_interval
        self.verbose = verbose

        # State variables (initialized per run)
        self._vertices: Optional[List[WorkingVertex]] = None
        self._triangles: Optional[List[WorkingTriangle]] = None
        self._refs: Optional[List[AdjacencyRef]] = None
        self._deleted0: List[bool] = []
        self._deleted1: List[bool] = []
        self._collapse_history: List[CollapseRecord] = []
        self._simplified = False
        self._iterations_run = 0
        self._deleted_count = 0

    def decimate(self, mesh: MeshModel,
                 target_faces: Optional[int] = None,
                 target_ratio: Optional[float] = None,
                 aggressiveness: Optional[float] = None) -> MeshModel:
        """
        Decimate the mesh to a target face count or ratio.

        Args:
            mesh: Input mesh, left untouched
            target_faces: Target number of triangles (mutually exclusive with target_ratio)
            target_ratio: Fraction of triangles to keep, 0.0 to 1.0
            aggressiveness: Overrides the instance setting for this run

        Returns:
            Simplified mesh
        """
        if (target_faces is None) == (target_ratio is None):
            raise ValueError("Must specify exactly one of target_faces or target_ratio")

        if target_ratio is not None:
            if not 0.0 <= target_ratio <= 1.0:
                raise ValueError(f"target_ratio must be in [0, 1], got {target_ratio}")
            target_faces = int(target_ratio * mesh.triangle_count)

        self.build(mesh)
        self.simplify_mesh(target_faces, aggressiveness)
        return self.extract()

    def build(self, mesh: MeshModel):
        """Copy the mesh into fresh working vertices and triangles."""
        mesh.validate()

        self._vertices = [WorkingVertex(p=np.array(p, dtype=np.float64)) for p in mesh.positions]
        self._triangles = [WorkingTriangle(v=[int(i) for i in face]) for face in mesh.faces]
        self._refs = []
        self._deleted0 = []
        self._deleted1 = []
        self._collapse_history = []
        self._simplified = False
        self._iterations_run = 0
        self._deleted_count = 0

    def simplify_mesh(self, target_count: int, aggressiveness: Optional[float] = None):
        """
        Collapse edges until at most target_count triangles remain or the
        pass budget runs out.

        The target is a heuristic bound: a single collapse usually removes
        two triangles, so the result may land just below it.
        """
        if self._triangles is None:
            raise RuntimeError("build() must be called before simplify_mesh()")
        if self._simplified:
            raise RuntimeError("simplify_mesh() already ran for this build")
        if target_count < 0:
            raise ValueError(f"target_count must be non-negative, got {target_count}")

        agr = self.aggressiveness if aggressiveness is None else aggressiveness
        if agr <= 0:
            raise ValueError(f"aggressiveness must be positive, got {agr}")

        for t in self._triangles:
            t.deleted = False

        deleted_triangles = 0
        triangle_count = len(self._triangles)

        if self.verbose:
            print(f"Starting decimation: {triangle_count} -> {target_count} faces")

        iteration = 0
        for iteration in range(self.max_iterations):
            if triangle_count - deleted_triangles <= target_count:
                break

            if iteration % self.refresh_interval == 0:
                self._update_mesh(iteration)
                if iteration == 0 and self.verbose:
                    n_border = sum(1 for v in self._vertices if v.border)
                    print(f"  Border vertices: {n_border}")

            for t in self._triangles:
                t.dirty = False

            # Error threshold for this pass
            threshold = 1e-9 * (iteration + 3) ** agr

            for t in self._triangles:
                if t.err[3] > threshold or t.deleted or t.dirty:
                    continue

                for j in range(3):
                    if t.err[j] < threshold:
                        i0 = t.v[j]
                        i1 = t.v[(j + 1) % 3]
                        v0 = self._vertices[i0]
                        v1 = self._vertices[i1]

                        # Border vertices only merge with border vertices
                        if v0.border != v1.border:
                            continue

                        error, p = self._calculate_error(i0, i1)

                        self._deleted0 = [False] * v0.tcount
                        self._deleted1 = [False] * v1.tcount

                        if self._flipped(p, i1, i0, self._deleted0):
                            continue
                        if self._flipped(p, i0, i1, self._deleted1):
                            continue

                        self._collapse_history.append(CollapseRecord(
                            kept=i0, removed=i1,
                            kept_border=v0.border, removed_border=v1.border,
                            error=error, position=p.copy(), iteration=iteration,
                        ))

                        deleted_triangles += self._collapse(i0, i1, p)
                        break

                if triangle_count - deleted_triangles <= target_count:
                    break
        else:
            iteration = self.max_iterations

        self._iterations_run = iteration
        self._deleted_count = deleted_triangles
        self._simplified = True

        if self.verbose:
            print(f"Decimation complete: {triangle_count - deleted_triangles} faces, "
                  f"{len(self._collapse_history)} collapses, {iteration} passes")

    def extract(self) -> MeshModel:
        """Compact the working state and convert it back to a mesh."""
        if not self._simplified:
            raise RuntimeError("simplify_mesh() must be called before extract()")

        # Nothing collapsed: keep every vertex, referenced or not
        if self._deleted_count > 0:
            self._clean_mesh()

        positions = np.array([v.p for v in self._vertices]).reshape(-1, 3)
        indices = np.array([vid for t in self._triangles for vid in t.v], dtype=np.uint32)

        mesh = MeshModel(positions=positions, indices=indices)
        mesh.recalculate_normals()
        return mesh

    def get_collapse_history(self) -> List[CollapseRecord]:
        """Get the history of edge collapses performed."""
        return list(self._collapse_history)

    def border_flags(self) -> np.ndarray:
        """Per-vertex border flags of the current working state."""
        if self._vertices is None:
            return np.zeros(0, dtype=bool)
        return np.array([v.border for v in self._vertices], dtype=bool)

    @property
    def iterations_run(self) -> int:
        return self._iterations_run

    def _collapse(self, i0: int, i1: int, p: np.ndarray) -> int:
        """
        Move i0 to p, fold i1 into it and rewire the adjacency.

        Returns:
            Number of triangles deleted by the collapse
        """
        v0 = self._vertices[i0]
        v1 = self._vertices[i1]

        v0.p = p
        v0.q = v1.q + v0.q

        tstart = len(self._refs)
        deleted = self._update_triangles(i0, v0, self._deleted0)
        deleted += self._update_triangles(i0, v1, self._deleted1)

        tcount = len(self._refs) - tstart

        if tcount <= v0.tcount:
            # Merged list fits into the old slice
            self._refs[v0.tstart:v0.tstart + tcount] = self._refs[tstart:tstart + tcount]
            del self._refs[tstart:]
        else:
            v0.tstart = tstart

        v0.tcount = tcount
        return deleted

    def _update_triangles(self, i0: int, v: WorkingVertex, deleted: List[bool]) -> int:
        """Re-point the live triangles of v at i0, appending their refs."""
        count = 0

        for k in range(v.tcount):
            r = self._refs[v.tstart + k]
            t = self._triangles[r.tid]

            if t.deleted:
                continue
            if deleted[k]:
                t.deleted = True
                count += 1
                continue

            t.v[r.tvertex] = i0
            t.dirty = True
            self._update_triangle_errors(t)
            self._refs.append(r)

        return count

    def _update_triangle_errors(self, t: WorkingTriangle):
        for j in range(3):
            t.err[j], _ = self._calculate_error(t.v[j], t.v[(j + 1) % 3])
        t.err[3] = min(t.err[0], t.err[1], t.err[2])

    def _flipped(self, p: np.ndarray, excluded: int, vid: int, deleted: List[bool]) -> bool:
        """
        Check whether moving vid to p would fold or degenerate a face.

        Triangles that also contain `excluded` collapse to nothing; they are
        marked in `deleted` instead of being tested.
        """
        v = self._vertices[vid]

        for k in range(v.tcount):
            r = self._refs[v.tstart + k]
            t = self._triangles[r.tid]
            if t.deleted:
                continue

            s = r.tvertex
            id1 = t.v[(s + 1) % 3]
            id2 = t.v[(s + 2) % 3]

            if id1 == excluded or id2 == excluded:
                deleted[k] = True
                continue

            d1 = self._vertices[id1].p - p
            d2 = self._vertices[id2].p - p
            len1 = np.linalg.norm(d1)
            len2 = np.linalg.norm(d2)
            if len1 == 0.0 or len2 == 0.0:
                return True
            d1 = d1 / len1
            d2 = d2 / len2

            if abs(np.dot(d1, d2)) > PARALLEL_COS:
                return True

            n = np.cross(d1, d2)
            n_len = np.linalg.norm(n)
            if n_len == 0.0:
                return True

            deleted[k] = False
            if np.dot(n / n_len, t.n) < FOLD_COS:
                return True

        return False

    def _calculate_error(self, id_v1: int, id_v2: int) -> Tuple[float, np.ndarray]:
        """
        Error and contraction point for collapsing the edge (v1, v2).

        Uses the optimal point when the combined quadric is invertible and
        the pair is not entirely on the border; otherwise the best of v1,
        v2 and their midpoint.
        """
        v1 = self._vertices[id_v1]
        v2 = self._vertices[id_v2]
        q = v1.q + v2.q
        border = v1.border and v2.border

        det = q.det(0, 1, 2, 1, 4, 5, 2, 5, 7)
        if abs(det) > SINGULAR_DET and not border:
            p, _ = q.optimal_position()
            return q.vertex_error(p), p

        p1 = v1.p
        p2 = v2.p
        p3 = (p1 + p2) / 2.0

        best_error, best_p = q.vertex_error(p1), p1
        for candidate in (p2, p3):
            error = q.vertex_error(candidate)
            if error < best_error:
                best_error, best_p = error, candidate

        return best_error, best_p.copy()

    def _update_mesh(self, iteration: int):
        """
        Refresh the vertex -> triangle adjacency.

        Deleted triangles are compacted away on every refresh after the
        first. The first refresh also finds border vertices and computes
        the initial quadrics and edge errors.
        """
        if iteration > 0:
            self._triangles = [t for t in self._triangles if not t.deleted]

        vertices = self._vertices
        triangles = self._triangles

        for v in vertices:
            v.tstart = 0
            v.tcount = 0
        for t in triangles:
            for vid in t.v:
                vertices[vid].tcount += 1

        tstart = 0
        for v in vertices:
            v.tstart = tstart
            tstart += v.tcount
            v.tcount = 0

        refs: List[Optional[AdjacencyRef]] = [None] * (len(triangles) * 3)
        for i, t in enumerate(triangles):
            for j in range(3):
                v = vertices[t.v[j]]
                refs[v.tstart + v.tcount] = AdjacencyRef(i, j)
                v.tcount += 1
        self._refs = refs

        if iteration == 0:
            self._find_border_vertices()
            self._compute_quadrics()
            for t in triangles:
                self._update_triangle_errors(t)

    def _find_border_vertices(self):
        """
        Flag border vertices by neighbour multiplicity.

        A neighbour that shows up in only one of a vertex's triangles shares
        a single face with it, so it is taken to lie on a boundary.
        """
        for v in self._vertices:
            v.border = False

        for v in self._vertices:
            counts = {}
            for k in range(v.tstart, v.tstart + v.tcount):
                t = self._triangles[self._refs[k].tid]
                for vid in t.v:
                    counts[vid] = counts.get(vid, 0) + 1

            for vid, count in counts.items():
                if count == 1:
                    self._vertices[vid].border = True

    def _compute_quadrics(self):
        for v in self._vertices:
            v.q = SymmetricMatrix()

        for t in self._triangles:
            p0, p1, p2 = (self._vertices[vid].p for vid in t.v)
            plane = compute_face_plane(p0, p1, p2)
            t.n = plane[:3]

            plane_q = compute_fundamental_quadric(plane)
            for vid in t.v:
                self._vertices[vid].q += plane_q

    def _clean_mesh(self):
        """Drop deleted triangles and unreferenced vertices, remapping indices."""
        self._triangles = [t for t in self._triangles if not t.deleted]

        used = [False] * len(self._vertices)
        for t in self._triangles:
            for vid in t.v:
                used[vid] = True

        remap = {}
        kept = []
        for i, v in enumerate(self._vertices):
            if used[i]:
                remap[i] = len(kept)
                kept.append(v)

        for t in self._triangles:
            t.v = [remap[vid] for vid in t.v]

        self._vertices = kept
        self._refs = []


def simplify(mesh: MeshModel, target_triangle_count: int,
             aggressiveness: float = 7.0, verbose: bool = False) -> MeshModel:
    """
    Reduce a mesh to roughly target_triangle_count triangles.

    Args:
        mesh: Input mesh, left untouched
        target_triangle_count: Stop once this many triangles or fewer remain
        aggressiveness: Threshold growth exponent, must be positive

    Returns:
        A new, simplified mesh with recomputed normals
    """
    decimator = MeshDecimator(aggressiveness=aggressiveness, verbose=verbose)
    return decimator.decimate(mesh, target_faces=target_triangle_count)
