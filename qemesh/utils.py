"""
Utility Functions
=================

Conversion between trimesh and MeshModel, mesh loading/saving, and sample
mesh creation.
"""

from typing import Optional
import numpy as np
import trimesh

from .mesh import MeshModel


def from_trimesh(mesh: trimesh.Trimesh) -> MeshModel:
    """Convert a trimesh object to a MeshModel with fresh normals."""
    model = MeshModel(positions=np.asarray(mesh.vertices),
                      indices=np.asarray(mesh.faces).reshape(-1))
    model.recalculate_normals()
    return model


def to_trimesh(mesh: MeshModel) -> trimesh.Trimesh:
    """Convert a MeshModel to a trimesh object, keeping vertex order."""
    return trimesh.Trimesh(vertices=mesh.positions.copy(),
                           faces=mesh.faces.astype(np.int64),
                           process=False)


def load_mesh(path: str) -> MeshModel:
    """
    Load a mesh from file.

    Supports: OBJ, PLY, STL, OFF, and other formats supported by trimesh.

    Args:
        path: Path to mesh file

    Returns:
        Loaded mesh
    """
    mesh = trimesh.load(path, force='mesh')

    if isinstance(mesh, trimesh.Scene):
        # Convert scene to single mesh
        meshes = [geom for geom in mesh.geometry.values()
                  if isinstance(geom, trimesh.Trimesh)]
        if not meshes:
            raise ValueError("No valid meshes found in file")
        mesh = trimesh.util.concatenate(meshes)

    if not isinstance(mesh, trimesh.Trimesh) or len(mesh.faces) == 0:
        raise ValueError(f"No triangle geometry found in {path}")

    return from_trimesh(mesh)


def save_mesh(mesh: MeshModel, path: str):
    """
    Save a mesh to file. The format follows the file extension.

    Args:
        mesh: Mesh to save
        path: Output path
    """
    tm = to_trimesh(mesh)
    if len(mesh.normals) == len(mesh.positions):
        tm.vertex_normals = mesh.normals
    tm.export(path)
    print(f"Saved mesh to: {path}")


def create_sample_mesh(mesh_type: str = "sphere") -> MeshModel:
    """
    Create a sample mesh for testing.

    Args:
        mesh_type: Type of mesh to create:
            - "sphere": icosphere
            - "torus": torus
            - "box": the 8-vertex unit box
            - "cylinder": capped cylinder
            - "grid": wavy open surface

    Returns:
        Generated mesh
    """
    if mesh_type == "box":
        mesh = MeshModel.box()
    elif mesh_type == "torus":
        mesh = from_trimesh(trimesh.creation.torus(major_radius=1.0, minor_radius=0.3,
                                                   major_sections=32, minor_sections=16))
    elif mesh_type == "cylinder":
        mesh = from_trimesh(trimesh.creation.cylinder(radius=0.5, height=2.0, sections=32))
    elif mesh_type == "grid":
        mesh = create_mesh_with_boundary()
    elif mesh_type == "sphere":
        mesh = from_trimesh(trimesh.creation.icosphere(subdivisions=3, radius=1.0))
    else:
        raise ValueError(f"Unknown sample mesh type: {mesh_type}")

    print(f"Created {mesh_type} mesh: {mesh.vertex_count} vertices, {mesh.triangle_count} faces")
    return mesh


def create_mesh_with_boundary(rows: int = 20, cols: int = 20,
                              noise: float = 0.0,
                              seed: Optional[int] = None) -> MeshModel:
    """
    Create an open wavy surface grid for testing boundary preservation.

    Args:
        rows: Number of rows in the grid
        cols: Number of columns in the grid
        noise: Standard deviation of random vertex jitter
        seed: Seed for the jitter

    Returns:
        Open surface mesh
    """
    x = np.linspace(-1, 1, cols)
    y = np.linspace(-1, 1, rows)
    X, Y = np.meshgrid(x, y)

    Z = 0.2 * np.sin(3 * X) * np.cos(3 * Y)

    vertices = np.column_stack([X.flatten(), Y.flatten(), Z.flatten()])

    # Two triangles per grid cell
    faces = []
    for i in range(rows - 1):
        for j in range(cols - 1):
            idx = i * cols + j
            faces.append([idx, idx + 1, idx + cols])
            faces.append([idx + 1, idx + cols + 1, idx + cols])

    if noise > 0:
        rng = np.random.default_rng(seed)
        vertices = vertices + rng.normal(scale=noise, size=vertices.shape)

    mesh = MeshModel(positions=vertices, indices=np.array(faces).reshape(-1))
    mesh.recalculate_normals()
    return mesh


def boundary_edges(mesh: MeshModel) -> set:
    """Edges used by exactly one triangle, as sorted vertex pairs."""
    edge_count = {}
    for face in mesh.faces:
        for i in range(3):
            edge = tuple(sorted((int(face[i]), int(face[(i + 1) % 3]))))
            edge_count[edge] = edge_count.get(edge, 0) + 1
    return {edge for edge, count in edge_count.items() if count == 1}


def get_mesh_info(mesh: MeshModel) -> dict:
    """
    Get information about a mesh.

    Args:
        mesh: Input mesh

    Returns:
        Dictionary of mesh properties
    """
    tm = to_trimesh(mesh)
    lo, hi = mesh.bounding_box()

    info = {
        'vertices': mesh.vertex_count,
        'faces': mesh.triangle_count,
        'is_watertight': tm.is_watertight,
        'euler_number': tm.euler_number,
        'bounds': [lo.tolist(), hi.tolist()],
        'centroid': mesh.centroid().tolist(),
        'area': float(tm.area),
        'boundary_edges': len(boundary_edges(mesh)),
    }

    return info


def print_mesh_info(mesh: MeshModel, name: str = "Mesh"):
    """
    Print mesh information to console.

    Args:
        mesh: Input mesh
        name: Name to display
    """
    info = get_mesh_info(mesh)

    print(f"\n{name} Information:")
    print("-" * 40)
    print(f"  Vertices:        {info['vertices']}")
    print(f"  Faces:           {info['faces']}")
    print(f"  Boundary Edges:  {info['boundary_edges']}")
    print(f"  Watertight:      {info['is_watertight']}")
    print(f"  Euler Number:    {info['euler_number']}")
    print(f"  Surface Area:    {info['area']:.6f}")
