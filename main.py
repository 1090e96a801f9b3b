"""
Mesh Decimation - Command Line Demo
===================================

Loads a mesh (or generates a sample), then either simplifies it with
Quadric Error Metrics or splits its triangles, prints statistics and
saves the result.
"""

import argparse
import sys
import time
from pathlib import Path

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent))

from qemesh.mesh_decimator import MeshDecimator
from qemesh.subdivide import split
from qemesh.evaluation import MeshEvaluator
from qemesh.utils import create_sample_mesh, load_mesh, print_mesh_info, save_mesh


def run_simplification(mesh, target_faces, aggressiveness):
    """
    Run a single decimation and return the simplified mesh and runtime.
    """
    decimator = MeshDecimator(aggressiveness=aggressiveness)

    start_time = time.time()
    simplified = decimator.decimate(mesh, target_faces=target_faces)
    runtime = time.time() - start_time

    return simplified, runtime


def run_split(mesh, iterations):
    start_time = time.time()
    result = split(mesh, iterations)
    runtime = time.time() - start_time

    return result, runtime


def main():
    """Main demo entry point."""
    parser = argparse.ArgumentParser(
        description="Mesh simplification and subdivision using QEM"
    )
    parser.add_argument(
        "--mesh", "-m", type=str, default=None,
        help="Path to input mesh file. If not provided, a sample mesh is generated."
    )
    parser.add_argument(
        "--sample", "-s", type=str, default="sphere",
        choices=["sphere", "torus", "box", "cylinder", "grid"],
        help="Sample mesh to generate when no --mesh is given"
    )
    parser.add_argument(
        "--mode", type=str, default="simplify", choices=["simplify", "split"],
        help="Operation to run (default: simplify)"
    )
    parser.add_argument(
        "--output", "-o", type=str, default="output",
        help="Output directory for results"
    )
    parser.add_argument(
        "--ratio", "-r", type=float, default=0.5,
        help="Fraction of triangles to keep when simplifying (default: 0.5)"
    )
    parser.add_argument(
        "--target", "-t", type=int, default=None,
        help="Target triangle count, overrides --ratio"
    )
    parser.add_argument(
        "--aggressiveness", "-a", type=float, default=7.0,
        help="Error threshold growth exponent (default: 7.0)"
    )
    parser.add_argument(
        "--iterations", "-i", type=int, default=1,
        help="Splitting passes in split mode (default: 1)"
    )
    parser.add_argument(
        "--report", action="store_true",
        help="Print the quality report after simplifying"
    )

    args = parser.parse_args()

    if not 0.0 <= args.ratio <= 1.0:
        parser.error("--ratio must be between 0 and 1")
    if args.aggressiveness <= 0:
        parser.error("--aggressiveness must be positive")
    if args.iterations < 0:
        parser.error("--iterations must be non-negative")

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 60)
    print("MESH DECIMATION")
    print("Using Quadric Error Metrics (QEM)")
    print("=" * 60)

    if args.mesh:
        print(f"\nLoading mesh from: {args.mesh}")
        mesh = load_mesh(args.mesh)
        mesh_name = Path(args.mesh).stem
    else:
        print("\nNo mesh specified, creating sample mesh...")
        mesh = create_sample_mesh(args.sample)
        mesh_name = f"sample_{args.sample}"

    print_mesh_info(mesh, mesh_name)

    if args.mode == "simplify":
        target = args.target if args.target is not None else int(args.ratio * mesh.triangle_count)
        print(f"\n--- Simplifying to {target} triangles ---")

        result, runtime = run_simplification(mesh, target, args.aggressiveness)
        output_path = output_dir / f"{mesh_name}_simplified_{target}.ply"

        if args.report:
            evaluator = MeshEvaluator()
            metrics = evaluator.compute_all_metrics(mesh, result)
            metrics['runtime'] = runtime
            evaluator.print_report(metrics, f"QEM (aggressiveness {args.aggressiveness})")
    else:
        print(f"\n--- Splitting triangles, {args.iterations} pass(es) ---")

        result, runtime = run_split(mesh, args.iterations)
        output_path = output_dir / f"{mesh_name}_split_{args.iterations}.ply"

    print(f"  Faces: {mesh.triangle_count} -> {result.triangle_count}")
    print(f"  Vertices: {mesh.vertex_count} -> {result.vertex_count}")
    print(f"  Runtime: {runtime:.3f}s")

    if result.triangle_count > 0:
        save_mesh(result, str(output_path))
    else:
        print("Result has no triangles, nothing saved")

    print("\n" + "=" * 60)
    print("DONE")
    print(f"Results saved to: {output_dir.absolute()}")
    print("=" * 60)


if __name__ == "__main__":
    main()
