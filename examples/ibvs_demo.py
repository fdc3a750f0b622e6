#!/usr/bin/env python3
"""Demo script for image-based visual servoing of a square target.

A camera starting at (1, 1, -3), rotated 0.6 rad about its optical axis,
servos until the four corners of a 0.5 m square at Z = 3 appear as a
400 pixel square centred in the image.

Usage:
    uv run python examples/ibvs_demo.py [--depth true|fixed|estimated] [--viz]
    uv run python examples/ibvs_demo.py --scenario examples/square.yaml
"""

import argparse
import logging

import numpy as np

from ibvs import (
    SE3,
    CentralCamera,
    ServoConfig,
    ServoLoop,
    load_scenario,
    make_grid,
    square_image_target,
)


def build_default_loop(depth_mode: str) -> ServoLoop:
    """Create the canned square scenario."""
    camera = CentralCamera.default()
    points = make_grid(n=2, side=0.5, pose=SE3.from_translation(0.0, 0.0, 3.0))
    desired = square_image_target(camera.principal_point, half_size=200.0)
    initial_pose = SE3.from_translation(1.0, 1.0, -3.0) @ SE3.from_rpy(0.0, 0.0, 0.6)
    config = ServoConfig(gain=0.08, error_threshold=0.5, depth_mode=depth_mode)
    return ServoLoop(
        camera, points, initial_pose=initial_pose, config=config, desired_features=desired
    )


def main() -> None:
    """Run the IBVS demo."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--scenario", help="YAML scenario file")
    parser.add_argument("--depth", default="true", choices=["true", "fixed", "estimated"])
    parser.add_argument("--viz", action="store_true", help="Show the run in Rerun")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    print("Initializing servo loop...")
    loop = load_scenario(args.scenario) if args.scenario else build_default_loop(args.depth)
    print(f"Camera: {loop.camera}")
    print(f"Points: {len(loop.points)}, depth mode: {loop.config.depth_mode.value}")
    print(f"Initial pose: {loop.pose}")
    print()

    # Column headers
    print(f"{'Step':>5} | {'|e| [px]':>10} | {'cond(J)':>9} | {'|v|':>9} | {'Position'}")
    print("-" * 80)

    def report(record):
        if record.step % 10 != 1:
            return
        pos = record.pose.position
        print(
            f"{record.step:>5} | {record.error_norm:>10.3f} | "
            f"{record.jacobian_condition:>9.1f} | {np.linalg.norm(record.velocity):>9.5f} | "
            f"[{pos[0]:>7.3f}, {pos[1]:>7.3f}, {pos[2]:>7.3f}]"
        )

    result = loop.run(on_step=report)

    print("-" * 80)
    print()
    print("=" * 80)
    print("Summary")
    print("=" * 80)
    print(f"Status:      {result.status.value}")
    print(f"Iterations:  {result.iterations}")
    if result.failure is not None:
        print(f"Failure:     {type(result.failure).__name__}: {result.failure}")
    if result.history:
        print(f"Final error: {result.error_norms[-1]:.3f} px")
        print(f"Final pose:  {result.final_pose}")
        last = result.history[-1]
        if last.estimated_depth is not None:
            print(f"Estimated depth: {np.array2string(last.estimated_depth, precision=3)}")
            print(f"True depth:      {np.array2string(last.true_depth, precision=3)}")

    if args.viz:
        from ibvs.visualization import RerunServoVisualizer

        visualizer = RerunServoVisualizer("python-ibvs-demo")
        visualizer.log_targets(loop.points, loop.desired_features)
        visualizer.log_history(result.history)
        print("Logged run to Rerun")


if __name__ == "__main__":
    main()
