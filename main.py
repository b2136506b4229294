#!/usr/bin/env python3
"""
Main entry point for the flag cloth simulation.

Usage:
    python main.py run --frames 600 --save trajectory.npy --animate
    python main.py run --camera-yaw 30 --texture flag.png --plot
"""

import argparse
import logging
import math
import sys

import numpy as np

from flag_sim import ClothEntity, SimConfig, animate_cloth, make_context, plot_trajectories
from flag_sim.logging_config import setup_logging
from flag_sim.recording import save_trajectory
from flag_sim.scene import Group
from flag_sim.transforms import quat_from_axis_angle, quat_multiply


def run_simulation(args):
    """Host the cloth on a frame clock and record its trajectory."""
    print("=== Flag Cloth Simulation ===")

    config = SimConfig(
        cloth_width=args.width,
        width_segments=args.width_segments,
        height_segments=args.height_segments,
        damping=args.damping,
        mass=args.mass,
        gravity=args.gravity,
        timestep=args.dt,
        wind_range=(args.wind_min, args.wind_max),
        initial_position=tuple(args.position),
        pin_indices=args.pins,
        obstacle_radius=args.radius,
        texture_source=args.texture,
        device=args.device,
    )

    print(
        f"Config: {config.width_segments}x{config.height_segments} grid, "
        f"{config.num_particles} particles, {config.num_constraints} constraints"
    )
    print(f"Frames: {args.frames}, dt={config.timestep:.4f}")

    context = make_context()
    yaw = quat_from_axis_angle((0.0, 1.0, 0.0), math.radians(args.camera_yaw))
    context.camera.quaternion = quat_multiply(yaw, context.camera.quaternion)

    parent = None
    if args.parent_yaw:
        parent = Group("flag")
        parent.quaternion = quat_from_axis_angle((0.0, 1.0, 0.0), math.radians(args.parent_yaw))
        context.scene.add(parent)

    trajectory = []
    with ClothEntity(context, config, parent) as cloth:
        if not cloth.running:
            print("Cloth is inert, nothing to simulate")
            return None
        pins = cloth.simulator.pins.indices.copy()

        def record(elapsed_ms):
            trajectory.append(cloth.simulator.get_positions())

        recorder = context.register_step(record)
        print(f"Device: {config.device}")
        print("Running simulation...")
        context.clock.run(args.frames, config.timestep)
        recorder.unregister()

    trajectory = np.array(trajectory)
    print(f"Trajectory shape: {trajectory.shape}")

    if args.save:
        save_trajectory(trajectory, args.save)

    if args.animate:
        print("Creating animation...")
        animate_cloth(trajectory, pins=pins, save_path=args.animation_path)
        print(f"Animation saved to {args.animation_path}")

    if args.plot:
        import matplotlib.pyplot as plt

        plot_trajectories(trajectory)
        plt.savefig(args.plot_path)
        print(f"Trajectory plot saved to {args.plot_path}")

    print("Done!")
    return trajectory


def main():
    parser = argparse.ArgumentParser(description="Flag cloth simulation on a pole")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Run the simulation")

    # Grid parameters
    run_parser.add_argument("--width", type=float, default=250.0, help="Cloth width")
    run_parser.add_argument(
        "--width-segments", type=int, default=9, help="Grid cells across"
    )
    run_parser.add_argument(
        "--height-segments", type=int, default=16, help="Grid cells down"
    )
    run_parser.add_argument(
        "--position", type=float, nargs=3, default=[0.0, 0.0, 0.0],
        metavar=("X", "Y", "Z"), help="Initial cloth position",
    )
    run_parser.add_argument(
        "--pins", type=int, nargs="+", default=None, help="Explicit pinned indices"
    )

    # Physics parameters
    run_parser.add_argument("--mass", type=float, default=0.1, help="Particle mass")
    run_parser.add_argument("--damping", type=float, default=0.005, help="Damping")
    run_parser.add_argument("--gravity", type=float, default=100.0, help="Gravity")
    run_parser.add_argument("--wind-min", type=float, default=24.0, help="Weakest wind")
    run_parser.add_argument("--wind-max", type=float, default=228.0, help="Strongest wind")
    run_parser.add_argument("--radius", type=float, default=2.5, help="Pole radius")

    # Simulation parameters
    run_parser.add_argument("--dt", type=float, default=0.018, help="Time step")
    run_parser.add_argument("--frames", type=int, default=600, help="Number of frames")
    run_parser.add_argument("--device", type=str, default=None, help="Warp device")
    run_parser.add_argument(
        "--camera-yaw", type=float, default=0.0, help="Camera yaw in degrees"
    )
    run_parser.add_argument(
        "--parent-yaw", type=float, default=0.0,
        help="Mount the cloth in a group rotated by this yaw (degrees)",
    )
    run_parser.add_argument("--texture", type=str, default=None, help="Cloth image")

    # Output options
    run_parser.add_argument("--save", type=str, help="Save trajectory to file")
    run_parser.add_argument(
        "--animate", action="store_true", help="Create animation"
    )
    run_parser.add_argument(
        "--animation-path", type=str, default="cloth_animation.gif", help="Animation output path"
    )
    run_parser.add_argument(
        "--plot", action="store_true", help="Plot particle trajectories"
    )
    run_parser.add_argument(
        "--plot-path", type=str, default="trajectories.png", help="Plot output path"
    )
    run_parser.add_argument(
        "--log-level", type=str, default="WARNING", help="Logging level"
    )

    args = parser.parse_args()

    if args.command == "run":
        setup_logging(level=getattr(logging, args.log_level.upper(), logging.WARNING))
        run_simulation(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
