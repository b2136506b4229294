"""
Visualization utilities for cloth simulation.
"""

from typing import List, Optional

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.animation as animation


def animate_cloth(trajectory, pins=None, save_path: Optional[str] = None, interval: int = 50):
    """Create an animated 3D scatter plot of particle positions.

    World y is drawn as the vertical axis.

    Args:
        trajectory: Array of shape (frames, num_particles, 3).
        pins: Optional pinned indices, drawn in a second color.
        save_path: Where to save the animation (.mp4 needs ffmpeg, .gif pillow).
        interval: Delay between frames in milliseconds.
    """
    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection="3d")

    lo = trajectory.reshape(-1, 3).min(axis=0) - 1.0
    hi = trajectory.reshape(-1, 3).max(axis=0) + 1.0
    pinned = np.zeros(trajectory.shape[1], dtype=bool)
    if pins is not None:
        pinned[np.asarray(pins)] = True

    def animate(frame):
        ax.clear()
        positions = trajectory[frame]
        free = positions[~pinned]
        ax.scatter(free[:, 0], free[:, 2], free[:, 1], s=20, alpha=0.7)
        if pinned.any():
            held = positions[pinned]
            ax.scatter(held[:, 0], held[:, 2], held[:, 1], s=30, c="red")
        ax.set_xlim(lo[0], hi[0])
        ax.set_ylim(lo[2], hi[2])
        ax.set_zlim(lo[1], hi[1])
        ax.set_title(f'Cloth Simulation - Frame {frame}/{len(trajectory)}')
        ax.set_xlabel('X Position')
        ax.set_ylabel('Z Position')
        ax.set_zlabel('Y Position')

    anim = animation.FuncAnimation(fig, animate, frames=len(trajectory),
                                   interval=interval, repeat=True)

    if save_path:
        writer = 'pillow' if save_path.endswith('.gif') else 'ffmpeg'
        anim.save(save_path, writer=writer)

    return anim


def plot_trajectories(
    trajectory: np.ndarray,
    particle_indices: Optional[List[int]] = None,
    figsize: tuple = (12, 8),
) -> plt.Figure:
    """Plot 3D trajectories of selected particles over time.

    Args:
        trajectory: Array of shape (frames, num_particles, 3) containing positions.
        particle_indices: Indices of particles to plot. If None, plots a sample.
        figsize: Figure size.

    Returns:
        The matplotlib figure.
    """
    if particle_indices is None:
        # Sample some particles across the cloth
        num_particles = trajectory.shape[1]
        particle_indices = list(range(0, num_particles, max(1, num_particles // 10)))

    fig = plt.figure(figsize=figsize)
    ax = fig.add_subplot(111, projection="3d")

    frames = np.arange(len(trajectory))

    for idx in particle_indices:
        x = trajectory[:, idx, 0]
        y = trajectory[:, idx, 1]
        ax.plot(x, y, frames, label=f"Particle {idx}", alpha=0.7)

    ax.set_xlabel("X Position")
    ax.set_ylabel("Y Position")
    ax.set_zlabel("Time (frame)")
    ax.set_title("Particle Trajectories Over Time")
    ax.legend(loc="upper left", fontsize="small")

    return fig


def plot_particle_over_time(
    trajectory: np.ndarray,
    particle_index: int,
    figsize: tuple = (15, 4),
) -> plt.Figure:
    """Plot x, y and z position of a single particle over time.

    Args:
        trajectory: Array of shape (frames, num_particles, 3) containing positions.
        particle_index: Index of the particle to plot.
        figsize: Figure size.

    Returns:
        The matplotlib figure.
    """
    fig, axes = plt.subplots(1, 3, figsize=figsize)

    frames = np.arange(len(trajectory))

    for axis, (ax, name) in enumerate(zip(axes, "XYZ")):
        ax.plot(frames, trajectory[:, particle_index, axis])
        ax.set_xlabel("Time (frame)")
        ax.set_ylabel(f"{name} Position")
        ax.set_title(f"Particle {particle_index} - {name} Position")
        ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig
