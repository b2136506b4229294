"""
Cloth simulator class running the fixed per-frame step sequence.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from .config import SimConfig
from .dynamics import ColliderResolver, ConstraintSolver, Integrator, PinController
from .forces import ForceModel
from .geometry import ConstraintSet, ParticleGrid, SurfaceFunction

logger = logging.getLogger(__name__)


class ClothSimulator:
    """Mass-spring cloth pinned to a pole and blown by camera-relative wind.

    Each step runs, in this order: forces, Verlet integration, one constraint
    relaxation pass, pinning, pole collision. Pinning follows relaxation so
    pins are never dragged by constraints, and collision follows pinning so
    pins are never pushed by the pole.

    Attributes:
        config: Simulation configuration.
        grid: Particle state and rest topology.
        constraints: Distance constraints over the grid.
        forces: Gravity and wind model.
        integrator: Verlet integrator.
        solver: Constraint relaxation.
        pins: Pinned particles.
        collider: Pole collision.
    """

    def __init__(self, config: SimConfig, surface: Optional[SurfaceFunction] = None):
        """Initialize the cloth simulator.

        Args:
            config: Simulation configuration.
            surface: Rest surface function. Defaults to a flat plane the size
                of the cloth.

        Raises:
            ValueError: If an explicit pin index is out of range.
        """
        self.config = config

        self.grid = ParticleGrid(config, surface)
        self.constraints = ConstraintSet(self.grid, config.rest_distance)
        self.forces = ForceModel(config)
        self.integrator = Integrator(self.grid, config)
        self.solver = ConstraintSolver(self.grid, self.constraints)
        self.pins = PinController(self.grid, config)
        self.collider = ColliderResolver(
            self.grid, config.pole_position, config.obstacle_radius
        )

        logger.debug(
            f"Cloth simulator ready: {self.grid.num_particles} particles, "
            f"{len(self.constraints)} constraints, {len(self.pins)} pins on {config.device}"
        )

    def step(
        self,
        elapsed_ms: float,
        camera_forward: Sequence[float],
        camera_up: Sequence[float],
        frame_quaternion: Optional[Sequence[float]] = None,
    ):
        """Perform one simulation step.

        Args:
            elapsed_ms: Host clock time in milliseconds, drives the wind gusts.
            camera_forward: Camera forward direction in world space.
            camera_up: Camera up vector in world space.
            frame_quaternion: World orientation of the cloth's parent node,
                or None if the cloth is attached to the world root.
        """
        gravity, wind = self.forces.frame_forces(
            camera_forward, camera_up, elapsed_ms, frame_quaternion
        )
        self.integrator.step(gravity, wind)
        self.solver.relax()
        self.pins.apply()
        self.collider.resolve()

    def reset(self):
        """Reset simulation to the rest state."""
        self.grid.reset()

    def run(
        self,
        frames: int,
        camera_forward: Sequence[float] = (0.0, 0.0, -1.0),
        camera_up: Sequence[float] = (0.0, 1.0, 0.0),
        start_ms: float = 0.0,
        record: bool = True,
    ) -> Optional[np.ndarray]:
        """Run simulation for multiple steps with a fixed camera.

        Frame ``k`` is stepped at ``start_ms + k * timestep`` milliseconds.

        Args:
            frames: Number of steps to run.
            camera_forward: Camera forward direction.
            camera_up: Camera up vector.
            start_ms: Clock time of the first frame.
            record: Whether to record trajectory.

        Returns:
            If record=True, returns trajectory array of shape (frames, num_particles, 3).
            Otherwise returns None.
        """
        step_ms = self.config.timestep * 1000.0
        trajectory = [] if record else None

        for k in range(frames):
            self.step(start_ms + k * step_ms, camera_forward, camera_up)
            if record:
                trajectory.append(self.get_positions())

        if record:
            return np.array(trajectory).reshape(frames, self.grid.num_particles, 3)
        return None

    def get_positions(self) -> np.ndarray:
        """Get current positions as numpy array."""
        return self.grid.get_positions()

    def get_free_mask(self) -> np.ndarray:
        """Get mask for free (non-pinned) particles.

        Returns:
            Array of shape (num_particles,) with 1.0 for free, 0.0 for pinned.
        """
        mask = np.ones(self.grid.num_particles, dtype=np.float32)
        mask[self.pins.indices] = 0.0
        return mask
