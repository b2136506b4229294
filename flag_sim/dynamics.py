"""
Per-frame solver stages.

Each stage launches one warp kernel over the shared particle grid and keeps
only indices and parameters of its own.
"""

import numpy as np
import warp as wp

from .config import SimConfig
from .geometry import ConstraintSet, ParticleGrid, make_pins, pin_row_fractions, pin_targets
from . import kernels


class Integrator:
    """Accumulates external forces and takes one position Verlet step."""

    def __init__(self, grid: ParticleGrid, config: SimConfig):
        self.grid = grid
        self.drag = config.drag
        self.dt_sq = config.timestep_sq

    def step(self, gravity: np.ndarray, wind: np.ndarray):
        grid = self.grid
        device = grid.pos.device
        n = grid.num_particles

        wp.launch(
            kernels.accumulate_forces,
            dim=n,
            inputs=[grid.acc, grid.inv_masses, wp.vec3(*gravity), wp.vec3(*wind)],
            device=device,
        )
        wp.launch(
            kernels.verlet_integrate,
            dim=n,
            inputs=[grid.pos, grid.prev, grid.acc, self.drag, self.dt_sq],
            device=device,
        )


class ConstraintSolver:
    """Relaxes every constraint once per frame.

    A single pass leaves the cloth visibly stretchy. Pairs are corrected
    evenly, which keeps each pair's midpoint in place.
    """

    def __init__(self, grid: ParticleGrid, constraints: ConstraintSet):
        self.grid = grid
        self.constraints = constraints

    def relax(self):
        wp.launch(
            kernels.satisfy_constraints,
            dim=1,
            inputs=[self.grid.pos, self.constraints.edges, self.constraints.rest],
            device=self.grid.pos.device,
        )


class PinController:
    """Holds pinned particles on the pole edge of the cloth.

    Attributes:
        indices: Pinned particle indices (numpy int32).
        row_fractions: Row of each pin as a fraction of the grid height.
        standoff: Horizontal distance from the cloth edge to the targets.
    """

    def __init__(self, grid: ParticleGrid, config: SimConfig):
        self.grid = grid
        self.indices = make_pins(config)
        self.row_fractions = pin_row_fractions(
            self.indices, grid.width_segments, grid.height_segments
        )
        self.standoff = config.standoff
        self._pins = wp.array(self.indices, dtype=wp.int32, device=grid.pos.device)

    def __len__(self) -> int:
        return len(self.indices)

    def targets(self) -> np.ndarray:
        return pin_targets(self.grid, self.row_fractions, self.standoff)

    def apply(self):
        if len(self.indices) == 0:
            return
        grid = self.grid
        targets = wp.array(self.targets(), dtype=wp.vec3, device=grid.pos.device)
        wp.launch(
            kernels.apply_pins,
            dim=len(self.indices),
            inputs=[grid.pos, grid.prev, self._pins, targets],
            device=grid.pos.device,
        )


class ColliderResolver:
    """Keeps particles outside the pole, an infinite vertical cylinder."""

    def __init__(self, grid: ParticleGrid, center, radius: float):
        self.grid = grid
        self.center_x = float(center[0])
        self.center_z = float(center[2])
        self.radius = float(radius)

    def resolve(self):
        grid = self.grid
        wp.launch(
            kernels.collide_cylinder,
            dim=grid.num_particles,
            inputs=[grid.pos, self.center_x, self.center_z, self.radius],
            device=grid.pos.device,
        )
