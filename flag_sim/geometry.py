"""
Cloth geometry: particle grid, distance constraints and pin layout.

The particle store is struct-of-arrays. Constraints and pins refer to
particles by their index ``u + v * (width_segments + 1)``.
"""

from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
import warp as wp

from .config import SimConfig
from . import kernels

SurfaceFunction = Callable[[float, float], np.ndarray]


def plane_surface(width: float, height: float) -> SurfaceFunction:
    """Flat rest surface hanging down from y=0 in the z=0 plane.

    Args:
        width: Extent along +x for u in [0, 1].
        height: Extent along -y for v in [0, 1].

    Returns:
        Function mapping (u, v) to a 3D position.
    """

    def surface(u: float, v: float) -> np.ndarray:
        return np.array([u * width, -v * height, 0.0], dtype=np.float64)

    return surface


def grid_index(u: int, v: int, width_segments: int) -> int:
    return u + v * (width_segments + 1)


def make_grid_positions(
    width_segments: int,
    height_segments: int,
    surface: SurfaceFunction,
    offset: np.ndarray,
) -> np.ndarray:
    """Sample the rest surface at every grid vertex.

    Args:
        width_segments: Cells along u.
        height_segments: Cells along v.
        surface: Rest surface function.
        offset: World offset added to every sample.

    Returns:
        Array of shape ((W+1)*(H+1), 3), rows ordered by ``u + v*(W+1)``.
    """
    w, h = width_segments, height_segments
    x = np.zeros(((w + 1) * (h + 1), 3), dtype=np.float32)

    for v in range(h + 1):
        for u in range(w + 1):
            x[grid_index(u, v, w)] = surface(u / w, v / h) + offset

    return x


def make_constraints(width_segments: int, height_segments: int) -> np.ndarray:
    """Create the structural constraint pairs of a rectangular grid.

    Every cell contributes its down and right neighbor links, then the last
    column and the last row are closed. The count is ``2*W*H + H + W``.

    Returns:
        Array of shape (num_constraints, 2) with particle indices, in
        relaxation order.
    """
    w, h = width_segments, height_segments
    edges: List[Tuple[int, int]] = []

    for v in range(h):
        for u in range(w):
            edges.append((grid_index(u, v, w), grid_index(u, v + 1, w)))
            edges.append((grid_index(u, v, w), grid_index(u + 1, v, w)))

    for v in range(h):
        edges.append((grid_index(w, v, w), grid_index(w, v + 1, w)))

    for u in range(w):
        edges.append((grid_index(u, h, w), grid_index(u + 1, h, w)))

    return np.array(edges, dtype=np.int32).reshape(-1, 2)


def make_pins(config: SimConfig) -> np.ndarray:
    """Create the pinned particle index list.

    By default the last column (nearest the pole) is pinned, one particle per
    row, top to bottom.

    Raises:
        ValueError: If an explicit index is outside the particle array.
    """
    w, h = config.width_segments, config.height_segments

    if config.pin_indices is None:
        return np.array([grid_index(w, v, w) for v in range(h + 1)], dtype=np.int32)

    pins = np.asarray(list(config.pin_indices), dtype=np.int64)
    bad = pins[(pins < 0) | (pins >= config.num_particles)]
    if bad.size:
        raise ValueError(
            f"pin indices {bad.tolist()} out of range for {config.num_particles} particles"
        )
    return pins.astype(np.int32)


def pin_row_fractions(pins: np.ndarray, width_segments: int, height_segments: int) -> np.ndarray:
    """Row of each pinned index as a fraction of the grid height."""
    rows = np.asarray(pins) // (width_segments + 1)
    return rows.astype(np.float64) / height_segments


class ParticleGrid:
    """Owns particle state and rest topology.

    Attributes:
        width_segments: Cells along u.
        height_segments: Cells along v.
        surface: Rest surface function without the world offset.
        offset: World placement of the grid, added to surface samples.
        pos: Current positions (warp vec3 array).
        prev: Positions at the previous step (warp vec3 array).
        original: Rest positions, never written after construction.
        acc: Accumulated acceleration for the current step.
        masses: Particle masses.
        inv_masses: Cached 1 / mass.
    """

    def __init__(
        self,
        config: SimConfig,
        surface: Optional[SurfaceFunction] = None,
    ):
        self.width_segments = config.width_segments
        self.height_segments = config.height_segments
        self.surface = surface or plane_surface(config.cloth_width, config.cloth_height)
        self.offset = config.offset.copy()
        self._device = config.wp_device

        pos_np = make_grid_positions(
            self.width_segments, self.height_segments, self.surface, self.offset
        )
        masses_np = np.full(len(pos_np), config.mass, dtype=np.float32)

        device = self._device
        self.pos = wp.array(pos_np, dtype=wp.vec3, device=device)
        self.prev = wp.array(pos_np, dtype=wp.vec3, device=device)
        self.original = wp.array(pos_np, dtype=wp.vec3, device=device)
        self.acc = wp.zeros(len(pos_np), dtype=wp.vec3, device=device)
        self.masses = wp.array(masses_np, dtype=wp.float32, device=device)
        self.inv_masses = wp.array(
            (1.0 / masses_np).astype(np.float32), dtype=wp.float32, device=device
        )

    @property
    def num_particles(self) -> int:
        return self.pos.shape[0]

    def index(self, u: int, v: int) -> int:
        return grid_index(u, v, self.width_segments)

    def rest_position(self, u: float, v: float) -> np.ndarray:
        """Point of the surface at normalized (u, v), in world placement."""
        return self.surface(u, v) + self.offset

    def get_positions(self) -> np.ndarray:
        """Get current positions as numpy array."""
        return self.pos.numpy().copy()

    def get_previous_positions(self) -> np.ndarray:
        return self.prev.numpy().copy()

    def get_original_positions(self) -> np.ndarray:
        return self.original.numpy().copy()

    def reset(self):
        """Put every particle back at rest with no implied velocity."""
        wp.copy(self.pos, self.original)
        wp.copy(self.prev, self.original)
        wp.launch(
            kernels.zero_vec3,
            dim=self.num_particles,
            inputs=[self.acc],
            device=self._device,
        )


class ConstraintSet:
    """Fixed list of distance constraints over a particle grid.

    Attributes:
        edges: Constraint particle pairs (warp int32 2d array).
        rest: Rest length of each constraint (warp float32 array).
    """

    def __init__(self, grid: ParticleGrid, rest_length: float):
        edges_np = make_constraints(grid.width_segments, grid.height_segments)
        rest_np = np.full(len(edges_np), rest_length, dtype=np.float32)

        self.edges = wp.array(edges_np, dtype=wp.int32, device=grid.pos.device)
        self.rest = wp.array(rest_np, dtype=wp.float32, device=grid.pos.device)

    def __len__(self) -> int:
        return self.edges.shape[0]

    def pairs(self) -> np.ndarray:
        return self.edges.numpy().copy()


def pin_targets(
    grid: ParticleGrid, row_fractions: Sequence[float], standoff: float
) -> np.ndarray:
    """Target of every pin on the grid's far edge, pushed out by ``standoff``.

    Targets follow the grid's current offset, so they are recomputed each
    frame rather than cached.
    """
    targets = np.zeros((len(row_fractions), 3), dtype=np.float32)
    shift = np.array([standoff, 0.0, 0.0], dtype=np.float64)
    for k, fraction in enumerate(row_fractions):
        targets[k] = grid.rest_position(1.0, fraction) + shift
    return targets
