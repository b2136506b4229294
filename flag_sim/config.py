"""
Configuration dataclasses for the flag cloth simulation.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import warp as wp


@dataclass(frozen=True)
class Textured:
    """Material variant that maps an image onto the cloth."""

    source: str


@dataclass(frozen=True)
class Flat:
    """Material variant with a single flat color."""

    color: int = 0xFFFFFF


MaterialConfig = Union[Textured, Flat]


def resolve_material(texture_source: Optional[str]) -> MaterialConfig:
    """Pick the material variant for an optional texture source."""
    if texture_source:
        return Textured(texture_source)
    return Flat()


@dataclass
class SimConfig:
    """Configuration for the cloth simulation.

    Numeric values are not validated. A non-positive mass or a damping
    outside (0, 1) gives undefined simulation behavior.

    Attributes:
        cloth_width: Width of the cloth in world units.
        width_segments: Number of grid cells along the width (>= 1).
        height_segments: Number of grid cells along the height (>= 1).
        damping: Fraction of implied velocity lost per step.
        mass: Mass of each particle.
        gravity: Gravitational acceleration magnitude.
        timestep: Fixed simulation step in seconds.
        wind_range: (min, max) wind force strength.
        initial_position: World offset of the cloth's top-center point.
        pin_indices: Explicit pinned particle indices. None pins the edge
            column nearest the pole, one particle per row.
        obstacle_radius: Radius of the pole's collision cylinder.
        pin_standoff: Horizontal distance between the cloth edge and the pin
            targets. None uses the obstacle radius.
        pole_thickness: Cross-section of the pole mesh.
        pole_extra_height: How far the pole mesh extends below the cloth.
        texture_source: Optional image path for a textured material.
        device: Warp device to use ('cpu' or 'cuda:0', etc.).
    """

    cloth_width: float = 250.0
    width_segments: int = 9
    height_segments: int = 16
    damping: float = 0.005
    mass: float = 0.1
    gravity: float = 100.0
    timestep: float = 18.0 / 1000.0
    wind_range: Tuple[float, float] = (24.0, 228.0)
    initial_position: Sequence[float] = (0.0, 0.0, 0.0)
    pin_indices: Optional[Sequence[int]] = None
    obstacle_radius: float = 2.5
    pin_standoff: Optional[float] = None
    pole_thickness: float = 5.0
    pole_extra_height: float = 400.0
    texture_source: Optional[str] = None
    device: Optional[str] = None

    def __post_init__(self):
        """Initialize warp and set default device if not specified."""
        wp.init()
        if self.device is None:
            self.device = str(wp.get_device())

    @property
    def num_particles(self) -> int:
        """Total number of particles in the cloth."""
        return (self.width_segments + 1) * (self.height_segments + 1)

    @property
    def num_constraints(self) -> int:
        w, h = self.width_segments, self.height_segments
        return 2 * w * h + h + w

    @property
    def rest_distance(self) -> float:
        """Rest length shared by every constraint."""
        return self.cloth_width / self.width_segments

    @property
    def cloth_height(self) -> float:
        return self.rest_distance * self.height_segments

    @property
    def drag(self) -> float:
        return 1.0 - self.damping

    @property
    def timestep_sq(self) -> float:
        return self.timestep * self.timestep

    @property
    def standoff(self) -> float:
        """Pin target distance beyond the cloth edge.

        Defaults to the obstacle radius, which puts the default pins on the
        pole axis where the collider leaves them alone. ``pole_position``
        builds its x the same way as the pin targets so both round to the
        same float32.
        """
        if self.pin_standoff is None:
            return self.obstacle_radius
        return self.pin_standoff

    @property
    def offset(self) -> np.ndarray:
        """World offset of the grid's (u=0, v=0) corner."""
        x, y, z = self.initial_position
        return np.array([x - self.cloth_width / 2.0, y, z], dtype=np.float64)

    @property
    def pole_height(self) -> float:
        return self.cloth_height + self.pole_extra_height

    @property
    def pole_position(self) -> np.ndarray:
        """Center of the pole mesh. Collision uses only its x and z."""
        _, y, z = self.initial_position
        return np.array(
            [
                (self.offset[0] + self.cloth_width) + self.standoff,
                y - self.pole_height / 2.0,
                z,
            ],
            dtype=np.float64,
        )

    @property
    def material(self) -> MaterialConfig:
        return resolve_material(self.texture_source)

    @property
    def wp_device(self):
        """Get the warp device object."""
        return wp.get_device(self.device)
