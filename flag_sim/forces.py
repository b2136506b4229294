"""
External forces: constant gravity and a camera-relative gusting wind.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from .config import SimConfig
from .transforms import quat_rotate_inv


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


class ForceModel:
    """Derives the per-frame gravity and wind forces.

    Wind blows to the camera's left, i.e. against ``cross(forward, up)``,
    with a strength oscillating between the wind range bounds with a period
    of 2*pi seconds. Nothing is cached between frames.
    """

    def __init__(self, config: SimConfig):
        self.gravity = config.gravity
        self.mass = config.mass
        self.min_wind, self.max_wind = config.wind_range

    def wind_strength(self, elapsed_ms: float) -> float:
        t = (np.sin(elapsed_ms / 1000.0) + 1.0) / 2.0
        return lerp(self.min_wind, self.max_wind, t)

    def compute_wind(
        self,
        camera_forward: Sequence[float],
        camera_up: Sequence[float],
        elapsed_ms: float,
    ) -> np.ndarray:
        """Wind force in world space.

        A forward vector parallel to ``up`` has no defined side direction and
        yields no wind.
        """
        right = np.cross(
            np.asarray(camera_forward, dtype=np.float64),
            np.asarray(camera_up, dtype=np.float64),
        )
        length = np.linalg.norm(right)
        if length > 0.0:
            right = right / length
        return -right * self.wind_strength(elapsed_ms)

    def compute_gravity(self, mass: Optional[float] = None) -> np.ndarray:
        if mass is None:
            mass = self.mass
        return np.array([0.0, -self.gravity * mass, 0.0], dtype=np.float64)

    def frame_forces(
        self,
        camera_forward: Sequence[float],
        camera_up: Sequence[float],
        elapsed_ms: float,
        frame_quaternion: Optional[Sequence[float]] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Gravity and wind for one step, in the simulation's reference frame.

        Args:
            camera_forward: Camera forward direction in world space.
            camera_up: Camera up vector in world space.
            elapsed_ms: Host clock time in milliseconds.
            frame_quaternion: World orientation (x, y, z, w) of the node the
                cloth lives in, or None when it lives in the world root.

        Returns:
            Tuple of (gravity, wind) force vectors.
        """
        gravity = self.compute_gravity()
        wind = self.compute_wind(camera_forward, camera_up, elapsed_ms)

        if frame_quaternion is not None:
            gravity = quat_rotate_inv(frame_quaternion, gravity)
            wind = quat_rotate_inv(frame_quaternion, wind)

        return gravity, wind
