"""
Cloth entity: mounts the simulation into a host context, steps it on the
host clock and writes the result into the render mesh.
"""

import enum
import logging
from contextlib import ExitStack
from typing import Optional

import numpy as np

from .config import SimConfig
from .context import HostContext
from .geometry import SurfaceFunction
from .scene import (
    BoxGeometry,
    ClothGeometry,
    Mesh,
    PhongMaterial,
    SceneNode,
    make_cloth_material,
    make_pole_material,
)
from .simulation import ClothSimulator

logger = logging.getLogger(__name__)


class StepperState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    DISPOSED = "disposed"


class SimulationStateError(RuntimeError):
    """Raised when the entity is driven outside its lifecycle."""


class MeshSync:
    """Copies particle positions into a render geometry."""

    def __init__(self, geometry: ClothGeometry):
        self.geometry = geometry

    def sync(self, positions: np.ndarray):
        geometry = self.geometry
        for i, (x, y, z) in enumerate(positions):
            geometry.set_position(i, x, y, z)
        geometry.needs_update = True
        geometry.compute_vertex_normals()
        geometry.compute_bounding_sphere()


def _dispose_material(material: PhongMaterial):
    if material.map is not None:
        material.map.dispose()
    material.dispose()


class ClothEntity:
    """A flag-like cloth hanging from a pole.

    Lifecycle: UNINITIALIZED -> INITIALIZED -> RUNNING -> DISPOSED. ``mount``
    builds the simulation and its render resources and registers ``step``
    with the host clock. ``dispose`` unregisters first, then releases every
    resource exactly once. Without a camera the entity stays inert.

    Can be used as a context manager::

        with ClothEntity(context) as cloth:
            context.clock.run(100, cloth.config.timestep)

    Attributes:
        config: Simulation configuration.
        state: Current lifecycle state.
        simulator: The cloth simulator, while mounted.
        mesh: The cloth mesh, while mounted.
        pole: The pole mesh, while mounted.
    """

    def __init__(
        self,
        context: Optional[HostContext],
        config: Optional[SimConfig] = None,
        parent: Optional[SceneNode] = None,
        surface: Optional[SurfaceFunction] = None,
    ):
        self.context = context
        self.config = config or SimConfig()
        self.parent = parent
        self.surface = surface
        self.state = StepperState.UNINITIALIZED

        self.simulator: Optional[ClothSimulator] = None
        self.mesh: Optional[Mesh] = None
        self.pole: Optional[Mesh] = None
        self._target: Optional[SceneNode] = None
        self._sync: Optional[MeshSync] = None
        self._resources: Optional[ExitStack] = None

    def __enter__(self) -> "ClothEntity":
        self.mount()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False

    @property
    def running(self) -> bool:
        return self.state is StepperState.RUNNING

    def mount(self) -> bool:
        """Build the simulation and start stepping it on the host clock.

        Returns:
            False if the context has no camera and the entity stays inert.

        Raises:
            SimulationStateError: If the entity was already mounted or disposed.
        """
        if self.state is not StepperState.UNINITIALIZED:
            raise SimulationStateError(f"cannot mount a cloth that is {self.state.value}")

        context = self.context
        if context is None or context.camera is None:
            logger.info("No camera in simulation context, cloth stays inert")
            return False

        config = self.config
        target = self.parent or context.scene

        with ExitStack() as stack:
            stack.callback(self._release_state)

            self.simulator = ClothSimulator(config, self.surface)
            self._target = target

            geometry = ClothGeometry(
                self.simulator.grid.rest_position,
                config.width_segments,
                config.height_segments,
            )
            stack.callback(geometry.dispose)
            material = make_cloth_material(config.material)
            stack.callback(_dispose_material, material)

            self.mesh = Mesh(geometry, material, "cloth")
            self.mesh.cast_shadow = True
            self.mesh.receive_shadow = True
            target.add(self.mesh)
            stack.callback(target.remove, self.mesh)

            pole_geometry = BoxGeometry(
                config.pole_thickness, config.pole_height, config.pole_thickness
            )
            stack.callback(pole_geometry.dispose)
            pole_material = make_pole_material()
            stack.callback(pole_material.dispose)

            self.pole = Mesh(pole_geometry, pole_material, "pole")
            self.pole.position = config.pole_position
            self.pole.cast_shadow = True
            self.pole.receive_shadow = True
            target.add(self.pole)
            stack.callback(target.remove, self.pole)

            self._sync = MeshSync(geometry)
            self.state = StepperState.INITIALIZED

            handle = context.register_step(self.step)
            stack.callback(handle.unregister)
            self.state = StepperState.RUNNING

            self._resources = stack.pop_all()

        logger.info(
            f"Cloth mounted: {config.width_segments}x{config.height_segments} grid, "
            f"material={type(config.material).__name__}"
        )
        return True

    def step(self, elapsed_ms: float):
        """Advance the cloth one frame and update the render mesh.

        Args:
            elapsed_ms: Host clock time in milliseconds.

        Raises:
            SimulationStateError: If the entity is not running.
        """
        if self.state is not StepperState.RUNNING:
            raise SimulationStateError(f"cannot step a cloth that is {self.state.value}")

        camera = self.context.camera
        frame_quaternion = None
        if self._target is not self.context.scene:
            frame_quaternion = self._target.get_world_quaternion()

        self.simulator.step(
            elapsed_ms, camera.get_world_direction(), camera.up, frame_quaternion
        )
        self._sync.sync(self.simulator.get_positions())

    def dispose(self):
        """Stop stepping and release all resources. Safe to call repeatedly."""
        if self.state in (StepperState.UNINITIALIZED, StepperState.DISPOSED):
            return

        resources, self._resources = self._resources, None
        resources.close()
        self.state = StepperState.DISPOSED
        logger.info("Cloth disposed")

    def _release_state(self):
        self.simulator = None
        self.mesh = None
        self.pole = None
        self._target = None
        self._sync = None
        self.state = StepperState.UNINITIALIZED
