"""
Host side of the simulation: the per-frame clock and the context the cloth
is mounted into.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

import numpy as np

from .scene import Camera, Scene, SceneNode

logger = logging.getLogger(__name__)

StepCallback = Callable[[float], None]


class StepHandle:
    """Registration of one step callback. ``unregister`` is idempotent."""

    def __init__(self, registry: "StepRegistry", callback: StepCallback):
        self._registry = registry
        self.callback = callback
        self.active = True

    def unregister(self):
        if not self.active:
            return
        self.active = False
        self._registry.unregister_step(self.callback)


class StepRegistry(Protocol):
    def register_step(self, callback: StepCallback) -> StepHandle: ...

    def unregister_step(self, callback: StepCallback) -> None: ...


class HostContext(StepRegistry, Protocol):
    """What a cloth needs from its host."""

    scene: SceneNode
    camera: Optional[Camera]


class FrameClock:
    """Dispatches elapsed time to registered step callbacks.

    Callbacks run synchronously in registration order. A callback removed
    during a tick is not called for the rest of that tick.
    """

    def __init__(self):
        self._callbacks: List[StepCallback] = []
        self.frames = 0

    @property
    def callbacks(self) -> List[StepCallback]:
        return list(self._callbacks)

    def register_step(self, callback: StepCallback) -> StepHandle:
        self._callbacks.append(callback)
        return StepHandle(self, callback)

    def unregister_step(self, callback: StepCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def tick(self, elapsed_ms: float):
        for callback in list(self._callbacks):
            if callback in self._callbacks:
                callback(elapsed_ms)
        self.frames += 1

    def run(self, frames: int, timestep: float, start_ms: float = 0.0):
        """Tick ``frames`` times, ``timestep`` seconds apart."""
        for k in range(frames):
            self.tick(start_ms + k * timestep * 1000.0)


@dataclass
class SimulationContext:
    """Scene, camera and clock handed to simulated entities."""

    scene: SceneNode = field(default_factory=Scene)
    camera: Optional[Camera] = field(default_factory=Camera)
    clock: FrameClock = field(default_factory=FrameClock)

    def register_step(self, callback: StepCallback) -> StepHandle:
        self.clock.register_step(callback)
        return StepHandle(self, callback)

    def unregister_step(self, callback: StepCallback) -> None:
        self.clock.unregister_step(callback)


def make_context(camera_position=(0.0, 0.0, 500.0), look_at=(0.0, 0.0, 0.0)) -> SimulationContext:
    """Context with a camera placed at ``camera_position`` facing ``look_at``."""
    context = SimulationContext()
    context.camera.position = np.asarray(camera_position, dtype=np.float64)
    context.camera.look_at(look_at)
    context.scene.add(context.camera)
    return context
