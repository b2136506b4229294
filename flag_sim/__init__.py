"""
Flag Cloth Simulation Package

A Verlet mass-spring cloth pinned to a pole and blown by camera-relative
wind, stepped with NVIDIA Warp once per host frame and written into a
render mesh.
"""

from .config import SimConfig, Textured, Flat, resolve_material
from .geometry import ParticleGrid, ConstraintSet, make_constraints, make_pins
from .forces import ForceModel
from .dynamics import Integrator, ConstraintSolver, PinController, ColliderResolver
from .simulation import ClothSimulator
from .context import FrameClock, SimulationContext, StepHandle, make_context
from .entity import ClothEntity, MeshSync, SimulationStateError, StepperState
from .recording import save_trajectory, load_trajectory
from .visualization import animate_cloth, plot_trajectories

__all__ = [
    "SimConfig",
    "Textured",
    "Flat",
    "resolve_material",
    "ParticleGrid",
    "ConstraintSet",
    "make_constraints",
    "make_pins",
    "ForceModel",
    "Integrator",
    "ConstraintSolver",
    "PinController",
    "ColliderResolver",
    "ClothSimulator",
    "FrameClock",
    "SimulationContext",
    "StepHandle",
    "make_context",
    "ClothEntity",
    "MeshSync",
    "SimulationStateError",
    "StepperState",
    "save_trajectory",
    "load_trajectory",
    "animate_cloth",
    "plot_trajectories",
]
