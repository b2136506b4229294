"""
Render-side objects the cloth attaches to and writes into.

A small NumPy scene model: nodes with world orientation, a camera, a
parametric grid geometry whose vertex order matches the particle grid, and
disposable materials and textures.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import matplotlib.image as mpimg
import warp as wp

from .config import Flat, MaterialConfig, Textured
from .geometry import SurfaceFunction, grid_index
from .transforms import quat_look_at, quat_multiply, quat_rotate

logger = logging.getLogger(__name__)


class SceneNode:
    """Node in a transform hierarchy. Only orientation composes."""

    def __init__(self, name: str = ""):
        self.name = name
        self.parent: Optional["SceneNode"] = None
        self.children: List["SceneNode"] = []
        self.position = np.zeros(3, dtype=np.float64)
        self.quaternion = wp.quat_identity()

    def add(self, child: "SceneNode"):
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)

    def remove(self, child: "SceneNode"):
        if child in self.children:
            self.children.remove(child)
            child.parent = None

    def get_world_quaternion(self) -> wp.quat:
        q = self.quaternion
        node = self.parent
        while node is not None:
            q = quat_multiply(node.quaternion, q)
            node = node.parent
        return q


class Scene(SceneNode):
    """Root of the hierarchy."""


class Group(SceneNode):
    pass


class Camera(SceneNode):
    """Camera looking down its local -z axis."""

    def __init__(self, name: str = "camera"):
        super().__init__(name)
        self.up = np.array([0.0, 1.0, 0.0], dtype=np.float64)

    def get_world_direction(self) -> np.ndarray:
        return quat_rotate(self.get_world_quaternion(), [0.0, 0.0, -1.0])

    def look_at(self, target):
        """Orient the camera towards a world point (parent rotation ignored)."""
        direction = np.asarray(target, dtype=np.float64) - self.position
        self.quaternion = quat_look_at(direction, self.up)


class Disposable:
    """Render resource released with ``dispose()``."""

    def __init__(self):
        self.dispose_count = 0

    @property
    def disposed(self) -> bool:
        return self.dispose_count > 0

    def dispose(self):
        self.dispose_count += 1


class ClothGeometry(Disposable):
    """Parametric grid geometry with one vertex per cloth particle.

    Vertex ``u + v * (slices + 1)`` samples the surface at
    ``(u / slices, v / stacks)``.

    Attributes:
        positions: Vertex buffer of shape (N, 3).
        normals: Vertex normals of shape (N, 3).
        uvs: Texture coordinates of shape (N, 2).
        indices: Triangle indices of shape (2 * slices * stacks, 3).
        needs_update: Set after a full write so the renderer re-uploads.
        bounding_sphere: (center, radius) after ``compute_bounding_sphere``.
    """

    def __init__(self, surface: SurfaceFunction, slices: int, stacks: int):
        super().__init__()
        self.slices = slices
        self.stacks = stacks

        count = (slices + 1) * (stacks + 1)
        self.positions = np.zeros((count, 3), dtype=np.float32)
        self.uvs = np.zeros((count, 2), dtype=np.float32)
        for v in range(stacks + 1):
            for u in range(slices + 1):
                i = grid_index(u, v, slices)
                self.positions[i] = surface(u / slices, v / stacks)
                self.uvs[i] = (u / slices, v / stacks)

        faces = []
        for v in range(stacks):
            for u in range(slices):
                a = grid_index(u, v, slices)
                b = grid_index(u + 1, v, slices)
                c = grid_index(u + 1, v + 1, slices)
                d = grid_index(u, v + 1, slices)
                faces.append((a, b, d))
                faces.append((b, c, d))
        self.indices = np.array(faces, dtype=np.int32)

        self.normals = np.zeros_like(self.positions)
        self.needs_update = False
        self.bounding_sphere = None
        self.compute_vertex_normals()

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    def set_position(self, index: int, x: float, y: float, z: float):
        self.positions[index] = (x, y, z)

    def compute_vertex_normals(self):
        """Area-weighted vertex normals from the triangle faces."""
        p = self.positions.astype(np.float64)
        a, b, c = p[self.indices[:, 0]], p[self.indices[:, 1]], p[self.indices[:, 2]]
        face_normals = np.cross(c - b, a - b)

        normals = np.zeros_like(p)
        for k in range(3):
            np.add.at(normals, self.indices[:, k], face_normals)

        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        lengths[lengths == 0.0] = 1.0
        self.normals = (normals / lengths).astype(np.float32)

    def compute_bounding_sphere(self):
        p = self.positions.astype(np.float64)
        center = (p.min(axis=0) + p.max(axis=0)) / 2.0
        radius = float(np.sqrt(((p - center) ** 2).sum(axis=1).max()))
        self.bounding_sphere = (center, radius)
        return self.bounding_sphere


class BoxGeometry(Disposable):
    def __init__(self, width: float, height: float, depth: float):
        super().__init__()
        self.width = width
        self.height = height
        self.depth = depth


class Texture(Disposable):
    """Image texture. ``image`` is dropped on dispose."""

    def __init__(self, image: np.ndarray, source: str = ""):
        super().__init__()
        self.image = image
        self.source = source
        self.flip_y = False
        self.anisotropy = 16

    def dispose(self):
        super().dispose()
        self.image = None


def load_texture(source: str) -> Texture:
    """Read an image file into a texture."""
    logger.debug(f"Loading texture: {source}")
    return Texture(mpimg.imread(source), source)


@dataclass
class PhongMaterial(Disposable):
    color: int = 0xFFFFFF
    map: Optional[Texture] = None
    double_sided: bool = True
    shininess: float = 100.0
    specular: int = 0x222222
    emissive: int = 0x000000
    emissive_intensity: float = 1.0
    dispose_count: int = field(default=0, init=False)


def make_cloth_material(material: MaterialConfig) -> PhongMaterial:
    """Build the cloth material once from its config variant."""
    if isinstance(material, Textured):
        return PhongMaterial(map=load_texture(material.source))
    if isinstance(material, Flat):
        return PhongMaterial(color=material.color)
    raise TypeError(f"Unknown material config: {material!r}")


def make_pole_material() -> PhongMaterial:
    return PhongMaterial(
        shininess=200.0,
        specular=0xFFFFFF,
        emissive=0xFFFFFF,
        emissive_intensity=0.15,
        double_sided=False,
    )


class Mesh(SceneNode):
    def __init__(self, geometry, material: PhongMaterial, name: str = ""):
        super().__init__(name)
        self.geometry = geometry
        self.material = material
        self.cast_shadow = False
        self.receive_shadow = False
