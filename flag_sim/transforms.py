"""
Quaternion helpers on top of warp's Python-scope builtins.

Rotations are ``wp.quat`` values in (x, y, z, w) order. Vectors go in as any
3-sequence and come back as NumPy arrays.
"""

import numpy as np
import warp as wp


def as_vec3(v) -> wp.vec3:
    return wp.vec3(*[float(c) for c in v])


def as_quat(q) -> wp.quat:
    return wp.quat(*[float(c) for c in q])


def to_numpy(v) -> np.ndarray:
    """Copy a warp vector or quaternion into a float64 array."""
    return np.array([v[i] for i in range(len(v))], dtype=np.float64)


def quat_from_axis_angle(axis, angle: float) -> wp.quat:
    axis = np.asarray(axis, dtype=np.float64)
    return wp.quat_from_axis_angle(as_vec3(axis / np.linalg.norm(axis)), float(angle))


def quat_multiply(a, b) -> wp.quat:
    """Hamilton product ``a * b`` (apply b, then a)."""
    return wp.mul(as_quat(a), as_quat(b))


def quat_rotate(q, v) -> np.ndarray:
    return to_numpy(wp.quat_rotate(as_quat(q), as_vec3(v)))


def quat_rotate_inv(q, v) -> np.ndarray:
    """Rotate ``v`` by the inverse of unit quaternion ``q``."""
    return to_numpy(wp.quat_rotate_inv(as_quat(q), as_vec3(v)))


def quat_look_at(direction, up=(0.0, 1.0, 0.0)) -> wp.quat:
    """Rotation taking the local -z axis onto ``direction``.

    ``direction`` must not be parallel to ``up``.
    """
    forward = np.asarray(direction, dtype=np.float64)
    z_axis = -forward / np.linalg.norm(forward)
    x_axis = np.cross(np.asarray(up, dtype=np.float64), z_axis)
    x_axis = x_axis / np.linalg.norm(x_axis)
    y_axis = np.cross(z_axis, x_axis)
    m = np.column_stack([x_axis, y_axis, z_axis])
    return wp.quat_from_matrix(wp.mat33(*[float(c) for c in m.flatten()]))
