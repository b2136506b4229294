"""
Warp kernels for the flag cloth simulation.

Forces arrive as per-frame ``wp.vec3`` arguments computed on the host.
Constraint relaxation runs as a single thread so constraints are relaxed
in creation order on every device.

Note: Kernels must be defined at module level (not inside classes) per Warp requirements.
"""

import warp as wp


@wp.kernel
def zero_vec3(a: wp.array(dtype=wp.vec3)):
    """Zero out a vec3 array.

    Args:
        a: Array to zero out (modified in place).
    """
    i = wp.tid()
    a[i] = wp.vec3(0.0, 0.0, 0.0)


@wp.kernel
def accumulate_forces(
    acc: wp.array(dtype=wp.vec3),
    inv_mass: wp.array(dtype=wp.float32),
    gravity: wp.vec3,
    wind: wp.vec3,
):
    """Add gravity and wind, as accelerations, to each particle.

    Args:
        acc: Acceleration accumulator (modified in place).
        inv_mass: Inverse mass of each particle.
        gravity: Gravity force for this frame.
        wind: Wind force for this frame.
    """
    i = wp.tid()
    a = acc[i] + gravity * inv_mass[i]
    acc[i] = a + wind * inv_mass[i]


@wp.kernel
def verlet_integrate(
    pos: wp.array(dtype=wp.vec3),
    prev: wp.array(dtype=wp.vec3),
    acc: wp.array(dtype=wp.vec3),
    drag: float,
    dt_sq: float,
):
    """Advance positions with position Verlet and consume the acceleration.

    x' = (x - x_prev) * drag + x + a * dt^2

    Args:
        pos: Particle positions (modified in place).
        prev: Previous positions (modified in place).
        acc: Accumulated acceleration (reset to zero).
        drag: 1 - damping.
        dt_sq: Squared time step.
    """
    i = wp.tid()
    x = pos[i]
    x_new = (x - prev[i]) * drag + x + acc[i] * dt_sq

    prev[i] = x
    pos[i] = x_new
    acc[i] = wp.vec3(0.0, 0.0, 0.0)


@wp.kernel
def satisfy_constraints(
    pos: wp.array(dtype=wp.vec3),
    edges: wp.array2d(dtype=wp.int32),
    rest: wp.array(dtype=wp.float32),
):
    """One relaxation pass over every distance constraint.

    Each pair is moved half the correction each, towards the rest length.
    Coincident pairs are skipped. Should be launched with dim=1 (single
    thread) since later constraints read positions written by earlier ones.

    Args:
        pos: Particle positions (modified in place).
        edges: Constraint connectivity (N x 2 array of particle indices).
        rest: Rest length of each constraint.
    """
    for e in range(edges.shape[0]):
        i = edges[e][0]
        j = edges[e][1]

        diff = pos[j] - pos[i]
        dist = wp.length(diff)
        if dist > 0.0:
            correction = diff * (1.0 - rest[e] / dist)
            half = correction * 0.5
            pos[i] = pos[i] + half
            pos[j] = pos[j] - half


@wp.kernel
def apply_pins(
    pos: wp.array(dtype=wp.vec3),
    prev: wp.array(dtype=wp.vec3),
    pins: wp.array(dtype=wp.int32),
    targets: wp.array(dtype=wp.vec3),
):
    """Snap pinned particles to their targets with zero implied velocity.

    Args:
        pos: Particle positions (modified in place).
        prev: Previous positions (modified in place).
        pins: Pinned particle indices.
        targets: Target position of each pin.
    """
    k = wp.tid()
    i = pins[k]
    pos[i] = targets[k]
    prev[i] = targets[k]


@wp.kernel
def collide_cylinder(
    pos: wp.array(dtype=wp.vec3),
    center_x: float,
    center_z: float,
    radius: float,
):
    """Push particles out of an infinite vertical cylinder.

    Particles exactly on the axis have no push direction and are left alone.

    Args:
        pos: Particle positions (modified in place).
        center_x: Cylinder axis x.
        center_z: Cylinder axis z.
        radius: Cylinder radius.
    """
    i = wp.tid()
    p = pos[i]
    dx = p[0] - center_x
    dz = p[2] - center_z
    dist = wp.sqrt(dx * dx + dz * dz)

    if dist < radius and dist > 0.0:
        correction = radius - dist
        pos[i] = wp.vec3(p[0] + dx / dist * correction, p[1], p[2] + dz / dist * correction)
