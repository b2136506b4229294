import numpy as np
import pytest
import warp as wp

from flag_sim import kernels
from flag_sim.config import SimConfig
from flag_sim.dynamics import ColliderResolver, ConstraintSolver, Integrator, PinController
from flag_sim.geometry import ConstraintSet, ParticleGrid


def relax_pairs(points, edges, rest):
    pos = wp.array(np.asarray(points, dtype=np.float32), dtype=wp.vec3, device="cpu")
    wp.launch(
        kernels.satisfy_constraints,
        dim=1,
        inputs=[
            pos,
            wp.array(np.asarray(edges, dtype=np.int32), dtype=wp.int32, device="cpu"),
            wp.array(np.asarray(rest, dtype=np.float32), dtype=wp.float32, device="cpu"),
        ],
        device="cpu",
    )
    return pos.numpy()


@pytest.mark.parametrize(
    "a,b",
    [
        ([0.0, 0.0, 0.0], [3.0, 0.0, 0.0]),
        ([0.0, 0.0, 0.0], [0.25, 0.0, 0.0]),
        ([1.0, 2.0, 3.0], [2.0, -1.0, 5.0]),
    ],
)
def test_relaxation_is_symmetric(a, b):
    before = np.array([a, b], dtype=np.float32)
    after = relax_pairs(before, [[0, 1]], [1.0])

    moved_a = after[0] - before[0]
    moved_b = after[1] - before[1]
    np.testing.assert_allclose(moved_a, -moved_b, atol=1e-6)
    np.testing.assert_allclose(after.mean(axis=0), before.mean(axis=0), atol=1e-6)
    assert np.linalg.norm(after[1] - after[0]) == pytest.approx(1.0, rel=1e-5)


def test_pair_at_rest_length_is_untouched():
    before = np.array([[0.0, 0.0, 0.0], [0.0, -2.0, 0.0]], dtype=np.float32)
    after = relax_pairs(before, [[0, 1]], [2.0])
    np.testing.assert_array_equal(after, before)


def test_coincident_pair_is_skipped():
    before = np.array([[4.0, 5.0, 6.0], [4.0, 5.0, 6.0]], dtype=np.float32)
    after = relax_pairs(before, [[0, 1]], [1.0])
    np.testing.assert_array_equal(after, before)
    assert np.all(np.isfinite(after))


def test_relaxation_runs_in_order():
    # Chain 0-1-2: the second constraint sees particle 1 already moved
    before = np.array([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0], [4.0, 0.0, 0.0]], dtype=np.float32)
    after = relax_pairs(before, [[0, 1], [1, 2]], [1.0, 1.0])
    np.testing.assert_allclose(after[0], [0.5, 0.0, 0.0], atol=1e-6)
    np.testing.assert_allclose(after[1], [2.25, 0.0, 0.0], atol=1e-6)
    np.testing.assert_allclose(after[2], [3.25, 0.0, 0.0], atol=1e-6)


def test_solver_single_pass_on_grid(small_config):
    grid = ParticleGrid(small_config)
    solver = ConstraintSolver(grid, ConstraintSet(grid, small_config.rest_distance))

    stretched = grid.get_positions() * np.array([1.5, 1.0, 1.0], dtype=np.float32)
    grid.pos.assign(stretched)
    solver.relax()

    after = grid.get_positions()
    assert not np.allclose(after, stretched)
    # Uniform masses: the cloth's centroid does not move
    np.testing.assert_allclose(after.mean(axis=0), stretched.mean(axis=0), atol=1e-4)


def test_verlet_step_from_rest(small_config):
    grid = ParticleGrid(small_config)
    integrator = Integrator(grid, small_config)
    start = grid.get_positions()

    integrator.step(np.array([0.0, -10.0, 0.0]), np.zeros(3))

    dt_sq = small_config.timestep ** 2
    np.testing.assert_allclose(
        grid.get_positions() - start,
        np.tile([0.0, -100.0 * dt_sq, 0.0], (len(start), 1)),
        rtol=1e-4,
        atol=1e-6,
    )
    np.testing.assert_array_equal(grid.get_previous_positions(), start)
    np.testing.assert_array_equal(grid.acc.numpy(), 0.0)


def test_verlet_carries_implied_velocity_with_drag(small_config):
    grid = ParticleGrid(small_config)
    integrator = Integrator(grid, small_config)
    start = grid.get_positions()
    grid.prev.assign(start - np.array([1.0, 0.0, 0.0], dtype=np.float32))

    integrator.step(np.zeros(3), np.zeros(3))

    moved = grid.get_positions() - start
    np.testing.assert_allclose(moved[:, 0], small_config.drag, rtol=1e-4)
    np.testing.assert_allclose(moved[:, 1:], 0.0, atol=1e-5)


def test_wind_accelerates_by_inverse_mass(small_config):
    grid = ParticleGrid(small_config)
    Integrator(grid, small_config).step(np.zeros(3), np.array([-126.0, 0.0, 0.0]))

    dx = grid.get_positions()[:, 0] - grid.get_original_positions()[:, 0]
    np.testing.assert_allclose(dx, -1260.0 * small_config.timestep ** 2, rtol=1e-4)


def test_pins_override_solver_output(config):
    grid = ParticleGrid(config)
    pins = PinController(grid, config)
    grid.pos.assign(grid.get_positions() + np.float32(7.0))
    grid.prev.assign(grid.get_positions() - np.float32(1.0))

    pins.apply()

    targets = pins.targets()
    pos = grid.get_positions()
    prev = grid.get_previous_positions()
    np.testing.assert_array_equal(pos[pins.indices], targets)
    np.testing.assert_array_equal(prev[pins.indices], targets)

    # Targets sit one standoff beyond the cloth's last column
    original = grid.get_original_positions()
    np.testing.assert_allclose(targets[:, 0], original[pins.indices, 0] + 2.5)
    np.testing.assert_allclose(targets[:, 1:], original[pins.indices, 1:])


def test_pin_targets_follow_grid_offset(small_config):
    grid = ParticleGrid(small_config)
    pins = PinController(grid, small_config)
    before = pins.targets()

    grid.offset = grid.offset + np.array([0.0, 0.0, 10.0])
    np.testing.assert_allclose(pins.targets() - before, [[0.0, 0.0, 10.0]] * len(pins))


def test_explicit_pin_uses_its_row():
    config = SimConfig(pin_indices=[40], device="cpu")
    grid = ParticleGrid(config)
    pins = PinController(grid, config)
    assert pins.row_fractions.tolist() == [4 / 16]
    np.testing.assert_allclose(
        pins.targets()[0], [127.5, -4 * 250.0 / 9.0, 0.0], rtol=1e-6
    )


def test_no_pins(small_config):
    small_config.pin_indices = []
    grid = ParticleGrid(small_config)
    pins = PinController(grid, small_config)
    start = grid.get_positions()
    pins.apply()
    np.testing.assert_array_equal(grid.get_positions(), start)


def test_collider_pushes_particles_out(small_config):
    grid = ParticleGrid(small_config)
    center = np.array([1.0, -50.0, 2.0])
    collider = ColliderResolver(grid, center, 2.5)

    inside = np.zeros((grid.num_particles, 3), dtype=np.float32)
    rng = np.random.default_rng(0)
    angles = rng.uniform(0.0, 2.0 * np.pi, grid.num_particles)
    radii = rng.uniform(0.1, 2.4, grid.num_particles)
    inside[:, 0] = center[0] + radii * np.cos(angles)
    inside[:, 1] = rng.uniform(-30.0, 30.0, grid.num_particles)
    inside[:, 2] = center[2] + radii * np.sin(angles)
    grid.pos.assign(inside)

    collider.resolve()

    after = grid.get_positions()
    planar = np.hypot(after[:, 0] - center[0], after[:, 2] - center[2])
    np.testing.assert_allclose(planar, 2.5, rtol=1e-5)
    np.testing.assert_array_equal(after[:, 1], inside[:, 1])
    # Pushed radially, keeping the angle
    np.testing.assert_allclose(
        np.arctan2(after[:, 2] - center[2], after[:, 0] - center[0]),
        np.arctan2(inside[:, 2] - center[2], inside[:, 0] - center[0]),
        atol=1e-4,
    )


def test_collider_leaves_outside_and_axis_particles(small_config):
    grid = ParticleGrid(small_config)
    collider = ColliderResolver(grid, (0.0, 0.0, 0.0), 2.5)

    points = grid.get_positions()
    points[0] = [0.0, 3.0, 0.0]
    points[1] = [2.5, 0.0, 0.0]
    grid.pos.assign(points)

    collider.resolve()

    # Outside the radius already, or exactly on the axis
    np.testing.assert_array_equal(grid.get_positions(), points)
