import math

import numpy as np
import pytest

from flag_sim.config import SimConfig
from flag_sim.forces import ForceModel, lerp
import warp as wp

from flag_sim.transforms import quat_from_axis_angle

FORWARD = (0.0, 0.0, -1.0)
UP = (0.0, 1.0, 0.0)


@pytest.fixture
def model(config):
    return ForceModel(config)


def test_lerp():
    assert lerp(24.0, 228.0, 0.0) == 24.0
    assert lerp(24.0, 228.0, 1.0) == 228.0
    assert lerp(24.0, 228.0, 0.5) == 126.0


def test_wind_strength_oscillates(model):
    assert model.wind_strength(0.0) == pytest.approx(126.0)
    assert model.wind_strength(1000.0 * math.pi / 2.0) == pytest.approx(228.0)
    assert model.wind_strength(1000.0 * 3.0 * math.pi / 2.0) == pytest.approx(24.0)


def test_wind_blows_to_camera_left(model):
    wind = model.compute_wind(FORWARD, UP, 0.0)
    np.testing.assert_allclose(wind, [-126.0, 0.0, 0.0])


def test_wind_follows_camera_heading(model):
    # Looking down -x, the camera's left is +z
    wind = model.compute_wind((-1.0, 0.0, 0.0), UP, 0.0)
    np.testing.assert_allclose(wind, [0.0, 0.0, 126.0], atol=1e-12)


def test_wind_ignores_forward_magnitude(model):
    wind = model.compute_wind((0.0, 0.0, -7.0), UP, 0.0)
    np.testing.assert_allclose(wind, [-126.0, 0.0, 0.0])


def test_degenerate_camera_gives_no_wind(model):
    wind = model.compute_wind((0.0, 1.0, 0.0), UP, 0.0)
    np.testing.assert_array_equal(wind, 0.0)
    assert np.all(np.isfinite(wind))


def test_gravity_is_constant(model):
    np.testing.assert_allclose(model.compute_gravity(), [0.0, -10.0, 0.0])
    np.testing.assert_allclose(model.compute_gravity(2.0), [0.0, -200.0, 0.0])


def test_custom_wind_range():
    model = ForceModel(SimConfig(wind_range=(0.0, 10.0), device="cpu"))
    assert model.wind_strength(0.0) == pytest.approx(5.0)


def test_world_frame_forces_unrotated(model):
    gravity, wind = model.frame_forces(FORWARD, UP, 0.0)
    np.testing.assert_allclose(gravity, [0.0, -10.0, 0.0])
    np.testing.assert_allclose(wind, [-126.0, 0.0, 0.0])

    gravity, wind = model.frame_forces(FORWARD, UP, 0.0, wp.quat_identity())
    np.testing.assert_allclose(wind, [-126.0, 0.0, 0.0])


def test_forces_rotate_into_parent_frame(model):
    yaw = quat_from_axis_angle((0.0, 1.0, 0.0), math.pi / 2.0)
    gravity, wind = model.frame_forces(FORWARD, UP, 0.0, yaw)

    np.testing.assert_allclose(gravity, [0.0, -10.0, 0.0], atol=1e-5)
    np.testing.assert_allclose(wind, [0.0, 0.0, -126.0], atol=1e-4)


def test_rolled_parent_tilts_gravity(model):
    roll = quat_from_axis_angle((0.0, 0.0, 1.0), math.pi / 2.0)
    gravity, _ = model.frame_forces(FORWARD, UP, 0.0, roll)
    # World down, seen from a frame rolled +90 deg about z, is local -x
    np.testing.assert_allclose(gravity, [-10.0, 0.0, 0.0], atol=1e-5)
