import matplotlib

matplotlib.use("Agg")

import pytest
import warp as wp

from flag_sim.config import SimConfig

wp.init()


@pytest.fixture
def config():
    return SimConfig(device="cpu")


@pytest.fixture
def small_config():
    return SimConfig(cloth_width=30.0, width_segments=3, height_segments=2, device="cpu")
