"""Shared fixtures: the canonical four-point square servoing scenario."""

import numpy as np
import pytest

from ibvs import SE3, CentralCamera, make_grid, square_image_target


@pytest.fixture
def camera() -> CentralCamera:
    """Noise-free 1024x1024 camera with an 8 mm lens and 10 um pixels."""
    return CentralCamera.default()


@pytest.fixture
def square_points() -> np.ndarray:
    """Square of side 0.5 m in the plane Z = 3."""
    return make_grid(n=2, side=0.5, pose=SE3.from_translation(0.0, 0.0, 3.0))


@pytest.fixture
def desired_square(camera: CentralCamera) -> np.ndarray:
    """Image of the square seen from (0, 0, 2): 400 px side about the centre."""
    return square_image_target(camera.principal_point, half_size=200.0)


@pytest.fixture
def initial_pose() -> SE3:
    """Camera offset by (1, 1, -3) and rotated 0.6 rad about its optical axis."""
    return SE3.from_translation(1.0, 1.0, -3.0) @ SE3.from_rpy(0.0, 0.0, 0.6)
