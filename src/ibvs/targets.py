"""Planar target point sets and matching image configurations."""

from __future__ import annotations

import numpy as np

from .exceptions import ConfigurationError
from .pose import SE3


def make_grid(n: int = 2, side: float = 0.5, pose: SE3 | None = None) -> np.ndarray:
    """Create an n x n planar grid of points.

    The grid lies in the local XY plane, centred on the origin, and is then
    moved by pose. For n = 2 the corners are ordered around the square:

        (-s, -s), (-s, s), (s, s), (s, -s)    with s = side / 2

    Args:
        n: Points per side (>= 2)
        side: Side length of the grid
        pose: Placement of the grid in the world (default: identity)

    Returns:
        (n*n)x3 world points
    """
    if n < 2:
        raise ConfigurationError(f"Grid needs at least 2 points per side, got {n}")
    if side <= 0:
        raise ConfigurationError(f"Grid side must be positive, got {side}")

    s = side / 2.0
    if n == 2:
        local = np.array([[-s, -s, 0.0], [-s, s, 0.0], [s, s, 0.0], [s, -s, 0.0]])
    else:
        ticks = np.linspace(-s, s, n)
        X, Y = np.meshgrid(ticks, ticks, indexing="ij")
        local = np.column_stack([X.ravel(), Y.ravel(), np.zeros(n * n)])

    if pose is None:
        return local
    return pose.transform_points(local)


def square_image_target(
    principal_point: tuple[float, float], half_size: float = 200.0
) -> np.ndarray:
    """Desired image corners of a square centred on the principal point.

    Ordered like make_grid(2): (-h, -h), (-h, h), (h, h), (h, -h) about the
    principal point.
    """
    offsets = half_size * np.array([[-1, -1], [-1, 1], [1, 1], [1, -1]], dtype=np.float64)
    return offsets + np.asarray(principal_point, dtype=np.float64)
