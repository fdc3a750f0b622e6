"""Spherical (unit sphere) camera."""

from __future__ import annotations

import numpy as np

from ..exceptions import DegenerateGeometry
from .base import GEOMETRY_EPS, CameraIntrinsics, CameraModel, broadcast_depth

# sin(theta) below this means the point is on the optical axis, where the
# longitude is undefined.
_AXIS_EPS = 1e-9


def sphere_angles(points_cam: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Range, longitude phi and colatitude theta of camera-frame points."""
    R = np.linalg.norm(points_cam, axis=1)
    if np.any(R < GEOMETRY_EPS):
        raise DegenerateGeometry("Point coincides with the camera centre")
    phi = np.arctan2(points_cam[:, 1], points_cam[:, 0])
    theta = np.arccos(np.clip(points_cam[:, 2] / R, -1.0, 1.0))
    return R, phi, theta


def sphere_jacobian(phi: np.ndarray, theta: np.ndarray, R: np.ndarray) -> np.ndarray:
    """Interaction matrix (2N x 6) of spherical coordinates (phi, theta).

    Args:
        phi: (N,) longitude
        theta: (N,) colatitude from the optical axis
        R: (N,) range of each point

    Raises:
        DegenerateGeometry: If a point lies on the optical axis
    """
    st, ct = np.sin(theta), np.cos(theta)
    sp, cp = np.sin(phi), np.cos(phi)
    if np.any(np.abs(st) < _AXIS_EPS):
        raise DegenerateGeometry("Point lies on the optical axis")

    n = len(phi)
    J = np.zeros((2 * n, 6), dtype=np.float64)
    J[0::2, 0] = sp / (R * st)
    J[0::2, 1] = -cp / (R * st)
    J[0::2, 3] = cp * ct / st
    J[0::2, 4] = sp * ct / st
    J[0::2, 5] = -1.0

    J[1::2, 0] = -cp * ct / R
    J[1::2, 1] = -sp * ct / R
    J[1::2, 2] = st / R
    J[1::2, 3] = sp
    J[1::2, 4] = -cp
    return J


class SphericalCamera(CameraModel):
    """Camera projecting onto the unit sphere.

    Features are (phi, theta) in radians: longitude about the optical axis
    and colatitude measured from it. The Jacobian depth is the point range.
    """

    kind = "spherical"

    def __init__(self, intrinsics: CameraIntrinsics | None = None) -> None:
        super().__init__(intrinsics)

    def _project_camera_frame(self, points_cam: np.ndarray) -> np.ndarray:
        _, phi, theta = sphere_angles(points_cam)
        return np.column_stack([phi, theta])

    def _depth_of(self, points_cam: np.ndarray) -> np.ndarray:
        return np.linalg.norm(points_cam, axis=1)

    def visible(self, features: np.ndarray) -> np.ndarray:
        """Every direction is visible on the sphere."""
        return np.ones(len(np.asarray(features).reshape(-1, 2)), dtype=bool)

    def jacobian(self, features, depth) -> np.ndarray:
        features = np.asarray(features, dtype=np.float64).reshape(-1, 2)
        R = broadcast_depth(depth, len(features))
        return sphere_jacobian(features[:, 0], features[:, 1], R)
