"""Perspective (central projection) camera."""

from __future__ import annotations

import numpy as np

from ..exceptions import DegenerateGeometry
from ..pose import SE3
from .base import GEOMETRY_EPS, CameraIntrinsics, CameraModel, broadcast_depth
from .ellipse import Ellipse


class CentralCamera(CameraModel):
    """Pinhole camera with central projection.

    The camera frame is X-right, Y-down, Z-forward (optical axis). A point
    (X, Y, Z) in the camera frame lands on pixel

        u = f/rho_u * X/Z + u0
        v = f/rho_v * Y/Z + v0
    """

    kind = "central"

    def __init__(self, intrinsics: CameraIntrinsics | None = None) -> None:
        super().__init__(intrinsics)

    @classmethod
    def default(cls, noise: float = 0.0, seed: int | None = None) -> CentralCamera:
        """Canonical 1024x1024 camera with an 8 mm lens and 10 um pixels."""
        return cls(CameraIntrinsics(noise=noise, seed=seed))

    @property
    def K(self) -> np.ndarray:
        """Return 3x3 camera intrinsic matrix."""
        return self._intrinsics.to_matrix()

    def _project_camera_frame(self, points_cam: np.ndarray) -> np.ndarray:
        Z = points_cam[:, 2]
        if np.any(np.abs(Z) < GEOMETRY_EPS):
            raise DegenerateGeometry("Point lies in the camera's principal plane (Z=0)")

        u0, v0 = self.principal_point
        u = self._intrinsics.fu * points_cam[:, 0] / Z + u0
        v = self._intrinsics.fv * points_cam[:, 1] / Z + v0
        return np.column_stack([u, v])

    def _depth_of(self, points_cam: np.ndarray) -> np.ndarray:
        return points_cam[:, 2].copy()

    def normalize(self, features: np.ndarray) -> np.ndarray:
        """Convert Nx2 pixel coordinates to normalized image coordinates."""
        features = np.asarray(features, dtype=np.float64).reshape(-1, 2)
        u0, v0 = self.principal_point
        x = (features[:, 0] - u0) / self._intrinsics.fu
        y = (features[:, 1] - v0) / self._intrinsics.fv
        return np.column_stack([x, y])

    def back_project(self, features: np.ndarray, depth, pose: SE3) -> np.ndarray:
        """Recover world points from pixel coordinates and known depth.

        Args:
            features: Nx2 pixel coordinates
            depth: Scalar or (N,) depth along the optical axis
            pose: Camera pose T_world_camera

        Returns:
            Nx3 world points
        """
        xy = self.normalize(features)
        Z = broadcast_depth(depth, len(xy))
        points_cam = np.column_stack([xy[:, 0] * Z, xy[:, 1] * Z, Z])
        return pose.transform_points(points_cam)

    def jacobian(self, features, depth) -> np.ndarray:
        """Image Jacobian for point features, or for an ellipse.

        For point features the interaction matrix is built in normalized
        coordinates (x, y) and each row is scaled back to pixels:

            [ -1/Z   0    x/Z   x*y    -(1+x^2)   y ]
            [  0   -1/Z   y/Z   1+y^2   -x*y     -x ]

        Args:
            features: Nx2 pixel coordinates, or an Ellipse
            depth: Scalar or (N,) depth Z for points; the supporting plane
                (a, b, c, d) when features is an Ellipse

        Returns:
            (2N, 6) Jacobian, or (5, 6) for an ellipse

        Raises:
            DegenerateGeometry: On non-positive depth or a degenerate plane
        """
        if isinstance(features, Ellipse):
            return self.ellipse_jacobian(features, depth)

        xy = self.normalize(features)
        n = len(xy)
        Z = broadcast_depth(depth, n)
        x, y = xy[:, 0], xy[:, 1]

        J = np.zeros((2 * n, 6), dtype=np.float64)
        J[0::2, 0] = -1.0 / Z
        J[0::2, 2] = x / Z
        J[0::2, 3] = x * y
        J[0::2, 4] = -(1.0 + x * x)
        J[0::2, 5] = y

        J[1::2, 1] = -1.0 / Z
        J[1::2, 2] = y / Z
        J[1::2, 3] = 1.0 + y * y
        J[1::2, 4] = -x * y
        J[1::2, 5] = -x

        J[0::2, :] *= self._intrinsics.fu
        J[1::2, :] *= self._intrinsics.fv
        return J

    @staticmethod
    def ellipse_jacobian(ellipse: Ellipse, plane) -> np.ndarray:
        """Image Jacobian (5x6) of an ellipse lying on a world plane.

        The ellipse parameters are in normalized image coordinates and the
        plane is given in the camera frame as aX + bY + cZ + d = 0.
        Reference: Espiau, Chaumette and Rives, "A New Approach to Visual
        Servoing in Robotics", IEEE T-RA 8(3), 1992.

        The translational columns carry a one-half weighting relative to the
        rotational columns.

        Raises:
            DegenerateGeometry: If the plane offset d is zero
        """
        plane = np.asarray(plane, dtype=np.float64).flatten()
        if plane.shape != (4,):
            raise ValueError(f"Plane must have 4 coefficients, got {plane.size}")
        if abs(plane[3]) < GEOMETRY_EPS:
            raise DegenerateGeometry("Plane passes through the camera centre (d=0)")

        a, b, c = -plane[:3] / plane[3]
        A1, A2, A3, A4, A5 = ellipse.coefficients

        L = np.array(
            [
                [
                    2 * b * A2 - 2 * a * A1,
                    2 * A1 * (b - a * A2),
                    2 * b * A4 - 2 * a * A1 * A3,
                    2 * A4,
                    2 * A1 * A3,
                    -2 * A2 * (A1 + 1),
                ],
                [
                    b - a * A2,
                    b * A2 - a * (2 * A2**2 - A1),
                    a * (A4 - 2 * A2 * A3) + b * A3,
                    -A3,
                    -(2 * A2 * A3 - A4),
                    A1 - 2 * A2**2 - 1,
                ],
                [
                    c - a * A3,
                    a * (A4 - 2 * A2 * A3) + c * A2,
                    c * A3 - a * (2 * A3**2 - A5),
                    -A2,
                    1 + 2 * A3**2 - A5,
                    A4 - 2 * A2 * A3,
                ],
                [
                    A3 * b + A2 * c - 2 * a * A4,
                    A4 * b + A1 * c - 2 * a * A2 * A4,
                    b * A5 + c * A4 - 2 * a * A3 * A4,
                    A5 - A1,
                    2 * A3 * A4 + A2,
                    -2 * A2 * A4 - A3,
                ],
                [
                    2 * c * A3 - 2 * a * A5,
                    2 * c * A4 - 2 * a * A2 * A5,
                    2 * c * A5 - 2 * a * A3 * A5,
                    -2 * A4,
                    2 * A3 * A5 + 2 * A3,
                    -2 * A2 * A5,
                ],
            ],
            dtype=np.float64,
        )
        # TODO: check the 0.5 translational weighting against the
        # Espiau/Chaumette derivation.
        return L @ np.diag([0.5, 0.5, 0.5, 1.0, 1.0, 1.0])
