"""Fisheye lens camera with selectable radial projection model."""

from __future__ import annotations

import numpy as np

from ..exceptions import ConfigurationError, DegenerateGeometry, UnsupportedProjectionModel
from .base import CameraIntrinsics, CameraModel, broadcast_depth
from .spherical import sphere_angles, sphere_jacobian

# model -> (r(theta)/k, theta(r/k), dr/dtheta / k)
_RADIAL_MODELS = {
    "equiangular": (
        lambda t: t,
        lambda s: s,
        lambda t: np.ones_like(t),
    ),
    "sine": (
        np.sin,
        lambda s: np.arcsin(np.clip(s, -1.0, 1.0)),
        np.cos,
    ),
    "equisolid": (
        lambda t: np.sin(t / 2.0),
        lambda s: 2.0 * np.arcsin(np.clip(s, -1.0, 1.0)),
        lambda t: 0.5 * np.cos(t / 2.0),
    ),
    "stereographic": (
        lambda t: np.tan(t / 2.0),
        lambda s: 2.0 * np.arctan(s),
        lambda t: 0.5 / np.cos(t / 2.0) ** 2,
    ),
}

# r(theta)/k at theta = pi/2, used to fit the hemisphere into the image
_HEMISPHERE_RADIUS = {
    "equiangular": np.pi / 2,
    "sine": 1.0,
    "equisolid": np.sin(np.pi / 4),
    "stereographic": np.tan(np.pi / 4),
}

FISHEYE_MODELS = tuple(_RADIAL_MODELS)


class FisheyeCamera(CameraModel):
    """Fisheye camera.

    A camera-frame point at range R, azimuth phi and polar angle theta from
    the optical axis is imaged at radius r = k * g(theta), where g is one of

        equiangular    r = k theta
        sine           r = k sin(theta)
        equisolid      r = k sin(theta/2)
        stereographic  r = k tan(theta/2)

    The image point (r cos phi, r sin phi) is converted to pixels with the
    pixel pitch and principal point. If k is not given it is chosen so the
    hemisphere exactly fills the shorter half-dimension of the image plane.
    """

    kind = "fisheye"

    def __init__(
        self,
        intrinsics: CameraIntrinsics | None = None,
        projection: str = "equiangular",
        k: float | None = None,
    ) -> None:
        """Initialize fisheye camera.

        Args:
            intrinsics: Sensor parameters (focal length is not used)
            projection: Radial model name, one of FISHEYE_MODELS
            k: Radial scale in metres (auto-derived if None)

        Raises:
            UnsupportedProjectionModel: If projection is not a known model
        """
        super().__init__(intrinsics)
        if projection not in _RADIAL_MODELS:
            raise UnsupportedProjectionModel(
                f"Unknown fisheye projection '{projection}', "
                f"expected one of {FISHEYE_MODELS}"
            )
        self._projection = projection
        self._forward, self._inverse, self._derivative = _RADIAL_MODELS[projection]

        if k is None:
            k = self._max_image_radius() / _HEMISPHERE_RADIUS[projection]
        elif k <= 0:
            raise ConfigurationError(f"k must be positive, got {k}")
        self._k = float(k)

    @classmethod
    def default(cls, projection: str = "equiangular", **kwargs) -> FisheyeCamera:
        """Canonical 1024x1024 fisheye camera with 10 um pixels."""
        return cls(CameraIntrinsics(**kwargs), projection=projection)

    @property
    def projection(self) -> str:
        """Return radial projection model name."""
        return self._projection

    @property
    def k(self) -> float:
        """Return radial scale in metres."""
        return self._k

    def _max_image_radius(self) -> float:
        """Largest circle about the principal point that fits the sensor (m)."""
        rho = np.array(self._intrinsics.pixel_size)
        npix = np.array(self._intrinsics.resolution, dtype=np.float64)
        pp = np.array(self._intrinsics.principal_point)
        return float(np.min(np.concatenate([(npix - pp) * rho, pp * rho])))

    def radial_distance(self, theta) -> np.ndarray:
        """Image-plane radius (m) for polar angle(s) theta."""
        return self._k * self._forward(np.asarray(theta, dtype=np.float64))

    def _project_camera_frame(self, points_cam: np.ndarray) -> np.ndarray:
        _, phi, theta = sphere_angles(points_cam)
        r = self.radial_distance(theta)
        x = r * np.cos(phi)
        y = r * np.sin(phi)

        rho_u, rho_v = self._intrinsics.pixel_size
        u0, v0 = self.principal_point
        return np.column_stack([x / rho_u + u0, y / rho_v + v0])

    def _depth_of(self, points_cam: np.ndarray) -> np.ndarray:
        return np.linalg.norm(points_cam, axis=1)

    def jacobian(self, features, depth) -> np.ndarray:
        """Image Jacobian of fisheye point features.

        The features are mapped back to sphere angles (phi, theta) and the
        spherical interaction matrix is chained with the derivative of the
        radial mapping.

        Args:
            features: Nx2 pixel coordinates
            depth: Scalar or (N,) point range R

        Raises:
            DegenerateGeometry: If a feature sits at the principal point
        """
        features = np.asarray(features, dtype=np.float64).reshape(-1, 2)
        n = len(features)
        R = broadcast_depth(depth, n)

        rho_u, rho_v = self._intrinsics.pixel_size
        u0, v0 = self.principal_point
        x = (features[:, 0] - u0) * rho_u
        y = (features[:, 1] - v0) * rho_v
        r = np.hypot(x, y)
        if np.any(r < 1e-12):
            raise DegenerateGeometry("Feature at the principal point")

        phi = np.arctan2(y, x)
        theta = self._inverse(r / self._k)
        dr = self._k * self._derivative(theta)

        J_sphere = sphere_jacobian(phi, theta, R)
        J = np.empty((2 * n, 6), dtype=np.float64)
        for i in range(n):
            sp, cp = np.sin(phi[i]), np.cos(phi[i])
            # d(u, v) / d(phi, theta)
            D = np.array(
                [
                    [-r[i] * sp / rho_u, dr[i] * cp / rho_u],
                    [r[i] * cp / rho_v, dr[i] * sp / rho_v],
                ]
            )
            J[2 * i:2 * i + 2, :] = D @ J_sphere[2 * i:2 * i + 2, :]
        return J

    def __repr__(self) -> str:
        """Return string representation."""
        return f"FisheyeCamera({self._projection}, k={self._k:.4g})"
