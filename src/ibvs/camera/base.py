"""Camera intrinsics and the common camera model interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from ..exceptions import ConfigurationError, DegenerateGeometry
from ..pose import SE3

# Distances below this are treated as a point sitting at the camera centre.
GEOMETRY_EPS = 1e-12


@dataclass
class CameraIntrinsics:
    """Intrinsic parameters shared by all camera models.

    Defaults describe the canonical camera: 8 mm lens, 10 um square pixels,
    1024x1024 sensor with the principal point at the image centre.

    Attributes:
        focal_length: Focal length in metres
        pixel_size: Pixel pitch (rho_u, rho_v) in metres
        resolution: Image size (width, height) in pixels
        principal_point: (u0, v0) in pixels, image centre if None
        noise: Standard deviation of additive Gaussian pixel noise
        seed: Seed for the noise generator (None for non-deterministic)
    """

    focal_length: float = 8e-3
    pixel_size: tuple[float, float] = (10e-6, 10e-6)
    resolution: tuple[int, int] = (1024, 1024)
    principal_point: tuple[float, float] | None = None
    noise: float = 0.0
    seed: int | None = None

    def __post_init__(self) -> None:
        """Validate and normalize inputs."""
        self.focal_length = as_number(self.focal_length, "focal_length")
        self.noise = as_number(self.noise, "noise")
        self.pixel_size = _as_pair(self.pixel_size, "pixel_size", float)
        self.resolution = _as_pair(self.resolution, "resolution", int)
        if self.principal_point is None:
            self.principal_point = (
                self.resolution[0] / 2.0,
                self.resolution[1] / 2.0,
            )
        else:
            self.principal_point = _as_pair(
                self.principal_point, "principal_point", float
            )

        if self.focal_length <= 0:
            raise ConfigurationError(
                f"focal_length must be positive, got {self.focal_length}"
            )
        if min(self.pixel_size) <= 0:
            raise ConfigurationError(
                f"pixel_size must be positive, got {self.pixel_size}"
            )
        if min(self.resolution) <= 0:
            raise ConfigurationError(
                f"resolution must be positive, got {self.resolution}"
            )
        if self.noise < 0:
            raise ConfigurationError(f"noise must be >= 0, got {self.noise}")

    @property
    def fu(self) -> float:
        """Focal length in u-pixels."""
        return self.focal_length / self.pixel_size[0]

    @property
    def fv(self) -> float:
        """Focal length in v-pixels."""
        return self.focal_length / self.pixel_size[1]

    def to_matrix(self) -> np.ndarray:
        """Return 3x3 camera intrinsic matrix K."""
        u0, v0 = self.principal_point
        return np.array(
            [[self.fu, 0.0, u0], [0.0, self.fv, v0], [0.0, 0.0, 1.0]],
            dtype=np.float64,
        )


def as_number(value, name: str, kind=float):
    """Convert a config value to float or int, as YAML may hand over strings.

    Raises:
        ConfigurationError: If the value is not a number (or not integral
            when kind is int)
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if kind is int:
        if not number.is_integer():
            raise ConfigurationError(f"{name} must be an integer, got {value!r}")
        return int(number)
    return number


def _as_pair(value, name: str, kind) -> tuple:
    """Expand a scalar to a pair and validate a 2-sequence."""
    if np.isscalar(value):
        return (as_number(value, name, kind), as_number(value, name, kind))
    values = tuple(as_number(v, name, kind) for v in value)
    if len(values) != 2:
        raise ConfigurationError(f"{name} must have 2 elements, got {len(values)}")
    return values


def as_point_array(points: np.ndarray) -> np.ndarray:
    """Return world points as an Nx3 float64 array.

    A 3xN array (toolbox column convention) is transposed when N != 3.
    """
    points = np.asarray(points, dtype=np.float64)
    if points.ndim == 1 and points.size == 3:
        points = points.reshape(1, 3)
    if points.ndim != 2:
        raise ConfigurationError(f"Points must be Nx3, got {points.shape}")
    if points.shape[1] != 3 and points.shape[0] == 3:
        points = points.T
    if points.shape[1] != 3 or len(points) == 0:
        raise ConfigurationError(f"Points must be Nx3, got {points.shape}")
    return points


def broadcast_depth(depth, n_points: int) -> np.ndarray:
    """Broadcast a scalar or per-point depth to (N,) and check it is usable."""
    depth = np.asarray(depth, dtype=np.float64).flatten()
    if depth.size == 1:
        depth = np.full(n_points, depth[0])
    if depth.shape != (n_points,):
        raise ConfigurationError(
            f"Expected {n_points} depth values, got {depth.size}"
        )
    if not np.isfinite(depth).all() or np.any(depth <= 0):
        raise DegenerateGeometry(f"Depth must be positive and finite, got {depth}")
    return depth


class CameraModel(ABC):
    """Interface shared by the perspective, fisheye and spherical cameras.

    A camera maps world points, seen from a pose, to 2D features and gives
    the image Jacobian relating feature velocity to the camera twist
    [vx, vy, vz, wx, wy, wz] expressed in the camera frame.
    """

    kind: str = "camera"

    def __init__(self, intrinsics: CameraIntrinsics | None = None) -> None:
        self._intrinsics = intrinsics if intrinsics is not None else CameraIntrinsics()
        self._rng = np.random.default_rng(self._intrinsics.seed)

    @property
    def intrinsics(self) -> CameraIntrinsics:
        """Return camera intrinsic parameters."""
        return self._intrinsics

    @property
    def principal_point(self) -> tuple[float, float]:
        """Return (u0, v0) in pixels."""
        return self._intrinsics.principal_point

    @property
    def resolution(self) -> tuple[int, int]:
        """Return (width, height) in pixels."""
        return self._intrinsics.resolution

    @staticmethod
    def to_camera_frame(points: np.ndarray, pose: SE3) -> np.ndarray:
        """Express Nx3 world points in the frame of a camera at pose."""
        return pose.inverse().transform_points(as_point_array(points))

    def project(self, points: np.ndarray, pose: SE3, add_noise: bool = True) -> np.ndarray:
        """Project world points seen by a camera at pose.

        Args:
            points: Nx3 world points
            pose: Camera pose T_world_camera
            add_noise: If False, skip the configured pixel noise

        Returns:
            Nx2 array of image features

        Raises:
            DegenerateGeometry: If a point cannot be projected
        """
        features = self._project_camera_frame(self.to_camera_frame(points, pose))
        if add_noise and self._intrinsics.noise > 0:
            features = features + self._rng.normal(
                0.0, self._intrinsics.noise, size=features.shape
            )
        return features

    def point_depth(self, points: np.ndarray, pose: SE3) -> np.ndarray:
        """Return the per-point depth quantity consumed by jacobian()."""
        return self._depth_of(self.to_camera_frame(points, pose))

    def visible(self, features: np.ndarray) -> np.ndarray:
        """Return a boolean mask of features lying inside the image."""
        features = np.asarray(features, dtype=np.float64).reshape(-1, 2)
        width, height = self.resolution
        return (
            (features[:, 0] >= 0)
            & (features[:, 0] < width)
            & (features[:, 1] >= 0)
            & (features[:, 1] < height)
        )

    @abstractmethod
    def _project_camera_frame(self, points_cam: np.ndarray) -> np.ndarray:
        """Project Nx3 camera-frame points to Nx2 features."""

    @abstractmethod
    def _depth_of(self, points_cam: np.ndarray) -> np.ndarray:
        """Depth quantity of camera-frame points used by the Jacobian."""

    @abstractmethod
    def jacobian(self, features: np.ndarray, depth) -> np.ndarray:
        """Image Jacobian (2N x 6) at the given features and depths."""

    def __repr__(self) -> str:
        """Return string representation."""
        width, height = self.resolution
        return f"{type(self).__name__}({self.kind}, {width}x{height})"
