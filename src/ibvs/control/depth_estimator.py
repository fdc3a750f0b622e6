"""Recursive point depth estimation from image motion.

When the true depth of the target points is unknown it can be recovered from
the image displacement caused by a known camera motion. For a Jacobian
evaluated at unit depth, the rotational block J_w does not depend on depth
and the translational block J_v scales with inverse depth η = 1/Z:

    Δs = η · J_v · v + J_w · ω

Removing the rotational contribution leaves, for each point, a 2-equation
least-squares problem A η = B in the single unknown η.
"""

from __future__ import annotations

import logging

import numpy as np
import scipy.linalg

from ..camera import CameraModel
from ..exceptions import ConfigurationError, SingularDepthSystem

logger = logging.getLogger(__name__)


class DepthEstimator:
    """Per-point inverse-depth estimator with first-order smoothing.

    Each new solve is blended into the running estimate:

        Z = (1 - α) / η + α · Z_prev

    The first valid solve for a point seeds its estimate directly.
    """

    def __init__(
        self,
        camera: CameraModel,
        n_points: int,
        smoothing: float = 0.8,
        min_excitation: float = 1e-9,
    ) -> None:
        """Initialize depth estimator.

        Args:
            camera: Camera model providing the image Jacobian
            n_points: Number of tracked points
            smoothing: Smoothing factor α in [0, 1)
            min_excitation: Minimum norm of a point's translational image
                motion for its depth to be observable
        """
        if not 0.0 <= smoothing < 1.0:
            raise ConfigurationError(f"smoothing must be in [0, 1), got {smoothing}")
        if n_points <= 0:
            raise ConfigurationError(f"n_points must be positive, got {n_points}")

        self._camera = camera
        self._n_points = n_points
        self._smoothing = smoothing
        self._min_excitation = min_excitation
        self._estimate = np.full(n_points, np.nan)

    @property
    def smoothing(self) -> float:
        """Return smoothing factor α."""
        return self._smoothing

    @property
    def estimate(self) -> np.ndarray:
        """Current per-point depth estimate (NaN where not yet observable)."""
        return self._estimate.copy()

    @property
    def has_estimate(self) -> bool:
        """Return True once every point has a depth estimate."""
        return bool(np.isfinite(self._estimate).all())

    def reset(self) -> None:
        """Forget all estimates."""
        self._estimate = np.full(self._n_points, np.nan)

    def update(
        self,
        features: np.ndarray,
        prev_features: np.ndarray | None,
        prev_velocity: np.ndarray | None,
    ) -> np.ndarray | None:
        """Update depth estimates from the latest image motion.

        Args:
            features: Nx2 current features
            prev_features: Nx2 features at the previous step (None on the
                first step)
            prev_velocity: (6,) twist commanded at the previous step

        Returns:
            (N,) depth estimates (NaN for points without one yet), or None
            if there is no previous observation to compare against
        """
        if prev_features is None or prev_velocity is None:
            return None

        features = np.asarray(features, dtype=np.float64).reshape(-1, 2)
        prev_features = np.asarray(prev_features, dtype=np.float64).reshape(-1, 2)
        if len(features) != self._n_points or len(prev_features) != self._n_points:
            raise ConfigurationError(
                f"Expected {self._n_points} features, got {len(features)}"
            )
        prev_velocity = np.asarray(prev_velocity, dtype=np.float64).flatten()

        J = self._camera.jacobian(features, 1.0)
        J_v = J[:, :3]
        J_w = J[:, 3:]

        image_motion = (features - prev_features).flatten()
        B = image_motion - J_w @ prev_velocity[3:]
        A = J_v @ prev_velocity[:3]

        for i in range(self._n_points):
            rows = slice(2 * i, 2 * i + 2)
            try:
                eta = self._solve_point(A[rows], B[rows])
            except SingularDepthSystem as exc:
                logger.debug(f"Keeping previous depth for point {i}: {exc}")
                continue

            depth = 1.0 / eta
            if np.isnan(self._estimate[i]):
                self._estimate[i] = depth
            else:
                self._estimate[i] = (
                    (1.0 - self._smoothing) * depth
                    + self._smoothing * self._estimate[i]
                )

        return self.estimate

    def _solve_point(self, A: np.ndarray, B: np.ndarray) -> float:
        """Least-squares inverse depth for one point.

        Raises:
            SingularDepthSystem: If the point's depth is unobservable or the
                solution is not a positive finite inverse depth
        """
        if np.linalg.norm(A) < self._min_excitation:
            raise SingularDepthSystem("No translational image motion")

        solution, _, _, _ = scipy.linalg.lstsq(A.reshape(2, 1), B)
        eta = float(solution[0])
        if not np.isfinite(eta) or eta <= 0:
            raise SingularDepthSystem(f"Non-positive inverse depth {eta:.4g}")
        return eta
