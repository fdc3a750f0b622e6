"""IBVS control law.

Implements the classical image-based visual servoing law

    v = -λ · J⁺ · e

where:
    - v: commanded camera twist [vx, vy, vz, wx, wy, wz] in the camera frame
    - λ: positive gain (scalar or positive-definite 6x6 matrix)
    - J: stacked image Jacobian
    - e: feature error (current - desired)
    - J⁺: Moore-Penrose pseudo-inverse of J
"""

from __future__ import annotations

import numpy as np
import scipy.linalg

from ..camera.base import as_number
from ..exceptions import ConfigurationError, ControlSingularity


class ControlLaw:
    """Proportional IBVS control law with a pseudo-inverse Jacobian."""

    def __init__(self, gain: float | np.ndarray = 0.08, rank_tolerance: float = 1e-9) -> None:
        """Initialize control law.

        Args:
            gain: Positive scalar or positive-definite 6x6 gain matrix
            rank_tolerance: Singular values below rank_tolerance times the
                largest are treated as zero

        Raises:
            ConfigurationError: If the gain is not positive (definite)
        """
        self._gain = validate_gain(gain)
        self._rank_tolerance = rank_tolerance

    @property
    def gain(self) -> float | np.ndarray:
        """Return control gain."""
        if isinstance(self._gain, np.ndarray):
            return self._gain.copy()
        return self._gain

    def compute(self, jacobian: np.ndarray, error: np.ndarray) -> np.ndarray:
        """Compute the commanded camera twist.

        Args:
            jacobian: (M, 6) stacked image Jacobian
            error: (M,) stacked feature error (current - desired)

        Returns:
            (6,) camera twist

        Raises:
            ControlSingularity: If the Jacobian is rank deficient or its
                pseudo-inverse cannot be computed
        """
        J = np.asarray(jacobian, dtype=np.float64)
        e = np.asarray(error, dtype=np.float64).flatten()
        if J.ndim != 2 or J.shape[1] != 6:
            raise ConfigurationError(f"Jacobian must be Mx6, got {J.shape}")
        if J.shape[0] != e.size:
            raise ConfigurationError(
                f"Jacobian has {J.shape[0]} rows but error has {e.size} elements"
            )
        if not np.isfinite(J).all() or not np.isfinite(e).all():
            raise ControlSingularity("Jacobian or error contains non-finite values")

        rank = self.rank(J)
        if rank < 6:
            raise ControlSingularity(f"Image Jacobian is rank deficient (rank {rank} < 6)")

        try:
            J_pinv = scipy.linalg.pinv(J)
        except (np.linalg.LinAlgError, ValueError) as exc:
            raise ControlSingularity(f"Pseudo-inverse failed: {exc}") from exc

        step = J_pinv @ e
        if isinstance(self._gain, np.ndarray):
            velocity = -self._gain @ step
        else:
            velocity = -self._gain * step

        if not np.isfinite(velocity).all():
            raise ControlSingularity("Commanded velocity is not finite")
        return velocity

    def rank(self, jacobian: np.ndarray) -> int:
        """Numerical rank of the Jacobian."""
        s = np.linalg.svd(jacobian, compute_uv=False)
        if s.size == 0 or s[0] == 0:
            return 0
        return int(np.sum(s > self._rank_tolerance * s[0]))

    @staticmethod
    def condition(jacobian: np.ndarray) -> float:
        """2-norm condition number of the Jacobian (inf if rank deficient)."""
        J = np.asarray(jacobian, dtype=np.float64)
        if J.shape[0] < J.shape[1] or not np.isfinite(J).all():
            return float("inf")
        return float(np.linalg.cond(J))


def validate_gain(gain) -> float | np.ndarray:
    """Check a scalar or matrix gain and return it in canonical form."""
    if np.isscalar(gain):
        gain = as_number(gain, "gain")
        if not np.isfinite(gain) or gain <= 0:
            raise ConfigurationError(f"Gain must be positive, got {gain}")
        return gain

    G = np.asarray(gain, dtype=np.float64)
    if G.shape != (6, 6):
        raise ConfigurationError(f"Gain matrix must be 6x6, got {G.shape}")
    if not np.allclose(G, G.T):
        raise ConfigurationError("Gain matrix must be symmetric")
    if np.min(np.linalg.eigvalsh(G)) <= 0:
        raise ConfigurationError("Gain matrix must be positive definite")
    return G
