"""Camera pose integration from a commanded twist."""

from __future__ import annotations

import numpy as np

from ..exceptions import DegenerateGeometry
from ..pose import SE3


class PoseIntegrator:
    """Applies a camera-frame twist to a pose over one control step.

    The twist is treated as a differential motion in the camera's own frame:

        T_new = normalize(T @ delta(v))

    where delta(v) has the linear part of v as translation and I + [w]x as
    its first-order rotation. Normalization removes the orthogonality drift
    of the first-order update.
    """

    def __init__(self, dt: float = 1.0) -> None:
        """Initialize pose integrator.

        Args:
            dt: Duration of one control step (the twist is scaled by dt)
        """
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")
        self._dt = dt

    @property
    def dt(self) -> float:
        """Return control step duration."""
        return self._dt

    def integrate(self, pose: SE3, velocity: np.ndarray) -> SE3:
        """Return the pose reached after applying velocity for one step.

        Args:
            pose: Current camera pose T_world_camera
            velocity: (6,) twist [vx, vy, vz, wx, wy, wz] in the camera frame

        Returns:
            New, re-orthonormalized pose (the input pose is not modified)

        Raises:
            DegenerateGeometry: If the twist is not a finite 6-vector
        """
        velocity = np.asarray(velocity, dtype=np.float64).flatten()
        if velocity.shape != (6,) or not np.isfinite(velocity).all():
            raise DegenerateGeometry(f"Invalid twist {velocity}")

        delta = SE3.from_twist(velocity * self._dt)
        return pose.compose(delta).normalized()
