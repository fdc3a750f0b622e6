"""Closed-loop image-based visual servoing.

ServoLoop drives a simulated camera so that the projections of a fixed set
of world points converge to a desired image configuration. Each step runs

    project -> error -> depth -> Jacobian -> control law -> integrate -> record

and the loop ends when the error norm falls below the threshold (CONVERGED),
a geometric or control fault occurs (FAILED) or the iteration budget runs
out (EXHAUSTED).

Following the task-function convention the error is current - desired, the
gain is positive and the negative sign lives in the control law.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np

from .camera import CameraModel
from .camera.base import as_point_array
from .config import DepthMode, ServoConfig
from .control import ControlLaw, DepthEstimator, PoseIntegrator
from .exceptions import (
    ConfigurationError,
    ControlSingularity,
    DegenerateGeometry,
    ServoError,
)
from .pose import SE3

logger = logging.getLogger(__name__)


class ServoStatus(Enum):
    """State of a servo loop."""

    INITIALIZED = "INITIALIZED"
    RUNNING = "RUNNING"
    CONVERGED = "CONVERGED"
    FAILED = "FAILED"
    EXHAUSTED = "EXHAUSTED"

    @property
    def is_terminal(self) -> bool:
        """Return True for CONVERGED, FAILED and EXHAUSTED."""
        return self in (ServoStatus.CONVERGED, ServoStatus.FAILED, ServoStatus.EXHAUSTED)


def _readonly(array: np.ndarray | None) -> np.ndarray | None:
    """Return a read-only copy of an array."""
    if array is None:
        return None
    array = np.array(array, dtype=np.float64, copy=True)
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class HistoryRecord:
    """Snapshot of one servo step.

    Attributes:
        step: 1-based step number
        features: Nx2 image features observed at the start of the step
        velocity: (6,) commanded camera twist
        error: (2N,) stacked feature error (current - desired)
        error_norm: Euclidean norm of the error
        jacobian_condition: Condition number of the image Jacobian
        pose: Camera pose after applying the twist (read-only copy)
        depth: (N,) depths used to build the Jacobian
        estimated_depth: (N,) depth estimates (ESTIMATED mode only)
        true_depth: (N,) true depths from the simulated geometry
    """

    step: int
    features: np.ndarray
    velocity: np.ndarray
    error: np.ndarray
    error_norm: float
    jacobian_condition: float
    pose: SE3
    depth: np.ndarray
    estimated_depth: np.ndarray | None = None
    true_depth: np.ndarray | None = None


@dataclass(frozen=True)
class ServoResult:
    """Outcome of a servo run."""

    status: ServoStatus
    history: tuple[HistoryRecord, ...]
    iterations: int
    failure: ServoError | None = None
    n_points: int = 0

    @property
    def converged(self) -> bool:
        """Return True if the run converged."""
        return self.status == ServoStatus.CONVERGED

    @property
    def final_pose(self) -> SE3 | None:
        """Return camera pose after the last completed step."""
        return self.history[-1].pose if self.history else None

    @property
    def features(self) -> np.ndarray:
        """Return features as KxNx2 array."""
        if not self.history:
            return np.zeros((0, self.n_points, 2))
        return np.array([record.features for record in self.history])

    @property
    def velocities(self) -> np.ndarray:
        """Return commanded twists as Kx6 array."""
        if not self.history:
            return np.zeros((0, 6))
        return np.array([record.velocity for record in self.history])

    @property
    def error_norms(self) -> np.ndarray:
        """Return error norms as (K,) array."""
        return np.array([record.error_norm for record in self.history], dtype=np.float64)

    @property
    def jacobian_conditions(self) -> np.ndarray:
        """Return Jacobian condition numbers as (K,) array."""
        return np.array(
            [record.jacobian_condition for record in self.history], dtype=np.float64
        )

    @property
    def positions(self) -> np.ndarray:
        """Return camera positions as Kx3 array."""
        if not self.history:
            return np.zeros((0, 3))
        return np.array([record.pose.translation for record in self.history])


class ServoLoop:
    """Stateful IBVS driver for one camera and one set of world points.

    The loop owns its pose, depth state and history; callers only see
    read-only HistoryRecord snapshots. It is not safe to drive one instance
    from several threads.
    """

    def __init__(
        self,
        camera: CameraModel,
        points: np.ndarray,
        initial_pose: SE3,
        config: ServoConfig | None = None,
        desired_features: np.ndarray | None = None,
        desired_pose: SE3 | None = None,
    ) -> None:
        """Initialize servo loop.

        Exactly one of desired_features and desired_pose must be given. A
        desired pose is turned into desired features by projecting the
        points from that pose.

        Args:
            camera: Camera model used for projection and Jacobians
            points: Nx3 (or 3xN) world points
            initial_pose: Initial camera pose T_world_camera
            config: Loop configuration (defaults if None)
            desired_features: Nx2 desired image features
            desired_pose: Camera pose whose view defines the target

        Raises:
            ConfigurationError: If the inputs are inconsistent
        """
        self._camera = camera
        self._config = config if config is not None else ServoConfig()
        self._points = _readonly(as_point_array(points))
        n_points = len(self._points)

        if not isinstance(initial_pose, SE3) or not initial_pose.is_finite():
            raise ConfigurationError("initial_pose must be a finite SE3")
        self._initial_pose = initial_pose.frozen()

        if (desired_features is None) == (desired_pose is None):
            raise ConfigurationError(
                "Specify exactly one of desired_features and desired_pose"
            )
        if desired_pose is not None:
            try:
                desired_features = camera.project(self._points, desired_pose, add_noise=False)
            except DegenerateGeometry as exc:
                raise ConfigurationError(
                    f"Points cannot be projected from the desired pose: {exc}"
                ) from exc
        desired = np.asarray(desired_features, dtype=np.float64)
        if desired.shape == (2, n_points) and n_points != 2:
            desired = desired.T
        if desired.shape != (n_points, 2):
            raise ConfigurationError(
                f"Expected {n_points} desired features, got shape {desired.shape}"
            )
        if not np.isfinite(desired).all():
            raise ConfigurationError("Desired features must be finite")
        self._desired = _readonly(desired)

        self._control_law = ControlLaw(self._config.gain)
        self._integrator = PoseIntegrator()
        self._depth_estimator: DepthEstimator | None = None
        if self._config.depth_mode == DepthMode.ESTIMATED:
            self._depth_estimator = DepthEstimator(
                camera, n_points, smoothing=self._config.depth_smoothing
            )

        self.reset()

    def reset(self) -> None:
        """Return to the initial pose and clear history and depth state."""
        self._pose = self._initial_pose
        self._history: list[HistoryRecord] = []
        self._iteration = 0
        self._budget = self._config.max_iterations
        self._status = ServoStatus.INITIALIZED
        self._failure: ServoError | None = None
        self._prev_features: np.ndarray | None = None
        self._prev_velocity: np.ndarray | None = None
        if self._depth_estimator is not None:
            self._depth_estimator.reset()

    @property
    def status(self) -> ServoStatus:
        """Return current loop state."""
        return self._status

    @property
    def pose(self) -> SE3:
        """Return a read-only copy of the current camera pose."""
        return self._pose.frozen()

    @property
    def iteration(self) -> int:
        """Return number of steps taken."""
        return self._iteration

    @property
    def history(self) -> tuple[HistoryRecord, ...]:
        """Return step records in order."""
        return tuple(self._history)

    @property
    def points(self) -> np.ndarray:
        """Return the (read-only) world points."""
        return self._points

    @property
    def desired_features(self) -> np.ndarray:
        """Return the (read-only) desired features."""
        return self._desired

    @property
    def failure(self) -> ServoError | None:
        """Return the fault that ended the run, if it failed."""
        return self._failure

    @property
    def camera(self) -> CameraModel:
        """Return the camera model."""
        return self._camera

    @property
    def config(self) -> ServoConfig:
        """Return loop configuration."""
        return self._config

    def step(self) -> ServoStatus:
        """Run one servo step.

        Returns:
            Loop status after the step. Calling step() in a terminal state
            does nothing and returns that state.
        """
        if self._status.is_terminal:
            return self._status
        self._status = ServoStatus.RUNNING
        step = self._iteration + 1

        try:
            features = self._camera.project(self._points, self._pose)
            error = (features - self._desired).flatten()
            true_depth = self._camera.point_depth(self._points, self._pose)
            depth, estimated = self._select_depth(features, true_depth)

            J = self._camera.jacobian(features, depth)
            velocity = self._control_law.compute(J, error)
            new_pose = self._integrator.integrate(self._pose, velocity)
        except (DegenerateGeometry, ControlSingularity) as exc:
            self._iteration = step
            self._failure = exc
            self._status = ServoStatus.FAILED
            logger.warning(f"Servo failed at step {step}: {type(exc).__name__}: {exc}")
            return self._status

        error_norm = float(np.linalg.norm(error))
        self._pose = new_pose.frozen()
        self._prev_features = features
        self._prev_velocity = velocity
        self._iteration = step
        self._history.append(
            HistoryRecord(
                step=step,
                features=_readonly(features),
                velocity=_readonly(velocity),
                error=_readonly(error),
                error_norm=error_norm,
                jacobian_condition=self._control_law.condition(J),
                pose=new_pose.frozen(),
                depth=_readonly(depth),
                estimated_depth=_readonly(estimated),
                true_depth=_readonly(true_depth),
            )
        )
        logger.debug(
            f"step {step}: |e|={error_norm:.3f} v={np.array2string(velocity, precision=4)}"
        )

        if error_norm < self._config.error_threshold:
            self._status = ServoStatus.CONVERGED
            logger.info(f"Servo converged after {step} steps (|e|={error_norm:.3f})")
        elif step >= self._budget:
            self._status = ServoStatus.EXHAUSTED
            logger.info(f"Servo exhausted after {step} steps (|e|={error_norm:.3f})")
        return self._status

    def run(
        self,
        max_iterations: int | None = None,
        on_step: Callable[[HistoryRecord], None] | None = None,
    ) -> ServoResult:
        """Step until a terminal state is reached.

        Args:
            max_iterations: Number of further steps allowed in this run
                (default: the configured budget)
            on_step: Optional callback receiving each new HistoryRecord

        Returns:
            ServoResult with the terminal status and the full history

        Raises:
            ConfigurationError: If max_iterations is not positive
        """
        if max_iterations is not None:
            if max_iterations <= 0:
                raise ConfigurationError(
                    f"max_iterations must be positive, got {max_iterations}"
                )
            if not self._status.is_terminal:
                self._budget = self._iteration + int(max_iterations)

        while not self._status.is_terminal:
            n_records = len(self._history)
            self.step()
            if on_step is not None and len(self._history) > n_records:
                on_step(self._history[-1])

        return self.result()

    def result(self) -> ServoResult:
        """Return a snapshot of the run so far."""
        return ServoResult(
            status=self._status,
            history=tuple(self._history),
            iterations=self._iteration,
            failure=self._failure,
            n_points=len(self._points),
        )

    def _select_depth(
        self, features: np.ndarray, true_depth: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray | None]:
        """Pick the Jacobian depths for this step according to the depth mode."""
        n_points = len(self._points)
        mode = self._config.depth_mode
        if mode == DepthMode.TRUE:
            return true_depth, None

        assumed = np.full(n_points, self._config.assumed_depth)
        if mode == DepthMode.FIXED:
            return assumed, None

        estimated = self._depth_estimator.update(
            features, self._prev_features, self._prev_velocity
        )
        if estimated is None:
            return assumed, None
        return np.where(np.isfinite(estimated), estimated, assumed), estimated
