"""Tests for the IBVS control law and pose integrator."""

import numpy as np
import pytest

from ibvs import (
    SE3,
    ConfigurationError,
    ControlLaw,
    ControlSingularity,
    DegenerateGeometry,
    PoseIntegrator,
)


@pytest.fixture
def jacobian(camera, square_points) -> np.ndarray:
    """Full-rank 8x6 Jacobian of the square seen from (0, 0, 2)."""
    pose = SE3.from_translation(0.0, 0.0, 2.0)
    uv = camera.project(square_points, pose)
    return camera.jacobian(uv, camera.point_depth(square_points, pose))


class TestControlLaw:
    """Test suite for ControlLaw."""

    def test_zero_error_gives_zero_velocity(self, jacobian: np.ndarray):
        """Test the zero-error fixed point."""
        v = ControlLaw(0.1).compute(jacobian, np.zeros(8))

        np.testing.assert_array_equal(v, np.zeros(6))

    def test_matches_pseudo_inverse(self, jacobian: np.ndarray):
        """Test v = -gain * pinv(J) @ e."""
        e = np.linspace(-5.0, 5.0, 8)

        v = ControlLaw(0.08).compute(jacobian, e)

        np.testing.assert_allclose(v, -0.08 * np.linalg.pinv(jacobian) @ e, atol=1e-12)

    def test_square_jacobian_drives_error_down(self):
        """Test that J @ v = -gain * e for an invertible Jacobian."""
        rng = np.random.default_rng(0)
        J = rng.normal(size=(6, 6)) + 3 * np.eye(6)
        e = rng.normal(size=6)

        v = ControlLaw(0.5).compute(J, e)

        np.testing.assert_allclose(J @ v, -0.5 * e, atol=1e-12)

    def test_matrix_gain(self, jacobian: np.ndarray):
        """Test a diagonal gain matrix weights each twist component."""
        gains = np.array([0.1, 0.1, 0.2, 0.05, 0.05, 0.3])
        e = np.ones(8)

        v = ControlLaw(np.diag(gains)).compute(jacobian, e)

        np.testing.assert_allclose(v, -gains * (np.linalg.pinv(jacobian) @ e), atol=1e-12)

    def test_rank_deficient(self, camera):
        """Test that two points (four rows) cannot constrain six DOF."""
        J = camera.jacobian(np.array([[300.0, 300.0], [700.0, 700.0]]), 2.0)

        with pytest.raises(ControlSingularity, match="rank"):
            ControlLaw().compute(J, np.ones(4))

    def test_coincident_points(self, camera):
        """Test that repeated points leave the Jacobian rank deficient."""
        J = camera.jacobian(np.full((4, 2), 300.0), 2.0)

        with pytest.raises(ControlSingularity):
            ControlLaw().compute(J, np.ones(8))

    def test_non_finite(self, jacobian: np.ndarray):
        """Test that NaN in the error is reported instead of propagated."""
        e = np.zeros(8)
        e[3] = np.nan

        with pytest.raises(ControlSingularity):
            ControlLaw().compute(jacobian, e)

    def test_dimension_mismatch(self, jacobian: np.ndarray):
        """Test that error and Jacobian sizes must agree."""
        with pytest.raises(ConfigurationError):
            ControlLaw().compute(jacobian, np.zeros(6))
        with pytest.raises(ConfigurationError):
            ControlLaw().compute(np.zeros((8, 5)), np.zeros(8))

    @pytest.mark.parametrize(
        "gain",
        [0.0, -0.1, np.nan, np.eye(3), np.triu(np.ones((6, 6))), -np.eye(6)],
    )
    def test_invalid_gain(self, gain):
        """Test that non-positive or malformed gains are rejected."""
        with pytest.raises(ConfigurationError):
            ControlLaw(gain)

    def test_condition(self, jacobian: np.ndarray):
        """Test condition number, infinite for under-determined Jacobians."""
        assert np.isfinite(ControlLaw.condition(jacobian))
        assert ControlLaw.condition(jacobian[:4]) == float("inf")


class TestPoseIntegrator:
    """Test suite for PoseIntegrator."""

    def test_zero_twist(self):
        """Test that a zero twist leaves the pose unchanged."""
        pose = SE3.from_rpy(0.1, 0.2, 0.3, translation=np.array([1.0, 2.0, 3.0]))

        new = PoseIntegrator().integrate(pose, np.zeros(6))

        np.testing.assert_allclose(new.to_matrix(), pose.to_matrix(), atol=1e-12)

    def test_translation_in_camera_frame(self):
        """Test that linear velocity is applied along the camera axes."""
        pose = SE3.from_rpy(0.0, 0.0, np.pi / 2)

        new = PoseIntegrator().integrate(pose, np.array([0.1, 0.0, 0.0, 0.0, 0.0, 0.0]))

        np.testing.assert_allclose(new.translation, [0.0, 0.1, 0.0], atol=1e-12)

    def test_dt_scales_twist(self):
        """Test that the step duration scales the twist."""
        v = np.array([0.0, 0.0, 0.2, 0.0, 0.0, 0.0])

        new = PoseIntegrator(dt=0.5).integrate(SE3.identity(), v)

        np.testing.assert_allclose(new.translation, [0.0, 0.0, 0.1])

    def test_result_is_orthonormal(self):
        """Test that rotational updates are re-orthonormalized."""
        pose = SE3.identity()
        integrator = PoseIntegrator()
        for _ in range(50):
            pose = integrator.integrate(pose, np.array([0.0, 0.0, 0.0, 0.05, 0.02, 0.1]))

        np.testing.assert_allclose(pose.rotation.T @ pose.rotation, np.eye(3), atol=1e-12)
        assert np.linalg.det(pose.rotation) == pytest.approx(1.0)

    def test_input_not_modified(self):
        """Test that integration returns a new pose."""
        pose = SE3.identity()

        PoseIntegrator().integrate(pose, np.ones(6) * 0.01)

        np.testing.assert_array_equal(pose.to_matrix(), np.eye(4))

    def test_invalid_twist(self):
        """Test that a non-finite twist is rejected."""
        with pytest.raises(DegenerateGeometry):
            PoseIntegrator().integrate(SE3.identity(), np.array([np.inf, 0, 0, 0, 0, 0]))

    def test_invalid_dt(self):
        """Test that the step duration must be positive."""
        with pytest.raises(ValueError):
            PoseIntegrator(dt=0.0)
