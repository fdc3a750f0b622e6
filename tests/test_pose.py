"""Tests for SE3 pose algebra."""

import cv2
import numpy as np
import pytest

from ibvs.pose import SE3, skew


def assert_rotation(R: np.ndarray) -> None:
    np.testing.assert_allclose(R.T @ R, np.eye(3), atol=1e-12)
    assert np.linalg.det(R) == pytest.approx(1.0)


class TestSkew:
    """Test suite for the skew-symmetric helper."""

    def test_cross_product(self):
        """Test that skew(a) @ b equals a x b."""
        a = np.array([0.3, -1.2, 2.0])
        b = np.array([-0.5, 0.7, 0.1])

        np.testing.assert_allclose(skew(a) @ b, np.cross(a, b))

    def test_antisymmetric(self):
        """Test that the matrix is antisymmetric."""
        S = skew(np.array([1.0, 2.0, 3.0]))

        np.testing.assert_array_equal(S, -S.T)


class TestSE3:
    """Test suite for SE3 transformations."""

    def test_identity(self):
        """Test identity pose."""
        T = SE3.identity()

        np.testing.assert_array_equal(T.to_matrix(), np.eye(4))

    def test_invalid_shapes(self):
        """Test that malformed rotation or translation is rejected."""
        with pytest.raises(ValueError, match="Rotation must be 3x3"):
            SE3(rotation=np.eye(2), translation=np.zeros(3))
        with pytest.raises(ValueError, match="Translation must be"):
            SE3(rotation=np.eye(3), translation=np.zeros(4))
        with pytest.raises(ValueError, match="Transform must be 4x4"):
            SE3.from_matrix(np.eye(3))

    def test_matrix_round_trip(self):
        """Test conversion to and from a 4x4 matrix."""
        T = SE3.from_rpy(0.1, -0.2, 0.3, translation=np.array([1.0, 2.0, 3.0]))

        T2 = SE3.from_matrix(T.to_matrix())

        np.testing.assert_allclose(T2.rotation, T.rotation)
        np.testing.assert_allclose(T2.translation, T.translation)

    def test_rpy_is_rotation(self):
        """Test that roll-pitch-yaw produces a proper rotation."""
        T = SE3.from_rpy(0.4, -1.1, 2.5)

        assert_rotation(T.rotation)

    def test_yaw_rotates_about_z(self):
        """Test that a pure yaw maps x onto (cos, sin, 0)."""
        T = SE3.from_rpy(0.0, 0.0, 0.6)

        np.testing.assert_allclose(
            T.rotation @ np.array([1.0, 0.0, 0.0]),
            [np.cos(0.6), np.sin(0.6), 0.0],
        )

    def test_rvec_matches_opencv(self):
        """Test Rodrigues conversion agrees with OpenCV both ways."""
        rvec = np.array([0.2, -0.4, 0.9])
        R_cv, _ = cv2.Rodrigues(rvec)

        T = SE3.from_rvec_tvec(rvec, np.array([1.0, 0.0, 0.0]))
        rvec2, tvec2 = T.to_rvec_tvec()

        np.testing.assert_allclose(T.rotation, R_cv)
        np.testing.assert_allclose(rvec2, rvec, atol=1e-12)
        np.testing.assert_array_equal(tvec2, [1.0, 0.0, 0.0])

    def test_quaternion_identity(self):
        """Test that the unit quaternion gives the identity rotation."""
        T = SE3.from_quaternion(1.0, 0.0, 0.0, 0.0, np.array([0.0, 0.0, 1.0]))

        np.testing.assert_allclose(T.rotation, np.eye(3))
        np.testing.assert_array_equal(T.position, [0.0, 0.0, 1.0])

    def test_inverse_compose(self):
        """Test that T @ T^-1 is the identity."""
        T = SE3.from_rpy(0.3, 0.2, -0.7, translation=np.array([1.0, -2.0, 0.5]))

        I = T @ T.inverse()

        np.testing.assert_allclose(I.to_matrix(), np.eye(4), atol=1e-12)

    def test_compose_matches_matrix_product(self):
        """Test composition against 4x4 matrix multiplication."""
        A = SE3.from_rpy(0.1, 0.2, 0.3, translation=np.array([1.0, 0.0, 0.0]))
        B = SE3.from_rpy(-0.3, 0.0, 0.5, translation=np.array([0.0, 2.0, -1.0]))

        np.testing.assert_allclose(
            A.compose(B).to_matrix(), A.to_matrix() @ B.to_matrix()
        )

    def test_transform_points(self):
        """Test point transformation, including a single 3-vector."""
        T = SE3.from_translation(1.0, 2.0, 3.0)

        out = T.transform_points(np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]]))
        single = T.transform_points(np.array([1.0, 0.0, 0.0]))

        np.testing.assert_allclose(out, [[1.0, 2.0, 3.0], [2.0, 3.0, 4.0]])
        assert single.shape == (1, 3)

    def test_from_twist(self):
        """Test the first-order differential motion of a twist."""
        T = SE3.from_twist(np.array([0.1, 0.2, 0.3, 0.0, 0.0, 0.01]))

        np.testing.assert_array_equal(T.translation, [0.1, 0.2, 0.3])
        np.testing.assert_allclose(T.rotation, np.eye(3) + skew([0.0, 0.0, 0.01]))

    def test_normalized_is_orthonormal(self):
        """Test that normalization removes drift and keeps the optical axis."""
        drifted = SE3.from_rpy(0.2, 0.1, 0.4).compose(
            SE3.from_twist(np.array([0.0, 0.0, 0.0, 0.05, -0.03, 0.08]))
        )
        axis = drifted.rotation[:, 2] / np.linalg.norm(drifted.rotation[:, 2])

        T = drifted.normalized()

        assert_rotation(T.rotation)
        np.testing.assert_allclose(T.forward, axis)

    def test_is_finite(self):
        """Test finiteness check."""
        assert SE3.identity().is_finite()
        assert not SE3(rotation=np.eye(3), translation=[np.nan, 0.0, 0.0]).is_finite()

    def test_repr(self):
        """Test string representation."""
        assert repr(SE3.from_translation(1.0, 2.0, 3.0)) == (
            "SE3(position=[1.000, 2.000, 3.000])"
        )

    def test_frozen_copy(self):
        """Test that a frozen copy is read-only and independent of the source."""
        T = SE3.from_translation(1.0, 2.0, 3.0)

        F = T.frozen()
        T.translation[0] = 10.0

        np.testing.assert_array_equal(F.translation, [1.0, 2.0, 3.0])
        with pytest.raises(ValueError):
            F.translation[0] = 5.0
        with pytest.raises(ValueError):
            F.rotation[1, 1] = 0.0
        np.testing.assert_array_equal(F.inverse().translation, [-1.0, -2.0, -3.0])
