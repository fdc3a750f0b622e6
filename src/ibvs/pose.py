"""SE(3) pose representation for camera placement."""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np


def skew(v: np.ndarray) -> np.ndarray:
    """Create skew-symmetric matrix from vector.

    Args:
        v: 3D vector

    Returns:
        3x3 skew-symmetric matrix [v]×
    """
    return np.array([
        [0, -v[2], v[1]],
        [v[2], 0, -v[0]],
        [-v[1], v[0], 0]
    ], dtype=np.float64)


@dataclass
class SE3:
    """Rigid body transformation (rotation + translation) in SE(3).

    Represents a camera pose T_world_camera that transforms points from
    the camera frame to the world frame:

        p_world = R @ p_camera + t

    Attributes:
        rotation: 3x3 orthonormal rotation matrix (det = +1)
        translation: 3D translation vector
    """

    rotation: np.ndarray  # 3x3 rotation matrix
    translation: np.ndarray  # (3,) translation vector

    def __post_init__(self) -> None:
        """Validate and normalize inputs."""
        self.rotation = np.asarray(self.rotation, dtype=np.float64)
        self.translation = np.asarray(self.translation, dtype=np.float64).flatten()

        if self.rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got {self.rotation.shape}")
        if self.translation.shape != (3,):
            raise ValueError(
                f"Translation must be (3,), got {self.translation.shape}"
            )

    @classmethod
    def identity(cls) -> SE3:
        """Create identity transformation (no rotation, no translation)."""
        return cls(rotation=np.eye(3), translation=np.zeros(3))

    @classmethod
    def from_translation(cls, x: float, y: float, z: float) -> SE3:
        """Create a pure translation."""
        return cls(rotation=np.eye(3), translation=np.array([x, y, z]))

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> SE3:
        """Create SE3 from 4x4 homogeneous transformation matrix.

        Args:
            T: 4x4 transformation matrix of the form:
               [[R  t]
                [0  1]]

        Returns:
            SE3 transformation
        """
        T = np.asarray(T)
        if T.shape != (4, 4):
            raise ValueError(f"Transform must be 4x4, got {T.shape}")

        return cls(rotation=T[:3, :3], translation=T[:3, 3])

    @classmethod
    def from_rvec_tvec(cls, rvec: np.ndarray, tvec: np.ndarray) -> SE3:
        """Create SE3 from a Rodrigues (axis * angle) vector and translation.

        Args:
            rvec: 3D Rodrigues rotation vector
            tvec: 3D translation vector

        Returns:
            SE3 transformation
        """
        R, _ = cv2.Rodrigues(np.asarray(rvec, dtype=np.float64).flatten())
        return cls(rotation=R, translation=np.asarray(tvec).flatten())

    @classmethod
    def from_rpy(
        cls,
        roll: float,
        pitch: float,
        yaw: float,
        translation: np.ndarray | None = None,
    ) -> SE3:
        """Create SE3 from roll-pitch-yaw angles (R = Rz(yaw) Ry(pitch) Rx(roll)).

        Args:
            roll: Rotation about x in radians
            pitch: Rotation about y in radians
            yaw: Rotation about z in radians
            translation: Optional 3D translation (default: zeros)

        Returns:
            SE3 transformation
        """
        cr, sr = np.cos(roll), np.sin(roll)
        cp, sp = np.cos(pitch), np.sin(pitch)
        cy, sy = np.cos(yaw), np.sin(yaw)
        Rx = np.array([[1, 0, 0], [0, cr, -sr], [0, sr, cr]])
        Ry = np.array([[cp, 0, sp], [0, 1, 0], [-sp, 0, cp]])
        Rz = np.array([[cy, -sy, 0], [sy, cy, 0], [0, 0, 1]])
        t = np.zeros(3) if translation is None else translation
        return cls(rotation=Rz @ Ry @ Rx, translation=t)

    @classmethod
    def from_quaternion(
        cls,
        qw: float,
        qx: float,
        qy: float,
        qz: float,
        translation: np.ndarray,
    ) -> SE3:
        """Create SE3 from a Hamilton (w, x, y, z) quaternion and translation."""
        norm = np.sqrt(qw * qw + qx * qx + qy * qy + qz * qz)
        qw, qx, qy, qz = qw / norm, qx / norm, qy / norm, qz / norm

        R = np.array(
            [
                [
                    1 - 2 * qy * qy - 2 * qz * qz,
                    2 * qx * qy - 2 * qz * qw,
                    2 * qx * qz + 2 * qy * qw,
                ],
                [
                    2 * qx * qy + 2 * qz * qw,
                    1 - 2 * qx * qx - 2 * qz * qz,
                    2 * qy * qz - 2 * qx * qw,
                ],
                [
                    2 * qx * qz - 2 * qy * qw,
                    2 * qy * qz + 2 * qx * qw,
                    1 - 2 * qx * qx - 2 * qy * qy,
                ],
            ],
            dtype=np.float64,
        )

        return cls(rotation=R, translation=np.asarray(translation).flatten())

    @classmethod
    def from_twist(cls, velocity: np.ndarray) -> SE3:
        """Differential motion for a twist applied over one unit step.

        The translation is the linear part of the twist and the rotation is
        the first-order approximation I + [omega]x. The result is not
        orthonormal; call normalized() after composing.

        Args:
            velocity: (6,) twist [vx, vy, vz, wx, wy, wz]

        Returns:
            SE3 differential transform
        """
        velocity = np.asarray(velocity, dtype=np.float64).flatten()
        return cls(
            rotation=np.eye(3) + skew(velocity[3:]),
            translation=velocity[:3],
        )

    def to_matrix(self) -> np.ndarray:
        """Convert to 4x4 homogeneous transformation matrix."""
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    def to_rvec_tvec(self) -> tuple[np.ndarray, np.ndarray]:
        """Convert to Rodrigues vector and translation."""
        rvec, _ = cv2.Rodrigues(self.rotation)
        return rvec.flatten(), self.translation.copy()

    def frozen(self) -> SE3:
        """Return a copy whose rotation and translation arrays are read-only."""
        rotation = self.rotation.copy()
        translation = self.translation.copy()
        rotation.flags.writeable = False
        translation.flags.writeable = False
        return SE3(rotation=rotation, translation=translation)

    def inverse(self) -> SE3:
        """Compute the inverse transformation T^{-1} = [R^T, -R^T @ t]."""
        R_inv = self.rotation.T
        t_inv = -R_inv @ self.translation
        return SE3(rotation=R_inv, translation=t_inv)

    def compose(self, other: SE3) -> SE3:
        """Compose with another transformation: self @ other.

        Example:
            T_world_prev.compose(T_prev_curr) gives T_world_curr
        """
        R = self.rotation @ other.rotation
        t = self.rotation @ other.translation + self.translation
        return SE3(rotation=R, translation=t)

    def normalized(self) -> SE3:
        """Return a copy with the rotation re-orthonormalized.

        The approach (z) axis is kept, the orientation (y) axis is made
        orthogonal to it and the normal (x) axis is rebuilt from their
        cross product. Removes the drift introduced by first-order updates.
        """
        o = self.rotation[:, 1]
        a = self.rotation[:, 2]
        n = np.cross(o, a)
        o = np.cross(a, n)
        R = np.column_stack([
            n / np.linalg.norm(n),
            o / np.linalg.norm(o),
            a / np.linalg.norm(a),
        ])
        return SE3(rotation=R, translation=self.translation.copy())

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Transform Nx3 points from local frame to world frame.

        Applies the transformation: p_world = R @ p_local + t
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim == 1:
            points = points.reshape(1, 3)

        if points.shape[1] != 3:
            raise ValueError(f"Points must be Nx3, got {points.shape}")

        return (self.rotation @ points.T).T + self.translation

    def is_finite(self) -> bool:
        """Check if the pose has finite values."""
        return bool(
            np.isfinite(self.rotation).all() and np.isfinite(self.translation).all()
        )

    @property
    def position(self) -> np.ndarray:
        """Return camera position in world frame."""
        return self.translation.copy()

    @property
    def forward(self) -> np.ndarray:
        """Return optical axis direction (Z-axis) in world frame."""
        return self.rotation[:, 2].copy()

    def __repr__(self) -> str:
        """Return string representation."""
        pos = self.position
        return f"SE3(position=[{pos[0]:.3f}, {pos[1]:.3f}, {pos[2]:.3f}])"

    def __matmul__(self, other: SE3) -> SE3:
        """Matrix multiplication operator for composition."""
        return self.compose(other)
