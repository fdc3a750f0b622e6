"""Build a servo loop from a YAML scenario description.

Example scenario::

    camera:
      kind: central
      focal_length: 0.008
      pixel_size: 10.0e-6
      resolution: [1024, 1024]
    servo:
      gain: 0.08
      error_threshold: 0.5
      max_iterations: 300
      depth_mode: true
    target:
      grid: 2
      side: 0.5
      pose: {translation: [0, 0, 3]}
    initial_pose: {translation: [1, 1, -3], rpy: [0, 0, 0.6]}
    desired_features: [[312, 312], [312, 712], [712, 712], [712, 312]]

"points" may replace "target" with an explicit Nx3 list, and
"desired_pose" may replace "desired_features".
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np

from .camera import make_camera
from .config import ServoConfig, load_yaml
from .exceptions import ConfigurationError
from .pose import SE3
from .servo_loop import ServoLoop
from .targets import make_grid


def pose_from_dict(data: dict[str, Any] | None) -> SE3:
    """Parse a pose given as a 4x4 matrix, or a translation plus rpy or rvec.

    Args:
        data: Mapping with either "matrix", or "translation" and optionally
            one of "rpy" (roll, pitch, yaw in radians) or "rvec"

    Returns:
        SE3 pose (identity if data is None)
    """
    if data is None:
        return SE3.identity()
    if not isinstance(data, dict):
        raise ConfigurationError(f"Pose must be a mapping, got {data!r}")
    if "matrix" in data:
        return SE3.from_matrix(np.asarray(data["matrix"], dtype=np.float64))

    translation = np.asarray(data.get("translation", [0.0, 0.0, 0.0]), dtype=np.float64)
    if "rpy" in data and "rvec" in data:
        raise ConfigurationError("Pose may give rpy or rvec, not both")
    if "rpy" in data:
        roll, pitch, yaw = data["rpy"]
        return SE3.from_rpy(roll, pitch, yaw, translation=translation)
    if "rvec" in data:
        return SE3.from_rvec_tvec(np.asarray(data["rvec"], dtype=np.float64), translation)
    return SE3(rotation=np.eye(3), translation=translation)


def build_servo_loop(data: dict[str, Any]) -> ServoLoop:
    """Create a ServoLoop from a parsed scenario mapping."""
    camera_params = dict(data.get("camera") or {})
    camera = make_camera(camera_params.pop("kind", "central"), **camera_params)

    config = ServoConfig.from_dict(dict(data.get("servo") or {}))

    if "points" in data:
        points = np.asarray(data["points"], dtype=np.float64)
    elif "target" in data:
        target = data["target"] or {}
        points = make_grid(
            n=int(target.get("grid", 2)),
            side=float(target.get("side", 0.5)),
            pose=pose_from_dict(target.get("pose")),
        )
    else:
        raise ConfigurationError("Scenario needs either 'points' or 'target'")

    desired_features = data.get("desired_features")
    desired_pose = data.get("desired_pose")
    return ServoLoop(
        camera,
        points,
        initial_pose=pose_from_dict(data.get("initial_pose")),
        config=config,
        desired_features=None if desired_features is None else np.asarray(desired_features),
        desired_pose=None if desired_pose is None else pose_from_dict(desired_pose),
    )


def load_scenario(yaml_path: str | Path) -> ServoLoop:
    """Load a YAML scenario file and build its servo loop.

    Raises:
        FileNotFoundError: If file doesn't exist
        ConfigurationError: If the scenario is invalid
    """
    return build_servo_loop(load_yaml(yaml_path))
