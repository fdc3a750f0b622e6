"""Control components: control law, depth estimation and pose integration."""

from .control_law import ControlLaw
from .depth_estimator import DepthEstimator
from .pose_integrator import PoseIntegrator

__all__ = [
    "ControlLaw",
    "DepthEstimator",
    "PoseIntegrator",
]
