"""Python IBVS - image-based visual servoing engine."""

__version__ = "0.1.0"

# Re-export main classes for convenient imports
from .pose import SE3
from .exceptions import (
    ConfigurationError,
    ControlSingularity,
    DegenerateGeometry,
    ServoError,
    SingularDepthSystem,
    UnsupportedProjectionModel,
)
from .camera import (
    CameraIntrinsics,
    CameraModel,
    CentralCamera,
    Ellipse,
    FisheyeCamera,
    SphericalCamera,
    make_camera,
)
from .control import ControlLaw, DepthEstimator, PoseIntegrator
from .config import DepthMode, ServoConfig
from .servo_loop import HistoryRecord, ServoLoop, ServoResult, ServoStatus
from .targets import make_grid, square_image_target
from .scenario import build_servo_loop, load_scenario

__all__ = [
    "__version__",
    # Pose
    "SE3",
    # Errors
    "ServoError",
    "ConfigurationError",
    "UnsupportedProjectionModel",
    "DegenerateGeometry",
    "SingularDepthSystem",
    "ControlSingularity",
    # Cameras
    "CameraIntrinsics",
    "CameraModel",
    "CentralCamera",
    "FisheyeCamera",
    "SphericalCamera",
    "Ellipse",
    "make_camera",
    # Control
    "ControlLaw",
    "DepthEstimator",
    "PoseIntegrator",
    # Servo loop
    "DepthMode",
    "ServoConfig",
    "ServoLoop",
    "ServoResult",
    "ServoStatus",
    "HistoryRecord",
    # Targets / scenarios
    "make_grid",
    "square_image_target",
    "build_servo_loop",
    "load_scenario",
]
