"""Camera models: projection and image Jacobians."""

from .base import CameraIntrinsics, CameraModel
from .central import CentralCamera
from .ellipse import Ellipse
from .factory import make_camera
from .fisheye import FISHEYE_MODELS, FisheyeCamera
from .spherical import SphericalCamera

__all__ = [
    "CameraIntrinsics",
    "CameraModel",
    "CentralCamera",
    "FisheyeCamera",
    "SphericalCamera",
    "Ellipse",
    "FISHEYE_MODELS",
    "make_camera",
]
