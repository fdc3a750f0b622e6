"""Construct camera models by name."""

from __future__ import annotations

from typing import Any

from ..exceptions import ConfigurationError, UnsupportedProjectionModel
from .base import CameraIntrinsics, CameraModel
from .central import CentralCamera
from .fisheye import FisheyeCamera
from .spherical import SphericalCamera

_INTRINSIC_KEYS = (
    "focal_length",
    "pixel_size",
    "resolution",
    "principal_point",
    "noise",
    "seed",
)


def make_camera(kind: str = "central", **params: Any) -> CameraModel:
    """Create a camera from a kind name and flat parameters.

    Args:
        kind: One of "central" (alias "perspective"), "fisheye", "spherical"
        **params: CameraIntrinsics fields, plus "projection" and "k" for
            fisheye cameras

    Returns:
        Camera model instance

    Raises:
        UnsupportedProjectionModel: If kind is unknown
        ConfigurationError: If a parameter is invalid or not understood
    """
    intrinsics_params = {key: params.pop(key) for key in _INTRINSIC_KEYS if key in params}
    intrinsics = CameraIntrinsics(**intrinsics_params)

    kind = kind.lower()
    if kind == "fisheye":
        camera: CameraModel = FisheyeCamera(
            intrinsics,
            projection=params.pop("projection", "equiangular"),
            k=params.pop("k", None),
        )
    elif kind in ("central", "perspective"):
        camera = CentralCamera(intrinsics)
    elif kind == "spherical":
        camera = SphericalCamera(intrinsics)
    else:
        raise UnsupportedProjectionModel(f"Unknown camera kind '{kind}'")

    if params:
        raise ConfigurationError(
            f"Unexpected parameters for {kind} camera: {sorted(params)}"
        )
    return camera
