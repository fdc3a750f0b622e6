"""Servo loop configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np
import yaml

from .camera.base import as_number
from .control.control_law import validate_gain
from .exceptions import ConfigurationError


class DepthMode(Enum):
    """Source of the point depths used to build the image Jacobian."""

    TRUE = "true"  # exact depth from the simulated geometry
    FIXED = "fixed"  # a constant assumed depth for every point
    ESTIMATED = "estimated"  # recursive estimate, assumed depth until available


@dataclass
class ServoConfig:
    """Configuration for an IBVS servo loop.

    Attributes:
        gain: Control gain λ, positive scalar or positive-definite 6x6 matrix
        error_threshold: Converged when the feature error norm drops below this
        max_iterations: Iteration budget before the run is exhausted
        depth_mode: Where Jacobian depths come from
        assumed_depth: Depth used in FIXED mode, and in ESTIMATED mode until
            an estimate exists
        depth_smoothing: Smoothing factor α of the depth estimator
    """

    gain: float | np.ndarray = 0.08
    error_threshold: float = 0.5
    max_iterations: int = 500
    depth_mode: DepthMode = DepthMode.TRUE
    assumed_depth: float = 1.0
    depth_smoothing: float = 0.8

    def __post_init__(self) -> None:
        """Validate configuration values."""
        self.gain = validate_gain(self.gain)

        if self.depth_mode is True:
            # YAML reads a bare `true` as a boolean
            self.depth_mode = DepthMode.TRUE
        elif isinstance(self.depth_mode, str):
            try:
                self.depth_mode = DepthMode(self.depth_mode.lower())
            except ValueError:
                raise ConfigurationError(
                    f"Unknown depth mode '{self.depth_mode}', "
                    f"expected one of {[m.value for m in DepthMode]}"
                ) from None
        if not isinstance(self.depth_mode, DepthMode):
            raise ConfigurationError(f"Invalid depth mode {self.depth_mode!r}")

        self.error_threshold = as_number(self.error_threshold, "error_threshold")
        if self.error_threshold <= 0:
            raise ConfigurationError(
                f"error_threshold must be positive, got {self.error_threshold}"
            )
        self.max_iterations = as_number(self.max_iterations, "max_iterations", int)
        if self.max_iterations <= 0:
            raise ConfigurationError(
                f"max_iterations must be a positive integer, got {self.max_iterations}"
            )
        self.assumed_depth = as_number(self.assumed_depth, "assumed_depth")
        if not np.isfinite(self.assumed_depth) or self.assumed_depth <= 0:
            raise ConfigurationError(
                f"assumed_depth must be positive, got {self.assumed_depth}"
            )
        self.depth_smoothing = as_number(self.depth_smoothing, "depth_smoothing")
        if not 0.0 <= self.depth_smoothing < 1.0:
            raise ConfigurationError(
                f"depth_smoothing must be in [0, 1), got {self.depth_smoothing}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServoConfig:
        """Create configuration from a plain dictionary.

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown servo options: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> ServoConfig:
        """Load configuration from the "servo" section of a YAML file.

        Args:
            yaml_path: Path to YAML file

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigurationError: If the contents are invalid
        """
        data = load_yaml(yaml_path)
        return cls.from_dict(data.get("servo") or {})


def load_yaml(yaml_path: str | Path) -> dict[str, Any]:
    """Read a YAML mapping from disk."""
    path = Path(yaml_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping in {yaml_path}")
    return data
