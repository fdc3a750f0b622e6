"""Exception hierarchy for the visual servoing engine.

Configuration errors are raised when a camera or servo loop is built and
never surface mid-run. Numerical faults raised during a step are either
absorbed (depth estimation) or turned into a FAILED run status by the
servo loop.
"""


class ServoError(Exception):
    """Base class for all visual servoing errors."""


class ConfigurationError(ServoError, ValueError):
    """Invalid configuration (dimensions, gain, iteration budget, ...)."""


class UnsupportedProjectionModel(ConfigurationError):
    """Unknown camera kind or fisheye projection model requested."""


class DegenerateGeometry(ServoError, ArithmeticError):
    """Projection or Jacobian math hit a vanishing denominator."""


class SingularDepthSystem(ServoError, ArithmeticError):
    """Per-point inverse-depth least-squares system is singular."""


class ControlSingularity(ServoError, ArithmeticError):
    """Image Jacobian pseudo-inverse cannot be computed reliably."""
