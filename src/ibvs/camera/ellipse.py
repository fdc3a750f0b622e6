"""Ellipse (conic) image feature."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..exceptions import DegenerateGeometry
from .base import GEOMETRY_EPS


@dataclass(frozen=True)
class Ellipse:
    """Ellipse in normalized image coordinates.

    The five coefficients E describe the implicit curve

        u^2 + E1 v^2 - 2 E2 u v + 2 E3 u + 2 E4 v + E5 = 0
    """

    coefficients: tuple[float, float, float, float, float]

    def __post_init__(self) -> None:
        coefficients = tuple(float(c) for c in np.asarray(self.coefficients).flatten())
        if len(coefficients) != 5:
            raise ValueError(f"Ellipse needs 5 coefficients, got {len(coefficients)}")
        object.__setattr__(self, "coefficients", coefficients)

    @classmethod
    def from_conic(cls, conic: np.ndarray) -> Ellipse:
        """Create from a symmetric 3x3 conic matrix C with x^T C x = 0.

        Raises:
            DegenerateGeometry: If the u^2 coefficient vanishes
        """
        C = np.asarray(conic, dtype=np.float64)
        if C.shape != (3, 3):
            raise ValueError(f"Conic must be 3x3, got {C.shape}")
        C = (C + C.T) / 2.0
        a = C[0, 0]
        if abs(a) < GEOMETRY_EPS:
            raise DegenerateGeometry("Conic has no u^2 term")
        return cls(
            coefficients=(
                C[1, 1] / a,
                -C[0, 1] / a,
                C[0, 2] / a,
                C[1, 2] / a,
                C[2, 2] / a,
            )
        )

    def to_conic(self) -> np.ndarray:
        """Return the symmetric 3x3 conic matrix."""
        e1, e2, e3, e4, e5 = self.coefficients
        return np.array(
            [[1.0, -e2, e3], [-e2, e1, e4], [e3, e4, e5]], dtype=np.float64
        )

    def as_array(self) -> np.ndarray:
        """Return the coefficients as a (5,) array."""
        return np.array(self.coefficients, dtype=np.float64)
