"""
Errors raised by curve calibration.

Every calibration call is atomic: one of these propagates out of the call
and the caller's curve provider is left untouched.
"""

from typing import Optional, Sequence

import numpy as np


class CurveLibError(Exception):
    """Base class of all curvelib errors."""


class ConfigurationError(CurveLibError, ValueError):
    """
    Caller bug in the calibration set-up.

    Duplicate curve names, non-square calibration units, malformed generator
    or instrument attributes. Not retryable.
    """


class DependencyOrderError(ConfigurationError):
    """
    A unit needs a curve that has not been calibrated yet.

    Attributes:
        unit: Index of the unit that needs the curve
        curve_name: Name of the missing curve
    """

    def __init__(self, message: str, unit: Optional[int] = None, curve_name: Optional[str] = None):
        super().__init__(message)
        self.unit = unit
        self.curve_name = curve_name


class BlockConsistencyError(ConfigurationError):
    """Two Jacobian blocks disagree on the instruments behind a curve."""


class ConvergenceError(CurveLibError, RuntimeError):
    """
    Root finding failed to meet the tolerances.

    Attributes:
        residuals: Residual vector at the last iterate
        iterations: Number of iterations performed
        unit: Index of the calibration unit, when raised by the repository
    """

    def __init__(
        self,
        message: str,
        residuals: Sequence[float],
        iterations: int,
        unit: Optional[int] = None
    ):
        super().__init__(message)
        self.residuals = np.asarray(residuals, dtype=float)
        self.iterations = iterations
        self.unit = unit

    @property
    def max_residual(self) -> float:
        if self.residuals.size == 0:
            return 0.0
        return float(np.max(np.abs(self.residuals)))


class NotFoundError(CurveLibError, LookupError):
    """Lookup of a curve, currency, index or calculator method failed."""


__all__ = [
    "CurveLibError",
    "ConfigurationError",
    "DependencyOrderError",
    "BlockConsistencyError",
    "ConvergenceError",
    "NotFoundError",
]
