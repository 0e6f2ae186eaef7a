"""
Newton root finder for calibration units.

Provides:
- CalibrationSettings: tolerances and iteration limits
- NewtonVectorRootFinder: damped Newton iteration with an analytic Jacobian
- RootFinderResult: solution, final residuals and iteration count
"""

from dataclasses import dataclass
from typing import Callable
import logging

import numpy as np
from scipy import linalg

from ..exceptions import ConvergenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationSettings:
    """
    Root finding settings of a calibration.

    Attributes:
        absolute_tolerance: Bound on max |residual| at the solution
        relative_tolerance: Bound on the last step, relative to 1 + max |x|
        max_iterations: Newton iterations before giving up
        max_backtracks: Step halvings tried per iteration
    """
    absolute_tolerance: float = 1e-10
    relative_tolerance: float = 1e-10
    max_iterations: int = 100
    max_backtracks: int = 20

    def __post_init__(self):
        if self.absolute_tolerance <= 0 or self.relative_tolerance <= 0:
            raise ValueError("Tolerances must be positive")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.max_backtracks < 0:
            raise ValueError("max_backtracks must be non-negative")

    @classmethod
    def default(cls) -> "CalibrationSettings":
        return cls()

    @classmethod
    def strict(cls) -> "CalibrationSettings":
        """Tighter tolerances, for tests and benchmarks."""
        return cls(absolute_tolerance=1e-12, relative_tolerance=1e-12, max_iterations=200)


@dataclass
class RootFinderResult:
    """Solution of a root search."""
    x: np.ndarray
    residuals: np.ndarray
    iterations: int

    @property
    def max_residual(self) -> float:
        return float(np.max(np.abs(self.residuals))) if self.residuals.size else 0.0


class NewtonVectorRootFinder:
    """
    Newton iteration x <- x - J(x)^-1 R(x) with step halving.

    A step is accepted once the residual norm does not increase, or after
    max_backtracks halvings. Converged when max |R| <= absolute_tolerance and
    the last accepted step satisfies max |dx| <= relative_tolerance * (1 + max |x|).
    """

    def __init__(
        self,
        absolute_tolerance: float = 1e-10,
        relative_tolerance: float = 1e-10,
        max_iterations: int = 100,
        max_backtracks: int = 20
    ):
        self.absolute_tolerance = absolute_tolerance
        self.relative_tolerance = relative_tolerance
        self.max_iterations = max_iterations
        self.max_backtracks = max_backtracks

    @classmethod
    def from_settings(cls, settings: CalibrationSettings) -> "NewtonVectorRootFinder":
        return cls(
            settings.absolute_tolerance,
            settings.relative_tolerance,
            settings.max_iterations,
            settings.max_backtracks
        )

    def solve(
        self,
        function: Callable[[np.ndarray], np.ndarray],
        jacobian: Callable[[np.ndarray], np.ndarray],
        start: np.ndarray
    ) -> RootFinderResult:
        """
        Find x with function(x) = 0.

        Args:
            function: Residual vector R(x)
            jacobian: Square Jacobian dR/dx
            start: Start point

        Returns:
            RootFinderResult

        Raises:
            ConvergenceError: Singular Jacobian, non-finite residuals or
                iteration limit reached
        """
        x = np.asarray(start, dtype=np.float64).copy()
        residuals = np.asarray(function(x), dtype=np.float64)
        if not np.all(np.isfinite(residuals)):
            raise ConvergenceError("Non-finite residuals at the start point", residuals, 0)

        for iteration in range(1, self.max_iterations + 1):
            matrix = np.asarray(jacobian(x), dtype=np.float64)
            try:
                step = linalg.solve(matrix, -residuals)
            except (linalg.LinAlgError, ValueError) as exc:
                raise ConvergenceError(
                    f"Singular Jacobian at iteration {iteration}: {exc}", residuals, iteration - 1
                ) from exc
            if not np.all(np.isfinite(step)):
                raise ConvergenceError(f"Non-finite Newton step at iteration {iteration}", residuals, iteration - 1)

            norm = np.linalg.norm(residuals)
            damping = 1.0
            for backtrack in range(self.max_backtracks + 1):
                candidate = x + damping * step
                candidate_residuals = np.asarray(function(candidate), dtype=np.float64)
                finite = np.all(np.isfinite(candidate_residuals))
                if finite and np.linalg.norm(candidate_residuals) <= norm:
                    break
                if backtrack == self.max_backtracks:
                    break
                damping *= 0.5
                logger.debug("Iteration %d: backtracking, damping %.3g", iteration, damping)

            if not np.all(np.isfinite(candidate_residuals)):
                raise ConvergenceError(
                    f"Non-finite residuals at iteration {iteration}", residuals, iteration
                )

            applied = damping * step
            x = candidate
            residuals = candidate_residuals
            max_residual = float(np.max(np.abs(residuals))) if residuals.size else 0.0
            logger.debug("Iteration %d: max |residual| %.3e, damping %.3g", iteration, max_residual, damping)

            small_step = np.max(np.abs(applied), initial=0.0) <= \
                self.relative_tolerance * (1.0 + np.max(np.abs(x), initial=0.0))
            if max_residual <= self.absolute_tolerance and small_step:
                return RootFinderResult(x=x, residuals=residuals, iterations=iteration)

        raise ConvergenceError(
            f"No convergence after {self.max_iterations} iterations, "
            f"max |residual| {np.max(np.abs(residuals), initial=0.0):.3e}",
            residuals,
            self.max_iterations
        )


__all__ = [
    "CalibrationSettings",
    "RootFinderResult",
    "NewtonVectorRootFinder",
]
