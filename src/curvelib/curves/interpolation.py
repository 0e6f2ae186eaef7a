"""
Interpolation methods for calibrated curves.

Provides:
- LinearInterpolator: Piecewise linear interpolation
- CubicSplineInterpolator: Natural cubic spline

Both interpolators use year fractions as x-coordinates and work on zero rates
or log discount factors. Besides values they return node sensitivities, the
derivative of the interpolated value with respect to each node value, which
the calibration Jacobians are built from.
"""

from abc import ABC, abstractmethod
from typing import Optional
import numpy as np


EXTRAPOLATIONS = ("flat", "linear")


class Interpolator(ABC):
    """Abstract base class for curve interpolation."""

    def __init__(self, extrapolation: str = "flat"):
        if extrapolation not in EXTRAPOLATIONS:
            raise ValueError(f"Unknown extrapolation: {extrapolation}")
        self.extrapolation = extrapolation
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            times: Array of year fractions (strictly increasing)
            values: Array of values (zero rates or log discount factors)
        """
        times = np.asarray(times, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64)
        if times.ndim != 1 or times.shape != values.shape:
            raise ValueError("Times and values must have same length")
        if len(times) == 0:
            raise ValueError("Need at least 1 point for interpolation")
        if np.any(np.diff(times) <= 0):
            raise ValueError("Times must be strictly increasing")
        self.times = times
        self.values = values
        self._prepare()

    def _prepare(self) -> None:
        pass

    def _check_fitted(self) -> None:
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")

    @abstractmethod
    def interpolate(self, t: float) -> float:
        """
        Interpolate at a single point.

        Args:
            t: Year fraction

        Returns:
            Interpolated value
        """

    @abstractmethod
    def node_sensitivity(self, t: float) -> np.ndarray:
        """
        Sensitivity of the interpolated value at t to each node value.

        Args:
            t: Year fraction

        Returns:
            Array with one entry per node
        """

    def __call__(self, t: float) -> float:
        """Convenience method to call interpolate."""
        return self.interpolate(t)


class LinearInterpolator(Interpolator):
    """
    Linear interpolation.

    Flat extrapolation on the left. On the right, flat or linear along the
    last segment. A single node gives a constant.
    """

    def interpolate(self, t: float) -> float:
        """Linear interpolation."""
        return float(np.dot(self.node_sensitivity(t), self.values))

    def node_sensitivity(self, t: float) -> np.ndarray:
        """Interpolation weights, linear in the node values."""
        self._check_fitted()
        n = len(self.times)
        weights = np.zeros(n)

        if n == 1 or t <= self.times[0]:
            weights[0] = 1.0
            return weights
        if t >= self.times[-1] and self.extrapolation == "flat":
            weights[-1] = 1.0
            return weights

        if t >= self.times[-1]:
            idx = n - 2
        else:
            idx = int(np.searchsorted(self.times, t, side='right')) - 1
            idx = max(0, min(idx, n - 2))

        t0, t1 = self.times[idx], self.times[idx + 1]
        w = (t - t0) / (t1 - t0)
        weights[idx] = 1.0 - w
        weights[idx + 1] = w
        return weights


class CubicSplineInterpolator(Interpolator):
    """
    Natural cubic spline (second derivative = 0 at boundaries).

    The spline coefficients are linear in the node values. The fit stores a
    basis tensor of shape (n-1, 4, n) so that coefficients = basis @ values and
    node sensitivities come from the same basis.
    """

    def __init__(self, extrapolation: str = "flat"):
        super().__init__(extrapolation)
        self.basis: Optional[np.ndarray] = None
        self.coefficients: Optional[np.ndarray] = None  # Shape: (n-1, 4) for [a, b, c, d]

    def _prepare(self) -> None:
        n = len(self.times)
        if n == 1:
            self.basis = np.array([[[1.0], [0.0], [0.0], [0.0]]])
        else:
            identity = np.eye(n)
            self.basis = np.stack(
                [_spline_coefficients(self.times, identity[:, j]) for j in range(n)],
                axis=-1
            )
        self.coefficients = self.basis @ self.values

    def interpolate(self, t: float) -> float:
        """Evaluate cubic spline at point t."""
        return float(np.dot(self.node_sensitivity(t), self.values))

    def node_sensitivity(self, t: float) -> np.ndarray:
        """Sensitivity of the spline value to node values."""
        self._check_fitted()
        n = len(self.times)

        if n == 1 or t <= self.times[0]:
            weights = np.zeros(n)
            weights[0] = 1.0
            return weights

        if t >= self.times[-1]:
            weights = np.zeros(n)
            weights[-1] = 1.0
            if self.extrapolation == "linear":
                # Extend along the spline slope at the last node
                h = self.times[-1] - self.times[-2]
                slope = np.array([0.0, 1.0, 2.0 * h, 3.0 * h ** 2]) @ self.basis[-1]
                weights = weights + slope * (t - self.times[-1])
            return weights

        idx = int(np.searchsorted(self.times, t, side='right')) - 1
        idx = max(0, min(idx, n - 2))
        dx = t - self.times[idx]
        return np.array([1.0, dx, dx ** 2, dx ** 3]) @ self.basis[idx]


def _spline_coefficients(times: np.ndarray, values: np.ndarray) -> np.ndarray:
    """
    Natural cubic spline coefficients per interval.

    S_i(x) = a_i + b_i*(x-x_i) + c_i*(x-x_i)^2 + d_i*(x-x_i)^3
    """
    n = len(times)
    h = np.diff(times)

    if n == 2:
        # Degenerate to linear
        slope = (values[1] - values[0]) / h[0]
        return np.array([[values[0], slope, 0.0, 0.0]])

    # Tridiagonal system for second derivatives, M[0] = M[n-1] = 0
    A = np.zeros((n, n))
    b = np.zeros(n)
    A[0, 0] = 1.0
    A[n - 1, n - 1] = 1.0
    for i in range(1, n - 1):
        A[i, i - 1] = h[i - 1]
        A[i, i] = 2 * (h[i - 1] + h[i])
        A[i, i + 1] = h[i]
        b[i] = 6 * ((values[i + 1] - values[i]) / h[i] -
                    (values[i] - values[i - 1]) / h[i - 1])

    M = np.linalg.solve(A, b)

    coefficients = np.zeros((n - 1, 4))
    for i in range(n - 1):
        coefficients[i, 0] = values[i]
        coefficients[i, 1] = (values[i + 1] - values[i]) / h[i] - h[i] * (M[i + 1] + 2 * M[i]) / 6
        coefficients[i, 2] = M[i] / 2
        coefficients[i, 3] = (M[i + 1] - M[i]) / (6 * h[i])
    return coefficients


def create_interpolator(method: str, extrapolation: str = "flat") -> Interpolator:
    """
    Factory function to create an interpolator by name.

    Args:
        method: One of "linear", "cubic_spline"
        extrapolation: "flat" or "linear" on the right side

    Returns:
        Interpolator instance
    """
    method = method.lower().replace("-", "_").replace(" ", "_")

    if method in ("linear", "lin"):
        return LinearInterpolator(extrapolation)
    elif method in ("cubic_spline", "cubic", "spline"):
        return CubicSplineInterpolator(extrapolation)
    else:
        raise ValueError(f"Unknown interpolation method: {method}")


__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "CubicSplineInterpolator",
    "create_interpolator",
]
