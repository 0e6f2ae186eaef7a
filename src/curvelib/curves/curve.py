"""
Curve representations used by calibration.

Every curve maps time to a continuously compounded zero rate r(t) and
provides:
- Discount factor P(t) = exp(-r(t) t)
- Simply compounded forward rate over a period
- A parameter vector and an immutable with_parameters() update
- Parameter sensitivity of r(t), keyed by curve name

Curve variants:
- InterpolatedYieldCurve: zero rates at nodes
- InterpolatedDiscountCurve: discount factors at nodes, log-DF interpolation
- SpreadCurve: sum or difference of member curves in yield space
- PriceIndexCurve: projected price index values on an inflation zero rate curve

Times are year fractions from the valuation date. Curves never change once
built; calibration produces new curves from new parameter vectors.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
import numpy as np

from .interpolation import Interpolator, create_interpolator


class Curve(ABC):
    """
    Abstract yield curve.

    Attributes:
        name: Curve name, unique within a curve provider

    Conventions:
        - Zero rates are continuously compounded
        - Times are year fractions from the valuation date
        - Discount factor at t <= 0 is exactly 1.0
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def zero_rate(self, t: float) -> float:
        """Continuously compounded zero rate r(t)."""

    @property
    @abstractmethod
    def parameters(self) -> np.ndarray:
        """Parameter vector solved for during calibration."""

    @abstractmethod
    def with_parameters(self, parameters: Sequence[float]) -> "Curve":
        """
        Build a copy of this curve with a new parameter vector.

        Args:
            parameters: New parameters, same length as self.parameters

        Returns:
            New curve with the same name and shape
        """

    @abstractmethod
    def parameter_sensitivity(self, t: float) -> Dict[str, np.ndarray]:
        """
        Sensitivity of r(t) to curve parameters.

        Returns:
            Dictionary curve name -> d r(t) / d parameters. The entry under
            self.name covers this curve's own parameters; other entries are
            the parameters of underlying named curves.
        """

    @property
    def parameter_count(self) -> int:
        return len(self.parameters)

    def discount_factor(self, t: float) -> float:
        """
        Get discount factor P(t).

        Args:
            t: Year fraction

        Returns:
            Discount factor
        """
        if t <= 0:
            return 1.0
        return float(np.exp(-self.zero_rate(t) * t))

    def forward_rate(self, start_time: float, end_time: float, accrual_factor: float) -> float:
        """
        Simply compounded forward rate over [start_time, end_time].

        Args:
            start_time: Fixing period start
            end_time: Fixing period end
            accrual_factor: Accrual factor of the period in the index day count

        Returns:
            (P(start) / P(end) - 1) / accrual_factor
        """
        if end_time <= start_time:
            raise ValueError("end_time must be greater than start_time")
        if accrual_factor <= 0:
            raise ValueError("Accrual factor must be positive")
        return (self.discount_factor(start_time) / self.discount_factor(end_time) - 1.0) / accrual_factor

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, parameters={self.parameter_count})"


class InterpolatedYieldCurve(Curve):
    """
    Zero rates at nodes, interpolated in rate space.

    The first n_fixed nodes are anchors: they shape the curve but are not
    parameters.
    """

    def __init__(
        self,
        name: str,
        times: Sequence[float],
        rates: Sequence[float],
        interpolation: str = "linear",
        n_fixed: int = 0
    ):
        super().__init__(name)
        self.times = np.asarray(times, dtype=np.float64)
        self.rates = np.asarray(rates, dtype=np.float64)
        if not 0 <= n_fixed <= len(self.times):
            raise ValueError(f"Invalid number of fixed nodes: {n_fixed}")
        self.interpolation = interpolation
        self.n_fixed = n_fixed
        self._interpolator: Interpolator = create_interpolator(interpolation)
        self._interpolator.fit(self.times, self.rates)

    def zero_rate(self, t: float) -> float:
        return self._interpolator.interpolate(t)

    @property
    def parameters(self) -> np.ndarray:
        return self.rates[self.n_fixed:].copy()

    def with_parameters(self, parameters: Sequence[float]) -> "InterpolatedYieldCurve":
        parameters = np.asarray(parameters, dtype=np.float64)
        if len(parameters) != self.parameter_count:
            raise ValueError(
                f"Curve {self.name} expects {self.parameter_count} parameters, got {len(parameters)}"
            )
        rates = np.concatenate([self.rates[:self.n_fixed], parameters])
        return InterpolatedYieldCurve(self.name, self.times, rates, self.interpolation, self.n_fixed)

    def parameter_sensitivity(self, t: float) -> Dict[str, np.ndarray]:
        return {self.name: self._interpolator.node_sensitivity(t)[self.n_fixed:]}

    def get_nodes(self) -> List[Tuple[float, float]]:
        """
        Get all curve nodes.

        Returns:
            List of (time, zero_rate) tuples
        """
        return list(zip(self.times.tolist(), self.rates.tolist()))


class InterpolatedDiscountCurve(Curve):
    """
    Discount factors at nodes, interpolated on log discount factors.

    Before the first node the curve starts from P(0) = 1, which gives a
    constant rate up to the first node. Beyond the last node log discount
    factors are extrapolated linearly. Nodes flagged as fixed are anchors
    whose discount factor is held at its given value (1.0 for an anchor at
    the valuation date).
    """

    def __init__(
        self,
        name: str,
        times: Sequence[float],
        discount_factors: Sequence[float],
        interpolation: str = "linear",
        fixed: Optional[Sequence[bool]] = None
    ):
        super().__init__(name)
        self.times = np.asarray(times, dtype=np.float64)
        self.discount_factors = np.asarray(discount_factors, dtype=np.float64)
        if fixed is None:
            fixed = [False] * len(self.times)
        self.fixed = np.asarray(fixed, dtype=bool)
        if self.fixed.shape != self.times.shape:
            raise ValueError("Fixed flags and times must have same length")
        self.interpolation = interpolation

        with np.errstate(invalid="ignore", divide="ignore"):
            log_df = np.log(self.discount_factors)

        # Virtual node at t=0 with P(0) = 1
        self._offset = 1 if len(self.times) and self.times[0] > 0 else 0
        grid_times = np.concatenate([[0.0] * self._offset, self.times])
        grid_values = np.concatenate([[0.0] * self._offset, log_df])
        self._interpolator: Interpolator = create_interpolator(interpolation, extrapolation="linear")
        self._interpolator.fit(grid_times, grid_values)
        self._grid_times = grid_times

        positive = grid_times[grid_times > 0]
        if len(positive) == 0:
            raise ValueError("Discount curve needs a node after the valuation date")
        self._short_time = float(positive[0])

    def _log_df(self, t: float) -> float:
        return self._interpolator.interpolate(t)

    def zero_rate(self, t: float) -> float:
        # Short end: rate of the first positive node
        if t <= 0:
            t = self._short_time
        return -self._log_df(t) / t

    def discount_factor(self, t: float) -> float:
        if t <= 0:
            return 1.0
        return float(np.exp(self._log_df(t)))

    @property
    def parameters(self) -> np.ndarray:
        return self.discount_factors[~self.fixed].copy()

    def with_parameters(self, parameters: Sequence[float]) -> "InterpolatedDiscountCurve":
        parameters = np.asarray(parameters, dtype=np.float64)
        if len(parameters) != self.parameter_count:
            raise ValueError(
                f"Curve {self.name} expects {self.parameter_count} parameters, got {len(parameters)}"
            )
        discount_factors = self.discount_factors.copy()
        discount_factors[~self.fixed] = parameters
        return InterpolatedDiscountCurve(
            self.name, self.times, discount_factors, self.interpolation, self.fixed
        )

    def parameter_sensitivity(self, t: float) -> Dict[str, np.ndarray]:
        # r = -ln P(t) / t, d ln P_i / d P_i = 1 / P_i
        if t <= 0:
            t = self._short_time
        weights = self._interpolator.node_sensitivity(t)[self._offset:]
        sensitivity = -weights / (t * self.discount_factors)
        return {self.name: sensitivity[~self.fixed]}

    def get_nodes(self) -> List[Tuple[float, float]]:
        """
        Get all curve nodes.

        Returns:
            List of (time, discount_factor) tuples
        """
        return list(zip(self.times.tolist(), self.discount_factors.tolist()))


class MemberRole(Enum):
    """How a member of a spread curve relates to calibration."""
    OWNED = "owned"          # parameters are unknowns of the composite
    FIXED = "fixed"          # deterministic shift, no unknowns
    EXISTING = "existing"    # calibrated earlier, reported under its own name


class SpreadCurve(Curve):
    """
    Sum of member curves in yield space.

    r(t) = r_0(t) + sign * sum_{k>=1} r_k(t), sign = -1 when subtract is set.

    The composite's parameters are the concatenated parameters of its OWNED
    members. Sensitivities to EXISTING members are reported under their own
    names so that calibration can chain them to earlier units.
    """

    def __init__(
        self,
        name: str,
        curves: Sequence[Curve],
        subtract: bool = False,
        roles: Optional[Sequence[MemberRole]] = None
    ):
        super().__init__(name)
        if len(curves) == 0:
            raise ValueError("Spread curve needs at least one member")
        if roles is None:
            roles = [MemberRole.OWNED] * len(curves)
        if len(roles) != len(curves):
            raise ValueError("Roles and curves must have same length")
        self.curves = list(curves)
        self.roles = list(roles)
        self.subtract = subtract

    def _sign(self, k: int) -> float:
        return -1.0 if (k > 0 and self.subtract) else 1.0

    def _owned(self) -> List[Curve]:
        return [c for c, role in zip(self.curves, self.roles) if role == MemberRole.OWNED]

    def zero_rate(self, t: float) -> float:
        return float(sum(self._sign(k) * c.zero_rate(t) for k, c in enumerate(self.curves)))

    @property
    def parameters(self) -> np.ndarray:
        owned = self._owned()
        if not owned:
            return np.zeros(0)
        return np.concatenate([c.parameters for c in owned])

    def with_parameters(self, parameters: Sequence[float]) -> "SpreadCurve":
        parameters = np.asarray(parameters, dtype=np.float64)
        if len(parameters) != self.parameter_count:
            raise ValueError(
                f"Curve {self.name} expects {self.parameter_count} parameters, got {len(parameters)}"
            )
        curves = []
        position = 0
        for curve, role in zip(self.curves, self.roles):
            if role == MemberRole.OWNED:
                count = curve.parameter_count
                curve = curve.with_parameters(parameters[position:position + count])
                position += count
            curves.append(curve)
        return SpreadCurve(self.name, curves, self.subtract, self.roles)

    def parameter_sensitivity(self, t: float) -> Dict[str, np.ndarray]:
        own: List[np.ndarray] = []
        result: Dict[str, np.ndarray] = {}

        for k, (curve, role) in enumerate(zip(self.curves, self.roles)):
            if role == MemberRole.FIXED:
                continue
            sign = self._sign(k)
            for key, value in curve.parameter_sensitivity(t).items():
                if role == MemberRole.OWNED and key == curve.name:
                    own.append(sign * value)
                elif key in result:
                    result[key] = result[key] + sign * value
                else:
                    result[key] = sign * value

        result[self.name] = np.concatenate(own) if own else np.zeros(0)
        return result


class PriceIndexCurve(Curve):
    """
    Price index curve on an inflation zero rate curve.

    I(t) = base_value * exp(r(t) t) = base_value / P(t), where r is the zero
    rate of the wrapped curve and base_value the index level at the
    valuation date. Parameters and sensitivities are those of the wrapped
    curve, so a seasonal adjustment is a fixed member of a spread curve.

    Args:
        curve: Inflation zero rate curve, named like the price index curve
        base_value: Index value at t = 0
    """

    def __init__(self, curve: Curve, base_value: float):
        super().__init__(curve.name)
        if base_value <= 0:
            raise ValueError(f"Base index value must be positive, got {base_value}")
        self.curve = curve
        self.base_value = float(base_value)

    def zero_rate(self, t: float) -> float:
        return self.curve.zero_rate(t)

    def discount_factor(self, t: float) -> float:
        return self.curve.discount_factor(t)

    def price_index(self, t: float) -> float:
        """Projected index value at time t (base_value for t <= 0)."""
        return self.base_value / self.discount_factor(t)

    def inflation_rate(self, first_time: float, second_time: float) -> float:
        """Index growth I(second) / I(first) - 1 between two times."""
        if second_time <= first_time:
            raise ValueError("second_time must be greater than first_time")
        return self.price_index(second_time) / self.price_index(first_time) - 1.0

    @property
    def parameters(self) -> np.ndarray:
        return self.curve.parameters

    def with_parameters(self, parameters: Sequence[float]) -> "PriceIndexCurve":
        return PriceIndexCurve(self.curve.with_parameters(parameters), self.base_value)

    def parameter_sensitivity(self, t: float) -> Dict[str, np.ndarray]:
        return self.curve.parameter_sensitivity(t)


def create_flat_curve(name: str, rate: float) -> InterpolatedYieldCurve:
    """
    Curve with a constant zero rate, e.g. an exogenous curve in a provider.

    Args:
        name: Curve name
        rate: Continuously compounded zero rate

    Returns:
        Single node yield curve
    """
    return InterpolatedYieldCurve(name, [1.0], [rate])


__all__ = [
    "Curve",
    "InterpolatedYieldCurve",
    "InterpolatedDiscountCurve",
    "MemberRole",
    "SpreadCurve",
    "PriceIndexCurve",
    "create_flat_curve",
]
