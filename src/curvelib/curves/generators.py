"""
Curve generators: recipes that turn a parameter vector into a curve.

A generator is first bound to the calibration instruments of its curve with
final_generator(), which fixes node times (usually the instrument maturities)
and hence the parameter count. The bound generator then provides:
- initial_guess(): start point from naive market rates
- generate_curve(): curve from a parameter vector

Provides:
- YieldInterpolatedGenerator / YieldInterpolatedAnchorGenerator
- DiscountFactorInterpolatedGenerator (plain or anchored)
- DiscountFactorInterpolatedNumberGenerator (fixed node count)
- DiscountFactorInterpolatedAnchorNodeGenerator (explicit node times)
- AddYieldGenerator (spread composition of several generators)
- AddYieldExistingGenerator (spread on top of a calibrated curve)
- PriceIndexGenerator (price index curve on generated inflation zero rates)
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence
import numpy as np

from ..exceptions import ConfigurationError, DependencyOrderError, NotFoundError
from .curve import (
    Curve,
    InterpolatedDiscountCurve,
    InterpolatedYieldCurve,
    MemberRole,
    PriceIndexCurve,
    SpreadCurve
)


MaturityCalculator = Callable[[object], float]


def last_time(derivative) -> float:
    """Default maturity calculator: time of the last cash flow or fixing."""
    return float(derivative.last_time)


def _check_increasing(times: Sequence[float], what: str) -> np.ndarray:
    times = np.asarray(times, dtype=np.float64)
    if len(times) == 0:
        raise ConfigurationError(f"{what}: no node times")
    if np.any(np.diff(times) <= 0):
        raise ConfigurationError(f"{what}: node times must be strictly increasing, got {times.tolist()}")
    return times


class CurveGenerator(ABC):
    """Abstract curve generator."""

    @property
    @abstractmethod
    def parameter_count(self) -> Optional[int]:
        """Number of parameters, None while it depends on the instruments."""

    @abstractmethod
    def final_generator(self, derivatives: Sequence) -> "CurveGenerator":
        """
        Bind the generator to the instruments calibrating its curve.

        Args:
            derivatives: Time-resolved instruments, in calibration order

        Returns:
            Generator with known node times and parameter count
        """

    @abstractmethod
    def initial_guess(self, rates: Sequence[float]) -> np.ndarray:
        """
        Start point of the root search from naive market rates.

        Args:
            rates: One naive rate per instrument

        Returns:
            Parameter vector
        """

    @abstractmethod
    def generate_curve(self, name: str, parameters: Sequence[float], known_data=None) -> Curve:
        """
        Build the curve for a parameter vector.

        Args:
            name: Curve name
            parameters: Parameter vector of length parameter_count
            known_data: Curve provider holding curves calibrated earlier

        Returns:
            Curve
        """

    def existing_curve_names(self) -> List[str]:
        """Names of calibrated curves this generator builds on."""
        return []

    def _check_parameters(self, parameters: Sequence[float]) -> np.ndarray:
        if self.parameter_count is None:
            raise ConfigurationError(
                f"{type(self).__name__} is not bound to instruments; call final_generator() first"
            )
        parameters = np.asarray(parameters, dtype=np.float64)
        if len(parameters) != self.parameter_count:
            raise ConfigurationError(
                f"{type(self).__name__} expects {self.parameter_count} parameters, got {len(parameters)}"
            )
        return parameters


class YieldInterpolatedGenerator(CurveGenerator):
    """
    Interpolated zero rates with one node per instrument maturity.

    Args:
        maturity_calculator: Node time of an instrument
        interpolation: Interpolation method name
    """

    def __init__(
        self,
        maturity_calculator: MaturityCalculator = last_time,
        interpolation: str = "linear",
        node_times: Optional[Sequence[float]] = None
    ):
        self.maturity_calculator = maturity_calculator
        self.interpolation = interpolation
        self.node_times = None if node_times is None else _check_increasing(node_times, type(self).__name__)

    @property
    def parameter_count(self) -> Optional[int]:
        return None if self.node_times is None else len(self.node_times)

    def final_generator(self, derivatives: Sequence) -> "YieldInterpolatedGenerator":
        times = [self.maturity_calculator(d) for d in derivatives]
        return type(self)(self.maturity_calculator, self.interpolation, node_times=times)

    def initial_guess(self, rates: Sequence[float]) -> np.ndarray:
        return np.asarray(rates, dtype=np.float64).copy()

    def generate_curve(self, name: str, parameters: Sequence[float], known_data=None) -> Curve:
        parameters = self._check_parameters(parameters)
        return InterpolatedYieldCurve(name, self.node_times, parameters, self.interpolation)


class YieldInterpolatedAnchorGenerator(YieldInterpolatedGenerator):
    """
    Interpolated zero rates with an extra fixed node at the anchor time.

    The anchor node has zero rate and is not a parameter.
    """

    def __init__(
        self,
        maturity_calculator: MaturityCalculator = last_time,
        interpolation: str = "linear",
        anchor_time: float = 0.0,
        node_times: Optional[Sequence[float]] = None
    ):
        super().__init__(maturity_calculator, interpolation, node_times)
        self.anchor_time = anchor_time
        if self.node_times is not None and self.node_times[0] <= anchor_time:
            raise ConfigurationError(
                f"Anchor time {anchor_time} must precede the first node {self.node_times[0]}"
            )

    def final_generator(self, derivatives: Sequence) -> "YieldInterpolatedAnchorGenerator":
        times = [self.maturity_calculator(d) for d in derivatives]
        return YieldInterpolatedAnchorGenerator(
            self.maturity_calculator, self.interpolation, self.anchor_time, node_times=times
        )

    def generate_curve(self, name: str, parameters: Sequence[float], known_data=None) -> Curve:
        parameters = self._check_parameters(parameters)
        return InterpolatedYieldCurve(
            name,
            np.concatenate([[self.anchor_time], self.node_times]),
            np.concatenate([[0.0], parameters]),
            self.interpolation,
            n_fixed=1
        )


class DiscountFactorInterpolatedGenerator(CurveGenerator):
    """
    Interpolated discount factors with one node per instrument maturity.

    With anchor_time set, an extra node with discount factor fixed to 1.0 is
    inserted at that time.
    """

    def __init__(
        self,
        maturity_calculator: MaturityCalculator = last_time,
        interpolation: str = "linear",
        anchor_time: Optional[float] = None,
        node_times: Optional[Sequence[float]] = None
    ):
        self.maturity_calculator = maturity_calculator
        self.interpolation = interpolation
        self.anchor_time = anchor_time
        self.node_times = None if node_times is None else _check_increasing(node_times, type(self).__name__)
        if self.node_times is not None:
            self._check_anchor(self.node_times)

    def _check_anchor(self, times: np.ndarray) -> None:
        if self.anchor_time is not None and np.any(np.isclose(times, self.anchor_time, rtol=0.0, atol=1e-12)):
            raise ConfigurationError(f"Anchor time {self.anchor_time} collides with a curve node")

    @property
    def parameter_count(self) -> Optional[int]:
        return None if self.node_times is None else len(self.node_times)

    def final_generator(self, derivatives: Sequence) -> "DiscountFactorInterpolatedGenerator":
        times = [self.maturity_calculator(d) for d in derivatives]
        return DiscountFactorInterpolatedGenerator(
            self.maturity_calculator, self.interpolation, self.anchor_time, node_times=times
        )

    def initial_guess(self, rates: Sequence[float]) -> np.ndarray:
        if self.node_times is None:
            raise ConfigurationError(f"{type(self).__name__} is not bound to instruments")
        rates = np.asarray(rates, dtype=np.float64)
        if len(rates) != len(self.node_times):
            raise ConfigurationError(
                f"{type(self).__name__} expects {len(self.node_times)} rates, got {len(rates)}"
            )
        return np.exp(-rates * self.node_times)

    def generate_curve(self, name: str, parameters: Sequence[float], known_data=None) -> Curve:
        parameters = self._check_parameters(parameters)
        if self.node_times is None:
            raise ConfigurationError(f"{type(self).__name__} is not bound to instruments")
        return _discount_curve(name, self.node_times, parameters, self.interpolation, self.anchor_time)


class DiscountFactorInterpolatedNumberGenerator(DiscountFactorInterpolatedGenerator):
    """
    Interpolated discount factors with a fixed number of nodes.

    The parameter count is known before binding, which lets it sit in front
    of other members of an AddYieldGenerator.
    """

    def __init__(
        self,
        maturity_calculator: MaturityCalculator = last_time,
        n_nodes: int = 1,
        interpolation: str = "linear",
        anchor_time: Optional[float] = None,
        node_times: Optional[Sequence[float]] = None
    ):
        if n_nodes < 1:
            raise ConfigurationError(f"Number of nodes must be positive, got {n_nodes}")
        self.n_nodes = n_nodes
        super().__init__(maturity_calculator, interpolation, anchor_time, node_times)

    @property
    def parameter_count(self) -> Optional[int]:
        return self.n_nodes

    def final_generator(self, derivatives: Sequence) -> "DiscountFactorInterpolatedNumberGenerator":
        if len(derivatives) != self.n_nodes:
            raise ConfigurationError(
                f"Generator with {self.n_nodes} nodes received {len(derivatives)} instruments"
            )
        times = [self.maturity_calculator(d) for d in derivatives]
        return DiscountFactorInterpolatedNumberGenerator(
            self.maturity_calculator, self.n_nodes, self.interpolation, self.anchor_time, node_times=times
        )


class DiscountFactorInterpolatedAnchorNodeGenerator(CurveGenerator):
    """
    Interpolated discount factors on explicit node times plus a fixed anchor.

    Used when nodes are not instrument maturities, e.g. central bank meeting
    dates. Node times do not depend on the instruments.

    Args:
        node_times: Strictly increasing node times
        anchor_time: Time of the anchor node (discount factor 1.0)
        interpolation: Interpolation method name
    """

    def __init__(self, node_times: Sequence[float], anchor_time: float = 0.0, interpolation: str = "linear"):
        self.node_times = _check_increasing(node_times, type(self).__name__)
        self.anchor_time = anchor_time
        self.interpolation = interpolation
        if np.any(np.isclose(self.node_times, anchor_time, rtol=0.0, atol=1e-12)):
            raise ConfigurationError(f"Anchor time {anchor_time} collides with a curve node")

    @property
    def parameter_count(self) -> Optional[int]:
        return len(self.node_times)

    def final_generator(self, derivatives: Sequence) -> "DiscountFactorInterpolatedAnchorNodeGenerator":
        if len(derivatives) != len(self.node_times):
            raise ConfigurationError(
                f"Generator with {len(self.node_times)} nodes received {len(derivatives)} instruments"
            )
        return self

    def initial_guess(self, rates: Sequence[float]) -> np.ndarray:
        rates = np.asarray(rates, dtype=np.float64)
        if len(rates) != len(self.node_times):
            raise ConfigurationError(
                f"{type(self).__name__} expects {len(self.node_times)} rates, got {len(rates)}"
            )
        return np.exp(-rates * self.node_times)

    def generate_curve(self, name: str, parameters: Sequence[float], known_data=None) -> Curve:
        parameters = self._check_parameters(parameters)
        return _discount_curve(name, self.node_times, parameters, self.interpolation, self.anchor_time)


def _discount_curve(
    name: str,
    node_times: np.ndarray,
    parameters: np.ndarray,
    interpolation: str,
    anchor_time: Optional[float]
) -> InterpolatedDiscountCurve:
    if anchor_time is None:
        return InterpolatedDiscountCurve(name, node_times, parameters, interpolation)
    position = int(np.searchsorted(node_times, anchor_time))
    times = np.insert(node_times, position, anchor_time)
    discount_factors = np.insert(parameters, position, 1.0)
    fixed = np.zeros(len(times), dtype=bool)
    fixed[position] = True
    return InterpolatedDiscountCurve(name, times, discount_factors, interpolation, fixed)


class AddYieldGenerator(CurveGenerator):
    """
    Curve made of several generated curves added in yield space.

    Instruments are split across members in order: every member but the last
    takes as many instruments as it has parameters, the last takes the rest.
    Members after the first start from a zero spread. With fixed_curve, that
    curve is the first member of the result and brings no parameters.

    Args:
        generators: Member generators, in order
        subtract: Subtract members after the first instead of adding them
        fixed_curve: Deterministic curve added in front of the members
    """

    def __init__(
        self,
        generators: Sequence[CurveGenerator],
        subtract: bool = False,
        fixed_curve: Optional[Curve] = None
    ):
        if len(generators) == 0:
            raise ConfigurationError("AddYieldGenerator needs at least one member generator")
        self.generators = list(generators)
        self.subtract = subtract
        self.fixed_curve = fixed_curve

    @property
    def parameter_count(self) -> Optional[int]:
        counts = [g.parameter_count for g in self.generators]
        if any(c is None for c in counts):
            return None
        return int(sum(counts))

    def _counts(self) -> List[int]:
        counts = [g.parameter_count for g in self.generators]
        if any(c is None for c in counts):
            raise ConfigurationError("AddYieldGenerator is not bound to instruments")
        return counts

    def final_generator(self, derivatives: Sequence) -> "AddYieldGenerator":
        derivatives = list(derivatives)
        bound = []
        position = 0
        for k, generator in enumerate(self.generators):
            if k == len(self.generators) - 1:
                chunk = derivatives[position:]
            else:
                count = generator.parameter_count
                if count is None:
                    raise ConfigurationError(
                        f"Member {k} of AddYieldGenerator must have a fixed parameter count; "
                        "only the last member is sized by its instruments"
                    )
                chunk = derivatives[position:position + count]
                position += count
            if len(chunk) == 0:
                raise ConfigurationError(f"Member {k} of AddYieldGenerator received no instruments")
            bound.append(generator.final_generator(chunk))
        return AddYieldGenerator(bound, self.subtract, self.fixed_curve)

    def initial_guess(self, rates: Sequence[float]) -> np.ndarray:
        rates = np.asarray(rates, dtype=np.float64)
        counts = self._counts()
        if len(rates) != sum(counts):
            raise ConfigurationError(f"AddYieldGenerator expects {sum(counts)} rates, got {len(rates)}")
        guesses = []
        position = 0
        for k, (generator, count) in enumerate(zip(self.generators, counts)):
            member_rates = rates[position:position + count]
            if k > 0:
                member_rates = np.zeros(count)
            guesses.append(generator.initial_guess(member_rates))
            position += count
        return np.concatenate(guesses)

    def generate_curve(self, name: str, parameters: Sequence[float], known_data=None) -> Curve:
        parameters = self._check_parameters(parameters)
        counts = self._counts()
        curves: List[Curve] = []
        roles: List[MemberRole] = []
        if self.fixed_curve is not None:
            curves.append(self.fixed_curve)
            roles.append(MemberRole.FIXED)
        position = 0
        for k, (generator, count) in enumerate(zip(self.generators, counts)):
            curves.append(generator.generate_curve(f"{name}-{k}", parameters[position:position + count], known_data))
            roles.append(MemberRole.OWNED)
            position += count
        return SpreadCurve(name, curves, self.subtract, roles)

    def existing_curve_names(self) -> List[str]:
        names: List[str] = []
        for generator in self.generators:
            names.extend(generator.existing_curve_names())
        return names


class AddYieldExistingGenerator(CurveGenerator):
    """
    Spread curve on top of a curve calibrated in an earlier unit.

    The existing curve is read from the provider when the curve is generated;
    its parameters stay outside this curve's unknowns and sensitivities to it
    are reported under its own name.

    Args:
        generator: Generator of the spread
        existing_curve_name: Name of the calibrated base curve
        subtract: Subtract the spread instead of adding it
    """

    def __init__(self, generator: CurveGenerator, existing_curve_name: str, subtract: bool = False):
        self.generator = generator
        self.existing_curve_name = existing_curve_name
        self.subtract = subtract

    @property
    def parameter_count(self) -> Optional[int]:
        return self.generator.parameter_count

    def final_generator(self, derivatives: Sequence) -> "AddYieldExistingGenerator":
        return AddYieldExistingGenerator(
            self.generator.final_generator(derivatives), self.existing_curve_name, self.subtract
        )

    def initial_guess(self, rates: Sequence[float]) -> np.ndarray:
        # Zero spread over the existing curve
        return self.generator.initial_guess(np.zeros(len(rates)))

    def generate_curve(self, name: str, parameters: Sequence[float], known_data=None) -> Curve:
        parameters = self._check_parameters(parameters)
        if known_data is None:
            raise DependencyOrderError(
                f"Curve {name} needs existing curve {self.existing_curve_name} but no provider was given",
                curve_name=self.existing_curve_name
            )
        try:
            existing = known_data.get_curve(self.existing_curve_name)
        except NotFoundError:
            raise DependencyOrderError(
                f"Curve {name} needs existing curve {self.existing_curve_name}, which is not calibrated yet",
                curve_name=self.existing_curve_name
            ) from None
        spread = self.generator.generate_curve(f"{name}-0", parameters, known_data)
        return SpreadCurve(
            name, [existing, spread], self.subtract, [MemberRole.EXISTING, MemberRole.OWNED]
        )

    def existing_curve_names(self) -> List[str]:
        return [self.existing_curve_name] + self.generator.existing_curve_names()


class PriceIndexGenerator(CurveGenerator):
    """
    Price index curve on the inflation zero rates of another generator.

    Node times, parameter count and start point come from the wrapped
    generator, so market zero coupon inflation rates are direct guesses
    for yield generators.

    Args:
        generator: Generator of the inflation zero rate curve
        base_value: Index value at the valuation date
    """

    def __init__(self, generator: CurveGenerator, base_value: float):
        if base_value <= 0:
            raise ConfigurationError(f"Base index value must be positive, got {base_value}")
        self.generator = generator
        self.base_value = float(base_value)

    @property
    def parameter_count(self) -> Optional[int]:
        return self.generator.parameter_count

    def final_generator(self, derivatives: Sequence) -> "PriceIndexGenerator":
        return PriceIndexGenerator(self.generator.final_generator(derivatives), self.base_value)

    def initial_guess(self, rates: Sequence[float]) -> np.ndarray:
        return self.generator.initial_guess(rates)

    def generate_curve(self, name: str, parameters: Sequence[float], known_data=None) -> Curve:
        parameters = self._check_parameters(parameters)
        return PriceIndexCurve(self.generator.generate_curve(name, parameters, known_data), self.base_value)

    def existing_curve_names(self) -> List[str]:
        return self.generator.existing_curve_names()


__all__ = [
    "MaturityCalculator",
    "last_time",
    "CurveGenerator",
    "YieldInterpolatedGenerator",
    "YieldInterpolatedAnchorGenerator",
    "DiscountFactorInterpolatedGenerator",
    "DiscountFactorInterpolatedNumberGenerator",
    "DiscountFactorInterpolatedAnchorNodeGenerator",
    "AddYieldGenerator",
    "AddYieldExistingGenerator",
    "PriceIndexGenerator",
]
