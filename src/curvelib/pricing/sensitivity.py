"""
Curve sensitivities and their conversion to parameter and market quote risk.

Provides:
- CurveSensitivity: point sensitivities d value / d r(t) per curve name
- parameter_sensitivity(): point sensitivities -> curve parameter sensitivities
- MarketQuoteSensitivityCalculator: parameter sensitivities -> sensitivities
  to the market quotes of the calibration instruments, through the
  Jacobians of a CurveBuildingBlockBundle
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
import numpy as np
import pandas as pd


class CurveSensitivity:
    """
    Sensitivities of a value to continuously compounded zero rates.

    Each curve name maps to a list of (time, d value / d r(time)) points.
    Instances are treated as immutable; operations return new objects.
    """

    def __init__(self, data: Optional[Mapping[str, Iterable[Tuple[float, float]]]] = None):
        self._data: Dict[str, List[Tuple[float, float]]] = {}
        for name, points in (data or {}).items():
            self._data[name] = [(float(t), float(v)) for t, v in points]

    @classmethod
    def of(cls, name: str, points: Iterable[Tuple[float, float]]) -> "CurveSensitivity":
        return cls({name: points})

    @property
    def curve_names(self) -> List[str]:
        return list(self._data)

    def points(self, name: str) -> List[Tuple[float, float]]:
        return list(self._data.get(name, []))

    def items(self):
        return self._data.items()

    def plus(self, other: "CurveSensitivity") -> "CurveSensitivity":
        result = {name: list(points) for name, points in self._data.items()}
        for name, points in other._data.items():
            result.setdefault(name, []).extend(points)
        return CurveSensitivity(result)

    def multiplied_by(self, factor: float) -> "CurveSensitivity":
        return CurveSensitivity(
            {name: [(t, factor * v) for t, v in points] for name, points in self._data.items()}
        )

    def cleaned(self, tolerance: float = 0.0) -> "CurveSensitivity":
        """Merge points at equal times, sort by time, drop values within tolerance of zero."""
        result = {}
        for name, points in self._data.items():
            merged: Dict[float, float] = defaultdict(float)
            for t, v in points:
                merged[t] += v
            kept = [(t, v) for t, v in sorted(merged.items()) if abs(v) > tolerance]
            if kept:
                result[name] = kept
        return CurveSensitivity(result)

    def total(self, name: str) -> float:
        """Sum of the point sensitivities of one curve (parallel zero-rate shift)."""
        return float(sum(v for _, v in self._data.get(name, [])))

    def __add__(self, other: "CurveSensitivity") -> "CurveSensitivity":
        return self.plus(other)

    def __mul__(self, factor: float) -> "CurveSensitivity":
        return self.multiplied_by(factor)

    __rmul__ = __mul__

    def __repr__(self) -> str:
        sizes = {name: len(points) for name, points in self._data.items()}
        return f"CurveSensitivity({sizes})"


def parameter_sensitivity(curve_sensitivity: CurveSensitivity, provider) -> Dict[str, np.ndarray]:
    """
    Convert point sensitivities into sensitivities to curve parameters.

    Each point (t, s) on curve c contributes s * d r_c(t) / d parameters. A
    curve built on another named curve contributes to that curve's entry too.

    Args:
        curve_sensitivity: Point sensitivities
        provider: CurveDataProvider holding the curves

    Returns:
        Curve name -> sensitivity vector to that curve's parameters
    """
    result: Dict[str, np.ndarray] = {}
    for name, points in curve_sensitivity.items():
        curve = provider.get_curve(name)
        for t, value in points:
            if value == 0.0:
                continue
            for key, vector in curve.parameter_sensitivity(t).items():
                if key in result:
                    result[key] = result[key] + value * vector
                else:
                    result[key] = value * vector
    return result


class MarketQuoteSensitivityCalculator:
    """
    Sensitivities to calibration market quotes.

    For a curve c with block B_c and Jacobian J_c, the parameter sensitivity
    s_c contributes s_c @ J_c, spread over the curves of B_c. Curves without
    an entry in the bundle are exogenous and contribute nothing.

    Args:
        block_bundle: CurveBuildingBlockBundle of the calibrated curves
    """

    def __init__(self, block_bundle):
        self.block_bundle = block_bundle

    def from_parameter_sensitivity(self, sensitivity: Mapping[str, np.ndarray]) -> Dict[str, np.ndarray]:
        """
        Args:
            sensitivity: Curve name -> parameter sensitivity vector

        Returns:
            Curve name -> sensitivity to the market quotes that calibrated it
        """
        result: Dict[str, np.ndarray] = {}
        for name, vector in sensitivity.items():
            if not self.block_bundle.has_curve(name):
                continue
            block, jacobian = self.block_bundle.get_block(name)
            quote_sensitivity = np.asarray(vector, dtype=np.float64) @ jacobian
            for member in block.names:
                start, count = block.start(member), block.count(member)
                part = quote_sensitivity[start:start + count]
                result[member] = result[member] + part if member in result else part.copy()
        return result

    def from_curve_sensitivity(self, curve_sensitivity: CurveSensitivity, provider) -> Dict[str, np.ndarray]:
        return self.from_parameter_sensitivity(parameter_sensitivity(curve_sensitivity, provider))

    def to_series(self, sensitivity: Mapping[str, np.ndarray]) -> pd.Series:
        """Label market quote sensitivities by (curve, instrument)."""
        labels = []
        values = []
        for name, vector in sensitivity.items():
            ids = self.block_bundle.instrument_ids(name)
            if ids is None:
                ids = tuple(str(i) for i in range(len(vector)))
            labels.extend((name, instrument) for instrument in ids)
            values.extend(np.asarray(vector, dtype=np.float64).tolist())
        index = pd.MultiIndex.from_arrays(
            [[c for c, _ in labels], [i for _, i in labels]], names=["curve", "instrument"]
        )
        return pd.Series(values, index=index, name="sensitivity", dtype=float)


__all__ = [
    "CurveSensitivity",
    "parameter_sensitivity",
    "MarketQuoteSensitivityCalculator",
]
