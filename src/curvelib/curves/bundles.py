"""
Calibration bundles.

A SingleCurveBundle holds one curve to calibrate: its instruments, start
point and bound generator. A MultiCurveBundle groups the curves solved
together as one calibration unit; the unit must be square (as many
parameters as instruments).
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence
import numpy as np

from ..exceptions import ConfigurationError
from .generators import CurveGenerator


@dataclass
class SingleCurveBundle:
    """
    One curve of a calibration unit.

    Attributes:
        curve_name: Name of the curve to build
        derivatives: Calibration instruments, in order
        start_point: Initial parameter vector
        generator: Generator bound to the instruments
        instrument_ids: Labels of the instruments (defaults to "<curve>-<i>")
    """
    curve_name: str
    derivatives: Sequence
    start_point: np.ndarray
    generator: CurveGenerator
    instrument_ids: Optional[List[str]] = None

    def __post_init__(self):
        self.derivatives = list(self.derivatives)
        self.start_point = np.asarray(self.start_point, dtype=np.float64)
        count = self.generator.parameter_count
        if count is None:
            raise ConfigurationError(
                f"Generator of curve {self.curve_name} is not bound; use final_generator()"
            )
        if not (len(self.derivatives) == len(self.start_point) == count):
            raise ConfigurationError(
                f"Curve {self.curve_name}: {len(self.derivatives)} instruments, "
                f"{len(self.start_point)} start values and {count} parameters must agree"
            )
        if self.instrument_ids is None:
            self.instrument_ids = [f"{self.curve_name}-{i}" for i in range(len(self.derivatives))]
        self.instrument_ids = list(self.instrument_ids)
        if len(self.instrument_ids) != len(self.derivatives):
            raise ConfigurationError(f"Curve {self.curve_name}: one instrument id per instrument required")
        if len(set(self.instrument_ids)) != len(self.instrument_ids):
            raise ConfigurationError(f"Curve {self.curve_name}: duplicate instrument ids")

    @property
    def size(self) -> int:
        return len(self.derivatives)


@dataclass
class MultiCurveBundle:
    """
    Curves calibrated simultaneously (one calibration unit).

    Attributes:
        curve_bundles: The curves of the unit, in order
    """
    curve_bundles: List[SingleCurveBundle] = field(default_factory=list)

    def __post_init__(self):
        self.curve_bundles = list(self.curve_bundles)
        if not self.curve_bundles:
            raise ConfigurationError("A calibration unit needs at least one curve")
        names = self.curve_names
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate curve names in calibration unit: {names}")

    @property
    def curve_names(self) -> List[str]:
        return [b.curve_name for b in self.curve_bundles]

    @property
    def parameter_count(self) -> int:
        return sum(b.generator.parameter_count for b in self.curve_bundles)

    @property
    def instrument_count(self) -> int:
        return sum(b.size for b in self.curve_bundles)

    @property
    def derivatives(self) -> List:
        return [d for b in self.curve_bundles for d in b.derivatives]

    @property
    def start_point(self) -> np.ndarray:
        return np.concatenate([b.start_point for b in self.curve_bundles])

    def __iter__(self) -> Iterator[SingleCurveBundle]:
        return iter(self.curve_bundles)

    def __len__(self) -> int:
        return len(self.curve_bundles)


__all__ = [
    "SingleCurveBundle",
    "MultiCurveBundle",
]
