"""
Calibration from instrument definitions.

Glue between date-based definitions and the repository: converts every
definition to a derivative on the valuation date, binds the generators to
those derivatives, derives start points from the naive rate guesses and
calls CurveBuildingRepository.make_curves_from_derivatives().

Inputs are nested [unit][curve][instrument]; generators and curve names are
nested [unit][curve].
"""

from datetime import date
from typing import List, Mapping, Optional, Sequence, Tuple

from ..exceptions import ConfigurationError
from .building_block import CurveBuildingBlockBundle
from .bundles import MultiCurveBundle, SingleCurveBundle
from .generators import CurveGenerator
from .provider import CurveDataProvider
from .repository import CurveBuildingRepository


def make_units(
    valuation_date: date,
    definitions: Sequence[Sequence[Sequence]],
    generators: Sequence[Sequence[CurveGenerator]],
    curve_names: Sequence[Sequence[str]],
    fixings: Optional[Mapping] = None,
    instrument_ids: Optional[Sequence[Sequence[Sequence[str]]]] = None
) -> List[MultiCurveBundle]:
    """
    Build calibration units from definitions.

    Args:
        valuation_date: Valuation date
        definitions: Instrument definitions [unit][curve][instrument]
        generators: Unbound curve generators [unit][curve]
        curve_names: Curve names [unit][curve]
        fixings: Index -> pandas Series of past fixings
        instrument_ids: Optional instrument labels [unit][curve][instrument]

    Returns:
        List of MultiCurveBundle, one per unit
    """
    if not (len(definitions) == len(generators) == len(curve_names)):
        raise ConfigurationError("Definitions, generators and curve names must have the same number of units")

    units = []
    for u, (unit_definitions, unit_generators, unit_names) in enumerate(zip(definitions, generators, curve_names)):
        if not (len(unit_definitions) == len(unit_generators) == len(unit_names)):
            raise ConfigurationError(f"Unit {u}: definitions, generators and curve names must have the same length")
        singles = []
        for c, (curve_definitions, generator, name) in enumerate(zip(unit_definitions, unit_generators, unit_names)):
            derivatives = [d.to_derivative(valuation_date, fixings) for d in curve_definitions]
            guesses = [d.initial_rate_guess() for d in curve_definitions]
            bound = generator.final_generator(derivatives)
            ids = None if instrument_ids is None else list(instrument_ids[u][c])
            singles.append(SingleCurveBundle(name, derivatives, bound.initial_guess(guesses), bound, ids))
        units.append(MultiCurveBundle(singles))
    return units


def make_curves_from_definitions(
    valuation_date: date,
    definitions: Sequence[Sequence[Sequence]],
    generators: Sequence[Sequence[CurveGenerator]],
    curve_names: Sequence[Sequence[str]],
    known_data: CurveDataProvider,
    calculator,
    sensitivity_calculator,
    repository: CurveBuildingRepository,
    discounting_map: Mapping,
    overnight_map: Mapping,
    ibor_map: Mapping,
    fixings: Optional[Mapping] = None,
    known_block: Optional[CurveBuildingBlockBundle] = None,
    instrument_ids: Optional[Sequence[Sequence[Sequence[str]]]] = None,
    price_index_map: Optional[Mapping] = None
) -> Tuple[CurveDataProvider, CurveBuildingBlockBundle]:
    """
    Calibrate curves from instrument definitions.

    Returns:
        (provider with all curves, block bundle with all Jacobians)
    """
    units = make_units(valuation_date, definitions, generators, curve_names, fixings, instrument_ids)
    return repository.make_curves_from_derivatives(
        units, known_data, discounting_map, overnight_map, ibor_map,
        calculator, sensitivity_calculator, known_block, price_index_map
    )


__all__ = [
    "make_units",
    "make_curves_from_definitions",
]
