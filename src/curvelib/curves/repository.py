"""
Curve building repository: sequential calibration of curve units.

Units are calibrated strictly in the order given. For each unit:
1. Residuals are the par spread market quotes of the unit's instruments,
   priced on a scratch copy of the provider holding the trial curves
2. A Newton solve drives the residuals to zero, the Jacobian dR/dx coming
   from the curve sensitivity calculator
3. The solved curves are installed in the provider for later units
4. The Jacobian of the curve parameters to the market quotes is recorded:
   dx/dm = inv(dR/dx) for the unit's own quotes and, chained through the
   block bundle, dx/dm_prior = -inv(dR/dx) . dR/dp . J_prior for the quotes
   that calibrated the earlier curves p

The call is atomic: the caller's provider and block bundle are never
modified, and any error propagates with nothing returned.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union
import logging

import numpy as np
from scipy import linalg

from ..exceptions import (
    BlockConsistencyError,
    ConfigurationError,
    ConvergenceError,
    DependencyOrderError
)
from ..instruments.indices import IborIndex, OvernightIndex, PriceIndex
from ..pricing.sensitivity import parameter_sensitivity
from .building_block import CurveBuildingBlock, CurveBuildingBlockBundle
from .bundles import MultiCurveBundle
from .provider import CurveDataProvider
from .solver import CalibrationSettings, NewtonVectorRootFinder

logger = logging.getLogger(__name__)


class CurveBuildingRepository:
    """
    Calibrates units of curves to market instruments.

    Args:
        absolute_tolerance: Bound on max |residual|
        relative_tolerance: Bound on the last Newton step
        max_iterations: Newton iterations per unit
        settings: Full settings; overrides the three values above
    """

    def __init__(
        self,
        absolute_tolerance: float = 1e-10,
        relative_tolerance: float = 1e-10,
        max_iterations: int = 100,
        settings: Optional[CalibrationSettings] = None
    ):
        if settings is None:
            settings = CalibrationSettings(
                absolute_tolerance=absolute_tolerance,
                relative_tolerance=relative_tolerance,
                max_iterations=max_iterations
            )
        self.settings = settings
        self.root_finder = NewtonVectorRootFinder.from_settings(settings)

    def make_curves_from_derivatives(
        self,
        units: Sequence[MultiCurveBundle],
        known_data: CurveDataProvider,
        discounting_map: Mapping[str, Union[str, Sequence[str]]],
        overnight_map: Mapping[str, Sequence[OvernightIndex]],
        ibor_map: Mapping[str, Sequence[IborIndex]],
        calculator,
        sensitivity_calculator,
        known_block: Optional[CurveBuildingBlockBundle] = None,
        price_index_map: Optional[Mapping[str, Sequence[PriceIndex]]] = None
    ) -> Tuple[CurveDataProvider, CurveBuildingBlockBundle]:
        """
        Calibrate the units in order.

        Args:
            units: Calibration units, in dependency order
            known_data: Provider with curves calibrated before this call
            discounting_map: Curve name -> currency (or currencies) it discounts
            overnight_map: Curve name -> overnight indices it projects
            ibor_map: Curve name -> ibor indices it projects
            calculator: Residual calculator (par spread market quote)
            sensitivity_calculator: Curve sensitivity of the residual
            known_block: Jacobians of the curves in known_data
            price_index_map: Curve name -> price indices it projects

        Returns:
            (provider with all curves, block bundle with all Jacobians)

        Raises:
            ConfigurationError: Duplicate curve names, non-square units,
                map entries for unknown curves
            BlockConsistencyError: A known block does not fit its known curve
            DependencyOrderError: A unit needs a curve built by a later unit
            ConvergenceError: A unit did not converge
        """
        units = list(units)
        known_block = known_block if known_block is not None else CurveBuildingBlockBundle()
        mappings = _normalise_maps(discounting_map, overnight_map, ibor_map, price_index_map)
        self._validate(units, known_data, known_block, mappings)

        provider = known_data.copy()
        for name in mappings:
            if provider.has_curve(name):
                _install_mappings(provider, name, mappings[name])

        bundle = known_block.merge(CurveBuildingBlockBundle())
        for index, unit in enumerate(units):
            provider = self._calibrate_unit(
                index, unit, provider, bundle, mappings, calculator, sensitivity_calculator
            )
        return provider, bundle

    # Validation

    def _validate(
        self,
        units: List[MultiCurveBundle],
        known_data: CurveDataProvider,
        known_block: CurveBuildingBlockBundle,
        mappings: Dict[str, list]
    ) -> None:
        unit_of: Dict[str, int] = {}
        for index, unit in enumerate(units):
            if unit.parameter_count != unit.instrument_count:
                raise ConfigurationError(
                    f"Unit {index} has {unit.parameter_count} parameters "
                    f"for {unit.instrument_count} instruments"
                )
            for name in unit.curve_names:
                if name in unit_of:
                    raise ConfigurationError(f"Curve {name} is built in units {unit_of[name]} and {index}")
                if known_data.has_curve(name):
                    raise ConfigurationError(f"Curve {name} of unit {index} is already in the provider")
                if known_block.has_curve(name):
                    raise ConfigurationError(f"Curve {name} of unit {index} is already in the known block")
                unit_of[name] = index

        for name in known_block.curve_names:
            if not known_data.has_curve(name):
                continue
            rows = known_block.get_matrix(name).shape[0]
            count = known_data.get_curve(name).parameter_count
            if rows != count:
                raise BlockConsistencyError(
                    f"Known block of curve {name} has {rows} rows for {count} curve parameters"
                )

        for name in mappings:
            if name not in unit_of and not known_data.has_curve(name):
                raise ConfigurationError(f"Curve map entry for unknown curve {name}")

        serving = _serving_curves(known_data, mappings)

        for index, unit in enumerate(units):
            for single in unit:
                for existing in single.generator.existing_curve_names():
                    if known_data.has_curve(existing):
                        continue
                    if existing in unit_of and unit_of[existing] < index:
                        continue
                    raise DependencyOrderError(
                        f"Unit {index} builds {single.curve_name} on curve {existing}, "
                        "which is not calibrated before it",
                        unit=index,
                        curve_name=existing
                    )
                for derivative in single.derivatives:
                    for key in list(derivative.currencies()) + list(derivative.indices()):
                        name = serving.get(key)
                        if name is None:
                            raise DependencyOrderError(
                                f"Unit {index} prices instruments on {key}, for which no curve is mapped",
                                unit=index
                            )
                        if name in unit_of and unit_of[name] > index:
                            raise DependencyOrderError(
                                f"Unit {index} needs curve {name} for {key}, "
                                f"which is only built in unit {unit_of[name]}",
                                unit=index,
                                curve_name=name
                            )

    # Calibration

    def _calibrate_unit(
        self,
        index: int,
        unit: MultiCurveBundle,
        provider: CurveDataProvider,
        bundle: CurveBuildingBlockBundle,
        mappings: Dict[str, list],
        calculator,
        sensitivity_calculator
    ) -> CurveDataProvider:
        names = unit.curve_names
        sizes = [single.size for single in unit]
        offsets = np.concatenate([[0], np.cumsum(sizes)]).astype(int)
        derivatives = unit.derivatives

        def build(x: np.ndarray) -> CurveDataProvider:
            scratch = provider.copy()
            for k, single in enumerate(unit):
                parameters = x[offsets[k]:offsets[k + 1]]
                scratch.set_curve(single.curve_name, single.generator.generate_curve(single.curve_name, parameters, scratch))
            for name in names:
                _install_mappings(scratch, name, mappings.get(name, []))
            return scratch

        def residuals(x: np.ndarray) -> np.ndarray:
            scratch = build(x)
            return np.array([calculator(d, scratch) for d in derivatives], dtype=np.float64)

        def jacobian(x: np.ndarray) -> np.ndarray:
            rows = _sensitivity_rows(derivatives, build(x), sensitivity_calculator)
            return _columns(rows, names, sizes)

        try:
            result = self.root_finder.solve(residuals, jacobian, unit.start_point)
        except ConvergenceError as exc:
            raise ConvergenceError(
                f"Unit {index} ({', '.join(names)}): {exc}", exc.residuals, exc.iterations, unit=index
            ) from exc

        calibrated = build(result.x)
        rows = _sensitivity_rows(derivatives, calibrated, sensitivity_calculator)
        try:
            inverse = linalg.inv(_columns(rows, names, sizes))
        except (linalg.LinAlgError, ValueError) as exc:
            raise ConvergenceError(
                f"Unit {index} ({', '.join(names)}): singular Jacobian at the solution",
                result.residuals, result.iterations, unit=index
            ) from exc

        self._record_jacobians(index, unit, calibrated, bundle, rows, inverse, offsets)

        logger.info(
            "Calibrated unit %d (%s): %d iterations, max |residual| %.2e",
            index, ", ".join(names), result.iterations, result.max_residual
        )
        return calibrated

    def _record_jacobians(
        self,
        index: int,
        unit: MultiCurveBundle,
        provider: CurveDataProvider,
        bundle: CurveBuildingBlockBundle,
        rows: List[Dict[str, np.ndarray]],
        inverse: np.ndarray,
        offsets: np.ndarray
    ) -> None:
        names = unit.curve_names
        priors = [
            name for name in provider.curve_names
            if name not in names and any(name in row for row in rows)
        ]

        chained = []
        entries: List[Tuple[str, Tuple[str, ...]]] = []
        seen: Dict[str, Tuple[str, ...]] = {}
        for prior in priors:
            if not bundle.has_curve(prior):
                logger.debug("Unit %d: curve %s has no building block, treated as exogenous", index, prior)
                continue
            prior_block, prior_jacobian = bundle.get_block(prior)
            for name, ids in prior_block.entries():
                if name not in seen:
                    seen[name] = ids
                    entries.append((name, ids))
                elif seen[name] != ids:
                    raise BlockConsistencyError(
                        f"Curve {name} appears with different instruments in the blocks of unit {index}"
                    )
            chained.append((prior, prior_block, prior_jacobian))

        for single in unit:
            entries.append((single.curve_name, tuple(single.instrument_ids)))
        block = CurveBuildingBlock(entries)

        n = int(offsets[-1])
        matrix = np.zeros((n, block.total_columns))
        own_start = block.start(names[0])
        matrix[:, own_start:own_start + n] = inverse

        for prior, prior_block, prior_jacobian in chained:
            count = prior_jacobian.shape[0]
            d_residual_d_prior = np.array(
                [row.get(prior, np.zeros(count)) for row in rows], dtype=np.float64
            ).reshape(n, count)
            transfer = -inverse @ d_residual_d_prior
            for name in prior_block.names:
                source = prior_block.start(name)
                target = block.start(name)
                width = prior_block.count(name)
                matrix[:, target:target + width] += transfer @ prior_jacobian[:, source:source + width]

        for k, single in enumerate(unit):
            bundle.add(single.curve_name, block, matrix[offsets[k]:offsets[k + 1], :])


def _normalise_maps(
    discounting_map: Mapping[str, Union[str, Sequence[str]]],
    overnight_map: Mapping[str, Sequence[OvernightIndex]],
    ibor_map: Mapping[str, Sequence[IborIndex]],
    price_index_map: Optional[Mapping[str, Sequence[PriceIndex]]] = None
) -> Dict[str, list]:
    """Curve name -> list of currencies and indices it serves."""
    result: Dict[str, list] = {}
    for name, currencies in (discounting_map or {}).items():
        if isinstance(currencies, str):
            currencies = [currencies]
        result.setdefault(name, []).extend(currencies)
    kinds = ((overnight_map, OvernightIndex), (ibor_map, IborIndex), (price_index_map, PriceIndex))
    for mapping, kind in kinds:
        for name, indices in (mapping or {}).items():
            if isinstance(indices, (OvernightIndex, IborIndex, PriceIndex)):
                indices = [indices]
            for idx in indices:
                if not isinstance(idx, kind):
                    raise ConfigurationError(f"Curve {name}: {idx!r} is not a {kind.__name__}")
            result.setdefault(name, []).extend(indices)
    return result


def _serving_curves(known_data: CurveDataProvider, mappings: Dict[str, list]) -> Dict[object, str]:
    """Currency or index -> name of the curve serving it."""
    serving: Dict[object, str] = {}
    serving.update(known_data.discounting_map)
    serving.update(known_data.overnight_map)
    serving.update(known_data.ibor_map)
    serving.update(known_data.price_index_map)
    for name, keys in mappings.items():
        for key in keys:
            current = serving.get(key)
            if current is not None and current != name:
                raise ConfigurationError(f"{key} is mapped to both {current} and {name}")
            serving[key] = name
    return serving


def _install_mappings(provider: CurveDataProvider, name: str, keys: list) -> None:
    for key in keys:
        if isinstance(key, str):
            provider.set_discounting_curve(key, name)
        elif isinstance(key, PriceIndex):
            provider.set_price_index_curve(key, name)
        else:
            provider.set_forward_curve(key, name)


def _sensitivity_rows(derivatives: list, provider: CurveDataProvider, sensitivity_calculator) -> List[Dict[str, np.ndarray]]:
    """Parameter sensitivities of each residual, keyed by curve name."""
    return [parameter_sensitivity(sensitivity_calculator(d, provider), provider) for d in derivatives]


def _columns(rows: List[Dict[str, np.ndarray]], names: List[str], sizes: List[int]) -> np.ndarray:
    """dR/dx for the unit's own curves."""
    matrix = np.zeros((len(rows), sum(sizes)))
    position = 0
    for name, size in zip(names, sizes):
        for i, row in enumerate(rows):
            if name in row:
                matrix[i, position:position + size] = row[name]
        position += size
    return matrix


__all__ = [
    "CurveBuildingRepository",
]
