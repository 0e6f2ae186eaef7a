"""
Curves package - curve objects and the calibration engine.

Provides:
- Curve variants: interpolated yields, interpolated discount factors, spreads,
  price index curves
- Curve generators binding curve shapes to calibration instruments
- CurveDataProvider: named curves and currency, index and price index maps
- CurveBuildingRepository: unit by unit Newton calibration
- CurveBuildingBlockBundle: Jacobians to market quotes
"""

from .interpolation import (
    Interpolator,
    LinearInterpolator,
    CubicSplineInterpolator,
    create_interpolator
)
from .curve import (
    Curve,
    InterpolatedYieldCurve,
    InterpolatedDiscountCurve,
    MemberRole,
    SpreadCurve,
    PriceIndexCurve,
    create_flat_curve
)
from .generators import (
    CurveGenerator,
    last_time,
    YieldInterpolatedGenerator,
    YieldInterpolatedAnchorGenerator,
    DiscountFactorInterpolatedGenerator,
    DiscountFactorInterpolatedNumberGenerator,
    DiscountFactorInterpolatedAnchorNodeGenerator,
    AddYieldGenerator,
    AddYieldExistingGenerator,
    PriceIndexGenerator
)
from .provider import CurveDataProvider, FxMatrix
from .bundles import SingleCurveBundle, MultiCurveBundle
from .building_block import CurveBuildingBlock, CurveBuildingBlockBundle
from .solver import CalibrationSettings, NewtonVectorRootFinder, RootFinderResult
from .repository import CurveBuildingRepository
from .calibration import make_units, make_curves_from_definitions

__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "CubicSplineInterpolator",
    "create_interpolator",
    "Curve",
    "InterpolatedYieldCurve",
    "InterpolatedDiscountCurve",
    "MemberRole",
    "SpreadCurve",
    "PriceIndexCurve",
    "create_flat_curve",
    "CurveGenerator",
    "last_time",
    "YieldInterpolatedGenerator",
    "YieldInterpolatedAnchorGenerator",
    "DiscountFactorInterpolatedGenerator",
    "DiscountFactorInterpolatedNumberGenerator",
    "DiscountFactorInterpolatedAnchorNodeGenerator",
    "AddYieldGenerator",
    "AddYieldExistingGenerator",
    "PriceIndexGenerator",
    "CurveDataProvider",
    "FxMatrix",
    "SingleCurveBundle",
    "MultiCurveBundle",
    "CurveBuildingBlock",
    "CurveBuildingBlockBundle",
    "CalibrationSettings",
    "NewtonVectorRootFinder",
    "RootFinderResult",
    "CurveBuildingRepository",
    "make_units",
    "make_curves_from_definitions",
]
