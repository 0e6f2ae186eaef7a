"""
CurveLib: Multi-curve calibration library

A modular library for:
- Calibrating discount and forward curves from deposits, FRAs, futures,
  OIS and fixed/ibor swaps, unit by unit with a Newton solver
- Calibrating price index curves from zero coupon inflation swaps
- Composing curves (interpolated yields, discount factors, spreads over
  calibrated curves)
- Tracking the Jacobian of every curve to the market quotes it was built
  from, chained across calibration units and calls
- Market quote sensitivities of instruments priced on calibrated curves
"""

__version__ = "0.1.0"

# Core modules
from .conventions import DayCount, BusinessDayConvention, Conventions, year_fraction
from .dates import DateUtils, ScheduleInfo, generate_schedule, time_between
from .exceptions import (
    CurveLibError,
    ConfigurationError,
    DependencyOrderError,
    BlockConsistencyError,
    ConvergenceError,
    NotFoundError,
)

# Instruments
from .instruments import (
    IborIndex,
    OvernightIndex,
    PriceIndex,
    GeneratorAttribute,
    DepositGenerator,
    FRAGenerator,
    FutureGenerator,
    FixedOvernightSwapGenerator,
    FixedIborSwapGenerator,
    ZeroCouponInflationSwapGenerator,
)

# Curves
from .curves import (
    Curve,
    InterpolatedYieldCurve,
    InterpolatedDiscountCurve,
    SpreadCurve,
    PriceIndexCurve,
    CurveDataProvider,
    FxMatrix,
    SingleCurveBundle,
    MultiCurveBundle,
    CurveBuildingBlock,
    CurveBuildingBlockBundle,
    CurveBuildingRepository,
    CalibrationSettings,
    make_curves_from_definitions,
)

# Pricing
from .pricing import (
    CurveSensitivity,
    PresentValueCalculator,
    ParRateCalculator,
    ParSpreadMarketQuoteCalculator,
    PresentValueCurveSensitivityCalculator,
    ParSpreadMarketQuoteCurveSensitivityCalculator,
    MarketQuoteSensitivityCalculator,
    parameter_sensitivity,
)

__all__ = [
    "__version__",
    # Conventions
    "DayCount",
    "BusinessDayConvention",
    "Conventions",
    "year_fraction",
    "DateUtils",
    "ScheduleInfo",
    "generate_schedule",
    "time_between",
    # Errors
    "CurveLibError",
    "ConfigurationError",
    "DependencyOrderError",
    "BlockConsistencyError",
    "ConvergenceError",
    "NotFoundError",
    # Instruments
    "IborIndex",
    "OvernightIndex",
    "PriceIndex",
    "GeneratorAttribute",
    "DepositGenerator",
    "FRAGenerator",
    "FutureGenerator",
    "FixedOvernightSwapGenerator",
    "FixedIborSwapGenerator",
    "ZeroCouponInflationSwapGenerator",
    # Curves
    "Curve",
    "InterpolatedYieldCurve",
    "InterpolatedDiscountCurve",
    "SpreadCurve",
    "PriceIndexCurve",
    "CurveDataProvider",
    "FxMatrix",
    "SingleCurveBundle",
    "MultiCurveBundle",
    "CurveBuildingBlock",
    "CurveBuildingBlockBundle",
    "CurveBuildingRepository",
    "CalibrationSettings",
    "make_curves_from_definitions",
    # Pricing
    "CurveSensitivity",
    "PresentValueCalculator",
    "ParRateCalculator",
    "ParSpreadMarketQuoteCalculator",
    "PresentValueCurveSensitivityCalculator",
    "ParSpreadMarketQuoteCurveSensitivityCalculator",
    "MarketQuoteSensitivityCalculator",
    "parameter_sensitivity",
]
