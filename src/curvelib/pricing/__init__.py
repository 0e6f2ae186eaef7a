"""
Pricing package - discounting methods, calculators and sensitivities.

Provides:
- Calculators dispatching on instrument type (PV, par rate, par spread)
- Curve sensitivity calculators used for calibration Jacobians
- Conversion of sensitivities to curve parameters and market quotes
"""

from .sensitivity import CurveSensitivity, parameter_sensitivity, MarketQuoteSensitivityCalculator
from .calculators import (
    InstrumentCalculator,
    PresentValueCalculator,
    ParRateCalculator,
    ParSpreadMarketQuoteCalculator,
    PresentValueCurveSensitivityCalculator,
    ParSpreadMarketQuoteCurveSensitivityCalculator
)

__all__ = [
    "CurveSensitivity",
    "parameter_sensitivity",
    "MarketQuoteSensitivityCalculator",
    "InstrumentCalculator",
    "PresentValueCalculator",
    "ParRateCalculator",
    "ParSpreadMarketQuoteCalculator",
    "PresentValueCurveSensitivityCalculator",
    "ParSpreadMarketQuoteCurveSensitivityCalculator",
]
