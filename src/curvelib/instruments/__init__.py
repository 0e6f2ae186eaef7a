"""
Instruments package - indices, definitions, derivatives and generators.

Provides:
- IborIndex, OvernightIndex, PriceIndex with market presets
- Date-based definitions converted to time-based derivatives
- Instrument generators building definitions from quotes
"""

from .indices import IborIndex, OvernightIndex, PriceIndex
from .derivatives import (
    CashDeposit,
    ForwardRateAgreement,
    InterestRateFuture,
    FixedCoupon,
    IborCoupon,
    OvernightCoupon,
    Swap,
    ZeroCouponInflationSwap
)
from .definitions import (
    DepositDefinition,
    FRADefinition,
    InterestRateFutureDefinition,
    CouponFixedDefinition,
    CouponIborDefinition,
    CouponOvernightDefinition,
    SwapDefinition,
    ZeroCouponInflationSwapDefinition
)
from .generators import (
    GeneratorAttribute,
    DepositGenerator,
    FRAGenerator,
    FutureGenerator,
    FixedOvernightSwapGenerator,
    FixedIborSwapGenerator,
    ZeroCouponInflationSwapGenerator
)

__all__ = [
    "IborIndex",
    "OvernightIndex",
    "PriceIndex",
    "CashDeposit",
    "ForwardRateAgreement",
    "InterestRateFuture",
    "FixedCoupon",
    "IborCoupon",
    "OvernightCoupon",
    "Swap",
    "ZeroCouponInflationSwap",
    "DepositDefinition",
    "FRADefinition",
    "InterestRateFutureDefinition",
    "CouponFixedDefinition",
    "CouponIborDefinition",
    "CouponOvernightDefinition",
    "SwapDefinition",
    "ZeroCouponInflationSwapDefinition",
    "GeneratorAttribute",
    "DepositGenerator",
    "FRAGenerator",
    "FutureGenerator",
    "FixedOvernightSwapGenerator",
    "FixedIborSwapGenerator",
    "ZeroCouponInflationSwapGenerator",
]
