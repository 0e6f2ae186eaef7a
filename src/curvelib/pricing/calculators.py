"""
Calculators dispatching on instrument type.

A calculator is called as calculator(derivative, provider). Dispatch uses a
class-level table from instrument type to discounting method and walks the
instrument's MRO, so subclasses of a supported instrument are priced like
their parent.

Provides:
- PresentValueCalculator
- ParRateCalculator
- ParSpreadMarketQuoteCalculator (calibration residuals)
- PresentValueCurveSensitivityCalculator
- ParSpreadMarketQuoteCurveSensitivityCalculator (calibration Jacobians)
"""

from typing import Dict

from ..exceptions import NotFoundError
from ..instruments.derivatives import (
    CashDeposit,
    FixedCoupon,
    ForwardRateAgreement,
    IborCoupon,
    InterestRateFuture,
    OvernightCoupon,
    Swap,
    ZeroCouponInflationSwap
)
from .methods import (
    CashDepositDiscountingMethod,
    CouponFixedDiscountingMethod,
    CouponIborDiscountingMethod,
    CouponOvernightDiscountingMethod,
    ForwardRateAgreementDiscountingMethod,
    InterestRateFutureDiscountingMethod,
    SwapDiscountingMethod,
    ZeroCouponInflationSwapDiscountingMethod
)

_METHODS: Dict[type, object] = {
    CashDeposit: CashDepositDiscountingMethod(),
    ForwardRateAgreement: ForwardRateAgreementDiscountingMethod(),
    InterestRateFuture: InterestRateFutureDiscountingMethod(),
    FixedCoupon: CouponFixedDiscountingMethod(),
    IborCoupon: CouponIborDiscountingMethod(),
    OvernightCoupon: CouponOvernightDiscountingMethod(),
    Swap: SwapDiscountingMethod(),
    ZeroCouponInflationSwap: ZeroCouponInflationSwapDiscountingMethod(),
}


class InstrumentCalculator:
    """
    Base dispatching calculator.

    Subclasses set `operation`, the name of the method called on the
    instrument's discounting method.
    """

    operation: str = ""

    def __call__(self, derivative, provider):
        return self.calculate(derivative, provider)

    def calculate(self, derivative, provider):
        for cls in type(derivative).__mro__:
            method = _METHODS.get(cls)
            if method is not None and hasattr(method, self.operation):
                return getattr(method, self.operation)(derivative, provider)
        raise NotFoundError(
            f"{type(self).__name__} does not support instruments of type {type(derivative).__name__}"
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PresentValueCalculator(InstrumentCalculator):
    """Present value in the instrument currency."""
    operation = "present_value"


class ParRateCalculator(InstrumentCalculator):
    """Rate making the instrument worth zero."""
    operation = "par_rate"


class ParSpreadMarketQuoteCalculator(InstrumentCalculator):
    """Model quote minus market quote; zero at calibration."""
    operation = "par_spread"


class PresentValueCurveSensitivityCalculator(InstrumentCalculator):
    """Present value sensitivity to zero rates (CurveSensitivity)."""
    operation = "present_value_curve_sensitivity"


class ParSpreadMarketQuoteCurveSensitivityCalculator(InstrumentCalculator):
    """Par spread market quote sensitivity to zero rates (CurveSensitivity)."""
    operation = "par_spread_curve_sensitivity"


__all__ = [
    "InstrumentCalculator",
    "PresentValueCalculator",
    "ParRateCalculator",
    "ParSpreadMarketQuoteCalculator",
    "PresentValueCurveSensitivityCalculator",
    "ParSpreadMarketQuoteCurveSensitivityCalculator",
]
