"""
Time-resolved instruments ("derivatives") used in calibration.

All dates are already converted to curve times (year fractions from the
valuation date), so pricing needs nothing but a curve provider.

Provides:
- CashDeposit, ForwardRateAgreement, InterestRateFuture
- Coupons: FixedCoupon, IborCoupon, OvernightCoupon
- Swap: two legs of coupons
- ZeroCouponInflationSwap: index ratio against a compounded fixed rate

Every instrument exposes last_time (default curve node time), currencies()
and indices() (the curves it needs, for dependency checks).
"""

from dataclasses import dataclass
from typing import FrozenSet, Tuple, Union

from .indices import IborIndex, OvernightIndex, PriceIndex


@dataclass(frozen=True)
class CashDeposit:
    """
    Deposit paying notional * (1 + rate * accrual) at end for notional at start.

    Attributes:
        currency: Currency code
        start_time: Time the notional is lent
        end_time: Time notional and interest are repaid
        accrual_factor: Accrual of the deposit period
        rate: Deposit rate
        notional: Notional (positive: lender)
    """
    currency: str
    start_time: float
    end_time: float
    accrual_factor: float
    rate: float
    notional: float = 1.0

    @property
    def last_time(self) -> float:
        return self.end_time

    def currencies(self) -> FrozenSet[str]:
        return frozenset([self.currency])

    def indices(self) -> FrozenSet:
        return frozenset()


@dataclass(frozen=True)
class ForwardRateAgreement:
    """
    FRA settled at the period start on a discounted basis.

    Attributes:
        currency: Currency code
        index: Ibor index fixing the floating rate
        payment_time: Settlement time
        fixing_start: Start of the fixing period
        fixing_end: End of the fixing period
        fixing_accrual: Accrual of the fixing period (index day count)
        payment_accrual: Accrual used for the payment
        rate: Contract rate
        notional: Notional (positive: receive floating)
    """
    currency: str
    index: IborIndex
    payment_time: float
    fixing_start: float
    fixing_end: float
    fixing_accrual: float
    payment_accrual: float
    rate: float
    notional: float = 1.0

    @property
    def last_time(self) -> float:
        return max(self.payment_time, self.fixing_end)

    def currencies(self) -> FrozenSet[str]:
        return frozenset([self.currency])

    def indices(self) -> FrozenSet:
        return frozenset([self.index])


@dataclass(frozen=True)
class InterestRateFuture:
    """
    Interest rate future transaction (price = 1 - rate).

    Attributes:
        currency: Currency code
        index: Underlying ibor index
        last_trading_time: Last trading time
        fixing_start: Start of the underlying fixing period
        fixing_end: End of the underlying fixing period
        fixing_accrual: Accrual of the fixing period
        reference_price: Trade or quoted price
        notional: Contract notional
        payment_accrual: Accrual used for the margining (e.g. 0.25)
        quantity: Number of contracts
    """
    currency: str
    index: IborIndex
    last_trading_time: float
    fixing_start: float
    fixing_end: float
    fixing_accrual: float
    reference_price: float
    notional: float = 1.0
    payment_accrual: float = 0.25
    quantity: int = 1

    @property
    def last_time(self) -> float:
        return self.fixing_end

    def currencies(self) -> FrozenSet[str]:
        return frozenset([self.currency])

    def indices(self) -> FrozenSet:
        return frozenset([self.index])


@dataclass(frozen=True)
class FixedCoupon:
    """Fixed coupon paying notional * rate * payment_accrual."""
    currency: str
    payment_time: float
    payment_accrual: float
    notional: float
    rate: float

    @property
    def amount(self) -> float:
        return self.notional * self.rate * self.payment_accrual

    @property
    def last_time(self) -> float:
        return self.payment_time

    def currencies(self) -> FrozenSet[str]:
        return frozenset([self.currency])

    def indices(self) -> FrozenSet:
        return frozenset()


@dataclass(frozen=True)
class IborCoupon:
    """
    Coupon paying notional * (forward + spread) * payment_accrual.

    Attributes:
        fixing_time: Fixing time of the index
        fixing_start, fixing_end: Fixing period
        fixing_accrual: Accrual of the fixing period
        spread: Spread added to the index rate
    """
    currency: str
    payment_time: float
    payment_accrual: float
    notional: float
    index: IborIndex
    fixing_time: float
    fixing_start: float
    fixing_end: float
    fixing_accrual: float
    spread: float = 0.0

    @property
    def last_time(self) -> float:
        return max(self.payment_time, self.fixing_end)

    def currencies(self) -> FrozenSet[str]:
        return frozenset([self.currency])

    def indices(self) -> FrozenSet:
        return frozenset([self.index])


@dataclass(frozen=True)
class OvernightCoupon:
    """
    Compounded overnight coupon, notional * (compounded factor - 1).

    The part of the period already fixed is carried in accrued_factor; the
    remaining period [fixing_start, fixing_end] is projected from the curve:
    amount = notional * (accrued_factor * (1 + fixing_accrual * forward) - 1).
    """
    currency: str
    payment_time: float
    payment_accrual: float
    notional: float
    index: OvernightIndex
    fixing_start: float
    fixing_end: float
    fixing_accrual: float
    accrued_factor: float = 1.0

    @property
    def last_time(self) -> float:
        return max(self.payment_time, self.fixing_end)

    def currencies(self) -> FrozenSet[str]:
        return frozenset([self.currency])

    def indices(self) -> FrozenSet:
        return frozenset([self.index])


Coupon = Union[FixedCoupon, IborCoupon, OvernightCoupon]


@dataclass(frozen=True)
class Swap:
    """
    Swap of two legs. For calibration swaps the first leg is the fixed leg.

    Attributes:
        first_leg: Coupons of the first leg
        second_leg: Coupons of the second leg
    """
    first_leg: Tuple[Coupon, ...]
    second_leg: Tuple[Coupon, ...]

    def __post_init__(self):
        if not self.first_leg or not self.second_leg:
            raise ValueError("Swap legs must not be empty")

    @property
    def last_time(self) -> float:
        return max(c.last_time for c in self.first_leg + self.second_leg)

    def currencies(self) -> FrozenSet[str]:
        return frozenset(c.currency for c in self.first_leg + self.second_leg)

    def indices(self) -> FrozenSet:
        result = frozenset()
        for coupon in self.first_leg + self.second_leg:
            result = result | coupon.indices()
        return result


@dataclass(frozen=True)
class ZeroCouponInflationSwap:
    """
    Zero coupon inflation swap; both legs pay at maturity.

    Receives notional * (I(index_time) / index_start_value - 1) and pays
    notional * ((1 + rate)^periods - 1).

    Attributes:
        currency: Currency code
        price_index: Price index of the inflation leg
        payment_time: Payment time of both legs
        index_time: Reference time of the final index value
        index_start_value: Index value at the start reference date
        rate: Fixed zero coupon rate
        periods: Compounding periods of the fixed leg, in years
        notional: Notional (positive: receive inflation)
    """
    currency: str
    price_index: PriceIndex
    payment_time: float
    index_time: float
    index_start_value: float
    rate: float
    periods: float
    notional: float = 1.0

    def __post_init__(self):
        if self.index_start_value <= 0:
            raise ValueError("Index start value must be positive")
        if self.periods <= 0:
            raise ValueError("Number of periods must be positive")

    @property
    def fixed_factor(self) -> float:
        return (1.0 + self.rate) ** self.periods

    @property
    def last_time(self) -> float:
        return self.index_time

    def currencies(self) -> FrozenSet[str]:
        return frozenset([self.currency])

    def indices(self) -> FrozenSet:
        return frozenset([self.price_index])


__all__ = [
    "CashDeposit",
    "ForwardRateAgreement",
    "InterestRateFuture",
    "FixedCoupon",
    "IborCoupon",
    "OvernightCoupon",
    "Coupon",
    "Swap",
    "ZeroCouponInflationSwap",
]
