"""
Date-based instrument definitions.

A definition holds the contractual dates of an instrument. On a valuation
date it converts into a time-resolved derivative (see derivatives.py):
- Cash flows paid before the valuation date are dropped
- Ibor coupons fixed before the valuation date become fixed coupons
- Overnight fixings up to the valuation date are compounded into the
  accrued factor of the coupon

Fixings are passed as a mapping index -> pandas Series of rates (or price
index values) indexed by fixing date.

Every definition also provides initial_rate_guess(), the naive rate used as
start point of the calibration.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Mapping, Optional, Sequence
import math

import pandas as pd

from ..conventions import DayCount, is_business_day, year_fraction
from ..dates import time_between
from ..exceptions import NotFoundError
from .derivatives import (
    CashDeposit,
    FixedCoupon,
    ForwardRateAgreement,
    IborCoupon,
    InterestRateFuture,
    OvernightCoupon,
    Swap,
    ZeroCouponInflationSwap
)
from .indices import IborIndex, OvernightIndex, PriceIndex


Fixings = Optional[Mapping[object, pd.Series]]


def fixing_rate(fixings: Fixings, index, fixing_date: date) -> Optional[float]:
    """
    Look up the fixing of an index on a date.

    Returns:
        The rate, or None when the index has no series or no value that day
    """
    if not fixings or index not in fixings:
        return None
    series = fixings[index]
    series = pd.Series(series.to_numpy(), index=pd.to_datetime(series.index))
    value = series.get(pd.Timestamp(fixing_date))
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return float(value)


@dataclass(frozen=True)
class DepositDefinition:
    """Deposit between two dates."""
    currency: str
    start_date: date
    end_date: date
    rate: float
    notional: float = 1.0
    day_count: DayCount = DayCount.ACT_360

    @property
    def accrual_factor(self) -> float:
        return year_fraction(self.start_date, self.end_date, self.day_count)

    def to_derivative(self, valuation_date: date, fixings: Fixings = None) -> CashDeposit:
        return CashDeposit(
            currency=self.currency,
            start_time=time_between(valuation_date, self.start_date),
            end_time=time_between(valuation_date, self.end_date),
            accrual_factor=self.accrual_factor,
            rate=self.rate,
            notional=self.notional
        )

    def initial_rate_guess(self) -> float:
        return self.rate


@dataclass(frozen=True)
class FRADefinition:
    """Forward rate agreement on an ibor index, paid at accrual start."""
    currency: str
    index: IborIndex
    accrual_start_date: date
    accrual_end_date: date
    fixing_date: date
    payment_date: date
    rate: float
    notional: float = 1.0

    @property
    def accrual_factor(self) -> float:
        return year_fraction(self.accrual_start_date, self.accrual_end_date, self.index.day_count)

    def to_derivative(self, valuation_date: date, fixings: Fixings = None):
        payment_time = time_between(valuation_date, self.payment_date)
        delta = self.accrual_factor
        if self.fixing_date < valuation_date:
            fixed = fixing_rate(fixings, self.index, self.fixing_date)
            if fixed is None:
                raise NotFoundError(f"Missing fixing of {self.index} on {self.fixing_date}")
            # Settlement amount N delta (F - K) / (1 + delta F) as a fixed coupon
            return FixedCoupon(
                currency=self.currency,
                payment_time=payment_time,
                payment_accrual=delta,
                notional=self.notional,
                rate=(fixed - self.rate) / (1.0 + delta * fixed)
            )
        return ForwardRateAgreement(
            currency=self.currency,
            index=self.index,
            payment_time=payment_time,
            fixing_start=time_between(valuation_date, self.accrual_start_date),
            fixing_end=time_between(valuation_date, self.accrual_end_date),
            fixing_accrual=delta,
            payment_accrual=delta,
            rate=self.rate,
            notional=self.notional
        )

    def initial_rate_guess(self) -> float:
        return self.rate


@dataclass(frozen=True)
class InterestRateFutureDefinition:
    """Interest rate future on an ibor index, quoted as price = 1 - rate."""
    currency: str
    index: IborIndex
    last_trading_date: date
    fixing_start_date: date
    fixing_end_date: date
    reference_price: float
    notional: float = 1.0
    payment_accrual: float = 0.25
    quantity: int = 1

    def to_derivative(self, valuation_date: date, fixings: Fixings = None) -> InterestRateFuture:
        return InterestRateFuture(
            currency=self.currency,
            index=self.index,
            last_trading_time=time_between(valuation_date, self.last_trading_date),
            fixing_start=time_between(valuation_date, self.fixing_start_date),
            fixing_end=time_between(valuation_date, self.fixing_end_date),
            fixing_accrual=year_fraction(self.fixing_start_date, self.fixing_end_date, self.index.day_count),
            reference_price=self.reference_price,
            notional=self.notional,
            payment_accrual=self.payment_accrual,
            quantity=self.quantity
        )

    def initial_rate_guess(self) -> float:
        return 1.0 - self.reference_price


@dataclass(frozen=True)
class CouponFixedDefinition:
    currency: str
    payment_date: date
    accrual_start_date: date
    accrual_end_date: date
    accrual_factor: float
    notional: float
    rate: float

    def to_derivative(self, valuation_date: date, fixings: Fixings = None) -> Optional[FixedCoupon]:
        if self.payment_date < valuation_date:
            return None
        return FixedCoupon(
            currency=self.currency,
            payment_time=time_between(valuation_date, self.payment_date),
            payment_accrual=self.accrual_factor,
            notional=self.notional,
            rate=self.rate
        )


@dataclass(frozen=True)
class CouponIborDefinition:
    """Ibor coupon (with optional spread), fixing period equal to the accrual period."""
    currency: str
    payment_date: date
    accrual_start_date: date
    accrual_end_date: date
    accrual_factor: float
    notional: float
    index: IborIndex
    fixing_date: date
    spread: float = 0.0

    def to_derivative(self, valuation_date: date, fixings: Fixings = None):
        if self.payment_date < valuation_date:
            return None
        payment_time = time_between(valuation_date, self.payment_date)
        fixed = None
        if self.fixing_date <= valuation_date:
            fixed = fixing_rate(fixings, self.index, self.fixing_date)
            if fixed is None and self.fixing_date < valuation_date:
                raise NotFoundError(f"Missing fixing of {self.index} on {self.fixing_date}")
        if fixed is not None:
            return FixedCoupon(
                currency=self.currency,
                payment_time=payment_time,
                payment_accrual=self.accrual_factor,
                notional=self.notional,
                rate=fixed + self.spread
            )
        return IborCoupon(
            currency=self.currency,
            payment_time=payment_time,
            payment_accrual=self.accrual_factor,
            notional=self.notional,
            index=self.index,
            fixing_time=time_between(valuation_date, self.fixing_date),
            fixing_start=time_between(valuation_date, self.accrual_start_date),
            fixing_end=time_between(valuation_date, self.accrual_end_date),
            fixing_accrual=year_fraction(self.accrual_start_date, self.accrual_end_date, self.index.day_count),
            spread=self.spread
        )


@dataclass(frozen=True)
class CouponOvernightDefinition:
    """Overnight coupon compounded over the accrual period."""
    currency: str
    payment_date: date
    accrual_start_date: date
    accrual_end_date: date
    accrual_factor: float
    notional: float
    index: OvernightIndex
    holidays: Optional[frozenset] = None

    def _next_business_day(self, d: date) -> date:
        d += timedelta(days=1)
        while not is_business_day(d, self.holidays):
            d += timedelta(days=1)
        return d

    def to_derivative(self, valuation_date: date, fixings: Fixings = None):
        if self.payment_date < valuation_date:
            return None

        accrued = 1.0
        current = self.accrual_start_date
        while current < self.accrual_end_date and current <= valuation_date:
            rate = fixing_rate(fixings, self.index, current)
            if rate is None:
                if current < valuation_date:
                    raise NotFoundError(f"Missing fixing of {self.index} on {current}")
                break
            following = min(self._next_business_day(current), self.accrual_end_date)
            accrued *= 1.0 + rate * year_fraction(current, following, self.index.day_count)
            current = following

        payment_time = time_between(valuation_date, self.payment_date)
        if current >= self.accrual_end_date:
            return FixedCoupon(
                currency=self.currency,
                payment_time=payment_time,
                payment_accrual=self.accrual_factor,
                notional=self.notional,
                rate=(accrued - 1.0) / self.accrual_factor
            )
        return OvernightCoupon(
            currency=self.currency,
            payment_time=payment_time,
            payment_accrual=self.accrual_factor,
            notional=self.notional,
            index=self.index,
            fixing_start=time_between(valuation_date, current),
            fixing_end=time_between(valuation_date, self.accrual_end_date),
            fixing_accrual=year_fraction(current, self.accrual_end_date, self.index.day_count),
            accrued_factor=accrued
        )


@dataclass(frozen=True)
class SwapDefinition:
    """
    Swap of two coupon legs; calibration swaps put the fixed leg first.
    """
    first_leg: Sequence
    second_leg: Sequence

    def to_derivative(self, valuation_date: date, fixings: Fixings = None) -> Swap:
        first = _convert_leg(self.first_leg, valuation_date, fixings)
        second = _convert_leg(self.second_leg, valuation_date, fixings)
        if not first or not second:
            raise ValueError(f"Swap has no remaining cash flows on {valuation_date}")
        return Swap(first_leg=tuple(first), second_leg=tuple(second))

    def initial_rate_guess(self) -> float:
        for coupon in self.first_leg:
            if isinstance(coupon, CouponFixedDefinition):
                return coupon.rate
        return 0.0

    @property
    def maturity_date(self) -> date:
        return max(c.payment_date for c in list(self.first_leg) + list(self.second_leg))


@dataclass(frozen=True)
class ZeroCouponInflationSwapDefinition:
    """
    Zero coupon inflation swap between two dates.

    The index values are read on monthly reference dates lagged from the
    start and maturity dates. Without index_start_value the start value is
    looked up in the fixings of the price index.
    """
    currency: str
    price_index: PriceIndex
    start_date: date
    maturity_date: date
    index_start_date: date
    index_end_date: date
    rate: float
    periods: float
    notional: float = 1.0
    index_start_value: Optional[float] = None

    def to_derivative(self, valuation_date: date, fixings: Fixings = None) -> ZeroCouponInflationSwap:
        if self.maturity_date < valuation_date:
            raise ValueError(f"Inflation swap matured on {self.maturity_date}")
        start_value = self.index_start_value
        if start_value is None:
            start_value = fixing_rate(fixings, self.price_index, self.index_start_date)
            if start_value is None:
                raise NotFoundError(f"Missing value of {self.price_index} for {self.index_start_date}")
        return ZeroCouponInflationSwap(
            currency=self.currency,
            price_index=self.price_index,
            payment_time=time_between(valuation_date, self.maturity_date),
            index_time=time_between(valuation_date, self.index_end_date),
            index_start_value=start_value,
            rate=self.rate,
            periods=self.periods,
            notional=self.notional
        )

    def initial_rate_guess(self) -> float:
        return self.rate


def _convert_leg(leg: Sequence, valuation_date: date, fixings: Fixings) -> List:
    converted = [c.to_derivative(valuation_date, fixings) for c in leg]
    return [c for c in converted if c is not None]


__all__ = [
    "fixing_rate",
    "DepositDefinition",
    "FRADefinition",
    "InterestRateFutureDefinition",
    "CouponFixedDefinition",
    "CouponIborDefinition",
    "CouponOvernightDefinition",
    "SwapDefinition",
    "ZeroCouponInflationSwapDefinition",
]
