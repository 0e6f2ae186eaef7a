"""
Instrument generators: market conventions that turn a quote into a definition.

A generator knows the conventions of a quoted instrument family (deposit,
FRA, future, OIS, fixed/ibor swap, zero coupon inflation swap). Given a
valuation date, a market quote, a notional and a GeneratorAttribute (tenor
and forward start), it builds the instrument definition.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..conventions import BusinessDayConvention, Conventions, DayCount, adjust_business_day, year_fraction
from ..dates import DateUtils, generate_schedule
from ..exceptions import ConfigurationError
from .definitions import (
    CouponFixedDefinition,
    CouponIborDefinition,
    CouponOvernightDefinition,
    DepositDefinition,
    FRADefinition,
    InterestRateFutureDefinition,
    SwapDefinition,
    ZeroCouponInflationSwapDefinition
)
from .indices import IborIndex, OvernightIndex, PriceIndex


@dataclass(frozen=True)
class GeneratorAttribute:
    """
    Tenor of a quoted instrument.

    Attributes:
        tenor: Instrument tenor (end period for FRAs, e.g. "9M" for 3Mx9M)
        start_tenor: Forward start after the spot date
    """
    tenor: str
    start_tenor: str = "0D"

    def __post_init__(self):
        try:
            DateUtils.parse_tenor(self.tenor)
            DateUtils.parse_tenor(self.start_tenor)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc


class DepositGenerator:
    """
    Deposits from spot + start_tenor to that date + tenor.

    With spot_lag 0, tenor "1D" and start tenors "0D"/"1D" this gives the
    overnight and tom-next deposits.
    """

    def __init__(
        self,
        name: str,
        currency: str,
        day_count: DayCount = DayCount.ACT_360,
        spot_lag: int = 2,
        business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        end_of_month: bool = True,
        holidays: Optional[set] = None
    ):
        self.name = name
        self.currency = currency
        self.day_count = day_count
        self.spot_lag = spot_lag
        self.business_day = business_day
        self.end_of_month = end_of_month
        self.holidays = holidays

    @classmethod
    def from_ibor_index(cls, index: IborIndex) -> "DepositGenerator":
        return cls(
            f"{index.name} deposit", index.currency, index.day_count,
            index.spot_lag, index.business_day, index.end_of_month
        )

    def generate_instrument(
        self,
        valuation_date: date,
        quote: float,
        notional: float,
        attribute: GeneratorAttribute
    ) -> DepositDefinition:
        spot = DateUtils.add_business_days(valuation_date, self.spot_lag, self.holidays)
        start = DateUtils.add_tenor(spot, attribute.start_tenor, self.business_day, self.holidays)
        end = DateUtils.add_tenor(start, attribute.tenor, self.business_day, self.holidays, self.end_of_month)
        return DepositDefinition(self.currency, start, end, quote, notional, self.day_count)

    def __repr__(self) -> str:
        return f"DepositGenerator({self.name!r})"


class FRAGenerator:
    """FRAs start_tenor x tenor on an ibor index."""

    def __init__(self, index: IborIndex, holidays: Optional[set] = None):
        self.index = index
        self.holidays = holidays

    def generate_instrument(
        self,
        valuation_date: date,
        quote: float,
        notional: float,
        attribute: GeneratorAttribute
    ) -> FRADefinition:
        index = self.index
        spot = DateUtils.add_business_days(valuation_date, index.spot_lag, self.holidays)
        start = DateUtils.add_tenor(spot, attribute.start_tenor, index.business_day, self.holidays, index.end_of_month)
        end = DateUtils.add_tenor(spot, attribute.tenor, index.business_day, self.holidays, index.end_of_month)
        if end <= start:
            raise ConfigurationError(f"FRA {attribute.start_tenor}x{attribute.tenor} has no accrual period")
        fixing = DateUtils.add_business_days(start, -index.spot_lag, self.holidays)
        return FRADefinition(index.currency, index, start, end, fixing, start, quote, notional)


class FutureGenerator:
    """
    Quarterly IMM futures on an ibor index.

    start_tenor selects the reference date: the future fixes its period at
    the first IMM date after valuation_date + start_tenor.
    """

    def __init__(self, index: IborIndex, payment_accrual: float = 0.25, holidays: Optional[set] = None):
        self.index = index
        self.payment_accrual = payment_accrual
        self.holidays = holidays

    def generate_instrument(
        self,
        valuation_date: date,
        quote: float,
        notional: float,
        attribute: GeneratorAttribute
    ) -> InterestRateFutureDefinition:
        index = self.index
        reference = DateUtils.add_tenor(valuation_date, attribute.start_tenor)
        start = DateUtils.next_imm_date(reference)
        end = DateUtils.add_tenor(start, index.tenor, index.business_day, self.holidays, index.end_of_month)
        last_trading = DateUtils.add_business_days(start, -index.spot_lag, self.holidays)
        return InterestRateFutureDefinition(
            index.currency, index, last_trading, start, end, quote, notional, self.payment_accrual
        )


class FixedOvernightSwapGenerator:
    """
    Fixed vs compounded overnight swaps (OIS).

    The fixed leg is the first leg and is paid (negative notional) so that
    the par spread market quote reads par rate minus quote.
    """

    def __init__(
        self,
        name: str,
        index: OvernightIndex,
        fixed_conventions: Optional[Conventions] = None,
        holidays: Optional[set] = None
    ):
        self.name = name
        self.index = index
        self.fixed_conventions = fixed_conventions or Conventions.eur_ois()
        self.holidays = holidays

    def _dates(self, valuation_date: date, attribute: GeneratorAttribute):
        conv = self.fixed_conventions
        spot = DateUtils.add_business_days(valuation_date, conv.spot_lag, self.holidays)
        start = DateUtils.add_tenor(spot, attribute.start_tenor, conv.business_day, self.holidays)
        end = DateUtils.add_tenor(start, attribute.tenor, conv.business_day, self.holidays, conv.end_of_month)
        return start, end

    def generate_instrument(
        self,
        valuation_date: date,
        quote: float,
        notional: float,
        attribute: GeneratorAttribute
    ) -> SwapDefinition:
        conv = self.fixed_conventions
        start, end = self._dates(valuation_date, attribute)
        schedule = generate_schedule(
            start, end, 12 // conv.payment_frequency, conv.day_count,
            conv.business_day, self.holidays, conv.end_of_month
        )
        currency = self.index.currency
        holidays = frozenset(self.holidays) if self.holidays else None

        fixed_leg = []
        overnight_leg = []
        for s, e, pay, yf in zip(schedule.accrual_starts, schedule.accrual_ends, schedule.payment_dates, schedule.year_fractions):
            fixed_leg.append(CouponFixedDefinition(currency, pay, s, e, yf, -notional, quote))
            overnight_leg.append(CouponOvernightDefinition(
                currency, pay, s, e, year_fraction(s, e, self.index.day_count), notional, self.index, holidays
            ))
        return SwapDefinition(tuple(fixed_leg), tuple(overnight_leg))

    def __repr__(self) -> str:
        return f"FixedOvernightSwapGenerator({self.name!r})"


class FixedIborSwapGenerator:
    """Fixed vs ibor swaps; ibor periods follow the index tenor."""

    def __init__(
        self,
        name: str,
        index: IborIndex,
        fixed_conventions: Optional[Conventions] = None,
        holidays: Optional[set] = None
    ):
        self.name = name
        self.index = index
        self.fixed_conventions = fixed_conventions or Conventions.eur_swap_fixed()
        self.holidays = holidays

    def generate_instrument(
        self,
        valuation_date: date,
        quote: float,
        notional: float,
        attribute: GeneratorAttribute
    ) -> SwapDefinition:
        conv = self.fixed_conventions
        index = self.index
        currency = index.currency
        spot = DateUtils.add_business_days(valuation_date, index.spot_lag, self.holidays)
        start = DateUtils.add_tenor(spot, attribute.start_tenor, index.business_day, self.holidays)
        end = DateUtils.add_tenor(start, attribute.tenor, index.business_day, self.holidays, index.end_of_month)

        fixed = generate_schedule(
            start, end, 12 // conv.payment_frequency, conv.day_count,
            conv.business_day, self.holidays, conv.end_of_month
        )
        floating = generate_schedule(
            start, end, DateUtils.tenor_to_months(index.tenor), index.day_count,
            index.business_day, self.holidays, index.end_of_month
        )

        fixed_leg = tuple(
            CouponFixedDefinition(currency, pay, s, e, yf, -notional, quote)
            for s, e, pay, yf in zip(fixed.accrual_starts, fixed.accrual_ends, fixed.payment_dates, fixed.year_fractions)
        )
        ibor_leg = tuple(
            CouponIborDefinition(
                currency, pay, s, e, yf, notional, index,
                DateUtils.add_business_days(s, -index.spot_lag, self.holidays)
            )
            for s, e, pay, yf in zip(floating.accrual_starts, floating.accrual_ends, floating.payment_dates, floating.year_fractions)
        )
        return SwapDefinition(fixed_leg, ibor_leg)

    def __repr__(self) -> str:
        return f"FixedIborSwapGenerator({self.name!r})"


class ZeroCouponInflationSwapGenerator:
    """
    Zero coupon inflation swaps on a monthly price index.

    Index reference dates are the first of the month month_lag months before
    the start and maturity dates. The start index value is read from the
    fixings given to the definition when it is converted.
    """

    def __init__(
        self,
        name: str,
        price_index: PriceIndex,
        month_lag: int = 3,
        spot_lag: int = 2,
        business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[set] = None
    ):
        if month_lag < 0:
            raise ConfigurationError(f"Month lag must not be negative, got {month_lag}")
        self.name = name
        self.price_index = price_index
        self.month_lag = month_lag
        self.spot_lag = spot_lag
        self.business_day = business_day
        self.holidays = holidays

    def _reference_date(self, d: date) -> date:
        return DateUtils.add_months(d, -self.month_lag).replace(day=1)

    def generate_instrument(
        self,
        valuation_date: date,
        quote: float,
        notional: float,
        attribute: GeneratorAttribute
    ) -> ZeroCouponInflationSwapDefinition:
        months = DateUtils.tenor_to_months(attribute.tenor)
        spot = DateUtils.add_business_days(valuation_date, self.spot_lag, self.holidays)
        start = DateUtils.add_tenor(spot, attribute.start_tenor, self.business_day, self.holidays)
        maturity = adjust_business_day(DateUtils.add_months(start, months), self.business_day, self.holidays)
        index_start = self._reference_date(start)
        return ZeroCouponInflationSwapDefinition(
            currency=self.price_index.currency,
            price_index=self.price_index,
            start_date=start,
            maturity_date=maturity,
            index_start_date=index_start,
            index_end_date=DateUtils.add_months(index_start, months),
            rate=quote,
            periods=months / 12.0,
            notional=notional
        )

    def __repr__(self) -> str:
        return f"ZeroCouponInflationSwapGenerator({self.name!r})"


__all__ = [
    "GeneratorAttribute",
    "DepositGenerator",
    "FRAGenerator",
    "FutureGenerator",
    "FixedOvernightSwapGenerator",
    "FixedIborSwapGenerator",
    "ZeroCouponInflationSwapGenerator",
]
