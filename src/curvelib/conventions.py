"""
Day count conventions and business day adjustments for curve instruments.

Supported Day Counts:
- ACT/360: Actual days / 360 (money markets, OIS, Euribor)
- ACT/365: Actual days / 365 (curve time axis, GBP)
- 30/360: 30 days per month / 360 (fixed swap legs)

Business Day Conventions:
- Modified Following: Move to next business day, unless it falls in next month (then previous)
- Following: Move to next business day
- Preceding: Move to previous business day
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional


class DayCount(Enum):
    """Day count convention enumeration."""
    ACT_360 = "ACT/360"
    ACT_365 = "ACT/365"
    THIRTY_360 = "30/360"

    @classmethod
    def from_string(cls, s: str) -> "DayCount":
        """Parse day count from string representation."""
        key = s.upper().replace(" ", "").replace("/", "")
        mapping = {
            "ACT360": cls.ACT_360,
            "ACT365": cls.ACT_365,
            "ACT365F": cls.ACT_365,
            "30360": cls.THIRTY_360,
        }
        if key in mapping:
            return mapping[key]
        raise ValueError(f"Unknown day count convention: {s}")


class BusinessDayConvention(Enum):
    """Business day adjustment convention."""
    MODIFIED_FOLLOWING = "ModifiedFollowing"
    FOLLOWING = "Following"
    PRECEDING = "Preceding"
    UNADJUSTED = "Unadjusted"


@dataclass(frozen=True)
class Conventions:
    """
    Conventions of one swap leg or money market instrument.

    Attributes:
        day_count: Day count convention for accrual
        business_day: Business day adjustment rule
        payment_frequency: Number of payments per year (1=annual, 2=semi, 4=quarterly)
        spot_lag: Business days from trade date to start date
        end_of_month: Roll on month end when the start date is a month end
    """
    day_count: DayCount = DayCount.ACT_360
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    payment_frequency: int = 1
    spot_lag: int = 2
    end_of_month: bool = True

    @classmethod
    def eur_ois(cls) -> "Conventions":
        """EUR OIS fixed leg: annual ACT/360, T+2."""
        return cls(day_count=DayCount.ACT_360, payment_frequency=1, spot_lag=2)

    @classmethod
    def eur_swap_fixed(cls) -> "Conventions":
        """EUR IRS fixed leg: annual 30/360, T+2."""
        return cls(day_count=DayCount.THIRTY_360, payment_frequency=1, spot_lag=2)

    @classmethod
    def usd_ois(cls) -> "Conventions":
        """USD OIS fixed leg: annual ACT/360, T+2."""
        return cls(day_count=DayCount.ACT_360, payment_frequency=1, spot_lag=2)

    @classmethod
    def usd_swap_fixed(cls) -> "Conventions":
        """USD IRS fixed leg: semi-annual 30/360, T+2."""
        return cls(day_count=DayCount.THIRTY_360, payment_frequency=2, spot_lag=2)


def year_fraction(start: date, end: date, day_count: DayCount) -> float:
    """
    Calculate year fraction between two dates using specified day count convention.

    Args:
        start: Start date
        end: End date
        day_count: Day count convention

    Returns:
        Year fraction as float (0.0 when end is not after start)
    """
    if start >= end:
        return 0.0

    actual_days = (end - start).days

    if day_count == DayCount.ACT_360:
        return actual_days / 360.0

    elif day_count == DayCount.ACT_365:
        return actual_days / 365.0

    elif day_count == DayCount.THIRTY_360:
        # 30/360 bond basis
        d1 = min(start.day, 30)
        d2 = min(end.day, 30) if d1 == 30 else end.day
        return (360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)) / 360.0

    raise ValueError(f"Unknown day count: {day_count}")


def is_business_day(d: date, holidays: Optional[set] = None) -> bool:
    """
    Check if a date is a business day.

    Uses weekend-only calendar by default (Saturday/Sunday are non-business days).
    """
    if d.weekday() >= 5:
        return False
    if holidays and d in holidays:
        return False
    return True


def adjust_business_day(
    d: date,
    convention: BusinessDayConvention,
    holidays: Optional[set] = None
) -> date:
    """
    Adjust a date according to business day convention.

    Args:
        d: Date to adjust
        convention: Business day adjustment rule
        holidays: Optional set of holiday dates

    Returns:
        Adjusted date
    """
    if convention == BusinessDayConvention.UNADJUSTED or is_business_day(d, holidays):
        return d

    if convention == BusinessDayConvention.PRECEDING:
        return _roll(d, -1, holidays)

    adjusted = _roll(d, 1, holidays)
    if convention == BusinessDayConvention.MODIFIED_FOLLOWING and adjusted.month != d.month:
        adjusted = _roll(d, -1, holidays)
    return adjusted


def _roll(d: date, direction: int, holidays: Optional[set]) -> date:
    step = timedelta(days=direction)
    while not is_business_day(d, holidays):
        d += step
    return d


__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "Conventions",
    "year_fraction",
    "is_business_day",
    "adjust_business_day",
]
