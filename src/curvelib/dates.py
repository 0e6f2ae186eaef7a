"""
Date utilities for curve instruments.

Provides:
- Tenor parsing and tenor arithmetic
- Accrual schedule generation for swap legs
- Curve time measure (ACT/365 year fraction from the valuation date)
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple
import calendar
import re

from .conventions import (
    BusinessDayConvention,
    DayCount,
    adjust_business_day,
    is_business_day,
    year_fraction
)


class DateUtils:
    """Utility class for date manipulation in rates contexts."""

    # Tenor regex pattern: number + unit (D/W/M/Y)
    TENOR_PATTERN = re.compile(r'^(\d+)([DWMY])$', re.IGNORECASE)

    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Parse a tenor string into (amount, unit).

        Args:
            tenor: Tenor string like "0D", "1D", "3M", "2Y"

        Returns:
            Tuple of (amount, unit) where unit is D/W/M/Y

        Raises:
            ValueError: If tenor format is invalid
        """
        match = DateUtils.TENOR_PATTERN.match(tenor.upper().strip())
        if not match:
            raise ValueError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")
        return int(match.group(1)), match.group(2).upper()

    @staticmethod
    def add_business_days(start: date, days: int, holidays: Optional[set] = None) -> date:
        """Move by a number of business days (backward when days < 0)."""
        step = timedelta(days=1 if days >= 0 else -1)
        result = start
        moved = 0
        while moved < abs(days):
            result += step
            if is_business_day(result, holidays):
                moved += 1
        return result

    @staticmethod
    def third_wednesday(year: int, month: int) -> date:
        """IMM date of a month."""
        first = date(year, month, 1)
        offset = (2 - first.weekday()) % 7
        return first + timedelta(days=offset + 14)

    @staticmethod
    def next_imm_date(d: date) -> date:
        """First quarterly IMM date (Mar/Jun/Sep/Dec) strictly after d."""
        year, month = d.year, d.month
        while True:
            if month % 3 == 0:
                candidate = DateUtils.third_wednesday(year, month)
                if candidate > d:
                    return candidate
            month += 1
            if month > 12:
                month = 1
                year += 1

    @staticmethod
    def add_tenor(
        start: date,
        tenor: str,
        convention: BusinessDayConvention = BusinessDayConvention.UNADJUSTED,
        holidays: Optional[set] = None,
        end_of_month: bool = False
    ) -> date:
        """
        Add a tenor to a date.

        Day tenors count business days; week, month and year tenors are
        calendar periods adjusted with the business day convention.

        Args:
            start: Starting date
            tenor: Tenor string (e.g., "1D", "3M", "2Y")
            convention: Adjustment applied to month/year/week results
            holidays: Optional holiday calendar
            end_of_month: Roll to month end when start is a month end

        Returns:
            End date
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            return DateUtils.add_business_days(start, amount, holidays)

        if unit == 'W':
            result = start + timedelta(weeks=amount)
        else:
            months = amount if unit == 'M' else 12 * amount
            result = DateUtils.add_months(start, months, end_of_month)

        return adjust_business_day(result, convention, holidays)

    @staticmethod
    def add_months(start: date, months: int, end_of_month: bool = False) -> date:
        """Add calendar months, capping the day at the month end."""
        year = start.year + (start.month + months - 1) // 12
        month = (start.month + months - 1) % 12 + 1
        last_day = calendar.monthrange(year, month)[1]
        if end_of_month and start.day == calendar.monthrange(start.year, start.month)[1]:
            return date(year, month, last_day)
        return date(year, month, min(start.day, last_day))

    @staticmethod
    def tenor_to_months(tenor: str) -> int:
        """Convert a month or year tenor to a number of months."""
        amount, unit = DateUtils.parse_tenor(tenor)
        if unit == 'M':
            return amount
        if unit == 'Y':
            return 12 * amount
        raise ValueError(f"Tenor {tenor} is not a whole number of months")


@dataclass
class ScheduleInfo:
    """Container for schedule with accrual information."""
    payment_dates: List[date]
    accrual_starts: List[date]
    accrual_ends: List[date]
    year_fractions: List[float]
    day_count: DayCount

    def __len__(self) -> int:
        return len(self.payment_dates)


def generate_schedule(
    start: date,
    end: date,
    months_per_period: int,
    day_count: DayCount,
    convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
    holidays: Optional[set] = None,
    end_of_month: bool = False
) -> ScheduleInfo:
    """
    Generate an accrual schedule between start and end dates.

    Unadjusted dates are rolled backward from the end date (short front stub),
    then adjusted for business days. Payments are made at accrual end.

    Args:
        start: Accrual start (effective date)
        end: Unadjusted maturity
        months_per_period: Length of a regular period in months
        day_count: Accrual day count
        convention: Business day adjustment
        holidays: Holiday calendar
        end_of_month: End of month rolling rule

    Returns:
        ScheduleInfo with accrual periods and year fractions
    """
    if months_per_period <= 0:
        raise ValueError("Period length must be positive")
    if end <= start:
        raise ValueError(f"Schedule end {end} must be after start {start}")

    unadjusted = [end]
    n_periods = 1
    while True:
        previous = DateUtils.add_months(end, -months_per_period * n_periods, end_of_month)
        # Stubs shorter than a week are merged into the first period
        if previous <= start + timedelta(days=7):
            break
        unadjusted.insert(0, previous)
        n_periods += 1

    ends = [adjust_business_day(d, convention, holidays) for d in unadjusted]
    starts = [start] + ends[:-1]

    return ScheduleInfo(
        payment_dates=list(ends),
        accrual_starts=starts,
        accrual_ends=ends,
        year_fractions=[year_fraction(s, e, day_count) for s, e in zip(starts, ends)],
        day_count=day_count
    )


def time_between(valuation_date: date, d: date) -> float:
    """
    Curve time of a date: signed ACT/365 year fraction from the valuation date.
    """
    return (d - valuation_date).days / 365.0


__all__ = [
    "DateUtils",
    "ScheduleInfo",
    "generate_schedule",
    "time_between",
]
