"""
Unit tests for conventions module.
"""

from datetime import date
import pytest

from curvelib.conventions import (
    DayCount,
    BusinessDayConvention,
    Conventions,
    adjust_business_day,
    is_business_day,
    year_fraction,
)


class TestDayCount:
    """Tests for day count conventions."""

    def test_act_360(self):
        """Test ACT/360 day count."""
        yf = year_fraction(date(2024, 1, 15), date(2024, 4, 15), DayCount.ACT_360)
        assert abs(yf - 91 / 360) < 1e-12

    def test_act_365(self):
        """Test ACT/365 day count."""
        yf = year_fraction(date(2024, 1, 15), date(2024, 4, 15), DayCount.ACT_365)
        assert abs(yf - 91 / 365) < 1e-12

    def test_thirty_360(self):
        """Test 30/360 day count."""
        yf = year_fraction(date(2024, 1, 15), date(2024, 4, 15), DayCount.THIRTY_360)
        assert abs(yf - 90 / 360) < 1e-12

    def test_thirty_360_month_end(self):
        """Day 31 is treated as day 30."""
        yf = year_fraction(date(2024, 1, 31), date(2024, 3, 31), DayCount.THIRTY_360)
        assert abs(yf - 60 / 360) < 1e-12

    def test_year_fraction_same_date(self):
        """Same date gives zero."""
        d = date(2024, 1, 15)
        assert year_fraction(d, d, DayCount.ACT_360) == 0.0

    def test_from_string(self):
        """Parse day counts from strings."""
        assert DayCount.from_string("ACT/360") == DayCount.ACT_360
        assert DayCount.from_string("act/365f") == DayCount.ACT_365
        assert DayCount.from_string("30/360") == DayCount.THIRTY_360
        with pytest.raises(ValueError):
            DayCount.from_string("BUS/252")


class TestBusinessDays:
    """Tests for business day adjustment."""

    def test_weekend_is_not_business_day(self):
        """Saturdays and Sundays are holidays."""
        assert not is_business_day(date(2024, 3, 30))
        assert not is_business_day(date(2024, 3, 31))
        assert is_business_day(date(2024, 3, 29))

    def test_holiday_calendar(self):
        """Explicit holidays are skipped."""
        holiday = date(2024, 12, 25)
        assert not is_business_day(holiday, {holiday})

    def test_following(self):
        """Following moves to the next business day."""
        adjusted = adjust_business_day(date(2024, 3, 30), BusinessDayConvention.FOLLOWING)
        assert adjusted == date(2024, 4, 1)

    def test_modified_following_stays_in_month(self):
        """Modified following rolls back at month end."""
        adjusted = adjust_business_day(date(2024, 3, 30), BusinessDayConvention.MODIFIED_FOLLOWING)
        assert adjusted == date(2024, 3, 29)

    def test_preceding(self):
        """Preceding moves to the previous business day."""
        adjusted = adjust_business_day(date(2024, 6, 16), BusinessDayConvention.PRECEDING)
        assert adjusted == date(2024, 6, 14)

    def test_unadjusted(self):
        """Unadjusted leaves weekends alone."""
        d = date(2024, 6, 16)
        assert adjust_business_day(d, BusinessDayConvention.UNADJUSTED) == d


class TestConventions:
    """Tests for convention presets."""

    def test_eur_ois_preset(self):
        """EUR OIS conventions."""
        conv = Conventions.eur_ois()
        assert conv.day_count == DayCount.ACT_360
        assert conv.business_day == BusinessDayConvention.MODIFIED_FOLLOWING
        assert conv.spot_lag == 2
        assert conv.payment_frequency == 1

    def test_usd_swap_fixed_preset(self):
        """USD fixed leg is semi-annual 30/360."""
        conv = Conventions.usd_swap_fixed()
        assert conv.day_count == DayCount.THIRTY_360
        assert conv.payment_frequency == 2
