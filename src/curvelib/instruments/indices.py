"""
Interest rate and price indices.

Indices are frozen and hashable: the curve provider maps them to forward
and price index curve names, and fixing time series are keyed by them.
"""

from dataclasses import dataclass

from ..conventions import BusinessDayConvention, DayCount


@dataclass(frozen=True)
class IborIndex:
    """
    Term rate index (Euribor, Libor).

    Attributes:
        name: Index name
        currency: Currency code
        tenor: Fixing period tenor, e.g. "3M", "6M"
        day_count: Accrual day count of the fixing period
        spot_lag: Business days between fixing and period start
        business_day: Adjustment of the period end date
        end_of_month: End of month rule for the period end
    """
    name: str
    currency: str
    tenor: str
    day_count: DayCount = DayCount.ACT_360
    spot_lag: int = 2
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    end_of_month: bool = True

    @classmethod
    def euribor_3m(cls) -> "IborIndex":
        return cls("EURIBOR3M", "EUR", "3M")

    @classmethod
    def euribor_6m(cls) -> "IborIndex":
        return cls("EURIBOR6M", "EUR", "6M")

    @classmethod
    def usd_libor_3m(cls) -> "IborIndex":
        return cls("USDLIBOR3M", "USD", "3M")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class OvernightIndex:
    """
    Overnight index (EONIA, ESTR, SOFR, Fed Funds).

    Attributes:
        name: Index name
        currency: Currency code
        day_count: Accrual day count
        publication_lag: Days between the overnight period and publication
    """
    name: str
    currency: str
    day_count: DayCount = DayCount.ACT_360
    publication_lag: int = 0

    @classmethod
    def eonia(cls) -> "OvernightIndex":
        return cls("EONIA", "EUR")

    @classmethod
    def estr(cls) -> "OvernightIndex":
        return cls("ESTR", "EUR")

    @classmethod
    def sofr(cls) -> "OvernightIndex":
        return cls("SOFR", "USD", publication_lag=1)

    @classmethod
    def fed_funds(cls) -> "OvernightIndex":
        return cls("FEDFUND", "USD", publication_lag=1)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PriceIndex:
    """
    Consumer price index (HICP, CPI, RPI), published monthly.

    Attributes:
        name: Index name
        currency: Currency code
    """
    name: str
    currency: str

    @classmethod
    def eu_hicp_x(cls) -> "PriceIndex":
        return cls("EUHICPX", "EUR")

    @classmethod
    def us_cpi_u(cls) -> "PriceIndex":
        return cls("USCPIU", "USD")

    @classmethod
    def uk_rpi(cls) -> "PriceIndex":
        return cls("UKRPI", "GBP")

    def __str__(self) -> str:
        return self.name


__all__ = [
    "IborIndex",
    "OvernightIndex",
    "PriceIndex",
]
