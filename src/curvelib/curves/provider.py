"""
Curve data provider: the named curves available for pricing.

Provides:
- Named curve storage, append only (a name is never rebound)
- Currency -> discounting curve name map
- Overnight index and ibor index -> forward curve name maps
- Price index -> price index curve name map
- Pricing helpers (discount factors, forward rates, index values) through
  those maps
- FxMatrix for converting amounts between currencies
"""

from typing import Dict, List, Mapping, Optional, Union

from ..exceptions import ConfigurationError, NotFoundError
from ..instruments.indices import IborIndex, OvernightIndex, PriceIndex
from .curve import Curve, PriceIndexCurve


Index = Union[IborIndex, OvernightIndex]


class FxMatrix:
    """
    Exchange rates against a single reference currency.

    fx_rate(a, b) is the number of units of b for one unit of a.
    """

    def __init__(self, reference_currency: Optional[str] = None):
        self._rates: Dict[str, float] = {}
        if reference_currency is not None:
            self._rates[reference_currency] = 1.0

    @property
    def currencies(self) -> List[str]:
        return list(self._rates)

    def add_currency(self, currency: str, reference_currency: str, fx_rate: float) -> None:
        """
        Add a currency.

        Args:
            currency: New currency code
            reference_currency: Currency already in the matrix (any, if empty)
            fx_rate: Units of reference_currency for one unit of currency
        """
        if fx_rate <= 0:
            raise ConfigurationError(f"FX rate must be positive, got {fx_rate}")
        if currency in self._rates:
            raise ConfigurationError(f"Currency {currency} already in FX matrix")
        if not self._rates:
            self._rates[reference_currency] = 1.0
        if reference_currency not in self._rates:
            raise NotFoundError(f"Currency {reference_currency} not in FX matrix")
        self._rates[currency] = fx_rate * self._rates[reference_currency]

    def fx_rate(self, currency1: str, currency2: str) -> float:
        """Units of currency2 for one unit of currency1."""
        if currency1 == currency2:
            return 1.0
        for ccy in (currency1, currency2):
            if ccy not in self._rates:
                raise NotFoundError(f"Currency {ccy} not in FX matrix")
        return self._rates[currency1] / self._rates[currency2]

    def convert(self, amounts: Mapping[str, float], currency: str) -> float:
        """
        Total value of multi-currency amounts in one currency.

        Args:
            amounts: Currency code -> amount
            currency: Target currency

        Returns:
            Sum of the converted amounts
        """
        return float(sum(amount * self.fx_rate(ccy, currency) for ccy, amount in amounts.items()))

    def copy(self) -> "FxMatrix":
        result = FxMatrix()
        result._rates = dict(self._rates)
        return result


class CurveDataProvider:
    """
    Named curves plus the maps telling pricers which curve to use.

    Curve names are append only: set_curve() refuses to rebind a name, and
    calibration works on copies so a provider handed to it is never changed.
    """

    def __init__(self, fx_matrix: Optional[FxMatrix] = None):
        self._curves: Dict[str, Curve] = {}
        self._discounting: Dict[str, str] = {}
        self._overnight: Dict[OvernightIndex, str] = {}
        self._ibor: Dict[IborIndex, str] = {}
        self._price_index: Dict[PriceIndex, str] = {}
        self.fx_matrix = fx_matrix if fx_matrix is not None else FxMatrix()

    # Curves

    def get_curve(self, name: str) -> Curve:
        try:
            return self._curves[name]
        except KeyError:
            raise NotFoundError(f"Curve {name} not found; available: {list(self._curves)}") from None

    def set_curve(self, name: str, curve: Curve) -> None:
        if name in self._curves:
            raise ConfigurationError(f"Curve {name} is already set")
        self._curves[name] = curve

    def has_curve(self, name: str) -> bool:
        return name in self._curves

    @property
    def curve_names(self) -> List[str]:
        """Curve names in insertion order."""
        return list(self._curves)

    def copy(self) -> "CurveDataProvider":
        """Independent snapshot; curves themselves are immutable and shared."""
        result = CurveDataProvider(self.fx_matrix.copy())
        result._curves = dict(self._curves)
        result._discounting = dict(self._discounting)
        result._overnight = dict(self._overnight)
        result._ibor = dict(self._ibor)
        result._price_index = dict(self._price_index)
        return result

    # Maps

    def set_discounting_curve(self, currency: str, name: str) -> None:
        """Use curve `name` to discount cash flows in `currency`."""
        self._set_mapping(self._discounting, currency, name)

    def set_forward_curve(self, index: Index, name: str) -> None:
        """Use curve `name` to project forward rates of `index`."""
        if isinstance(index, OvernightIndex):
            self._set_mapping(self._overnight, index, name)
        elif isinstance(index, IborIndex):
            self._set_mapping(self._ibor, index, name)
        else:
            raise ConfigurationError(f"Unsupported index type: {type(index).__name__}")

    def set_price_index_curve(self, index: PriceIndex, name: str) -> None:
        """Use curve `name`, a PriceIndexCurve, to project values of `index`."""
        if name in self._curves and not isinstance(self._curves[name], PriceIndexCurve):
            raise ConfigurationError(f"Curve {name} is not a price index curve")
        self._set_mapping(self._price_index, index, name)

    def _set_mapping(self, mapping: dict, key, name: str) -> None:
        if name not in self._curves:
            raise NotFoundError(f"Cannot map {key} to unknown curve {name}")
        current = mapping.get(key)
        if current is not None and current != name:
            raise ConfigurationError(f"{key} is already mapped to curve {current}")
        mapping[key] = name

    def discounting_curve_name(self, currency: str) -> str:
        try:
            return self._discounting[currency]
        except KeyError:
            raise NotFoundError(f"No discounting curve for currency {currency}") from None

    def forward_curve_name(self, index: Index) -> str:
        mapping = self._overnight if isinstance(index, OvernightIndex) else self._ibor
        try:
            return mapping[index]
        except KeyError:
            raise NotFoundError(f"No forward curve for index {index}") from None

    def price_index_curve_name(self, index: PriceIndex) -> str:
        try:
            return self._price_index[index]
        except KeyError:
            raise NotFoundError(f"No price index curve for index {index}") from None

    @property
    def discounting_map(self) -> Dict[str, str]:
        return dict(self._discounting)

    @property
    def overnight_map(self) -> Dict[OvernightIndex, str]:
        return dict(self._overnight)

    @property
    def ibor_map(self) -> Dict[IborIndex, str]:
        return dict(self._ibor)

    @property
    def price_index_map(self) -> Dict[PriceIndex, str]:
        return dict(self._price_index)

    # Pricing helpers

    def discounting_curve(self, currency: str) -> Curve:
        return self.get_curve(self.discounting_curve_name(currency))

    def forward_curve(self, index: Index) -> Curve:
        return self.get_curve(self.forward_curve_name(index))

    def discount_factor(self, currency: str, t: float) -> float:
        """Discount factor at time t for cash flows in currency."""
        return self.discounting_curve(currency).discount_factor(t)

    def forward_rate(self, index: Index, start_time: float, end_time: float, accrual_factor: float) -> float:
        """Simply compounded forward rate of index over a fixing period."""
        return self.forward_curve(index).forward_rate(start_time, end_time, accrual_factor)

    def price_index_curve(self, index: PriceIndex) -> PriceIndexCurve:
        return self.get_curve(self.price_index_curve_name(index))

    def price_index(self, index: PriceIndex, t: float) -> float:
        """Projected value of a price index at time t."""
        return self.price_index_curve(index).price_index(t)

    def __repr__(self) -> str:
        return f"CurveDataProvider(curves={self.curve_names})"


__all__ = [
    "FxMatrix",
    "CurveDataProvider",
]
