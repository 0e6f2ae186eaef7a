"""
Discounting pricing methods per instrument.

Each method prices an instrument from a CurveDataProvider: the discounting
curve comes from the instrument currency, forward rates from the curve of
its index. Methods provide present value and par figures together with
their curve sensitivities (derivatives with respect to zero rates).

Par spread market quote convention: the residual the calibration drives to
zero is model quote minus market quote, expressed in the quote's own units
(rate for deposits, FRAs and swaps, price for futures).

Pricing formulas:
    P(t)  = exp(-r(t) t),  dP/dr(t) = -t P(t)   (zero for t <= 0)
    f     = (P(s) / P(e) - 1) / delta
    Deposit PV = N (-P(s) + (1 + K delta) P(e))
    FRA PV     = N delta_p (f - K) / (1 + delta_p f) P_d(t_p)
    Swap par spread = -PV / PVBP(first leg)
    Zero coupon inflation swap PV = N P_d(T) (I(t_i) / I_0 - (1 + K)^n)
"""

from typing import List, Tuple

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
from .sensitivity import CurveSensitivity


def _discount_derivative(t: float, df: float) -> float:
    """dP/dr at time t; discount factors at t <= 0 are fixed to 1."""
    return -t * df if t > 0 else 0.0


def _forward_points(
    start: float,
    end: float,
    accrual: float,
    df_start: float,
    df_end: float,
    factor: float = 1.0
) -> List[Tuple[float, float]]:
    """Point sensitivities of factor * forward rate to the forward curve."""
    return [
        (start, factor * _discount_derivative(start, df_start) / (df_end * accrual)),
        (end, -factor * df_start * _discount_derivative(end, df_end) / (df_end ** 2 * accrual)),
    ]


class CashDepositDiscountingMethod:
    """Deposit priced on the discounting curve of its currency."""

    def present_value(self, deposit: CashDeposit, provider) -> float:
        curve = provider.discounting_curve(deposit.currency)
        pv = deposit.notional * (1.0 + deposit.rate * deposit.accrual_factor) * curve.discount_factor(deposit.end_time)
        if deposit.start_time >= 0:
            pv -= deposit.notional * curve.discount_factor(deposit.start_time)
        return pv

    def present_value_curve_sensitivity(self, deposit: CashDeposit, provider) -> CurveSensitivity:
        name = provider.discounting_curve_name(deposit.currency)
        curve = provider.get_curve(name)
        end_amount = deposit.notional * (1.0 + deposit.rate * deposit.accrual_factor)
        points = [(deposit.end_time, end_amount * _discount_derivative(deposit.end_time, curve.discount_factor(deposit.end_time)))]
        if deposit.start_time >= 0:
            df_start = curve.discount_factor(deposit.start_time)
            points.insert(0, (deposit.start_time, -deposit.notional * _discount_derivative(deposit.start_time, df_start)))
        return CurveSensitivity.of(name, points)

    def par_rate(self, deposit: CashDeposit, provider) -> float:
        curve = provider.discounting_curve(deposit.currency)
        start = max(deposit.start_time, 0.0)
        return (curve.discount_factor(start) / curve.discount_factor(deposit.end_time) - 1.0) / deposit.accrual_factor

    def par_spread(self, deposit: CashDeposit, provider) -> float:
        return self.par_rate(deposit, provider) - deposit.rate

    def par_spread_curve_sensitivity(self, deposit: CashDeposit, provider) -> CurveSensitivity:
        name = provider.discounting_curve_name(deposit.currency)
        curve = provider.get_curve(name)
        start = max(deposit.start_time, 0.0)
        points = _forward_points(
            start, deposit.end_time, deposit.accrual_factor,
            curve.discount_factor(start), curve.discount_factor(deposit.end_time)
        )
        return CurveSensitivity.of(name, points)


class ForwardRateAgreementDiscountingMethod:
    """FRA: forward from the index curve, discounting from the currency curve."""

    def _forward(self, fra: ForwardRateAgreement, provider) -> float:
        return provider.forward_rate(fra.index, fra.fixing_start, fra.fixing_end, fra.fixing_accrual)

    def present_value(self, fra: ForwardRateAgreement, provider) -> float:
        forward = self._forward(fra, provider)
        df = provider.discount_factor(fra.currency, fra.payment_time)
        return fra.notional * fra.payment_accrual * (forward - fra.rate) / (1.0 + fra.payment_accrual * forward) * df

    def present_value_curve_sensitivity(self, fra: ForwardRateAgreement, provider) -> CurveSensitivity:
        forward_name = provider.forward_curve_name(fra.index)
        discount_name = provider.discounting_curve_name(fra.currency)
        forward_curve = provider.get_curve(forward_name)
        forward = self._forward(fra, provider)
        df = provider.discount_factor(fra.currency, fra.payment_time)
        delta = fra.payment_accrual
        discounted = fra.notional * delta * (forward - fra.rate) / (1.0 + delta * forward)
        dpv_dforward = fra.notional * delta * df * (1.0 + delta * fra.rate) / (1.0 + delta * forward) ** 2

        sensitivity = CurveSensitivity.of(
            discount_name, [(fra.payment_time, discounted * _discount_derivative(fra.payment_time, df))]
        )
        return sensitivity.plus(CurveSensitivity.of(forward_name, _forward_points(
            fra.fixing_start, fra.fixing_end, fra.fixing_accrual,
            forward_curve.discount_factor(fra.fixing_start), forward_curve.discount_factor(fra.fixing_end),
            dpv_dforward
        )))

    def par_rate(self, fra: ForwardRateAgreement, provider) -> float:
        return self._forward(fra, provider)

    def par_spread(self, fra: ForwardRateAgreement, provider) -> float:
        return self.par_rate(fra, provider) - fra.rate

    def par_spread_curve_sensitivity(self, fra: ForwardRateAgreement, provider) -> CurveSensitivity:
        name = provider.forward_curve_name(fra.index)
        curve = provider.get_curve(name)
        return CurveSensitivity.of(name, _forward_points(
            fra.fixing_start, fra.fixing_end, fra.fixing_accrual,
            curve.discount_factor(fra.fixing_start), curve.discount_factor(fra.fixing_end)
        ))


class InterestRateFutureDiscountingMethod:
    """Future priced without convexity adjustment: price = 1 - forward."""

    def _forward(self, future: InterestRateFuture, provider) -> float:
        return provider.forward_rate(future.index, future.fixing_start, future.fixing_end, future.fixing_accrual)

    def price(self, future: InterestRateFuture, provider) -> float:
        return 1.0 - self._forward(future, provider)

    def _scale(self, future: InterestRateFuture) -> float:
        return future.notional * future.payment_accrual * future.quantity

    def present_value(self, future: InterestRateFuture, provider) -> float:
        return (self.price(future, provider) - future.reference_price) * self._scale(future)

    def present_value_curve_sensitivity(self, future: InterestRateFuture, provider) -> CurveSensitivity:
        return self.par_spread_curve_sensitivity(future, provider).multiplied_by(self._scale(future))

    def par_rate(self, future: InterestRateFuture, provider) -> float:
        return self._forward(future, provider)

    def par_spread(self, future: InterestRateFuture, provider) -> float:
        """Model price minus reference price."""
        return self.price(future, provider) - future.reference_price

    def par_spread_curve_sensitivity(self, future: InterestRateFuture, provider) -> CurveSensitivity:
        name = provider.forward_curve_name(future.index)
        curve = provider.get_curve(name)
        return CurveSensitivity.of(name, _forward_points(
            future.fixing_start, future.fixing_end, future.fixing_accrual,
            curve.discount_factor(future.fixing_start), curve.discount_factor(future.fixing_end),
            -1.0
        ))


class CouponFixedDiscountingMethod:

    def present_value(self, coupon: FixedCoupon, provider) -> float:
        return coupon.amount * provider.discount_factor(coupon.currency, coupon.payment_time)

    def present_value_curve_sensitivity(self, coupon: FixedCoupon, provider) -> CurveSensitivity:
        name = provider.discounting_curve_name(coupon.currency)
        df = provider.get_curve(name).discount_factor(coupon.payment_time)
        return CurveSensitivity.of(name, [(coupon.payment_time, coupon.amount * _discount_derivative(coupon.payment_time, df))])


class CouponIborDiscountingMethod:

    def forward(self, coupon: IborCoupon, provider) -> float:
        return provider.forward_rate(coupon.index, coupon.fixing_start, coupon.fixing_end, coupon.fixing_accrual)

    def present_value(self, coupon: IborCoupon, provider) -> float:
        df = provider.discount_factor(coupon.currency, coupon.payment_time)
        return coupon.notional * coupon.payment_accrual * (self.forward(coupon, provider) + coupon.spread) * df

    def present_value_curve_sensitivity(self, coupon: IborCoupon, provider) -> CurveSensitivity:
        discount_name = provider.discounting_curve_name(coupon.currency)
        forward_name = provider.forward_curve_name(coupon.index)
        forward_curve = provider.get_curve(forward_name)
        df = provider.get_curve(discount_name).discount_factor(coupon.payment_time)
        amount = coupon.notional * coupon.payment_accrual * (self.forward(coupon, provider) + coupon.spread)

        sensitivity = CurveSensitivity.of(
            discount_name, [(coupon.payment_time, amount * _discount_derivative(coupon.payment_time, df))]
        )
        return sensitivity.plus(CurveSensitivity.of(forward_name, _forward_points(
            coupon.fixing_start, coupon.fixing_end, coupon.fixing_accrual,
            forward_curve.discount_factor(coupon.fixing_start), forward_curve.discount_factor(coupon.fixing_end),
            coupon.notional * coupon.payment_accrual * df
        )))


class CouponOvernightDiscountingMethod:

    def compounded_factor(self, coupon: OvernightCoupon, provider) -> float:
        """Accrued factor times the projected factor P(s) / P(e) of the remaining period."""
        curve = provider.forward_curve(coupon.index)
        return coupon.accrued_factor * curve.discount_factor(coupon.fixing_start) / curve.discount_factor(coupon.fixing_end)

    def present_value(self, coupon: OvernightCoupon, provider) -> float:
        amount = coupon.notional * (self.compounded_factor(coupon, provider) - 1.0)
        return amount * provider.discount_factor(coupon.currency, coupon.payment_time)

    def present_value_curve_sensitivity(self, coupon: OvernightCoupon, provider) -> CurveSensitivity:
        discount_name = provider.discounting_curve_name(coupon.currency)
        forward_name = provider.forward_curve_name(coupon.index)
        forward_curve = provider.get_curve(forward_name)
        df = provider.get_curve(discount_name).discount_factor(coupon.payment_time)
        amount = coupon.notional * (self.compounded_factor(coupon, provider) - 1.0)

        sensitivity = CurveSensitivity.of(
            discount_name, [(coupon.payment_time, amount * _discount_derivative(coupon.payment_time, df))]
        )
        # 1 + fixing_accrual * forward = P(s) / P(e)
        return sensitivity.plus(CurveSensitivity.of(forward_name, _forward_points(
            coupon.fixing_start, coupon.fixing_end, 1.0,
            forward_curve.discount_factor(coupon.fixing_start), forward_curve.discount_factor(coupon.fixing_end),
            coupon.notional * coupon.accrued_factor * df
        )))


_COUPON_METHODS = {
    FixedCoupon: CouponFixedDiscountingMethod(),
    IborCoupon: CouponIborDiscountingMethod(),
    OvernightCoupon: CouponOvernightDiscountingMethod(),
}


def coupon_method(coupon):
    """Discounting method of a coupon, looked up along the coupon type MRO."""
    for cls in type(coupon).__mro__:
        method = _COUPON_METHODS.get(cls)
        if method is not None:
            return method
    raise NotFoundError(f"No discounting method for coupon type {type(coupon).__name__}")


class SwapDiscountingMethod:
    """
    Swap priced coupon by coupon, in the currency of the first leg.

    The first leg is the fixed leg of calibration swaps; its PVBP is the
    value of one unit of rate on that leg.
    """

    def _fx(self, coupon, currency: str, provider) -> float:
        return provider.fx_matrix.fx_rate(coupon.currency, currency)

    def leg_present_value(self, leg, currency: str, provider) -> float:
        return sum(coupon_method(c).present_value(c, provider) * self._fx(c, currency, provider) for c in leg)

    def leg_curve_sensitivity(self, leg, currency: str, provider) -> CurveSensitivity:
        result = CurveSensitivity()
        for coupon in leg:
            sensitivity = coupon_method(coupon).present_value_curve_sensitivity(coupon, provider)
            result = result.plus(sensitivity.multiplied_by(self._fx(coupon, currency, provider)))
        return result

    def present_value(self, swap: Swap, provider) -> float:
        currency = swap.first_leg[0].currency
        return self.leg_present_value(swap.first_leg + swap.second_leg, currency, provider)

    def present_value_curve_sensitivity(self, swap: Swap, provider) -> CurveSensitivity:
        currency = swap.first_leg[0].currency
        return self.leg_curve_sensitivity(swap.first_leg + swap.second_leg, currency, provider)

    def pvbp(self, swap: Swap, provider) -> float:
        """Present value of a basis point (unit rate) on the first leg."""
        return sum(
            c.notional * c.payment_accrual * provider.discount_factor(c.currency, c.payment_time)
            for c in swap.first_leg
        )

    def pvbp_curve_sensitivity(self, swap: Swap, provider) -> CurveSensitivity:
        result = CurveSensitivity()
        for c in swap.first_leg:
            name = provider.discounting_curve_name(c.currency)
            df = provider.get_curve(name).discount_factor(c.payment_time)
            result = result.plus(CurveSensitivity.of(
                name, [(c.payment_time, c.notional * c.payment_accrual * _discount_derivative(c.payment_time, df))]
            ))
        return result

    def par_rate(self, swap: Swap, provider) -> float:
        currency = swap.first_leg[0].currency
        return -self.leg_present_value(swap.second_leg, currency, provider) / self.pvbp(swap, provider)

    def par_spread(self, swap: Swap, provider) -> float:
        """Spread to add to the first leg rate to make the swap worth zero, negated."""
        return -self.present_value(swap, provider) / self.pvbp(swap, provider)

    def par_spread_curve_sensitivity(self, swap: Swap, provider) -> CurveSensitivity:
        pv = self.present_value(swap, provider)
        pvbp = self.pvbp(swap, provider)
        pv_sensitivity = self.present_value_curve_sensitivity(swap, provider)
        pvbp_sensitivity = self.pvbp_curve_sensitivity(swap, provider)
        return pv_sensitivity.multiplied_by(-1.0 / pvbp).plus(pvbp_sensitivity.multiplied_by(pv / pvbp ** 2))


class ZeroCouponInflationSwapDiscountingMethod:
    """
    Zero coupon inflation swap: index ratio I(t_i) / I_0 against (1 + K)^n.

    The index is projected from the price index curve of the swap index and
    both legs pay at maturity, so the par rate does not depend on discounting.
    """

    def index_ratio(self, swap: ZeroCouponInflationSwap, provider) -> float:
        return provider.price_index(swap.price_index, swap.index_time) / swap.index_start_value

    def _ratio_points(self, swap: ZeroCouponInflationSwap, provider, factor: float) -> CurveSensitivity:
        # dI/dr(t) = t I(t)
        name = provider.price_index_curve_name(swap.price_index)
        t = swap.index_time
        slope = t * self.index_ratio(swap, provider) if t > 0 else 0.0
        return CurveSensitivity.of(name, [(t, factor * slope)])

    def present_value(self, swap: ZeroCouponInflationSwap, provider) -> float:
        df = provider.discount_factor(swap.currency, swap.payment_time)
        return swap.notional * (self.index_ratio(swap, provider) - swap.fixed_factor) * df

    def present_value_curve_sensitivity(self, swap: ZeroCouponInflationSwap, provider) -> CurveSensitivity:
        name = provider.discounting_curve_name(swap.currency)
        df = provider.get_curve(name).discount_factor(swap.payment_time)
        amount = swap.notional * (self.index_ratio(swap, provider) - swap.fixed_factor)
        sensitivity = CurveSensitivity.of(
            name, [(swap.payment_time, amount * _discount_derivative(swap.payment_time, df))]
        )
        return sensitivity.plus(self._ratio_points(swap, provider, swap.notional * df))

    def par_rate(self, swap: ZeroCouponInflationSwap, provider) -> float:
        return self.index_ratio(swap, provider) ** (1.0 / swap.periods) - 1.0

    def par_spread(self, swap: ZeroCouponInflationSwap, provider) -> float:
        return self.par_rate(swap, provider) - swap.rate

    def par_spread_curve_sensitivity(self, swap: ZeroCouponInflationSwap, provider) -> CurveSensitivity:
        ratio = self.index_ratio(swap, provider)
        # d ratio^(1/n) / d ratio = ratio^(1/n - 1) / n
        return self._ratio_points(swap, provider, ratio ** (1.0 / swap.periods - 1.0) / swap.periods)


__all__ = [
    "CashDepositDiscountingMethod",
    "ForwardRateAgreementDiscountingMethod",
    "InterestRateFutureDiscountingMethod",
    "CouponFixedDiscountingMethod",
    "CouponIborDiscountingMethod",
    "CouponOvernightDiscountingMethod",
    "SwapDiscountingMethod",
    "ZeroCouponInflationSwapDiscountingMethod",
    "coupon_method",
]
