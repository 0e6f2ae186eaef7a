"""
Tests for the curve building repository.

Two-curve EUR set-up:
- DSC: discounting and ESTR curve from a 6M deposit and 1Y/2Y/3Y OIS
- FWD: Euribor 6M curve from 0x6 and 6x12 FRAs and 2Y/3Y swaps discounted on DSC
- F3: Euribor 3M curve from FRAs, or from futures, built after DSC
- CPI: HICP price index curve from zero coupon inflation swaps

Jacobians are checked against finite differences of full recalibrations.
"""

import logging
from datetime import date

import numpy as np
import pandas as pd
import pytest

from curvelib.curves import (
    AddYieldExistingGenerator,
    AddYieldGenerator,
    CalibrationSettings,
    CurveBuildingBlockBundle,
    CurveBuildingRepository,
    CurveDataProvider,
    CurveBuildingBlock,
    DiscountFactorInterpolatedAnchorNodeGenerator,
    DiscountFactorInterpolatedGenerator,
    DiscountFactorInterpolatedNumberGenerator,
    MultiCurveBundle,
    PriceIndexCurve,
    PriceIndexGenerator,
    SingleCurveBundle,
    YieldInterpolatedAnchorGenerator,
    YieldInterpolatedGenerator,
    create_flat_curve,
    make_curves_from_definitions,
    make_units,
)
from curvelib.exceptions import (
    BlockConsistencyError,
    ConfigurationError,
    ConvergenceError,
    DependencyOrderError,
)
from curvelib.instruments import (
    CashDeposit,
    FixedCoupon,
    FixedOvernightSwapGenerator,
    ForwardRateAgreement,
    GeneratorAttribute,
    DepositGenerator,
    IborCoupon,
    IborIndex,
    InterestRateFuture,
    OvernightCoupon,
    OvernightIndex,
    PriceIndex,
    Swap,
    ZeroCouponInflationSwap,
    ZeroCouponInflationSwapGenerator,
)
from curvelib.pricing import (
    MarketQuoteSensitivityCalculator,
    ParSpreadMarketQuoteCalculator,
    ParSpreadMarketQuoteCurveSensitivityCalculator,
    PresentValueCalculator,
    PresentValueCurveSensitivityCalculator,
)


ESTR = OvernightIndex.estr()
EURIBOR6M = IborIndex.euribor_6m()
EURIBOR3M = IborIndex.euribor_3m()
HICP = PriceIndex.eu_hicp_x()

DSC_QUOTES = np.array([0.030, 0.031, 0.032, 0.033])
FWD_QUOTES = np.array([0.034, 0.035, 0.036, 0.037])
DSC_IDS = ["DEP6M", "OIS1Y", "OIS2Y", "OIS3Y"]
FWD_IDS = ["FRA0x6", "FRA6x12", "IRS2Y", "IRS3Y"]
F3_QUOTES = np.array([0.036, 0.037, 0.038])
F3_IDS = ["FRA3x6", "FRA6x9", "FRA9x12"]
FUT_PRICES = np.array([0.9700, 0.9690, 0.9680, 0.9670, 0.9660])
FUT_IDS = ["FUT1", "FUT2", "FUT3", "FUT4", "FUT5"]
CPI_QUOTES = np.array([0.0200, 0.0210, 0.0220, 0.0230])
CPI_IDS = ["ZC1Y", "ZC2Y", "ZC3Y", "ZC5Y"]

DISCOUNTING = {"DSC": "EUR"}
OVERNIGHT = {"DSC": [ESTR]}
IBOR = {"FWD": [EURIBOR6M]}
PRICE_INDEX = {"CPI": [HICP]}

CALCULATOR = ParSpreadMarketQuoteCalculator()
SENSITIVITY = ParSpreadMarketQuoteCurveSensitivityCalculator()


def ois(maturity, rate):
    fixed = tuple(FixedCoupon("EUR", float(t), 1.0, -1.0, rate) for t in range(1, maturity + 1))
    overnight = tuple(
        OvernightCoupon("EUR", float(t), 1.0, 1.0, ESTR, t - 1.0, float(t), 1.0)
        for t in range(1, maturity + 1)
    )
    return Swap(fixed, overnight)


def irs(maturity, rate):
    fixed = tuple(FixedCoupon("EUR", float(t), 1.0, -1.0, rate) for t in range(1, maturity + 1))
    floating = tuple(
        IborCoupon("EUR", s + 0.5, 0.5, 1.0, EURIBOR6M, s, s, s + 0.5, 0.5)
        for s in np.arange(0.0, maturity, 0.5)
    )
    return Swap(fixed, floating)


def dsc_instruments(quotes):
    return [
        CashDeposit("EUR", 0.0, 0.5, 0.5, quotes[0]),
        ois(1, quotes[1]),
        ois(2, quotes[2]),
        ois(3, quotes[3]),
    ]


def fwd_instruments(quotes):
    return [
        ForwardRateAgreement("EUR", EURIBOR6M, 0.0, 0.0, 0.5, 0.5, 0.5, quotes[0]),
        ForwardRateAgreement("EUR", EURIBOR6M, 0.5, 0.5, 1.0, 0.5, 0.5, quotes[1]),
        irs(2, quotes[2]),
        irs(3, quotes[3]),
    ]


def f3_instruments(quotes):
    return [
        ForwardRateAgreement("EUR", EURIBOR3M, s, s, s + 0.25, 0.25, 0.25, q)
        for s, q in zip((0.25, 0.5, 0.75), quotes)
    ]


def futures(prices):
    return [
        InterestRateFuture("EUR", EURIBOR3M, s - 0.01, s, s + 0.25, 0.25, p)
        for s, p in zip((0.1, 0.35, 0.6, 0.85, 1.1), prices)
    ]


def zero_coupon_swaps(quotes):
    return [
        ZeroCouponInflationSwap("EUR", HICP, float(n), n - 0.25, 100.0, q, float(n))
        for n, q in zip((1, 2, 3, 5), quotes)
    ]


def single_bundle(name, derivatives, quotes, generator, ids, shift=0.0):
    bound = generator.final_generator(derivatives)
    return SingleCurveBundle(name, derivatives, bound.initial_guess(quotes) + shift, bound, ids)


def dsc_bundle(quotes=DSC_QUOTES):
    return single_bundle(
        "DSC", dsc_instruments(quotes), quotes, DiscountFactorInterpolatedGenerator(anchor_time=0.0), DSC_IDS
    )


def fwd_bundle(quotes=FWD_QUOTES, generator=None, shift=0.0):
    generator = generator if generator is not None else YieldInterpolatedGenerator()
    return single_bundle("FWD", fwd_instruments(quotes), quotes, generator, FWD_IDS, shift)


def repository():
    return CurveBuildingRepository(settings=CalibrationSettings.strict())


def calibrate(dsc_quotes=DSC_QUOTES, fwd_quotes=FWD_QUOTES, generator=None):
    units = [MultiCurveBundle([dsc_bundle(dsc_quotes)]), MultiCurveBundle([fwd_bundle(fwd_quotes, generator)])]
    return repository().make_curves_from_derivatives(
        units, CurveDataProvider(), DISCOUNTING, OVERNIGHT, IBOR, CALCULATOR, SENSITIVITY
    )


def calibrate_chain(dsc_quotes=DSC_QUOTES, fwd_quotes=FWD_QUOTES, f3_quotes=F3_QUOTES):
    """DSC, then FWD as a spread over DSC, then F3 as a spread over FWD."""
    fwd = fwd_bundle(fwd_quotes, AddYieldExistingGenerator(YieldInterpolatedGenerator(), "DSC"))
    f3 = single_bundle(
        "F3", f3_instruments(f3_quotes), f3_quotes,
        AddYieldExistingGenerator(YieldInterpolatedGenerator(), "FWD"), F3_IDS
    )
    units = [MultiCurveBundle([dsc_bundle(dsc_quotes)]), MultiCurveBundle([fwd]), MultiCurveBundle([f3])]
    return repository().make_curves_from_derivatives(
        units, CurveDataProvider(), DISCOUNTING, OVERNIGHT, {"FWD": [EURIBOR6M], "F3": [EURIBOR3M]},
        CALCULATOR, SENSITIVITY
    )


def futures_generator():
    """Discount factors on fixed nodes, then a spread anchored at the last node, over a fixed curve."""
    return AddYieldGenerator(
        [
            DiscountFactorInterpolatedAnchorNodeGenerator([0.4, 0.7]),
            YieldInterpolatedAnchorGenerator(anchor_time=0.7),
        ],
        fixed_curve=create_flat_curve("TOY", 0.001)
    )


def calibrate_futures(dsc_quotes=DSC_QUOTES, prices=FUT_PRICES):
    f3 = single_bundle("F3", futures(prices), 1.0 - prices, futures_generator(), FUT_IDS)
    units = [MultiCurveBundle([dsc_bundle(dsc_quotes)]), MultiCurveBundle([f3])]
    return repository().make_curves_from_derivatives(
        units, CurveDataProvider(), DISCOUNTING, OVERNIGHT, {"F3": [EURIBOR3M]}, CALCULATOR, SENSITIVITY
    )


def calibrate_inflation(dsc_quotes=DSC_QUOTES, cpi_quotes=CPI_QUOTES, price_index_map=PRICE_INDEX):
    cpi = single_bundle(
        "CPI", zero_coupon_swaps(cpi_quotes), cpi_quotes,
        PriceIndexGenerator(YieldInterpolatedGenerator(), 101.0), CPI_IDS
    )
    units = [MultiCurveBundle([dsc_bundle(dsc_quotes)]), MultiCurveBundle([cpi])]
    return repository().make_curves_from_derivatives(
        units, CurveDataProvider(), DISCOUNTING, OVERNIGHT, {}, CALCULATOR, SENSITIVITY,
        price_index_map=price_index_map
    )


def max_residual(provider, derivatives):
    return max(abs(CALCULATOR(d, provider)) for d in derivatives)


def bump(quotes, k, shift):
    quotes = np.array(quotes, dtype=float)
    quotes[k] += shift
    return quotes


@pytest.fixture(scope="module")
def calibrated():
    """Sequential DSC then FWD calibration."""
    return calibrate()


class TestSingleCurve:
    """Tests for a one-unit discounting curve."""

    @pytest.fixture(scope="class")
    def result(self):
        units = [MultiCurveBundle([dsc_bundle()])]
        return repository().make_curves_from_derivatives(
            units, CurveDataProvider(), DISCOUNTING, OVERNIGHT, {}, CALCULATOR, SENSITIVITY
        )

    def test_reprices_quotes(self, result):
        """Calibrated curve reprices every instrument."""
        provider, _ = result
        assert max_residual(provider, dsc_instruments(DSC_QUOTES)) < 1e-10

    def test_anchor(self, result):
        """Anchored discount curve starts at 1."""
        provider, _ = result
        assert provider.get_curve("DSC").discount_factor(0.0) == 1.0
        assert provider.get_curve("DSC").get_nodes()[0] == (0.0, 1.0)

    def test_maps_installed(self, result):
        """Returned provider maps the currency and index."""
        provider, _ = result
        assert provider.discounting_curve_name("EUR") == "DSC"
        assert provider.forward_curve_name(ESTR) == "DSC"

    def test_block(self, result):
        """Own block only, square Jacobian."""
        _, bundle = result
        block, matrix = bundle.get_block("DSC")
        assert block.names == ["DSC"]
        assert block.instrument_ids("DSC") == tuple(DSC_IDS)
        assert matrix.shape == (4, 4)

    def test_jacobian_finite_difference(self, result):
        """dx/dm against bumped recalibrations."""
        _, bundle = result
        eps = 1e-6
        numeric = np.zeros((4, 4))
        for k in range(4):
            up, down = (
                repository().make_curves_from_derivatives(
                    [MultiCurveBundle([dsc_bundle(bump(DSC_QUOTES, k, shift))])],
                    CurveDataProvider(), DISCOUNTING, OVERNIGHT, {}, CALCULATOR, SENSITIVITY
                )[0].get_curve("DSC").parameters
                for shift in (eps, -eps)
            )
            numeric[:, k] = (up - down) / (2 * eps)
        np.testing.assert_allclose(bundle.get_matrix("DSC"), numeric, atol=1e-7)

    def test_logs_unit(self, caplog):
        """One INFO record per calibrated unit."""
        caplog.set_level(logging.INFO, logger="curvelib.curves.repository")
        repository().make_curves_from_derivatives(
            [MultiCurveBundle([dsc_bundle()])], CurveDataProvider(), DISCOUNTING, OVERNIGHT, {},
            CALCULATOR, SENSITIVITY
        )
        messages = [r.getMessage() for r in caplog.records if r.name == "curvelib.curves.repository"]
        assert any(m.startswith("Calibrated unit 0 (DSC)") for m in messages)


class TestChainedCalibration:
    """Tests for two units with Jacobian chaining."""

    def test_reprices_quotes(self, calibrated):
        """Both curves reprice their instruments."""
        provider, _ = calibrated
        assert max_residual(provider, dsc_instruments(DSC_QUOTES)) < 1e-10
        assert max_residual(provider, fwd_instruments(FWD_QUOTES)) < 1e-10

    def test_block_layout(self, calibrated):
        """FWD block lists DSC quotes before its own."""
        _, bundle = calibrated
        block, matrix = bundle.get_block("FWD")
        assert block.names == ["DSC", "FWD"]
        assert block.column_labels()[4] == ("FWD", "FRA0x6")
        assert matrix.shape == (4, 8)

    def test_fra_rows_ignore_discounting(self, calibrated):
        """FRA nodes do not move with DSC quotes."""
        _, bundle = calibrated
        matrix = bundle.get_matrix("FWD")
        np.testing.assert_allclose(matrix[:2, :4], 0.0, atol=1e-12)
        assert np.max(np.abs(matrix[2:, :4])) > 1e-6

    @pytest.mark.parametrize("k", range(4))
    def test_chained_columns_finite_difference(self, calibrated, k):
        """FWD parameters against bumped DSC quotes."""
        _, bundle = calibrated
        eps = 1e-6
        up = calibrate(dsc_quotes=bump(DSC_QUOTES, k, eps))[0].get_curve("FWD").parameters
        down = calibrate(dsc_quotes=bump(DSC_QUOTES, k, -eps))[0].get_curve("FWD").parameters
        np.testing.assert_allclose(bundle.get_matrix("FWD")[:, k], (up - down) / (2 * eps), atol=1e-7)

    @pytest.mark.parametrize("k", range(4))
    def test_own_columns_finite_difference(self, calibrated, k):
        """FWD parameters against bumped FWD quotes."""
        _, bundle = calibrated
        eps = 1e-6
        up = calibrate(fwd_quotes=bump(FWD_QUOTES, k, eps))[0].get_curve("FWD").parameters
        down = calibrate(fwd_quotes=bump(FWD_QUOTES, k, -eps))[0].get_curve("FWD").parameters
        np.testing.assert_allclose(bundle.get_matrix("FWD")[:, 4 + k], (up - down) / (2 * eps), atol=1e-7)

    def test_matches_joint_unit(self, calibrated):
        """Chained Jacobians equal those of one joint unit."""
        provider, bundle = calibrated
        joint_provider, joint_bundle = repository().make_curves_from_derivatives(
            [MultiCurveBundle([dsc_bundle(), fwd_bundle(shift=0.005)])],
            CurveDataProvider(), DISCOUNTING, OVERNIGHT, IBOR, CALCULATOR, SENSITIVITY
        )
        for name in ("DSC", "FWD"):
            np.testing.assert_allclose(
                joint_provider.get_curve(name).parameters, provider.get_curve(name).parameters, atol=1e-10
            )
        assert joint_bundle.get_block("FWD")[0] == bundle.get_block("FWD")[0]
        np.testing.assert_allclose(joint_bundle.get_matrix("FWD"), bundle.get_matrix("FWD"), atol=1e-8)
        joint_dsc = joint_bundle.get_matrix("DSC")
        np.testing.assert_allclose(joint_dsc[:, :4], bundle.get_matrix("DSC"), atol=1e-8)
        np.testing.assert_allclose(joint_dsc[:, 4:], 0.0, atol=1e-10)

    def test_idempotent(self, calibrated):
        """Recalibrating the same inputs gives the same curves."""
        provider, bundle = calibrated
        again, again_bundle = calibrate()
        for name in ("DSC", "FWD"):
            np.testing.assert_allclose(again.get_curve(name).parameters, provider.get_curve(name).parameters, rtol=0, atol=1e-14)
            np.testing.assert_allclose(again_bundle.get_matrix(name), bundle.get_matrix(name), rtol=0, atol=1e-12)

    def test_market_quote_sensitivity(self, calibrated):
        """PV sensitivity to quotes against repricing after recalibration."""
        provider, bundle = calibrated
        swap = irs(3, 0.04)
        sensitivity = MarketQuoteSensitivityCalculator(bundle).from_curve_sensitivity(
            PresentValueCurveSensitivityCalculator()(swap, provider), provider
        )
        eps = 1e-6
        pv = PresentValueCalculator()
        for name, quotes, key in (("DSC", DSC_QUOTES, "dsc_quotes"), ("FWD", FWD_QUOTES, "fwd_quotes")):
            numeric = np.array([
                (pv(swap, calibrate(**{key: bump(quotes, k, eps)})[0])
                 - pv(swap, calibrate(**{key: bump(quotes, k, -eps)})[0])) / (2 * eps)
                for k in range(4)
            ])
            np.testing.assert_allclose(sensitivity[name], numeric, atol=1e-6)


class TestSuccessiveCalls:
    """Tests for calibration continued from earlier results."""

    def test_known_block_continuation(self, calibrated):
        """Second call chains through the first call's bundle."""
        _, bundle = calibrated
        first_provider, first_bundle = repository().make_curves_from_derivatives(
            [MultiCurveBundle([dsc_bundle()])], CurveDataProvider(), DISCOUNTING, OVERNIGHT, {},
            CALCULATOR, SENSITIVITY
        )
        provider, second_bundle = repository().make_curves_from_derivatives(
            [MultiCurveBundle([fwd_bundle()])], first_provider, {}, {}, IBOR,
            CALCULATOR, SENSITIVITY, known_block=first_bundle
        )
        np.testing.assert_allclose(second_bundle.get_matrix("FWD"), bundle.get_matrix("FWD"), atol=1e-12)
        assert set(second_bundle.curve_names) == {"DSC", "FWD"}
        assert first_provider.curve_names == ["DSC"]
        assert first_bundle.curve_names == ["DSC"]
        assert provider.curve_names == ["DSC", "FWD"]

    def test_exogenous_curve(self):
        """Known curves without a block carry no quote sensitivity."""
        known = CurveDataProvider()
        known.set_curve("DSC", create_flat_curve("DSC", 0.03))
        provider, bundle = repository().make_curves_from_derivatives(
            [MultiCurveBundle([fwd_bundle()])], known, DISCOUNTING, {}, IBOR, CALCULATOR, SENSITIVITY
        )
        block, matrix = bundle.get_block("FWD")
        assert block.names == ["FWD"]
        assert matrix.shape == (4, 4)
        assert not bundle.has_curve("DSC")
        assert max_residual(provider, fwd_instruments(FWD_QUOTES)) < 1e-10
        assert known.discounting_map == {}


class TestGeneratorVariants:
    """Calibration with composite generators."""

    def test_spread_over_existing(self):
        """FWD as a spread over DSC chains through the spread curve."""
        generator = AddYieldExistingGenerator(YieldInterpolatedGenerator(), "DSC")
        provider, bundle = calibrate(generator=generator)
        assert max_residual(provider, fwd_instruments(FWD_QUOTES)) < 1e-10
        block, matrix = bundle.get_block("FWD")
        assert block.names == ["DSC", "FWD"]

        eps = 1e-6
        for k in range(4):
            up = calibrate(dsc_quotes=bump(DSC_QUOTES, k, eps), generator=generator)[0].get_curve("FWD").parameters
            down = calibrate(dsc_quotes=bump(DSC_QUOTES, k, -eps), generator=generator)[0].get_curve("FWD").parameters
            np.testing.assert_allclose(matrix[:, k], (up - down) / (2 * eps), atol=1e-7)

    def test_fixed_curve(self):
        """A fixed curve shifts the calibrated curve."""
        generator = AddYieldGenerator([YieldInterpolatedGenerator()], fixed_curve=create_flat_curve("TOY", 0.001))
        provider, bundle = calibrate(generator=generator)
        assert max_residual(provider, fwd_instruments(FWD_QUOTES)) < 1e-10
        assert bundle.get_matrix("FWD").shape == (4, 8)

    def test_composite_members(self):
        """Discount factors up to 1Y plus a spread anchored at 1Y."""
        generator = AddYieldGenerator([
            DiscountFactorInterpolatedNumberGenerator(n_nodes=2),
            YieldInterpolatedAnchorGenerator(anchor_time=1.0),
        ])
        provider, _ = calibrate(generator=generator)
        assert provider.get_curve("FWD").parameter_count == 4
        assert max_residual(provider, fwd_instruments(FWD_QUOTES)) < 1e-10


class TestFuturesCalibration:
    """Futures unit on anchored discount factor nodes plus an anchored spread."""

    @pytest.fixture(scope="class")
    def result(self):
        return calibrate_futures()

    def test_reprices_prices(self, result):
        """Model prices match the futures prices."""
        provider, _ = result
        assert max_residual(provider, futures(FUT_PRICES)) < 1e-10
        curve = provider.get_curve("F3")
        assert curve.parameter_count == 5
        toy, discount, spread = curve.curves
        assert toy.name == "TOY"
        assert discount.get_nodes()[0] == (0.0, 1.0)
        assert spread.zero_rate(0.7) == 0.0

    def test_block(self, result):
        """Futures do not depend on discounting; only own quotes."""
        _, bundle = result
        block, matrix = bundle.get_block("F3")
        assert block.names == ["F3"]
        assert block.instrument_ids("F3") == tuple(FUT_IDS)
        assert matrix.shape == (5, 5)

    @pytest.mark.parametrize("k", range(5))
    def test_jacobian_finite_difference(self, result, k):
        """Parameters against bumped futures prices."""
        _, bundle = result
        eps = 1e-6
        up = calibrate_futures(prices=bump(FUT_PRICES, k, eps))[0].get_curve("F3").parameters
        down = calibrate_futures(prices=bump(FUT_PRICES, k, -eps))[0].get_curve("F3").parameters
        np.testing.assert_allclose(bundle.get_matrix("F3")[:, k], (up - down) / (2 * eps), atol=1e-6)

    def test_anchor_node_members(self, result):
        """Early futures move the discount factor nodes only."""
        _, bundle = result
        matrix = bundle.get_matrix("F3")
        np.testing.assert_allclose(matrix[:2, 2:], 0.0, atol=1e-12)
        assert np.all(np.abs(np.diag(matrix)) > 1e-3)


class TestThreeUnitChain:
    """DSC, FWD over DSC and F3 over FWD, each in its own unit."""

    @pytest.fixture(scope="class")
    def result(self):
        return calibrate_chain()

    def test_reprices_quotes(self, result):
        """Every curve reprices its instruments."""
        provider, _ = result
        assert max_residual(provider, dsc_instruments(DSC_QUOTES)) < 1e-10
        assert max_residual(provider, fwd_instruments(FWD_QUOTES)) < 1e-10
        assert max_residual(provider, f3_instruments(F3_QUOTES)) < 1e-10

    def test_block_layout(self, result):
        """F3 block chains through FWD down to DSC."""
        _, bundle = result
        block, matrix = bundle.get_block("F3")
        assert block.names == ["DSC", "FWD", "F3"]
        assert block.column_labels()[8] == ("F3", "FRA3x6")
        assert matrix.shape == (3, 11)

    @pytest.mark.parametrize("k", range(4))
    def test_dsc_columns_finite_difference(self, result, k):
        """F3 parameters against bumped DSC quotes."""
        _, bundle = result
        eps = 1e-6
        up = calibrate_chain(dsc_quotes=bump(DSC_QUOTES, k, eps))[0].get_curve("F3").parameters
        down = calibrate_chain(dsc_quotes=bump(DSC_QUOTES, k, -eps))[0].get_curve("F3").parameters
        np.testing.assert_allclose(bundle.get_matrix("F3")[:, k], (up - down) / (2 * eps), atol=1e-7)

    @pytest.mark.parametrize("k", range(4))
    def test_fwd_columns_finite_difference(self, result, k):
        """F3 parameters against bumped FWD quotes."""
        _, bundle = result
        eps = 1e-6
        up = calibrate_chain(fwd_quotes=bump(FWD_QUOTES, k, eps))[0].get_curve("F3").parameters
        down = calibrate_chain(fwd_quotes=bump(FWD_QUOTES, k, -eps))[0].get_curve("F3").parameters
        np.testing.assert_allclose(bundle.get_matrix("F3")[:, 4 + k], (up - down) / (2 * eps), atol=1e-7)

    @pytest.mark.parametrize("k", range(3))
    def test_own_columns_finite_difference(self, result, k):
        """F3 parameters against bumped F3 quotes."""
        _, bundle = result
        eps = 1e-6
        up = calibrate_chain(f3_quotes=bump(F3_QUOTES, k, eps))[0].get_curve("F3").parameters
        down = calibrate_chain(f3_quotes=bump(F3_QUOTES, k, -eps))[0].get_curve("F3").parameters
        np.testing.assert_allclose(bundle.get_matrix("F3")[:, 8 + k], (up - down) / (2 * eps), atol=1e-7)


class TestInflationCalibration:
    """Price index curve calibrated after the discounting curve."""

    @pytest.fixture(scope="class")
    def result(self):
        return calibrate_inflation()

    def test_reprices_quotes(self, result):
        """Zero coupon swaps price at par."""
        provider, _ = result
        assert max_residual(provider, zero_coupon_swaps(CPI_QUOTES)) < 1e-10
        assert isinstance(provider.get_curve("CPI"), PriceIndexCurve)
        assert provider.price_index_curve_name(HICP) == "CPI"
        assert provider.price_index(HICP, 0.0) == pytest.approx(101.0)

    def test_block(self, result):
        """Par rates do not depend on discounting, so only own quotes enter."""
        _, bundle = result
        block, matrix = bundle.get_block("CPI")
        assert block.names == ["CPI"]
        assert block.instrument_ids("CPI") == tuple(CPI_IDS)
        assert matrix.shape == (4, 4)

    @pytest.mark.parametrize("k", range(4))
    def test_jacobian_finite_difference(self, result, k):
        """Inflation zero rates against bumped swap quotes."""
        _, bundle = result
        eps = 1e-6
        up = calibrate_inflation(cpi_quotes=bump(CPI_QUOTES, k, eps))[0].get_curve("CPI").parameters
        down = calibrate_inflation(cpi_quotes=bump(CPI_QUOTES, k, -eps))[0].get_curve("CPI").parameters
        np.testing.assert_allclose(bundle.get_matrix("CPI")[:, k], (up - down) / (2 * eps), atol=1e-7)

    def test_market_quote_sensitivity(self, result):
        """PV risk to DSC and CPI quotes against repricing after recalibration."""
        provider, bundle = result
        swap = ZeroCouponInflationSwap("EUR", HICP, 4.0, 3.75, 100.0, 0.025, 4.0)
        sensitivity = MarketQuoteSensitivityCalculator(bundle).from_curve_sensitivity(
            PresentValueCurveSensitivityCalculator()(swap, provider), provider
        )
        eps = 1e-6
        pv = PresentValueCalculator()
        for name, quotes, key in (("DSC", DSC_QUOTES, "dsc_quotes"), ("CPI", CPI_QUOTES, "cpi_quotes")):
            numeric = np.array([
                (pv(swap, calibrate_inflation(**{key: bump(quotes, k, eps)})[0])
                 - pv(swap, calibrate_inflation(**{key: bump(quotes, k, -eps)})[0])) / (2 * eps)
                for k in range(4)
            ])
            np.testing.assert_allclose(sensitivity[name], numeric, atol=1e-6)

    def test_unmapped_price_index(self):
        """A price index with no curve is a dependency order error."""
        with pytest.raises(DependencyOrderError):
            calibrate_inflation(price_index_map=None)


class TestFailures:
    """Error paths; inputs are never modified."""

    def test_dependency_order(self):
        """A unit cannot use a curve built by a later unit."""
        units = [MultiCurveBundle([fwd_bundle()]), MultiCurveBundle([dsc_bundle()])]
        with pytest.raises(DependencyOrderError) as info:
            repository().make_curves_from_derivatives(
                units, CurveDataProvider(), DISCOUNTING, OVERNIGHT, IBOR, CALCULATOR, SENSITIVITY
            )
        assert info.value.unit == 0
        assert info.value.curve_name == "DSC"

    def test_existing_curve_order(self):
        """Spread base must be calibrated first."""
        generator = AddYieldExistingGenerator(YieldInterpolatedGenerator(), "FWD")
        units = [
            MultiCurveBundle([single_bundle("DSC", dsc_instruments(DSC_QUOTES), DSC_QUOTES, generator, DSC_IDS)]),
            MultiCurveBundle([fwd_bundle()]),
        ]
        with pytest.raises(DependencyOrderError):
            repository().make_curves_from_derivatives(
                units, CurveDataProvider(), DISCOUNTING, OVERNIGHT, IBOR, CALCULATOR, SENSITIVITY
            )

    def test_unmapped_currency(self):
        """Instruments need a mapped discounting curve."""
        with pytest.raises(DependencyOrderError):
            repository().make_curves_from_derivatives(
                [MultiCurveBundle([dsc_bundle()])], CurveDataProvider(), {}, OVERNIGHT, {},
                CALCULATOR, SENSITIVITY
            )

    def test_duplicate_curve_name(self):
        """A curve is built once."""
        units = [MultiCurveBundle([dsc_bundle()]), MultiCurveBundle([dsc_bundle()])]
        with pytest.raises(ConfigurationError):
            repository().make_curves_from_derivatives(
                units, CurveDataProvider(), DISCOUNTING, OVERNIGHT, {}, CALCULATOR, SENSITIVITY
            )

    def test_name_already_known(self):
        """Known curves cannot be rebuilt."""
        known = CurveDataProvider()
        known.set_curve("DSC", create_flat_curve("DSC", 0.03))
        with pytest.raises(ConfigurationError):
            repository().make_curves_from_derivatives(
                [MultiCurveBundle([dsc_bundle()])], known, DISCOUNTING, OVERNIGHT, {}, CALCULATOR, SENSITIVITY
            )

    def test_map_for_unknown_curve(self):
        """Map entries must name a curve."""
        with pytest.raises(ConfigurationError):
            repository().make_curves_from_derivatives(
                [MultiCurveBundle([dsc_bundle()])], CurveDataProvider(), {"DSC": "EUR", "USD-DSC": "USD"},
                OVERNIGHT, {}, CALCULATOR, SENSITIVITY
            )

    def test_convergence_failure(self):
        """Iteration limit raises with unit index and residuals."""
        known = CurveDataProvider()
        with pytest.raises(ConvergenceError) as info:
            CurveBuildingRepository(max_iterations=1).make_curves_from_derivatives(
                [MultiCurveBundle([dsc_bundle()])], known, DISCOUNTING, OVERNIGHT, {}, CALCULATOR, SENSITIVITY
            )
        assert info.value.unit == 0
        assert info.value.iterations == 1
        assert info.value.residuals.shape == (4,)
        assert known.curve_names == []

    def test_inconsistent_known_block(self, calibrated):
        """Known block names must not clash with new curves."""
        _, bundle = calibrated
        with pytest.raises(ConfigurationError):
            repository().make_curves_from_derivatives(
                [MultiCurveBundle([dsc_bundle()])], CurveDataProvider(), DISCOUNTING, OVERNIGHT, {},
                CALCULATOR, SENSITIVITY, known_block=bundle
            )

    def test_bundle_count_mismatch(self):
        """Instruments, start values and parameters must agree."""
        derivatives = dsc_instruments(DSC_QUOTES)
        bound = DiscountFactorInterpolatedGenerator().final_generator(derivatives)
        with pytest.raises(ConfigurationError):
            SingleCurveBundle("DSC", derivatives, np.ones(3), bound)
        with pytest.raises(ConfigurationError):
            SingleCurveBundle("DSC", derivatives, np.ones(4), DiscountFactorInterpolatedGenerator())

    def test_empty_unit(self):
        """Units hold at least one curve."""
        with pytest.raises(ConfigurationError):
            MultiCurveBundle([])

    def test_empty_known_block_is_fine(self):
        """An empty known block behaves like none."""
        provider, bundle = repository().make_curves_from_derivatives(
            [MultiCurveBundle([dsc_bundle()])], CurveDataProvider(), DISCOUNTING, OVERNIGHT, {},
            CALCULATOR, SENSITIVITY, known_block=CurveBuildingBlockBundle()
        )
        assert bundle.curve_names == ["DSC"]

    def test_known_block_row_count(self):
        """Known block rows must match the parameters of the known curve."""
        known, _ = repository().make_curves_from_derivatives(
            [MultiCurveBundle([dsc_bundle()])], CurveDataProvider(), DISCOUNTING, OVERNIGHT, {},
            CALCULATOR, SENSITIVITY
        )
        block = CurveBuildingBlock([("DSC", ("D1", "D2", "D3"))])
        known_block = CurveBuildingBlockBundle({"DSC": (block, np.eye(3))})
        with pytest.raises(BlockConsistencyError):
            repository().make_curves_from_derivatives(
                [MultiCurveBundle([fwd_bundle()])], known, {}, {}, IBOR,
                CALCULATOR, SENSITIVITY, known_block=known_block
            )


class TestDefinitions:
    """Calibration from dated instrument definitions."""

    VALUATION = date(2024, 1, 15)
    OIS_IDS = ["ON", "TN", "OIS1M", "OIS3M", "OIS6M", "OIS1Y", "OIS2Y", "OIS5Y"]

    @pytest.fixture(scope="class")
    def setup(self):
        deposit = DepositGenerator("EUR ON", "EUR", spot_lag=0)
        swaps = FixedOvernightSwapGenerator("EUR OIS", ESTR)
        definitions = [[[
            deposit.generate_instrument(self.VALUATION, 0.0050, 1.0, GeneratorAttribute("1D", "0D")),
            deposit.generate_instrument(self.VALUATION, 0.0050, 1.0, GeneratorAttribute("1D", "1D")),
        ] + [
            swaps.generate_instrument(self.VALUATION, quote, 1.0, GeneratorAttribute(tenor))
            for tenor, quote in (
                ("1M", 0.0051), ("3M", 0.0053), ("6M", 0.0056), ("1Y", 0.0060), ("2Y", 0.0068), ("5Y", 0.0080)
            )
        ]]]
        generators = [[DiscountFactorInterpolatedGenerator(anchor_time=0.0)]]
        names = [["EUR-OIS"]]
        ids = [[self.OIS_IDS]]
        return definitions, generators, names, ids

    def test_calibration(self, setup):
        """Curve reprices the generated instruments."""
        definitions, generators, names, ids = setup
        provider, bundle = make_curves_from_definitions(
            self.VALUATION, definitions, generators, names, CurveDataProvider(),
            CALCULATOR, SENSITIVITY, repository(),
            {"EUR-OIS": "EUR"}, {"EUR-OIS": [ESTR]}, {}, instrument_ids=ids
        )
        units = make_units(self.VALUATION, definitions, generators, names)
        assert max_residual(provider, units[0].derivatives) < 1e-9
        assert provider.discount_factor("EUR", 0.0) == 1.0
        frame = bundle.jacobian_frame("EUR-OIS")
        assert list(frame.columns.get_level_values("instrument")) == self.OIS_IDS
        assert frame.shape == (8, 8)

    def test_overnight_and_tom_next(self, setup):
        """ON starts today and TN tomorrow; both end before the first swap."""
        definitions, generators, names, _ = setup
        derivatives = make_units(self.VALUATION, definitions, generators, names)[0].derivatives
        overnight, tom_next, first_swap = derivatives[0], derivatives[1], derivatives[2]
        assert overnight.start_time == 0.0
        assert overnight.end_time == pytest.approx(tom_next.start_time)
        assert tom_next.end_time < first_swap.last_time

    def test_inflation_unit(self, setup):
        """Price index curve from generated swaps and a published start value."""
        definitions, generators, names, _ = setup
        swaps = ZeroCouponInflationSwapGenerator("EUR ZCIS", HICP)
        inflation = [[
            swaps.generate_instrument(self.VALUATION, quote, 1.0, GeneratorAttribute(tenor))
            for tenor, quote in (("1Y", 0.0220), ("2Y", 0.0225), ("5Y", 0.0230))
        ]]
        fixings = {HICP: pd.Series([117.6, 118.0], index=["2023-09-01", "2023-10-01"])}
        all_definitions = definitions + [inflation]
        all_generators = generators + [[PriceIndexGenerator(YieldInterpolatedGenerator(), 119.0)]]
        all_names = names + [["EUR-HICP"]]
        provider, bundle = make_curves_from_definitions(
            self.VALUATION, all_definitions, all_generators, all_names, CurveDataProvider(),
            CALCULATOR, SENSITIVITY, repository(),
            {"EUR-OIS": "EUR"}, {"EUR-OIS": [ESTR]}, {}, fixings=fixings,
            price_index_map={"EUR-HICP": [HICP]}
        )
        units = make_units(self.VALUATION, all_definitions, all_generators, all_names, fixings)
        assert all(d.index_start_value == 118.0 for d in units[1].derivatives)
        assert max_residual(provider, units[1].derivatives) < 1e-9
        assert provider.price_index(HICP, 0.0) == pytest.approx(119.0)
        assert bundle.get_block("EUR-HICP")[0].names == ["EUR-HICP"]

    def test_shape_mismatch(self, setup):
        """Nested inputs must line up."""
        definitions, generators, names, _ = setup
        with pytest.raises(ConfigurationError):
            make_units(self.VALUATION, definitions, generators, [["A", "B"]])
