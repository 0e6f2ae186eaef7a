#!/usr/bin/env python
"""
Curve Calibration Demo Script

This script demonstrates the two-curve EUR calibration workflow:
1. Load market quotes and build instrument definitions
2. Calibrate the OIS curve, then the Euribor 6M curve on top of it
3. Check that every instrument reprices at par
4. Show the Jacobian of the 6M curve to the market quotes
5. Compute the market quote sensitivities of a swap

Usage:
    python run_calibration_demo.py [--quotes QUOTES_CSV] [--output-dir OUTPUT_DIR]
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Dict, List

import pandas as pd

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from curvelib.curves import (
    CurveBuildingRepository,
    CurveDataProvider,
    CalibrationSettings,
    DiscountFactorInterpolatedGenerator,
    YieldInterpolatedGenerator,
    make_curves_from_definitions,
    make_units,
)
from curvelib.dates import time_between
from curvelib.exceptions import CurveLibError
from curvelib.instruments import (
    DepositGenerator,
    FixedIborSwapGenerator,
    FixedOvernightSwapGenerator,
    FRAGenerator,
    GeneratorAttribute,
    IborIndex,
    OvernightIndex,
)
from curvelib.pricing import (
    MarketQuoteSensitivityCalculator,
    ParSpreadMarketQuoteCalculator,
    ParSpreadMarketQuoteCurveSensitivityCalculator,
    PresentValueCalculator,
    PresentValueCurveSensitivityCalculator,
)

logger = logging.getLogger("curvelib.demo")

ESTR = OvernightIndex.estr()
EURIBOR6M = IborIndex.euribor_6m()

OIS_CURVE = "EUR-OIS"
FORWARD_CURVE = "EUR-EURIBOR6M"

INSTRUMENT_GENERATORS = {
    "deposit": DepositGenerator("EUR ON", "EUR", spot_lag=0),
    "ois": FixedOvernightSwapGenerator("EUR OIS", ESTR),
    "fra": FRAGenerator(EURIBOR6M),
    "irs": FixedIborSwapGenerator("EUR 6M", EURIBOR6M),
}


def load_quotes(path: Path) -> pd.DataFrame:
    """Load market quotes from CSV."""
    quotes = pd.read_csv(path, comment="#")
    return quotes.fillna({"start_tenor": "0D"})


def build_definitions(quotes: pd.DataFrame, valuation_date: date, curve_names: List[str]) -> Dict[str, list]:
    """Instrument definitions and ids per curve, in quote order."""
    result = {}
    for name in curve_names:
        rows = quotes[quotes["curve"] == name]
        definitions = []
        for row in rows.itertuples(index=False):
            generator = INSTRUMENT_GENERATORS[row.type]
            attribute = GeneratorAttribute(row.tenor, row.start_tenor)
            definitions.append(generator.generate_instrument(valuation_date, float(row.quote), 1.0, attribute))
            print(f"  {name:>14s} {row.instrument_id:>8s} @ {row.quote*100:.3f}%")
        result[name] = (definitions, list(rows["instrument_id"]))
    return result


def calibrate(quotes: pd.DataFrame, valuation_date: date, interpolation: str):
    """Calibrate the OIS curve then the 6M curve, one unit each."""
    print("\n" + "="*60)
    print("Calibrating EUR curves")
    print("="*60)

    names = [[OIS_CURVE], [FORWARD_CURVE]]
    by_curve = build_definitions(quotes, valuation_date, [OIS_CURVE, FORWARD_CURVE])
    definitions = [[by_curve[OIS_CURVE][0]], [by_curve[FORWARD_CURVE][0]]]
    instrument_ids = [[by_curve[OIS_CURVE][1]], [by_curve[FORWARD_CURVE][1]]]
    generators = [
        [DiscountFactorInterpolatedGenerator(interpolation=interpolation, anchor_time=0.0)],
        [YieldInterpolatedGenerator(interpolation=interpolation)],
    ]

    provider, bundle = make_curves_from_definitions(
        valuation_date,
        definitions,
        generators,
        names,
        CurveDataProvider(),
        ParSpreadMarketQuoteCalculator(),
        ParSpreadMarketQuoteCurveSensitivityCalculator(),
        CurveBuildingRepository(settings=CalibrationSettings.strict()),
        discounting_map={OIS_CURVE: "EUR"},
        overnight_map={OIS_CURVE: [ESTR]},
        ibor_map={FORWARD_CURVE: [EURIBOR6M]},
        instrument_ids=instrument_ids,
    )
    units = make_units(valuation_date, definitions, generators, names, instrument_ids=instrument_ids)
    return provider, bundle, units


def check_par(provider: CurveDataProvider, units) -> pd.DataFrame:
    """Par spread of every calibration instrument (zero at calibration)."""
    calculator = ParSpreadMarketQuoteCalculator()
    rows = []
    for unit in units:
        for single in unit:
            for instrument_id, derivative in zip(single.instrument_ids, single.derivatives):
                rows.append({
                    "curve": single.curve_name,
                    "instrument": instrument_id,
                    "par_spread": calculator(derivative, provider),
                })
    return pd.DataFrame(rows)


def zero_rates(provider: CurveDataProvider, times: List[float]) -> pd.DataFrame:
    """Zero rates of the calibrated curves on a time grid."""
    return pd.DataFrame(
        {name: [provider.get_curve(name).zero_rate(t) for t in times] for name in provider.curve_names},
        index=pd.Index(times, name="time"),
    )


def swap_sensitivity(provider, bundle, valuation_date: date, tenor: str, rate: float) -> pd.Series:
    """PV sensitivity of a receiver swap to the calibration quotes, per basis point."""
    definition = INSTRUMENT_GENERATORS["irs"].generate_instrument(
        valuation_date, rate, 10_000_000.0, GeneratorAttribute(tenor)
    )
    swap = definition.to_derivative(valuation_date)
    pv = PresentValueCalculator()(swap, provider)
    print(f"\n{tenor} swap @ {rate*100:.3f}%, maturity {time_between(valuation_date, definition.maturity_date):.2f}Y")
    print(f"  PV: {pv:,.2f}")

    calculator = MarketQuoteSensitivityCalculator(bundle)
    sensitivity = calculator.from_curve_sensitivity(
        PresentValueCurveSensitivityCalculator()(swap, provider), provider
    )
    return calculator.to_series(sensitivity) * 1e-4


def main(argv=None):
    parser = argparse.ArgumentParser(description="Two-curve EUR calibration demo")
    parser.add_argument(
        "--quotes",
        type=Path,
        default=Path(__file__).parent.parent / "data" / "sample_quotes" / "eur_quotes.csv",
        help="Market quotes CSV"
    )
    parser.add_argument("--valuation-date", type=date.fromisoformat, default=date(2024, 1, 15))
    parser.add_argument("--interpolation", default="linear", choices=["linear", "cubic_spline"])
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for CSV exports")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    print(f"Valuation date: {args.valuation_date}")
    quotes = load_quotes(args.quotes)
    try:
        provider, bundle, units = calibrate(quotes, args.valuation_date, args.interpolation)
    except CurveLibError as exc:
        logger.error("Calibration failed: %s", exc)
        return 1

    par = check_par(provider, units)
    print("\nPar spreads after calibration:")
    print(par.to_string(index=False, float_format=lambda x: f"{x:.2e}"))

    rates = zero_rates(provider, [0.25, 0.5, 1.0, 2.0, 3.0, 5.0, 7.0, 10.0])
    print("\nZero rates (%):")
    print((rates * 100).to_string(float_format=lambda x: f"{x:.4f}"))

    jacobian = bundle.jacobian_frame(FORWARD_CURVE)
    print(f"\nJacobian of {FORWARD_CURVE} to market quotes:")
    print(jacobian.to_string(float_format=lambda x: f"{x:.4f}"))

    sensitivity = swap_sensitivity(provider, bundle, args.valuation_date, "7Y", 0.031)
    print("\nMarket quote sensitivity (PV per bp):")
    print(sensitivity.to_string(float_format=lambda x: f"{x:,.2f}"))

    if args.output_dir is not None:
        args.output_dir.mkdir(parents=True, exist_ok=True)
        par.to_csv(args.output_dir / "par_spreads.csv", index=False)
        rates.to_csv(args.output_dir / "zero_rates.csv")
        jacobian.to_csv(args.output_dir / "jacobian_forward.csv")
        sensitivity.to_csv(args.output_dir / "quote_sensitivity.csv")
        print(f"\nReports written to {args.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
