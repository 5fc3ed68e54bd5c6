from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .backtest import BacktestConfig, BacktestFactors, BacktestResult, run_backtest
from .data import DataPoint, parse_csv
from .models import ForecastFactors
from .pipeline import ForecastConfig, build_forecasts, export_frame, filter_category
from .samples import generate_category_data


def summarize_backtest(result: BacktestResult) -> str:
    accuracy = result.accuracy
    lines = [
        "Back-test accuracy:",
        f"  MAPE:     {accuracy.mape:.2f}%",
        f"  RMSE:     {accuracy.rmse:.2f}",
        f"  Accuracy: {accuracy.accuracy:.2f}%",
        "",
        "Test window:",
        result.points.to_string(index=False, float_format=lambda x: f"{x:.2f}"),
    ]
    return "\n".join(lines)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Monthly demand forecasting with seasonal-trend projection and synthetic back-testing.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--input",
        type=Path,
        help="Path to a sales CSV (columns: date, value/sales, optional category).",
    )
    source.add_argument(
        "--sample-months",
        type=int,
        help="Generate this many months of synthetic history per default category instead of reading a file.",
    )
    parser.add_argument(
        "--category",
        type=str,
        help="Restrict history and forecasts to a single category (optional).",
    )
    parser.add_argument(
        "--horizon",
        type=int,
        default=None,
        help="Number of future months to forecast (default: 12 or $DEMAND_FORECAST_HORIZON).",
    )
    parser.add_argument("--seasonality", type=float, default=0.2, help="Seasonality strength (default: 0.2).")
    parser.add_argument("--trend", type=float, default=0.05, help="Trend strength (default: 0.05).")
    parser.add_argument("--noise", type=float, default=0.1, help="Forecast noise (default: 0.1).")
    parser.add_argument(
        "--test-periods",
        type=int,
        default=None,
        help="Forecast months to back-test (default: 6 or $DEMAND_FORECAST_TEST_PERIODS).",
    )
    parser.add_argument("--test-seasonality", type=float, default=10.0, help="Back-test seasonal variation in percent.")
    parser.add_argument("--test-trend", type=float, default=5.0, help="Back-test trend shift in percent.")
    parser.add_argument("--test-noise", type=float, default=5.0, help="Back-test noise in percent.")
    parser.add_argument("--seed", type=int, help="Seed for repeatable noise (default: $DEMAND_FORECAST_SEED).")
    parser.add_argument(
        "--forecast-output",
        type=Path,
        help="Optional path to write history and forecasts as CSV.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def load_history(args: argparse.Namespace, config: ForecastConfig) -> List[DataPoint]:
    if args.input is not None:
        result = parse_csv(args.input.read_text(encoding="utf-8"))
        result.raise_for_error()
        return result.data
    categories = generate_category_data(args.sample_months, rng=config.random_source())
    return [point for category in categories for point in category.data]


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_argument_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    forecast_cfg = ForecastConfig(
        factors=ForecastFactors(seasonality=args.seasonality, trend=args.trend, noise=args.noise),
    )
    if args.horizon is not None:
        forecast_cfg.horizon = args.horizon
    if args.seed is not None:
        forecast_cfg.seed = args.seed

    history = filter_category(load_history(args, forecast_cfg), args.category)
    if not history:
        raise ValueError(f"No historical data available for category: {args.category}")

    rng = forecast_cfg.random_source()
    forecasts = build_forecasts(history, forecast_cfg, rng)
    if not forecasts:
        print("No forecasts generated. Insufficient data? Check inputs.")
        return

    print("Generated forecasts (first 12 rows):")
    print(export_frame([], forecasts).head(12).to_string(index=False))

    backtest_cfg = BacktestConfig(
        factors=BacktestFactors(
            seasonality=args.test_seasonality,
            trend=args.test_trend,
            noise=args.test_noise,
        ),
    )
    if args.test_periods is not None:
        backtest_cfg.periods = args.test_periods
    backtest_result = run_backtest(history, forecasts, backtest_cfg, rng)
    print()
    print(summarize_backtest(backtest_result))

    if args.forecast_output:
        export_frame(history, forecasts).to_csv(args.forecast_output, index=False)
        print(f"\nSaved forecasts to {args.forecast_output}")


if __name__ == "__main__":
    main()
