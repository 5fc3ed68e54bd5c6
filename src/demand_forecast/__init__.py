"""Demand forecasting core: CSV import, monthly normalization, seasonal-trend projection, back-testing."""

from .backtest import AccuracyResult, BacktestConfig, BacktestFactors, BacktestResult, evaluate_accuracy, run_backtest
from .data import CategoryData, DataPoint, ParseResult, normalize_series, parse_csv, parse_csv_line
from .errors import EmptyResultError, ForecastDataError, FormatError, MissingColumnError
from .models import ForecastFactors, NumpyRandomSource, RandomSource, SequenceRandomSource, generate_forecast
from .pipeline import ForecastConfig, build_forecasts

__all__ = [
    "AccuracyResult",
    "BacktestConfig",
    "BacktestFactors",
    "BacktestResult",
    "CategoryData",
    "DataPoint",
    "EmptyResultError",
    "ForecastConfig",
    "ForecastDataError",
    "ForecastFactors",
    "FormatError",
    "MissingColumnError",
    "NumpyRandomSource",
    "ParseResult",
    "RandomSource",
    "SequenceRandomSource",
    "build_forecasts",
    "evaluate_accuracy",
    "generate_forecast",
    "normalize_series",
    "parse_csv",
    "parse_csv_line",
    "run_backtest",
]

__version__ = "0.1.0"
