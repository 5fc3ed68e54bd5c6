from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .data import DataPoint, round_half_up, to_timestamp
from .errors import EmptyResultError
from .metrics import accuracy_from_mape, mape, percentage_errors, rmse
from .models import NumpyRandomSource, RandomSource, uniform

LOG = logging.getLogger(__name__)

MAX_DEFAULT_PERIODS = 6


@dataclass(frozen=True)
class AccuracyResult:
    mape: float
    rmse: float
    accuracy: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class BacktestFactors:
    """Perturbations applied to the forecast, expressed as percentages."""

    seasonality: float = 10.0
    trend: float = 5.0
    noise: float = 5.0

    @classmethod
    def coerce(
        cls, factors: Union["BacktestFactors", Mapping[str, Optional[float]], None]
    ) -> "BacktestFactors":
        if factors is None:
            return cls()
        if isinstance(factors, cls):
            return factors
        defaults = cls()
        values = {}
        for name in ("seasonality", "trend", "noise"):
            value = factors.get(name)
            values[name] = getattr(defaults, name) if value is None else float(value)
        return cls(**values)


def _env_periods() -> int:
    return int(os.environ.get("DEMAND_FORECAST_TEST_PERIODS", str(MAX_DEFAULT_PERIODS)))


@dataclass
class BacktestConfig:
    periods: int = field(default_factory=_env_periods)
    factors: BacktestFactors = field(default_factory=BacktestFactors)


@dataclass
class BacktestResult:
    points: pd.DataFrame
    accuracy: AccuracyResult


def resolve_periods(requested: int, available: int) -> int:
    if requested <= 0 or requested > available:
        return min(available, MAX_DEFAULT_PERIODS)
    return requested


def synthesize_actual(forecast_value: float, factors: BacktestFactors, rng: RandomSource) -> float:
    seasonal_factor = 1 + uniform(rng, -1.0, 1.0) * (factors.seasonality / 100)
    trend_factor = 1 + factors.trend / 100
    noise_factor = 1 + uniform(rng, -1.0, 1.0) * (factors.noise / 100)
    return round_half_up(forecast_value * seasonal_factor * trend_factor * noise_factor)


def run_backtest(
    historical: Sequence[DataPoint],
    forecast: Iterable[DataPoint],
    config: BacktestConfig,
    rng: Optional[RandomSource] = None,
) -> BacktestResult:
    ordered = sorted(
        forecast,
        key=lambda point: to_timestamp(point.date) or pd.Timestamp.min,
    )
    if not ordered:
        raise EmptyResultError("No forecast points available for back-testing.")

    periods = resolve_periods(config.periods, len(ordered))
    window = ordered[:periods]
    rng = rng or NumpyRandomSource()
    LOG.info(
        "Back-testing %d forecast periods against %d historical points",
        periods,
        len(historical),
    )

    records: List[dict] = []
    for point in window:
        forecast_value = point.forecast or 0.0
        actual_value = synthesize_actual(forecast_value, config.factors, rng)
        records.append(
            {
                "date": point.date,
                "category": point.category,
                "forecast": forecast_value,
                "actual": actual_value,
                "absolute_error": abs(actual_value - forecast_value),
            }
        )

    frame = pd.DataFrame.from_records(records)
    frame["percentage_error"] = percentage_errors(frame["actual"], frame["forecast"])

    excluded = int(frame["percentage_error"].isna().sum())
    if excluded:
        LOG.warning(
            "Excluded %d zero-valued synthetic actuals from MAPE calculation.", excluded
        )

    mape_value = mape(frame["actual"], frame["forecast"])
    result = AccuracyResult(
        mape=mape_value,
        rmse=rmse(frame["actual"], frame["forecast"]),
        accuracy=accuracy_from_mape(mape_value),
    )
    return BacktestResult(points=frame, accuracy=result)


def evaluate_accuracy(
    historical: Sequence[DataPoint],
    forecast: Iterable[DataPoint],
    periods: int,
    factors: Union[BacktestFactors, Mapping[str, Optional[float]], None] = None,
    rng: Optional[RandomSource] = None,
) -> AccuracyResult:
    config = BacktestConfig(periods=periods, factors=BacktestFactors.coerce(factors))
    return run_backtest(historical, forecast, config, rng).accuracy
