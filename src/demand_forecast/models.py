from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Mapping, Optional, Protocol, Sequence, Union

import numpy as np
import pandas as pd
from dateutil.relativedelta import relativedelta

from .data import DataPoint, month_start, round_half_up, to_timestamp

LOG = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12
NEUTRAL_MONTH_VALUE = 1000.0
DEFAULT_BASE_VALUE = 1000.0
SEASONALITY_GAIN = 3.0
BASE_WINDOW = 3
MIN_GROWTH_RATE = 0.9
MAX_GROWTH_RATE = 1.1

# Jan-Feb low, Jun-Aug lifted, Nov-Dec peak.
FALLBACK_SEASONAL_INDEX: Sequence[float] = (
    0.8, 0.8, 1.0, 1.0, 1.0, 1.1, 1.1, 1.1, 1.0, 1.0, 1.3, 1.3,
)


class RandomSource(Protocol):
    def next_float(self) -> float:
        ...


class NumpyRandomSource:
    def __init__(self, seed: Optional[int] = None) -> None:
        self._generator = np.random.default_rng(seed)

    def next_float(self) -> float:
        return float(self._generator.random())


class SequenceRandomSource:
    def __init__(self, values: Iterable[float]) -> None:
        self._values = tuple(float(value) for value in values)
        if not self._values:
            raise ValueError("SequenceRandomSource requires at least one value.")
        if any(value < 0.0 or value >= 1.0 for value in self._values):
            raise ValueError("SequenceRandomSource values must lie in [0, 1).")
        self._position = 0

    def next_float(self) -> float:
        value = self._values[self._position % len(self._values)]
        self._position += 1
        return value


def uniform(rng: RandomSource, low: float, high: float) -> float:
    return low + rng.next_float() * (high - low)


@dataclass(frozen=True)
class ForecastFactors:
    seasonality: float = 0.2
    trend: float = 0.05
    noise: float = 0.1

    @classmethod
    def coerce(
        cls, factors: Union["ForecastFactors", Mapping[str, Optional[float]], None]
    ) -> "ForecastFactors":
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


def seasonal_index(history: Sequence[DataPoint]) -> np.ndarray:
    # Short histories fall back to a canned retail profile.
    if len(history) < MONTHS_PER_YEAR:
        return np.asarray(FALLBACK_SEASONAL_INDEX, dtype=float)

    frame = pd.DataFrame(
        {
            "month": [point.date.month - 1 for point in history],
            "actual": [point.actual or 0.0 for point in history],
        }
    )
    means = (
        frame.groupby("month")["actual"]
        .mean()
        .reindex(range(MONTHS_PER_YEAR), fill_value=NEUTRAL_MONTH_VALUE)
    )
    average = float(means.mean())
    if average == 0 or np.isnan(average):
        return np.ones(MONTHS_PER_YEAR, dtype=float)
    return (means / average).to_numpy(dtype=float)


def amplify_seasonality(index: np.ndarray, seasonality: float) -> np.ndarray:
    return 1.0 + (np.asarray(index, dtype=float) - 1.0) * (1.0 + seasonality * SEASONALITY_GAIN)


def growth_rate(trend: float) -> float:
    return float(np.clip(1.0 + trend * 0.01, MIN_GROWTH_RATE, MAX_GROWTH_RATE))


class SeasonalTrendForecaster:
    def __init__(self, factors: Optional[ForecastFactors] = None) -> None:
        self.factors = factors or ForecastFactors()
        self.index = np.asarray(FALLBACK_SEASONAL_INDEX, dtype=float)
        self.base_value = DEFAULT_BASE_VALUE
        self.growth = growth_rate(self.factors.trend)
        self.anchor: Optional[pd.Timestamp] = None
        self.category: Optional[str] = None
        self.fitted = False

    def fit(self, history: Iterable[DataPoint]) -> "SeasonalTrendForecaster":
        dated = []
        for point in history:
            timestamp = to_timestamp(point.date)
            if timestamp is not None:
                dated.append(replace(point, date=timestamp))
        dated.sort(key=lambda point: point.date)

        if not dated:
            self.fitted = False
            return self

        self.index = amplify_seasonality(seasonal_index(dated), self.factors.seasonality)

        recent = [point.actual or 0.0 for point in dated[-BASE_WINDOW:]]
        base = float(np.mean(recent))
        self.base_value = base if base and not np.isnan(base) else DEFAULT_BASE_VALUE

        self.anchor = month_start(dated[-1].date)
        self.category = dated[0].category
        self.fitted = True
        LOG.debug(
            "Fitted seasonal-trend model: base=%.2f growth=%.4f factors=%s",
            self.base_value,
            self.growth,
            self.factors,
        )
        return self

    def forecast(self, horizon: int, rng: Optional[RandomSource] = None) -> List[DataPoint]:
        if not self.fitted or self.anchor is None or horizon <= 0:
            return []
        rng = rng or NumpyRandomSource()
        noise = self.factors.noise

        points: List[DataPoint] = []
        for step in range(horizon):
            forecast_date = self.anchor + relativedelta(months=step + 1)
            seasonality = self.index[forecast_date.month - 1]
            trend = self.growth**step
            jitter = (1.0 - noise) + rng.next_float() * (noise * 2)
            value = round_half_up(self.base_value * seasonality * trend * jitter)
            points.append(
                DataPoint(date=forecast_date, actual=None, forecast=value, category=self.category)
            )
        return points


def generate_forecast(
    historical: Iterable[DataPoint],
    horizon: int,
    factors: Union[ForecastFactors, Mapping[str, Optional[float]], None] = None,
    rng: Optional[RandomSource] = None,
) -> List[DataPoint]:
    """Project ``horizon`` monthly points beyond the last historical month."""
    model = SeasonalTrendForecaster(ForecastFactors.coerce(factors)).fit(historical)
    if not model.fitted:
        LOG.warning("No historical data provided to generate_forecast")
        return []
    return model.forecast(horizon, rng)
