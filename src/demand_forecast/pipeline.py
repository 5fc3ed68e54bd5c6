from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from .data import DataPoint, normalize_series, points_to_frame, to_timestamp
from .models import ForecastFactors, NumpyRandomSource, RandomSource, generate_forecast

LOG = logging.getLogger(__name__)

EXPORT_COLUMNS = ["date", "category", "actual", "forecast"]


def _env_horizon() -> int:
    return int(os.environ.get("DEMAND_FORECAST_HORIZON", "12"))


def _env_seed() -> Optional[int]:
    raw = os.environ.get("DEMAND_FORECAST_SEED")
    return int(raw) if raw else None


@dataclass
class ForecastConfig:
    horizon: int = field(default_factory=_env_horizon)
    factors: ForecastFactors = field(default_factory=ForecastFactors)
    seed: Optional[int] = field(default_factory=_env_seed)

    def random_source(self) -> RandomSource:
        return NumpyRandomSource(self.seed)


def filter_category(points: Iterable[DataPoint], category: Optional[str]) -> List[DataPoint]:
    if category is None:
        return list(points)
    return [point for point in points if point.category == category]


def build_forecasts(
    points: Iterable[DataPoint],
    config: ForecastConfig,
    rng: Optional[RandomSource] = None,
) -> List[DataPoint]:
    """Normalize and forecast every category sub-series independently."""
    rng = rng or config.random_source()
    groups: Dict[Optional[str], List[DataPoint]] = {}
    for point in points:
        groups.setdefault(point.category, []).append(point)

    forecasts: List[DataPoint] = []
    for category, group in groups.items():
        history = normalize_series(group)
        if not history:
            LOG.warning("No usable history for category %s; skipping forecast.", category)
            continue
        forecasts.extend(generate_forecast(history, config.horizon, config.factors, rng))
    return forecasts


def export_frame(historical: Iterable[DataPoint], forecast: Iterable[DataPoint]) -> pd.DataFrame:
    """Combined history and forecast table in the downloadable CSV layout."""
    frames = [
        points_to_frame(historical).assign(forecast=np.nan),
        points_to_frame(forecast).assign(actual=np.nan),
    ]
    frames = [frame.astype({"actual": float, "forecast": float}) for frame in frames if not frame.empty]
    if not frames:
        return pd.DataFrame(columns=EXPORT_COLUMNS)

    combined = pd.concat(frames, ignore_index=True)
    combined["date"] = pd.to_datetime(combined["date"]).dt.strftime("%Y-%m-%d")
    combined["category"] = combined["category"].fillna("N/A")
    return combined[EXPORT_COLUMNS]


def prepare_model_input(points: Iterable[DataPoint]) -> List[dict]:
    ordered = sorted(points, key=lambda point: to_timestamp(point.date) or pd.Timestamp.min)
    return [
        {
            "timestamp": pd.Timestamp(point.date).isoformat(),
            "target": point.actual or 0,
            "category": point.category or "default",
        }
        for point in ordered
    ]
