from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import pandas as pd

from .data import DEFAULT_CATEGORIES, CategoryData, DataPoint, month_start, round_half_up
from .models import NumpyRandomSource, RandomSource, uniform

# (low, high) starting level per category.
BASE_RANGES: Dict[str, Tuple[float, float]] = {
    "Electronics": (1500.0, 2000.0),
    "Clothing": (1200.0, 1600.0),
    "Home & Kitchen": (900.0, 1200.0),
    "Toys & Games": (600.0, 900.0),
    "Beauty": (800.0, 1000.0),
}
DEFAULT_BASE_RANGE: Tuple[float, float] = (1000.0, 1500.0)

HOLIDAY_MONTHS = (10, 11)
WINTER_MONTHS = (0, 1)
SUMMER_MONTHS = (5, 6, 7)


def _seasonality(month: int, category: Optional[str], rng: RandomSource) -> float:
    if category == "Toys & Games":
        if month in HOLIDAY_MONTHS:
            return uniform(rng, 1.8, 2.2)
        if month in WINTER_MONTHS:
            return uniform(rng, 0.6, 0.7)
    elif category == "Clothing":
        if month in HOLIDAY_MONTHS:
            return uniform(rng, 1.4, 1.6)
        if month in SUMMER_MONTHS:
            return uniform(rng, 1.3, 1.5)
        if month in WINTER_MONTHS:
            return uniform(rng, 0.7, 0.8)
    else:
        if month in HOLIDAY_MONTHS:
            return uniform(rng, 1.3, 1.5)
        if month in WINTER_MONTHS:
            return uniform(rng, 0.8, 0.9)
        if month in SUMMER_MONTHS:
            return uniform(rng, 1.1, 1.2)
    return 1.0


def history_start(months: int, today: Optional[pd.Timestamp] = None) -> pd.Timestamp:
    anchor = month_start(pd.Timestamp(today) if today is not None else pd.Timestamp.now())
    return anchor - pd.DateOffset(years=months // 12, months=months % 12)


def generate_historical_data(
    months: int,
    category: Optional[str] = None,
    rng: Optional[RandomSource] = None,
    today: Optional[pd.Timestamp] = None,
) -> List[DataPoint]:
    rng = rng or NumpyRandomSource()
    start = history_start(months, today)
    base_value = uniform(rng, *BASE_RANGES.get(category or "", DEFAULT_BASE_RANGE))

    points: List[DataPoint] = []
    for step in range(months):
        date = start + pd.DateOffset(months=step)
        seasonality = _seasonality(date.month - 1, category, rng)
        trend = 1 + step * 0.01
        noise = uniform(rng, 0.9, 1.1)
        value = round_half_up(base_value * seasonality * trend * noise)
        points.append(DataPoint(date=date, actual=value, forecast=None, category=category))
        base_value = base_value * 0.8 + value * 0.2
    return points


def generate_category_data(
    months: int,
    rng: Optional[RandomSource] = None,
    today: Optional[pd.Timestamp] = None,
) -> List[CategoryData]:
    rng = rng or NumpyRandomSource()
    today = pd.Timestamp(today) if today is not None else pd.Timestamp.now()
    return [
        CategoryData(
            name=spec.name,
            color=spec.color,
            data=generate_historical_data(months, spec.name, rng=rng, today=today),
        )
        for spec in DEFAULT_CATEGORIES
    ]
