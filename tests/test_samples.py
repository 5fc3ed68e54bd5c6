import pandas as pd

from demand_forecast.data import DEFAULT_CATEGORIES
from demand_forecast.models import NumpyRandomSource, SequenceRandomSource
from demand_forecast.samples import generate_category_data, generate_historical_data, history_start


def test_history_start_counts_back_whole_years_and_months() -> None:
    assert history_start(24, pd.Timestamp("2024-06-15")) == pd.Timestamp("2022-06-01")
    assert history_start(14, pd.Timestamp("2024-03-31")) == pd.Timestamp("2023-01-01")


def test_generated_history_is_monthly_and_labelled() -> None:
    points = generate_historical_data(
        18, "Toys & Games", rng=NumpyRandomSource(1), today=pd.Timestamp("2024-01-20")
    )

    assert len(points) == 18
    assert [point.date for point in points] == list(
        pd.date_range("2022-07-01", periods=18, freq="MS")
    )
    assert all(point.category == "Toys & Games" for point in points)
    assert all(point.actual is not None and point.actual > 0 for point in points)
    assert all(point.forecast is None for point in points)


def test_generated_history_applies_holiday_peak() -> None:
    points = generate_historical_data(
        12, "Electronics", rng=SequenceRandomSource([0.5]), today=pd.Timestamp("2024-01-01")
    )
    by_month = {point.date.month: point.actual for point in points}

    assert by_month[12] > by_month[10]
    assert by_month[1] < by_month[12]


def test_generated_history_is_repeatable() -> None:
    today = pd.Timestamp("2024-01-01")

    first = generate_historical_data(12, rng=NumpyRandomSource(9), today=today)
    second = generate_historical_data(12, rng=NumpyRandomSource(9), today=today)

    assert first == second


def test_category_data_covers_defaults_with_shared_dates() -> None:
    categories = generate_category_data(24, rng=NumpyRandomSource(4), today=pd.Timestamp("2024-05-05"))

    assert [(category.name, category.color) for category in categories] == [
        (spec.name, spec.color) for spec in DEFAULT_CATEGORIES
    ]
    date_sets = {tuple(point.date for point in category.data) for category in categories}
    assert len(date_sets) == 1
    assert all(point.category == category.name for category in categories for point in category.data)
