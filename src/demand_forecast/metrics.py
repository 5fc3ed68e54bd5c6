import numpy as np
import pandas as pd


def percentage_errors(actual: pd.Series | np.ndarray, predicted: pd.Series | np.ndarray) -> np.ndarray:
    """Absolute percentage error per point; NaN where the actual is zero."""
    actual_arr = np.asarray(actual, dtype=float)
    predicted_arr = np.asarray(predicted, dtype=float)
    errors = np.full(actual_arr.shape, np.nan)
    non_zero = actual_arr != 0
    errors[non_zero] = (
        np.abs(actual_arr[non_zero] - predicted_arr[non_zero]) / np.abs(actual_arr[non_zero]) * 100
    )
    return errors


def mape(actual: pd.Series | np.ndarray, predicted: pd.Series | np.ndarray) -> float:
    errors = percentage_errors(actual, predicted)
    valid = errors[~np.isnan(errors)]
    if valid.size == 0:
        return 100.0
    return float(valid.mean())


def rmse(actual: pd.Series | np.ndarray, predicted: pd.Series | np.ndarray) -> float:
    actual_arr = np.asarray(actual, dtype=float)
    predicted_arr = np.asarray(predicted, dtype=float)
    if actual_arr.size == 0:
        return np.nan
    return float(np.sqrt(np.mean((actual_arr - predicted_arr) ** 2)))


def accuracy_from_mape(mape_value: float) -> float:
    return float(min(100.0, max(0.0, 100.0 - mape_value)))
