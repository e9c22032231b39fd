from typing import Dict, Iterable, List

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_absolute_percentage_error, mean_squared_error


def _rsq(y_true, y_pred) -> float:
    # Squared Pearson correlation (yardstick's rsq), not the coefficient of determination.
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if y_true.size < 2 or np.std(y_true) == 0 or np.std(y_pred) == 0:
        return np.nan
    return float(np.corrcoef(y_true, y_pred)[0, 1] ** 2)


def _rmse(y_true, y_pred) -> float:
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def _mae(y_true, y_pred) -> float:
    return float(mean_absolute_error(y_true, y_pred))


def _mape(y_true, y_pred) -> float:
    return float(100.0 * mean_absolute_percentage_error(y_true, y_pred))


REGRESSION_METRICS = {
    "rmse": _rmse,
    "rsq": _rsq,
    "mae": _mae,
    "mape": _mape,
}

# Metrics where a smaller value is better; everything else is maximized.
MINIMIZE = {"rmse", "mae", "mape"}


def validate_metric_names(metrics: Iterable[str]) -> List[str]:
    metrics = list(metrics)
    unknown = [m for m in metrics if m not in REGRESSION_METRICS]
    if unknown:
        raise ValueError(f"Unknown metrics {unknown}; expected a subset of {sorted(REGRESSION_METRICS)}")
    if not metrics:
        raise ValueError("At least one metric is required")
    return metrics


def compute_regression_metrics(y_true, y_pred, metrics: Iterable[str] = ("rmse", "rsq", "mae")) -> Dict[str, float]:
    metrics = validate_metric_names(metrics)
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: y_true {y_true.shape} vs y_pred {y_pred.shape}")
    return {m: REGRESSION_METRICS[m](y_true, y_pred) for m in metrics}


def compare_models(rows: List[dict], metric: str) -> pd.DataFrame:
    """Rank one-row-per-model results by ``metric`` (best first) and add ``rank``."""

    validate_metric_names([metric])
    df = pd.DataFrame(rows)
    if df.empty:
        return df
    if metric not in df.columns:
        raise ValueError(f"Comparison rows do not contain metric {metric!r}")
    ascending = metric in MINIMIZE
    df = df.sort_values([metric, "model"], ascending=[ascending, True], kind="mergesort").reset_index(drop=True)
    df.insert(0, "rank", np.arange(1, len(df) + 1))
    return df
