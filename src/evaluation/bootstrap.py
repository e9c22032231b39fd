"""Percentile bootstrap intervals for held-out regression metrics.

Test-set rows are resampled with replacement (one row index matrix per call) and every
metric is recomputed on each resample; the interval is the empirical alpha/2 and
1 - alpha/2 quantiles of those draws.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from src.evaluation.metrics import compute_regression_metrics, validate_metric_names


def bootstrap_metric_draws(
    *,
    y_true: np.ndarray,
    y_pred: np.ndarray,
    n_boot: int,
    seed: int,
    metrics: Iterable[str] = ("rmse", "rsq", "mae"),
) -> pd.DataFrame:
    """One row per resample (``iter``) with a column per metric."""

    metrics = validate_metric_names(metrics)
    y = np.asarray(y_true, dtype=float)
    p = np.asarray(y_pred, dtype=float)
    if n_boot <= 0 or y.size == 0:
        return pd.DataFrame(columns=["iter", *metrics])

    resamples = np.random.default_rng(seed).integers(0, y.size, size=(n_boot, y.size))
    draws = pd.DataFrame([compute_regression_metrics(y[rows], p[rows], metrics) for rows in resamples])
    draws.insert(0, "iter", np.arange(n_boot))
    return draws


def summarize_bootstrap_ci(
    draws: pd.DataFrame,
    *,
    alpha: float = 0.05,
    metrics: Iterable[str] = ("rmse", "rsq", "mae"),
) -> pd.DataFrame:
    """Tidy interval table: ``metric``, ``lower``, ``upper``, ``n_draws``.

    Undefined draws (e.g. rsq on a constant resample) are ignored; a metric with no
    usable draws gets NaN bounds.
    """

    if not 0.0 < alpha < 1.0:
        raise ValueError(f"alpha must be in (0, 1); got {alpha}")
    rows = []
    for m in metrics:
        vals = pd.to_numeric(draws[m], errors="coerce").dropna() if m in draws.columns else pd.Series(dtype=float)
        lower, upper = (vals.quantile([alpha / 2.0, 1.0 - alpha / 2.0]).tolist() if len(vals) else (np.nan, np.nan))
        rows.append({"metric": m, "lower": float(lower), "upper": float(upper), "n_draws": int(len(vals))})
    return pd.DataFrame(rows, columns=["metric", "lower", "upper", "n_draws"])
