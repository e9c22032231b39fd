"""Resampling and random hyperparameter search for a preprocessing + model workflow.

The heavy lifting is scikit-learn's: ``cross_validate`` for fixed workflows and
``RandomizedSearchCV`` for tunable ones, run under joblib's ``parallel_backend`` so the
fits spread over ``n_jobs`` workers. This module turns their raw output into tidy
tables (one row per candidate x metric) and implements the selection rules.

Error metrics (rmse, mae, mape) are reported on their natural positive scale even
though scikit-learn maximizes negated scores internally.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import parallel_backend
from sklearn.base import clone
from sklearn.metrics import make_scorer
from sklearn.model_selection import RandomizedSearchCV, cross_validate
from sklearn.pipeline import Pipeline

from src.evaluation.metrics import MINIMIZE, REGRESSION_METRICS, compute_regression_metrics, validate_metric_names
from src.utils.logging import get_logger

logger = get_logger("tuning")

MODEL_STEP = "model"
SUMMARY_COLS = ["config", "metric", "mean", "n", "std_err"]


@dataclass
class TuningResult:
    collected: pd.DataFrame
    best_params: Dict[str, Any]
    search: Optional[RandomizedSearchCV] = None


@dataclass
class LastFit:
    workflow: Pipeline
    predictions: np.ndarray
    metrics: Dict[str, float]


def build_scorers(metrics: Iterable[str]) -> Dict[str, Any]:
    return {
        m: make_scorer(REGRESSION_METRICS[m], greater_is_better=m not in MINIMIZE)
        for m in validate_metric_names(metrics)
    }


def _to_python(value):
    return value.item() if isinstance(value, np.generic) else value


def _strip_step(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k.split("__", 1)[-1]: _to_python(v) for k, v in params.items()}


def _with_step(params: Dict[str, Any]) -> Dict[str, Any]:
    return {f"{MODEL_STEP}__{k}": v for k, v in params.items()}


def _summarize(values: np.ndarray) -> Tuple[float, int, float]:
    vals = np.asarray(values, dtype=float)
    vals = vals[~np.isnan(vals)]
    n = int(vals.size)
    if n == 0:
        return np.nan, 0, np.nan
    std_err = float(np.std(vals, ddof=1) / np.sqrt(n)) if n > 1 else np.nan
    return float(vals.mean()), n, std_err


def resample_metrics(
    workflow: Pipeline,
    X: pd.DataFrame,
    y: pd.Series,
    *,
    folds,
    metrics: Sequence[str],
    n_jobs: int = 1,
) -> pd.DataFrame:
    """Fit ``workflow`` on each analysis set and score its assessment set; one row per fold."""

    metrics = validate_metric_names(metrics)
    with parallel_backend("loky", n_jobs=n_jobs):
        scores = cross_validate(clone(workflow), X, y, cv=folds, scoring=build_scorers(metrics), error_score="raise")

    n_folds = len(scores["fit_time"])
    out = pd.DataFrame({"fold": np.arange(1, n_folds + 1)})
    for m in metrics:
        sign = -1.0 if m in MINIMIZE else 1.0
        out[m] = sign * np.asarray(scores[f"test_{m}"], dtype=float)
    return out


def summarize_resamples(fold_df: pd.DataFrame, metrics: Sequence[str], config: str = "Model01") -> pd.DataFrame:
    rows = []
    for m in metrics:
        mean, n, std_err = _summarize(fold_df[m].to_numpy())
        rows.append({"config": config, "metric": m, "mean": mean, "n": n, "std_err": std_err})
    return pd.DataFrame(rows, columns=SUMMARY_COLS)


def collect_metrics(cv_results: Dict[str, Any], metrics: Sequence[str]) -> pd.DataFrame:
    """Tidy ``cv_results_``: one row per candidate x metric with its hyperparameters."""

    rows: List[dict] = []
    for m in metrics:
        split_keys = sorted(
            (k for k in cv_results if re.fullmatch(rf"split\d+_test_{m}", k)),
            key=lambda k: int(re.match(r"split(\d+)_", k).group(1)),
        )
        if not split_keys:
            raise ValueError(f"cv_results has no per-split scores for metric {m!r}")
        sign = -1.0 if m in MINIMIZE else 1.0
        splits = sign * np.column_stack([np.asarray(cv_results[k], dtype=float) for k in split_keys])
        for i, params in enumerate(cv_results["params"]):
            mean, n, std_err = _summarize(splits[i])
            rows.append(
                {
                    "config": f"Model{i + 1:02d}",
                    **_strip_step(params),
                    "metric": m,
                    "mean": mean,
                    "n": n,
                    "std_err": std_err,
                }
            )
    return pd.DataFrame(rows)


def param_columns(collected: pd.DataFrame) -> List[str]:
    return [c for c in collected.columns if c not in SUMMARY_COLS]


def show_best(collected: pd.DataFrame, metric: str, n: int = 5) -> pd.DataFrame:
    validate_metric_names([metric])
    subset = collected.loc[collected["metric"] == metric]
    if subset.empty:
        raise ValueError(f"No results collected for metric {metric!r}")
    ascending = metric in MINIMIZE
    ranked = subset.sort_values(["mean", "config"], ascending=[ascending, True], na_position="last", kind="mergesort")
    return ranked.head(n).reset_index(drop=True)


def _row_params(row: pd.Series, cols: Sequence[str]) -> Dict[str, Any]:
    return {c: _to_python(row[c]) for c in cols if not pd.isna(row[c])}


def select_best(collected: pd.DataFrame, metric: str) -> Dict[str, Any]:
    best = show_best(collected, metric, n=1).iloc[0]
    return _row_params(best, param_columns(collected))


def select_by_one_std_err(
    collected: pd.DataFrame, metric: str, simplest_first: Sequence[Tuple[str, bool]] = ()
) -> Dict[str, Any]:
    """Simplest candidate whose mean is within one standard error of the best.

    ``simplest_first`` holds ``(param, ascending)`` pairs that sort candidates from least
    to most complex. Without it (or without a usable standard error) this is
    ``select_best``.
    """

    cols = param_columns(collected)
    order = [(p, asc) for p, asc in simplest_first if p in cols]
    best = show_best(collected, metric, n=1).iloc[0]
    if not order or pd.isna(best["std_err"]):
        return _row_params(best, cols)

    subset = collected.loc[(collected["metric"] == metric) & collected["mean"].notna()]
    if metric in MINIMIZE:
        within = subset.loc[subset["mean"] <= best["mean"] + best["std_err"]]
    else:
        within = subset.loc[subset["mean"] >= best["mean"] - best["std_err"]]

    ranked = within.sort_values([p for p, _ in order], ascending=[a for _, a in order], kind="mergesort")
    return _row_params(ranked.iloc[0], cols)


def tune_random_search(
    workflow: Pipeline,
    param_distributions: Dict[str, Any],
    X: pd.DataFrame,
    y: pd.Series,
    *,
    folds,
    grid_size: int,
    metrics: Sequence[str],
    selection_metric: str,
    seed: int,
    n_jobs: int = 1,
) -> TuningResult:
    """Random search over ``param_distributions`` scored by k-fold CV.

    A workflow without tunable parameters is only resampled; its collected metrics then
    hold a single candidate and ``best_params`` is empty.
    """

    metrics = validate_metric_names(metrics)
    if selection_metric not in metrics:
        raise ValueError(f"selection metric {selection_metric!r} must be one of the computed metrics {metrics}")
    if grid_size < 1:
        raise ValueError("grid_size must be >= 1")

    if not param_distributions:
        logger.info("No tunable parameters; resampling fixed workflow over %s folds", folds.get_n_splits())
        fold_df = resample_metrics(workflow, X, y, folds=folds, metrics=metrics, n_jobs=n_jobs)
        return TuningResult(collected=summarize_resamples(fold_df, metrics), best_params={})

    search = RandomizedSearchCV(
        estimator=clone(workflow),
        param_distributions=_with_step(param_distributions),
        n_iter=grid_size,
        scoring=build_scorers(metrics),
        refit=False,
        cv=folds,
        random_state=seed,
        error_score="raise",
    )
    logger.info("Random search: %s candidates x %s folds (n_jobs=%s)", grid_size, folds.get_n_splits(), n_jobs)
    with parallel_backend("loky", n_jobs=n_jobs):
        search.fit(X, y)

    collected = collect_metrics(search.cv_results_, metrics)
    best = select_best(collected, selection_metric)
    logger.info("Best %s candidate: %s", selection_metric, best)
    return TuningResult(collected=collected, best_params=best, search=search)


def finalize_workflow(workflow: Pipeline, params: Dict[str, Any]) -> Pipeline:
    return clone(workflow).set_params(**_with_step(params))


def last_fit(
    workflow: Pipeline,
    params: Dict[str, Any],
    X_train: pd.DataFrame,
    y_train: pd.Series,
    X_test: pd.DataFrame,
    y_test: pd.Series,
    metrics: Sequence[str],
) -> LastFit:
    """Refit the finalized workflow on the whole training split and score the test split once."""

    final = finalize_workflow(workflow, params)
    final.fit(X_train, y_train)
    predictions = np.asarray(final.predict(X_test), dtype=float)
    return LastFit(
        workflow=final,
        predictions=predictions,
        metrics=compute_regression_metrics(np.asarray(y_test, dtype=float), predictions, metrics),
    )
