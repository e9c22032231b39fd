"""Higher-order helpers for iterating over columns, groups and model fits.

These mirror the map/reduce vocabulary used in the course notebooks:

- ``map_columns``: apply a summary to every column, get one value per column back.
- ``map_groups``: split a frame by keys, apply a function, bind the results by row.
- ``reduce_join``: fold a list of frames into one with successive merges.
- ``safely``/``possibly``: wrap a function so a failure becomes data instead of an
  exception that stops the whole loop.
- ``fit_group_models``: the many-models pattern; one OLS fit per group, with the
  coefficients and fit statistics collected into two tidy frames.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

Cols = Union[str, Sequence[str]]


@dataclass(frozen=True)
class Result:
    result: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _as_list(cols: Cols) -> List[str]:
    return [cols] if isinstance(cols, str) else list(cols)


def _key_dict(by: List[str], key) -> dict:
    key = key if isinstance(key, tuple) else (key,)
    return dict(zip(by, key))


def _as_frame(value) -> pd.DataFrame:
    if isinstance(value, pd.DataFrame):
        return value.reset_index(drop=True)
    if isinstance(value, pd.Series):
        return value.to_frame().T.reset_index(drop=True)
    if isinstance(value, dict):
        return pd.DataFrame([value])
    return pd.DataFrame({"value": [value]})


def _prepend_keys(frame: pd.DataFrame, keys: dict) -> pd.DataFrame:
    frame = frame.drop(columns=[c for c in keys if c in frame.columns])
    for pos, (col, val) in enumerate(keys.items()):
        frame.insert(pos, col, val)
    return frame


def safely(func: Callable) -> Callable[..., Result]:
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Result:
        try:
            return Result(result=func(*args, **kwargs))
        except Exception as exc:
            return Result(error=exc)

    return wrapper


def possibly(func: Callable, otherwise: Any = None) -> Callable:
    captured = safely(func)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        res = captured(*args, **kwargs)
        return res.result if res.ok else otherwise

    return wrapper


def map_columns(df: pd.DataFrame, func: Callable[[pd.Series], Any], cols: Optional[Iterable[str]] = None) -> pd.Series:
    cols = list(df.columns) if cols is None else list(cols)
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns: {missing}")
    if not cols:
        return pd.Series(dtype=object)
    return pd.Series({c: func(df[c]) for c in cols})


def map_groups(df: pd.DataFrame, by: Cols, func: Callable[[pd.DataFrame], Any]) -> pd.DataFrame:
    """Apply ``func`` to each group and row-bind the results, group keys first.

    ``func`` may return a DataFrame, a Series (one row), a dict (one row) or a scalar
    (stored in a ``value`` column).
    """

    by = _as_list(by)
    missing = [c for c in by if c not in df.columns]
    if missing:
        raise ValueError(f"Missing grouping columns: {missing}")

    parts = [
        _prepend_keys(_as_frame(func(gdf)), _key_dict(by, key))
        for key, gdf in df.groupby(by, sort=True, dropna=False)
    ]
    if not parts:
        return pd.DataFrame(columns=by)
    return pd.concat(parts, ignore_index=True)


def reduce_join(frames: Sequence[pd.DataFrame], on: Cols, how: str = "inner") -> pd.DataFrame:
    if not frames:
        raise ValueError("reduce_join needs at least one frame")
    on = _as_list(on)
    return functools.reduce(lambda left, right: left.merge(right, on=on, how=how), frames)


def tidy_ols(model) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "term": model.params.index.astype(str),
            "estimate": model.params.to_numpy(dtype=float),
            "std_error": model.bse.to_numpy(dtype=float),
            "statistic": model.tvalues.to_numpy(dtype=float),
            "p_value": model.pvalues.to_numpy(dtype=float),
        }
    )


def glance_ols(model) -> dict:
    return {
        "r_squared": float(model.rsquared),
        "adj_r_squared": float(model.rsquared_adj),
        "sigma": float(np.sqrt(model.scale)),
        "nobs": int(model.nobs),
    }


def fit_group_models(
    df: pd.DataFrame, by: Cols, formula: str, *, min_n: int = 10
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Fit ``formula`` by OLS within each group.

    Returns ``(coefficients, summaries)``. Every group appears in ``summaries``; groups
    that are too small or whose fit fails carry the reason in ``error`` and contribute
    no coefficient rows.
    """

    by = _as_list(by)
    fit = safely(lambda data: smf.ols(formula, data=data).fit())

    coef_parts: List[pd.DataFrame] = []
    summary_rows: List[dict] = []
    for key, gdf in df.groupby(by, sort=True):
        keys = _key_dict(by, key)
        blank = {"r_squared": np.nan, "adj_r_squared": np.nan, "sigma": np.nan, "nobs": int(len(gdf))}
        if len(gdf) < min_n:
            summary_rows.append({**keys, **blank, "error": f"n<{min_n}"})
            continue

        res = fit(gdf)
        if not res.ok:
            summary_rows.append({**keys, **blank, "error": f"{type(res.error).__name__}: {res.error}"})
            continue

        coef_parts.append(_prepend_keys(tidy_ols(res.result), keys))
        summary_rows.append({**keys, **glance_ols(res.result), "error": ""})

    coef_cols = by + ["term", "estimate", "std_error", "statistic", "p_value"]
    coefficients = pd.concat(coef_parts, ignore_index=True) if coef_parts else pd.DataFrame(columns=coef_cols)
    summaries = pd.DataFrame(summary_rows, columns=by + ["r_squared", "adj_r_squared", "sigma", "nobs", "error"])
    return coefficients, summaries
