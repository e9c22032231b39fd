from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from src.evaluation.metrics import compute_regression_metrics


@dataclass(frozen=True)
class GroupAdequacy:
    n: int
    adequate: bool
    reason: str


def evaluate_group_adequacy(y_true: np.ndarray, *, min_group_n: int) -> GroupAdequacy:
    y = np.asarray(y_true, dtype=float)
    n = int(np.sum(~np.isnan(y)))
    reasons = []
    if n < int(min_group_n):
        reasons.append(f"n<{int(min_group_n)}")
    # rsq is undefined for a constant outcome.
    if n > 0 and np.nanstd(y) == 0:
        reasons.append("constant_outcome")
    return GroupAdequacy(n=n, adequate=(len(reasons) == 0), reason=";".join(reasons))


def error_slices(
    groups: pd.Series,
    y_true: np.ndarray,
    y_pred: np.ndarray,
    *,
    min_group_n: int,
    grouping: str,
) -> pd.DataFrame:
    """Per-group test metrics; groups below ``min_group_n`` are flagged, not dropped."""

    tmp = pd.DataFrame(
        {
            "group": pd.Series(groups).astype("string").fillna("<NA>").to_numpy(),
            "y_true": np.asarray(y_true, dtype=float),
            "y_pred": np.asarray(y_pred, dtype=float),
        }
    )
    rows = []
    for g, gdf in tmp.groupby("group", sort=True):
        adequacy = evaluate_group_adequacy(gdf["y_true"].to_numpy(), min_group_n=min_group_n)
        row = {
            "grouping": grouping,
            "group_value": str(g),
            "n": adequacy.n,
            "adequacy_flag": adequacy.adequate,
            "reason": adequacy.reason,
            "mean_residual": np.nan,
            "rmse": np.nan,
            "mae": np.nan,
        }
        if adequacy.adequate:
            m = compute_regression_metrics(gdf["y_true"], gdf["y_pred"], ["rmse", "mae"])
            row["mean_residual"] = round(float((gdf["y_true"] - gdf["y_pred"]).mean()), 6)
            row["rmse"] = round(m["rmse"], 6)
            row["mae"] = round(m["mae"], 6)
        rows.append(row)
    return pd.DataFrame(rows)
