"""Plot builders for the course figures (matplotlib only; no seaborn).

Every builder returns a ``Figure`` so callers can add layers before saving with
``save_figure``.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.figure import Figure


def save_figure(fig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=300, bbox_inches="tight")
    plt.close(fig)


def _trend_line(ax, x: pd.Series, y: pd.Series, **kwargs) -> None:
    mask = x.notna() & y.notna()
    xs = x.loc[mask].to_numpy(dtype=float)
    ys = y.loc[mask].to_numpy(dtype=float)
    if xs.size < 2 or np.ptp(xs) == 0:
        return
    slope, intercept = np.polyfit(xs, ys, deg=1)
    grid = np.linspace(xs.min(), xs.max(), 50)
    ax.plot(grid, intercept + slope * grid, **kwargs)


def scatter_with_trend(
    df: pd.DataFrame,
    x: str,
    y: str,
    *,
    color: Optional[str] = None,
    trend: bool = True,
    title: str = "",
    alpha: float = 0.5,
) -> Figure:
    fig, ax = plt.subplots(figsize=(7, 5))
    if color is None:
        ax.scatter(df[x], df[y], s=12, alpha=alpha)
    else:
        for level, gdf in df.groupby(color, sort=True):
            ax.scatter(gdf[x], gdf[y], s=12, alpha=alpha, label=str(level))
        ax.legend(title=color)
    if trend:
        _trend_line(ax, df[x], df[y], color="black", linewidth=1.5, label="_trend")
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(title or f"{y} vs {x}")
    fig.tight_layout()
    return fig


def histogram(df: pd.DataFrame, col: str, *, bins: int = 30, by: Optional[str] = None, title: str = "") -> Figure:
    fig, ax = plt.subplots(figsize=(7, 5))
    if by is None:
        ax.hist(df[col].dropna(), bins=bins)
    else:
        for level, gdf in df.groupby(by, sort=True):
            ax.hist(gdf[col].dropna(), bins=bins, alpha=0.5, label=str(level))
        ax.legend(title=by)
    ax.set_xlabel(col)
    ax.set_ylabel("count")
    ax.set_title(title or f"Distribution of {col}")
    fig.tight_layout()
    return fig


def boxplot_by_group(df: pd.DataFrame, col: str, by: str, *, title: str = "") -> Figure:
    groups = [(str(level), gdf[col].dropna().to_numpy()) for level, gdf in df.groupby(by, sort=True)]
    fig, ax = plt.subplots(figsize=(max(6, 0.6 * len(groups)), 5))
    ax.boxplot([vals for _, vals in groups], showfliers=True)
    ax.set_xticks(range(1, len(groups) + 1))
    ax.set_xticklabels([label for label, _ in groups])
    ax.set_xlabel(by)
    ax.set_ylabel(col)
    ax.set_title(title or f"{col} by {by}")
    ax.tick_params(axis="x", rotation=45, labelsize=9)
    fig.tight_layout()
    return fig


def line_by_group(df: pd.DataFrame, x: str, y: str, group: Optional[str] = None, *, title: str = "") -> Figure:
    fig, ax = plt.subplots(figsize=(8, 5))
    if group is None:
        data = df.sort_values(x, kind="mergesort")
        ax.plot(data[x], data[y], linewidth=1.5)
    else:
        for level, gdf in df.groupby(group, sort=True):
            gdf = gdf.sort_values(x, kind="mergesort")
            ax.plot(gdf[x], gdf[y], linewidth=1.5, label=str(level))
        ax.legend(title=group)
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(title or f"{y} over {x}")
    fig.tight_layout()
    return fig


def facet_lines(df: pd.DataFrame, x: str, y: str, facet: str, *, ncols: int = 3, title: str = "") -> Figure:
    """Small multiples: one panel per ``facet`` level on a shared y axis."""

    levels = sorted(df[facet].dropna().unique().tolist(), key=str)
    nrows = max(1, math.ceil(len(levels) / ncols))
    fig, axes = plt.subplots(nrows, ncols, figsize=(4 * ncols, 3 * nrows), sharey=True, squeeze=False)
    for ax, level in zip(axes.flat, levels):
        gdf = df.loc[df[facet] == level].sort_values(x, kind="mergesort")
        ax.plot(gdf[x], gdf[y], linewidth=1.2)
        ax.set_title(str(level), fontsize=9)
        ax.tick_params(labelsize=8)
    for ax in list(axes.flat)[len(levels):]:
        ax.set_visible(False)
    fig.suptitle(title or f"{y} over {x} by {facet}")
    fig.tight_layout()
    return fig


def bar_top_n(df: pd.DataFrame, label_col: str, value_col: str, *, title: str = "") -> Figure:
    """Horizontal bars, largest value on top."""

    data = df.sort_values(value_col, ascending=True, kind="mergesort")
    fig, ax = plt.subplots(figsize=(7, max(3, 0.35 * len(data))))
    ax.barh(data[label_col].astype(str), data[value_col])
    ax.set_xlabel(value_col)
    ax.set_title(title or f"Top {len(data)} by {value_col}")
    fig.tight_layout()
    return fig


def tuning_curve(collected: pd.DataFrame, param: str, metric: str, *, title: str = "") -> Figure:
    data = collected.loc[collected["metric"] == metric].sort_values(param, kind="mergesort")
    fig, ax = plt.subplots(figsize=(6, 4.5))
    ax.errorbar(data[param], data["mean"], yerr=data["std_err"].fillna(0.0), fmt="o", capsize=3)
    ax.set_xlabel(param)
    ax.set_ylabel(f"mean CV {metric}")
    if (data[param] > 0).all() and data[param].max() / data[param].min() > 100:
        ax.set_xscale("log")
    ax.set_title(title or f"Tuning results: {metric} vs {param}")
    fig.tight_layout()
    return fig


def predicted_vs_observed(y_true, y_pred, *, title: str = "") -> Figure:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    lo = float(min(y_true.min(), y_pred.min()))
    hi = float(max(y_true.max(), y_pred.max()))
    fig, ax = plt.subplots(figsize=(5.5, 5.5))
    ax.scatter(y_true, y_pred, s=14, alpha=0.6)
    ax.plot([lo, hi], [lo, hi], "--", color="gray", linewidth=1)
    ax.set_xlabel("observed")
    ax.set_ylabel("predicted")
    ax.set_aspect("equal", adjustable="datalim")
    ax.set_title(title or "Predicted vs observed")
    fig.tight_layout()
    return fig


def residuals_plot(y_true, y_pred, *, title: str = "") -> Figure:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    fig, ax = plt.subplots(figsize=(6, 4.5))
    ax.scatter(y_pred, y_true - y_pred, s=14, alpha=0.6)
    ax.axhline(0.0, linestyle="--", color="gray", linewidth=1)
    ax.set_xlabel("predicted")
    ax.set_ylabel("residual (observed - predicted)")
    ax.set_title(title or "Residuals")
    fig.tight_layout()
    return fig


def model_comparison_plot(
    comparison: pd.DataFrame, metric: str, *, err_col: Optional[str] = None, title: str = ""
) -> Figure:
    data = comparison.reset_index(drop=True)
    fig, ax = plt.subplots(figsize=(7, 4.5))
    yerr = data[err_col].fillna(0.0) if err_col and err_col in data.columns else None
    ax.errorbar(np.arange(len(data)), data[metric], yerr=yerr, fmt="o", capsize=4)
    ax.set_xticks(np.arange(len(data)))
    ax.set_xticklabels(data["model"].astype(str), rotation=30, ha="right")
    ax.set_ylabel(metric)
    ax.set_title(title or f"Model comparison ({metric})")
    fig.tight_layout()
    return fig


def word_frequency_bar(counts: pd.DataFrame, col: str = "word", *, n: int = 15, title: str = "") -> Figure:
    top = counts.sort_values(["n", col], ascending=[False, True], kind="mergesort").head(n)
    return bar_top_n(top, col, "n", title=title or f"Most common {col}s")


def sentiment_trajectory(sentiment: pd.DataFrame, doc_col: str, *, ncols: int = 2, title: str = "") -> Figure:
    docs: Sequence = sorted(sentiment[doc_col].dropna().unique().tolist(), key=str)
    nrows = max(1, math.ceil(len(docs) / ncols))
    fig, axes = plt.subplots(nrows, ncols, figsize=(5 * ncols, 3 * nrows), sharey=True, squeeze=False)
    for ax, doc in zip(axes.flat, docs):
        gdf = sentiment.loc[sentiment[doc_col] == doc]
        colors = np.where(gdf["sentiment"] >= 0, "tab:blue", "tab:red")
        ax.bar(gdf["index"], gdf["sentiment"], color=colors)
        ax.set_title(str(doc), fontsize=9)
        ax.axhline(0.0, color="gray", linewidth=0.8)
    for ax in list(axes.flat)[len(docs):]:
        ax.set_visible(False)
    fig.suptitle(title or "Net sentiment through each document")
    fig.tight_layout()
    return fig
