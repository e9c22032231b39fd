"""Functional-programming chapter: iterate summaries over columns, groups and models."""

from __future__ import annotations

import argparse
import os
import sys
import tempfile
from pathlib import Path

_mpl_cache_dir = Path(tempfile.gettempdir()) / "matplotlib"
_mpl_cache_dir.mkdir(parents=True, exist_ok=True)
os.environ.setdefault("MPLCONFIGDIR", str(_mpl_cache_dir))

import numpy as np
import pandas as pd
import matplotlib

matplotlib.use("Agg")


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.analysis.iteration import fit_group_models, map_columns, map_groups, possibly, reduce_join  # noqa: E402
from src.config import (  # noqa: E402
    GROUP_COL,
    MIN_GROUP_N,
    NUMERIC_FEATURES,
    OUTPUTS_DIR,
    PROCESSED_DIR,
    TARGET_COL,
    TEAM_SEASONS_FILE,
)
from src.reporting import figures  # noqa: E402
from src.utils.logging import configure_logging, run_metadata, write_json  # noqa: E402


def _column_profile(teams: pd.DataFrame, cols) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "mean": map_columns(teams, lambda s: float(s.mean()), cols),
            "sd": map_columns(teams, lambda s: float(s.std(ddof=1)), cols),
            "missing_rate": map_columns(teams, lambda s: round(float(s.isna().mean()), 6), cols),
        }
    ).rename_axis("column").reset_index()


def main() -> None:
    parser = argparse.ArgumentParser(description="Map/reduce idioms and per-group models over team seasons.")
    parser.add_argument("--processed-dir", type=Path, default=PROCESSED_DIR, help="Directory with the built parquet tables.")
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory (default: outputs/).")
    parser.add_argument("--formula", type=str, default=f"{TARGET_COL} ~ run_diff", help="Per-group OLS formula.")
    parser.add_argument("--group", type=str, default=GROUP_COL, help="Column that defines the groups.")
    parser.add_argument("--min-n", type=int, default=MIN_GROUP_N, help="Smallest group that gets a model.")
    args = parser.parse_args()

    configure_logging()
    teams_path = args.processed_dir / TEAM_SEASONS_FILE.name
    if not teams_path.exists():
        raise SystemExit(f"Modeling table not found: {teams_path}. Run scripts/01_build_dataset.py first.")
    teams = pd.read_parquet(teams_path)
    if args.group not in teams.columns:
        raise SystemExit(f"Grouping column {args.group!r} not in team table.")

    tables_dir = args.outdir / "tables"
    figures_dir = args.outdir / "figures"
    tables_dir.mkdir(parents=True, exist_ok=True)

    numeric_cols = [c for c in NUMERIC_FEATURES + [TARGET_COL] if c in teams.columns]
    _column_profile(teams, numeric_cols).to_csv(tables_dir / "column_profile.csv", index=False)

    coefficients, summaries = fit_group_models(teams, args.group, args.formula, min_n=args.min_n)
    coefficients.to_csv(tables_dir / f"group_model_coefficients_by_{args.group}.csv", index=False)
    summaries.to_csv(tables_dir / f"group_model_summaries_by_{args.group}.csv", index=False)

    # correlation is undefined for a constant column; possibly() turns that into NaN
    safe_corr = possibly(lambda g: float(np.corrcoef(g["run_diff"], g[TARGET_COL])[0, 1]), otherwise=np.nan)
    per_group = [
        map_groups(teams, args.group, lambda g: {"teams": int(len(g)), "mean_wins": float(g[TARGET_COL].mean())}),
        map_groups(teams, args.group, lambda g: {"mean_hr": float(g["HR"].mean()), "mean_runs": float(g["R"].mean())}),
        map_groups(teams, args.group, lambda g: {"corr_run_diff_wins": safe_corr(g)}),
        summaries[[args.group, "r_squared", "nobs", "error"]],
    ]
    combined = reduce_join(per_group, on=args.group, how="left")
    slopes = coefficients.loc[coefficients["term"] != "Intercept", [args.group, "term", "estimate"]]
    if not slopes.empty:
        slopes = slopes.pivot(index=args.group, columns="term", values="estimate").add_prefix("slope_").reset_index()
        slopes.columns.name = None
        combined = combined.merge(slopes, on=args.group, how="left")
    combined.to_csv(tables_dir / f"group_summary_by_{args.group}.csv", index=False)

    slope_cols = [c for c in combined.columns if c.startswith("slope_")]
    if slope_cols and combined[slope_cols[0]].notna().any():
        figures.save_figure(
            figures.line_by_group(
                combined.dropna(subset=[slope_cols[0]]), args.group, slope_cols[0],
                title=f"{slope_cols[0]} from per-{args.group} models",
            ),
            figures_dir / f"group_model_slopes_by_{args.group}.png",
        )

    n_failed = int((summaries["error"] != "").sum())
    write_json(
        args.outdir / "logs" / "iteration_run_metadata.json",
        run_metadata(
            PROJECT_ROOT,
            input_parquet=str(teams_path),
            formula=args.formula,
            group=args.group,
            min_n=args.min_n,
            groups=int(len(summaries)),
            groups_without_model=n_failed,
        ),
    )
    print(f"Wrote iteration artifacts to {args.outdir}/ ({len(summaries)} groups, {n_failed} without a model)")


if __name__ == "__main__":
    main()
