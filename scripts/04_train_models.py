from __future__ import annotations

import argparse
import hashlib
import os
import random
import sys
import tempfile
from pathlib import Path
from typing import Dict, List

import numpy as np
import pandas as pd

# Matplotlib must be configured before importing pyplot.
_mpl_cache_dir = Path(tempfile.gettempdir()) / "matplotlib"
_mpl_cache_dir.mkdir(parents=True, exist_ok=True)
os.environ.setdefault("MPLCONFIGDIR", str(_mpl_cache_dir))

import matplotlib

matplotlib.use("Agg")

import joblib


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.config import (  # noqa: E402
    CATEGORICAL_FEATURES,
    CV_FOLDS,
    DATASET_VERSION,
    EXPERIMENT_NAMESPACE,
    GROUP_COL,
    METRICS,
    MIN_GROUP_N,
    MODEL_NAMES,
    N_JOBS,
    NUMERIC_FEATURES,
    PROCESSED_DIR,
    OUTPUTS_DIR,
    RANDOM_SEEDS,
    SELECTION_METRIC,
    STRATA_BINS,
    TARGET_COL,
    TEAM_SEASONS_FILE,
    TEST_SIZE,
    TUNING_GRID_SIZE,
)
from src.data.splits import assign_folds, make_cv_folds, make_holdout_split  # noqa: E402
from src.data.validate import assert_required_columns  # noqa: E402
from src.evaluation.bootstrap import bootstrap_metric_draws, summarize_bootstrap_ci  # noqa: E402
from src.evaluation.metrics import REGRESSION_METRICS, compare_models  # noqa: E402
from src.evaluation.slices import error_slices  # noqa: E402
from src.features.recipe import build_recipe, prep_and_bake, prepare_features, recipe_feature_names  # noqa: E402
from src.modeling.tuning import (  # noqa: E402
    last_fit,
    param_columns,
    select_best,
    select_by_one_std_err,
    show_best,
    tune_random_search,
)
from src.models.registry import build_workflow, get_model_spec  # noqa: E402
from src.reporting import figures  # noqa: E402
from src.utils.logging import configure_logging, run_metadata, write_json  # noqa: E402


def sha256_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def deterministic_run_id(seed: int, model: str, selection: str) -> str:
    return f"{EXPERIMENT_NAMESPACE}_seed{seed}_{model}_{selection}"


def save_npz(path: Path, **arrays) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, **arrays)


def selected_config(collected: pd.DataFrame, params: Dict[str, object]) -> str:
    """The ``config`` label of the candidate whose hyperparameters equal ``params``."""

    cols = param_columns(collected)
    if not cols:
        return str(collected["config"].iloc[0])
    mask = np.ones(len(collected), dtype=bool)
    for c in cols:
        mask &= (collected[c] == params.get(c)).to_numpy()
    matches = collected.loc[mask, "config"].unique()
    if len(matches) != 1:
        raise RuntimeError(f"Could not locate selected candidate {params} in tuning results.")
    return str(matches[0])


def cv_metrics_for(collected: pd.DataFrame, config: str) -> Dict[str, float]:
    rows = collected.loc[collected["config"] == config]
    out: Dict[str, float] = {}
    for _, row in rows.iterrows():
        out[f"cv_{row['metric']}_mean"] = float(row["mean"])
        out[f"cv_{row['metric']}_std_err"] = float(row["std_err"])
        out["cv_n"] = int(row["n"])
    return out


def main() -> None:
    parser = argparse.ArgumentParser(description="Tune, select and compare regression models for team wins.")
    parser.add_argument("--seed", type=int, default=RANDOM_SEEDS[0], help="Random seed for the split, folds and search.")
    parser.add_argument(
        "--allow-any-seed",
        action="store_true",
        help="Allow seeds not listed in src/config.py RANDOM_SEEDS.",
    )
    parser.add_argument("--processed-dir", type=Path, default=PROCESSED_DIR, help="Directory with the built parquet tables.")
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory (default: outputs/).")
    parser.add_argument("--nrows", type=int, default=None, help="Optional dev mode: head(n) rows deterministically.")
    parser.add_argument("--model", choices=MODEL_NAMES + ["all"], default="all")
    parser.add_argument("--grid-size", type=int, default=TUNING_GRID_SIZE, help="Random-search candidates per model.")
    parser.add_argument("--folds", type=int, default=CV_FOLDS, help="Number of cross-validation folds.")
    parser.add_argument("--metric", choices=sorted(REGRESSION_METRICS), default=SELECTION_METRIC)
    parser.add_argument("--selection", choices=["best", "one_std_err"], default="best")
    parser.add_argument("--n-jobs", type=int, default=N_JOBS, help="Workers for joblib's parallel backend.")
    parser.add_argument("--n-boot", type=int, default=1000, help="Bootstrap resamples for test-set CIs.")
    args = parser.parse_args()

    if (not args.allow_any_seed) and (args.seed not in RANDOM_SEEDS):
        raise SystemExit(f"--seed must be one of {RANDOM_SEEDS} unless --allow-any-seed is provided.")
    if args.nrows is not None and args.nrows <= 0:
        raise SystemExit("--nrows must be a positive integer.")
    if args.grid_size < 1:
        raise SystemExit("--grid-size must be >= 1.")
    if args.folds < 2:
        raise SystemExit("--folds must be >= 2.")
    if args.n_boot < 0:
        raise SystemExit("--n-boot must be >= 0.")

    configure_logging()
    random.seed(args.seed)
    np.random.seed(args.seed)

    metrics = list(dict.fromkeys(METRICS + [args.metric]))

    parquet_path = args.processed_dir / TEAM_SEASONS_FILE.name
    if not parquet_path.exists():
        raise SystemExit(f"Modeling input not found: {parquet_path}. Run scripts/01_build_dataset.py first.")
    df = pd.read_parquet(parquet_path)
    if args.nrows is not None:
        df = df.head(args.nrows).copy()

    try:
        assert_required_columns(df, [TARGET_COL, GROUP_COL] + NUMERIC_FEATURES + CATEGORICAL_FEATURES)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    if df[TARGET_COL].isna().any():
        raise SystemExit(f"Target column {TARGET_COL} contains missing values; rebuild the dataset.")
    if len(df) < 2 * args.folds:
        raise SystemExit(f"Only {len(df)} rows; too few for {args.folds}-fold cross-validation.")

    y = df[TARGET_COL].astype(float)
    X = prepare_features(df, NUMERIC_FEATURES, CATEGORICAL_FEATURES)

    train_pos, test_pos = make_holdout_split(X, y, test_size=TEST_SIZE, seed=args.seed, strata_bins=STRATA_BINS)
    X_train, y_train = X.iloc[train_pos], y.iloc[train_pos]
    X_test, y_test = X.iloc[test_pos], y.iloc[test_pos]
    folds = make_cv_folds(args.folds, args.seed)

    outdir = args.outdir
    out_metrics = outdir / "metrics"
    out_tables = outdir / "tables"
    out_figures = outdir / "figures"
    out_models = outdir / "models"
    out_splits = outdir / "splits"
    out_logs = outdir / "logs"
    for d in [out_metrics, out_tables, out_figures, out_models, out_splits, out_logs]:
        d.mkdir(parents=True, exist_ok=True)

    save_npz(out_splits / f"holdout_seed{args.seed}.npz", train_idx=train_pos, test_idx=test_pos)
    save_npz(out_splits / f"cvfolds_seed{args.seed}.npz", train_idx=train_pos, fold_id=assign_folds(X_train, folds))

    recipe = build_recipe(NUMERIC_FEATURES, CATEGORICAL_FEATURES)

    # The baked training set shows learners exactly what the models receive.
    prepped, baked_train, _ = prep_and_bake(recipe, X_train, X_test)
    baked_train.head(20).to_csv(out_tables / "baked_train_head.csv", index=False)
    pd.DataFrame({"feature": recipe_feature_names(prepped)}).to_csv(out_tables / "recipe_features.csv", index=False)

    n_boot_effective = min(args.n_boot, 200) if args.nrows is not None else args.n_boot
    models_to_run = MODEL_NAMES if args.model == "all" else [args.model]

    comparison_rows: List[dict] = []
    ci_tables: List[pd.DataFrame] = []
    parquet_sha = sha256_file(parquet_path)

    for model_name in models_to_run:
        spec = get_model_spec(model_name)
        run_id = deterministic_run_id(args.seed, model_name, args.selection)
        workflow = build_workflow(spec, recipe, seed=args.seed)

        tuning = tune_random_search(
            workflow,
            spec.param_distributions,
            X_train,
            y_train,
            folds=folds,
            grid_size=args.grid_size,
            metrics=metrics,
            selection_metric=args.metric,
            seed=args.seed,
            n_jobs=args.n_jobs,
        )
        collected = tuning.collected
        collected.to_csv(out_metrics / f"tuning_metrics_seed{args.seed}_{model_name}.csv", index=False)
        show_best(collected, args.metric, n=5).to_csv(
            out_tables / f"tuning_best_seed{args.seed}_{model_name}.csv", index=False
        )

        if args.selection == "one_std_err":
            params = select_by_one_std_err(collected, args.metric, spec.simplest_first)
        else:
            params = select_best(collected, args.metric)
        config = selected_config(collected, params)

        for param in param_columns(collected):
            figures.save_figure(
                figures.tuning_curve(collected, param, args.metric, title=f"{model_name}: {args.metric} vs {param}"),
                out_figures / f"tuning_{model_name}_{param}_seed{args.seed}.png",
            )

        fitted = last_fit(workflow, params, X_train, y_train, X_test, y_test, metrics)
        model_path = out_models / f"{model_name}_seed{args.seed}.joblib"
        joblib.dump(fitted.workflow, model_path)

        test_metrics = fitted.metrics
        row = {
            "dataset_version": DATASET_VERSION,
            "run_id": run_id,
            "seed": args.seed,
            "model": model_name,
            "selection": args.selection,
            "selected_config": config,
            "n_train": int(len(train_pos)),
            "n_test": int(len(test_pos)),
            "cv_folds": args.folds,
            "grid_size": args.grid_size if spec.tunable else 1,
            **cv_metrics_for(collected, config),
            **test_metrics,
        }
        pd.DataFrame([row]).to_csv(out_metrics / f"metrics_test_seed{args.seed}_{model_name}.csv", index=False)
        comparison_rows.append(row)

        draws = bootstrap_metric_draws(
            y_true=y_test.to_numpy(), y_pred=fitted.predictions, n_boot=n_boot_effective, seed=args.seed + 101,
            metrics=metrics,
        )
        draws.insert(0, "model", model_name)
        draws.to_csv(out_tables / f"bootstrap_draws_test_seed{args.seed}_{model_name}.csv", index=False)
        ci = summarize_bootstrap_ci(draws, metrics=metrics)
        ci.insert(0, "model", model_name)
        ci.insert(1, "seed", args.seed)
        ci.insert(3, "estimate", ci["metric"].map(test_metrics))
        ci["n_test"] = int(len(test_pos))
        ci["ci_method"] = "bootstrap_percentile"
        ci_tables.append(ci)

        test_rows = df.iloc[test_pos]
        preds = pd.DataFrame(
            {
                "row_index": test_pos,
                "yearID": test_rows["yearID"].to_numpy(),
                "teamID": test_rows["teamID"].astype(str).to_numpy(),
                "y_true": y_test.to_numpy(),
                "y_pred": fitted.predictions,
            }
        )
        preds["residual"] = preds["y_true"] - preds["y_pred"]
        preds_path = out_tables / f"preds_test_{model_name}_seed{args.seed}.csv"
        preds.to_csv(preds_path, index=False)

        slices = error_slices(
            test_rows[GROUP_COL], y_test.to_numpy(), fitted.predictions, min_group_n=MIN_GROUP_N, grouping=GROUP_COL
        )
        slices.to_csv(out_tables / f"error_slices_{model_name}_seed{args.seed}.csv", index=False)

        figures.save_figure(
            figures.predicted_vs_observed(y_test, fitted.predictions, title=f"{model_name}: test-set wins"),
            out_figures / f"pred_vs_obs_{model_name}_seed{args.seed}.png",
        )
        figures.save_figure(
            figures.residuals_plot(y_test, fitted.predictions, title=f"{model_name}: test residuals"),
            out_figures / f"residuals_{model_name}_seed{args.seed}.png",
        )

        meta = {
            "dataset_version": DATASET_VERSION,
            "experiment_namespace": EXPERIMENT_NAMESPACE,
            "run_id": run_id,
            "seed": args.seed,
            "model": model_name,
            "target_col": TARGET_COL,
            "numeric_features": list(NUMERIC_FEATURES),
            "categorical_features": list(CATEGORICAL_FEATURES),
            "recipe_features": recipe_feature_names(prepped),
            "selected_params": params,
            "selected_config": config,
            "selection": {"rule": args.selection, "metric": args.metric},
            "validation_protocol": {
                "test_size": TEST_SIZE,
                "strata_bins": STRATA_BINS,
                "cv_folds": args.folds,
                "grid_size": args.grid_size,
                "search": "random" if spec.tunable else "none",
                "n_jobs": args.n_jobs,
            },
            "inputs": {"parquet_path": str(parquet_path), "parquet_sha256": parquet_sha, "nrows": args.nrows},
            "artifacts": {
                "model_joblib": str(model_path),
                "preds_test_csv": str(preds_path),
                "tuning_metrics_csv": str(out_metrics / f"tuning_metrics_seed{args.seed}_{model_name}.csv"),
            },
            "runtime": run_metadata(PROJECT_ROOT, n_boot_effective=int(n_boot_effective)),
        }
        write_json(out_models / f"{model_name}_seed{args.seed}.meta.json", meta)

    comparison = compare_models(comparison_rows, args.metric)
    comparison.to_csv(out_tables / "model_comparison.csv", index=False)
    pd.concat(ci_tables, ignore_index=True).to_csv(out_tables / "test_metrics_with_ci.csv", index=False)
    figures.save_figure(
        figures.model_comparison_plot(
            comparison, f"cv_{args.metric}_mean", err_col=f"cv_{args.metric}_std_err",
            title=f"Cross-validated {args.metric} by model",
        ),
        out_figures / f"model_comparison_seed{args.seed}.png",
    )

    print(f"Best model by test {args.metric}: {comparison.iloc[0]['model']}")
    print(f"Wrote modeling artifacts to {outdir}/")


if __name__ == "__main__":
    main()
