import numpy as np
import pandas as pd
import pytest

from src.evaluation.bootstrap import bootstrap_metric_draws, summarize_bootstrap_ci
from src.evaluation.metrics import compare_models, compute_regression_metrics, validate_metric_names
from src.evaluation.slices import error_slices, evaluate_group_adequacy


def test_regression_metrics_on_known_values():
    y = np.array([1.0, 2.0, 3.0, 4.0])
    p = np.array([1.0, 2.0, 3.0, 6.0])
    m = compute_regression_metrics(y, p, ["rmse", "mae", "rsq", "mape"])
    assert m["rmse"] == pytest.approx(1.0)
    assert m["mae"] == pytest.approx(0.5)
    assert m["rsq"] == pytest.approx(np.corrcoef(y, p)[0, 1] ** 2)
    assert m["mape"] == pytest.approx(12.5)


def test_rsq_is_missing_for_constant_predictions():
    m = compute_regression_metrics([1.0, 2.0, 3.0], [2.0, 2.0, 2.0], ["rsq"])
    assert np.isnan(m["rsq"])


def test_metric_validation():
    with pytest.raises(ValueError, match="Unknown metrics"):
        validate_metric_names(["rmse", "auc"])
    with pytest.raises(ValueError):
        validate_metric_names([])
    with pytest.raises(ValueError, match="Shape mismatch"):
        compute_regression_metrics([1.0, 2.0], [1.0], ["rmse"])


def test_compare_models_ranks_best_first():
    rows = [{"model": "a", "rmse": 3.0, "rsq": 0.5}, {"model": "b", "rmse": 2.0, "rsq": 0.7}]
    by_rmse = compare_models(rows, "rmse")
    assert by_rmse["model"].tolist() == ["b", "a"]
    assert by_rmse["rank"].tolist() == [1, 2]
    assert compare_models(rows, "rsq")["model"].tolist() == ["b", "a"]
    with pytest.raises(ValueError):
        compare_models(rows, "mae")


def test_bootstrap_draws_are_seeded_and_bracket_the_estimate():
    rng = np.random.default_rng(0)
    y = rng.normal(80, 10, size=60)
    p = y + rng.normal(0, 3, size=60)
    draws = bootstrap_metric_draws(y_true=y, y_pred=p, n_boot=200, seed=5, metrics=["rmse"])
    again = bootstrap_metric_draws(y_true=y, y_pred=p, n_boot=200, seed=5, metrics=["rmse"])
    pd.testing.assert_frame_equal(draws, again)
    ci = summarize_bootstrap_ci(draws, metrics=["rmse"])
    assert ci.columns.tolist() == ["metric", "lower", "upper", "n_draws"]
    lo, hi = ci.loc[0, ["lower", "upper"]]
    assert ci.loc[0, "n_draws"] == 200
    point = compute_regression_metrics(y, p, ["rmse"])["rmse"]
    assert lo < point < hi


def test_bootstrap_without_draws_gives_missing_interval():
    draws = bootstrap_metric_draws(y_true=np.ones(3), y_pred=np.ones(3), n_boot=0, seed=1, metrics=["rmse"])
    assert draws.empty
    ci = summarize_bootstrap_ci(draws, metrics=["rmse"])
    assert np.isnan(ci.loc[0, "lower"]) and np.isnan(ci.loc[0, "upper"])
    assert ci.loc[0, "n_draws"] == 0
    with pytest.raises(ValueError):
        summarize_bootstrap_ci(draws, alpha=1.5, metrics=["rmse"])


def test_group_adequacy_reasons():
    assert evaluate_group_adequacy(np.arange(30.0), min_group_n=20).adequate
    small = evaluate_group_adequacy(np.array([1.0, 1.0]), min_group_n=20)
    assert not small.adequate
    assert small.reason == "n<20;constant_outcome"


def test_error_slices_flag_small_groups_instead_of_dropping_them():
    groups = pd.Series([1990] * 25 + [2000] * 5)
    y = np.arange(30.0)
    p = y + 1.0
    out = error_slices(groups, y, p, min_group_n=20, grouping="decade")
    assert out["group_value"].tolist() == ["1990", "2000"]
    assert out["adequacy_flag"].tolist() == [True, False]
    big = out.iloc[0]
    assert big["rmse"] == pytest.approx(1.0)
    assert big["mean_residual"] == pytest.approx(-1.0)
    assert np.isnan(out.iloc[1]["rmse"])
