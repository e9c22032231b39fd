import numpy as np
import pandas as pd
import pytest

from src.analysis.iteration import fit_group_models, map_columns, map_groups, possibly, reduce_join, safely
from src.analysis.weighted import weighted_mean_ci


def _teams() -> pd.DataFrame:
    rng = np.random.default_rng(1)
    n = 60
    run_diff = rng.normal(0, 80, size=n)
    return pd.DataFrame(
        {
            "decade": [1980] * 30 + [1990] * 25 + [2000] * 5,
            "lgID": ["AL", "NL"] * 30,
            "run_diff": run_diff,
            "W": 81 + run_diff / 10 + rng.normal(0, 2, size=n),
        }
    )


def test_safely_captures_errors_as_data():
    safe_div = safely(lambda a, b: a / b)
    ok = safe_div(1, 2)
    assert ok.ok and ok.result == 0.5
    bad = safe_div(1, 0)
    assert not bad.ok
    assert isinstance(bad.error, ZeroDivisionError)


def test_possibly_substitutes_default():
    to_int = possibly(int, otherwise=-1)
    assert [to_int(v) for v in ["3", "x"]] == [3, -1]


def test_map_columns_returns_one_value_per_column():
    df = pd.DataFrame({"a": [1, 2, 3], "b": [10, 20, 30]})
    out = map_columns(df, lambda s: s.sum())
    assert out.to_dict() == {"a": 6, "b": 60}
    assert map_columns(df, len, cols=[]).empty
    with pytest.raises(ValueError):
        map_columns(df, len, cols=["z"])


def test_map_groups_binds_rows_with_keys_first():
    df = _teams()
    out = map_groups(df, ["decade", "lgID"], lambda g: {"n": len(g)})
    assert out.columns.tolist() == ["decade", "lgID", "n"]
    assert out["n"].sum() == len(df)
    scalars = map_groups(df, "decade", lambda g: len(g))
    assert scalars.set_index("decade")["value"].to_dict() == {1980: 30, 1990: 25, 2000: 5}
    frames = map_groups(df, "decade", lambda g: g[["W"]].head(2))
    assert len(frames) == 6


def test_reduce_join_folds_frames():
    a = pd.DataFrame({"k": [1, 2], "x": [1, 2]})
    b = pd.DataFrame({"k": [1, 2], "y": [3, 4]})
    c = pd.DataFrame({"k": [1], "z": [5]})
    assert reduce_join([a, b, c], on="k").columns.tolist() == ["k", "x", "y", "z"]
    assert len(reduce_join([a, b, c], on="k", how="left")) == 2
    with pytest.raises(ValueError):
        reduce_join([], on="k")


def test_fit_group_models_collects_coefficients_and_failures():
    coefs, summaries = fit_group_models(_teams(), "decade", "W ~ run_diff", min_n=10)
    assert summaries["decade"].tolist() == [1980, 1990, 2000]
    assert summaries["error"].tolist() == ["", "", "n<10"]
    assert summaries["nobs"].tolist() == [30, 25, 5]
    slopes = coefs.loc[coefs["term"] == "run_diff"].set_index("decade")["estimate"]
    assert slopes.index.tolist() == [1980, 1990]
    assert slopes.to_numpy() == pytest.approx([0.1, 0.1], abs=0.02)


def test_fit_group_models_reports_bad_formula_per_group():
    coefs, summaries = fit_group_models(_teams(), "decade", "W ~ missing_col", min_n=10)
    assert coefs.empty
    assert (summaries["error"].iloc[:2] != "").all()
    assert summaries["error"].iloc[2] == "n<10"


def test_weighted_mean_ci():
    w_sum, mean, lo, hi = weighted_mean_ci([0.2, 0.3, np.nan], [100, 300, 50])
    assert w_sum == 400
    assert mean == pytest.approx(0.275)
    assert lo < mean < hi
    assert np.isnan(weighted_mean_ci([0.3], [100])[2])
    assert np.isnan(weighted_mean_ci([], [])[1])
