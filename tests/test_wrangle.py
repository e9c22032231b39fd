import warnings

import numpy as np
import pandas as pd
import pytest

from src.data.coding import coerce_categorical, normalize_column_names, standardize_lahman_columns, summarize_missingness
from src.data.wrangle import (
    add_batting_rates,
    add_team_rates,
    attach_names,
    attach_salaries,
    career_totals,
    combine_stints,
    count_by,
    filter_years,
    league_year_summary,
    to_long,
    to_wide,
    top_n_by,
)


def _two_stints() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "playerID": ["a", "a", "b"],
            "yearID": [2001, 2001, 2001],
            "stint": [1, 2, 1],
            "teamID": ["BOS", "NYA", "CLE"],
            "lgID": ["AL", "AL", "AL"],
            "AB": [100, 50, 0],
            "H": [30, 10, 0],
            "X2B": [5, 2, 0],
            "X3B": [1, 0, 0],
            "HR": [4, 1, 0],
            "BB": [10, 5, 0],
            "IBB": [np.nan, 1, np.nan],
        }
    )


def test_combine_stints_sums_counts_and_keeps_last_team():
    out = combine_stints(_two_stints())
    a = out.loc[out["playerID"] == "a"].iloc[0]
    assert a["AB"] == 150
    assert a["H"] == 40
    assert a["stints"] == 2
    assert a["teamID"] == "NYA"
    assert out["IBB"].isna().sum() == 0
    assert out.columns[:5].tolist() == ["playerID", "yearID", "teamID", "lgID", "stints"]


def test_batting_rates_follow_standard_definitions():
    df = pd.DataFrame({"AB": [100], "H": [30], "X2B": [5], "X3B": [1], "HR": [4], "BB": [10], "HBP": [2], "SF": [3]})
    out = add_batting_rates(df)
    assert out["X1B"].iloc[0] == 20
    assert out["AVG"].iloc[0] == pytest.approx(0.3)
    assert out["OBP"].iloc[0] == pytest.approx(42 / 115)
    assert out["SLG"].iloc[0] == pytest.approx((20 + 10 + 3 + 16) / 100)
    assert out["OPS"].iloc[0] == pytest.approx(out["OBP"].iloc[0] + out["SLG"].iloc[0])


def test_zero_at_bats_give_missing_rates_not_errors():
    out = add_batting_rates(combine_stints(_two_stints()))
    b = out.loc[out["playerID"] == "b"].iloc[0]
    assert np.isnan(b["AVG"])
    assert np.isnan(b["SLG"])


def test_career_totals_span_seasons():
    df = _two_stints()
    df.loc[1, "yearID"] = 2002
    out = career_totals(df).set_index("playerID")
    assert out.loc["a", "seasons"] == 2
    assert out.loc["a", "first_year"] == 2001
    assert out.loc["a", "last_year"] == 2002


def test_attach_names_rejects_duplicate_people():
    seasons = pd.DataFrame({"playerID": ["a"], "yearID": [2001]})
    people = pd.DataFrame({"playerID": ["a", "a"], "nameFirst": ["Ann", "Ann"], "nameLast": ["Lee", "Lee"]})
    with pytest.raises(pd.errors.MergeError):
        attach_names(seasons, people)


def test_attach_names_builds_display_name():
    seasons = pd.DataFrame({"playerID": ["a", "z"], "yearID": [2001, 2001]})
    people = pd.DataFrame({"playerID": ["a"], "nameFirst": ["Ann"], "nameLast": ["Lee"]})
    out = attach_names(seasons, people)
    assert out["name"].tolist() == ["Ann Lee", ""]


def test_top_n_by_overall_group_and_qualifier():
    df = pd.DataFrame(
        {
            "yearID": [2000, 2000, 2001, 2001, 2001],
            "HR": [10, 30, 20, 20, 5],
            "AB": [100, 500, 400, 600, 50],
        }
    )
    assert top_n_by(df, "HR", 2)["HR"].tolist() == [30, 20]
    per_year = top_n_by(df, "HR", 1, by="yearID")
    assert per_year[["yearID", "HR"]].values.tolist() == [[2000, 30], [2001, 20]]
    # Ties keep input order.
    assert per_year["AB"].tolist() == [500, 400]
    assert top_n_by(df, "HR", 5, min_col="AB", min_value=300)["AB"].tolist() == [500, 400, 600]
    with pytest.raises(ValueError):
        top_n_by(df, "HR", 0)


def test_team_rates_and_pythagorean_wins():
    teams = pd.DataFrame({"yearID": [1987], "G": [162], "W": [90], "L": [72], "R": [800], "RA": [700]})
    out = add_team_rates(teams)
    assert out["run_diff"].iloc[0] == 100
    assert out["win_pct"].iloc[0] == pytest.approx(90 / 162)
    assert out["pyth_pct"].iloc[0] == pytest.approx(800**2 / (800**2 + 700**2))
    assert out["decade"].iloc[0] == 1980


def test_long_then_wide_restores_values():
    df = pd.DataFrame({"yearID": [2000, 2001], "teamID": ["A", "A"], "R": [700, 710], "HR": [150, 160]})
    long = to_long(df, ["yearID", "teamID"], ["R", "HR"])
    assert len(long) == 4
    assert set(long.columns) == {"yearID", "teamID", "stat", "value"}
    wide = to_wide(long, ["yearID", "teamID"], "stat", "value")
    assert wide.set_index("yearID")["R"].to_dict() == {2000: 700, 2001: 710}


def test_to_wide_rejects_duplicate_keys():
    long = pd.DataFrame({"id": [1, 1], "stat": ["R", "R"], "value": [1, 2]})
    with pytest.raises(ValueError):
        to_wide(long, "id", "stat", "value")


def test_count_by_sorts_descending():
    df = pd.DataFrame({"lg": ["AL", "NL", "NL"]})
    assert count_by(df, "lg").values.tolist() == [["NL", 2], ["AL", 1]]


def test_filter_years_bounds_are_inclusive():
    df = pd.DataFrame({"yearID": [1960, 1961, 1999, 2000]})
    assert filter_years(df, 1961, 1999)["yearID"].tolist() == [1961, 1999]


def test_standardize_lahman_columns_renames_extra_base_hits():
    df = pd.DataFrame(columns=["playerID", "2B", "3B", "HR"])
    assert standardize_lahman_columns(df).columns.tolist() == ["playerID", "X2B", "X3B", "HR"]


def test_normalize_column_names_detects_collisions():
    assert normalize_column_names(pd.DataFrame(columns=["yearID", "2B"])) == {"yearid": "yearID", "2b": "2B"}
    with pytest.raises(ValueError, match="collide"):
        normalize_column_names(pd.DataFrame(columns=["year ID", "YEAR_ID"]))


def test_coerce_categorical_fixed_levels():
    s = pd.Series([" r", "L", "", None, "x"])
    # Out-of-level codes are masked before the categorical is built, so no deprecation warning.
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        out = coerce_categorical(s, categories=["R", "L", "B"])
    assert out.cat.categories.tolist() == ["R", "L", "B"]
    assert out.isna().tolist() == [False, False, True, True, True]
    assert coerce_categorical(pd.Series(["b", "B"])).cat.categories.tolist() == ["B"]


def test_coerce_categorical_numeric_codes_get_prefixed_labels():
    out = coerce_categorical(pd.Series([1, 2, np.nan, 2.0]))
    assert out.cat.categories.tolist() == ["cat_1", "cat_2"]
    assert out.isna().tolist() == [False, False, True, False]
    assert out.iloc[3] == "cat_2"

    assert coerce_categorical(pd.Series([1.5]), prefix="lvl_").iloc[0] == "lvl_1.5"

    fixed = coerce_categorical(pd.Series([1, 3]), categories=["cat_1", "cat_2"])
    assert fixed.cat.categories.tolist() == ["cat_1", "cat_2"]
    assert fixed.isna().tolist() == [False, True]


def test_summarize_missingness_keeps_column_order():
    df = pd.DataFrame({"b": [1.0, np.nan], "a": ["x", "y"]})
    out = summarize_missingness(df)
    assert out["column"].tolist() == ["b", "a"]
    assert out["n_missing"].tolist() == [1, 0]
    assert out["missing_rate"].tolist() == [0.5, 0.0]


def _traded_player() -> pd.DataFrame:
    # Player "t" starts the season in the AL and finishes it in the NL.
    return pd.DataFrame(
        {
            "playerID": ["t", "t", "u"],
            "yearID": [2005, 2005, 2005],
            "stint": [1, 2, 1],
            "teamID": ["BOS", "ATL", "NYA"],
            "lgID": ["AL", "NL", "AL"],
            "AB": [300, 100, 200],
            "H": [90, 20, 50],
            "X2B": [10, 5, 10],
            "X3B": [0, 1, 2],
            "HR": [15, 2, 8],
            "BB": [30, 10, 20],
        }
    )


def test_league_year_summary_counts_each_stint_in_its_league():
    out = league_year_summary(_traded_player()).set_index("lgID")
    assert out.index.tolist() == ["AL", "NL"]
    assert out.loc["AL", "AB"] == 500
    assert out.loc["NL", "AB"] == 100
    assert out.loc["AL", "players"] == 2
    assert out.loc["NL", "players"] == 1
    assert out.loc["AL", "AVG"] == pytest.approx(140 / 500)
    assert out.loc["AL", "OBP"] == pytest.approx(190 / 550)
    assert out.loc["NL", "HR_per_AB"] == pytest.approx(2 / 100)


def test_league_year_summary_on_combined_seasons_loses_the_first_league():
    out = league_year_summary(combine_stints(_traded_player())).set_index("lgID")
    # Combined rows carry only the last stint's league.
    assert out.loc["NL", "AB"] == 400


def test_attach_salaries_sums_over_teams():
    seasons = pd.DataFrame({"playerID": ["t", "u", "v"], "yearID": [2005, 2005, 2005]})
    salaries = pd.DataFrame(
        {
            "playerID": ["t", "t", "u"],
            "yearID": [2005, 2005, 2005],
            "teamID": ["BOS", "ATL", "NYA"],
            "salary": [1_000_000, 250_000, 500_000],
        }
    )
    out = attach_salaries(seasons, salaries)
    assert len(out) == 3
    assert out["salary"].iloc[0] == 1_250_000
    assert out["salary"].iloc[1] == 500_000
    assert np.isnan(out["salary"].iloc[2])
