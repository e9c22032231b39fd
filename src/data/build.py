from typing import Optional, Tuple

import pandas as pd

from src.config import BATTING_COUNT_COLS, FEATURE_COLS, RATE_COLS, TARGET_COL
from src.data.coding import coerce_categorical, standardize_lahman_columns
from src.data.validate import assert_non_negative, assert_required_columns, assert_unique_key
from src.data.wrangle import (
    add_batting_rates,
    add_team_rates,
    attach_names,
    attach_salaries,
    combine_stints,
    fill_missing_counts,
    filter_years,
)


# Handedness codes: right, left, both (batting) and the rare switch thrower.
HANDEDNESS_LEVELS = ["R", "L", "B", "S"]

STINT_ID_COLS = ["playerID", "yearID", "stint", "teamID", "lgID"]
PLAYER_ID_COLS = ["playerID", "name", "yearID", "teamID", "lgID", "stints"]
TEAM_ID_COLS = ["yearID", "lgID", "teamID", "name", "decade"]
TEAM_DERIVED_COLS = ["win_pct", "run_diff", "pyth_pct", "pyth_W"]


def build_batting_stints(batting: pd.DataFrame, min_year: Optional[int] = None) -> pd.DataFrame:
    """Stint-level batting lines (one row per player, season and team) with rates.

    League totals are built from these rows so a player traded between leagues has
    each stint's at-bats counted in the league where they were taken.
    """

    batting = standardize_lahman_columns(batting)
    assert_required_columns(batting, STINT_ID_COLS + ["AB", "H", "X2B", "X3B", "HR", "BB"])
    assert_non_negative(batting, BATTING_COUNT_COLS)
    assert_unique_key(batting, ["playerID", "yearID", "stint"])

    count_cols = [c for c in BATTING_COUNT_COLS if c in batting.columns]
    stints = fill_missing_counts(batting, count_cols)
    if min_year is not None:
        stints = filter_years(stints, min_year=min_year)
    stints = add_batting_rates(stints)

    count_cols = [c for c in BATTING_COUNT_COLS if c in stints.columns]
    ordered = STINT_ID_COLS + count_cols + ["X1B"] + RATE_COLS
    return stints[ordered].sort_values(["yearID", "playerID", "stint"], kind="mergesort").reset_index(drop=True)


def build_player_seasons(
    batting: pd.DataFrame,
    people: pd.DataFrame,
    salaries: Optional[pd.DataFrame] = None,
    min_year: Optional[int] = None,
) -> pd.DataFrame:
    batting = standardize_lahman_columns(batting)
    assert_non_negative(batting, BATTING_COUNT_COLS)

    seasons = combine_stints(batting)
    if min_year is not None:
        seasons = filter_years(seasons, min_year=min_year)
    seasons = add_batting_rates(seasons)
    seasons = attach_names(seasons, people)
    if salaries is not None:
        seasons = attach_salaries(seasons, salaries)

    for col in ["bats", "throws"]:
        if col in seasons.columns:
            seasons[col] = coerce_categorical(seasons[col], categories=HANDEDNESS_LEVELS)

    assert_unique_key(seasons, ["playerID", "yearID"])

    count_cols = [c for c in BATTING_COUNT_COLS if c in seasons.columns]
    extra = [c for c in ["bats", "throws", "birthYear", "salary"] if c in seasons.columns]
    ordered = PLAYER_ID_COLS + count_cols + ["X1B"] + RATE_COLS + extra
    return seasons[ordered].sort_values(["yearID", "playerID"], kind="mergesort").reset_index(drop=True)


def build_team_seasons(teams: pd.DataFrame, min_year: Optional[int] = None) -> Tuple[pd.DataFrame, dict]:
    """Team-season modeling table plus a record of the filters that were applied."""

    teams = standardize_lahman_columns(teams)
    required = ["yearID", "lgID", "teamID", "G", "L"] + [TARGET_COL] + FEATURE_COLS
    assert_required_columns(teams, required)
    assert_unique_key(teams, ["yearID", "teamID"])

    decisions: dict = {
        "target": TARGET_COL,
        "features": list(FEATURE_COLS),
        "row_filters": [],
    }

    df = teams
    if min_year is not None:
        n_before = len(df)
        df = filter_years(df, min_year=min_year)
        decisions["row_filters"].append(
            {"rule": "min_year", "value": int(min_year), "dropped_rows": n_before - len(df)}
        )

    n_before = len(df)
    df = df.loc[df[TARGET_COL].notna()].reset_index(drop=True)
    decisions["row_filters"].append(
        {"rule": "drop_missing_target", "column": TARGET_COL, "dropped_rows": n_before - len(df)}
    )

    df = add_team_rates(df)
    df["lgID"] = df["lgID"].astype("string")

    id_cols = [c for c in TEAM_ID_COLS if c in df.columns]
    features = [c for c in FEATURE_COLS if c not in id_cols]
    ordered = id_cols + ["G", TARGET_COL, "L"] + features + TEAM_DERIVED_COLS
    table = df[ordered].sort_values(["yearID", "teamID"], kind="mergesort").reset_index(drop=True)
    return table, decisions
