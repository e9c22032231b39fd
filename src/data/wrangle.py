"""Data-frame verbs for the Lahman batting/teams tables.

Each function takes and returns a ``pd.DataFrame`` and never mutates its input.
Rates follow the standard definitions used on baseball-reference:

- AVG = H / AB
- OBP = (H + BB + HBP) / (AB + BB + HBP + SF)
- SLG = TB / AB, with TB = 1B + 2*2B + 3*3B + 4*HR
- OPS = OBP + SLG

A zero denominator gives NaN (a player with no at-bats has no average).
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from src.config import BATTING_COUNT_COLS
from src.data.validate import assert_required_columns


# Counting stats that were not recorded in every era; missing means "none recorded".
_OPTIONAL_COUNT_COLS = ["IBB", "HBP", "SH", "SF", "GIDP", "CS", "SB", "SO", "RBI"]

Cols = Union[str, Sequence[str]]


def _as_list(cols: Optional[Cols]) -> List[str]:
    if cols is None:
        return []
    if isinstance(cols, str):
        return [cols]
    return list(cols)


def _safe_divide(num: pd.Series, den: pd.Series) -> pd.Series:
    num = num.astype(float)
    den = den.astype(float)
    return num / den.where(den != 0)


def fill_missing_counts(df: pd.DataFrame, cols: Optional[Iterable[str]] = None) -> pd.DataFrame:
    out = df.copy()
    cols = [c for c in (cols or _OPTIONAL_COUNT_COLS) if c in out.columns]
    for c in cols:
        out[c] = pd.to_numeric(out[c], errors="coerce").fillna(0)
    return out


def combine_stints(batting: pd.DataFrame) -> pd.DataFrame:
    """Collapse a player's stints into one row per player-season.

    Counting stats are summed; ``teamID``/``lgID`` take the team of the last stint and
    ``stints`` records how many teams the player appeared for.
    """

    assert_required_columns(batting, ["playerID", "yearID", "stint", "teamID", "lgID", "AB", "H"])
    count_cols = [c for c in BATTING_COUNT_COLS if c in batting.columns]

    df = fill_missing_counts(batting, count_cols)
    df = df.sort_values(["playerID", "yearID", "stint"], kind="mergesort")
    grouped = df.groupby(["playerID", "yearID"], sort=True)

    out = grouped[count_cols].sum()
    out["stints"] = grouped.size()
    out["teamID"] = grouped["teamID"].last()
    out["lgID"] = grouped["lgID"].last()
    out = out.reset_index()
    return out[["playerID", "yearID", "teamID", "lgID", "stints"] + count_cols]


def add_batting_rates(df: pd.DataFrame) -> pd.DataFrame:
    assert_required_columns(df, ["AB", "H", "X2B", "X3B", "HR", "BB"])
    out = fill_missing_counts(df, ["HBP", "SF"])
    if "HBP" not in out.columns:
        out["HBP"] = 0
    if "SF" not in out.columns:
        out["SF"] = 0

    out["X1B"] = out["H"] - out["X2B"] - out["X3B"] - out["HR"]
    total_bases = out["X1B"] + 2 * out["X2B"] + 3 * out["X3B"] + 4 * out["HR"]
    on_base = out["H"] + out["BB"] + out["HBP"]
    pa_for_obp = out["AB"] + out["BB"] + out["HBP"] + out["SF"]

    out["AVG"] = _safe_divide(out["H"], out["AB"])
    out["OBP"] = _safe_divide(on_base, pa_for_obp)
    out["SLG"] = _safe_divide(total_bases, out["AB"])
    out["OPS"] = out["OBP"] + out["SLG"]
    return out


def career_totals(batting: pd.DataFrame) -> pd.DataFrame:
    assert_required_columns(batting, ["playerID", "yearID", "AB", "H"])
    count_cols = [c for c in BATTING_COUNT_COLS if c in batting.columns]
    df = fill_missing_counts(batting, count_cols)

    grouped = df.groupby("playerID", sort=True)
    out = grouped[count_cols].sum()
    out["seasons"] = grouped["yearID"].nunique()
    out["first_year"] = grouped["yearID"].min()
    out["last_year"] = grouped["yearID"].max()
    out = out.reset_index()
    return add_batting_rates(out)


def attach_names(df: pd.DataFrame, people: pd.DataFrame) -> pd.DataFrame:
    """Left-join player biographical columns and add ``name`` ("First Last")."""

    assert_required_columns(df, ["playerID"])
    assert_required_columns(people, ["playerID", "nameFirst", "nameLast"])
    bio_cols = [c for c in ["playerID", "nameFirst", "nameLast", "bats", "throws", "birthYear"] if c in people.columns]

    # many_to_one guards the row count: a duplicated playerID in People raises.
    merged = df.merge(people[bio_cols], on="playerID", how="left", validate="many_to_one")
    first = merged["nameFirst"].fillna("").astype(str)
    last = merged["nameLast"].fillna("").astype(str)
    merged["name"] = (first + " " + last).str.strip()
    return merged


def attach_salaries(df: pd.DataFrame, salaries: pd.DataFrame) -> pd.DataFrame:
    assert_required_columns(df, ["playerID", "yearID"])
    assert_required_columns(salaries, ["playerID", "yearID", "salary"])
    per_season = salaries.groupby(["playerID", "yearID"], as_index=False)["salary"].sum()
    return df.merge(per_season, on=["playerID", "yearID"], how="left", validate="many_to_one")


def top_n_by(
    df: pd.DataFrame,
    col: str,
    n: int,
    by: Optional[Cols] = None,
    min_col: Optional[str] = None,
    min_value: Optional[float] = None,
) -> pd.DataFrame:
    """Rows with the ``n`` largest values of ``col``, optionally within each ``by`` group.

    ``min_col``/``min_value`` restrict the ranking to qualifying rows (e.g. AB >= 300).
    Ties keep input order.
    """

    if n <= 0:
        raise ValueError("n must be a positive integer")
    by = _as_list(by)
    assert_required_columns(df, [col] + by + _as_list(min_col))

    data = df.loc[df[col].notna()]
    if min_col is not None:
        data = data.loc[data[min_col] >= min_value]

    if not by:
        out = data.sort_values(col, ascending=False, kind="mergesort").head(n)
    else:
        out = data.sort_values(by + [col], ascending=[True] * len(by) + [False], kind="mergesort")
        out = out.groupby(by, sort=False).head(n)
    return out.reset_index(drop=True)


def league_year_summary(batting: pd.DataFrame) -> pd.DataFrame:
    assert_required_columns(batting, ["yearID", "lgID", "playerID", "AB", "H", "X2B", "X3B", "HR", "BB"])
    count_cols = [c for c in ["AB", "H", "X2B", "X3B", "HR", "BB", "HBP", "SF", "SO"] if c in batting.columns]
    df = fill_missing_counts(batting, count_cols)

    grouped = df.groupby(["yearID", "lgID"], sort=True)
    out = grouped[count_cols].sum()
    out["players"] = grouped["playerID"].nunique()
    out = add_batting_rates(out.reset_index())
    out["HR_per_AB"] = _safe_divide(out["HR"], out["AB"])
    return out


def add_team_rates(teams: pd.DataFrame) -> pd.DataFrame:
    assert_required_columns(teams, ["yearID", "G", "W", "L", "R", "RA"])
    out = teams.copy()
    out["win_pct"] = _safe_divide(out["W"], out["W"] + out["L"])
    out["run_diff"] = out["R"] - out["RA"]
    runs_sq = out["R"].astype(float) ** 2
    out["pyth_pct"] = _safe_divide(runs_sq, runs_sq + out["RA"].astype(float) ** 2)
    out["pyth_W"] = out["pyth_pct"] * out["G"]
    out["decade"] = (out["yearID"] // 10 * 10).astype(int)
    return out


def to_long(
    df: pd.DataFrame,
    id_cols: Cols,
    value_cols: Optional[Cols] = None,
    names_to: str = "stat",
    values_to: str = "value",
) -> pd.DataFrame:
    """pivot_longer: one row per (id, stat) pair."""

    id_cols = _as_list(id_cols)
    assert_required_columns(df, id_cols)
    value_cols = _as_list(value_cols) or [c for c in df.columns if c not in id_cols]
    assert_required_columns(df, value_cols)
    return df.melt(id_vars=id_cols, value_vars=value_cols, var_name=names_to, value_name=values_to)


def to_wide(df: pd.DataFrame, id_cols: Cols, names_from: str, values_from: str) -> pd.DataFrame:
    """pivot_wider: the inverse of ``to_long``. Duplicate (id, name) pairs raise ValueError."""

    id_cols = _as_list(id_cols)
    assert_required_columns(df, id_cols + [names_from, values_from])
    wide = df.pivot(index=id_cols, columns=names_from, values=values_from).reset_index()
    wide.columns.name = None
    return wide


def count_by(df: pd.DataFrame, cols: Cols, sort: bool = True) -> pd.DataFrame:
    cols = _as_list(cols)
    assert_required_columns(df, cols)
    out = df.groupby(cols, dropna=False, sort=True).size().reset_index(name="n")
    if sort:
        out = out.sort_values("n", ascending=False, kind="mergesort").reset_index(drop=True)
    return out


def filter_years(df: pd.DataFrame, min_year: Optional[int] = None, max_year: Optional[int] = None) -> pd.DataFrame:
    assert_required_columns(df, ["yearID"])
    mask = np.ones(len(df), dtype=bool)
    if min_year is not None:
        mask &= (df["yearID"] >= min_year).to_numpy()
    if max_year is not None:
        mask &= (df["yearID"] <= max_year).to_numpy()
    return df.loc[mask].reset_index(drop=True)
