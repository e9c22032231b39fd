"""Column naming and coding helpers for raw Lahman exports."""

from __future__ import annotations

import re
from typing import Dict, Optional, Sequence

import pandas as pd


# Some Lahman exports name the extra-base-hit columns "2B"/"3B"; the syntactic names
# used throughout this package are X2B/X3B.
_LAHMAN_ALIASES = {"2b": "X2B", "3b": "X3B", "x2b": "X2B", "x3b": "X3B"}


def _key(name: str) -> str:
    return re.sub(r"[^0-9a-z]+", "_", str(name).lower()).strip("_")


def normalize_column_names(df: pd.DataFrame) -> Dict[str, str]:
    """Map a case/punctuation-insensitive key to each exact column name.

    Two columns that share a key (``"year ID"`` and ``"YEAR_ID"``) make the lookup
    ambiguous and raise ValueError.
    """

    keys = pd.Series([_key(c) for c in df.columns], index=df.columns.astype(str))
    dupes = keys[keys.duplicated(keep=False)]
    if not dupes.empty:
        clashes = {k: sorted(dupes.index[dupes == k]) for k in sorted(set(dupes))}
        raise ValueError(f"Column names collide after normalization: {clashes}")
    return dict(zip(keys.tolist(), keys.index.tolist()))


def standardize_lahman_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename known Lahman column aliases (e.g. ``2B``) to their canonical names."""

    mapping = normalize_column_names(df)
    renames = {mapping[k]: canon for k, canon in _LAHMAN_ALIASES.items() if k in mapping and mapping[k] != canon}
    return df.rename(columns=renames)


def coerce_categorical(
    series: pd.Series,
    categories: Optional[Sequence[str]] = None,
    *,
    prefix: str = "cat_",
) -> pd.Series:
    """Categorical codes; blanks become missing.

    Numeric codes map to ``f"{prefix}{n}"`` (``1.0`` -> ``cat_1``) so a model never
    reads them as ordered. String codes are trimmed and upper-cased. With
    ``categories`` the level set is fixed (values outside it become missing), so
    handedness columns keep the same levels whatever subset of players is loaded.
    """

    if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
        values = pd.to_numeric(series, errors="coerce").astype(float)
        labels = [
            pd.NA if pd.isna(v) else f"{prefix}{int(v)}" if v.is_integer() else f"{prefix}{v}"
            for v in values
        ]
        s = pd.Series(labels, index=series.index, name=series.name, dtype="string")
    else:
        s = series.astype("string").str.strip().str.upper()
        s = s.replace("", pd.NA)
    if categories is None:
        return s.astype("category")
    s = s.where(s.isin(list(categories)))
    return pd.Series(pd.Categorical(s, categories=list(categories)), index=series.index, name=series.name)


def summarize_missingness(df: pd.DataFrame) -> pd.DataFrame:
    """One row per column (input order): dtype, ``n``, ``n_missing``, ``missing_rate``."""

    n_missing = df.isna().sum()
    out = pd.DataFrame(
        {
            "column": df.columns.astype(str),
            "dtype": df.dtypes.astype(str).to_numpy(),
            "n": len(df),
            "n_missing": n_missing.to_numpy(dtype=int),
        }
    )
    out["missing_rate"] = (out["n_missing"] / len(df)).round(6) if len(df) else float("nan")
    return out
