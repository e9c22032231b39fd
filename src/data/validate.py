from typing import Iterable

import pandas as pd


def assert_required_columns(df, required: Iterable[str]) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def assert_unique_key(df: pd.DataFrame, key: Iterable[str]) -> None:
    key = list(key)
    assert_required_columns(df, key)
    n_dup = int(df.duplicated(subset=key).sum())
    if n_dup:
        raise ValueError(f"Key {key} is not unique: {n_dup} duplicated rows")


def assert_non_negative(df: pd.DataFrame, cols: Iterable[str]) -> None:
    bad = [c for c in cols if c in df.columns and (pd.to_numeric(df[c], errors="coerce") < 0).any()]
    if bad:
        raise ValueError(f"Negative values found in columns: {bad}")
