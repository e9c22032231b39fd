from pathlib import Path
from typing import Optional

import pandas as pd

from src.config import DOC_COL, LINE_COL, RAW_TABLES, TEXT_COL


# Identifier columns stay strings even when a sample happens to look numeric.
_STRING_COLS = {"playerID", "teamID", "lgID", "franchID", "name", "nameFirst", "nameLast", "bats", "throws"}


def load_table(name: str, raw_dir: Path, nrows: Optional[int] = None) -> pd.DataFrame:
    if name not in RAW_TABLES:
        raise ValueError(f"Unknown table {name!r}; expected one of {sorted(RAW_TABLES)}")
    path = Path(raw_dir) / RAW_TABLES[name]
    if not path.exists():
        raise FileNotFoundError(f"Raw table not found: {path}")

    header = pd.read_csv(path, nrows=0).columns
    dtypes = {c: "string" for c in header if c in _STRING_COLS}
    return pd.read_csv(path, nrows=nrows, dtype=dtypes)


def load_corpus(path: Path, nrows: Optional[int] = None) -> pd.DataFrame:
    """Read the text corpus: one row per line of text, tagged with its document.

    A ``line`` column is added (1-based within each document) when the file does not
    carry one.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Corpus not found: {path}")

    df = pd.read_csv(path, nrows=nrows, dtype={DOC_COL: "string", TEXT_COL: "string"}, keep_default_na=False)
    missing = [c for c in (DOC_COL, TEXT_COL) if c not in df.columns]
    if missing:
        raise ValueError(f"Corpus is missing required columns: {missing}")

    if LINE_COL not in df.columns:
        df[LINE_COL] = df.groupby(DOC_COL, sort=False).cumcount() + 1
    return df
