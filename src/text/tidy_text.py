"""Tidy text: one token per row, then counts, tf-idf and lexicon sentiment with pandas.

Tokenization reuses scikit-learn's vectorizer analyzers so that lowercasing,
punctuation handling and n-gram construction match what a ``CountVectorizer`` would
see when the same corpus is modeled later.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS, CountVectorizer

from src.config import DOC_COL, LINE_COL, TEXT_COL
from src.data.validate import assert_required_columns

# Words of one or more characters; inner apostrophes stay ("don't", "o'clock").
TOKEN_PATTERN = r"(?u)\b\w[\w']*\b"


def _analyzer(token: str, n: int):
    if token == "words":
        return CountVectorizer(token_pattern=TOKEN_PATTERN, lowercase=True).build_analyzer()
    if token == "ngrams":
        if n < 2:
            raise ValueError("ngrams need n >= 2")
        return CountVectorizer(token_pattern=TOKEN_PATTERN, lowercase=True, ngram_range=(n, n)).build_analyzer()
    raise ValueError(f"Unknown token type {token!r}; expected 'words' or 'ngrams'")


def unnest_tokens(
    df: pd.DataFrame,
    *,
    text_col: str = TEXT_COL,
    doc_col: str = DOC_COL,
    line_col: str = LINE_COL,
    token: str = "words",
    n: int = 2,
    output: Optional[str] = None,
) -> pd.DataFrame:
    assert_required_columns(df, [text_col, doc_col, line_col])
    output = output or ("word" if token == "words" else "ngram")
    analyzer = _analyzer(token, n)

    tokens = df[text_col].fillna("").astype(str).map(analyzer)
    out = df[[doc_col, line_col]].assign(**{output: tokens}).explode(output)
    out = out.loc[out[output].notna()].reset_index(drop=True)
    out[output] = out[output].astype(str)
    return out


def stop_words(extra: Iterable[str] = ()) -> frozenset:
    return frozenset(ENGLISH_STOP_WORDS) | frozenset(w.lower() for w in extra)


def remove_stop_words(tokens: pd.DataFrame, col: str = "word", extra: Iterable[str] = ()) -> pd.DataFrame:
    """Drop tokens that are stop words; an n-gram is dropped if any of its words is one."""

    assert_required_columns(tokens, [col])
    stops = stop_words(extra)
    keep = tokens[col].map(lambda t: not any(w in stops for w in t.split(" ")))
    return tokens.loc[keep.astype(bool)].reset_index(drop=True)


def count_words(
    tokens: pd.DataFrame, col: str = "word", by: Optional[Union[str, Sequence[str]]] = None
) -> pd.DataFrame:
    by_cols: List[str] = [] if by is None else ([by] if isinstance(by, str) else list(by))
    assert_required_columns(tokens, by_cols + [col])
    counts = tokens.groupby(by_cols + [col], sort=False).size().reset_index(name="n")
    return counts.sort_values(
        by_cols + ["n", col], ascending=[True] * len(by_cols) + [False, True], kind="mergesort"
    ).reset_index(drop=True)


def bind_tf_idf(counts: pd.DataFrame, term: str = "word", document: str = DOC_COL, n: str = "n") -> pd.DataFrame:
    """Add ``tf``, ``idf`` and ``tf_idf`` columns to a term-document count table.

    tf is the term's share of its document's tokens; idf is ln(#documents / #documents
    containing the term), so terms present in every document score zero.
    """

    assert_required_columns(counts, [term, document, n])
    out = counts.copy()
    total = out.groupby(document)[n].transform("sum")
    out["tf"] = out[n] / total
    n_docs = out[document].nunique()
    docs_with_term = out.groupby(term)[document].transform("nunique")
    out["idf"] = np.log(n_docs / docs_with_term)
    out["tf_idf"] = out["tf"] * out["idf"]
    return out


def sentiment_by_chunk(
    tokens: pd.DataFrame,
    lexicon: pd.DataFrame,
    *,
    chunk_lines: int,
    col: str = "word",
    doc_col: str = DOC_COL,
    line_col: str = LINE_COL,
) -> pd.DataFrame:
    """Net sentiment per block of ``chunk_lines`` lines: positive minus negative matches."""

    if chunk_lines < 1:
        raise ValueError("chunk_lines must be >= 1")
    assert_required_columns(tokens, [col, doc_col, line_col])
    assert_required_columns(lexicon, ["word", "sentiment"])

    joined = tokens.merge(lexicon.rename(columns={"word": col}), on=col, how="inner")
    if joined.empty:
        return pd.DataFrame(columns=[doc_col, "index", "negative", "positive", "sentiment"])
    joined["index"] = joined[line_col].astype(int) // chunk_lines

    counts = joined.groupby([doc_col, "index", "sentiment"]).size().unstack(fill_value=0)
    counts = counts.reindex(columns=["negative", "positive"], fill_value=0).reset_index()
    counts.columns.name = None
    counts["sentiment"] = counts["positive"] - counts["negative"]
    return counts.sort_values([doc_col, "index"], kind="mergesort").reset_index(drop=True)
