from typing import Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, ShuffleSplit, StratifiedShuffleSplit


def quantile_strata(y: pd.Series, bins: int) -> Optional[np.ndarray]:
    """Bin a numeric outcome into quantile strata for stratified splitting.

    Returns None when stratification is not possible: fewer than two distinct bins or a
    bin with fewer than two rows (StratifiedShuffleSplit needs both).
    """

    if bins < 2:
        return None
    codes = pd.qcut(pd.Series(y).rank(method="first"), q=bins, labels=False, duplicates="drop")
    codes = np.asarray(codes, dtype=int)
    counts = np.bincount(codes)
    if counts.size < 2 or counts.min() < 2:
        return None
    return codes


def make_holdout_split(
    X, y, test_size: float, seed: int, strata_bins: int = 4
) -> Tuple[np.ndarray, np.ndarray]:
    if not 0.0 < test_size < 1.0:
        raise ValueError(f"test_size must be in (0, 1); got {test_size}")
    strata = quantile_strata(y, strata_bins)
    n_test = int(np.ceil(test_size * len(y)))
    if strata is not None and min(n_test, len(y) - n_test) < np.unique(strata).size:
        # Each stratum needs a row on both sides of the split.
        strata = None
    if strata is None:
        splitter = ShuffleSplit(n_splits=1, test_size=test_size, random_state=seed)
        train_idx, test_idx = next(splitter.split(X))
    else:
        splitter = StratifiedShuffleSplit(n_splits=1, test_size=test_size, random_state=seed)
        train_idx, test_idx = next(splitter.split(X, strata))
    return np.sort(train_idx), np.sort(test_idx)


def make_cv_folds(n_folds: int, seed: int) -> KFold:
    if n_folds < 2:
        raise ValueError(f"Cross-validation needs at least 2 folds; got {n_folds}")
    return KFold(n_splits=n_folds, shuffle=True, random_state=seed)


def assign_folds(X, folds: KFold) -> np.ndarray:
    fold_id = np.full(len(X), fill_value=-1, dtype=int)
    for f, (_, va) in enumerate(folds.split(X)):
        fold_id[va] = f
    if (fold_id < 0).any():
        raise RuntimeError("Failed to assign all training rows to CV folds.")
    return fold_id
