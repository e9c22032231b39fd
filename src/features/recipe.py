"""Preprocessing recipes: declarative feature steps fit on training data only.

A recipe is an unfitted ``ColumnTransformer``. Numeric predictors are imputed, stripped
of zero-variance columns and centered/scaled; nominal predictors are imputed with the
most frequent level and one-hot encoded. Levels unseen at fit time encode to all zeros.
"""

from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.compose import ColumnTransformer
from sklearn.feature_selection import VarianceThreshold
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler


def build_recipe(
    numeric_cols: Sequence[str],
    categorical_cols: Sequence[str] = (),
    *,
    impute: str = "median",
    normalize: bool = True,
    drop_zero_variance: bool = True,
) -> ColumnTransformer:
    if impute not in {"median", "mean"}:
        raise ValueError(f"Unsupported numeric imputation {impute!r}; expected 'median' or 'mean'")

    numeric_steps = [("imputer", SimpleImputer(strategy=impute))]
    if drop_zero_variance:
        numeric_steps.append(("zv", VarianceThreshold(threshold=0.0)))
    if normalize:
        numeric_steps.append(("normalize", StandardScaler()))

    categorical = Pipeline(
        steps=[
            ("imputer", SimpleImputer(strategy="most_frequent")),
            ("dummy", OneHotEncoder(handle_unknown="ignore", sparse_output=False)),
        ]
    )

    transformers = []
    if numeric_cols:
        transformers.append(("num", Pipeline(steps=numeric_steps), list(numeric_cols)))
    if categorical_cols:
        transformers.append(("cat", categorical, list(categorical_cols)))
    if not transformers:
        raise ValueError("No predictors selected: recipe would be empty.")

    return ColumnTransformer(transformers=transformers, remainder="drop", sparse_threshold=0.0)


def prepare_features(df: pd.DataFrame, numeric_cols: Sequence[str], categorical_cols: Sequence[str]) -> pd.DataFrame:
    """Select predictors with sklearn-friendly dtypes (float numerics, object nominals, np.nan for missing)."""

    missing = [c for c in list(numeric_cols) + list(categorical_cols) if c not in df.columns]
    if missing:
        raise ValueError(f"Missing predictor columns: {missing}")

    X = pd.DataFrame(index=df.index)
    for c in numeric_cols:
        X[c] = pd.to_numeric(df[c], errors="coerce").astype(float)
    for c in categorical_cols:
        X[c] = df[c].astype(object).where(df[c].notna(), np.nan)
    return X


def prep_and_bake(
    recipe: ColumnTransformer, train: pd.DataFrame, test: pd.DataFrame
) -> Tuple[ColumnTransformer, pd.DataFrame, pd.DataFrame]:
    """Fit ``recipe`` on ``train`` and apply it to both frames.

    Returns the fitted transformer and the two baked frames, whose columns are the
    recipe's output feature names.
    """

    prepped = clone(recipe).set_output(transform="pandas")
    baked_train = prepped.fit_transform(train)
    baked_test = prepped.transform(test)
    return prepped, baked_train, baked_test


def recipe_feature_names(prepped: ColumnTransformer) -> List[str]:
    return [str(c) for c in prepped.get_feature_names_out()]
