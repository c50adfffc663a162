"""Fill gaps in survey and safety measures with a linear regression."""

from __future__ import annotations

import logging
from typing import Sequence

import pandas as pd
from sklearn.linear_model import LinearRegression

from krc.errors import AnalysisError

logger = logging.getLogger(__name__)


def impute_regression(
    frame: pd.DataFrame, targets: Sequence[str], predictors: Sequence[str]
) -> pd.DataFrame:
    """Return a copy of ``frame`` with each target predicted where it is missing.

    Each target gets its own model, fitted on the rows where the target and
    every predictor are present. Only rows whose predictors are all present
    are filled; every other null is left alone.
    """
    missing = [column for column in [*targets, *predictors] if column not in frame.columns]
    if missing:
        raise AnalysisError(f"Cannot impute, missing columns: {', '.join(missing)}")

    result = frame.copy()
    features = frame[list(predictors)].astype("float64")
    has_features = features.notna().all(axis=1)
    for target in targets:
        values = frame[target].astype("float64")
        train = has_features & values.notna()
        fill = has_features & values.isna()
        if not fill.any():
            continue
        if train.sum() <= len(predictors):
            logger.warning(
                "Skipping imputation of %s: %s complete rows for %s predictors",
                target,
                int(train.sum()),
                len(predictors),
            )
            continue
        model = LinearRegression().fit(features[train], values[train])
        predicted = pd.Series(model.predict(features[fill]), index=features.index[fill])
        result.loc[fill, target] = predicted.astype(result[target].dtype)
        logger.info("Imputed %s values of %s", int(fill.sum()), target)
    return result
