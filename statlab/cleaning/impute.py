# statlab/cleaning/impute.py
"""
Predictive mean matching (PMM) for a single numeric column.

The column is regressed (OLS) on a set of complete predictors using the
observed rows. Every row then gets a predicted mean; each missing row is
filled with the *observed* value of one of its ``donors`` nearest
observed neighbours on that predicted mean, drawn with a seeded
generator. Imputed values are therefore always values that actually
occur in the data.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm

from statlab.core.exceptions import CleaningError, MissingColumnError

logger = logging.getLogger(__name__)


def _design(df: pd.DataFrame, predictors: Sequence[str]) -> pd.DataFrame:
    X = pd.get_dummies(df[list(predictors)], drop_first=True, dtype=float)
    return sm.add_constant(X, has_constant="add")


def pmm_impute(
    df: pd.DataFrame,
    column: str,
    predictors: Sequence[str],
    donors: int = 5,
    seed: int = 432,
) -> pd.Series:
    """
    Return ``df[column]`` with missing values filled by predictive mean matching.

    Raises:
        MissingColumnError: if the column or a predictor is absent
        CleaningError: if predictors have missing values or too few rows are observed
    """
    absent = [c for c in [column, *predictors] if c not in df.columns]
    if absent:
        raise MissingColumnError(absent, step="impute_pmm")
    if df[list(predictors)].isna().any().any():
        raise CleaningError(
            f"PMM predictors for '{column}' must be complete",
            details={"predictors": list(predictors)},
        )

    y = pd.to_numeric(df[column], errors="coerce")
    miss = y.isna().to_numpy()
    if not miss.any():
        return y

    X = _design(df, predictors)
    observed = ~miss
    if observed.sum() <= X.shape[1]:
        raise CleaningError(
            f"Too few observed values of '{column}' to impute",
            details={"observed": int(observed.sum()), "parameters": int(X.shape[1])},
        )

    fit = sm.OLS(y[observed].to_numpy(), X[observed].to_numpy()).fit()
    y_hat = X.to_numpy() @ fit.params

    obs_hat = y_hat[observed]
    obs_val = y[observed].to_numpy()
    k = max(1, min(int(donors), len(obs_val)))
    rng = np.random.default_rng(seed)

    filled = y.to_numpy(copy=True)
    for i in np.flatnonzero(miss):
        nearest = np.argsort(np.abs(obs_hat - y_hat[i]), kind="stable")[:k]
        filled[i] = obs_val[rng.choice(nearest)]

    logger.info("PMM imputed %d value(s) of '%s' from %d donors each", int(miss.sum()), column, k)
    return pd.Series(filled, index=df.index, name=column)
