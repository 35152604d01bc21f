# statlab/analysis/distribution.py
"""
Distribution summaries for numeric and categorical columns.
"""

from __future__ import annotations

from typing import Any, Dict

import numpy as np
import pandas as pd
from scipy import stats


def describe_numeric(df: pd.DataFrame) -> pd.DataFrame:
    """
    describe() for numeric columns plus skewness and the number of
    distinct values (handy for spotting count outcomes and coded factors).
    """
    num = df.select_dtypes(include=[np.number])
    if num.shape[1] == 0:
        return pd.DataFrame()
    desc = num.describe().T
    desc["skew"] = [float(stats.skew(num[c].dropna())) if num[c].notna().sum() > 2 else np.nan for c in num.columns]
    desc["n_distinct"] = num.nunique()
    desc["n_missing"] = num.isna().sum()
    return desc


def describe_categorical(df: pd.DataFrame, max_levels: int = 25) -> Dict[str, Dict[str, Any]]:
    """Level counts for categorical / text columns (at most ``max_levels`` each)."""
    out: Dict[str, Dict[str, Any]] = {}
    cat_cols = [
        c for c in df.columns
        if isinstance(df[c].dtype, pd.CategoricalDtype)
        or pd.api.types.is_object_dtype(df[c])
        or pd.api.types.is_string_dtype(df[c])
        or pd.api.types.is_bool_dtype(df[c])
    ]
    for c in cat_cols:
        counts = df[c].value_counts(dropna=False)
        out[c] = {
            "n_levels": int(df[c].nunique(dropna=True)),
            "counts": {str(k): int(v) for k, v in counts.head(max_levels).items()},
            "truncated": bool(len(counts) > max_levels),
        }
    return out


def describe_distribution(df: pd.DataFrame, max_levels: int = 25) -> Dict[str, Any]:
    return {
        "numeric": describe_numeric(df),
        "categorical": describe_categorical(df, max_levels=max_levels),
    }
