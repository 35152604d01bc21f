# statlab/analysis/missingness.py
"""
Missing-data summaries.

Every analysis starts by looking at what is missing before deciding
between complete cases and imputation.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd


def missingness_table(df: pd.DataFrame, only_missing: bool = False) -> pd.DataFrame:
    """
    Per-column missing counts, most-missing first.

    Returns:
        DataFrame with columns ``variable``, ``n_missing``, ``pct_missing``
    """
    n = len(df)
    counts = df.isna().sum()
    out = pd.DataFrame({
        "variable": counts.index,
        "n_missing": counts.to_numpy(dtype=int),
        "pct_missing": (counts.to_numpy(dtype=float) / n * 100.0) if n else 0.0,
    })
    if only_missing:
        out = out[out["n_missing"] > 0]
    return out.sort_values(["n_missing", "variable"], ascending=[False, True], kind="stable").reset_index(drop=True)


def complete_case_count(df: pd.DataFrame, columns: Sequence[str] | None = None) -> int:
    """Rows with no missing value in ``columns`` (all columns when None)."""
    sub = df[list(columns)] if columns else df
    return int(sub.notna().all(axis=1).sum())


def missing_pattern_counts(df: pd.DataFrame) -> pd.DataFrame:
    """Frequency of each row-wise missingness pattern (True = missing)."""
    pattern = df.isna()
    cols = list(pattern.columns)
    counts = pattern.value_counts().rename("n_rows").reset_index()
    counts["n_missing_vars"] = counts[cols].sum(axis=1)
    return counts.sort_values("n_rows", ascending=False, kind="stable").reset_index(drop=True)
