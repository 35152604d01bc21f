# statlab/analysis/correlation.py
"""
Feature correlation and VIF analysis module.

Provides correlation matrices (Spearman is the default for the skewed
health measures we deal with) and Variance Inflation Factors for
spotting collinear predictors before a model is fitted.

Example:
    from statlab.analysis.correlation import calculate_vif, calculate_correlation_matrix

    corr_matrix = calculate_correlation_matrix(df, method="spearman")
    vif_results = calculate_vif(df, features=["displ", "cylinders", "year"])
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd


def calculate_correlation_matrix(
    df: pd.DataFrame,
    method: str = "spearman",
    numeric_only: bool = True,
) -> pd.DataFrame:
    """
    Calculate correlation matrix for numeric features.

    Args:
        df: Input DataFrame
        method: Correlation method ("pearson", "spearman", or "kendall")
        numeric_only: Whether to include only numeric columns

    Returns:
        Correlation matrix as DataFrame
    """
    if method not in ("pearson", "spearman", "kendall"):
        raise ValueError(f"Unknown correlation method: {method}")
    if numeric_only:
        df = df.select_dtypes(include=[np.number])

    return df.corr(method=method)


def find_highly_correlated_pairs(
    corr_matrix: pd.DataFrame,
    threshold: float = 0.8,
) -> list[dict[str, Any]]:
    """
    Find pairs of features whose absolute correlation reaches ``threshold``.

    Returns:
        List of dictionaries, strongest pair first
    """
    pairs = []
    cols = corr_matrix.columns.tolist()

    for i, col1 in enumerate(cols):
        for col2 in cols[i + 1:]:
            corr = corr_matrix.loc[col1, col2]
            if pd.notna(corr) and abs(corr) >= threshold:
                pairs.append(
                    {
                        "feature_1": col1,
                        "feature_2": col2,
                        "correlation": float(corr),
                    }
                )

    pairs.sort(key=lambda x: abs(x["correlation"]), reverse=True)
    return pairs


def calculate_vif(
    df: pd.DataFrame,
    features: list[str] | None = None,
    threshold: float = 5.0,
) -> dict[str, Any]:
    """
    Calculate Variance Inflation Factor (VIF) for features.

    An intercept column is added to the design before computing VIFs,
    otherwise uncentred predictors such as model year look collinear
    with the constant. Categorical features are dummy coded and each
    dummy gets its own VIF. Features with VIF above ``threshold``
    (conventionally 5) are flagged for removal.

    Args:
        df: Input DataFrame
        features: List of features to analyze (numeric columns if None)
        threshold: VIF threshold for flagging

    Returns:
        Dictionary with VIF values and flagged features
    """
    from statsmodels.stats.outliers_influence import variance_inflation_factor

    if features is None:
        features = df.select_dtypes(include=[np.number]).columns.tolist()
    features = [f for f in features if f in df.columns]

    X = pd.get_dummies(df[features].dropna(), drop_first=True, dtype=float)

    if X.shape[1] < 2:
        return {
            "vif_values": {},
            "high_vif_features": [],
            "status": "pass",
            "error": "Need at least 2 features for VIF calculation",
        }

    if len(X) < X.shape[1] + 2:
        return {
            "vif_values": {},
            "high_vif_features": [],
            "status": "unknown",
            "error": "Insufficient data for VIF calculation",
        }

    X.insert(0, "Intercept", 1.0)
    values = X.to_numpy(dtype=float)

    vif_values = {}
    with np.errstate(divide="ignore", invalid="ignore"):
        for i, col in enumerate(X.columns):
            if col == "Intercept":
                continue
            vif = variance_inflation_factor(values, i)
            vif_values[col] = float(vif) if np.isfinite(vif) else float("inf")

    high_vif = [col for col, vif in vif_values.items() if not np.isnan(vif) and vif > threshold]

    return {
        "vif_values": vif_values,
        "high_vif_features": high_vif,
        "high_vif_count": len(high_vif),
        "threshold": threshold,
        "status": "warning" if high_vif else "pass",
    }
