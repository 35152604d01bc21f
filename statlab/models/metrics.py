# statlab/models/metrics.py
"""
Model performance statistics.

Pure compute over arrays: no fitting, no I/O. The family adapters call
these both for apparent (training) statistics and when evaluating a
fitted model on a resample or a held-out partition.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_poisson_deviance, mean_squared_error, r2_score

_EPS = 1e-15


def concordance_index(y, score) -> float:
    """
    Probability that, of two observations with different outcomes, the
    one with the higher outcome has the higher score (ties count 1/2).

    Works for binary and ordered outcomes; for a binary outcome this is
    the ROC AUC. Returns NaN when ``y`` has a single level.
    """
    y = np.asarray(y)
    s = np.asarray(score, dtype=float)
    levels = np.unique(y)
    if len(levels) < 2:
        return float("nan")

    concordant = 0.0
    pairs = 0.0
    lower = np.empty(0, dtype=float)
    for lv in levels:
        cur = s[y == lv]
        if lower.size:
            lower_sorted = np.sort(lower)
            below = np.searchsorted(lower_sorted, cur, side="left")
            tied = np.searchsorted(lower_sorted, cur, side="right") - below
            concordant += float(np.sum(below + 0.5 * tied))
            pairs += float(cur.size) * float(lower_sorted.size)
        lower = np.concatenate([lower, cur])
    return concordant / pairs


def somers_dxy(c_statistic: float) -> float:
    return 2.0 * c_statistic - 1.0


def one_vs_rest_concordance(codes, probs) -> float:
    """Mean one-vs-rest AUC over the classes present in ``codes``."""
    codes = np.asarray(codes)
    probs = np.asarray(probs, dtype=float)
    aucs = []
    for k in range(probs.shape[1]):
        is_k = (codes == k).astype(int)
        if 0 < is_k.sum() < len(is_k):
            aucs.append(concordance_index(is_k, probs[:, k]))
    return float(np.mean(aucs)) if aucs else float("nan")


def categorical_loglike(codes, probs) -> float:
    """Log-likelihood of integer-coded outcomes under predicted class probabilities."""
    codes = np.asarray(codes, dtype=int)
    probs = np.asarray(probs, dtype=float)
    p = probs[np.arange(len(codes)), codes]
    return float(np.sum(np.log(np.clip(p, _EPS, 1.0))))


def null_loglike(codes, n_levels: Optional[int] = None) -> float:
    """Log-likelihood of the intercept-only model: sum n_k log(n_k / n)."""
    counts = np.bincount(np.asarray(codes, dtype=int), minlength=n_levels or 0).astype(float)
    counts = counts[counts > 0]
    n = counts.sum()
    return float(np.sum(counts * np.log(counts / n)))


def nagelkerke_r2(llf: float, llnull: float, n: int) -> float:
    """Cox-Snell R² rescaled to a maximum of 1."""
    if n <= 0:
        return float("nan")
    cox_snell = 1.0 - np.exp(2.0 * (llnull - llf) / n)
    max_r2 = 1.0 - np.exp(2.0 * llnull / n)
    if max_r2 <= 0:
        return float("nan")
    return float(cox_snell / max_r2)


def brier_score(y, prob) -> float:
    y = np.asarray(y, dtype=float)
    prob = np.asarray(prob, dtype=float)
    return float(np.mean((prob - y) ** 2))


def regression_metrics(y_true, y_pred, n_features: Optional[int] = None) -> Dict[str, float]:
    """
    RMSE, MAE, median absolute error, R² and adjusted R².

    R² is computed against the mean of ``y_true``, so on a held-out
    partition it can be negative. Adjusted R² needs ``n_features`` and
    is NaN when n - p - 1 <= 0.
    """
    y_true = np.asarray(y_true, dtype=float).reshape(-1)
    y_pred = np.asarray(y_pred, dtype=float).reshape(-1)
    if y_true.shape != y_pred.shape:
        raise ValueError(f"y_true and y_pred shapes differ: {y_true.shape} vs {y_pred.shape}")

    n = y_true.size
    r2 = float(r2_score(y_true, y_pred)) if n > 1 else float("nan")
    r2_adj = float("nan")
    if n_features is not None and n - n_features - 1 > 0 and np.isfinite(r2):
        r2_adj = 1.0 - (1.0 - r2) * (n - 1) / (n - n_features - 1)

    return {
        "rmse": float(np.sqrt(mean_squared_error(y_true, y_pred))),
        "mae": float(mean_absolute_error(y_true, y_pred)),
        "median_ae": float(np.median(np.abs(y_true - y_pred))),
        "r2": r2,
        "r2_adjusted": float(r2_adj),
    }


def count_metrics(y_true, mean, p_zero) -> Dict[str, float]:
    """Fit statistics for count models: error on the mean, deviance, zero counts."""
    y_true = np.asarray(y_true, dtype=float)
    mean = np.asarray(mean, dtype=float)
    return {
        "rmse": float(np.sqrt(mean_squared_error(y_true, mean))),
        "mae": float(mean_absolute_error(y_true, mean)),
        "mean_deviance": float(mean_poisson_deviance(y_true, np.clip(mean, _EPS, None))),
        "observed_zeros": float(np.sum(y_true == 0)),
        "expected_zeros": float(np.sum(p_zero)),
    }
