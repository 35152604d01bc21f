# statlab/selection/likelihood.py
"""
Likelihood-based comparisons of two fitted models.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np
from scipy import stats

from statlab.models.fitting import FittedModel


def _same_rows(a: FittedModel, b: FittedModel) -> None:
    if a.n_obs != b.n_obs:
        raise ValueError(f"Models were fitted on different numbers of rows ({a.n_obs} vs {b.n_obs})")


def likelihood_ratio_test(smaller: FittedModel, larger: FittedModel) -> Dict[str, Any]:
    """
    LR test of a model against a larger model that nests it.

    The caller is responsible for nesting (see ``is_nested``); the test
    only checks that both models were fitted on the same rows and that
    ``larger`` has more parameters.
    """
    _same_rows(smaller, larger)
    df = larger.n_params - smaller.n_params
    if df <= 0:
        raise ValueError(f"'{larger.name}' must have more parameters than '{smaller.name}'")
    statistic = max(0.0, 2.0 * (larger.loglike - smaller.loglike))
    return {
        "test": "likelihood_ratio",
        "model_a": smaller.name,
        "model_b": larger.name,
        "statistic": statistic,
        "df": float(df),
        "p_value": float(stats.chi2.sf(statistic, df)),
    }


def vuong_test(
    model_a: FittedModel,
    model_b: FittedModel,
    correction: Optional[str] = None,
    alpha: float = 0.05,
) -> Dict[str, Any]:
    """
    Vuong's test for non-nested models fitted to the same outcome.

    A positive statistic favours ``model_a``. ``correction`` may be
    ``"aic"`` or ``"bic"`` to penalise the extra parameters. The
    ``preferred`` entry names the favoured model, or None when the
    two-sided p-value is above ``alpha``.
    """
    _same_rows(model_a, model_b)
    la = model_a.loglikeobs()
    lb = model_b.loglikeobs()
    m = la - lb
    n = len(m)
    k_diff = model_a.n_params - model_b.n_params

    total = float(np.sum(m))
    if correction == "aic":
        total -= k_diff
    elif correction == "bic":
        total -= k_diff * np.log(n) / 2.0
    elif correction is not None:
        raise ValueError(f"Unknown correction '{correction}' (use 'aic', 'bic' or None)")

    sd = float(np.std(m, ddof=1))
    if sd == 0:
        raise ValueError("Per-observation log-likelihoods are identical; the test is undefined")
    statistic = total / (np.sqrt(n) * sd)
    p_value = float(2 * stats.norm.sf(abs(statistic)))

    preferred = None
    if p_value < alpha:
        preferred = model_a.name if statistic > 0 else model_b.name
    return {
        "test": "vuong",
        "model_a": model_a.name,
        "model_b": model_b.name,
        "statistic": float(statistic),
        "p_value": p_value,
        "correction": correction,
        "preferred": preferred,
    }
