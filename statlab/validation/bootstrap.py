# statlab/validation/bootstrap.py
"""
Optimism-corrected bootstrap validation.

For each replicate the model is refitted on a resample drawn with
replacement; every statistic is computed on that resample (training)
and on the original table (test). The mean difference is the optimism
and ``corrected = apparent - optimism``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from statlab.config.settings import settings
from statlab.core.exceptions import ModelFitError, ValidationRunError
from statlab.models.fitting import FittedModel
from statlab.models.survival import KaplanMeierFit
from statlab.utils.stats import MetricAggregator
from statlab.validation.result import ValidationResult

logger = logging.getLogger(__name__)

REFIT_ERRORS = (ModelFitError, np.linalg.LinAlgError, ValueError)


def _check_validatable(fitted) -> None:
    if isinstance(fitted, KaplanMeierFit):
        raise ValueError("Kaplan-Meier curves are descriptive and cannot be validated")
    if not isinstance(fitted, FittedModel):
        raise TypeError(f"Expected a FittedModel, got {type(fitted).__name__}")


def validate_bootstrap(
    fitted: FittedModel,
    table: pd.DataFrame,
    replicates: Optional[int] = None,
    seed: Optional[int] = None,
) -> ValidationResult:
    """
    Args:
        fitted: model fitted on ``table``
        table: the table the model was fitted on
        replicates: number of bootstrap resamples
        seed: random seed; the same seed and table give identical results

    Raises:
        ValueError: for Kaplan-Meier fits or fewer than one replicate
        ValidationRunError: when every replicate fails to refit
    """
    _check_validatable(fitted)
    replicates = settings.bootstrap_replicates if replicates is None else int(replicates)
    seed = settings.default_seed if seed is None else int(seed)
    if replicates < 1:
        raise ValueError("replicates must be at least 1")

    names = list(fitted.adapter.validation_statistics)
    data = table.reset_index(drop=True)
    n = len(data)
    apparent = fitted.evaluate(data)

    rng = np.random.default_rng(seed)
    optimism_rows: List[Dict[str, float]] = []
    n_failed = 0
    for b in range(replicates):
        idx = rng.integers(0, n, size=n)
        sample = data.iloc[idx].reset_index(drop=True)
        try:
            boot = fitted.refit(sample)
            train = boot.evaluate()
            test = boot.evaluate(data)
        except REFIT_ERRORS as e:
            n_failed += 1
            logger.debug("Bootstrap replicate %d of %s failed: %s", b, fitted.name, e)
            continue
        optimism_rows.append({k: train[k] - test[k] for k in names})

    if not optimism_rows:
        raise ValidationRunError(
            f"All {replicates} bootstrap replicates failed for {fitted.name}",
            details={"n_failed": n_failed},
        )
    if n_failed:
        logger.warning("%d of %d bootstrap replicates failed for %s", n_failed, replicates, fitted.name)

    summary = MetricAggregator(optimism_rows).get_summary()
    rows = []
    for k in names:
        optimism = summary[k]["mean"] if k in summary else float("nan")
        rows.append({
            "statistic": k,
            "apparent": apparent[k],
            "optimism": optimism,
            "corrected": apparent[k] - optimism,
            "n": summary.get(k, {}).get("count", 0),
        })

    return ValidationResult(
        method="bootstrap",
        model_name=fitted.name,
        seed=seed,
        replicates=replicates,
        n_failed=n_failed,
        table=pd.DataFrame(rows).set_index("statistic"),
        higher_is_better=fitted.adapter.validation_statistics,
    )
