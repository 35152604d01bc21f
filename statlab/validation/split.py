# statlab/validation/split.py
"""
Split-sample validation: a single holdout partition or repeated k-fold
cross-validation. Partitions are stratified on categorical outcomes (and
on the event indicator for survival models).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd
from sklearn.model_selection import RepeatedKFold, RepeatedStratifiedKFold, train_test_split

from statlab.config.settings import settings
from statlab.core.exceptions import ValidationRunError
from statlab.models.families import get_adapter
from statlab.models.fitting import FittedModel, fit_model
from statlab.models.spec import Family, ModelSpec
from statlab.utils.stats import MetricAggregator
from statlab.validation.bootstrap import REFIT_ERRORS
from statlab.validation.result import ValidationResult

logger = logging.getLogger(__name__)

SpecLike = Union[ModelSpec, FittedModel, Mapping[str, Any]]


def _as_spec(model: SpecLike) -> ModelSpec:
    if isinstance(model, FittedModel):
        spec = model.spec
    elif isinstance(model, ModelSpec):
        spec = model
    else:
        spec = ModelSpec.from_config(model)
    if spec.family is Family.KAPLAN_MEIER:
        raise ValueError("Kaplan-Meier curves are descriptive and cannot be validated")
    return spec


def _strata(spec: ModelSpec, table: pd.DataFrame) -> Optional[pd.Series]:
    kind = get_adapter(spec.family).outcome_kind
    if kind in ("binary", "ordinal", "multinomial"):
        return table[spec.outcome].astype(str)
    if kind == "survival":
        return table[spec.event].astype(str)
    return None


def validate_holdout(
    model: SpecLike,
    table: pd.DataFrame,
    test_size: float = 0.3,
    seed: Optional[int] = None,
    stratified: bool = True,
) -> ValidationResult:
    """Fit on a training partition and evaluate on the held-out rows."""
    spec = _as_spec(model)
    seed = settings.default_seed if seed is None else int(seed)
    data = table.reset_index(drop=True)
    strata = _strata(spec, data) if stratified else None

    train, test = train_test_split(data, test_size=test_size, random_state=seed, stratify=strata)
    fitted = fit_model(train, spec, enforce_budget=False)
    training = fitted.evaluate()
    testing = fitted.evaluate(test)

    names = list(fitted.adapter.validation_statistics)
    frame = pd.DataFrame({
        "statistic": names,
        "training": [training[k] for k in names],
        "test": [testing[k] for k in names],
    }).set_index("statistic")
    frame["difference"] = frame["training"] - frame["test"]

    logger.info("Holdout validation of %s: %d training / %d test rows", spec.label, len(train), len(test))
    return ValidationResult(
        method="holdout",
        model_name=spec.label,
        seed=seed,
        replicates=1,
        n_failed=0,
        table=frame,
        higher_is_better=fitted.adapter.validation_statistics,
        details={"n_train": len(train), "n_test": len(test), "test_size": test_size},
    )


def validate_cv(
    model: SpecLike,
    table: pd.DataFrame,
    folds: int = 5,
    repeats: int = 1,
    seed: Optional[int] = None,
) -> ValidationResult:
    """Repeated k-fold cross-validation; fold statistics are summarised per statistic."""
    spec = _as_spec(model)
    seed = settings.default_seed if seed is None else int(seed)
    data = table.reset_index(drop=True)
    strata = _strata(spec, data)

    if strata is not None:
        splitter = RepeatedStratifiedKFold(n_splits=folds, n_repeats=repeats, random_state=seed)
    else:
        splitter = RepeatedKFold(n_splits=folds, n_repeats=repeats, random_state=seed)

    fold_rows: List[Dict[str, float]] = []
    n_failed = 0
    for i, (train_idx, test_idx) in enumerate(splitter.split(data, strata)):
        try:
            fitted = fit_model(data.iloc[train_idx], spec, enforce_budget=False)
            fold_rows.append(fitted.evaluate(data.iloc[test_idx]))
        except REFIT_ERRORS as e:
            n_failed += 1
            logger.debug("Fold %d of %s failed: %s", i, spec.label, e)

    if not fold_rows:
        raise ValidationRunError(f"Every cross-validation fold failed for {spec.label}", details={"n_failed": n_failed})

    adapter = get_adapter(spec.family)
    summary = MetricAggregator(fold_rows).get_frame()
    summary = summary.loc[[k for k in adapter.validation_statistics if k in summary.index]]
    return ValidationResult(
        method="cv",
        model_name=spec.label,
        seed=seed,
        replicates=folds * repeats,
        n_failed=n_failed,
        table=summary[["mean", "std", "median", "iqr", "count"]],
        higher_is_better=adapter.validation_statistics,
        details={"folds": folds, "repeats": repeats},
    )
