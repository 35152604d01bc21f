# statlab/models/design.py
"""
Design matrices for a ``ModelSpec``.

Predictor matrices are built with patsy so that spline bases and factor
codings learned on the training table are reapplied unchanged when the
model is evaluated on a bootstrap resample or a held-out partition.
Outcomes are encoded by the family adapter, not by patsy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

import numpy as np
import pandas as pd
import patsy

from statlab.core.exceptions import (
    InsufficientLevelsError,
    MissingColumnError,
    MissingValueError,
    ModelFitError,
    RankDeficiencyError,
)
from statlab.models.spec import ModelSpec

logger = logging.getLogger(__name__)

INTERCEPT = "Intercept"

OutcomeEncoder = Callable[[pd.Series, Optional[tuple]], Tuple[pd.Series, Optional[tuple]]]


def is_categorical(s: pd.Series) -> bool:
    return (
        isinstance(s.dtype, pd.CategoricalDtype)
        or pd.api.types.is_object_dtype(s)
        or pd.api.types.is_string_dtype(s)
        or pd.api.types.is_bool_dtype(s)
    )


@dataclass(frozen=True)
class Design:
    """Encoded outcome plus predictor matrices for one table."""

    spec: ModelSpec
    y: pd.Series
    X: pd.DataFrame
    x_info: patsy.DesignInfo = field(repr=False)
    X_infl: Optional[pd.DataFrame] = None
    infl_info: Optional[patsy.DesignInfo] = field(default=None, repr=False)
    event: Optional[pd.Series] = None
    exposure: Optional[pd.Series] = None
    factor_levels: Dict[str, tuple] = field(default_factory=dict)
    outcome_levels: Optional[tuple] = None
    drop_intercept: bool = False

    @property
    def n_obs(self) -> int:
        return len(self.y)

    @property
    def predictor_columns(self) -> list:
        return [c for c in self.X.columns if c != INTERCEPT]

    @property
    def df_used(self) -> int:
        """Regression d.f. spent on predictors (intercepts excluded)."""
        n = len(self.predictor_columns)
        if self.X_infl is not None:
            n += len([c for c in self.X_infl.columns if c != INTERCEPT])
        return n


def _model_frame(table: pd.DataFrame, spec: ModelSpec) -> pd.DataFrame:
    cols = spec.columns()
    missing_cols = [c for c in cols if c not in table.columns]
    if missing_cols:
        raise MissingColumnError(missing_cols, step=spec.label)

    frame = table[cols].copy()
    counts = frame.isna().sum()
    counts = counts[counts > 0]
    if len(counts):
        raise MissingValueError({k: int(v) for k, v in counts.items()}, model_name=spec.label)
    return frame


def _factorise(frame: pd.DataFrame, columns) -> Dict[str, tuple]:
    """Turn categorical predictors into pandas Categoricals with only observed levels."""
    levels: Dict[str, tuple] = {}
    for c in columns:
        s = frame[c]
        if not is_categorical(s):
            continue
        if isinstance(s.dtype, pd.CategoricalDtype):
            cat = s.cat.remove_unused_categories()
        else:
            cat = s.astype("category")
        frame[c] = cat
        levels[c] = tuple(cat.cat.categories)
    return levels


def _check_levels(frame: pd.DataFrame, levels: Dict[str, tuple], spec: ModelSpec) -> None:
    for c, lv in levels.items():
        if len(lv) < 2:
            raise InsufficientLevelsError(c, list(lv), model_name=spec.label)


def _check_rank(X: pd.DataFrame, spec: ModelSpec) -> None:
    if X.shape[1] == 0:
        return
    rank = int(np.linalg.matrix_rank(X.to_numpy(dtype=float)))
    if rank < X.shape[1]:
        raise RankDeficiencyError(rank, X.shape[1], model_name=spec.label)


def _dmatrix(rhs: str, frame: pd.DataFrame, spec: ModelSpec) -> pd.DataFrame:
    try:
        return patsy.dmatrix(rhs, frame, NA_action="raise", return_type="dataframe")
    except patsy.PatsyError as e:
        raise ModelFitError(f"Could not build design matrix: {e}", model_name=spec.label) from e


def build_design(
    table: pd.DataFrame,
    spec: ModelSpec,
    encode_outcome: OutcomeEncoder,
    drop_intercept: bool = False,
) -> Design:
    """
    Build the training design for ``spec``.

    Raises:
        MissingColumnError: a referenced column is absent
        MissingValueError: a referenced column has missing values
        InsufficientLevelsError: a categorical predictor has < 2 levels
        RankDeficiencyError: the predictor matrix is not of full column rank
    """
    frame = _model_frame(table, spec)
    factor_cols = [c for c in (*spec.predictors, *spec.inflation_predictors) if c in frame.columns]
    levels = _factorise(frame, list(dict.fromkeys(factor_cols)))
    _check_levels(frame, levels, spec)

    y, outcome_levels = encode_outcome(frame[spec.outcome], None)

    X = _dmatrix(spec.rhs, frame, spec)
    x_info = X.design_info
    if drop_intercept and INTERCEPT in X.columns:
        X = X.drop(columns=INTERCEPT)
    _check_rank(X, spec)

    X_infl = infl_info = None
    if spec.family.value == "zip":
        X_infl = _dmatrix(spec.inflation_rhs, frame, spec)
        infl_info = X_infl.design_info
        _check_rank(X_infl, spec)

    event = frame[spec.event].astype(int) if spec.event else None
    exposure = frame[spec.exposure].astype(float) if spec.exposure else None
    if exposure is not None and (exposure <= 0).any():
        raise ModelFitError(f"Exposure column '{spec.exposure}' must be positive", model_name=spec.label)

    logger.debug("Design for %s: %d rows x %d columns", spec.label, X.shape[0], X.shape[1])
    return Design(
        spec=spec,
        y=y,
        X=X,
        x_info=x_info,
        X_infl=X_infl,
        infl_info=infl_info,
        event=event,
        exposure=exposure,
        factor_levels=levels,
        outcome_levels=outcome_levels,
        drop_intercept=drop_intercept,
    )


def rebuild_design(
    design: Design,
    table: pd.DataFrame,
    encode_outcome: OutcomeEncoder,
) -> Design:
    """
    Apply a training design (spline knots, factor codings, outcome
    levels) to another table with the same schema.
    """
    spec = design.spec
    frame = _model_frame(table, spec)
    for c, lv in design.factor_levels.items():
        values = frame[c].astype(object) if isinstance(frame[c].dtype, pd.CategoricalDtype) else frame[c]
        coded = pd.Categorical(values, categories=list(lv))
        unseen = pd.isna(coded) & pd.notna(values.to_numpy())
        if unseen.any():
            raise ModelFitError(
                f"Column '{c}' has levels not seen when fitting: "
                f"{sorted(map(str, pd.unique(values[unseen])))}",
                model_name=spec.label,
            )
        frame[c] = coded

    y, _ = encode_outcome(frame[spec.outcome], design.outcome_levels)

    try:
        X = patsy.build_design_matrices([design.x_info], frame, NA_action="raise", return_type="dataframe")[0]
        X_infl = None
        if design.infl_info is not None:
            X_infl = patsy.build_design_matrices(
                [design.infl_info], frame, NA_action="raise", return_type="dataframe"
            )[0]
    except patsy.PatsyError as e:
        raise ModelFitError(f"Could not rebuild design matrix: {e}", model_name=spec.label) from e

    if design.drop_intercept and INTERCEPT in X.columns:
        X = X.drop(columns=INTERCEPT)

    return Design(
        spec=spec,
        y=y,
        X=X,
        x_info=design.x_info,
        X_infl=X_infl,
        infl_info=design.infl_info,
        event=frame[spec.event].astype(int) if spec.event else None,
        exposure=frame[spec.exposure].astype(float) if spec.exposure else None,
        factor_levels=design.factor_levels,
        outcome_levels=design.outcome_levels,
        drop_intercept=design.drop_intercept,
    )
