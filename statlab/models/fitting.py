# statlab/models/fitting.py
"""
Model fitting entry point.

    fitted = fit_model(table, ModelSpec("logit", "obese", ["age", "sex"]))
    fitted.coefficients        # estimates, Wald CIs, odds ratios
    fitted.statistics          # c statistic, Dxy, Nagelkerke R², Brier, AIC, BIC
    fitted.evaluate(test_df)   # the same statistics on another table
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd
from scipy import stats

from statlab.config.settings import settings
from statlab.core.exceptions import ModelFitError
from statlab.models.budget import DfBudgetPolicy, check_budget, effective_sample_size
from statlab.models.design import Design, build_design, rebuild_design
from statlab.models.families import FamilyAdapter, get_adapter
from statlab.models.spec import Family, ModelSpec
from statlab.models.survival import KaplanMeierFit, fit_kaplan_meier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FittedModel:
    """An immutable fitted model plus the design it was fitted on."""

    spec: ModelSpec
    result: Any = field(repr=False)
    design: Design = field(repr=False)
    adapter: FamilyAdapter = field(repr=False)
    conf_level: float
    coefficients: pd.DataFrame = field(repr=False)
    statistics: Dict[str, float]
    n_effective: float
    df_budget: float

    @property
    def name(self) -> str:
        return self.spec.label

    @property
    def family(self) -> Family:
        return self.spec.family

    @property
    def n_obs(self) -> int:
        return self.design.n_obs

    @property
    def n_params(self) -> int:
        return self.adapter.n_params(self.result)

    @property
    def df_used(self) -> int:
        return self.design.df_used

    @property
    def loglike(self) -> float:
        return self.adapter.loglike(self.result)

    @property
    def summary_text(self) -> str:
        return self.adapter.summary_text(self.result)

    def design_for(self, table: pd.DataFrame) -> Design:
        """This model's design (same knots and codings) applied to ``table``."""
        return rebuild_design(self.design, table, self.adapter.encode_outcome)

    def predict(self, table: Optional[pd.DataFrame] = None) -> np.ndarray:
        """
        Fitted means (ols, poisson, zip), event probabilities (logit),
        class probabilities (ordinal, multinomial) or relative hazards (cox).
        """
        design = self.design if table is None else self.design_for(table)
        return self.adapter.predict(self.result, design)

    def evaluate(self, table: Optional[pd.DataFrame] = None) -> Dict[str, float]:
        design = self.design if table is None else self.design_for(table)
        return self.adapter.evaluate(self.result, design)

    def loglikeobs(self) -> np.ndarray:
        return np.asarray(self.adapter.loglikeobs(self.result, self.design), dtype=float)

    def refit(self, table: pd.DataFrame, enforce_budget: bool = False) -> "FittedModel":
        return fit_model(table, self.spec, conf_level=self.conf_level, enforce_budget=enforce_budget)

    def diagnostics(self) -> pd.DataFrame:
        """
        Per-observation residual diagnostics for linear models: fitted
        value, raw and internally studentized residual, leverage, Cook's
        distance and the normal quantile for a QQ plot.
        """
        if self.family is not Family.OLS:
            raise ValueError("Residual diagnostics are available for ols models only")
        influence = self.result.get_influence()
        student = np.asarray(influence.resid_studentized_internal, dtype=float)
        n = len(student)
        # R's ppoints()
        a = 3.0 / 8.0 if n <= 10 else 0.5
        ranks = stats.rankdata(student, method="ordinal")
        theoretical = stats.norm.ppf((ranks - a) / (n + 1 - 2 * a))
        return pd.DataFrame({
            "fitted": np.asarray(self.result.fittedvalues, dtype=float),
            "residual": np.asarray(self.result.resid, dtype=float),
            "studentized": student,
            "leverage": np.asarray(influence.hat_matrix_diag, dtype=float),
            "cooks_distance": np.asarray(influence.cooks_distance[0], dtype=float),
            "qq_theoretical": theoretical,
        }, index=self.design.X.index)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "family": self.family.value,
            "formula": self.spec.formula,
            "n_obs": self.n_obs,
            "n_params": self.n_params,
            "df_used": self.df_used,
            "df_budget": self.df_budget,
            "n_effective": self.n_effective,
            "statistics": dict(self.statistics),
            "coefficients": self.coefficients.to_dict(orient="records"),
        }


def fit_model(
    table: pd.DataFrame,
    spec: Union[ModelSpec, Dict[str, Any]],
    conf_level: Optional[float] = None,
    policy: Optional[DfBudgetPolicy] = None,
    enforce_budget: bool = True,
    **fit_options,
) -> Union[FittedModel, KaplanMeierFit]:
    """
    Fit ``spec`` on ``table`` (complete cases only).

    Kaplan-Meier specs return a ``KaplanMeierFit``; every other family
    returns a ``FittedModel``.

    Raises:
        MissingValueError, InsufficientLevelsError, RankDeficiencyError,
        DegreesOfFreedomError, ConvergenceError (all ``ModelFitError``)
    """
    if not isinstance(spec, ModelSpec):
        spec = ModelSpec.from_config(spec)
    conf_level = settings.conf_level if conf_level is None else float(conf_level)
    if not 0.0 < conf_level < 1.0:
        raise ValueError(f"conf_level must be in (0, 1), got {conf_level}")

    if spec.family is Family.KAPLAN_MEIER:
        return fit_kaplan_meier(table, spec.outcome, spec.event, strata=spec.strata,
                                conf_level=conf_level, name=spec.name)

    adapter = get_adapter(spec.family)
    design = build_design(table, spec, adapter.encode_outcome, drop_intercept=adapter.drop_intercept)

    policy = policy or DfBudgetPolicy.from_settings()
    n_eff = effective_sample_size(design.y, adapter.outcome_kind, event=design.event)
    if enforce_budget:
        budget = check_budget(design.df_used, n_eff, policy, model_name=spec.label)
    else:
        budget = policy.budget(n_eff)

    logger.info("Fitting %s on %d rows (%d predictor d.f., budget %.1f)",
                spec.label, design.n_obs, design.df_used, budget)
    result = adapter.fit(design, **fit_options)
    try:
        coefficients = adapter.coefficients(result, design, conf_level)
        statistics = adapter.statistics(result, design)
    except (ValueError, np.linalg.LinAlgError) as e:
        raise ModelFitError(f"Could not summarise fit: {e}", model_name=spec.label) from e

    return FittedModel(
        spec=spec,
        result=result,
        design=design,
        adapter=adapter,
        conf_level=conf_level,
        coefficients=coefficients,
        statistics={k: float(v) for k, v in statistics.items()},
        n_effective=n_eff,
        df_budget=budget,
    )
