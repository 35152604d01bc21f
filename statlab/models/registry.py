from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Literal

from statlab.models.spec import Family

OutcomeKind = Literal["continuous", "binary", "ordinal", "multinomial", "count", "survival"]


@dataclass(frozen=True)
class FamilySpec:
    family: Family
    outcome_kind: OutcomeKind
    import_path: str                      # e.g., "statsmodels.api.OLS"
    description: str = ""
    fit_defaults: Dict[str, Any] = field(default_factory=dict)
    ratio_label: Optional[str] = None     # name of the exponentiated coefficient column
    # statistic -> higher is better; these are the ones validation reports on
    validation_statistics: Dict[str, bool] = field(default_factory=dict)


# -------------------- FAMILIES --------------------

_REGISTRY: Dict[Family, FamilySpec] = {
    Family.OLS: FamilySpec(
        family=Family.OLS,
        outcome_kind="continuous",
        import_path="statsmodels.api.OLS",
        description="Ordinary least squares linear regression",
        validation_statistics={"r2": True, "rmse": False, "mae": False},
    ),
    Family.LOGIT: FamilySpec(
        family=Family.LOGIT,
        outcome_kind="binary",
        import_path="statsmodels.api.Logit",
        description="Binary logistic regression",
        fit_defaults=dict(method="newton", maxiter=100, disp=False),
        ratio_label="odds_ratio",
        validation_statistics={"c_statistic": True, "dxy": True, "nagelkerke_r2": True, "brier": False},
    ),
    Family.ORDINAL: FamilySpec(
        family=Family.ORDINAL,
        outcome_kind="ordinal",
        import_path="statsmodels.miscmodels.ordinal_model.OrderedModel",
        description="Proportional-odds (cumulative logit) regression",
        fit_defaults=dict(method="bfgs", maxiter=1000, disp=False),
        ratio_label="odds_ratio",
        validation_statistics={"c_statistic": True, "dxy": True, "nagelkerke_r2": True},
    ),
    Family.MULTINOMIAL: FamilySpec(
        family=Family.MULTINOMIAL,
        outcome_kind="multinomial",
        import_path="statsmodels.api.MNLogit",
        description="Multinomial (baseline-category) logistic regression",
        fit_defaults=dict(method="newton", maxiter=200, disp=False),
        ratio_label="odds_ratio",
        validation_statistics={"c_statistic": True, "nagelkerke_r2": True},
    ),
    Family.POISSON: FamilySpec(
        family=Family.POISSON,
        outcome_kind="count",
        import_path="statsmodels.api.Poisson",
        description="Poisson regression for counts",
        fit_defaults=dict(method="newton", maxiter=200, disp=False),
        ratio_label="rate_ratio",
        validation_statistics={"rmse": False, "mae": False, "mean_deviance": False},
    ),
    Family.ZIP: FamilySpec(
        family=Family.ZIP,
        outcome_kind="count",
        import_path="statsmodels.discrete.count_model.ZeroInflatedPoisson",
        description="Zero-inflated Poisson regression (logit inflation)",
        fit_defaults=dict(method="bfgs", maxiter=2000, disp=False),
        ratio_label="rate_ratio",
        validation_statistics={"rmse": False, "mae": False, "mean_deviance": False},
    ),
    Family.COX: FamilySpec(
        family=Family.COX,
        outcome_kind="survival",
        import_path="lifelines.CoxPHFitter",
        description="Cox proportional hazards regression",
        ratio_label="hazard_ratio",
        validation_statistics={"c_statistic": True, "dxy": True},
    ),
    Family.KAPLAN_MEIER: FamilySpec(
        family=Family.KAPLAN_MEIER,
        outcome_kind="survival",
        import_path="lifelines.KaplanMeierFitter",
        description="Kaplan-Meier survival curves with log-rank test",
    ),
}


def list_families(outcome_kind: Optional[OutcomeKind] = None) -> Dict[Family, FamilySpec]:
    if outcome_kind:
        return {k: v for k, v in _REGISTRY.items() if v.outcome_kind == outcome_kind}
    return dict(_REGISTRY)


def get_family(family) -> FamilySpec:
    key = Family.parse(family)
    if key not in _REGISTRY:
        raise KeyError(f"Unknown model family: {family}")
    return _REGISTRY[key]


def _lazy_import(import_path: str) -> Callable[..., Any]:
    mod_name, cls_name = import_path.rsplit(".", 1)
    mod = __import__(mod_name, fromlist=[cls_name])
    return getattr(mod, cls_name)


def build_estimator(family, *args, **kwargs):
    """Instantiate the estimator class registered for ``family``."""
    spec = get_family(family)
    Cls = _lazy_import(spec.import_path)
    return Cls(*args, **kwargs)


def fit_options(family, **overrides) -> Dict[str, Any]:
    opts = dict(get_family(family).fit_defaults)
    opts.update({k: v for k, v in overrides.items() if v is not None})
    return opts


def infer_family_from_outcome(y, event=None) -> Family:
    import pandas as pd
    import numpy as np

    if event is not None:
        return Family.COX

    # Ordered categoricals are ordinal, other categoricals binary or multinomial
    if isinstance(y.dtype, pd.CategoricalDtype):
        n = int(y.nunique())
        if n <= 2:
            return Family.LOGIT
        return Family.ORDINAL if y.cat.ordered else Family.MULTINOMIAL

    if pd.api.types.is_bool_dtype(y):
        return Family.LOGIT

    y_num = pd.to_numeric(y, errors="coerce")
    valid = y_num.dropna()
    if len(valid) == 0 or valid.size < y.notna().sum():
        # text outcome
        return Family.LOGIT if int(y.nunique()) <= 2 else Family.MULTINOMIAL

    n = int(valid.nunique())
    if n <= 2:
        return Family.LOGIT
    if np.allclose(valid % 1, 0) and (valid >= 0).all():
        # Few distinct non-negative integers look like counts unless they are a short coded scale
        return Family.POISSON if n > 5 else Family.ORDINAL
    return Family.OLS
