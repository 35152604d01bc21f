# statlab/models/families.py
"""
Per-family fitting adapters.

Each adapter knows how to encode the outcome for its family, fit the
registered estimator on a ``Design``, lay out a coefficient table and
compute the family's statistics on any design built from the same
training design. Predictions are computed from the coefficients rather
than through the estimator so that they only depend on the design
matrices.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from scipy.special import expit

from statlab.core.exceptions import ConvergenceError, InsufficientLevelsError, ModelFitError
from statlab.models import metrics
from statlab.models.design import INTERCEPT, Design, is_categorical
from statlab.models.registry import FamilySpec, build_estimator, fit_options, get_family
from statlab.models.spec import Family

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def wald_table(
    names,
    estimate,
    std_err,
    conf_level: float,
    df_resid: Optional[float] = None,
    ratio_label: Optional[str] = None,
    exponentiate=None,
) -> pd.DataFrame:
    """
    Coefficient table with Wald statistics and confidence limits.

    Uses the t distribution when ``df_resid`` is given, the normal
    otherwise. ``exponentiate`` is a boolean mask of rows that get the
    ratio columns (intercepts and thresholds are left blank).
    """
    est = np.asarray(estimate, dtype=float)
    se = np.asarray(std_err, dtype=float)
    alpha = 1.0 - conf_level
    with np.errstate(divide="ignore", invalid="ignore"):
        stat = est / se
    if df_resid is not None:
        q = stats.t.ppf(1 - alpha / 2, df_resid)
        p = 2 * stats.t.sf(np.abs(stat), df_resid)
    else:
        q = stats.norm.ppf(1 - alpha / 2)
        p = 2 * stats.norm.sf(np.abs(stat))

    table = pd.DataFrame({
        "term": list(names),
        "estimate": est,
        "std_err": se,
        "statistic": stat,
        "p_value": p,
        "ci_low": est - q * se,
        "ci_high": est + q * se,
    })
    if ratio_label:
        mask = np.ones(len(est), dtype=bool) if exponentiate is None else np.asarray(exponentiate, dtype=bool)
        table[ratio_label] = np.where(mask, np.exp(est), np.nan)
        table["ratio_ci_low"] = np.where(mask, np.exp(table["ci_low"]), np.nan)
        table["ratio_ci_high"] = np.where(mask, np.exp(table["ci_high"]), np.nan)
    return table


def observed_levels(y: pd.Series) -> tuple:
    if isinstance(y.dtype, pd.CategoricalDtype):
        present = set(y.dropna())
        return tuple(c for c in y.cat.categories if c in present)
    return tuple(sorted(pd.unique(y.dropna())))


def encode_levels(y: pd.Series, levels: tuple, model_name: Optional[str] = None) -> np.ndarray:
    codes = pd.Categorical(y.to_numpy(dtype=object), categories=list(levels)).codes
    if (codes < 0).any():
        unseen = sorted(map(str, pd.unique(y[codes < 0])))
        raise ModelFitError(f"Outcome '{y.name}' has levels not seen when fitting: {unseen}", model_name=model_name)
    return codes.astype(int)


def numeric_outcome(y: pd.Series, model_name: Optional[str] = None) -> pd.Series:
    if is_categorical(y) and not pd.api.types.is_bool_dtype(y):
        raise ModelFitError(f"Outcome '{y.name}' must be numeric for this family", model_name=model_name)
    return y.astype(float)


def mle_converged(result, n_obs: int) -> bool:
    """Optimizer flag, falling back to a small largest absolute score per observation."""
    retvals = getattr(result, "mle_retvals", None) or {}
    if retvals.get("converged", True):
        return True
    try:
        grad = np.asarray(result.model.score(np.asarray(result.params)), dtype=float)
    except (AttributeError, NotImplementedError, ValueError):
        return False
    return bool(np.all(np.isfinite(grad)) and np.max(np.abs(grad)) / max(n_obs, 1) < 1e-4)


def categorical_summary(codes, probs, n_levels: int) -> Tuple[float, float]:
    """(log-likelihood, Nagelkerke R²) for integer-coded outcomes."""
    llf = metrics.categorical_loglike(codes, probs)
    llnull = metrics.null_loglike(codes, n_levels)
    return llf, metrics.nagelkerke_r2(llf, llnull, len(codes))


# ----------------------------------------------------------------------
# Adapters
# ----------------------------------------------------------------------

class FamilyAdapter:
    """Base adapter; subclasses implement fit and the statistics."""

    family: Family
    drop_intercept: bool = False

    @property
    def spec(self) -> FamilySpec:
        return get_family(self.family)

    @property
    def outcome_kind(self) -> str:
        return self.spec.outcome_kind

    @property
    def validation_statistics(self) -> Dict[str, bool]:
        return dict(self.spec.validation_statistics)

    # -- outcome -------------------------------------------------------
    def encode_outcome(self, y: pd.Series, levels: Optional[tuple] = None) -> Tuple[pd.Series, Optional[tuple]]:
        return numeric_outcome(y), None

    # -- fitting -------------------------------------------------------
    def fit(self, design: Design, **options) -> Any:
        raise NotImplementedError

    def _fit_estimator(self, design: Design, estimator, fatal_warnings: Tuple[type, ...] = (), **options):
        opts = fit_options(self.family, **options)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                result = estimator.fit(**opts)
            except np.linalg.LinAlgError as e:
                raise ConvergenceError(f"Fit failed: {e}", model_name=design.spec.label) from e
        for w in caught:
            if fatal_warnings and issubclass(w.category, fatal_warnings):
                raise ConvergenceError(str(w.message), model_name=design.spec.label)
            logger.debug("%s: %s", design.spec.label, w.message)
        if not mle_converged(result, design.n_obs):
            raise ConvergenceError(
                f"{self.family.value} fit did not converge",
                model_name=design.spec.label,
                details={"retvals": getattr(result, "mle_retvals", None)},
            )
        return result

    # -- results -------------------------------------------------------
    def params(self, result) -> pd.Series:
        return pd.Series(np.asarray(result.params, dtype=float), index=list(result.model.exog_names))

    def coefficients(self, result, design: Design, conf_level: float) -> pd.DataFrame:
        params = self.params(result)
        bse = np.asarray(result.bse, dtype=float)
        return wald_table(
            params.index, params.to_numpy(), bse, conf_level,
            ratio_label=self.spec.ratio_label,
            exponentiate=[t != INTERCEPT for t in params.index],
        )

    def n_params(self, result) -> int:
        return int(np.size(np.asarray(result.params)))

    def loglike(self, result) -> float:
        return float(result.llf)

    def loglikeobs(self, result, design: Design) -> np.ndarray:
        raise ValueError(f"Per-observation log-likelihood is not available for {self.family.value}")

    def predict(self, result, design: Design) -> np.ndarray:
        raise NotImplementedError

    def evaluate(self, result, design: Design) -> Dict[str, float]:
        raise NotImplementedError

    def statistics(self, result, design: Design) -> Dict[str, float]:
        out = self.evaluate(result, design)
        out.update({
            "aic": float(result.aic),
            "bic": float(result.bic),
            "loglike": self.loglike(result),
        })
        return out

    def summary_text(self, result) -> str:
        try:
            return str(result.summary())
        except (AttributeError, ValueError, NotImplementedError) as e:
            return f"Summary unavailable: {e}"


class OLSAdapter(FamilyAdapter):
    family = Family.OLS

    def fit(self, design: Design, **options):
        return build_estimator(self.family, design.y, design.X).fit()

    def coefficients(self, result, design: Design, conf_level: float) -> pd.DataFrame:
        params = self.params(result)
        return wald_table(params.index, params.to_numpy(), np.asarray(result.bse), conf_level,
                          df_resid=float(result.df_resid))

    def predict(self, result, design: Design) -> np.ndarray:
        return design.X.to_numpy(dtype=float) @ self.params(result).to_numpy()

    def loglikeobs(self, result, design: Design) -> np.ndarray:
        resid = design.y.to_numpy(dtype=float) - self.predict(result, design)
        sigma2 = float(np.sum(resid ** 2) / len(resid))
        return -0.5 * np.log(2 * np.pi * sigma2) - resid ** 2 / (2 * sigma2)

    def n_params(self, result) -> int:
        # residual variance counts as a parameter
        return super().n_params(result) + 1

    def evaluate(self, result, design: Design) -> Dict[str, float]:
        m = metrics.regression_metrics(design.y, self.predict(result, design))
        return {"r2": m["r2"], "rmse": m["rmse"], "mae": m["mae"]}

    def statistics(self, result, design: Design) -> Dict[str, float]:
        out = super().statistics(result, design)
        out.update({
            "r2": float(result.rsquared),
            "adj_r2": float(result.rsquared_adj),
            "sigma": float(np.sqrt(result.scale)),
            "f_statistic": float(result.fvalue) if result.df_model > 0 else float("nan"),
            "f_p_value": float(result.f_pvalue) if result.df_model > 0 else float("nan"),
        })
        return out


class LogitAdapter(FamilyAdapter):
    family = Family.LOGIT

    def encode_outcome(self, y, levels=None):
        if levels is None:
            levels = observed_levels(y)
            if len(levels) < 2:
                raise InsufficientLevelsError(str(y.name), levels)
            if len(levels) > 2:
                raise ModelFitError(f"Binary outcome '{y.name}' has {len(levels)} levels: {list(levels)}")
        # the second level is the modelled event, as in R's factor coding
        return pd.Series(encode_levels(y, levels).astype(float), index=y.index, name=y.name), tuple(levels)

    def fit(self, design: Design, **options):
        from statsmodels.tools.sm_exceptions import PerfectSeparationError, PerfectSeparationWarning

        estimator = build_estimator(self.family, design.y, design.X)
        try:
            return self._fit_estimator(design, estimator, fatal_warnings=(PerfectSeparationWarning,), **options)
        except PerfectSeparationError as e:
            raise ConvergenceError(f"Perfect separation: {e}", model_name=design.spec.label) from e

    def linear_predictor(self, result, design: Design) -> np.ndarray:
        return design.X.to_numpy(dtype=float) @ self.params(result).to_numpy()

    def predict(self, result, design: Design) -> np.ndarray:
        return expit(self.linear_predictor(result, design))

    def loglikeobs(self, result, design: Design) -> np.ndarray:
        y = design.y.to_numpy(dtype=float)
        p = np.clip(self.predict(result, design), 1e-15, 1 - 1e-15)
        return y * np.log(p) + (1 - y) * np.log(1 - p)

    def evaluate(self, result, design: Design) -> Dict[str, float]:
        y = design.y.to_numpy(dtype=int)
        lp = self.linear_predictor(result, design)
        prob = expit(lp)
        c = metrics.concordance_index(y, lp)
        probs = np.column_stack([1 - prob, prob])
        _, r2 = categorical_summary(y, probs, 2)
        return {
            "c_statistic": c,
            "dxy": metrics.somers_dxy(c),
            "nagelkerke_r2": r2,
            "brier": metrics.brier_score(y, prob),
        }

    def statistics(self, result, design: Design) -> Dict[str, float]:
        out = super().statistics(result, design)
        out["n_events"] = float(design.y.sum())
        out["lr_statistic"] = float(result.llr)
        out["lr_p_value"] = float(result.llr_pvalue)
        return out


class OrdinalAdapter(FamilyAdapter):
    """Proportional-odds model; higher linear predictor means higher categories."""

    family = Family.ORDINAL
    drop_intercept = True

    def encode_outcome(self, y, levels=None):
        if levels is None:
            levels = observed_levels(y)
            if len(levels) < 2:
                raise InsufficientLevelsError(str(y.name), levels)
        return pd.Series(encode_levels(y, levels), index=y.index, name=y.name), tuple(levels)

    def fit(self, design: Design, **options):
        estimator = build_estimator(self.family, design.y.to_numpy(dtype=int), design.X, distr="logit")
        return self._fit_estimator(design, estimator, **options)

    def _split(self, result, design: Design):
        params = np.asarray(result.params, dtype=float)
        k = design.X.shape[1]
        return params[:k], result.model.transform_threshold_params(params)

    def threshold_names(self, design: Design) -> list:
        lv = [str(v) for v in design.outcome_levels]
        return [f"{lv[j]}|{lv[j + 1]}" for j in range(len(lv) - 1)]

    def params(self, result) -> pd.Series:
        return pd.Series(np.asarray(result.params, dtype=float))

    def coefficients(self, result, design: Design, conf_level: float) -> pd.DataFrame:
        names = list(design.X.columns) + self.threshold_names(design)
        k = design.X.shape[1]
        mask = [i < k for i in range(len(names))]
        # threshold rows are on statsmodels' increment scale
        return wald_table(names, np.asarray(result.params), np.asarray(result.bse), conf_level,
                          ratio_label=self.spec.ratio_label, exponentiate=mask)

    def linear_predictor(self, result, design: Design) -> np.ndarray:
        beta, _ = self._split(result, design)
        return design.X.to_numpy(dtype=float) @ beta

    def predict(self, result, design: Design) -> np.ndarray:
        _, cuts = self._split(result, design)
        lp = self.linear_predictor(result, design)
        cdf = expit(cuts[None, :] - lp[:, None])
        return np.diff(cdf, axis=1)

    def loglikeobs(self, result, design: Design) -> np.ndarray:
        probs = self.predict(result, design)
        codes = design.y.to_numpy(dtype=int)
        return np.log(np.clip(probs[np.arange(len(codes)), codes], 1e-15, 1.0))

    def evaluate(self, result, design: Design) -> Dict[str, float]:
        codes = design.y.to_numpy(dtype=int)
        c = metrics.concordance_index(codes, self.linear_predictor(result, design))
        _, r2 = categorical_summary(codes, self.predict(result, design), len(design.outcome_levels))
        return {"c_statistic": c, "dxy": metrics.somers_dxy(c), "nagelkerke_r2": r2}

    def statistics(self, result, design: Design) -> Dict[str, float]:
        out = self.evaluate(result, design)
        llf = float(result.llf)
        k = self.n_params(result)
        n = design.n_obs
        out.update({"aic": -2 * llf + 2 * k, "bic": -2 * llf + k * np.log(n), "loglike": llf})
        return out


class MultinomialAdapter(FamilyAdapter):
    """Baseline-category logit; the first outcome level is the reference."""

    family = Family.MULTINOMIAL

    def encode_outcome(self, y, levels=None):
        if levels is None:
            levels = observed_levels(y)
            if len(levels) < 2:
                raise InsufficientLevelsError(str(y.name), levels)
        return pd.Series(encode_levels(y, levels), index=y.index, name=y.name), tuple(levels)

    def fit(self, design: Design, **options):
        estimator = build_estimator(self.family, design.y.to_numpy(dtype=int), design.X)
        return self._fit_estimator(design, estimator, **options)

    def _coef_matrix(self, result) -> np.ndarray:
        return np.asarray(result.params, dtype=float)

    def params(self, result) -> pd.Series:
        return pd.Series(self._coef_matrix(result).ravel(order="F"))

    def coefficients(self, result, design: Design, conf_level: float) -> pd.DataFrame:
        B = self._coef_matrix(result)
        SE = np.asarray(result.bse, dtype=float)
        levels = [str(v) for v in design.outcome_levels]
        names, mask = [], []
        for j in range(B.shape[1]):
            for col in design.X.columns:
                names.append(f"{levels[j + 1]}: {col}")
                mask.append(col != INTERCEPT)
        return wald_table(names, B.ravel(order="F"), SE.ravel(order="F"), conf_level,
                          ratio_label=self.spec.ratio_label, exponentiate=mask)

    def predict(self, result, design: Design) -> np.ndarray:
        eta = design.X.to_numpy(dtype=float) @ self._coef_matrix(result)
        eta = np.column_stack([np.zeros(len(eta)), eta])
        eta -= eta.max(axis=1, keepdims=True)
        expd = np.exp(eta)
        return expd / expd.sum(axis=1, keepdims=True)

    def loglikeobs(self, result, design: Design) -> np.ndarray:
        probs = self.predict(result, design)
        codes = design.y.to_numpy(dtype=int)
        return np.log(np.clip(probs[np.arange(len(codes)), codes], 1e-15, 1.0))

    def evaluate(self, result, design: Design) -> Dict[str, float]:
        codes = design.y.to_numpy(dtype=int)
        probs = self.predict(result, design)
        _, r2 = categorical_summary(codes, probs, len(design.outcome_levels))
        return {"c_statistic": metrics.one_vs_rest_concordance(codes, probs), "nagelkerke_r2": r2}


class PoissonAdapter(FamilyAdapter):
    family = Family.POISSON

    def encode_outcome(self, y, levels=None):
        y = numeric_outcome(y)
        if (y < 0).any() or not np.allclose(y % 1, 0):
            raise ModelFitError(f"Count outcome '{y.name}' must hold non-negative integers")
        return y, None

    def fit(self, design: Design, **options):
        exposure = None if design.exposure is None else design.exposure.to_numpy()
        estimator = build_estimator(self.family, design.y, design.X, exposure=exposure)
        return self._fit_estimator(design, estimator, **options)

    def _offset(self, design: Design) -> np.ndarray:
        if design.exposure is None:
            return np.zeros(design.n_obs)
        return np.log(design.exposure.to_numpy(dtype=float))

    def _count_params(self, result, design: Design) -> np.ndarray:
        return np.asarray(result.params, dtype=float)

    def mean(self, result, design: Design) -> np.ndarray:
        eta = design.X.to_numpy(dtype=float) @ self._count_params(result, design) + self._offset(design)
        return np.exp(eta)

    def prob_zero(self, result, design: Design) -> np.ndarray:
        return np.exp(-self.mean(result, design))

    def predict(self, result, design: Design) -> np.ndarray:
        return self.mean(result, design)

    def loglikeobs(self, result, design: Design) -> np.ndarray:
        y = design.y.to_numpy(dtype=float)
        return stats.poisson.logpmf(y, self.mean(result, design))

    def evaluate(self, result, design: Design) -> Dict[str, float]:
        m = metrics.count_metrics(design.y, self.predict(result, design), self.prob_zero(result, design))
        return {k: m[k] for k in ("rmse", "mae", "mean_deviance")}

    def statistics(self, result, design: Design) -> Dict[str, float]:
        out = super().statistics(result, design)
        m = metrics.count_metrics(design.y, self.predict(result, design), self.prob_zero(result, design))
        out["observed_zeros"] = m["observed_zeros"]
        out["expected_zeros"] = m["expected_zeros"]
        return out


class ZIPAdapter(PoissonAdapter):
    """Zero-inflated Poisson; inflation coefficients come first, prefixed ``inflate_``."""

    family = Family.ZIP

    def fit(self, design: Design, **options):
        exposure = None if design.exposure is None else design.exposure.to_numpy()
        estimator = build_estimator(
            self.family, design.y, design.X,
            exog_infl=design.X_infl, exposure=exposure, inflation="logit",
        )
        return self._fit_estimator(design, estimator, **options)

    def _k_infl(self, design: Design) -> int:
        return design.X_infl.shape[1]

    def _count_params(self, result, design: Design) -> np.ndarray:
        return np.asarray(result.params, dtype=float)[self._k_infl(design):]

    def inflation_prob(self, result, design: Design) -> np.ndarray:
        b = np.asarray(result.params, dtype=float)[: self._k_infl(design)]
        return expit(design.X_infl.to_numpy(dtype=float) @ b)

    def coefficients(self, result, design: Design, conf_level: float) -> pd.DataFrame:
        names = [f"inflate_{c}" for c in design.X_infl.columns] + list(design.X.columns)
        # inflation rows exponentiate to odds ratios of a structural zero
        return wald_table(names, np.asarray(result.params), np.asarray(result.bse), conf_level,
                          ratio_label=self.spec.ratio_label,
                          exponentiate=[not n.endswith(INTERCEPT) for n in names])

    def params(self, result) -> pd.Series:
        return pd.Series(np.asarray(result.params, dtype=float))

    def predict(self, result, design: Design) -> np.ndarray:
        w = self.inflation_prob(result, design)
        return (1 - w) * self.mean(result, design)

    def prob_zero(self, result, design: Design) -> np.ndarray:
        w = self.inflation_prob(result, design)
        return w + (1 - w) * np.exp(-self.mean(result, design))

    def loglikeobs(self, result, design: Design) -> np.ndarray:
        y = design.y.to_numpy(dtype=float)
        w = self.inflation_prob(result, design)
        mu = self.mean(result, design)
        zero = np.log(np.clip(w + (1 - w) * np.exp(-mu), 1e-300, None))
        positive = np.log(np.clip(1 - w, 1e-300, None)) + stats.poisson.logpmf(y, mu)
        return np.where(y == 0, zero, positive)


class CoxAdapter(FamilyAdapter):
    """Cox model through lifelines; the design has no intercept."""

    family = Family.COX
    drop_intercept = True

    _TIME = "__time__"
    _EVENT = "__event__"

    def encode_outcome(self, y, levels=None):
        y = numeric_outcome(y)
        if (y <= 0).any():
            raise ModelFitError(f"Survival times in '{y.name}' must be positive")
        return y, None

    def fit(self, design: Design, **options):
        from lifelines.exceptions import ConvergenceError as LifelinesConvergenceError

        frame = design.X.copy()
        frame[self._TIME] = design.y.to_numpy()
        frame[self._EVENT] = design.event.to_numpy()
        cph = build_estimator(self.family)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                cph.fit(frame, duration_col=self._TIME, event_col=self._EVENT)
            except LifelinesConvergenceError as e:
                raise ConvergenceError(f"Cox fit did not converge: {e}", model_name=design.spec.label) from e
        for w in caught:
            logger.debug("%s: %s", design.spec.label, w.message)
        return cph

    def params(self, result) -> pd.Series:
        return result.params_.astype(float)

    def coefficients(self, result, design: Design, conf_level: float) -> pd.DataFrame:
        params = self.params(result)
        se = result.standard_errors_.reindex(params.index).to_numpy(dtype=float)
        return wald_table(params.index, params.to_numpy(), se, conf_level, ratio_label=self.spec.ratio_label)

    def n_params(self, result) -> int:
        return int(len(result.params_))

    def loglike(self, result) -> float:
        return float(result.log_likelihood_)

    def linear_predictor(self, result, design: Design) -> np.ndarray:
        params = self.params(result).reindex(design.X.columns)
        return design.X.to_numpy(dtype=float) @ params.to_numpy()

    def predict(self, result, design: Design) -> np.ndarray:
        """Relative hazard exp(x'b)."""
        return np.exp(self.linear_predictor(result, design))

    def evaluate(self, result, design: Design) -> Dict[str, float]:
        from lifelines.utils import concordance_index

        c = float(concordance_index(design.y.to_numpy(), -self.linear_predictor(result, design), design.event.to_numpy()))
        return {"c_statistic": c, "dxy": metrics.somers_dxy(c)}

    def statistics(self, result, design: Design) -> Dict[str, float]:
        out = self.evaluate(result, design)
        llf = self.loglike(result)
        k = self.n_params(result)
        n_events = float(design.event.sum())
        lr = result.log_likelihood_ratio_test()
        out.update({
            "aic": float(result.AIC_partial_),
            "bic": -2 * llf + k * np.log(max(n_events, 1.0)),
            "loglike": llf,
            "n_events": n_events,
            "lr_statistic": float(lr.test_statistic),
            "lr_p_value": float(lr.p_value),
        })
        return out

    def summary_text(self, result) -> str:
        return result.summary.to_string()


ADAPTERS: Dict[Family, FamilyAdapter] = {
    a.family: a
    for a in (
        OLSAdapter(),
        LogitAdapter(),
        OrdinalAdapter(),
        MultinomialAdapter(),
        PoissonAdapter(),
        ZIPAdapter(),
        CoxAdapter(),
    )
}


def get_adapter(family) -> FamilyAdapter:
    key = Family.parse(family)
    if key not in ADAPTERS:
        raise ValueError(f"Family '{key.value}' is not fitted through a regression adapter")
    return ADAPTERS[key]
