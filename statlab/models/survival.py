# statlab/models/survival.py
"""
Kaplan-Meier survival curves and the log-rank test (lifelines).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
import pandas as pd

from statlab.core.exceptions import InsufficientLevelsError, MissingColumnError, MissingValueError, ModelFitError
from statlab.models.registry import build_estimator

logger = logging.getLogger(__name__)

OVERALL = "overall"


@dataclass(frozen=True)
class KaplanMeierFit:
    """
    Attributes:
        summary: one row per stratum with n, events, median survival
            and its confidence limits
        curves: stratum -> fitted ``KaplanMeierFitter``
        logrank: test statistic, d.f. and p-value (stratified fits only)
    """

    time: str
    event: str
    strata: Optional[str]
    conf_level: float
    summary: pd.DataFrame
    curves: Dict[str, object] = field(repr=False)
    logrank: Optional[Dict[str, float]] = None
    name: Optional[str] = None

    @property
    def n_obs(self) -> int:
        return int(self.summary["n"].sum())

    @property
    def n_events(self) -> int:
        return int(self.summary["events"].sum())

    def survival_table(self, stratum: str = OVERALL) -> pd.DataFrame:
        """Survival estimate with confidence band at each event time."""
        if stratum not in self.curves:
            raise KeyError(f"Unknown stratum '{stratum}'; have {list(self.curves)}")
        kmf = self.curves[stratum]
        table = pd.concat([kmf.survival_function_, kmf.confidence_interval_], axis=1)
        table.columns = ["survival", "ci_low", "ci_high"]
        events = kmf.event_table[["at_risk", "observed", "censored"]]
        return events.join(table, how="left").rename_axis("time").reset_index()

    @property
    def statistics(self) -> Dict[str, float]:
        out = {"n_obs": float(self.n_obs), "n_events": float(self.n_events)}
        if self.logrank:
            out.update({f"logrank_{k}": v for k, v in self.logrank.items()})
        return out


def _median_ci(kmf) -> tuple:
    from lifelines.utils import median_survival_times

    ci = median_survival_times(kmf.confidence_interval_)
    return float(ci.iloc[0, 0]), float(ci.iloc[0, 1])


def fit_kaplan_meier(
    table: pd.DataFrame,
    time: str,
    event: str,
    strata: Optional[str] = None,
    conf_level: float = 0.95,
    name: Optional[str] = None,
) -> KaplanMeierFit:
    """
    Fit Kaplan-Meier curves overall or per stratum.

    With ``strata`` set, a log-rank test of equal survival across the
    strata is added. Rows must be complete in the columns used.
    """
    cols = [c for c in (time, event, strata) if c]
    absent = [c for c in cols if c not in table.columns]
    if absent:
        raise MissingColumnError(absent, step=name or "kaplan_meier")
    frame = table[cols]
    na = frame.isna().sum()
    if na.any():
        raise MissingValueError({k: int(v) for k, v in na[na > 0].items()}, model_name=name)

    durations = frame[time].astype(float)
    observed = frame[event].astype(int)
    if (durations < 0).any():
        raise ModelFitError(f"Survival times in '{time}' must be non-negative", model_name=name)

    if strata:
        groups = frame[strata]
        if isinstance(groups.dtype, pd.CategoricalDtype):
            labels = [c for c in groups.cat.categories if (groups == c).any()]
        else:
            labels = sorted(pd.unique(groups))
        if len(labels) < 2:
            raise InsufficientLevelsError(strata, labels, model_name=name)
    else:
        groups = pd.Series(OVERALL, index=frame.index)
        labels = [OVERALL]

    curves: Dict[str, object] = {}
    rows = []
    for label in labels:
        mask = (groups == label).to_numpy()
        key = str(label)
        kmf = build_estimator("kaplan_meier")
        kmf.fit(durations[mask], event_observed=observed[mask], label=key, alpha=1.0 - conf_level)
        curves[key] = kmf
        low, high = _median_ci(kmf)
        rows.append({
            "stratum": key,
            "n": int(mask.sum()),
            "events": int(observed[mask].sum()),
            "median": float(kmf.median_survival_time_),
            "median_ci_low": low,
            "median_ci_high": high,
        })
    summary = pd.DataFrame(rows)

    logrank = None
    if strata:
        from lifelines.statistics import multivariate_logrank_test

        res = multivariate_logrank_test(durations, groups.astype(str), observed)
        logrank = {
            "statistic": float(res.test_statistic),
            "df": float(len(labels) - 1),
            "p_value": float(res.p_value),
        }
        logger.info("Log-rank test across %s: chi2=%.3f p=%.4g", strata, logrank["statistic"], logrank["p_value"])

    return KaplanMeierFit(
        time=time,
        event=event,
        strata=strata,
        conf_level=conf_level,
        summary=summary,
        curves=curves,
        logrank=logrank,
        name=name,
    )


def median_table(fit: KaplanMeierFit) -> pd.DataFrame:
    out = fit.summary.copy()
    out["median"] = out["median"].replace(np.inf, np.nan)
    return out
