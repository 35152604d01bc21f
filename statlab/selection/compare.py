# statlab/selection/compare.py
"""
Multi-candidate model comparison with a parsimony rule.

Candidates are ordered by number of parameters. Starting from the
simplest, a more complex candidate replaces the current choice only when
its validated statistic is better by more than a margin fixed before
looking at the results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from statlab.config.settings import settings
from statlab.core.exceptions import ConfigurationError
from statlab.models.budget import DfBudgetPolicy
from statlab.models.fitting import FittedModel, fit_model
from statlab.models.spec import COUNT_FAMILIES, SURVIVAL_FAMILIES, Family, ModelSpec, iter_specs
from statlab.selection.likelihood import likelihood_ratio_test, vuong_test
from statlab.validation import METHODS, ValidationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparisonResult:
    """
    Attributes:
        table: one row per candidate, simplest first
        tests: pairwise likelihood-ratio / Vuong tests
        selected: name of the chosen candidate
        decisions: one line per step of the parsimony rule
    """

    table: pd.DataFrame
    tests: List[Dict[str, Any]]
    selected: str
    metric: str
    margin: float
    higher_is_better: bool
    decisions: List[str] = field(default_factory=list)
    fits: Dict[str, FittedModel] = field(default_factory=dict, repr=False)
    validations: Dict[str, ValidationResult] = field(default_factory=dict, repr=False)

    @property
    def selected_model(self) -> FittedModel:
        return self.fits[self.selected]

    def tests_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.tests)


def select_parsimonious(
    rows: Union[pd.DataFrame, Sequence[Mapping[str, Any]]],
    metric: str,
    margin: float,
    higher_is_better: bool = True,
    decisions: Optional[List[str]] = None,
) -> str:
    """
    Apply the parsimony rule to candidate rows.

    Each row needs ``name``, ``n_params`` and the ``metric`` column. Ties
    in ``n_params`` keep the input order. Returns the selected name.
    """
    frame = pd.DataFrame(rows) if not isinstance(rows, pd.DataFrame) else rows
    if frame.empty:
        raise ValueError("No candidates to select from")
    missing = [c for c in ("name", "n_params", metric) if c not in frame.columns]
    if missing:
        raise ValueError(f"Candidate rows lack {missing}")
    if margin < 0:
        raise ValueError("margin must be non-negative")

    ordered = frame.sort_values("n_params", kind="stable").reset_index(drop=True)
    current = ordered.iloc[0]
    for _, cand in ordered.iloc[1:].iterrows():
        diff = cand[metric] - current[metric]
        gain = diff if higher_is_better else -diff
        if pd.notna(gain) and gain > margin:
            msg = f"{cand['name']} improves {metric} by {gain:.4f} > {margin} over {current['name']}; switch"
            current = cand
        else:
            msg = f"{cand['name']} improves {metric} by {gain:.4f} <= {margin} over {current['name']}; keep"
        logger.info(msg)
        if decisions is not None:
            decisions.append(msg)
    return str(current["name"])


def is_nested(smaller: ModelSpec, larger: ModelSpec) -> bool:
    """
    True when every term of ``smaller`` is also in ``larger``.

    Both need the same family, outcome, event and exposure. A linear term
    is nested in a spline on the same column; a spline is only nested in
    a spline with the same number of knots.
    """
    if (smaller.family, smaller.outcome, smaller.event, smaller.exposure) != (
        larger.family, larger.outcome, larger.event, larger.exposure,
    ):
        return False
    small_knots, large_knots = dict(smaller.splines), dict(larger.splines)
    for col in smaller.predictors:
        if col not in larger.predictors:
            return False
        if col in small_knots and large_knots.get(col) != small_knots[col]:
            return False
    large_pairs = {frozenset(p) for p in larger.interactions}
    return (
        all(frozenset(p) in large_pairs for p in smaller.interactions)
        and set(smaller.extra_terms) <= set(larger.extra_terms)
        and set(smaller.inflation_predictors) <= set(larger.inflation_predictors)
    )


def _pairwise_tests(fits: List[FittedModel]) -> List[Dict[str, Any]]:
    """
    LR tests between consecutive nested candidates, Vuong tests between
    non-nested ones fitted to the same outcome.
    """
    tests = []
    for a, b in zip(fits, fits[1:]):
        if a.n_obs != b.n_obs or a.spec.outcome != b.spec.outcome:
            continue
        try:
            if b.n_params > a.n_params and is_nested(a.spec, b.spec):
                tests.append(likelihood_ratio_test(a, b))
            elif not {a.family, b.family} & set(SURVIVAL_FAMILIES) and (
                a.family == b.family or {a.family, b.family} <= set(COUNT_FAMILIES)
            ):
                tests.append(vuong_test(a, b))
        except ValueError as e:
            logger.warning("Skipping test of %s vs %s: %s", a.name, b.name, e)
    return tests


def _unique_names(specs: List[ModelSpec]) -> List[ModelSpec]:
    out, seen = [], set()
    for i, s in enumerate(specs):
        name = s.name or f"model_{i + 1}"
        if name in seen:
            raise ConfigurationError(f"Duplicate candidate name '{name}'")
        seen.add(name)
        out.append(s.named(name))
    return out


def compare_models(
    table: pd.DataFrame,
    specs: Iterable[Union[ModelSpec, Mapping[str, Any]]],
    validation: Optional[str] = "bootstrap",
    seed: Optional[int] = None,
    metric: Optional[str] = None,
    margin: Optional[float] = None,
    conf_level: Optional[float] = None,
    policy: Optional[DfBudgetPolicy] = None,
    **validation_options,
) -> ComparisonResult:
    """
    Fit, validate and compare candidate models on one table.

    Args:
        validation: "bootstrap", "holdout", "cv" or None (apparent only)
        metric: statistic used by the parsimony rule; defaults to the
            first validation statistic of the first candidate's family
        margin: required improvement; defaults to ``settings.selection_margin``
        validation_options: passed to the validation function
            (``replicates``, ``test_size``, ``folds``, ``repeats``)
    """
    specs = _unique_names(iter_specs(specs))
    if not specs:
        raise ValueError("compare_models needs at least one candidate")
    if any(s.family is Family.KAPLAN_MEIER for s in specs):
        raise ValueError("Kaplan-Meier curves cannot be compared as candidates")
    seed = settings.default_seed if seed is None else int(seed)
    margin = settings.selection_margin if margin is None else float(margin)
    if validation is not None and validation not in METHODS:
        raise ConfigurationError(f"Unknown validation method '{validation}'", details={"available": list(METHODS)})

    fits = [fit_model(table, s, conf_level=conf_level, policy=policy) for s in specs]
    higher = fits[0].adapter.validation_statistics
    metric = metric or next(iter(higher))
    for f in fits:
        if metric not in f.adapter.validation_statistics:
            raise ConfigurationError(f"Statistic '{metric}' is not reported for {f.name} ({f.family.value})")
    higher_is_better = higher[metric]

    validations: Dict[str, ValidationResult] = {}
    rows = []
    for f in fits:
        row = {
            "name": f.name,
            "family": f.family.value,
            "formula": f.spec.formula,
            "n_params": f.n_params,
            "df_used": f.df_used,
            "aic": f.statistics.get("aic"),
            "bic": f.statistics.get("bic"),
            "apparent": f.evaluate()[metric],
        }
        if validation == "bootstrap":
            res = METHODS[validation](f, table, seed=seed, **validation_options)
        elif validation is not None:
            res = METHODS[validation](f.spec, table, seed=seed, **validation_options)
        else:
            res = None
        if res is not None:
            validations[f.name] = res
            row["validated"] = res.validated(metric)
        else:
            row["validated"] = row["apparent"]
        rows.append(row)

    frame = pd.DataFrame(rows).sort_values("n_params", kind="stable").reset_index(drop=True)
    decisions: List[str] = []
    selected = select_parsimonious(frame, "validated", margin, higher_is_better, decisions=decisions)
    frame["selected"] = frame["name"] == selected

    by_name = {f.name: f for f in fits}
    ordered_fits = [by_name[n] for n in frame["name"]]
    return ComparisonResult(
        table=frame,
        tests=_pairwise_tests(ordered_fits),
        selected=selected,
        metric=metric,
        margin=margin,
        higher_is_better=higher_is_better,
        decisions=decisions,
        fits=by_name,
        validations=validations,
    )
