# statlab/models/spec.py
"""
Model specifications.

A ``ModelSpec`` binds a model family to an outcome, an ordered list of
predictors and optional spline / interaction terms. It is immutable;
the ``with_*`` helpers build the next candidate from the previous one:

    base = ModelSpec("ols", "comb08", ["displ", "drive", "year"])
    spline = base.with_spline("displ", knots=4).named("spline")
    inter = spline.with_interaction("displ", "drive").named("interaction")
"""

from __future__ import annotations

import keyword
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from statlab.core.exceptions import ConfigurationError


class Family(str, Enum):
    OLS = "ols"
    LOGIT = "logit"
    ORDINAL = "ordinal"
    MULTINOMIAL = "multinomial"
    POISSON = "poisson"
    ZIP = "zip"
    COX = "cox"
    KAPLAN_MEIER = "kaplan_meier"

    @classmethod
    def parse(cls, value: Union[str, "Family"]) -> "Family":
        if isinstance(value, Family):
            return value
        key = str(value).strip().lower().replace("-", "_")
        aliases = {
            "linear": "ols", "lm": "ols",
            "logistic": "logit", "binomial": "logit",
            "polr": "ordinal", "proportional_odds": "ordinal", "lrm_ordinal": "ordinal",
            "mnlogit": "multinomial", "multinom": "multinomial",
            "zero_inflated_poisson": "zip", "zeroinfl": "zip",
            "coxph": "cox", "km": "kaplan_meier", "survfit": "kaplan_meier",
        }
        key = aliases.get(key, key)
        try:
            return cls(key)
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown model family '{value}'",
                details={"available": [f.value for f in cls]},
            ) from e


SURVIVAL_FAMILIES = (Family.COX, Family.KAPLAN_MEIER)
COUNT_FAMILIES = (Family.POISSON, Family.ZIP)


def quote_term(name: str) -> str:
    """Column name as a patsy term (``Q("...")`` for non-identifiers)."""
    if name.isidentifier() and not keyword.iskeyword(name):
        return name
    return 'Q("{}")'.format(name.replace('"', '\\"'))


@dataclass(frozen=True)
class ModelSpec:
    """
    Attributes:
        family: model family (``Family`` or its name)
        outcome: outcome column (the time column for survival families)
        predictors: ordered predictor columns
        splines: (column, knots) pairs; the column's linear term is
            replaced by a natural cubic spline with ``knots - 1`` d.f.
        interactions: (column, column) pairs of product terms
        extra_terms: raw patsy terms, e.g. ``"I(year ** 2)"``
        event: event indicator for survival families (1 = event)
        exposure: exposure column for count families
        inflation_predictors: predictors of the zero-inflation part (zip)
        strata: grouping column for Kaplan-Meier curves
        name: label used in comparisons and reports
    """

    family: Family
    outcome: str
    predictors: Tuple[str, ...] = ()
    splines: Tuple[Tuple[str, int], ...] = ()
    interactions: Tuple[Tuple[str, str], ...] = ()
    extra_terms: Tuple[str, ...] = ()
    event: Optional[str] = None
    exposure: Optional[str] = None
    inflation_predictors: Tuple[str, ...] = ()
    strata: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self):
        # accept lists / dicts from YAML and normalise to hashable tuples
        object.__setattr__(self, "family", Family.parse(self.family))
        object.__setattr__(self, "predictors", tuple(self.predictors))
        splines = self.splines.items() if isinstance(self.splines, Mapping) else self.splines
        object.__setattr__(self, "splines", tuple((str(c), int(k)) for c, k in splines))
        object.__setattr__(self, "interactions", tuple(tuple(p) for p in self.interactions))
        object.__setattr__(self, "extra_terms", tuple(self.extra_terms))
        object.__setattr__(self, "inflation_predictors", tuple(self.inflation_predictors))
        self._check()

    def _check(self) -> None:
        if len(set(self.predictors)) != len(self.predictors):
            raise ConfigurationError("Duplicate predictors", details={"predictors": list(self.predictors)})
        if self.outcome in self.predictors:
            raise ConfigurationError(f"Outcome '{self.outcome}' is also listed as a predictor")
        for col, knots in self.splines:
            if col not in self.predictors:
                raise ConfigurationError(f"Spline column '{col}' must be one of the predictors")
            if knots < 3:
                raise ConfigurationError(f"A restricted cubic spline needs at least 3 knots, got {knots} for '{col}'")
        for pair in self.interactions:
            if len(pair) != 2 or any(c not in self.predictors for c in pair):
                raise ConfigurationError(f"Interaction {pair} must pair two predictors")
        if self.family in SURVIVAL_FAMILIES and not self.event:
            raise ConfigurationError(f"Family '{self.family.value}' needs an 'event' column")
        if self.exposure and self.family not in COUNT_FAMILIES:
            raise ConfigurationError("'exposure' only applies to count families (poisson, zip)")
        if self.inflation_predictors and self.family is not Family.ZIP:
            raise ConfigurationError("'inflation_predictors' only applies to the zip family")

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------
    def with_predictor(self, column: str) -> "ModelSpec":
        return replace(self, predictors=self.predictors + (column,))

    def without_predictor(self, column: str) -> "ModelSpec":
        return replace(
            self,
            predictors=tuple(p for p in self.predictors if p != column),
            splines=tuple(s for s in self.splines if s[0] != column),
            interactions=tuple(i for i in self.interactions if column not in i),
        )

    def with_spline(self, column: str, knots: int = 4) -> "ModelSpec":
        spl = tuple(s for s in self.splines if s[0] != column) + ((column, int(knots)),)
        return replace(self, splines=spl)

    def with_interaction(self, a: str, b: str) -> "ModelSpec":
        return replace(self, interactions=self.interactions + ((a, b),))

    def named(self, name: str) -> "ModelSpec":
        return replace(self, name=name)

    # ------------------------------------------------------------------
    # Formula rendering
    # ------------------------------------------------------------------
    @property
    def label(self) -> str:
        return self.name or f"{self.family.value}: {self.formula}"

    def rhs_terms(self) -> List[str]:
        knots = dict(self.splines)
        terms = []
        for p in self.predictors:
            if p in knots:
                terms.append(f"cr({quote_term(p)}, df={knots[p] - 1}, constraints='center')")
            else:
                terms.append(quote_term(p))
        terms += [f"{quote_term(a)}:{quote_term(b)}" for a, b in self.interactions]
        terms += list(self.extra_terms)
        return terms

    @property
    def rhs(self) -> str:
        return " + ".join(self.rhs_terms()) or "1"

    @property
    def inflation_rhs(self) -> str:
        return " + ".join(quote_term(p) for p in self.inflation_predictors) or "1"

    @property
    def formula(self) -> str:
        return f"{quote_term(self.outcome)} ~ {self.rhs}"

    def columns(self) -> List[str]:
        """Every table column the model reads, in first-use order."""
        cols: List[str] = [self.outcome, *self.predictors]
        for extra in (self.event, self.exposure, self.strata):
            if extra:
                cols.append(extra)
        cols += list(self.inflation_predictors)
        seen = set()
        return [c for c in cols if not (c in seen or seen.add(c))]

    @classmethod
    def from_config(cls, cfg: Mapping) -> "ModelSpec":
        known = {"family", "outcome", "predictors", "splines", "interactions", "extra_terms",
                 "event", "exposure", "inflation_predictors", "strata", "name"}
        unknown = set(cfg) - known
        if unknown:
            raise ConfigurationError(f"Unknown model keys {sorted(unknown)}")
        if "family" not in cfg or "outcome" not in cfg:
            raise ConfigurationError("A model needs 'family' and 'outcome'", details={"model": dict(cfg)})
        kwargs = dict(cfg)
        kwargs["splines"] = cfg.get("splines") or ()
        kwargs["interactions"] = tuple(tuple(p) for p in (cfg.get("interactions") or ()))
        return cls(**kwargs)


def iter_specs(items: Iterable[Union[ModelSpec, Mapping]]) -> List[ModelSpec]:
    return [s if isinstance(s, ModelSpec) else ModelSpec.from_config(s) for s in items]
