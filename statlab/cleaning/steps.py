# statlab/cleaning/steps.py
"""
Declarative cleaning steps.

Every step is a frozen dataclass whose ``apply`` returns a *new* table;
the input frame is never modified. Steps are composed by
``CleaningPipeline`` which records an audit entry per step.

For Contributors:
    Any object with a ``name`` and an ``apply(df) -> df`` method can be
    used as a step (see ``CleaningStepProtocol``). Subclass
    ``CleaningStep`` to also get an audit note.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from statlab.cleaning.derive import get_derivation
from statlab.cleaning.impute import pmm_impute
from statlab.core.exceptions import CleaningError, MissingColumnError, SampleSizeError

logger = logging.getLogger(__name__)

RowPredicate = Callable[[pd.DataFrame], Union[pd.Series, np.ndarray]]


def _require(df: pd.DataFrame, columns: Sequence[str], step: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise MissingColumnError(missing, step=step)


class CleaningStep:
    """Base class for the built-in steps."""

    name: str = "step"

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:  # pragma: no cover - abstract
        raise NotImplementedError

    def note(self, before: pd.DataFrame, after: pd.DataFrame) -> str:
        """Short human-readable description for the audit log."""
        return ""


# =============================================================================
# Projection
# =============================================================================

@dataclass(frozen=True)
class Select(CleaningStep):
    """Keep ``columns`` (in that order), then optionally rename them."""

    columns: Tuple[str, ...]
    rename: Dict[str, str] = field(default_factory=dict)
    name: str = "select"

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        _require(df, self.columns, self.name)
        out = df.loc[:, list(self.columns)].copy()
        if self.rename:
            _require(out, list(self.rename), self.name)
            out = out.rename(columns=self.rename)
        return out

    def note(self, before, after) -> str:
        return f"kept {after.shape[1]} of {before.shape[1]} columns"


@dataclass(frozen=True)
class Rename(CleaningStep):
    mapping: Dict[str, str]
    name: str = "rename"

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        _require(df, list(self.mapping), self.name)
        return df.rename(columns=self.mapping)


# =============================================================================
# Retyping
# =============================================================================

_KINDS = ("categorical", "numeric", "integer", "string", "boolean")


@dataclass(frozen=True)
class Retype(CleaningStep):
    """
    Cast a column to ``categorical``, ``numeric``, ``integer``, ``string``
    or ``boolean``.

    Categorical casts must enumerate their levels. Values that are not
    among the declared levels become missing, and the count shows up in
    the audit note so nothing disappears silently.
    """

    column: str
    kind: str
    levels: Optional[Tuple[Any, ...]] = None
    ordered: bool = False
    name: str = "retype"

    def __post_init__(self):
        if self.kind not in _KINDS:
            raise CleaningError(f"Unknown retype kind {self.kind!r} (expected one of {_KINDS})")
        if self.kind == "categorical" and not self.levels:
            raise CleaningError(
                f"Categorical cast of '{self.column}' must enumerate its levels",
                details={"column": self.column},
            )

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        _require(df, [self.column], self.name)
        out = df.copy()
        s = out[self.column]
        if self.kind == "categorical":
            out[self.column] = pd.Categorical(s, categories=list(self.levels), ordered=self.ordered)
        elif self.kind == "numeric":
            out[self.column] = pd.to_numeric(s, errors="coerce")
        elif self.kind == "integer":
            out[self.column] = pd.to_numeric(s, errors="coerce").round().astype("Int64")
        elif self.kind == "string":
            out[self.column] = s.astype("string")
        else:
            out[self.column] = s.map(_to_bool).astype("boolean")
        return out

    def note(self, before, after) -> str:
        lost = int(after[self.column].isna().sum() - before[self.column].isna().sum())
        msg = f"{self.column} -> {self.kind}"
        if lost > 0:
            msg += f" ({lost} value(s) outside the declared type/levels set to missing)"
        return msg


def _to_bool(v: Any) -> Any:
    if v is None or (isinstance(v, float) and np.isnan(v)):
        return pd.NA
    if isinstance(v, str):
        t = v.strip().lower()
        if t in {"1", "true", "yes", "y", "t"}:
            return True
        if t in {"0", "false", "no", "n", "f"}:
            return False
        return pd.NA
    return bool(v)


# =============================================================================
# Derivation
# =============================================================================

@dataclass(frozen=True)
class Derive(CleaningStep):
    """
    Add (or overwrite) column ``column`` computed from existing columns.

    ``function`` is either the name of a built-in derivation
    (bucket, bmi, log, log1p, sqrt, ratio, expression) or a callable
    ``f(df, **params) -> Series``.
    """

    column: str
    function: Union[str, Callable[..., pd.Series]]
    params: Dict[str, Any] = field(default_factory=dict)
    name: str = "derive"

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        fn = get_derivation(self.function) if isinstance(self.function, str) else self.function
        values = fn(df, **self.params)
        out = df.copy()
        out[self.column] = values
        return out

    def note(self, before, after) -> str:
        fname = self.function if isinstance(self.function, str) else getattr(self.function, "__name__", "callable")
        return f"{self.column} = {fname}({', '.join(f'{k}={v}' for k, v in self.params.items() if k != 'labels')})"


# =============================================================================
# Row filtering
# =============================================================================

@dataclass(frozen=True)
class Filter(CleaningStep):
    """
    Keep rows where ``predicate(df)`` is True, or rows matching a
    ``DataFrame.query`` string. Rows where the predicate is missing are
    dropped.
    """

    predicate: Optional[RowPredicate] = None
    query: Optional[str] = None
    label: str = ""
    name: str = "filter"

    def __post_init__(self):
        if (self.predicate is None) == (self.query is None):
            raise CleaningError("Filter needs exactly one of 'predicate' or 'query'")

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        if self.query is not None:
            try:
                return df.query(self.query, engine="python").copy()
            except pd.errors.UndefinedVariableError as e:
                m = re.search(r"'([^']+)'", str(e))
                raise MissingColumnError([m.group(1) if m else str(e)], step=self.name) from e
        mask = pd.Series(self.predicate(df), index=df.index)
        mask = mask.astype("boolean").fillna(False).astype(bool)
        return df.loc[mask].copy()

    def note(self, before, after) -> str:
        what = self.label or self.query or "predicate"
        return f"{what}: {len(before)} -> {len(after)} rows"


@dataclass(frozen=True)
class DropMissing(CleaningStep):
    """Explicit complete-case step over ``columns`` (all columns when empty)."""

    columns: Tuple[str, ...] = ()
    name: str = "drop_missing"

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        cols = list(self.columns) or None
        if cols:
            _require(df, cols, self.name)
        return df.dropna(subset=cols).copy()

    def note(self, before, after) -> str:
        return f"dropped {len(before) - len(after)} incomplete row(s)"


@dataclass(frozen=True)
class Sample(CleaningStep):
    """
    Fixed-size uniform sample without replacement.

    Uses ``numpy.random.default_rng(seed)`` so the same seed on the same
    table always returns the same row set; rows keep their original order.
    """

    n: int
    seed: int
    name: str = "sample"

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        if self.n > len(df):
            raise SampleSizeError(self.n, len(df))
        if self.n < 0:
            raise CleaningError(f"Sample size must be non-negative, got {self.n}")
        rng = np.random.default_rng(self.seed)
        idx = np.sort(rng.choice(len(df), size=self.n, replace=False))
        return df.iloc[idx].copy()

    def note(self, before, after) -> str:
        return f"sampled {self.n} of {len(before)} rows (seed {self.seed})"


# =============================================================================
# Missing values / levels
# =============================================================================

@dataclass(frozen=True)
class ImputePMM(CleaningStep):
    """Fill ``column`` by predictive mean matching on complete ``predictors``."""

    column: str
    predictors: Tuple[str, ...]
    donors: int = 5
    seed: int = 432
    name: str = "impute_pmm"

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        out = df.copy()
        out[self.column] = pmm_impute(df, self.column, self.predictors, donors=self.donors, seed=self.seed)
        return out

    def note(self, before, after) -> str:
        n = int(before[self.column].isna().sum())
        return f"imputed {n} value(s) of {self.column} (PMM, {self.donors} donors, seed {self.seed})"


@dataclass(frozen=True)
class CollapseRareLevels(CleaningStep):
    """Merge levels seen fewer than ``min_count`` times into ``other_label``."""

    column: str
    min_count: int
    other_label: str = "Other"
    name: str = "collapse_rare_levels"

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        _require(df, [self.column], self.name)
        out = df.copy()
        s = out[self.column]
        counts = s.value_counts(dropna=True)
        rare = [lv for lv, n in counts.items() if n < self.min_count and lv != self.other_label]
        if not rare:
            return out
        if isinstance(s.dtype, pd.CategoricalDtype):
            if self.other_label not in s.cat.categories:
                s = s.cat.add_categories([self.other_label])
            s = s.where(~s.isin(rare), self.other_label)
            s = s.cat.remove_categories([lv for lv in rare if lv in s.cat.categories])
        else:
            s = s.where(~s.isin(rare), self.other_label)
        out[self.column] = s
        logger.info("Collapsed %d rare level(s) of '%s' into '%s'", len(rare), self.column, self.other_label)
        return out

    def note(self, before, after) -> str:
        b = before[self.column].nunique(dropna=True)
        a = after[self.column].nunique(dropna=True)
        return f"{self.column}: {b} -> {a} levels (min count {self.min_count})"


@dataclass(frozen=True)
class DropUnusedLevels(CleaningStep):
    """
    Remove categories with no rows so they cannot show up as phantom
    columns in a design matrix. Never changes the row count.
    """

    columns: Tuple[str, ...] = ()
    name: str = "drop_unused_levels"

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        if self.columns:
            _require(df, self.columns, self.name)
            cols = list(self.columns)
        else:
            cols = [c for c in df.columns if isinstance(df[c].dtype, pd.CategoricalDtype)]
        out = df.copy()
        for c in cols:
            if isinstance(out[c].dtype, pd.CategoricalDtype):
                out[c] = out[c].cat.remove_unused_categories()
        return out

    def note(self, before, after) -> str:
        dropped = {}
        for c in after.columns:
            if isinstance(after[c].dtype, pd.CategoricalDtype) and isinstance(before[c].dtype, pd.CategoricalDtype):
                gone = set(before[c].cat.categories) - set(after[c].cat.categories)
                if gone:
                    dropped[c] = sorted(map(str, gone))
        return f"dropped unused levels {dropped}" if dropped else "no unused levels"
