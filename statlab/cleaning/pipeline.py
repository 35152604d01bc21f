# statlab/cleaning/pipeline.py
"""
Builder over an immutable table.

A ``CleaningPipeline`` is an ordered, immutable tuple of steps. Adding a
step returns a new pipeline, and running it never touches the raw
table: every step produces a new frame and an audit entry.

Example:
    pipeline = (
        CleaningPipeline(id_column="id")
        .select(["id", "year", "comb08", "cylinders", "drive"])
        .filter(query="cylinders in [4, 6, 8]", label="4/6/8 cylinders")
        .sample(1200, seed=432)
    )
    result = pipeline.run(raw)
    result.table       # cleaned analysis table
    result.audit_frame()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from statlab.cleaning.steps import (
    CollapseRareLevels,
    Derive,
    DropMissing,
    DropUnusedLevels,
    Filter,
    ImputePMM,
    Rename,
    Retype,
    Sample,
    Select,
)
from statlab.config.settings import settings
from statlab.core.exceptions import ConfigurationError, DuplicateIdentifierError
from statlab.core.protocols import CleaningStepProtocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEntry:
    step: str
    rows_before: int
    rows_after: int
    n_columns: int
    note: str = ""


@dataclass(frozen=True)
class CleaningResult:
    table: pd.DataFrame
    audit: Tuple[AuditEntry, ...]
    id_column: Optional[str] = None

    def audit_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [vars(a) for a in self.audit],
            columns=["step", "rows_before", "rows_after", "n_columns", "note"],
        )

    @property
    def n_rows(self) -> int:
        return int(self.table.shape[0])


def check_unique_identifier(df: pd.DataFrame, column: str, step: Optional[str] = None) -> None:
    """Raise unless ``column`` has as many distinct values as ``df`` has rows."""
    n_unique = int(df[column].nunique(dropna=False))
    if n_unique != len(df):
        raise DuplicateIdentifierError(column, len(df), n_unique, step=step)


@dataclass(frozen=True)
class CleaningPipeline:
    steps: Tuple[CleaningStepProtocol, ...] = ()
    id_column: Optional[str] = None

    # ------------------------------------------------------------------
    # Builder
    # ------------------------------------------------------------------
    def then(self, step: CleaningStepProtocol) -> "CleaningPipeline":
        return CleaningPipeline(steps=self.steps + (step,), id_column=self.id_column)

    def select(self, columns: Sequence[str], rename: Optional[Mapping[str, str]] = None) -> "CleaningPipeline":
        return self.then(Select(tuple(columns), dict(rename or {})))

    def rename(self, mapping: Mapping[str, str]) -> "CleaningPipeline":
        return self.then(Rename(dict(mapping)))

    def retype(self, column: str, kind: str, levels: Optional[Iterable[Any]] = None,
               ordered: bool = False) -> "CleaningPipeline":
        return self.then(Retype(column, kind, tuple(levels) if levels is not None else None, ordered))

    def derive(self, column: str, function, **params) -> "CleaningPipeline":
        return self.then(Derive(column, function, params))

    def filter(self, predicate: Optional[Callable] = None, query: Optional[str] = None,
               label: str = "") -> "CleaningPipeline":
        return self.then(Filter(predicate=predicate, query=query, label=label))

    def drop_missing(self, columns: Sequence[str] = ()) -> "CleaningPipeline":
        return self.then(DropMissing(tuple(columns)))

    def impute_pmm(self, column: str, predictors: Sequence[str], donors: int = 5,
                   seed: int = 432) -> "CleaningPipeline":
        return self.then(ImputePMM(column, tuple(predictors), donors, seed))

    def collapse_rare_levels(self, column: str, min_count: Optional[int] = None,
                             other_label: str = "Other") -> "CleaningPipeline":
        if min_count is None:
            min_count = settings.rare_level_min_count
        return self.then(CollapseRareLevels(column, int(min_count), other_label))

    def drop_unused_levels(self, columns: Sequence[str] = ()) -> "CleaningPipeline":
        return self.then(DropUnusedLevels(tuple(columns)))

    def sample(self, n: int, seed: int) -> "CleaningPipeline":
        return self.then(Sample(n, seed))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def run(self, raw: pd.DataFrame) -> CleaningResult:
        """Apply every step in order and return the table plus its audit."""
        current = raw
        audit: List[AuditEntry] = []
        for step in self.steps:
            before = current
            current = step.apply(before)
            note_fn = getattr(step, "note", None)
            note = note_fn(before, current) if callable(note_fn) else ""
            entry = AuditEntry(step.name, len(before), len(current), current.shape[1], note)
            audit.append(entry)
            logger.info("%-20s %6d -> %6d rows  %s", step.name, entry.rows_before, entry.rows_after, note)

            if self.id_column and self.id_column in current.columns:
                check_unique_identifier(current, self.id_column, step=step.name)

        return CleaningResult(table=current, audit=tuple(audit), id_column=self.id_column)


# =============================================================================
# YAML / dict configuration
# =============================================================================

def _step_select(p: Dict[str, Any]):
    return Select(tuple(p["columns"]), dict(p.get("rename") or {}))


def _step_retype(p: Dict[str, Any]):
    levels = p.get("levels")
    return Retype(p["column"], p["kind"], tuple(levels) if levels is not None else None, bool(p.get("ordered", False)))


def _step_derive(p: Dict[str, Any]):
    p = dict(p)
    column = p.pop("column", None) or p.pop("name")
    function = p.pop("function")
    return Derive(column, function, p)


def _step_filter(p: Dict[str, Any]):
    return Filter(query=p["query"], label=p.get("label", ""))


STEP_BUILDERS: Dict[str, Callable[[Dict[str, Any]], CleaningStepProtocol]] = {
    "select": _step_select,
    "rename": lambda p: Rename(dict(p.get("mapping", p))),
    "retype": _step_retype,
    "derive": _step_derive,
    "filter": _step_filter,
    "drop_missing": lambda p: DropMissing(tuple((p or {}).get("columns", ()))),
    "impute_pmm": lambda p: ImputePMM(p["column"], tuple(p["predictors"]), int(p.get("donors", 5)), int(p["seed"])),
    "collapse_rare_levels": lambda p: CollapseRareLevels(
        p["column"], int(p.get("min_count", settings.rare_level_min_count)), p.get("other_label", "Other")),
    "drop_unused_levels": lambda p: DropUnusedLevels(tuple((p or {}).get("columns", ()))),
    "sample": lambda p: Sample(int(p["n"]), int(p["seed"])),
}


def pipeline_from_config(cfg: Mapping[str, Any]) -> CleaningPipeline:
    """
    Build a pipeline from the ``cleaning`` section of an analysis file:

        cleaning:
          id_column: id
          steps:
            - select: {columns: [id, year, comb08]}
            - filter: {query: "year >= 1990", label: recent}
            - sample: {n: 1200, seed: 432}
    """
    pipeline = CleaningPipeline(id_column=cfg.get("id_column"))
    for i, entry in enumerate(cfg.get("steps") or []):
        if not isinstance(entry, Mapping) or len(entry) != 1:
            raise ConfigurationError(
                f"Cleaning step #{i + 1} must be a mapping with exactly one key",
                details={"step": entry},
            )
        (kind, params), = entry.items()
        if kind not in STEP_BUILDERS:
            raise ConfigurationError(
                f"Unknown cleaning step '{kind}'",
                details={"available": sorted(STEP_BUILDERS)},
            )
        try:
            pipeline = pipeline.then(STEP_BUILDERS[kind](params or {}))
        except KeyError as e:
            raise ConfigurationError(
                f"Cleaning step '{kind}' is missing required key {e}",
                details={"step": entry},
            ) from e
    return pipeline
