# statlab/cleaning/derive.py
"""
Built-in derivation functions for the ``Derive`` cleaning step.

Each function takes the current table plus keyword parameters and
returns a new Series aligned to the table's index. They only read
columns; materialising the result is the step's job.

Example:
    decade = DERIVATIONS["bucket"](
        df, source="year", breaks=[1980, 1990, 2000, 2010, 2020, 2030],
        labels=["1980s", "1990s", "2000s", "2010s", "2020s"],
    )
"""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from statlab.core.exceptions import BucketCoverageError, ConfigurationError, MissingColumnError


def _require(df: pd.DataFrame, *columns: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise MissingColumnError(missing, step="derive")


def _numeric(df: pd.DataFrame, column: str) -> pd.Series:
    return pd.to_numeric(df[column], errors="coerce")


def bucket(
    df: pd.DataFrame,
    source: str,
    breaks: Sequence[float],
    labels: Optional[Sequence[str]] = None,
    right: bool = False,
    ordered: bool = True,
) -> pd.Series:
    """
    Cut a continuous column into labelled buckets at fixed breakpoints.

    Buckets are half-open ([a, b) by default). Every non-missing value
    must fall in exactly one bucket; values outside the outer breaks
    raise BucketCoverageError instead of silently becoming missing.
    """
    _require(df, source)
    values = _numeric(df, source)
    edges = [float(b) for b in breaks]
    if len(edges) < 2 or any(b >= a for a, b in zip(edges[1:], edges[:-1])):
        raise ValueError(f"bucket breaks must be strictly increasing, got {list(breaks)}")
    if labels is not None and len(labels) != len(edges) - 1:
        raise ValueError(f"bucket needs {len(edges) - 1} labels, got {len(labels)}")

    out = pd.cut(values, bins=edges, labels=labels, right=right, include_lowest=True, ordered=ordered)
    uncovered = int((values.notna() & out.isna()).sum())
    if uncovered:
        raise BucketCoverageError(source, uncovered)
    return out


def bmi(
    df: pd.DataFrame,
    weight: str = "weight",
    height: str = "height",
    height_unit: str = "cm",
) -> pd.Series:
    """Body-mass index from weight (kg) and height (cm or m)."""
    _require(df, weight, height)
    h = _numeric(df, height)
    if height_unit == "cm":
        h = h / 100.0
    elif height_unit != "m":
        raise ValueError(f"height_unit must be 'cm' or 'm', got {height_unit!r}")
    return _numeric(df, weight) / (h ** 2)


def log(df: pd.DataFrame, source: str, base: Optional[float] = None, offset: float = 0.0) -> pd.Series:
    """Natural (or base-``base``) log of ``source + offset``; non-positive values become NaN."""
    _require(df, source)
    x = _numeric(df, source) + offset
    out = np.log(x.where(x > 0))
    if base is not None:
        out = out / np.log(base)
    return out


def log1p(df: pd.DataFrame, source: str) -> pd.Series:
    _require(df, source)
    x = _numeric(df, source)
    return np.log1p(x.where(x > -1))


def sqrt(df: pd.DataFrame, source: str) -> pd.Series:
    _require(df, source)
    x = _numeric(df, source)
    return np.sqrt(x.where(x >= 0))


def ratio(df: pd.DataFrame, numerator: str, denominator: str, scale: float = 1.0) -> pd.Series:
    """``scale * numerator / denominator``; a zero denominator gives NaN."""
    _require(df, numerator, denominator)
    den = _numeric(df, denominator)
    return scale * _numeric(df, numerator) / den.where(den != 0)


def expression(df: pd.DataFrame, expr: str, columns: Optional[List[str]] = None) -> pd.Series:
    """
    Evaluate a pandas expression over existing columns, e.g.
    ``"fuelCost08 / comb08"``. ``columns`` lists what it reads so a
    missing input is reported by name rather than as a NameError.
    Comparisons against a missing value evaluate to False, so
    ``"obese_pct > 35"`` marks a row with no ``obese_pct`` as False;
    drop or impute such rows first when that matters.
    """
    if columns:
        _require(df, *columns)
    try:
        return pd.Series(df.eval(expr, engine="python"), index=df.index)
    except pd.errors.UndefinedVariableError as e:
        m = re.search(r"'([^']+)'", str(e))
        raise MissingColumnError([m.group(1) if m else str(e)], step="derive") from e


DERIVATIONS: Dict[str, Callable[..., pd.Series]] = {
    "bucket": bucket,
    "bmi": bmi,
    "log": log,
    "log1p": log1p,
    "sqrt": sqrt,
    "ratio": ratio,
    "expression": expression,
}


def get_derivation(name: str) -> Callable[..., pd.Series]:
    if name not in DERIVATIONS:
        raise ConfigurationError(f"Unknown derivation: {name}", details={"available": sorted(DERIVATIONS)})
    return DERIVATIONS[name]
