# statlab/models/budget.py
"""
Degrees-of-freedom budget.

A model may spend at most ``base + (n_eff - offset) / per`` regression
degrees of freedom on its predictors, where ``n_eff`` is the effective
sample size of the outcome:

    continuous, count     n
    binary, multinomial   size of the smallest outcome category
    ordinal               n - sum(n_k^3) / n^2
    survival              number of events
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from statlab.config.settings import StatlabSettings, settings as default_settings
from statlab.core.exceptions import DegreesOfFreedomError


@dataclass(frozen=True)
class DfBudgetPolicy:
    base: float = 4.0
    offset: float = 100.0
    per: float = 100.0

    def __post_init__(self):
        if self.per <= 0:
            raise ValueError("per must be positive")

    def budget(self, n_effective: float) -> float:
        return max(0.0, self.base + (float(n_effective) - self.offset) / self.per)

    @classmethod
    def from_settings(cls, s: Optional[StatlabSettings] = None) -> "DfBudgetPolicy":
        s = s or default_settings
        return cls(base=s.df_budget_base, offset=s.df_budget_offset, per=s.df_budget_per)


def effective_sample_size(y, outcome_kind: str, event=None) -> float:
    """
    Args:
        y: encoded outcome (integer codes for categorical outcomes)
        outcome_kind: "continuous", "count", "binary", "multinomial",
            "ordinal" or "survival"
        event: event indicator (survival only)
    """
    y = np.asarray(y)
    n = len(y)
    if outcome_kind in ("continuous", "count"):
        return float(n)
    if outcome_kind == "survival":
        if event is None:
            raise ValueError("survival outcomes need an event indicator")
        return float(np.sum(np.asarray(event) == 1))

    counts = pd.Series(y).value_counts().to_numpy(dtype=float)
    if outcome_kind in ("binary", "multinomial"):
        return float(counts.min()) if counts.size else 0.0
    if outcome_kind == "ordinal":
        return float(n - np.sum(counts ** 3) / n ** 2) if n else 0.0
    raise ValueError(f"Unknown outcome kind: {outcome_kind}")


def check_budget(df_used: int, n_effective: float, policy: DfBudgetPolicy, model_name: Optional[str] = None) -> float:
    """Return the budget, raising ``DegreesOfFreedomError`` when it is exceeded."""
    allowed = policy.budget(n_effective)
    if df_used > allowed:
        raise DegreesOfFreedomError(df_used, allowed, n_effective, model_name=model_name)
    return allowed
