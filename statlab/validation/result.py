# statlab/validation/result.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import pandas as pd


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating one model.

    ``table`` has one row per statistic. Bootstrap results carry the
    columns ``apparent``, ``optimism`` and ``corrected``; holdout results
    ``training`` and ``test``; cross-validation results ``mean``,
    ``std``, ``median`` and ``iqr`` over folds.
    """

    method: str
    model_name: str
    seed: int
    replicates: int
    n_failed: int
    table: pd.DataFrame
    higher_is_better: Dict[str, bool] = field(default_factory=dict)
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def validated_column(self) -> str:
        return {"bootstrap": "corrected", "holdout": "test", "cv": "mean"}[self.method]

    def validated(self, statistic: str) -> float:
        """Optimism-corrected, test or fold-mean value of ``statistic``."""
        return float(self.table.loc[statistic, self.validated_column])

    def apparent(self, statistic: str) -> Optional[float]:
        col = {"bootstrap": "apparent", "holdout": "training"}.get(self.method)
        if col is None:
            return None
        return float(self.table.loc[statistic, col])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "model": self.model_name,
            "seed": self.seed,
            "replicates": self.replicates,
            "n_failed": self.n_failed,
            "table": self.table.reset_index().to_dict(orient="records"),
        }
