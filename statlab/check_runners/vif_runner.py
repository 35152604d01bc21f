# statlab/check_runners/vif_runner.py
"""
VIF (Variance Inflation Factor) check runner.

This check detects multicollinearity between predictors by computing
VIF scores. High VIF values indicate predictors that are highly correlated
with other predictors and make coefficient estimates unstable.
"""

from __future__ import annotations

from typing import Any, Dict

import pandas as pd

from statlab.analysis.correlation import calculate_vif
from statlab.check_runners.base_runner import BaseCheckRunner


class VIFCheckRunner(BaseCheckRunner):
    """
    Runner for VIF multicollinearity analysis.

    Configuration Options:
        threshold: VIF threshold for flagging predictors (default: 5.0)
        features: predictor columns (default: the candidates' predictors)

    Output:
        - vif_values: Dictionary of column -> VIF score
        - high_vif_features: Columns with VIF above threshold
        - vif_csv: path of the saved table
    """

    @property
    def name(self) -> str:
        return "VIFCheck"

    def execute(self) -> Dict[str, Any]:
        threshold = float(self.get_config_value("threshold", 5.0))
        features = self.get_config_value("features") or list(self.context.feature_frame.columns)

        result = calculate_vif(self.context.table, features=features, threshold=threshold)
        if result.get("vif_values"):
            path = self.get_output_dir() / "vif.csv"
            pd.Series(result["vif_values"], name="vif").rename_axis("term").to_csv(path)
            result["vif_csv"] = str(path)
        return result
