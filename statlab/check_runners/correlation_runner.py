# statlab/check_runners/correlation_runner.py
"""
Correlation check runner for analyzing predictor correlations.

This check computes the correlation matrix of the numeric predictors
and identifies highly correlated pairs.
"""

from __future__ import annotations

from typing import Any, Dict

import pandas as pd

from statlab.analysis.correlation import calculate_correlation_matrix, find_highly_correlated_pairs
from statlab.check_runners.base_runner import BaseCheckRunner


class CorrelationCheckRunner(BaseCheckRunner):
    """
    Runner for correlation analysis between predictors.

    Configuration Options:
        method: "pearson", "spearman" or "kendall" (default: "spearman")
        high_corr_threshold: Threshold for flagging pairs (default: 0.8)
        save_csv: write the matrix and flagged pairs (default: True)

    Output Artifacts:
        - <method>_corr.csv: Full correlation matrix
        - correlation_top_pairs.csv: Highly correlated pairs
    """

    @property
    def name(self) -> str:
        return "CorrelationCheck"

    def execute(self) -> Dict[str, Any]:
        method = self.get_config_value("method", "spearman")
        threshold = float(self.get_config_value("high_corr_threshold", 0.8))

        df = self.context.feature_frame
        corr = calculate_correlation_matrix(df, method=method)
        pairs = find_highly_correlated_pairs(corr, threshold=threshold)

        result: Dict[str, Any] = {
            "method": method,
            "threshold": threshold,
            "matrix": corr,
            "top_pairs": pairs,
            "summary": {
                "n_numeric_features": int(corr.shape[0]),
                "n_pairs_flagged": len(pairs),
            },
            "status": "warning" if pairs else "pass",
        }

        if self.get_config_value("save_csv", True) and corr.shape[0]:
            out = self.get_output_dir()
            matrix_path = out / f"{method}_corr.csv"
            pairs_path = out / "correlation_top_pairs.csv"
            corr.to_csv(matrix_path)
            pd.DataFrame(pairs, columns=["feature_1", "feature_2", "correlation"]).to_csv(pairs_path, index=False)
            result["artifacts"] = {"matrix_csv": str(matrix_path), "top_pairs_csv": str(pairs_path)}

        return result
