# statlab/check_runners/missingness_runner.py
"""
Missing-data check runner.
"""

from __future__ import annotations

from typing import Any, Dict

from statlab.analysis.missingness import complete_case_count, missing_pattern_counts, missingness_table
from statlab.check_runners.base_runner import BaseCheckRunner


class MissingnessCheckRunner(BaseCheckRunner):
    """
    Per-column missing counts, complete cases and missingness patterns.

    Configuration Options:
        columns: restrict to these columns (default: all)
        save_csv: write the per-column table (default: True)
    """

    @property
    def name(self) -> str:
        return "MissingnessCheck"

    def execute(self) -> Dict[str, Any]:
        cols = self.get_config_value("columns")
        df = self.context.table[cols] if cols else self.context.table

        table = missingness_table(df)
        result: Dict[str, Any] = {
            "table": table,
            "n_rows": int(len(df)),
            "complete_cases": complete_case_count(df),
            "columns_with_missing": int((table["n_missing"] > 0).sum()),
            "patterns": missing_pattern_counts(df).head(10),
        }

        if self.get_config_value("save_csv", True):
            path = self.get_output_dir() / "missingness.csv"
            table.to_csv(path, index=False)
            result["missingness_csv"] = str(path)
        return result
