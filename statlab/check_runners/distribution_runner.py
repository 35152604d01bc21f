# statlab/check_runners/distribution_runner.py
from __future__ import annotations

from typing import Any, Dict

from statlab.analysis.distribution import describe_distribution
from statlab.check_runners.base_runner import BaseCheckRunner


class DistributionCheckRunner(BaseCheckRunner):
    """Numeric summaries and categorical level counts of the analysis table."""

    @property
    def name(self) -> str:
        return "DistributionCheck"

    def execute(self) -> Dict[str, Any]:
        max_levels = int(self.get_config_value("max_levels", 25))
        result = describe_distribution(self.context.table, max_levels=max_levels)
        numeric = result["numeric"]
        if not numeric.empty:
            path = self.get_output_dir() / "numeric_summary.csv"
            numeric.to_csv(path)
            result["numeric_csv"] = str(path)
        return result
