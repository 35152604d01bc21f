# statlab/core/context.py
"""
Context objects for statlab components.

Context objects provide a clean, immutable interface for passing data
between the pipeline stages. Exploratory runners and the report builder
read from them; nothing downstream writes back.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True)
class AnalysisContext:
    """
    Immutable context passed to all exploratory check runners.

    Attributes:
        table: Cleaned analysis table
        config: Full analysis configuration dictionary
        raw_df: Raw table the cleaning started from (optional)
        audit: Cleaning audit frame (optional)
        outcome: Name of the outcome column, if known
        predictors: Predictor column names used by the candidates
        id_column: Unique identifier column, if any
        artifacts_dir: Directory for saving artifacts (plots, CSVs)

    Example:
        context = AnalysisContext(
            table=cleaned,
            config=config,
            outcome="comb08",
            predictors=["displ", "drive"],
        )
        runner = VIFCheckRunner(context)
        results = runner.run()
    """

    table: "pd.DataFrame"
    config: Dict[str, Any] = field(default_factory=dict)
    raw_df: Optional["pd.DataFrame"] = None
    audit: Optional["pd.DataFrame"] = None
    outcome: Optional[str] = None
    predictors: List[str] = field(default_factory=list)
    id_column: Optional[str] = None
    artifacts_dir: Path = field(default_factory=lambda: Path("reports"))

    def get_check_config(self, check_name: str) -> Dict[str, Any]:
        """Configuration section for one check, or an empty dict."""
        return self.config.get("summaries", {}).get(check_name, {}) or {}

    def get_option(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration option by dot-separated path
        (e.g. "output.report_path").
        """
        current: Any = self.config
        for part in key.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    @property
    def feature_frame(self) -> "pd.DataFrame":
        """Predictor columns only (falls back to every non-outcome column)."""
        cols = [c for c in self.predictors if c in self.table.columns]
        if not cols:
            cols = [c for c in self.table.columns if c not in (self.outcome, self.id_column)]
        return self.table[cols]

    def with_artifacts_dir(self, path: Path) -> "AnalysisContext":
        """Copy of this context with a different artifacts directory."""
        return replace(self, artifacts_dir=Path(path))


@dataclass(frozen=True)
class ReportContext:
    """
    Immutable context for report generation.

    Attributes:
        results: Full analysis results dictionary
        analysis_name: Display name of the analysis
        generated_at: Timestamp string for report generation
        output_path: Path where the report will be saved
    """

    results: Dict[str, Any]
    analysis_name: str = "Analysis"
    generated_at: str = ""
    output_path: Optional[Path] = None

    def get_section(self, section_name: str) -> Any:
        """Results for one section, or an empty dict."""
        return self.results.get(section_name, {})

    def has_section(self, section_name: str) -> bool:
        """Check if results contain data for a section."""
        section = self.results.get(section_name)
        if section is None:
            return False
        if isinstance(section, dict):
            return section != {} and not section.get("error")
        return True
