# statlab/config/settings.py
"""
statlab Settings Module.

Provides library-wide settings with environment variable support.
All settings can be overridden via environment variables with STATLAB_ prefix.

Environment Variables:
    STATLAB_ARTIFACTS_DIR: Directory for saving artifacts (default: "reports")
    STATLAB_DATA_DIR: Directory holding local copies of public datasets
    STATLAB_DEBUG: Enable debug logging (default: false)
    STATLAB_SEED: Default random seed (default: 432)
    STATLAB_CONF_LEVEL: Default confidence level (default: 0.95)
    STATLAB_BOOTSTRAP_REPLICATES: Default bootstrap replicates (default: 200)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get integer from environment variable."""
    val = os.environ.get(key)
    if val is not None:
        try:
            return int(val)
        except ValueError:
            pass
    return default


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    val = os.environ.get(key)
    if val is not None:
        try:
            return float(val)
        except ValueError:
            pass
    return default


def _get_env_path(key: str, default: Optional[Path]) -> Optional[Path]:
    """Get Path from environment variable."""
    val = os.environ.get(key)
    if val is not None:
        return Path(val)
    return default


@dataclass
class StatlabSettings:
    """
    Library-wide settings for statlab.

    The df-budget and level-collapsing thresholds are policy parameters,
    not laws: analyses that need a different rule override them in their
    YAML file or by constructing their own settings object.

    Attributes:
        artifacts_dir: Directory for saving artifacts (plots, CSVs, reports)
        data_dir: Directory holding local copies of the public datasets
        debug: Enable debug logging
        default_seed: Seed used when an analysis does not state one
        conf_level: Default confidence level for coefficient intervals
        bootstrap_replicates: Default number of bootstrap replicates
        vif_threshold: VIF above which a predictor is flagged
        correlation_threshold: |r| above which a pair is flagged
        rare_level_min_count: Default minimum count before a level is collapsed
        df_budget_base / df_budget_offset / df_budget_per:
            usable predictor d.f. <= base + (n_eff - offset) / per
        selection_margin: Improvement a more complex model must show

    Example:
        from statlab.config import settings
        print(settings.default_seed)

        custom = StatlabSettings(debug=True, bootstrap_replicates=40)
    """

    # Paths
    artifacts_dir: Path = field(
        default_factory=lambda: _get_env_path("STATLAB_ARTIFACTS_DIR", Path("reports"))
    )
    data_dir: Optional[Path] = field(
        default_factory=lambda: _get_env_path("STATLAB_DATA_DIR", None)
    )
    pipelines_dir: Path = field(
        default_factory=lambda: Path(__file__).parent.parent / "pipelines"
    )

    # Feature flags
    debug: bool = field(
        default_factory=lambda: _get_env_bool("STATLAB_DEBUG", False)
    )

    # Reproducibility / inference
    default_seed: int = field(
        default_factory=lambda: _get_env_int("STATLAB_SEED", 432)
    )
    conf_level: float = field(
        default_factory=lambda: _get_env_float("STATLAB_CONF_LEVEL", 0.95)
    )
    bootstrap_replicates: int = field(
        default_factory=lambda: _get_env_int("STATLAB_BOOTSTRAP_REPLICATES", 200)
    )

    # Check defaults
    vif_threshold: float = 5.0
    correlation_threshold: float = 0.80
    rare_level_min_count: int = 10

    # Degrees-of-freedom budget
    df_budget_base: float = field(
        default_factory=lambda: _get_env_float("STATLAB_DF_BUDGET_BASE", 4.0)
    )
    df_budget_offset: float = field(
        default_factory=lambda: _get_env_float("STATLAB_DF_BUDGET_OFFSET", 100.0)
    )
    df_budget_per: float = field(
        default_factory=lambda: _get_env_float("STATLAB_DF_BUDGET_PER", 100.0)
    )

    # Candidate selection
    selection_margin: float = 0.01

    # Report settings
    report_dpi: int = 200
    report_image_width_inches: float = 6.0

    def get_check_defaults(self, check_name: str) -> Dict[str, Any]:
        """
        Get default configuration for a specific exploratory check.

        Args:
            check_name: Name of the check (e.g., "CorrelationCheck")

        Returns:
            Dictionary of default values for the check
        """
        defaults = {
            "CorrelationCheck": {
                "method": "spearman",
                "high_corr_threshold": self.correlation_threshold,
                "save_csv": True,
            },
            "VIFCheck": {
                "threshold": self.vif_threshold,
            },
            "MissingnessCheck": {
                "save_csv": True,
            },
            "DistributionCheck": {
                "max_levels": 25,
            },
        }
        return defaults.get(check_name, {})

    def get_pipeline_path(self, name: str) -> Path:
        """Path of a packaged example analysis (e.g. "epa_vehicles")."""
        return self.pipelines_dir / f"{name}.yaml"

    def as_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "artifacts_dir": str(self.artifacts_dir),
            "data_dir": str(self.data_dir) if self.data_dir else None,
            "debug": self.debug,
            "default_seed": self.default_seed,
            "conf_level": self.conf_level,
            "bootstrap_replicates": self.bootstrap_replicates,
            "vif_threshold": self.vif_threshold,
            "correlation_threshold": self.correlation_threshold,
            "rare_level_min_count": self.rare_level_min_count,
            "df_budget": {
                "base": self.df_budget_base,
                "offset": self.df_budget_offset,
                "per": self.df_budget_per,
            },
            "selection_margin": self.selection_margin,
        }


# Global settings instance (singleton pattern)
settings = StatlabSettings()
