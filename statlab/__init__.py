# statlab/__init__.py
"""
statlab - Reproducible applied regression and survival analysis

statlab turns a YAML analysis description into a cleaned table,
exploratory summaries, fitted candidate models, seeded validation,
parsimonious model selection and a Word report.

Quick Start:
    from statlab import AnalysisEngine, ReportBuilder

    engine = AnalysisEngine(config, raw_df=df)
    results = engine.run()

    ReportBuilder(results, "report.docx").build()

Or from a YAML file:
    from statlab import run_from_yaml
    results = run_from_yaml("analysis.yaml")

For Contributors:
    See statlab/check_runners/base_runner.py for creating custom summaries.
    See statlab/engine/check_agent_registry.py for registering them.
"""

__version__ = "0.1.0"

# Core abstractions (for contributors)
from statlab.core import (
    AnalysisContext,
    ReportContext,
    CheckRunnerProtocol,
    StatlabError,
    CheckRunnerError,
    ReportGenerationError,
)

# Configuration
from statlab.config import settings, StatlabSettings

# Models, validation and selection
from statlab.models import ModelSpec, Family, fit_model, fit_kaplan_meier
from statlab.validation import validate_bootstrap, validate_holdout, validate_cv
from statlab.selection import compare_models, select_parsimonious

# Main components
from statlab.engine.core_engine_agent import AnalysisEngine
from statlab.report.report_builder import ReportBuilder
from statlab.run import run_analysis, run_from_yaml

# Check runner base class (for contributors)
from statlab.check_runners.base_runner import BaseCheckRunner

# Registry functions (for contributors)
from statlab.engine.check_agent_registry import (
    register_check,
    list_available_checks,
)

__all__ = [
    # Version
    "__version__",
    # Core abstractions
    "AnalysisContext",
    "ReportContext",
    "CheckRunnerProtocol",
    "StatlabError",
    "CheckRunnerError",
    "ReportGenerationError",
    # Configuration
    "settings",
    "StatlabSettings",
    # Models
    "ModelSpec",
    "Family",
    "fit_model",
    "fit_kaplan_meier",
    "validate_bootstrap",
    "validate_holdout",
    "validate_cv",
    "compare_models",
    "select_parsimonious",
    # Main components
    "AnalysisEngine",
    "ReportBuilder",
    "run_analysis",
    "run_from_yaml",
    # For contributors
    "BaseCheckRunner",
    "register_check",
    "list_available_checks",
]
