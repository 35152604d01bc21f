# statlab/core/__init__.py
"""
Core abstractions for statlab.

This module provides the foundational types shared by every stage:
- Immutable context objects handed to check runners and the reporter
- Protocols for cleaning steps, check runners and report sections
- The exception hierarchy

Example usage for contributors adding new checks:

    from statlab.core import AnalysisContext
    from statlab.check_runners.base_runner import BaseCheckRunner

    class RowCountCheck(BaseCheckRunner):
        @property
        def name(self) -> str:
            return "RowCountCheck"

        def execute(self) -> Dict[str, Any]:
            return {"rows": len(self.context.table)}
"""

from statlab.core.context import AnalysisContext, ReportContext
from statlab.core.protocols import (
    CheckRunnerProtocol,
    CleaningStepProtocol,
    ReportSectionBuilderProtocol,
)
from statlab.core.exceptions import (
    StatlabError,
    ConfigurationError,
    DataLoadError,
    CleaningError,
    MissingColumnError,
    DuplicateIdentifierError,
    SampleSizeError,
    BucketCoverageError,
    ModelFitError,
    MissingValueError,
    InsufficientLevelsError,
    RankDeficiencyError,
    DegreesOfFreedomError,
    ConvergenceError,
    ValidationRunError,
    CheckRunnerError,
    ReportGenerationError,
)

__all__ = [
    # Context objects
    "AnalysisContext",
    "ReportContext",
    # Protocols (interfaces)
    "CheckRunnerProtocol",
    "CleaningStepProtocol",
    "ReportSectionBuilderProtocol",
    # Exceptions
    "StatlabError",
    "ConfigurationError",
    "DataLoadError",
    "CleaningError",
    "MissingColumnError",
    "DuplicateIdentifierError",
    "SampleSizeError",
    "BucketCoverageError",
    "ModelFitError",
    "MissingValueError",
    "InsufficientLevelsError",
    "RankDeficiencyError",
    "DegreesOfFreedomError",
    "ConvergenceError",
    "ValidationRunError",
    "CheckRunnerError",
    "ReportGenerationError",
]
