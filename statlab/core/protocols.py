# statlab/core/protocols.py
"""
Protocol definitions for statlab components.

Protocols enable structural subtyping (duck typing) with type checker
support, so contributors can plug in a cleaning step or an exploratory
check without inheriting from the package's base classes.

Example:
    class UpperCaseMake:
        name = "upper_make"

        def apply(self, df):
            out = df.copy()
            out["make"] = out["make"].str.upper()
            return out

    step: CleaningStepProtocol = UpperCaseMake()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    import pandas as pd
    from statlab.core.context import ReportContext


@runtime_checkable
class CleaningStepProtocol(Protocol):
    """
    Protocol for cleaning steps.

    A step turns one table into a new table; it must never modify its
    input in place.
    """

    @property
    def name(self) -> str:
        """Short identifier used in the cleaning audit."""
        ...

    def apply(self, df: "pd.DataFrame") -> "pd.DataFrame":
        """Return a new, transformed table."""
        ...


@runtime_checkable
class CheckRunnerProtocol(Protocol):
    """
    Protocol for exploratory check runners.

    Attributes:
        name: Unique identifier for this check (e.g., "VIFCheck")
        enabled: Whether this check should run based on configuration

    Methods:
        run: Execute the check and return results dictionary
    """

    @property
    def name(self) -> str:
        """Unique identifier for this check."""
        ...

    @property
    def enabled(self) -> bool:
        """Whether this check is enabled in configuration."""
        ...

    def run(self) -> Optional[Dict[str, Any]]:
        """
        Execute the check and return results.

        Returns:
            Dictionary containing check results, or None if disabled.
            On error, return {"error": "description"}.
        """
        ...


@runtime_checkable
class ReportSectionBuilderProtocol(Protocol):
    """
    Protocol for report section builders.

    Each section of the analysis report (cleaning, models, validation...)
    is built by a component implementing this protocol.
    """

    @property
    def section_name(self) -> str:
        """Identifier for this report section."""
        ...

    def should_include(self, context: "ReportContext") -> bool:
        """Determine if this section should be included in the report."""
        ...

    def build(self, context: "ReportContext", document: Any) -> None:
        """Build this section into the document (a python-docx Document)."""
        ...
