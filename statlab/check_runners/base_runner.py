# statlab/check_runners/base_runner.py
"""
Base class for all exploratory check runners.

This module provides the foundational class that all check runners inherit from,
ensuring a consistent interface and common functionality across all checks.

For Contributors:
    To create a new check runner, inherit from BaseCheckRunner and implement:
    1. `name` property - unique identifier for your check
    2. `execute()` method - your check logic

    Example:
        from statlab.check_runners.base_runner import BaseCheckRunner

        class RowCountCheckRunner(BaseCheckRunner):
            @property
            def name(self) -> str:
                return "RowCountCheck"

            def execute(self) -> Dict[str, Any]:
                return {"status": "ok", "rows": len(self.context.table)}
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from statlab.config.settings import settings

if TYPE_CHECKING:
    from statlab.core.context import AnalysisContext

logger = logging.getLogger(__name__)


class BaseCheckRunner(ABC):
    """
    Abstract base class for all check runners.

    Provides common functionality including:
    - Configuration access via `self._config` (settings defaults overlaid
      with the check's section under ``summaries`` in the analysis config)
    - Output directory management via `get_output_dir()`
    - Standardized error handling in `run()`

    The Template Method pattern is used: subclasses implement `execute()`,
    and the base class handles setup and error handling in `run()`.
    """

    def __init__(self, context: "AnalysisContext"):
        self.context = context
        self._config: Dict[str, Any] = {
            **settings.get_check_defaults(self.name),
            **context.get_check_config(self.name),
        }

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Unique identifier for this check, used for configuration lookup,
        result keys and log messages (e.g. "VIFCheck").
        """

    @property
    def enabled(self) -> bool:
        return bool(self._config.get("enabled", True))

    def get_output_dir(self, subdir: str = "") -> Path:
        """
        Get the output directory for this check's artifacts.

        Creates the directory if it doesn't exist, e.g.
        ``reports/correlation`` for CorrelationCheck.
        """
        base_dir = self.context.get_option("output.artifacts_dir") or str(self.context.artifacts_dir)

        check_dir = self.name.lower().replace("check", "")
        path = Path(base_dir) / check_dir
        if subdir:
            path = path / subdir

        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_config_value(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    @abstractmethod
    def execute(self) -> Dict[str, Any]:
        """
        Execute the check logic.

        You have access to:
        - self.context: The full AnalysisContext
        - self.get_output_dir(): For saving artifacts
        - self.get_config_value(): For reading configuration

        Returns:
            Dictionary containing the check results.

        Raises:
            Any exception will be caught by run() and returned as an error dict.
        """

    def run(
        self,
        progress_callback: Optional[Callable[[str], None]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Execute the check with standardized error handling.

        Returns:
            Check results dictionary, or None if disabled.
            On error, returns {"error": str(e)}.
        """
        if not self.enabled:
            logger.info("%s skipped (disabled)", self.name)
            return None

        if progress_callback:
            progress_callback(f"Running {self.name}...")

        try:
            return self.execute()
        except Exception as e:
            logger.warning("%s failed: %s", self.name, e)
            return {"error": str(e)}

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, enabled={self.enabled})>"
