# statlab/engine/check_agent_registry.py
"""
Check runner registry for the analysis engine.

This module provides the central registry of all exploratory check
runners. The engine uses this registry to discover and instantiate
checks, in registration order.

For Contributors - Adding a New Check:
    1. Create your check runner in statlab/check_runners/my_check_runner.py
    2. Inherit from BaseCheckRunner
    3. Register it with register_check("MyCheck", MyCheckRunner)
"""

from __future__ import annotations

from typing import Dict, Type

from statlab.check_runners.base_runner import BaseCheckRunner
from statlab.check_runners.cleaning_audit_runner import CleaningAuditCheckRunner
from statlab.check_runners.correlation_runner import CorrelationCheckRunner
from statlab.check_runners.distribution_runner import DistributionCheckRunner
from statlab.check_runners.missingness_runner import MissingnessCheckRunner
from statlab.check_runners.vif_runner import VIFCheckRunner
from statlab.core.exceptions import CheckNotFoundError


CHECK_RUNNER_CLASSES: Dict[str, Type[BaseCheckRunner]] = {
    "CleaningAuditCheck": CleaningAuditCheckRunner,
    "MissingnessCheck": MissingnessCheckRunner,
    "DistributionCheck": DistributionCheckRunner,
    "CorrelationCheck": CorrelationCheckRunner,
    "VIFCheck": VIFCheckRunner,
}


def get_runner_class(check_name: str) -> Type[BaseCheckRunner]:
    """
    Get the runner class for a check name.

    Raises:
        CheckNotFoundError: if no runner is registered under ``check_name``
    """
    if check_name not in CHECK_RUNNER_CLASSES:
        raise CheckNotFoundError(check_name)
    return CHECK_RUNNER_CLASSES[check_name]


def list_available_checks() -> list[str]:
    return list(CHECK_RUNNER_CLASSES.keys())


def register_check(name: str, runner_class: Type[BaseCheckRunner]) -> None:
    """
    Register a new check runner.

    Example:
        from statlab.engine.check_agent_registry import register_check
        register_check("OutlierCheck", OutlierCheckRunner)
    """
    if not issubclass(runner_class, BaseCheckRunner):
        raise TypeError(f"{runner_class!r} must inherit from BaseCheckRunner")
    CHECK_RUNNER_CLASSES[name] = runner_class
