# statlab/check_runners/__init__.py
"""
Exploratory check runners for the statlab analysis engine.

Each runner implements the BaseCheckRunner interface and summarises the
cleaned table before any model is fitted.

For Contributors - Adding a New Check:
    1. Create a new file: statlab/check_runners/my_check_runner.py
    2. Inherit from BaseCheckRunner
    3. Implement `name` property and `execute()` method
    4. Register in CHECK_RUNNER_CLASSES (engine/check_agent_registry.py)

Available Runners:
    - CleaningAuditCheckRunner: Row counts after each cleaning step
    - MissingnessCheckRunner: Missing values per column and pattern
    - DistributionCheckRunner: Numeric and categorical summaries
    - CorrelationCheckRunner: Predictor correlations
    - VIFCheckRunner: Variance inflation factors
"""

from statlab.check_runners.base_runner import BaseCheckRunner

__all__ = [
    "BaseCheckRunner",
]
