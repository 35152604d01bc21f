# statlab/validation/__init__.py
"""
Internal validation of fitted models.

    from statlab.validation import validate_bootstrap

    result = validate_bootstrap(fitted, table, replicates=200, seed=432)
    result.table        # apparent / optimism / corrected per statistic
"""

from statlab.validation.bootstrap import validate_bootstrap
from statlab.validation.result import ValidationResult
from statlab.validation.split import validate_cv, validate_holdout

METHODS = {
    "bootstrap": validate_bootstrap,
    "holdout": validate_holdout,
    "cv": validate_cv,
}

__all__ = ["METHODS", "ValidationResult", "validate_bootstrap", "validate_cv", "validate_holdout"]
