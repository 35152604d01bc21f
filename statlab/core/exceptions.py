# statlab/core/exceptions.py
"""
Exception hierarchy for statlab.

Every failure an analysis can hit maps onto one of these classes, so a
script can stop on the first problem and the analyst can decide the
one-time remediation (drop rows, drop a collinear predictor, collapse
rare levels) before re-running.

Exception Hierarchy:
    StatlabError (base)
    ├── ConfigurationError
    ├── DataLoadError
    ├── CleaningError
    │   ├── MissingColumnError
    │   ├── DuplicateIdentifierError
    │   ├── SampleSizeError
    │   └── BucketCoverageError
    ├── ModelFitError
    │   ├── MissingValueError
    │   ├── InsufficientLevelsError
    │   ├── RankDeficiencyError
    │   ├── DegreesOfFreedomError
    │   └── ConvergenceError
    ├── ValidationRunError
    ├── CheckRunnerError
    │   └── CheckNotFoundError
    └── ReportGenerationError
"""

from typing import Any, Dict, Iterable, Optional


class StatlabError(Exception):
    """
    Base exception for all statlab errors.

        try:
            engine.run()
        except StatlabError as e:
            logger.error(f"statlab error: {e}")
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ============================================================================
# Configuration Exceptions
# ============================================================================

class ConfigurationError(StatlabError):
    """Base exception for configuration errors."""
    pass


# ============================================================================
# Data Loading Exceptions
# ============================================================================

class DataLoadError(StatlabError):
    """Raised when reading or writing a table fails."""

    def __init__(
        self,
        path: str,
        file_type: str,
        original_error: Optional[Exception] = None,
    ):
        message = f"Failed to load {file_type} file: {path}"
        if original_error:
            message += f" ({original_error})"
        super().__init__(
            message,
            details={"path": path, "file_type": file_type},
        )
        self.original_error = original_error


# ============================================================================
# Cleaning Exceptions
# ============================================================================

class CleaningError(StatlabError):
    """Base exception for cleaning/transformation errors."""
    pass


class MissingColumnError(CleaningError):
    """Raised when a declared column is absent from the table."""

    def __init__(self, columns: Iterable[str], step: Optional[str] = None):
        cols = sorted(str(c) for c in columns)
        where = f" in step '{step}'" if step else ""
        super().__init__(
            f"Missing column(s){where}: {cols}",
            details={"columns": cols, "step": step},
        )
        self.columns = cols


class DuplicateIdentifierError(CleaningError):
    """Raised when the identifier column stops being unique."""

    def __init__(self, column: str, n_rows: int, n_unique: int, step: Optional[str] = None):
        super().__init__(
            f"Identifier column '{column}' has {n_unique} distinct values for {n_rows} rows",
            details={"column": column, "rows": n_rows, "unique": n_unique, "step": step},
        )


class SampleSizeError(CleaningError):
    """Raised when a sample larger than the table is requested."""

    def __init__(self, requested: int, available: int):
        super().__init__(
            f"Cannot sample {requested} rows from a table with {available} rows",
            details={"requested": requested, "available": available},
        )


class BucketCoverageError(CleaningError):
    """Raised when bucketing leaves rows outside every declared bucket."""

    def __init__(self, column: str, n_uncovered: int):
        super().__init__(
            f"{n_uncovered} non-missing value(s) of '{column}' fall outside the declared breaks",
            details={"column": column, "uncovered": n_uncovered},
        )


# ============================================================================
# Model Fitting Exceptions
# ============================================================================

class ModelFitError(StatlabError):
    """Base exception for model fitting errors."""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.model_name = model_name


class MissingValueError(ModelFitError):
    """Raised when columns used for fitting contain missing values."""

    def __init__(self, counts: Dict[str, int], model_name: Optional[str] = None):
        super().__init__(
            f"Complete cases required; missing values in {counts}",
            model_name=model_name,
            details={"missing": counts},
        )
        self.counts = counts


class InsufficientLevelsError(ModelFitError):
    """Raised when a categorical variable has fewer than two observed levels."""

    def __init__(self, column: str, levels: Iterable[Any], model_name: Optional[str] = None):
        lv = [str(v) for v in levels]
        super().__init__(
            f"Categorical column '{column}' has fewer than two observed levels: {lv}",
            model_name=model_name,
            details={"column": column, "levels": lv},
        )


class RankDeficiencyError(ModelFitError):
    """Raised when the design matrix is not of full column rank."""

    def __init__(self, rank: int, n_columns: int, model_name: Optional[str] = None):
        super().__init__(
            f"Design matrix is rank deficient (rank {rank} < {n_columns} columns)",
            model_name=model_name,
            details={"rank": rank, "columns": n_columns},
        )


class DegreesOfFreedomError(ModelFitError):
    """Raised when a model spends more predictor d.f. than the data support."""

    def __init__(self, df_used: int, budget: float, n_effective: float, model_name: Optional[str] = None):
        super().__init__(
            f"Model uses {df_used} predictor d.f. but the budget is {budget:.1f} "
            f"(effective sample size {n_effective:.1f})",
            model_name=model_name,
            details={"df_used": df_used, "budget": budget, "n_effective": n_effective},
        )


class ConvergenceError(ModelFitError):
    """Raised when an iterative fit fails to converge."""
    pass


# ============================================================================
# Validation / Check / Report Exceptions
# ============================================================================

class ValidationRunError(StatlabError):
    """Raised when a resampling validation cannot produce any statistic."""
    pass


class CheckRunnerError(StatlabError):
    """Base exception for exploratory check runner errors."""

    def __init__(
        self,
        message: str,
        check_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.check_name = check_name


class CheckNotFoundError(CheckRunnerError):
    """Raised when a requested check is not found in the registry."""

    def __init__(self, check_name: str):
        super().__init__(
            f"Check '{check_name}' not found in registry",
            check_name=check_name,
        )


class ReportGenerationError(StatlabError):
    """Raised when the report document cannot be written."""
    pass
