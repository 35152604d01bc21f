# statlab/analysis/__init__.py
"""
Exploratory analysis module for statlab.

Pure functions over a cleaned table, kept separate from the runner
layer so they can be called directly from a script or a test.

Modules:
    - missingness: missing-value tables and patterns
    - distribution: numeric / categorical summaries
    - correlation: correlation matrices and VIF

Example:
    from statlab.analysis import calculate_vif, missingness_table

    missing = missingness_table(df)
    vif = calculate_vif(df, features=["displ", "cylinders"])
"""

from statlab.analysis.correlation import (
    calculate_correlation_matrix,
    calculate_vif,
    find_highly_correlated_pairs,
)
from statlab.analysis.distribution import (
    describe_categorical,
    describe_distribution,
    describe_numeric,
)
from statlab.analysis.missingness import (
    complete_case_count,
    missing_pattern_counts,
    missingness_table,
)

__all__ = [
    # Correlation
    "calculate_correlation_matrix",
    "calculate_vif",
    "find_highly_correlated_pairs",
    # Distribution
    "describe_categorical",
    "describe_distribution",
    "describe_numeric",
    # Missingness
    "complete_case_count",
    "missing_pattern_counts",
    "missingness_table",
]
