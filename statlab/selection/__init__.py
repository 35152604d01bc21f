# statlab/selection/__init__.py
from statlab.selection.compare import ComparisonResult, compare_models, is_nested, select_parsimonious
from statlab.selection.likelihood import likelihood_ratio_test, vuong_test

__all__ = [
    "ComparisonResult",
    "compare_models",
    "is_nested",
    "likelihood_ratio_test",
    "select_parsimonious",
    "vuong_test",
]
