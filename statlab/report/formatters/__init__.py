# statlab/report/formatters/__init__.py
"""
Formatters for report generation.

This module provides formatting utilities for converting raw values
into display-ready strings for reports.
"""

from statlab.report.formatters.numeric import (
    fmt_ci,
    fmt_int,
    fmt_number,
    fmt_p_value,
    fmt_pct,
)
from statlab.report.formatters.lists import (
    fmt_list,
    fmt_list_or_message,
)

__all__ = [
    # Numeric formatters
    "fmt_ci",
    "fmt_int",
    "fmt_number",
    "fmt_p_value",
    "fmt_pct",
    # List formatters
    "fmt_list",
    "fmt_list_or_message",
]
