# statlab/report/formatters/numeric.py
"""
Numeric formatting utilities for reports.

Every formatter returns ``dash`` for None, NaN and values that are not
numbers, so report code can format table cells without checks.
"""

from __future__ import annotations

import math
from typing import Any, Optional


def _as_float(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    try:
        xf = float(x)
    except (TypeError, ValueError):
        return None
    return None if xf != xf else xf


def fmt_number(
    x: Any,
    decimals: int = 2,
    dash: str = "—",
) -> str:
    """
    Format a numeric value with specified decimal places.

    Examples:
        >>> fmt_number(0.12345, decimals=2)
        '0.12'
        >>> fmt_number(None)
        '—'
        >>> fmt_number(float('inf'))
        'Inf'
    """
    xf = _as_float(x)
    if xf is None:
        return dash
    if math.isinf(xf):
        return "Inf" if xf > 0 else "-Inf"
    return f"{xf:.{decimals}f}"


def fmt_int(x: Any, dash: str = "—") -> str:
    """
    Examples:
        >>> fmt_int(42.7)
        '43'
    """
    xf = _as_float(x)
    if xf is None or math.isinf(xf):
        return dash
    return str(int(round(xf)))


def fmt_p_value(x: Any, decimals: int = 3, dash: str = "—") -> str:
    """
    Examples:
        >>> fmt_p_value(0.04321)
        '0.043'
        >>> fmt_p_value(1e-6)
        '<0.001'
    """
    xf = _as_float(x)
    if xf is None:
        return dash
    floor = 10.0 ** (-decimals)
    if xf < floor:
        return f"<{floor:.{decimals}f}"
    return f"{xf:.{decimals}f}"


def fmt_ci(low: Any, high: Any, decimals: int = 2, dash: str = "—") -> str:
    """
    Examples:
        >>> fmt_ci(0.1234, 0.5678)
        '(0.12, 0.57)'
    """
    if _as_float(low) is None or _as_float(high) is None:
        return dash
    return f"({fmt_number(low, decimals)}, {fmt_number(high, decimals)})"


def fmt_pct(x: Any, decimals: int = 1, dash: str = "—") -> str:
    """
    Format a value already on the 0-100 scale.

    Examples:
        >>> fmt_pct(12.345)
        '12.3%'
    """
    xf = _as_float(x)
    if xf is None:
        return dash
    return f"{xf:.{decimals}f}%"
