# statlab/report/formatters/lists.py
"""
List formatting utilities for reports.
"""

from __future__ import annotations

from typing import Any


def fmt_list(
    lst: Any,
    max_items: int = 20,
    sep: str = ", ",
) -> str:
    """
    Format a list as a string with optional truncation.

    Examples:
        >>> fmt_list(['a', 'b', 'c'])
        'a, b, c'
        >>> fmt_list(['a', 'b', 'c', 'd'], max_items=2)
        'a, b, … (+2 more)'
    """
    if lst is None:
        return "—"
    if isinstance(lst, (str, bytes)):
        return str(lst)
    seq = list(lst)
    if not seq:
        return "—"

    if len(seq) <= max_items:
        return sep.join(map(str, seq))

    head = sep.join(map(str, seq[:max_items]))
    return f"{head}{sep}… (+{len(seq) - max_items} more)"


def fmt_list_or_message(
    lst: Any,
    empty_msg: str = "None (no issues detected)",
    max_items: int = 20,
    sep: str = ", ",
) -> str:
    """
    Examples:
        >>> fmt_list_or_message([])
        'None (no issues detected)'
    """
    if not lst:
        return empty_msg
    return fmt_list(lst, max_items=max_items, sep=sep)
