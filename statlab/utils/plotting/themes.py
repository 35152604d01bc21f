# statlab/utils/plotting/themes.py
"""
statlab plotting theme and colors.

Provides consistent styling across the diagnostic and survival figures.
"""

from __future__ import annotations

from typing import List

import matplotlib.pyplot as plt


STATLAB_COLORS = {
    "primary": "#2563eb",      # Blue
    "secondary": "#7c3aed",    # Purple
    "success": "#10b981",      # Green
    "warning": "#f59e0b",      # Amber
    "danger": "#ef4444",       # Red
    "neutral": "#6b7280",      # Gray
    "text": "#1f2937",         # Dark gray
}

# Color palette for multi-series plots (e.g. one curve per stratum)
STATLAB_PALETTE = [
    "#2563eb",
    "#ef4444",
    "#10b981",
    "#7c3aed",
    "#f59e0b",
    "#06b6d4",
    "#f97316",
    "#14b8a6",
]


def set_statlab_style(
    style: str = "seaborn-v0_8-whitegrid",
    font_scale: float = 1.0,
) -> None:
    """
    Apply statlab's plot styling.

    Call this before creating figures so that every figure in a report
    looks the same.
    """
    if style in plt.style.available:
        plt.style.use(style)
    else:
        plt.style.use("ggplot")

    plt.rcParams.update({
        "axes.prop_cycle": plt.cycler(color=STATLAB_PALETTE),
        "axes.facecolor": "white",
        "figure.facecolor": "white",
        "axes.edgecolor": "#e5e7eb",
        "axes.labelcolor": STATLAB_COLORS["text"],
        "xtick.color": STATLAB_COLORS["text"],
        "ytick.color": STATLAB_COLORS["text"],
        "text.color": STATLAB_COLORS["text"],

        "font.size": 10 * font_scale,
        "axes.titlesize": 12 * font_scale,
        "axes.labelsize": 10 * font_scale,
        "xtick.labelsize": 9 * font_scale,
        "ytick.labelsize": 9 * font_scale,
        "legend.fontsize": 9 * font_scale,

        "axes.grid": True,
        "grid.alpha": 0.3,
        "grid.linewidth": 0.5,
    })


def get_color(name: str) -> str:
    return STATLAB_COLORS[name]


def get_palette(n_colors: int) -> List[str]:
    """Palette with ``n_colors`` entries, cycling when more are needed."""
    extended = STATLAB_PALETTE * (n_colors // len(STATLAB_PALETTE) + 1)
    return extended[:n_colors]
