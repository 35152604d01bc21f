# statlab/utils/plotting/__init__.py
"""
Plotting utilities for statlab.

Common styling, saving and the model figures embedded in reports.
"""

from statlab.utils.plotting.themes import (
    set_statlab_style,
    STATLAB_COLORS,
    STATLAB_PALETTE,
)
from statlab.utils.plotting.save import (
    save_figure,
    get_figure_path,
)
from statlab.utils.plotting.figures import (
    plot_kaplan_meier,
    plot_residual_diagnostics,
)

__all__ = [
    # Theme
    "set_statlab_style",
    "STATLAB_COLORS",
    "STATLAB_PALETTE",
    # Saving
    "save_figure",
    "get_figure_path",
    # Figures
    "plot_kaplan_meier",
    "plot_residual_diagnostics",
]
