# statlab/utils/plotting/figures.py
"""
Model figures: residual diagnostics for linear models and Kaplan-Meier
curves. Each function saves a PNG and returns its path.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

import numpy as np

from statlab.utils.plotting.save import plt, save_figure
from statlab.utils.plotting.themes import get_color, get_palette, set_statlab_style


def plot_residual_diagnostics(fitted, output_dir: Union[str, Path], filename: str) -> str:
    """
    Four-panel diagnostics: residuals vs fitted, normal QQ,
    scale-location and residuals vs leverage (Cook's distance as size).
    """
    diag = fitted.diagnostics()
    set_statlab_style()
    fig, axes = plt.subplots(2, 2, figsize=(10, 8))

    ax = axes[0, 0]
    ax.scatter(diag["fitted"], diag["residual"], s=8, alpha=0.5)
    ax.axhline(0, color=get_color("danger"), linewidth=1)
    ax.set_xlabel("Fitted values")
    ax.set_ylabel("Residuals")
    ax.set_title("Residuals vs Fitted")

    ax = axes[0, 1]
    ax.scatter(diag["qq_theoretical"], diag["studentized"], s=8, alpha=0.5)
    lim = float(np.nanmax(np.abs(diag["qq_theoretical"])))
    ax.plot([-lim, lim], [-lim, lim], color=get_color("danger"), linewidth=1)
    ax.set_xlabel("Theoretical quantiles")
    ax.set_ylabel("Studentized residuals")
    ax.set_title("Normal Q-Q")

    ax = axes[1, 0]
    ax.scatter(diag["fitted"], np.sqrt(np.abs(diag["studentized"])), s=8, alpha=0.5)
    ax.set_xlabel("Fitted values")
    ax.set_ylabel("sqrt(|studentized residual|)")
    ax.set_title("Scale-Location")

    ax = axes[1, 1]
    cooks = diag["cooks_distance"].to_numpy()
    sizes = 8 + 200 * cooks / max(float(np.nanmax(cooks)), 1e-12)
    ax.scatter(diag["leverage"], diag["studentized"], s=sizes, alpha=0.5)
    ax.axhline(0, color=get_color("neutral"), linewidth=1)
    ax.set_xlabel("Leverage")
    ax.set_ylabel("Studentized residuals")
    ax.set_title("Residuals vs Leverage")

    fig.suptitle(fitted.name)
    fig.tight_layout()
    return save_figure(fig, output_dir, filename)


def plot_kaplan_meier(km_fit, output_dir: Union[str, Path], filename: str, show_ci: bool = True) -> str:
    """Survival curves, one per stratum, with censoring marks."""
    set_statlab_style()
    fig, ax = plt.subplots(figsize=(8, 5))
    colors = get_palette(len(km_fit.curves))
    for color, kmf in zip(colors, km_fit.curves.values()):
        kmf.plot_survival_function(ax=ax, ci_show=show_ci, show_censors=True, color=color)

    ax.set_xlabel(km_fit.time)
    ax.set_ylabel("Survival probability")
    ax.set_ylim(0, 1.05)
    title = km_fit.name or "Kaplan-Meier"
    if km_fit.logrank:
        title += f" (log-rank p = {km_fit.logrank['p_value']:.3g})"
    ax.set_title(title)
    return save_figure(fig, output_dir, filename)
