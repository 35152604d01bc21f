# statlab/utils/plotting/save.py
"""
Figure saving utilities.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from statlab.config.settings import settings  # noqa: E402


def get_figure_path(
    output_dir: Union[str, Path],
    filename: str,
    extension: str = "png",
) -> Path:
    """
    Full path for a figure, creating the output directory.

    Example:
        get_figure_path("reports/epa", "base_diagnostics")
        # Path("reports/epa/base_diagnostics.png")
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    safe = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in filename)
    if safe.endswith(f".{extension}"):
        return output_dir / safe
    return output_dir / f"{safe}.{extension}"


def save_figure(
    fig: plt.Figure,
    output_dir: Union[str, Path],
    filename: str,
    dpi: Optional[int] = None,
    format: str = "png",
    close: bool = True,
    **kwargs,
) -> str:
    """
    Save a matplotlib figure and (by default) close it.

    Returns:
        String path to the saved file
    """
    path = get_figure_path(output_dir, filename, extension=format)

    save_kwargs = {
        "dpi": dpi or settings.report_dpi,
        "bbox_inches": "tight",
        "pad_inches": 0.1,
        "facecolor": "white",
        "edgecolor": "none",
    }
    save_kwargs.update(kwargs)

    fig.savefig(path, **save_kwargs)

    if close:
        plt.close(fig)

    return str(path)
