from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import matplotlib as mpl
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.colors import Colormap, LinearSegmentedColormap

# brown (all dry energy) to teal (all latent heat)
WET_DRY_COLORS = ["#8c510a", "#d8b365", "#f6e8c3", "#c7eae5", "#5ab4ac", "#01665e"]


@dataclass
class PlotStyle:
    """
    Lightweight configuration for figure styling.

    Instances can be passed to the templates so that visual tweaks (font
    size, line width, etc.) do not require changes to the plotting logic.
    """

    dpi: int = 100
    font_size: float = 10.0
    title_size: float = 12.0
    label_size: float = 10.0
    tick_size: float = 9.0
    legend_size: float = 8.0
    line_width: float = 1.5
    figure_size: Tuple[float, float] = (8.0, 10.0)
    palette: str = "viridis"
    write_metadata: bool = False

    def apply(self) -> None:
        """Apply this style to matplotlib's global rcParams."""
        try:
            plt.style.use("seaborn-v0_8-whitegrid")
        except OSError:
            # seaborn styles are not registered on every matplotlib
            plt.style.use("default")
        mpl.rcParams["figure.dpi"] = self.dpi
        mpl.rcParams["font.size"] = self.font_size
        mpl.rcParams["axes.titlesize"] = self.title_size
        mpl.rcParams["axes.labelsize"] = self.label_size
        mpl.rcParams["xtick.labelsize"] = self.tick_size
        mpl.rcParams["ytick.labelsize"] = self.tick_size
        mpl.rcParams["legend.fontsize"] = self.legend_size
        mpl.rcParams["lines.linewidth"] = self.line_width
        mpl.rcParams["figure.figsize"] = self.figure_size


def wet_dry_colormap() -> Colormap:
    """Palette for the wet fraction of CAPE, 0 (dry) to 1 (wet)."""
    cmap = LinearSegmentedColormap.from_list("wet_dry", WET_DRY_COLORS)
    return cmap.with_extremes(bad="white")


def member_colors(n: int, palette: str = "viridis") -> List:
    if n <= 0:
        return []
    cmap = mpl.colormaps[palette]
    return [cmap(v) for v in np.linspace(0.1, 0.9, n)]
