"""
Interaction plot of predicted expenditure.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .. import constants
from .tables import label_value

logger = logging.getLogger(__name__)


def plot_interaction(
    margins: pd.DataFrame,
    x: str = constants.POVCAT,
    series: Optional[str] = constants.GENDER,
    save_path: Optional[Path] = None,
    title: str = "Predicted total expenditure",
    ylabel: str = "Predicted expenditure ($)",
    figsize: Tuple[float, float] = (8, 5),
) -> plt.Figure:
    """Plot predictive margins by category, one line per series value.

    Args:
        margins: Output of predictive_margins (margin, ci_lower, ci_upper columns)
        x: Column on the x axis (categorical levels)
        series: Column separating the lines (None for a single line)
        save_path: Optional path to save figure
        title: Plot title
        ylabel: y-axis label
        figsize: Figure size

    Returns:
        matplotlib Figure
    """
    required = {x, "margin", "ci_lower", "ci_upper"}
    if series is not None:
        required.add(series)
    missing = required - set(margins.columns)
    if missing:
        raise ValueError(f"Margins frame is missing columns: {sorted(missing)}")

    fig, ax = plt.subplots(figsize=figsize)

    levels = list(dict.fromkeys(margins[x]))
    positions = {level: i for i, level in enumerate(levels)}
    groups = [(None, margins)] if series is None else list(margins.groupby(series, sort=True))
    palette = sns.color_palette("colorblind", len(groups))

    # Offset series horizontally so error bars do not overlap
    width = 0.15
    offsets = (np.arange(len(groups)) - (len(groups) - 1) / 2) * width

    for (value, group), color, offset in zip(groups, palette, offsets):
        xs = np.array([positions[level] for level in group[x]]) + offset
        ys = group["margin"].to_numpy()
        yerr = np.vstack(
            [ys - group["ci_lower"].to_numpy(), group["ci_upper"].to_numpy() - ys]
        )
        ax.errorbar(
            xs,
            ys,
            yerr=yerr,
            fmt="-o",
            color=color,
            capsize=4,
            markersize=6,
            label=None if series is None else label_value(series, value),
        )

    ax.set_xticks(range(len(levels)))
    ax.set_xticklabels([label_value(x, level) for level in levels], rotation=15)
    ax.set_xlabel(x)
    ax.set_ylabel(ylabel)
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    if series is not None:
        ax.legend(title=series)
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        logger.info(f"Saved interaction plot to {save_path}")

    return fig
