from __future__ import annotations

from typing import List, Optional, Tuple

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
import numpy as np
import seaborn as sns

plt.rcParams['axes.unicode_minus'] = False

_PALETTE: List[str] = ["#345995", "#B80C09", "#D4AF37", '#2E6F40', "#955196", "#3C4CAD"]


def get_colormap_colors(num_colors: int = 3) -> List[str]:
    """
    Return ``num_colors`` entries of the predetermined colour palette,
    cycling through it when more colours are requested than it holds.

    Raises
    ------
    TypeError
        If `num_colors` is not an integer.
    ValueError
        If `num_colors < 1`.
    """
    if not isinstance(num_colors, int):
        raise TypeError(f"num_colors must be an integer, got {type(num_colors).__name__!r}")
    if num_colors < 1:
        raise ValueError(f"num_colors must be at least 1 (got {num_colors}).")
    return [_PALETTE[i % len(_PALETTE)] for i in range(num_colors)]


def axis_formatter(
        ax: plt.Axes,
        ylabel: str,
        xlabel: str,
        title: str
) -> None:
    """
    Apply consistent styling to a Matplotlib Axes: grids, fonts, labels, and title.

    Parameters
    ----------
    ax : matplotlib.axes.Axes
        The axes object to format.
    ylabel : str
        Label text for the y-axis.
    xlabel : str
        Label text for the x-axis.
    title : str
        Title text for the plot.
    """
    ax.tick_params(axis='both', which='major', labelsize=11)
    ax.grid(linestyle='--', color='k', alpha=0.1, zorder=-1)
    ax.set_axisbelow(True)
    ax.set_ylabel(ylabel, fontsize=13)
    ax.set_title(title, loc='left', fontsize=16, y=1)
    ax.set_xlabel(xlabel, fontsize=13)


def plot_predicted(
        results_object,
        ax: Optional[plt.Axes] = None,
        title: str = '',
        figsize: Tuple[int, int] = (10, 6)
) -> plt.Axes:
    """
    Plot predictions by observation, one series per response category.

    Expected values are drawn as points with confidence intervals (when the
    results carry them); classifications as counts per predicted class.

    Parameters
    ----------
    results_object : PredictionResult
        Output of :func:`modelinsight.get_predicted`.
    ax : matplotlib.axes.Axes, optional
        Axes to draw on. A new figure is created if None.
    title : str, default=''
        Title of the plot.
    figsize : tuple of int, default=(10, 6)
        Size of the figure created when ``ax`` is None.

    Returns
    -------
    matplotlib.axes.Axes
    """
    if ax is None:
        _, ax = plt.subplots(figsize=figsize)

    if results_object.predict == "classification":
        counts = results_object.predictions['Predicted'].dropna().astype(str).value_counts(sort=False)
        ax.bar(counts.index, counts.values, color=get_colormap_colors(1)[0], edgecolor='k')
        axis_formatter(ax, 'Count', 'Predicted class', title)
        sns.despine(ax=ax)
        return ax

    df = results_object.as_data_frame()
    has_ci = {'CI_low', 'CI_high'}.issubset(df.columns)
    if 'Response' in df.columns:
        groups = [(str(level), frame) for level, frame in df.groupby('Response', observed=True, sort=True)]
        ylabel = 'Predicted probability'
    else:
        groups = [('Predicted', df)]
        ylabel = 'Predicted value'

    colorset = get_colormap_colors(len(groups))
    # dodge categories horizontally
    offsets = np.linspace(-0.2, 0.2, len(groups)) if len(groups) > 1 else [0.0]
    for (label, frame), color, offset in zip(groups, colorset, offsets):
        x = frame['Row'].to_numpy() + offset
        y = frame['Predicted'].to_numpy(dtype=float)
        if has_ci:
            err = np.vstack([y - frame['CI_low'].to_numpy(dtype=float),
                             frame['CI_high'].to_numpy(dtype=float) - y])
            ax.errorbar(x, y, yerr=err, fmt='o', color=color, markersize=5,
                        elinewidth=1, capsize=2, label=label)
        else:
            ax.plot(x, y, 'o', color=color, markersize=5, label=label)

    axis_formatter(ax, ylabel, 'Row', title)
    if len(groups) > 1:
        ax.legend(frameon=True, edgecolor='black', fontsize=9, loc='best',
                  framealpha=1, facecolor='w')
    ax.xaxis.set_major_locator(mticker.MaxNLocator(integer=True))
    sns.despine(ax=ax)
    return ax
