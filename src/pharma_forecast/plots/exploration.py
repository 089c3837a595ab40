"""
Exploration Plots
=================

Charts for the aggregation-level EDA: how sales split across clusters,
countries and brands, and what the individual series look like.

Every function returns the Figure; pass show=True to display it.
"""

from typing import List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from . import theme
from ..analysis.levels import level_summary
from ..analysis.profile import ADI_THRESHOLD, CV2_THRESHOLD
from ..loaders.constants import LEVEL_KEYS
from ..loaders.hierarchy import aggregate_hierarchy


def _finish(fig, show: bool):
    fig.tight_layout()
    if show:
        plt.show()
    return fig


def plot_aggregation_levels(
    df: pd.DataFrame,
    levels: Sequence[str] = ('total', 'cluster', 'country'),
    top_n: int = 6,
    target_col: str = 'y',
    date_col: str = 'ds',
    figsize: Optional[tuple] = None,
    show: bool = False
):
    """
    One panel per level: monthly totals of the ``top_n`` largest groups.

    Parameters
    ----------
    df : pd.DataFrame
        Bottom-level panel from load_datathon()
    levels : sequence of str
        Any of 'total', 'cluster', 'country', 'brand'
    top_n : int, default=6
        Groups drawn per panel; the rest are summed into 'Other'
    """
    levels = list(levels)
    if not levels:
        raise ValueError("Need at least one level")

    fig, axes = plt.subplots(len(levels), 1, figsize=figsize or (12, 3 * len(levels)),
                             sharex=True, squeeze=False)

    for ax, level in zip(axes[:, 0], levels):
        agg = aggregate_hierarchy(df, level, value_cols=[target_col], date_col=date_col)
        top_ids = (
            agg.groupby('unique_id')[target_col].sum()
            .sort_values(ascending=False)
            .head(top_n).index
        )
        wide = agg.pivot_table(index=date_col, columns='unique_id', values=target_col, aggfunc='sum')
        other = wide.drop(columns=top_ids).sum(axis=1, min_count=1)
        wide = wide[list(top_ids)]

        for uid, color in zip(wide.columns, theme.palette(len(wide.columns))):
            ax.plot(wide.index, wide[uid], color=color, linewidth=1.4, label=uid)
        if other.notna().any():
            ax.plot(other.index, other, color=theme.MUTED, linewidth=1, linestyle='--', label='Other')

        ax.set_title(f"{level.title()} level ({agg['unique_id'].nunique()} series)", fontsize=11)
        ax.set_ylabel('Sales')
        theme.style_axis(ax)
        if level != 'total':
            ax.legend(loc='upper left', fontsize=8, ncol=2, frameon=False)

    return _finish(fig, show)


def plot_level_shares(
    df: pd.DataFrame,
    level: str,
    top_n: int = 10,
    target_col: str = 'y',
    date_col: str = 'ds',
    figsize: tuple = (10, 5),
    show: bool = False
):
    """Horizontal bars: share of total sales for the ``top_n`` groups at ``level``."""
    summary = level_summary(df, level, target_col, date_col).head(top_n)
    keys = LEVEL_KEYS[level] or ['level']
    labels = summary[keys].astype(str).agg(' | '.join, axis=1)

    fig, ax = plt.subplots(figsize=figsize)
    ax.barh(labels[::-1].tolist(), (summary['share'][::-1] * 100).tolist(), color=theme.PRIMARY)
    for y_pos, share in enumerate(summary['share'][::-1]):
        ax.text(share * 100, y_pos, f" {share:.1%}", va='center', fontsize=8)
    ax.set_xlabel('Share of total sales (%)')
    ax.set_title(f"Top {len(summary)} by {level}", fontsize=11)
    theme.style_axis(ax)
    return _finish(fig, show)


def plot_series(
    df: pd.DataFrame,
    unique_ids: List[str],
    value_cols: Sequence[str] = ('y',),
    id_col: str = 'unique_id',
    date_col: str = 'ds',
    ncols: int = 2,
    show: bool = False
):
    """Small multiples, one panel per series, one line per value column."""
    unique_ids = list(unique_ids)
    if not unique_ids:
        raise ValueError("Need at least one unique_id")
    missing = [c for c in value_cols if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found in DataFrame: {missing}")

    ncols = min(ncols, len(unique_ids))
    nrows = int(np.ceil(len(unique_ids) / ncols))
    fig, axes = plt.subplots(nrows, ncols, figsize=(6 * ncols, 2.8 * nrows), squeeze=False)
    colors = theme.palette(len(value_cols))

    for ax, uid in zip(axes.flat, unique_ids):
        data = df[df[id_col] == uid].sort_values(date_col)
        for col, color in zip(value_cols, colors):
            ax.plot(data[date_col], data[col], color=color, linewidth=1.2, label=col)
        ax.set_title(str(uid), fontsize=10)
        theme.style_axis(ax)
        if len(value_cols) > 1:
            ax.legend(fontsize=8, frameon=False)

    for ax in list(axes.flat)[len(unique_ids):]:
        ax.axis('off')

    return _finish(fig, show)


def plot_demand_classes(
    profiles: pd.DataFrame,
    figsize: tuple = (7, 5),
    show: bool = False
):
    """
    ADI vs CV² scatter with the demand-class thresholds.

    ``profiles`` needs adi, cv2 and type columns (profile_dataframe output).
    """
    missing = [c for c in ('adi', 'cv2', 'type') if c not in profiles.columns]
    if missing:
        raise ValueError(f"Columns not found in profiles: {missing}")

    fig, ax = plt.subplots(figsize=figsize)
    for demand_type, group in profiles.groupby('type'):
        ax.scatter(group['adi'], group['cv2'].fillna(0), s=18, alpha=0.7,
                   color=theme.DEMAND_CLASS_COLORS.get(demand_type, theme.MUTED),
                   label=f"{demand_type} ({len(group)})")

    ax.axvline(ADI_THRESHOLD, color='black', linestyle='--', linewidth=1, alpha=0.7)
    ax.axhline(CV2_THRESHOLD, color='black', linestyle='--', linewidth=1, alpha=0.7)

    x_max = max(np.nanmax(profiles['adi'].to_numpy(dtype=float), initial=0) * 1.1, ADI_THRESHOLD * 2)
    y_max = max(np.nanmax(profiles['cv2'].to_numpy(dtype=float), initial=0) * 1.1, CV2_THRESHOLD * 2)
    ax.set_xlim(0, x_max)
    ax.set_ylim(0, y_max)

    x_lo, x_hi = ADI_THRESHOLD / 2, (ADI_THRESHOLD + x_max) / 2
    y_lo, y_hi = CV2_THRESHOLD / 2, (CV2_THRESHOLD + y_max) / 2
    for x, y, label in [(x_lo, y_lo, 'Smooth'), (x_lo, y_hi, 'Erratic'),
                        (x_hi, y_lo, 'Intermittent'), (x_hi, y_hi, 'Lumpy')]:
        ax.text(x, y, label, ha='center', va='center', fontsize=9, alpha=0.5)

    ax.set_xlabel('ADI (mean zero-run length)')
    ax.set_ylabel('CV² (non-zero demand)')
    ax.set_title('Demand classification', fontsize=11)
    ax.legend(loc='upper right', fontsize=8, frameon=False)
    theme.style_axis(ax)
    return _finish(fig, show)


__all__ = [
    'plot_aggregation_levels',
    'plot_level_shares',
    'plot_series',
    'plot_demand_classes',
]
