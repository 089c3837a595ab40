"""
Aggregation-Level Exploration
=============================

Tables behind the cluster / country / brand EDA:
- level_summary: size, share and sparsity of every group at a level
- top_contributors: the n largest groups
- correlate_functions: lagged correlation of investment functions with sales
"""

import numpy as np
import pandas as pd
from typing import List, Optional

from ..loaders.constants import HIERARCHY_COLS, LEVEL_KEYS


def _level_keys(df: pd.DataFrame, level: str) -> List[str]:
    if level not in LEVEL_KEYS:
        raise ValueError(f"Unknown level '{level}'. Choose from {list(LEVEL_KEYS)}")
    keys = LEVEL_KEYS[level]
    missing = [c for c in keys if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found in DataFrame: {missing}")
    return keys


def level_summary(
    df: pd.DataFrame,
    level: str,
    target_col: str = 'y',
    date_col: str = 'ds'
) -> pd.DataFrame:
    """
    One row per group at ``level``.

    Returns
    -------
    pd.DataFrame
        Level keys plus n_series, n_months, total, mean (monthly), share
        of grand total, zero_pct (share of zero months at the group's
        bottom-level series), first_ds and last_ds. Sorted by total,
        largest first.

    Examples
    --------
    >>> level_summary(df, 'cluster').head()
    """
    keys = _level_keys(df, level)
    work = df if keys else df.assign(level='total')
    group_cols = keys or ['level']
    series_keys = [c for c in HIERARCHY_COLS if c in df.columns]

    grouped = work.groupby(group_cols)
    monthly = work.groupby(group_cols + [date_col])[target_col].sum()
    monthly_grouped = monthly.groupby(level=group_cols)

    summary = pd.DataFrame({
        'n_series': work.drop_duplicates(group_cols + series_keys).groupby(group_cols).size(),
        'n_months': monthly_grouped.size(),
        'total': grouped[target_col].sum(),
        'mean': monthly_grouped.mean(),
        'zero_pct': (work[target_col] == 0).groupby([work[c] for c in group_cols]).mean(),
        'first_ds': grouped[date_col].min(),
        'last_ds': grouped[date_col].max(),
    })

    grand_total = summary['total'].sum()
    summary['share'] = summary['total'] / grand_total if grand_total else np.nan

    summary = summary.sort_values('total', ascending=False).reset_index()

    cols = group_cols + ['n_series', 'n_months', 'total', 'mean', 'share',
                         'zero_pct', 'first_ds', 'last_ds']
    return summary[cols]


def top_contributors(
    df: pd.DataFrame,
    level: str,
    n: int = 10,
    target_col: str = 'y',
    date_col: str = 'ds'
) -> pd.DataFrame:
    """The ``n`` groups with the largest total target at ``level``."""
    return level_summary(df, level, target_col, date_col).head(n).reset_index(drop=True)


def correlate_functions(
    df: pd.DataFrame,
    target_col: str = 'y',
    feature_cols: Optional[List[str]] = None,
    max_lag: int = 6,
    id_col: str = 'unique_id',
    date_col: str = 'ds',
    min_obs: int = 12
) -> pd.DataFrame:
    """
    Lagged Pearson correlation of each function with the target.

    For every series, ``feature`` shifted by ``lag`` months is correlated
    with the target; the per-series correlations are averaged.

    Parameters
    ----------
    df : pd.DataFrame
        Panel from load_datathon()
    target_col : str, default='y'
    feature_cols : list of str, optional
        Defaults to every numeric non-target column except sales columns
    max_lag : int, default=6
        Lags 0..max_lag are evaluated
    id_col, date_col : str
    min_obs : int, default=12
        Series with fewer overlapping observations are skipped

    Returns
    -------
    pd.DataFrame
        Columns: function, lag, corr, n_series
    """
    if feature_cols is None:
        feature_cols = [
            c for c in df.columns
            if c not in HIERARCHY_COLS + [id_col, date_col, target_col]
            and not str(c).startswith('sales')
            and pd.api.types.is_numeric_dtype(df[c])
        ]

    missing = [c for c in feature_cols if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found in DataFrame: {missing}")

    ordered = df.sort_values([id_col, date_col])
    rows = []
    for feature in feature_cols:
        for lag in range(max_lag + 1):
            shifted = ordered.groupby(id_col, sort=False)[feature].shift(lag)
            pairs = pd.DataFrame({
                id_col: ordered[id_col],
                'x': shifted,
                'y': ordered[target_col],
            }).dropna()

            corrs = []
            for _, g in pairs.groupby(id_col, sort=False):
                if len(g) < min_obs or g['x'].std() == 0 or g['y'].std() == 0:
                    continue
                corrs.append(g['x'].corr(g['y']))

            rows.append({
                'function': feature,
                'lag': lag,
                'corr': float(np.mean(corrs)) if corrs else np.nan,
                'n_series': len(corrs),
            })

    return pd.DataFrame(rows, columns=['function', 'lag', 'corr', 'n_series'])


__all__ = ['level_summary', 'top_contributors', 'correlate_functions']
