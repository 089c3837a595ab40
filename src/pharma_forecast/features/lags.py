"""
Lag Features
============

Shifted copies of a column, computed within each series.
"""

import pandas as pd
from typing import Iterable


def add_lags(
    df: pd.DataFrame,
    var: str,
    lags: Iterable[int] = (1, 2, 3),
    prefix: str = 'lag_',
    group_col: str = 'unique_id',
    date_col: str = 'ds'
) -> pd.DataFrame:
    """
    Add lagged copies of ``var``.

    New columns are named ``f"{prefix}{var}_{lag:02d}"`` (e.g. ``lag_y_03``).
    Lags never cross series boundaries; the first ``lag`` rows of each
    series are NaN.

    Examples
    --------
    >>> add_lags(df, 'investment', lags=[1, 2]).filter(like='lag_').columns.tolist()
    ['lag_investment_01', 'lag_investment_02']
    """
    if var not in df.columns:
        raise ValueError(f"Column '{var}' not found in DataFrame")

    out = df.copy()
    if date_col in out.columns:
        out = out.sort_values(([group_col] if group_col in out.columns else []) + [date_col])

    shifter = out.groupby(group_col, sort=False)[var] if group_col in out.columns else out[var]
    for lag in lags:
        if lag < 1:
            raise ValueError(f"Lags must be positive, got {lag}")
        out[f"{prefix}{var}_{lag:02d}"] = shifter.shift(lag)

    return out.loc[df.index]


__all__ = ['add_lags']
