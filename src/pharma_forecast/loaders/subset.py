"""
Subset Creation
===============

Smaller brand panels for fast notebook iteration. Whole series are
sampled, optionally keeping every cluster (or country) represented.
"""

from typing import Optional

import numpy as np
import pandas as pd


def _allocate(counts: pd.Series, n_series: int) -> pd.Series:
    # proportional share per stratum, at least one each, largest remainders first
    raw = counts / counts.sum() * n_series
    alloc = np.maximum(np.floor(raw), 1).astype(int).clip(upper=counts)
    remainder = (raw - np.floor(raw)).sort_values(ascending=False)
    for stratum in remainder.index:
        if alloc.sum() >= n_series:
            break
        if alloc[stratum] < counts[stratum]:
            alloc[stratum] += 1
    return alloc


def create_subset(
    df: pd.DataFrame,
    n_series: int = 50,
    id_col: str = 'unique_id',
    stratify_by: Optional[str] = None,
    min_months: int = 0,
    date_col: str = 'ds',
    random_state: int = 42,
    verbose: bool = True
) -> pd.DataFrame:
    """
    Random subset of whole series.

    Parameters
    ----------
    df : pd.DataFrame
        Brand panel from load_datathon()
    n_series : int, default=50
        Number of series to keep (capped at what is available)
    id_col : str, default='unique_id'
    stratify_by : str, optional
        Hierarchy column such as 'cluster'. Series are drawn from each group
        in proportion to its size, with at least one per group.
    min_months : int, default=0
        Only series with at least this many months are eligible
    date_col : str, default='ds'
    random_state : int, default=42
    verbose : bool, default=True

    Returns
    -------
    pd.DataFrame
        Rows of the sampled series, original order kept
    """
    if n_series < 1:
        raise ValueError(f"n_series must be >= 1, got {n_series}")
    if stratify_by is not None and stratify_by not in df.columns:
        raise ValueError(f"Column '{stratify_by}' not found in DataFrame")

    rng = np.random.default_rng(random_state)

    lengths = df.groupby(id_col)[date_col].nunique() if date_col in df.columns else df.groupby(id_col).size()
    eligible = lengths[lengths >= min_months].index
    if verbose and len(eligible) < len(lengths):
        print(f"⚠ {len(lengths) - len(eligible):,} series shorter than {min_months} months excluded")

    if n_series > len(eligible):
        if verbose:
            print(f"⚠ Requested {n_series} series but only {len(eligible)} available")
        n_series = len(eligible)

    if stratify_by is None:
        chosen = rng.choice(np.asarray(eligible), size=n_series, replace=False)
    else:
        strata = (
            df[df[id_col].isin(eligible)]
            .drop_duplicates(id_col)
            .set_index(id_col)[stratify_by]
        )
        alloc = _allocate(strata.value_counts(), n_series)
        chosen = np.concatenate([
            rng.choice(strata.index[strata == group].to_numpy(), size=int(k), replace=False)
            for group, k in alloc.items() if k > 0
        ])

    df_subset = df[df[id_col].isin(chosen)].copy()

    if verbose:
        print(f"✓ Subset: {len(df_subset):,} rows, {len(chosen):,} series")
        if stratify_by is not None:
            shares = df_subset.drop_duplicates(id_col)[stratify_by].value_counts()
            print(f"  By {stratify_by}: " + ', '.join(f"{k} {v}" for k, v in shares.items()))

    return df_subset


__all__ = ['create_subset']
