"""
Hierarchy Utilities
===================

The datathon panel is a three-level tree, cluster > country > brand, and
every series id encodes its path through it ("EUROPE|Germany|B01").

- create_unique_id     : hierarchy columns -> id
- expand_hierarchy     : id -> hierarchy columns
- level_of             : which level an id belongs to
- aggregate_hierarchy  : sum brands up to one level
- stack_levels         : every level in one long frame
"""

import pandas as pd
from typing import Optional, List, Sequence

from .constants import HIERARCHY_COLS, LEVEL_KEYS, ID_SEPARATOR

TOTAL_ID = 'total'


def create_unique_id(
    df: pd.DataFrame,
    columns: Optional[List[str]] = None,
    separator: str = ID_SEPARATOR,
    target_col: str = 'unique_id',
    inplace: bool = False,
    verbose: bool = False
) -> pd.DataFrame:
    """
    Join hierarchy columns into one id column.

    Parameters
    ----------
    df : pd.DataFrame
    columns : list of str, optional
        Defaults to whichever of cluster, country, brand are present
    separator : str, default='|'
        Brand names contain '_' and '-', so neither is safe here
    target_col : str, default='unique_id'
    inplace : bool, default=False
    verbose : bool, default=False

    Returns
    -------
    pd.DataFrame
    """
    if columns is None:
        columns = [c for c in HIERARCHY_COLS if c in df.columns]
        if not columns:
            raise ValueError(
                "No hierarchy columns found. "
                "Please provide columns=['col1', 'col2', ...]"
            )
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found in DataFrame: {missing}")

    out = df if inplace else df.copy()
    ids = out[columns[0]].astype(str)
    if len(columns) > 1:
        ids = ids.str.cat(out[columns[1:]].astype(str), sep=separator)
    out[target_col] = ids

    if verbose:
        print(f"✓ {target_col}: {out[target_col].nunique():,} series from {' > '.join(columns)}")
    return out


def expand_hierarchy(
    df: pd.DataFrame,
    id_col: str = 'unique_id',
    separator: str = ID_SEPARATOR,
    columns: Optional[List[str]] = None,
    drop_unique_id: bool = False,
    verbose: bool = False
) -> pd.DataFrame:
    """
    Rebuild hierarchy columns from ids.

    Ids from a coarser level ("EUROPE" or "EUROPE|Germany") fill the
    leading columns; the rest are NaN. Existing hierarchy columns are
    replaced.

    Returns
    -------
    pd.DataFrame
        id column (unless dropped), hierarchy columns, then everything else
    """
    if id_col not in df.columns:
        if verbose:
            print(f"⚠ Column '{id_col}' not found, returning unchanged")
        return df

    columns = list(columns or HIERARCHY_COLS)

    # split each distinct id once, then map back
    ids = pd.Series(df[id_col].unique())
    parts = ids.astype(str).str.split(separator, n=len(columns) - 1, expand=True)
    parts = parts.reindex(columns=range(len(columns)))
    parts.columns = columns
    parts[id_col] = ids

    body = df.drop(columns=[c for c in columns if c in df.columns])
    out = body.merge(parts, on=id_col, how='left')

    rest = [c for c in out.columns if c not in columns and c != id_col]
    out = out[([] if drop_unique_id else [id_col]) + columns + rest]

    if verbose:
        print(f"✓ Added hierarchy columns: {columns}")
    return out


def level_of(unique_id: str, separator: str = ID_SEPARATOR) -> str:
    """
    Hierarchy level of an id.

    Examples
    --------
    >>> level_of('EUROPE|Germany')
    'country'
    >>> level_of('total')
    'total'
    """
    if unique_id == TOTAL_ID:
        return 'total'
    depth = str(unique_id).count(separator) + 1
    if depth > len(HIERARCHY_COLS):
        raise ValueError(f"'{unique_id}' has more parts than the hierarchy ({HIERARCHY_COLS})")
    return HIERARCHY_COLS[depth - 1]


def _default_value_cols(df: pd.DataFrame, exclude: Sequence[str]) -> List[str]:
    return [c for c in df.columns if c not in exclude and pd.api.types.is_numeric_dtype(df[c])]


def aggregate_hierarchy(
    df: pd.DataFrame,
    level: str,
    value_cols: Optional[List[str]] = None,
    date_col: str = 'ds',
    id_col: str = 'unique_id',
    separator: str = ID_SEPARATOR
) -> pd.DataFrame:
    """
    Sum brand-level series up to ``level``.

    Parameters
    ----------
    df : pd.DataFrame
        Brand panel with hierarchy columns, date_col and value columns
    level : str
        'total', 'cluster', 'country' or 'brand'. A level groups by itself
        and every coarser key, so 'country' keys on (cluster, country).
    value_cols : list of str, optional
        Columns to sum, default every numeric non-key column
    date_col : str, default='ds'
    id_col : str, default='unique_id'
    separator : str, default='|'

    Returns
    -------
    pd.DataFrame
        [id_col] + level keys + [date_col] + value_cols. A month where
        every member is NaN stays NaN.

    Examples
    --------
    >>> by_country = aggregate_hierarchy(df, 'country', value_cols=['y'])
    >>> by_country['unique_id'].iloc[0]
    'EUROPE|Germany'
    """
    if level not in LEVEL_KEYS:
        raise ValueError(f"Unknown level '{level}'. Choose from {list(LEVEL_KEYS)}")

    keys = LEVEL_KEYS[level]
    missing = [c for c in keys + [date_col] if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found in DataFrame: {missing}")
    if value_cols is None:
        value_cols = _default_value_cols(df, HIERARCHY_COLS + [date_col, id_col])

    summed = df.groupby(keys + [date_col], sort=True)[value_cols].sum(min_count=1).reset_index()
    if keys:
        summed = create_unique_id(summed, columns=keys, separator=separator, target_col=id_col)
    else:
        summed[id_col] = TOTAL_ID
    return summed[[id_col] + keys + [date_col] + value_cols]


def stack_levels(
    df: pd.DataFrame,
    value_cols: Optional[List[str]] = None,
    levels: Sequence[str] = ('total', 'cluster', 'country', 'brand'),
    date_col: str = 'ds',
    id_col: str = 'unique_id'
) -> pd.DataFrame:
    """
    Every requested level in one long frame with a 'level' column.

    Coarser levels leave the finer hierarchy columns NaN, so the result can
    be filtered by level or fed to per-series code unchanged.
    """
    if value_cols is None:
        value_cols = _default_value_cols(df, HIERARCHY_COLS + [date_col, id_col])

    frames = [
        aggregate_hierarchy(df, level, value_cols=value_cols, date_col=date_col, id_col=id_col)
        .assign(level=level)
        for level in levels
    ]
    stacked = pd.concat(frames, ignore_index=True)
    ordered = ['level', id_col] + HIERARCHY_COLS + [date_col] + list(value_cols)
    return stacked.reindex(columns=ordered)


__all__ = [
    'create_unique_id',
    'expand_hierarchy',
    'level_of',
    'aggregate_hierarchy',
    'stack_levels',
    'HIERARCHY_COLS',
]
