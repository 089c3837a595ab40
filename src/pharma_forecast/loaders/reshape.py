"""
Spreadsheet Reshaping
=====================

Turn the wide datathon spreadsheet (one row per cluster/country/brand/function,
one column per month) into tidy long and panel formats:

- clean_column_names: snake_case identifier headers, leave month headers alone
- parse_month: header value -> month-start Timestamp (or None)
- clean_values: messy cells -> float
- reshape_long: wide months -> (ids, function, ds, value)
- pivot_functions: one column per function (sales_1, investment, ...)
- fill_missing_months: complete monthly grid per series
"""

import re
from datetime import date
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from .constants import HIERARCHY_COLS, RAW_ID_COLS, NA_TOKENS

_MONTH_FORMATS = [
    '%b-%Y', '%b %Y', '%B %Y', '%B-%Y',
    '%Y-%m', '%Y-%m-%d', '%Y/%m', '%m/%Y',
    '%b-%y', '%b %y',
]


def _snake(text: str) -> str:
    text = re.sub(r'[^0-9a-zA-Z]+', '_', str(text).strip().lower())
    return text.strip('_')


def parse_month(value) -> Optional[pd.Timestamp]:
    """
    Parse a spreadsheet header into a month-start Timestamp.

    Accepts datetime-like values and strings such as 'Jan-2013', 'Jan 2013',
    '2013-01' or '2013-01-01'. Returns None for anything else, so the same
    function doubles as a "is this a month column?" test.

    Examples
    --------
    >>> parse_month('Feb-2014')
    Timestamp('2014-02-01 00:00:00')
    >>> parse_month('brand') is None
    True
    """
    if isinstance(value, (pd.Timestamp, date, np.datetime64)):
        ts = pd.Timestamp(value)
        if pd.isna(ts):
            return None
        return ts.to_period('M').to_timestamp()
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    for fmt in _MONTH_FORMATS:
        try:
            ts = pd.to_datetime(text, format=fmt)
        except (ValueError, TypeError):
            continue
        return ts.to_period('M').to_timestamp()
    return None


def clean_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """Snake-case identifier columns; month headers are kept as-is."""
    df = df.copy()
    df.columns = [c if parse_month(c) is not None else _snake(c) for c in df.columns]
    return df


def clean_values(series: pd.Series) -> pd.Series:
    """
    Coerce spreadsheet cells to float.

    Strips whitespace and thousands separators; '-', '', 'n/a' and similar
    tokens become NaN. Anything else that does not parse becomes NaN too.
    """
    if pd.api.types.is_numeric_dtype(series):
        return series.astype(float)

    text = series.astype(str).str.strip().str.replace(',', '', regex=False)
    text = text.where(~text.str.lower().isin(NA_TOKENS))
    return pd.to_numeric(text, errors='coerce').astype(float)


def reshape_long(
    df: pd.DataFrame,
    id_cols: Optional[List[str]] = None,
    verbose: bool = True
) -> pd.DataFrame:
    """
    Melt the wide spreadsheet into long format.

    Parameters
    ----------
    df : pd.DataFrame
        Raw spreadsheet, one row per (cluster, country, brand, function)
    id_cols : list of str, optional
        Identifier columns (after snake-casing). Defaults to
        ['cluster', 'country', 'brand', 'function'].
    verbose : bool, default=True
        Print shape information

    Returns
    -------
    pd.DataFrame
        Columns id_cols + ['ds', 'value'], function names snake_cased,
        all-NaN function rows dropped

    Raises
    ------
    ValueError
        If identifier columns are missing or no month columns are found
    """
    df = clean_column_names(df)
    id_cols = id_cols or RAW_ID_COLS

    missing = [c for c in id_cols if c not in df.columns]
    if missing:
        raise ValueError(f"Identifier columns not found: {missing}. Got: {list(df.columns)[:10]}")

    month_cols = [c for c in df.columns if parse_month(c) is not None]
    if not month_cols:
        raise ValueError("No month columns found in spreadsheet")

    ignored = [c for c in df.columns if c not in id_cols and c not in month_cols]
    if ignored and verbose:
        print(f"⚠ Ignoring {len(ignored)} non-month columns: {ignored[:5]}")

    df = df.dropna(subset=id_cols)
    long = df.melt(id_vars=id_cols, value_vars=month_cols, var_name='ds', value_name='value')
    long['ds'] = pd.to_datetime(long['ds'].map(parse_month))
    long['value'] = clean_values(long['value'])

    for col in id_cols:
        long[col] = long[col].astype(str).str.strip()
    if 'function' in long.columns:
        long['function'] = long['function'].map(_snake)

    # Drop function rows that carry no data at all
    has_data = long.groupby(id_cols, sort=False)['value'].transform('count') > 0
    n_dropped = long.loc[~has_data, id_cols].drop_duplicates().shape[0]
    long = long[has_data]

    long = long.sort_values(id_cols + ['ds']).reset_index(drop=True)

    if verbose:
        n_rows = long[id_cols].drop_duplicates().shape[0]
        print(f"✓ Reshaped {n_rows:,} rows × {len(month_cols)} months -> {len(long):,} long rows")
        if n_dropped:
            print(f"  Dropped {n_dropped:,} empty rows")

    return long


def pivot_functions(
    long_df: pd.DataFrame,
    combine: Optional[Dict[str, List[str]]] = None,
    id_cols: Optional[List[str]] = None,
    date_col: str = 'ds'
) -> pd.DataFrame:
    """
    Pivot long data to one column per function.

    Duplicate (ids, ds, function) rows are summed. All-NaN sums stay NaN.

    Parameters
    ----------
    long_df : pd.DataFrame
        Output of reshape_long()
    combine : dict, optional
        New columns built by summing existing ones, e.g.
        {'sales': ['sales_1', 'sales_2']}
    id_cols : list of str, optional
        Series keys, default HIERARCHY_COLS
    date_col : str, default='ds'

    Returns
    -------
    pd.DataFrame
        One row per (ids, ds)
    """
    id_cols = id_cols or HIERARCHY_COLS

    wide = (
        long_df.groupby(id_cols + [date_col, 'function'])['value']
        .sum(min_count=1)
        .unstack('function')
        .reset_index()
    )
    wide.columns.name = None

    for new_col, sources in (combine or {}).items():
        missing = [c for c in sources if c not in wide.columns]
        if missing:
            raise ValueError(f"Cannot build '{new_col}': functions not found {missing}")
        wide[new_col] = wide[sources].sum(axis=1, min_count=1)

    return wide


def fill_missing_months(
    df: pd.DataFrame,
    id_cols: Optional[List[str]] = None,
    date_col: str = 'ds',
    freq: str = 'MS',
    fill_value: float = 0.0,
    value_cols: Optional[List[str]] = None
) -> pd.DataFrame:
    """
    Reindex each series onto a complete monthly grid.

    The grid spans each series' own first to last date. Only the newly
    created rows receive ``fill_value``; existing NaNs are left alone.
    """
    id_cols = id_cols or HIERARCHY_COLS
    if value_cols is None:
        value_cols = [
            c for c in df.columns
            if c not in id_cols + [date_col] and pd.api.types.is_numeric_dtype(df[c])
        ]

    pieces = []
    for keys, group in df.groupby(id_cols, sort=False):
        full = pd.date_range(group[date_col].min(), group[date_col].max(), freq=freq)
        is_new = ~full.isin(group[date_col])
        group = group.set_index(date_col).reindex(full)
        group.index.name = date_col
        group.loc[is_new, value_cols] = fill_value
        for col, key in zip(id_cols, keys):
            group[col] = key
        pieces.append(group.reset_index())

    if not pieces:
        return df.copy()

    out = pd.concat(pieces, ignore_index=True)
    return out[df.columns.tolist()]


__all__ = [
    'parse_month',
    'clean_column_names',
    'clean_values',
    'reshape_long',
    'pivot_functions',
    'fill_missing_months',
]
