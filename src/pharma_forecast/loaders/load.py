"""
Datathon Data Loading
=====================

Core functions for loading the pharma sales/investment spreadsheet:
- read_raw: Read .xlsx / .csv / .parquet into a raw DataFrame
- load_datathon: Main entry point (clean, reshape, pivot, cache)
"""

import time
import pandas as pd
from pathlib import Path
from typing import Dict, List, Optional, Union, TYPE_CHECKING

from .constants import HIERARCHY_COLS
from .hierarchy import create_unique_id
from .reshape import reshape_long, pivot_functions, fill_missing_months
from ..utils.helpers import get_module_from_notebook

if TYPE_CHECKING:
    from ..cache.cache import CacheManager


EXCEL_SUFFIXES = {'.xlsx', '.xlsm', '.xls'}


def read_raw(
    path: Union[str, Path],
    sheet_name: Union[str, int] = 0,
    verbose: bool = True
) -> pd.DataFrame:
    """
    Read the raw spreadsheet without any cleaning.

    Parameters
    ----------
    path : str or Path
        .xlsx/.xls (via openpyxl), .csv or .parquet file
    sheet_name : str or int, default=0
        Excel sheet to read
    verbose : bool, default=True
        Print loading information

    Returns
    -------
    pd.DataFrame

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    ValueError
        If the extension is not supported
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    suffix = path.suffix.lower()
    start_time = time.time()

    if suffix in EXCEL_SUFFIXES:
        df = pd.read_excel(path, sheet_name=sheet_name)
    elif suffix == '.csv':
        df = pd.read_csv(path)
    elif suffix == '.parquet':
        df = pd.read_parquet(path)
    else:
        raise ValueError(f"Unsupported file type '{suffix}'. Use .xlsx, .csv or .parquet")

    if verbose:
        print(f"✓ Read {path.name} in {time.time() - start_time:.1f}s")
        print(f"  Shape: {df.shape[0]:,} rows × {df.shape[1]} columns")

    return df


def _resolve_target(
    wide: pd.DataFrame,
    target_function: str,
) -> pd.Series:
    if target_function in wide.columns:
        return wide[target_function]

    # 'sales' with only 'sales_1', 'sales_2' present -> sum them
    parts = [c for c in wide.columns if str(c).startswith(f"{target_function}_")]
    if parts:
        return wide[parts].sum(axis=1, min_count=1)

    functions = [c for c in wide.columns if c not in HIERARCHY_COLS + ['ds']]
    raise ValueError(
        f"Target function '{target_function}' not found. Available: {functions}"
    )


def _trim_to_observed(df: pd.DataFrame, id_cols: List[str], target_col: str) -> pd.DataFrame:
    """Drop months before the first / after the last observed target value."""
    df = df.sort_values(id_cols + ['ds'])
    observed = df[target_col].notna().astype(int)
    keys = [df[c] for c in id_cols]
    started = observed.groupby(keys, sort=False).cummax() > 0
    ended = observed[::-1].groupby([k[::-1] for k in keys], sort=False).cummax()[::-1] > 0
    return df[started & ended]


def load_datathon(
    path: Union[str, Path],
    # Caching
    cache: Optional['CacheManager'] = None,
    cache_key: str = 'datathon_data',
    module: Optional[str] = None,
    force_refresh: bool = False,
    # Parsing
    sheet_name: Union[str, int] = 0,
    target_function: str = 'sales',
    combine: Optional[Dict[str, List[str]]] = None,
    fill_value: float = 0.0,
    clip_negative: bool = True,
    # Output format
    include_unique_id: bool = True,
    verbose: bool = True,
) -> pd.DataFrame:
    """
    Load the datathon spreadsheet as a tidy monthly panel.

    Steps: read -> reshape_long -> pivot_functions -> trim to observed
    target -> fill_missing_months -> y column -> unique_id.

    Parameters
    ----------
    path : str or Path
        Raw spreadsheet
    cache : CacheManager, optional
        If provided, enables caching
    cache_key : str, default='datathon_data'
        Identifier for this dataset in the cache
    module : str, optional
        Module identifier. Auto-detects from notebook.
    force_refresh : bool, default=False
        Ignore cache and regenerate
    sheet_name : str or int, default=0
        Excel sheet to read
    target_function : str, default='sales'
        Function used as the forecast target ``y``. If absent, columns
        named '<target_function>_*' are summed.
    combine : dict, optional
        Extra summed columns, see pivot_functions()
    fill_value : float, default=0.0
        Value for months missing inside a series (target and functions)
    clip_negative : bool, default=True
        Clip negative target values (returns/corrections) to 0
    include_unique_id : bool, default=True
        Add 'cluster|country|brand' unique_id column
    verbose : bool, default=True
        Print progress

    Returns
    -------
    pd.DataFrame
        Columns: unique_id, cluster, country, brand, ds, y, <functions...>
    """
    if module is None:
        module = get_module_from_notebook() or 'unknown'

    full_config = {
        'path': str(Path(path).name),
        'sheet_name': sheet_name,
        'target_function': target_function,
        'combine': combine,
        'fill_value': fill_value,
        'clip_negative': clip_negative,
        'include_unique_id': include_unique_id,
    }

    if cache is not None and not force_refresh:
        df = cache.load(cache_key, config=full_config, verbose=verbose)
        if df is not None:
            return df
        if verbose:
            print(f"🔄 Cache miss for '{cache_key}' - creating fresh...")

    if verbose:
        print("=" * 70)
        print("LOADING DATATHON DATA")
        print("=" * 70)

    raw = read_raw(path, sheet_name=sheet_name, verbose=verbose)
    long = reshape_long(raw, verbose=verbose)
    wide = pivot_functions(long, combine=combine)

    wide['y'] = _resolve_target(wide, target_function)
    wide = _trim_to_observed(wide, HIERARCHY_COLS, 'y')

    n_series = wide.groupby(HIERARCHY_COLS).ngroups
    if n_series == 0:
        raise ValueError(f"No series with observed '{target_function}' values")

    wide = fill_missing_months(wide, id_cols=HIERARCHY_COLS, fill_value=fill_value)
    wide['y'] = wide['y'].fillna(fill_value)

    if clip_negative:
        n_neg = int((wide['y'] < 0).sum())
        if n_neg and verbose:
            print(f"⚠ Clipping {n_neg:,} negative target values to 0")
        wide['y'] = wide['y'].clip(lower=0)

    function_cols = [c for c in wide.columns if c not in HIERARCHY_COLS + ['ds', 'y']]
    df = wide[HIERARCHY_COLS + ['ds', 'y'] + function_cols]

    if include_unique_id:
        df = create_unique_id(df)
        df = df[['unique_id'] + [c for c in df.columns if c != 'unique_id']]

    df = df.sort_values(HIERARCHY_COLS + ['ds']).reset_index(drop=True)

    if cache is not None:
        cache.save(
            df=df,
            key=cache_key,
            config=full_config,
            module=module,
            source=Path(path).name
        )

    if verbose:
        print("\n" + "=" * 70)
        print("LOAD COMPLETE")
        print(f"  Shape: {df.shape[0]:,} × {df.shape[1]} | Series: {n_series:,}")
        print(f"  Range: {df['ds'].min().date()} → {df['ds'].max().date()}")
        print("=" * 70)

    return df


__all__ = [
    'read_raw',
    'load_datathon',
]
