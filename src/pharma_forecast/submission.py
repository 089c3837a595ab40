"""
Submission
==========

Turn the forecast table into the submission file:

    cluster | country | brand | month   | forecast | lower_80 | upper_80 | ...
    EUROPE  | Germany | B01   | 2024-01 | 1234.56  | ...

Forecasts are summed up to the requested level. Interval bounds are summed
the same way, which is exact only for perfectly correlated series.
"""

import re
from pathlib import Path
from typing import List, Union

import pandas as pd

from .loaders.constants import LEVEL_KEYS
from .loaders.hierarchy import aggregate_hierarchy

MONTH_COL = 'month'
FORECAST_COL = 'forecast'

_INTERVAL_RE = re.compile(r'^(lo|hi)_(\d+(?:\.\d+)?)$')


def _interval_levels(columns) -> List[str]:
    levels = []
    for col in columns:
        match = _INTERVAL_RE.match(col)
        if match and match.group(1) == 'lo' and f'hi_{match.group(2)}' in columns:
            levels.append(match.group(2))
    return levels


def submission_columns(level: str, interval_levels) -> List[str]:
    """Expected column order for a submission at ``level``."""
    if level not in LEVEL_KEYS:
        raise ValueError(f"Unknown level '{level}'. Choose from {list(LEVEL_KEYS)}")
    cols = LEVEL_KEYS[level] + [MONTH_COL, FORECAST_COL]
    for lv in interval_levels:
        cols += [f'lower_{lv}', f'upper_{lv}']
    return cols


def build_submission(
    forecasts: pd.DataFrame,
    level: str = 'brand',
    value_col: str = 'ensemble',
    date_col: str = 'ds',
    decimals: int = 2,
) -> pd.DataFrame:
    """
    Aggregate the forecast table and format it for submission.

    Parameters
    ----------
    forecasts : pd.DataFrame
        forecast_panel() output: hierarchy columns, ds, ensemble, lo_L/hi_L
    level : str, default='brand'
        'total', 'cluster', 'country' or 'brand'
    value_col : str, default='ensemble'
        Point forecast column
    date_col : str, default='ds'
    decimals : int, default=2

    Returns
    -------
    pd.DataFrame
        Level keys, month ('YYYY-MM'), forecast, lower_L, upper_L; sorted by
        keys then month
    """
    if value_col not in forecasts.columns:
        raise ValueError(f"Forecast column '{value_col}' not found")

    levels = _interval_levels(list(forecasts.columns))
    interval_cols = [c for lv in levels for c in (f'lo_{lv}', f'hi_{lv}')]

    agg = aggregate_hierarchy(forecasts, level, value_cols=[value_col] + interval_cols, date_col=date_col)
    keys = LEVEL_KEYS[level]

    sub = agg[keys].copy()
    sub[MONTH_COL] = pd.to_datetime(agg[date_col]).dt.strftime('%Y-%m')
    sub[FORECAST_COL] = agg[value_col]
    for lv in levels:
        sub[f'lower_{lv}'] = agg[f'lo_{lv}']
        sub[f'upper_{lv}'] = agg[f'hi_{lv}']

    value_cols = [c for c in sub.columns if c not in keys + [MONTH_COL]]
    sub[value_cols] = sub[value_cols].round(decimals)

    return sub.sort_values(keys + [MONTH_COL]).reset_index(drop=True)[submission_columns(level, levels)]


def validate_submission(
    sub: pd.DataFrame,
    horizon: int,
    level: str = 'brand',
) -> None:
    """
    Check a submission before writing it.

    Raises
    ------
    ValueError
        Listing every problem found: missing columns, wrong number of months
        per key, duplicates, NaNs, negatives, or forecast outside its bounds
    """
    if level not in LEVEL_KEYS:
        raise ValueError(f"Unknown level '{level}'. Choose from {list(LEVEL_KEYS)}")
    keys = LEVEL_KEYS[level]

    missing = [c for c in keys + [MONTH_COL, FORECAST_COL] if c not in sub.columns]
    if missing:
        raise ValueError(f"Submission failed validation:\n- missing columns: {missing}")

    problems = []
    lowers = [c for c in sub.columns if c.startswith('lower_')]
    uppers = [c for c in sub.columns if c.startswith('upper_')]
    unpaired = sorted(
        set(c[len('lower_'):] for c in lowers) ^ set(c[len('upper_'):] for c in uppers)
    )
    if unpaired:
        problems.append(f"unpaired interval columns for levels {unpaired}")

    dupes = sub.duplicated(keys + [MONTH_COL]).sum()
    if dupes:
        problems.append(f"{dupes} duplicate rows for {keys + [MONTH_COL]}")

    if keys:
        months = sub.groupby(keys)[MONTH_COL].nunique()
        wrong = months[months != horizon]
        if len(wrong):
            problems.append(f"{len(wrong)} keys without exactly {horizon} months")
    elif sub[MONTH_COL].nunique() != horizon:
        problems.append(f"expected {horizon} months, found {sub[MONTH_COL].nunique()}")

    value_cols = [FORECAST_COL] + lowers + uppers
    n_nan = int(sub[value_cols].isna().sum().sum())
    if n_nan:
        problems.append(f"{n_nan} missing values")

    n_neg = int((sub[value_cols] < 0).sum().sum())
    if n_neg:
        problems.append(f"{n_neg} negative values")

    for lower in lowers:
        upper = 'upper_' + lower[len('lower_'):]
        if upper not in sub.columns:
            continue
        bad = ((sub[lower] > sub[FORECAST_COL]) | (sub[FORECAST_COL] > sub[upper])).sum()
        if bad:
            problems.append(f"{bad} rows with forecast outside [{lower}, {upper}]")

    if problems:
        raise ValueError("Submission failed validation:\n- " + "\n- ".join(problems))


def write_submission(
    sub: pd.DataFrame,
    path: Union[str, Path],
    verbose: bool = True
) -> Path:
    """Write to .csv or .xlsx (openpyxl), creating parent directories."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in ('.csv', '.xlsx'):
        raise ValueError(f"Unsupported submission format '{suffix}'; use .csv or .xlsx")

    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == '.csv':
        sub.to_csv(path, index=False)
    else:
        sub.to_excel(path, index=False, engine='openpyxl')

    if verbose:
        print(f"✓ Wrote submission: {path} ({len(sub):,} rows)")
    return path


__all__ = [
    'MONTH_COL',
    'FORECAST_COL',
    'submission_columns',
    'build_submission',
    'validate_submission',
    'write_submission',
]
