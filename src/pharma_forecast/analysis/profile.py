"""
Series Profiling
================

Quantitative pattern measurement for monthly brand sales.

This module measures what the EDA plots show:
- Demand statistics (zero runs, CV² of non-zero sales, demand type)
- Trend and seasonal strength (STL decomposition)
- Autocorrelation (ACF lag-1, lag-12)
- Distribution shape (skewness, kurtosis)
- Volatility (does variance scale with level?)
- Outliers (IQR method)

Usage
-----
Single series:
    >>> stats = demand_statistics(series)
    >>> stats['type']
    'Smooth'

Full panel:
    >>> profiles = profile_dataframe(df, id_col='unique_id', value_col='y', period=12)
"""

import numpy as np
import pandas as pd
from typing import Optional, Tuple, Dict, Any, List

# =============================================================================
# DEMAND STATISTICS
# =============================================================================

# Demand-type thresholds
ADI_THRESHOLD = 4 / 3
CV2_THRESHOLD = 0.5


def first_non_zero(x) -> int:
    """
    Position (0-based) of the first non-zero value.

    Returns 0 when there are no zeros and ``len(x) - 1`` when every value
    is zero, so ``x[first_non_zero(x):]`` is never empty for non-empty x.
    """
    x = np.asarray(x, dtype=float)
    x = x[~np.isnan(x)]
    if len(x) == 0:
        return 0
    if np.all(x == 0):
        return len(x) - 1
    return int(np.flatnonzero(x != 0)[0])


def zero_intervals(x, value: float = 0) -> List[int]:
    """Run lengths of ``value`` in x; [1] if it never occurs."""
    x = np.asarray(x, dtype=float)
    runs = []
    count = 0
    for v in x:
        if v == value:
            count += 1
        elif count:
            runs.append(count)
            count = 0
    if count:
        runs.append(count)
    return runs or [1]


def nonzero_demand(x) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    return x[x != 0]


def classify_demand(adi: float, cv2: float) -> str:
    """
    Demand type from ADI and CV².

    A NaN CV² (fewer than two non-zero observations) counts as low
    variability.
    """
    high_cv2 = pd.notna(cv2) and cv2 > CV2_THRESHOLD
    if adi > ADI_THRESHOLD:
        return 'Lumpy' if high_cv2 else 'Intermittent'
    return 'Erratic' if high_cv2 else 'Smooth'


def demand_statistics(x) -> Dict[str, Any]:
    """
    Summary statistics of one series after removing NaNs and leading zeros.

    Parameters
    ----------
    x : array-like
        Series values in time order

    Returns
    -------
    dict with keys:
        - len: Length after trimming
        - adi: Mean length of zero runs
        - cv2: Squared coefficient of variation of non-zero demand
        - type: 'Smooth', 'Erratic', 'Intermittent' or 'Lumpy'
        - min, low25, mean, median, up25, max: Distribution of trimmed values
        - pz: Proportion of zeros
        - fnz: Position of first non-zero value in the NaN-free input
    """
    x = np.asarray(x, dtype=float)
    x = x[~np.isnan(x)]

    if len(x) == 0:
        return {
            'len': 0, 'adi': np.nan, 'cv2': np.nan, 'type': 'Unknown',
            'min': np.nan, 'low25': np.nan, 'mean': np.nan, 'median': np.nan,
            'up25': np.nan, 'max': np.nan, 'pz': np.nan, 'fnz': 0,
        }

    fnz = first_non_zero(x)
    x = x[fnz:]
    demand = nonzero_demand(x)

    adi = float(np.mean(zero_intervals(x)))
    if len(demand) > 1 and demand.mean() != 0:
        cv2 = float((demand.std(ddof=1) / demand.mean()) ** 2)
    else:
        cv2 = np.nan

    return {
        'len': len(x),
        'adi': adi,
        'cv2': cv2,
        'type': classify_demand(adi, cv2),
        'min': float(x.min()),
        'low25': float(np.quantile(x, 0.25)),
        'mean': float(x.mean()),
        'median': float(np.median(x)),
        'up25': float(np.quantile(x, 0.75)),
        'max': float(x.max()),
        'pz': float((x == 0).mean()),
        'fnz': fnz,
    }


# =============================================================================
# TREND & SEASONALITY (STL Decomposition)
# =============================================================================

def calc_stl_strength(
    series: pd.Series,
    period: int = 12
) -> Tuple[float, float]:
    """
    Trend and seasonal strength from an STL decomposition.

    Based on Wang-Hyndman-Talagala formulas:
        Trend strength    = max(0, 1 - Var(resid) / Var(trend + resid))
        Seasonal strength = max(0, 1 - Var(resid) / Var(seasonal + resid))

    Returns (nan, nan) for series shorter than two seasons, constant
    series, or when the decomposition fails.
    """
    from statsmodels.tsa.seasonal import STL

    values = pd.Series(series).dropna().to_numpy(dtype=float)
    if len(values) < period * 2 or np.std(values) == 0:
        return np.nan, np.nan

    try:
        stl = STL(values, period=period, robust=True).fit()
    except (ValueError, np.linalg.LinAlgError):
        return np.nan, np.nan

    var_resid = np.var(stl.resid)
    trend_strength = max(0.0, 1 - var_resid / np.var(stl.trend + stl.resid))
    seasonal_strength = max(0.0, 1 - var_resid / np.var(stl.seasonal + stl.resid))
    return float(trend_strength), float(seasonal_strength)


# =============================================================================
# AUTOCORRELATION
# =============================================================================

def calc_acf_metrics(
    series: pd.Series,
    period: int = 12
) -> Tuple[float, float]:
    """
    ACF at lag 1 and at the seasonal lag.

    Returns (nan, nan) when the series is too short or constant.
    """
    from statsmodels.tsa.stattools import acf

    clean = pd.Series(series).dropna()
    if len(clean) < period + 6 or clean.std() == 0:
        return np.nan, np.nan

    acf_vals = acf(clean, nlags=period, fft=True)
    return float(acf_vals[1]), float(acf_vals[period])


# =============================================================================
# DISTRIBUTION
# =============================================================================

def calc_distribution_metrics(series: pd.Series) -> Dict[str, Any]:
    """
    Skewness and kurtosis of non-zero values, and whether a log transform
    lowers their coefficient of variation.
    """
    from scipy import stats

    y = pd.Series(series).dropna().to_numpy(dtype=float)
    y_nonzero = y[y > 0]

    if len(y_nonzero) < 10:
        return {'skewness': np.nan, 'kurtosis': np.nan, 'log_beneficial': np.nan}

    cv_raw = y_nonzero.std() / y_nonzero.mean()
    log_y = np.log1p(y_nonzero)
    cv_log = log_y.std() / log_y.mean() if log_y.mean() > 0 else np.nan

    return {
        'skewness': float(stats.skew(y_nonzero)),
        'kurtosis': float(stats.kurtosis(y_nonzero)),
        'log_beneficial': bool(cv_log < cv_raw) if pd.notna(cv_log) else False,
    }


# =============================================================================
# VOLATILITY
# =============================================================================

def calc_volatility_metrics(
    series: pd.Series,
    window_size: int = 6
) -> Dict[str, Any]:
    """
    Correlation between local mean and local std over consecutive
    windows (default half-years). Above 0.5 the series is flagged as
    heteroscedastic.
    """
    y = pd.Series(series).dropna().to_numpy(dtype=float)
    n_windows = len(y) // window_size

    if n_windows < 4:
        return {'level_var_corr': np.nan, 'is_heteroscedastic': np.nan}

    windows = y[: n_windows * window_size].reshape(n_windows, window_size)
    means = windows.mean(axis=1)
    stds = windows.std(axis=1)

    if np.std(means) == 0 or np.std(stds) == 0:
        return {'level_var_corr': 0.0, 'is_heteroscedastic': False}

    corr = float(np.corrcoef(means, stds)[0, 1])
    return {'level_var_corr': corr, 'is_heteroscedastic': corr > 0.5}


# =============================================================================
# OUTLIERS
# =============================================================================

def calc_outlier_metrics(
    series: pd.Series,
    threshold_pct: float = 0.02
) -> Dict[str, Any]:
    """IQR outliers among non-zero values."""
    y = pd.Series(series).dropna().to_numpy(dtype=float)
    y_nonzero = y[y > 0]

    if len(y_nonzero) < 10:
        return {'n_outliers': 0, 'outlier_pct': 0.0, 'has_outliers': False}

    q1, q3 = np.percentile(y_nonzero, [25, 75])
    iqr = q3 - q1
    outliers = (y_nonzero < q1 - 1.5 * iqr) | (y_nonzero > q3 + 1.5 * iqr)
    outlier_pct = float(outliers.mean())

    return {
        'n_outliers': int(outliers.sum()),
        'outlier_pct': outlier_pct,
        'has_outliers': outlier_pct > threshold_pct,
    }


# =============================================================================
# ALL-IN-ONE
# =============================================================================

def profile_series(
    series: pd.Series,
    period: int = 12,
    include_stl: bool = True
) -> Dict[str, Any]:
    """
    Full pattern profile for a single series.

    Returns demand_statistics() plus trend_strength / seasonal_strength
    (if include_stl), acf_lag1 / acf_seasonal, distribution, volatility
    and outlier metrics.
    """
    result: Dict[str, Any] = {}

    if include_stl:
        result['trend_strength'], result['seasonal_strength'] = calc_stl_strength(series, period)

    result['acf_lag1'], result['acf_seasonal'] = calc_acf_metrics(series, period)
    result.update(demand_statistics(series))
    result.update(calc_distribution_metrics(series))
    result.update(calc_volatility_metrics(series))
    result.update(calc_outlier_metrics(series))

    return result


def profile_dataframe(
    df: pd.DataFrame,
    id_col: str = 'unique_id',
    value_col: str = 'y',
    date_col: str = 'ds',
    period: int = 12,
    include_stl: bool = True,
    sample_n: Optional[int] = None,
    random_state: int = 42,
    show_progress: bool = True
) -> pd.DataFrame:
    """
    Profiles for every series in a panel.

    Parameters
    ----------
    df : pd.DataFrame
        Panel with id_col, date_col and value_col
    id_col, value_col, date_col : str
    period : int, default=12
        Seasonal period
    include_stl : bool, default=True
        Whether to compute STL strength (slower)
    sample_n : int, optional
        Profile only N randomly chosen series
    random_state : int, default=42
    show_progress : bool, default=True
        Show tqdm progress bar

    Returns
    -------
    pd.DataFrame
        One row per series, id_col first
    """
    from tqdm.auto import tqdm

    unique_ids = df[id_col].unique()
    if sample_n is not None and sample_n < len(unique_ids):
        rng = np.random.default_rng(random_state)
        unique_ids = rng.choice(unique_ids, size=sample_n, replace=False)

    ordered = df.sort_values(date_col) if date_col in df.columns else df
    groups = dict(tuple(ordered[ordered[id_col].isin(unique_ids)].groupby(id_col, sort=False)))

    results = []
    for uid in tqdm(unique_ids, desc="Profiling series", disable=not show_progress):
        profile = profile_series(groups[uid][value_col], period=period, include_stl=include_stl)
        profile[id_col] = uid
        results.append(profile)

    profiles = pd.DataFrame(results)
    if profiles.empty:
        return profiles
    return profiles[[id_col] + [c for c in profiles.columns if c != id_col]]


# =============================================================================
# INTERPRETATION HELPERS
# =============================================================================

def interpret_strength(value: float) -> str:
    """Interpret trend/seasonal strength value."""
    if pd.isna(value):
        return 'Unknown'
    if value < 0.3:
        return 'Weak'
    if value < 0.6:
        return 'Moderate'
    return 'Strong'


def summarize_profiles(profiles: pd.DataFrame) -> pd.DataFrame:
    """
    Portfolio-level summary of profile_dataframe() output.

    Rows whose source columns are absent (e.g. STL skipped) are omitted.
    """
    def share(mask) -> str:
        return f"{mask.mean():.1%}"

    rows = []
    if 'trend_strength' in profiles:
        rows.append(('Trend', 'Strong trend (>0.6)',
                     share(profiles['trend_strength'] > 0.6), 'Trend component (drift, ETS trend)'))
        rows.append(('Seasonal', 'Strong seasonal (>0.6)',
                     share(profiles['seasonal_strength'] > 0.6), 'Seasonal naive, Fourier terms'))
    rows += [
        ('ACF Lag-1', 'Significant lag-1 (>0.3)',
         share(profiles['acf_lag1'].abs() > 0.3), 'ARIMA AR terms'),
        ('ACF Seasonal', 'Significant seasonal lag (>0.2)',
         share(profiles['acf_seasonal'].abs() > 0.2), 'Seasonal ARIMA'),
        ('Demand type', 'Lumpy or intermittent',
         share(profiles['type'].isin(['Lumpy', 'Intermittent'])), 'Naive / mean benchmarks'),
        ('Distribution', 'Right-skewed (>1)',
         share(profiles['skewness'] > 1), 'Log transform'),
        ('Volatility', 'Variance scales with level',
         share(profiles['is_heteroscedastic'] == True), 'Multiplicative errors'),  # noqa: E712
        ('Outliers', 'Has outliers (>2%)',
         share(profiles['has_outliers']), 'Robust methods or pre-clean'),
    ]

    return pd.DataFrame(rows, columns=['Pattern', 'Metric', 'Value', 'Implication']).set_index('Pattern')


__all__ = [
    # Demand statistics
    'first_non_zero',
    'zero_intervals',
    'nonzero_demand',
    'classify_demand',
    'demand_statistics',
    # Individual metrics
    'calc_stl_strength',
    'calc_acf_metrics',
    'calc_distribution_metrics',
    'calc_volatility_metrics',
    'calc_outlier_metrics',
    # All-in-one
    'profile_series',
    'profile_dataframe',
    # Helpers
    'interpret_strength',
    'summarize_profiles',
    # Constants
    'ADI_THRESHOLD',
    'CV2_THRESHOLD',
]
