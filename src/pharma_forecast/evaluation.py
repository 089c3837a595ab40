"""
Evaluation
==========

Point-forecast accuracy metrics and rolling-origin cross-validation.
"""

from typing import Dict, Iterator, List, Tuple

import numpy as np
import pandas as pd


# =============================================================
# Metrics
# =============================================================

def _pair(actual, forecast) -> Tuple[np.ndarray, np.ndarray]:
    a = np.asarray(actual, dtype=float)
    f = np.asarray(forecast, dtype=float)
    if a.shape != f.shape:
        raise ValueError(f"Shape mismatch: actual {a.shape} vs forecast {f.shape}")
    keep = ~(np.isnan(a) | np.isnan(f))
    return a[keep], f[keep]


def mae(actual, forecast) -> float:
    a, f = _pair(actual, forecast)
    return float(np.mean(np.abs(a - f))) if len(a) else np.nan


def rmse(actual, forecast) -> float:
    a, f = _pair(actual, forecast)
    return float(np.sqrt(np.mean((a - f) ** 2))) if len(a) else np.nan


def mape(actual, forecast) -> float:
    """Mean absolute percentage error in %, skipping zero actuals."""
    a, f = _pair(actual, forecast)
    nz = a != 0
    if not nz.any():
        return np.nan
    return float(np.mean(np.abs((a[nz] - f[nz]) / a[nz])) * 100)


def smape(actual, forecast) -> float:
    """Symmetric MAPE in % (0-200); steps where both are zero count as 0."""
    a, f = _pair(actual, forecast)
    if not len(a):
        return np.nan
    denom = np.abs(a) + np.abs(f)
    ratio = np.divide(2 * np.abs(a - f), denom, out=np.zeros_like(denom), where=denom > 0)
    return float(np.mean(ratio) * 100)


def wape(actual, forecast) -> float:
    """Weighted absolute percentage error: Σ|a-f| / Σ|a|, in %."""
    a, f = _pair(actual, forecast)
    denom = np.abs(a).sum()
    if denom == 0:
        return np.nan
    return float(np.abs(a - f).sum() / denom * 100)


def mase(actual, forecast, insample, m: int = 1) -> float:
    """
    Mean absolute scaled error.

    The scale is the in-sample MAE of the seasonal naive forecast with
    period ``m``; NaN when the scale is zero or undefined.
    """
    a, f = _pair(actual, forecast)
    ins = np.asarray(insample, dtype=float)
    ins = ins[~np.isnan(ins)]
    if len(ins) <= m or not len(a):
        return np.nan
    scale = np.mean(np.abs(ins[m:] - ins[:-m]))
    if scale == 0:
        return np.nan
    return float(np.mean(np.abs(a - f)) / scale)


METRICS = {
    'mae': mae,
    'rmse': rmse,
    'mape': mape,
    'smape': smape,
    'wape': wape,
}


def accuracy_table(
    actual,
    forecasts: Dict[str, object],
    insample=None,
    m: int = 1,
) -> pd.DataFrame:
    """
    One row per model with every metric.

    Parameters
    ----------
    actual : array-like
    forecasts : dict
        {model: array-like aligned with ``actual``}
    insample : array-like, optional
        Training history for MASE (column omitted when None)
    m : int, default=1
        MASE seasonal period

    Returns
    -------
    pd.DataFrame
        Indexed by model, sorted by rmse
    """
    rows = []
    for name, fc in forecasts.items():
        row = {'model': name}
        for metric, func in METRICS.items():
            row[metric] = func(actual, fc)
        if insample is not None:
            row['mase'] = mase(actual, fc, insample, m)
        rows.append(row)
    return pd.DataFrame(rows).set_index('model').sort_values('rmse')


# =============================================================
# Cross-validation
# =============================================================

def rolling_origin(
    y: pd.Series,
    h: int,
    n_windows: int = 3,
    step: int = 1,
) -> Iterator[Tuple[pd.Series, pd.Series]]:
    """
    Yield (train, test) splits with forecast origins moving back from the end.

    The last window's test set is the final ``h`` observations; earlier
    windows move the origin back by ``step`` each. Windows are yielded
    oldest first.
    """
    if h < 1 or n_windows < 1 or step < 1:
        raise ValueError("h, n_windows and step must be >= 1")
    n = len(y)
    first_cut = n - h - (n_windows - 1) * step
    if first_cut < 1:
        raise ValueError(
            f"Series of length {n} too short for {n_windows} windows of h={h}, step={step}"
        )
    for i in range(n_windows):
        cut = first_cut + i * step
        yield y.iloc[:cut], y.iloc[cut:cut + h]


def cross_validate(
    y: pd.Series,
    h: int,
    models: List[str],
    n_windows: int = 3,
    season_length: int = 12,
    step: int = 1,
    **kwargs
) -> pd.DataFrame:
    """
    Rolling-origin evaluation of several models on one series.

    Returns
    -------
    pd.DataFrame
        Columns cutoff, ds, model, forecast, actual
    """
    from .models import forecast_series

    frames = []
    for train, test in rolling_origin(y, h, n_windows, step):
        fcs = forecast_series(train, len(test), models, season_length=season_length, **kwargs)
        for name, fc in fcs.items():
            frames.append(pd.DataFrame({
                'cutoff': train.index[-1],
                'ds': test.index,
                'model': name,
                'forecast': fc.mean.to_numpy(),
                'actual': test.to_numpy(),
            }))
    return pd.concat(frames, ignore_index=True)


__all__ = [
    'mae',
    'rmse',
    'mape',
    'smape',
    'wape',
    'mase',
    'METRICS',
    'accuracy_table',
    'rolling_origin',
    'cross_validate',
]
