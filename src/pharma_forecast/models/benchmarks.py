"""
Benchmark Forecasters
=====================

Naive family with the usual closed-form forecast variances:

    naive   sd_h = σ·√h
    snaive  sd_h = σ_s·√(⌊(h-1)/m⌋ + 1)
    mean    sd_h = s·√(1 + 1/n)
    drift   sd_h = σ·√(h·(1 + h/(n-1)))
"""

import numpy as np
import pandas as pd

from .base import register_model, make_forecast, residual_sd, ModelForecast


@register_model('naive')
def naive_forecast(y: pd.Series, h: int, season_length: int = 12, **kwargs) -> ModelForecast:
    """Repeat the last observation."""
    values = y.to_numpy(dtype=float)
    n = len(values)
    if n == 0:
        raise ValueError("Cannot forecast an empty series")

    sigma = residual_sd(np.diff(values)) if n > 1 else 0.0
    steps = np.arange(1, h + 1)
    fitted = np.concatenate([[np.nan], values[:-1]])

    return make_forecast(
        'naive', y,
        mean=np.full(h, values[-1]),
        sd=sigma * np.sqrt(steps),
        fitted=fitted,
        freq=kwargs.get('freq', 'MS'),
    )


@register_model('snaive')
def seasonal_naive_forecast(y: pd.Series, h: int, season_length: int = 12, **kwargs) -> ModelForecast:
    """Repeat the value from the same month of the last observed season."""
    values = y.to_numpy(dtype=float)
    n = len(values)
    m = season_length

    if n < m or m < 2:
        fc = naive_forecast(y, h, season_length, **kwargs)
        fc.model = 'snaive'
        fc.mean.name = fc.sd.name = 'snaive'
        fc.status = 'fallback: shorter than one season'
        return fc

    steps = np.arange(1, h + 1)
    last_season = values[n - m:]
    mean = last_season[(steps - 1) % m]

    sigma = residual_sd(values[m:] - values[:-m]) if n > m else 0.0
    sd = sigma * np.sqrt((steps - 1) // m + 1)
    fitted = np.concatenate([np.full(m, np.nan), values[:-m]])

    return make_forecast('snaive', y, mean=mean, sd=sd, fitted=fitted,
                         freq=kwargs.get('freq', 'MS'))


@register_model('mean')
def mean_forecast(y: pd.Series, h: int, season_length: int = 12, **kwargs) -> ModelForecast:
    """Historical average."""
    values = y.to_numpy(dtype=float)
    n = len(values)
    if n == 0:
        raise ValueError("Cannot forecast an empty series")

    mu = values.mean()
    s = values.std(ddof=1) if n > 1 else 0.0

    return make_forecast(
        'mean', y,
        mean=np.full(h, mu),
        sd=s * np.sqrt(1 + 1 / n),
        fitted=np.full(n, mu),
        freq=kwargs.get('freq', 'MS'),
    )


@register_model('drift')
def drift_forecast(y: pd.Series, h: int, season_length: int = 12, **kwargs) -> ModelForecast:
    """Random walk with drift: last value plus the average historical slope."""
    values = y.to_numpy(dtype=float)
    n = len(values)
    if n < 2:
        fc = naive_forecast(y, h, season_length, **kwargs)
        fc.model = 'drift'
        fc.mean.name = fc.sd.name = 'drift'
        fc.status = 'fallback: fewer than 2 observations'
        return fc

    slope = (values[-1] - values[0]) / (n - 1)
    steps = np.arange(1, h + 1)
    sigma = residual_sd(np.diff(values) - slope)
    fitted = np.concatenate([[np.nan], values[:-1] + slope])

    return make_forecast(
        'drift', y,
        mean=values[-1] + slope * steps,
        sd=sigma * np.sqrt(steps * (1 + steps / (n - 1))),
        fitted=fitted,
        freq=kwargs.get('freq', 'MS'),
    )


__all__ = ['naive_forecast', 'seasonal_naive_forecast', 'mean_forecast', 'drift_forecast']
