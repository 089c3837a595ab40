"""
Forecasting models.

Importing this package registers every model in MODEL_REGISTRY.
"""

import logging
from typing import Dict, List

import pandas as pd

from .base import (
    MODEL_REGISTRY,
    register_model,
    get_model,
    available_models,
    ModelForecast,
    future_index,
    residual_sd,
    make_forecast,
)
from .benchmarks import naive_forecast, seasonal_naive_forecast, mean_forecast, drift_forecast
from .statistical import select_arima, arima_forecast, select_ets, ets_forecast, fourier_forecast

logger = logging.getLogger(__name__)

MIN_OBS = 3


def _naive_fallback(
    name: str,
    y: pd.Series,
    h: int,
    season_length: int,
    reason: str,
    **kwargs
) -> ModelForecast:
    fc = naive_forecast(y, h, season_length, **kwargs)
    fc.model = name
    fc.mean.name = fc.sd.name = name
    if fc.fitted is not None:
        fc.fitted.name = name
    fc.status = f'fallback: {reason}'
    return fc


def forecast_series(
    y: pd.Series,
    h: int,
    models: List[str],
    season_length: int = 12,
    clip_negative: bool = False,
    min_obs: int = MIN_OBS,
    **kwargs
) -> Dict[str, ModelForecast]:
    """
    Forecast one series with several models.

    Parameters
    ----------
    y : pd.Series
        Monthly history indexed by date; NaNs are dropped
    h : int
        Forecast horizon
    models : list of str
        Registry names
    season_length : int, default=12
    clip_negative : bool, default=False
        Clip forecast means at zero
    min_obs : int, default=3
        Shorter series get the naive forecast in every slot
    **kwargs
        Passed to every model (freq, fourier_order, ...)

    Returns
    -------
    dict
        {model name: ModelForecast}, in the order of ``models``

    Raises
    ------
    ValueError
        Unknown model name, horizon < 1 or empty series
    """
    unknown = [m for m in models if m not in MODEL_REGISTRY]
    if unknown:
        raise ValueError(f"Unknown model(s) {unknown}. Available: {available_models()}")
    if h < 1:
        raise ValueError(f"h must be >= 1, got {h}")

    y = y.dropna()
    if len(y) == 0:
        raise ValueError("Cannot forecast an empty series")

    results = {}
    for name in models:
        if len(y) < min_obs:
            fc = _naive_fallback(name, y, h, season_length,
                                 f'fewer than {min_obs} observations', **kwargs)
        else:
            try:
                fc = get_model(name)(y, h, season_length=season_length, **kwargs)
            except Exception as exc:
                logger.warning("%s failed on series %s: %s; using naive", name, y.name, exc)
                fc = _naive_fallback(name, y, h, season_length, str(exc), **kwargs)

        if clip_negative:
            fc = fc.clip(lower=0.0)
        results[name] = fc

    return results


__all__ = [
    'MODEL_REGISTRY',
    'register_model',
    'get_model',
    'available_models',
    'ModelForecast',
    'future_index',
    'residual_sd',
    'make_forecast',
    'naive_forecast',
    'seasonal_naive_forecast',
    'mean_forecast',
    'drift_forecast',
    'select_arima',
    'arima_forecast',
    'select_ets',
    'ets_forecast',
    'fourier_forecast',
    'forecast_series',
]
