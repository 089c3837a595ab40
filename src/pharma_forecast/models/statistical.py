"""
Statistical Forecasters
=======================

Thin wrappers around statsmodels with small AIC searches:

- arima: ARIMA(p,d,q) over p∈{0,1,2}, d∈{0,1}, q∈{0,1,2}, then a
  seasonal AR(1) term on the best order when two seasons are available
- ets: additive-error ETS over trend ∈ {None, add, damped} and
  seasonal ∈ {None, add}
- fourier: harmonic regression, OLS on constant + trend + Fourier terms

Each raises on failure; forecast_series() turns failures into naive
fallbacks.
"""

import itertools
import logging
import warnings
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from .base import register_model, make_forecast, ModelForecast
from ..features.fourier import fourier_terms, future_fourier_terms

logger = logging.getLogger(__name__)

ARIMA_P = (0, 1, 2)
ARIMA_D = (0, 1)
ARIMA_Q = (0, 1, 2)


# =============================================================
# ARIMA
# =============================================================

def _fit_arima(values: np.ndarray, order, seasonal_order=(0, 0, 0, 0)):
    from statsmodels.tsa.arima.model import ARIMA

    d = order[1] + seasonal_order[1]
    trend = 'c' if d == 0 else 'n'
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        return ARIMA(values, order=order, seasonal_order=seasonal_order, trend=trend).fit()


def select_arima(
    values: np.ndarray,
    season_length: int = 12
) -> Tuple[object, tuple, tuple]:
    """
    Best ARIMA by AIC.

    Returns
    -------
    (results, order, seasonal_order)

    Raises
    ------
    ValueError
        If no candidate could be fitted
    """
    n = len(values)
    best, best_aic = None, np.inf
    best_order, best_seasonal = None, (0, 0, 0, 0)

    for order in itertools.product(ARIMA_P, ARIMA_D, ARIMA_Q):
        # need enough points for the parameters
        if sum(order) + 2 >= n:
            continue
        try:
            res = _fit_arima(values, order)
        except (ValueError, np.linalg.LinAlgError) as exc:
            logger.debug("ARIMA%s failed: %s", order, exc)
            continue
        if np.isfinite(res.aic) and res.aic < best_aic:
            best, best_aic, best_order = res, res.aic, order

    if best is None:
        raise ValueError("No ARIMA order could be fitted")

    m = season_length
    if m > 1 and n >= 2 * m:
        seasonal = (1, 0, 0, m)
        try:
            res = _fit_arima(values, best_order, seasonal)
            if np.isfinite(res.aic) and res.aic < best_aic:
                best, best_aic, best_seasonal = res, res.aic, seasonal
        except (ValueError, np.linalg.LinAlgError) as exc:
            logger.debug("Seasonal ARIMA%s%s failed: %s", best_order, seasonal, exc)

    return best, best_order, best_seasonal


@register_model('arima')
def arima_forecast(y: pd.Series, h: int, season_length: int = 12, **kwargs) -> ModelForecast:
    """ARIMA with AIC order selection; sd from the state-space forecast."""
    values = y.to_numpy(dtype=float)
    res, order, seasonal = select_arima(values, season_length)
    logger.debug("Selected ARIMA%s%s (AIC %.1f)", order, seasonal, res.aic)

    fc = res.get_forecast(steps=h)
    return make_forecast(
        'arima', y,
        mean=fc.predicted_mean,
        sd=fc.se_mean,
        fitted=res.fittedvalues,
        freq=kwargs.get('freq', 'MS'),
    )


# =============================================================
# ETS
# =============================================================

ETS_FORMS = [
    dict(trend=None, damped_trend=False, seasonal=None),
    dict(trend='add', damped_trend=False, seasonal=None),
    dict(trend='add', damped_trend=True, seasonal=None),
    dict(trend=None, damped_trend=False, seasonal='add'),
    dict(trend='add', damped_trend=False, seasonal='add'),
    dict(trend='add', damped_trend=True, seasonal='add'),
]


def select_ets(values: pd.Series, season_length: int = 12):
    """Best additive-error ETSModel by AIC; raises ValueError if none fits."""
    from statsmodels.tsa.exponential_smoothing.ets import ETSModel

    n = len(values)
    m = season_length
    best, best_aic, best_form = None, np.inf, None

    for form in ETS_FORMS:
        seasonal = form['seasonal'] is not None
        if seasonal and (m < 2 or n < 2 * m):
            continue
        if form['trend'] and n < 4:
            continue
        try:
            with warnings.catch_warnings():
                warnings.simplefilter('ignore')
                model = ETSModel(
                    values,
                    error='add',
                    trend=form['trend'],
                    damped_trend=form['damped_trend'],
                    seasonal=form['seasonal'],
                    seasonal_periods=m if seasonal else None,
                )
                res = model.fit(disp=False)
        except (ValueError, np.linalg.LinAlgError) as exc:
            logger.debug("ETS %s failed: %s", form, exc)
            continue
        if np.isfinite(res.aic) and res.aic < best_aic:
            best, best_aic, best_form = res, res.aic, form

    if best is None:
        raise ValueError("No ETS form could be fitted")
    return best, best_form


@register_model('ets')
def ets_forecast(y: pd.Series, h: int, season_length: int = 12, **kwargs) -> ModelForecast:
    """
    Additive-error ETS with AIC selection.

    The forecast sd is recovered from the 95% prediction interval, which is
    exact (normal) for additive-error models.
    """
    # pandas endog: ETS prediction results read the index of the predicted mean
    endog = pd.Series(y.to_numpy(dtype=float))
    res, form = select_ets(endog, season_length)
    logger.debug("Selected ETS %s (AIC %.1f)", form, res.aic)

    n = len(endog)
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        frame = res.get_prediction(start=n, end=n + h - 1).summary_frame(alpha=0.05)

    z = stats.norm.ppf(0.975)
    sd = (frame['pi_upper'].to_numpy() - frame['pi_lower'].to_numpy()) / (2 * z)

    return make_forecast(
        'ets', y,
        mean=frame['mean'].to_numpy(),
        sd=sd,
        fitted=res.fittedvalues,
        freq=kwargs.get('freq', 'MS'),
    )


# =============================================================
# Harmonic (Fourier) regression
# =============================================================

@register_model('fourier')
def fourier_forecast(
    y: pd.Series,
    h: int,
    season_length: int = 12,
    fourier_order: Optional[int] = 2,
    **kwargs
) -> ModelForecast:
    """
    OLS of y on a constant, a linear trend and K Fourier pairs.

    K is capped at season_length // 2. sd is the standard error of a new
    observation (parameter + residual uncertainty).
    """
    import statsmodels.api as sm

    m = season_length
    if m < 2:
        raise ValueError("Fourier regression needs season_length >= 2")
    order = min(fourier_order or 1, m // 2)

    values = y.to_numpy(dtype=float)
    n = len(values)

    X = fourier_terms(np.arange(n), period=m, order=order)
    X.insert(0, 'trend', np.arange(n, dtype=float))
    X = sm.add_constant(X, has_constant='add')
    if n <= X.shape[1] + 1:
        raise ValueError(f"Need more than {X.shape[1] + 1} observations, got {n}")

    X_future = future_fourier_terms(n, h, period=m, order=order)
    X_future.insert(0, 'trend', np.arange(n, n + h, dtype=float))
    X_future = sm.add_constant(X_future, has_constant='add')

    res = sm.OLS(values, X.to_numpy()).fit()
    pred = res.get_prediction(X_future.to_numpy())

    return make_forecast(
        'fourier', y,
        mean=pred.predicted_mean,
        sd=pred.se_obs,
        fitted=res.fittedvalues,
        freq=kwargs.get('freq', 'MS'),
    )


__all__ = [
    'select_arima',
    'arima_forecast',
    'select_ets',
    'ets_forecast',
    'fourier_forecast',
]
