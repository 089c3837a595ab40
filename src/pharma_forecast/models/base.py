"""
Model Base
==========

Shared pieces for every forecaster:
- ModelForecast: mean path + standard deviation per horizon step
- MODEL_REGISTRY / register_model: name -> forecasting function
- future_index: the h month-start dates following a series
"""

from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats

# =============================================================
# Model Registry
# =============================================================
# Every forecaster is registered by name so the pipeline, CLI and config
# can refer to models as strings.

MODEL_REGISTRY: Dict[str, Callable[..., 'ModelForecast']] = {}


def register_model(name: str):
    """Decorator to register a forecasting function in MODEL_REGISTRY."""
    def decorator(func):
        MODEL_REGISTRY[name] = func
        return func
    return decorator


def get_model(name: str) -> Callable[..., 'ModelForecast']:
    if name not in MODEL_REGISTRY:
        raise ValueError(f"Unknown model '{name}'. Available: {sorted(MODEL_REGISTRY)}")
    return MODEL_REGISTRY[name]


def available_models() -> list:
    return sorted(MODEL_REGISTRY)


# =============================================================
# Forecast container
# =============================================================

@dataclass
class ModelForecast:
    """
    Point forecast plus a normal forecast distribution per step.

    Attributes
    ----------
    model : str
        Registry name
    mean : pd.Series
        Forecast mean, indexed by future dates
    sd : pd.Series
        Forecast standard deviation, same index
    fitted : pd.Series, optional
        In-sample one-step fitted values
    status : str
        'ok', or 'fallback: <reason>' when a simpler model was substituted
    """
    model: str
    mean: pd.Series
    sd: pd.Series
    fitted: Optional[pd.Series] = None
    status: str = 'ok'

    @property
    def is_fallback(self) -> bool:
        return self.status.startswith('fallback')

    def quantiles(self, probs: Iterable[float]) -> pd.DataFrame:
        """Normal quantiles, one column per probability."""
        return pd.DataFrame(
            {p: self.mean + stats.norm.ppf(p) * self.sd for p in probs},
            index=self.mean.index,
        )

    def interval(self, level: float) -> Tuple[pd.Series, pd.Series]:
        """Central ``level``% prediction interval as (lower, upper)."""
        tail = (100 - level) / 200
        z = stats.norm.ppf(1 - tail)
        return self.mean - z * self.sd, self.mean + z * self.sd

    def clip(self, lower: float = 0.0) -> 'ModelForecast':
        """Copy with the mean path clipped below at ``lower``."""
        return replace(self, mean=self.mean.clip(lower=lower))


# =============================================================
# Helpers
# =============================================================

def future_index(y: pd.Series, h: int, freq: str = 'MS') -> pd.DatetimeIndex:
    """The ``h`` dates following the last observation of ``y``."""
    if h < 1:
        raise ValueError(f"h must be >= 1, got {h}")
    last = pd.Timestamp(y.index[-1])
    return pd.date_range(start=last, periods=h + 1, freq=freq)[1:]


def residual_sd(residuals) -> float:
    """Root mean square of the non-NaN residuals (0 when there are none)."""
    res = np.asarray(residuals, dtype=float)
    res = res[~np.isnan(res)]
    if len(res) == 0:
        return 0.0
    return float(np.sqrt(np.mean(res ** 2)))


def make_forecast(
    model: str,
    y: pd.Series,
    mean,
    sd,
    fitted=None,
    freq: str = 'MS',
    status: str = 'ok'
) -> ModelForecast:
    """Wrap raw arrays into a ModelForecast indexed by future dates."""
    mean = np.asarray(mean, dtype=float)
    index = future_index(y, len(mean), freq)
    sd = np.broadcast_to(np.asarray(sd, dtype=float), mean.shape)
    fitted_series = None
    if fitted is not None:
        fitted_series = pd.Series(np.asarray(fitted, dtype=float), index=y.index, name=model)
    return ModelForecast(
        model=model,
        mean=pd.Series(mean, index=index, name=model),
        sd=pd.Series(np.nan_to_num(sd, nan=0.0), index=index, name=model),
        fitted=fitted_series,
        status=status,
    )


__all__ = [
    'MODEL_REGISTRY',
    'register_model',
    'get_model',
    'available_models',
    'ModelForecast',
    'future_index',
    'residual_sd',
    'make_forecast',
]
