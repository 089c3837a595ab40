"""
Ensembles
=========

Combine model forecasts with LASSO weights estimated on a validation window.

- lasso_weights: LassoCV(positive=True, fit_intercept=False), coefficients
  normalised to sum 1
- combine_means / median_combine: point combinations
- mixture_quantiles: quantiles of Σ wᵢ·Normal(meanᵢ, sdᵢ) per horizon step
- ensemble_forecast: all of the above in one EnsembleForecast
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats
from scipy.optimize import brentq

from .models.base import ModelForecast

logger = logging.getLogger(__name__)

# Point-mass components get this sd so the mixture CDF stays continuous
SD_EPS = 1e-6


# =============================================================
# Weights
# =============================================================

def equal_weights(models: Sequence[str]) -> pd.Series:
    """Uniform weights over ``models``."""
    models = list(models)
    if not models:
        raise ValueError("Need at least one model")
    return pd.Series(1.0 / len(models), index=models, name='weight')


def lasso_weights(
    actuals,
    forecasts: pd.DataFrame,
    cv: int = 5,
    random_state: int = 42,
) -> pd.Series:
    """
    Ensemble weights from a non-negative, intercept-free cross-validated LASSO.

    Parameters
    ----------
    actuals : array-like
        Observed values, length N
    forecasts : pd.DataFrame
        N x M frame, one column per model
    cv : int, default=5
        LassoCV folds
    random_state : int, default=42

    Returns
    -------
    pd.Series
        Weights indexed by model name, summing to 1. Equal weights when the
        LASSO cannot be used (too few rows, fit failure, all-zero coefficients).
    """
    from sklearn.linear_model import LassoCV

    models = list(forecasts.columns)
    y = np.asarray(actuals, dtype=float)
    X = forecasts.to_numpy(dtype=float)
    if len(y) != len(X):
        raise ValueError(f"actuals has {len(y)} rows, forecasts has {len(X)}")

    keep = ~(np.isnan(y) | np.isnan(X).any(axis=1))
    y, X = y[keep], X[keep]

    if len(models) == 1:
        return equal_weights(models)
    if len(y) < max(cv, 2):
        logger.warning("Only %d validation rows for %d folds; using equal weights", len(y), cv)
        return equal_weights(models)

    try:
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            lasso = LassoCV(
                positive=True,
                fit_intercept=False,
                cv=cv,
                random_state=random_state,
            ).fit(X, y)
        coef = np.clip(lasso.coef_, 0, None)
    except ValueError as exc:
        logger.warning("LassoCV failed (%s); using equal weights", exc)
        return equal_weights(models)

    total = coef.sum()
    if not np.isfinite(total) or total <= 0:
        logger.warning("LASSO shrank every coefficient to zero; using equal weights")
        return equal_weights(models)

    return pd.Series(coef / total, index=models, name='weight')


def _aligned_weights(forecasts: Dict[str, ModelForecast], weights: pd.Series) -> pd.Series:
    missing = [m for m in weights.index if weights[m] > 0 and m not in forecasts]
    if missing:
        raise ValueError(f"Weights reference models without forecasts: {missing}")
    w = weights.reindex(list(forecasts)).fillna(0.0).astype(float)
    if (w < 0).any():
        raise ValueError("Weights must be non-negative")
    if w.sum() <= 0:
        raise ValueError("Weights must have a positive sum")
    return w / w.sum()


# =============================================================
# Point combinations
# =============================================================

def combine_means(forecasts: Dict[str, ModelForecast], weights: pd.Series) -> pd.Series:
    """Weighted sum of the model mean paths."""
    w = _aligned_weights(forecasts, weights)
    means = pd.concat({m: fc.mean for m, fc in forecasts.items()}, axis=1)
    return means.mul(w, axis=1).sum(axis=1).rename('ensemble')


def median_combine(forecasts: Dict[str, ModelForecast]) -> pd.Series:
    """Per-step median of the model mean paths."""
    means = pd.concat({m: fc.mean for m, fc in forecasts.items()}, axis=1)
    return means.median(axis=1).rename('ensemble')


# =============================================================
# Mixture distribution
# =============================================================

def _mixture_quantile(p: float, w: np.ndarray, mu: np.ndarray, sd: np.ndarray) -> float:
    # ten sds, but never narrower than float resolution at large means
    pad = np.maximum(10 * sd, 1e-9 * np.abs(mu) + SD_EPS)
    lo = float(np.min(mu - pad))
    hi = float(np.max(mu + pad))

    def cdf_gap(q):
        return float(np.sum(w * stats.norm.cdf((q - mu) / sd))) - p

    return brentq(cdf_gap, lo, hi, xtol=1e-10)


def mixture_quantiles(
    forecasts: Dict[str, ModelForecast],
    weights: pd.Series,
    probs: Iterable[float],
) -> pd.DataFrame:
    """
    Quantiles of the weighted normal mixture at each horizon step.

    Returns
    -------
    pd.DataFrame
        Indexed by forecast date, one column per probability
    """
    probs = list(probs)
    bad = [p for p in probs if not 0 < p < 1]
    if bad:
        raise ValueError(f"Probabilities must be in (0, 1), got {bad}")

    w = _aligned_weights(forecasts, weights)
    active = [m for m in w.index if w[m] > 0]
    w_act = w[active].to_numpy()

    means = pd.concat({m: forecasts[m].mean for m in active}, axis=1)
    sds = pd.concat({m: forecasts[m].sd for m in active}, axis=1).clip(lower=SD_EPS)

    rows = []
    for step in means.index:
        mu = means.loc[step].to_numpy(dtype=float)
        sd = sds.loc[step].to_numpy(dtype=float)
        rows.append([_mixture_quantile(p, w_act, mu, sd) for p in probs])

    return pd.DataFrame(rows, index=means.index, columns=probs)


def mixture_interval(
    forecasts: Dict[str, ModelForecast],
    weights: pd.Series,
    level: float,
) -> Tuple[pd.Series, pd.Series]:
    """Central ``level``% interval of the mixture as (lower, upper)."""
    tail = (100 - level) / 200
    q = mixture_quantiles(forecasts, weights, [tail, 1 - tail])
    return q[tail].rename(f'lo_{level:g}'), q[1 - tail].rename(f'hi_{level:g}')


# =============================================================
# Ensemble forecast
# =============================================================

@dataclass
class EnsembleForecast:
    """
    Combined forecast for one series.

    Attributes
    ----------
    mean : pd.Series
        Point forecast (weighted mean, or median combine)
    median : pd.Series
        50% quantile of the mixture
    intervals : dict
        {level: (lower, upper)}
    weights : pd.Series
    components : dict
        {model: ModelForecast}
    """
    mean: pd.Series
    median: pd.Series
    intervals: Dict[float, Tuple[pd.Series, pd.Series]]
    weights: pd.Series
    components: Dict[str, ModelForecast] = field(default_factory=dict)

    def to_frame(self) -> pd.DataFrame:
        """ensemble, median and lo_/hi_ columns indexed by date."""
        out = pd.DataFrame({'ensemble': self.mean, 'median': self.median})
        for level, (lo, hi) in self.intervals.items():
            out[f'lo_{level:g}'] = lo
            out[f'hi_{level:g}'] = hi
        return out


def ensemble_forecast(
    forecasts: Dict[str, ModelForecast],
    weights: Optional[pd.Series] = None,
    level: Union[float, List[float]] = (80, 95),
    combine: str = 'mean',
    clip_negative: bool = False,
) -> EnsembleForecast:
    """
    Build the ensemble point forecast and mixture intervals.

    Parameters
    ----------
    forecasts : dict
        {model: ModelForecast}, all on the same dates
    weights : pd.Series, optional
        Defaults to equal weights
    level : float or list of float, default=(80, 95)
    combine : {'mean', 'median'}, default='mean'
        Point combination; intervals always come from the weighted mixture
    clip_negative : bool, default=False
        Clip the point forecast and bounds at zero
    """
    if not forecasts:
        raise ValueError("Need at least one model forecast")
    if combine not in ('mean', 'median'):
        raise ValueError(f"combine must be 'mean' or 'median', got '{combine}'")
    if weights is None:
        weights = equal_weights(list(forecasts))

    levels = [level] if np.isscalar(level) else list(level)
    w = _aligned_weights(forecasts, weights)

    point = combine_means(forecasts, w) if combine == 'mean' else median_combine(forecasts)
    median = mixture_quantiles(forecasts, w, [0.5])[0.5].rename('median')
    intervals = {}
    for lv in levels:
        lo, hi = mixture_interval(forecasts, w, lv)
        # a skewed mixture can leave the point forecast outside its bounds
        intervals[lv] = (lo.clip(upper=point), hi.clip(lower=point))

    if clip_negative:
        point = point.clip(lower=0)
        median = median.clip(lower=0)
        intervals = {lv: (lo.clip(lower=0), hi.clip(lower=0)) for lv, (lo, hi) in intervals.items()}

    return EnsembleForecast(
        mean=point,
        median=median,
        intervals=intervals,
        weights=w.rename('weight'),
        components=dict(forecasts),
    )


__all__ = [
    'equal_weights',
    'lasso_weights',
    'combine_means',
    'median_combine',
    'mixture_quantiles',
    'mixture_interval',
    'EnsembleForecast',
    'ensemble_forecast',
]
