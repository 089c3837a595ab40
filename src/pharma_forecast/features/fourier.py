"""
Fourier Terms
=============

Sine/cosine seasonal regressors for harmonic regression. Terms are
indexed by integer position t (0 for the first observation), so future
terms simply continue the count.
"""

import numpy as np
import pandas as pd
from typing import Optional


def _fourier_matrix(t: np.ndarray, period: int, order: int) -> dict:
    if order < 1:
        raise ValueError(f"order must be >= 1, got {order}")
    if 2 * order > period:
        raise ValueError(f"order must satisfy 2 * order <= period ({period}), got {order}")

    columns = {}
    for k in range(1, order + 1):
        angle = 2 * np.pi * k * t / period
        # sin(pi * t) is identically zero at the Nyquist harmonic
        if 2 * k < period:
            columns[f'sin{k}_{period}'] = np.sin(angle)
        columns[f'cos{k}_{period}'] = np.cos(angle)
    return columns


def fourier_terms(
    index,
    period: int = 12,
    order: int = 2,
) -> pd.DataFrame:
    """
    In-sample Fourier terms.

    Parameters
    ----------
    index : pd.Index or sequence
        Dates (or any labels) of the training observations
    period : int, default=12
        Seasonal period in observations
    order : int, default=2
        Number of harmonics K; 2K <= period

    Returns
    -------
    pd.DataFrame
        Columns sin1_12, cos1_12, ..., indexed like ``index``. When 2K equals
        the period the last harmonic has only its cos column, because its
        sine is zero at every integer t.
    """
    index = pd.Index(index)
    t = np.arange(len(index), dtype=float)
    return pd.DataFrame(_fourier_matrix(t, period, order), index=index)


def future_fourier_terms(
    n_obs: int,
    h: int,
    period: int = 12,
    order: int = 2,
    index: Optional[pd.Index] = None,
) -> pd.DataFrame:
    """Fourier terms for the ``h`` steps following ``n_obs`` observations."""
    t = np.arange(n_obs, n_obs + h, dtype=float)
    return pd.DataFrame(_fourier_matrix(t, period, order), index=index)


__all__ = ['fourier_terms', 'future_fourier_terms']
