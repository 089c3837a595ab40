"""
Features Module
===============

Feature engineering utilities for monthly brand forecasting.
"""

from .lags import add_lags
from .splits import time_split, holdout_cutoff
from .fourier import fourier_terms, future_fourier_terms

__all__ = [
    "add_lags",
    "time_split",
    "holdout_cutoff",
    "fourier_terms",
    "future_fourier_terms",
]
