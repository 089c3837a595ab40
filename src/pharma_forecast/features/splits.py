"""
Train / Test Splits
===================

Date-based holdout splits for the monthly panel.
"""

import pandas as pd
from typing import Dict, Union


def time_split(
    df: pd.DataFrame,
    last_train: Union[str, pd.Timestamp],
    h: int = 12,
    date_col: str = 'ds'
) -> Dict[str, pd.DataFrame]:
    """
    Split at ``last_train``.

    Parameters
    ----------
    df : pd.DataFrame
        Panel or single series with a date column
    last_train : str or Timestamp
        Last date (inclusive) of the training window
    h : int, default=12
        Months in the testing window
    date_col : str, default='ds'

    Returns
    -------
    dict
        {'training': rows with date <= last_train,
         'testing': rows with last_train < date <= last_train + h months}

    Examples
    --------
    >>> parts = time_split(df, '2017-12-01', h=12)
    >>> parts['testing']['ds'].min()
    Timestamp('2018-01-01 00:00:00')
    """
    if h < 1:
        raise ValueError(f"h must be >= 1, got {h}")

    last_train = pd.Timestamp(last_train)
    test_end = last_train + pd.DateOffset(months=h)
    dates = df[date_col]

    return {
        'training': df[dates <= last_train],
        'testing': df[(dates > last_train) & (dates <= test_end)],
    }


def holdout_cutoff(df: pd.DataFrame, h: int, date_col: str = 'ds') -> pd.Timestamp:
    """Last training date when the final ``h`` months are held out."""
    return df[date_col].max() - pd.DateOffset(months=h)


__all__ = ['time_split', 'holdout_cutoff']
