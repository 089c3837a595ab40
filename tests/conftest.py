"""Shared synthetic data for the test suite."""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

from pharma_forecast.cache.cache import CacheManager

MONTHS = pd.date_range('2021-01-01', periods=24, freq='MS')
MONTH_HEADERS = list(MONTHS.strftime('%b-%Y'))


def _row(cluster, country, brand, function, values):
    row = {'Cluster': cluster, 'Country': country, 'Brand': brand, 'Function': function}
    row.update(dict(zip(MONTH_HEADERS, values)))
    return row


@pytest.fixture
def wide_raw():
    """
    Spreadsheet-shaped frame: one row per cluster/country/brand/function.

    - Germany B01 sales use thousands separators and have one '-' gap (month 10)
    - France B02 investment is entirely empty
    - Japan B03 sales start in month 7 and contain one negative correction
    """
    t = np.arange(24)
    germany = [f"{1000 + 20 * i:,}" for i in t]
    germany[9] = '-'
    germany_inv = [str(50 + i) for i in t]
    france = [str(300 + 5 * i) for i in t]
    france_inv = ['-'] * 24
    japan = ['-'] * 6 + [str(200 + i) for i in range(18)]
    japan[12] = '-15'

    return pd.DataFrame([
        _row('EUROPE', 'Germany', 'B01', 'Sales', germany),
        _row('EUROPE', 'Germany', 'B01', 'Investment', germany_inv),
        _row('EUROPE', 'France', 'B02', 'Sales', france),
        _row('EUROPE', 'France', 'B02', 'Investment', france_inv),
        _row('ASIA', 'Japan', 'B03', 'Sales', japan),
    ])


@pytest.fixture
def raw_csv(wide_raw, tmp_path):
    path = tmp_path / 'datathon.csv'
    wide_raw.to_csv(path, index=False)
    return path


def make_panel(n_months=36, start='2020-01-01', seed=0):
    """Four trending, seasonal, strictly positive monthly series."""
    rng = np.random.default_rng(seed)
    ds = pd.date_range(start, periods=n_months, freq='MS')
    t = np.arange(n_months)
    specs = [
        ('EUROPE', 'Germany', 'B01', 100.0),
        ('EUROPE', 'Germany', 'B02', 40.0),
        ('EUROPE', 'France', 'B01', 60.0),
        ('ASIA', 'Japan', 'B03', 80.0),
    ]
    frames = []
    for cluster, country, brand, level in specs:
        y = level + 0.5 * t + 0.1 * level * np.sin(2 * np.pi * t / 12) + rng.normal(0, 1, n_months)
        frames.append(pd.DataFrame({
            'unique_id': f'{cluster}|{country}|{brand}',
            'cluster': cluster,
            'country': country,
            'brand': brand,
            'ds': ds,
            'y': y,
            'investment': level / 10 + rng.normal(0, 1, n_months),
        }))
    return pd.concat(frames, ignore_index=True)


@pytest.fixture
def panel():
    return make_panel()


@pytest.fixture
def seasonal_series():
    """48 months of trend + yearly cycle + small noise."""
    rng = np.random.default_rng(1)
    t = np.arange(48)
    values = 100 + 0.8 * t + 15 * np.sin(2 * np.pi * t / 12) + rng.normal(0, 1, 48)
    return pd.Series(values, index=pd.date_range('2019-01-01', periods=48, freq='MS'), name='s1')


@pytest.fixture
def intermittent_series():
    values = [0, 0, 5, 0, 0, 0, 7, 0, 3, 0, 0, 0, 9, 0, 0, 4, 0, 0, 0, 6, 0, 0, 0, 2]
    return pd.Series(values, index=pd.date_range('2021-01-01', periods=24, freq='MS'), dtype=float)


@pytest.fixture(autouse=True)
def reset_cache_history():
    CacheManager.clear_history()
    yield
    CacheManager.clear_history()
