import logging

import numpy as np
import pandas as pd
import pytest

from pharma_forecast.models import (
    MODEL_REGISTRY,
    available_models,
    get_model,
    future_index,
    residual_sd,
    naive_forecast,
    seasonal_naive_forecast,
    mean_forecast,
    drift_forecast,
    arima_forecast,
    ets_forecast,
    fourier_forecast,
    forecast_series,
)


def _truth(t):
    return 100 + 0.8 * t + 15 * np.sin(2 * np.pi * t / 12)


class TestRegistry:
    def test_builtin_models_registered(self):
        assert {'naive', 'snaive', 'mean', 'drift', 'arima', 'ets', 'fourier'} <= set(available_models())

    def test_get_model_unknown(self):
        with pytest.raises(ValueError, match='Unknown model'):
            get_model('prophet')

    def test_future_index(self, seasonal_series):
        idx = future_index(seasonal_series, 3)
        assert list(idx) == list(pd.date_range('2023-01-01', periods=3, freq='MS'))

    def test_future_index_invalid_h(self, seasonal_series):
        with pytest.raises(ValueError):
            future_index(seasonal_series, 0)

    def test_residual_sd_ignores_nan(self):
        assert residual_sd([np.nan, 3.0, -3.0]) == pytest.approx(3.0)
        assert residual_sd([np.nan]) == 0.0


class TestBenchmarks:
    def test_naive(self, seasonal_series):
        fc = naive_forecast(seasonal_series, 4)

        assert (fc.mean == seasonal_series.iloc[-1]).all()
        assert fc.mean.index[0] == pd.Timestamp('2023-01-01')
        # sd grows with sqrt(h)
        assert fc.sd.iloc[3] == pytest.approx(2 * fc.sd.iloc[0])
        assert fc.status == 'ok'

    def test_snaive_repeats_last_season(self, seasonal_series):
        fc = seasonal_naive_forecast(seasonal_series, 14, season_length=12)

        np.testing.assert_allclose(fc.mean.to_numpy()[:12], seasonal_series.to_numpy()[-12:])
        assert fc.mean.iloc[12] == pytest.approx(seasonal_series.iloc[-12])
        assert fc.sd.iloc[12] == pytest.approx(np.sqrt(2) * fc.sd.iloc[0])

    def test_snaive_short_series_falls_back(self, seasonal_series):
        fc = seasonal_naive_forecast(seasonal_series.iloc[:6], 3, season_length=12)
        assert fc.model == 'snaive'
        assert fc.is_fallback
        assert (fc.mean == seasonal_series.iloc[5]).all()

    def test_mean(self):
        y = pd.Series([1.0, 2.0, 3.0, 6.0], index=pd.date_range('2021-01-01', periods=4, freq='MS'))
        fc = mean_forecast(y, 2)
        assert (fc.mean == 3.0).all()
        assert fc.sd.iloc[0] == pytest.approx(y.std() * np.sqrt(1.25))

    def test_drift(self):
        y = pd.Series([10.0, 12.0, 14.0, 16.0], index=pd.date_range('2021-01-01', periods=4, freq='MS'))
        fc = drift_forecast(y, 3)
        np.testing.assert_allclose(fc.mean.to_numpy(), [18.0, 20.0, 22.0])
        # a perfect line has no residual spread
        assert (fc.sd == 0).all()

    def test_quantiles_and_interval(self, seasonal_series):
        fc = naive_forecast(seasonal_series, 3)
        q = fc.quantiles([0.1, 0.5, 0.9])
        lo, hi = fc.interval(80)

        np.testing.assert_allclose(q[0.5].to_numpy(), fc.mean.to_numpy())
        np.testing.assert_allclose(q[0.1].to_numpy(), lo.to_numpy())
        np.testing.assert_allclose(q[0.9].to_numpy(), hi.to_numpy())

    def test_clip(self):
        y = pd.Series([5.0, 3.0, 1.0], index=pd.date_range('2021-01-01', periods=3, freq='MS'))
        fc = drift_forecast(y, 3).clip()
        assert (fc.mean >= 0).all()
        assert fc.mean.iloc[-1] == 0.0


class TestStatisticalModels:
    @pytest.mark.parametrize('forecaster', [arima_forecast, ets_forecast, fourier_forecast])
    def test_tracks_seasonal_pattern(self, forecaster, seasonal_series):
        """Every statistical model beats 10% error on a clean seasonal series."""
        fc = forecaster(seasonal_series, 6, season_length=12)
        truth = _truth(np.arange(48, 54))

        assert len(fc.mean) == 6
        assert fc.mean.index[0] == pd.Timestamp('2023-01-01')
        assert np.all(fc.sd.to_numpy() > 0)
        assert np.mean(np.abs(fc.mean.to_numpy() - truth) / truth) < 0.10

    def test_fourier_close_to_truth(self, seasonal_series):
        fc = fourier_forecast(seasonal_series, 12, season_length=12, fourier_order=2)
        np.testing.assert_allclose(fc.mean.to_numpy(), _truth(np.arange(48, 60)), atol=4.0)
        assert fc.fitted is not None and len(fc.fitted) == 48

    def test_fourier_too_short(self, seasonal_series):
        with pytest.raises(ValueError):
            fourier_forecast(seasonal_series.iloc[:6], 3, season_length=12, fourier_order=2)

    def test_fourier_needs_season(self, seasonal_series):
        with pytest.raises(ValueError):
            fourier_forecast(seasonal_series, 3, season_length=1)

    def test_ets_without_full_seasons(self, seasonal_series):
        """Fewer than two seasons: only non-seasonal forms are tried."""
        fc = ets_forecast(seasonal_series.iloc[:18], 3, season_length=12)
        assert len(fc.mean) == 3
        assert np.all(np.isfinite(fc.mean.to_numpy()))


class TestForecastSeries:
    def test_returns_each_model(self, seasonal_series):
        out = forecast_series(seasonal_series, 3, ['naive', 'mean', 'fourier'])
        assert list(out) == ['naive', 'mean', 'fourier']
        assert all(fc.status == 'ok' for fc in out.values())

    def test_statistical_models_fit_without_fallback(self, seasonal_series):
        """ETS and ARIMA produce their own forecasts, not the naive stand-in."""
        out = forecast_series(seasonal_series, 12, ['ets', 'arima'])

        assert out['ets'].status == 'ok'
        assert out['arima'].status == 'ok'
        assert not np.allclose(out['ets'].mean.to_numpy(), seasonal_series.iloc[-1])

    def test_unknown_model(self, seasonal_series):
        with pytest.raises(ValueError, match='prophet'):
            forecast_series(seasonal_series, 3, ['naive', 'prophet'])

    def test_invalid_horizon(self, seasonal_series):
        with pytest.raises(ValueError):
            forecast_series(seasonal_series, 0, ['naive'])

    def test_empty_series(self):
        y = pd.Series([np.nan, np.nan], index=pd.date_range('2021-01-01', periods=2, freq='MS'))
        with pytest.raises(ValueError, match='empty'):
            forecast_series(y, 3, ['naive'])

    def test_short_series_uses_naive(self):
        """Below min_obs every model slot holds the naive forecast."""
        y = pd.Series([4.0, 6.0], index=pd.date_range('2021-01-01', periods=2, freq='MS'))
        out = forecast_series(y, 2, ['arima', 'ets'])

        for name, fc in out.items():
            assert fc.model == name
            assert fc.is_fallback
            assert (fc.mean == 6.0).all()

    def test_failure_falls_back_and_logs(self, seasonal_series, monkeypatch, caplog):
        def broken(y, h, season_length=12, **kwargs):
            raise RuntimeError('did not converge')

        monkeypatch.setitem(MODEL_REGISTRY, 'broken', broken)
        with caplog.at_level(logging.WARNING, logger='pharma_forecast.models'):
            out = forecast_series(seasonal_series, 2, ['broken'])

        assert out['broken'].status == 'fallback: did not converge'
        assert (out['broken'].mean == seasonal_series.iloc[-1]).all()
        assert 'broken failed' in caplog.text

    def test_clip_negative(self):
        y = pd.Series([30.0, 20.0, 10.0, 5.0], index=pd.date_range('2021-01-01', periods=4, freq='MS'))
        out = forecast_series(y, 6, ['drift'], clip_negative=True)
        assert (out['drift'].mean >= 0).all()
