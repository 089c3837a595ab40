import numpy as np
import pandas as pd
import pytest
from scipy import stats

from pharma_forecast.ensemble import (
    equal_weights,
    lasso_weights,
    combine_means,
    median_combine,
    mixture_quantiles,
    mixture_interval,
    ensemble_forecast,
)
from pharma_forecast.models import ModelForecast

DATES = pd.date_range('2023-01-01', periods=3, freq='MS')


def _fc(name, mean, sd):
    return ModelForecast(
        model=name,
        mean=pd.Series(np.broadcast_to(np.asarray(mean, dtype=float), (3,)).copy(), index=DATES, name=name),
        sd=pd.Series(np.broadcast_to(np.asarray(sd, dtype=float), (3,)).copy(), index=DATES, name=name),
    )


@pytest.fixture
def two_models():
    return {'a': _fc('a', 100.0, 10.0), 'b': _fc('b', 120.0, 5.0)}


class TestWeights:
    def test_equal_weights(self):
        w = equal_weights(['a', 'b', 'c', 'd'])
        assert (w == 0.25).all()
        with pytest.raises(ValueError):
            equal_weights([])

    def test_lasso_recovers_mix(self):
        """Actuals built as 0.7·a + 0.3·b give roughly those weights."""
        rng = np.random.default_rng(0)
        a = rng.normal(100, 20, 80)
        b = rng.normal(100, 20, 80)
        c = rng.normal(100, 20, 80)
        forecasts = pd.DataFrame({'a': a, 'b': b, 'c': c})

        w = lasso_weights(0.7 * a + 0.3 * b, forecasts)

        assert w.sum() == pytest.approx(1.0)
        assert (w >= 0).all()
        assert w['a'] == pytest.approx(0.7, abs=0.1)
        assert w['b'] == pytest.approx(0.3, abs=0.1)
        assert w['c'] < 0.1

    def test_lasso_too_few_rows(self):
        forecasts = pd.DataFrame({'a': [1.0, 2.0, 3.0], 'b': [2.0, 3.0, 4.0]})
        w = lasso_weights([1.0, 2.0, 3.0], forecasts)
        assert list(w) == [0.5, 0.5]

    def test_lasso_single_model(self):
        w = lasso_weights(np.arange(10.0), pd.DataFrame({'a': np.arange(10.0)}))
        assert w['a'] == 1.0

    def test_lasso_drops_nan_rows(self):
        rng = np.random.default_rng(1)
        a = rng.normal(50, 10, 40)
        forecasts = pd.DataFrame({'a': a, 'b': rng.normal(50, 10, 40)})
        actuals = a.copy()
        actuals[:5] = np.nan

        w = lasso_weights(actuals, forecasts)
        assert w['a'] > 0.9

    def test_lasso_length_mismatch(self):
        with pytest.raises(ValueError):
            lasso_weights([1.0, 2.0], pd.DataFrame({'a': [1.0, 2.0, 3.0]}))


class TestCombine:
    def test_combine_means(self, two_models):
        point = combine_means(two_models, pd.Series({'a': 3.0, 'b': 1.0}))
        assert point.name == 'ensemble'
        np.testing.assert_allclose(point.to_numpy(), 105.0)

    def test_missing_model_weight(self, two_models):
        with pytest.raises(ValueError, match='without forecasts'):
            combine_means(two_models, pd.Series({'a': 0.5, 'c': 0.5}))

    def test_zero_weights(self, two_models):
        with pytest.raises(ValueError):
            combine_means(two_models, pd.Series({'a': 0.0, 'b': 0.0}))

    def test_median_combine(self, two_models):
        models = dict(two_models, c=_fc('c', 90.0, 1.0))
        np.testing.assert_allclose(median_combine(models).to_numpy(), 100.0)


class TestMixture:
    def test_single_component_is_normal(self):
        forecasts = {'a': _fc('a', 100.0, 10.0)}
        q = mixture_quantiles(forecasts, pd.Series({'a': 1.0}), [0.1, 0.5, 0.975])

        assert list(q.columns) == [0.1, 0.5, 0.975]
        np.testing.assert_allclose(q[0.5].to_numpy(), 100.0, atol=1e-6)
        np.testing.assert_allclose(q[0.975].to_numpy(), 100 + 10 * stats.norm.ppf(0.975), atol=1e-6)

    def test_zero_sd_component(self):
        """A point-mass component does not break the root finder."""
        forecasts = {'a': _fc('a', 50.0, 0.0)}
        q = mixture_quantiles(forecasts, pd.Series({'a': 1.0}), [0.05, 0.95])
        np.testing.assert_allclose(q.to_numpy(), 50.0, atol=1e-3)

    def test_point_mass_at_large_scale(self):
        """Near-zero sds at a large mean still give a usable bracket."""
        forecasts = {'a': _fc('a', 1e12, 0.0), 'b': _fc('b', 1e12, 1e-7)}
        q = mixture_quantiles(forecasts, equal_weights(['a', 'b']), [0.025, 0.5, 0.975])

        assert np.isfinite(q.to_numpy()).all()
        np.testing.assert_allclose(q.to_numpy(), 1e12, rtol=1e-9)

    def test_mixture_cdf_at_quantile(self, two_models):
        weights = pd.Series({'a': 0.25, 'b': 0.75})
        q = mixture_quantiles(two_models, weights, [0.9]).iloc[0, 0]
        cdf = 0.25 * stats.norm.cdf(q, 100, 10) + 0.75 * stats.norm.cdf(q, 120, 5)
        assert cdf == pytest.approx(0.9, abs=1e-8)

    def test_invalid_probability(self, two_models):
        with pytest.raises(ValueError):
            mixture_quantiles(two_models, equal_weights(['a', 'b']), [0.5, 1.0])

    def test_mixture_interval_names(self, two_models):
        lo, hi = mixture_interval(two_models, equal_weights(['a', 'b']), 80)
        assert lo.name == 'lo_80' and hi.name == 'hi_80'
        assert (lo < hi).all()


class TestEnsembleForecast:
    def test_default_equal_weights(self, two_models):
        ens = ensemble_forecast(two_models)

        np.testing.assert_allclose(ens.mean.to_numpy(), 110.0)
        assert list(ens.intervals) == [80, 95]
        lo80, hi80 = ens.intervals[80]
        lo95, hi95 = ens.intervals[95]
        assert (lo95 <= lo80).all() and (hi80 <= hi95).all()
        assert (lo80 <= ens.mean).all() and (ens.mean <= hi80).all()

    def test_to_frame(self, two_models):
        frame = ensemble_forecast(two_models, level=[90]).to_frame()
        assert list(frame.columns) == ['ensemble', 'median', 'lo_90', 'hi_90']
        assert list(frame.index) == list(DATES)

    def test_median_combine_point(self, two_models):
        models = dict(two_models, c=_fc('c', 90.0, 1.0))
        ens = ensemble_forecast(models, combine='median')
        np.testing.assert_allclose(ens.mean.to_numpy(), 100.0)

    def test_point_inside_bounds_for_skewed_mixture(self):
        """A wide outlier component cannot push the point outside its interval."""
        models = {'tight': _fc('tight', 100.0, 0.1), 'wide': _fc('wide', 400.0, 1.0)}
        ens = ensemble_forecast(models, weights=pd.Series({'tight': 0.95, 'wide': 0.05}), level=50)
        lo, hi = ens.intervals[50]
        assert (lo <= ens.mean).all() and (ens.mean <= hi).all()

    def test_clip_negative(self):
        models = {'a': _fc('a', 1.0, 10.0)}
        ens = ensemble_forecast(models, level=95, clip_negative=True)
        lo, _ = ens.intervals[95]
        assert (lo >= 0).all()

    def test_weights_normalised(self, two_models):
        ens = ensemble_forecast(two_models, weights=pd.Series({'a': 2.0, 'b': 2.0}))
        assert ens.weights.sum() == pytest.approx(1.0)
        assert ens.weights.name == 'weight'

    def test_invalid_combine(self, two_models):
        with pytest.raises(ValueError):
            ensemble_forecast(two_models, combine='trimmed')

    def test_empty(self):
        with pytest.raises(ValueError):
            ensemble_forecast({})
