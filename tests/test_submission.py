import numpy as np
import pandas as pd
import pytest

from pharma_forecast.submission import (
    submission_columns,
    build_submission,
    validate_submission,
    write_submission,
)

HORIZON = 3


@pytest.fixture
def forecasts():
    """forecast_panel()-shaped table for three brands over three months."""
    ds = pd.date_range('2024-01-01', periods=HORIZON, freq='MS')
    rows = []
    for cluster, country, brand, level in [
        ('EUROPE', 'Germany', 'B01', 100.0),
        ('EUROPE', 'Germany', 'B02', 50.0),
        ('ASIA', 'Japan', 'B03', 10.0),
    ]:
        for i, d in enumerate(ds):
            point = level + i + 0.123
            rows.append({
                'unique_id': f'{cluster}|{country}|{brand}',
                'cluster': cluster, 'country': country, 'brand': brand, 'ds': d,
                'naive': level,
                'ensemble': point,
                'lo_80': point - 5, 'hi_80': point + 5,
                'lo_95': point - 8, 'hi_95': point + 8,
                'fit_status': 'ok',
            })
    return pd.DataFrame(rows)


class TestBuildSubmission:
    def test_brand_level(self, forecasts):
        sub = build_submission(forecasts)

        assert list(sub.columns) == submission_columns('brand', ['80', '95'])
        assert list(sub.columns[:5]) == ['cluster', 'country', 'brand', 'month', 'forecast']
        assert len(sub) == 9
        assert sub['month'].iloc[0] == '2024-01'
        assert sub['cluster'].iloc[0] == 'ASIA'
        assert sub['forecast'].iloc[0] == 10.12

    def test_country_level_sums(self, forecasts):
        sub = build_submission(forecasts, level='country')
        germany = sub[sub['country'] == 'Germany']

        assert list(sub.columns[:2]) == ['cluster', 'country']
        assert len(germany) == 3
        assert germany['forecast'].iloc[0] == pytest.approx(150.25)
        assert germany['lower_80'].iloc[0] == pytest.approx(140.25)

    def test_total_level(self, forecasts):
        sub = build_submission(forecasts, level='total')
        assert list(sub.columns) == ['month', 'forecast', 'lower_80', 'upper_80', 'lower_95', 'upper_95']
        assert len(sub) == HORIZON

    def test_other_value_column(self, forecasts):
        sub = build_submission(forecasts.drop(columns=['lo_80', 'hi_80', 'lo_95', 'hi_95']), value_col='naive')
        assert list(sub.columns) == ['cluster', 'country', 'brand', 'month', 'forecast']
        assert (sub.loc[sub['brand'] == 'B01', 'forecast'] == 100.0).all()

    def test_missing_value_column(self, forecasts):
        with pytest.raises(ValueError, match='median'):
            build_submission(forecasts, value_col='median')

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            submission_columns('region', [])


class TestValidateSubmission:
    def test_valid(self, forecasts):
        validate_submission(build_submission(forecasts), horizon=HORIZON)

    def test_missing_columns(self, forecasts):
        sub = build_submission(forecasts).drop(columns=['forecast'])
        with pytest.raises(ValueError, match='missing columns'):
            validate_submission(sub, horizon=HORIZON)

    def test_collects_every_problem(self, forecasts):
        sub = build_submission(forecasts)
        sub.loc[0, 'forecast'] = np.nan
        sub.loc[1, 'lower_80'] = -1.0
        sub.loc[2, 'forecast'] = 1e6

        with pytest.raises(ValueError) as err:
            validate_submission(sub, horizon=HORIZON)

        message = str(err.value)
        assert 'missing values' in message
        assert 'negative values' in message
        assert 'outside [lower_80, upper_80]' in message

    def test_wrong_horizon_and_duplicates(self, forecasts):
        sub = build_submission(forecasts)
        sub = pd.concat([sub, sub.head(1)], ignore_index=True)

        with pytest.raises(ValueError) as err:
            validate_submission(sub, horizon=12)

        message = str(err.value)
        assert '1 duplicate rows' in message
        assert 'without exactly 12 months' in message

    def test_unpaired_interval(self, forecasts):
        sub = build_submission(forecasts).drop(columns=['upper_95'])
        with pytest.raises(ValueError, match='unpaired'):
            validate_submission(sub, horizon=HORIZON)


class TestWriteSubmission:
    def test_csv(self, forecasts, tmp_path, capsys):
        sub = build_submission(forecasts)
        path = write_submission(sub, tmp_path / 'out' / 'submission.csv')

        assert path.exists()
        assert '✓ Wrote submission' in capsys.readouterr().out
        back = pd.read_csv(path, dtype={'month': str})
        assert list(back.columns) == list(sub.columns)
        assert back['month'].iloc[0] == '2024-01'

    def test_xlsx(self, forecasts, tmp_path):
        sub = build_submission(forecasts)
        path = write_submission(sub, tmp_path / 'submission.xlsx', verbose=False)
        back = pd.read_excel(path)
        assert len(back) == len(sub)

    def test_unsupported_suffix(self, forecasts, tmp_path):
        with pytest.raises(ValueError, match='Unsupported'):
            write_submission(build_submission(forecasts), tmp_path / 'sub.json')
