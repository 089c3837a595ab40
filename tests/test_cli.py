import pandas as pd
import pytest

from pharma_forecast.scripts.make_submission import build_parser, main


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep config discovery away from the repository's config/."""
    monkeypatch.chdir(tmp_path)


class TestParser:
    def test_model_list(self):
        args = build_parser().parse_args(['in.xlsx', 'out.csv', '--models', 'naive, ets,'])
        assert args.models == ['naive', 'ets']

    def test_invalid_level(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['in.xlsx', 'out.csv', '--level', 'region'])


class TestMain:
    def test_writes_submission(self, raw_csv, tmp_path):
        out = tmp_path / 'submissions' / 'forecast.csv'
        code = main([str(raw_csv), str(out), '--models', 'naive,mean', '--horizon', '3', '--quiet'])

        assert code == 0
        sub = pd.read_csv(out, dtype={'month': str})
        assert list(sub.columns) == [
            'cluster', 'country', 'brand', 'month', 'forecast',
            'lower_80', 'upper_80', 'lower_95', 'upper_95',
        ]
        assert len(sub) == 3 * 3
        assert sub['month'].min() == '2023-01'
        assert (sub['forecast'] >= 0).all()

    def test_country_level(self, raw_csv, tmp_path, capsys):
        out = tmp_path / 'country.csv'
        code = main([str(raw_csv), str(out), '--models', 'naive', '--horizon', '2',
                     '--level', 'country', '--ensemble', 'mean'])

        assert code == 0
        assert 'Validation accuracy' in capsys.readouterr().out
        assert list(pd.read_csv(out).columns[:3]) == ['cluster', 'country', 'month']

    def test_missing_input(self, tmp_path, capsys):
        code = main([str(tmp_path / 'missing.xlsx'), str(tmp_path / 'out.csv'), '--quiet'])
        assert code == 2
        assert 'not found' in capsys.readouterr().err

    def test_missing_config(self, raw_csv, tmp_path):
        code = main([str(raw_csv), str(tmp_path / 'out.csv'), '--config', str(tmp_path / 'nope.yaml'), '--quiet'])
        assert code == 2

    def test_unknown_model(self, raw_csv, tmp_path, capsys):
        code = main([str(raw_csv), str(tmp_path / 'out.csv'), '--models', 'prophet', '--quiet'])
        assert code == 1
        assert 'prophet' in capsys.readouterr().err
