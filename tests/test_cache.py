import json
from types import SimpleNamespace

import pandas as pd
import pytest

from pharma_forecast.analysis import data_quality_check
from pharma_forecast.cache import (
    CacheManager,
    ArtifactManager,
    NullCacheManager,
    config_hash,
    panel_fingerprint,
)
from pharma_forecast.config import ForecastConfig
from pharma_forecast.utils import (
    find_project_root,
    get_notebook_name,
    get_module_from_notebook,
    get_artifact_subfolder,
    setup_notebook,
)


@pytest.fixture
def small_df():
    return pd.DataFrame({
        'unique_id': ['A|B|C'] * 3,
        'ds': pd.date_range('2021-01-01', periods=3, freq='MS'),
        'y': [1.0, 2.0, 3.0],
    })


class TestCacheManager:
    def test_save_and_load(self, tmp_path, small_df, capsys):
        cache = CacheManager(tmp_path)
        path = cache.save(small_df, key='panel', config={'horizon': 12}, module='01')

        assert path.exists()
        assert path.name.startswith('panel_') and path.suffix == '.parquet'
        assert "✓ Saved 'panel'" in capsys.readouterr().out

        loaded = cache.load('panel', config={'horizon': 12}, verbose=False)
        pd.testing.assert_frame_equal(loaded, small_df, check_dtype=False)
        assert CacheManager.last_loaded() == 'panel'

    def test_config_mismatch_misses(self, tmp_path, small_df):
        cache = CacheManager(tmp_path)
        cache.save(small_df, key='panel', config={'horizon': 12}, verbose=False)

        assert cache.load('panel', config={'horizon': 6}, verbose=False) is None
        assert cache.exists('panel', config={'horizon': 12})
        assert not cache.exists('panel', config={'horizon': 6})

    def test_unknown_key(self, tmp_path):
        cache = CacheManager(tmp_path)
        assert cache.load('nope', verbose=False) is None
        assert cache.load('nope', with_report=True, verbose=False) == (None, None)

    def test_manifest_persists(self, tmp_path, small_df):
        CacheManager(tmp_path).save(small_df, key='panel', config={'a': 1}, verbose=False)

        reopened = CacheManager(tmp_path)
        assert reopened.get_config('panel') == {'a': 1}
        manifest = json.loads((tmp_path / 'cache_manifest.json').read_text())
        assert manifest['panel']['rows'] == 3

    def test_new_config_replaces_file(self, tmp_path, small_df):
        cache = CacheManager(tmp_path)
        first = cache.save(small_df, key='panel', config={'v': 1}, verbose=False)
        second = cache.save(small_df, key='panel', config={'v': 2}, verbose=False)

        assert not first.exists()
        assert second.exists()

    def test_no_overwrite(self, tmp_path, small_df, capsys):
        cache = CacheManager(tmp_path, overwrite_existing=False)
        first = cache.save(small_df, key='panel', config={'v': 1}, verbose=False)
        second = cache.save(small_df, key='panel', config={'v': 2})

        assert first == second
        assert 'exists' in capsys.readouterr().out
        assert cache.get_config('panel') == {'v': 1}

    def test_reopening_a_directory_replaces_the_old_handle(self, tmp_path, small_df):
        """Repeated managers on one directory do not pile up in the session."""
        from pharma_forecast.cache import cache as cache_module

        first = CacheManager(tmp_path)
        first.save(small_df, key='panel', verbose=False)
        second = CacheManager(tmp_path)

        same_dir = [m for m in cache_module._all_managers if m.cache_dir.resolve() == tmp_path.resolve()]
        assert same_dir == [second]
        assert CacheManager.get_source_config('panel') == {}

    def test_lineage_and_inherited_config(self, tmp_path, small_df):
        """A save after a load records the loaded key as its source."""
        raw_cache = CacheManager(tmp_path / 'raw')
        model_cache = CacheManager(tmp_path / 'model')

        raw_cache.save(small_df, key='panel', config={'target': 'sales'}, verbose=False)
        raw_cache.load('panel', verbose=False)
        model_cache.save(small_df, key='validation', config={'horizon': 6}, inherit_config=True, verbose=False)
        model_cache.load('validation', verbose=False)
        model_cache.save(small_df, key='forecasts', verbose=False)

        assert model_cache.lineage('forecasts') == ['panel', 'validation', 'forecasts']
        assert model_cache.get_config('validation') == {'target': 'sales', 'horizon': 6}
        assert CacheManager.load_history() == ['panel', 'validation']

    def test_report_round_trip(self, tmp_path, small_df):
        cache = CacheManager(tmp_path)
        report = data_quality_check(small_df, dataset_name='small', min_months=3)
        cache.save(small_df, key='panel', report=report, verbose=False)

        df, loaded = cache.load('panel', with_report=True, verbose=False)
        assert len(df) == 3
        assert loaded.dataset_name == 'small'
        assert cache.list()['Report'].iloc[0] == '✓'

    def test_delete_and_clear(self, tmp_path, small_df):
        cache = CacheManager(tmp_path)
        path = cache.save(small_df, key='a', verbose=False)
        cache.save(small_df, key='b', verbose=False)

        cache.delete('a')
        assert not path.exists()
        assert not cache.exists('a')

        cache.clear()
        assert cache.exists('b')
        cache.clear(confirm=True)
        assert cache.list().empty

    def test_save_without_key_outside_notebook(self, tmp_path, small_df):
        with pytest.raises(ValueError, match='auto-detect'):
            CacheManager(tmp_path).save(small_df)

    def test_get_or_build(self, tmp_path, small_df):
        """build() runs on a miss or a changed config only."""
        cache = CacheManager(tmp_path)
        calls = []

        def build():
            calls.append(1)
            return small_df

        cache.get_or_build('panel', build, config={'v': 1}, verbose=False)
        cache.get_or_build('panel', build, config={'v': 1}, verbose=False)
        assert len(calls) == 1
        cache.get_or_build('panel', build, config={'v': 2}, verbose=False)
        cache.get_or_build('panel', build, config={'v': 2}, force_refresh=True, verbose=False)
        assert len(calls) == 3

    def test_prune(self, tmp_path, small_df):
        cache = CacheManager(tmp_path)
        path = cache.save(small_df, key='a', verbose=False)
        cache.save(small_df, key='b', verbose=False)
        path.unlink()
        orphan = tmp_path / 'leftover_abc.parquet'
        small_df.to_parquet(orphan)

        assert cache.prune(verbose=False) == ['a']
        assert not orphan.exists()
        assert cache.exists('b')
        assert cache.size_mb() >= 0


class TestPanelFingerprint:
    def test_changes_with_sales(self, small_df):
        before = panel_fingerprint(small_df)
        assert before['series'] == 1
        assert before['last_month'] == '2021-03-01'

        changed = small_df.assign(y=small_df['y'] * 2)
        assert config_hash(panel_fingerprint(changed)) != config_hash(before)
        assert config_hash({'a': 1, 'b': 2}) == config_hash({'b': 2, 'a': 1})


class TestArtifactManager:
    def test_save_and_load(self, tmp_path, small_df):
        artifacts = ArtifactManager(tmp_path / 'output')
        report = data_quality_check(small_df, dataset_name='forecasts', min_months=3)
        path = artifacts.save(small_df, key='04_submission', config={'level': 'brand'}, report=report)

        assert path == tmp_path / 'output' / 'data' / '04_submission_output.parquet'
        df, loaded = artifacts.load('04_submission', with_report=True)
        assert len(df) == 3
        assert loaded.dataset_name == 'forecasts'
        assert list(artifacts.list()['Key']) == ['04_submission']

    def test_missing(self, tmp_path):
        assert ArtifactManager(tmp_path).load('nope') is None


class TestNullCacheManager:
    def test_always_misses(self, tmp_path, small_df):
        cache = NullCacheManager(tmp_path)
        assert cache.save(small_df, key='x') is None
        assert cache.load('x') is None
        assert cache.load('x', with_report=True) == (None, None)
        assert not cache.exists('x')
        assert cache.lineage('x') == []
        assert cache.get_or_build('x', lambda: small_df) is small_df


class TestHelpers:
    def test_find_project_root(self, tmp_path):
        (tmp_path / 'pyproject.toml').write_text('')
        nested = tmp_path / 'notebooks' / 'eda'
        nested.mkdir(parents=True)
        assert find_project_root(start=nested) == tmp_path.resolve()

    def test_notebook_detection_outside_notebook(self):
        assert get_notebook_name() is None
        assert get_module_from_notebook() is None

    def test_notebook_detection_in_vscode(self, monkeypatch):
        """The kernel namespace names the notebook file."""
        IPython = pytest.importorskip('IPython')
        shell = SimpleNamespace(user_ns={'__vsc_ipynb_file__': '/proj/notebooks_eda/03_levels.ipynb'})
        monkeypatch.setattr(IPython, 'get_ipython', lambda: shell)

        assert get_notebook_name() == '03_levels'
        assert get_module_from_notebook() == '03'
        assert get_artifact_subfolder() == 'eda'


class TestSetupNotebook:
    def test_defaults_under_project(self, tmp_path, capsys):
        env = setup_notebook(project_dir=tmp_path)

        assert env.DATA_DIR == tmp_path.resolve() / 'data'
        assert env.CACHE_DIR.exists() and env.OUTPUT_DIR.exists()
        assert isinstance(env.cache, CacheManager)
        assert env.config == ForecastConfig()
        assert '✓ Setup complete' in capsys.readouterr().out

    def test_reads_project_config(self, tmp_path):
        (tmp_path / 'config').mkdir()
        (tmp_path / 'config' / 'forecast.yaml').write_text('horizon: 6\n')

        env = setup_notebook(project_dir=tmp_path, quiet=True)
        assert env.config.horizon == 6

    def test_without_cache(self, tmp_path):
        env = setup_notebook(project_dir=tmp_path, use_cache=False, quiet=True)
        assert isinstance(env.cache, NullCacheManager)

    def test_overrides_win_over_project_config(self, tmp_path):
        (tmp_path / 'config').mkdir()
        (tmp_path / 'config' / 'forecast.yaml').write_text('horizon: 6\n')

        env = setup_notebook(project_dir=tmp_path, quiet=True, horizon=3)
        assert env.config.horizon == 3

    def test_finds_raw_file_and_loads(self, tmp_path, wide_raw):
        data_dir = tmp_path / 'data'
        data_dir.mkdir()
        wide_raw.to_csv(data_dir / 'datathon.csv', index=False)

        env = setup_notebook(project_dir=tmp_path, quiet=True)
        assert env.RAW_FILE == data_dir.resolve() / 'datathon.csv'

        df = env.load_data(verbose=False)
        assert df['unique_id'].nunique() == 3
        assert env.cache.exists('datathon_data')

    def test_load_data_without_raw_file(self, tmp_path):
        env = setup_notebook(project_dir=tmp_path, quiet=True)
        assert env.RAW_FILE is None
        with pytest.raises(FileNotFoundError):
            env.load_data()
