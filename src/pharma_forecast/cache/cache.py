"""
Forecast Cache
==============

Three stages of the datathon workflow are slow to rebuild: parsing the
raw spreadsheet into the brand panel, the validation forecasts (an ARIMA
order search per series) and the final horizon forecasts. CacheManager
stores each as a parquet file keyed by name and by a hash of the settings
that produced it, so a changed horizon, model list or target function
triggers a rebuild instead of a stale hit.

- CacheManager      : parquet + cache_manifest.json, lineage across stages
- NullCacheManager  : same interface, never hits (use_cache=False)
- ArtifactManager   : notebook outputs under data/ and reports/
- panel_fingerprint : identity of an input panel, for stage configs
"""

import json
import hashlib
import pandas as pd
from pathlib import Path
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Any, Optional, List, Callable, TYPE_CHECKING

from ..utils.helpers import get_notebook_name, get_module_from_notebook

if TYPE_CHECKING:
    from ..analysis.reports import DataQualityReport


MANIFEST_FILENAME = 'cache_manifest.json'

# Session state shared by every manager, so lineage can cross cache dirs
_load_history: List[str] = []
_all_managers: List['CacheManager'] = []


# =============================================================================
# Hashing
# =============================================================================

def config_hash(config: Optional[Dict[str, Any]]) -> str:
    """Short, order-independent hash of a settings dict."""
    payload = json.dumps(config or {}, sort_keys=True, default=str)
    return hashlib.md5(payload.encode()).hexdigest()[:12]


def panel_fingerprint(
    df: pd.DataFrame,
    id_col: str = 'unique_id',
    date_col: str = 'ds',
    target_col: str = 'y'
) -> Dict[str, Any]:
    """
    Cheap identity of a brand panel.

    Two panels with the same fingerprint have the same series, the same
    month range and the same sales total, which is enough to decide
    whether cached forecasts built from one can serve the other.
    """
    return {
        'rows': int(len(df)),
        'series': int(df[id_col].nunique()),
        'first_month': str(pd.Timestamp(df[date_col].min()).date()) if len(df) else None,
        'last_month': str(pd.Timestamp(df[date_col].max()).date()) if len(df) else None,
        'target_total': round(float(df[target_col].sum()), 4),
    }


# =============================================================================
# Manifest storage
# =============================================================================

class _Manifest(dict):
    """Dict of entries persisted as indented JSON."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(json.loads(self.path.read_text()) if self.path.exists() else {})

    def flush(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self, indent=2, default=str))


def _read_report(path: Path) -> Optional['DataQualityReport']:
    from ..analysis.reports import DataQualityReport
    return DataQualityReport.load(path) if path.exists() else None


def _register(manager: 'CacheManager'):
    # one live handle per directory; the newest replaces older ones
    target = manager.cache_dir.resolve()
    _all_managers[:] = [m for m in _all_managers if m.cache_dir.resolve() != target]
    _all_managers.append(manager)


def _find_entry(key: str) -> Optional[dict]:
    # newest manager first: a re-created cache dir supersedes older handles
    for manager in reversed(_all_managers):
        if key in manager._manifest:
            return manager._manifest[key]
    return None


@dataclass
class CacheEntry:
    """Manifest metadata for one cached stage."""
    key: str
    filename: str
    module: str
    config: Dict[str, Any]
    config_hash: str
    created_at: str
    rows: int
    columns: List[str]
    size_mb: float
    source: Optional[str] = None
    report_filename: Optional[str] = None


# =============================================================================
# CacheManager
# =============================================================================

class CacheManager:
    """
    Parquet cache for panel, validation and forecast stages.

    Parameters
    ----------
    cache_dir : Path
        Directory for parquet files and the manifest
    overwrite_existing : bool, default=True
        Whether save() replaces an existing key by default

    Examples
    --------
    >>> cache = CacheManager(Path('data/.cache'))
    >>> df = load_datathon('data/raw.xlsx', cache=cache)      # builds, saves
    >>> run = run_forecast(df, config, cache=cache)           # reuses validation
    >>> cache.lineage('final_forecasts')
    ['datathon_data', 'validation_forecasts', 'final_forecasts']
    """

    def __init__(self, cache_dir: Path, overwrite_existing: bool = True):
        self.cache_dir = Path(cache_dir)
        self.manifest_path = self.cache_dir / MANIFEST_FILENAME
        self._manifest = _Manifest(self.manifest_path)
        self.overwrite_existing = overwrite_existing
        _register(self)

    # -------------------------------------------------------------------------
    # Session history
    # -------------------------------------------------------------------------

    @staticmethod
    def last_loaded() -> Optional[str]:
        """Key of the most recent successful load in this session."""
        return _load_history[-1] if _load_history else None

    @staticmethod
    def load_history() -> List[str]:
        return list(_load_history)

    @staticmethod
    def clear_history():
        _load_history.clear()

    @staticmethod
    def get_source_config(source_key: str) -> Optional[Dict[str, Any]]:
        """Stored config of ``source_key`` in whichever manager holds it."""
        entry = _find_entry(source_key)
        return dict(entry.get('config', {})) if entry else None

    # -------------------------------------------------------------------------
    # Save / load
    # -------------------------------------------------------------------------

    def save(
        self,
        df: pd.DataFrame,
        key: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        module: Optional[str] = None,
        source: Optional[str] = None,
        report: Optional['DataQualityReport'] = None,
        inherit_config: bool = False,
        overwrite: Optional[bool] = None,
        verbose: bool = True
    ) -> Path:
        """
        Store ``df`` under ``key``.

        Parameters
        ----------
        df : pd.DataFrame
        key : str, optional
            Defaults to '<notebook>_output' inside a notebook
        config : dict, optional
            Settings that produced ``df``; load() compares its hash
        module : str, optional
            Notebook module prefix, auto-detected
        source : str, optional
            Upstream key, defaults to the last key loaded this session
        report : DataQualityReport, optional
            Stored as JSON beside the parquet file
        inherit_config : bool, default=False
            Merge ``config`` over the upstream key's config
        overwrite : bool, optional
            Defaults to ``overwrite_existing``
        verbose : bool, default=True

        Returns
        -------
        Path
            The parquet file
        """
        if key is None:
            nb_name = get_notebook_name()
            if not nb_name:
                raise ValueError("Could not auto-detect key. Provide explicitly.")
            key = f"{nb_name}_output"

        overwrite = self.overwrite_existing if overwrite is None else overwrite
        if key in self._manifest and not overwrite:
            if verbose:
                print(f"⚠ Cache '{key}' exists. Use overwrite=True to replace.")
            return self.cache_dir / self._manifest[key]['filename']

        source = source or self.last_loaded()
        merged = dict(self.get_source_config(source) or {}) if inherit_config and source else {}
        merged.update(config or {})

        digest = config_hash(merged)
        path = self.cache_dir / f"{key}_{digest}.parquet"
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        previous = self._manifest.get(key)
        if previous and previous['filename'] != path.name:
            (self.cache_dir / previous['filename']).unlink(missing_ok=True)

        df.to_parquet(path, index=False)

        report_filename = None
        if report is not None:
            report_filename = f"{key}_report.json"
            report.save(self.cache_dir / report_filename)

        entry = CacheEntry(
            key=key,
            filename=path.name,
            module=module or get_module_from_notebook() or 'unknown',
            config=merged,
            config_hash=digest,
            created_at=datetime.now().isoformat(timespec='seconds'),
            rows=len(df),
            columns=[str(c) for c in df.columns],
            size_mb=round(path.stat().st_size / 1024**2, 2),
            source=source,
            report_filename=report_filename,
        )
        self._manifest[key] = asdict(entry)
        self._manifest.flush()

        if verbose:
            via = f" <- {source}" if source else ''
            print(f"✓ Saved '{key}' ({entry.rows:,} rows, {entry.size_mb} MB){via}")
        return path

    def load(
        self,
        key: str,
        config: Optional[Dict[str, Any]] = None,
        with_report: bool = False,
        verbose: bool = True
    ):
        """
        Cached DataFrame for ``key``, or None on a miss.

        A miss is an unknown key, a deleted parquet file, or a ``config``
        whose hash differs from the stored one. With ``with_report`` the
        result is a (df, report) pair, (None, None) on a miss.
        """
        entry = self._manifest.get(key)
        reason = None
        if entry is None:
            reason = f"Cache '{key}' not found"
        elif config is not None and config_hash(config) != entry['config_hash']:
            reason = f"Cache '{key}' config mismatch - will regenerate"
        elif not (self.cache_dir / entry['filename']).exists():
            reason = f"Cache file missing: {self.cache_dir / entry['filename']}"

        if reason is not None:
            if verbose:
                print(f"⚠ {reason}")
            return (None, None) if with_report else None

        df = pd.read_parquet(self.cache_dir / entry['filename'])
        _load_history.append(key)
        if verbose:
            print(f"✓ Loaded '{key}' | {entry['rows']:,} × {len(entry['columns'])}")

        if not with_report:
            return df
        report_file = entry.get('report_filename')
        return df, (_read_report(self.cache_dir / report_file) if report_file else None)

    def get_or_build(
        self,
        key: str,
        build: Callable[[], pd.DataFrame],
        config: Optional[Dict[str, Any]] = None,
        force_refresh: bool = False,
        verbose: bool = True,
        **save_kwargs
    ) -> pd.DataFrame:
        """
        Cached ``key`` when its config matches, otherwise ``build()`` and save.

        Parameters
        ----------
        key : str
        build : callable
            Zero-argument function producing the DataFrame
        config : dict, optional
            Settings that determine the result
        force_refresh : bool, default=False
            Skip the lookup and rebuild
        verbose : bool, default=True
        **save_kwargs
            Passed to save() (module, source, report, ...)
        """
        if not force_refresh:
            df = self.load(key, config=config, verbose=verbose)
            if df is not None:
                return df
        df = build()
        self.save(df, key=key, config=config, verbose=verbose, **save_kwargs)
        # a freshly built stage feeds the next one just like a loaded one
        _load_history.append(key)
        return df

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def get_config(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._manifest.get(key)
        return dict(entry.get('config', {})) if entry else None

    def exists(self, key: str, config: Optional[Dict[str, Any]] = None) -> bool:
        """True if ``key`` is cached (and, when given, under ``config``)."""
        entry = self._manifest.get(key)
        if entry is None:
            return False
        return config is None or config_hash(config) == entry['config_hash']

    def info(self, key: str) -> Optional[dict]:
        """Print and return the manifest entry for ``key``."""
        entry = self._manifest.get(key)
        if entry is None:
            print(f"⚠ Cache '{key}' not found")
            return None

        lines = [
            ('File', entry['filename']),
            ('Report', entry.get('report_filename') or '-'),
            ('Module', entry['module']),
            ('Created', entry['created_at'][:19]),
            ('Shape', f"{entry['rows']:,} × {len(entry['columns'])} ({entry['size_mb']} MB)"),
            ('Source', entry.get('source') or '-'),
            ('Hash', entry['config_hash']),
        ]
        print(f"\n{'=' * 60}\nCACHE: {key}\n{'=' * 60}")
        for label, value in lines:
            print(f"  {label + ':':<9} {value}")
        for name, value in entry['config'].items():
            print(f"    {name}: {value}")
        print('=' * 60)
        return entry

    def list(self) -> pd.DataFrame:
        """One row per cached stage."""
        columns = ['Key', 'Module', 'Rows', 'Size (MB)', 'Report', 'Source', 'Created']
        rows = [
            [key, e['module'], e['rows'], e['size_mb'],
             '✓' if e.get('report_filename') else '-',
             e.get('source') or '-', e['created_at'][:19]]
            for key, e in self._manifest.items()
        ]
        return pd.DataFrame(rows, columns=columns)

    def size_mb(self) -> float:
        """Total size of the cached parquet files."""
        return round(sum(e['size_mb'] for e in self._manifest.values()), 2)

    def lineage(self, key: str) -> List[str]:
        """Keys from the earliest upstream stage down to ``key``."""
        if key not in self._manifest:
            print(f"⚠ Cache '{key}' not found")
            return []

        chain = [key]
        entry = self._manifest[key]
        while entry is not None:
            source = entry.get('source')
            if not source or source in chain:
                break
            chain.append(source)
            entry = _find_entry(source)
        return chain[::-1]

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    def delete(self, key: str):
        """Remove a cached stage and its report."""
        entry = self._manifest.pop(key, None)
        if entry is None:
            print(f"⚠ Cache '{key}' not found")
            return

        for name in (entry['filename'], entry.get('report_filename')):
            if name:
                (self.cache_dir / name).unlink(missing_ok=True)
        self._manifest.flush()
        print(f"✓ Deleted '{key}'")

    def prune(self, verbose: bool = True) -> List[str]:
        """
        Drop manifest entries whose parquet file is gone and delete
        parquet files no entry points to.

        Returns
        -------
        list of str
            Keys removed from the manifest
        """
        stale = [k for k, e in self._manifest.items() if not (self.cache_dir / e['filename']).exists()]
        for key in stale:
            del self._manifest[key]

        known = {e['filename'] for e in self._manifest.values()}
        orphans = [p for p in self.cache_dir.glob('*.parquet') if p.name not in known]
        for path in orphans:
            path.unlink()

        if stale or orphans:
            self._manifest.flush()
        if verbose:
            print(f"✓ Pruned {len(stale)} stale entries, {len(orphans)} orphan files")
        return stale

    def clear(self, confirm: bool = False):
        """Delete every cached stage (requires ``confirm=True``)."""
        if not confirm:
            print("⚠ Use clear(confirm=True) to delete all cached data.")
            return
        for key in list(self._manifest):
            self.delete(key)


# =============================================================================
# ArtifactManager
# =============================================================================

class ArtifactManager:
    """
    Notebook outputs kept for the record (accuracy tables, weights,
    submission frames), each optionally with a quality report.

    Layout::

        output/
        ├── data/04_submission_output.parquet
        ├── reports/04_submission_report.json
        └── manifest.json
    """

    def __init__(self, outputs_dir: Path):
        self.outputs_dir = Path(outputs_dir)
        for sub in ('data', 'reports'):
            (self.outputs_dir / sub).mkdir(parents=True, exist_ok=True)
        self.manifest_path = self.outputs_dir / 'manifest.json'
        self._manifest = _Manifest(self.manifest_path)

    def save(
        self,
        df: pd.DataFrame,
        key: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
        report: Optional['DataQualityReport'] = None,
    ) -> Path:
        """Write ``df`` (and ``report``) and record it in the manifest."""
        key = key or get_notebook_name()
        if key is None:
            raise ValueError("Could not auto-detect key. Provide explicitly.")

        data_file = f'data/{key}_output.parquet'
        data_path = self.outputs_dir / data_file
        df.to_parquet(data_path, index=False)

        report_file = f'reports/{key}_report.json' if report is not None else None
        if report is not None:
            report.save(self.outputs_dir / report_file)

        self._manifest[key] = {
            'key': key,
            'data_file': data_file,
            'report_file': report_file,
            'config': config or {},
            'source': source or CacheManager.last_loaded(),
            'created_at': datetime.now().isoformat(timespec='seconds'),
            'rows': len(df),
            'columns': [str(c) for c in df.columns],
            'size_mb': round(data_path.stat().st_size / 1024**2, 2),
        }
        self._manifest.flush()

        print(f"✓ Saved '{key}' -> {data_file} ({len(df):,} rows)")
        return data_path

    def load(self, key: str, with_report: bool = False):
        """Stored DataFrame (and report) for ``key``; None when missing."""
        entry = self._manifest.get(key)
        data_path = self.outputs_dir / entry['data_file'] if entry else None
        if data_path is None or not data_path.exists():
            print(f"⚠ Artifact '{key}' not found")
            return (None, None) if with_report else None

        df = pd.read_parquet(data_path)
        print(f"✓ Loaded '{key}' | {len(df):,} × {len(df.columns)}")
        if not with_report:
            return df
        report_file = entry.get('report_file')
        return df, (_read_report(self.outputs_dir / report_file) if report_file else None)

    def list(self) -> pd.DataFrame:
        rows = [
            [key, e['rows'], e['size_mb'], '✓' if e.get('report_file') else '-']
            for key, e in self._manifest.items()
        ]
        return pd.DataFrame(rows, columns=['Key', 'Rows', 'Size (MB)', 'Report'])


# =============================================================================
# NullCacheManager
# =============================================================================

class NullCacheManager:
    """
    Stand-in for CacheManager when caching is off.

    Every lookup misses and every save is dropped; get_or_build() always
    builds. Pipeline code calls it exactly like the real cache.
    """

    def __init__(self, cache_dir: Optional[Path] = None, *args, **kwargs):
        self.cache_dir = Path(cache_dir) if cache_dir is not None else None

    def load(self, *args, with_report: bool = False, **kwargs):
        return (None, None) if with_report else None

    def get_or_build(self, key: str, build: Callable[[], pd.DataFrame], *args, **kwargs) -> pd.DataFrame:
        return build()

    def save(self, *args, **kwargs):
        return None

    def exists(self, *args, **kwargs):
        return False

    def get_config(self, *args, **kwargs):
        return None

    def list(self):
        return pd.DataFrame()

    def info(self, *args, **kwargs):
        return None

    def lineage(self, *args, **kwargs):
        return []

    def size_mb(self):
        return 0.0

    def prune(self, *args, **kwargs):
        return []

    def delete(self, *args, **kwargs):
        return None

    def clear(self, *args, **kwargs):
        return None


__all__ = [
    'CacheManager',
    'NullCacheManager',
    'CacheEntry',
    'ArtifactManager',
    'config_hash',
    'panel_fingerprint',
]
