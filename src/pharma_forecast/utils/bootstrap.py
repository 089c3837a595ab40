"""
Notebook Bootstrap

Purpose
-------
One call at the top of every datathon notebook:

    from pharma_forecast import setup_notebook
    env = setup_notebook()
    df = env.load_data()
    run = run_forecast(df, env.config)

Defaults
--------
- project_dir : auto-detected project root
- data_dir    : <project_dir>/data
- raw_file    : first .xlsx / .csv / .parquet in data_dir (None if absent)
- output_dir  : <data_dir>/output[/<notebook folder>]
- cache_dir   : <data_dir>/.cache
- config      : config/forecast.yaml under the project, plus keyword overrides

Behavior
--------
- use_cache=False returns a NullCacheManager, so notebook code never
  needs conditionals
- matplotlib uses the project colour cycle from plots.theme
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union, Any
import sys
import warnings

import matplotlib.pyplot as plt

from .helpers import find_project_root, get_notebook_name, get_artifact_subfolder
from ..cache.cache import CacheManager, ArtifactManager, NullCacheManager
from ..config import ForecastConfig, load_config, CONFIG_FILENAME

RAW_SUFFIXES = ('.xlsx', '.xls', '.csv', '.parquet')
PLOT_STYLES = {
    'whitegrid': 'seaborn-v0_8-whitegrid',
    'seaborn': 'seaborn-v0_8-whitegrid',
    'default': 'default',
}

PathLike = Union[str, Path]


def _resolve(p: Optional[PathLike], default: Path) -> Path:
    path = Path(p).expanduser().resolve() if p is not None else default
    path.mkdir(parents=True, exist_ok=True)
    return path


def find_raw_file(data_dir: Path) -> Optional[Path]:
    """First spreadsheet-like file in ``data_dir`` (sorted by name), or None."""
    candidates = sorted(
        p for p in data_dir.iterdir()
        if p.is_file() and p.suffix.lower() in RAW_SUFFIXES and not p.name.startswith('~$')
    )
    return candidates[0] if candidates else None


def _apply_plot_style(style: str, quiet: bool):
    from ..plots import theme

    name = PLOT_STYLES.get((style or 'whitegrid').strip().lower(), style)
    try:
        plt.style.use(name)
    except OSError:
        if not quiet:
            print(f"⚠ Unknown plot style '{style}', keeping matplotlib default")
    plt.rcParams['axes.prop_cycle'] = plt.cycler(color=theme.palette(10))


@dataclass(frozen=True)
class NotebookEnvironment:
    """Paths, managers and config shared by a notebook session."""
    PROJECT_DIR: Path
    DATA_DIR: Path
    OUTPUT_DIR: Path
    CACHE_DIR: Path
    NB_NAME: str
    RAW_FILE: Optional[Path]
    cache: Any
    output: ArtifactManager
    config: ForecastConfig

    def load_data(self, path: Optional[PathLike] = None, **kwargs):
        """
        load_datathon() on RAW_FILE (or ``path``) with this session's cache
        and config. Extra keyword arguments are passed through.
        """
        from ..loaders import load_datathon

        source = Path(path) if path is not None else self.RAW_FILE
        if source is None:
            raise FileNotFoundError(f"No raw spreadsheet found in {self.DATA_DIR}")
        kwargs.setdefault('target_function', self.config.target_function)
        kwargs.setdefault('clip_negative', self.config.clip_negative)
        return load_datathon(source, cache=self.cache, **kwargs)


def setup_notebook(
    *,
    project_dir: Optional[PathLike] = None,
    data_dir: Optional[PathLike] = None,
    output_dir: Optional[PathLike] = None,
    cache_dir: Optional[PathLike] = None,
    use_cache: bool = True,
    show_warnings: bool = False,
    plot_style: str = "whitegrid",
    config_path: Optional[PathLike] = None,
    quiet: bool = False,
    **config_overrides
) -> NotebookEnvironment:
    """
    Create the notebook environment.

    Parameters
    ----------
    project_dir, data_dir, output_dir, cache_dir : str or Path, optional
        Override the default layout (directories are created)
    use_cache : bool, default=True
        False gives a NullCacheManager
    show_warnings : bool, default=False
        statsmodels and sklearn are noisy during model search
    plot_style : str, default='whitegrid'
    config_path : str or Path, optional
        YAML config; defaults to <project>/config/forecast.yaml when present
    quiet : bool, default=False
    **config_overrides
        ForecastConfig fields that win over the YAML (e.g. horizon=6)

    Returns
    -------
    NotebookEnvironment
    """
    root = Path(project_dir).expanduser().resolve() if project_dir is not None else find_project_root()
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))

    nb_name = get_notebook_name() or Path.cwd().resolve().name

    data_root = _resolve(data_dir, root / "data")
    output_root = _resolve(output_dir, data_root / "output" / (get_artifact_subfolder() or ""))
    cache_root = _resolve(cache_dir, data_root / ".cache")
    raw_file = find_raw_file(data_root)

    if show_warnings:
        warnings.resetwarnings()
    else:
        warnings.filterwarnings("ignore")
    _apply_plot_style(plot_style, quiet)

    if config_path is None:
        project_config = root / "config" / CONFIG_FILENAME
        config_path = project_config if project_config.exists() else None
    if config_path is None:
        config = ForecastConfig(**config_overrides)
    else:
        config = load_config(config_path, **config_overrides)

    cache = CacheManager(cache_root) if use_cache else NullCacheManager(cache_root)

    if not quiet:
        print(
            f"✓ Setup complete | Root: {root.name} | Notebook: {nb_name} | "
            f"Cache: {'on' if use_cache else 'off'} | Horizon: {config.horizon} | "
            f"Models: {', '.join(config.models)}"
        )
        print(f"  Raw data: {raw_file.name if raw_file else '⚠ none found in ' + str(data_root)}")

    return NotebookEnvironment(
        PROJECT_DIR=root,
        DATA_DIR=data_root,
        OUTPUT_DIR=output_root,
        CACHE_DIR=cache_root,
        NB_NAME=nb_name,
        RAW_FILE=raw_file,
        cache=cache,
        output=ArtifactManager(output_root),
        config=config,
    )
