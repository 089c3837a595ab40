"""
Forecast Configuration
======================

Central settings for loading, modelling, ensembling and submission.

Every tunable lives on ``ForecastConfig``. Values can be overridden from a
YAML file (``config/forecast.yaml`` by default) or via keyword arguments:

    >>> config = load_config(horizon=6, models=['naive', 'ets'])
    >>> config.horizon
    6
"""

from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

CONFIG_FILENAME = 'forecast.yaml'

ENSEMBLE_METHODS = ('lasso', 'mean', 'median')
WEIGHT_SCOPES = ('global', 'series')
LEVELS = ('total', 'cluster', 'country', 'brand')


@dataclass
class ForecastConfig:
    """Settings shared by the pipeline, submission builder and CLI."""

    # Columns
    date_col: str = 'ds'
    target_col: str = 'y'
    id_col: str = 'unique_id'
    hierarchy_cols: List[str] = field(default_factory=lambda: ['cluster', 'country', 'brand'])
    target_function: str = 'sales'

    # Horizon & seasonality
    horizon: int = 12
    season_length: int = 12
    freq: str = 'MS'

    # Models
    models: List[str] = field(default_factory=lambda: ['naive', 'snaive', 'arima', 'ets', 'fourier'])
    fourier_order: int = 2
    level: List[int] = field(default_factory=lambda: [80, 95])

    # Ensembling
    validation_months: int = 12
    ensemble_method: str = 'lasso'
    weights_scope: str = 'global'
    lasso_cv_folds: int = 5
    random_state: int = 42

    # Output
    clip_negative: bool = True
    submission_level: str = 'brand'

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.horizon < 1:
            raise ValueError(f"horizon must be >= 1, got {self.horizon}")
        if self.season_length < 1:
            raise ValueError(f"season_length must be >= 1, got {self.season_length}")
        if self.validation_months < 1:
            raise ValueError(f"validation_months must be >= 1, got {self.validation_months}")
        if self.ensemble_method not in ENSEMBLE_METHODS:
            raise ValueError(
                f"ensemble_method must be one of {ENSEMBLE_METHODS}, got '{self.ensemble_method}'"
            )
        if self.weights_scope not in WEIGHT_SCOPES:
            raise ValueError(
                f"weights_scope must be one of {WEIGHT_SCOPES}, got '{self.weights_scope}'"
            )
        if self.submission_level not in LEVELS:
            raise ValueError(
                f"submission_level must be one of {LEVELS}, got '{self.submission_level}'"
            )
        if not self.models:
            raise ValueError("At least one model must be configured")
        if isinstance(self.level, (int, float)) and not isinstance(self.level, bool):
            self.level = [self.level]
        if not isinstance(self.level, (list, tuple)):
            raise ValueError(f"level must be a number or a list of numbers, got {self.level!r}")
        bad_levels = [l for l in self.level if not isinstance(l, (int, float)) or not 0 < l < 100]
        if bad_levels:
            raise ValueError(f"Interval levels must be in (0, 100): {bad_levels}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def find_config_file(start_path: Optional[Path] = None) -> Optional[Path]:
    """Walk up from ``start_path`` looking for ``config/forecast.yaml``."""
    current = (start_path or Path.cwd()).resolve()
    for _ in range(10):
        candidate = current / 'config' / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def load_config(
    path: Optional[Union[str, Path]] = None,
    **overrides
) -> ForecastConfig:
    """
    Build a ForecastConfig from YAML plus keyword overrides.

    Parameters
    ----------
    path : str or Path, optional
        YAML file to read. If None, searches for config/forecast.yaml upward
        from the working directory and falls back to defaults if none exists.
    **overrides
        Values that win over the file

    Returns
    -------
    ForecastConfig

    Raises
    ------
    FileNotFoundError
        If ``path`` is given but does not exist
    ValueError
        If the file or overrides contain unknown keys
    """
    values: Dict[str, Any] = {}

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = find_config_file()

    if path is not None:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        values.update(data)

    values.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(ForecastConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {unknown}")

    return ForecastConfig(**values)


__all__ = [
    'ForecastConfig',
    'load_config',
    'find_config_file',
    'ENSEMBLE_METHODS',
    'WEIGHT_SCOPES',
    'LEVELS',
]
