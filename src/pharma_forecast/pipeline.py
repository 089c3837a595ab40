"""
Forecast Pipeline
=================

Panel-level orchestration:

1. fit_validation   - hold out the last months of every series and forecast them
2. estimate_weights - LASSO (or equal) ensemble weights from the hold-out
3. forecast_panel   - refit on full history, forecast the horizon, ensemble
4. run_forecast     - all three, plus validation accuracy
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple, Union, TYPE_CHECKING

import numpy as np
import pandas as pd
from tqdm.auto import tqdm

from .cache.cache import NullCacheManager, panel_fingerprint
from .config import ForecastConfig
from .ensemble import equal_weights, lasso_weights, ensemble_forecast
from .evaluation import accuracy_table
from .models import forecast_series

if TYPE_CHECKING:
    from .cache.cache import CacheManager

logger = logging.getLogger(__name__)

Weights = Union[pd.Series, pd.DataFrame]


def _check_columns(df: pd.DataFrame, config: ForecastConfig):
    required = [config.id_col, config.date_col, config.target_col]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def _iter_series(
    df: pd.DataFrame,
    config: ForecastConfig,
    show_progress: bool,
    desc: str
) -> Iterator[Tuple[str, pd.DataFrame, pd.Series]]:
    grouped = df.sort_values([config.id_col, config.date_col]).groupby(config.id_col, sort=True)
    for uid, group in tqdm(grouped, total=grouped.ngroups, desc=desc, disable=not show_progress):
        y = group.set_index(config.date_col)[config.target_col].astype(float)
        y.index = pd.DatetimeIndex(y.index)
        y.name = uid
        yield uid, group, y


def _model_kwargs(config: ForecastConfig) -> dict:
    return dict(
        season_length=config.season_length,
        clip_negative=config.clip_negative,
        freq=config.freq,
        fourier_order=config.fourier_order,
    )


# =============================================================
# Validation
# =============================================================

def fit_validation(
    df: pd.DataFrame,
    config: Optional[ForecastConfig] = None,
    show_progress: bool = True
) -> pd.DataFrame:
    """
    Forecast the last ``validation_months`` calendar months of every series
    from the months before them.

    The hold-out ends at the last observed month. Missing months inside it
    produce no rows, and each forecast is matched to its actual by date.
    Series without an observed month before the hold-out are skipped.

    Returns
    -------
    pd.DataFrame
        Columns unique_id, ds, actual, <model>...
    """
    config = config or ForecastConfig()
    _check_columns(df, config)
    v = config.validation_months

    frames = []
    skipped = 0
    for uid, _, y in _iter_series(df, config, show_progress, 'Validation'):
        observed = y.dropna()
        if observed.empty:
            skipped += 1
            continue
        # hold out the last v calendar months, gaps included
        window = pd.date_range(end=observed.index[-1], periods=v, freq=config.freq)
        train = observed[observed.index < window[0]]
        test = observed[observed.index >= window[0]]
        if train.empty:
            skipped += 1
            continue
        h = len(pd.date_range(train.index[-1], window[-1], freq=config.freq)) - 1
        fcs = forecast_series(train, h, config.models, **_model_kwargs(config))

        frame = pd.DataFrame({config.id_col: uid, config.date_col: test.index, 'actual': test.to_numpy()})
        for name, fc in fcs.items():
            frame[name] = fc.mean.reindex(test.index).to_numpy()
        frames.append(frame)

    if skipped:
        logger.warning("Skipped %d series with no history before the %d-month hold-out", skipped, v)
    if not frames:
        raise ValueError(f"No series longer than validation_months={v}")

    validation = pd.concat(frames, ignore_index=True)
    logger.info("Validation: %d series x %d months", validation[config.id_col].nunique(), v)
    return validation


# =============================================================
# Weights
# =============================================================

def estimate_weights(validation: pd.DataFrame, config: Optional[ForecastConfig] = None) -> Weights:
    """
    Ensemble weights from the validation frame.

    Returns
    -------
    pd.Series or pd.DataFrame
        One weight Series (global scope) or a frame indexed by unique_id with
        one column per model (series scope). 'mean' and 'median' methods give
        equal weights.
    """
    config = config or ForecastConfig()
    models = list(config.models)
    missing = [m for m in models if m not in validation.columns]
    if missing:
        raise ValueError(f"Validation frame has no column for models: {missing}")

    def fit(frame: pd.DataFrame) -> pd.Series:
        if config.ensemble_method != 'lasso':
            return equal_weights(models)
        return lasso_weights(
            frame['actual'],
            frame[models],
            cv=config.lasso_cv_folds,
            random_state=config.random_state,
        )

    if config.weights_scope == 'global':
        weights = fit(validation)
        logger.info("Global weights: %s", weights.round(3).to_dict())
        return weights

    per_series = {
        uid: fit(group) for uid, group in validation.groupby(config.id_col, sort=True)
    }
    weights = pd.DataFrame(per_series).T[models]
    weights.index.name = config.id_col
    return weights


def _series_weights(weights: Optional[Weights], uid: str, models) -> pd.Series:
    if weights is None:
        return equal_weights(models)
    if isinstance(weights, pd.DataFrame):
        if uid not in weights.index:
            return equal_weights(models)
        return weights.loc[uid].reindex(models).fillna(0.0)
    return weights.reindex(models).fillna(0.0)


def apply_weights(validation: pd.DataFrame, weights: Weights, config: Optional[ForecastConfig] = None) -> pd.Series:
    """Ensemble point forecast for each validation row."""
    config = config or ForecastConfig()
    models = list(config.models)
    if config.ensemble_method == 'median':
        return validation[models].median(axis=1).rename('ensemble')

    if isinstance(weights, pd.DataFrame):
        w = weights.reindex(validation[config.id_col]).reindex(columns=models)
        w = w.fillna(1.0 / len(models)).to_numpy()
    else:
        w = np.broadcast_to(weights.reindex(models).fillna(0.0).to_numpy(), (len(validation), len(models)))
    combined = (validation[models].to_numpy() * w).sum(axis=1)
    return pd.Series(combined, index=validation.index, name='ensemble')


# =============================================================
# Forecast
# =============================================================

def _fit_status(fcs) -> str:
    problems = [f"{name}: {fc.status}" for name, fc in fcs.items() if fc.status != 'ok']
    return 'ok' if not problems else '; '.join(problems)


def forecast_panel(
    df: pd.DataFrame,
    config: Optional[ForecastConfig] = None,
    weights: Optional[Weights] = None,
    show_progress: bool = True
) -> pd.DataFrame:
    """
    Refit every model on full history and forecast ``horizon`` months.

    Returns
    -------
    pd.DataFrame
        unique_id, hierarchy columns, ds, one column per model, ensemble,
        lo_<L>/hi_<L> per interval level, fit_status
    """
    config = config or ForecastConfig()
    _check_columns(df, config)
    models = list(config.models)
    hier_cols = [c for c in config.hierarchy_cols if c in df.columns]
    combine = 'median' if config.ensemble_method == 'median' else 'mean'

    frames = []
    for uid, group, y in _iter_series(df, config, show_progress, 'Forecasting'):
        y = y.dropna()
        if y.empty:
            logger.warning("Series %s has no observations; skipped", uid)
            continue
        fcs = forecast_series(y, config.horizon, models, **_model_kwargs(config))
        ens = ensemble_forecast(
            fcs,
            _series_weights(weights, uid, models),
            level=config.level,
            combine=combine,
            clip_negative=config.clip_negative,
        )

        frame = pd.DataFrame({config.id_col: uid, config.date_col: ens.mean.index})
        for col in hier_cols:
            frame[col] = group[col].iloc[0]
        for name, fc in fcs.items():
            frame[name] = fc.mean.to_numpy()
        for col, values in ens.to_frame().drop(columns='median').items():
            frame[col] = values.to_numpy()
        frame['fit_status'] = _fit_status(fcs)
        frames.append(frame)

    if not frames:
        raise ValueError("No series to forecast")

    out = pd.concat(frames, ignore_index=True)
    ordered = [config.id_col] + hier_cols + [config.date_col]
    out = out[ordered + [c for c in out.columns if c not in ordered]]

    n_fallback = (out.drop_duplicates(config.id_col)['fit_status'] != 'ok').sum()
    logger.info("Forecast %d series; %d with at least one fallback", out[config.id_col].nunique(), n_fallback)
    return out


# =============================================================
# End to end
# =============================================================

@dataclass
class ForecastRun:
    """Outputs of run_forecast()."""
    validation: pd.DataFrame
    accuracy: pd.DataFrame
    weights: Weights
    forecasts: pd.DataFrame
    config: ForecastConfig


def run_forecast(
    df: pd.DataFrame,
    config: Optional[ForecastConfig] = None,
    cache: Optional['CacheManager'] = None,
    force_refresh: bool = False,
    show_progress: bool = True
) -> ForecastRun:
    """
    Validation -> weights -> full-history forecast.

    Parameters
    ----------
    df : pd.DataFrame
        Long panel with id, date and target columns (load_datathon output)
    config : ForecastConfig, optional
    cache : CacheManager, optional
        Reuse validation and final forecasts built from the same panel and
        config ('validation_forecasts', 'final_forecasts')
    force_refresh : bool, default=False
        Rebuild both stages even on a cache hit
    show_progress : bool, default=True

    Returns
    -------
    ForecastRun
    """
    config = config or ForecastConfig()
    if cache is None:
        cache = NullCacheManager()
    stage_config = {
        **config.to_dict(),
        'panel': panel_fingerprint(df, config.id_col, config.date_col, config.target_col),
    }

    validation = cache.get_or_build(
        'validation_forecasts',
        lambda: fit_validation(df, config, show_progress=show_progress),
        config=stage_config,
        force_refresh=force_refresh,
        verbose=False,
    )
    weights = estimate_weights(validation, config)
    validation = validation.assign(ensemble=apply_weights(validation, weights, config))

    accuracy = accuracy_table(
        validation['actual'],
        {name: validation[name] for name in list(config.models) + ['ensemble']},
    )

    forecasts = cache.get_or_build(
        'final_forecasts',
        lambda: forecast_panel(df, config, weights=weights, show_progress=show_progress),
        config=stage_config,
        force_refresh=force_refresh,
        verbose=False,
    )
    return ForecastRun(
        validation=validation,
        accuracy=accuracy,
        weights=weights,
        forecasts=forecasts,
        config=config,
    )


__all__ = [
    'fit_validation',
    'estimate_weights',
    'apply_weights',
    'forecast_panel',
    'ForecastRun',
    'run_forecast',
]
