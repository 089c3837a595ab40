"""
Pharma Forecast
===============

Monthly sales forecasting for the pharma datathon spreadsheet.

Structure:
- loaders: spreadsheet cleaning, wide -> long reshaping, hierarchy
- analysis: intermittency profiles, aggregation-level tables, data quality
- features: lags, train/test splits, Fourier terms
- models: naive family, ARIMA, ETS, harmonic regression
- ensemble: LASSO weights and mixture prediction intervals
- pipeline / submission: end-to-end forecast and submission file
- cache: CacheManager for data caching with lineage

Quick Start:
    from pharma_forecast import setup_notebook, load_datathon, run_forecast, build_submission

    env = setup_notebook()
    df = load_datathon(env.DATA_DIR / 'datathon.xlsx', cache=env.cache)
    run = run_forecast(df, env.config)
    sub = build_submission(run.forecasts, level='brand')
"""

from .version import __version__

# =============================================================================
# Configuration
# =============================================================================
from .config import ForecastConfig, load_config

# =============================================================================
# Data Loading
# =============================================================================
from .loaders import (
    read_raw,
    load_datathon,
    reshape_long,
    pivot_functions,
    fill_missing_months,
    create_unique_id,
    expand_hierarchy,
    aggregate_hierarchy,
    stack_levels,
    create_subset,
    HIERARCHY_COLS,
    LEVEL_KEYS,
)

# =============================================================================
# Cache Management
# =============================================================================
from .cache.cache import CacheManager, ArtifactManager, NullCacheManager

# =============================================================================
# Reporting & Analysis
# =============================================================================
from .analysis import (
    data_quality_check,
    DataQualityReport,
    Snapshot,
    level_summary,
    top_contributors,
    correlate_functions,
    demand_statistics,
    classify_demand,
    profile_series,
    profile_dataframe,
    summarize_profiles,
    ADI_THRESHOLD,
    CV2_THRESHOLD,
)

# =============================================================================
# Features & Models
# =============================================================================
from .features import add_lags, time_split, fourier_terms, future_fourier_terms
from .models import (
    MODEL_REGISTRY,
    register_model,
    available_models,
    ModelForecast,
    forecast_series,
)

# =============================================================================
# Ensembles, Evaluation, Pipeline
# =============================================================================
from .ensemble import (
    lasso_weights,
    equal_weights,
    mixture_quantiles,
    mixture_interval,
    EnsembleForecast,
    ensemble_forecast,
)
from .evaluation import accuracy_table, cross_validate
from .pipeline import fit_validation, estimate_weights, forecast_panel, run_forecast, ForecastRun
from .submission import build_submission, validate_submission, write_submission

# =============================================================================
# Plotting / Theme
# =============================================================================
from .plots import theme

__all__ = [
    '__version__',
    # Config
    'ForecastConfig',
    'load_config',
    # Data Loading
    'read_raw',
    'load_datathon',
    'reshape_long',
    'pivot_functions',
    'fill_missing_months',
    'create_unique_id',
    'expand_hierarchy',
    'aggregate_hierarchy',
    'stack_levels',
    'create_subset',
    'HIERARCHY_COLS',
    'LEVEL_KEYS',
    # Cache
    'CacheManager',
    'ArtifactManager',
    'NullCacheManager',
    # Report & Analysis
    'data_quality_check',
    'DataQualityReport',
    'Snapshot',
    'level_summary',
    'top_contributors',
    'correlate_functions',
    'demand_statistics',
    'classify_demand',
    'profile_series',
    'profile_dataframe',
    'summarize_profiles',
    'ADI_THRESHOLD',
    'CV2_THRESHOLD',
    # Features & Models
    'add_lags',
    'time_split',
    'fourier_terms',
    'future_fourier_terms',
    'MODEL_REGISTRY',
    'register_model',
    'available_models',
    'ModelForecast',
    'forecast_series',
    # Ensembles, Evaluation, Pipeline
    'lasso_weights',
    'equal_weights',
    'mixture_quantiles',
    'mixture_interval',
    'EnsembleForecast',
    'ensemble_forecast',
    'accuracy_table',
    'cross_validate',
    'fit_validation',
    'estimate_weights',
    'forecast_panel',
    'run_forecast',
    'ForecastRun',
    'build_submission',
    'validate_submission',
    'write_submission',
    # Theme
    'theme',
    # Bootstrap
    'setup_notebook',
    'NotebookEnvironment',
]

# Bootstrap (notebook setup)
from .utils.bootstrap import setup_notebook, NotebookEnvironment
