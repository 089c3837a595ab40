from .reports import data_quality_check, DataQualityReport, Snapshot
from .levels import level_summary, top_contributors, correlate_functions
from .profile import (
    first_non_zero,
    zero_intervals,
    nonzero_demand,
    classify_demand,
    demand_statistics,
    profile_series,
    profile_dataframe,
    summarize_profiles,
    interpret_strength,
    calc_stl_strength,
    calc_acf_metrics,
    calc_distribution_metrics,
    calc_volatility_metrics,
    calc_outlier_metrics,
    ADI_THRESHOLD,
    CV2_THRESHOLD,
)

__all__ = [
    'data_quality_check',
    'DataQualityReport',
    'Snapshot',
    'level_summary',
    'top_contributors',
    'correlate_functions',
    'first_non_zero',
    'zero_intervals',
    'nonzero_demand',
    'classify_demand',
    'demand_statistics',
    'profile_series',
    'profile_dataframe',
    'summarize_profiles',
    'interpret_strength',
    'calc_stl_strength',
    'calc_acf_metrics',
    'calc_distribution_metrics',
    'calc_volatility_metrics',
    'calc_outlier_metrics',
    'ADI_THRESHOLD',
    'CV2_THRESHOLD',
]
