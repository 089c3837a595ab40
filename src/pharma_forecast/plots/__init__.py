from . import theme
from .exploration import (
    plot_aggregation_levels,
    plot_level_shares,
    plot_series,
    plot_demand_classes,
)
from .forecast import plot_forecast, plot_weights

__all__ = [
    'theme',
    'plot_aggregation_levels',
    'plot_level_shares',
    'plot_series',
    'plot_demand_classes',
    'plot_forecast',
    'plot_weights',
]
