import matplotlib.pyplot as plt
import pandas as pd
import pytest
from matplotlib.figure import Figure

from pharma_forecast.analysis import profile_dataframe
from pharma_forecast.plots import (
    theme,
    plot_aggregation_levels,
    plot_level_shares,
    plot_series,
    plot_demand_classes,
    plot_forecast,
    plot_weights,
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


@pytest.fixture
def forecast_rows():
    ds = pd.date_range('2023-01-01', periods=3, freq='MS')
    return pd.DataFrame({
        'unique_id': 'EUROPE|Germany|B01',
        'ds': ds,
        'naive': [120.0, 120.0, 120.0],
        'ensemble': [118.0, 119.0, 121.0],
        'lo_95': [100.0, 99.0, 98.0],
        'hi_95': [136.0, 139.0, 144.0],
    })


class TestTheme:
    def test_palette_cycles(self):
        colors = theme.palette(12)
        assert len(colors) == 12
        assert colors[10] == colors[0] == theme.PRIMARY

    def test_demand_classes_covered(self):
        assert {'Smooth', 'Erratic', 'Intermittent', 'Lumpy'} <= set(theme.DEMAND_CLASS_COLORS)


class TestExplorationPlots:
    def test_aggregation_levels(self, panel):
        fig = plot_aggregation_levels(panel, levels=['total', 'country'], top_n=2)
        assert isinstance(fig, Figure)
        assert len(fig.axes) == 2

    def test_aggregation_levels_empty(self, panel):
        with pytest.raises(ValueError):
            plot_aggregation_levels(panel, levels=[])

    def test_level_shares(self, panel):
        fig = plot_level_shares(panel, 'brand', top_n=3)
        assert len(fig.axes[0].patches) == 3

    def test_series(self, panel):
        fig = plot_series(panel, ['EUROPE|Germany|B01', 'ASIA|Japan|B03', 'EUROPE|France|B01'],
                          value_cols=['y', 'investment'])
        assert len(fig.axes) == 4
        assert not fig.axes[3].axison

    def test_series_missing_column(self, panel):
        with pytest.raises(ValueError):
            plot_series(panel, ['EUROPE|Germany|B01'], value_cols=['tv'])

    def test_demand_classes(self, panel):
        fig = plot_demand_classes(profile_dataframe(panel, include_stl=False, show_progress=False))
        assert isinstance(fig, Figure)

    def test_demand_classes_needs_columns(self):
        with pytest.raises(ValueError):
            plot_demand_classes(pd.DataFrame({'adi': [1.0]}))


class TestForecastPlots:
    def test_plot_forecast(self, panel, forecast_rows):
        history = panel[panel['unique_id'] == 'EUROPE|Germany|B01']
        fig = plot_forecast(history, forecast_rows, models=['naive'], title='Germany B01')

        ax = fig.axes[0]
        assert ax.get_title() == 'Germany B01'
        labels = [line.get_label() for line in ax.get_lines()]
        assert labels == ['Actual', 'naive', 'Ensemble']

    def test_plot_forecast_unknown_model(self, panel, forecast_rows):
        with pytest.raises(ValueError, match='arima'):
            plot_forecast(panel.head(36), forecast_rows, models=['arima'])

    def test_plot_weights_series_scope(self):
        weights = pd.DataFrame({'naive': [0.2, 0.4], 'ets': [0.8, 0.6]}, index=['a', 'b'])
        fig = plot_weights(weights)
        heights = [bar.get_height() for bar in fig.axes[0].patches]
        assert heights == pytest.approx([0.7, 0.3])
