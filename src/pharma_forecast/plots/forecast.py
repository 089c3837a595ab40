"""
Forecast Plots
==============

History plus ensemble forecast, and the ensemble weights.
"""

from typing import List, Optional, Union

import matplotlib.pyplot as plt
import pandas as pd

from . import theme


def plot_forecast(
    history: Union[pd.Series, pd.DataFrame],
    forecast: pd.DataFrame,
    models: Optional[List[str]] = None,
    level: int = 95,
    date_col: str = 'ds',
    target_col: str = 'y',
    title: Optional[str] = None,
    figsize: tuple = (12, 4),
    show: bool = False
):
    """
    History, ensemble forecast and its prediction band for one series.

    Parameters
    ----------
    history : pd.Series or pd.DataFrame
        Series indexed by date, or a frame with date_col and target_col
    forecast : pd.DataFrame
        forecast_panel() rows for the same series
    models : list of str, optional
        Component model columns to overlay
    level : int, default=95
        Interval to shade (needs lo_<level> and hi_<level>)
    """
    if isinstance(history, pd.DataFrame):
        history = history.sort_values(date_col).set_index(date_col)[target_col]
    forecast = forecast.sort_values(date_col)
    if 'ensemble' not in forecast.columns:
        raise ValueError("forecast has no 'ensemble' column")

    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(history.index, history.to_numpy(), color='black', linewidth=1.2, label='Actual')

    lo, hi = f'lo_{level}', f'hi_{level}'
    if lo in forecast.columns and hi in forecast.columns:
        ax.fill_between(forecast[date_col], forecast[lo], forecast[hi],
                        color=theme.BAND, alpha=0.8, label=f'{level}% interval')

    for model in models or []:
        if model not in forecast.columns:
            raise ValueError(f"forecast has no '{model}' column")
        ax.plot(forecast[date_col], forecast[model], linewidth=1, linestyle='--',
                color=theme.MODEL_COLORS.get(model, theme.MUTED), label=model)

    ax.plot(forecast[date_col], forecast['ensemble'], color=theme.PRIMARY, linewidth=2, label='Ensemble')

    ax.set_title(title or str(history.name or 'Forecast'), fontsize=11)
    ax.set_ylabel('Sales')
    ax.legend(loc='upper left', fontsize=8, frameon=False)
    theme.style_axis(ax)
    fig.tight_layout()
    if show:
        plt.show()
    return fig


def plot_weights(
    weights: pd.Series,
    title: str = 'Ensemble weights',
    figsize: tuple = (7, 3.5),
    show: bool = False
):
    """Bar chart of ensemble weights, largest first."""
    if isinstance(weights, pd.DataFrame):
        # series-scope weights: show the average
        weights = weights.mean(axis=0)
    weights = weights.sort_values(ascending=False)

    fig, ax = plt.subplots(figsize=figsize)
    colors = [theme.MODEL_COLORS.get(m, theme.MUTED) for m in weights.index]
    ax.bar(weights.index.astype(str).tolist(), weights.to_numpy(), color=colors)
    for x, w in enumerate(weights.to_numpy()):
        ax.text(x, w, f"{w:.2f}", ha='center', va='bottom', fontsize=8)
    ax.set_ylim(0, max(1.0, float(weights.max()) * 1.15))
    ax.set_ylabel('Weight')
    ax.set_title(title, fontsize=11)
    theme.style_axis(ax)
    fig.tight_layout()
    if show:
        plt.show()
    return fig


__all__ = ['plot_forecast', 'plot_weights']
