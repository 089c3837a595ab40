"""
Plot Theme
==========

Colours shared by every chart.
"""

from typing import List

PRIMARY = '#2596be'
SECONDARY = '#e07a5f'
ACCENT = '#81b29a'
MUTED = '#9e9e9e'
BAND = '#cfe8f3'

_CYCLE = [
    PRIMARY, SECONDARY, ACCENT, '#f2cc8f', '#3d405b',
    '#6a4c93', '#ff595e', '#8ac926', '#1982c4', '#ffca3a',
]

MODEL_COLORS = {
    'naive': MUTED,
    'snaive': '#3d405b',
    'mean': '#f2cc8f',
    'drift': '#6a4c93',
    'arima': SECONDARY,
    'ets': ACCENT,
    'fourier': '#ff595e',
    'ensemble': PRIMARY,
}

DEMAND_CLASS_COLORS = {
    'Smooth': ACCENT,
    'Erratic': '#f2cc8f',
    'Intermittent': PRIMARY,
    'Lumpy': SECONDARY,
    'Unknown': MUTED,
}


def palette(n: int) -> List[str]:
    """``n`` colours, cycling when n exceeds the base palette."""
    return [_CYCLE[i % len(_CYCLE)] for i in range(n)]


def style_axis(ax):
    """Hide the top and right spines."""
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)
    return ax


__all__ = [
    'PRIMARY',
    'SECONDARY',
    'ACCENT',
    'MUTED',
    'BAND',
    'MODEL_COLORS',
    'DEMAND_CLASS_COLORS',
    'palette',
    'style_axis',
]
