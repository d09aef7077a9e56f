"""시각화 모듈"""

from .plots import plot_thermal_heatmap, plot_thermal_density, plot_thermal_3d
from .layouts import (
    Composite,
    compose_montage,
    plot_thermal_montage,
    phyllotaxis_layout,
    compose_cloud,
    plot_thermal_cloud,
)
from .compare import PALETTES, resolve_palette, viz_thermal_barplot, viz_thermal_boxplot

__all__ = [
    'plot_thermal_heatmap',
    'plot_thermal_density',
    'plot_thermal_3d',
    'Composite',
    'compose_montage',
    'plot_thermal_montage',
    'phyllotaxis_layout',
    'compose_cloud',
    'plot_thermal_cloud',
    'PALETTES',
    'resolve_palette',
    'viz_thermal_barplot',
    'viz_thermal_boxplot',
]
