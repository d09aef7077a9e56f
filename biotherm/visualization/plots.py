"""
단일 레코드 시각화

matplotlib 기반 온도 분포 그림.
모든 함수는 Figure를 반환하며, save_path가 주어지면 파일로도 저장한다.

Usage:
    from biotherm.visualization import plot_thermal_heatmap, plot_thermal_density

    fig = plot_thermal_heatmap(img, palette="inferno")
    fig = plot_thermal_density(img, show_min=False, save_path="density.png")
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import matplotlib
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from mpl_toolkits.axes_grid1 import make_axes_locatable

from ..exceptions import EmptyInputError, UnsupportedMethodError
from ..models.thermal import ThermalImage, ensure_thermal
from ..core.statistics import density_estimate

_logger = logging.getLogger(__name__)

TEMP_LABEL = "Temp (°C)"

DEFAULT_STYLE = {
    'figure.facecolor': 'white',
    'axes.facecolor': 'white',
    'font.size': 11,
    'axes.titlesize': 13,
    'axes.labelsize': 11,
    'xtick.labelsize': 9,
    'ytick.labelsize': 9,
}


def get_colormap(palette: str):
    """이름으로 colormap 조회 (NaN은 투명)"""
    try:
        cmap = matplotlib.colormaps[palette]
    except KeyError:
        raise UnsupportedMethodError(f"알 수 없는 colormap: {palette!r}") from None
    cmap = cmap.copy()
    cmap.set_bad((0, 0, 0, 0))
    return cmap


def save_figure(fig: Figure, save_path: Optional[Union[str, Path]], dpi: int = 150):
    """save_path가 있으면 PNG 등으로 저장"""
    if not save_path:
        return
    path = Path(save_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(str(path), dpi=dpi, bbox_inches='tight',
                facecolor='white', edgecolor='none')
    _logger.info(f"그림 저장: {path}")


def add_colorbar(fig: Figure, ax, mappable, label: str = TEMP_LABEL):
    """축 옆에 정렬된 colorbar 추가"""
    divider = make_axes_locatable(ax)
    cax = divider.append_axes("right", size="5%", pad=0.08)
    cb = fig.colorbar(mappable, cax=cax)
    cb.set_label(label, fontsize=10)
    cb.ax.tick_params(labelsize=9)
    return cb


def _value_range(mat: np.ndarray):
    finite = mat[np.isfinite(mat)]
    if finite.size == 0:
        return None, None
    return float(finite.min()), float(finite.max())


def plot_thermal_heatmap(img: ThermalImage,
                         use_processed: bool = True,
                         palette: str = "inferno",
                         title: Optional[str] = None,
                         dpi: int = 150,
                         save_path: Optional[Union[str, Path]] = None) -> Figure:
    """
    온도 히트맵

    행렬 방향 그대로(0행이 위) 표시하고 결측 픽셀은 투명 처리.
    """
    ensure_thermal(img, "img")
    mat = img.select(use_processed)
    cmap = get_colormap(palette)
    vmin, vmax = _value_range(mat)
    if vmin is None:
        _logger.warning(f"{img.filename}: 표시할 유효 픽셀이 없습니다.")

    with plt.rc_context(DEFAULT_STYLE):
        fig, ax = plt.subplots(figsize=(6, 5), dpi=dpi)
        im = ax.imshow(np.ma.masked_invalid(mat), cmap=cmap,
                       vmin=vmin, vmax=vmax, interpolation='nearest',
                       aspect='equal')
        ax.set_title(title if title is not None else f"Thermal: {img.filename}",
                     fontweight='bold')
        ax.set_axis_off()
        add_colorbar(fig, ax, im)
        fig.tight_layout()

    save_figure(fig, save_path, dpi)
    return fig


def plot_thermal_density(img: ThermalImage,
                         use_processed: bool = True,
                         show_peak: bool = True,
                         show_max: bool = True,
                         show_min: bool = True,
                         digits: int = 2,
                         color: str = "#3C5488",
                         point_color: str = "red",
                         dpi: int = 150,
                         save_path: Optional[Union[str, Path]] = None) -> Figure:
    """
    온도 분포 밀도 곡선

    커널 밀도 곡선 위에 최빈값(Peak), 최댓값, 최솟값 위치를 표시.

    Raises:
        EmptyInputError: 유효 픽셀이 2개 미만
    """
    ensure_thermal(img, "img")
    values = img.valid_values(use_processed)
    if values.size < 2:
        raise EmptyInputError(
            f"{img.filename}: 밀도 곡선에 필요한 유효 픽셀이 부족합니다 (n={values.size})")

    grid, dens = density_estimate(values)

    landmarks = []
    if show_peak:
        i = int(np.argmax(dens))
        landmarks.append(("Peak", grid[i], dens[i]))
    if show_max:
        v = float(values.max())
        landmarks.append(("Max", v, float(np.interp(v, grid, dens))))
    if show_min:
        v = float(values.min())
        landmarks.append(("Min", v, float(np.interp(v, grid, dens))))

    with plt.rc_context(DEFAULT_STYLE):
        fig, ax = plt.subplots(figsize=(7, 4.5), dpi=dpi)
        ax.fill_between(grid, dens, color=color, alpha=0.35)
        ax.plot(grid, dens, color=color, linewidth=1.5)

        # 라벨이 겹치지 않도록 위아래로 번갈아 배치
        for k, (name, x, y) in enumerate(landmarks):
            ax.scatter([x], [y], color=point_color, s=25, zorder=3)
            offset = 18 if k % 2 == 0 else 34
            ax.annotate(f"{name}: {round(x, digits)}", xy=(x, y),
                        xytext=(0, offset), textcoords='offset points',
                        ha='center', fontsize=9,
                        bbox=dict(boxstyle='round,pad=0.2', fc='white', ec='gray'),
                        arrowprops=dict(arrowstyle='-', color='gray', lw=0.6))

        ax.set_title(f"Temperature Distribution: {img.filename}", fontweight='bold')
        ax.set_xlabel(TEMP_LABEL)
        ax.set_ylabel("Density")
        ax.set_ylim(0, float(dens.max()) * 1.35)
        ax.spines['top'].set_visible(False)
        ax.spines['right'].set_visible(False)
        fig.tight_layout()

    save_figure(fig, save_path, dpi)
    return fig


def plot_thermal_3d(img: ThermalImage,
                    use_processed: bool = True,
                    palette: str = "inferno",
                    dpi: int = 150,
                    save_path: Optional[Union[str, Path]] = None) -> Figure:
    """
    3D 온도 표면

    z축 = 온도. 결측 픽셀은 표면에서 빠진다.

    Raises:
        EmptyInputError: 유효 픽셀 없음
    """
    ensure_thermal(img, "img")
    mat = img.select(use_processed)
    vmin, vmax = _value_range(mat)
    if vmin is None:
        raise EmptyInputError(f"{img.filename}: 표시할 유효 픽셀이 없습니다")

    cmap = get_colormap(palette)
    rows, cols = mat.shape
    xx, yy = np.meshgrid(np.arange(cols), np.arange(rows))

    with plt.rc_context(DEFAULT_STYLE):
        fig = plt.figure(figsize=(8, 6), dpi=dpi)
        ax = fig.add_subplot(projection='3d')
        surf = ax.plot_surface(xx, yy, np.ma.masked_invalid(mat), cmap=cmap,
                               vmin=vmin, vmax=vmax, linewidth=0,
                               antialiased=False)
        ax.set_title(f"3D Thermal View: {img.filename}", fontweight='bold')
        ax.set_xlabel("Width (px)")
        ax.set_ylabel("Height (px)")
        ax.set_zlabel(TEMP_LABEL)
        ax.invert_yaxis()
        fig.colorbar(surf, ax=ax, shrink=0.6, pad=0.1, label=TEMP_LABEL)

    save_figure(fig, save_path, dpi)
    return fig
