"""
그룹 비교 그래프

병합/집계된 통계 테이블로 실험군 간 지표를 비교한다.
- 막대: 평균 ± SD 또는 SE
- 상자: 사분위 상자
두 그래프 모두 개별 관측값을 jitter 점으로 겹쳐 그린다.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.colors import LinearSegmentedColormap, is_color_like, to_hex
from matplotlib.figure import Figure

from ..exceptions import InvalidInputTypeError, MissingColumnError, UnsupportedMethodError
from .plots import DEFAULT_STYLE, save_figure

_logger = logging.getLogger(__name__)

# 학술지 스타일 팔레트
PALETTES = {
    'npg': ['#E64B35', '#4DBBD5', '#00A087', '#3C5488', '#F39B7F',
            '#8491B4', '#91D1C2', '#DC0000', '#7E6148', '#B09C85'],
    'jco': ['#0073C2', '#EFC000', '#868686', '#CD534C', '#7AA6DC',
            '#003C67', '#8F7700', '#3B3B3B', '#A73030', '#4A6990'],
}

ERROR_BARS = ('mean_sd', 'mean_se')


def interpolate_colors(colors: Sequence[str], n: int) -> List[str]:
    """색 목록을 선형 보간해 n개로 확장"""
    if n <= 0:
        return []
    if len(colors) == 1:
        return [to_hex(colors[0])] * n
    cmap = LinearSegmentedColormap.from_list('interp', list(colors), N=n)
    return [to_hex(cmap(i)) for i in range(n)]


def resolve_palette(palette: Union[str, Sequence[str]], n: int) -> List[str]:
    """
    그룹 수에 맞는 색 목록

    Args:
        palette: 'npg' / 'jco' 또는 색 목록
        n: 필요한 색 수

    팔레트 색이 부족하면 보간해 n개를 만든다.
    """
    if isinstance(palette, str):
        key = palette.lower()
        if key not in PALETTES:
            raise UnsupportedMethodError(
                f"알 수 없는 팔레트: {palette!r} (지원: {tuple(PALETTES)})")
        base = PALETTES[key]
    else:
        base = list(palette)
        if not base:
            raise InvalidInputTypeError("색 목록이 비어 있습니다")
        bad = [c for c in base if not is_color_like(c)]
        if bad:
            raise InvalidInputTypeError(f"색으로 해석할 수 없는 값: {bad}")

    if n <= len(base):
        return list(base[:n])

    _logger.info(f"그룹 수({n})가 팔레트 색 수({len(base)})보다 많아 보간합니다.")
    return interpolate_colors(base, n)


def _prepare(data: pd.DataFrame, y_var: str, x_var: str,
             fill_var: Optional[str]):
    if not isinstance(data, pd.DataFrame):
        raise InvalidInputTypeError("data는 DataFrame이어야 합니다")
    fill_var = fill_var or x_var
    for col in (y_var, x_var, fill_var):
        if col not in data.columns:
            raise MissingColumnError(f"컬럼 '{col}'이(가) data에 없습니다")

    df = data[list(dict.fromkeys([x_var, fill_var, y_var]))].copy()
    df[y_var] = pd.to_numeric(df[y_var], errors='coerce')
    df = df.dropna(subset=[x_var, fill_var])

    x_levels = list(pd.unique(df[x_var]))
    fill_levels = list(pd.unique(df[fill_var]))
    if isinstance(df[x_var].dtype, pd.CategoricalDtype):
        x_levels = [c for c in df[x_var].cat.categories if c in set(x_levels)]
    return df, fill_var, x_levels, fill_levels


def _dodge_positions(n_fill: int, same: bool, dodge_width: float):
    """(x 인덱스, fill 인덱스) → 중심 좌표, 막대 폭"""
    if same or n_fill == 1:
        return (lambda xi, fi: float(xi)), dodge_width * 0.875
    width = dodge_width / n_fill
    return (lambda xi, fi: xi - dodge_width / 2 + width * (fi + 0.5)), width * 0.875


def _jitter_points(ax, values: np.ndarray, center: float, spread: float,
                   color: str, rng, size: float, alpha: float):
    xs = center + rng.uniform(-spread / 2, spread / 2, size=values.size)
    ax.scatter(xs, values, s=size ** 2 * 6, facecolors=color,
               edgecolors='black', linewidths=0.5, alpha=alpha, zorder=3)


def _finish_axes(ax, x_levels, x_var: str, y_var: str, handles, fill_var, x_var_same):
    ax.set_xticks(range(len(x_levels)))
    ax.set_xticklabels([str(v) for v in x_levels])
    ax.set_xlabel(x_var)
    ax.set_ylabel(f"Thermal Metric: {y_var}")
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)
    if handles and not x_var_same:
        ax.legend(handles=handles, title=fill_var, frameon=False,
                  loc='upper left', bbox_to_anchor=(1.0, 1.0))


def viz_thermal_barplot(data: pd.DataFrame,
                        y_var: str,
                        x_var: str,
                        fill_var: Optional[str] = None,
                        error_bar: str = "mean_sd",
                        add_points: bool = True,
                        point_size: float = 1.5,
                        point_alpha: float = 0.6,
                        palette: Union[str, Sequence[str]] = "npg",
                        seed: Optional[int] = 0,
                        dpi: int = 150,
                        save_path: Optional[Union[str, Path]] = None) -> Figure:
    """
    그룹 막대 그래프 (평균 ± SD/SE)

    Args:
        data: 병합/집계된 통계 테이블
        y_var: 비교할 지표 컬럼 (예: 'Mean')
        x_var: 그룹 컬럼
        fill_var: 색 구분 컬럼 (없으면 x_var)
        error_bar: 'mean_sd' 또는 'mean_se'
        add_points: 개별 관측값 표시
        palette: 'npg', 'jco' 또는 색 목록
        seed: jitter 난수 시드

    Raises:
        MissingColumnError: 컬럼 없음
        UnsupportedMethodError: 팔레트/오차 막대 종류 오류
    """
    if error_bar not in ERROR_BARS:
        raise UnsupportedMethodError(
            f"지원하지 않는 오차 막대: {error_bar!r} (지원: {ERROR_BARS})")
    df, fill_var, x_levels, fill_levels = _prepare(data, y_var, x_var, fill_var)
    colors = dict(zip(fill_levels, resolve_palette(palette, len(fill_levels))))
    same = fill_var == x_var
    pos, width = _dodge_positions(len(fill_levels), same, 0.8)
    rng = np.random.default_rng(seed)

    with plt.rc_context(DEFAULT_STYLE):
        fig, ax = plt.subplots(figsize=(max(4.0, 1.2 * len(x_levels) + 2), 4.5), dpi=dpi)
        handles = {}
        top = 0.0
        for xi, xv in enumerate(x_levels):
            for fi, fv in enumerate(fill_levels):
                vals = df.loc[(df[x_var] == xv) & (df[fill_var] == fv), y_var].dropna().to_numpy()
                if vals.size == 0:
                    continue
                mean = float(vals.mean())
                sd = float(vals.std(ddof=1)) if vals.size > 1 else 0.0
                err = sd if error_bar == 'mean_sd' else sd / np.sqrt(vals.size)
                center = pos(xi, fi)

                bar = ax.bar(center, mean, width=width, color=colors[fv],
                             edgecolor='black', alpha=0.8, zorder=2)
                ax.errorbar(center, mean, yerr=err, color='black',
                            capsize=4, linewidth=0.8, zorder=4)
                handles.setdefault(fv, bar[0])
                if add_points:
                    _jitter_points(ax, vals, center, width * 0.5, colors[fv],
                                   rng, point_size, point_alpha)
                top = max(top, mean + err, float(vals.max()) if add_points else 0.0)

        for fv, h in handles.items():
            h.set_label(str(fv))
        if top > 0:
            ax.set_ylim(0, top * 1.15)
        _finish_axes(ax, x_levels, x_var, y_var, list(handles.values()), fill_var, same)
        fig.tight_layout()

    _logger.info(f"막대 그래프: {y_var} ~ {x_var} ({len(x_levels)}개 그룹)")
    save_figure(fig, save_path, dpi)
    return fig


def viz_thermal_boxplot(data: pd.DataFrame,
                        y_var: str,
                        x_var: str,
                        fill_var: Optional[str] = None,
                        add_points: bool = True,
                        point_size: float = 1.5,
                        point_alpha: float = 0.6,
                        palette: Union[str, Sequence[str]] = "npg",
                        seed: Optional[int] = 0,
                        dpi: int = 150,
                        save_path: Optional[Union[str, Path]] = None) -> Figure:
    """
    그룹 상자 그림

    개별 점을 표시할 때는 이상치 점을 숨겨 같은 값이 두 번 찍히지 않게 한다.
    """
    df, fill_var, x_levels, fill_levels = _prepare(data, y_var, x_var, fill_var)
    colors = dict(zip(fill_levels, resolve_palette(palette, len(fill_levels))))
    same = fill_var == x_var
    pos, width = _dodge_positions(len(fill_levels), same, 0.7)
    rng = np.random.default_rng(seed)

    with plt.rc_context(DEFAULT_STYLE):
        fig, ax = plt.subplots(figsize=(max(4.0, 1.2 * len(x_levels) + 2), 4.5), dpi=dpi)
        handles = {}
        for xi, xv in enumerate(x_levels):
            for fi, fv in enumerate(fill_levels):
                vals = df.loc[(df[x_var] == xv) & (df[fill_var] == fv), y_var].dropna().to_numpy()
                if vals.size == 0:
                    continue
                center = pos(xi, fi)
                bp = ax.boxplot(vals, positions=[center], widths=width,
                                patch_artist=True, showfliers=not add_points,
                                medianprops=dict(color='black'),
                                manage_ticks=False)
                box = bp['boxes'][0]
                box.set_facecolor(colors[fv])
                box.set_alpha(0.8)
                handles.setdefault(fv, box)
                if add_points:
                    _jitter_points(ax, vals, center, width * 0.5, colors[fv],
                                   rng, point_size, point_alpha)

        for fv, h in handles.items():
            h.set_label(str(fv))
        ax.margins(y=0.1)
        _finish_axes(ax, x_levels, x_var, y_var, list(handles.values()), fill_var, same)
        fig.tight_layout()

    _logger.info(f"상자 그림: {y_var} ~ {x_var} ({len(x_levels)}개 그룹)")
    save_figure(fig, save_path, dpi)
    return fig
