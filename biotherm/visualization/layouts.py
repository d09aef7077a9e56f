"""
다중 레코드 배치 시각화

- 몽타주: 같은 크기의 셀 격자에 각 ROI를 가운데 정렬
- 클라우드: 황금각 나선(phyllotaxis) 위에 ROI를 흩뿌린 배치

두 배치 모두 NaN 배경의 단일 캔버스 행렬로 합성한 뒤 히트맵으로 그린다.
"""

import logging
import math
from dataclasses import dataclass, field
from collections.abc import Mapping
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from ..exceptions import EmptyInputError, InvalidInputTypeError
from ..models.thermal import ThermalImage
from .plots import DEFAULT_STYLE, TEMP_LABEL, get_colormap, save_figure, add_colorbar

_logger = logging.getLogger(__name__)

GOLDEN_ANGLE = 2.39996  # rad


@dataclass
class Composite:
    """합성 캔버스 + 라벨 위치 (x=열, y=행)"""
    canvas: np.ndarray
    labels: List[Tuple[str, float, float]] = field(default_factory=list)

    @property
    def n_items(self) -> int:
        return len(self.labels)


@dataclass
class _Crop:
    name: str
    data: np.ndarray

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def width(self) -> int:
        return self.data.shape[1]


def _stem(name: str) -> str:
    return Path(str(name)).stem


def _collect_crops(images: Any, use_processed: bool = True) -> List[_Crop]:
    """유효 픽셀 bounding box로 잘라낸 ROI 목록 (빈 레코드 제외)"""
    if isinstance(images, ThermalImage):
        items = [(images.filename, images)]
    elif isinstance(images, Mapping):
        items = list(images.items())
    elif isinstance(images, (list, tuple)):
        items = [(getattr(obj, 'filename', f"Img {i + 1}"), obj)
                 for i, obj in enumerate(images)]
    else:
        raise InvalidInputTypeError(
            f"ThermalImage의 dict 또는 list가 필요합니다 (받은 타입: {type(images).__name__})")

    if not items:
        raise EmptyInputError("배치할 레코드가 없습니다")

    crops = []
    for key, obj in items:
        if not isinstance(obj, ThermalImage):
            _logger.warning(f"'{key}'은(는) ThermalImage가 아닙니다. 건너뜁니다.")
            continue
        mat = obj.select(use_processed)
        valid = np.isfinite(mat)
        if not valid.any():
            _logger.warning(f"'{key}'에 유효 픽셀이 없습니다. 건너뜁니다.")
            continue
        rows = np.flatnonzero(valid.any(axis=1))
        cols = np.flatnonzero(valid.any(axis=0))
        data = mat[rows[0]:rows[-1] + 1, cols[0]:cols[-1] + 1]
        crops.append(_Crop(name=obj.filename or str(key), data=data))

    if not crops:
        raise EmptyInputError("유효 픽셀이 있는 레코드가 없습니다")
    return crops


def _paste(canvas: np.ndarray, data: np.ndarray, top: int, left: int):
    """유효 픽셀만 덮어쓰기"""
    h, w = data.shape
    region = canvas[top:top + h, left:left + w]
    valid = np.isfinite(data)
    region[valid] = data[valid]


def compose_montage(images: Any,
                    ncol: Optional[int] = None,
                    padding: int = 10,
                    use_processed: bool = True) -> Composite:
    """
    몽타주 합성

    셀 크기 = (가장 큰 ROI 높이/폭) + padding.
    각 ROI는 셀 안에서 floor((max - size) / 2) 만큼 밀어 가운데 정렬.
    ncol이 없으면 ceil(sqrt(n)) 열.
    """
    if padding < 0:
        raise ValueError(f"padding은 0 이상이어야 합니다: {padding}")
    crops = _collect_crops(images, use_processed)
    n = len(crops)

    if ncol is None:
        ncol = int(math.ceil(math.sqrt(n)))
    if ncol < 1:
        raise ValueError(f"ncol은 1 이상이어야 합니다: {ncol}")
    nrow = int(math.ceil(n / ncol))

    max_h = max(c.height for c in crops)
    max_w = max(c.width for c in crops)
    cell_h = max_h + padding
    cell_w = max_w + padding
    _logger.info(f"몽타주 배치: {nrow} x {ncol} | 셀 크기 {cell_w} x {cell_h}")

    canvas = np.full((nrow * cell_h, ncol * cell_w), np.nan)
    labels = []
    for i, crop in enumerate(crops):
        base_y = (i // ncol) * cell_h
        base_x = (i % ncol) * cell_w
        top = base_y + (max_h - crop.height) // 2
        left = base_x + (max_w - crop.width) // 2
        _paste(canvas, crop.data, top, left)
        labels.append((_stem(crop.name), base_x + max_w / 2, base_y))

    return Composite(canvas=canvas, labels=labels)


def phyllotaxis_layout(n: int,
                       step: float,
                       jitter: float = 0.0,
                       seed: Optional[int] = None) -> np.ndarray:
    """
    황금각 나선 좌표

    i번째(1부터) 점: 반지름 step * sqrt(i), 각도 i * 2.39996 rad.
    jitter > 0이면 각 좌표에 [-jitter, jitter] 균등 잡음 추가.

    Returns:
        (n, 2) 배열 [x, y]
    """
    if n < 0:
        raise ValueError(f"n은 0 이상이어야 합니다: {n}")
    i = np.arange(1, n + 1, dtype=np.float64)
    r = step * np.sqrt(i)
    a = i * GOLDEN_ANGLE
    xy = np.column_stack([r * np.cos(a), r * np.sin(a)])

    if jitter > 0 and n > 0:
        rng = np.random.default_rng(seed)
        xy = xy + rng.uniform(-jitter, jitter, size=xy.shape)
    return xy


def compose_cloud(images: Any,
                  spread_factor: float = 1.1,
                  jitter_factor: float = 0.5,
                  seed: Optional[int] = None,
                  use_processed: bool = True) -> Composite:
    """
    클라우드 합성

    step = 2 * (가장 큰 ROI 반지름) * spread_factor.
    ROI 중심을 나선 좌표에 맞춰 붙이고 라벨은 중심 위쪽
    (반지름 * 1.2)에 둔다. 겹치는 픽셀은 나중 ROI가 덮어쓴다.
    """
    crops = _collect_crops(images, use_processed)
    n = len(crops)

    max_radius = max(max(c.height - 1, c.width - 1) / 2 for c in crops)
    step = (max_radius * 2) * spread_factor
    if step <= 0:
        step = 1.0
    centers = phyllotaxis_layout(n, step, jitter=step * jitter_factor, seed=seed)
    _logger.info(f"클라우드 배치: {n}개 객체, step={step:.1f}px")

    # 캔버스 범위 계산
    tops, lefts = [], []
    for crop, (cx, cy) in zip(crops, centers):
        tops.append(int(round(cy - (crop.height - 1) / 2)))
        lefts.append(int(round(cx - (crop.width - 1) / 2)))
    label_margin = int(math.ceil(max_radius * 1.2)) + 1
    min_y = min(tops) - label_margin
    min_x = min(lefts)
    max_y = max(t + c.height for t, c in zip(tops, crops))
    max_x = max(lf + c.width for lf, c in zip(lefts, crops))

    canvas = np.full((max_y - min_y, max_x - min_x), np.nan)
    labels = []
    for crop, top, left, (cx, cy) in zip(crops, tops, lefts, centers):
        _paste(canvas, crop.data, top - min_y, left - min_x)
        labels.append((_stem(crop.name),
                       float(cx - min_x),
                       float(cy - min_y - max_radius * 1.2)))

    return Composite(canvas=canvas, labels=labels)


def _plot_composite(comp: Composite,
                    palette: str,
                    show_labels: bool,
                    text_color: str,
                    text_size: float,
                    label_va: str,
                    dpi: int,
                    save_path: Optional[Union[str, Path]]) -> Figure:
    cmap = get_colormap(palette)
    finite = comp.canvas[np.isfinite(comp.canvas)]
    h, w = comp.canvas.shape
    scale = 10.0 / max(h, w)

    with plt.rc_context(DEFAULT_STYLE):
        fig, ax = plt.subplots(figsize=(max(w * scale, 3) + 1.2, max(h * scale, 3)), dpi=dpi)
        im = ax.imshow(np.ma.masked_invalid(comp.canvas), cmap=cmap,
                       vmin=float(finite.min()), vmax=float(finite.max()),
                       interpolation='nearest', aspect='equal')
        if show_labels:
            for text, x, y in comp.labels:
                ax.text(x, y, text, color=text_color, fontsize=text_size,
                        fontweight='bold', ha='center', va=label_va)
        ax.set_axis_off()
        add_colorbar(fig, ax, im)
        fig.tight_layout()

    save_figure(fig, save_path, dpi)
    return fig


def plot_thermal_montage(images: Any,
                         ncol: Optional[int] = None,
                         padding: int = 10,
                         palette: str = "inferno",
                         text_color: str = "black",
                         text_size: float = 9,
                         use_processed: bool = True,
                         dpi: int = 150,
                         save_path: Optional[Union[str, Path]] = None) -> Figure:
    """몽타주 그림 (파일명 stem 라벨을 셀 위쪽에 표시)"""
    comp = compose_montage(images, ncol=ncol, padding=padding,
                           use_processed=use_processed)
    return _plot_composite(comp, palette, True, text_color, text_size,
                           'top', dpi, save_path)


def plot_thermal_cloud(images: Any,
                       spread_factor: float = 1.1,
                       jitter_factor: float = 0.5,
                       seed: Optional[int] = None,
                       palette: str = "inferno",
                       text_color: str = "black",
                       text_size: float = 8,
                       show_labels: bool = True,
                       use_processed: bool = True,
                       dpi: int = 150,
                       save_path: Optional[Union[str, Path]] = None) -> Figure:
    """나선 클라우드 그림"""
    comp = compose_cloud(images, spread_factor=spread_factor,
                         jitter_factor=jitter_factor, seed=seed,
                         use_processed=use_processed)
    return _plot_composite(comp, palette, show_labels, text_color, text_size,
                           'center', dpi, save_path)
