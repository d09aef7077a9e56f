"""
배경 마스킹 모듈

피사체(동물)와 배경 분리용.
정규화 → Otsu 임계값 → 모폴로지(open/close) → 최대 연결 성분 유지 순으로
마스크를 만들고, 마스크 밖 픽셀을 NaN으로 치환한다.
"""

import logging
import numbers
import numpy as np
import cv2
from typing import Sequence, Tuple

from ..exceptions import EmptyInputError, InvalidInputTypeError, UnsupportedMethodError
from ..models.reports import RoiMaskResult
from ..models.thermal import ThermalImage, ensure_thermal, as_matrix

_logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ('otsu',)
SUPPORTED_CONNECTIVITY = (4, 8)


def normalize_matrix(matrix: np.ndarray) -> np.ndarray:
    """
    유효 픽셀의 min/max 기준 [0, 1] 선형 정규화

    NaN은 그대로 유지. 모든 값이 같으면 0으로 채운다.

    Raises:
        EmptyInputError: 유효 픽셀이 하나도 없을 때
    """
    mat = np.asarray(matrix, dtype=np.float64)
    finite = np.isfinite(mat)
    if not finite.any():
        raise EmptyInputError("정규화할 유효 픽셀이 없습니다 (전체 NaN)")

    lo = float(mat[finite].min())
    hi = float(mat[finite].max())

    norm = np.full(mat.shape, np.nan)
    if hi > lo:
        norm[finite] = (mat[finite] - lo) / (hi - lo)
    else:
        norm[finite] = 0.0
    return norm


def _quantize(norm: np.ndarray) -> np.ndarray:
    """[0, 1] → 0~255 uint8 (NaN은 0)"""
    q = np.nan_to_num(norm, nan=0.0)
    return np.round(np.clip(q, 0.0, 1.0) * 255).astype(np.uint8)


def _otsu_level(levels: np.ndarray) -> int:
    """uint8 값 배열의 Otsu 레벨 (값 > level 이 전경)"""
    row = np.ascontiguousarray(levels.reshape(1, -1))
    level, _ = cv2.threshold(row, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    return int(level)


def compute_otsu_threshold(values: np.ndarray) -> float:
    """
    정규화 값([0, 1])에 대한 Otsu 전역 임계값

    256-bin 히스토그램에서 클래스 간 분산을 최대화하는 레벨을 찾아
    [0, 1] 스케일로 반환.
    """
    vals = np.asarray(values, dtype=np.float64).ravel()
    vals = vals[np.isfinite(vals)]
    if vals.size == 0:
        raise EmptyInputError("Otsu 임계값 계산에 사용할 값이 없습니다")
    return _otsu_level(_quantize(vals)) / 255.0


def _make_brush(brush_size: int) -> np.ndarray:
    """원판(disc) 구조 요소"""
    if brush_size < 1:
        raise ValueError(f"brush_size는 1 이상이어야 합니다: {brush_size}")
    return cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (brush_size, brush_size))


def _check_connectivity(connectivity: int):
    if connectivity not in SUPPORTED_CONNECTIVITY:
        raise UnsupportedMethodError(
            f"connectivity는 4 또는 8이어야 합니다: {connectivity}")


def label_components(mask: np.ndarray,
                     connectivity: int = 8) -> Tuple[int, np.ndarray, np.ndarray]:
    """
    연결 성분 라벨링

    Returns:
        (성분 수(배경 제외), 라벨 행렬, 성분별 면적 배열)
        면적 배열의 i번째 값은 라벨 i+1의 픽셀 수
    """
    _check_connectivity(connectivity)
    mask_u8 = (np.asarray(mask) > 0).astype(np.uint8)
    n_labels, labels, stats, _ = cv2.connectedComponentsWithStats(
        mask_u8, connectivity=connectivity, ltype=cv2.CV_32S)
    areas = stats[1:, cv2.CC_STAT_AREA].astype(np.int64)
    return n_labels - 1, labels, areas


def largest_component(mask: np.ndarray,
                      connectivity: int = 8) -> Tuple[np.ndarray, int, int, int]:
    """
    최대 면적 연결 성분만 남긴 마스크

    동일 면적이면 라벨 번호가 작은 쪽을 선택.

    Returns:
        (마스크, 성분 수, 선택 라벨(없으면 0), 선택 면적)
    """
    n_components, labels, areas = label_components(mask, connectivity)
    if n_components == 0:
        return np.zeros(labels.shape, dtype=bool), 0, 0, 0

    kept = int(np.argmax(areas)) + 1
    return labels == kept, n_components, kept, int(areas[kept - 1])


def compute_roi_mask(matrix: np.ndarray,
                     method: str = 'otsu',
                     keep_largest: bool = True,
                     morphology: bool = True,
                     brush_size: int = 5,
                     connectivity: int = 8) -> RoiMaskResult:
    """
    온도 행렬에서 피사체 마스크 계산

    Parameters
    ----------
    method : str
        임계값 방법. 'otsu'만 지원.
    keep_largest : bool
        최대 연결 성분만 유지 (동물이 가장 큰 열원이라는 가정)
    morphology : bool
        opening(잡음 제거) 후 closing(내부 홀 메움)
    brush_size : int
        원판 구조 요소 지름(px)
    connectivity : int
        4 또는 8 연결
    """
    if method not in SUPPORTED_METHODS:
        raise UnsupportedMethodError(
            f"지원하지 않는 임계값 방법: {method!r} (지원: {SUPPORTED_METHODS})")
    _check_connectivity(connectivity)

    mat = as_matrix(matrix, "matrix")
    norm = normalize_matrix(mat)
    valid = np.isfinite(norm)

    # 1. Otsu 임계값
    q = _quantize(norm)
    level = _otsu_level(q[valid])
    mask = ((q > level) & valid).astype(np.uint8) * 255

    # 2. 모폴로지
    if morphology:
        kernel = _make_brush(brush_size)
        mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel)
        mask = cv2.morphologyEx(mask, cv2.MORPH_CLOSE, kernel)

    mask_bool = mask > 0
    foreground_before = int(np.count_nonzero(mask_bool))

    # 3. 연결 성분 필터
    if keep_largest:
        final, n_components, kept_label, kept_area = largest_component(
            mask_bool, connectivity)
        if n_components == 0:
            _logger.warning("임계값 처리 후 검출된 객체가 없습니다. 전체를 배경으로 처리합니다.")
        else:
            _logger.info(
                f"자동 세그멘테이션: 최대 객체 유지 ({kept_area} px, "
                f"전체 {n_components}개 성분)")
    else:
        n_components, _, _ = label_components(mask_bool, connectivity)
        final, kept_label, kept_area = mask_bool, None, foreground_before
        if n_components == 0:
            _logger.warning("임계값 처리 후 검출된 객체가 없습니다.")

    return RoiMaskResult(
        mask=final,
        threshold=level / 255.0,
        n_components=n_components,
        kept_label=kept_label,
        kept_area=kept_area,
        foreground_before=foreground_before,
    )


def roi_segment(img: ThermalImage,
                method: str = 'otsu',
                keep_largest: bool = True,
                morphology: bool = True,
                brush_size: int = 5,
                connectivity: int = 8) -> ThermalImage:
    """
    자동 ROI 세그멘테이션

    processed 행렬 기준으로 마스크를 계산하고 배경을 NaN으로 치환한
    복사본을 반환한다. 기존 통계는 초기화된다.

    Raises:
        EmptyInputError: processed 행렬이 전부 NaN
        UnsupportedMethodError: method != 'otsu'
    """
    ensure_thermal(img, "img")
    result = compute_roi_mask(img.processed, method=method,
                              keep_largest=keep_largest,
                              morphology=morphology,
                              brush_size=brush_size,
                              connectivity=connectivity)

    processed = np.where(result.mask, img.processed, np.nan)
    _logger.debug(f"{img.filename}: {result}")
    return img.with_processed(processed)


def _parse_range(threshold: Sequence[float]) -> Tuple[float, float]:
    try:
        values = list(threshold)
    except TypeError:
        values = None
    if (values is None or len(values) != 2
            or not all(isinstance(v, numbers.Real) and not isinstance(v, bool)
                       for v in values)
            or any(np.isnan(float(v)) for v in values)):
        raise InvalidInputTypeError(
            f"threshold는 (min, max) 형태의 숫자 2개여야 합니다: {threshold!r}")
    lo, hi = sorted(float(v) for v in values)
    return lo, hi


def roi_filter_threshold(img: ThermalImage,
                         threshold: Sequence[float],
                         use_processed: bool = False) -> ThermalImage:
    """
    온도 범위 필터

    [min, max] 포함 범위 밖의 픽셀을 NaN으로 치환.
    한쪽을 열어두려면 -inf / inf 사용.

    Args:
        threshold: (min, max). 순서는 자동 정렬
        use_processed: True면 processed 기준 (누적 마스킹)
    """
    ensure_thermal(img, "img")
    lo, hi = _parse_range(threshold)

    mat = img.select(use_processed)
    with np.errstate(invalid='ignore'):
        keep = (mat >= lo) & (mat <= hi)

    filtered = np.where(keep, mat, np.nan)
    _logger.info(f"ROI 필터 적용: [{lo}, {hi}] 범위 유지 "
                 f"({int(np.count_nonzero(keep))} px)")
    return img.with_processed(filtered)


def keep_largest_region(img: ThermalImage, connectivity: int = 8) -> ThermalImage:
    """
    processed의 유효 픽셀 중 최대 연결 영역만 유지

    범위 필터 후 남은 고립 픽셀 제거용.
    """
    ensure_thermal(img, "img")
    valid = np.isfinite(img.processed)
    mask, n_components, _, kept_area = largest_component(valid, connectivity)

    if n_components == 0:
        _logger.warning(f"{img.filename}: 유효 영역이 없어 정리를 건너뜁니다.")
        return img

    _logger.info(f"잡음 제거: 최대 영역 유지 ({kept_area} px / {n_components}개 영역)")
    return img.with_processed(np.where(mask, img.processed, np.nan))


def get_mask_statistics(img: ThermalImage) -> dict:
    """마스크 통계 정보"""
    ensure_thermal(img, "img")
    total = img.processed.size
    valid = img.n_valid(True)
    return {
        'total_pixels': total,
        'roi_pixels': valid,
        'background_pixels': total - valid,
        'coverage_ratio': valid / total if total > 0 else 0
    }
