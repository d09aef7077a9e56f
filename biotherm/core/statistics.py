"""
온도 분포 통계 모듈

ROI(비결측) 픽셀의 기술 통계와 커널 밀도 최빈값(Peak_Density) 계산.

SD는 표본 표준편차(ddof=1), 분위수는 선형 보간.
커널 밀도 대역폭은 Silverman 경험식(nrd0):
    bw = 0.9 * min(SD, IQR/1.34) * n^(-1/5)
"""

import logging
import numpy as np
from scipy import stats as sp_stats
from typing import Dict, Optional, Tuple

from ..models.thermal import ThermalImage, ensure_thermal

_logger = logging.getLogger(__name__)

METRIC_NAMES = ('Min', 'Max', 'Mean', 'Median', 'SD',
                'Q25', 'Q75', 'IQR', 'CV', 'Peak_Density')

MISSING = float('nan')

# 밀도 평가 구간: [min - cut*bw, max + cut*bw]
DENSITY_POINTS = 512
DENSITY_CUT = 3.0


def _clean(values: np.ndarray) -> np.ndarray:
    vals = np.asarray(values, dtype=np.float64).ravel()
    return vals[np.isfinite(vals)]


def bandwidth_nrd0(values: np.ndarray) -> float:
    """Silverman 경험식 대역폭 (값이 2개 미만이면 ValueError)"""
    vals = _clean(values)
    n = vals.size
    if n < 2:
        raise ValueError("대역폭 계산에는 2개 이상의 값이 필요합니다")

    hi = float(np.std(vals, ddof=1))
    q75, q25 = np.percentile(vals, [75, 25])
    lo = min(hi, float(q75 - q25) / 1.34)
    if not lo:
        lo = hi or abs(float(vals[0])) or 1.0
    return 0.9 * lo * n ** (-0.2)


def density_estimate(values: np.ndarray,
                     n_points: int = DENSITY_POINTS,
                     cut: float = DENSITY_CUT) -> Tuple[np.ndarray, np.ndarray]:
    """
    가우시안 커널 밀도 추정

    Args:
        values: 1D 값 (NaN 무시)
        n_points: 평가 격자 점 수
        cut: 격자 확장 폭 (대역폭 배수)

    Returns:
        (x 격자, 밀도)
    """
    vals = _clean(values)
    if vals.size < 2:
        raise ValueError("밀도 추정에는 2개 이상의 값이 필요합니다")

    bw = bandwidth_nrd0(vals)
    grid = np.linspace(vals.min() - cut * bw, vals.max() + cut * bw, n_points)

    sd = float(np.std(vals, ddof=1))
    if sd > 0:
        # gaussian_kde의 커널 폭 = 데이터 SD * factor
        kde = sp_stats.gaussian_kde(vals, bw_method=bw / sd)
        dens = kde(grid)
    else:
        # 상수 데이터: 단일 커널
        dens = sp_stats.norm.pdf(grid, loc=vals[0], scale=bw)

    return grid, dens


def density_peak(values: np.ndarray) -> float:
    """밀도 최대 지점의 x (커널 밀도 최빈값)"""
    vals = _clean(values)
    if vals.size == 0:
        return MISSING
    if vals.size == 1:
        return float(vals[0])
    grid, dens = density_estimate(vals)
    return float(grid[int(np.argmax(dens))])


def empty_statistics() -> Dict[str, float]:
    """모든 지표가 결측인 통계"""
    return {name: MISSING for name in METRIC_NAMES}


def compute_statistics(values: np.ndarray, label: Optional[str] = None) -> Dict[str, float]:
    """
    1D 값 배열의 기술 통계

    유효 값이 없으면 모든 지표를 NaN으로 반환하고 경고를 남긴다.
    """
    vals = _clean(values)
    n = vals.size

    if n == 0:
        where = f" ({label})" if label else ""
        _logger.warning(f"분석할 유효 픽셀이 없습니다{where}. 통계는 NaN으로 기록됩니다.")
        return empty_statistics()

    q25, median, q75 = np.percentile(vals, [25, 50, 75])
    mean = float(np.mean(vals))
    sd = float(np.std(vals, ddof=1)) if n > 1 else MISSING
    cv = sd / mean if (n > 1 and mean != 0) else MISSING

    return {
        'Min': float(vals.min()),
        'Max': float(vals.max()),
        'Mean': mean,
        'Median': float(median),
        'SD': sd,
        'Q25': float(q25),
        'Q75': float(q75),
        'IQR': float(q75 - q25),
        'CV': cv,
        'Peak_Density': density_peak(vals),
    }


def analyze_thermal_stats(img: ThermalImage, use_processed: bool = True) -> ThermalImage:
    """
    레코드 통계 계산

    선택 행렬(processed/raw)의 비결측 픽셀로 통계를 계산해
    stats를 통째로 교체한 복사본을 반환.
    """
    ensure_thermal(img, "img")
    values = img.valid_values(use_processed)
    result = compute_statistics(values, label=img.filename)

    _logger.debug(
        f"통계 계산: {img.filename} "
        f"({'processed' if use_processed else 'raw'}, n={values.size})")
    return img.with_stats(result)
