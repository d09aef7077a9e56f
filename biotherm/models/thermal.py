"""
열화상 레코드 데이터 모델

raw/processed 두 행렬과 메타데이터, 통계를 하나로 묶는다.
모든 갱신은 복사본을 반환하며 processed가 바뀌면 stats는 초기화된다.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple, Any
import numpy as np

from ..exceptions import InvalidInputTypeError


def as_matrix(data: Any, name: str = "matrix") -> np.ndarray:
    """2D float64 행렬로 변환 (검증 포함)"""
    try:
        mat = np.array(data, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputTypeError(
            f"{name}: 숫자 행렬로 변환할 수 없습니다 ({e})") from e

    if mat.ndim != 2:
        raise InvalidInputTypeError(
            f"{name}: 2D 행렬이어야 합니다 (ndim={mat.ndim})")
    if mat.size == 0:
        raise InvalidInputTypeError(f"{name}: 빈 행렬입니다")
    return mat


def _frozen(mat: np.ndarray) -> np.ndarray:
    mat.flags.writeable = False
    return mat


@dataclass
class ThermalMeta:
    """레코드 메타데이터"""
    filename: str
    fullpath: Optional[str] = None
    dims: Tuple[int, int] = (0, 0)

    def __str__(self) -> str:
        return f"{self.filename} ({self.dims[0]}x{self.dims[1]})"


@dataclass
class ThermalImage:
    """
    열화상 레코드

    Attributes:
        raw: 원본 온도 행렬 (읽기 전용)
        processed: 마스킹 반영 행렬 (배경 = NaN)
        meta: 파일명, 경로, 크기
        stats: 지표명 → 값 (processed 변경 시 None)
    """
    raw: np.ndarray
    processed: np.ndarray
    meta: ThermalMeta
    stats: Optional[Dict[str, float]] = field(default=None)

    def __post_init__(self):
        # 이미 고정된 float64 행렬은 복사 없이 공유
        if not (isinstance(self.raw, np.ndarray)
                and self.raw.dtype == np.float64
                and self.raw.ndim == 2
                and not self.raw.flags.writeable):
            self.raw = _frozen(as_matrix(self.raw, "raw"))
        if not (isinstance(self.processed, np.ndarray)
                and self.processed.dtype == np.float64
                and self.processed.ndim == 2
                and not self.processed.flags.writeable):
            self.processed = _frozen(as_matrix(self.processed, "processed"))

        if self.raw.shape != self.processed.shape:
            raise InvalidInputTypeError(
                f"raw {self.raw.shape}와 processed {self.processed.shape}의 "
                f"크기가 다릅니다")

        if not isinstance(self.meta, ThermalMeta):
            raise InvalidInputTypeError("meta는 ThermalMeta여야 합니다")
        if tuple(self.meta.dims) != self.raw.shape:
            self.meta = replace(self.meta, dims=tuple(self.raw.shape))

        if self.stats is not None:
            self.stats = dict(self.stats)

    def __setstate__(self, state):
        # 역직렬화된 배열은 쓰기 가능으로 복원되므로 다시 고정
        self.__dict__.update(state)
        for key in ('raw', 'processed'):
            arr = self.__dict__.get(key)
            if isinstance(arr, np.ndarray) and arr.flags.writeable:
                arr.flags.writeable = False

    # ── 조회 ──

    @property
    def filename(self) -> str:
        return self.meta.filename

    @property
    def shape(self) -> Tuple[int, int]:
        return self.raw.shape

    @property
    def has_stats(self) -> bool:
        return self.stats is not None

    def select(self, use_processed: bool = True) -> np.ndarray:
        """raw / processed 행렬 선택"""
        return self.processed if use_processed else self.raw

    def valid_values(self, use_processed: bool = True) -> np.ndarray:
        """결측(NaN)을 제외한 1D 값 배열"""
        mat = self.select(use_processed)
        return mat[np.isfinite(mat)]

    def n_valid(self, use_processed: bool = True) -> int:
        return int(np.count_nonzero(np.isfinite(self.select(use_processed))))

    # ── 갱신 (복사본 반환) ──

    def with_processed(self, matrix: np.ndarray) -> 'ThermalImage':
        """processed 교체 + stats 초기화"""
        mat = as_matrix(matrix, "processed")
        if mat.shape != self.raw.shape:
            raise InvalidInputTypeError(
                f"processed 크기 {mat.shape}가 raw {self.raw.shape}와 다릅니다")
        return replace(self, processed=_frozen(mat), stats=None)

    def with_stats(self, stats: Optional[Dict[str, float]]) -> 'ThermalImage':
        """stats 교체 (행렬 공유)"""
        return replace(self, stats=None if stats is None else dict(stats))

    def __repr__(self) -> str:
        n_valid = self.n_valid(True)
        return (f"ThermalImage(filename={self.meta.filename!r}, "
                f"dims={self.shape}, valid={n_valid}/{self.raw.size}, "
                f"stats={'yes' if self.has_stats else 'no'})")


def new_thermal(matrix: Any, filename: str,
                fullpath: Optional[str] = None) -> ThermalImage:
    """행렬 하나로 raw = processed 레코드 생성"""
    mat = _frozen(as_matrix(matrix, "matrix"))
    return ThermalImage(
        raw=mat,
        processed=mat,
        meta=ThermalMeta(filename=filename, fullpath=fullpath,
                         dims=tuple(mat.shape)),
    )


def ensure_thermal(obj: Any, name: str = "img") -> ThermalImage:
    """ThermalImage 타입 검증"""
    if not isinstance(obj, ThermalImage):
        raise InvalidInputTypeError(
            f"{name}: ThermalImage 객체가 필요합니다 (받은 타입: {type(obj).__name__})")
    return obj
