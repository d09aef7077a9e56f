"""분석 결과 데이터 모델"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict
import numpy as np
import pandas as pd

from .thermal import ThermalImage


@dataclass
class RoiMaskResult:
    """ROI 마스크 계산 결과"""
    mask: np.ndarray
    threshold: float
    n_components: int = 0
    kept_label: Optional[int] = None
    kept_area: int = 0
    foreground_before: int = 0

    @property
    def foreground_pixels(self) -> int:
        return int(np.count_nonzero(self.mask))

    @property
    def coverage_ratio(self) -> float:
        if self.mask.size == 0:
            return 0.0
        return self.foreground_pixels / self.mask.size

    def __str__(self) -> str:
        return (f"threshold={self.threshold:.4f}, "
                f"components={self.n_components}, "
                f"kept={self.foreground_pixels}px")


@dataclass
class BatchReport:
    """배치 처리 결과"""
    total_files: int
    loaded_files: int
    failed_files: List[str] = field(default_factory=list)

    records: Dict[str, ThermalImage] = field(default_factory=dict)
    stats_table: pd.DataFrame = field(default_factory=pd.DataFrame)

    parameters: Dict[str, object] = field(default_factory=dict)
    total_processing_time: float = 0.0

    @property
    def n_failed(self) -> int:
        return len(self.failed_files)

    @property
    def success_rate(self) -> float:
        if self.total_files == 0:
            return 0.0
        return self.loaded_files / self.total_files * 100

    @property
    def summary(self) -> str:
        return (
            f"총 {self.total_files}개 파일 중 "
            f"{self.loaded_files}개 처리 ({self.success_rate:.1f}%)\n"
            f"실패: {self.n_failed}개\n"
            f"처리 시간: {self.total_processing_time:.2f}s"
        )
