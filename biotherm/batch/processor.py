"""
배치 처리 모듈

폴더 단위 열화상 일괄 처리: 읽기 → (자동 ROI) → 통계 → 통계 테이블
"""

import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union
from concurrent.futures import ProcessPoolExecutor

from ..exceptions import UnsupportedMethodError
from ..models.thermal import ThermalImage
from ..models.reports import BatchReport
from ..core.masking import roi_segment
from ..core.statistics import analyze_thermal_stats
from ..core.tables import compile_batch_stats
from ..io.loader import get_thermal_files, read_thermal_raw, record_key
from ..io.flir import read_thermal_flir

_logger = logging.getLogger(__name__)

# 리더별 기본 파일명 정규식
READER_PATTERNS = {
    'raw': r'\.raw$',
    'flir': r'\.jpe?g$',
}
READERS = tuple(READER_PATTERNS)


def _analyze(img: ThermalImage,
             segment_params: Optional[Dict[str, Any]],
             use_processed: bool) -> ThermalImage:
    if segment_params is not None:
        img = roi_segment(img, **segment_params)
    return analyze_thermal_stats(img, use_processed=use_processed)


def process_single_file(args: Tuple) -> Tuple[str, Optional[ThermalImage], Optional[str]]:
    """
    단일 파일 처리 (멀티프로세싱용)

    Args:
        args: (file_path, reader, reader_params, segment_params, use_processed)

    Returns:
        (filename, record, error) 튜플. 실패 시 record는 None.
    """
    file_path, reader, reader_params, segment_params, use_processed = args
    name = Path(file_path).name

    try:
        if reader == 'flir':
            img = read_thermal_flir(file_path, **reader_params)
        else:
            img = read_thermal_raw(file_path, **reader_params)
        return name, _analyze(img, segment_params, use_processed), None
    except (OSError, RuntimeError, ValueError, TypeError) as e:
        return name, None, str(e)


class BatchProcessor:
    """
    배치 열화상 처리기

    Usage:
        processor = BatchProcessor(width=160, height=120, n_workers=4)
        report = processor.process_folder("./cohort_A")
        report.stats_table.to_csv("stats.csv")
    """

    def __init__(self,
                 reader: str = 'raw',
                 width: int = 160,
                 height: int = 120,
                 rotate: bool = True,
                 exiftool: str = "exiftool",
                 pattern: Optional[str] = None,
                 recursive: bool = False,
                 segment: bool = True,
                 method: str = 'otsu',
                 keep_largest: bool = True,
                 morphology: bool = True,
                 brush_size: int = 5,
                 connectivity: int = 8,
                 use_processed: bool = True,
                 n_workers: Optional[int] = 1):
        """
        Args:
            reader: 'raw' (float32 격자) 또는 'flir' (라디오메트릭 JPG)
            width, height, rotate: raw 리더 파라미터
            exiftool: FLIR 리더용 ExifTool 경로
            pattern: 파일명 정규식 (None = 리더 기본값, READER_PATTERNS)
            recursive: 하위 폴더 포함
            segment: 자동 ROI 세그멘테이션 적용
            method ~ connectivity: roi_segment 파라미터
            use_processed: 통계에 processed 행렬 사용
            n_workers: 병렬 워커 수 (1 = 순차, None = CPU 코어 수)
        """
        if reader not in READERS:
            raise UnsupportedMethodError(
                f"지원하지 않는 리더: {reader!r} (지원: {READERS})")
        self.reader = reader

        if reader == 'flir':
            self.reader_params = {'exiftool': exiftool}
        else:
            self.reader_params = {'width': width, 'height': height, 'rotate': rotate}

        self.pattern = pattern if pattern is not None else READER_PATTERNS[reader]
        self.recursive = recursive
        self.segment_params = {
            'method': method,
            'keep_largest': keep_largest,
            'morphology': morphology,
            'brush_size': brush_size,
            'connectivity': connectivity,
        } if segment else None
        self.use_processed = use_processed
        self.n_workers = n_workers

    @classmethod
    def from_settings(cls, settings, **overrides) -> 'BatchProcessor':
        """SettingsManager 값으로 생성 (overrides가 우선)"""
        params = {}
        params.update(settings.get_reader_params())
        params.update(settings.get_segment_params())
        params.update(settings.get_batch_params())
        params['exiftool'] = settings.get('exiftool', 'exiftool')
        params.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**params)

    @property
    def parameters(self) -> Dict[str, Any]:
        """리포트/내보내기용 파라미터 요약"""
        params = {
            'reader': self.reader,
            'pattern': self.pattern,
            'recursive': self.recursive,
            'segment': self.segment_params is not None,
            'use_processed': self.use_processed,
            'n_workers': self.n_workers,
        }
        params.update(self.reader_params)
        if self.segment_params is not None:
            params.update(self.segment_params)
        return params

    def process_folder(self,
                       folder_path: Union[str, Path],
                       progress_callback: Optional[Callable[[int, int, str], None]] = None
                       ) -> BatchReport:
        """
        폴더 내 모든 파일 배치 처리

        Args:
            folder_path: 폴더 경로
            progress_callback: 진행 콜백 (current, total, filename)

        Returns:
            BatchReport 객체 (실패 파일은 경고 후 제외)

        Raises:
            DirectoryNotFoundError: 폴더 없음
        """
        start_time = time.time()
        folder = Path(folder_path)

        files = get_thermal_files(folder, self.pattern, self.recursive)
        total = len(files)

        if total == 0:
            _logger.warning(f"{folder}에 일치하는 파일이 없습니다 (pattern={self.pattern!r})")
            return BatchReport(total_files=0, loaded_files=0,
                               parameters=self.parameters)

        _logger.info(f"배치 처리 시작: {total}개 파일 (workers={self.n_workers or 'auto'})")

        jobs = [(str(f), self.reader, self.reader_params,
                 self.segment_params, self.use_processed) for f in files]

        records: Dict[str, ThermalImage] = {}
        failed = []

        for idx, (file_path, result) in enumerate(zip(files, self._run(jobs))):
            name, img, error = result
            if progress_callback:
                progress_callback(idx + 1, total, name)
            if img is None:
                _logger.warning(f"처리 실패: {name} - {error}")
                failed.append(name)
                continue
            records[record_key(file_path, folder, records)] = img

        table = compile_batch_stats(records)
        elapsed = time.time() - start_time

        report = BatchReport(
            total_files=total,
            loaded_files=len(records),
            failed_files=failed,
            records=records,
            stats_table=table,
            parameters=self.parameters,
            total_processing_time=elapsed,
        )
        _logger.info(f"배치 처리 완료: {len(records)}/{total}개 ({elapsed:.2f}s)")
        return report

    def _run(self, jobs):
        """작업 실행 (입력 순서 유지)"""
        if self.n_workers == 1 or len(jobs) <= 1:
            for job in jobs:
                yield process_single_file(job)
            return

        with ProcessPoolExecutor(max_workers=self.n_workers) as executor:
            for result in executor.map(process_single_file, jobs):
                yield result

    def process_images(self,
                       images: Dict[str, ThermalImage],
                       progress_callback: Optional[Callable[[int, int, str], None]] = None
                       ) -> BatchReport:
        """
        이미 읽은 레코드 배치 처리 (세그멘테이션 + 통계)

        Args:
            images: {이름: ThermalImage}
            progress_callback: 진행 콜백

        Returns:
            BatchReport 객체
        """
        start_time = time.time()
        total = len(images)
        records: Dict[str, ThermalImage] = {}
        failed = []

        for idx, (name, img) in enumerate(images.items()):
            if progress_callback:
                progress_callback(idx + 1, total, name)
            try:
                records[name] = _analyze(img, self.segment_params, self.use_processed)
            except (ValueError, TypeError) as e:
                _logger.warning(f"처리 실패: {name} - {e}")
                failed.append(name)

        return BatchReport(
            total_files=total,
            loaded_files=len(records),
            failed_files=failed,
            records=records,
            stats_table=compile_batch_stats(records),
            parameters=self.parameters,
            total_processing_time=time.time() - start_time,
        )
