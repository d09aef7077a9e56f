"""
명령행 배치 분석

사용법:
    biotherm ./cohort_A --width 160 --height 120 --output ./results
    biotherm ./cohort_A --clinical clinical.csv --aggregate-by Mouse_ID --heatmaps
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from . import __version__
from .exceptions import BioThermError
from .core.tables import AGGREGATE_METHODS, ID_COLUMN, aggregate_replicates, merge_clinical_data
from .batch.processor import BatchProcessor, READERS
from .io.exporter import ResultExporter
from .utils.logger import set_level, setup_logger
from .utils.settings import SettingsManager

_logger = logging.getLogger("biotherm.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="biotherm",
        description="동물 열화상 배치 분석 (ROI 세그멘테이션 → 통계 → 리포트)",
    )
    parser.add_argument("folder", help="열화상 파일 폴더")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    src = parser.add_argument_group("입력")
    src.add_argument("--reader", choices=READERS, default=None,
                     help="파일 형식 (raw: float32 격자, flir: 라디오메트릭 JPG)")
    src.add_argument("--pattern", default=None,
                     help="파일명 정규식 (기본: raw는 \\.raw$, flir는 \\.jpe?g$)")
    src.add_argument("--recursive", action="store_true", default=None,
                     help="하위 폴더 포함")
    src.add_argument("--width", type=int, default=None, help="센서 가로 픽셀 수")
    src.add_argument("--height", type=int, default=None, help="센서 세로 픽셀 수")
    src.add_argument("--no-rotate", dest="rotate", action="store_false", default=None,
                     help="90° 회전 보정 끄기")
    src.add_argument("--exiftool", default=None, help="ExifTool 실행 파일 경로")

    proc = parser.add_argument_group("처리")
    proc.add_argument("--no-segment", dest="segment", action="store_false", default=None,
                      help="자동 ROI 세그멘테이션 끄기")
    proc.add_argument("--workers", dest="n_workers", type=int, default=None,
                      help="병렬 워커 수 (1 = 순차)")

    out = parser.add_argument_group("출력")
    out.add_argument("--output", default="results", help="결과 폴더 (기본: results)")
    out.add_argument("--heatmaps", action="store_true", help="레코드별 히트맵 PNG 저장")
    out.add_argument("--clinical", default=None, help="임상 데이터 CSV")
    out.add_argument("--clinical-id", default=ID_COLUMN,
                     help=f"임상 데이터 키 컬럼 (기본: {ID_COLUMN})")
    out.add_argument("--aggregate-by", default=None, help="반복 측정 병합 기준 컬럼")
    out.add_argument("--method", choices=AGGREGATE_METHODS, default="mean",
                     help="반복 측정 병합 방법")
    out.add_argument("--keep", nargs="*", default=None,
                     help="병합 시 첫 값을 유지할 메타데이터 컬럼")
    out.add_argument("--compare-by", default=None,
                     help="그룹 비교 그림(막대/상자) 기준 컬럼")
    out.add_argument("--metric", default="Mean",
                     help="그룹 비교 그림의 값 컬럼 (기본: Mean)")

    parser.add_argument("--config-dir", default=None, help="설정 폴더 (기본: ~/.biotherm)")
    parser.add_argument("-v", "--verbose", action="store_true", help="DEBUG 로그 출력")
    return parser


def run(args: argparse.Namespace) -> int:
    settings = SettingsManager(args.config_dir)

    processor = BatchProcessor.from_settings(
        settings,
        reader=args.reader,
        pattern=args.pattern,
        recursive=args.recursive,
        width=args.width,
        height=args.height,
        rotate=args.rotate,
        exiftool=args.exiftool,
        segment=args.segment,
        n_workers=args.n_workers,
    )

    def progress(current: int, total: int, name: str):
        _logger.debug(f"[{current}/{total}] {name}")

    report = processor.process_folder(args.folder, progress_callback=progress)
    _logger.info(report.summary.replace("\n", " | "))

    if report.loaded_files == 0:
        _logger.error("처리된 파일이 없습니다.")
        return 1

    table = report.stats_table
    if args.clinical:
        clinical = pd.read_csv(args.clinical)
        table = merge_clinical_data(table, clinical, clinical_id=args.clinical_id)
    if args.aggregate_by:
        table = aggregate_replicates(table, args.aggregate_by,
                                     method=args.method, keep_cols=args.keep)

    exporter = ResultExporter(args.output)
    outputs = exporter.export_all(report.records, table, report.parameters,
                                  failed=report.failed_files,
                                  include_heatmaps=args.heatmaps,
                                  palette=settings.get('palette', 'inferno'),
                                  dpi=settings.get('dpi', 150))
    if args.compare_by:
        plots = exporter.export_group_plots(table, args.compare_by, y_var=args.metric,
                                            palette=settings.get('group_palette', 'npg'),
                                            dpi=settings.get('dpi', 150))
        outputs.update(plots)
    for kind, path in outputs.items():
        _logger.info(f"{kind}: {path}")

    settings.set('last_folder', str(Path(args.folder).resolve()))
    settings.save()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logger()
    if args.verbose:
        set_level(logging.DEBUG)

    try:
        return run(args)
    except (BioThermError, OSError, ValueError) as e:
        _logger.error(f"분석 실패: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
