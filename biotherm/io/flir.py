"""
FLIR 라디오메트릭 JPG 읽기

메타데이터 파싱과 raw → 온도(°C) 변환은 flirimageextractor에 맡긴다.
flirimageextractor는 내부에서 ExifTool(외부 CLI)을 호출하므로
ExifTool이 PATH에 있거나 exiftool 인자로 실행 파일 경로를 지정해야 한다.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Union

import numpy as np
from flirimageextractor import FlirImageExtractor

from ..models.thermal import ThermalImage, new_thermal

_logger = logging.getLogger(__name__)

# 라이브러리 / ExifTool 호출 중 발생 가능한 오류
_EXTRACT_ERRORS = (OSError, ValueError, KeyError, IndexError, TypeError,
                   subprocess.SubprocessError)


def _resolve_exiftool(exiftool: str) -> str:
    found = shutil.which(exiftool)
    if found is None:
        raise FileNotFoundError(
            f"ExifTool을 찾을 수 없습니다: '{exiftool}'. 설치 후 PATH에 추가하세요.")
    return found


def read_thermal_flir(file_path: Union[str, Path], exiftool: str = "exiftool") -> ThermalImage:
    """
    FLIR 라디오메트릭 JPG → 온도(°C) 레코드

    Args:
        file_path: FLIR 라디오메트릭 .jpg 경로
        exiftool: ExifTool 실행 파일 이름 또는 경로

    Raises:
        FileNotFoundError: 파일 또는 ExifTool 없음
        RuntimeError: 라디오메트릭 데이터 추출 실패 / 빈 온도 배열
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(f"파일이 없습니다: {path}")

    extractor = FlirImageExtractor(exiftool_path=_resolve_exiftool(exiftool))
    try:
        extractor.process_image(str(path))
        temp = extractor.get_thermal_np()
    except _EXTRACT_ERRORS as e:
        raise RuntimeError(f"FLIR 라디오메트릭 데이터 추출 실패: {path.name} - {e}") from e

    temp = np.asarray(temp, dtype=np.float64)
    if temp.ndim != 2 or temp.size == 0:
        raise RuntimeError(f"FLIR 온도 배열이 비어 있거나 2차원이 아닙니다: {path.name}")

    _logger.info(f"FLIR 읽기: {path.name} ({temp.shape[0]}x{temp.shape[1]})")
    return new_thermal(temp, filename=path.name, fullpath=str(path.resolve()))
