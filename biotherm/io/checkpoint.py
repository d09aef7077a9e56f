"""
분석 상태 저장/복원

레코드(또는 레코드 묶음)를 joblib 압축 파일로 저장해
세그멘테이션/통계 결과를 다시 계산하지 않고 이어서 작업한다.
"""

import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

import joblib

from ..exceptions import InvalidInputTypeError
from ..models.thermal import ThermalImage

_logger = logging.getLogger(__name__)

CHECKPOINT_SUFFIX = '.joblib'
COMPRESS_LEVEL = 3


def _checkpoint_path(file_path: Union[str, Path]) -> Path:
    path = Path(file_path)
    if path.suffix.lower() != CHECKPOINT_SUFFIX:
        path = path.with_name(path.name + CHECKPOINT_SUFFIX)
    return path


def _describe(obj: Any) -> Optional[str]:
    """저장 대상 요약. 레코드가 아니면 None."""
    if isinstance(obj, ThermalImage):
        return f"레코드 1개 ({obj.filename})"
    if isinstance(obj, Mapping):
        values = list(obj.values())
    elif isinstance(obj, (list, tuple)):
        values = list(obj)
    else:
        return None
    if values and all(isinstance(v, ThermalImage) for v in values):
        return f"레코드 {len(values)}개"
    return None


def save_thermal(obj: Any, file_path: Union[str, Path]) -> Path:
    """
    레코드 저장

    Args:
        obj: ThermalImage 또는 ThermalImage로만 이루어진 dict/list
        file_path: 저장 경로 (.joblib 확장자 자동 추가)

    Returns:
        실제 저장 경로

    Raises:
        InvalidInputTypeError: 저장 대상이 레코드(묶음)가 아님
    """
    what = _describe(obj)
    if what is None:
        raise InvalidInputTypeError(
            "ThermalImage 또는 ThermalImage로만 이루어진 비어 있지 않은 "
            f"dict/list만 저장할 수 있습니다 (받은 타입: {type(obj).__name__})")

    path = _checkpoint_path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # 같은 디렉토리의 임시 파일에 쓴 뒤 교체
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), suffix='.tmp')
    os.close(fd)
    try:
        joblib.dump(obj, tmp_name, compress=COMPRESS_LEVEL)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise

    _logger.info(f"체크포인트 저장: {path} ({what})")
    return path


def load_thermal(file_path: Union[str, Path]) -> Any:
    """
    저장된 레코드 복원

    내용이 예상과 다르면 경고만 남기고 그대로 반환한다.

    Raises:
        FileNotFoundError: 파일 없음
    """
    path = Path(file_path)
    if not path.is_file():
        alt = _checkpoint_path(path)
        if not alt.is_file():
            raise FileNotFoundError(f"체크포인트 파일이 없습니다: {path}")
        path = alt

    obj = joblib.load(path)

    what = _describe(obj)
    if what is None:
        _logger.warning(
            f"{path.name}: 레코드 형식이 아닙니다 ({type(obj).__name__}). "
            "그대로 반환합니다.")
    else:
        _logger.info(f"체크포인트 로드: {path} ({what})")
    return obj
