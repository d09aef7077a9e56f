"""
열화상 입출력 모듈

- .raw (little-endian float32 격자) 읽기/쓰기
- 행렬/DataFrame → 레코드 생성
- 외부 이미지 처리 도구와의 배열 변환
- 폴더 일괄 읽기
"""

import logging
import re
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..exceptions import DirectoryNotFoundError, InvalidInputTypeError
from ..models.thermal import ThermalImage, new_thermal, ensure_thermal, as_matrix
from ..core.masking import normalize_matrix

_logger = logging.getLogger(__name__)

RAW_DTYPE = np.dtype('<f4')
DEFAULT_WIDTH = 160
DEFAULT_HEIGHT = 120
DEFAULT_PATTERN = r'\.raw$'


def _check_dims(width: int, height: int):
    for name, value in (('width', width), ('height', height)):
        if not isinstance(value, (int, np.integer)) or isinstance(value, bool) or value <= 0:
            raise InvalidInputTypeError(f"{name}는 양의 정수여야 합니다: {value!r}")


def read_thermal_raw(file_path: Union[str, Path],
                     width: int = DEFAULT_WIDTH,
                     height: int = DEFAULT_HEIGHT,
                     rotate: bool = True) -> ThermalImage:
    """
    .raw 열화상 파일 읽기

    Args:
        file_path: .raw 파일 경로
        width: 센서 가로 픽셀 수 (열)
        height: 센서 세로 픽셀 수 (행)
        rotate: 반시계 방향 90° 회전 (센서 방향 보정)

    Returns:
        ThermalImage (raw = processed).
        rotate=True면 height x width, False면 width x height 행렬.

    Raises:
        FileNotFoundError: 파일 없음
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(f"파일이 없습니다: {path}")
    _check_dims(width, height)

    # 유니코드 경로 지원
    with open(path, 'rb') as f:
        data = f.read()

    expected = width * height
    usable = len(data) - len(data) % RAW_DTYPE.itemsize
    values = np.frombuffer(data[:usable], dtype=RAW_DTYPE).astype(np.float64)

    if values.size != expected:
        _logger.warning(
            f"{path.name}: 읽은 값 개수({values.size})가 "
            f"예상 크기({width}x{height}={expected})와 다릅니다.")
        if values.size < expected:
            values = np.concatenate([values, np.full(expected - values.size, np.nan)])
        else:
            values = values[:expected]

    # 센서 격자(height x width, row-major)를 전치해 width x height로 저장
    mat = values.reshape(height, width).T
    if rotate:
        # 전치 + 반시계 90° = 센서 격자 상하 반전 (height x width)
        mat = np.rot90(mat)

    return new_thermal(mat, filename=path.name, fullpath=str(path.resolve()))


def write_thermal_raw(img: ThermalImage,
                      file_path: Union[str, Path],
                      use_processed: bool = False) -> Path:
    """
    행렬을 .raw (little-endian float32)로 저장

    read_thermal_raw(rotate=False)의 역변환: 행렬을 전치해 row-major로 쓴다.
    (rows, cols) 행렬은 width=rows, height=cols, rotate=False로 다시 읽으면
    같은 행렬이 된다. 읽을 때 적용한 회전은 되돌리지 않는다.
    """
    ensure_thermal(img, "img")
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    mat = img.select(use_processed)
    with open(path, 'wb') as f:
        f.write(np.ascontiguousarray(mat.T, dtype=RAW_DTYPE).tobytes())
    return path


def create_thermal(data: Union[np.ndarray, pd.DataFrame, List[List[float]]],
                   name: str = "Sample") -> ThermalImage:
    """
    행렬 / DataFrame으로 레코드 생성

    Excel, CSV 등 다른 형식에서 읽은 데이터나 시뮬레이션 데이터용.
    """
    if isinstance(data, pd.DataFrame):
        non_numeric = [c for c in data.columns
                       if not pd.api.types.is_numeric_dtype(data[c])]
        if non_numeric:
            raise InvalidInputTypeError(
                f"DataFrame에 숫자가 아닌 컬럼이 있습니다: {non_numeric}")
        data = data.to_numpy(dtype=np.float64)

    img = new_thermal(as_matrix(data, "data"), filename=name)
    _logger.info(f"레코드 '{name}' 생성: {img.shape[0]}x{img.shape[1]}")
    return img


def to_array(img: ThermalImage,
             use_processed: bool = True,
             replace_na: float = 0.0,
             normalize: bool = False) -> np.ndarray:
    """
    외부 이미지 처리용 배열 추출

    Args:
        use_processed: processed / raw 선택
        replace_na: NaN 대체값 (배경)
        normalize: [0, 1] 선형 정규화 (임계값 처리용)

    Returns:
        수정 가능한 float64 배열 복사본
    """
    ensure_thermal(img, "img")
    mat = np.array(img.select(use_processed), dtype=np.float64)

    if normalize and np.isfinite(mat).any():
        mat = normalize_matrix(mat)

    mat[~np.isfinite(mat)] = replace_na
    return mat


def from_array(array: Any,
               template: Optional[ThermalImage] = None,
               name: str = "Imported_Array",
               mask_zero: bool = False) -> ThermalImage:
    """
    외부 처리 결과 배열을 레코드로 가져오기

    - 템플릿 모드: template의 processed를 교체 (메타데이터 유지, 통계 초기화)
    - 생성 모드: 새 레코드

    3D(컬러) 배열은 첫 채널만 사용한다.
    """
    arr = np.asarray(array)
    if arr.ndim == 3:
        _logger.warning("입력 배열이 3차원입니다. 첫 번째 채널만 사용합니다.")
        arr = arr[:, :, 0]

    mat = np.array(as_matrix(arr, "array"))
    if mask_zero:
        mat[mat == 0] = np.nan

    if template is None:
        return new_thermal(mat, filename=name)

    ensure_thermal(template, "template")
    if mat.shape != template.shape:
        raise InvalidInputTypeError(
            f"가져온 배열 크기 {mat.shape}가 템플릿 {template.shape}와 다릅니다")
    return template.with_processed(mat)


def get_thermal_files(folder_path: Union[str, Path],
                      pattern: str = DEFAULT_PATTERN,
                      recursive: bool = False) -> List[Path]:
    """폴더 내 패턴(정규식, 대소문자 무시)에 맞는 파일 목록"""
    folder = Path(folder_path)
    if not folder.is_dir():
        raise DirectoryNotFoundError(f"디렉토리가 없습니다: {folder}")

    regex = re.compile(pattern, re.IGNORECASE)
    candidates = folder.rglob('*') if recursive else folder.iterdir()
    return sorted(
        f for f in candidates
        if f.is_file() and regex.search(f.name)
    )


def record_key(file_path: Path, folder: Path, taken: Dict[str, Any]) -> str:
    key = file_path.name
    if key in taken:
        key = file_path.relative_to(folder).as_posix()
        _logger.warning(f"파일명 중복: '{file_path.name}' → '{key}'로 저장")
    return key


def read_thermal_batch(folder_path: Union[str, Path],
                       pattern: str = DEFAULT_PATTERN,
                       recursive: bool = False,
                       **kwargs) -> Dict[str, ThermalImage]:
    """
    폴더 내 .raw 파일 일괄 읽기

    Args:
        folder_path: 폴더 경로
        pattern: 파일명 정규식
        recursive: 하위 폴더 포함
        **kwargs: read_thermal_raw 인자 (width, height, rotate)

    Returns:
        {파일명: ThermalImage} (정렬 순서). 읽기 실패 파일은 경고 후 제외.

    Raises:
        DirectoryNotFoundError: 폴더 없음
        FileNotFoundError: 일치하는 파일 없음
    """
    folder = Path(folder_path)
    files = get_thermal_files(folder, pattern, recursive)
    if not files:
        raise FileNotFoundError(f"{folder}에 일치하는 파일이 없습니다 (pattern={pattern!r})")

    _logger.info(f"{len(files)}개 파일 읽는 중...")

    images: Dict[str, ThermalImage] = {}
    for file_path in files:
        try:
            img = read_thermal_raw(file_path, **kwargs)
        except (OSError, ValueError, TypeError) as e:
            _logger.warning(f"읽기 실패: {file_path.name} - {e}")
            continue
        images[record_key(file_path, folder, images)] = img

    _logger.info(f"일괄 읽기 완료: {len(images)}개 파일")
    return images
