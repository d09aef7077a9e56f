"""
통계 테이블 모듈

- compile_batch_stats: 레코드 통계 → 행 단위 DataFrame
- merge_clinical_data: 임상 메타데이터 left join
- aggregate_replicates: 개체별 반복 측정 병합
"""

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from ..exceptions import (InvalidInputTypeError, MissingColumnError,
                          SchemaMismatchError, UnsupportedMethodError)
from ..models.thermal import ThermalImage

_logger = logging.getLogger(__name__)

ID_COLUMN = 'Filename'
COUNT_COLUMN = 'replicate_count'
AGGREGATE_METHODS = ('mean', 'median')

_JOIN_KEY = '__join_key__'
_EXT_PATTERN = re.compile(r'\.[A-Za-z0-9]+$')


def _iter_items(images: Union[Mapping, Sequence]):
    if isinstance(images, Mapping):
        return list(images.items())
    if isinstance(images, Sequence) and not isinstance(images, (str, bytes)):
        return [(str(i), obj) for i, obj in enumerate(images)]
    raise InvalidInputTypeError(
        f"ThermalImage의 dict 또는 list가 필요합니다 (받은 타입: {type(images).__name__})")


def compile_batch_stats(images: Union[Mapping[str, ThermalImage], Sequence[ThermalImage]],
                        strict: bool = False) -> pd.DataFrame:
    """
    배치 통계 정리

    레코드마다 한 행: Filename + 통계 지표.
    통계가 없는 레코드는 경고 후 건너뜀.

    Args:
        images: {이름: ThermalImage} 또는 ThermalImage 리스트
        strict: True면 지표 구성이 다를 때 SchemaMismatchError,
                False면 이름 기준 정렬 후 빈 칸은 NaN

    Returns:
        DataFrame (유효 행이 없으면 빈 DataFrame)
    """
    items = _iter_items(images)
    _logger.info(f"{len(items)}개 이미지 통계 정리 중...")

    rows: List[Dict[str, Any]] = []
    columns: List[str] = []
    reference: Optional[List[str]] = None

    for name, obj in items:
        if not isinstance(obj, ThermalImage):
            _logger.warning(f"'{name}'은(는) ThermalImage가 아닙니다. 건너뜁니다.")
            continue
        if obj.stats is None:
            _logger.warning(f"'{name}'에 통계가 없습니다. 건너뜁니다.")
            continue

        metrics = list(obj.stats.keys())
        if reference is None:
            reference = metrics
        elif metrics != reference:
            if strict:
                raise SchemaMismatchError(
                    f"'{name}'의 통계 지표 {metrics}가 기준 {reference}와 다릅니다")
            _logger.warning(f"'{name}'의 통계 지표 구성이 다릅니다. 이름 기준으로 정렬합니다.")

        for metric in metrics:
            if metric not in columns:
                columns.append(metric)

        fname = obj.meta.filename if obj.meta.filename else name
        row = {ID_COLUMN: fname}
        row.update(obj.stats)
        rows.append(row)

    if not rows:
        _logger.warning("정리할 유효 통계가 없습니다.")
        return pd.DataFrame()

    df = pd.DataFrame(rows, columns=[ID_COLUMN] + columns)
    df = df.reset_index(drop=True)
    _logger.info(f"통계 정리 완료: {len(df)}행 x {len(columns)}개 지표")
    return df


def clean_id(value: Any) -> str:
    """경로와 마지막 확장자 제거 ('data/m01.raw' → 'm01')"""
    text = str(value)
    base = re.split(r'[\\/]', text)[-1]
    return _EXT_PATTERN.sub('', base)


def _require_frame(df: Any, name: str):
    if not isinstance(df, pd.DataFrame):
        raise InvalidInputTypeError(f"{name}는 DataFrame이어야 합니다")


def _require_columns(df: pd.DataFrame, columns, name: str):
    for col in columns:
        if col not in df.columns:
            raise MissingColumnError(f"컬럼 '{col}'이(가) {name}에 없습니다")


def merge_clinical_data(thermal_df: pd.DataFrame,
                        clinical_df: pd.DataFrame,
                        thermal_id: str = ID_COLUMN,
                        clinical_id: str = ID_COLUMN,
                        clean_ids: bool = True) -> pd.DataFrame:
    """
    열화상 통계 + 임상 데이터 병합 (left join)

    Args:
        thermal_df: compile_batch_stats 결과
        clinical_df: 외부 메타데이터 (체중, 그룹, 처리 등)
        thermal_id: thermal_df 키 컬럼
        clinical_id: clinical_df 키 컬럼
        clean_ids: 양쪽 키에서 경로/확장자 제거 후 매칭

    Returns:
        thermal_df 행 수와 순서를 유지한 DataFrame
    """
    _require_frame(thermal_df, "thermal_df")
    _require_frame(clinical_df, "clinical_df")
    _require_columns(thermal_df, [thermal_id], "thermal_df")
    _require_columns(clinical_df, [clinical_id], "clinical_df")

    _logger.info("열화상 데이터와 임상 기록 병합 중...")

    left = thermal_df.copy()
    right = clinical_df.copy()

    key_fn = clean_id if clean_ids else str
    left[_JOIN_KEY] = [key_fn(v) for v in left[thermal_id]]
    right[_JOIN_KEY] = [key_fn(v) for v in right[clinical_id]]

    # 임상 쪽 중복 키는 첫 행만 사용 (행 수 보존)
    dup = right[_JOIN_KEY].duplicated(keep='first')
    if dup.any():
        _logger.warning(
            f"임상 데이터에 중복 키 {int(dup.sum())}개. 첫 행만 사용합니다: "
            f"{sorted(set(right.loc[dup, _JOIN_KEY]))}")
        right = right.loc[~dup]

    # 이름이 겹치는 임상 컬럼은 제거 (열화상 쪽 유지)
    overlap = [c for c in right.columns if c != _JOIN_KEY and c in left.columns]
    conflicts = [c for c in overlap if not (c == clinical_id and c == thermal_id)]
    if thermal_id in overlap:
        _logger.info(f"중복 컬럼 발견. 열화상 데이터의 '{thermal_id}'을(를) 유지합니다.")
    if conflicts:
        _logger.warning(f"임상 데이터의 중복 컬럼 제거: {conflicts}")
    right = right.drop(columns=overlap)

    merged = left.merge(right, how='left', on=_JOIN_KEY, sort=False)
    merged = merged.drop(columns=[_JOIN_KEY]).reset_index(drop=True)

    clinical_cols = [c for c in right.columns if c != _JOIN_KEY]
    if clinical_cols:
        matched = int(merged[clinical_cols].notna().any(axis=1).sum())
        _logger.info(f"병합 완료: {matched}/{len(merged)}행 매칭")
    else:
        _logger.info("병합 완료")
    return merged


def aggregate_replicates(data: pd.DataFrame,
                         id_col: str,
                         method: str = 'mean',
                         keep_cols: Optional[List[str]] = None) -> pd.DataFrame:
    """
    반복 측정 병합

    같은 ID의 행을 하나로 합친다. 숫자 컬럼(ID, keep_cols 제외)은
    NaN을 무시한 mean/median, keep_cols는 그룹의 첫 값.

    Returns:
        컬럼 순서: ID, keep_cols, replicate_count, 지표들.
        행 순서는 ID 첫 등장 순.
    """
    _require_frame(data, "data")
    _require_columns(data, [id_col], "data")
    if method not in AGGREGATE_METHODS:
        raise UnsupportedMethodError(
            f"지원하지 않는 집계 방법: {method!r} (지원: {AGGREGATE_METHODS})")

    keep_cols = [c for c in (keep_cols or []) if c != id_col]
    _require_columns(data, keep_cols, "data")

    _logger.info(f"'{id_col}' 기준 반복 측정 병합 ({method})...")

    numeric_cols = [
        c for c in data.select_dtypes(include=[np.number]).columns
        if c != id_col and c not in keep_cols and c != COUNT_COLUMN
    ]
    if not numeric_cols:
        _logger.warning("병합할 숫자 컬럼이 없습니다.")

    grouped = data.groupby(id_col, sort=False, dropna=False)

    if numeric_cols:
        metrics = grouped[numeric_cols].agg(method)
    else:
        metrics = pd.DataFrame(index=grouped.size().index)

    result = pd.DataFrame(index=metrics.index)
    for col in keep_cols:
        result[col] = grouped[col].agg(lambda s: s.iloc[0])
    result[COUNT_COLUMN] = grouped.size().astype(int)
    result = pd.concat([result, metrics], axis=1)

    result = result.reset_index()
    result = result[[id_col] + keep_cols + [COUNT_COLUMN] + numeric_cols]

    _logger.info(f"병합 완료: {len(data)}행 → {len(result)}개 개체")
    return result
