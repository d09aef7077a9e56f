"""배경 마스킹 테스트"""

import logging

import numpy as np
import pytest

from biotherm.exceptions import EmptyInputError, InvalidInputTypeError, UnsupportedMethodError
from biotherm.models.thermal import new_thermal
from biotherm.core.masking import (
    normalize_matrix,
    compute_otsu_threshold,
    compute_roi_mask,
    largest_component,
    roi_segment,
    roi_filter_threshold,
    keep_largest_region,
    get_mask_statistics,
)
from biotherm.core.statistics import analyze_thermal_stats

from conftest import make_subject


# ============================================================
# 정규화 / 임계값
# ============================================================

def test_normalize_matrix_range():
    mat = np.array([[10.0, 20.0], [30.0, np.nan]])
    norm = normalize_matrix(mat)
    assert norm[0, 0] == 0.0
    assert norm[1, 0] == 1.0
    assert norm[0, 1] == pytest.approx(0.5)
    assert np.isnan(norm[1, 1])


def test_normalize_constant_matrix():
    norm = normalize_matrix(np.full((2, 2), 7.0))
    assert np.all(norm == 0.0)


def test_normalize_all_nan():
    with pytest.raises(EmptyInputError):
        normalize_matrix(np.full((2, 2), np.nan))


def test_otsu_threshold_separates_two_levels():
    values = np.concatenate([np.full(50, 0.1), np.full(50, 0.9)])
    level = compute_otsu_threshold(values)
    assert 0.1 <= level < 0.9


# ============================================================
# 자동 세그멘테이션
# ============================================================

def test_corner_example(corner_image):
    """4x4 30.0 격자 + 10.0 모서리: 모서리만 배경"""
    stats = analyze_thermal_stats(corner_image, use_processed=False).stats
    assert stats['Min'] == 10.0
    assert stats['Max'] == 30.0

    seg = roi_segment(corner_image, morphology=False)
    assert np.isnan(seg.processed[0, 0])
    assert seg.n_valid() == 15
    assert np.all(seg.raw == corner_image.raw)


def test_segment_recovers_subject():
    mat, inside = make_subject()
    img = new_thermal(mat, filename="m.raw")

    seg = roi_segment(img)
    mask = np.isfinite(seg.processed)

    iou = np.count_nonzero(mask & inside) / np.count_nonzero(mask | inside)
    assert iou > 0.9
    assert seg.stats is None


def test_segment_keeps_only_largest_component():
    mat = np.full((30, 30), 20.0)
    mat[2:12, 2:12] = 35.0       # 큰 객체 (100 px)
    mat[20:24, 20:24] = 35.0     # 작은 객체 (16 px)
    result = compute_roi_mask(mat, morphology=False)

    assert result.n_components == 2
    assert result.kept_area == 100
    assert result.foreground_pixels == 100
    assert result.foreground_before == 116


def test_keep_largest_disabled():
    mat = np.full((30, 30), 20.0)
    mat[2:12, 2:12] = 35.0
    mat[20:24, 20:24] = 35.0
    result = compute_roi_mask(mat, keep_largest=False, morphology=False)
    assert result.foreground_pixels == 116
    assert result.kept_label is None


def test_largest_component_tie_picks_lowest_label():
    mask = np.zeros((15, 15), dtype=bool)
    mask[1:4, 1:4] = True
    mask[10:13, 10:13] = True
    kept, n, label, area = largest_component(mask)
    assert n == 2
    assert label == 1
    assert area == 9
    assert kept[2, 2] and not kept[11, 11]


def test_largest_component_never_grows_foreground():
    rng = np.random.default_rng(3)
    mask = rng.random((25, 25)) > 0.6
    kept, _, _, _ = largest_component(mask, connectivity=4)
    assert np.count_nonzero(kept) <= np.count_nonzero(mask)
    assert not np.any(kept & ~mask)


def test_unsupported_method(subject_image):
    with pytest.raises(UnsupportedMethodError):
        roi_segment(subject_image, method="kmeans")


def test_unsupported_connectivity(subject_image):
    with pytest.raises(UnsupportedMethodError):
        roi_segment(subject_image, connectivity=6)


def test_segment_all_nan():
    img = new_thermal(np.full((5, 5), np.nan), filename="empty.raw")
    with pytest.raises(EmptyInputError):
        roi_segment(img)


def test_segment_constant_image_warns(caplog):
    img = new_thermal(np.full((6, 6), 25.0), filename="flat.raw")
    with caplog.at_level(logging.WARNING):
        seg = roi_segment(img, morphology=False)
    assert seg.n_valid() == 0
    assert any("객체가 없습니다" in r.message for r in caplog.records)


# ============================================================
# 온도 범위 필터
# ============================================================

def test_filter_threshold_inclusive():
    img = new_thermal(np.array([[20.0, 25.0], [30.0, 35.0]]), filename="a.raw")
    out = roi_filter_threshold(img, (25, 30))
    assert np.isnan(out.processed[0, 0])
    assert out.processed[0, 1] == 25.0
    assert out.processed[1, 0] == 30.0
    assert np.isnan(out.processed[1, 1])


def test_filter_threshold_sorts_bounds():
    img = new_thermal(np.array([[20.0, 25.0], [30.0, 35.0]]), filename="a.raw")
    a = roi_filter_threshold(img, (30, 25))
    b = roi_filter_threshold(img, (25, 30))
    np.testing.assert_array_equal(a.processed, b.processed)


def test_filter_threshold_idempotent(subject_image):
    once = roi_filter_threshold(subject_image, (30, 40))
    twice = roi_filter_threshold(once, (30, 40), use_processed=True)
    np.testing.assert_array_equal(once.processed, twice.processed)


def test_filter_threshold_uses_raw_by_default(subject_image):
    cut = roi_filter_threshold(subject_image, (30, 40))
    reset = roi_filter_threshold(cut, (-np.inf, np.inf))
    assert reset.n_valid() == subject_image.raw.size


@pytest.mark.parametrize("bad", [(1,), (1, 2, 3), ("a", 2), (np.nan, 2), 5, (True, 2)])
def test_filter_threshold_bad_range(subject_image, bad):
    with pytest.raises(InvalidInputTypeError):
        roi_filter_threshold(subject_image, bad)


# ============================================================
# 잡음 제거 / 마스크 통계
# ============================================================

def test_keep_largest_region_removes_islands():
    mat = np.full((20, 20), np.nan)
    mat[2:10, 2:10] = 36.0
    mat[15, 15] = 36.0
    img = new_thermal(mat, filename="a.raw")
    out = keep_largest_region(img)
    assert out.n_valid() == 64
    assert np.isnan(out.processed[15, 15])


def test_keep_largest_region_empty_returns_input(caplog):
    img = new_thermal(np.full((4, 4), np.nan), filename="a.raw")
    with caplog.at_level(logging.WARNING):
        out = keep_largest_region(img)
    assert out is img


def test_mask_statistics(corner_image):
    seg = roi_segment(corner_image, morphology=False)
    info = get_mask_statistics(seg)
    assert info['total_pixels'] == 16
    assert info['roi_pixels'] == 15
    assert info['background_pixels'] == 1
