"""온도 통계 테스트"""

import logging

import numpy as np
import pytest

from biotherm.models.thermal import new_thermal
from biotherm.core.statistics import (
    METRIC_NAMES,
    bandwidth_nrd0,
    density_estimate,
    density_peak,
    compute_statistics,
    analyze_thermal_stats,
)


def test_known_values():
    stats = compute_statistics(np.array([1.0, 2.0, 3.0, 4.0, 5.0]))
    assert tuple(stats.keys()) == METRIC_NAMES
    assert stats['Min'] == 1.0
    assert stats['Max'] == 5.0
    assert stats['Mean'] == pytest.approx(3.0)
    assert stats['Median'] == pytest.approx(3.0)
    assert stats['SD'] == pytest.approx(np.sqrt(2.5))
    assert stats['Q25'] == pytest.approx(2.0)
    assert stats['Q75'] == pytest.approx(4.0)
    assert stats['IQR'] == pytest.approx(2.0)
    assert stats['CV'] == pytest.approx(np.sqrt(2.5) / 3.0)
    assert stats['Peak_Density'] == pytest.approx(3.0, abs=0.05)


def test_nan_values_ignored():
    a = compute_statistics(np.array([1.0, 2.0, np.nan, 3.0]))
    b = compute_statistics(np.array([1.0, 2.0, 3.0]))
    assert a == pytest.approx(b)


def test_all_missing_gives_nan_and_warning(caplog):
    with caplog.at_level(logging.WARNING):
        stats = compute_statistics(np.array([np.nan, np.nan]))
    assert all(np.isnan(v) for v in stats.values())
    assert any("유효 픽셀이 없습니다" in r.message for r in caplog.records)


def test_single_value():
    stats = compute_statistics(np.array([36.6]))
    assert stats['Mean'] == 36.6
    assert stats['Peak_Density'] == 36.6
    assert np.isnan(stats['SD'])
    assert np.isnan(stats['CV'])


def test_zero_mean_cv_is_nan():
    stats = compute_statistics(np.array([-1.0, 1.0]))
    assert np.isnan(stats['CV'])


def test_bandwidth_nrd0():
    vals = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    expected = 0.9 * min(np.std(vals, ddof=1), 2.0 / 1.34) * 5 ** (-0.2)
    assert bandwidth_nrd0(vals) == pytest.approx(expected)


def test_bandwidth_requires_two_values():
    with pytest.raises(ValueError):
        bandwidth_nrd0(np.array([1.0]))


def test_density_integrates_to_one():
    rng = np.random.default_rng(0)
    vals = rng.normal(37.0, 0.5, 500)
    grid, dens = density_estimate(vals)
    assert grid.size == 512
    assert np.sum(dens) * (grid[1] - grid[0]) == pytest.approx(1.0, abs=0.01)


def test_density_peak_bimodal_picks_larger_mode():
    rng = np.random.default_rng(1)
    vals = np.concatenate([rng.normal(25.0, 0.3, 100), rng.normal(36.0, 0.3, 400)])
    assert density_peak(vals) == pytest.approx(36.0, abs=0.3)


def test_constant_values_density():
    grid, dens = density_estimate(np.full(10, 30.0))
    assert grid[np.argmax(dens)] == pytest.approx(30.0, abs=0.25)


def test_analyze_uses_processed_by_default(corner_image):
    masked = corner_image.with_processed(
        np.where(corner_image.raw > 20, corner_image.raw, np.nan))

    processed = analyze_thermal_stats(masked)
    raw = analyze_thermal_stats(masked, use_processed=False)

    assert processed.stats['Min'] == 30.0
    assert raw.stats['Min'] == 10.0
    assert masked.stats is None


def test_analyze_replaces_stats():
    img = new_thermal(np.arange(9.0).reshape(3, 3), filename="a.raw")
    img = img.with_stats({'Old': 1.0})
    out = analyze_thermal_stats(img)
    assert 'Old' not in out.stats
    assert out.stats['Max'] == 8.0
