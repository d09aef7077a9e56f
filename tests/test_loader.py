"""raw 입출력 / 배열 변환 / 폴더 읽기 테스트"""

import logging

import numpy as np
import pandas as pd
import pytest

from biotherm.exceptions import DirectoryNotFoundError, InvalidInputTypeError
from biotherm.models.thermal import new_thermal
from biotherm.io.loader import (
    read_thermal_raw,
    write_thermal_raw,
    create_thermal,
    to_array,
    from_array,
    get_thermal_files,
    read_thermal_batch,
)

from conftest import write_raw


def _grid(height=3, width=4):
    return np.arange(height * width, dtype=np.float64).reshape(height, width)


# ============================================================
# read / write
# ============================================================

def test_read_without_rotation(tmp_path):
    """회전 없이 읽으면 센서 격자의 전치 (width x height)"""
    path = write_raw(tmp_path / "a.raw", _grid())
    img = read_thermal_raw(path, width=4, height=3, rotate=False)
    np.testing.assert_array_equal(img.raw, _grid().T)
    assert img.shape == (4, 3)
    assert img.filename == "a.raw"
    assert img.meta.fullpath.endswith("a.raw")
    assert img.raw is img.processed


def test_read_with_rotation(tmp_path):
    """회전 보정 후에는 센서 격자의 상하 반전 (height x width)"""
    path = write_raw(tmp_path / "a.raw", _grid())
    img = read_thermal_raw(path, width=4, height=3)
    np.testing.assert_array_equal(img.raw, np.flipud(_grid()))
    np.testing.assert_array_equal(img.raw, np.rot90(_grid().T))
    assert img.shape == (3, 4)


def test_default_sensor_is_landscape(tmp_path):
    sensor = np.arange(120 * 160, dtype=np.float64).reshape(120, 160)
    path = write_raw(tmp_path / "cam.raw", sensor)

    img = read_thermal_raw(path)
    assert img.shape == (120, 160)
    np.testing.assert_array_equal(img.raw, np.flipud(sensor))

    plain = read_thermal_raw(path, rotate=False)
    assert plain.shape == (160, 120)
    np.testing.assert_array_equal(plain.raw, sensor.T)


def test_write_read_round_trip(tmp_path):
    src = write_raw(tmp_path / "a.raw", _grid())
    img = read_thermal_raw(src, width=4, height=3, rotate=False)
    out = write_thermal_raw(img, tmp_path / "out" / "b.raw")
    assert out.read_bytes() == src.read_bytes()


def test_write_keeps_rotation(tmp_path):
    src = write_raw(tmp_path / "a.raw", _grid())
    rotated = read_thermal_raw(src, width=4, height=3)
    out = write_thermal_raw(rotated, tmp_path / "r.raw")
    again = read_thermal_raw(out, width=3, height=4, rotate=False)
    np.testing.assert_array_equal(again.raw, rotated.raw)
    np.testing.assert_array_equal(again.raw, np.flipud(_grid()))


def test_write_processed(tmp_path):
    img = new_thermal(_grid(), filename="a.raw")
    masked = img.with_processed(np.where(_grid() > 5, _grid(), np.nan))
    out = write_thermal_raw(masked, tmp_path / "m.raw", use_processed=True)
    back = read_thermal_raw(out, width=3, height=4, rotate=False)
    assert back.shape == (3, 4)
    assert back.n_valid() == 6
    np.testing.assert_array_equal(np.isnan(back.raw), _grid() <= 5)


def test_short_file_padded_with_nan(tmp_path, caplog):
    path = write_raw(tmp_path / "short.raw", np.arange(10.0))
    with caplog.at_level(logging.WARNING):
        img = read_thermal_raw(path, width=4, height=3, rotate=False)
    assert img.n_valid() == 10
    # 센서 격자 마지막 행의 뒤 두 칸 → 전치 후 (2, 2), (3, 2)
    assert np.isnan(img.raw[2, 2]) and np.isnan(img.raw[3, 2])
    assert any("예상 크기" in r.message for r in caplog.records)


def test_long_file_truncated(tmp_path, caplog):
    path = write_raw(tmp_path / "long.raw", np.arange(20.0))
    with caplog.at_level(logging.WARNING):
        img = read_thermal_raw(path, width=4, height=3, rotate=False)
    np.testing.assert_array_equal(img.raw, _grid().T)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_thermal_raw(tmp_path / "nope.raw")


@pytest.mark.parametrize("width, height", [(0, 3), (4, -1), (4.5, 3), (True, 3)])
def test_bad_dims(tmp_path, width, height):
    path = write_raw(tmp_path / "a.raw", _grid())
    with pytest.raises(InvalidInputTypeError):
        read_thermal_raw(path, width=width, height=height)


# ============================================================
# 행렬 ↔ 레코드
# ============================================================

def test_create_from_dataframe():
    img = create_thermal(pd.DataFrame(_grid()), name="sim")
    assert img.filename == "sim"
    assert img.shape == (3, 4)


def test_create_rejects_text_columns():
    with pytest.raises(InvalidInputTypeError):
        create_thermal(pd.DataFrame({'a': [1.0], 'b': ['x']}))


def test_to_array_replaces_nan_and_is_writable():
    img = new_thermal(np.array([[1.0, np.nan], [3.0, 5.0]]), filename="a")
    arr = to_array(img, replace_na=-1.0)
    assert arr[0, 1] == -1.0
    arr[0, 0] = 100.0
    assert img.processed[0, 0] == 1.0


def test_to_array_normalize():
    img = new_thermal(np.array([[10.0, np.nan], [20.0, 30.0]]), filename="a")
    arr = to_array(img, normalize=True)
    np.testing.assert_allclose(arr, [[0.0, 0.0], [0.5, 1.0]])


def test_from_array_template_mode():
    img = new_thermal(_grid(), filename="a.raw").with_stats({'Mean': 1.0})
    mask = (_grid() > 5).astype(float) * _grid()
    out = from_array(mask, template=img, mask_zero=True)
    assert out.filename == "a.raw"
    assert out.stats is None
    assert out.n_valid() == 6
    np.testing.assert_array_equal(out.raw, img.raw)


def test_from_array_create_mode_color(caplog):
    rgb = np.zeros((3, 4, 3))
    rgb[..., 0] = _grid()
    with caplog.at_level(logging.WARNING):
        out = from_array(rgb)
    assert out.filename == "Imported_Array"
    np.testing.assert_array_equal(out.raw, _grid())


def test_from_array_shape_mismatch():
    img = new_thermal(_grid(), filename="a.raw")
    with pytest.raises(InvalidInputTypeError):
        from_array(np.ones((2, 2)), template=img)


# ============================================================
# 폴더 일괄 읽기
# ============================================================

def test_get_files_case_insensitive_sorted(tmp_path):
    for name in ("b.RAW", "a.raw", "notes.txt"):
        write_raw(tmp_path / name, _grid())
    files = get_thermal_files(tmp_path)
    assert [f.name for f in files] == ["a.raw", "b.RAW"]


def test_batch_read(tmp_path):
    for name in ("m02.raw", "m01.raw"):
        write_raw(tmp_path / name, _grid())
    images = read_thermal_batch(tmp_path, width=4, height=3, rotate=False)
    assert list(images) == ["m01.raw", "m02.raw"]
    assert images["m01.raw"].shape == (4, 3)


def test_batch_recursive_duplicate_names(tmp_path, caplog):
    for sub in ("d1", "d2"):
        (tmp_path / sub).mkdir()
        write_raw(tmp_path / sub / "x.raw", _grid())
    with caplog.at_level(logging.WARNING):
        images = read_thermal_batch(tmp_path, recursive=True, width=4, height=3)
    assert list(images) == ["x.raw", "d2/x.raw"]


def test_batch_not_recursive_by_default(tmp_path):
    (tmp_path / "sub").mkdir()
    write_raw(tmp_path / "sub" / "x.raw", _grid())
    write_raw(tmp_path / "y.raw", _grid())
    assert list(read_thermal_batch(tmp_path, width=4, height=3)) == ["y.raw"]


def test_batch_missing_folder(tmp_path):
    with pytest.raises(DirectoryNotFoundError):
        read_thermal_batch(tmp_path / "missing")


def test_batch_no_match(tmp_path):
    write_raw(tmp_path / "a.bin", _grid())
    with pytest.raises(FileNotFoundError):
        read_thermal_batch(tmp_path)


def test_batch_skips_unreadable(tmp_path, caplog):
    write_raw(tmp_path / "a.raw", _grid())
    write_raw(tmp_path / "b.raw", _grid())
    with caplog.at_level(logging.WARNING):
        images = read_thermal_batch(tmp_path, pattern=r"\.raw$", width=0, height=3)
    assert images == {}
    assert len([r for r in caplog.records if "읽기 실패" in r.message]) == 2
