"""체크포인트 저장/복원 테스트"""

import logging

import joblib
import numpy as np
import pytest

from biotherm.exceptions import InvalidInputTypeError
from biotherm.models.thermal import new_thermal
from biotherm.core.masking import roi_segment
from biotherm.core.statistics import analyze_thermal_stats
from biotherm.io.checkpoint import save_thermal, load_thermal


def test_round_trip_single(tmp_path, subject_image):
    img = analyze_thermal_stats(roi_segment(subject_image))
    path = save_thermal(img, tmp_path / "mouse")

    assert path.name == "mouse.joblib"
    back = load_thermal(tmp_path / "mouse")

    assert back.filename == img.filename
    np.testing.assert_array_equal(back.raw, img.raw)
    np.testing.assert_array_equal(np.isnan(back.processed), np.isnan(img.processed))
    assert back.stats == pytest.approx(img.stats, nan_ok=True)


def test_loaded_arrays_read_only(tmp_path, subject_image):
    path = save_thermal(subject_image, tmp_path / "a.joblib")
    back = load_thermal(path)
    assert not back.raw.flags.writeable
    with pytest.raises(ValueError):
        back.processed[0, 0] = 0.0


def test_round_trip_collection(tmp_path):
    images = {f"m{i}.raw": new_thermal(np.full((3, 3), float(i)), filename=f"m{i}.raw")
              for i in range(3)}
    path = save_thermal(images, tmp_path / "cohort.joblib")
    back = load_thermal(path)
    assert list(back) == list(images)
    assert back["m2.raw"].raw[0, 0] == 2.0


def test_existing_suffix_kept(tmp_path, corner_image):
    path = save_thermal(corner_image, tmp_path / "x.JOBLIB")
    assert path.name == "x.JOBLIB"
    assert not list(tmp_path.glob("*.tmp"))


@pytest.mark.parametrize("bad", [{}, [], {"a": 1}, [np.zeros((2, 2))], "img", None])
def test_rejects_non_records(tmp_path, bad):
    with pytest.raises(InvalidInputTypeError):
        save_thermal(bad, tmp_path / "bad")
    assert not list(tmp_path.iterdir())


def test_load_foreign_content_warns(tmp_path, caplog):
    path = tmp_path / "other.joblib"
    joblib.dump({"a": 1}, path)
    with caplog.at_level(logging.WARNING):
        obj = load_thermal(path)
    assert obj == {"a": 1}
    assert any("레코드 형식이 아닙니다" in r.message for r in caplog.records)


def test_load_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_thermal(tmp_path / "none")
