"""공통 테스트 설정 및 합성 데이터"""

import sys
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from biotherm.models.thermal import new_thermal


def make_subject(shape=(40, 50), center=(20, 25), radii=(10, 14),
                 body_temp=36.5, bg_temp=22.0, noise=0.2, seed=0):
    """타원형 동물(고온) + 배경(저온) 합성 온도 행렬"""
    rng = np.random.default_rng(seed)
    yy, xx = np.mgrid[0:shape[0], 0:shape[1]]
    inside = (((yy - center[0]) / radii[0]) ** 2
              + ((xx - center[1]) / radii[1]) ** 2) <= 1.0
    mat = np.where(inside, body_temp, bg_temp).astype(np.float64)
    mat += rng.normal(0, noise, shape)
    return mat, inside


@pytest.fixture
def subject_image():
    mat, _ = make_subject()
    return new_thermal(mat, filename="mouse_01.raw")


@pytest.fixture
def corner_image():
    """4x4, 30.0 격자에 모서리 하나만 10.0"""
    mat = np.full((4, 4), 30.0)
    mat[0, 0] = 10.0
    return new_thermal(mat, filename="corner.raw")


def write_raw(path: Path, mat: np.ndarray):
    """row-major little-endian float32 파일 쓰기"""
    path.write_bytes(np.ascontiguousarray(mat, dtype='<f4').tobytes())
    return path
