"""열화상 데이터 모델"""

from .thermal import ThermalImage, ThermalMeta, new_thermal, ensure_thermal, as_matrix
from .reports import RoiMaskResult, BatchReport

__all__ = [
    'ThermalImage',
    'ThermalMeta',
    'new_thermal',
    'ensure_thermal',
    'as_matrix',
    'RoiMaskResult',
    'BatchReport',
]
