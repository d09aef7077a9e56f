"""IO 모듈"""

from .loader import (
    read_thermal_raw,
    write_thermal_raw,
    read_thermal_batch,
    get_thermal_files,
    create_thermal,
    to_array,
    from_array,
)
from .flir import read_thermal_flir
from .checkpoint import save_thermal, load_thermal
from .exporter import ResultExporter

__all__ = [
    'read_thermal_raw',
    'write_thermal_raw',
    'read_thermal_batch',
    'get_thermal_files',
    'create_thermal',
    'to_array',
    'from_array',
    'read_thermal_flir',
    'save_thermal',
    'load_thermal',
    'ResultExporter',
]
