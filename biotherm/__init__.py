"""동물 열화상 분석 패키지"""

__version__ = "1.0.0"

from .exceptions import (
    BioThermError,
    InvalidInputTypeError,
    MissingColumnError,
    UnsupportedMethodError,
    EmptyInputError,
    DirectoryNotFoundError,
    SchemaMismatchError,
)
from .models import ThermalImage, ThermalMeta, RoiMaskResult, BatchReport
from .core import (
    normalize_matrix,
    compute_otsu_threshold,
    compute_roi_mask,
    roi_segment,
    roi_filter_threshold,
    keep_largest_region,
    get_mask_statistics,
    compute_statistics,
    analyze_thermal_stats,
    compile_batch_stats,
    merge_clinical_data,
    aggregate_replicates,
)
from .io import (
    read_thermal_raw,
    write_thermal_raw,
    read_thermal_batch,
    read_thermal_flir,
    create_thermal,
    to_array,
    from_array,
    save_thermal,
    load_thermal,
    ResultExporter,
)
from .visualization import (
    plot_thermal_heatmap,
    plot_thermal_density,
    plot_thermal_3d,
    compose_montage,
    plot_thermal_montage,
    phyllotaxis_layout,
    compose_cloud,
    plot_thermal_cloud,
    resolve_palette,
    viz_thermal_barplot,
    viz_thermal_boxplot,
)
from .batch import BatchProcessor
from .utils import setup_logger, set_level, SettingsManager

__all__ = [
    # Exceptions
    'BioThermError',
    'InvalidInputTypeError',
    'MissingColumnError',
    'UnsupportedMethodError',
    'EmptyInputError',
    'DirectoryNotFoundError',
    'SchemaMismatchError',

    # Models
    'ThermalImage',
    'ThermalMeta',
    'RoiMaskResult',
    'BatchReport',

    # Segmentation
    'normalize_matrix',
    'compute_otsu_threshold',
    'compute_roi_mask',
    'roi_segment',
    'roi_filter_threshold',
    'keep_largest_region',
    'get_mask_statistics',

    # Statistics / tables
    'compute_statistics',
    'analyze_thermal_stats',
    'compile_batch_stats',
    'merge_clinical_data',
    'aggregate_replicates',

    # IO
    'read_thermal_raw',
    'write_thermal_raw',
    'read_thermal_batch',
    'read_thermal_flir',
    'create_thermal',
    'to_array',
    'from_array',
    'save_thermal',
    'load_thermal',
    'ResultExporter',

    # Visualization
    'plot_thermal_heatmap',
    'plot_thermal_density',
    'plot_thermal_3d',
    'compose_montage',
    'plot_thermal_montage',
    'phyllotaxis_layout',
    'compose_cloud',
    'plot_thermal_cloud',
    'resolve_palette',
    'viz_thermal_barplot',
    'viz_thermal_boxplot',

    # Batch
    'BatchProcessor',

    # Utils
    'setup_logger',
    'set_level',
    'SettingsManager',
]
