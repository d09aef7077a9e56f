"""핵심 분석 모듈"""

from .masking import (
    normalize_matrix,
    compute_otsu_threshold,
    compute_roi_mask,
    roi_segment,
    roi_filter_threshold,
    keep_largest_region,
    get_mask_statistics,
)
from .statistics import (
    METRIC_NAMES,
    bandwidth_nrd0,
    density_estimate,
    compute_statistics,
    analyze_thermal_stats,
)
from .tables import compile_batch_stats, merge_clinical_data, aggregate_replicates, clean_id

__all__ = [
    # Masking
    'normalize_matrix',
    'compute_otsu_threshold',
    'compute_roi_mask',
    'roi_segment',
    'roi_filter_threshold',
    'keep_largest_region',
    'get_mask_statistics',

    # Statistics
    'METRIC_NAMES',
    'bandwidth_nrd0',
    'density_estimate',
    'compute_statistics',
    'analyze_thermal_stats',

    # Tables
    'compile_batch_stats',
    'merge_clinical_data',
    'aggregate_replicates',
    'clean_id',
]
