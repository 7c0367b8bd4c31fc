"""
Preprocessing Layer

Outlier detection and replicate quality assessment.
"""

from .outliers import (
    FlaggedValue,
    OutlierResult,
    OutlierReport,
    OutlierEnsemble,
    grubbs_test,
    iqr_outlier_detection,
    zscore_outlier_detection,
    combined_outlier_detection,
)
from .quality import (
    QualityAssessment,
    QualityAssessor,
    assess_data_quality,
    coefficient_of_variation,
)

__all__ = [
    # Outliers
    'FlaggedValue',
    'OutlierResult',
    'OutlierReport',
    'OutlierEnsemble',
    'grubbs_test',
    'iqr_outlier_detection',
    'zscore_outlier_detection',
    'combined_outlier_detection',

    # Quality
    'QualityAssessment',
    'QualityAssessor',
    'assess_data_quality',
    'coefficient_of_variation',
]
