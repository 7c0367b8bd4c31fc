"""
Replicate Quality Assessment

Maps replicate variability (CV%) and ensemble outlier flags to a
categorical quality tier with a recommendation.

Tiers by CV%:
    <= 10  excellent
    <= 20  good
    <= 30  acceptable
    <= 50  poor
    else   unreliable
"""

from typing import Dict, List, Optional, Sequence, Tuple, Union
from dataclasses import dataclass

import numpy as np

from .outliers import OutlierEnsemble


ArrayLike = Union[Sequence[float], np.ndarray]

# (upper CV% bound, quality, recommendation), checked in order
DEFAULT_QUALITY_TIERS: List[Tuple[float, str, str]] = [
    (10.0, 'excellent', 'Data is highly reproducible'),
    (20.0, 'good', 'Data quality is acceptable'),
    (30.0, 'acceptable', 'Consider investigating sources of variability'),
    (50.0, 'poor', 'High variability - review experimental conditions'),
]
UNRELIABLE_RECOMMENDATION = 'Data too variable for reliable conclusions'
INSUFFICIENT_RECOMMENDATION = 'Insufficient replicates (n < 2)'

QUALITY_LEVELS = ['excellent', 'good', 'acceptable', 'poor', 'unreliable']


@dataclass(frozen=True)
class QualityAssessment:
    """Container for replicate quality assessment results."""
    cv: float  # coefficient of variation (%)
    quality: str  # 'excellent', 'good', 'acceptable', 'poor', 'unreliable'
    has_outliers: bool
    outlier_count: int
    recommendation: str


def coefficient_of_variation(values: ArrayLike) -> float:
    """
    CV% = sample std / |mean| * 100.

    Returns 0 for fewer than 2 values or a zero mean.
    """
    arr = np.asarray(values, dtype=float)
    if len(arr) < 2:
        return 0.0

    mean = arr.mean()
    if mean == 0:
        return 0.0
    return float(arr.std(ddof=1) / abs(mean) * 100.0)


class QualityAssessor:
    """
    Assess replicate quality from CV% and outlier flags.
    """

    def __init__(
        self,
        min_agreement: int = 2,
        config: Optional[Dict] = None
    ):
        """
        Initialize quality assessor.

        Args:
            min_agreement: Ensemble agreement used for outlier counting
            config: Optional configuration dictionary. Reads
                    preprocessing.quality.cv_thresholds
                    ({excellent, good, acceptable, poor} -> max CV%)
        """
        self.config = config or {}

        quality_config = self.config.get('preprocessing', {}).get('quality', {})
        thresholds = quality_config.get('cv_thresholds', {})

        self.tiers = [
            (float(thresholds.get(quality, bound)), quality, recommendation)
            for bound, quality, recommendation in DEFAULT_QUALITY_TIERS
        ]
        bounds = [bound for bound, _, _ in self.tiers]
        if bounds != sorted(bounds):
            raise ValueError(f"CV thresholds must be increasing, got {bounds}")

        self._ensemble = OutlierEnsemble(min_agreement=min_agreement, config=self.config)

    def classify_cv(self, cv: float) -> Tuple[str, str]:
        """Map CV% to (quality, recommendation)."""
        for bound, quality, recommendation in self.tiers:
            if cv <= bound:
                return quality, recommendation
        return 'unreliable', UNRELIABLE_RECOMMENDATION

    def assess(self, values: ArrayLike) -> QualityAssessment:
        """
        Assess replicate quality.

        Args:
            values: Replicate measurements

        Returns:
            QualityAssessment
        """
        arr = np.asarray(values, dtype=float)

        if len(arr) < 2:
            return QualityAssessment(
                cv=0.0,
                quality='unreliable',
                has_outliers=False,
                outlier_count=0,
                recommendation=INSUFFICIENT_RECOMMENDATION
            )

        cv = coefficient_of_variation(arr)
        report = self._ensemble.combined(arr)
        outlier_count = report.n_outliers

        quality, recommendation = self.classify_cv(cv)

        if outlier_count > 0:
            recommendation += f". {outlier_count} potential outlier(s) detected"

        return QualityAssessment(
            cv=cv,
            quality=quality,
            has_outliers=outlier_count > 0,
            outlier_count=outlier_count,
            recommendation=recommendation
        )


def assess_data_quality(values: ArrayLike) -> QualityAssessment:
    """Assess replicate quality with the default thresholds."""
    return QualityAssessor().assess(values)
