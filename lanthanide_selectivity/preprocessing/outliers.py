"""
Outlier Detection

Three independent detectors for small replicate sets and a voting ensemble:
1. Grubbs test (iterative, alpha = 0.05)
2. IQR fences
3. Z-score threshold

Any single method is brittle at n = 2-6 replicates, so the ensemble only
confirms an outlier when at least `min_agreement` methods flag it.
All indices refer to positions in the original input array.
"""

from typing import Dict, List, Optional, Sequence, Tuple, Union
from dataclasses import dataclass, field

import numpy as np


ArrayLike = Union[Sequence[float], np.ndarray]

# Critical values for Grubbs test (two-sided, alpha = 0.05), indexed by n
GRUBBS_CRITICAL: Dict[int, float] = {
    3: 1.153,
    4: 1.463,
    5: 1.672,
    6: 1.822,
    7: 1.938,
    8: 2.032,
    9: 2.110,
    10: 2.176,
    11: 2.234,
    12: 2.285,
    13: 2.331,
    14: 2.371,
    15: 2.409,
    16: 2.443,
    17: 2.475,
    18: 2.504,
    19: 2.532,
    20: 2.557,
}
GRUBBS_MAX_N = 20


@dataclass(frozen=True)
class FlaggedValue:
    """A value paired with its position in the original array."""
    value: float
    original_index: int


@dataclass(frozen=True)
class OutlierResult:
    """Result of a single detection method."""
    method: str  # 'grubbs', 'iqr', 'zscore'
    outlier_indices: Tuple[int, ...]
    cleaned_values: np.ndarray


@dataclass(frozen=True)
class OutlierReport:
    """Result of ensemble detection."""
    outlier_indices: Tuple[int, ...]  # strictly increasing
    cleaned_values: np.ndarray
    method_results: Dict[str, Tuple[int, ...]] = field(default_factory=dict)

    @property
    def n_outliers(self) -> int:
        return len(self.outlier_indices)

    @property
    def has_outliers(self) -> bool:
        return len(self.outlier_indices) > 0


def _tag(values: ArrayLike) -> List[FlaggedValue]:
    return [FlaggedValue(float(v), i) for i, v in enumerate(np.asarray(values, dtype=float))]


def _split(
    method: str,
    tagged: List[FlaggedValue],
    flagged: List[int]
) -> OutlierResult:
    flagged_set = set(flagged)
    cleaned = np.array(
        [t.value for t in tagged if t.original_index not in flagged_set],
        dtype=float
    )
    return OutlierResult(method, tuple(sorted(flagged_set)), cleaned)


def grubbs_critical_value(n: int) -> float:
    """Critical value for n samples, clamped to the largest tabulated n."""
    return GRUBBS_CRITICAL[min(max(n, 3), GRUBBS_MAX_N)]


def grubbs_test(values: ArrayLike) -> OutlierResult:
    """
    Iterative Grubbs test.

    Removes the most extreme point while its G statistic exceeds the
    critical value; stops when nothing exceeds it, the sample std is 0,
    or fewer than 3 points remain.

    Args:
        values: 1D array of values

    Returns:
        OutlierResult with the removed indices sorted ascending
    """
    tagged = _tag(values)
    if len(tagged) < 3:
        return _split('grubbs', tagged, [])

    working = list(tagged)
    flagged: List[int] = []

    while len(working) >= 3:
        current = np.array([t.value for t in working])
        std = current.std(ddof=1)
        if std == 0:
            break

        deviations = np.abs(current - current.mean()) / std
        max_pos = int(np.argmax(deviations))

        if deviations[max_pos] > grubbs_critical_value(len(working)):
            flagged.append(working.pop(max_pos).original_index)
        else:
            break

    return _split('grubbs', tagged, flagged)


def iqr_outlier_detection(values: ArrayLike, multiplier: float = 1.5) -> OutlierResult:
    """
    IQR fence detection.

    Quartiles are taken by index into the sorted values (no interpolation):
    Q1 = sorted[floor(0.25 n)], Q3 = sorted[floor(0.75 n)].

    Args:
        values: 1D array of values
        multiplier: Fence multiplier (default 1.5)

    Returns:
        OutlierResult
    """
    tagged = _tag(values)
    n = len(tagged)
    if n < 4:
        return _split('iqr', tagged, [])

    ordered = sorted(t.value for t in tagged)
    q1 = ordered[int(np.floor(n * 0.25))]
    q3 = ordered[int(np.floor(n * 0.75))]
    iqr = q3 - q1

    lower = q1 - multiplier * iqr
    upper = q3 + multiplier * iqr

    flagged = [t.original_index for t in tagged if t.value < lower or t.value > upper]
    return _split('iqr', tagged, flagged)


def zscore_outlier_detection(values: ArrayLike, threshold: float = 2.5) -> OutlierResult:
    """
    Z-score detection using the sample standard deviation.

    Args:
        values: 1D array of values
        threshold: |z| cutoff (default 2.5)

    Returns:
        OutlierResult
    """
    tagged = _tag(values)
    if len(tagged) < 3:
        return _split('zscore', tagged, [])

    arr = np.array([t.value for t in tagged])
    std = arr.std(ddof=1)
    if std == 0:
        return _split('zscore', tagged, [])

    z = np.abs(arr - arr.mean()) / std
    flagged = [t.original_index for t, score in zip(tagged, z) if score > threshold]
    return _split('zscore', tagged, flagged)


class OutlierEnsemble:
    """
    Combine Grubbs, IQR and Z-score detectors by majority vote.

    Usage:
        ensemble = OutlierEnsemble(config=config)
        report = ensemble.combined(values)
        clean = report.cleaned_values
    """

    def __init__(
        self,
        min_agreement: int = 2,
        iqr_multiplier: float = 1.5,
        zscore_threshold: float = 2.5,
        config: Optional[Dict] = None
    ):
        """
        Initialize outlier ensemble.

        Args:
            min_agreement: Number of methods that must flag an index
            iqr_multiplier: IQR fence multiplier
            zscore_threshold: Z-score cutoff
            config: Optional configuration dictionary
        """
        self.config = config or {}

        outlier_config = self.config.get('preprocessing', {}).get('outliers', {})
        self.min_agreement = outlier_config.get('min_agreement', min_agreement)
        self.iqr_multiplier = outlier_config.get('iqr_multiplier', iqr_multiplier)
        self.zscore_threshold = outlier_config.get('zscore_threshold', zscore_threshold)

        if self.min_agreement < 1:
            raise ValueError(f"min_agreement must be >= 1, got {self.min_agreement}")

    def detect_all(self, values: ArrayLike) -> Dict[str, OutlierResult]:
        """Run every detector independently."""
        return {
            'grubbs': grubbs_test(values),
            'iqr': iqr_outlier_detection(values, self.iqr_multiplier),
            'zscore': zscore_outlier_detection(values, self.zscore_threshold),
        }

    def combined(
        self,
        values: ArrayLike,
        min_agreement: Optional[int] = None
    ) -> OutlierReport:
        """
        Ensemble detection.

        Args:
            values: 1D array of values
            min_agreement: Override for the configured agreement level

        Returns:
            OutlierReport with indices flagged by at least min_agreement methods
        """
        if min_agreement is None:
            min_agreement = self.min_agreement

        tagged = _tag(values)
        results = self.detect_all(values)

        votes: Dict[int, int] = {}
        for result in results.values():
            for idx in result.outlier_indices:
                votes[idx] = votes.get(idx, 0) + 1

        confirmed = sorted(idx for idx, count in votes.items() if count >= min_agreement)
        confirmed_set = set(confirmed)
        cleaned = np.array(
            [t.value for t in tagged if t.original_index not in confirmed_set],
            dtype=float
        )

        return OutlierReport(
            outlier_indices=tuple(confirmed),
            cleaned_values=cleaned,
            method_results={name: r.outlier_indices for name, r in results.items()}
        )

    def outlier_mask(self, values: ArrayLike) -> np.ndarray:
        """Boolean mask: True for confirmed outliers."""
        report = self.combined(values)
        mask = np.zeros(len(np.asarray(values)), dtype=bool)
        mask[list(report.outlier_indices)] = True
        return mask


def combined_outlier_detection(values: ArrayLike, min_agreement: int = 2) -> OutlierReport:
    """Ensemble detection with default detector settings."""
    return OutlierEnsemble(min_agreement=min_agreement).combined(values)
