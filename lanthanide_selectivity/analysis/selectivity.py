"""
Selectivity Metrics

Summary statistics over a per-element selectivity profile (element -> %).

Features:
- Shannon entropy of the profile (how selective a binder is)
- Light/heavy REE discrimination score
- k_ex preference strength index
- Offset between separately fitted light and heavy k_ex regressions

The numeric computations are kept apart from the label tables so labels can
be revised without touching the math.
"""

from typing import Mapping, Optional, Sequence, List, Tuple
from dataclasses import dataclass

import numpy as np

from .regression import RegressionResult


# (upper bound, label), checked in order; values at or above the last bound
# fall through to the final label of each table

ENTROPY_LABELS: List[Tuple[float, str]] = [
    (0.3, 'highly selective'),
    (0.6, 'selective'),
    (0.8, 'moderate'),
]
ENTROPY_FALLBACK = 'promiscuous'

KEX_STRENGTH_LABELS: List[Tuple[float, str]] = [
    (0.01, 'none'),
    (0.05, 'weak'),
    (0.15, 'moderate'),
]
KEX_STRENGTH_FALLBACK = 'strong'

PREFERENCE_THRESHOLD = 15.0
MAX_T_STATISTIC = 5.0
KEX_GATE_P = 0.1
KEX_RELIABLE_P = 0.05
KEX_RELIABLE_R2 = 0.3

INSUFFICIENT_OFFSET = 'Insufficient data for light/heavy comparison'


@dataclass(frozen=True)
class EntropyResult:
    entropy: float  # natural log units
    normalized_entropy: float  # 0 = single element, 1 = uniform
    interpretation: str


@dataclass(frozen=True)
class LightHeavyResult:
    score: float  # [-100, 100], positive = light preference
    preference: str  # 'light', 'heavy', 'balanced'
    light_sum: float
    heavy_sum: float


@dataclass(frozen=True)
class KexStrengthResult:
    strength: float
    interpretation: str  # 'none', 'weak', 'moderate', 'strong'
    is_reliable: bool


@dataclass(frozen=True)
class LightHeavyOffsetResult:
    offset: float  # light - heavy fitted value at the midpoint
    offset_percent: float
    light_value_at_midpoint: float
    heavy_value_at_midpoint: float
    slope_difference: float
    is_significant: bool
    interpretation: str


def _band(value: float, table: List[Tuple[float, str]], fallback: str) -> str:
    for bound, label in table:
        if value < bound:
            return label
    return fallback


def interpret_entropy(normalized_entropy: float) -> str:
    """Label for a normalized entropy."""
    return _band(normalized_entropy, ENTROPY_LABELS, ENTROPY_FALLBACK)


def classify_preference(score: float, threshold: float = PREFERENCE_THRESHOLD) -> str:
    """'light' above +threshold, 'heavy' below -threshold, else 'balanced'."""
    if score > threshold:
        return 'light'
    if score < -threshold:
        return 'heavy'
    return 'balanced'


def interpret_kex_strength(strength: float) -> str:
    """Label for a k_ex preference strength."""
    return _band(strength, KEX_STRENGTH_LABELS, KEX_STRENGTH_FALLBACK)


def selectivity_entropy(profile: Mapping[str, float]) -> EntropyResult:
    """
    Shannon entropy of a selectivity profile.

    The positive-valued elements are renormalized into a probability
    distribution; the entropy is normalized by ln(number of positive
    elements). A zero-total profile is maximally selective by convention.

    Args:
        profile: Element -> selectivity (%)

    Returns:
        EntropyResult
    """
    positive = np.array([v for v in profile.values() if v > 0], dtype=float)
    total = positive.sum()

    if total <= 0:
        return EntropyResult(0.0, 0.0, interpret_entropy(0.0))

    p = positive / total
    entropy = float(-np.sum(p * np.log(p)))

    n_positive = len(positive)
    normalized = entropy / np.log(n_positive) if n_positive > 1 else 0.0
    normalized = float(min(max(normalized, 0.0), 1.0))

    return EntropyResult(entropy, normalized, interpret_entropy(normalized))


def light_heavy_discrimination(
    profile: Mapping[str, float],
    light_elements: Sequence[str],
    heavy_elements: Sequence[str]
) -> LightHeavyResult:
    """
    Light vs heavy discrimination score.

    score = (L - H) / (L + H) * 100, where L and H are the sums of the
    profile over each subset (negative values count as 0).

    Args:
        profile: Element -> selectivity (%)
        light_elements: Light subset
        heavy_elements: Heavy subset

    Returns:
        LightHeavyResult
    """
    light_sum = float(sum(max(0.0, profile.get(e, 0.0)) for e in light_elements))
    heavy_sum = float(sum(max(0.0, profile.get(e, 0.0)) for e in heavy_elements))
    total = light_sum + heavy_sum

    if total == 0:
        return LightHeavyResult(0.0, 'balanced', light_sum, heavy_sum)

    score = (light_sum - heavy_sum) / total * 100.0
    return LightHeavyResult(score, classify_preference(score), light_sum, heavy_sum)


def kex_preference_strength(
    slope: float,
    standard_error: float,
    r_squared: float,
    p_value: float
) -> KexStrengthResult:
    """
    Strength of a k_ex preference.

    strength = |slope| * R² * min(|slope| / SE, 5) / 5

    Only computed when p < 0.1 and SE != 0. Reliable additionally requires
    p < 0.05 and R² > 0.3.
    """
    if p_value >= KEX_GATE_P or standard_error == 0:
        return KexStrengthResult(0.0, 'none', False)

    t_capped = min(abs(slope) / standard_error, MAX_T_STATISTIC)
    strength = abs(slope) * r_squared * (t_capped / MAX_T_STATISTIC)

    is_reliable = p_value < KEX_RELIABLE_P and r_squared > KEX_RELIABLE_R2

    return KexStrengthResult(float(strength), interpret_kex_strength(strength), is_reliable)


def _offset_interpretation(offset: float, is_significant: bool) -> str:
    if offset > 0:
        side = 'Light lanthanides bound preferentially'
    elif offset < 0:
        side = 'Heavy lanthanides bound preferentially'
    else:
        return 'No offset between light and heavy regressions'

    if is_significant:
        return f"{side} (slopes differ significantly)"
    return f"{side} (slope difference not significant)"


def calculate_light_heavy_offset(
    light_regression: Optional[RegressionResult],
    heavy_regression: Optional[RegressionResult],
    midpoint: float
) -> LightHeavyOffsetResult:
    """
    Vertical offset between the light and heavy regression lines.

    Both lines are evaluated at the midpoint x-value. The offset is expressed
    as a percentage of the mean of the two fitted values, and flagged as
    significant when |slope_light - slope_heavy| exceeds twice the combined
    standard error sqrt(SE_l² + SE_h²).

    Args:
        light_regression: Regression over the light subset (or None)
        heavy_regression: Regression over the heavy subset (or None)
        midpoint: x-value where the lines are compared

    Returns:
        LightHeavyOffsetResult (offset 0 when either regression is missing)
    """
    if light_regression is None or heavy_regression is None:
        return LightHeavyOffsetResult(
            offset=0.0,
            offset_percent=0.0,
            light_value_at_midpoint=0.0,
            heavy_value_at_midpoint=0.0,
            slope_difference=0.0,
            is_significant=False,
            interpretation=INSUFFICIENT_OFFSET
        )

    light_value = light_regression.slope * midpoint + light_regression.intercept
    heavy_value = heavy_regression.slope * midpoint + heavy_regression.intercept
    offset = light_value - heavy_value

    average = abs((light_value + heavy_value) / 2)
    offset_percent = offset / average * 100.0 if average != 0 else 0.0

    slope_difference = light_regression.slope - heavy_regression.slope
    combined_se = np.sqrt(
        light_regression.standard_error ** 2 + heavy_regression.standard_error ** 2
    )
    is_significant = bool(combined_se > 0 and abs(slope_difference) > 2 * combined_se)

    return LightHeavyOffsetResult(
        offset=float(offset),
        offset_percent=float(offset_percent),
        light_value_at_midpoint=float(light_value),
        heavy_value_at_midpoint=float(heavy_value),
        slope_difference=float(slope_difference),
        is_significant=is_significant,
        interpretation=_offset_interpretation(offset, is_significant)
    )
