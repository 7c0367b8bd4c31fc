"""
Regression Analysis

Ordinary least-squares regression of one variable on another, used to relate
selectivity to per-element constants such as the water exchange rate (k_ex).

Features:
- Slope, intercept, r and R²
- Standard error of the slope
- Approximate two-sided p-value for the slope
- Pearson correlation, mean and standard error helpers
"""

from typing import Optional, Dict, Sequence, Tuple, Union
from dataclasses import dataclass

import numpy as np


ArrayLike = Union[Sequence[float], np.ndarray]


@dataclass(frozen=True)
class RegressionResult:
    """Result of a simple linear regression y = slope * x + intercept."""
    slope: float
    intercept: float
    r_squared: float
    r: float
    p_value: float
    standard_error: float
    predictions: np.ndarray  # same length as x


def t_stat_to_p_value(t: float, df: float) -> float:
    """
    Approximate two-sided p-value for a t statistic.

    This is a simplified exponential approximation, not the exact Student-t
    tail (incomplete beta function). Significance thresholds used across the
    package (0.05, 0.1) are calibrated against it, so it is kept as is.

    Args:
        t: t statistic (sign is ignored)
        df: Degrees of freedom

    Returns:
        p-value in [0, 1]
    """
    if df <= 0:
        return 1.0

    t2 = t * t
    p = np.exp(-0.5 * t2 * (1 + t2 / df) / (1 + t2 / (2 * df)))
    return float(min(1.0, 2 * p))


def linear_regression(x: ArrayLike, y: ArrayLike) -> RegressionResult:
    """
    Perform simple linear regression of y on x.

    Args:
        x: Independent variable
        y: Dependent variable (same length as x)

    Returns:
        RegressionResult. With fewer than 2 points every field is neutral
        (p_value = 1) and predictions are y unchanged.
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)

    if x_arr.shape != y_arr.shape:
        raise ValueError(
            f"x and y must have the same length, got {len(x_arr)} and {len(y_arr)}"
        )

    n = len(x_arr)

    if n < 2:
        return RegressionResult(
            slope=0.0,
            intercept=0.0,
            r_squared=0.0,
            r=0.0,
            p_value=1.0,
            standard_error=0.0,
            predictions=y_arr.copy()
        )

    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()
    ss_xy = float(np.sum(dx * dy))
    ss_xx = float(np.sum(dx * dx))
    ss_yy = float(np.sum(dy * dy))

    slope = ss_xy / ss_xx if ss_xx != 0 else 0.0
    intercept = float(y_arr.mean() - slope * x_arr.mean())

    if ss_xx != 0 and ss_yy != 0:
        r = float(np.clip(ss_xy / np.sqrt(ss_xx * ss_yy), -1.0, 1.0))
    else:
        r = 0.0

    predictions = slope * x_arr + intercept
    ss_res = float(np.sum((y_arr - predictions) ** 2))

    if n > 2 and ss_xx != 0:
        standard_error = float(np.sqrt(ss_res / (n - 2) / ss_xx))
    else:
        standard_error = 0.0

    t_stat = abs(slope / standard_error) if standard_error != 0 else 0.0
    p_value = t_stat_to_p_value(t_stat, n - 2)

    return RegressionResult(
        slope=float(slope),
        intercept=intercept,
        r_squared=r * r,
        r=r,
        p_value=p_value,
        standard_error=standard_error,
        predictions=predictions
    )


def pearson_correlation(x: ArrayLike, y: ArrayLike) -> float:
    """Pearson correlation coefficient (0 when undefined)."""
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)

    if len(x_arr) < 2 or len(x_arr) != len(y_arr):
        return 0.0

    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()
    denominator = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))

    if denominator == 0:
        return 0.0
    return float(np.sum(dx * dy) / denominator)


def mean_and_se(values: ArrayLike) -> Tuple[float, float, float]:
    """
    Mean, standard error and sample standard deviation.

    Returns:
        Tuple of (mean, se, std). Empty input gives zeros; a single value
        gives se = std = 0.
    """
    arr = np.asarray(values, dtype=float)
    n = len(arr)

    if n == 0:
        return 0.0, 0.0, 0.0

    mean = float(arr.mean())
    if n == 1:
        return mean, 0.0, 0.0

    std = float(arr.std(ddof=1))
    return mean, std / np.sqrt(n), std


class RegressionEngine:
    """
    Fit linear regressions with the package's significance conventions.

    Thin object front for linear_regression() so it can be configured and
    passed around like the other analyzers.
    """

    def __init__(self, alpha: float = 0.05, config: Optional[Dict] = None):
        """
        Initialize regression engine.

        Args:
            alpha: Significance threshold for is_significant()
            config: Optional configuration dictionary; shares
                    analysis.statistical.alpha with the hypothesis tests
        """
        self.config = config or {}
        stat_config = self.config.get('analysis', {}).get('statistical', {})
        self.alpha = stat_config.get('alpha', alpha)

    def fit(self, x: ArrayLike, y: ArrayLike) -> RegressionResult:
        """Fit y on x."""
        return linear_regression(x, y)

    def is_significant(self, result: RegressionResult) -> bool:
        return result.p_value < self.alpha
