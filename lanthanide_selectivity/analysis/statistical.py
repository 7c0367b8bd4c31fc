"""
Statistical Analysis

Two-sample comparisons of replicate measurements between mutants.

Features:
- Welch's t-test (unequal variances, Welch-Satterthwaite df)
- Mann-Whitney U (tie-averaged ranks, normal approximation)
- Selection rule: Mann-Whitney below 8 observations per group, else Welch
- Effect sizes (Cohen's d for Welch, rank-biserial for Mann-Whitney)
- 95% confidence interval of the mean difference
- Pairwise comparison of many groups with multiple comparison correction
- Text report
"""

from typing import List, Dict, Optional, Tuple, Any, Mapping, Sequence, Union
from dataclasses import dataclass
from itertools import combinations
import warnings

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.multitest import multipletests

from .regression import t_stat_to_p_value


ArrayLike = Union[Sequence[float], np.ndarray]

MIN_PARAMETRIC_N = 8

# (upper |effect| bound, label), checked in order
EFFECT_SIZE_BANDS: List[Tuple[float, str]] = [
    (0.2, 'negligible'),
    (0.5, 'small'),
    (0.8, 'medium'),
]


@dataclass(frozen=True)
class TwoSampleTestResult:
    """Result of a two-sample comparison."""
    statistic: float
    p_value: float
    significant: bool  # p_value < 0.05
    effect_size: float
    effect_interpretation: str  # negligible / small / medium / large
    ci_lower: float  # 95% CI of mean(group1) - mean(group2)
    ci_upper: float
    method: str
    degrees_of_freedom: float = 0.0
    n1: int = 0
    n2: int = 0


@dataclass(frozen=True)
class PairwiseComparisonResult:
    """Comparison of one metric between two mutants."""
    mutant_a: str
    mutant_b: str
    metric: str
    mean_a: float
    mean_b: float
    test: TwoSampleTestResult

    @property
    def significant(self) -> bool:
        return self.test.significant


def interpret_effect_size(effect_size: float) -> str:
    """Band |effect| into negligible / small / medium / large."""
    magnitude = abs(effect_size)
    for bound, label in EFFECT_SIZE_BANDS:
        if magnitude < bound:
            return label
    return 'large'


def choose_test(n1: int, n2: int, min_parametric_n: int = MIN_PARAMETRIC_N) -> str:
    """
    Selection rule for two-sample comparisons.

    Returns:
        'mann-whitney' when either group has fewer than min_parametric_n
        observations, else 'welch'
    """
    if n1 < min_parametric_n or n2 < min_parametric_n:
        return 'mann-whitney'
    return 'welch'


def _clean(values: ArrayLike) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    return arr[~np.isnan(arr)]


def _neutral_result(method: str, n1: int, n2: int) -> TwoSampleTestResult:
    return TwoSampleTestResult(
        statistic=0.0,
        p_value=1.0,
        significant=False,
        effect_size=0.0,
        effect_interpretation='negligible',
        ci_lower=0.0,
        ci_upper=0.0,
        method=method,
        n1=n1,
        n2=n2
    )


def _mean_difference_interval(g1: np.ndarray, g2: np.ndarray) -> Tuple[float, float, float, float]:
    """Mean difference, its Welch standard error, Welch df and CI half-width."""
    n1, n2 = len(g1), len(g2)
    var1, var2 = np.var(g1, ddof=1), np.var(g2, ddof=1)

    se1, se2 = var1 / n1, var2 / n2
    se = float(np.sqrt(se1 + se2))

    denominator = se1 ** 2 / (n1 - 1) + se2 ** 2 / (n2 - 1)
    if denominator > 0:
        df = float((se1 + se2) ** 2 / denominator)
    else:
        df = float(n1 + n2 - 2)

    # Approximate t critical value for a 95% interval
    critical = 1.96 + 2.4 / df
    return float(np.mean(g1) - np.mean(g2)), se, df, critical * se


def cohens_d(group1: ArrayLike, group2: ArrayLike) -> float:
    """Cohen's d with pooled standard deviation (0 when undefined)."""
    g1, g2 = _clean(group1), _clean(group2)
    n1, n2 = len(g1), len(g2)

    if n1 < 2 or n2 < 2:
        return 0.0

    var1, var2 = np.var(g1, ddof=1), np.var(g2, ddof=1)
    pooled_std = np.sqrt(((n1 - 1) * var1 + (n2 - 1) * var2) / (n1 + n2 - 2))

    if pooled_std == 0:
        return 0.0

    return float((np.mean(g1) - np.mean(g2)) / pooled_std)


def mann_whitney_u_statistic(g1: np.ndarray, g2: np.ndarray) -> float:
    """U = min(U1, U2) from tie-averaged ranks of the pooled sample."""
    n1, n2 = len(g1), len(g2)
    ranks = stats.rankdata(np.concatenate([g1, g2]), method='average')
    u1 = float(np.sum(ranks[:n1]) - n1 * (n1 + 1) / 2)
    u2 = n1 * n2 - u1
    return min(u1, u2)


class StatisticalTest:
    """
    Base class for two-sample tests.

    Provides a consistent interface returning TwoSampleTestResult.
    """

    def __init__(self, name: str, parametric: bool = True, alpha: float = 0.05):
        """
        Initialize statistical test.

        Args:
            name: Name of the test
            parametric: Whether test is parametric
            alpha: Significance threshold
        """
        self.name = name
        self.parametric = parametric
        self.alpha = alpha

    def test(
        self,
        group1: ArrayLike,
        group2: ArrayLike
    ) -> TwoSampleTestResult:
        """
        Perform statistical test.

        Args:
            group1: First group data
            group2: Second group data

        Returns:
            TwoSampleTestResult (neutral when either group has < 2 values)
        """
        raise NotImplementedError("Subclasses must implement test()")


class WelchTTest(StatisticalTest):
    """Welch's unequal-variance t-test."""

    def __init__(self, alpha: float = 0.05):
        super().__init__("Welch's t-test", parametric=True, alpha=alpha)

    def test(self, group1: ArrayLike, group2: ArrayLike) -> TwoSampleTestResult:
        """Perform Welch's t-test."""
        g1, g2 = _clean(group1), _clean(group2)
        n1, n2 = len(g1), len(g2)

        if n1 < 2 or n2 < 2:
            return _neutral_result(self.name, n1, n2)

        diff, se, df, half_width = _mean_difference_interval(g1, g2)
        t_stat = diff / se if se > 0 else 0.0
        p_value = t_stat_to_p_value(abs(t_stat), df)

        effect_size = cohens_d(g1, g2)

        return TwoSampleTestResult(
            statistic=float(t_stat),
            p_value=p_value,
            significant=p_value < self.alpha,
            effect_size=effect_size,
            effect_interpretation=interpret_effect_size(effect_size),
            ci_lower=diff - half_width,
            ci_upper=diff + half_width,
            method=self.name,
            degrees_of_freedom=df,
            n1=n1,
            n2=n2
        )


class MannWhitneyU(StatisticalTest):
    """Mann-Whitney U test (non-parametric)."""

    def __init__(self, alpha: float = 0.05):
        super().__init__("Mann-Whitney U", parametric=False, alpha=alpha)

    def test(self, group1: ArrayLike, group2: ArrayLike) -> TwoSampleTestResult:
        """
        Perform Mann-Whitney U test.

        The p-value uses the normal approximation to the U distribution even
        for small samples.
        """
        g1, g2 = _clean(group1), _clean(group2)
        n1, n2 = len(g1), len(g2)

        if n1 < 2 or n2 < 2:
            return _neutral_result(self.name, n1, n2)

        u_stat = mann_whitney_u_statistic(g1, g2)

        mu = n1 * n2 / 2
        sigma = np.sqrt(n1 * n2 * (n1 + n2 + 1) / 12)
        if sigma > 0:
            z = (u_stat - mu) / sigma
            p_value = float(min(1.0, 2 * stats.norm.sf(abs(z))))
        else:
            p_value = 1.0

        # Rank-biserial correlation: r = 1 - (2U)/(n1*n2)
        effect_size = 1 - (2 * u_stat) / (n1 * n2)

        diff, _, df, half_width = _mean_difference_interval(g1, g2)

        return TwoSampleTestResult(
            statistic=u_stat,
            p_value=p_value,
            significant=p_value < self.alpha,
            effect_size=float(effect_size),
            effect_interpretation=interpret_effect_size(effect_size),
            ci_lower=diff - half_width,
            ci_upper=diff + half_width,
            method=self.name,
            degrees_of_freedom=df,
            n1=n1,
            n2=n2
        )


def welch_t_test(group1: ArrayLike, group2: ArrayLike) -> TwoSampleTestResult:
    """Welch's t-test with alpha = 0.05."""
    return WelchTTest().test(group1, group2)


def mann_whitney_u(group1: ArrayLike, group2: ArrayLike) -> TwoSampleTestResult:
    """Mann-Whitney U test with alpha = 0.05."""
    return MannWhitneyU().test(group1, group2)


def compare_mutants(
    values_a: ArrayLike,
    values_b: ArrayLike,
    name_a: str,
    name_b: str,
    metric: str,
    min_parametric_n: int = MIN_PARAMETRIC_N
) -> PairwiseComparisonResult:
    """
    Compare a metric between two mutants' replicates.

    Applies the selection rule: Mann-Whitney U when either group has fewer
    than min_parametric_n observations, otherwise Welch's t-test.
    """
    g1, g2 = _clean(values_a), _clean(values_b)

    if choose_test(len(g1), len(g2), min_parametric_n) == 'mann-whitney':
        result = mann_whitney_u(g1, g2)
    else:
        result = welch_t_test(g1, g2)

    return PairwiseComparisonResult(
        mutant_a=name_a,
        mutant_b=name_b,
        metric=metric,
        mean_a=float(np.mean(g1)) if len(g1) > 0 else 0.0,
        mean_b=float(np.mean(g2)) if len(g2) > 0 else 0.0,
        test=result
    )


class StatisticalAnalyzer:
    """
    Compare a metric across many named groups (mutants).

    Main operations:
    - Pairwise two-sample comparisons
    - Multiple comparison correction
    - Text report

    Default: 'auto' applies the selection rule per pair.
    Can be forced to Welch or Mann-Whitney via configuration.
    """

    def __init__(
        self,
        test: str = 'auto',
        correction_method: Optional[str] = 'fdr_bh',
        alpha: float = 0.05,
        min_parametric_n: int = MIN_PARAMETRIC_N,
        config: Optional[Dict] = None
    ):
        """
        Initialize statistical analyzer.

        Args:
            test: Statistical test ('auto', 'welch', 'mannwhitney')
                  - 'auto': Mann-Whitney below min_parametric_n, else Welch
                  - 'welch': Welch's t-test for every pair
                  - 'mannwhitney': Mann-Whitney U for every pair
            correction_method: Multiple comparison correction
                              ('bonferroni', 'fdr_bh', 'fdr_by', 'holm', None)
            alpha: Significance threshold
            min_parametric_n: Group size from which 'auto' uses Welch
            config: Optional configuration dictionary
        """
        self.config = config or {}

        # Override with config if provided
        stat_config = self.config.get('analysis', {}).get('statistical', {})
        self.test_name = stat_config.get('test', test)
        self.correction_method = stat_config.get('correction', correction_method)
        self.alpha = stat_config.get('alpha', alpha)
        self.min_parametric_n = stat_config.get('min_parametric_n', min_parametric_n)

        self._forced_test = self._create_test(self.test_name)

    def _create_test(self, test_name: str) -> Optional[StatisticalTest]:
        """Create the forced test object (None = selection rule)."""
        name = test_name.lower()
        if name == 'auto':
            return None
        elif name in ['mannwhitney', 'mannwhitneyu', 'mann-whitney']:
            return MannWhitneyU(alpha=self.alpha)
        elif name in ['welch', 'ttest', 't-test', 't_test']:
            return WelchTTest(alpha=self.alpha)
        else:
            warnings.warn(f"Unknown test '{test_name}', using the selection rule")
            return None

    def _test_for(self, n1: int, n2: int) -> StatisticalTest:
        if self._forced_test is not None:
            return self._forced_test
        if choose_test(n1, n2, self.min_parametric_n) == 'mann-whitney':
            return MannWhitneyU(alpha=self.alpha)
        return WelchTTest(alpha=self.alpha)

    def compare_pair(
        self,
        group1: ArrayLike,
        group2: ArrayLike
    ) -> TwoSampleTestResult:
        """Compare two groups with the configured test."""
        g1, g2 = _clean(group1), _clean(group2)
        return self._test_for(len(g1), len(g2)).test(g1, g2)

    def compare_groups(
        self,
        groups: Mapping[str, ArrayLike],
        metric: str = 'value'
    ) -> pd.DataFrame:
        """
        Compare every pair of groups.

        Args:
            groups: Group name -> replicate values
            metric: Name of the compared metric for reporting

        Returns:
            DataFrame with columns:
            - group1, group2
            - group1_mean, group1_n, group2_mean, group2_n
            - test_statistic
            - p_value
            - p_value_corrected
            - effect_size, effect_interpretation
            - ci_lower, ci_upper
            - significant (bool, on corrected p-values)
            - test_used
            - metric
        """
        if len(groups) < 2:
            raise ValueError(f"Need at least 2 groups for comparison, got {len(groups)}")

        results = []

        for name1, name2 in combinations(groups.keys(), 2):
            g1, g2 = _clean(groups[name1]), _clean(groups[name2])
            result = self.compare_pair(g1, g2)

            results.append({
                'group1': name1,
                'group1_mean': np.mean(g1) if len(g1) > 0 else np.nan,
                'group1_n': len(g1),
                'group2': name2,
                'group2_mean': np.mean(g2) if len(g2) > 0 else np.nan,
                'group2_n': len(g2),
                'test_statistic': result.statistic,
                'p_value': result.p_value,
                'effect_size': result.effect_size,
                'effect_interpretation': result.effect_interpretation,
                'ci_lower': result.ci_lower,
                'ci_upper': result.ci_upper,
                'test_used': result.method,
                'metric': metric,
            })

        results_df = pd.DataFrame(results)

        corrected = self.correct_multiple_comparisons(results_df['p_value'].values)
        results_df['p_value_corrected'] = corrected
        results_df['significant'] = corrected < self.alpha

        return results_df

    def select_significant_pairs(
        self,
        results: pd.DataFrame,
        alpha: Optional[float] = None,
        use_corrected: bool = True
    ) -> List[Tuple[str, str]]:
        """
        Select group pairs with significant p-values.

        Args:
            results: Results DataFrame from compare_groups()
            alpha: Significance threshold (None = use self.alpha)
            use_corrected: Use corrected p-values

        Returns:
            List of (group1, group2) tuples
        """
        if alpha is None:
            alpha = self.alpha

        p_col = 'p_value_corrected' if use_corrected and 'p_value_corrected' in results.columns else 'p_value'

        mask = results[p_col] < alpha
        selected = results.loc[mask, ['group1', 'group2']]
        return list(selected.itertuples(index=False, name=None))

    def correct_multiple_comparisons(
        self,
        p_values: np.ndarray,
        method: Optional[str] = None
    ) -> np.ndarray:
        """
        Apply multiple comparison correction.

        Args:
            p_values: Array of p-values
            method: Correction method (None = use self.correction_method)
                   Options: 'bonferroni', 'fdr_bh', 'fdr_by', 'holm', 'sidak'

        Returns:
            Corrected p-values
        """
        if method is None:
            method = self.correction_method

        p_vals = np.asarray(p_values, dtype=float).copy()

        if method is None:
            return p_vals

        # Handle NaN values
        valid_mask = ~np.isnan(p_vals)

        if not np.any(valid_mask):
            return p_vals

        _, corrected, _, _ = multipletests(p_vals[valid_mask], method=method)
        p_vals[valid_mask] = corrected

        return p_vals

    def generate_report(
        self,
        results: pd.DataFrame,
        output_path: Optional[str] = None
    ) -> str:
        """
        Generate human-readable statistical report.

        Args:
            results: Results DataFrame from compare_groups()
            output_path: Optional path to save report

        Returns:
            Report text
        """
        lines = []
        lines.append("=" * 70)
        lines.append("PAIRWISE COMPARISON REPORT")
        lines.append("=" * 70)
        lines.append("")

        n_pairs = len(results)
        n_significant = int(results['significant'].sum()) if 'significant' in results.columns else 0

        lines.append(f"Pairs compared: {n_pairs}")
        lines.append(f"Significant pairs (alpha = {self.alpha}): {n_significant}")
        lines.append(f"Statistical test: {self.test_name}")
        lines.append(f"Multiple comparison correction: {self.correction_method}")
        lines.append("")

        if n_significant > 0:
            lines.append("-" * 70)
            lines.append("SIGNIFICANT PAIRS")
            lines.append("-" * 70)

            sig_pairs = results[results['significant']].sort_values('p_value_corrected')

            for _, row in sig_pairs.iterrows():
                lines.append(f"\n{row['group1']} vs {row['group2']} ({row['metric']}):")
                lines.append(f"  Test: {row['test_used']}")
                lines.append(f"  p-value (corrected): {row['p_value_corrected']:.4e}")
                lines.append(f"  Effect size: {row['effect_size']:.3f} ({row['effect_interpretation']})")
                lines.append(f"  95% CI of difference: [{row['ci_lower']:.3f}, {row['ci_upper']:.3f}]")
                lines.append(f"  {row['group1']}: mean={row['group1_mean']:.3f}, n={row['group1_n']}")
                lines.append(f"  {row['group2']}: mean={row['group2_mean']:.3f}, n={row['group2_n']}")

        lines.append("")
        lines.append("=" * 70)

        report = "\n".join(lines)

        if output_path:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(report)

        return report
