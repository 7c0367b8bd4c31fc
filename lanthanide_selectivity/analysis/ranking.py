"""
Mutant Ranking

Per-mutant selectivity analysis and ranking.

For each replicate group:
1. Total bound metal per replicate, outlier replicates flagged by ensemble vote
2. Binding call (mean total molarity >= threshold)
3. Mean selectivity profile and k_ex regression
4. Quality, entropy, light/heavy discrimination and k_ex strength
5. Separate light and heavy regressions and their offset

Analyses are ranked by a chosen field and mutants can be compared pairwise on
their replicate totals.
"""

from typing import List, Dict, Optional, Tuple, Callable, Any, Sequence
from dataclasses import dataclass
import warnings

import numpy as np
import pandas as pd

from ..data.constants import (
    WATER_EXCHANGE_RATES,
    LIGHT_REE,
    HEAVY_REE,
    elements_with_kex,
)
from ..data.replicates import ReplicateGroup
from ..preprocessing.outliers import OutlierEnsemble
from ..preprocessing.quality import QualityAssessor, QualityAssessment
from .regression import RegressionResult, linear_regression, mean_and_se
from .selectivity import (
    LightHeavyOffsetResult,
    selectivity_entropy,
    light_heavy_discrimination,
    kex_preference_strength,
    calculate_light_heavy_offset,
)
from .statistical import (
    PairwiseComparisonResult,
    StatisticalAnalyzer,
)


BINDING_THRESHOLD = 0.5  # µM
SLOPE_DIRECTION_P = 0.1


@dataclass(frozen=True)
class MutantAnalysis:
    """Selectivity analysis of one mutant's replicates."""
    name: str  # base mutant name
    group_name: str
    n_replicates: int
    n_valid_replicates: int
    outlier_replicates: Tuple[str, ...]
    replicate_totals: np.ndarray  # total µM of every replicate
    outlier_mask: np.ndarray  # True for ensemble-confirmed outliers
    is_binding: bool
    total_molarity: float
    total_molarity_error: float
    kex_slope: float
    kex_slope_error: float
    kex_r2: float
    kex_p_value: float
    slope_direction: str  # 'positive', 'negative', 'neutral'
    top_element: str
    top_selectivity: float
    enrichment_factor: float
    avg_cv: float
    quality: QualityAssessment
    selectivity_profile: Dict[str, Tuple[float, float]]  # element -> (mean %, SE)
    entropy: float
    normalized_entropy: float
    entropy_interpretation: str
    light_heavy_score: float
    light_heavy_preference: str
    kex_strength: float
    kex_strength_interpretation: str
    kex_strength_reliable: bool
    light_heavy_offset: LightHeavyOffsetResult
    light_regression: Optional[RegressionResult]
    heavy_regression: Optional[RegressionResult]

    @property
    def clean_totals(self) -> np.ndarray:
        """Replicate totals excluding confirmed outliers."""
        return self.replicate_totals[~self.outlier_mask]

    @property
    def mean_profile(self) -> Dict[str, float]:
        return {element: mean for element, (mean, _) in self.selectivity_profile.items()}


def _slope(regression: Optional[RegressionResult]) -> float:
    return regression.slope if regression is not None else 0.0


# Sort field -> (key, descending); ties keep input order
SORT_FIELDS: Dict[str, Tuple[Callable[[MutantAnalysis], Any], bool]] = {
    'name': (lambda a: a.name, False),
    'kex_slope': (lambda a: abs(a.kex_slope), True),
    'kex_r2': (lambda a: a.kex_r2, True),
    'top_selectivity': (lambda a: a.top_selectivity, True),
    'avg_cv': (lambda a: a.avg_cv, False),
    'total_molarity': (lambda a: a.total_molarity, True),
    'n_replicates': (lambda a: a.n_replicates, True),
    'entropy': (lambda a: a.normalized_entropy, False),
    'light_heavy_score': (lambda a: abs(a.light_heavy_score), True),
    'kex_strength': (lambda a: a.kex_strength, True),
    'light_slope': (lambda a: abs(_slope(a.light_regression)), True),
    'heavy_slope': (lambda a: abs(_slope(a.heavy_regression)), True),
    'light_heavy_offset': (lambda a: abs(a.light_heavy_offset.offset), True),
}

COMPARISON_COLUMNS = [
    'mutant_a', 'mutant_b', 'metric', 'mean_a', 'mean_b', 'n_a', 'n_b',
    'test_used', 'statistic', 'p_value', 'p_value_corrected',
    'effect_size', 'effect_interpretation', 'ci_lower', 'ci_upper', 'significant',
]


class MutantRanker:
    """
    Analyze and rank mutants by lanthanide selectivity.

    Usage:
        ranker = MutantRanker(config=config)
        table = ranker.rank(groups, sort_by='kex_slope')
        analyses = ranker.analyze_all(groups)
        comparisons = ranker.pairwise_comparisons(analyses)
    """

    def __init__(
        self,
        binding_threshold: float = BINDING_THRESHOLD,
        include_outliers: bool = False,
        min_agreement: int = 2,
        sort_by: str = 'kex_slope',
        config: Optional[Dict] = None
    ):
        """
        Initialize mutant ranker.

        Args:
            binding_threshold: Mean total molarity (µM) needed to call binding
            include_outliers: Keep outlier replicates in the analysis
            min_agreement: Outlier ensemble agreement level
            sort_by: Default sort field (see SORT_FIELDS)
            config: Optional configuration dictionary
        """
        self.config = config or {}

        ranking_config = self.config.get('analysis', {}).get('ranking', {})
        self.binding_threshold = ranking_config.get('binding_threshold', binding_threshold)
        self.include_outliers = ranking_config.get('include_outliers', include_outliers)
        self.sort_by = ranking_config.get('sort_by', sort_by)

        if self.sort_by not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field '{self.sort_by}'. Options: {list(SORT_FIELDS)}")

        self._ensemble = OutlierEnsemble(min_agreement=min_agreement, config=self.config)
        self._quality = QualityAssessor(min_agreement=min_agreement, config=self.config)
        self._analyzer = StatisticalAnalyzer(config=self.config)

    def _regression(self, elements: List[str], profile: Dict[str, float]) -> Optional[RegressionResult]:
        """Fit selectivity on k_ex for a subset, None when it cannot be fit."""
        values = [profile.get(e, 0.0) for e in elements]
        if len(elements) < 2 or not any(v > 0 for v in values):
            return None
        return linear_regression([WATER_EXCHANGE_RATES[e] for e in elements], values)

    def analyze(self, group: ReplicateGroup) -> Optional[MutantAnalysis]:
        """
        Analyze one replicate group.

        Args:
            group: ReplicateGroup with per-replicate µM values

        Returns:
            MutantAnalysis, or None when the group has no elements with a
            known k_ex or no usable replicates
        """
        elements = elements_with_kex(group.elements)
        if not elements:
            warnings.warn(f"Skipping {group.name}: no elements with known water exchange rates")
            return None

        totals = group.total_molarity(elements)
        if len(totals) == 0:
            warnings.warn(f"Skipping {group.name}: no replicates")
            return None

        report = self._ensemble.combined(totals)
        outlier_mask = np.zeros(len(totals), dtype=bool)
        outlier_mask[list(report.outlier_indices)] = True

        valid_mask = np.ones(len(totals), dtype=bool) if self.include_outliers else ~outlier_mask
        if not np.any(valid_mask):
            warnings.warn(f"Skipping {group.name}: every replicate is an outlier")
            return None

        valid_totals = totals[valid_mask]
        total_molarity, total_error, _ = mean_and_se(valid_totals)
        is_binding = total_molarity >= self.binding_threshold

        selectivity = group.selectivity()[elements][valid_mask]

        profile: Dict[str, Tuple[float, float]] = {}
        cvs = []
        for element in elements:
            mean, se, std = mean_and_se(selectivity[element].to_numpy())
            profile[element] = (mean, se)
            cvs.append(std / abs(mean) * 100.0 if mean != 0 else 0.0)

        mean_profile = {element: mean for element, (mean, _) in profile.items()}

        # k_ex regression over all elements
        kex_slope, kex_error, kex_r2, kex_p = 0.0, 0.0, 0.0, 1.0
        if is_binding and any(v > 0 for v in mean_profile.values()):
            regression = linear_regression(
                [WATER_EXCHANGE_RATES[e] for e in elements],
                [mean_profile[e] for e in elements]
            )
            kex_slope = regression.slope
            kex_error = regression.standard_error
            kex_r2 = regression.r_squared
            kex_p = regression.p_value

        slope_direction = 'neutral'
        if abs(kex_slope) > kex_error and kex_p < SLOPE_DIRECTION_P:
            slope_direction = 'positive' if kex_slope > 0 else 'negative'

        top_element, top_selectivity = elements[0], mean_profile[elements[0]]
        for element in elements[1:]:
            if mean_profile[element] > top_selectivity:
                top_element, top_selectivity = element, mean_profile[element]

        entropy = selectivity_entropy(mean_profile)

        light_elements = [e for e in elements if e in LIGHT_REE]
        heavy_elements = [e for e in elements if e in HEAVY_REE]
        light_heavy = light_heavy_discrimination(mean_profile, light_elements, heavy_elements)

        strength = kex_preference_strength(kex_slope, kex_error, kex_r2, kex_p)

        light_regression = self._regression(light_elements, mean_profile) if is_binding else None
        heavy_regression = self._regression(heavy_elements, mean_profile) if is_binding else None

        kex_values = [WATER_EXCHANGE_RATES[e] for e in elements]
        midpoint = (max(kex_values) + min(kex_values)) / 2
        offset = calculate_light_heavy_offset(light_regression, heavy_regression, midpoint)

        replicate_names = group.replicate_names

        return MutantAnalysis(
            name=group.base_name,
            group_name=group.name,
            n_replicates=len(totals),
            n_valid_replicates=int(np.sum(valid_mask)),
            outlier_replicates=tuple(replicate_names[i] for i in report.outlier_indices),
            replicate_totals=totals,
            outlier_mask=outlier_mask,
            is_binding=bool(is_binding),
            total_molarity=total_molarity,
            total_molarity_error=total_error,
            kex_slope=kex_slope,
            kex_slope_error=kex_error,
            kex_r2=kex_r2,
            kex_p_value=kex_p,
            slope_direction=slope_direction,
            top_element=top_element,
            top_selectivity=top_selectivity,
            enrichment_factor=top_selectivity / (100.0 / len(elements)),
            avg_cv=float(np.mean(cvs)),
            quality=self._quality.assess(valid_totals),
            selectivity_profile=profile,
            entropy=entropy.entropy,
            normalized_entropy=entropy.normalized_entropy,
            entropy_interpretation=entropy.interpretation,
            light_heavy_score=light_heavy.score,
            light_heavy_preference=light_heavy.preference,
            kex_strength=strength.strength,
            kex_strength_interpretation=strength.interpretation,
            kex_strength_reliable=strength.is_reliable,
            light_heavy_offset=offset,
            light_regression=light_regression,
            heavy_regression=heavy_regression
        )

    def analyze_all(self, groups: Sequence[ReplicateGroup]) -> List[MutantAnalysis]:
        """Analyze every group, skipping those without usable data."""
        analyses = []
        for group in groups:
            analysis = self.analyze(group)
            if analysis is not None:
                analyses.append(analysis)
        return analyses

    def sort(
        self,
        analyses: Sequence[MutantAnalysis],
        sort_by: Optional[str] = None,
        reverse: bool = False
    ) -> List[MutantAnalysis]:
        """
        Order analyses by a sort field.

        Args:
            analyses: Analyses to order
            sort_by: Field from SORT_FIELDS (None = configured default)
            reverse: Flip the field's natural direction

        Returns:
            Sorted list
        """
        sort_by = sort_by or self.sort_by
        if sort_by not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field '{sort_by}'. Options: {list(SORT_FIELDS)}")

        key, descending = SORT_FIELDS[sort_by]
        return sorted(analyses, key=key, reverse=descending != reverse)

    def to_dataframe(self, analyses: Sequence[MutantAnalysis]) -> pd.DataFrame:
        """
        Tabulate analyses, one row per mutant in the given order.

        The index is the 1-based rank.
        """
        rows = []
        for analysis in analyses:
            rows.append({
                'mutant': analysis.name,
                'group': analysis.group_name,
                'n_replicates': analysis.n_replicates,
                'n_valid_replicates': analysis.n_valid_replicates,
                'n_outliers': len(analysis.outlier_replicates),
                'is_binding': analysis.is_binding,
                'total_molarity': analysis.total_molarity,
                'total_molarity_se': analysis.total_molarity_error,
                'kex_slope': analysis.kex_slope,
                'kex_slope_se': analysis.kex_slope_error,
                'kex_r2': analysis.kex_r2,
                'kex_p_value': analysis.kex_p_value,
                'slope_direction': analysis.slope_direction,
                'top_element': analysis.top_element,
                'top_selectivity': analysis.top_selectivity,
                'enrichment_factor': analysis.enrichment_factor,
                'avg_cv': analysis.avg_cv,
                'quality': analysis.quality.quality,
                'entropy': analysis.entropy,
                'normalized_entropy': analysis.normalized_entropy,
                'entropy_interpretation': analysis.entropy_interpretation,
                'light_heavy_score': analysis.light_heavy_score,
                'light_heavy_preference': analysis.light_heavy_preference,
                'kex_strength': analysis.kex_strength,
                'kex_strength_interpretation': analysis.kex_strength_interpretation,
                'light_slope': _slope(analysis.light_regression),
                'heavy_slope': _slope(analysis.heavy_regression),
                'light_heavy_offset': analysis.light_heavy_offset.offset,
                'offset_significant': analysis.light_heavy_offset.is_significant,
            })

        df = pd.DataFrame(rows)
        df.index = pd.RangeIndex(1, len(df) + 1, name='rank')
        return df

    def rank(
        self,
        groups: Sequence[ReplicateGroup],
        sort_by: Optional[str] = None,
        reverse: bool = False
    ) -> pd.DataFrame:
        """
        Analyze groups and return the ranking table.

        Args:
            groups: Replicate groups
            sort_by: Sort field (None = configured default)
            reverse: Flip the field's natural direction

        Returns:
            DataFrame with one row per analyzed mutant, index = rank
        """
        return self.to_dataframe(self.sort(self.analyze_all(groups), sort_by, reverse))

    def compare(
        self,
        analyses: Sequence[MutantAnalysis],
        metric: str = 'Total Binding'
    ) -> List[PairwiseComparisonResult]:
        """
        Compare replicate totals (outliers excluded) for every pair of mutants.

        Uses the configured test from analysis.statistical; with 'auto' the
        selection rule picks Welch or Mann-Whitney per pair.

        Pairs where either mutant has fewer than 2 clean replicates are skipped.
        """
        results = []
        for i, a in enumerate(analyses):
            for b in analyses[i + 1:]:
                totals_a, totals_b = a.clean_totals, b.clean_totals
                if len(totals_a) >= 2 and len(totals_b) >= 2:
                    results.append(PairwiseComparisonResult(
                        mutant_a=a.name,
                        mutant_b=b.name,
                        metric=metric,
                        mean_a=float(np.mean(totals_a)),
                        mean_b=float(np.mean(totals_b)),
                        test=self._analyzer.compare_pair(totals_a, totals_b)
                    ))
        return results

    def pairwise_comparisons(
        self,
        analyses: Sequence[MutantAnalysis],
        metric: str = 'Total Binding'
    ) -> pd.DataFrame:
        """
        Pairwise comparison table with multiple comparison correction.

        Returns:
            DataFrame with COMPARISON_COLUMNS; 'significant' uses the
            corrected p-values
        """
        comparisons = self.compare(analyses, metric)
        if not comparisons:
            return pd.DataFrame(columns=COMPARISON_COLUMNS)

        df = pd.DataFrame([
            {
                'mutant_a': c.mutant_a,
                'mutant_b': c.mutant_b,
                'metric': c.metric,
                'mean_a': c.mean_a,
                'mean_b': c.mean_b,
                'n_a': c.test.n1,
                'n_b': c.test.n2,
                'test_used': c.test.method,
                'statistic': c.test.statistic,
                'p_value': c.test.p_value,
                'effect_size': c.test.effect_size,
                'effect_interpretation': c.test.effect_interpretation,
                'ci_lower': c.test.ci_lower,
                'ci_upper': c.test.ci_upper,
            }
            for c in comparisons
        ])

        corrected = self._analyzer.correct_multiple_comparisons(df['p_value'].values)
        df['p_value_corrected'] = corrected
        df['significant'] = corrected < self._analyzer.alpha

        return df[COMPARISON_COLUMNS]
