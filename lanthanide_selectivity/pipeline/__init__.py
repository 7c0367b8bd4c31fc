"""Pipeline Package - Orchestration and configuration"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Mapping, Sequence, Union
from pathlib import Path
import warnings

import yaml
import pandas as pd

from ..analysis.dimensionality import PCAReducer
from ..analysis.ranking import MutantRanker, SORT_FIELDS
from ..data.replicates import ReplicateGroup
from ..features.aggregator import SimulationFeatureAggregator
from ..preprocessing.quality import DEFAULT_QUALITY_TIERS


STATISTICAL_TESTS = ['auto', 'welch', 'mannwhitney']
CORRECTION_METHODS = ['bonferroni', 'fdr_bh', 'fdr_by', 'holm', 'sidak', None]


def load_config(config_path: Union[str, Path] = "config.yaml") -> Dict[str, Any]:
    """
    Load a YAML configuration file as a nested dictionary.

    Args:
        config_path: Path to the YAML file

    Returns:
        Configuration dictionary (empty for an empty file)

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


# config.py
@dataclass
class AnalysisConfig:
    """Configuration for analysis pipeline."""

    # Preprocessing
    outlier_min_agreement: int = 2
    iqr_multiplier: float = 1.5
    zscore_threshold: float = 2.5
    cv_thresholds: Dict[str, float] = field(
        default_factory=lambda: {quality: bound for bound, quality, _ in DEFAULT_QUALITY_TIERS}
    )

    # Statistics
    statistical_test: str = 'auto'
    alpha: float = 0.05
    multiple_comparison_correction: Optional[str] = 'fdr_bh'
    min_parametric_n: int = 8

    # Ranking
    binding_threshold: float = 0.5  # µM
    include_outliers: bool = False
    sort_by: str = 'kex_slope'
    comparison_metric: str = 'Total Binding'

    # Dimensionality reduction
    perform_pca: bool = True
    n_components: Optional[int] = 2
    random_state: Optional[int] = 42

    # Simulation features
    min_runs: int = 1

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> 'AnalysisConfig':
        """Build from the nested dictionary layout produced by to_dict()."""
        defaults = cls()

        preprocessing = config.get('preprocessing', {}) or {}
        outliers = preprocessing.get('outliers', {}) or {}
        quality = preprocessing.get('quality', {}) or {}
        analysis = config.get('analysis', {}) or {}
        statistical = analysis.get('statistical', {}) or {}
        ranking = analysis.get('ranking', {}) or {}
        pca = analysis.get('pca', {}) or {}
        aggregation = (config.get('features', {}) or {}).get('aggregation', {}) or {}

        cv_thresholds = dict(defaults.cv_thresholds)
        cv_thresholds.update(quality.get('cv_thresholds', {}) or {})

        return cls(
            outlier_min_agreement=outliers.get('min_agreement', defaults.outlier_min_agreement),
            iqr_multiplier=outliers.get('iqr_multiplier', defaults.iqr_multiplier),
            zscore_threshold=outliers.get('zscore_threshold', defaults.zscore_threshold),
            cv_thresholds=cv_thresholds,
            statistical_test=statistical.get('test', defaults.statistical_test),
            alpha=statistical.get('alpha', defaults.alpha),
            multiple_comparison_correction=statistical.get(
                'correction', defaults.multiple_comparison_correction
            ),
            min_parametric_n=statistical.get('min_parametric_n', defaults.min_parametric_n),
            binding_threshold=ranking.get('binding_threshold', defaults.binding_threshold),
            include_outliers=ranking.get('include_outliers', defaults.include_outliers),
            sort_by=ranking.get('sort_by', defaults.sort_by),
            comparison_metric=ranking.get('comparison_metric', defaults.comparison_metric),
            perform_pca=pca.get('enabled', defaults.perform_pca),
            n_components=pca.get('n_components', defaults.n_components),
            random_state=pca.get('random_state', defaults.random_state),
            min_runs=aggregation.get('min_runs', defaults.min_runs),
        )

    @classmethod
    def from_yaml(cls, filepath: Union[str, Path]) -> 'AnalysisConfig':
        """Load configuration from YAML file."""
        config = cls.from_dict(load_config(filepath))
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Nested dictionary read by the individual components."""
        return {
            'preprocessing': {
                'outliers': {
                    'min_agreement': self.outlier_min_agreement,
                    'iqr_multiplier': self.iqr_multiplier,
                    'zscore_threshold': self.zscore_threshold,
                },
                'quality': {
                    'cv_thresholds': dict(self.cv_thresholds),
                },
            },
            'analysis': {
                'statistical': {
                    'test': self.statistical_test,
                    'alpha': self.alpha,
                    'correction': self.multiple_comparison_correction,
                    'min_parametric_n': self.min_parametric_n,
                },
                'ranking': {
                    'binding_threshold': self.binding_threshold,
                    'include_outliers': self.include_outliers,
                    'sort_by': self.sort_by,
                    'comparison_metric': self.comparison_metric,
                },
                'pca': {
                    'enabled': self.perform_pca,
                    'n_components': self.n_components,
                    'random_state': self.random_state,
                },
            },
            'features': {
                'aggregation': {
                    'min_runs': self.min_runs,
                },
            },
        }

    def to_yaml(self, filepath: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        with open(filepath, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)

    def validate(self) -> None:
        """
        Validate configuration parameters.

        Raises:
            ValueError: On the first invalid parameter
        """
        if not 0 < self.alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {self.alpha}")

        if self.statistical_test not in STATISTICAL_TESTS:
            raise ValueError(
                f"Unknown statistical test '{self.statistical_test}'. Options: {STATISTICAL_TESTS}"
            )

        if self.multiple_comparison_correction not in CORRECTION_METHODS:
            raise ValueError(
                f"Unknown correction '{self.multiple_comparison_correction}'. "
                f"Options: {CORRECTION_METHODS}"
            )

        if self.min_parametric_n < 2:
            raise ValueError(f"min_parametric_n must be >= 2, got {self.min_parametric_n}")

        if not 1 <= self.outlier_min_agreement <= 3:
            raise ValueError(
                f"outlier_min_agreement must be between 1 and 3, got {self.outlier_min_agreement}"
            )

        if self.iqr_multiplier <= 0 or self.zscore_threshold <= 0:
            raise ValueError("iqr_multiplier and zscore_threshold must be positive")

        bounds = [self.cv_thresholds.get(quality, bound) for bound, quality, _ in DEFAULT_QUALITY_TIERS]
        if bounds != sorted(bounds):
            raise ValueError(f"CV thresholds must be increasing, got {bounds}")

        if self.binding_threshold < 0:
            raise ValueError(f"binding_threshold must be >= 0, got {self.binding_threshold}")

        if self.sort_by not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field '{self.sort_by}'. Options: {list(SORT_FIELDS)}")

        if self.n_components is not None and self.n_components < 1:
            raise ValueError(f"n_components must be >= 1 or None, got {self.n_components}")

        if self.min_runs < 1:
            raise ValueError(f"min_runs must be >= 1, got {self.min_runs}")


# pipeline.py
class AnalysisPipeline:
    """
    Main analysis pipeline - orchestrates the selectivity analysis.

    Steps:
    1. Analyze each replicate group (outliers, binding, k_ex, quality, metrics)
    2. Rank mutants
    3. Compare mutants pairwise with multiple comparison correction
    4. Aggregate simulation features (optional)
    5. PCA of the mutant feature matrix (optional)
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()
        self.config.validate()
        self._initialize_components()

    def _initialize_components(self) -> None:
        """Initialize all pipeline components based on config."""
        component_config = self.config.to_dict()

        self.ranker = MutantRanker(config=component_config)
        self.aggregator = SimulationFeatureAggregator(config=component_config)
        self.reducer = PCAReducer(
            n_components=self.config.n_components,
            random_state=self.config.random_state
        )

    @classmethod
    def from_yaml(cls, filepath: Union[str, Path]) -> 'AnalysisPipeline':
        return cls(AnalysisConfig.from_yaml(filepath))

    def run(
        self,
        groups: Sequence[ReplicateGroup],
        feature_matrix: Optional[pd.DataFrame] = None,
        simulation_runs: Optional[Mapping[str, List[Dict[str, Any]]]] = None
    ) -> Dict[str, Any]:
        """
        Run the analysis.

        Args:
            groups: Replicate groups, one per mutant and condition
            feature_matrix: Optional mutant x feature matrix for PCA
            simulation_runs: Optional mutant -> per-run simulation summaries,
                             aggregated into the feature matrix when no
                             feature_matrix is given

        Returns:
            Dictionary with:
            - analyses: list of MutantAnalysis in ranked order
            - ranking: ranking DataFrame
            - comparisons: pairwise comparison DataFrame
            - features: feature matrix used for PCA (or None)
            - pca: fitted PCAReducer (or None)
            - pca_scores: DataFrame of component scores per mutant (or None)
        """
        analyses = self.ranker.sort(self.ranker.analyze_all(groups))

        results: Dict[str, Any] = {
            'analyses': analyses,
            'ranking': self.ranker.to_dataframe(analyses),
            'comparisons': self.ranker.pairwise_comparisons(
                analyses, metric=self.config.comparison_metric
            ),
            'features': None,
            'pca': None,
            'pca_scores': None,
        }

        if feature_matrix is None and simulation_runs:
            aggregated = self.aggregator.aggregate_mutants(simulation_runs)
            feature_matrix = self.aggregator.build_feature_matrix(aggregated)

        results['features'] = feature_matrix

        if self.config.perform_pca and feature_matrix is not None:
            results.update(self.perform_dimensionality_reduction(feature_matrix))

        return results

    def perform_dimensionality_reduction(self, features: pd.DataFrame) -> Dict[str, Any]:
        """Fit PCA on the feature matrix and score every mutant."""
        if len(features) < 2:
            warnings.warn(f"PCA needs at least 2 mutants, got {len(features)}")
            return {'pca': None, 'pca_scores': None}

        scores = self.reducer.fit_transform(features)
        pca_scores = pd.DataFrame(
            scores,
            index=features.index,
            columns=self.reducer.get_component_names()
        )
        return {'pca': self.reducer, 'pca_scores': pca_scores}


__all__ = [
    'AnalysisConfig',
    'AnalysisPipeline',
    'load_config',
]
