"""
Analysis Layer

Regression, hypothesis tests, selectivity metrics, dimensionality reduction
and mutant ranking.
"""

from .regression import (
    RegressionResult,
    RegressionEngine,
    linear_regression,
    pearson_correlation,
    mean_and_se,
    t_stat_to_p_value,
)
from .statistical import (
    TwoSampleTestResult,
    PairwiseComparisonResult,
    StatisticalTest,
    WelchTTest,
    MannWhitneyU,
    StatisticalAnalyzer,
    welch_t_test,
    mann_whitney_u,
    choose_test,
    compare_mutants,
    interpret_effect_size,
)
from .selectivity import (
    EntropyResult,
    LightHeavyResult,
    KexStrengthResult,
    LightHeavyOffsetResult,
    selectivity_entropy,
    light_heavy_discrimination,
    kex_preference_strength,
    calculate_light_heavy_offset,
    interpret_entropy,
    classify_preference,
    interpret_kex_strength,
)
from .dimensionality import (
    PCAResult,
    PCAReducer,
    perform_pca,
    transform_data,
    get_top_features,
    correlation_matrix,
    create_reducer_from_config,
)
from .ranking import (
    MutantAnalysis,
    MutantRanker,
)

__all__ = [
    # Regression
    'RegressionResult',
    'RegressionEngine',
    'linear_regression',
    'pearson_correlation',
    'mean_and_se',
    't_stat_to_p_value',

    # Statistical
    'TwoSampleTestResult',
    'PairwiseComparisonResult',
    'StatisticalTest',
    'WelchTTest',
    'MannWhitneyU',
    'StatisticalAnalyzer',
    'welch_t_test',
    'mann_whitney_u',
    'choose_test',
    'compare_mutants',
    'interpret_effect_size',

    # Selectivity
    'EntropyResult',
    'LightHeavyResult',
    'KexStrengthResult',
    'LightHeavyOffsetResult',
    'selectivity_entropy',
    'light_heavy_discrimination',
    'kex_preference_strength',
    'calculate_light_heavy_offset',
    'interpret_entropy',
    'classify_preference',
    'interpret_kex_strength',

    # Dimensionality Reduction
    'PCAResult',
    'PCAReducer',
    'perform_pca',
    'transform_data',
    'get_top_features',
    'correlation_matrix',
    'create_reducer_from_config',

    # Ranking
    'MutantAnalysis',
    'MutantRanker',
]
