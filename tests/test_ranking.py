import unittest
import warnings
import numpy as np
import pandas as pd

from lanthanide_selectivity.analysis.ranking import (
    COMPARISON_COLUMNS,
    MutantRanker,
)
from lanthanide_selectivity.analysis.selectivity import INSUFFICIENT_OFFSET
from lanthanide_selectivity.data.constants import WATER_EXCHANGE_RATES
from lanthanide_selectivity.data.replicates import ReplicateGroup


ELEMENTS = ['La', 'Ce', 'Nd', 'Eu', 'Gd', 'Dy', 'Er', 'Lu']
NOISE = [0.1, -0.1, 0.2, -0.2, 0.1, -0.1, 0.2, -0.2]


def make_group(name, multipliers, base=None):
    """Replicates that share one profile, scaled per replicate."""
    if base is None:
        base = [WATER_EXCHANGE_RATES[e] + n for e, n in zip(ELEMENTS, NOISE)]
    rows = [[m * v for v in base] for m in multipliers]
    index = [f'r{i + 1}' for i in range(len(multipliers))]
    return ReplicateGroup(name, pd.DataFrame(rows, columns=ELEMENTS, index=index))


class TestMutantAnalysis(unittest.TestCase):

    def setUp(self):
        self.ranker = MutantRanker()
        self.binder = make_group('Rub15-H2O', [1.0, 1.02, 0.98, 1.01])
        self.non_binder = make_group('Rub20-H2O', [1.0, 1.0, 1.0, 1.0], base=[0.01] * 8)

    def test_binding_mutant(self):
        analysis = self.ranker.analyze(self.binder)

        self.assertEqual(analysis.name, 'Rub15')
        self.assertEqual(analysis.group_name, 'Rub15-H2O')
        self.assertEqual(analysis.n_replicates, 4)
        self.assertEqual(analysis.n_valid_replicates, 4)
        self.assertEqual(analysis.outlier_replicates, ())
        self.assertTrue(analysis.is_binding)
        self.assertAlmostEqual(analysis.total_molarity, 30.6 * 1.0025)

        self.assertGreater(analysis.kex_slope, 0)
        self.assertGreater(analysis.kex_r2, 0.9)
        self.assertLess(analysis.kex_p_value, 0.05)
        self.assertEqual(analysis.slope_direction, 'positive')
        self.assertEqual(analysis.kex_strength_interpretation, 'strong')
        self.assertTrue(analysis.kex_strength_reliable)

        self.assertEqual(analysis.top_element, 'Gd')
        self.assertAlmostEqual(analysis.top_selectivity, 6.8 / 30.6 * 100)
        self.assertAlmostEqual(analysis.enrichment_factor, analysis.top_selectivity / 12.5)
        self.assertAlmostEqual(analysis.avg_cv, 0.0)
        self.assertEqual(analysis.quality.quality, 'excellent')

    def test_profile_sums_to_100(self):
        analysis = self.ranker.analyze(self.binder)

        self.assertEqual(list(analysis.selectivity_profile), ELEMENTS)
        self.assertAlmostEqual(sum(analysis.mean_profile.values()), 100.0)
        self.assertTrue(0 < analysis.normalized_entropy < 1)

    def test_light_heavy_metrics(self):
        analysis = self.ranker.analyze(self.binder)

        # Light 17.2 vs heavy 13.4 of 30.6
        self.assertAlmostEqual(analysis.light_heavy_score, 3.8 / 30.6 * 100)
        self.assertEqual(analysis.light_heavy_preference, 'balanced')
        self.assertIsNotNone(analysis.light_regression)
        self.assertIsNotNone(analysis.heavy_regression)
        self.assertNotEqual(analysis.light_heavy_offset.interpretation, INSUFFICIENT_OFFSET)

    def test_non_binding_mutant(self):
        analysis = self.ranker.analyze(self.non_binder)

        self.assertFalse(analysis.is_binding)
        self.assertEqual(analysis.kex_slope, 0.0)
        self.assertEqual(analysis.kex_p_value, 1.0)
        self.assertEqual(analysis.slope_direction, 'neutral')
        self.assertEqual(analysis.kex_strength_interpretation, 'none')
        self.assertIsNone(analysis.light_regression)
        self.assertIsNone(analysis.heavy_regression)
        self.assertEqual(analysis.light_heavy_offset.interpretation, INSUFFICIENT_OFFSET)

        # Uniform profile: first element wins ties
        self.assertEqual(analysis.top_element, 'La')
        self.assertAlmostEqual(analysis.enrichment_factor, 1.0)

    def test_binding_threshold_from_config(self):
        ranker = MutantRanker(config={'analysis': {'ranking': {'binding_threshold': 100.0}}})
        analysis = ranker.analyze(self.binder)

        self.assertFalse(analysis.is_binding)
        self.assertEqual(analysis.kex_slope, 0.0)

    def test_outlier_replicate_excluded(self):
        group = make_group('Rub15-H2O', [1.0, 1.02, 0.98, 1.01, 10.0])
        analysis = self.ranker.analyze(group)

        self.assertEqual(analysis.outlier_replicates, ('r5',))
        self.assertEqual(analysis.n_valid_replicates, 4)
        np.testing.assert_array_equal(analysis.outlier_mask, [False, False, False, False, True])
        self.assertEqual(len(analysis.clean_totals), 4)
        self.assertAlmostEqual(analysis.total_molarity, 30.6 * 1.0025)

    def test_include_outliers(self):
        group = make_group('Rub15-H2O', [1.0, 1.02, 0.98, 1.01, 10.0])
        analysis = MutantRanker(include_outliers=True).analyze(group)

        self.assertEqual(analysis.n_valid_replicates, 5)
        self.assertEqual(analysis.outlier_replicates, ('r5',))

    def test_no_kex_elements(self):
        group = ReplicateGroup('X-H2O', pd.DataFrame({'Pm': [1.0, 2.0]}))

        with self.assertWarns(UserWarning):
            self.assertIsNone(self.ranker.analyze(group))

    def test_no_replicates(self):
        group = ReplicateGroup('X-H2O', pd.DataFrame(columns=ELEMENTS, dtype=float))

        with self.assertWarns(UserWarning):
            self.assertIsNone(self.ranker.analyze(group))


class TestRanking(unittest.TestCase):

    def setUp(self):
        self.ranker = MutantRanker()
        self.groups = [
            make_group('Rub20-H2O', [1.0, 1.0, 1.0, 1.0], base=[0.01] * 8),
            make_group('Rub15-H2O', [1.0, 1.02, 0.98, 1.01]),
        ]
        self.analyses = self.ranker.analyze_all(self.groups)

    def test_sort_by_kex_slope(self):
        ordered = self.ranker.sort(self.analyses)
        self.assertEqual([a.name for a in ordered], ['Rub15', 'Rub20'])

        flipped = self.ranker.sort(self.analyses, reverse=True)
        self.assertEqual([a.name for a in flipped], ['Rub20', 'Rub15'])

    def test_sort_by_name(self):
        ordered = self.ranker.sort(self.analyses, sort_by='name')
        self.assertEqual([a.name for a in ordered], ['Rub15', 'Rub20'])

    def test_unknown_sort_field(self):
        with self.assertRaises(ValueError):
            self.ranker.sort(self.analyses, sort_by='bogus')
        with self.assertRaises(ValueError):
            MutantRanker(sort_by='bogus')

    def test_rank_table(self):
        table = self.ranker.rank(self.groups)

        self.assertEqual(list(table.index), [1, 2])
        self.assertEqual(table.index.name, 'rank')
        self.assertEqual(list(table['mutant']), ['Rub15', 'Rub20'])
        self.assertEqual(table.loc[1, 'top_element'], 'Gd')
        self.assertEqual(table.loc[2, 'quality'], 'excellent')

    def test_skipped_groups_are_dropped(self):
        groups = self.groups + [ReplicateGroup('X-H2O', pd.DataFrame({'Pm': [1.0]}))]

        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            analyses = self.ranker.analyze_all(groups)

        self.assertEqual(len(analyses), 2)

    def test_pairwise_comparisons(self):
        table = self.ranker.pairwise_comparisons(self.analyses)

        self.assertEqual(list(table.columns), COMPARISON_COLUMNS)
        self.assertEqual(len(table), 1)

        row = table.iloc[0]
        self.assertEqual(row['mutant_a'], 'Rub20')
        self.assertEqual(row['mutant_b'], 'Rub15')
        self.assertEqual(row['metric'], 'Total Binding')
        self.assertEqual(row['test_used'], 'Mann-Whitney U')
        self.assertEqual(row['n_a'], 4)
        self.assertAlmostEqual(row['mean_a'], 0.08)
        # Single comparison: correction leaves the p-value unchanged
        self.assertAlmostEqual(row['p_value_corrected'], row['p_value'])

    def test_pairwise_needs_two_mutants(self):
        table = self.ranker.pairwise_comparisons(self.analyses[:1])

        self.assertTrue(table.empty)
        self.assertEqual(list(table.columns), COMPARISON_COLUMNS)


if __name__ == '__main__':
    unittest.main()
