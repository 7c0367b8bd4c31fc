import unittest
import numpy as np
import pandas as pd
from scipy import stats

from lanthanide_selectivity.analysis.regression import t_stat_to_p_value
from lanthanide_selectivity.analysis.statistical import (
    MannWhitneyU,
    StatisticalAnalyzer,
    WelchTTest,
    choose_test,
    compare_mutants,
    interpret_effect_size,
    mann_whitney_u,
    welch_t_test,
)


class TestSelectionAndBanding(unittest.TestCase):

    def test_choose_test(self):
        self.assertEqual(choose_test(5, 10), 'mann-whitney')
        self.assertEqual(choose_test(7, 8), 'mann-whitney')
        self.assertEqual(choose_test(8, 8), 'welch')
        self.assertEqual(choose_test(4, 4, min_parametric_n=3), 'welch')

    def test_effect_size_bands(self):
        self.assertEqual(interpret_effect_size(0.1), 'negligible')
        self.assertEqual(interpret_effect_size(-0.3), 'small')
        self.assertEqual(interpret_effect_size(0.5), 'medium')
        self.assertEqual(interpret_effect_size(0.8), 'large')
        self.assertEqual(interpret_effect_size(-1.2), 'large')


class TestWelch(unittest.TestCase):

    def setUp(self):
        self.g1 = [1.0, 2.0, 3.0, 4.0, 5.0]
        self.g2 = [2.0, 3.0, 4.0, 5.0, 6.0]

    def test_known_values(self):
        result = welch_t_test(self.g1, self.g2)

        # diff = -1, SE = 1, df = 8
        self.assertAlmostEqual(result.statistic, -1.0)
        self.assertAlmostEqual(result.degrees_of_freedom, 8.0)
        self.assertAlmostEqual(result.p_value, t_stat_to_p_value(1.0, 8.0))
        self.assertFalse(result.significant)

        self.assertAlmostEqual(result.effect_size, -1.0 / np.sqrt(2.5))
        self.assertEqual(result.effect_interpretation, 'medium')

        self.assertAlmostEqual(result.ci_lower, -1.0 - 2.26)
        self.assertAlmostEqual(result.ci_upper, -1.0 + 2.26)
        self.assertEqual((result.n1, result.n2), (5, 5))
        self.assertEqual(result.method, "Welch's t-test")

    def test_large_difference_is_significant(self):
        result = welch_t_test(np.arange(10.0), np.arange(10.0) + 20)
        self.assertTrue(result.significant)
        self.assertEqual(result.effect_interpretation, 'large')

    def test_constant_groups(self):
        result = welch_t_test([1.0, 1.0, 1.0], [1.0, 1.0, 1.0])

        self.assertEqual(result.statistic, 0.0)
        self.assertEqual(result.p_value, 1.0)
        self.assertEqual(result.effect_size, 0.0)
        # Zero denominator falls back to n1 + n2 - 2
        self.assertEqual(result.degrees_of_freedom, 4.0)
        self.assertEqual((result.ci_lower, result.ci_upper), (0.0, 0.0))

    def test_identical_samples(self):
        result = welch_t_test(self.g1, self.g1)

        self.assertEqual(result.statistic, 0.0)
        self.assertEqual(result.p_value, 1.0)
        self.assertFalse(result.significant)
        self.assertEqual(result.effect_size, 0.0)
        self.assertEqual(result.effect_interpretation, 'negligible')
        self.assertAlmostEqual(result.ci_lower, -result.ci_upper)

    def test_small_group_is_neutral(self):
        result = welch_t_test([1.0], [1.0, 2.0, 3.0])

        self.assertEqual(result.statistic, 0.0)
        self.assertEqual(result.p_value, 1.0)
        self.assertFalse(result.significant)
        self.assertEqual(result.effect_interpretation, 'negligible')
        self.assertEqual((result.ci_lower, result.ci_upper), (0.0, 0.0))

    def test_nan_dropped_before_size_check(self):
        result = welch_t_test([1.0, np.nan], [2.0, 3.0])
        self.assertEqual(result.p_value, 1.0)
        self.assertEqual(result.n1, 1)


class TestMannWhitney(unittest.TestCase):

    def test_separated_groups(self):
        result = mann_whitney_u([1.0, 2.0, 3.0], [4.0, 5.0, 6.0])

        self.assertEqual(result.statistic, 0.0)
        expected_p = 2 * stats.norm.sf(4.5 / np.sqrt(9 * 7 / 12))
        self.assertAlmostEqual(result.p_value, expected_p)
        self.assertAlmostEqual(result.effect_size, 1.0)
        self.assertEqual(result.effect_interpretation, 'large')
        self.assertEqual(result.method, 'Mann-Whitney U')

    def test_ties_use_average_ranks(self):
        result = mann_whitney_u([1.0, 1.0, 2.0], [1.0, 2.0, 2.0])

        self.assertAlmostEqual(result.statistic, 3.0)
        self.assertAlmostEqual(result.effect_size, 1.0 / 3.0)
        self.assertGreaterEqual(result.p_value, 0.0)
        self.assertLessEqual(result.p_value, 1.0)

    def test_interval_matches_welch(self):
        g1, g2 = [1.0, 2.0, 4.0], [3.0, 5.0, 6.0]
        mw = mann_whitney_u(g1, g2)
        welch = welch_t_test(g1, g2)

        self.assertAlmostEqual(mw.ci_lower, welch.ci_lower)
        self.assertAlmostEqual(mw.ci_upper, welch.ci_upper)

    def test_small_group_is_neutral(self):
        result = MannWhitneyU().test([], [1.0, 2.0])
        self.assertEqual(result.p_value, 1.0)
        self.assertEqual(result.effect_size, 0.0)


class TestCompareMutants(unittest.TestCase):

    def test_small_samples_use_mann_whitney(self):
        result = compare_mutants([1.0, 2.0, 3.0], [4.0, 5.0, 6.0], 'A', 'B', 'Total Binding')

        self.assertEqual(result.test.method, 'Mann-Whitney U')
        self.assertEqual(result.mutant_a, 'A')
        self.assertEqual(result.mutant_b, 'B')
        self.assertEqual(result.metric, 'Total Binding')
        self.assertAlmostEqual(result.mean_a, 2.0)
        self.assertAlmostEqual(result.mean_b, 5.0)

    def test_large_samples_use_welch(self):
        a = np.arange(8.0)
        result = compare_mutants(a, a + 1, 'A', 'B', 'Total Binding')
        self.assertEqual(result.test.method, "Welch's t-test")


class TestStatisticalAnalyzer(unittest.TestCase):

    def setUp(self):
        base = np.arange(1.0, 11.0)
        self.groups = {
            'A': base,
            'B': base + 20,
            'C': base + 0.1,
        }

    def test_compare_groups_structure(self):
        analyzer = StatisticalAnalyzer()
        results = analyzer.compare_groups(self.groups, metric='Total Binding')

        self.assertIsInstance(results, pd.DataFrame)
        self.assertEqual(len(results), 3)
        for column in ['group1', 'group2', 'p_value', 'p_value_corrected',
                       'effect_size', 'ci_lower', 'ci_upper', 'significant', 'test_used']:
            self.assertIn(column, results.columns)

        self.assertTrue(np.all(results['p_value_corrected'] >= results['p_value'] - 1e-12))

    def test_compare_groups_significance(self):
        analyzer = StatisticalAnalyzer(correction_method='bonferroni')
        results = analyzer.compare_groups(self.groups)

        a_vs_b = results[(results['group1'] == 'A') & (results['group2'] == 'B')].iloc[0]
        a_vs_c = results[(results['group1'] == 'A') & (results['group2'] == 'C')].iloc[0]

        self.assertTrue(bool(a_vs_b['significant']))
        self.assertFalse(bool(a_vs_c['significant']))
        self.assertEqual(a_vs_b['test_used'], "Welch's t-test")

        pairs = analyzer.select_significant_pairs(results)
        self.assertIn(('A', 'B'), pairs)
        self.assertNotIn(('A', 'C'), pairs)

    def test_needs_two_groups(self):
        with self.assertRaises(ValueError):
            StatisticalAnalyzer().compare_groups({'A': [1.0, 2.0]})

    def test_correction(self):
        analyzer = StatisticalAnalyzer(correction_method='bonferroni')
        corrected = analyzer.correct_multiple_comparisons(np.array([0.01, 0.02, np.nan]))

        self.assertAlmostEqual(corrected[0], 0.02)
        self.assertAlmostEqual(corrected[1], 0.04)
        self.assertTrue(np.isnan(corrected[2]))

        uncorrected = StatisticalAnalyzer(correction_method=None).correct_multiple_comparisons(
            np.array([0.01, 0.02])
        )
        np.testing.assert_array_equal(uncorrected, [0.01, 0.02])

    def test_forced_test(self):
        analyzer = StatisticalAnalyzer(test='welch')
        result = analyzer.compare_pair([1.0, 2.0, 3.0], [4.0, 5.0, 6.0])
        self.assertIsInstance(analyzer._test_for(3, 3), WelchTTest)
        self.assertEqual(result.method, "Welch's t-test")

    def test_unknown_test_warns(self):
        with self.assertWarns(UserWarning):
            analyzer = StatisticalAnalyzer(test='anova')
        self.assertIsInstance(analyzer._test_for(3, 3), MannWhitneyU)

    def test_config_section(self):
        config = {'analysis': {'statistical': {'alpha': 0.01, 'correction': None}}}
        analyzer = StatisticalAnalyzer(config=config)
        self.assertEqual(analyzer.alpha, 0.01)
        self.assertIsNone(analyzer.correction_method)

    def test_report(self):
        analyzer = StatisticalAnalyzer()
        results = analyzer.compare_groups(self.groups, metric='Total Binding')
        report = analyzer.generate_report(results)

        self.assertIn('PAIRWISE COMPARISON REPORT', report)
        self.assertIn('A vs B', report)


class TestRepeatability(unittest.TestCase):

    def setUp(self):
        self.g1 = [3.1, 2.7, 3.4, 2.9, 3.3]
        self.g2 = [4.0, 3.6, 4.4, 3.9, 4.1]

    def test_tests_are_repeatable(self):
        self.assertEqual(welch_t_test(self.g1, self.g2), welch_t_test(self.g1, self.g2))
        self.assertEqual(mann_whitney_u(self.g1, self.g2), mann_whitney_u(self.g1, self.g2))
        self.assertEqual(
            compare_mutants(self.g1, self.g2, 'A', 'B', 'Total Binding'),
            compare_mutants(self.g1, self.g2, 'A', 'B', 'Total Binding')
        )

    def test_compare_groups_is_repeatable(self):
        analyzer = StatisticalAnalyzer()
        groups = {'A': self.g1, 'B': self.g2, 'C': self.g1[::-1]}

        pd.testing.assert_frame_equal(
            analyzer.compare_groups(groups),
            analyzer.compare_groups(groups)
        )


if __name__ == '__main__':
    unittest.main()
