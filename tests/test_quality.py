import unittest

from lanthanide_selectivity.preprocessing.quality import (
    INSUFFICIENT_RECOMMENDATION,
    QualityAssessor,
    assess_data_quality,
    coefficient_of_variation,
)


class TestQualityAssessment(unittest.TestCase):

    def setUp(self):
        self.assessor = QualityAssessor()

    def test_insufficient_replicates(self):
        result = assess_data_quality([5.0])

        self.assertEqual(result.quality, 'unreliable')
        self.assertEqual(result.recommendation, INSUFFICIENT_RECOMMENDATION)
        self.assertFalse(result.has_outliers)

    def test_identical_replicates(self):
        result = self.assessor.assess([10.0, 10.0, 10.0])

        self.assertEqual(result.cv, 0.0)
        self.assertEqual(result.quality, 'excellent')
        self.assertEqual(result.recommendation, 'Data is highly reproducible')

    def test_good_tier(self):
        # std = sqrt(8/3), mean = 10
        result = self.assessor.assess([10.0, 12.0, 8.0, 10.0])

        self.assertAlmostEqual(result.cv, 16.3299, places=3)
        self.assertEqual(result.quality, 'good')
        self.assertEqual(result.outlier_count, 0)

    def test_outliers_appended_to_recommendation(self):
        result = self.assessor.assess([1.0, 2.0, 3.0, 4.0, 100.0])

        self.assertEqual(result.quality, 'unreliable')
        self.assertTrue(result.has_outliers)
        self.assertEqual(result.outlier_count, 1)
        self.assertTrue(result.recommendation.endswith('. 1 potential outlier(s) detected'))

    def test_tier_boundaries(self):
        self.assertEqual(self.assessor.classify_cv(10.0)[0], 'excellent')
        self.assertEqual(self.assessor.classify_cv(10.01)[0], 'good')
        self.assertEqual(self.assessor.classify_cv(30.0)[0], 'acceptable')
        self.assertEqual(self.assessor.classify_cv(50.0)[0], 'poor')
        self.assertEqual(self.assessor.classify_cv(50.1)[0], 'unreliable')

    def test_configured_thresholds(self):
        config = {'preprocessing': {'quality': {'cv_thresholds': {'excellent': 5.0}}}}
        assessor = QualityAssessor(config=config)
        self.assertEqual(assessor.classify_cv(7.0)[0], 'good')

        bad = {'preprocessing': {'quality': {'cv_thresholds': {'excellent': 25.0}}}}
        with self.assertRaises(ValueError):
            QualityAssessor(config=bad)

    def test_zero_mean_cv(self):
        self.assertEqual(coefficient_of_variation([-1.0, 1.0]), 0.0)
        self.assertEqual(coefficient_of_variation([4.0]), 0.0)


if __name__ == '__main__':
    unittest.main()
