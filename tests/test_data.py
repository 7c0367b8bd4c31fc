import unittest
import numpy as np
import pandas as pd

from lanthanide_selectivity.data.chemistry import (
    calculate_selectivity,
    mg_l_to_micromolar,
    micromolar_to_mg_l,
    normalize_by_buffer,
    replicate_statistics,
)
from lanthanide_selectivity.data.constants import (
    HEAVY_REE,
    LIGHT_REE,
    WATER_EXCHANGE_RATES,
    elements_with_kex,
    sort_by_atomic_number,
)
from lanthanide_selectivity.data.replicates import ReplicateGroup, parse_mutant_name


class TestConstants(unittest.TestCase):

    def test_partitions_are_disjoint(self):
        self.assertFalse(set(LIGHT_REE) & set(HEAVY_REE))
        self.assertNotIn('Pm', WATER_EXCHANGE_RATES)

    def test_sorting(self):
        self.assertEqual(sort_by_atomic_number(['Lu', 'La', 'Gd']), ['La', 'Gd', 'Lu'])
        self.assertEqual(sort_by_atomic_number(['Y', 'La']), ['La', 'Y'])
        self.assertEqual(elements_with_kex(['Pm', 'Lu', 'La', 'Y']), ['La', 'Lu'])


class TestChemistry(unittest.TestCase):

    def test_unit_conversion(self):
        self.assertAlmostEqual(mg_l_to_micromolar(138.905, 'La'), 1000.0)
        self.assertAlmostEqual(micromolar_to_mg_l(mg_l_to_micromolar(5.0, 'Eu'), 'Eu'), 5.0)

    def test_unknown_element(self):
        with self.assertWarns(UserWarning):
            self.assertEqual(mg_l_to_micromolar(1.0, 'Xx'), 0.0)
        self.assertEqual(micromolar_to_mg_l(1.0, 'Xx'), 0.0)

    def test_selectivity(self):
        result = calculate_selectivity({'La': 1.0, 'Ce': 3.0, 'Pr': -1.0})

        self.assertAlmostEqual(result['La'], 25.0)
        self.assertAlmostEqual(result['Ce'], 75.0)
        self.assertEqual(result['Pr'], 0.0)
        self.assertAlmostEqual(sum(result.values()), 100.0)

    def test_selectivity_zero_total(self):
        self.assertEqual(calculate_selectivity({'La': 0.0, 'Ce': -2.0}), {'La': 0.0, 'Ce': 0.0})

    def test_buffer_subtraction(self):
        result = normalize_by_buffer({'La': 5.0, 'Ce': 2.0}, {'La': 1.0})
        self.assertEqual(result, {'La': 4.0, 'Ce': 2.0})

    def test_replicate_statistics(self):
        stats = replicate_statistics(pd.DataFrame({'La': [1.0, 2.0, 3.0], 'Ce': [0.0, 0.0, 0.0]}))

        self.assertAlmostEqual(stats.loc['La', 'mean'], 2.0)
        self.assertAlmostEqual(stats.loc['La', 'std'], 1.0)
        self.assertAlmostEqual(stats.loc['La', 'cv'], 50.0)
        self.assertEqual(stats.loc['Ce', 'cv'], 0.0)
        self.assertEqual(stats.loc['La', 'n'], 3)

        single = replicate_statistics(pd.DataFrame({'La': [4.0]}))
        self.assertEqual(single.loc['La', 'std'], 0.0)


class TestReplicateGroup(unittest.TestCase):

    def setUp(self):
        self.measurements = pd.DataFrame(
            {'La': [1.0, -1.0, 2.0], 'Lu': [2.0, 2.0, 2.0]},
            index=['rep1', 'rep2', 'rep3']
        )
        self.group = ReplicateGroup('Rub15-H2O', self.measurements, metadata={'batch': 3})

    def test_parse_mutant_name(self):
        self.assertEqual(parse_mutant_name('Rub15-H2O'), ('Rub15', 'H2O'))
        self.assertEqual(parse_mutant_name('Rub15_atc'), ('Rub15', 'ATC'))
        self.assertEqual(parse_mutant_name('WT'), ('WT', 'unknown'))

    def test_properties(self):
        self.assertEqual(self.group.base_name, 'Rub15')
        self.assertEqual(self.group.condition, 'H2O')
        self.assertEqual(self.group.elements, ['La', 'Lu'])
        self.assertEqual(self.group.replicate_names, ['rep1', 'rep2', 'rep3'])
        self.assertEqual(len(self.group), 3)
        self.assertEqual(self.group.get_metadata('batch'), 3)

    def test_requires_dataframe(self):
        with self.assertRaises(TypeError):
            ReplicateGroup('x', [[1.0, 2.0]])

    def test_total_molarity_clamps_negatives(self):
        np.testing.assert_allclose(self.group.total_molarity(), [3.0, 2.0, 4.0])
        np.testing.assert_allclose(self.group.total_molarity(['La']), [1.0, 0.0, 2.0])
        # Unmeasured elements contribute nothing
        np.testing.assert_allclose(self.group.total_molarity(['La', 'Gd']), [1.0, 0.0, 2.0])

    def test_selectivity_rows(self):
        selectivity = self.group.selectivity()

        self.assertEqual(selectivity.shape, (3, 2))
        np.testing.assert_allclose(selectivity.sum(axis=1), [100.0, 100.0, 100.0])
        self.assertEqual(selectivity.loc['rep2', 'La'], 0.0)

    def test_from_concentrations(self):
        concentrations = pd.DataFrame({'La': [138.905, 277.81]})
        group = ReplicateGroup.from_concentrations('WT', concentrations, buffer={'La': 100.0})

        np.testing.assert_allclose(group.measurements['La'], [900.0, 1900.0])

    def test_copy_is_independent(self):
        copied = self.group.copy()
        copied.measurements.iloc[0, 0] = 99.0
        copied.metadata['batch'] = 4

        self.assertEqual(self.group.measurements.iloc[0, 0], 1.0)
        self.assertEqual(self.group.get_metadata('batch'), 3)


if __name__ == '__main__':
    unittest.main()
