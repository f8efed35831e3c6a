#!/usr/bin/env python

"""Module Description: Test functions for p-values and q-values.

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose, assert_array_equal
from scipy import stats

from DERScan.IO.RegionIO import RegionTable
from DERScan.Signal.Permutation import NullPool
from DERScan.Signal.Prob import *

# ------------------------------------
# Main function
# ------------------------------------

class Test_empirical_pvalues(unittest.TestCase):

    def setUp(self):
        self.null_areas = np.array([1.0, 2.0, 2.0, 5.0, 9.0])

    def test_known_values(self):
        p = empirical_pvalues([0.5, 2.0, 3.0, 10.0], self.null_areas)
        assert_allclose(p, [6 / 6, 3 / 6, 3 / 6, 1 / 6])

    def test_equal_to_max_null_area(self):
        p = empirical_pvalues([9.0], self.null_areas)
        assert_allclose(p, [1 / 6])

    def test_bounds_and_monotone(self):
        rng = np.random.default_rng(1)
        null_areas = rng.exponential(5, size=200)
        areas = np.sort(rng.exponential(5, size=50))
        p = empirical_pvalues(areas, null_areas)
        self.assertTrue(np.all(p >= 1 / 201))
        self.assertTrue(np.all(p <= 1))
        self.assertTrue(np.all(np.diff(p) <= 0))

class Test_f_cutoff(unittest.TestCase):

    def test_f_cutoff(self):
        expect = stats.f.ppf(0.99, 1, 4)
        self.assertAlmostEqual(f_cutoff(0.99, 6, 2, 1), expect)

class Test_qvalue(unittest.TestCase):

    def setUp(self):
        rng = np.random.default_rng(2)
        self.p = np.concatenate((rng.uniform(size=400), rng.uniform(0, 0.001, size=100)))

    def test_pi0(self):
        pi0 = estimate_pi0(self.p)
        self.assertTrue(0.6 < pi0 <= 1.0)
        pi0_boot = estimate_pi0(self.p, pi0_method="bootstrap")
        self.assertTrue(0.6 < pi0_boot <= 1.0)
        self.assertAlmostEqual(estimate_pi0(self.p, lambdas=[0.5]), np.mean(self.p >= 0.5) / 0.5)

    def test_qvalue(self):
        q = qvalue(self.p)
        self.assertEqual(q.shape, self.p.shape)
        self.assertTrue(np.all(q >= self.p * 0.6))
        self.assertTrue(np.all(q <= 1))
        # q-values keep the order of the p-values
        order = np.argsort(self.p)
        self.assertTrue(np.all(np.diff(q[order]) >= 0))

    def test_qvalue_ties(self):
        q = qvalue(np.array([0.2, 0.2, 0.8, 0.9]), lambdas=[0.5])
        self.assertEqual(q[0], q[1])

    def test_degenerate_pi0(self):
        # no p-value reaches lambda, pi0 is 0
        self.assertIsNone(qvalue(np.full(20, 0.01), lambdas=[0.5]))

    def test_bad_input(self):
        with self.assertRaises(ValueError):
            qvalue([0.1, 1.5])
        with self.assertRaises(ValueError):
            estimate_pi0(self.p, lambdas=[0.1, 0.2])
        with self.assertRaises(ValueError):
            estimate_pi0(self.p, pi0_method="median")

class Test_add_significance(unittest.TestCase):

    def setUp(self):
        self.table = RegionTable({"area": np.array([50.0, 9.0, 0.5])})

    def test_empty_pool(self):
        table = add_significance(self.table, NullPool(), (0.05, 0.10))
        self.assertTrue(np.all(np.isnan(table["pvalue"])))
        self.assertTrue(np.all(np.isnan(table["qvalue"])))
        self.assertEqual(list(table["significant"]), [None, None, None])
        self.assertEqual(list(table["significant_q"]), [None, None, None])

    def test_with_pool(self):
        pool = NullPool()
        pool.add(np.ones(19), np.ones(19), np.linspace(1, 10, 19), 1)
        table = add_significance(self.table, pool, (0.06, 1.0))
        assert_allclose(table["pvalue"], [1 / 20, 3 / 20, 1.0])
        self.assertEqual(list(table["significant"]), [True, False, False])
        self.assertEqual(len(table["qvalue"]), 3)
        self.assertIn(table["significant_q"][0], (True, False, None))

    def test_degenerate_pi0(self):
        # every observed area beats the 39 null areas, so all p-values
        # are 1/40, below every lambda, and pi0 is 0
        pool = NullPool()
        pool.add(np.ones(39), np.ones(39), np.linspace(0.01, 0.1, 39), 1)
        table = add_significance(self.table, pool, (0.05, 0.10))
        assert_allclose(table["pvalue"], [1 / 40, 1 / 40, 1 / 40])
        self.assertEqual(list(table["significant"]), [True, True, True])
        self.assertTrue(np.all(np.isnan(table["qvalue"])))
        self.assertEqual(list(table["significant_q"]), [None, None, None])

if __name__ == '__main__':
    unittest.main()
