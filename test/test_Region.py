#!/usr/bin/env python

import unittest

import numpy as np
from numpy.testing import assert_array_equal, assert_allclose

from DERScan.Signal.Rle import Rle
from DERScan.Signal.Cluster import cluster_maker_rle
from DERScan.Signal.Region import *

class Test_Regions(unittest.TestCase):

    def setUp(self):
        self.stat = Rle(np.array([0, 5, 6, 0, -4, -4, 0, 0, 7, 7, 7, 0], dtype=float))
        # genome of 20 bases, bases [0,2) and [10,20) retained
        m = np.zeros(20, dtype=bool)
        m[0:2] = True
        m[10:20] = True
        self.position = Rle(m)
        self.clusters = cluster_maker_rle(self.position, 0)
        self.one_cluster = cluster_maker_rle(Rle(np.ones(12, dtype=bool)), 0)

    def test_normalize_cutoff(self):
        self.assertEqual(normalize_cutoff(3), (-3.0, 3.0))
        self.assertEqual(normalize_cutoff((-1, 6)), (-1.0, 6.0))
        for bad in (-1, (3, 1), (1, 2, 3), float("nan")):
            with self.assertRaises(ValueError):
                normalize_cutoff(bad)

    def test_get_segments(self):
        segments = get_segments(self.stat, 3)
        assert_array_equal(segments["up"][0], [1, 8])
        assert_array_equal(segments["up"][1], [3, 11])
        assert_array_equal(segments["down"][0], [4])
        assert_array_equal(segments["down"][1], [6])

    def test_get_segments_skip_nan(self):
        stat = Rle(np.array([5.0, np.nan, 5.0, 5.0]))
        segments = get_segments(stat, 1)
        assert_array_equal(segments["up"][0], [0, 2])
        assert_array_equal(segments["up"][1], [1, 4])

    def test_split_at_clusters(self):
        (s, e, cid) = split_at_clusters(np.array([1, 8]), np.array([3, 11]), self.clusters)
        assert_array_equal(s, [1, 2, 8])
        assert_array_equal(e, [2, 3, 11])
        assert_array_equal(cid, [0, 1, 1])

    def test_basic_mode(self):
        regs = find_regions(self.stat, self.one_cluster, 3, basic=True)
        self.assertTrue(regs)
        self.assertEqual(regs.regions.names, ["value", "width", "area"])
        assert_allclose(regs.regions["value"], [5.5, -4.0, 7.0])
        assert_array_equal(regs.regions["width"], [2, 2, 3])
        assert_allclose(regs.regions["area"], [11.0, 8.0, 21.0])

    def test_regions_never_cross_clusters(self):
        regs = find_regions(self.stat, self.clusters, 3, position=self.position, chrom="chr1")
        table = regs.regions
        self.assertEqual(len(regs), 4)
        assert_array_equal(table["index_start"], [1, 2, 4, 8])
        assert_array_equal(table["index_end"], [2, 3, 6, 11])
        assert_array_equal(table["cluster"], [0, 1, 1, 1])
        assert_array_equal(table["start"], [1, 10, 12, 16])
        assert_array_equal(table["end"], [2, 11, 14, 19])
        assert_array_equal(table["direction"], [1, 1, -1, 1])
        self.assertEqual(list(table["chrom"]), ["chr1"] * 4)
        # one region cluster over all four regions
        assert_array_equal(table["region_cluster"], [0, 0, 0, 0])
        assert_array_equal(table["region_cluster_length"], [18, 18, 18, 18])

    def test_region_clusters_gap(self):
        regs = find_regions(self.stat, self.clusters, 3, position=self.position, max_cluster_gap=1)
        assert_array_equal(regs.regions["region_cluster"], [0, 1, 1, 2])
        assert_array_equal(regs.regions["region_cluster_length"], [1, 4, 4, 3])

    def test_area(self):
        stat = Rle(np.array([-2.0, -2.0, -3.0, -1.5, 0.0, 4.0]))
        regs = find_regions(stat, cluster_maker_rle(Rle(np.ones(6, dtype=bool)), 0), 1)
        table = regs.regions
        assert_allclose(table["area"], [2 * 2.0 + 3.0 + 1.5, 4.0])
        assert_allclose(table["value"], [-8.5 / 4, 4.0])
        assert_array_equal(table["width"], [4, 1])

    def test_cutoff_pair(self):
        regs = find_regions(self.stat, self.one_cluster, (-1, 6), basic=True)
        assert_allclose(regs.regions["value"], [-4.0, 7.0])

    def test_no_regions(self):
        regs = find_regions(self.stat, self.one_cluster, 100)
        self.assertIsInstance(regs, NoRegions)
        self.assertFalse(regs)
        self.assertEqual(len(regs), 0)
        self.assertIsNone(regs.regions)

    def test_length_mismatch(self):
        with self.assertRaises(ValueError):
            find_regions(Rle(np.zeros(5)), self.one_cluster, 1)

    def test_annotations(self):
        mean_coverage = Rle(np.arange(12, dtype=float))
        group_means = {"A": Rle(np.full(12, 2.0)), "B": Rle(np.full(12, 8.0))}
        regs = find_regions(self.stat, self.one_cluster, 3, mean_coverage=mean_coverage,
                            group_means=group_means)
        table = regs.regions
        assert_allclose(table["mean_coverage"], [1.5, 4.5, 9.0])
        assert_allclose(table["meanA"], [2.0, 2.0, 2.0])
        assert_allclose(table["meanB"], [8.0, 8.0, 8.0])
        assert_allclose(table["log2FoldChangeBvsA"], [2.0, 2.0, 2.0])
        self.assertNotIn("log2FoldChangeAvsA", table)
        # without a mask, position space is the genome
        assert_array_equal(table["start"], table["index_start"])

if __name__ == '__main__':
    unittest.main()
