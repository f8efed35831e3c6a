#!/usr/bin/env python

import unittest
import pickle

import numpy as np
from numpy.testing import assert_array_equal

from DERScan.Signal.Rle import Rle
from DERScan.Signal.Cluster import *

def mask_from_positions(positions, length):
    m = np.zeros(length, dtype=bool)
    m[list(positions)] = True
    return Rle(m)

class Test_cluster_maker_rle(unittest.TestCase):

    def setUp(self):
        # 1-based {1..5} and {307..310}
        self.two_blocks = mask_from_positions(list(range(0, 5)) + list(range(306, 310)), 320)

    def test_all_retained(self):
        clusters = cluster_maker_rle(Rle(np.ones(10, dtype=bool)), 0)
        self.assertEqual(len(clusters), 1)
        self.assertEqual(clusters[0], (0, 10))
        self.assertEqual(clusters.total, 10)

    def test_gap_over_max_gap(self):
        clusters = cluster_maker_rle(self.two_blocks, 300)
        self.assertEqual(len(clusters), 2)
        self.assertEqual(list(clusters), [(0, 5), (5, 9)])
        assert_array_equal(clusters.genomic_starts, [0, 306])
        assert_array_equal(clusters.genomic_ends, [5, 310])

    def test_gap_equal_max_gap(self):
        clusters = cluster_maker_rle(self.two_blocks, 301)
        self.assertEqual(list(clusters), [(0, 9)])

    def test_membership_follows_gap(self):
        positions = [0, 1, 4, 5, 9, 20, 21, 22, 30]
        mask = mask_from_positions(positions, 40)
        for max_gap in (0, 1, 2, 3, 7, 10):
            clusters = cluster_maker_rle(mask, max_gap)
            ids = clusters.cluster_of(np.arange(len(positions)))
            for k in range(len(positions) - 1):
                same = positions[k + 1] - positions[k] - 1 <= max_gap
                self.assertEqual(ids[k] == ids[k + 1], same)

    def test_partition(self):
        mask = mask_from_positions([2, 3, 10, 11, 12, 50], 60)
        clusters = cluster_maker_rle(mask, 6)
        assert_array_equal(clusters.widths(), [5, 1])
        self.assertEqual(clusters.total, mask.ntrue)
        assert_array_equal(clusters.starts[1:], clusters.ends[:-1])
        self.assertEqual(str(clusters), "2\t13\n50\t51\n")

    def test_empty_mask(self):
        clusters = cluster_maker_rle(Rle(np.zeros(8, dtype=bool)), 0)
        self.assertEqual(len(clusters), 0)
        self.assertEqual(clusters.total, 0)

    def test_negative_max_gap(self):
        with self.assertRaises(ValueError):
            cluster_maker_rle(self.two_blocks, -1)

    def test_read_only_and_pickle(self):
        clusters = cluster_maker_rle(self.two_blocks, 300)
        with self.assertRaises(ValueError):
            clusters.starts[0] = 1
        copy = pickle.loads(pickle.dumps(clusters))
        self.assertEqual(list(copy), list(clusters))

if __name__ == '__main__':
    unittest.main()
