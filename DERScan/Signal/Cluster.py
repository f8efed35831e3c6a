# cython: language_level=3
# cython: profile=True

"""Module for position clusters.

A cluster is a maximal stretch of retained positions in which
consecutive retained positions are never more than ``max_gap``
unretained bases apart. Clusters are computed once per chromosome and
shared, unchanged, by the observed data and by every permutation.

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

# ------------------------------------
# python modules
# ------------------------------------

# ------------------------------------
# DERScan modules
# ------------------------------------
from DERScan.Signal.Rle import Rle

# ------------------------------------
# Other modules
# ------------------------------------
import cython
import numpy as np

# ------------------------------------
# constants
# ------------------------------------
__doc__ = "Clusters class and cluster maker"

# ------------------------------------
# Misc functions
# ------------------------------------


def _frozen(a):
    a = np.asarray(a, dtype=np.int64)
    a.flags.writeable = False
    return a


@cython.ccall
def cluster_maker_rle(position, max_gap: cython.long = 0):
    """Partition the retained positions of ``position`` into clusters.

    Only the runs of the mask are walked. Two consecutive retained
    positions a < b are ``b - a - 1`` bases apart; once that gap exceeds
    ``max_gap`` a new cluster starts, so a gap equal to ``max_gap``
    stays inside the cluster.

    Args:
        position (Rle): boolean mask over genomic coordinates.
        max_gap (int): largest gap allowed inside a cluster.

    Returns:
        Clusters: index ranges in position space, with the matching
        genomic ranges.
    """
    is_true: object
    gstarts: object
    gends: object
    iends: object
    breaks: object
    first: object
    last: object
    n: cython.long

    if max_gap < 0:
        raise ValueError("max_gap must be a non-negative integer, got %d" % max_gap)

    is_true = np.asarray(position.values, dtype=bool)
    gends = position.ends[is_true]
    gstarts = gends - position.lengths[is_true]
    n = gstarts.size
    if n == 0:
        return Clusters((), (), (), ())

    # position space: retained bases laid end to end
    iends = np.cumsum(position.lengths[is_true])

    breaks = np.flatnonzero(gstarts[1:] - gends[:-1] > max_gap) + 1
    first = np.concatenate(([0], breaks))
    last = np.concatenate((breaks - 1, [n - 1]))
    return Clusters(np.concatenate(([0], iends[last][:-1])),
                    iends[last],
                    gstarts[first],
                    gends[last])

# ------------------------------------
# Classes
# ------------------------------------


@cython.cclass
class Clusters:
    """Ordered, read-only partition of position space.

    Cluster ``i`` covers the retained positions [starts[i], ends[i])
    and the genomic interval [genomic_starts[i], genomic_ends[i]).
    Clusters are adjacent in position space, so together they cover
    every retained position exactly once.
    """
    starts = cython.declare(object, visibility="readonly")
    ends = cython.declare(object, visibility="readonly")
    genomic_starts = cython.declare(object, visibility="readonly")
    genomic_ends = cython.declare(object, visibility="readonly")

    def __init__(self, starts, ends, genomic_starts, genomic_ends):
        self.starts = _frozen(starts)
        self.ends = _frozen(ends)
        self.genomic_starts = _frozen(genomic_starts)
        self.genomic_ends = _frozen(genomic_ends)

    def __reduce__(self):
        return (Clusters, (np.asarray(self.starts), np.asarray(self.ends),
                           np.asarray(self.genomic_starts), np.asarray(self.genomic_ends)))

    def __len__(self):
        return int(self.starts.size)

    def __getitem__(self, i):
        return (int(self.starts[i]), int(self.ends[i]))

    def __iter__(self):
        for i in range(self.starts.size):
            yield (int(self.starts[i]), int(self.ends[i]))

    def __str__(self):
        return "".join(["%d\t%d\n" % (s, e) for (s, e) in zip(self.genomic_starts, self.genomic_ends)])

    @property
    def total(self):
        """Number of retained positions covered."""
        if self.ends.size == 0:
            return 0
        return int(self.ends[-1])

    def widths(self):
        return self.ends - self.starts

    def cluster_of(self, indices):
        """Cluster id of each position-space index."""
        return np.searchsorted(self.ends, np.asarray(indices, dtype=np.int64), side="right")
