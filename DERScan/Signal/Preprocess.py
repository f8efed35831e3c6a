"""Module Description: Prepare per-sample coverage for the F statistics.

Coverage stays run-length encoded from input to chunking; a chunk is
only decoded into a dense (bases x samples) matrix by the worker that
computes its statistics.

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

# ------------------------------------
# python modules
# ------------------------------------
import logging
from math import ceil

# ------------------------------------
# own python modules
# ------------------------------------
import DERScan.Utilities.Logger
from DERScan.Utilities.Constants import SCALEFAC
from DERScan.Signal.Rle import Rle

# ------------------------------------
# Other modules
# ------------------------------------
import numpy as np

logger = logging.getLogger(__name__)
debug   = logger.debug
info    = logger.info

# ------------------------------------
# Classes
# ------------------------------------

class CoverageChunk:
    """Coverage of every sample over one block of retained bases.

    start is the position-space index of the first base in the chunk.
    """
    def __init__(self, samples, scalefac=SCALEFAC, start=0):
        self.samples = list(samples)
        self.scalefac = scalefac
        self.start = start

    def __len__(self):
        return len(self.samples[0]) if self.samples else 0

    @property
    def shape(self):
        return (len(self), len(self.samples))

    def to_matrix(self):
        """Dense log2(coverage + scalefac), rows are bases, columns are
        samples."""
        m = np.empty(self.shape, dtype=float)
        for (j, s) in enumerate(self.samples):
            m[:, j] = s.decode()
        return np.log2(m + self.scalefac)

class CoveragePrep:
    """Output of preprocess_coverage.

    coverage_split: list of CoverageChunk in position order
    position: boolean Rle over the genome, True for retained bases
    mean_coverage: Rle over position space, mean raw coverage
    group_means: dict of group -> Rle of mean raw coverage, the first
        group is the reference for fold changes
    """
    def __init__(self, coverage_split, position, mean_coverage, group_means=None):
        self.coverage_split = coverage_split
        self.position = position
        self.mean_coverage = mean_coverage
        self.group_means = group_means if group_means is not None else {}

    @property
    def n_samples(self):
        if not self.coverage_split:
            return 0
        return self.coverage_split[0].shape[1]

# ------------------------------------
# Misc functions
# ------------------------------------

def _as_sample_rles(coverage):
    if isinstance(coverage, np.ndarray):
        if coverage.ndim != 2:
            raise ValueError("dense coverage must be 2-D (bases x samples)")
        return [Rle(coverage[:, j]) for j in range(coverage.shape[1])]
    samples = [s if isinstance(s, Rle) else Rle(s) for s in coverage]
    if not samples:
        raise ValueError("no sample coverage given")
    n = len(samples[0])
    for s in samples[1:]:
        if len(s) != n:
            raise ValueError("all samples must cover the same number of bases")
    return samples

def preprocess_coverage(coverage, cutoff=None, scalefac=SCALEFAC, chunksize=None,
                        col_subset=None, group_info=None, n_proc=1):
    """Filter, split and summarize coverage of one chromosome.

    coverage: list of per-sample Rle (or 1-D arrays), or a 2-D array
        of bases x samples.
    cutoff: keep bases where at least one sample has coverage above
        it; None keeps every base.
    scalefac: added before the log2 transform.
    chunksize: bases per chunk; defaults to an even split over n_proc.
    col_subset: indices of the samples to use.
    group_info: group label of each (used) sample; groups are ordered
        by first appearance.

    Ret: CoveragePrep
    """
    samples = _as_sample_rles(coverage)
    if col_subset is not None:
        samples = [samples[j] for j in col_subset]
    n_bases = len(samples[0])

    if cutoff is None:
        position = Rle(np.array([True]), np.array([n_bases]))
    else:
        position = Rle.overlie([s.map(np.greater, cutoff) for s in samples], "any")
    n_retained = position.ntrue
    info("%d of %d bases retained" % (n_retained, n_bases))

    retained = [s.subset(position) for s in samples]

    if chunksize is None:
        chunksize = max(1, int(ceil(n_retained / max(1, n_proc))))
    if chunksize <= 0:
        raise ValueError("chunksize must be positive, got %s" % chunksize)
    coverage_split = [CoverageChunk([s.slice(i, i + chunksize) for s in retained], scalefac, i)
                      for i in range(0, n_retained, chunksize)]
    debug("%d chunks of at most %d bases" % (len(coverage_split), chunksize))

    if n_retained:
        mean_coverage = Rle.overlie(retained, "mean")
    else:
        mean_coverage = Rle(np.zeros(0))

    group_means = {}
    if group_info is not None:
        group_info = list(group_info)
        if len(group_info) != len(samples):
            raise ValueError("group_info has %d labels for %d samples" % (len(group_info), len(samples)))
        for g in group_info:
            if g in group_means or not n_retained:
                continue
            group_means[g] = Rle.overlie([retained[j] for j in range(len(samples)) if group_info[j] == g], "mean")

    return CoveragePrep(coverage_split, position, mean_coverage, group_means)
