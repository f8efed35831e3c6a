"""Module Description: Null distribution of region statistics.

Sample labels are permuted, the F statistics are recomputed and
regions are searched again with the observed clusters and cutoff. The
value, width and area of every region found this way goes into the
null pool.

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

# ------------------------------------
# python modules
# ------------------------------------
import datetime
import logging
from collections import namedtuple
from functools import partial
import multiprocessing as mp

# ------------------------------------
# own python modules
# ------------------------------------
import DERScan.Utilities.Logger
from DERScan.Signal.FStat import calculate_stats, check_models
from DERScan.Signal.Region import find_regions

# ------------------------------------
# Other modules
# ------------------------------------
import numpy as np

logger = logging.getLogger(__name__)
debug   = logger.debug
info    = logger.info

# ------------------------------------
# constants
# ------------------------------------
PARALLEL_MODES = ("chunks", "permutations")

NullPoolEntry = namedtuple("NullPoolEntry", ["stat", "width", "area", "permutation"])

# ------------------------------------
# Classes
# ------------------------------------

class NullPool:
    """Region statistics pooled over all permutations.

    Entries are kept as parallel arrays; their order carries no
    meaning.
    """
    def __init__(self):
        self._stats = []
        self._widths = []
        self._areas = []
        self._permutations = []

    def add(self, stats, widths, areas, permutation):
        """Add the regions found by one permutation."""
        stats = np.asarray(stats, dtype=float)
        self._stats.append(stats)
        self._widths.append(np.asarray(widths, dtype=np.int64))
        self._areas.append(np.asarray(areas, dtype=float))
        self._permutations.append(np.full(stats.size, permutation, dtype=np.int64))

    def __len__(self):
        return sum([a.size for a in self._stats])

    def __iter__(self):
        for entry in zip(self.stats, self.widths, self.areas, self.permutations):
            yield NullPoolEntry(*entry)

    def _joined(self, parts, dtype):
        if not parts:
            return np.zeros(0, dtype=dtype)
        return np.concatenate(parts)

    @property
    def stats(self):
        return self._joined(self._stats, float)

    @property
    def widths(self):
        return self._joined(self._widths, np.int64)

    @property
    def areas(self):
        return self._joined(self._areas, float)

    @property
    def permutations(self):
        return self._joined(self._permutations, np.int64)

# ------------------------------------
# Misc functions
# ------------------------------------

def check_seeds(n_permute, seeds=None):
    """Ret: one seed (or None, for an unseeded generator) per permutation."""
    if n_permute < 0:
        raise ValueError("n_permute must be >= 0, got %d" % n_permute)
    if seeds is None:
        return [None] * n_permute
    seeds = list(seeds)
    if len(seeds) != n_permute:
        raise ValueError("%d seeds given for %d permutations" % (len(seeds), n_permute))
    return seeds

def date_seeds(n_permute, today=None):
    """Seeds derived from the date: int(YYYYMMDD) + 1 .. n_permute."""
    if today is None:
        today = datetime.date.today()
    base = int(today.strftime("%Y%m%d"))
    return [base + i for i in range(1, n_permute + 1)]

def permutation_pass(i, seed, coverage_split, mod, mod0, clusters, cutoff, adjust_f=0.0, pool=None):
    """Statistics and regions for one permutation of the sample labels.

    A fresh generator is built from ``seed``; with seed None it is
    seeded from the operating system and the pass is not reproducible.

    Ret: (i, RegionResult) where the regions are in basic mode.
    """
    rng = np.random.default_rng(seed)
    idx_permute = rng.permutation(mod.shape[0])
    fstats = calculate_stats(coverage_split, mod[idx_permute], mod0[idx_permute],
                             adjust_f=adjust_f, pool=pool)
    return (i, find_regions(fstats, clusters, cutoff, basic=True))

def _permutation_task(task, **kwargs):
    return permutation_pass(task[0], task[1], **kwargs)

# ------------------------------------
# Main function
# ------------------------------------

def permute_null_regions(coverage_split, mod, mod0, clusters, cutoff, n_permute,
                         seeds=None, adjust_f=0.0, n_proc=1, parallel="chunks"):
    """Build the null pool from ``n_permute`` permutations.

    parallel: "chunks" runs permutations one after another and shares
        one pool of n_proc workers between the chunks of each pass;
        "permutations" hands whole passes to the workers.

    Permutation ids in the pool start at 1. Each region found by a
    permutation contributes one entry.

    Ret: NullPool
    """
    seeds = check_seeds(n_permute, seeds)
    if parallel not in PARALLEL_MODES:
        raise ValueError("parallel must be one of %s, got %s" % (PARALLEL_MODES, parallel))
    (mod, mod0) = check_models(mod, mod0)
    coverage_split = list(coverage_split)

    null_pool = NullPool()
    if n_permute == 0:
        return null_pool

    tasks = [(i + 1, seeds[i]) for i in range(n_permute)]
    if n_proc > 1 and parallel == "permutations":
        p_task = partial(_permutation_task, coverage_split=coverage_split, mod=mod, mod0=mod0,
                         clusters=clusters, cutoff=cutoff, adjust_f=adjust_f)
        P = mp.Pool(n_proc)
        try:
            for (i, regs) in P.imap_unordered(p_task, tasks):
                debug("permutation %d finished" % i)
                if regs:
                    null_pool.add(regs.regions["value"], regs.regions["width"], regs.regions["area"], i)
        finally:
            P.close()
            P.join()
        return null_pool

    P = mp.Pool(n_proc) if n_proc > 1 and len(coverage_split) > 1 else None
    try:
        for (i, seed) in tasks:
            info("calculating F-statistics for permutation %d" % i)
            (i, regs) = permutation_pass(i, seed, coverage_split, mod, mod0, clusters,
                                         cutoff, adjust_f, pool=P)
            if regs:
                null_pool.add(regs.regions["value"], regs.regions["width"], regs.regions["area"], i)
    finally:
        if P is not None:
            P.close()
            P.join()
    return null_pool
