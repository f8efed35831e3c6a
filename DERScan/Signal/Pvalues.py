"""Module Description: Find regions and assign permutation p-values.

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

# ------------------------------------
# python modules
# ------------------------------------
from types import SimpleNamespace

# ------------------------------------
# own python modules
# ------------------------------------
from DERScan.Utilities.Constants import (MAX_REGION_GAP, MAX_CLUSTER_GAP,
                                         SIGNIFICANT_CUT, DEFAULT_QUANTILE)
from DERScan.Utilities.OptValidator import opt_validate_pvalues
from DERScan.Signal.Cluster import cluster_maker_rle
from DERScan.Signal.FStat import check_models
from DERScan.Signal.Region import find_regions, FoundRegions, NoRegions
from DERScan.Signal.Permutation import NullPool, permute_null_regions
from DERScan.Signal.Prob import add_significance

# ------------------------------------
# Other modules
# ------------------------------------
import numpy as np

# ------------------------------------
# Classes
# ------------------------------------

class PvaluesResult:
    """Regions with significance, plus the null pool they were tested
    against.

    regions: FoundRegions, sorted by area (largest first), or NoRegions
    null_pool: NullPool, empty when no permutation was run
    """
    def __init__(self, regions, null_pool):
        self.regions = regions
        self.null_pool = null_pool

    @property
    def null_stats(self):
        return self.null_pool.stats

    @property
    def null_widths(self):
        return self.null_pool.widths

    @property
    def null_areas(self):
        return self.null_pool.areas

    @property
    def null_permutation(self):
        return self.null_pool.permutations

# ------------------------------------
# Misc functions
# ------------------------------------

def _unpack_models(models):
    if isinstance(models, dict):
        return (models["mod"], models["mod0"])
    (mod, mod0) = models
    return (mod, mod0)

# ------------------------------------
# Main function
# ------------------------------------

def calculate_pvalues(coverage_prep, models, fstats, chrom=None, n_permute=1, seeds=None,
                      max_region_gap=MAX_REGION_GAP, max_cluster_gap=MAX_CLUSTER_GAP,
                      cutoff=None, n_proc=1, significant_cut=SIGNIFICANT_CUT,
                      adjust_f=0.0, parallel="chunks", verbose=2):
    """Find candidate regions and compute their p-values and q-values.

    coverage_prep: CoveragePrep of one chromosome
    models: {"mod": ..., "mod0": ...} or a (mod, mod0) pair
    fstats: Rle of observed F statistics over position space
    n_permute: number of permutations; 0 skips the null pool and leaves
        all significance columns undefined
    seeds: one seed per permutation, or None for unseeded permutations
    max_region_gap: gap allowed inside the clusters regions are cut by
    max_cluster_gap: gap allowed between regions of a region cluster
    cutoff: one value or a (low, high) pair; defaults to the 0.99
        quantile of fstats
    significant_cut: p-value and q-value cutoffs for the two flags
    adjust_f: added to RSS1 in the F statistic denominator

    Ret: PvaluesResult
    """
    options = opt_validate_pvalues(SimpleNamespace(n_permute=n_permute,
                                                   seeds=seeds,
                                                   max_region_gap=max_region_gap,
                                                   max_cluster_gap=max_cluster_gap,
                                                   cutoff=cutoff,
                                                   n_proc=n_proc,
                                                   significant_cut=significant_cut,
                                                   adjust_f=adjust_f,
                                                   parallel=parallel,
                                                   verbose=verbose))
    info = options.info
    debug = options.debug

    (mod, mod0) = _unpack_models(models)
    (mod, mod0) = check_models(mod, mod0, coverage_prep.n_samples if coverage_prep.coverage_split else None)
    position = coverage_prep.position
    if len(fstats) != position.ntrue:
        raise ValueError("fstats covers %d positions but %d positions are retained" % (len(fstats), position.ntrue))

    if options.cutoff is None:
        options.cutoff = fstats.quantile(DEFAULT_QUANTILE)
        if np.isnan(options.cutoff):
            info("no defined statistic to set the cutoff from, no candidate regions")
            return PvaluesResult(NoRegions(), NullPool())
        info("cutoff set to the %g quantile of the statistics: %.4g" % (DEFAULT_QUANTILE, options.cutoff))

    # clusters are computed once and reused by every permutation
    info("identifying data segments")
    clusters = cluster_maker_rle(position, options.max_region_gap)
    debug("%d clusters" % len(clusters))

    regs = find_regions(fstats, clusters, options.cutoff, position=position, chrom=chrom,
                        mean_coverage=coverage_prep.mean_coverage,
                        group_means=coverage_prep.group_means,
                        max_cluster_gap=options.max_cluster_gap)
    if not regs:
        info("no candidate regions found")
        return PvaluesResult(regs, NullPool())

    if options.n_permute > 0:
        null_pool = permute_null_regions(coverage_prep.coverage_split, mod, mod0, clusters,
                                         options.cutoff, options.n_permute, seeds=options.seeds,
                                         adjust_f=options.adjust_f, n_proc=options.n_proc,
                                         parallel=options.parallel)
        info("%d null regions from %d permutations" % (len(null_pool), options.n_permute))
    else:
        null_pool = NullPool()

    table = add_significance(regs.regions, null_pool, options.significant_cut)
    return PvaluesResult(FoundRegions(table.sort_by("area", descending=True)), null_pool)
