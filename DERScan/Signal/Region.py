"""Module Description: Find candidate regions from a statistic track.

A candidate region is a maximal run of positions, inside one cluster,
where the statistic is above the high cutoff ("up") or below the low
cutoff ("down"). Regions never cross a cluster boundary.

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

# ------------------------------------
# python modules
# ------------------------------------
import logging

# ------------------------------------
# own python modules
# ------------------------------------
import DERScan.Utilities.Logger
from DERScan.Utilities.Constants import MAX_CLUSTER_GAP
from DERScan.IO.RegionIO import RegionTable

# ------------------------------------
# Other modules
# ------------------------------------
import numpy as np

logger = logging.getLogger(__name__)
debug   = logger.debug
info    = logger.info

# ------------------------------------
# Misc functions
# ------------------------------------

def normalize_cutoff(cutoff):
    """Return (low, high) thresholds.

    A single value c means |stat| > c, that is (-c, c). Two values are
    taken as (low, high).
    """
    if np.ndim(cutoff) == 0:
        c = float(cutoff)
        if np.isnan(c) or c < 0:
            raise ValueError("a single cutoff must be a non-negative number, got %s" % cutoff)
        return (-c, c)
    if len(cutoff) != 2:
        raise ValueError("cutoff must be one value or a (low, high) pair")
    (low, high) = (float(cutoff[0]), float(cutoff[1]))
    if np.isnan(low) or np.isnan(high) or low > high:
        raise ValueError("cutoff pair must satisfy low <= high, got %s" % (cutoff,))
    return (low, high)

def _merge_flagged_runs(flags, starts, ends):
    # neighbouring flagged runs are glued into one segment
    idx = np.flatnonzero(flags)
    if idx.size == 0:
        return (np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64))
    breaks = np.flatnonzero(np.diff(idx) != 1) + 1
    first = idx[np.concatenate(([0], breaks))]
    last = idx[np.concatenate((breaks - 1, [idx.size - 1]))]
    return (starts[first], ends[last])

def get_segments(stat, cutoff):
    """Segments of ``stat`` beyond the cutoff, worked out on runs.

    Ret: {"up": (starts, ends), "down": (starts, ends)} with index
    ranges [start, end). NaN never qualifies.
    """
    (low, high) = normalize_cutoff(cutoff)
    v = np.asarray(stat.values, dtype=float)
    starts = stat.starts
    with np.errstate(invalid="ignore"):
        up = v > high
        down = v < low
    return {"up": _merge_flagged_runs(up, starts, stat.ends),
            "down": _merge_flagged_runs(down, starts, stat.ends)}

def split_at_clusters(seg_starts, seg_ends, clusters):
    """Cut segments where they cross cluster boundaries.

    Ret: (starts, ends, cluster ids) of the pieces, in segment order.
    """
    cs = clusters.starts
    ca = np.searchsorted(cs, seg_starts, side="right") - 1
    cb = np.searchsorted(cs, seg_ends - 1, side="right") - 1
    npieces = cb - ca + 1
    owner = np.repeat(np.arange(seg_starts.size), npieces)
    offset = np.arange(owner.size) - np.repeat(np.cumsum(npieces) - npieces, npieces)
    cid = ca[owner] + offset
    return (np.maximum(seg_starts[owner], cs[cid]),
            np.minimum(seg_ends[owner], clusters.ends[cid]),
            cid)

def region_clusters(starts, ends, max_cluster_gap):
    """Group regions sorted by position whose genomic gap is at most
    ``max_cluster_gap``.

    Ret: (cluster id per region, genomic span of its cluster)
    """
    if starts.size == 0:
        return (np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64))
    new = np.concatenate(([True], starts[1:] - ends[:-1] > max_cluster_gap))
    ids = np.cumsum(new) - 1
    first = np.flatnonzero(new)
    last = np.concatenate((first[1:] - 1, [starts.size - 1]))
    span = ends[last] - starts[first]
    return (ids, span[ids])

# ------------------------------------
# Classes
# ------------------------------------

class RegionResult:
    """Outcome of a region search: FoundRegions or NoRegions.

    Both variants are safe to use directly; NoRegions is falsy and has
    length 0, so "nothing found" needs no special error handling.
    """
    found = False
    regions = None

    def __bool__(self):
        return self.found

    def __len__(self):
        return 0 if self.regions is None else len(self.regions)

class NoRegions(RegionResult):
    """No position passed the cutoff."""
    def __repr__(self):
        return "NoRegions()"

class FoundRegions(RegionResult):
    """At least one region, held in a RegionTable."""
    found = True

    def __init__(self, regions):
        self.regions = regions

    def __repr__(self):
        return "FoundRegions(%d regions)" % len(self.regions)

# ------------------------------------
# Main function
# ------------------------------------

def find_regions(stat, clusters, cutoff, position=None, chrom=None, basic=False,
                 mean_coverage=None, group_means=None, max_cluster_gap=MAX_CLUSTER_GAP):
    """Find candidate regions of ``stat`` within ``clusters``.

    stat: Rle of statistics over position space.
    clusters: Clusters computed from the position mask; must cover
        exactly len(stat) positions.
    cutoff: one value or a (low, high) pair, see normalize_cutoff.
    position: boolean Rle over the genome; maps regions to genomic
        coordinates. Without it position space is taken as the genome.
    basic: only compute value, width and area. Used for every
        permutation, where nothing else is needed.
    mean_coverage, group_means: Rle (and dict of Rle) over position
        space used to annotate regions with mean coverage, per-group
        mean coverage and log2 fold changes against the first group.
    max_cluster_gap: regions whose genomic gap is at most this far
        share a region cluster.

    Ret: FoundRegions or NoRegions.
    """
    if len(stat) != clusters.total:
        raise ValueError("statistic covers %d positions but clusters cover %d" % (len(stat), clusters.total))

    segments = get_segments(stat, cutoff)
    pieces = []
    for (direction, name) in ((1, "up"), (-1, "down")):
        (seg_starts, seg_ends) = segments[name]
        if seg_starts.size == 0:
            continue
        (s, e, cid) = split_at_clusters(seg_starts, seg_ends, clusters)
        pieces.append((s, e, cid, np.full(s.size, direction, dtype=np.int64)))
    if not pieces:
        debug("no position passed the cutoff")
        return NoRegions()

    index_start = np.concatenate([p[0] for p in pieces])
    order = np.argsort(index_start, kind="stable")
    index_start = index_start[order]
    index_end = np.concatenate([p[1] for p in pieces])[order]
    cluster = np.concatenate([p[2] for p in pieces])[order]
    direction = np.concatenate([p[3] for p in pieces])[order]

    width = index_end - index_start
    value = stat.view_sums(index_start, index_end) / width
    area = stat.view_sums(index_start, index_end, absolute=True)

    if basic:
        return FoundRegions(RegionTable({"value": value, "width": width, "area": area}))

    table = RegionTable()
    if chrom is not None:
        table["chrom"] = np.array([chrom] * width.size, dtype=object)
    if position is not None:
        table["start"] = position.locate_true(index_start)
        table["end"] = position.locate_true(index_end - 1) + 1
    else:
        table["start"] = index_start
        table["end"] = index_end
    table["width"] = width
    table["value"] = value
    table["area"] = area
    table["direction"] = direction
    table["cluster"] = cluster
    table["index_start"] = index_start
    table["index_end"] = index_end
    (table["region_cluster"], table["region_cluster_length"]) = region_clusters(table["start"], table["end"], max_cluster_gap)

    if mean_coverage is not None:
        table["mean_coverage"] = mean_coverage.view_means(index_start, index_end)
    if group_means:
        names = list(group_means.keys())
        means = dict([(g, group_means[g].view_means(index_start, index_end)) for g in names])
        for g in names:
            table["mean%s" % g] = means[g]
        with np.errstate(divide="ignore", invalid="ignore"):
            for g in names[1:]:
                table["log2FoldChange%svs%s" % (g, names[0])] = np.log2(means[g] / means[names[0]])

    info("%d regions found" % width.size)
    return FoundRegions(table)
