"""Module Description: Per-base F statistics from nested linear models.

Every retained base is one regression: the log2 coverage of all
samples is fitted by the alternative design ``mod`` and by the nested
null design ``mod0``, and the two residual sums of squares are turned
into an F statistic. Since the design matrices are shared by all bases,
each chunk is handled with a single QR projection instead of one fit
per base.

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

# ------------------------------------
# python modules
# ------------------------------------
import logging
from functools import partial
import multiprocessing as mp

# ------------------------------------
# own python modules
# ------------------------------------
import DERScan.Utilities.Logger
from DERScan.Signal.Rle import Rle

# ------------------------------------
# Other modules
# ------------------------------------
import numpy as np

logger = logging.getLogger(__name__)
debug   = logger.debug
info    = logger.info
error   = logger.critical
warn    = logger.warning

# ------------------------------------
# constants
# ------------------------------------
# residual sums of squares below RSS_TOL * (sum of y^2) are rounding noise
RSS_TOL = 64 * np.finfo(float).eps

# ------------------------------------
# Misc functions
# ------------------------------------

def check_models(mod, mod0, n_samples=None):
    """Check the design matrices before any processing.

    Ret: (mod, mod0) as float arrays.
    """
    mod = np.asarray(mod, dtype=float)
    mod0 = np.asarray(mod0, dtype=float)
    if mod.ndim != 2 or mod0.ndim != 2:
        raise ValueError("mod and mod0 must be 2-D design matrices (samples x covariates)")
    if mod.shape[0] != mod0.shape[0]:
        raise ValueError("mod has %d rows but mod0 has %d" % (mod.shape[0], mod0.shape[0]))
    if n_samples is not None and mod.shape[0] != n_samples:
        raise ValueError("design matrices have %d rows but there are %d samples" % (mod.shape[0], n_samples))
    (n, p) = mod.shape
    p0 = mod0.shape[1]
    if p0 >= p:
        raise ValueError("mod0 (%d columns) must be nested in mod (%d columns)" % (p0, p))
    if p >= n:
        raise ValueError("mod has %d columns, which needs more than %d samples" % (p, n))
    return (mod, mod0)

def chunk_ncol(chunk):
    """Number of samples in a coverage chunk or a 2-D array."""
    if hasattr(chunk, "to_matrix"):
        return chunk.shape[1]
    return np.shape(chunk)[1]

def residual_ss(y, x):
    """Residual sum of squares of every row of y regressed on x.

    Returns None if x is rank deficient.
    """
    if x.shape[1] == 0:
        return np.einsum("ij,ij->i", y, y)
    if np.linalg.matrix_rank(x) < x.shape[1]:
        return None
    (q, r) = np.linalg.qr(x)
    resid = y - (y @ q) @ q.T
    return np.einsum("ij,ij->i", resid, resid)

def fstats_apply(data, mod, mod0, adjust_f=0.0):
    """Compute F statistics for every row of a coverage chunk.

    data: a CoverageChunk (decoded here) or a 2-D array of log2
    coverage, rows are bases and columns are samples.

    F = ((RSS0 - RSS1) / (p - p0)) / ((RSS1 + adjust_f) / (n - p))

    Rows with non-finite coverage or a rank deficient design get NaN.
    With a zero denominator F is NaN, except when the numerator is
    also zero: then both models fit perfectly and F is 0.
    """
    if hasattr(data, "to_matrix"):
        y = data.to_matrix()
    else:
        y = np.asarray(data, dtype=float)
    if y.ndim != 2:
        raise ValueError("coverage chunk must be 2-D (bases x samples)")
    (n, p) = mod.shape
    if y.shape[1] != n:
        raise ValueError("coverage chunk has %d samples but design matrices have %d rows" % (y.shape[1], n))
    p0 = mod0.shape[1]

    fstats = np.full(y.shape[0], np.nan)
    rss1 = residual_ss(y, mod)
    rss0 = residual_ss(y, mod0)
    if rss1 is None or rss0 is None:
        return fstats

    with np.errstate(invalid="ignore"):
        tol = RSS_TOL * np.einsum("ij,ij->i", y, y)
        rss1 = np.where(rss1 <= tol, 0.0, rss1)
        rss0 = np.where(rss0 <= tol, 0.0, rss0)
        diff = rss0 - rss1
        num = np.where(diff <= tol, 0.0, diff) / (p - p0)
        den = (rss1 + adjust_f) / (n - p)
        ok = den > 0
        fstats[ok] = num[ok] / den[ok]
        fstats[(den == 0) & (num == 0)] = 0.0
    return fstats

def calculate_stats(coverage_split, mod, mod0, adjust_f=0.0, n_proc=1, pool=None):
    """Compute the F statistic at every retained base.

    coverage_split: chunks of coverage in position order.
    pool: a multiprocessing pool to reuse; otherwise one with n_proc
    workers is created when n_proc > 1.

    Ret: Rle of F statistics, in the input row order.
    """
    coverage_split = list(coverage_split)
    if adjust_f < 0:
        raise ValueError("adjust_f must be >= 0, got %s" % adjust_f)
    n_samples = chunk_ncol(coverage_split[0]) if coverage_split else None
    (mod, mod0) = check_models(mod, mod0, n_samples)
    for chunk in coverage_split:
        if chunk_ncol(chunk) != mod.shape[0]:
            raise ValueError("coverage chunk has %d samples but design matrices have %d rows" % (chunk_ncol(chunk), mod.shape[0]))

    p_fstats_apply = partial(fstats_apply, mod=mod, mod0=mod0, adjust_f=adjust_f)
    if pool is not None:
        results = pool.map(p_fstats_apply, coverage_split)
    elif n_proc > 1 and len(coverage_split) > 1:
        P = mp.Pool(n_proc)
        mapresults = P.map_async(p_fstats_apply, coverage_split)
        P.close()
        P.join()
        results = mapresults.get()
    else:
        results = [p_fstats_apply(chunk) for chunk in coverage_split]

    n_undefined = sum([int(np.isnan(r).sum()) for r in results])
    if n_undefined:
        warn("F statistic undefined at %d bases" % n_undefined)
    return Rle.concat([Rle(r) for r in results])
