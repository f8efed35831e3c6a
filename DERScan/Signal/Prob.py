"""Module Description: p-values and q-values for candidate regions.

Region p-values are empirical: the area of an observed region is
compared with the areas of regions found under permuted sample labels.
q-values follow Storey's method, with pi0 estimated from the p-value
distribution.

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

# ------------------------------------
# python modules
# ------------------------------------
import logging
from functools import lru_cache

# ------------------------------------
# own python modules
# ------------------------------------
import DERScan.Utilities.Logger
from DERScan.Utilities.Constants import PI0_LAMBDAS, SMOOTH_DF

# ------------------------------------
# Other modules
# ------------------------------------
import numpy as np
from scipy import stats
from scipy.interpolate import make_smoothing_spline

logger = logging.getLogger(__name__)
debug   = logger.debug
info    = logger.info
warn    = logger.warning

# ------------------------------------
# Misc functions
# ------------------------------------

def empirical_pvalues(areas, null_areas):
    """p = (#{null areas > area} + 1) / (N + 1) for every area.

    The comparison is strict, so an area equal to the largest null
    area gets 1/(N+1).
    """
    areas = np.asarray(areas, dtype=float)
    null_areas = np.sort(np.asarray(null_areas, dtype=float))
    n = null_areas.size
    greater = n - np.searchsorted(null_areas, areas, side="right")
    return (greater + 1.0) / (n + 1.0)

def f_cutoff(prob, n, df1, df0):
    """Quantile of the F distribution for n samples, df1 columns in the
    alternative model and df0 in the null model."""
    return float(stats.f.ppf(prob, df1 - df0, n - df1))

def _smoother_trace(x, lam):
    # effective degrees of freedom of the smoothing spline
    eye = np.eye(x.size)
    return sum([make_smoothing_spline(x, eye[i], lam=lam)(x[i]) for i in range(x.size)])

@lru_cache(maxsize=16)
def _penalty_for_df(x, df):
    # the trace only depends on x, so the penalty is reused across fits
    x = np.asarray(x)
    (lo, hi) = (-12.0, 6.0)
    for i in range(40):
        mid = (lo + hi) / 2
        if _smoother_trace(x, 10 ** mid) > df:
            lo = mid
        else:
            hi = mid
    return 10 ** hi

def smooth_spline(x, y, df=SMOOTH_DF):
    """Cubic smoothing spline fit of y on x with about ``df`` effective
    degrees of freedom. The penalty is found by bisection on log10(lam).
    """
    return make_smoothing_spline(x, y, lam=_penalty_for_df(tuple(x), df))

def estimate_pi0(pvalues, lambdas=PI0_LAMBDAS, pi0_method="smoother", smooth_df=SMOOTH_DF):
    """Estimate the proportion of true null hypotheses.

    Ret: pi0, capped at 1; may be <= 0 or NaN for degenerate inputs,
    which the caller has to check.
    """
    p = np.asarray(pvalues, dtype=float)
    lambdas = np.asarray(lambdas, dtype=float)
    m = p.size
    if lambdas.size == 1:
        l = lambdas[0]
        return min(float(np.mean(p >= l) / (1 - l)), 1.0)
    if lambdas.size < 4:
        raise ValueError("at least 4 lambda values are needed to estimate pi0")
    if lambdas.min() < 0 or lambdas.max() >= 1:
        raise ValueError("lambda values must be within [0, 1)")
    lambdas = np.sort(lambdas)
    pi0s = np.array([np.mean(p >= l) / (1 - l) for l in lambdas])
    if pi0_method == "smoother":
        spline = smooth_spline(lambdas, pi0s, smooth_df)
        pi0 = float(spline(lambdas[-1]))
    elif pi0_method == "bootstrap":
        minpi0 = np.quantile(pi0s, 0.1)
        w = np.array([np.sum(p >= l) for l in lambdas])
        mse = (w / (m ** 2 * (1 - lambdas) ** 2)) * (1 - w / m) + (pi0s - minpi0) ** 2
        pi0 = float(pi0s[np.argmin(mse)])
    else:
        raise ValueError("unknown pi0 method: %s" % pi0_method)
    return min(pi0, 1.0)

def qvalue(pvalues, lambdas=PI0_LAMBDAS, pi0_method="smoother", smooth_df=SMOOTH_DF):
    """Storey q-values.

    Ret: array of q-values, or None when the pi0 estimate is degenerate
    (not positive, not finite or the smoother failed).
    """
    p = np.asarray(pvalues, dtype=float)
    if p.size == 0:
        return np.zeros(0)
    if not np.all(np.isfinite(p)) or p.min() < 0 or p.max() > 1:
        raise ValueError("p-values must lie within [0, 1]")
    try:
        pi0 = estimate_pi0(p, lambdas, pi0_method, smooth_df)
    except (np.linalg.LinAlgError, FloatingPointError) as e:
        warn("pi0 estimation failed: %s" % e)
        return None
    if not np.isfinite(pi0) or pi0 <= 0:
        warn("The estimated pi0 (%s) <= 0, q-values are left undefined" % pi0)
        return None
    debug("pi0 estimated as %.4f" % pi0)

    m = p.size
    order = np.argsort(p, kind="stable")
    # rank with ties taking the largest rank
    ranks = np.searchsorted(p[order], p, side="right")
    q = pi0 * m * p / ranks
    qs = np.minimum.accumulate(q[order][::-1])[::-1]
    q = np.empty(m)
    q[order] = np.minimum(qs, 1.0)
    return q

def _flags(values, cut):
    flags = np.empty(values.size, dtype=object)
    flags[:] = [bool(v < cut) for v in values]
    return flags

def add_significance(table, null_pool, significant_cut):
    """Add pvalue, significant, qvalue and significant_q columns.

    With an empty null pool all four are undefined. A degenerate pi0
    leaves the two q columns undefined while p-values are kept.
    """
    m = len(table)
    undefined = np.empty(m, dtype=object)
    undefined[:] = None
    if len(null_pool) == 0:
        info("no null regions found. Skipping p-value calculation.")
        table["pvalue"] = np.full(m, np.nan)
        table["significant"] = undefined
        table["qvalue"] = np.full(m, np.nan)
        table["significant_q"] = undefined.copy()
        return table

    info("calculating the p-values")
    pvalues = empirical_pvalues(table["area"], null_pool.areas)
    table["pvalue"] = pvalues
    table["significant"] = _flags(pvalues, significant_cut[0])
    qvalues = qvalue(pvalues)
    if qvalues is None:
        table["qvalue"] = np.full(m, np.nan)
        table["significant_q"] = undefined.copy()
    else:
        table["qvalue"] = qvalues
        table["significant_q"] = _flags(qvalues, significant_cut[1])
    return table
