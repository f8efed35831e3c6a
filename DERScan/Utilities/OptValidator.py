"""Module Description: Validate options before any computation.

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

# ------------------------------------
# python modules
# ------------------------------------
import logging

# ------------------------------------
# DERScan modules
# ------------------------------------
from DERScan.Utilities.Logger import set_verbosity
from DERScan.Utilities.Constants import MAX_REGION_GAP, MAX_CLUSTER_GAP, SIGNIFICANT_CUT
from DERScan.Signal.Permutation import check_seeds, PARALLEL_MODES

# ------------------------------------
# constants
# ------------------------------------
logger = logging.getLogger(__name__)

# ------------------------------------
# Misc functions
# ------------------------------------

def _fail(msg):
    logger.error(msg)
    raise ValueError(msg)

def _non_negative_int(options, name):
    v = getattr(options, name)
    if int(v) != v or v < 0:
        _fail("%s must be a non-negative integer, got %s" % (name, v))
    setattr(options, name, int(v))

def opt_validate_pvalues(options):
    """Validate options for calculate_pvalues.

    Missing options get their defaults. The DERScan logger level is set
    from options.verbose, and options.info/warn/debug/error are set to
    the logging functions.

    Ret: Validated options object.
    """
    for (name, default) in (("n_permute", 1),
                            ("seeds", None),
                            ("max_region_gap", MAX_REGION_GAP),
                            ("max_cluster_gap", MAX_CLUSTER_GAP),
                            ("cutoff", None),
                            ("n_proc", 1),
                            ("significant_cut", SIGNIFICANT_CUT),
                            ("adjust_f", 0.0),
                            ("parallel", "chunks"),
                            ("verbose", 2)):
        if not hasattr(options, name):
            setattr(options, name, default)

    # logging object
    if options.verbose not in (0, 1, 2, 3):
        _fail("verbose must be 0, 1, 2 or 3, got %s" % options.verbose)
    set_verbosity(options.verbose)

    options.error   = logger.critical        # function alias
    options.warn    = logger.warning
    options.debug   = logger.debug
    options.info    = logger.info

    _non_negative_int(options, "n_permute")
    try:
        options.seeds = check_seeds(options.n_permute, options.seeds)
    except ValueError as e:
        _fail(str(e))

    _non_negative_int(options, "max_region_gap")
    _non_negative_int(options, "max_cluster_gap")

    if len(options.significant_cut) != 2:
        _fail("significant_cut must hold two values: p-value and q-value cutoffs")
    if not all([0 <= c <= 1 for c in options.significant_cut]):
        _fail("significant_cut values must lie within [0, 1], got %s" % (options.significant_cut,))
    options.significant_cut = tuple([float(c) for c in options.significant_cut])

    if options.adjust_f < 0:
        _fail("adjust_f must be >= 0, got %s" % options.adjust_f)
    options.adjust_f = float(options.adjust_f)

    if int(options.n_proc) != options.n_proc or options.n_proc < 1:
        _fail("n_proc must be a positive integer, got %s" % options.n_proc)
    options.n_proc = int(options.n_proc)

    if options.parallel not in PARALLEL_MODES:
        _fail("parallel must be one of %s, got %s" % (", ".join(PARALLEL_MODES), options.parallel))

    return options
