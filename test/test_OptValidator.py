#!/usr/bin/env python

import logging
from types import SimpleNamespace

import pytest

from DERScan.Utilities.Constants import MAX_CLUSTER_GAP, SIGNIFICANT_CUT
from DERScan.Utilities.OptValidator import opt_validate_pvalues

def test_defaults():
    options = opt_validate_pvalues(SimpleNamespace(n_permute=2))
    assert options.seeds == [None, None]
    assert options.max_cluster_gap == MAX_CLUSTER_GAP
    assert options.significant_cut == SIGNIFICANT_CUT
    assert options.parallel == "chunks"
    assert options.adjust_f == 0.0
    assert callable(options.info)
    assert logging.getLogger("DERScan").level == logging.INFO

def test_verbose_sets_level():
    opt_validate_pvalues(SimpleNamespace(verbose=3))
    assert logging.getLogger("DERScan").level == logging.DEBUG
    opt_validate_pvalues(SimpleNamespace(verbose=2))
    assert logging.getLogger("DERScan").level == logging.INFO

@pytest.mark.parametrize("bad", [{"n_permute": -1},
                                 {"n_permute": 1.5},
                                 {"n_permute": 2, "seeds": [1]},
                                 {"max_region_gap": -3},
                                 {"significant_cut": (0.05,)},
                                 {"significant_cut": (0.05, 1.5)},
                                 {"adjust_f": -0.1},
                                 {"n_proc": 0},
                                 {"parallel": "samples"},
                                 {"verbose": 9}])
def test_invalid_options(bad):
    with pytest.raises(ValueError):
        opt_validate_pvalues(SimpleNamespace(**bad))
