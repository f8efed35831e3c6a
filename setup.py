#!/usr/bin/env python3
"""Description:

Setup script for DERScan -- differential expression regions from
base-level coverage

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

import sys
from setuptools import setup, Extension
from Cython.Build import cythonize
import numpy

# get DERScan version
exec(open("DERScan/Utilities/Constants.py").read())


def main():
    if sys.version_info < (3, 9):
        sys.stderr.write("CRITICAL: Python version must >= 3.9!\n")
        sys.exit(1)

    # NumPy include dir
    numpy_include_dir = [numpy.get_include()]

    # CFLAG
    extra_c_args = ["-w", "-O3", "-g0"]

    # extensions, those have to be processed by Cython. The modules
    # are written in pure Python mode, so they still import when the
    # build is skipped.
    ext_modules = [Extension("DERScan.Signal.Rle",
                             ["DERScan/Signal/Rle.py"],
                             include_dirs=numpy_include_dir,
                             extra_compile_args=extra_c_args,
                             optional=True),
                   Extension("DERScan.Signal.Cluster",
                             ["DERScan/Signal/Cluster.py"],
                             include_dirs=numpy_include_dir,
                             extra_compile_args=extra_c_args,
                             optional=True)]

    setup(version=DERSCAN_VERSION,
          package_dir={'DERScan': 'DERScan'},
          packages=['DERScan', 'DERScan.IO', 'DERScan.Signal', 'DERScan.Utilities'],
          ext_modules=cythonize(ext_modules))


if __name__ == '__main__':
    main()
