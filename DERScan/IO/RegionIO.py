"""Module for the region table handed to reporting.

This code is free software; you can redistribute it and/or modify it
under the terms of the BSD License (see the file LICENSE included with
the distribution).
"""

# ------------------------------------
# python modules
# ------------------------------------

# ------------------------------------
# Other modules
# ------------------------------------
import numpy as np

# ------------------------------------
# constants
# ------------------------------------
# columns written first by write_to_xls, when present
XLS_COLUMNS = ("chrom", "start", "end", "width", "value", "area",
               "cluster", "index_start", "index_end", "direction",
               "region_cluster", "region_cluster_length", "mean_coverage")

# ------------------------------------
# Misc functions
# ------------------------------------

def _format_cell(x):
    if x is None:
        return "NA"
    if isinstance(x, bytes):
        return x.decode()
    if isinstance(x, (bool, np.bool_)):
        return "TRUE" if x else "FALSE"
    if isinstance(x, (float, np.floating)):
        if np.isnan(x):
            return "NA"
        return "%.6g" % x
    return str(x)

# ------------------------------------
# Classes
# ------------------------------------

class RegionTable:
    """Flat, ordered table of regions.

    Columns are numpy arrays of equal length, kept in insertion order.
    Numeric columns use NaN for undefined values; flag columns are
    object arrays holding True, False or None.
    """
    def __init__(self, columns=None):
        self.columns = {}
        if columns:
            for (name, col) in columns.items():
                self[name] = col

    def __len__(self):
        for col in self.columns.values():
            return len(col)
        return 0

    def __contains__(self, name):
        return name in self.columns

    def __getitem__(self, key):
        if isinstance(key, str):
            return self.columns[key]
        return dict([(name, col[key]) for (name, col) in self.columns.items()])

    def __setitem__(self, name, col):
        col = np.asarray(col)
        if col.ndim != 1:
            raise ValueError("column %s must be 1-D" % name)
        if self.columns and name not in self.columns and len(col) != len(self):
            raise ValueError("column %s has %d rows, table has %d" % (name, len(col), len(self)))
        self.columns[name] = col

    def __str__(self):
        return "".join(["%s\t%d\t%d\n" % (_format_cell(c), s, e) for (c, s, e) in self._bed_fields()])

    @property
    def names(self):
        return list(self.columns.keys())

    def rows(self):
        """Iterate over rows as dictionaries."""
        for i in range(len(self)):
            yield self[i]

    def take(self, order):
        """Return a new table with rows picked by ``order``."""
        order = np.asarray(order, dtype=np.int64)
        return RegionTable(dict([(name, col[order]) for (name, col) in self.columns.items()]))

    def sort_by(self, name, descending=True):
        """Stable sort on one numeric column."""
        key = np.asarray(self.columns[name], dtype=float)
        if descending:
            key = -key
        return self.take(np.argsort(key, kind="stable"))

    def _bed_fields(self):
        if "start" in self.columns:
            starts = self.columns["start"]
            ends = self.columns["end"]
        else:
            starts = self.columns["index_start"]
            ends = self.columns["index_end"]
        if "chrom" in self.columns:
            chroms = self.columns["chrom"]
        else:
            chroms = ["."] * len(self)
        return zip(chroms, starts, ends)

    def write_to_bed(self, fhd, name_prefix="region_", score_column="area"):
        """Write regions in BED format, one line per row, in table
        order. The score column holds ``score_column``.
        """
        write = fhd.write
        scores = self.columns[score_column]
        for (i, (chrom, start, end)) in enumerate(self._bed_fields()):
            write("%s\t%d\t%d\t%s%d\t%s\n" % (_format_cell(chrom), start, end,
                                              name_prefix, i + 1, _format_cell(scores[i])))
        return

    def write_to_xls(self, fhd):
        """Save all columns in a tab-delimited plain text file with a
        header line. Undefined values are written as NA.
        """
        write = fhd.write
        names = [c for c in XLS_COLUMNS if c in self.columns]
        names += [c for c in self.columns if c not in names]
        write("\t".join(names) + "\n")
        cols = [self.columns[c] for c in names]
        for i in range(len(self)):
            write("\t".join([_format_cell(col[i]) for col in cols]) + "\n")
        return
