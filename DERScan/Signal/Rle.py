# cython: language_level=3
# cython: profile=True

"""Module for the run-length encoded sequence class.

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
import cython
import numpy as np

# ------------------------------------
# constants
# ------------------------------------
__doc__ = "Rle class"

# functions usable by Rle.overlie, each takes a 2-D array with one row
# per track and reduces over the tracks
OVERLIE_FUNCS = {"max": np.max,
                 "min": np.min,
                 "mean": np.mean,
                 "sum": np.sum,
                 "any": np.any,
                 "all": np.all}

# ------------------------------------
# Misc functions
# ------------------------------------


def value_changes(v):
    """Return a boolean array, True where v[i+1] differs from v[i].

    NaN is treated as equal to NaN so runs of missing values collapse
    into one run.
    """
    a: object
    b: object
    changed: object

    if v.size < 2:
        return np.zeros(0, dtype=bool)
    a = v[1:]
    b = v[:-1]
    changed = a != b
    if v.dtype.kind in "fc":
        changed &= ~(np.isnan(a) & np.isnan(b))
    return changed


def rle_encode(x):
    """Encode a dense 1-D sequence into (values, lengths) arrays."""
    n: cython.long
    starts: object

    x = np.asarray(x)
    if x.ndim != 1:
        raise ValueError("Only 1-D sequences can be run-length encoded, got shape %s" % (x.shape,))
    n = x.size
    if n == 0:
        return (x[:0].copy(), np.zeros(0, dtype=np.int64))
    starts = np.concatenate(([0], np.flatnonzero(value_changes(x)) + 1))
    return (x[starts], np.diff(np.append(starts, n)).astype(np.int64))


def rle_normalize(values, lengths):
    """Drop empty runs and merge neighbouring runs of equal value."""
    keep: object
    group_starts: object

    values = np.asarray(values)
    lengths = np.asarray(lengths, dtype=np.int64)
    if values.ndim != 1 or values.shape != lengths.shape:
        raise ValueError("values and lengths must be 1-D arrays of the same size")
    if lengths.size and lengths.min() < 0:
        raise ValueError("run lengths must be non-negative")
    keep = lengths > 0
    values = values[keep]
    lengths = lengths[keep]
    if values.size == 0:
        return (values, lengths)
    group_starts = np.concatenate(([0], np.flatnonzero(value_changes(values)) + 1))
    return (values[group_starts], np.add.reduceat(lengths, group_starts))

# ------------------------------------
# Classes
# ------------------------------------


@cython.cclass
class Rle:
    """Run-length encoded sequence of position-indexed values.

    A sequence is kept as two parallel arrays: the value of each run
    and the run length. No two neighbouring runs carry the same value
    and the run lengths add up to the length of the sequence. The end
    position (exclusive) of every run is cached so a position can be
    located with a binary search instead of decoding the sequence.

    Coordinates are 0-based and right-open, the same as in bedGraph.

    Attributes:
        values (np.ndarray): value of each run.
        lengths (np.ndarray): int64 length of each run.
        ends (np.ndarray): int64 cumulative end of each run.
    """
    values = cython.declare(object, visibility="readonly")
    lengths = cython.declare(object, visibility="readonly")
    ends = cython.declare(object, visibility="readonly")

    def __init__(self, values=(), lengths=None):
        """With ``lengths`` omitted, ``values`` is a dense sequence to
        encode; otherwise the two arrays are taken as runs and
        normalized.
        """
        if lengths is None:
            (values, lengths) = rle_encode(values)
        else:
            (values, lengths) = rle_normalize(values, lengths)
        self.values = values
        self.lengths = lengths
        self.ends = np.cumsum(lengths)
        self.values.flags.writeable = False
        self.lengths.flags.writeable = False
        self.ends.flags.writeable = False

    def __reduce__(self):
        return (Rle, (np.asarray(self.values), np.asarray(self.lengths)))

    def __len__(self):
        if self.ends.size == 0:
            return 0
        return int(self.ends[-1])

    def __getitem__(self, i):
        n: cython.long
        k: cython.long

        n = len(self)
        i = int(i)
        if i < 0:
            i += n
        if i < 0 or i >= n:
            raise IndexError("Rle index out of range")
        k = np.searchsorted(self.ends, i, side="right")
        return self.values[k]

    def __eq__(self, other):
        if not isinstance(other, Rle):
            return NotImplemented
        return self.equals(other)

    def __ne__(self, other):
        if not isinstance(other, Rle):
            return NotImplemented
        return not self.equals(other)

    def __repr__(self):
        if self.nrun > 6:
            return "Rle(nrun=%d, length=%d, values=%s...)" % (self.nrun, len(self), list(self.values[:6]))
        return "Rle(values=%s, lengths=%s)" % (list(self.values), list(self.lengths))

    @property
    def nrun(self):
        return int(self.values.size)

    @property
    def dtype(self):
        return self.values.dtype

    @property
    def starts(self):
        """Start position of every run."""
        return self.ends - self.lengths

    def equals(self, other):
        if not np.array_equal(self.lengths, other.lengths):
            return False
        if self.values.dtype.kind in "fc" and other.values.dtype.kind in "fc":
            return bool(np.array_equal(self.values, other.values, equal_nan=True))
        return bool(np.array_equal(self.values, other.values))

    def runs(self):
        """Iterate over (value, length) pairs."""
        for i in range(self.values.size):
            yield (self.values[i], int(self.lengths[i]))

    def decode(self):
        """Materialize the whole sequence. Only sensible for short
        sequences or windows, see ``window``."""
        return np.repeat(self.values, self.lengths)

    @cython.ccall
    def slice(self, start: cython.long, end: cython.long):
        """Return positions [start, end) as a new Rle, touching only
        the runs overlapping the window."""
        n: cython.long
        first: cython.long
        last: cython.long

        n = len(self)
        if start < 0:
            start = 0
        if end > n:
            end = n
        if start >= end:
            return Rle(self.values[:0], self.lengths[:0])
        first = np.searchsorted(self.ends, start, side="right")
        last = np.searchsorted(self.ends, end - 1, side="right")
        lens = self.lengths[first:last + 1].copy()
        lens[0] -= start - (self.ends[first] - self.lengths[first])
        lens[-1] -= self.ends[last] - end
        return Rle(self.values[first:last + 1], lens)

    def window(self, start, end):
        """Decode positions [start, end) only."""
        return self.slice(start, end).decode()

    def map(self, func, *args):
        """Apply a vectorized ``func`` to the run values."""
        return Rle(np.asarray(func(self.values, *args)), self.lengths)

    def abs(self):
        return Rle(np.abs(self.values), self.lengths)

    @classmethod
    def concat(cls, rles):
        """Concatenate sequences end to end, merging equal runs at the
        joints."""
        rles = list(rles)
        if not rles:
            return cls()
        return cls(np.concatenate([r.values for r in rles]),
                   np.concatenate([r.lengths for r in rles]))

    @classmethod
    def overlie(cls, rles, func="max"):
        """Combine several sequences of the same length position by
        position.

        The result has a run boundary wherever any input has one. For
        each resulting run, the values of the inputs are stacked into
        a (tracks x runs) array and reduced by ``func``, which is
        either a callable taking that array or one of the names in
        OVERLIE_FUNCS.
        """
        breaks: object
        stacked: object

        rles = list(rles)
        if not rles:
            raise ValueError("Nothing to overlie")
        n = len(rles[0])
        for r in rles[1:]:
            if len(r) != n:
                raise ValueError("All sequences must have the same length to be overlied")
        if isinstance(func, str):
            try:
                f = OVERLIE_FUNCS[func]
            except KeyError:
                raise ValueError("Unknown overlie function: %s" % func)
            reduce_tracks = True
        else:
            f = func
            reduce_tracks = False
        if n == 0:
            return cls()
        breaks = np.unique(np.concatenate([r.ends for r in rles]))
        stacked = np.stack([r.values[np.searchsorted(r.ends, breaks, side="left")] for r in rles])
        if reduce_tracks:
            values = f(stacked, axis=0)
        else:
            values = f(stacked)
        return cls(np.asarray(values), np.diff(breaks, prepend=0))

    @cython.ccall
    def subset(self, mask):
        """Keep only the positions where the boolean ``mask`` is True.

        The returned Rle lives in the index space of retained
        positions.
        """
        breaks: object
        keep: object

        if len(mask) != len(self):
            raise ValueError("mask length %d differs from sequence length %d" % (len(mask), len(self)))
        if len(self) == 0:
            return Rle(self.values[:0], self.lengths[:0])
        breaks = np.unique(np.concatenate((self.ends, mask.ends)))
        keep = np.asarray(mask.values, dtype=bool)[np.searchsorted(mask.ends, breaks, side="left")]
        return Rle(self.values[np.searchsorted(self.ends, breaks, side="left")][keep],
                   np.diff(breaks, prepend=0)[keep])

    @property
    def ntrue(self):
        """Number of positions holding a true value."""
        return int(self.lengths[np.asarray(self.values, dtype=bool)].sum())

    def locate_true(self, indices):
        """Map the k-th true position (k in ``indices``) to its
        coordinate in this sequence.

        Only runs are visited, so a chromosome-long mask costs
        O(number of runs).
        """
        is_true: object
        tstarts: object
        tlens: object
        tcum: object
        k: object

        indices = np.asarray(indices, dtype=np.int64)
        is_true = np.asarray(self.values, dtype=bool)
        tstarts = self.starts[is_true]
        tlens = self.lengths[is_true]
        tcum = np.cumsum(tlens)
        total = int(tcum[-1]) if tcum.size else 0
        if indices.size and (indices.min() < 0 or indices.max() >= total):
            raise IndexError("index of retained position out of range (0..%d)" % total)
        k = np.searchsorted(tcum, indices, side="right")
        return tstarts[k] + indices - (tcum[k] - tlens[k])

    def _prefix_sums(self, positions, absolute):
        # sum of values over [0, position) for every position; NaN counts as 0
        v = np.asarray(self.values, dtype=float)
        if absolute:
            v = np.abs(v)
        v = np.where(np.isnan(v), 0.0, v)
        csum = np.concatenate(([0.0], np.cumsum(v * self.lengths)))
        k = np.searchsorted(self.ends, positions, side="right")
        out = csum[k]
        inside = k < v.size
        kk = k[inside]
        out[inside] += v[kk] * (positions[inside] - (self.ends[kk] - self.lengths[kk]))
        return out

    def view_sums(self, starts, ends, absolute=False):
        """Sum of values over each interval [starts[i], ends[i]).

        With ``absolute`` the magnitudes are summed, which is the
        region area when the sequence holds statistics.
        """
        starts = np.asarray(starts, dtype=np.int64)
        ends = np.asarray(ends, dtype=np.int64)
        if starts.shape != ends.shape:
            raise ValueError("starts and ends must have the same shape")
        if starts.size == 0:
            return np.zeros(0, dtype=float)
        if starts.min() < 0 or ends.max() > len(self) or np.any(ends < starts):
            raise IndexError("views must lie within [0, %d)" % len(self))
        return self._prefix_sums(ends, absolute) - self._prefix_sums(starts, absolute)

    def view_means(self, starts, ends):
        """Mean value over each interval [starts[i], ends[i])."""
        starts = np.asarray(starts, dtype=np.int64)
        ends = np.asarray(ends, dtype=np.int64)
        with np.errstate(divide="ignore", invalid="ignore"):
            return self.view_sums(starts, ends) / (ends - starts)

    def quantile(self, q):
        """Quantile of the decoded values, NaN excluded.

        Interpolates between order statistics the same way as
        ``numpy.quantile`` with its default method, but weighting each
        run by its length instead of decoding it.
        """
        order: object
        cum: object

        v = np.asarray(self.values, dtype=float)
        ok = ~np.isnan(v)
        v = v[ok]
        lens = self.lengths[ok]
        if v.size == 0:
            return float("nan")
        if not 0 <= q <= 1:
            raise ValueError("quantile must be within [0, 1]")
        order = np.argsort(v, kind="stable")
        v = v[order]
        cum = np.cumsum(lens[order])
        h = (cum[-1] - 1) * q
        lo = int(np.floor(h))
        hi = int(np.ceil(h))
        v_lo = v[np.searchsorted(cum, lo, side="right")]
        v_hi = v[np.searchsorted(cum, hi, side="right")]
        return float(v_lo + (h - lo) * (v_hi - v_lo))
