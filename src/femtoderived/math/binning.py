"""Numba JIT compiled kernels used to assign event-mixing hash bins.

Each configured dimension is discretized as `floor((value - origin) / width)`.
The per-dimension bin indexes are then folded into a single integer with a
zig-zag encoding (signed to unsigned) and Szudzik's pairing function, which
is a bijection between pairs of non-negative integers and non-negative
integers. Two collisions therefore share a hash bin if and only if they share
the bin of every dimension.

The folded code must fit in a signed 64-bit integer. Pairing is only applied
to codes up to `MAX_PAIRED`, whose pairs are at most `(MAX_PAIRED + 1)**2 - 1`,
and each dimension index is limited to `MAX_INDEX` in absolute value. A
collision which exceeds either bound is assigned the invalid bin.
"""

import numba as nb
import numpy as np

from femtoderived.utils.globals import INVALID_BIN

__all__ = ["zigzag", "pair", "assign_bins"]

# Largest code which can be paired without overflowing a signed 64-bit integer
MAX_PAIRED = 3037000498

# Largest absolute bin index of a single dimension
MAX_INDEX = MAX_PAIRED // 2


@nb.njit(cache=True)
def zigzag(k: nb.int64) -> nb.int64:
    """Maps a signed integer onto a non-negative one (0, -1, 1, -2 ...).

    Parameters
    ----------
    k : int
        Signed integer

    Returns
    -------
    int
        Non-negative integer
    """
    if k >= 0:
        return 2 * k

    return -2 * k - 1


@nb.njit(cache=True)
def pair(a: nb.int64, b: nb.int64) -> nb.int64:
    """Szudzik's pairing of two non-negative integers.

    Parameters
    ----------
    a : int
        First non-negative integer
    b : int
        Second non-negative integer

    Returns
    -------
    int
        Unique non-negative integer associated with the pair
    """
    if a >= b:
        return a * a + a + b

    return a + b * b


@nb.njit(cache=True)
def assign_bins(
    values: nb.float64[:, :],
    widths: nb.float64[:],
    origins: nb.float64[:],
    lows: nb.float64[:],
    highs: nb.float64[:],
) -> nb.int64[:]:
    """Assigns a hash bin to each row of a set of collision scalars.

    Values which are `nan` or which fall outside of `[low, high)` in any
    dimension are assigned the invalid bin, as are values whose bin index
    or folded code would overflow.

    Parameters
    ----------
    values : np.ndarray
        (N, D) Collision scalars, one column per binning dimension
    widths : np.ndarray
        (D) Bin width of each dimension
    origins : np.ndarray
        (D) Lower edge of bin 0 in each dimension
    lows : np.ndarray
        (D) Lowest accepted value in each dimension
    highs : np.ndarray
        (D) Upper (excluded) bound of each dimension

    Returns
    -------
    np.ndarray
        (N) Hash bin of each collision
    """
    num_rows, num_dims = values.shape
    bins = np.empty(num_rows, dtype=np.int64)
    for i in range(num_rows):
        code = np.int64(0)
        valid = True
        for d in range(num_dims):
            v = values[i, d]
            if np.isnan(v) or v < lows[d] or v >= highs[d]:
                valid = False
                break

            kf = np.floor((v - origins[d]) / widths[d])
            if not (-MAX_INDEX <= kf <= MAX_INDEX):
                valid = False
                break

            k = np.int64(kf)
            if d == 0:
                code = zigzag(k)
            elif code > MAX_PAIRED:
                valid = False
                break
            else:
                code = pair(code, zigzag(k))

        if valid:
            bins[i] = code
        else:
            bins[i] = INVALID_BIN

    return bins
