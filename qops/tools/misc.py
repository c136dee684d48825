"""Miscellaneous tools, in particular the stride arithmetic for composite index spaces.

A composite index space with factor dimensions ``shape = (n_0, ..., n_{N-1})`` enumerates its
elements by linear offsets ``m = sum_k i_k * stride[k]``. Operators and states in this package
use the F-style layout ``make_stride(shape, cstyle=False)``, i.e. the first factor varies the
fastest. Reduced spaces, where traced factors are removed, are addressed by setting the
corresponding strides to zero.
"""
# Copyright (C) TeNPy Developers, Apache license

from collections.abc import Sequence
from typing import TypeVar

import numpy as np

_T = TypeVar('_T')
_MAX_INT = np.iinfo(np.intp).max


def duplicate_entries(seq: Sequence[_T], ignore: Sequence[_T] = ()) -> set[_T]:
    """The entries occurring more than once in `seq`, except those in `ignore`."""
    seen = set()
    duplicates = set()
    for entry in seq:
        if entry in seen and entry not in ignore:
            duplicates.add(entry)
        seen.add(entry)
    return duplicates


def to_iterable(a):
    """Wrap `a` as ``[a]``, unless it is an iterable other than a string."""
    if isinstance(a, str):
        return [a]
    try:
        iter(a)
    except TypeError:
        return [a]
    return a


def inverse_permutation(perm):
    """The permutation `inv` with ``inv[perm[j]] == j``, in ``O(N)``.

    If ``new = old[perm]``, then ``old = new[inverse_permutation(perm)]``.
    *Assumes* that `perm` is a permutation of ``range(len(perm))``.
    """
    perm = np.asarray(perm, dtype=np.intp)
    inv = np.zeros_like(perm)
    inv[perm] = np.arange(len(perm), dtype=np.intp)
    return inv


def is_permutation(perm, N: int) -> bool:
    """If `perm` is a permutation of ``range(N)``."""
    return len(perm) == N and set(int(p) for p in perm) == set(range(N))


def make_stride(shape, cstyle=True) -> np.ndarray:
    """Strides for a contiguous index space of the given `shape`, in units of elements.

    Parameters
    ----------
    shape : sequence of int
        The dimensions of the factors.
    cstyle : bool
        ``True`` for C-style strides (last factor fastest, ``stride[-1] == 1``),
        ``False`` for F-style strides (first factor fastest, ``stride[0] == 1``).
        Composite bases use ``cstyle=False``.

    Returns
    -------
    stride : 1D array of int
        Agrees with ``np.array(x.strides) // x.itemsize`` for ``x = np.zeros(shape, order)``.
    """
    shape = [int(n) for n in shape]
    if len(shape) == 0:
        return np.zeros([0], np.intp)
    if cstyle:
        return make_stride(shape[::-1], cstyle=False)[::-1].copy()
    assert np.prod(shape, dtype=float) < _MAX_INT, 'index space too large'
    stride = np.ones([len(shape)], np.intp)
    stride[1:] = np.cumprod(shape[:-1], dtype=np.intp)
    return stride


def make_grid(shape, cstyle=True) -> np.ndarray:
    """All multi-indices of `shape`, one per row, in layout order.

    Returns an int array of shape ``(prod(shape), len(shape))``. For ``cstyle=False`` the rows
    run over the F-style order, e.g.::

        make_grid([2, 3], cstyle=False) == [[0, 0], [1, 0], [0, 1], [1, 1], [0, 2], [1, 2]]

    such that row ``m`` is ``multi_indices(m, shape, cstyle=False)``.
    For ``cstyle=True``, the last index varies the fastest instead.
    """
    if cstyle:
        return np.indices(shape, int).reshape(len(shape), -1).T
    return np.indices(shape, int).T.reshape(-1, len(shape))


def linear_offsets(multi_idcs, strides) -> np.ndarray:
    """Map multi-indices to linear offsets, ``offset = sum_k multi_idcs[..., k] * strides[k]``.

    Parameters
    ----------
    multi_idcs : array_like of int
        Either a single multi-index of shape ``(N,)`` or a 2D array of shape ``(M, N)`` with one
        multi-index per row.
    strides : 1D array_like of int
        The strides, e.g. from :func:`make_stride`. Setting a stride to zero drops that axis,
        which is how reduced spaces (where traced axes have size 1) are addressed.

    Returns
    -------
    offsets : int | 1D array of int
        The linear offset(s). An ``int`` for a single multi-index.
    """
    multi_idcs = np.asarray(multi_idcs, dtype=np.intp)
    strides = np.asarray(strides, dtype=np.intp)
    if multi_idcs.ndim == 1:
        return int(np.dot(multi_idcs, strides))
    return multi_idcs @ strides


def multi_indices(offsets, shape, cstyle=False) -> np.ndarray:
    """Inverse of :func:`linear_offsets` for the strides ``make_stride(shape, cstyle)``.

    Parameters
    ----------
    offsets : int | 1D array_like of int
        Linear offsets into ``range(prod(shape))``.
    shape : sequence of int
        Dimensions of the factors.
    cstyle : bool
        Whether the offsets are C-style (last index fastest) or F-style (first index fastest).

    Returns
    -------
    multi_idcs : 2D array of int
        Shape ``(len(offsets), len(shape))``. Row ``m`` holds the per-factor indices of
        ``offsets[m]``. For a scalar `offset`, a 1D array of shape ``(len(shape),)``.
    """
    scalar = np.ndim(offsets) == 0
    offsets = np.atleast_1d(np.asarray(offsets, dtype=np.intp))
    shape = np.asarray(shape, dtype=np.intp)
    strides = make_stride(shape, cstyle)
    res = (offsets[:, None] // strides[None, :]) % shape[None, :]
    if scalar:
        return res[0]
    return res


def iter_common_noncommon_sorted(a, b):
    """Walk two strictly ascending sequences `a` and `b` in merged order.

    Yields ``(i, j)`` with ``a[i] == b[j]`` for values in both, ``(i, None)`` for values
    only in `a` and ``(None, j)`` for values only in `b`.
    """
    i = j = 0
    while i < len(a) or j < len(b):
        if j == len(b) or (i < len(a) and a[i] < b[j]):
            yield i, None
            i += 1
        elif i == len(a) or b[j] < a[i]:
            yield None, j
            j += 1
        else:
            yield i, j
            i += 1
            j += 1


def remove_sorted(a: Sequence[int], remove: Sequence[int]) -> list[int]:
    """The entries of the ascending `a` which are not in `remove`."""
    remove = set(remove)
    return [x for x in a if x not in remove]


def shift_remove_sorted(a: Sequence[int], remove: Sequence[int]) -> list[int]:
    """Like :func:`remove_sorted`, but relabel the survivors as positions in the reduced range.

    I.e. every kept entry ``x`` is shifted down by the number of removed entries below it.

    Examples
    --------
    >>> shift_remove_sorted([0, 2, 3, 5], [1, 3])
    [0, 1, 3]
    """
    remove = sorted(set(remove))
    res = []
    for x in a:
        if x in remove:
            continue
        res.append(x - sum(1 for r in remove if r < x))
    return res
