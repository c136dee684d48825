"""Operators backed by a compressed sparse column matrix from :mod:`scipy.sparse`."""
# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

from collections.abc import Sequence
from numbers import Number

import numpy as np
import scipy.sparse

from ..bases import (Basis, DimensionMismatchError, InvalidIndexSetError, as_composite,
                     check_samebases, permutesystems as _permute_basis, ptrace as _ptrace_basis,
                     tensor as _tensor_bases)
from ..dummy_config import printoptions
from ..tools.misc import is_permutation, linear_offsets, multi_indices
from ..tools.string import format_like_list
from ._operator import AbstractOperator
from .dense import DenseOperator, check_ptrace_arguments, reduced_offsets

__all__ = ['SparseOperator', 'ptrace_sparse', 'diagonaloperator']


class SparseOperator(AbstractOperator):
    """An operator stored as a :class:`scipy.sparse.csc_matrix`.

    Parameters
    ----------
    basis_l : :class:`~qops.bases.Basis`
        The left basis, i.e. the basis of the image.
    basis_r : :class:`~qops.bases.Basis`, optional
        The right basis, i.e. the basis of the domain. Defaults to `basis_l`.
    data : sparse matrix or 2D array_like, optional
        The matrix, of shape ``(len(basis_l), len(basis_r))``. Converted to a ``complex128``
        CSC matrix. Defaults to the empty (zero) matrix.
    """

    def __init__(self, basis_l: Basis, basis_r: Basis = None, data=None):
        if basis_r is None:
            basis_r = basis_l
        AbstractOperator.__init__(self, basis_l, basis_r)
        if data is None:
            data = scipy.sparse.csc_matrix((len(basis_l), len(basis_r)), dtype=np.complex128)
        else:
            data = scipy.sparse.csc_matrix(data, dtype=np.complex128)
        if data.shape != (len(basis_l), len(basis_r)):
            msg = (f'data with shape {data.shape} does not fit bases of dimensions '
                   f'{(len(basis_l), len(basis_r))}')
            raise DimensionMismatchError(msg)
        self.data = data

    def test_sanity(self):
        AbstractOperator.test_sanity(self)
        assert scipy.sparse.isspmatrix_csc(self.data)
        assert self.data.shape == self.shape
        assert self.data.dtype == np.complex128

    @classmethod
    def identity(cls, basis_l: Basis, basis_r: Basis = None) -> SparseOperator:
        """The identity, or its rectangular analog ``eye(len(basis_l), len(basis_r))``."""
        if basis_r is None:
            basis_r = basis_l
        data = scipy.sparse.eye(len(basis_l), len(basis_r), dtype=np.complex128, format='csc')
        return cls(basis_l, basis_r, data)

    def copy(self) -> SparseOperator:
        return SparseOperator(self.basis_l, self.basis_r, self.data.copy())

    def to_dense(self) -> DenseOperator:
        return DenseOperator(self.basis_l, self.basis_r, self.data.toarray())

    def to_sparse(self) -> SparseOperator:
        return self.copy()

    def nonzero_entries(self):
        """Yield ``(row, col, value)`` for the stored entries, column by column."""
        data = self.data
        indptr = data.indptr
        indices = data.indices
        values = data.data
        for k in range(data.shape[1]):
            for ptr in range(indptr[k], indptr[k + 1]):
                yield indices[ptr], k, values[ptr]

    def dagger(self) -> SparseOperator:
        return SparseOperator(self.basis_r, self.basis_l, self.data.conj().T.tocsc())

    def trace(self) -> complex:
        self.check_square()
        return complex(self.data.diagonal().sum())

    def ptrace(self, indices) -> SparseOperator | complex:
        return ptrace_sparse(self, indices)

    def tensor(self, other: AbstractOperator) -> AbstractOperator:
        if isinstance(other, DenseOperator):
            return self.to_dense().tensor(other)
        if not isinstance(other, SparseOperator):
            other = other.to_sparse()
        # first factor varies the fastest
        return SparseOperator(_tensor_bases(self.basis_l, other.basis_l),
                              _tensor_bases(self.basis_r, other.basis_r),
                              scipy.sparse.kron(other.data, self.data, format='csc'))

    def permutesystems(self, perm: Sequence[int]) -> SparseOperator:
        basis_l = as_composite(self.basis_l)
        basis_r = as_composite(self.basis_r)
        N = basis_l.num_factors
        perm = [int(p) for p in perm]
        if basis_r.num_factors != N or not is_permutation(perm, N):
            msg = f'Not a permutation of the {N} factors on both sides: {format_like_list(perm)}'
            raise InvalidIndexSetError(msg)
        new_l = as_composite(_permute_basis(basis_l, perm))
        new_r = as_composite(_permute_basis(basis_r, perm))
        coo = self.data.tocoo()
        # factor ``n`` of the result is the old factor ``perm[n]``
        rows = linear_offsets(multi_indices(coo.row, basis_l.shape)[:, perm], new_l.strides)
        cols = linear_offsets(multi_indices(coo.col, basis_r.shape)[:, perm], new_r.strides)
        data = scipy.sparse.csc_matrix((coo.data, (rows, cols)), shape=self.shape)
        return SparseOperator(_permute_basis(self.basis_l, perm),
                              _permute_basis(self.basis_r, perm), data)

    def _scaled(self, factor: Number) -> SparseOperator:
        return SparseOperator(self.basis_l, self.basis_r, factor * self.data)

    def __eq__(self, other):
        if not isinstance(other, SparseOperator):
            return NotImplemented
        if self.basis_l != other.basis_l or self.basis_r != other.basis_r:
            return False
        return (self.data != other.data).nnz == 0

    def __add__(self, other):
        if not isinstance(other, SparseOperator):
            return NotImplemented
        check_samebases(self, other)
        return SparseOperator(self.basis_l, self.basis_r, self.data + other.data)

    def __sub__(self, other):
        if not isinstance(other, SparseOperator):
            return NotImplemented
        check_samebases(self, other)
        return SparseOperator(self.basis_l, self.basis_r, self.data - other.data)

    def __repr__(self):
        head = f'{type(self).__name__}({self.basis_l!r}, {self.basis_r!r}, nnz={self.data.nnz}'
        if printoptions.skip_data or self.data.nnz > printoptions.maxlines_operators:
            return head + ')'
        coo = self.data.tocoo()
        lines = [f'  ({r}, {c})  {v:.{printoptions.precision}g}'
                 for r, c, v in zip(coo.row, coo.col, coo.data)]
        return '\n'.join([head + ','] + lines) + ')'


def ptrace_sparse(op: SparseOperator, indices) -> SparseOperator | complex:
    """Partial trace of a sparse operator, visiting the stored entries only.

    Same conventions as :func:`~qops.operators.dense.ptrace_dense`.
    """
    indices = check_ptrace_arguments(op, indices)
    basis_l = as_composite(op.basis_l)
    basis_r = as_composite(op.basis_r)
    N = basis_l.num_factors
    if len(indices) == N:
        return op.trace()
    if len(indices) == 0:
        return op.copy()
    coo = op.data.tocoo()
    kept_l, traced_l = reduced_offsets(multi_indices(coo.row, basis_l.shape), basis_l.shape, indices)
    kept_r, traced_r = reduced_offsets(multi_indices(coo.col, basis_r.shape), basis_r.shape, indices)
    keep = traced_l == traced_r
    new_l = _ptrace_basis(basis_l, indices)
    new_r = _ptrace_basis(basis_r, indices)
    # duplicate coordinates are summed on conversion
    data = scipy.sparse.csc_matrix((coo.data[keep], (kept_l[keep], kept_r[keep])),
                                   shape=(len(new_l), len(new_r)))
    return SparseOperator(new_l, new_r, data)


def diagonaloperator(basis: Basis, diag) -> SparseOperator:
    """The sparse operator with the given diagonal."""
    diag = np.asarray(diag, dtype=np.complex128)
    if diag.shape != (len(basis),):
        msg = f'diagonal of length {diag.shape} does not fit a basis of dimension {len(basis)}'
        raise DimensionMismatchError(msg)
    return SparseOperator(basis, basis, scipy.sparse.diags(diag, format='csc'))
