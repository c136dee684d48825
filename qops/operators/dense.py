"""Operators backed by a dense numpy array, and the partial trace engine for them.

.. _partial_trace:

Partial trace
-------------
For an operator on the composite bases ``basis_l`` and ``basis_r`` (with the same number of
factors) and a set of traced factor positions, the partial trace is

.. math ::

    \\mathrm{tr}_{T}(A)_{(i_k)_{k \\notin T}, (j_k)_{k \\notin T}}
    = \\sum_{(t_k)_{k \\in T}} A_{(i, t), (j, t)},

i.e. the left and right index of a traced factor are contracted, while the indices of the
kept factors remain independent.
We address the reduced space with the stride rule of the full space where the traced
positions have size 1, which collapses their axes, see :func:`reduced_offsets`.
"""
# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

from collections.abc import Sequence
from numbers import Number

import numpy as np
import scipy.linalg
import scipy.sparse

from ..bases import (Basis, DimensionMismatchError, IncompatibleBasesError,
                     InvalidIndexSetError, as_composite, check_indices, check_samebases,
                     parse_indices, permutesystems as _permute_basis, ptrace as _ptrace_basis,
                     tensor as _tensor_bases)
from ..dummy_config import printoptions
from ..states import Bra, Ket, StateVector
from ..tools.misc import is_permutation, make_grid, make_stride
from ..tools.string import format_like_list
from ._operator import AbstractOperator

__all__ = ['DenseOperator', 'check_ptrace_arguments', 'reduced_offsets', 'ptrace_dense', 'dm',
           'projector', 'ptranspose', 'expect']


class DenseOperator(AbstractOperator):
    """An operator stored as a full matrix.

    Parameters
    ----------
    basis_l : :class:`~qops.bases.Basis`
        The left basis, i.e. the basis of the image.
    basis_r : :class:`~qops.bases.Basis`, optional
        The right basis, i.e. the basis of the domain. Defaults to `basis_l`.
    data : 2D array_like, optional
        The matrix, of shape ``(len(basis_l), len(basis_r))``. Converted to ``complex128``.
        Defaults to the zero matrix.

    Attributes
    ----------
    data : 2D ndarray of complex
        The matrix. Only ever mutated in place by
        :func:`~qops.operators.multiplication.multiply_accumulate` when this operator is the
        ``result`` argument.
    """

    def __init__(self, basis_l: Basis, basis_r: Basis = None, data=None):
        if basis_r is None:
            basis_r = basis_l
        AbstractOperator.__init__(self, basis_l, basis_r)
        if data is None:
            data = np.zeros((len(basis_l), len(basis_r)), dtype=np.complex128)
        else:
            if scipy.sparse.issparse(data):
                data = data.toarray()
            data = np.asarray(data, dtype=np.complex128)
        if data.shape != (len(basis_l), len(basis_r)):
            msg = (f'data with shape {data.shape} does not fit bases of dimensions '
                   f'{(len(basis_l), len(basis_r))}')
            raise DimensionMismatchError(msg)
        self.data = data

    def test_sanity(self):
        AbstractOperator.test_sanity(self)
        assert isinstance(self.data, np.ndarray)
        assert self.data.shape == self.shape
        assert self.data.dtype == np.complex128

    @classmethod
    def identity(cls, basis_l: Basis, basis_r: Basis = None) -> DenseOperator:
        """The identity, or its rectangular analog ``eye(len(basis_l), len(basis_r))``."""
        if basis_r is None:
            basis_r = basis_l
        return cls(basis_l, basis_r, np.eye(len(basis_l), len(basis_r), dtype=np.complex128))

    def copy(self) -> DenseOperator:
        return DenseOperator(self.basis_l, self.basis_r, self.data.copy())

    def to_dense(self) -> DenseOperator:
        return self.copy()

    def to_sparse(self):
        from .sparse import SparseOperator
        return SparseOperator(self.basis_l, self.basis_r, scipy.sparse.csc_matrix(self.data))

    def nonzero_entries(self):
        """Yield ``(row, col, value)`` for the entries that are not exactly zero, column by column."""
        data = self.data
        cols, rows = np.nonzero(data.T)
        for j, k in zip(rows, cols):
            yield int(j), int(k), data[j, k]

    def dagger(self) -> DenseOperator:
        return DenseOperator(self.basis_r, self.basis_l, np.conj(self.data.T))

    def trace(self) -> complex:
        self.check_square()
        return complex(np.trace(self.data))

    def ptrace(self, indices) -> DenseOperator | complex:
        return ptrace_dense(self, indices)

    def tensor(self, other: AbstractOperator) -> DenseOperator:
        if not isinstance(other, DenseOperator):
            other = other.to_dense()
        # first factor varies the fastest
        return DenseOperator(_tensor_bases(self.basis_l, other.basis_l),
                             _tensor_bases(self.basis_r, other.basis_r),
                             np.kron(other.data, self.data))

    def permutesystems(self, perm: Sequence[int]) -> DenseOperator:
        basis_l = as_composite(self.basis_l)
        basis_r = as_composite(self.basis_r)
        N = basis_l.num_factors
        perm = [int(p) for p in perm]
        if basis_r.num_factors != N or not is_permutation(perm, N):
            msg = f'Not a permutation of the {N} factors on both sides: {format_like_list(perm)}'
            raise InvalidIndexSetError(msg)
        # C-order axes: row factor ``f`` at axis ``N - 1 - f``, column factor at ``2N - 1 - f``
        data = self.data.reshape(basis_l.shape[::-1] + basis_r.shape[::-1])
        axes = [N - 1 - perm[N - 1 - a] for a in range(N)]
        axes = axes + [N + ax for ax in axes]
        data = np.transpose(data, axes).reshape(self.shape)
        return DenseOperator(_permute_basis(self.basis_l, perm),
                             _permute_basis(self.basis_r, perm), data)

    def expm(self) -> DenseOperator:
        """The matrix exponential. Requires ``basis_l == basis_r``."""
        self.check_square()
        return DenseOperator(self.basis_l, self.basis_r, scipy.linalg.expm(self.data))

    def is_hermitian(self, atol: float = 0.) -> bool:
        if self.basis_l != self.basis_r:
            return False
        if atol == 0.:
            return np.array_equal(self.data, np.conj(self.data.T))
        return np.allclose(self.data, np.conj(self.data.T), rtol=0., atol=atol)

    def _scaled(self, factor: Number) -> DenseOperator:
        return DenseOperator(self.basis_l, self.basis_r, factor * self.data)

    def __eq__(self, other):
        if not isinstance(other, DenseOperator):
            return NotImplemented
        return (self.basis_l == other.basis_l and self.basis_r == other.basis_r
                and np.array_equal(self.data, other.data))

    def __add__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        check_samebases(self, other)
        return DenseOperator(self.basis_l, self.basis_r, self.data + _as_array(other))

    def __radd__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        check_samebases(other, self)
        return DenseOperator(self.basis_l, self.basis_r, _as_array(other) + self.data)

    def __sub__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        check_samebases(self, other)
        return DenseOperator(self.basis_l, self.basis_r, self.data - _as_array(other))

    def __rsub__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        check_samebases(other, self)
        return DenseOperator(self.basis_l, self.basis_r, _as_array(other) - self.data)

    def __repr__(self):
        head = f'{type(self).__name__}({self.basis_l!r}, {self.basis_r!r}'
        if printoptions.skip_data:
            return head + ')'
        data = np.array2string(self.data, precision=printoptions.precision,
                               max_line_width=printoptions.linewidth, separator=', ')
        lines = data.split('\n')
        if len(lines) > printoptions.maxlines_operators:
            return head + f', shape={self.shape})'
        return head + ',\n' + data + ')'


def _as_array(op: AbstractOperator) -> np.ndarray:
    if isinstance(op, DenseOperator):
        return op.data
    return op.to_dense().data


def check_ptrace_arguments(op: AbstractOperator, indices) -> list[int]:
    """Validate the arguments of a partial trace, return the positions as a list.

    Raises
    ------
    IncompatibleBasesError
        If `basis_l` and `basis_r` have a different number of factors, or if a traced factor
        has different left and right bases.
    InvalidIndexSetError
        If the positions are out of range or not unique.
    """
    indices = parse_indices(indices)
    basis_l = as_composite(op.basis_l)
    basis_r = as_composite(op.basis_r)
    N = basis_l.num_factors
    if basis_r.num_factors != N:
        msg = (f'Partial trace requires the same number of factors on both sides, got {N} and '
               f'{basis_r.num_factors}')
        raise IncompatibleBasesError(msg)
    check_indices(N, indices)
    for i in indices:
        if basis_l.bases[i] != basis_r.bases[i]:
            msg = (f'Traced factor {i} has different left and right bases: '
                   f'{basis_l.bases[i]!r} vs. {basis_r.bases[i]!r}')
            raise IncompatibleBasesError(msg)
    return indices


def reduced_offsets(multi_idcs: np.ndarray, shape: Sequence[int], indices: Sequence[int]
                    ) -> tuple[np.ndarray, np.ndarray]:
    """Split multi-indices into offsets in the reduced space and in the traced space.

    Parameters
    ----------
    multi_idcs : 2D array of int
        One multi-index (one entry per factor) per row.
    shape : sequence of int
        The factor dimensions of the full space.
    indices : sequence of int
        The traced positions.

    Returns
    -------
    kept : 1D array of int
        The offsets into the reduced space, i.e. the space with ``shape[i] = 1`` for the traced
        positions ``i``.
    traced : 1D array of int
        The offsets of the traced components alone, into the space of the traced factors.
    """
    reduced_shape = list(shape)
    for i in indices:
        reduced_shape[i] = 1
    kept_strides = make_stride(reduced_shape, cstyle=False)
    kept_strides[list(indices)] = 0  # axes of size 1 only ever contribute index 0
    traced_shape = [shape[i] for i in indices]
    traced_strides = np.zeros(len(shape), np.intp)
    traced_strides[list(indices)] = make_stride(traced_shape, cstyle=False)
    return multi_idcs @ kept_strides, multi_idcs @ traced_strides


def ptrace_dense(op: DenseOperator | StateVector, indices) -> DenseOperator | complex:
    """Partial trace of a dense operator (or a state) over the factors at `indices`.

    Kets and bras are first promoted to their density matrix, see :func:`dm`.
    Tracing all factors gives the (scalar) trace, tracing no factor gives a copy.
    See :ref:`partial_trace` for the definition.
    """
    if isinstance(op, StateVector):
        op = dm(op)
    indices = check_ptrace_arguments(op, indices)
    basis_l = as_composite(op.basis_l)
    basis_r = as_composite(op.basis_r)
    N = basis_l.num_factors
    if len(indices) == N:
        return op.trace()
    if len(indices) == 0:
        return op.copy()
    data = _ptrace_data(op.data, basis_l.shape, basis_r.shape, indices)
    return DenseOperator(_ptrace_basis(basis_l, indices), _ptrace_basis(basis_r, indices), data)


def _ptrace_data(data: np.ndarray, shape_l, shape_r, indices) -> np.ndarray:
    kept_l, traced_l = reduced_offsets(make_grid(shape_l, cstyle=False), shape_l, indices)
    kept_r, traced_r = reduced_offsets(make_grid(shape_r, cstyle=False), shape_r, indices)
    dim_traced = int(np.prod([shape_l[i] for i in indices]))
    dim_l = data.shape[0] // dim_traced
    dim_r = data.shape[1] // dim_traced
    result = np.zeros((dim_l, dim_r), dtype=data.dtype)
    # only combinations with equal traced components contribute. For each such component,
    # the kept offsets are unique, so the fancy-indexed ``+=`` does not drop contributions.
    rows_of = _group_by(traced_l, dim_traced)
    cols_of = _group_by(traced_r, dim_traced)
    for t in range(dim_traced):
        rows = rows_of[t]
        cols = cols_of[t]
        result[np.ix_(kept_l[rows], kept_r[cols])] += data[np.ix_(rows, cols)]
    return result


def _group_by(keys: np.ndarray, num_keys: int) -> list[np.ndarray]:
    """For each ``k in range(num_keys)`` the positions ``i`` with ``keys[i] == k``."""
    order = np.argsort(keys, kind='stable')
    bounds = np.searchsorted(keys[order], np.arange(num_keys + 1))
    return [order[bounds[k]:bounds[k + 1]] for k in range(num_keys)]


def dm(state: StateVector) -> DenseOperator:
    """The density matrix ``|psi><psi|`` of a ket (or bra)."""
    if isinstance(state, Ket):
        return projector(state, state.dagger())
    if isinstance(state, Bra):
        return projector(state.dagger(), state)
    raise TypeError(f'Expected a Ket or Bra. Got {type(state).__name__}')


def projector(ket: Ket, bra: Bra = None) -> DenseOperator:
    """The outer product ``|ket><bra|``. If `bra` is not given, the projector ``|ket><ket|``."""
    if bra is None:
        bra = ket.dagger()
    if not isinstance(ket, Ket) or not isinstance(bra, Bra):
        raise TypeError('projector expects a Ket and a Bra.')
    return DenseOperator(ket.basis, bra.basis, np.outer(ket.data, bra.data))


def ptranspose(rho: AbstractOperator, index: int = 0) -> DenseOperator:
    """Partial transpose of `rho` with respect to the factor at position `index`.

    Requires ``basis_l == basis_r``.
    """
    check_samebases(rho.basis_l, rho.basis_r)
    if not isinstance(rho, DenseOperator):
        rho = rho.to_dense()
    basis = as_composite(rho.basis_l)
    N = basis.num_factors
    check_indices(N, [index])
    data = rho.data.reshape(basis.shape[::-1] + basis.shape[::-1])
    data = np.swapaxes(data, N - 1 - index, 2 * N - 1 - index)
    return DenseOperator(rho.basis_l, rho.basis_r, data.reshape(rho.shape))


def expect(op: AbstractOperator, state: DenseOperator | Ket) -> complex:
    """Expectation value ``tr(op * state)`` for a density matrix or ``<psi|op|psi>`` for a ket."""
    if isinstance(state, Ket):
        check_samebases(op.basis_r, state.basis)
        check_samebases(op.basis_l, state.basis)
        return state.dagger() * (op * state)
    check_samebases(op.basis_r, state.basis_l)
    check_samebases(op.basis_l, state.basis_r)
    if isinstance(op, DenseOperator):
        return complex(np.sum(op.data * state.data.T))
    return (op * state).trace()

