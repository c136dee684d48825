r"""Lazy tensor products of operators.

A :class:`LazyTensor` represents

.. math ::

    \mathrm{factor} \cdot \left( \cdots \otimes \mathbb{1} \otimes A_{i_1} \otimes \mathbb{1}
    \otimes \cdots \otimes A_{i_2} \otimes \cdots \right)

on a composite basis without ever forming the Kronecker product. Only the suboperators
:math:`A_{i_k}` on the touched factor positions :math:`i_k` are stored. All other factors
are implicit identities (rectangular identities ``eye(n_l, n_r)`` if the left and right
factor bases differ).

Products with dense operands are computed by the recursive index walks
:func:`gemm_lazy_dense` and :func:`gemm_dense_lazy`, which visit one composite factor per
recursion level. A touched factor branches over the nonzero entries of its suboperator (the
stored ones for a :class:`~qops.operators.sparse.SparseOperator`); an untouched factor only
follows the diagonal, since an identity has no off-diagonal contribution.

Suboperators are shared by reference between a LazyTensor and everything derived from it
(e.g. by scalar multiplication or :func:`~qops.operators.functions.dagger`).
Only :meth:`LazyTensor.copy` copies them.
"""
# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

from collections.abc import Sequence
from numbers import Number

import numpy as np

from ..bases import (Basis, CompositeBasis, DimensionMismatchError,
                     InvalidIndexSetError, as_composite, check_indices, check_multiplicable,
                     parse_indices, permutesystems as _permute_basis, ptrace as _ptrace_basis,
                     tensor as _tensor_bases)
from ..dummy_config import config, printoptions
from ..tools.misc import (inverse_permutation, is_permutation, iter_common_noncommon_sorted,
                          remove_sorted, shift_remove_sorted)
from ..tools.string import format_like_list, indent_lines
from ._operator import AbstractOperator, UnsupportedRepresentationError, _scale_result
from .dense import DenseOperator, check_ptrace_arguments
from .lazysum import LazySum
from .sparse import SparseOperator

__all__ = ['LazyTensor', 'as_lazy', 'gemm_lazy_dense', 'gemm_dense_lazy']


class LazyTensor(AbstractOperator):
    """Lazy implementation of a tensor product of operators.

    Parameters
    ----------
    basis_l, basis_r : :class:`~qops.bases.Basis`
        The left / right basis. A non-composite basis is treated as a composite basis with a
        single factor. Both need the same number of factors.
    indices : int | sequence of int
        The (0-based) factor positions of the `operators`. Need not be sorted, but unique.
    operators : :class:`AbstractOperator` | sequence of :class:`AbstractOperator`
        One suboperator per index. The suboperator at position ``i`` must map
        ``basis_r.bases[i]`` to ``basis_l.bases[i]``. Stored by reference, not copied.
    factor : number
        A scalar prefactor of the whole product.

    Attributes
    ----------
    basis_l, basis_r : :class:`~qops.bases.CompositeBasis`
    indices : list of int
        Strictly ascending factor positions.
    operators : list of :class:`AbstractOperator`
        The suboperators, in the order of :attr:`indices`.
    factor : complex
    """

    def __init__(self, basis_l: Basis, basis_r: Basis = None, indices: int | Sequence[int] = (),
                 operators: AbstractOperator | Sequence[AbstractOperator] = (),
                 factor: Number = 1.):
        if basis_r is None:
            basis_r = basis_l
        basis_l = as_composite(basis_l)
        basis_r = as_composite(basis_r)
        AbstractOperator.__init__(self, basis_l, basis_r)
        if isinstance(operators, AbstractOperator):
            operators = [operators]
        indices = parse_indices(indices)
        operators = list(operators)
        if config.do_input_checks:
            _check_suboperators(basis_l, basis_r, indices, operators)
        if any(i2 <= i1 for i1, i2 in zip(indices, indices[1:])):
            perm = np.argsort(indices, kind='stable')
            indices = [indices[p] for p in perm]
            operators = [operators[p] for p in perm]
        self.indices = indices
        self.operators = operators
        self.factor = complex(factor)

    @classmethod
    def _from_parts(cls, basis_l: CompositeBasis, basis_r: CompositeBasis, indices: list[int],
                    operators: list[AbstractOperator], factor: Number) -> LazyTensor:
        """Constructor for already validated, canonical parts. Shares the lists."""
        res = cls.__new__(cls)
        AbstractOperator.__init__(res, basis_l, basis_r)
        res.indices = indices
        res.operators = operators
        res.factor = complex(factor)
        return res

    def test_sanity(self):
        AbstractOperator.test_sanity(self)
        assert isinstance(self.basis_l, CompositeBasis)
        assert isinstance(self.basis_r, CompositeBasis)
        assert all(i1 < i2 for i1, i2 in zip(self.indices, self.indices[1:]))
        _check_suboperators(self.basis_l, self.basis_r, self.indices, self.operators)
        for op in self.operators:
            op.test_sanity()

    @classmethod
    def identity(cls, basis_l: Basis, basis_r: Basis = None) -> LazyTensor:
        """The identity element, without any suboperators."""
        if basis_r is None:
            basis_r = basis_l
        basis_l = as_composite(basis_l)
        basis_r = as_composite(basis_r)
        if basis_l.num_factors != basis_r.num_factors:
            msg = (f'Need the same number of factors on both sides, got {basis_l.num_factors} '
                   f'and {basis_r.num_factors}')
            raise DimensionMismatchError(msg)
        return cls._from_parts(basis_l, basis_r, [], [], 1.)

    @property
    def num_factors(self) -> int:
        return self.basis_l.num_factors

    def suboperator(self, index: int) -> AbstractOperator:
        """The suboperator at factor position `index`.

        Raises
        ------
        InvalidIndexSetError
            If there is no suboperator at `index`, i.e. if the factor is an implicit identity.
        """
        try:
            return self.operators[self.indices.index(index)]
        except ValueError:
            msg = f'No suboperator at factor position {index}. Touched: {format_like_list(self.indices)}'
            raise InvalidIndexSetError(msg) from None

    def suboperators(self, indices: Sequence[int]) -> list[AbstractOperator]:
        """The suboperators at the given factor positions, see :meth:`suboperator`."""
        return [self.suboperator(i) for i in indices]

    def copy(self) -> LazyTensor:
        """A deep copy: every suboperator is copied as well."""
        return LazyTensor._from_parts(self.basis_l, self.basis_r, self.indices[:],
                                      [op.copy() for op in self.operators], self.factor)

    def to_dense(self) -> DenseOperator:
        from .embedding import realize_dense
        return realize_dense(self)

    def to_sparse(self) -> SparseOperator:
        from .embedding import realize_sparse
        return realize_sparse(self)

    def _scaled(self, factor: Number) -> LazyTensor:
        return LazyTensor._from_parts(self.basis_l, self.basis_r, self.indices, self.operators,
                                      self.factor * factor)

    def __truediv__(self, other):
        if isinstance(other, Number):
            return LazyTensor._from_parts(self.basis_l, self.basis_r, self.indices,
                                          self.operators, self.factor / other)
        return NotImplemented

    def __add__(self, other):
        """The lazy sum ``self + other``, see :class:`~qops.operators.lazysum.LazySum`."""
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        return LazySum([1.], [self]) + other

    def __radd__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        return other + LazySum([1.], [self])

    def __sub__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        return LazySum([1.], [self]) - other

    def __rsub__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        return other + LazySum([-1.], [self])

    def __eq__(self, other):
        if not isinstance(other, LazyTensor):
            return NotImplemented
        return (self.basis_l == other.basis_l and self.basis_r == other.basis_r
                and self.indices == other.indices and self.factor == other.factor
                and all(a == b for a, b in zip(self.operators, other.operators)))

    def dagger(self) -> LazyTensor:
        return LazyTensor._from_parts(self.basis_r, self.basis_l, self.indices,
                                      [op.dagger() for op in self.operators],
                                      np.conj(self.factor))

    def tensor(self, other: AbstractOperator) -> AbstractOperator:
        """The tensor product ``self ⊗ other``.

        Stays lazy if `other` is lazy or acts on a single factor. Otherwise `self` is
        materialized as a sparse matrix first.
        """
        other_lazy = as_lazy(other)
        if other_lazy is None:
            return self.to_sparse().tensor(other)
        other = other_lazy
        shift = self.num_factors
        return LazyTensor._from_parts(_tensor_bases(self.basis_l, other.basis_l),
                                      _tensor_bases(self.basis_r, other.basis_r),
                                      self.indices + [i + shift for i in other.indices],
                                      self.operators + other.operators,
                                      self.factor * other.factor)

    def trace(self) -> complex:
        self.check_square()
        return self._traced_factor(range(self.num_factors))

    def _traced_factor(self, indices) -> complex:
        """The factor times the traces of the factors at `indices`."""
        result = self.factor
        for i in indices:
            if i in self.indices:
                result *= self.suboperator(i).trace()
            else:
                result *= len(self.basis_l.bases[i])
        return result

    def ptrace(self, indices) -> AbstractOperator | complex:
        """Partial trace over the factors at the given positions.

        The traced factors only contribute a scalar. If a single factor remains, the result is
        its (scaled) suboperator, or a scaled :class:`~qops.operators.sparse.SparseOperator`
        identity if that factor is untouched. Tracing all factors gives the scalar trace.
        """
        indices = check_ptrace_arguments(self, indices)
        N = self.num_factors
        rank = N - len(indices)
        factor = self._traced_factor(indices)
        if rank == 0:
            return factor
        remaining = remove_sorted(self.indices, indices)
        if rank == 1 and len(remaining) == 1:
            return factor * self.suboperator(remaining[0])
        b_l = _ptrace_basis(self.basis_l, indices)
        b_r = _ptrace_basis(self.basis_r, indices)
        if rank == 1:
            return factor * SparseOperator.identity(b_l, b_r)
        return LazyTensor._from_parts(b_l, b_r, shift_remove_sorted(self.indices, indices),
                                      self.suboperators(remaining), factor)

    def permutesystems(self, perm: Sequence[int]) -> LazyTensor:
        perm = [int(p) for p in perm]
        if not is_permutation(perm, self.num_factors):
            msg = f'Not a permutation of {self.num_factors} factors: {format_like_list(perm)}'
            raise InvalidIndexSetError(msg)
        inv_perm = inverse_permutation(perm)
        # old factor ``i`` ends up at position ``inv_perm[i]``
        indices = [int(inv_perm[i]) for i in self.indices]
        order = np.argsort(indices, kind='stable')
        return LazyTensor._from_parts(_permute_basis(self.basis_l, perm),
                                      _permute_basis(self.basis_r, perm),
                                      [indices[o] for o in order],
                                      [self.operators[o] for o in order], self.factor)

    def _multiply_lazy(self, other: LazyTensor) -> LazyTensor:
        """The product ``self * other`` of two lazy tensors, again lazy.

        On factors touched by both, the suboperators are multiplied. A factor touched by only
        one of them keeps that suboperator, as long as the identity of the other one is square.
        Rectangular identities are multiplied in explicitly.
        """
        if config.check_bases_in_products:
            check_multiplicable(self, other)
        bases_l = self.basis_l.bases
        bases_m = self.basis_r.bases
        bases_r = other.basis_r.bases
        touched = {}
        for n, m in iter_common_noncommon_sorted(self.indices, other.indices):
            if n is not None and m is not None:
                touched[self.indices[n]] = self.operators[n] * other.operators[m]
            elif n is not None:
                i = self.indices[n]
                op = self.operators[n]
                if bases_m[i] != bases_r[i]:
                    op = op * SparseOperator.identity(bases_m[i], bases_r[i])
                touched[i] = op
            else:
                i = other.indices[m]
                op = other.operators[m]
                if bases_l[i] != bases_m[i]:
                    op = SparseOperator.identity(bases_l[i], bases_m[i]) * op
                touched[i] = op
        for i, (b_l, b_m, b_r) in enumerate(zip(bases_l, bases_m, bases_r)):
            # ``eye(l, m) @ eye(m, r) == eye(l, r)`` unless m is the smallest
            if i not in touched and len(b_m) < min(len(b_l), len(b_r)):
                touched[i] = SparseOperator.identity(b_l, b_m) * SparseOperator.identity(b_m, b_r)
        indices = sorted(touched)
        return LazyTensor._from_parts(self.basis_l, other.basis_r, indices,
                                      [touched[i] for i in indices], self.factor * other.factor)

    def __repr__(self):
        ClsName = type(self).__name__
        head = (f'{ClsName}({self.basis_l!r}, {self.basis_r!r}, '
                f'indices={format_like_list(self.indices)}, factor={self.factor!r}')
        if printoptions.skip_data or len(self.operators) == 0:
            return head + ')'
        lines = [head + ', operators=[']
        for op in self.operators:
            lines.append(indent_lines(repr(op), printoptions.indent) + ',')
        lines.append('])')
        if len(lines) > printoptions.maxlines_operators:
            return head + ')'
        return '\n'.join(lines)


def _check_suboperators(basis_l: CompositeBasis, basis_r: CompositeBasis, indices: list[int],
                        operators: list[AbstractOperator]):
    N = basis_l.num_factors
    if basis_r.num_factors != N:
        msg = f'Need the same number of factors on both sides, got {N} and {basis_r.num_factors}'
        raise DimensionMismatchError(msg)
    check_indices(N, indices)
    if len(indices) != len(operators):
        msg = f'Need one operator per index: got {len(operators)} for {len(indices)} indices'
        raise DimensionMismatchError(msg)
    for i, op in zip(indices, operators):
        if not isinstance(op, AbstractOperator):
            raise TypeError(f'Suboperators must be operators. Got {type(op).__name__}')
        if op.basis_l != basis_l.bases[i] or op.basis_r != basis_r.bases[i]:
            msg = (f'Suboperator at position {i} has bases {op.basis_l!r}, {op.basis_r!r}, '
                   f'expected {basis_l.bases[i]!r}, {basis_r.bases[i]!r}')
            raise DimensionMismatchError(msg)


def as_lazy(op: AbstractOperator) -> LazyTensor | None:
    """View `op` as a :class:`LazyTensor`, if possible.

    Operators on non-composite bases become a lazy tensor with a single touched factor.
    Returns ``None`` for non-lazy operators on composite bases.
    """
    if isinstance(op, LazyTensor):
        return op
    if isinstance(op.basis_l, CompositeBasis) or isinstance(op.basis_r, CompositeBasis):
        return None
    return LazyTensor._from_parts(as_composite(op.basis_l), as_composite(op.basis_r), [0], [op], 1.)


# MULTIPLICATION KERNELS


def _suboperator_entries(h: LazyTensor) -> dict[int, list[tuple[int, int, complex]]]:
    """The ``(row, col, value)`` entries that the index walk branches over, per touched factor."""
    res = {}
    for i, op in zip(h.indices, h.operators):
        if not isinstance(op, (DenseOperator, SparseOperator)):
            msg = (f'No multiplication kernel for a LazyTensor with a {type(op).__name__} '
                   f'suboperator. Materialize it first.')
            raise UnsupportedRepresentationError(msg)
        res[i] = list(op.nonzero_entries())
    return res


def _walk_shape(h: LazyTensor) -> list[int]:
    # rectangular identities only have ``min(n_l, n_r)`` diagonal entries
    return [min(n_l, n_r) for n_l, n_r in zip(h.basis_l.shape, h.basis_r.shape)]


def _check_buffers(op: np.ndarray, result: np.ndarray, expect_op: tuple, expect_result: tuple):
    """Check the shapes of the operand and result. ``None`` marks the free axis of length M."""
    if op.ndim != 2 or result.ndim != 2:
        raise DimensionMismatchError('The operand and result must be 2D arrays.')
    M = op.shape[expect_op.index(None)]
    expect_op = tuple(M if e is None else e for e in expect_op)
    expect_result = tuple(M if e is None else e for e in expect_result)
    if op.shape != expect_op or result.shape != expect_result:
        msg = (f'Operand of shape {op.shape} and result of shape {result.shape} do not fit the '
               f'lazy tensor. Expected {expect_op} and {expect_result}')
        raise DimensionMismatchError(msg)


def gemm_lazy_dense(alpha: Number, h: LazyTensor, op: np.ndarray, beta: Number, result: np.ndarray):
    """In place ``result = alpha * h @ op + beta * result`` for a matrix `op`.

    Parameters
    ----------
    alpha, beta : number
        Scalars. ``beta == 0`` overwrites `result`, ``beta == 1`` accumulates.
    h : :class:`LazyTensor`
        The lazy operator. Is never materialized.
    op : 2D ndarray
        Shape ``(len(h.basis_r), M)``.
    result : 2D ndarray
        Shape ``(len(h.basis_l), M)``. Modified in place.
    """
    _check_buffers(op, result, (len(h.basis_r), None), (len(h.basis_l), None))
    _scale_result(result, beta)
    entries = _suboperator_entries(h)
    _gemm_recursive_lazy_dense(0, h.num_factors, 0, 0, alpha * h.factor, _walk_shape(h),
                               h.basis_r.strides, h.basis_l.strides, entries, op, result)


def gemm_dense_lazy(alpha: Number, op: np.ndarray, h: LazyTensor, beta: Number, result: np.ndarray):
    """In place ``result = alpha * op @ h + beta * result`` for a matrix `op`.

    Parameters
    ----------
    alpha, beta : number
        Scalars. ``beta == 0`` overwrites `result`, ``beta == 1`` accumulates.
    op : 2D ndarray
        Shape ``(M, len(h.basis_l))``.
    h : :class:`LazyTensor`
        The lazy operator. Is never materialized.
    result : 2D ndarray
        Shape ``(M, len(h.basis_r))``. Modified in place.
    """
    _check_buffers(op, result, (None, len(h.basis_l)), (None, len(h.basis_r)))
    _scale_result(result, beta)
    entries = _suboperator_entries(h)
    _gemm_recursive_dense_lazy(0, h.num_factors, 0, 0, alpha * h.factor, _walk_shape(h),
                               h.basis_r.strides, h.basis_l.strides, entries, op, result)


def _gemm_recursive_lazy_dense(i_k: int, N_k: int, K: int, J: int, val: complex,
                               shape: list[int], strides_k: np.ndarray, strides_j: np.ndarray,
                               entries: dict, op: np.ndarray, result: np.ndarray):
    """Recursively compute ``result_{JI} += sum_K h_{JK} op_{KI}``.

    `J` and `K` are the row and column offsets of `h` accumulated over the factors ``< i_k``.
    """
    if i_k == N_k:
        result[J, :] += val * op[K, :]
        return
    stride_k = strides_k[i_k]
    stride_j = strides_j[i_k]
    if i_k in entries:
        for j, k, h_jk in entries[i_k]:
            _gemm_recursive_lazy_dense(i_k + 1, N_k, K + stride_k * k, J + stride_j * j,
                                       val * h_jk, shape, strides_k, strides_j, entries, op,
                                       result)
    else:
        for k in range(shape[i_k]):
            _gemm_recursive_lazy_dense(i_k + 1, N_k, K + stride_k * k, J + stride_j * k, val,
                                       shape, strides_k, strides_j, entries, op, result)


def _gemm_recursive_dense_lazy(i_k: int, N_k: int, K: int, J: int, val: complex,
                               shape: list[int], strides_k: np.ndarray, strides_j: np.ndarray,
                               entries: dict, op: np.ndarray, result: np.ndarray):
    """Recursively compute ``result_{IK} += sum_J op_{IJ} h_{JK}``."""
    if i_k == N_k:
        result[:, K] += val * op[:, J]
        return
    stride_k = strides_k[i_k]
    stride_j = strides_j[i_k]
    if i_k in entries:
        for j, k, h_jk in entries[i_k]:
            _gemm_recursive_dense_lazy(i_k + 1, N_k, K + stride_k * k, J + stride_j * j,
                                       val * h_jk, shape, strides_k, strides_j, entries, op,
                                       result)
    else:
        for k in range(shape[i_k]):
            _gemm_recursive_dense_lazy(i_k + 1, N_k, K + stride_k * k, J + stride_j * k, val,
                                       shape, strides_k, strides_j, entries, op, result)
