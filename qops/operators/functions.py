"""Functional interface for operators, states and bases.

The functions here dispatch to the methods of the respective representation, such that
code can be written independent of whether an operator is dense, sparse or lazy.
"""
# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

from collections.abc import Sequence
from functools import reduce

from .. import bases
from ..bases import Basis
from ..states import StateVector
from ._operator import AbstractOperator
from .dense import DenseOperator, ptrace_dense
from .lazysum import LazySum
from .lazytensor import LazyTensor, as_lazy
from .sparse import SparseOperator

__all__ = ['dagger', 'trace', 'ptrace', 'tensor', 'permutesystems', 'normalize', 'to_dense',
           'to_sparse', 'identityoperator']


def dagger(x: AbstractOperator | StateVector) -> AbstractOperator | StateVector:
    """Hermitian conjugate. Turns kets into bras and vice versa."""
    return x.dagger()


def trace(op: AbstractOperator) -> complex:
    return op.trace()


def ptrace(x: AbstractOperator | StateVector, indices: int | Sequence[int]
           ) -> AbstractOperator | complex:
    """Partial trace over the factors at the given (0-based) positions.

    Parameters
    ----------
    x : :class:`AbstractOperator` | :class:`~qops.states.StateVector`
        The operator. A ket or bra is traced as its density matrix.
    indices : int | sequence of int
        The factors to trace out. Unique, but not necessarily sorted.

    Returns
    -------
    The reduced operator, or the full trace (a complex number) if all factors are traced.
    The representation of the result follows the input, except that a lazy tensor reduced
    to a single factor returns that (scaled) suboperator.
    """
    if isinstance(x, StateVector):
        return ptrace_dense(x, indices)
    return x.ptrace(indices)


def tensor(*args):
    """Tensor product of bases, states or operators, ``args[0] ⊗ args[1] ⊗ ...``.

    The first factor varies the fastest in the resulting composite index.
    Lazy tensors combined with operators on single factors stay lazy. Lazy sums are
    distributed over their terms.
    """
    if len(args) == 0:
        raise ValueError('Need at least one argument.')
    if all(isinstance(a, Basis) for a in args):
        return bases.tensor(*args)
    return reduce(_tensor_pair, args)


def _tensor_pair(a, b):
    if isinstance(b, LazySum) and not isinstance(a, LazySum):
        return LazySum([1.], [a]).tensor(b)
    if isinstance(b, LazyTensor) and not isinstance(a, LazyTensor):
        a_lazy = as_lazy(a)
        if a_lazy is not None:
            return a_lazy.tensor(b)
    return a.tensor(b)


def permutesystems(x, perm: Sequence[int]):
    """Reorder the factors of a basis, state or operator, such that factor ``n`` of the
    result is factor ``perm[n]`` of `x`."""
    if isinstance(x, Basis):
        return bases.permutesystems(x, perm)
    return x.permutesystems(perm)


def normalize(x: AbstractOperator | StateVector) -> AbstractOperator | StateVector:
    """Normalize an operator to unit trace, or a state to unit norm. Returns a new object."""
    return x.normalize()


def to_dense(op: AbstractOperator) -> DenseOperator:
    return op.to_dense()


def to_sparse(op: AbstractOperator) -> SparseOperator:
    return op.to_sparse()


def identityoperator(basis_l: Basis, basis_r: Basis = None, cls: type = SparseOperator
                     ) -> AbstractOperator:
    """The identity on `basis_l`, or the rectangular identity from `basis_r` to `basis_l`.

    Parameters
    ----------
    basis_l, basis_r : :class:`~qops.bases.Basis`
        The bases. `basis_r` defaults to `basis_l`.
    cls : {:class:`SparseOperator`, :class:`DenseOperator`, :class:`LazyTensor`, :class:`LazySum`}
        The representation of the result.
    """
    return cls.identity(basis_l, basis_r)
