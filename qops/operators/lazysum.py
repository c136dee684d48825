r"""Lazy sums of operators.

A :class:`LazySum` represents

.. math ::

    \sum_n \mathrm{factors}_n \cdot \mathrm{operators}_n

without adding the terms up. This is the natural form of a Hamiltonian built from embedded
local terms, e.g. ``h = LazyTensor(basis, basis, 0, A) + LazyTensor(basis, basis, 1, B)``.
Products with dense operands, kets and bras loop over the terms and accumulate into one
result buffer, see :func:`~qops.operators.multiplication.multiply_accumulate`.
"""
# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

from collections.abc import Sequence
from numbers import Number

import numpy as np
import scipy.sparse

from ..bases import Basis, DimensionMismatchError, check_samebases
from ..dummy_config import config, printoptions
from ..tools.misc import to_iterable
from ..tools.string import format_like_list, indent_lines
from ._operator import AbstractOperator
from .dense import DenseOperator
from .sparse import SparseOperator

__all__ = ['LazySum']


class LazySum(AbstractOperator):
    """Lazy evaluation of a weighted sum of operators.

    Parameters
    ----------
    factors : number | sequence of number
        One scalar weight per operator.
    operators : :class:`AbstractOperator` | sequence of :class:`AbstractOperator`
        The terms. At least one, all with the same bases. Stored by reference, not copied.

    Attributes
    ----------
    factors : list of complex
    operators : list of :class:`AbstractOperator`
    """

    def __init__(self, factors: Number | Sequence[Number],
                 operators: AbstractOperator | Sequence[AbstractOperator]):
        if isinstance(operators, AbstractOperator):
            operators = [operators]
        operators = list(operators)
        factors = [complex(f) for f in to_iterable(factors)]
        if len(operators) == 0:
            raise DimensionMismatchError('A LazySum needs at least one operator.')
        if len(factors) != len(operators):
            msg = f'Need one factor per operator: got {len(factors)} for {len(operators)} operators'
            raise DimensionMismatchError(msg)
        if config.do_input_checks:
            for op in operators:
                if not isinstance(op, AbstractOperator):
                    raise TypeError(f'Terms must be operators. Got {type(op).__name__}')
                check_samebases(operators[0], op)
        AbstractOperator.__init__(self, operators[0].basis_l, operators[0].basis_r)
        self.factors = factors
        self.operators = operators

    @classmethod
    def from_operators(cls, *operators: AbstractOperator) -> LazySum:
        """The plain sum of the given operators, i.e. all factors are 1."""
        return cls([1.] * len(operators), operators)

    @classmethod
    def identity(cls, basis_l: Basis, basis_r: Basis = None) -> LazySum:
        """A single sparse identity term."""
        return cls([1.], [SparseOperator.identity(basis_l, basis_r)])

    def test_sanity(self):
        AbstractOperator.test_sanity(self)
        assert len(self.operators) > 0
        assert len(self.factors) == len(self.operators)
        for op in self.operators:
            assert op.basis_l == self.basis_l
            assert op.basis_r == self.basis_r
            op.test_sanity()

    @property
    def num_terms(self) -> int:
        return len(self.operators)

    def copy(self) -> LazySum:
        """A deep copy, copying every term."""
        return LazySum(list(self.factors), [op.copy() for op in self.operators])

    def to_dense(self) -> DenseOperator:
        data = np.zeros(self.shape, dtype=np.complex128)
        for f, op in zip(self.factors, self.operators):
            data += f * op.to_dense().data
        return DenseOperator(self.basis_l, self.basis_r, data)

    def to_sparse(self) -> SparseOperator:
        data = scipy.sparse.csc_matrix(self.shape, dtype=np.complex128)
        for f, op in zip(self.factors, self.operators):
            data = data + f * op.to_sparse().data
        return SparseOperator(self.basis_l, self.basis_r, data.tocsc())

    def dagger(self) -> LazySum:
        return LazySum([np.conj(f) for f in self.factors], [op.dagger() for op in self.operators])

    def trace(self) -> complex:
        self.check_square()
        return sum((f * op.trace() for f, op in zip(self.factors, self.operators)), 0.j)

    def ptrace(self, indices) -> LazySum | complex:
        """The sum of the partial traces of the terms.

        Tracing all factors gives the scalar trace.
        """
        reduced = [op.ptrace(indices) for op in self.operators]
        if all(isinstance(r, Number) for r in reduced):
            return sum((f * r for f, r in zip(self.factors, reduced)), 0.j)
        return LazySum(list(self.factors), reduced)

    def tensor(self, other: AbstractOperator) -> LazySum:
        """The tensor product ``self ⊗ other``, distributed over the terms of both."""
        if isinstance(other, LazySum):
            factors = [f * g for f in self.factors for g in other.factors]
            operators = [a.tensor(b) for a in self.operators for b in other.operators]
            return LazySum(factors, operators)
        return LazySum(list(self.factors), [op.tensor(other) for op in self.operators])

    def permutesystems(self, perm: Sequence[int]) -> LazySum:
        return LazySum(list(self.factors), [op.permutesystems(perm) for op in self.operators])

    def _scaled(self, factor: Number) -> LazySum:
        return LazySum([f * factor for f in self.factors], self.operators)

    def __add__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        check_samebases(self, other)
        if isinstance(other, LazySum):
            return LazySum(self.factors + other.factors, self.operators + other.operators)
        return LazySum(self.factors + [1.], self.operators + [other])

    def __radd__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        check_samebases(other, self)
        return LazySum([1.] + self.factors, [other] + self.operators)

    def __sub__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        return self + (-other)

    def __rsub__(self, other):
        if not isinstance(other, AbstractOperator):
            return NotImplemented
        return (-self).__radd__(other)

    def __eq__(self, other):
        if not isinstance(other, LazySum):
            return NotImplemented
        return (self.basis_l == other.basis_l and self.basis_r == other.basis_r
                and self.factors == other.factors
                and len(self.operators) == len(other.operators)
                and all(a == b for a, b in zip(self.operators, other.operators)))

    def __repr__(self):
        head = (f'{type(self).__name__}({self.basis_l!r}, {self.basis_r!r}, '
                f'factors={format_like_list(self.factors)}')
        if printoptions.skip_data:
            return head + ')'
        lines = [head + ', operators=[']
        for op in self.operators:
            lines.append(indent_lines(repr(op), printoptions.indent) + ',')
        lines.append('])')
        if len(lines) > printoptions.maxlines_operators:
            return head + ')'
        return '\n'.join(lines)
