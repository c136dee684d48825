"""Bases, i.e. the descriptors of the (composite) spaces that operators and states act on.

A basis only carries the structural information needed for the operator algebra: the
ordered dimensions of its factors. Two objects can only be combined if their bases compare
equal; equality is structural.

Positions of factors in a :class:`CompositeBasis` are 0-based. Linear offsets into a
composite space vary the *first* factor the fastest, i.e. the strides are
``make_stride(shape, cstyle=False)``, see :func:`~qops.tools.misc.make_stride`.
"""
# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

from abc import ABCMeta, abstractmethod
from collections.abc import Sequence
from math import prod

import numpy as np

from .dummy_config import printoptions
from .tools.misc import duplicate_entries, is_permutation, make_stride, to_iterable
from .tools.string import format_like_list


class OperatorError(Exception):
    """Common base class for the errors raised by the operator algebra."""

    pass


class DimensionMismatchError(OperatorError, ValueError):
    """Raised when a constructor gets data or suboperators that do not fit the given bases."""

    pass


class IncompatibleBasesError(OperatorError, ValueError):
    """Raised when combining objects whose bases are not (structurally) equal."""

    pass


class InvalidIndexSetError(OperatorError, IndexError):
    """Raised for out-of-range, duplicate or otherwise invalid factor positions."""

    pass


class Basis(metaclass=ABCMeta):
    """Common base class for the basis of a finite dimensional vector space.

    Attributes
    ----------
    shape : tuple of int
        The dimensions of the factors. A single entry for non-composite bases.
    """

    def __init__(self, shape: Sequence[int]):
        self.shape = tuple(int(n) for n in shape)

    def test_sanity(self):
        assert len(self.shape) > 0
        assert all(n > 0 for n in self.shape), 'dimensions must be positive'

    @property
    def dim(self) -> int:
        """The total dimension, i.e. the product of the :attr:`shape`."""
        return prod(self.shape)

    @property
    def num_factors(self) -> int:
        return len(self.shape)

    @property
    def strides(self) -> np.ndarray:
        """The strides of the linear offsets, first factor fastest."""
        return make_stride(self.shape, cstyle=False)

    def __len__(self):
        return self.dim

    @abstractmethod
    def __eq__(self, other):
        ...

    @abstractmethod
    def __hash__(self):
        ...


class GenericBasis(Basis):
    """A basis that is only characterized by its dimension.

    Parameters
    ----------
    dim : int
        The dimension of the space.
    """

    def __init__(self, dim: int):
        dim = int(dim)
        if dim <= 0:
            raise ValueError(f'Basis dimension must be positive. Got {dim}')
        Basis.__init__(self, [dim])

    def __eq__(self, other):
        if not isinstance(other, Basis):
            return NotImplemented
        return type(self) is type(other) and self.shape == other.shape

    def __hash__(self):
        return hash((type(self).__name__, self.shape))

    def __repr__(self):
        return f'{type(self).__name__}({self.dim})'


class CompositeBasis(Basis):
    """The tensor product of several bases.

    Nested composite bases are flattened, such that :attr:`bases` only contains
    non-composite factors.

    Parameters
    ----------
    bases : sequence of :class:`Basis`
        The factors, in order.

    Attributes
    ----------
    bases : tuple of :class:`Basis`
        The non-composite factors.
    """

    def __init__(self, bases: Sequence[Basis]):
        if isinstance(bases, Basis):
            bases = [bases]
        flat = []
        for b in bases:
            if isinstance(b, CompositeBasis):
                flat.extend(b.bases)
            elif isinstance(b, Basis):
                flat.append(b)
            else:
                raise TypeError(f'Expected Basis instances. Got {type(b).__name__}')
        if len(flat) == 0:
            raise ValueError('A CompositeBasis needs at least one factor.')
        self.bases = tuple(flat)
        Basis.__init__(self, [len(b) for b in flat])

    def test_sanity(self):
        for b in self.bases:
            assert not isinstance(b, CompositeBasis)
            b.test_sanity()
        assert self.shape == tuple(len(b) for b in self.bases)
        Basis.test_sanity(self)

    def __eq__(self, other):
        if not isinstance(other, Basis):
            return NotImplemented
        if not isinstance(other, CompositeBasis):
            return False
        return self.bases == other.bases

    def __hash__(self):
        return hash(('CompositeBasis', self.bases))

    def __getitem__(self, idx):
        return self.bases[idx]

    def __iter__(self):
        return iter(self.bases)

    def __repr__(self):
        res = f'{type(self).__name__}({format_like_list(map(repr, self.bases))})'
        if len(res) <= printoptions.linewidth:
            return res
        return f'{type(self).__name__}(shape={format_like_list(self.shape)})'


def as_composite(basis: Basis) -> CompositeBasis:
    """Wrap a non-composite basis as a composite basis with a single factor."""
    if isinstance(basis, CompositeBasis):
        return basis
    if not isinstance(basis, Basis):
        raise TypeError(f'Expected a Basis. Got {type(basis).__name__}')
    return CompositeBasis([basis])


def factors(basis: Basis) -> tuple[Basis, ...]:
    """The non-composite factors of a basis, a single one if `basis` is not composite."""
    if isinstance(basis, CompositeBasis):
        return basis.bases
    return (basis,)


def tensor(*bases: Basis) -> CompositeBasis:
    """The composite basis of the tensor product ``bases[0] ⊗ bases[1] ⊗ ...``."""
    if len(bases) == 0:
        raise ValueError('Need at least one basis.')
    return CompositeBasis(bases)


def check_indices(N: int, indices: Sequence[int]):
    """Check that `indices` are valid, unique factor positions into ``range(N)``.

    Raises
    ------
    InvalidIndexSetError
        If any index is out of range or appears more than once.
    """
    indices = list(indices)
    for i in indices:
        if not 0 <= i < N:
            msg = f'Factor position {i} out of range for {N} factors.'
            raise InvalidIndexSetError(msg)
    duplicates = duplicate_entries(indices)
    if duplicates:
        msg = f'Duplicate factor positions: {format_like_list(sorted(duplicates))}'
        raise InvalidIndexSetError(msg)


def parse_indices(indices) -> list[int]:
    """Convert an int or a sequence of ints to a list of factor positions."""
    res = []
    for i in to_iterable(indices):
        if isinstance(i, (bool, np.bool_)) or not isinstance(i, (int, np.integer)):
            raise InvalidIndexSetError(f'Factor positions must be integers. Got {i!r}')
        res.append(int(i))
    return res


def ptrace(basis: Basis, indices: int | Sequence[int]) -> Basis:
    """The basis that remains after tracing out the factors at the given positions.

    If exactly one factor remains, that factor itself (not a composite wrapper) is returned.

    Raises
    ------
    InvalidIndexSetError
        If the positions are invalid, or if all factors would be removed.
    """
    basis = as_composite(basis)
    indices = parse_indices(indices)
    check_indices(basis.num_factors, indices)
    remaining = [b for n, b in enumerate(basis.bases) if n not in indices]
    if len(remaining) == 0:
        raise InvalidIndexSetError('Can not remove all factors of a basis.')
    if len(remaining) == 1:
        return remaining[0]
    return CompositeBasis(remaining)


def permutesystems(basis: Basis, perm: Sequence[int]) -> Basis:
    """Reorder the factors, such that factor ``n`` of the result is ``basis.bases[perm[n]]``."""
    perm = [int(p) for p in perm]
    if not is_permutation(perm, basis.num_factors):
        msg = f'Not a permutation of {basis.num_factors} factors: {format_like_list(perm)}'
        raise InvalidIndexSetError(msg)
    if not isinstance(basis, CompositeBasis):
        return basis
    return CompositeBasis([basis.bases[p] for p in perm])


def samebases(a, b) -> bool:
    """If `a` and `b` (bases, or objects with bases) have equal bases."""
    if isinstance(a, Basis) and isinstance(b, Basis):
        return a == b
    return _bases_of(a) == _bases_of(b)


def check_samebases(a, b):
    """Raise :class:`IncompatibleBasesError` unless :func:`samebases`."""
    if not samebases(a, b):
        msg = f'Bases are not equal: {_describe(a)} vs. {_describe(b)}'
        raise IncompatibleBasesError(msg)


def check_multiplicable(a, b):
    """Raise :class:`IncompatibleBasesError` unless ``a * b`` is well-defined.

    That is, the right basis of `a` (or the basis of a bra) must equal the left basis of `b`
    (or the basis of a ket).
    """
    left = _right_basis(a)
    right = _left_basis(b)
    if left != right:
        msg = f'Not multiplicable: {left!r} (right side of first) vs. {right!r} (left side of second)'
        raise IncompatibleBasesError(msg)


def _bases_of(x) -> tuple[Basis, ...]:
    if isinstance(x, Basis):
        return (x,)
    if hasattr(x, 'basis_l'):
        return (x.basis_l, x.basis_r)
    return (x.basis,)


def _left_basis(x) -> Basis:
    if isinstance(x, Basis):
        return x
    if hasattr(x, 'basis_l'):
        return x.basis_l
    return x.basis


def _right_basis(x) -> Basis:
    if isinstance(x, Basis):
        return x
    if hasattr(x, 'basis_r'):
        return x.basis_r
    return x.basis


def _describe(x) -> str:
    return format_like_list(repr(b) for b in _bases_of(x))
