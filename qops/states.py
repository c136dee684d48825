"""State vectors, i.e. kets and bras, on (composite) bases."""
# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

from collections.abc import Sequence
from numbers import Number

import numpy as np

from .bases import (Basis, DimensionMismatchError, InvalidIndexSetError, as_composite,
                    check_multiplicable, check_samebases, factors, permutesystems as _permute_basis,
                    tensor as _tensor_bases)
from .dummy_config import printoptions
from .tools.misc import is_permutation, linear_offsets
from .tools.string import format_like_list

__all__ = ['StateVector', 'Ket', 'Bra', 'basisstate']


class StateVector:
    """Common base class of :class:`Ket` and :class:`Bra`.

    Parameters
    ----------
    basis : :class:`~qops.bases.Basis`
        The basis of the coefficients.
    data : 1D array_like, optional
        The coefficients. Converted to a contiguous ``complex128`` array.
        Defaults to the zero vector.

    Attributes
    ----------
    basis : :class:`~qops.bases.Basis`
    data : 1D ndarray of complex
    """

    def __init__(self, basis: Basis, data=None):
        if not isinstance(basis, Basis):
            raise TypeError(f'Expected a Basis. Got {type(basis).__name__}')
        if data is None:
            data = np.zeros(len(basis), dtype=np.complex128)
        else:
            data = np.ascontiguousarray(data, dtype=np.complex128)
        if data.ndim != 1 or data.shape[0] != len(basis):
            msg = f'data with shape {data.shape} does not fit a basis of dimension {len(basis)}'
            raise DimensionMismatchError(msg)
        self.basis = basis
        self.data = data

    def test_sanity(self):
        self.basis.test_sanity()
        assert self.data.shape == (len(self.basis),)
        assert self.data.flags['C_CONTIGUOUS']

    def copy(self):
        return type(self)(self.basis, self.data.copy())

    def norm(self) -> float:
        return float(np.linalg.norm(self.data))

    def normalize(self):
        """A normalized copy."""
        return self / self.norm()

    def normalize_(self):
        """Normalize in place. Returns ``self``."""
        self.data /= self.norm()
        return self

    def tensor(self, other: StateVector) -> StateVector:
        """The product state ``self ⊗ other`` of two kets (or two bras)."""
        if type(self) is not type(other):
            raise TypeError(f'Can not form tensor product of {type(self).__name__} and '
                            f'{type(other).__name__}')
        # first factor varies the fastest
        return type(self)(_tensor_bases(self.basis, other.basis), np.kron(other.data, self.data))

    def permutesystems(self, perm: Sequence[int]) -> StateVector:
        """Reorder the composite factors, such that factor ``n`` of the result is ``perm[n]``."""
        basis = as_composite(self.basis)
        N = basis.num_factors
        perm = [int(p) for p in perm]
        if not is_permutation(perm, N):
            raise InvalidIndexSetError(f'Not a permutation of {N} factors: {format_like_list(perm)}')
        # C-order axis ``a`` holds factor ``N - 1 - a``
        data = self.data.reshape(basis.shape[::-1])
        axes = [N - 1 - perm[N - 1 - a] for a in range(N)]
        data = np.transpose(data, axes).reshape(-1)
        return type(self)(_permute_basis(self.basis, perm), data)

    def _scaled(self, factor: Number):
        return type(self)(self.basis, factor * self.data)

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self.basis == other.basis and np.array_equal(self.data, other.data)

    def __add__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        check_samebases(self, other)
        return type(self)(self.basis, self.data + other.data)

    def __sub__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        check_samebases(self, other)
        return type(self)(self.basis, self.data - other.data)

    def __neg__(self):
        return self._scaled(-1)

    def __mul__(self, other):
        if isinstance(other, Number):
            return self._scaled(other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, Number):
            return self._scaled(other)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, Number):
            return self._scaled(1. / other)
        return NotImplemented

    def __repr__(self):
        ClsName = type(self).__name__
        if printoptions.skip_data:
            return f'{ClsName}({self.basis!r})'
        data = np.array2string(self.data, precision=printoptions.precision,
                               max_line_width=printoptions.linewidth, separator=', ')
        return f'{ClsName}({self.basis!r},\n{data})'


class Ket(StateVector):
    """Ket state ``|psi>``, given by its coefficients in a basis."""

    def dagger(self) -> Bra:
        return Bra(self.basis, np.conj(self.data))


class Bra(StateVector):
    """Bra state ``<psi|``, given by its (already conjugated) coefficients in a basis."""

    def dagger(self) -> Ket:
        return Ket(self.basis, np.conj(self.data))

    def __mul__(self, other):
        if isinstance(other, Ket):
            check_multiplicable(self, other)
            return complex(np.dot(self.data, other.data))
        if isinstance(other, Number):
            return self._scaled(other)
        from .operators.multiplication import multiply
        return multiply(self, other)


def basisstate(basis: Basis, index: int | Sequence[int]) -> Ket:
    """The ket of a single basis vector.

    Parameters
    ----------
    basis : :class:`~qops.bases.Basis`
        The basis.
    index : int | sequence of int
        Either the (0-based) linear offset into ``range(len(basis))``, or one index per
        factor of a composite basis, giving the product state ``|i_0> ⊗ |i_1> ⊗ ...``.
    """
    data = np.zeros(len(basis), dtype=np.complex128)
    if isinstance(index, (int, np.integer)):
        if not 0 <= index < len(basis):
            raise InvalidIndexSetError(f'Index {index} out of range for dimension {len(basis)}')
        data[index] = 1.
        return Ket(basis, data)
    index = [int(i) for i in index]
    shape = [len(b) for b in factors(basis)]
    if len(index) != len(shape):
        msg = f'Need one index per factor: got {len(index)} for {len(shape)} factors'
        raise InvalidIndexSetError(msg)
    for i, n in zip(index, shape):
        if not 0 <= i < n:
            raise InvalidIndexSetError(f'Index {i} out of range for factor dimension {n}')
    data[linear_offsets(index, as_composite(basis).strides)] = 1.
    return Ket(basis, data)
