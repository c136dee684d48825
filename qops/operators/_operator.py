"""The common interface of all operators."""
# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

import warnings
from abc import ABCMeta, abstractmethod
from numbers import Number
from typing import TYPE_CHECKING

import numpy as np

from ..bases import Basis, OperatorError, check_samebases

if TYPE_CHECKING:
    from .dense import DenseOperator
    from .sparse import SparseOperator


class UnsupportedRepresentationError(OperatorError, TypeError):
    """Raised if no specialized kernel exists for the given operator representation.

    The caller should materialize the offending operator, e.g. via :meth:`~AbstractOperator.to_dense`.
    """

    pass


class AbstractOperator(metaclass=ABCMeta):
    """Common base class for linear maps from :attr:`basis_r` to :attr:`basis_l`.

    Attributes
    ----------
    basis_l, basis_r : :class:`~qops.bases.Basis`
        The basis of the image / of the domain.
    """

    def __init__(self, basis_l: Basis, basis_r: Basis):
        if not isinstance(basis_l, Basis) or not isinstance(basis_r, Basis):
            raise TypeError('basis_l and basis_r must be Basis instances.')
        self.basis_l = basis_l
        self.basis_r = basis_r

    def test_sanity(self):
        self.basis_l.test_sanity()
        self.basis_r.test_sanity()

    @property
    def shape(self) -> tuple[int, int]:
        """The shape of the matrix representation."""
        return (len(self.basis_l), len(self.basis_r))

    @property
    def is_square(self) -> bool:
        """If the left and right bases are equal."""
        return self.basis_l == self.basis_r

    @abstractmethod
    def copy(self) -> AbstractOperator:
        """An independent copy."""
        ...

    @abstractmethod
    def to_dense(self) -> DenseOperator:
        """Materialize as a :class:`~qops.operators.dense.DenseOperator`."""
        ...

    @abstractmethod
    def to_sparse(self) -> SparseOperator:
        """Materialize as a :class:`~qops.operators.sparse.SparseOperator`."""
        ...

    @abstractmethod
    def dagger(self) -> AbstractOperator:
        """The hermitian conjugate, mapping ``basis_l -> basis_r``."""
        ...

    @abstractmethod
    def trace(self) -> complex:
        """The trace. Requires ``basis_l == basis_r``."""
        ...

    @abstractmethod
    def ptrace(self, indices) -> AbstractOperator | complex:
        """The partial trace over the factors at the given (0-based) positions."""
        ...

    @abstractmethod
    def tensor(self, other: AbstractOperator) -> AbstractOperator:
        """The tensor product ``self ⊗ other``."""
        ...

    @abstractmethod
    def permutesystems(self, perm) -> AbstractOperator:
        """Reorder the composite factors, such that factor ``n`` of the result is ``perm[n]``."""
        ...

    @abstractmethod
    def _scaled(self, factor: Number) -> AbstractOperator:
        """A new operator, multiplied by the scalar `factor`."""
        ...

    def normalize(self) -> AbstractOperator:
        """A copy, divided by its trace.

        An operator with vanishing trace can not be normalized. It is returned unchanged
        with a :class:`RuntimeWarning`.
        """
        tr = self.trace()
        if tr == 0:
            warnings.warn(f'Can not normalize {type(self).__name__} with zero trace.',
                          RuntimeWarning, stacklevel=2)
            return self
        return self / tr

    def check_square(self):
        check_samebases(self.basis_l, self.basis_r)

    def __mul__(self, other):
        if isinstance(other, Number):
            return self._scaled(other)
        from .multiplication import multiply
        return multiply(self, other)

    def __rmul__(self, other):
        if isinstance(other, Number):
            return self._scaled(other)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, Number):
            return self._scaled(1. / other)
        return NotImplemented

    def __neg__(self):
        return self._scaled(-1)

    def __pos__(self):
        return self


def _scale_result(result: np.ndarray, beta: Number):
    """The beta part of ``result = alpha * a * b + beta * result``, in place.

    ``beta == 0`` overwrites (so NaNs in an uninitialized buffer do not propagate),
    ``beta == 1`` leaves the buffer untouched.
    """
    if beta == 0:
        result.fill(0)
    elif beta != 1:
        result *= beta
