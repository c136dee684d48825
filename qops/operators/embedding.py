"""Embedding of local operators into composite bases, and realization of lazy tensors."""
# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import scipy.sparse

from ..bases import Basis
from ._operator import AbstractOperator
from .dense import DenseOperator
from .lazytensor import LazyTensor
from .sparse import SparseOperator

__all__ = ['embed', 'realize_dense', 'realize_sparse']

logger = logging.getLogger(__name__)


def embed(basis_l: Basis, basis_r: Basis, indices: int | Sequence[int],
          operators: AbstractOperator | Sequence[AbstractOperator]) -> LazyTensor:
    """Embed operators on some factors into the full composite bases.

    All factors not in `indices` act as identities. The result is lazy; use
    :func:`~qops.operators.functions.to_dense` or :func:`~qops.operators.functions.to_sparse`
    to materialize it.

    Parameters
    ----------
    basis_l, basis_r : :class:`~qops.bases.Basis`
        The composite bases of the result. `basis_r` may be ``None`` for ``basis_r = basis_l``.
    indices : int | sequence of int
        The (0-based) factor positions.
    operators : :class:`AbstractOperator` | sequence of :class:`AbstractOperator`
        One operator per index, acting on the respective factor.
    """
    return LazyTensor(basis_l, basis_r, indices, operators)


def _blocks(h: LazyTensor, as_block, eye):
    touched = dict(zip(h.indices, h.operators))
    for i, (b_l, b_r) in enumerate(zip(h.basis_l.bases, h.basis_r.bases)):
        if i in touched:
            yield as_block(touched[i])
        else:
            yield eye(len(b_l), len(b_r))


def realize_dense(h: LazyTensor) -> DenseOperator:
    """The dense matrix ``factor * (A_0 ⊗ A_1 ⊗ ...)``, identities on untouched factors."""
    logger.debug('Realizing %s on %d factors as a dense %d x %d matrix', type(h).__name__,
                 h.num_factors, *h.shape)
    data = np.ones((1, 1), dtype=np.complex128)
    blocks = _blocks(h, lambda op: op.to_dense().data,
                     lambda n_l, n_r: np.eye(n_l, n_r, dtype=np.complex128))
    for block in blocks:
        # first factor varies the fastest
        data = np.kron(block, data)
    return DenseOperator(h.basis_l, h.basis_r, h.factor * data)


def realize_sparse(h: LazyTensor) -> SparseOperator:
    """Like :func:`realize_dense`, but with :func:`scipy.sparse.kron`."""
    logger.debug('Realizing %s on %d factors as a sparse %d x %d matrix', type(h).__name__,
                 h.num_factors, *h.shape)
    data = scipy.sparse.csc_matrix(np.ones((1, 1), dtype=np.complex128))
    blocks = _blocks(h, lambda op: op.to_sparse().data,
                     lambda n_l, n_r: scipy.sparse.eye(n_l, n_r, dtype=np.complex128, format='csc'))
    for block in blocks:
        data = scipy.sparse.kron(block, data, format='csc')
    return SparseOperator(h.basis_l, h.basis_r, h.factor * data)
