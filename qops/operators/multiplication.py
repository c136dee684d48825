"""Products of operators and states.

:func:`multiply_accumulate` is the in-place primitive, ``result = alpha * a * b + beta * result``,
dispatching on the representations of `a` and `b`:

=======================  =======================  ==============  ===========================
a                        b                        result          kernel
=======================  =======================  ==============  ===========================
DenseOperator            DenseOperator            DenseOperator   numpy matmul
SparseOperator           DenseOperator            DenseOperator   scipy sparse @ dense
DenseOperator            SparseOperator           DenseOperator   scipy sparse @ dense
LazyTensor               DenseOperator            DenseOperator   :func:`gemm_lazy_dense`
DenseOperator            LazyTensor               DenseOperator   :func:`gemm_dense_lazy`
Dense/Sparse/LazyTensor  Ket                      Ket             as above, on a column view
Bra                      Dense/Sparse/LazyTensor  Bra             as above, on a row view
LazySum                  any of the above         as above        loop over the terms
any of the above         LazySum                  as above        loop over the terms
=======================  =======================  ==============  ===========================

Any other combination raises :class:`UnsupportedRepresentationError`.
:func:`multiply` allocates the result. It keeps products of two sparse operators sparse and
products of two lazy tensors lazy. A product of a :class:`LazySum` with a sparse or lazy
operator is distributed over the terms and stays a :class:`LazySum`.
"""
# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

import logging
from numbers import Number

from ..bases import check_multiplicable, check_samebases
from ..dummy_config import config
from ..states import Bra, Ket
from ._operator import AbstractOperator, UnsupportedRepresentationError, _scale_result
from .dense import DenseOperator
from .lazysum import LazySum
from .lazytensor import LazyTensor, gemm_dense_lazy, gemm_lazy_dense
from .sparse import SparseOperator

__all__ = ['multiply', 'multiply_accumulate']

logger = logging.getLogger(__name__)


def multiply(a, b):
    """The product ``a * b`` as a new object.

    Parameters
    ----------
    a, b : :class:`AbstractOperator` | :class:`~qops.states.Ket` | :class:`~qops.states.Bra` | number
        The factors. Kets only appear on the right, bras only on the left.

    Returns
    -------
    The product. A number for ``bra * ket``, a :class:`~qops.states.Ket` for ``op * ket``,
    a :class:`~qops.states.Bra` for ``bra * op``, otherwise an operator.
    """
    if isinstance(a, Number) or isinstance(b, Number):
        return a * b
    if isinstance(a, Bra) and isinstance(b, Ket):
        return a * b
    if not isinstance(a, (AbstractOperator, Bra)) or not isinstance(b, (AbstractOperator, Ket)):
        raise TypeError(f'Can not multiply {_names(a, b)}.')
    if config.check_bases_in_products:
        check_multiplicable(a, b)
    if isinstance(a, LazySum) and isinstance(b, LazySum):
        raise UnsupportedRepresentationError(f'No kernel for {_names(a, b)}.')
    if isinstance(a, LazySum) and isinstance(b, (SparseOperator, LazyTensor)):
        return LazySum(a.factors, [multiply(op, b) for op in a.operators])
    if isinstance(b, LazySum) and isinstance(a, (SparseOperator, LazyTensor)):
        return LazySum(b.factors, [multiply(a, op) for op in b.operators])
    if isinstance(a, LazyTensor) and isinstance(b, LazyTensor):
        return a._multiply_lazy(b)
    if isinstance(a, SparseOperator) and isinstance(b, SparseOperator):
        return SparseOperator(a.basis_l, b.basis_r, (a.data @ b.data).tocsc())
    if isinstance(b, Ket):
        result = Ket(a.basis_l)
    elif isinstance(a, Bra):
        result = Bra(b.basis_r)
    else:
        if isinstance(a, (LazyTensor, LazySum)) or isinstance(b, (LazyTensor, LazySum)):
            logger.debug('Allocating a dense %d x %d result for a lazy product',
                         len(a.basis_l), len(b.basis_r))
        result = DenseOperator(a.basis_l, b.basis_r)
    multiply_accumulate(1., a, b, 0., result)
    return result


def multiply_accumulate(alpha: Number, a, b, beta: Number, result):
    """In place ``result = alpha * a * b + beta * result``.

    Parameters
    ----------
    alpha, beta : number
        Scalars. ``beta == 0`` overwrites `result` (ignoring its previous content, even NaN),
        ``beta == 1`` accumulates onto it.
    a, b
        The factors. See the module docstring for the supported combinations.
    result : :class:`DenseOperator` | :class:`~qops.states.Ket` | :class:`~qops.states.Bra`
        The output buffer. Its data is modified in place and must not share memory with the
        data of `a` or `b`.

    Raises
    ------
    UnsupportedRepresentationError
        If there is no kernel for the combination of representations.
    IncompatibleBasesError
        If the bases of `a`, `b` and `result` do not match.
    """
    if isinstance(a, LazySum) or isinstance(b, LazySum):
        return _accumulate_terms(alpha, a, b, beta, result)
    if isinstance(b, Ket):
        if not isinstance(result, Ket):
            raise UnsupportedRepresentationError(f'Need a Ket result for {_names(a, b)}.')
        B = b.data.reshape(-1, 1)
        R = result.data.reshape(-1, 1)
        result_bases = (result.basis, None)
    elif isinstance(a, Bra):
        if not isinstance(result, Bra):
            raise UnsupportedRepresentationError(f'Need a Bra result for {_names(a, b)}.')
        R = result.data.reshape(1, -1)
        result_bases = (None, result.basis)
    elif isinstance(result, DenseOperator):
        R = result.data
        result_bases = (result.basis_l, result.basis_r)
    else:
        msg = f'Can not accumulate {_names(a, b)} into a {type(result).__name__}.'
        raise UnsupportedRepresentationError(msg)
    if config.check_bases_in_products:
        check_multiplicable(a, b)
        if result_bases[0] is not None:
            check_samebases(result_bases[0], a.basis_l)
        if result_bases[1] is not None:
            check_samebases(result_bases[1], b.basis_r)

    if isinstance(a, Bra):
        A = a.data.reshape(1, -1)
    elif isinstance(a, DenseOperator):
        A = a.data
    else:
        A = None
    if not isinstance(b, Ket):
        B = b.data if isinstance(b, DenseOperator) else None

    if A is not None and B is not None:
        _scale_result(R, beta)
        R += alpha * (A @ B)
    elif isinstance(a, SparseOperator) and B is not None:
        _scale_result(R, beta)
        R += alpha * (a.data @ B)
    elif A is not None and isinstance(b, SparseOperator):
        _scale_result(R, beta)
        # sparse @ dense is the efficient direction
        R += alpha * (b.data.T @ A.T).T
    elif isinstance(a, LazyTensor) and B is not None:
        gemm_lazy_dense(alpha, a, B, beta, R)
    elif A is not None and isinstance(b, LazyTensor):
        gemm_dense_lazy(alpha, A, b, beta, R)
    else:
        msg = f'No kernel for {_names(a, b)}. Materialize one of them first.'
        raise UnsupportedRepresentationError(msg)
    return result


def _accumulate_terms(alpha: Number, a, b, beta: Number, result):
    """:func:`multiply_accumulate` for a :class:`LazySum` on one side, term by term."""
    if isinstance(a, LazySum) and isinstance(b, LazySum):
        raise UnsupportedRepresentationError(f'No kernel for {_names(a, b)}.')
    lazy_sum = a if isinstance(a, LazySum) else b
    for n, (f, op) in enumerate(zip(lazy_sum.factors, lazy_sum.operators)):
        # the first term applies beta, the others accumulate
        term_beta = beta if n == 0 else 1.
        if lazy_sum is a:
            multiply_accumulate(alpha * f, op, b, term_beta, result)
        else:
            multiply_accumulate(alpha * f, a, op, term_beta, result)
    return result


def _names(a, b) -> str:
    return f'{type(a).__name__} * {type(b).__name__}'
