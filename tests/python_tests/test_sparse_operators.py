# Copyright (C) TeNPy Developers, Apache license
import numpy as np
import numpy.testing as npt
import pytest
import scipy.sparse

from qops import (CompositeBasis, DenseOperator, DimensionMismatchError, GenericBasis,
                  IncompatibleBasesError, SparseOperator, dagger, diagonaloperator, tensor, to_dense,
                  to_sparse, trace)
from qops.testing import assert_operators_almost_equal


def test_SparseOperator(make_sparse):
    b2, b3 = GenericBasis(2), GenericBasis(3)
    op = make_sparse(b3, b2, density=0.5)
    op.test_sanity()
    assert op.shape == (3, 2)
    assert scipy.sparse.isspmatrix_csc(op.data)
    _ = repr(op)

    print('checking conversions')
    dense = to_dense(op)
    assert isinstance(dense, DenseOperator)
    npt.assert_array_equal(dense.data, op.data.toarray())
    back = to_sparse(dense)
    assert isinstance(back, SparseOperator)
    assert back == op
    assert SparseOperator(b3, b2, dense.data) == op
    zero = SparseOperator(b2)
    assert zero.data.nnz == 0
    with pytest.raises(DimensionMismatchError):
        SparseOperator(b2, b3, np.zeros((3, 3)))

    print('checking copy')
    op2 = op.copy()
    assert op2 == op
    op2.data[0, 0] = 17.
    assert op2 != op

    print('checking arithmetic')
    npt.assert_allclose((op + op).to_dense().data, 2 * dense.data)
    npt.assert_allclose((op - op).to_dense().data, 0)
    npt.assert_allclose((3 * op).to_dense().data, 3 * dense.data)
    npt.assert_allclose((op / 4).to_dense().data, dense.data / 4)
    with pytest.raises(IncompatibleBasesError):
        _ = op + make_sparse(b2, b3)


def test_nonzero_entries(make_sparse, make_dense):
    b3, b4 = GenericBasis(3), GenericBasis(4)
    op = make_sparse(b3, b4, density=0.4)
    rebuilt = np.zeros(op.shape, dtype=complex)
    for j, k, val in op.nonzero_entries():
        rebuilt[j, k] += val
    npt.assert_array_equal(rebuilt, op.data.toarray())
    assert len(list(op.nonzero_entries())) == op.data.nnz

    dense = make_dense(b3, b4)
    entries = list(dense.nonzero_entries())
    assert len(entries) == 12
    for j, k, val in entries:
        assert dense.data[j, k] == val

    print('checking that exact zeros of dense operators are skipped')
    data = np.array([[0, 2.], [0, 0], [1.j, 0]])
    entries = list(DenseOperator(b3, GenericBasis(2), data).nonzero_entries())
    assert entries == [(2, 0, 1.j), (0, 1, 2.)]
    assert list(DenseOperator(b3).nonzero_entries()) == []


def test_dagger_trace_tensor_sparse(make_sparse, make_dense):
    b2, b3 = GenericBasis(2), GenericBasis(3)
    a = make_sparse(b2, density=0.7)
    b = make_sparse(b3, density=0.5)
    npt.assert_allclose(dagger(b).to_dense().data, np.conj(b.data.toarray().T))
    npt.assert_allclose(trace(b), np.trace(b.data.toarray()))

    ab = tensor(a, b)
    assert isinstance(ab, SparseOperator)
    assert ab.basis_l == CompositeBasis([b2, b3])
    assert_operators_almost_equal(ab, tensor(a.to_dense(), b.to_dense()))

    print('checking mixed tensor products')
    c = make_dense(b3)
    ac = tensor(a, c)
    assert isinstance(ac, DenseOperator)
    assert_operators_almost_equal(ac, tensor(a.to_dense(), c))


def test_sparse_products(make_sparse, make_dense):
    b2, b3 = GenericBasis(2), GenericBasis(3)
    a = make_sparse(b2, b3, density=0.6)
    b = make_sparse(b3, b2, density=0.6)
    d = make_dense(b3, b2)
    ab = a * b
    assert isinstance(ab, SparseOperator)
    npt.assert_allclose(ab.to_dense().data, a.data.toarray() @ b.data.toarray())
    ad = a * d
    assert isinstance(ad, DenseOperator)
    npt.assert_allclose(ad.data, a.data.toarray() @ d.data)
    da = d * a
    assert isinstance(da, DenseOperator)
    npt.assert_allclose(da.data, d.data @ a.data.toarray())
    with pytest.raises(IncompatibleBasesError):
        _ = a * a


def test_diagonaloperator():
    b3 = GenericBasis(3)
    op = diagonaloperator(b3, [1, 2.j, 3])
    assert isinstance(op, SparseOperator)
    npt.assert_array_equal(op.to_dense().data, np.diag([1, 2.j, 3]))
    npt.assert_allclose(trace(op), 4 + 2.j)
    with pytest.raises(DimensionMismatchError):
        diagonaloperator(b3, [1, 2])
