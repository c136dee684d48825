# Copyright (C) TeNPy Developers, Apache license
import warnings

import numpy as np
import numpy.testing as npt
import pytest
import scipy.linalg

from qops import (CompositeBasis, DenseOperator, DimensionMismatchError, GenericBasis,
                  IncompatibleBasesError, InvalidIndexSetError, Ket, SparseOperator, dagger, dm,
                  expect, identityoperator, normalize, permutesystems, projector, ptranspose,
                  tensor, trace)
from qops.testing import assert_operators_almost_equal


def test_DenseOperator(make_dense):
    b2, b3 = GenericBasis(2), GenericBasis(3)
    op = make_dense(b2, b3)
    op.test_sanity()
    assert op.shape == (2, 3)
    assert not op.is_square
    assert op.data.dtype == np.complex128
    _ = repr(op)

    print('checking default (zero) data and sparse input')
    zero = DenseOperator(b3)
    npt.assert_array_equal(zero.data, np.zeros((3, 3)))
    from_sparse = DenseOperator(b2, b3, op.to_sparse().data)
    assert from_sparse == op
    with pytest.raises(DimensionMismatchError):
        DenseOperator(b2, b3, np.zeros((3, 2)))

    print('checking copy')
    op2 = op.copy()
    assert op2 == op
    op2.data[0, 0] += 1
    assert op2 != op

    print('checking arithmetic')
    npt.assert_allclose((op + op).data, 2 * op.data)
    npt.assert_allclose((op - op).data, 0)
    npt.assert_allclose((2.j * op).data, 2.j * op.data)
    npt.assert_allclose((op / 2).data, op.data / 2)
    npt.assert_allclose((-op).data, -op.data)
    npt.assert_allclose((op + op.to_sparse()).data, 2 * op.data)
    with pytest.raises(IncompatibleBasesError):
        _ = op + make_dense(b2, b2)


def test_dagger_trace(make_dense):
    b2, b3 = GenericBasis(2), GenericBasis(3)
    op = make_dense(b2, b3)
    op_dag = dagger(op)
    assert op_dag.basis_l == b3
    assert op_dag.basis_r == b2
    npt.assert_array_equal(op_dag.data, np.conj(op.data.T))
    with pytest.raises(IncompatibleBasesError):
        trace(op)
    sq = make_dense(b3)
    npt.assert_allclose(trace(sq), np.trace(sq.data))
    assert sq.dagger().dagger() == sq


def test_tensor_dense(make_dense):
    b2, b3 = GenericBasis(2), GenericBasis(3)
    a = make_dense(b2)
    b = make_dense(b3, b2)
    ab = tensor(a, b)
    assert ab.basis_l == CompositeBasis([b2, b3])
    assert ab.basis_r == CompositeBasis([b2, b2])
    # first factor varies the fastest
    npt.assert_allclose(ab.data, np.kron(b.data, a.data))
    print('checking consistency with product states')
    psi_a = Ket(b2, [1, 2.j])
    psi_b = Ket(b2, [0.5, -1])
    npt.assert_allclose((ab * tensor(psi_a, psi_b)).data, tensor(a * psi_a, b * psi_b).data)


def test_permutesystems_dense(make_dense):
    b2, b3, b4 = GenericBasis(2), GenericBasis(3), GenericBasis(4)
    ops = [make_dense(b) for b in [b2, b3, b4]]
    op = tensor(*ops)
    for perm in [[0, 1, 2], [2, 0, 1], [1, 0, 2], [2, 1, 0]]:
        print(f'perm={perm}')
        res = permutesystems(op, perm)
        expect_op = tensor(*[ops[p] for p in perm])
        assert_operators_almost_equal(res, expect_op)
        res_sparse = permutesystems(op.to_sparse(), perm)
        assert isinstance(res_sparse, SparseOperator)
        assert_operators_almost_equal(res_sparse, expect_op)
    with pytest.raises(InvalidIndexSetError):
        permutesystems(op, [0, 1, 1])


def test_dm_projector_expect(make_ket, make_dense):
    b2, b3 = GenericBasis(2), GenericBasis(3)
    basis = CompositeBasis([b2, b3])
    psi = make_ket(basis)
    rho = dm(psi)
    rho.test_sanity()
    assert rho.is_hermitian(atol=1e-14)
    npt.assert_allclose(trace(rho), 1.)
    npt.assert_allclose(rho.data, np.outer(psi.data, np.conj(psi.data)))
    npt.assert_allclose(projector(psi).data, rho.data)
    npt.assert_allclose(dm(psi.dagger()).data, rho.data)

    op = make_dense(basis)
    npt.assert_allclose(expect(op, psi), np.vdot(psi.data, op.data @ psi.data))
    npt.assert_allclose(expect(op, rho), expect(op, psi))
    npt.assert_allclose(expect(op.to_sparse(), rho), expect(op, psi))
    with pytest.raises(IncompatibleBasesError):
        expect(make_dense(b2), psi)


def test_ptranspose(make_dense):
    b2, b3 = GenericBasis(2), GenericBasis(3)
    a = make_dense(b2)
    b = make_dense(b3)
    ab = tensor(a, b)
    assert_operators_almost_equal(ptranspose(ab, 0), tensor(DenseOperator(b2, b2, a.data.T), b))
    assert_operators_almost_equal(ptranspose(ab, 1), tensor(a, DenseOperator(b3, b3, b.data.T)))
    assert_operators_almost_equal(ptranspose(ptranspose(ab, 1), 0),
                                  DenseOperator(ab.basis_l, ab.basis_r, ab.data.T))
    with pytest.raises(InvalidIndexSetError):
        ptranspose(ab, 2)


def test_normalize_expm(make_dense):
    b3 = GenericBasis(3)
    op = make_dense(b3)
    npt.assert_allclose(trace(normalize(op)), 1.)
    npt.assert_allclose(op.expm().data, scipy.linalg.expm(op.data))
    zero_trace = DenseOperator(b3, b3, np.diag([1., -1., 0.]))
    with pytest.warns(RuntimeWarning):
        res = normalize(zero_trace)
    assert res is zero_trace


def test_identityoperator():
    b2, b3 = GenericBasis(2), GenericBasis(3)
    for cls in [DenseOperator, SparseOperator]:
        one = identityoperator(b3, cls=cls)
        assert isinstance(one, cls)
        npt.assert_array_equal(one.to_dense().data, np.eye(3))
        rect = identityoperator(b2, b3, cls=cls)
        npt.assert_array_equal(rect.to_dense().data, np.eye(2, 3))
    assert isinstance(identityoperator(b3), SparseOperator)
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        npt.assert_allclose(trace(normalize(identityoperator(b3))), 1.)
