# Copyright (C) TeNPy Developers, Apache license
import numpy as np
import numpy.testing as npt
import pytest

from qops import (Bra, CompositeBasis, DenseOperator, DimensionMismatchError, GenericBasis,
                  IncompatibleBasesError, Ket, LazyTensor, SparseOperator,
                  UnsupportedRepresentationError, config, multiply, multiply_accumulate, to_dense)
from qops.operators import gemm_dense_lazy, gemm_lazy_dense


@pytest.fixture
def basis_232():
    return CompositeBasis([GenericBasis(2), GenericBasis(3), GenericBasis(2)])


def test_lazy_times_ket(basis_232, make_dense, np_random):
    M = make_dense(GenericBasis(3))
    h = LazyTensor(basis_232, basis_232, [1], [M])
    v = np_random.normal(size=12) + 1.j * np_random.normal(size=12)
    psi = Ket(basis_232, v)
    res = h * psi
    assert isinstance(res, Ket)
    assert res.basis == basis_232
    # first factor varies the fastest
    expect_data = np.kron(np.eye(2), np.kron(M.data, np.eye(2))) @ v
    npt.assert_allclose(res.data, expect_data, rtol=1e-12, atol=1e-12)
    print('checking bra * lazy')
    bra = psi.dagger()
    res = bra * h
    assert isinstance(res, Bra)
    npt.assert_allclose(res.data, np.conj(v) @ np.kron(np.eye(2), np.kron(M.data, np.eye(2))),
                        rtol=1e-12, atol=1e-12)


@pytest.mark.parametrize('sparse', [False, True, 0.5])
@pytest.mark.parametrize('num_touched', [0, 1, 3])
def test_lazy_dense_products(sparse, num_touched, make_lazy, make_dense):
    b2, b3 = GenericBasis(2), GenericBasis(3)
    basis_l = CompositeBasis([b2, b3, b2])
    basis_r = CompositeBasis([b3, b3, b2])
    h = make_lazy(basis_l, basis_r, num_touched=num_touched, sparse=sparse)
    h_dense = to_dense(h).data

    print('checking lazy * dense')
    op = make_dense(basis_r, GenericBasis(5))
    res = h * op
    assert isinstance(res, DenseOperator)
    assert res.basis_l == basis_l
    npt.assert_allclose(res.data, h_dense @ op.data, atol=1e-12)

    print('checking dense * lazy')
    op = make_dense(GenericBasis(4), basis_l)
    res = op * h
    assert isinstance(res, DenseOperator)
    assert res.basis_r == basis_r
    npt.assert_allclose(res.data, op.data @ h_dense, atol=1e-12)

    print('checking with kets and bras')
    psi = Ket(basis_r, np.arange(len(basis_r)))
    npt.assert_allclose((h * psi).data, h_dense @ psi.data, atol=1e-12)
    bra = Bra(basis_l, np.arange(len(basis_l)))
    npt.assert_allclose((bra * h).data, bra.data @ h_dense, atol=1e-12)


@pytest.mark.parametrize('beta', [0, 1, 2.5 - 1.j])
@pytest.mark.parametrize('alpha', [1, 0.5j])
def test_multiply_accumulate(alpha, beta, basis_232, make_lazy, make_dense, make_sparse):
    h = make_lazy(basis_232, num_touched=2)
    h_dense = to_dense(h).data
    b = make_dense(basis_232)
    s = make_sparse(basis_232)
    for a_, b_, expect_product in [(h, b, h_dense @ b.data),
                                   (b, h, b.data @ h_dense),
                                   (b, b, b.data @ b.data),
                                   (s, b, s.data.toarray() @ b.data),
                                   (b, s, b.data @ s.data.toarray())]:
        print(f'checking {type(a_).__name__} * {type(b_).__name__}')
        result = make_dense(basis_232)
        initial = result.data.copy()
        out = multiply_accumulate(alpha, a_, b_, beta, result)
        assert out is result
        npt.assert_allclose(result.data, alpha * expect_product + beta * initial, atol=1e-12)


def test_beta_zero_overwrites_nan(basis_232, make_lazy, make_dense):
    h = make_lazy(basis_232, num_touched=1)
    b = make_dense(basis_232)
    result = DenseOperator(basis_232, basis_232, np.full((12, 12), np.nan))
    multiply_accumulate(1., h, b, 0, result)
    assert not np.any(np.isnan(result.data))
    npt.assert_allclose(result.data, to_dense(h).data @ b.data, atol=1e-12)

    psi = Ket(basis_232, np.ones(12))
    result = Ket(basis_232, np.full(12, np.nan))
    multiply_accumulate(2., h, psi, 0, result)
    npt.assert_allclose(result.data, 2. * to_dense(h).data @ psi.data, atol=1e-12)


def test_gemm_kernels(basis_232, make_lazy, np_random):
    h = make_lazy(basis_232, num_touched=2)
    h_dense = to_dense(h).data
    op = np_random.normal(size=(12, 3)) + 0.j
    result = np.ones((12, 3), dtype=complex)
    gemm_lazy_dense(2., h, op, -1., result)
    npt.assert_allclose(result, 2. * h_dense @ op - 1., atol=1e-12)
    op = np_random.normal(size=(3, 12)) + 0.j
    result = np.zeros((3, 12), dtype=complex)
    gemm_dense_lazy(1., op, h, 0., result)
    npt.assert_allclose(result, op @ h_dense, atol=1e-12)
    with pytest.raises(DimensionMismatchError):
        gemm_lazy_dense(1., h, np.zeros((11, 3)), 0., np.zeros((12, 3)))
    with pytest.raises(DimensionMismatchError):
        gemm_dense_lazy(1., np.zeros((3, 12)), h, 0., np.zeros((4, 12)))


def test_zero_suboperator(basis_232, make_dense):
    h = LazyTensor(basis_232, basis_232, [0, 1], [make_dense(GenericBasis(2)),
                                                  DenseOperator(GenericBasis(3))])
    b = make_dense(basis_232)
    result = make_dense(basis_232)
    initial = result.data.copy()
    multiply_accumulate(1., h, b, 0.5, result)
    npt.assert_allclose(result.data, 0.5 * initial, atol=1e-14)
    npt.assert_array_equal((b * h).data, np.zeros((12, 12)))


def test_unsupported_representations(basis_232, make_dense, make_sparse, make_lazy):
    b3 = GenericBasis(3)
    inner = LazyTensor(b3, b3, 0, make_dense(b3))
    with pytest.raises(DimensionMismatchError):
        # the suboperator at position 1 must live on ``b3`` itself
        LazyTensor(basis_232, basis_232, 1, inner)

    h = make_lazy(basis_232, num_touched=1)
    s = make_sparse(basis_232)
    with pytest.raises(UnsupportedRepresentationError):
        multiply(h, s)
    with pytest.raises(UnsupportedRepresentationError):
        multiply_accumulate(1., s, s, 0., DenseOperator(basis_232))
    with pytest.raises(UnsupportedRepresentationError):
        multiply_accumulate(1., h, make_dense(basis_232), 0., SparseOperator(basis_232))
    with pytest.raises(UnsupportedRepresentationError):
        multiply_accumulate(1., h, Ket(basis_232), 0., DenseOperator(basis_232))
    # also a TypeError
    with pytest.raises(TypeError):
        multiply(h, s)
    with pytest.raises(TypeError):
        multiply(Ket(basis_232), Ket(basis_232))


def test_unsupported_suboperator(make_dense, monkeypatch):
    b2 = GenericBasis(2)
    # a lazy suboperator on a single factor
    sub = LazyTensor(CompositeBasis([b2]), CompositeBasis([b2]), 0, make_dense(b2))
    basis = CompositeBasis([CompositeBasis([b2]), b2])
    assert basis == CompositeBasis([b2, b2])
    with pytest.raises(DimensionMismatchError):
        LazyTensor(basis, basis, 0, sub)
    monkeypatch.setattr(config, 'do_input_checks', False)
    h = LazyTensor(basis, basis, 0, sub)
    with pytest.raises(UnsupportedRepresentationError):
        h * make_dense(basis)


def test_bases_mismatch(basis_232, make_lazy, make_dense, monkeypatch):
    h = make_lazy(basis_232, num_touched=1)
    wrong = make_dense(CompositeBasis([GenericBasis(3), GenericBasis(2), GenericBasis(2)]))
    with pytest.raises(IncompatibleBasesError):
        h * wrong
    with pytest.raises(IncompatibleBasesError):
        multiply_accumulate(1., h, make_dense(basis_232), 0., wrong)
    monkeypatch.setattr(config, 'check_bases_in_products', False)
    # dimensions agree, so the unchecked product goes through
    res = h * wrong
    npt.assert_allclose(res.data, to_dense(h).data @ wrong.data, atol=1e-12)
