r"""Provide test configuration and random operator factories.

Fixtures
--------

The following table summarizes the available fixtures.

=============================  ======================  ===========================================
Fixture                        Depends on / # cases    Description
=============================  ======================  ===========================================
np_random                      -                       A numpy random Generator. Use this for
                                                       reproducibility.
-----------------------------  ----------------------  -------------------------------------------
make_basis                     np_random               RNG for generic bases.
                                                       ``make(max_dim=4)``
-----------------------------  ----------------------  -------------------------------------------
make_composite_basis           np_random               RNG for composite bases.
                                                       ``make(num_factors=3, max_dim=4)``
-----------------------------  ----------------------  -------------------------------------------
make_dense                     np_random               RNG for dense operators.
                                                       ``make(basis_l, basis_r=None)``
-----------------------------  ----------------------  -------------------------------------------
make_sparse                    np_random               RNG for sparse operators.
                                                       ``make(basis_l, basis_r=None, density=0.3)``
-----------------------------  ----------------------  -------------------------------------------
make_lazy                      np_random               RNG for lazy tensors with random factor.
                                                       ``make(basis_l, basis_r=None,
                                                       num_touched=None, sparse=0.5)``
-----------------------------  ----------------------  -------------------------------------------
make_ket                       np_random               RNG for normalized kets.
                                                       ``make(basis)``
-----------------------------  ----------------------  -------------------------------------------
any_representation             Generates 3 cases       Goes over the operator classes
                                                       DenseOperator, SparseOperator, LazyTensor.
=============================  ======================  ===========================================


Marks
-----
Note: a list of marks should also be maintained in ``pyproject.toml``.

- ``slow``: marks tests as slow (deselect with ``-m "not slow"``)

"""

# Copyright (C) TeNPy Developers, Apache license
from __future__ import annotations

import numpy as np
import pytest

from qops import DenseOperator, LazyTensor, SparseOperator
from qops.testing import (random_basis, random_composite_basis, random_dense_operator, random_ket,
                          random_lazy_tensor, random_sparse_operator)

# OVERRIDE pytest routines


def pytest_addoption(parser):
    parser.addoption('--rng-seed', action='store', default=12345, type=int, help=f'The rng seed')


# FIXTURES


@pytest.fixture
def np_random(request) -> np.random.Generator:
    return np.random.default_rng(seed=request.config.getoption('--rng-seed'))


@pytest.fixture(params=[DenseOperator, SparseOperator, LazyTensor])
def any_representation(request) -> type:
    return request.param


@pytest.fixture
def make_basis(np_random):
    def make(max_dim: int = 4):
        return random_basis(max_dim, np_random=np_random)

    return make


@pytest.fixture
def make_composite_basis(np_random):
    def make(num_factors: int = 3, max_dim: int = 4):
        return random_composite_basis(num_factors, max_dim, np_random=np_random)

    return make


@pytest.fixture
def make_dense(np_random):
    def make(basis_l, basis_r=None, real: bool = False) -> DenseOperator:
        return random_dense_operator(basis_l, basis_r, real=real, np_random=np_random)

    return make


@pytest.fixture
def make_sparse(np_random):
    def make(basis_l, basis_r=None, density: float = 0.3) -> SparseOperator:
        return random_sparse_operator(basis_l, basis_r, density=density, np_random=np_random)

    return make


@pytest.fixture
def make_lazy(np_random):
    def make(basis_l, basis_r=None, num_touched: int = None, sparse: bool | float = 0.5) -> LazyTensor:
        return random_lazy_tensor(basis_l, basis_r, num_touched=num_touched, sparse=sparse,
                                  np_random=np_random)

    return make


@pytest.fixture
def make_ket(np_random):
    def make(basis):
        return random_ket(basis, np_random=np_random)

    return make
