"""Tools for testing."""
# Copyright (C) TeNPy Developers, Apache license
from . import random_generation
from .asserting import assert_operators_almost_equal
from .random_generation import (
    random_basis,
    random_composite_basis,
    random_dense_operator,
    random_ket,
    random_lazy_tensor,
    random_sparse_operator,
)
