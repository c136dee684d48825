"""Operator representations (dense, sparse and lazy) and the algebra between them."""
# Copyright (C) TeNPy Developers, Apache license

# note: order matters!
from . import _operator, dense, sparse, lazysum, lazytensor, embedding, multiplication, functions
from ._operator import AbstractOperator, UnsupportedRepresentationError
from .dense import DenseOperator, dm, expect, projector, ptrace_dense, ptranspose
from .embedding import embed
from .functions import (
    dagger,
    identityoperator,
    normalize,
    permutesystems,
    ptrace,
    tensor,
    to_dense,
    to_sparse,
    trace,
)
from .lazysum import LazySum
from .lazytensor import LazyTensor, gemm_dense_lazy, gemm_lazy_dense
from .multiplication import multiply, multiply_accumulate
from .sparse import SparseOperator, diagonaloperator, ptrace_sparse
