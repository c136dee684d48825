r"""qops library - operators on composite Hilbert spaces.

Provides dense, sparse and lazy tensor-product operators on composite bases, with partial
traces, embeddings and products that never materialize a lazy tensor product.

"""
# Copyright (C) TeNPy Developers, Apache license

# note: order matters!
from . import dummy_config, tools, bases, states, operators, testing, version

from .bases import (
    Basis,
    CompositeBasis,
    DimensionMismatchError,
    GenericBasis,
    IncompatibleBasesError,
    InvalidIndexSetError,
    OperatorError,
    samebases,
)
from .dummy_config import config, printoptions
from .operators import (
    AbstractOperator,
    DenseOperator,
    LazySum,
    LazyTensor,
    SparseOperator,
    UnsupportedRepresentationError,
    dagger,
    diagonaloperator,
    dm,
    embed,
    expect,
    identityoperator,
    multiply,
    multiply_accumulate,
    normalize,
    permutesystems,
    projector,
    ptrace,
    ptranspose,
    tensor,
    to_dense,
    to_sparse,
    trace,
)
from .states import Bra, Ket, basisstate
from .version import full_version as __full_version__
from .version import version as __version__


def show_config():
    """Print information about the version of qops and used libraries.

    The information printed is :attr:`qops.version.version_summary`.
    """
    print(version.version_summary)
