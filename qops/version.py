"""Access to version of this library."""
# Copyright (C) TeNPy Developers, Apache license
import sys

import numpy
import scipy

__all__ = ['version', 'full_version', 'version_summary']

version = '0.1.0'

#: Currently the same as :data:`version`. Kept separate for development builds.
full_version = version

#: Summary of the versions of qops, python, numpy and scipy.
version_summary = (
    f'qops {full_version}\n'
    f'python {sys.version}\n'
    f'numpy {numpy.__version__}, scipy {scipy.__version__}'
)
