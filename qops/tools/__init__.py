"""Helper functions that do not depend on the operator classes."""
# Copyright (C) TeNPy Developers, Apache license

from . import misc, string
from .misc import (
    duplicate_entries,
    inverse_permutation,
    is_permutation,
    iter_common_noncommon_sorted,
    linear_offsets,
    make_grid,
    make_stride,
    multi_indices,
    remove_sorted,
    shift_remove_sorted,
    to_iterable,
)
from .string import format_like_list, indent_lines
