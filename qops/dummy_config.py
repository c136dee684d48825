"""Global config options, kept as plain class namespaces."""
# Copyright (C) TeNPy Developers, Apache license


class printoptions:
    """Options controlling ``repr`` of operators and states."""

    linewidth: int = 100
    indent: int = 2
    precision: int = 8  # #digits
    maxlines_operators: int = 30
    skip_data: bool = False  # skip the data section in operator and state prints


class config:
    """Switches for the input checks. The class is used as a namespace."""
    printoptions = printoptions
    do_input_checks = True  # If the LazyTensor constructor should validate its suboperators
    check_bases_in_products = True  # If products should verify ``a.basis_r == b.basis_l``
