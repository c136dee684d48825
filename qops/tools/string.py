"""Tools for handling strings."""
# Copyright (C) TeNPy Developers, Apache license


def format_like_list(it) -> str:
    """Format elements of an iterable as if it were a plain list.

    This means surrounding them with brackets and separating them by `', '`.
    """
    return f'[{", ".join(map(str, it))}]'


def indent_lines(text: str, indent: int) -> str:
    """Indent every line of `text` by `indent` spaces."""
    return '\n'.join(indent * ' ' + line for line in text.split('\n'))
