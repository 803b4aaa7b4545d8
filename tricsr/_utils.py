"""
_utils.py
=========
General-purpose helpers for tricsr.

These are standalone functions that don't depend on the main classes and
are shared by the partitioner, the kernels' host wrappers and the logging
module.
"""


def ceil_div(a: int, b: int) -> int:
    """
    Integer division rounded up.

    Examples
    --------
    >>> ceil_div(100, 32)
    4
    >>> ceil_div(64, 32)
    2
    >>> ceil_div(0, 32)
    0
    """
    return -(-a // b)


def next_power_of_two(n: int) -> int:
    """
    Smallest power of two that is >= n (and >= 1).

    The block-level halving reduction runs over a power-of-two number of
    slots; padding slots stay zero.

    Examples
    --------
    >>> next_power_of_two(1)
    1
    >>> next_power_of_two(5)
    8
    >>> next_power_of_two(8)
    8
    >>> next_power_of_two(0)
    1
    """
    p = 1
    while p < n:
        p <<= 1
    return p


def format_nbytes(n_bytes: int) -> str:
    """
    Human-readable byte count.

    Examples
    --------
    >>> format_nbytes(512)
    '512 B'
    >>> format_nbytes(2048)
    '2.0 KB'
    >>> format_nbytes(3 * 1024**2)
    '3.00 MB'
    >>> format_nbytes(5 * 1024**3)
    '5.00 GB'
    """
    if n_bytes < 1024:
        return f"{n_bytes} B"
    if n_bytes < 1024**2:
        return f"{n_bytes / 1024:.1f} KB"
    if n_bytes < 1024**3:
        return f"{n_bytes / 1024**2:.2f} MB"
    return f"{n_bytes / 1024**3:.2f} GB"
