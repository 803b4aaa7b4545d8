"""
_context.py
===========
Scoped configuration for tricsr.

tricsr has no configuration file.  Every setting is a keyword argument of the
counting API; the context managers here change the defaults for a ``with``
block and put them back on exit, including when the block raises.

  quiet / suppress_logger   logging verbosity
  suppress_warnings         Python warnings, e.g. NumbaPerformanceWarning
  use_backend               backend choice, overriding the ``backend=`` argument
  launch_defaults           grid geometry used when a call does not pass one
  silent_benchmark          quiet + use_backend + suppress_warnings

The backend and launch overrides are process-wide module state, so they are
not thread-safe; pass keyword arguments for per-call control from threads.
"""

import logging
import warnings
from contextlib import ExitStack, contextmanager
from typing import Dict, Optional, Type


_backend_override = None
_launch_defaults: Dict[str, int] = {}

_LAUNCH_KEYS = ("blocks", "threads_per_block", "warp_size", "max_workers")


# ============================================================================ #
# Logging
# ============================================================================ #


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Raise one logger's threshold to ``level`` for the duration of the block.

    Examples
    --------
    >>> with suppress_logger('tricsr._graph'):
    ...     g = CSRGraph.from_edges(rows, cols)   # no self-loop warning
    """
    target = logging.getLogger(logger_name)
    saved = target.level
    target.setLevel(level)
    try:
        yield target
    finally:
        target.setLevel(saved)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Silence the whole package below ``level``.

    Module loggers are children of ``'tricsr'``, so only that one changes.

    Examples
    --------
    >>> with quiet():
    ...     n = count_triangles(graph)
    >>> with quiet(logging.WARNING):       # keep warnings
    ...     graph = read_edge_list('edges.csv')
    """
    with suppress_logger("tricsr", level):
        yield


# ============================================================================ #
# Warnings
# ============================================================================ #


@contextmanager
def suppress_warnings(category: Optional[Type[Warning]] = None):
    """
    Ignore warnings of ``category`` (all warnings when None).

    Examples
    --------
    >>> from numba.core.errors import NumbaPerformanceWarning
    >>> with suppress_warnings(NumbaPerformanceWarning):
    ...     n = count_triangles(graph, backend='cuda', blocks=1)
    """
    with warnings.catch_warnings():
        if category is None:
            warnings.simplefilter("ignore")
        else:
            warnings.filterwarnings("ignore", category=category)
        yield


# ============================================================================ #
# Backend and launch geometry
# ============================================================================ #


@contextmanager
def use_backend(backend: str):
    """
    Force every count inside the block onto ``backend``.

    Parameters
    ----------
    backend : str
        'best', 'python', 'cpu-parallel' or 'cuda'.

    Raises
    ------
    ValueError
        On entry, if the backend cannot run on this machine.

    Examples
    --------
    >>> with use_backend('python'):
    ...     assert count_triangles(graph) == expected
    """
    global _backend_override

    from ._backend import resolve_backend

    resolve_backend(backend)

    saved = _backend_override
    _backend_override = backend
    try:
        yield
    finally:
        _backend_override = saved


def get_backend_override() -> Optional[str]:
    """Backend forced by the innermost ``use_backend`` block, or None."""
    return _backend_override


@contextmanager
def launch_defaults(**settings: Optional[int]):
    """
    Default launch geometry for counts inside the block.

    Keyword arguments passed to ``count()`` / ``launch()`` still win.  Nested
    blocks layer on top of each other; a value of None removes the default.

    Parameters
    ----------
    blocks, threads_per_block, warp_size, max_workers : int, optional

    Raises
    ------
    TypeError
        For any other keyword.

    Examples
    --------
    >>> with launch_defaults(blocks=64, threads_per_block=128):
    ...     n = count_triangles(graph)
    """
    global _launch_defaults

    unknown = sorted(set(settings) - set(_LAUNCH_KEYS))
    if unknown:
        raise TypeError(
            f"launch_defaults() got unexpected setting(s): {', '.join(unknown)}"
        )

    saved = _launch_defaults
    merged = dict(saved)
    for key, value in settings.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    _launch_defaults = merged
    try:
        yield
    finally:
        _launch_defaults = saved


def get_launch_defaults() -> Dict[str, int]:
    """Copy of the geometry set by enclosing ``launch_defaults`` blocks."""
    return dict(_launch_defaults)


# ============================================================================ #
# Combined
# ============================================================================ #


@contextmanager
def silent_benchmark(backend: str = "best", **launch: Optional[int]):
    """
    No logging, no warnings, a fixed backend and optional launch geometry.

    Examples
    --------
    >>> with silent_benchmark('cpu-parallel', threads_per_block=64):
    ...     start = time.perf_counter()
    ...     n = count_triangles(graph)
    ...     elapsed = time.perf_counter() - start
    """
    with ExitStack() as stack:
        stack.enter_context(quiet())
        stack.enter_context(use_backend(backend))
        stack.enter_context(suppress_warnings())
        if launch:
            stack.enter_context(launch_defaults(**launch))
        yield
