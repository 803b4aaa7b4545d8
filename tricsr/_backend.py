"""
_backend.py
===========
Which execution backends this machine can run, and what it can hold.

Backends, in ascending order of preference:

  python        lock-step reference kernel on a thread pool (always present)
  cpu-parallel  numba.njit(parallel=True) kernel
  cuda          numba.cuda kernel; needs a CUDA driver and device

Everything here only inspects the interpreter and the hardware; callers do
their own logging.
"""

from typing import Dict, List, Optional, Tuple

import psutil


BACKENDS = ("python", "cpu-parallel", "cuda")


# ============================================================================ #
# Availability
# ============================================================================ #


def check_numba_available() -> bool:
    """True when numba imports cleanly."""
    try:
        import numba  # noqa: F401
    except ImportError:
        return False
    return True


def check_cuda_available() -> Tuple[bool, bool]:
    """
    Probe numba and the CUDA driver.

    Returns
    -------
    tuple[bool, bool]
        ``(numba_available, cuda_available)``.  A driver that is installed
        but fails to initialize counts as unavailable.
    """
    try:
        from numba import cuda
    except ImportError:
        return (False, False)
    try:
        return (True, bool(cuda.is_available()))
    except Exception:
        return (True, False)


def get_available_backends() -> List[str]:
    """
    Usable backends, least preferred first.

    Examples
    --------
    >>> get_available_backends()            # numba, no GPU
    ['python', 'cpu-parallel']
    """
    numba_ok, cuda_ok = check_cuda_available()
    usable = {"python": True, "cpu-parallel": numba_ok, "cuda": cuda_ok}
    return [name for name in BACKENDS if usable[name]]


def get_best_backend() -> str:
    """Most preferred usable backend: 'cuda' > 'cpu-parallel' > 'python'."""
    return get_available_backends()[-1]


def resolve_backend(backend: str) -> str:
    """
    Map a backend request onto a concrete backend name.

    Parameters
    ----------
    backend : str
        'best' or one of ``BACKENDS``.

    Raises
    ------
    ValueError
        For an unknown name or a backend this machine cannot run.
    """
    if backend == "best":
        return get_best_backend()
    available = get_available_backends()
    if backend in available:
        return backend
    known = "known" if backend in BACKENDS else "unknown"
    raise ValueError(
        f"Backend {backend!r} ({known}) is not available here; "
        f"choose from {', '.join(available)}"
    )


# ============================================================================ #
# Kernel modules
# ============================================================================ #


def import_cpu_kernels() -> Tuple[bool, Optional[object]]:
    """``(True, _triangle_counts_njit)``, or ``(False, None)`` without numba."""
    try:
        from tricsr._cpu_kernels import _triangle_counts_njit
    except ImportError:
        return (False, None)
    return (True, _triangle_counts_njit)


def import_cuda_kernels() -> Tuple[bool, Optional[object]]:
    """``(True, _triangle_counts_cuda)``, or ``(False, None)`` without numba.cuda."""
    try:
        from tricsr._cuda_kernels import _triangle_counts_cuda
    except ImportError:
        return (False, None)
    return (True, _triangle_counts_cuda)


# ============================================================================ #
# Resources
# ============================================================================ #


def query_host_memory() -> int:
    """Bytes of host memory available to new allocations (psutil)."""
    return int(psutil.virtual_memory().available)


def query_cuda_device() -> Dict[str, object]:
    """
    Launch limits and free memory of the current CUDA device.

    Only meaningful when ``'cuda'`` is among the available backends.

    Returns
    -------
    dict
        'name', 'max_threads_per_block', 'max_grid_dim_x', 'warp_size',
        'free_memory', 'total_memory'.
    """
    from numba import cuda

    device = cuda.get_current_device()
    free, total = cuda.current_context().get_memory_info()
    name = device.name
    if isinstance(name, bytes):
        name = name.decode()
    return {
        "name": name,
        "max_threads_per_block": int(device.MAX_THREADS_PER_BLOCK),
        "max_grid_dim_x": int(device.MAX_GRID_DIM_X),
        "warp_size": int(device.WARP_SIZE),
        "free_memory": int(free),
        "total_memory": int(total),
    }


def get_backend_info() -> dict:
    """
    One-stop summary of backend and resource status.

    Returns
    -------
    dict
        'numba_available', 'cuda_available' : bool
        'backends' : list[str], least preferred first
        'best_backend' : str
        'cpu_kernels_available', 'cuda_kernels_available' : bool
        'host_memory_available' : int, bytes
        'cuda_device' : dict from ``query_cuda_device()``, or None

    Examples
    --------
    >>> info = get_backend_info()
    >>> info['best_backend'], info['cuda_device']
    ('cpu-parallel', None)
    """
    numba_ok, cuda_ok = check_cuda_available()
    backends = get_available_backends()
    return {
        "numba_available": numba_ok,
        "cuda_available": cuda_ok,
        "backends": backends,
        "best_backend": backends[-1],
        "cpu_kernels_available": import_cpu_kernels()[0],
        "cuda_kernels_available": import_cuda_kernels()[0],
        "host_memory_available": query_host_memory(),
        "cuda_device": query_cuda_device() if cuda_ok else None,
    }
