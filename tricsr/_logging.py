"""
_logging.py
===========
Log formatting for tricsr.

The helpers receive values the caller has already computed and only emit
records; nothing here touches graphs, accumulators or devices.  Counting code
calls them at fixed points (import, graph binding, launch, result) so the
messages stay uniform across backends.
"""

import logging
from typing import Dict, List

import numpy as np
import psutil

from tricsr._utils import format_nbytes


logger = logging.getLogger(__name__)


# ============================================================================ #
# Import-time status
# ============================================================================ #


def log_optimization_status(numba_available: bool) -> None:
    """
    Log host, numba and CUDA capabilities once, when tricsr is imported.

    Parameters
    ----------
    numba_available : bool
        Whether numba imported.
    """
    import os
    import platform

    logger.info(
        "Host: %s %s, %d CPU cores, Python %s",
        platform.system(),
        platform.machine(),
        os.cpu_count() or 1,
        platform.python_version(),
    )

    mem = psutil.virtual_memory()
    logger.info(
        f"Memory: {mem.total / (1024**3):.1f} GB total, "
        f"{mem.available / (1024**3):.1f} GB available"
    )

    if not numba_available:
        logger.info("Numba not importable - only the python backend is available")
        return

    import llvmlite
    import numba

    logger.info(f"Numba {numba.__version__} loaded successfully")
    logger.info(f"LLVM backend: llvmlite {llvmlite.__version__}")

    # The threading layer is only known after the first parallel launch
    try:
        layer = numba.threading_layer()
    except ValueError:
        layer = "not yet initialized"
    logger.info(
        f"Numba threading: {layer} layer, {numba.get_num_threads()} threads active"
    )

    try:
        from numba import cuda

        if cuda.is_available():
            gpus = cuda.gpus
            logger.info(f"CUDA available: {len(gpus)} GPU(s) detected")
            for i, gpu in enumerate(gpus):
                name = gpu.name
                if isinstance(name, bytes):
                    name = name.decode()
                logger.info(f"  GPU {i}: {name}")
        else:
            logger.info("CUDA not available (no compatible GPU)")
    except Exception:
        logger.info("CUDA backend unavailable")


def install_numba_warning_filter(numba_available: bool) -> None:
    """
    Send NumbaPerformanceWarning to the tricsr logger instead of stderr.

    Small graphs launch grids far below GPU occupancy and numba warns about
    it; the warning is logged at WARNING level in the same stream as the
    other tricsr diagnostics instead of being printed.

    Parameters
    ----------
    numba_available : bool
        Whether numba was successfully imported.
    """
    import warnings

    if not numba_available:
        return

    from numba.core.errors import NumbaPerformanceWarning

    original_showwarning = warnings.showwarning

    def custom_showwarning(message, category, filename, lineno, file=None, line=None):
        if issubclass(category, NumbaPerformanceWarning):
            logger.warning(f"Numba performance issue: {message}")
            logger.warning(f"  at {filename}:{lineno}")
            return
        original_showwarning(message, category, filename, lineno, file, line)

    warnings.showwarning = custom_showwarning


def log_backend_availability(
    backends_available: List[str], numba_available: bool
) -> None:
    """
    Log the usable backends and what each one runs.

    Parameters
    ----------
    backends_available : List[str]
        Output of ``get_available_backends()``, least preferred first.
    numba_available : bool
        Whether numba imported.
    """
    logger.info("Available backends: %s", ", ".join(backends_available))

    if "cpu-parallel" in backends_available:
        logger.info("  cpu-parallel: one prange iteration per block (numba.njit)")

    if "cuda" in backends_available:
        logger.info("  cuda: shared-memory warp slots, one atomic per block")
    elif numba_available:
        logger.info("  cuda: unavailable (no compatible GPU detected)")

    logger.info("  python: lock-step reference implementation on a thread pool")

    logger.info(f"Default backend='best' will use: {backends_available[-1]}")


# ============================================================================ #
# Graph and Launch Logging
# ============================================================================ #


def compute_degree_summary(degrees: np.ndarray) -> Dict[str, float]:
    """
    Degree statistics for logging.

    Parameters
    ----------
    degrees : int64 ndarray
        Per-row degree.

    Returns
    -------
    dict
        Keys 'min', 'max', 'mean', 'empty_rows'.  All zero for an empty graph.
    """
    if degrees.size == 0:
        return {"min": 0, "max": 0, "mean": 0.0, "empty_rows": 0}
    return {
        "min": int(degrees.min()),
        "max": int(degrees.max()),
        "mean": float(degrees.mean()),
        "empty_rows": int(np.count_nonzero(degrees == 0)),
    }


def log_graph_statistics(
    n_rows: int,
    nnz: int,
    degree_summary: Dict[str, float],
    memory_bytes: int,
    available_bytes: int,
) -> None:
    """
    Log the size and shape of a CSR graph.

    Parameters
    ----------
    n_rows : int
        Vertices (matrix rows).
    nnz : int
        Stored entries (twice the undirected edge count).
    degree_summary : dict
        Output of ``compute_degree_summary``.
    memory_bytes : int
        Footprint of the CSR buffers.
    available_bytes : int
        Available host memory.
    """
    logger.info(
        "CSR graph: %d rows, %d stored entries (%d undirected edges)",
        n_rows,
        nnz,
        nnz // 2,
    )
    logger.info(
        "Degrees: min=%d, max=%d, mean=%.2f, empty rows=%d",
        degree_summary["min"],
        degree_summary["max"],
        degree_summary["mean"],
        degree_summary["empty_rows"],
    )
    logger.info("CSR memory footprint: %s", format_nbytes(memory_bytes))

    if memory_bytes > 0.8 * available_bytes:
        logger.warning(
            "CSR footprint (%s) exceeds 80%% of available host memory (%s).",
            format_nbytes(memory_bytes),
            format_nbytes(available_bytes),
        )


def log_launch_configuration(backend: str, config, n_rows: int) -> None:
    """
    Log grid geometry and how rows map onto warps.

    Parameters
    ----------
    backend : str
        Resolved backend name.
    config : LaunchConfig
        Launch geometry.
    n_rows : int
        Rows in the graph.
    """
    logger.info(f"  Launching {backend} kernel:")
    logger.info(
        f"    Grid: {config.n_blocks} blocks, {config.threads_per_block} "
        f"threads/block ({config.warps_per_block} warps x {config.warp_size} lanes)"
    )
    rows_per_warp = -(-n_rows // config.total_warps) if n_rows else 0
    idle = max(0, config.total_warps - n_rows)
    logger.info(
        f"    Total warps: {config.total_warps:,} "
        f"(up to {rows_per_warp} row(s) each, idle: {idle:,})"
    )


def log_device_transfer(arrays: Dict[str, np.ndarray]) -> None:
    """
    Log a host to device transfer.

    Parameters
    ----------
    arrays : dict[str, ndarray]
        Name to host array for everything copied to the device.
    """
    total = sum(arr.nbytes for arr in arrays.values())
    logger.info("  Transferring data to GPU device:")
    for name, arr in arrays.items():
        logger.info(
            f"    - {name}: {arr.shape} {arr.dtype}, {format_nbytes(arr.nbytes)}"
        )
    logger.info(f"    Total H→D transfer: {format_nbytes(total)}")


def log_count_result(
    backend: str, raw_value: int, n_triangles: int, elapsed: float
) -> None:
    """
    Log the outcome of a counting run.

    Parameters
    ----------
    backend : str
        Resolved backend name.
    raw_value : int
        Accumulator value after the launch.
    n_triangles : int
        Triangle count derived from ``raw_value``.
    elapsed : float
        Wall-clock seconds for the launch.
    """
    logger.info(
        "count_triangles(backend=%r): %d triangles (accumulator=%d) in %.4f s",
        backend,
        n_triangles,
        raw_value,
        elapsed,
    )
