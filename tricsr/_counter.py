"""
_counter.py
===========
Triangle counting over a CSRGraph on the python, cpu-parallel or cuda backend.

Public API
----------
  TriangleCounter(graph, accumulator=None)
      Binds a graph to an accumulator.

  .reset()
      Zero-initializer: clears the accumulator.
  .launch(backend='best', blocks=None, threads_per_block=None, ...)
      Runs one kernel launch, adding into the accumulator WITHOUT resetting it.
  .triangles(upper_only=None) -> int
      Converts the accumulator value into a triangle count, using the mode
      of the launches since the last reset() by default.
  .count(...) -> int
      reset() + launch() + triangles(): the normal entry point.

  count_triangles(graph, **kwargs) -> int
      One-shot convenience wrapper around TriangleCounter.count().

Counting rule
-------------
For every stored entry (r, c) the kernels add |N(r) ∩ N(c)|, the number of
vertices closing a triangle over that edge.  With ``upper_only=True`` only
entries with c > r are visited, so each triangle is seen once per edge, three
times in total; with ``upper_only=False`` every entry is visited and each
triangle is seen six times.  ``triangles()`` divides accordingly.

Logging
-------
The module uses Python's standard logging framework with one logger per
module under the 'tricsr' parent:

  logging.getLogger('tricsr._counter')
      INFO level:    System capabilities (CPU, memory, numba version, CUDA),
                     graph statistics, launch geometry, device transfer
                     sizes, result and elapsed time.
      WARNING level: Backend fallback, numba performance warnings, graphs
                     approaching the memory limit.

On first import the module logs system and backend status at INFO level, once
per Python session.  Silence it with ``quiet()`` or in the standard way:

    logging.getLogger('tricsr').setLevel(logging.WARNING)
"""

import logging
import time
from typing import Optional

import numpy as np

from tricsr._accumulator import Accumulator
from tricsr._errors import ResourceExhaustion
from tricsr._graph import CSRGraph
from tricsr._partition import WARP_SIZE, LaunchConfig, resolve_launch_config
from tricsr._reference import triangle_counts_python

from tricsr._logging import (
    log_optimization_status,
    install_numba_warning_filter,
    log_backend_availability,
    log_graph_statistics,
    log_launch_configuration,
    log_device_transfer,
    log_count_result,
    compute_degree_summary,
)

from tricsr._backend import (
    check_numba_available,
    check_cuda_available,
    get_available_backends,
    get_best_backend,
    resolve_backend,
    import_cpu_kernels,
    import_cuda_kernels,
    query_host_memory,
    query_cuda_device,
)

from tricsr._context import get_backend_override, get_launch_defaults
from tricsr._utils import format_nbytes

logger = logging.getLogger(__name__)


# ── Backend availability detection ──────────────────────────────────────────
_NUMBA_AVAILABLE = check_numba_available()
_cpu_import_ok, _triangle_counts_njit = import_cpu_kernels()
_, _CUDA_AVAILABLE = check_cuda_available()
_BACKENDS_AVAILABLE = get_available_backends()

# Track first calls to kernels for compilation logging
_kernel_first_call = {
    "cpu-parallel": True,
    "cuda": True,
}

# Log system info and backend availability on module import
log_optimization_status(_NUMBA_AVAILABLE)
log_backend_availability(_BACKENDS_AVAILABLE, _NUMBA_AVAILABLE)
install_numba_warning_filter(_NUMBA_AVAILABLE)

if _CUDA_AVAILABLE:
    _cuda_import_ok, _triangle_counts_cuda = import_cuda_kernels()
    if _cuda_import_ok:
        from numba import cuda
    else:
        _CUDA_AVAILABLE = False


# Rough size of one element of a Python list of ints (pointer + int object)
_PY_INT_BYTES = 36


class TriangleCounter:
    """
    Counts triangles of one graph into an explicit accumulator.

    Parameters
    ----------
    graph : CSRGraph or scipy.sparse matrix
        Symmetric adjacency structure with sorted rows and no self-loops.
        Sparse matrices are converted with ``CSRGraph.from_scipy``.
    accumulator : Accumulator, optional
        Counter the launches add into.  A fresh one is created if omitted;
        pass a shared instance to accumulate several graphs.

    Attributes
    ----------
    graph : CSRGraph
    accumulator : Accumulator
    result : int or None
        Triangle count of the last successful ``count()``; None before the
        first one.  A failed run leaves it unchanged.
    last_config : LaunchConfig or None
        Geometry of the most recent launch.
    upper_only : bool or None
        Mode of the launches since the last ``reset()``; None if none ran.
        Launching in the other mode without a reset raises ValueError.

    Examples
    --------
    >>> g = CSRGraph.from_edges([0, 1, 0], [1, 2, 2])
    >>> counter = TriangleCounter(g)
    >>> counter.count(backend='python')
    1

    Re-zeroing is explicit; without it launches accumulate:

    >>> for _ in range(2):
    ...     backend = counter.launch(backend='python')
    >>> counter.triangles()
    3
    """

    def __init__(self, graph, accumulator: Optional[Accumulator] = None) -> None:
        if not isinstance(graph, CSRGraph):
            graph = CSRGraph.from_scipy(graph)
        self.graph = graph
        self.accumulator = accumulator if accumulator is not None else Accumulator()
        self.result = None
        self.last_config = None
        self.upper_only = None

        log_graph_statistics(
            graph.n_rows,
            graph.nnz,
            compute_degree_summary(graph.degrees()),
            graph.nbytes,
            query_host_memory(),
        )

    # ================================================================== #
    # Public methods                                                       #
    # ================================================================== #

    def reset(self) -> None:
        """Zero the accumulator.  Must precede a launch for a fresh count."""
        self.accumulator.reset()
        self.upper_only = None

    def triangles(self, upper_only: Optional[bool] = None) -> int:
        """
        Triangle count implied by the current accumulator value.

        Parameters
        ----------
        upper_only : bool, optional
            Mode the accumulated launches ran in.  Defaults to the mode of
            the launches since the last ``reset()``, or True if none ran.
        """
        if upper_only is None:
            upper_only = self.upper_only if self.upper_only is not None else True
        return self.accumulator.value // (3 if upper_only else 6)

    def count(
        self,
        backend: str = "best",
        blocks: Optional[int] = None,
        threads_per_block: Optional[int] = None,
        warp_size: Optional[int] = None,
        upper_only: bool = True,
        max_workers: Optional[int] = None,
        validate: bool = False,
    ) -> int:
        """
        Reset the accumulator, run one launch and return the triangle count.

        Parameters
        ----------
        backend : str, default 'best'
            - 'best': Fastest available ('cuda' > 'cpu-parallel' > 'python')
            - 'python': Lock-step reference implementation on threads
            - 'cpu-parallel': numba.njit + prange
            - 'cuda': numba.cuda kernel (requires a GPU)
            An enclosing ``use_backend()`` overrides this argument.
        blocks : int, optional
            Blocks in the grid.  Defaults to one warp per row.
        threads_per_block : int, optional
            Threads per block; a multiple of the warp size.  Default 256.
        warp_size : int, optional
            Lanes per warp.  Default 32; the cuda backend requires 32.
        upper_only : bool, default True
            Visit only the upper triangle (c > r).  False visits the full
            matrix and gives the same count.
        max_workers : int, optional
            Threads for the python backend.
        validate : bool, default False
            Run ``CSRGraph.validate()`` before launching.

        Returns
        -------
        int
            Number of triangles.

        Raises
        ------
        MalformedStructure
            If ``validate=True`` and the graph violates a precondition.
        ResourceExhaustion
            If the launch configuration or memory limits would be exceeded.
            Raised before any kernel runs.
        """
        self.reset()
        start = time.perf_counter()
        resolved = self.launch(
            backend=backend,
            blocks=blocks,
            threads_per_block=threads_per_block,
            warp_size=warp_size,
            upper_only=upper_only,
            max_workers=max_workers,
            validate=validate,
        )
        elapsed = time.perf_counter() - start

        n_triangles = self.triangles(upper_only)
        log_count_result(resolved, self.accumulator.value, n_triangles, elapsed)
        self.result = n_triangles
        return n_triangles

    def launch(
        self,
        backend: str = "best",
        blocks: Optional[int] = None,
        threads_per_block: Optional[int] = None,
        warp_size: Optional[int] = None,
        upper_only: bool = True,
        max_workers: Optional[int] = None,
        validate: bool = False,
    ) -> str:
        """
        Run one kernel launch, adding into the accumulator.

        The accumulator is NOT reset; call ``reset()`` first (or use
        ``count()``) unless accumulation across launches is intended.
        Parameters are as for ``count()``.

        Returns
        -------
        str
            The backend that ran.

        Raises
        ------
        ValueError
            If ``upper_only`` differs from the mode of earlier launches since
            the last ``reset()``; the two modes count each triangle a
            different number of times.
        """
        graph = self.graph
        if self.upper_only is not None and self.upper_only != upper_only:
            raise ValueError(
                f"accumulator holds upper_only={self.upper_only} counts; "
                f"reset() before launching with upper_only={upper_only}"
            )
        if validate:
            graph.validate()

        # ── 1. Resolve backend ───────────────────────────────────────────
        backend_override = get_backend_override()
        if backend_override is not None:
            backend = backend_override

        try:
            resolved_backend = resolve_backend(backend)
        except ValueError as e:
            # Backend not available, fall back to best available
            logger.warning(str(e))
            resolved_backend = get_best_backend()

        # A device or numba may be present while the kernel module failed
        if resolved_backend == "cuda" and not _CUDA_AVAILABLE:
            logger.warning("cuda kernels could not be imported; using cpu-parallel")
            resolved_backend = "cpu-parallel"
        if resolved_backend == "cpu-parallel" and not _cpu_import_ok:
            logger.warning("cpu kernels could not be imported; using python")
            resolved_backend = "python"

        # ── 2. Resolve and check the launch configuration ────────────────
        defaults = get_launch_defaults()
        if blocks is None:
            blocks = defaults.get("blocks")
        if threads_per_block is None:
            threads_per_block = defaults.get("threads_per_block")
        if max_workers is None:
            max_workers = defaults.get("max_workers")
        if warp_size is None:
            warp_size = defaults.get("warp_size", WARP_SIZE)
        config = resolve_launch_config(
            graph.n_rows, blocks, threads_per_block, warp_size
        )
        self._check_resources(resolved_backend, config)
        self.last_config = config

        mode_str = "upper triangle" if upper_only else "full matrix"
        logger.info(f"launch({mode_str}, backend={resolved_backend!r})")
        log_launch_configuration(resolved_backend, config, graph.n_rows)

        # ── 3. Dispatch to the selected backend ──────────────────────────
        if resolved_backend == "cuda":
            self._launch_cuda(config, upper_only)
        elif resolved_backend == "cpu-parallel":
            self._launch_cpu(config, upper_only)
        elif resolved_backend == "python":
            triangle_counts_python(
                graph.row_ptr,
                graph.col_ind,
                graph.n_rows,
                config,
                upper_only,
                self.accumulator,
                max_workers=max_workers,
            )
        else:
            # This should never be reached due to validation above
            raise RuntimeError(
                f"Internal error: unhandled backend {resolved_backend!r}"
            )
        self.upper_only = upper_only
        return resolved_backend

    # ================================================================== #
    # Backend dispatch                                                     #
    # ================================================================== #

    def _launch_cpu(self, config: LaunchConfig, upper_only: bool) -> None:
        if _kernel_first_call["cpu-parallel"]:
            logger.info("  Compiling cpu-parallel kernel (cached for future calls)")
            _kernel_first_call["cpu-parallel"] = False

        graph = self.graph
        block_sums = np.zeros(config.n_blocks, dtype=np.int64)
        _triangle_counts_njit(
            graph.row_ptr,
            graph.col_ind,
            graph.n_rows,
            config.n_blocks,
            config.warps_per_block,
            config.warp_size,
            config.n_slots,
            upper_only,
            block_sums,
        )
        self.accumulator.add(int(block_sums.sum()))

    def _launch_cuda(self, config: LaunchConfig, upper_only: bool) -> None:
        if _kernel_first_call["cuda"]:
            logger.info("  Compiling cuda kernel (cached for future calls)")
            _kernel_first_call["cuda"] = False

        graph = self.graph
        # Zero-length device arrays cannot be indexed; the kernel never reads
        # col_ind when every row is empty.
        col_ind = graph.col_ind
        if not graph.nnz:
            col_ind = np.zeros(1, dtype=col_ind.dtype)
        partial = np.zeros(1, dtype=np.int64)

        log_device_transfer(
            {
                "row_ptr": graph.row_ptr,
                "col_ind": col_ind,
                "accumulator": partial,
            }
        )
        d_row_ptr = cuda.to_device(graph.row_ptr)
        d_col_ind = cuda.to_device(col_ind)
        d_total = cuda.to_device(partial)

        _triangle_counts_cuda[config.n_blocks, config.threads_per_block](
            d_row_ptr, d_col_ind, graph.n_rows, upper_only, d_total
        )
        cuda.synchronize()

        logger.info("  Transferring results from GPU device: accumulator (1,) int64")
        self.accumulator.add_from_device(d_total, config.n_blocks)

    def _check_resources(self, backend: str, config: LaunchConfig) -> None:
        """Raise ResourceExhaustion before launch if limits would be exceeded."""
        graph = self.graph

        if backend == "cuda":
            if config.warp_size != WARP_SIZE:
                raise ResourceExhaustion(
                    f"cuda backend requires warp_size={WARP_SIZE}, "
                    f"got {config.warp_size}"
                )
            device = query_cuda_device()
            if config.threads_per_block > device["max_threads_per_block"]:
                raise ResourceExhaustion(
                    f"threads_per_block={config.threads_per_block} exceeds the "
                    f"device limit of {device['max_threads_per_block']} "
                    f"on {device['name']}"
                )
            if config.n_blocks > device["max_grid_dim_x"]:
                raise ResourceExhaustion(
                    f"blocks={config.n_blocks} exceeds the device grid limit of "
                    f"{device['max_grid_dim_x']} on {device['name']}"
                )
            needed = graph.row_ptr.nbytes + max(graph.col_ind.nbytes, 8) + 8
            if needed > device["free_memory"]:
                raise ResourceExhaustion(
                    f"device buffers need {format_nbytes(needed)} but only "
                    f"{format_nbytes(device['free_memory'])} is free on "
                    f"{device['name']}"
                )
            return

        if backend == "cpu-parallel":
            needed = config.n_blocks * 8 + config.n_slots * 8
        else:
            needed = (
                graph.row_ptr.size + graph.col_ind.size
            ) * _PY_INT_BYTES + config.n_blocks * config.n_slots * _PY_INT_BYTES
        available = query_host_memory()
        if needed > available:
            raise ResourceExhaustion(
                f"{backend} working buffers need {format_nbytes(needed)} but only "
                f"{format_nbytes(available)} of host memory is available"
            )


def count_triangles(graph, **kwargs) -> int:
    """
    Count the triangles of ``graph``.

    Parameters
    ----------
    graph : CSRGraph or scipy.sparse matrix
        Symmetric adjacency structure.
    **kwargs
        Forwarded to ``TriangleCounter.count()`` (backend, blocks,
        threads_per_block, warp_size, upper_only, max_workers, validate).

    Returns
    -------
    int

    Examples
    --------
    >>> g = CSRGraph.from_edges([0, 0, 0, 1, 1, 2], [1, 2, 3, 2, 3, 3])  # K4
    >>> count_triangles(g)
    4
    """
    return TriangleCounter(graph).count(**kwargs)
