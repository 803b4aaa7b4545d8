"""
tricsr
======

Parallel triangle counting on undirected graphs stored as symmetric sparse
adjacency matrices in Compressed Sparse Row layout.

Rows are mapped onto warps with a grid-stride loop; each lane of a warp
handles a strided subset of the row's entries and counts common neighbours by
a sorted merge.  Partial counts are reduced per warp, per block and finally
into a single global accumulator, on the CPU (numba prange) or on a CUDA GPU.

Main Classes
------------
CSRGraph : Immutable symmetric adjacency matrix in CSR form
TriangleCounter : Counts triangles of a graph into an Accumulator
Accumulator : Global counter updated only through atomic adds
LaunchConfig : Grid geometry (blocks, threads per block, warp size)

Functions
---------
count_triangles : One-shot triangle count
count_triangles_spgemm : Independent sparse matrix-product count
read_edge_list : Parse an edge-list file into a CSRGraph
write_edge_list : Write a CSRGraph as an edge list
compute_launch_grid : Default grid for a number of rows

Configuration (context managers)
--------------------------------
quiet : Silence tricsr logging inside the block
suppress_logger : Raise one logger's threshold
suppress_warnings : Ignore a warning category
use_backend : Pin the backend, overriding backend=
launch_defaults : Default blocks / threads_per_block / warp_size / max_workers
silent_benchmark : quiet + use_backend + suppress_warnings (+ launch_defaults)

Backends
--------
get_available_backends : Backends this machine can run
get_backend_info : Backends, kernels, host memory and CUDA device limits
check_numba_available, check_cuda_available : Individual probes

Examples
--------
Basic usage:

>>> from tricsr import CSRGraph, count_triangles
>>> g = CSRGraph.from_edges([0, 1, 0, 2], [1, 2, 2, 3])
>>> count_triangles(g)
1

From a file, on a chosen backend:

>>> from tricsr import launch_defaults, read_edge_list, use_backend
>>> graph = read_edge_list('edges.tsv', delimiter=None, index_base=1)
>>> with use_backend('cpu-parallel'), launch_defaults(threads_per_block=128):
...     n = count_triangles(graph)

Benchmarking:

>>> from tricsr import silent_benchmark
>>> with silent_benchmark('cuda'):
...     n = count_triangles(graph)
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Main classes
from ._graph import CSRGraph
from ._accumulator import Accumulator
from ._counter import TriangleCounter, count_triangles
from ._partition import LaunchConfig, compute_launch_grid

# Errors
from ._errors import (
    TricsrError,
    MalformedStructure,
    ResourceExhaustion,
    EdgeListFormatError,
)

# I/O and verification
from ._io import read_edge_list, write_edge_list
from ._reference import count_triangles_spgemm

# Scoped configuration
from ._context import (
    quiet,
    suppress_logger,
    suppress_warnings,
    use_backend,
    launch_defaults,
    silent_benchmark,
)

# Backend probes
from ._backend import (
    get_available_backends,
    get_backend_info,
    check_numba_available,
    check_cuda_available,
)

# Public API
__all__ = [
    # Main classes
    "CSRGraph",
    "Accumulator",
    "TriangleCounter",
    "LaunchConfig",
    # Functions
    "count_triangles",
    "count_triangles_spgemm",
    "compute_launch_grid",
    "read_edge_list",
    "write_edge_list",
    # Errors
    "TricsrError",
    "MalformedStructure",
    "ResourceExhaustion",
    "EdgeListFormatError",
    # Configuration
    "quiet",
    "suppress_logger",
    "suppress_warnings",
    "use_backend",
    "launch_defaults",
    "silent_benchmark",
    # Backends
    "get_available_backends",
    "get_backend_info",
    "check_numba_available",
    "check_cuda_available",
    # Version info
    "__version__",
]
