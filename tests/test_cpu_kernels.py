"""
test_cpu_kernels.py
===================
Tests for CPU kernels (_cpu_kernels.py).

The compiled kernels are called directly with hand-built arrays and compared
block by block with the pure-Python kernel, which runs the same partition.
"""

import inspect

import numpy as np
import pytest

from tricsr import CSRGraph, LaunchConfig
from tricsr._backend import get_available_backends
from tricsr._reference import _run_block, merge_intersection_count

pytestmark = pytest.mark.skipif(
    "cpu-parallel" not in get_available_backends(),
    reason="cpu-parallel backend not available",
)


def complete_graph(n):
    rows, cols = np.triu_indices(n, k=1)
    return CSRGraph.from_edges(rows, cols, n_rows=n)


def _run(graph, config, upper_only=True):
    from tricsr._cpu_kernels import _triangle_counts_njit

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
    return block_sums


class TestKernelImports:
    """Test that kernel imports work correctly."""

    def test_module_imports_successfully(self):
        import tricsr._cpu_kernels as _cpu_kernels

        assert _cpu_kernels is not None

    def test_kernel_signature(self):
        from tricsr._cpu_kernels import _triangle_counts_njit

        params = list(inspect.signature(_triangle_counts_njit.py_func).parameters)
        assert params[0] == "row_ptr"
        assert params[-1] == "block_sums_out"
        assert len(params) == 9


class TestMergeIntersectKernel:
    @pytest.mark.parametrize(
        "a, b",
        [
            ([1, 2, 3, 5], [0, 2, 5, 9]),
            ([0, 2, 4], [1, 3, 5]),
            ([1, 4, 7], [1, 4, 7]),
            ([], [1, 2]),
            ([3], []),
            ([0, 10, 20, 30, 40], [40]),
        ],
    )
    def test_matches_reference(self, a, b):
        from tricsr._cpu_kernels import _merge_intersect_nb

        col_ind = np.array(a + b, dtype=np.int32)
        la, lb = len(a), len(b)
        expected = merge_intersection_count(col_ind.tolist(), 0, la, la, la + lb)
        assert _merge_intersect_nb(col_ind, 0, la, la, la + lb) == expected
        assert expected == len(set(a) & set(b))


class TestReduceSlotsKernel:
    def test_halving(self):
        from tricsr._cpu_kernels import _reduce_slots_nb

        slots = np.arange(1, 9, dtype=np.int64)
        assert _reduce_slots_nb(slots) == 36
        assert slots[0] == 36

    def test_single_slot(self):
        from tricsr._cpu_kernels import _reduce_slots_nb

        assert _reduce_slots_nb(np.array([5], dtype=np.int64)) == 5


class TestTriangleCountsKernel:
    def test_k5(self):
        block_sums = _run(complete_graph(5), LaunchConfig(1, 32))
        assert block_sums.tolist() == [30]

    def test_k5_full_matrix(self):
        block_sums = _run(complete_graph(5), LaunchConfig(1, 32), upper_only=False)
        assert block_sums.tolist() == [60]

    @pytest.mark.parametrize(
        "config",
        [
            LaunchConfig(1, 32),
            LaunchConfig(4, 64),
            LaunchConfig(7, 96),
            LaunchConfig(3, 12, warp_size=4),
            LaunchConfig(40, 32),
        ],
    )
    def test_block_sums_match_python_blocks(self, config):
        rng = np.random.default_rng(8)
        g = CSRGraph.from_edges(
            rng.integers(0, 50, 300), rng.integers(0, 50, 300), n_rows=50
        )
        block_sums = _run(g, config)
        rp, ci = g.row_ptr.tolist(), g.col_ind.tolist()
        expected = [
            _run_block(b, config, rp, ci, g.n_rows, True)
            for b in range(config.n_blocks)
        ]
        assert block_sums.tolist() == expected

    def test_empty_graph(self):
        block_sums = _run(CSRGraph([0, 0, 0], []), LaunchConfig(2, 32))
        assert block_sums.tolist() == [0, 0]

    def test_int64_column_indices(self):
        g = complete_graph(6)
        row_ptr = g.row_ptr
        col_ind = g.col_ind.astype(np.int64)
        from tricsr._cpu_kernels import _triangle_counts_njit

        block_sums = np.zeros(2, dtype=np.int64)
        _triangle_counts_njit(row_ptr, col_ind, g.n_rows, 2, 1, 32, 1, True, block_sums)
        assert int(block_sums.sum()) == 60
