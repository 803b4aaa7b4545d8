"""
_cpu_kernels.py
===============
CPU-parallel triangle-counting kernels using Numba.

This module contains ONLY numba-accelerated code and should not import other
project modules to avoid import-time complications.

Exported Functions
------------------
_merge_intersect_nb : njit function
    Intersection size of two sorted slices of col_ind (two-pointer merge).

_reduce_slots_nb : njit function
    Pairwise halving reduction over a power-of-two slot array.

_triangle_counts_njit : njit function
    Parallel triangle kernel; one partial sum per block.

Notes
-----
- The outer loop over blocks runs in parallel via prange.  Inside a block,
  warps and lanes run sequentially, so a warp's lanes are already
  synchronized when its row total is added to the warp slot: one slot update
  per (warp, row), never one per match.
- No atomics are needed: each parallel iteration owns block_sums_out[b].  The
  host adds the block partials into the accumulator.
- cache=True persists compiled binary to disk for faster subsequent runs
"""

import numpy as np
from numba import njit, prange


# ======================================================================== #
# CPU Kernels                                                               #
# ======================================================================== #


@njit(cache=True)
def _merge_intersect_nb(col_ind, r_start, r_end, c_start, c_end):
    """
    Count common entries of col_ind[r_start:r_end] and col_ind[c_start:c_end].

    Both slices must be sorted ascending.  The r-side cursor ``pr`` is never
    reset: after it stops on an entry larger than the current c-side value,
    the next c-side value (which is larger still) resumes from there.

    Parameters
    ----------
    col_ind : int32[nnz]
        CSR column indices.
    r_start, r_end : int
        Slice of the row being processed.
    c_start, c_end : int
        Slice of the neighbor row.

    Returns
    -------
    int
        Number of common entries.
    """
    count = 0
    pr = r_start
    for pc in range(c_start, c_end):
        v = col_ind[pc]
        while pr < r_end:
            u = col_ind[pr]
            if u == v:
                count += 1
                pr += 1
                break
            if u > v:
                break
            pr += 1
        if pr >= r_end:
            break
    return count


@njit(cache=True)
def _reduce_slots_nb(slots):
    """
    Halve slots pairwise until slot 0 holds the total.

    len(slots) is a power of two.
    """
    half = slots.shape[0] // 2
    while half > 0:
        for i in range(half):
            slots[i] += slots[i + half]
        half //= 2
    return slots[0]


@njit(parallel=True, cache=True)
def _triangle_counts_njit(
        row_ptr,
        col_ind,
        n_rows,
        n_blocks,
        warps_per_block,
        warp_size,
        n_slots,
        upper_only,
        block_sums_out):
    """
    Numba-compiled triangle kernel.

    Warp ``w = b * warps_per_block + k`` processes rows ``w, w + T, ...``
    (T = n_blocks * warps_per_block).  Lane ``l`` of the warp visits entries
    ``row_ptr[r] + l, + warp_size, ...`` of row r and merges each qualifying
    neighbor list against row r.

    Parameters
    ----------
    row_ptr : int64[n_rows+1]
        CSR row offsets.
    col_ind : int32[nnz]
        CSR column indices, sorted within each row.
    n_rows : int
        Number of rows.
    n_blocks : int
        Blocks in the grid.
    warps_per_block : int
        Warps per block.
    warp_size : int
        Lanes per warp.
    n_slots : int
        Power of two >= warps_per_block.
    upper_only : bool
        Visit only entries with c > r; otherwise every c != r.
    block_sums_out : int64[n_blocks]
        Output: per-block totals of (edge, closing vertex) incidences.
    """
    total_warps = n_blocks * warps_per_block
    for b in prange(n_blocks):
        slots = np.zeros(n_slots, dtype=np.int64)
        for k in range(warps_per_block):
            w = b * warps_per_block + k
            for r in range(w, n_rows, total_warps):
                r_start = row_ptr[r]
                r_end = row_ptr[r + 1]
                row_sum = 0
                for lane in range(warp_size):
                    for ci in range(r_start + lane, r_end, warp_size):
                        c = col_ind[ci]
                        if c == r or (upper_only and c < r):
                            continue
                        row_sum += _merge_intersect_nb(
                            col_ind, r_start, r_end, row_ptr[c], row_ptr[c + 1]
                        )
                slots[k] += row_sum
        block_sums_out[b] = _reduce_slots_nb(slots)
