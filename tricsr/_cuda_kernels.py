"""
_cuda_kernels.py
================
CUDA triangle-counting kernel using Numba CUDA.

This module contains ONLY numba.cuda code and should not import other project
modules to avoid import-time complications.  Importing it does not require a
GPU; kernels are compiled on first launch.

Exported Functions
------------------
_coalesced_add_cuda : cuda.jit device function
    Warp-aggregated add of the active lane count into a shared slot.

_triangle_counts_cuda : cuda.jit kernel
    Grid-stride triangle kernel with a warp / block / grid reduction.

Notes
-----
- One row per warp per grid-stride iteration; lanes stride over the row's
  entries by WARP_SIZE.
- Block dimensions must be a multiple of WARP_SIZE and at most
  MAX_WARPS_PER_BLOCK warps.  The host wrapper validates this before launch.
- Reduction tiers:
    1. lanes that match in the same instruction add popc(activemask) into
       their warp's shared slot, issued by the lowest active lane;
    2. after a barrier, shared slots are halved into slot 0;
    3. thread 0 of each block adds slot 0 to the global total.
  Global atomics are therefore bounded by the number of blocks.
"""

from numba import cuda, int64


WARP_SIZE = 32
MAX_WARPS_PER_BLOCK = 32


# ======================================================================== #
# CUDA Kernels                                                              #
# ======================================================================== #


@cuda.jit(device=True)
def _coalesced_add_cuda(warp_sums, slot):
    """
    Add the number of currently active lanes to ``warp_sums[slot]``.

    Only the active lanes execute this; the one with no active lane below it
    issues the single shared-memory atomic for the group.
    """
    mask = cuda.activemask()
    if cuda.popc(mask & cuda.lanemask_lt()) == 0:
        cuda.atomic.add(warp_sums, slot, int64(cuda.popc(mask)))


@cuda.jit
def _triangle_counts_cuda(row_ptr, col_ind, n_rows, upper_only, total):
    """
    CUDA triangle kernel.

    Parameters
    ----------
    row_ptr : int64[n_rows+1] on device
        CSR row offsets.
    col_ind : int32[nnz] on device
        CSR column indices, sorted within each row.
    n_rows : int
        Number of rows.
    upper_only : bool
        Visit only entries with c > r; otherwise every c != r.
    total : int64[1] on device
        Global accumulator.  Receives one atomic add per block; never zeroed
        here.
    """
    warp_sums = cuda.shared.array(MAX_WARPS_PER_BLOCK, dtype=int64)

    tid = cuda.threadIdx.x
    if tid < MAX_WARPS_PER_BLOCK:
        warp_sums[tid] = 0
    cuda.syncthreads()

    lane = tid % WARP_SIZE
    warp = tid // WARP_SIZE
    warps_per_block = cuda.blockDim.x // WARP_SIZE
    total_warps = cuda.gridDim.x * warps_per_block

    r = cuda.blockIdx.x * warps_per_block + warp
    while r < n_rows:
        r_start = row_ptr[r]
        r_end = row_ptr[r + 1]
        ci = r_start + lane
        while ci < r_end:
            c = col_ind[ci]
            if c > r or (not upper_only and c != r):
                pr = r_start
                pc = row_ptr[c]
                c_end = row_ptr[c + 1]
                while pc < c_end and pr < r_end:
                    v = col_ind[pc]
                    while pr < r_end:
                        u = col_ind[pr]
                        if u == v:
                            _coalesced_add_cuda(warp_sums, warp)
                            pr += 1
                            break
                        if u > v:
                            break
                        pr += 1
                    pc += 1
            ci += WARP_SIZE
        r += total_warps

    # All warps must have finished before any slot is read.
    cuda.syncthreads()

    half = MAX_WARPS_PER_BLOCK // 2
    while half > 0:
        if tid < half:
            warp_sums[tid] += warp_sums[tid + half]
        cuda.syncthreads()
        half //= 2

    if tid == 0:
        cuda.atomic.add(total, 0, warp_sums[0])
