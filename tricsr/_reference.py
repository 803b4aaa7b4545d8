"""
_reference.py
=============
Pure-Python triangle-counting kernel and an independent SpGEMM count.

The ``python`` backend executes the same algorithm as the compiled kernels,
with the GPU execution model made explicit:

* blocks run concurrently on a thread pool and are independent of each other;
* inside a block, each warp's lanes advance in lock-step, one merge step at a
  time.  Each lane is a generator that yields once per step, ``True`` when the
  step found a common neighbor;
* the lanes that matched during the same step form an ``ActiveGroupReduce``
  whose lowest lane adds the group size into the warp's slot (one update per
  group, not per match);
* after every warp of the block is done, the slots are halved pairwise into
  slot 0 and the block total is added to the accumulator once.

It is slow and intended for verification, debugging and machines without
numba-compatible hardware.

``count_triangles_spgemm`` does not share any code with the kernels: it counts
``trace(A^3) / 6`` through a sparse matrix product, and serves as an oracle.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List, Optional, Sequence

import numpy as np

from tricsr._partition import LaunchConfig, block_warps

logger = logging.getLogger(__name__)


# ======================================================================== #
# Merge intersection                                                        #
# ======================================================================== #


def _merge_steps(
    col_ind: Sequence[int], r_start: int, r_end: int, c_start: int, c_end: int
) -> Iterator[bool]:
    """
    Two-pointer walk over ``col_ind[r_start:r_end]`` and ``col_ind[c_start:c_end]``.

    Yields once per comparison; ``True`` when the comparison found a common
    entry.  The r-side cursor only moves forward: after stopping on an entry
    larger than the current c-side value it resumes there for the next one.
    """
    pr = r_start
    for pc in range(c_start, c_end):
        v = col_ind[pc]
        while pr < r_end:
            u = col_ind[pr]
            if u == v:
                pr += 1
                yield True
                break
            if u > v:
                yield False
                break
            pr += 1
            yield False
        if pr >= r_end:
            return


def merge_intersection_count(
    col_ind: Sequence[int], r_start: int, r_end: int, c_start: int, c_end: int
) -> int:
    """
    Size of the intersection of two sorted slices of ``col_ind``.

    Examples
    --------
    >>> col_ind = [1, 2, 3, 5,   0, 2, 5, 9]
    >>> merge_intersection_count(col_ind, 0, 4, 4, 8)
    2
    """
    return sum(_merge_steps(col_ind, r_start, r_end, c_start, c_end))


def _lane_steps(
    row_ptr: Sequence[int],
    col_ind: Sequence[int],
    row: int,
    lane: int,
    warp_size: int,
    upper_only: bool,
) -> Iterator[bool]:
    """Merge steps of one lane over its strided share of ``row``'s entries."""
    r_start = row_ptr[row]
    r_end = row_ptr[row + 1]
    for ci in range(r_start + lane, r_end, warp_size):
        c = col_ind[ci]
        if c == row or (upper_only and c < row):
            continue
        yield from _merge_steps(col_ind, r_start, r_end, row_ptr[c], row_ptr[c + 1])


# ======================================================================== #
# Reduction hierarchy                                                       #
# ======================================================================== #


class ActiveGroupReduce:
    """
    The lanes of one warp that took the match branch in the same step.

    Parameters
    ----------
    lanes : sequence of int
        Active lane ids.
    slots : list of int
        The block's per-warp partial sums.
    slot : int
        This warp's slot.
    """

    def __init__(self, lanes: Sequence[int], slots: List[int], slot: int) -> None:
        self.lanes = tuple(lanes)
        self._slots = slots
        self._slot = slot

    def active_count(self) -> int:
        return len(self.lanes)

    def leader(self) -> int:
        """The lane that issues the group's single update."""
        return min(self.lanes)

    def contribute(self, value: int) -> None:
        """Add ``value`` to the warp's slot; issued by ``leader()`` only."""
        self._slots[self._slot] += value


def _run_warp(
    row_ptr: Sequence[int],
    col_ind: Sequence[int],
    rows: range,
    warp_size: int,
    upper_only: bool,
    slots: List[int],
    slot: int,
) -> int:
    """
    Process every row of one warp in lock-step.

    Returns
    -------
    int
        Number of slot updates issued (one per active group).
    """
    n_updates = 0
    for row in rows:
        running = {
            lane: _lane_steps(row_ptr, col_ind, row, lane, warp_size, upper_only)
            for lane in range(warp_size)
        }
        while running:
            matched = []
            for lane in list(running):
                hit = next(running[lane], None)
                if hit is None:
                    del running[lane]
                elif hit:
                    matched.append(lane)
            if matched:
                group = ActiveGroupReduce(matched, slots, slot)
                for lane in group.lanes:
                    if lane == group.leader():
                        group.contribute(group.active_count())
                        n_updates += 1
    return n_updates


def _reduce_slots(slots: List[int]) -> int:
    """Pairwise halving over a power-of-two number of slots; result in slot 0."""
    half = len(slots) // 2
    while half > 0:
        for i in range(half):
            slots[i] += slots[i + half]
        half //= 2
    return slots[0]


def _run_block(
    block: int,
    config: LaunchConfig,
    row_ptr: Sequence[int],
    col_ind: Sequence[int],
    n_rows: int,
    upper_only: bool,
) -> int:
    slots = [0] * config.n_slots
    for k, rows in block_warps(block, config, n_rows):
        _run_warp(row_ptr, col_ind, rows, config.warp_size, upper_only, slots, k)
    # Every warp of the block has finished here, so all slots are final.
    return _reduce_slots(slots)


def triangle_counts_python(
    row_ptr: np.ndarray,
    col_ind: np.ndarray,
    n_rows: int,
    config: LaunchConfig,
    upper_only: bool,
    accumulator,
    max_workers: Optional[int] = None,
) -> None:
    """
    Run the reference kernel and add each block's total into ``accumulator``.

    Parameters
    ----------
    row_ptr : int64[n_rows+1]
    col_ind : int32[nnz]
    n_rows : int
    config : LaunchConfig
        Grid geometry.  Any configuration gives the same total.
    upper_only : bool
        Visit only entries with ``c > r``.  Otherwise every ``c != r``.
    accumulator : Accumulator
        Receives one ``add`` per block.  Not reset here.
    max_workers : int, optional
        Threads running blocks concurrently.  ``1`` runs blocks in order on
        the calling thread.
    """
    rp = row_ptr.tolist()
    ci = col_ind.tolist()

    def run(block: int) -> None:
        accumulator.add(_run_block(block, config, rp, ci, n_rows, upper_only))

    if max_workers == 1 or config.n_blocks == 1:
        for block in range(config.n_blocks):
            run(block)
        return

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        # list() re-raises the first exception from a worker
        list(pool.map(run, range(config.n_blocks)))


# ======================================================================== #
# Independent oracle                                                        #
# ======================================================================== #


def count_triangles_spgemm(graph) -> int:
    """
    Triangle count as ``sum((A @ A) .* A) / 6`` using ``scipy.sparse``.

    Parameters
    ----------
    graph : CSRGraph
        Symmetric, loop-free adjacency structure.

    Returns
    -------
    int
    """
    a = graph.to_scipy().astype(np.int64)
    a.data[:] = 1
    closed = (a @ a).multiply(a)
    return int(closed.sum()) // 6
