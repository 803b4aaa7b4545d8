"""
_partition.py
=============
Maps graph rows onto the warps of a launch.

Launch geometry
---------------
A launch is a 1-D grid of ``n_blocks`` blocks of ``threads_per_block``
threads.  Threads are grouped into warps of ``warp_size`` lanes; warp ``k`` of
block ``b`` has the global index ``w = b * warps_per_block + k``.

Row assignment (grid-stride)
----------------------------
Warp ``w`` processes rows ``w, w + T, w + 2T, ...`` where ``T`` is the total
number of warps in the grid.  The sequence depends only on ``w`` and ``T``,
so the partition needs no scheduling or locking, covers every row exactly
once for any ``T >= 1``, and spreads rows evenly whether there are more rows
than warps or fewer.

Functions in this module have NO side effects.
"""

from typing import Iterator, NamedTuple, Optional, Tuple

from tricsr._errors import ResourceExhaustion
from tricsr._utils import ceil_div, next_power_of_two


WARP_SIZE = 32
MAX_WARPS_PER_BLOCK = 32
DEFAULT_THREADS_PER_BLOCK = 256
MAX_GRID_BLOCKS = 2**31 - 1


class LaunchConfig(NamedTuple):
    """
    Grid and block dimensions of one triangle-counting launch.

    Attributes
    ----------
    n_blocks : int
        Blocks in the grid.
    threads_per_block : int
        Threads per block, a multiple of ``warp_size``.
    warp_size : int
        Lanes per warp.
    """

    n_blocks: int
    threads_per_block: int
    warp_size: int = WARP_SIZE

    @property
    def warps_per_block(self) -> int:
        return self.threads_per_block // self.warp_size

    @property
    def total_warps(self) -> int:
        return self.n_blocks * self.warps_per_block

    @property
    def total_threads(self) -> int:
        return self.n_blocks * self.threads_per_block

    @property
    def n_slots(self) -> int:
        """Per-block warp slots, padded to a power of two for the halving reduction."""
        return next_power_of_two(self.warps_per_block)


def warp_rows(global_warp: int, total_warps: int, n_rows: int) -> range:
    """
    Rows owned by one warp under the grid-stride assignment.

    Examples
    --------
    >>> list(warp_rows(1, 4, 10))
    [1, 5, 9]
    >>> list(warp_rows(7, 8, 5))
    []
    """
    return range(global_warp, n_rows, total_warps)


def block_warps(
    block: int, config: LaunchConfig, n_rows: int
) -> Iterator[Tuple[int, range]]:
    """
    Yield ``(warp_in_block, rows)`` for every warp of ``block``.

    Parameters
    ----------
    block : int
        Block index in ``[0, config.n_blocks)``.
    config : LaunchConfig
        Launch geometry.
    n_rows : int
        Rows in the graph.
    """
    first = block * config.warps_per_block
    for k in range(config.warps_per_block):
        yield k, warp_rows(first + k, config.total_warps, n_rows)


def compute_launch_grid(
    n_rows: int,
    threads_per_block: int = DEFAULT_THREADS_PER_BLOCK,
    warp_size: int = WARP_SIZE,
    max_blocks: Optional[int] = None,
) -> LaunchConfig:
    """
    Default grid: one warp per row, optionally capped at ``max_blocks``.

    A capped grid is still correct; the grid-stride loop hands the uncovered
    rows back to the same warps.

    Examples
    --------
    >>> compute_launch_grid(1000)
    LaunchConfig(n_blocks=125, threads_per_block=256, warp_size=32)
    >>> compute_launch_grid(1000, max_blocks=16).n_blocks
    16
    >>> compute_launch_grid(0).n_blocks
    1
    """
    warps_per_block = max(1, threads_per_block // warp_size)
    n_blocks = max(1, ceil_div(n_rows, warps_per_block))
    if max_blocks is not None:
        n_blocks = max(1, min(n_blocks, max_blocks))
    return LaunchConfig(n_blocks, threads_per_block, warp_size)


def resolve_launch_config(
    n_rows: int,
    blocks: Optional[int] = None,
    threads_per_block: Optional[int] = None,
    warp_size: int = WARP_SIZE,
    max_blocks: Optional[int] = None,
) -> LaunchConfig:
    """
    Turn caller-supplied launch parameters into a validated ``LaunchConfig``.

    Parameters
    ----------
    n_rows : int
        Rows in the graph; sizes the default grid.
    blocks : int, optional
        Blocks in the grid.  Defaults to one warp per row.
    threads_per_block : int, optional
        Threads per block.  Defaults to ``DEFAULT_THREADS_PER_BLOCK``.
    warp_size : int, default 32
        Lanes per warp.
    max_blocks : int, optional
        Cap for the default grid; ignored when ``blocks`` is given.

    Returns
    -------
    LaunchConfig

    Raises
    ------
    ResourceExhaustion
        If the warp width is not positive, the block is not a positive
        multiple of the warp width, holds more than ``MAX_WARPS_PER_BLOCK``
        warps, or the grid size is outside ``[1, MAX_GRID_BLOCKS]``.
    """
    if warp_size < 1:
        raise ResourceExhaustion(f"warp_size must be >= 1, got {warp_size}")

    if threads_per_block is None:
        limit = min(DEFAULT_THREADS_PER_BLOCK, MAX_WARPS_PER_BLOCK * warp_size)
        threads_per_block = max(warp_size, limit // warp_size * warp_size)

    if threads_per_block < warp_size or threads_per_block % warp_size:
        raise ResourceExhaustion(
            f"threads_per_block={threads_per_block} must be a positive multiple "
            f"of the warp size ({warp_size})"
        )
    if threads_per_block // warp_size > MAX_WARPS_PER_BLOCK:
        raise ResourceExhaustion(
            f"threads_per_block={threads_per_block} exceeds the limit of "
            f"{MAX_WARPS_PER_BLOCK} warps x {warp_size} lanes = "
            f"{MAX_WARPS_PER_BLOCK * warp_size} threads per block"
        )

    if blocks is None:
        return compute_launch_grid(n_rows, threads_per_block, warp_size, max_blocks)

    if not 1 <= blocks <= MAX_GRID_BLOCKS:
        raise ResourceExhaustion(
            f"blocks={blocks} outside the supported range [1, {MAX_GRID_BLOCKS}]"
        )
    return LaunchConfig(blocks, threads_per_block, warp_size)
