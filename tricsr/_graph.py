"""
_graph.py
=========
The adjacency matrix of an undirected graph in Compressed Sparse Row layout.

Public API
----------
  CSRGraph(row_ptr, col_ind, val=None, n_rows=None)
      Constructor.  Copies the arrays into contiguous, read-only numpy buffers
      with explicit dtypes and checks the structural invariants the kernels
      index by.

  CSRGraph.from_edges(rows, cols, n_rows=None)
  CSRGraph.from_scipy(matrix)
  .to_scipy()
  .neighbors(row) -> int32 ndarray
  .degree(row)    -> int
  .degrees()      -> int64 ndarray
  .validate(check_sorted=True, check_symmetric=True, check_loops=True)

Memory layout
-------------
  row_ptr : int64 (n_rows+1,)
      row_ptr[i] is the offset of row i's first entry, row_ptr[i+1] the end
      (exclusive).  row_ptr[0] == 0 and row_ptr[n_rows] == nnz.
  col_ind : int32 (nnz,)   (int64 when n_rows does not fit in int32)
      Column indices.  Sorted ascending inside every row slice.
  val     : float32 (nnz,)
      Entry values.  Only structural presence matters for triangle counting.

Every undirected edge {u, v} is stored twice, as (u, v) and (v, u), so the
matrix is symmetric and ``columns`` is the same structure as the rows.

Validation policy
-----------------
Construction checks what would make a kernel read out of bounds: row_ptr
monotonicity and end points, and the column index range.  Sortedness,
symmetry and the absence of self-loops are preconditions of the counting
kernels that are NOT checked on construction; ``validate()`` checks them on
request.  Graphs built by ``from_edges`` or ``read_edge_list`` always satisfy
them.
"""

import logging
from typing import Optional

import numpy as np
import scipy.sparse as sp

from tricsr._errors import MalformedStructure

logger = logging.getLogger(__name__)


def _index_dtype(n_rows: int):
    """Smallest signed integer dtype that holds every column index."""
    return np.int32 if n_rows <= np.iinfo(np.int32).max else np.int64


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr = np.ascontiguousarray(arr)
    arr.setflags(write=False)
    return arr


class CSRGraph:
    """
    An immutable symmetric adjacency matrix in CSR form.

    Parameters
    ----------
    row_ptr : array_like of int, shape (n_rows+1,)
        Row offsets into ``col_ind``.
    col_ind : array_like of int, shape (nnz,)
        Column indices, sorted within each row.
    val : array_like of float, shape (nnz,), optional
        Entry values.  Defaults to all ones.
    n_rows : int, optional
        Number of rows.  Must equal ``len(row_ptr) - 1`` when given.

    Attributes (read-only after construction)
    -----------------------------------------
    n_rows  : int
    nnz     : int
    row_ptr : int64 (n_rows+1,)
    col_ind : int32 or int64 (nnz,)
    val     : float32 (nnz,)

    Raises
    ------
    MalformedStructure
        If ``row_ptr`` is not monotonically non-decreasing, does not start at
        0 and end at ``nnz``, or any column index lies outside ``[0, n_rows)``.

    Examples
    --------
    >>> g = CSRGraph([0, 2, 4, 6], [1, 2, 0, 2, 0, 1])   # a single triangle
    >>> g.n_rows, g.nnz
    (3, 6)
    >>> g.neighbors(1)
    array([0, 2], dtype=int32)
    """

    def __init__(self, row_ptr, col_ind, val=None, n_rows: Optional[int] = None):
        row_ptr = np.asarray(row_ptr)
        col_ind = np.asarray(col_ind)

        if row_ptr.ndim != 1 or row_ptr.size == 0:
            raise MalformedStructure(
                f"row_ptr must be a non-empty 1-D array, got shape {row_ptr.shape}"
            )
        if col_ind.ndim != 1:
            raise MalformedStructure(
                f"col_ind must be a 1-D array, got shape {col_ind.shape}"
            )
        if row_ptr.size and not np.issubdtype(row_ptr.dtype, np.integer):
            raise MalformedStructure(f"row_ptr must be integral, got {row_ptr.dtype}")
        if col_ind.size and not np.issubdtype(col_ind.dtype, np.integer):
            raise MalformedStructure(f"col_ind must be integral, got {col_ind.dtype}")

        inferred = row_ptr.size - 1
        if n_rows is None:
            n_rows = inferred
        elif n_rows != inferred:
            raise MalformedStructure(
                f"n_rows={n_rows} does not match len(row_ptr) - 1 = {inferred}"
            )

        nnz = col_ind.size
        self.n_rows = int(n_rows)
        self.nnz = int(nnz)

        self.row_ptr = _frozen(row_ptr.astype(np.int64, copy=True))
        self.col_ind = col_ind.astype(np.int64, copy=True)

        if val is None:
            val = np.ones(nnz, dtype=np.float32)
        else:
            val = np.asarray(val, dtype=np.float32)
            if val.shape != (nnz,):
                raise MalformedStructure(
                    f"val has shape {val.shape}, expected ({nnz},) to match col_ind"
                )
        self.val = _frozen(val.copy())

        self._check_structure()
        self.col_ind = _frozen(self.col_ind.astype(_index_dtype(self.n_rows)))

    # ================================================================== #
    # Construction                                                         #
    # ================================================================== #

    @classmethod
    def from_edges(cls, rows, cols, n_rows: Optional[int] = None) -> "CSRGraph":
        """
        Build a graph from an undirected edge list.

        Each pair is stored in both directions.  Self-loops are dropped and
        repeated edges are merged, so the result satisfies every precondition
        of the counting kernels.

        Parameters
        ----------
        rows, cols : array_like of int
            Edge end points, 0-based.
        n_rows : int, optional
            Number of vertices.  Defaults to ``max(rows, cols) + 1``.

        Returns
        -------
        CSRGraph
        """
        rows = np.asarray(rows, dtype=np.int64).ravel()
        cols = np.asarray(cols, dtype=np.int64).ravel()
        if rows.shape != cols.shape:
            raise MalformedStructure(
                f"edge end point arrays differ in length: {rows.size} vs {cols.size}"
            )
        if rows.size and min(rows.min(), cols.min()) < 0:
            raise MalformedStructure("edge list contains a negative vertex id")

        inferred = int(max(rows.max(), cols.max())) + 1 if rows.size else 0
        if n_rows is None:
            n_rows = inferred
        elif n_rows < inferred:
            raise MalformedStructure(
                f"edge list references vertex {inferred - 1} but n_rows={n_rows}",
                column=inferred - 1,
            )

        keep = rows != cols
        n_loops = int(rows.size - keep.sum())
        if n_loops:
            logger.warning("Dropped %d self-loop(s) from the edge list", n_loops)
        rows, cols = rows[keep], cols[keep]

        src = np.concatenate([rows, cols])
        dst = np.concatenate([cols, rows])
        coo = sp.coo_matrix(
            (np.ones(src.size, dtype=np.float32), (src, dst)), shape=(n_rows, n_rows)
        )
        csr = coo.tocsr()
        csr.sum_duplicates()
        csr.sort_indices()
        csr.data[:] = 1.0
        return cls(csr.indptr, csr.indices, csr.data, n_rows=n_rows)

    @classmethod
    def from_scipy(cls, matrix) -> "CSRGraph":
        """
        Wrap a square ``scipy.sparse`` matrix.

        Duplicate entries are summed and indices sorted; symmetry is the
        caller's responsibility (see ``validate``).
        """
        csr = sp.csr_matrix(matrix, copy=True)
        if csr.shape[0] != csr.shape[1]:
            raise MalformedStructure(
                f"adjacency matrix must be square, got shape {csr.shape}"
            )
        csr.sum_duplicates()
        csr.sort_indices()
        return cls(csr.indptr, csr.indices, csr.data, n_rows=csr.shape[0])

    def to_scipy(self) -> sp.csr_matrix:
        """Return a writable ``scipy.sparse.csr_matrix`` copy of the graph."""
        return sp.csr_matrix(
            (self.val.copy(), self.col_ind.copy(), self.row_ptr.copy()),
            shape=(self.n_rows, self.n_rows),
        )

    # ================================================================== #
    # Accessors                                                            #
    # ================================================================== #

    @property
    def columns(self) -> "CSRGraph":
        """Column view of the matrix; identical to the rows by symmetry."""
        return self

    @property
    def n_edges(self) -> int:
        """Undirected edge count (each edge is stored twice)."""
        return self.nnz // 2

    @property
    def nbytes(self) -> int:
        """Memory footprint of the CSR buffers in bytes."""
        return self.row_ptr.nbytes + self.col_ind.nbytes + self.val.nbytes

    def neighbors(self, row: int) -> np.ndarray:
        """Sorted column indices of ``row`` as a read-only view."""
        self._check_row(row)
        return self.col_ind[self.row_ptr[row] : self.row_ptr[row + 1]]

    def degree(self, row: int) -> int:
        """Number of stored entries in ``row``."""
        self._check_row(row)
        return int(self.row_ptr[row + 1] - self.row_ptr[row])

    def degrees(self) -> np.ndarray:
        """Degree of every row, int64 (n_rows,)."""
        return np.diff(self.row_ptr)

    def __repr__(self) -> str:
        return f"CSRGraph(n_rows={self.n_rows}, nnz={self.nnz})"

    # ================================================================== #
    # Validation                                                           #
    # ================================================================== #

    def validate(
        self,
        check_sorted: bool = True,
        check_symmetric: bool = True,
        check_loops: bool = True,
    ) -> "CSRGraph":
        """
        Check the preconditions of the counting kernels.

        This is a debug-mode pass over the whole structure and is never run
        implicitly by the kernels.

        Parameters
        ----------
        check_sorted : bool, default True
            Column indices strictly increase inside every row (which also
            rules out duplicate entries).
        check_symmetric : bool, default True
            (r, c) present implies (c, r) present.
        check_loops : bool, default True
            No diagonal entries.

        Returns
        -------
        CSRGraph
            ``self``, so calls can be chained.

        Raises
        ------
        MalformedStructure
            On the first violated condition, naming the offending entry.
        """
        entry_rows = np.repeat(np.arange(self.n_rows, dtype=np.int64), self.degrees())

        if check_sorted and self.nnz > 1:
            same_row = entry_rows[1:] == entry_rows[:-1]
            bad = np.flatnonzero(same_row & (np.diff(self.col_ind) <= 0))
            if bad.size:
                p = int(bad[0]) + 1
                raise MalformedStructure(
                    "column indices are not strictly increasing within the row",
                    row=int(entry_rows[p]),
                    column=int(self.col_ind[p]),
                )

        if check_loops and self.nnz:
            bad = np.flatnonzero(self.col_ind == entry_rows)
            if bad.size:
                r = int(entry_rows[bad[0]])
                raise MalformedStructure("self-loop entry", row=r, column=r)

        if check_symmetric and self.nnz:
            pattern = sp.csr_matrix(
                (
                    np.ones(self.nnz, dtype=np.int32),
                    self.col_ind.copy(),
                    self.row_ptr.copy(),
                ),
                shape=(self.n_rows, self.n_rows),
            )
            pattern.data[:] = 1
            asym = (pattern - pattern.T).tocoo()
            asym.eliminate_zeros()
            if asym.nnz:
                order = np.lexsort((asym.col, asym.row))
                i = int(order[0])
                r, c = int(asym.row[i]), int(asym.col[i])
                if asym.data[i] < 0:
                    r, c = c, r
                raise MalformedStructure(
                    "matrix is not symmetric: entry present without its transpose",
                    row=r,
                    column=c,
                )

        logger.debug("CSR structure validated: %r", self)
        return self

    def _check_structure(self) -> None:
        row_ptr = self.row_ptr
        if row_ptr[0] != 0:
            raise MalformedStructure(
                f"row_ptr[0] must be 0, got {int(row_ptr[0])}", row=0
            )
        bad = np.flatnonzero(np.diff(row_ptr) < 0)
        if bad.size:
            r = int(bad[0])
            raise MalformedStructure(
                f"row_ptr decreases from {int(row_ptr[r])} to {int(row_ptr[r + 1])}",
                row=r,
            )
        if row_ptr[-1] != self.nnz:
            raise MalformedStructure(
                f"row_ptr[n_rows] must equal nnz={self.nnz}, got {int(row_ptr[-1])}",
                row=self.n_rows,
            )
        if self.nnz:
            bad = np.flatnonzero((self.col_ind < 0) | (self.col_ind >= self.n_rows))
            if bad.size:
                p = int(bad[0])
                r = int(np.searchsorted(row_ptr, p, side="right") - 1)
                raise MalformedStructure(
                    f"column index outside [0, {self.n_rows})",
                    row=r,
                    column=int(self.col_ind[p]),
                )

    def _check_row(self, row: int) -> None:
        if not 0 <= row < self.n_rows:
            raise IndexError(f"row {row} out of range for {self.n_rows} rows")
