"""
_io.py
======
Reading and writing undirected edge lists.

Format
------
One edge per line: ``source<delim>target[<delim>extra ...]``.  Columns after
the second (weights, timestamps) are ignored.  Blank lines and lines whose
first non-blank character is one of ``comments`` are skipped, which covers
both shell-style ``#`` headers and Matrix Market ``%`` banners.

Parsed edges go through ``CSRGraph.from_edges``, so the resulting graph is
always symmetric, deduplicated, loop-free and row-sorted.
"""

import logging
import os
from typing import Optional, Union

import numpy as np

from tricsr._errors import EdgeListFormatError
from tricsr._graph import CSRGraph

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def _parse_id(token: str) -> int:
    """Integer vertex id; integral floats such as '3.0' are accepted."""
    try:
        return int(token)
    except ValueError:
        value = float(token)
        if not value.is_integer():
            raise ValueError(f"vertex id {token!r} is not an integer")
        return int(value)


def read_edge_list(
    path: PathLike,
    delimiter: Optional[str] = ",",
    index_base: int = 0,
    comments: str = "#%",
    n_rows: Optional[int] = None,
) -> CSRGraph:
    """
    Read an undirected edge list into a CSRGraph.

    Parameters
    ----------
    path : str or PathLike
        Text file to read.
    delimiter : str or None, default ','
        Field separator.  None splits on runs of whitespace.
    index_base : int, default 0
        Value of the first vertex id in the file.  Use 1 for MATLAB and
        Matrix Market exports.
    comments : str, default '#%'
        Characters that start a comment line.
    n_rows : int, optional
        Number of vertices.  Defaults to the largest id seen plus one, so
        trailing isolated vertices need it to be given explicitly.

    Returns
    -------
    CSRGraph

    Raises
    ------
    EdgeListFormatError
        On a line with fewer than two fields, a non-integer id, or an id that
        is negative after subtracting ``index_base``.  The message names the
        file and line number, or only the file when it is not ASCII text.
    OSError
        If the file cannot be opened.
    """
    sources = []
    targets = []
    with open(path, "r", encoding="ascii") as fh:
        try:
            lines = list(fh)
        except UnicodeDecodeError as e:
            raise EdgeListFormatError(
                f"not an ASCII text file ({e.reason})", path=path
            ) from e
        for lineno, line in enumerate(lines, 1):
            stripped = line.strip()
            if not stripped or stripped[0] in comments:
                continue
            fields = stripped.split(delimiter)
            if len(fields) < 2:
                raise EdgeListFormatError(
                    f"expected at least 2 fields, got {len(fields)}",
                    path=path,
                    lineno=lineno,
                )
            try:
                u = _parse_id(fields[0].strip()) - index_base
                v = _parse_id(fields[1].strip()) - index_base
            except ValueError as e:
                raise EdgeListFormatError(str(e), path=path, lineno=lineno) from e
            if u < 0 or v < 0:
                raise EdgeListFormatError(
                    f"negative vertex id after rebasing by {index_base}: ({u}, {v})",
                    path=path,
                    lineno=lineno,
                )
            sources.append(u)
            targets.append(v)

    rows = np.array(sources, dtype=np.int64)
    cols = np.array(targets, dtype=np.int64)
    logger.info("Read %d edge line(s) from %s", rows.size, os.fspath(path))
    return CSRGraph.from_edges(rows, cols, n_rows=n_rows)


def write_edge_list(
    graph: CSRGraph,
    path: PathLike,
    delimiter: str = ",",
    index_base: int = 0,
) -> int:
    """
    Write each undirected edge of ``graph`` once, as ``u<delim>v`` with u < v.

    Parameters
    ----------
    graph : CSRGraph
    path : str or PathLike
    delimiter : str, default ','
    index_base : int, default 0
        Added to every id on output.

    Returns
    -------
    int
        Number of edges written.
    """
    rows = np.repeat(np.arange(graph.n_rows, dtype=np.int64), graph.degrees())
    cols = graph.col_ind.astype(np.int64)
    upper = cols > rows
    edges = np.column_stack([rows[upper], cols[upper]]) + index_base
    np.savetxt(path, edges, fmt="%d", delimiter=delimiter)
    logger.info("Wrote %d edge(s) to %s", edges.shape[0], os.fspath(path))
    return int(edges.shape[0])
