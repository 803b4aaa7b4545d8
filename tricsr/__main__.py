"""
Command-line entry point: count the triangles of an edge-list file.

    python -m tricsr edges.csv --backend cpu-parallel --expected 1612010

Exit status is 0 on success, 1 when ``--expected`` is given and does not
match, and 2 when the file cannot be read or the launch is rejected.
"""

import argparse
import logging
import sys
import time

from tricsr._backend import BACKENDS
from tricsr._counter import TriangleCounter
from tricsr._errors import TricsrError
from tricsr._io import read_edge_list


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tricsr",
        description="Count the triangles of an undirected graph given as an edge list.",
    )
    parser.add_argument(
        "edge_file", help="Edge list, one 'source<delim>target' per line"
    )
    parser.add_argument(
        "-d",
        "--delimiter",
        default=",",
        help="Field separator; 'whitespace' splits on runs of blanks (default: ',')",
    )
    parser.add_argument(
        "--one-based", action="store_true", help="Vertex ids in the file start at 1"
    )
    parser.add_argument(
        "-b",
        "--backend",
        default="best",
        choices=("best",) + BACKENDS,
        help="Execution backend (default: best available)",
    )
    parser.add_argument("--blocks", type=int, default=None, help="Blocks in the grid")
    parser.add_argument(
        "--threads-per-block",
        type=int,
        default=None,
        help="Threads per block, a multiple of 32 (default: 256)",
    )
    parser.add_argument(
        "--full-matrix",
        action="store_true",
        help="Visit every stored entry instead of only the upper triangle",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Check sortedness, symmetry and self-loops before counting",
    )
    parser.add_argument(
        "--expected",
        type=int,
        default=None,
        help="Known triangle count; exit with status 1 on mismatch",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose", action="store_true", help="Log at INFO level"
    )
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Log errors only")
    return parser


def main(argv=None) -> int:
    args = create_parser().parse_args(argv)

    if args.verbose:
        level = logging.INFO
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("tricsr").setLevel(level)

    delimiter = None if args.delimiter == "whitespace" else args.delimiter
    try:
        start = time.perf_counter()
        graph = read_edge_list(
            args.edge_file, delimiter=delimiter, index_base=1 if args.one_based else 0
        )
        read_time = time.perf_counter() - start

        counter = TriangleCounter(graph)
        start = time.perf_counter()
        n_triangles = counter.count(
            backend=args.backend,
            blocks=args.blocks,
            threads_per_block=args.threads_per_block,
            upper_only=not args.full_matrix,
            validate=args.validate,
        )
        count_time = time.perf_counter() - start
    except (TricsrError, OSError) as e:
        print(f"tricsr: error: {e}", file=sys.stderr)
        return 2

    print(f"vertices:  {graph.n_rows}")
    print(f"edges:     {graph.n_edges}")
    print(f"triangles: {n_triangles}")
    print(f"read time:  {read_time:.4f} s")
    print(f"count time: {count_time:.4f} s")

    if args.expected is not None:
        if n_triangles != args.expected:
            print(
                f"MISMATCH: expected {args.expected} triangles, counted {n_triangles}",
                file=sys.stderr,
            )
            return 1
        print("matches expected count")
    return 0


if __name__ == "__main__":
    sys.exit(main())
