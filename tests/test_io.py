"""
tests/test_io.py
================
Edge-list parsing and writing.
"""

import numpy as np
import pytest

from tricsr import (
    CSRGraph,
    EdgeListFormatError,
    count_triangles,
    read_edge_list,
    write_edge_list,
)


def _write(tmp_path, text, name="edges.csv"):
    path = tmp_path / name
    path.write_text(text)
    return path


class TestReadEdgeList:
    def test_comma_separated(self, tmp_path):
        path = _write(tmp_path, "0,1\n1,2\n0,2\n")
        g = read_edge_list(path)
        assert g.n_rows == 3
        assert g.n_edges == 3
        np.testing.assert_array_equal(g.neighbors(0), [1, 2])

    def test_result_satisfies_kernel_preconditions(self, tmp_path):
        path = _write(tmp_path, "2,0\n0,2\n1,1\n3,1\n1,0\n")
        g = read_edge_list(path)
        assert g.validate() is g
        assert g.n_edges == 3

    def test_whitespace_delimiter(self, tmp_path):
        path = _write(tmp_path, "0 1\n1\t2\n  0   2  \n", name="edges.tsv")
        g = read_edge_list(path, delimiter=None)
        assert g.n_edges == 3

    def test_one_based(self, tmp_path):
        path = _write(tmp_path, "1,2\n2,3\n1,3\n")
        g = read_edge_list(path, index_base=1)
        assert g.n_rows == 3
        np.testing.assert_array_equal(g.neighbors(2), [0, 1])

    def test_comments_and_blank_lines_skipped(self, tmp_path):
        text = "% MatrixMarket banner\n# header\n\n0,1\n   \n1,2\n"
        g = read_edge_list(_write(tmp_path, text))
        assert g.n_edges == 2

    def test_extra_columns_ignored(self, tmp_path):
        path = _write(tmp_path, "0,1,0.5\n1,2,3.0,extra\n")
        g = read_edge_list(path)
        assert g.n_edges == 2

    def test_integral_float_ids(self, tmp_path):
        path = _write(tmp_path, "1.0,2.0\n2.0,3.0\n")
        g = read_edge_list(path, index_base=1)
        assert g.n_edges == 2

    def test_n_rows_keeps_isolated_vertices(self, tmp_path):
        g = read_edge_list(_write(tmp_path, "0,1\n"), n_rows=10)
        assert g.n_rows == 10

    def test_empty_file(self, tmp_path):
        g = read_edge_list(_write(tmp_path, ""))
        assert g.n_rows == 0
        assert count_triangles(g, backend="python") == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            read_edge_list(tmp_path / "absent.csv")


class TestReadErrors:
    def test_single_field(self, tmp_path):
        path = _write(tmp_path, "0,1\n# ok\n7\n")
        with pytest.raises(EdgeListFormatError, match="at least 2 fields") as exc:
            read_edge_list(path)
        assert exc.value.lineno == 3
        assert f"{path}:3:" in str(exc.value)

    def test_non_integer_token(self, tmp_path):
        path = _write(tmp_path, "0,1\na,b\n")
        with pytest.raises(EdgeListFormatError) as exc:
            read_edge_list(path)
        assert exc.value.lineno == 2

    def test_fractional_id(self, tmp_path):
        path = _write(tmp_path, "0,1.5\n")
        with pytest.raises(EdgeListFormatError, match="not an integer"):
            read_edge_list(path)

    def test_negative_after_rebase(self, tmp_path):
        path = _write(tmp_path, "1,2\n0,1\n")
        with pytest.raises(EdgeListFormatError, match="negative") as exc:
            read_edge_list(path, index_base=1)
        assert exc.value.lineno == 2

    def test_wrong_delimiter(self, tmp_path):
        path = _write(tmp_path, "0 1\n")
        with pytest.raises(EdgeListFormatError):
            read_edge_list(path, delimiter=",")

    def test_is_value_error(self, tmp_path):
        with pytest.raises(ValueError):
            read_edge_list(_write(tmp_path, "x\n"))

    def test_non_text_bytes(self, tmp_path):
        path = tmp_path / "binary.csv"
        path.write_bytes(b"0,1\n\xff\xfe,2\n")
        with pytest.raises(EdgeListFormatError, match="not an ASCII text file") as exc:
            read_edge_list(path)
        assert exc.value.path == path
        assert exc.value.lineno is None


class TestWriteEdgeList:
    def test_writes_upper_triangle_once(self, tmp_path):
        g = CSRGraph.from_edges([0, 1, 0], [1, 2, 2])
        path = tmp_path / "out.csv"
        n = write_edge_list(g, path)
        assert n == 3
        lines = path.read_text().split()
        assert lines == ["0,1", "0,2", "1,2"]

    def test_index_base(self, tmp_path):
        g = CSRGraph.from_edges([0], [1])
        path = tmp_path / "out.csv"
        write_edge_list(g, path, delimiter=" ", index_base=1)
        assert path.read_text().strip() == "1 2"

    def test_reread_preserves_structure(self, tmp_path):
        rng = np.random.default_rng(3)
        g = CSRGraph.from_edges(
            rng.integers(0, 40, 200), rng.integers(0, 40, 200), n_rows=40
        )
        path = tmp_path / "out.csv"
        write_edge_list(g, path)
        h = read_edge_list(path, n_rows=40)
        np.testing.assert_array_equal(h.row_ptr, g.row_ptr)
        np.testing.assert_array_equal(h.col_ind, g.col_ind)

    def test_empty_graph(self, tmp_path):
        path = tmp_path / "out.csv"
        assert write_edge_list(CSRGraph([0, 0, 0], []), path) == 0
        assert path.read_text() == ""
