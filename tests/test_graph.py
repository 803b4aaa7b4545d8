"""
tests/test_graph.py
===================
CSRGraph construction, accessors and validation.

Construction checks only what would make a kernel read out of bounds;
``validate()`` checks the sortedness, symmetry and loop-freedom preconditions.
"""

import logging

import numpy as np
import pytest
import scipy.sparse as sp

from tricsr import CSRGraph, MalformedStructure


# ======================================================================== #
# Fixtures                                                                  #
# ======================================================================== #


@pytest.fixture(scope="module")
def triangle():
    """Vertices 0, 1, 2 pairwise connected; both directions stored."""
    return CSRGraph([0, 2, 4, 6], [1, 2, 0, 2, 0, 1])


@pytest.fixture(scope="module")
def k4():
    return CSRGraph.from_edges([0, 0, 0, 1, 1, 2], [1, 2, 3, 2, 3, 3])


# ======================================================================== #
# 1. Construction                                                           #
# ======================================================================== #


class TestConstruction:
    def test_sizes(self, triangle):
        assert triangle.n_rows == 3
        assert triangle.nnz == 6
        assert triangle.n_edges == 3

    def test_dtypes(self, triangle):
        assert triangle.row_ptr.dtype == np.int64
        assert triangle.col_ind.dtype == np.int32
        assert triangle.val.dtype == np.float32

    def test_default_values_are_ones(self, triangle):
        np.testing.assert_array_equal(triangle.val, np.ones(6, dtype=np.float32))

    def test_explicit_values(self):
        g = CSRGraph([0, 1, 2], [1, 0], val=[2.5, 2.5])
        np.testing.assert_array_equal(g.val, [2.5, 2.5])

    def test_value_length_mismatch(self):
        with pytest.raises(MalformedStructure, match="val has shape"):
            CSRGraph([0, 1, 2], [1, 0], val=[1.0])

    @pytest.mark.parametrize("attr", ["row_ptr", "col_ind", "val"])
    def test_buffers_are_read_only(self, triangle, attr):
        with pytest.raises(ValueError):
            getattr(triangle, attr)[0] = 0

    def test_buffers_are_copies(self):
        row_ptr = np.array([0, 1, 2], dtype=np.int64)
        col_ind = np.array([1, 0], dtype=np.int32)
        g = CSRGraph(row_ptr, col_ind)
        col_ind[0] = 99
        assert g.col_ind[0] == 1

    def test_empty_graph(self):
        g = CSRGraph([0], [])
        assert g.n_rows == 0
        assert g.nnz == 0
        assert g.degrees().size == 0

    def test_isolated_vertices(self):
        g = CSRGraph([0, 0, 0, 0], [])
        assert g.n_rows == 3
        np.testing.assert_array_equal(g.degrees(), [0, 0, 0])

    def test_n_rows_matches(self):
        assert CSRGraph([0, 1, 2], [1, 0], n_rows=2).n_rows == 2

    def test_n_rows_mismatch(self):
        with pytest.raises(MalformedStructure, match="does not match"):
            CSRGraph([0, 1, 2], [1, 0], n_rows=3)

    def test_empty_row_ptr(self):
        with pytest.raises(MalformedStructure, match="non-empty"):
            CSRGraph([], [])

    def test_two_dimensional_col_ind(self):
        with pytest.raises(MalformedStructure, match="1-D"):
            CSRGraph([0, 1, 2], [[1], [0]])

    def test_float_col_ind(self):
        with pytest.raises(MalformedStructure, match="integral"):
            CSRGraph([0, 1, 2], [1.0, 0.0])

    def test_is_malformed_structure_a_value_error(self):
        with pytest.raises(ValueError):
            CSRGraph([1, 1, 2], [1, 0])


# ======================================================================== #
# 2. Structural bounds checks                                               #
# ======================================================================== #


class TestStructureChecks:
    def test_row_ptr_must_start_at_zero(self):
        with pytest.raises(MalformedStructure, match=r"row_ptr\[0\]") as exc:
            CSRGraph([1, 1, 2], [1, 0])
        assert exc.value.row == 0

    def test_row_ptr_must_not_decrease(self):
        with pytest.raises(MalformedStructure, match="decreases") as exc:
            CSRGraph([0, 2, 1, 2], [1, 2])
        assert exc.value.row == 1

    def test_row_ptr_must_end_at_nnz(self):
        with pytest.raises(MalformedStructure, match="must equal nnz") as exc:
            CSRGraph([0, 1, 1], [1, 0])
        assert exc.value.row == 2

    def test_column_out_of_range(self):
        with pytest.raises(MalformedStructure, match="outside") as exc:
            CSRGraph([0, 1, 2, 3], [1, 0, 3])
        assert exc.value.row == 2
        assert exc.value.column == 3

    def test_negative_column(self):
        with pytest.raises(MalformedStructure) as exc:
            CSRGraph([0, 1, 2], [-1, 0])
        assert exc.value.row == 0
        assert exc.value.column == -1

    def test_message_names_location(self):
        with pytest.raises(MalformedStructure, match=r"\(row=2, column=3\)"):
            CSRGraph([0, 1, 2, 3], [1, 0, 3])


# ======================================================================== #
# 3. Alternate constructors                                                 #
# ======================================================================== #


class TestFromEdges:
    def test_symmetrized(self):
        g = CSRGraph.from_edges([0], [1])
        np.testing.assert_array_equal(g.row_ptr, [0, 1, 2])
        np.testing.assert_array_equal(g.col_ind, [1, 0])

    def test_duplicates_merged(self):
        g = CSRGraph.from_edges([0, 1, 0], [1, 0, 1])
        assert g.nnz == 2
        np.testing.assert_array_equal(g.val, [1.0, 1.0])

    def test_rows_sorted(self, k4):
        for r in range(k4.n_rows):
            nbrs = k4.neighbors(r)
            assert np.all(np.diff(nbrs) > 0)

    def test_self_loops_dropped_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="tricsr"):
            g = CSRGraph.from_edges([0, 1, 2], [1, 1, 2])
        assert g.nnz == 2
        messages = [r.getMessage() for r in caplog.records]
        assert any("2 self-loop" in m for m in messages)

    def test_isolated_trailing_vertices(self):
        g = CSRGraph.from_edges([0], [1], n_rows=5)
        assert g.n_rows == 5
        np.testing.assert_array_equal(g.degrees(), [1, 1, 0, 0, 0])

    def test_n_rows_too_small(self):
        with pytest.raises(MalformedStructure, match="references vertex 4"):
            CSRGraph.from_edges([0], [4], n_rows=3)

    def test_negative_vertex(self):
        with pytest.raises(MalformedStructure, match="negative"):
            CSRGraph.from_edges([0, -1], [1, 2])

    def test_length_mismatch(self):
        with pytest.raises(MalformedStructure, match="differ in length"):
            CSRGraph.from_edges([0, 1], [1])

    def test_empty_edge_list(self):
        g = CSRGraph.from_edges([], [])
        assert g.n_rows == 0
        assert g.nnz == 0

    def test_passes_validation(self, k4):
        assert k4.validate() is k4


class TestScipyInterop:
    def test_from_scipy(self):
        a = sp.csr_matrix(
            np.array([[0, 1, 1], [1, 0, 0], [1, 0, 0]], dtype=np.float64)
        )
        g = CSRGraph.from_scipy(a)
        assert g.n_rows == 3
        assert g.nnz == 4
        np.testing.assert_array_equal(g.neighbors(0), [1, 2])

    def test_from_scipy_coo(self):
        coo = sp.coo_matrix(([1, 1], ([0, 1], [1, 0])), shape=(4, 4))
        g = CSRGraph.from_scipy(coo)
        assert g.n_rows == 4
        assert g.nnz == 2

    def test_from_scipy_requires_square(self):
        with pytest.raises(MalformedStructure, match="square"):
            CSRGraph.from_scipy(sp.csr_matrix((2, 3)))

    def test_to_scipy_roundtrip(self, k4):
        a = k4.to_scipy()
        assert a.shape == (4, 4)
        assert (a != a.T).nnz == 0
        np.testing.assert_array_equal(a.indptr, k4.row_ptr)

    def test_to_scipy_is_writable_copy(self, k4):
        a = k4.to_scipy()
        a.data[:] = 7.0
        assert k4.val[0] == 1.0


# ======================================================================== #
# 4. Accessors                                                              #
# ======================================================================== #


class TestAccessors:
    def test_neighbors(self, triangle):
        np.testing.assert_array_equal(triangle.neighbors(1), [0, 2])

    def test_degree(self, k4):
        assert [k4.degree(r) for r in range(4)] == [3, 3, 3, 3]

    def test_degrees(self, k4):
        np.testing.assert_array_equal(k4.degrees(), [3, 3, 3, 3])

    @pytest.mark.parametrize("row", [-1, 3])
    def test_row_out_of_range(self, triangle, row):
        with pytest.raises(IndexError):
            triangle.neighbors(row)
        with pytest.raises(IndexError):
            triangle.degree(row)

    def test_columns_is_rows(self, triangle):
        assert triangle.columns is triangle

    def test_nbytes(self, triangle):
        assert triangle.nbytes == 4 * 8 + 6 * 4 + 6 * 4

    def test_repr(self, triangle):
        assert repr(triangle) == "CSRGraph(n_rows=3, nnz=6)"


# ======================================================================== #
# 5. Debug validation                                                       #
# ======================================================================== #


class TestValidate:
    def test_valid_graph(self, triangle):
        assert triangle.validate() is triangle

    def test_unsorted_row(self):
        g = CSRGraph([0, 2, 3, 4], [2, 1, 0, 0])
        with pytest.raises(MalformedStructure, match="strictly increasing") as exc:
            g.validate()
        assert exc.value.row == 0
        assert exc.value.column == 1

    def test_duplicate_entry(self):
        g = CSRGraph([0, 2, 4], [1, 1, 0, 0])
        with pytest.raises(MalformedStructure, match="strictly increasing"):
            g.validate()

    def test_self_loop(self):
        g = CSRGraph([0, 2, 3], [0, 1, 0])
        with pytest.raises(MalformedStructure, match="self-loop") as exc:
            g.validate(check_symmetric=False)
        assert exc.value.row == 0
        assert exc.value.column == 0

    def test_asymmetric(self):
        g = CSRGraph([0, 1, 1], [1])
        with pytest.raises(MalformedStructure, match="not symmetric") as exc:
            g.validate()
        assert exc.value.row == 0
        assert exc.value.column == 1

    def test_asymmetric_lower_entry(self):
        g = CSRGraph([0, 0, 1], [0])
        with pytest.raises(MalformedStructure, match="not symmetric") as exc:
            g.validate(check_loops=False)
        assert exc.value.row == 1
        assert exc.value.column == 0

    def test_checks_can_be_disabled(self):
        g = CSRGraph([0, 1, 1], [1])
        assert g.validate(check_symmetric=False) is g

    def test_empty_graph_valid(self):
        g = CSRGraph([0, 0, 0], [])
        assert g.validate() is g
